"""Physical Hessians of the basis functions through the second-order chain rule."""

from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING, Any, TypeVar

import numba as nb
import numpy as np
import numpy.typing as npt

F = TypeVar("F", bound=Callable[..., Any])

if TYPE_CHECKING:
    # During type-checking, make the decorator a no-op that preserves types.
    def nb_jit(*args: object, **kwargs: object) -> Callable[[F], F]:
        def decorator(func: F) -> F:
            return func

        return decorator
else:
    # At runtime, use the real Numba decorator.
    nb_jit = nb.jit  # type: ignore[attr-defined]


@nb_jit(
    nopython=True,
    cache=True,
    parallel=True,
)
def _assemble_physical_hessians_impl(
    parametric_gradients: npt.NDArray[np.float32 | np.float64],
    parametric_hessians: npt.NDArray[np.float32 | np.float64],
    inverse_jacobians: npt.NDArray[np.float32 | np.float64],
    inverse_map_second_derivatives: npt.NDArray[np.float32 | np.float64],
    out: npt.NDArray[np.float32 | np.float64],
) -> None:
    """Apply the second-order chain rule to every function, node and element.

    For ``phi(u(x, y), v(x, y))``:

        phi_xx = phi_uu u_x^2 + 2 phi_uv u_x v_x + phi_vv v_x^2 + phi_u u_xx + phi_v v_xx
        phi_xy = phi_uu u_x u_y + phi_uv (u_x v_y + u_y v_x) + phi_vv v_x v_y
                 + phi_u u_xy + phi_v v_xy
        phi_yy = phi_uu u_y^2 + 2 phi_uv u_y v_y + phi_vv v_y^2 + phi_u u_yy + phi_v v_yy

    Args:
        parametric_gradients (npt.NDArray[np.float32 | np.float64]): ``(phi_u, phi_v)``,
            shape ``(2, nqn, nsh, nel)``.
        parametric_hessians (npt.NDArray[np.float32 | np.float64]): Parametric
            Hessians, shape ``(2, 2, nqn, nsh, nel)``.
        inverse_jacobians (npt.NDArray[np.float32 | np.float64]): ``d u_i / d x_j``,
            shape ``(2, 2, nqn, nel)``.
        inverse_map_second_derivatives (npt.NDArray[np.float32 | np.float64]):
            ``d^2 u_a / d x_n d x_g``, shape ``(2, 2, 2, nqn, nel)``.
        out (npt.NDArray[np.float32 | np.float64]): Output physical Hessians,
            shape ``(2, 2, nqn, nsh, nel)``.

    Note:
        Inputs are assumed to be correct (no validation performed).
    """
    num_nodes = parametric_gradients.shape[1]
    num_funcs = parametric_gradients.shape[2]
    num_elements = parametric_gradients.shape[3]

    for elem in nb.prange(num_elements):
        for node in range(num_nodes):
            ux = inverse_jacobians[0, 0, node, elem]
            uy = inverse_jacobians[0, 1, node, elem]
            vx = inverse_jacobians[1, 0, node, elem]
            vy = inverse_jacobians[1, 1, node, elem]

            d2 = inverse_map_second_derivatives
            uxx = d2[0, 0, 0, node, elem]
            uxy = d2[0, 0, 1, node, elem]
            uyy = d2[0, 1, 1, node, elem]
            vxx = d2[1, 0, 0, node, elem]
            vxy = d2[1, 0, 1, node, elem]
            vyy = d2[1, 1, 1, node, elem]

            for func in range(num_funcs):
                bu = parametric_gradients[0, node, func, elem]
                bv = parametric_gradients[1, node, func, elem]
                buu = parametric_hessians[0, 0, node, func, elem]
                buv = parametric_hessians[0, 1, node, func, elem]
                bvv = parametric_hessians[1, 1, node, func, elem]

                bxx = buu * ux * ux + 2.0 * buv * ux * vx + bvv * vx * vx + bu * uxx + bv * vxx
                bxy = (
                    buu * ux * uy
                    + buv * (ux * vy + uy * vx)
                    + bvv * vx * vy
                    + bu * uxy
                    + bv * vxy
                )
                byy = buu * uy * uy + 2.0 * buv * uy * vy + bvv * vy * vy + bu * uyy + bv * vyy

                out[0, 0, node, func, elem] = bxx
                out[0, 1, node, func, elem] = bxy
                out[1, 0, node, func, elem] = bxy
                out[1, 1, node, func, elem] = byy


def _assemble_physical_hessians(
    parametric_gradients: npt.NDArray[np.float32 | np.float64],
    parametric_hessians: npt.NDArray[np.float32 | np.float64],
    inverse_jacobians: npt.NDArray[np.float32 | np.float64],
    inverse_map_second_derivatives: npt.NDArray[np.float32 | np.float64],
) -> npt.NDArray[np.float32 | np.float64]:
    """Compute the physical Hessians of all basis functions in a column.

    Args:
        parametric_gradients (npt.NDArray[np.float32 | np.float64]): Shape
            ``(2, nqn, nsh, nel)``.
        parametric_hessians (npt.NDArray[np.float32 | np.float64]): Shape
            ``(2, 2, nqn, nsh, nel)``.
        inverse_jacobians (npt.NDArray[np.float32 | np.float64]): Shape
            ``(2, 2, nqn, nel)``.
        inverse_map_second_derivatives (npt.NDArray[np.float32 | np.float64]):
            Shape ``(2, 2, 2, nqn, nel)``.

    Returns:
        npt.NDArray[np.float32 | np.float64]: Physical Hessians, shape
        ``(2, 2, nqn, nsh, nel)``, symmetric in the two leading axes.
    """
    dtype = parametric_gradients.dtype
    out = np.empty(parametric_hessians.shape, dtype=dtype)
    _assemble_physical_hessians_impl(
        np.ascontiguousarray(parametric_gradients),
        np.ascontiguousarray(parametric_hessians, dtype=dtype),
        np.ascontiguousarray(inverse_jacobians, dtype=dtype),
        np.ascontiguousarray(inverse_map_second_derivatives, dtype=dtype),
        out,
    )
    return out


def _warmup_numba_functions() -> None:
    """Precompile numba functions with float64 signatures for faster first call."""
    grads_dummy = np.zeros((2, 1, 1, 1), dtype=np.float64)
    hess_dummy = np.zeros((2, 2, 1, 1, 1), dtype=np.float64)
    inv_dummy = np.zeros((2, 2, 1, 1), dtype=np.float64)
    inv_dummy[0, 0] = inv_dummy[1, 1] = 1.0
    der2_dummy = np.zeros((2, 2, 2, 1, 1), dtype=np.float64)
    _assemble_physical_hessians(grads_dummy, hess_dummy, inv_dummy, der2_dummy)


# Precompile numba functions on module import (skip during type checking)
if not TYPE_CHECKING:
    _warmup_numba_functions()


__all__ = ["_assemble_physical_hessians"]
