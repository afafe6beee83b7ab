"""Jacobian transport of basis derivatives to the physical domain.

This module inverts the Jacobians of the geometry map, pushes parametric
gradients forward to physical gradients, and computes the second
derivatives of the inverse map needed by the physical Hessians.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING, Any, TypeVar

import numba as nb
import numpy as np
import numpy.typing as npt

from .errors import SingularJacobianError

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


def _check_jacobians_invertible(
    jacobians: npt.NDArray[np.float32 | np.float64],
    determinants: npt.NDArray[np.float32 | np.float64],
    tol: float,
) -> None:
    """Check that all Jacobians are finite and far enough from singular.

    A Jacobian ``J`` is singular when ``|det(J)| <= tol * max(|J_ij|)**2``.

    Args:
        jacobians (npt.NDArray[np.float32 | np.float64]): Jacobians, shape
            ``(2, 2, nqn, nel)``.
        determinants (npt.NDArray[np.float32 | np.float64]): Their determinants,
            shape ``(nqn, nel)``.
        tol (float): Relative tolerance.

    Raises:
        SingularJacobianError: For the first (element-major) singular Jacobian.
    """
    scale = np.max(np.abs(jacobians), axis=(0, 1))
    finite = np.all(np.isfinite(jacobians), axis=(0, 1)) & np.isfinite(determinants)
    singular = ~finite | (np.abs(determinants) <= tol * scale * scale)
    if np.any(singular):
        # Transposed so that elements are scanned first.
        elem, node = np.argwhere(singular.T)[0]
        raise SingularJacobianError(int(node), int(elem), float(determinants[node, elem]))


def _compute_inverse_jacobians(
    jacobians: npt.NDArray[np.float32 | np.float64], tol: float
) -> npt.NDArray[np.float32 | np.float64]:
    """Invert the 2x2 Jacobians of the geometry map.

    Args:
        jacobians (npt.NDArray[np.float32 | np.float64]): Jacobians
            ``d x_i / d u_j``, shape ``(2, 2, nqn, nel)``.
        tol (float): Relative tolerance for the singularity check.

    Returns:
        npt.NDArray[np.float32 | np.float64]: Inverse Jacobians
        ``d u_i / d x_j``, shape ``(2, 2, nqn, nel)``.

    Raises:
        SingularJacobianError: If any Jacobian is singular or not finite.
    """
    xu, xv = jacobians[0, 0], jacobians[0, 1]
    yu, yv = jacobians[1, 0], jacobians[1, 1]
    det = xu * yv - xv * yu

    _check_jacobians_invertible(jacobians, det, tol)

    inv = np.empty_like(jacobians)
    inv[0, 0] = yv / det
    inv[0, 1] = -xv / det
    inv[1, 0] = -yu / det
    inv[1, 1] = xu / det
    return inv


def _transport_gradients(
    inverse_jacobians: npt.NDArray[np.float32 | np.float64],
    parametric_gradients: npt.NDArray[np.float32 | np.float64],
) -> npt.NDArray[np.float32 | np.float64]:
    """Push parametric gradients forward: ``grad_x = J^{-T} grad_u``.

    Args:
        inverse_jacobians (npt.NDArray[np.float32 | np.float64]): Inverse
            Jacobians, shape ``(2, 2, nqn, nel)``.
        parametric_gradients (npt.NDArray[np.float32 | np.float64]): Gradients
            with respect to ``(u, v)``, shape ``(2, nqn, nsh, nel)``.

    Returns:
        npt.NDArray[np.float32 | np.float64]: Gradients with respect to
        ``(x, y)``, shape ``(2, nqn, nsh, nel)``.
    """
    return np.einsum("jiqe,jqse->iqse", inverse_jacobians, parametric_gradients)


@nb_jit(
    nopython=True,
    cache=True,
    parallel=True,
)
def _compute_inverse_map_second_derivatives_impl(
    inverse_jacobians: npt.NDArray[np.float32 | np.float64],
    second_derivatives: npt.NDArray[np.float32 | np.float64],
    out: npt.NDArray[np.float32 | np.float64],
) -> None:
    """Second derivatives of the inverse map ``(x, y) -> (u, v)``.

    Differentiating ``J A = I`` (with ``A = J^{-1}``) gives

        d^2 u_a / d x_n d x_g = - sum_{m,l} C_aml A_mn A_lg,
        C_aml = sum_b A_ab d^2 x_b / d u_m d u_l.

    Mixed second derivatives of the map are averaged, so the result is
    symmetric in ``(n, g)``.

    Args:
        inverse_jacobians (npt.NDArray[np.float32 | np.float64]): ``A``, shape
            ``(2, 2, nqn, nel)``.
        second_derivatives (npt.NDArray[np.float32 | np.float64]): Map second
            derivatives, shape ``(2, 2, 2, nqn, nel)``.
        out (npt.NDArray[np.float32 | np.float64]): Output array of shape
            ``(2, 2, 2, nqn, nel)`` with ``out[a, n, g] = d^2 u_a / d x_n d x_g``.

    Note:
        Inputs are assumed to be correct (no validation performed).
    """
    num_nodes = inverse_jacobians.shape[2]
    num_elements = inverse_jacobians.shape[3]

    for elem in nb.prange(num_elements):
        for node in range(num_nodes):
            a00 = inverse_jacobians[0, 0, node, elem]
            a01 = inverse_jacobians[0, 1, node, elem]
            a10 = inverse_jacobians[1, 0, node, elem]
            a11 = inverse_jacobians[1, 1, node, elem]

            d2 = second_derivatives
            xuu = d2[0, 0, 0, node, elem]
            xvv = d2[0, 1, 1, node, elem]
            xuv = 0.5 * (d2[0, 0, 1, node, elem] + d2[0, 1, 0, node, elem])
            yuu = d2[1, 0, 0, node, elem]
            yvv = d2[1, 1, 1, node, elem]
            yuv = 0.5 * (d2[1, 0, 1, node, elem] + d2[1, 1, 0, node, elem])

            for comp in range(2):
                a_c0 = inverse_jacobians[comp, 0, node, elem]
                a_c1 = inverse_jacobians[comp, 1, node, elem]
                c_uu = a_c0 * xuu + a_c1 * yuu
                c_uv = a_c0 * xuv + a_c1 * yuv
                c_vv = a_c0 * xvv + a_c1 * yvv

                d_xx = -(c_uu * a00 * a00 + 2.0 * c_uv * a00 * a10 + c_vv * a10 * a10)
                d_xy = -(c_uu * a00 * a01 + c_uv * (a00 * a11 + a10 * a01) + c_vv * a10 * a11)
                d_yy = -(c_uu * a01 * a01 + 2.0 * c_uv * a01 * a11 + c_vv * a11 * a11)

                out[comp, 0, 0, node, elem] = d_xx
                out[comp, 0, 1, node, elem] = d_xy
                out[comp, 1, 0, node, elem] = d_xy
                out[comp, 1, 1, node, elem] = d_yy


def _compute_inverse_map_second_derivatives(
    inverse_jacobians: npt.NDArray[np.float32 | np.float64],
    second_derivatives: npt.NDArray[np.float32 | np.float64],
) -> npt.NDArray[np.float32 | np.float64]:
    """Compute ``d^2 u_a / d x_n d x_g`` at every node of every element.

    Args:
        inverse_jacobians (npt.NDArray[np.float32 | np.float64]): Inverse
            Jacobians, shape ``(2, 2, nqn, nel)``.
        second_derivatives (npt.NDArray[np.float32 | np.float64]): Map second
            derivatives ``d^2 x_i / d u_j d u_k``, shape ``(2, 2, 2, nqn, nel)``.

    Returns:
        npt.NDArray[np.float32 | np.float64]: Array of shape
        ``(2, 2, 2, nqn, nel)``. The six independent entries are
        ``[0, 0, 0] = u_xx``, ``[0, 0, 1] = u_xy``, ``[0, 1, 1] = u_yy``,
        ``[1, 0, 0] = v_xx``, ``[1, 0, 1] = v_xy`` and ``[1, 1, 1] = v_yy``.
    """
    inverse_jacobians = np.ascontiguousarray(inverse_jacobians)
    second_derivatives = np.ascontiguousarray(second_derivatives, dtype=inverse_jacobians.dtype)
    out = np.empty((2, *inverse_jacobians.shape), dtype=inverse_jacobians.dtype)
    _compute_inverse_map_second_derivatives_impl(inverse_jacobians, second_derivatives, out)
    return out


def _warmup_numba_functions() -> None:
    """Precompile numba functions with float64 signatures for faster first call."""
    inv_dummy = np.zeros((2, 2, 1, 1), dtype=np.float64)
    inv_dummy[0, 0] = inv_dummy[1, 1] = 1.0
    der2_dummy = np.zeros((2, 2, 2, 1, 1), dtype=np.float64)
    _compute_inverse_map_second_derivatives(inv_dummy, der2_dummy)


# Precompile numba functions on module import (skip during type checking)
if not TYPE_CHECKING:
    _warmup_numba_functions()


__all__ = [
    "_compute_inverse_jacobians",
    "_compute_inverse_map_second_derivatives",
    "_transport_gradients",
]
