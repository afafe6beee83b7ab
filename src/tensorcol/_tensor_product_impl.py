"""Tensor-product assembly of univariate basis data over a mesh column.

This module combines the univariate basis data of both parametric
directions into the parametric values, gradients and Hessians of the
bivariate basis, for all the elements of one column.
"""

from __future__ import annotations

from typing import NamedTuple

import numpy as np
import numpy.typing as npt

from .errors import ShapeContractError
from .index_map import TensorIndexMap
from .univariate import UnivariateBasisData


class _ParametricBasis(NamedTuple):
    """Bivariate basis data in the parametric domain.

    Arrays are packed per element (active functions first) and indexed by
    (node, function, element), with leading component axes for derivatives.
    """

    values: npt.NDArray[np.float32 | np.float64]
    gradients: npt.NDArray[np.float32 | np.float64] | None
    hessians: npt.NDArray[np.float32 | np.float64] | None


def _outer_product_column(
    data_u: npt.NDArray[np.float32 | np.float64],
    data_v: npt.NDArray[np.float32 | np.float64],
    index_map: TensorIndexMap,
) -> npt.NDArray[np.float32 | np.float64]:
    """Outer product of direction-1 data at a column with direction-2 data.

    The direction-1 data is replicated over all elements and all direction-2
    nodes; the direction-2 data is replicated over the direction-1 nodes.

    Args:
        data_u (npt.NDArray[np.float32 | np.float64]): Direction-1 data at the
            column, shape ``(nqn_u, nsh_max_u)``.
        data_v (npt.NDArray[np.float32 | np.float64]): Direction-2 data, shape
            ``(nqn_v, nsh_max_v, nel)``.
        index_map (TensorIndexMap): Flattening of nodes and functions.

    Returns:
        npt.NDArray[np.float32 | np.float64]: Array of shape
        ``(nqn_u * nqn_v, nsh_max_u * nsh_max_v, nel)``.

    Raises:
        ShapeContractError: If the axis sizes do not match the index map.
    """
    expected_u = (index_map.num_nodes[0], index_map.num_functions[0])
    expected_v = (index_map.num_nodes[1], index_map.num_functions[1])
    if data_u.shape != expected_u:
        raise ShapeContractError(
            f"Direction-1 data has shape {data_u.shape}, expected {expected_u}"
        )
    if data_v.ndim != 3 or data_v.shape[:2] != expected_v:  # noqa: PLR2004
        raise ShapeContractError(
            f"Direction-2 data has shape {data_v.shape}, expected {(*expected_v, 'nel')}"
        )

    num_elements = data_v.shape[2]
    prod = np.einsum(index_map._outer_subscripts(), data_u, data_v)
    return prod.reshape(index_map.total_nodes, index_map.total_functions, num_elements)


def _pack_functions(
    arr: npt.NDArray[np.float32 | np.float64],
    perm: npt.NDArray[np.intp],
    active: npt.NDArray[np.bool_],
) -> npt.NDArray[np.float32 | np.float64]:
    """Reorder the function axis per element and zero the inactive slots.

    Args:
        arr (npt.NDArray[np.float32 | np.float64]): Array whose last three axes
            are (node, function, element).
        perm (npt.NDArray[np.intp]): Packing permutation, shape
            ``(nsh_max, nel)``.
        active (npt.NDArray[np.bool_]): Active packed slots, shape
            ``(nsh_max, nel)``.

    Returns:
        npt.NDArray[np.float32 | np.float64]: Packed array with the same shape.
    """
    lead = (1,) * (arr.ndim - 2)
    packed = np.take_along_axis(arr, perm.reshape(*lead, *perm.shape), axis=-2)
    packed[..., ~active] = 0
    return packed


def _tabulate_parametric_tensor_product(  # noqa: PLR0913
    univariate_u: UnivariateBasisData,
    univariate_v: UnivariateBasisData,
    column_index: int,
    index_map: TensorIndexMap,
    perm: npt.NDArray[np.intp],
    active: npt.NDArray[np.bool_],
    need_gradients: bool,
    need_hessians: bool,
) -> _ParametricBasis:
    """Tabulate the bivariate basis and its parametric derivatives in a column.

    For local functions ``(i, j)`` and nodes ``(p, q)``:

    - value: ``phi_u[p, i] * phi_v[q, j]``
    - gradient: ``(dphi_u[p, i] * phi_v[q, j], phi_u[p, i] * dphi_v[q, j])``
    - Hessian: ``d2phi_u * phi_v`` and ``phi_u * d2phi_v`` on the diagonal,
      ``dphi_u * dphi_v`` in both mixed entries.

    Args:
        univariate_u (UnivariateBasisData): Direction-1 basis data.
        univariate_v (UnivariateBasisData): Direction-2 basis data.
        column_index (int): Element index along direction 1.
        index_map (TensorIndexMap): Flattening of nodes and functions.
        perm (npt.NDArray[np.intp]): Packing permutation, shape ``(nsh_max, nel)``.
        active (npt.NDArray[np.bool_]): Active packed slots, shape ``(nsh_max, nel)``.
        need_gradients (bool): Whether to compute parametric gradients.
        need_hessians (bool): Whether to compute parametric Hessians. Both
            univariate data sets must then carry second derivatives.

    Returns:
        _ParametricBasis: Values, gradients (``(2, nqn, nsh_max, nel)`` or None)
        and Hessians (``(2, 2, nqn, nsh_max, nel)`` or None).
    """
    shp_u = univariate_u.shape_functions[:, :, column_index]
    shp_v = univariate_v.shape_functions

    def combine(
        data_u: npt.NDArray[np.float32 | np.float64], data_v: npt.NDArray[np.float32 | np.float64]
    ) -> npt.NDArray[np.float32 | np.float64]:
        return _pack_functions(_outer_product_column(data_u, data_v, index_map), perm, active)

    values = combine(shp_u, shp_v)

    gradients = None
    hessians = None
    if need_gradients or need_hessians:
        shg_u = univariate_u.shape_function_gradients[:, :, column_index]
        shg_v = univariate_v.shape_function_gradients
        gradients = np.stack((combine(shg_u, shp_v), combine(shp_u, shg_v)))

        if need_hessians:
            hess_u = univariate_u.shape_function_hessians
            hess_v = univariate_v.shape_function_hessians
            if hess_u is None or hess_v is None:
                raise ShapeContractError("Univariate second derivatives are required for Hessians")
            shh_u = hess_u[:, :, column_index]
            shh_v = hess_v

            hessians = np.empty((2, 2, *values.shape), dtype=values.dtype)
            hessians[0, 0] = combine(shh_u, shp_v)
            hessians[0, 1] = combine(shg_u, shg_v)
            hessians[1, 0] = hessians[0, 1]
            hessians[1, 1] = combine(shp_u, shh_v)

    return _ParametricBasis(values, gradients, hessians)


__all__ = ["_tabulate_parametric_tensor_product"]
