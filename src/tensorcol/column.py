"""Evaluation of a tensor-product basis over one column of a structured mesh.

A column is the set of elements sharing the same element index along the
first parametric direction. Elements of the mesh are numbered with the
first direction varying fastest, so the column ``c`` of a mesh with
``(nel_u, nel_v)`` elements is made of the elements ``c + nel_u * k``.
"""

from __future__ import annotations

import warnings
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any, Literal

import numpy as np
import numpy.typing as npt

from ._hessian_impl import _assemble_physical_hessians
from ._jacobian_impl import (
    _compute_inverse_jacobians,
    _compute_inverse_map_second_derivatives,
    _transport_gradients,
)
from ._tensor_product_impl import _tabulate_parametric_tensor_product
from .errors import HessianUnavailableWarning, ShapeContractError
from .geometry import GeometryMapData
from .index_map import TensorIndexMap
from .options import EvaluationOptions, resolve_evaluation_options
from .tolerance import get_jacobian_tolerance
from .univariate import UnivariateBasisData


@dataclass(frozen=True)
class TensorProductBasis:
    """Bivariate basis functions evaluated over the elements of a column.

    Active functions of element ``e`` occupy the first ``nsh[e]`` function
    slots; the remaining slots are zero and their connectivity is ``-1``.

    Attributes:
        nsh_max (int): Maximum number of nonzero functions per element.
        nsh (npt.NDArray[np.int_]): Actual number of nonzero functions per
            element, shape ``(nel,)``.
        element_indices (npt.NDArray[np.int_]): Global indices of the elements
            of the column, shape ``(nel,)``.
        index_map (TensorIndexMap): Flattening of nodes and functions.
        connectivity (npt.NDArray[np.int_] | None): Global function indices,
            shape ``(nsh_max, nel)``, or None if the univariate connectivity is
            unknown.
        ndof (int | None): Total number of bivariate functions.
        ndof_dir (tuple[int, int] | None): Number of functions per direction.
        shape_functions (npt.NDArray[np.float32 | np.float64] | None): Values,
            shape ``(nqn, nsh_max, nel)``.
        shape_function_gradients (npt.NDArray[np.float32 | np.float64] | None):
            Physical gradients, shape ``(2, nqn, nsh_max, nel)``.
        shape_function_hessians (npt.NDArray[np.float32 | np.float64] | None):
            Physical Hessians, shape ``(2, 2, nqn, nsh_max, nel)``.
        ncomp (int): Number of components of the functions (always 1).
    """

    nsh_max: int
    nsh: npt.NDArray[np.int_]
    element_indices: npt.NDArray[np.int_]
    index_map: TensorIndexMap
    connectivity: npt.NDArray[np.int_] | None = None
    ndof: int | None = None
    ndof_dir: tuple[int, int] | None = None
    shape_functions: npt.NDArray[np.float32 | np.float64] | None = None
    shape_function_gradients: npt.NDArray[np.float32 | np.float64] | None = None
    shape_function_hessians: npt.NDArray[np.float32 | np.float64] | None = None
    ncomp: int = 1

    @property
    def num_elements(self) -> int:
        """Number of elements in the column."""
        return int(self.nsh.size)

    @property
    def num_nodes(self) -> int:
        """Number of quadrature nodes per element."""
        return self.index_map.total_nodes


def get_column_element_indices(
    column_index: int, num_elements: tuple[int, int]
) -> npt.NDArray[np.int_]:
    """Get the global indices of the elements of a column.

    Args:
        column_index (int): Element index along the first direction (0-based).
        num_elements (tuple[int, int]): Number of elements per direction.

    Returns:
        npt.NDArray[np.int_]: Increasing element indices, one per element along
        the second direction.

    Raises:
        ShapeContractError: If ``column_index`` is out of range.

    Example:
        >>> get_column_element_indices(1, (3, 4))
        array([ 1,  4,  7, 10])
    """
    nel_u, nel_v = num_elements
    _validate_column_index(column_index, nel_u)
    return column_index + nel_u * np.arange(nel_v, dtype=np.int_)


def _validate_column_index(column_index: int, num_elements_u: int) -> None:
    """Check that a column index is an integer in ``[0, num_elements_u)``."""
    if isinstance(column_index, bool) or not isinstance(column_index, (int, np.integer)):
        raise ShapeContractError(f"column_index must be an integer, got {column_index!r}")
    if not 0 <= column_index < num_elements_u:
        raise ShapeContractError(
            f"column_index must lie in [0, {num_elements_u}), got {column_index}"
        )


def _validate_column_inputs(
    column_index: int,
    univariate_u: UnivariateBasisData,
    univariate_v: UnivariateBasisData,
    geometry: GeometryMapData,
) -> None:
    """Check that basis and geometry data can be combined over a column.

    Raises:
        ShapeContractError: If the column index is out of range, the univariate
            data sets have different dtypes, or the geometry data does not cover
            exactly the nodes and elements of the column.
    """
    _validate_column_index(column_index, univariate_u.num_elements)

    if univariate_u.dtype != univariate_v.dtype:
        raise ShapeContractError(
            "Univariate basis data must have the same dtype, got "
            f"{univariate_u.dtype} and {univariate_v.dtype}"
        )
    if geometry.num_elements != univariate_v.num_elements:
        raise ShapeContractError(
            f"Geometry data has {geometry.num_elements} elements, but the column has "
            f"{univariate_v.num_elements}"
        )
    expected_nodes = univariate_u.num_nodes * univariate_v.num_nodes
    if geometry.num_nodes != expected_nodes:
        raise ShapeContractError(
            f"Geometry data has {geometry.num_nodes} nodes per element, expected {expected_nodes}"
        )


def _hessians_available(
    univariate_u: UnivariateBasisData,
    univariate_v: UnivariateBasisData,
    geometry: GeometryMapData,
) -> bool:
    """Check whether Hessians can be computed, warning when they cannot."""
    missing = []
    if not geometry.has_second_derivatives:
        missing.append("geometry map")
    if not univariate_u.has_hessians:
        missing.append("direction-1 basis")
    if not univariate_v.has_hessians:
        missing.append("direction-2 basis")

    if missing:
        warnings.warn(
            "Hessians were requested but second derivatives of the "
            f"{', '.join(missing)} are not available; shape_function_hessians is omitted",
            HessianUnavailableWarning,
            stacklevel=3,
        )
        return False
    return True


def _compute_connectivity(
    univariate_u: UnivariateBasisData,
    univariate_v: UnivariateBasisData,
    column_index: int,
    index_map: TensorIndexMap,
    perm: npt.NDArray[np.intp],
    active: npt.NDArray[np.bool_],
) -> npt.NDArray[np.int_] | None:
    """Global indices of the packed local functions of the column.

    The global index of the pair ``(i, j)`` is ``conn_u[i] + ndof_u * conn_v[j]``.
    """
    conn_u = univariate_u.connectivity
    conn_v = univariate_v.connectivity
    ndof_u = univariate_u.ndof
    if conn_u is None or conn_v is None or ndof_u is None:
        return None

    i, j = index_map.function_pairs()
    full = conn_u[i, column_index][:, np.newaxis] + ndof_u * conn_v[j, :]
    conn = np.take_along_axis(full, perm, axis=0)
    conn[~active] = -1
    return conn


def evaluate_column(
    column_index: int,
    univariate_u: UnivariateBasisData,
    univariate_v: UnivariateBasisData,
    geometry: GeometryMapData,
    options: EvaluationOptions | Mapping[str, Any] | Sequence[Any] | None = None,
    *,
    order: Literal["C", "F"] = "F",
) -> TensorProductBasis:
    """Evaluate the tensor-product basis in one column of the mesh.

    The univariate data of direction 1 is taken at ``column_index`` and
    combined with the direction-2 data of every element. Gradients are
    mapped to the physical domain with the inverse transpose of the
    Jacobian, and Hessians with the second-order chain rule through the
    inverse of the geometry map.

    Args:
        column_index (int): Element index along the first direction (0-based).
        univariate_u (UnivariateBasisData): Basis data along direction 1.
        univariate_v (UnivariateBasisData): Basis data along direction 2.
        geometry (GeometryMapData): Geometry derivatives restricted to the
            elements of the column, in the order of ``univariate_v``'s elements.
            Nodes must be flattened following ``order``.
        options (EvaluationOptions | Mapping[str, Any] | Sequence[Any] | None):
            Which quantities to compute; see
            :func:`tensorcol.options.resolve_evaluation_options`. Defaults to
            values and gradients.
        order (Literal["C", "F"]): Flattening of ``(node_u, node_v)`` and
            ``(i, j)``. "F" means direction 1 varies fastest. Defaults to "F".

    Returns:
        TensorProductBasis: The evaluated basis. Quantities not requested are
        None. Requested Hessians are None (with a
        :class:`~tensorcol.errors.HessianUnavailableWarning`) if second
        derivatives are missing.

    Raises:
        OptionsError: If the options are malformed.
        ShapeContractError: If the inputs are inconsistent.
        SingularJacobianError: If a Jacobian is singular while gradients or
            Hessians are requested.

    Example:
        >>> sp = evaluate_column(0, spu, spv, geo, ["hessian", True])
        >>> sp.shape_function_hessians.shape
        (2, 2, 16, 9, 2)
    """
    opts = resolve_evaluation_options(options)
    _validate_column_inputs(column_index, univariate_u, univariate_v, geometry)

    index_map = TensorIndexMap(
        (univariate_u.num_nodes, univariate_v.num_nodes),
        (univariate_u.nsh_max, univariate_v.nsh_max),
        order,
    )
    count_u = int(univariate_u.nsh[column_index])
    nsh = (count_u * univariate_v.nsh).astype(np.int_)
    perm = index_map.packing_permutation(count_u, univariate_v.nsh)
    active = np.arange(index_map.total_functions)[:, np.newaxis] < nsh[np.newaxis, :]

    want_hessians = opts.hessian and _hessians_available(univariate_u, univariate_v, geometry)
    want_gradients = opts.gradient or want_hessians

    parametric = _tabulate_parametric_tensor_product(
        univariate_u,
        univariate_v,
        column_index,
        index_map,
        perm,
        active,
        need_gradients=want_gradients,
        need_hessians=want_hessians,
    )

    gradients = None
    hessians = None
    if want_gradients:
        assert parametric.gradients is not None
        jacobians = geometry.jacobians.astype(univariate_u.dtype, copy=False)
        inverse_jacobians = _compute_inverse_jacobians(
            jacobians, get_jacobian_tolerance(jacobians.dtype)
        )
        gradients = _transport_gradients(inverse_jacobians, parametric.gradients)

        if want_hessians:
            assert parametric.hessians is not None
            assert geometry.second_derivatives is not None
            inverse_map_der2 = _compute_inverse_map_second_derivatives(
                inverse_jacobians, geometry.second_derivatives
            )
            hessians = _assemble_physical_hessians(
                parametric.gradients, parametric.hessians, inverse_jacobians, inverse_map_der2
            )

    ndof_dir = None
    if univariate_u.ndof is not None and univariate_v.ndof is not None:
        ndof_dir = (univariate_u.ndof, univariate_v.ndof)

    return TensorProductBasis(
        nsh_max=index_map.total_functions,
        nsh=nsh,
        element_indices=get_column_element_indices(
            column_index, (univariate_u.num_elements, univariate_v.num_elements)
        ),
        index_map=index_map,
        connectivity=_compute_connectivity(
            univariate_u, univariate_v, column_index, index_map, perm, active
        ),
        ndof=None if ndof_dir is None else ndof_dir[0] * ndof_dir[1],
        ndof_dir=ndof_dir,
        shape_functions=parametric.values if opts.value else None,
        shape_function_gradients=gradients if opts.gradient else None,
        shape_function_hessians=hessians,
    )


__all__ = ["TensorProductBasis", "evaluate_column", "get_column_element_indices"]
