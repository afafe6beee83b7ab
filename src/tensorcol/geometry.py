"""Geometry map derivatives at quadrature nodes."""

from __future__ import annotations

from typing import Any

import numpy as np
import numpy.typing as npt

from ._array_utils import _normalize_float_array, _validate_array_shape
from .errors import ShapeContractError


class GeometryMapData:
    """First and second derivatives of a 2D geometry map ``(u, v) -> (x, y)``.

    Derivatives are tabulated at the quadrature nodes of a set of elements.
    The node axis must be flattened in the same way as the tensor-product
    basis being evaluated (see :class:`tensorcol.index_map.TensorIndexMap`).
    """

    def __init__(
        self,
        jacobians: npt.ArrayLike,
        second_derivatives: npt.ArrayLike | None = None,
    ) -> None:
        """Initialize and validate the geometry map data.

        Args:
            jacobians (npt.ArrayLike): Array of shape ``(2, 2, nqn, nel)`` with
                ``jacobians[i, j, q, e] = d x_i / d u_j``.
            second_derivatives (npt.ArrayLike | None): Array of shape
                ``(2, 2, 2, nqn, nel)`` with
                ``second_derivatives[i, j, k, q, e] = d^2 x_i / d u_j d u_k``.
                Defaults to None.

        Raises:
            ShapeContractError: If the arrays have unexpected shapes.
        """
        self._jacobians = _normalize_float_array(jacobians, "jacobians")
        if self._jacobians.ndim != 4 or self._jacobians.shape[:2] != (2, 2):  # noqa: PLR2004
            raise ShapeContractError(
                f"jacobians must have shape (2, 2, nqn, nel), got {self._jacobians.shape}"
            )

        self._second_derivatives: npt.NDArray[np.float32 | np.float64] | None = None
        if second_derivatives is not None:
            self._second_derivatives = _validate_array_shape(
                _normalize_float_array(
                    second_derivatives, "second_derivatives", self._jacobians.dtype
                ),
                (2, 2, 2, self.num_nodes, self.num_elements),
                "second_derivatives",
            )

    @property
    def jacobians(self) -> npt.NDArray[np.float32 | np.float64]:
        """Jacobians, shape ``(2, 2, nqn, nel)``."""
        return self._jacobians

    @property
    def second_derivatives(self) -> npt.NDArray[np.float32 | np.float64] | None:
        """Second derivatives, shape ``(2, 2, 2, nqn, nel)``, or None."""
        return self._second_derivatives

    @property
    def has_second_derivatives(self) -> bool:
        """Whether second derivatives of the map are available."""
        return self._second_derivatives is not None

    @property
    def num_nodes(self) -> int:
        """Number of quadrature nodes per element."""
        return int(self._jacobians.shape[2])

    @property
    def num_elements(self) -> int:
        """Number of elements."""
        return int(self._jacobians.shape[3])

    @property
    def dtype(self) -> np.dtype[Any]:
        """Floating-point type of the data."""
        return self._jacobians.dtype

    def restrict(self, element_indices: npt.ArrayLike) -> GeometryMapData:
        """Get the data of a subset of elements.

        Args:
            element_indices (npt.ArrayLike): Indices of the elements to keep,
                in the order they should appear.

        Returns:
            GeometryMapData: New data object restricted to the given elements.

        Raises:
            ShapeContractError: If an index is out of range.

        Example:
            >>> column_geometry = mesh_geometry.restrict(
            ...     get_column_element_indices(2, (4, 3))
            ... )
        """
        ids = np.asarray(element_indices)
        if ids.ndim != 1 or not np.issubdtype(ids.dtype, np.integer):
            raise ShapeContractError("element_indices must be a 1D integer array")
        if ids.size > 0 and (ids.min() < 0 or ids.max() >= self.num_elements):
            raise ShapeContractError(
                f"element_indices must lie in [0, {self.num_elements}), got {ids}"
            )

        second = None if self._second_derivatives is None else self._second_derivatives[..., ids]
        return GeometryMapData(self._jacobians[..., ids], second)


__all__ = ["GeometryMapData"]
