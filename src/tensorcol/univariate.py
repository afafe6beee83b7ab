"""Univariate basis data along one parametric direction."""

from __future__ import annotations

from typing import Any

import numpy as np
import numpy.typing as npt

from ._array_utils import _normalize_float_array, _validate_array_shape
from .errors import ShapeContractError


class UnivariateBasisData:
    """Nonzero univariate basis functions tabulated at quadrature nodes.

    Basis arrays are indexed by (quadrature node, local function, element).
    Local function slots beyond ``nsh[element]`` are unused; their content is
    ignored by the tensor-product assembly.

    Attributes:
        _nsh (npt.NDArray[np.int_]): Number of nonzero functions per element.
        _shape_functions (npt.NDArray[np.float32 | np.float64]): Basis values.
        _shape_function_gradients (npt.NDArray[np.float32 | np.float64]): First
            derivatives.
        _shape_function_hessians (npt.NDArray[np.float32 | np.float64] | None):
            Second derivatives, if available.
        _connectivity (npt.NDArray[np.int_] | None): Global indices of the local
            functions, if available.
        _ndof (int | None): Total number of univariate functions, if available.
    """

    def __init__(  # noqa: PLR0913
        self,
        nsh: npt.ArrayLike,
        shape_functions: npt.ArrayLike,
        shape_function_gradients: npt.ArrayLike,
        shape_function_hessians: npt.ArrayLike | None = None,
        connectivity: npt.ArrayLike | None = None,
        ndof: int | None = None,
    ) -> None:
        """Initialize and validate univariate basis data.

        Args:
            nsh (npt.ArrayLike): Number of nonzero functions in each element,
                shape ``(nel,)``.
            shape_functions (npt.ArrayLike): Basis values, shape
                ``(nqn, nsh_max, nel)``. Non floating-point input is converted
                to float64.
            shape_function_gradients (npt.ArrayLike): Basis first derivatives,
                same shape as ``shape_functions``.
            shape_function_hessians (npt.ArrayLike | None): Basis second
                derivatives, same shape as ``shape_functions``. Defaults to None.
            connectivity (npt.ArrayLike | None): 0-based global index of each
                local function, shape ``(nsh_max, nel)``. Defaults to None.
            ndof (int | None): Total number of functions. Required if
                ``connectivity`` is given. Defaults to None.

        Raises:
            ShapeContractError: If any array has an unexpected shape or if the
                counts, connectivity or ``ndof`` are inconsistent.
        """
        self._shape_functions = _normalize_float_array(shape_functions, "shape_functions")
        if self._shape_functions.ndim != 3:  # noqa: PLR2004
            raise ShapeContractError(
                "shape_functions must be a 3D array (nodes, functions, elements), "
                f"got shape {self._shape_functions.shape}"
            )

        dtype = self._shape_functions.dtype
        shape = self._shape_functions.shape
        self._shape_function_gradients = _validate_array_shape(
            _normalize_float_array(shape_function_gradients, "shape_function_gradients", dtype),
            shape,
            "shape_function_gradients",
        )
        self._shape_function_hessians = (
            None
            if shape_function_hessians is None
            else _validate_array_shape(
                _normalize_float_array(shape_function_hessians, "shape_function_hessians", dtype),
                shape,
                "shape_function_hessians",
            )
        )

        self._nsh = self._validate_nsh(nsh)
        self._connectivity, self._ndof = self._validate_connectivity(connectivity, ndof)

    def _validate_nsh(self, nsh: npt.ArrayLike) -> npt.NDArray[np.int_]:
        """Validate the per-element function counts."""
        counts = np.asarray(nsh)
        if counts.ndim == 0:
            counts = np.full(self.num_elements, counts)
        if counts.ndim != 1 or counts.size != self.num_elements:
            raise ShapeContractError(
                f"nsh must have one entry per element ({self.num_elements}), "
                f"got shape {counts.shape}"
            )
        if not np.issubdtype(counts.dtype, np.integer):
            raise ShapeContractError("nsh must contain integers")
        if np.any(counts < 0) or np.any(counts > self.nsh_max):
            raise ShapeContractError(f"nsh entries must lie in [0, {self.nsh_max}]")
        return counts.astype(np.int_)

    def _validate_connectivity(
        self, connectivity: npt.ArrayLike | None, ndof: int | None
    ) -> tuple[npt.NDArray[np.int_] | None, int | None]:
        """Validate the connectivity and the number of functions."""
        if ndof is not None and int(ndof) < 1:
            raise ShapeContractError("ndof must be positive")
        if connectivity is None:
            return None, None if ndof is None else int(ndof)

        if ndof is None:
            raise ShapeContractError("ndof is required when connectivity is given")

        conn = np.asarray(connectivity)
        if not np.issubdtype(conn.dtype, np.integer):
            raise ShapeContractError("connectivity must contain integers")
        expected_shape = (self.nsh_max, self.num_elements)
        _validate_array_shape(conn, expected_shape, "connectivity")

        active = np.arange(self.nsh_max)[:, np.newaxis] < self._nsh[np.newaxis, :]
        active_conn = conn[active]
        if active_conn.size > 0 and (active_conn.min() < 0 or active_conn.max() >= ndof):
            raise ShapeContractError(f"Active connectivity entries must lie in [0, {ndof})")
        return conn.astype(np.int_), int(ndof)

    @property
    def nsh(self) -> npt.NDArray[np.int_]:
        """Number of nonzero functions per element."""
        return self._nsh

    @property
    def nsh_max(self) -> int:
        """Maximum number of nonzero functions per element."""
        return int(self._shape_functions.shape[1])

    @property
    def num_nodes(self) -> int:
        """Number of quadrature nodes per element."""
        return int(self._shape_functions.shape[0])

    @property
    def num_elements(self) -> int:
        """Number of elements along this direction."""
        return int(self._shape_functions.shape[2])

    @property
    def dtype(self) -> np.dtype[Any]:
        """Floating-point type of the basis arrays."""
        return self._shape_functions.dtype

    @property
    def shape_functions(self) -> npt.NDArray[np.float32 | np.float64]:
        """Basis values, shape ``(nqn, nsh_max, nel)``."""
        return self._shape_functions

    @property
    def shape_function_gradients(self) -> npt.NDArray[np.float32 | np.float64]:
        """Basis first derivatives, shape ``(nqn, nsh_max, nel)``."""
        return self._shape_function_gradients

    @property
    def shape_function_hessians(self) -> npt.NDArray[np.float32 | np.float64] | None:
        """Basis second derivatives, shape ``(nqn, nsh_max, nel)``, or None."""
        return self._shape_function_hessians

    @property
    def has_hessians(self) -> bool:
        """Whether second derivatives are available."""
        return self._shape_function_hessians is not None

    @property
    def connectivity(self) -> npt.NDArray[np.int_] | None:
        """Global function indices, shape ``(nsh_max, nel)``, or None."""
        return self._connectivity

    @property
    def ndof(self) -> int | None:
        """Total number of univariate functions, or None."""
        return self._ndof


__all__ = ["UnivariateBasisData"]
