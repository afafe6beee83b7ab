"""Utility functions for validating input arrays."""

from __future__ import annotations

from typing import Any

import numpy as np
from numpy import typing as npt

from .errors import ShapeContractError


def _normalize_float_array(
    arr: npt.ArrayLike, name: str, dtype: npt.DTypeLike | None = None
) -> npt.NDArray[np.float32 | np.float64]:
    """Normalize an input to a floating-point numpy array.

    Without an explicit ``dtype``, float32 and float64 inputs keep their type
    and any other numeric type is converted to float64.

    Args:
        arr (npt.ArrayLike): Input data.
        name (str): Name used in error messages.
        dtype (npt.DTypeLike | None): Target dtype. Defaults to None.

    Returns:
        npt.NDArray[np.float32 | np.float64]: The normalized array.

    Raises:
        ShapeContractError: If the input is not numeric.
    """
    if not isinstance(arr, np.ndarray):
        arr = np.asarray(arr)

    if not (np.issubdtype(arr.dtype, np.number) or arr.dtype == np.bool_):
        raise ShapeContractError(f"{name} must be a numeric array, got dtype {arr.dtype}")
    if np.issubdtype(arr.dtype, np.complexfloating):
        raise ShapeContractError(f"{name} must be real-valued")

    if dtype is not None:
        return arr.astype(dtype, copy=False)
    if arr.dtype not in (np.float32, np.float64):
        arr = arr.astype(np.float64)
    return arr


def _validate_array_shape(
    arr: npt.NDArray[Any], expected_shape: tuple[int, ...], name: str
) -> npt.NDArray[Any]:
    """Check that an array has the expected shape.

    Args:
        arr (npt.NDArray[Any]): The array to validate.
        expected_shape (tuple[int, ...]): The expected shape.
        name (str): Name used in error messages.

    Returns:
        npt.NDArray[Any]: The same array.

    Raises:
        ShapeContractError: If the shape does not match.
    """
    if arr.shape != expected_shape:
        raise ShapeContractError(
            f"{name} has shape {arr.shape}, but expected shape {expected_shape}"
        )
    return arr
