"""Tolerances for detecting degenerate Jacobians of geometry maps."""

from functools import cache
from typing import Any, Literal, NamedTuple, cast

import numpy as np
from numpy import typing as npt

TolerancePresetName = Literal["default", "strict", "conservative"]


@cache
def _ensure_float_dtype_by_name(name: str) -> np.dtype[np.floating[Any]]:
    """Cached validator returning a supported floating dtype from its name.

    Args:
        name (str): Canonical NumPy dtype name (e.g., "float64").

    Returns:
        np.dtype[np.floating[Any]]: Validated floating-point dtype.

    Raises:
        ValueError: If dtype is not float32 or float64.
    """
    dtype_obj = np.dtype(name)
    if dtype_obj.type not in (np.float32, np.float64):
        raise ValueError(f"Unsupported dtype: {name}")
    return cast(np.dtype[np.floating[Any]], dtype_obj)


def _ensure_float_dtype(dtype: npt.DTypeLike) -> np.dtype[np.floating[Any]]:
    """Normalize and validate a dtype-like into a floating dtype."""
    return _ensure_float_dtype_by_name(np.dtype(dtype).name)


class _TolerancePreset(NamedTuple):
    """Relative determinant tolerances per floating-point type."""

    float32: float
    float64: float


# Relative to the squared magnitude of the largest Jacobian entry.
_TOLERANCE_PRESETS: dict[str, _TolerancePreset] = {
    "default": _TolerancePreset(1e-6, 1e-12),
    "strict": _TolerancePreset(1e-7, 1e-15),
    "conservative": _TolerancePreset(1e-5, 1e-10),
}


def get_jacobian_tolerance(
    dtype: npt.DTypeLike, preset: TolerancePresetName = "default"
) -> float:
    """Get the relative tolerance under which a Jacobian is considered singular.

    A 2x2 Jacobian ``J`` is singular when
    ``|det(J)| <= tol * max(|J_ij|)**2``.

    Args:
        dtype (npt.DTypeLike): NumPy floating-point data type (float32 or float64).
        preset (TolerancePresetName): One of "default", "strict" or "conservative".
            Defaults to "default".

    Returns:
        float: Relative tolerance for the given dtype.

    Raises:
        ValueError: If dtype is not a supported floating-point type or the preset
            is unknown.

    Example:
        >>> get_jacobian_tolerance(np.float32)
        1e-06
        >>> get_jacobian_tolerance("float64", "strict")
        1e-15
    """
    dtype_obj = _ensure_float_dtype(dtype)
    if preset not in _TOLERANCE_PRESETS:
        raise ValueError(f"Unknown tolerance preset: {preset!r}")

    values = _TOLERANCE_PRESETS[preset]
    return values.float32 if dtype_obj.type == np.float32 else values.float64


def get_machine_epsilon(dtype: npt.DTypeLike) -> float:
    """Get machine epsilon for a given floating-point dtype.

    Args:
        dtype (npt.DTypeLike): NumPy floating-point data type.

    Returns:
        float: Machine epsilon for the given dtype.

    Raises:
        ValueError: If dtype is not a supported floating-point type.
    """
    return float(np.finfo(_ensure_float_dtype(dtype)).eps)
