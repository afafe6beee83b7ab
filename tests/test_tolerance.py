"""Tests for tolerance utilities."""

from __future__ import annotations

from typing import Any

import numpy as np
import pytest

from tensorcol.tolerance import get_jacobian_tolerance, get_machine_epsilon

DEFAULT_TOL_F32: float = 1e-6
DEFAULT_TOL_F64: float = 1e-12


class TestTolerance:
    """Test suite for tolerance utilities."""

    @pytest.mark.parametrize(
        ("dtype", "expected"),
        [
            (np.float32, DEFAULT_TOL_F32),
            ("float32", DEFAULT_TOL_F32),
            (np.float64, DEFAULT_TOL_F64),
            ("float64", DEFAULT_TOL_F64),
            (np.dtype(np.float64), DEFAULT_TOL_F64),
        ],
    )
    def test_default_jacobian_tolerance(self, dtype: Any, expected: float) -> None:
        """Test get_jacobian_tolerance with various dtype specifications."""
        assert get_jacobian_tolerance(dtype) == expected

    @pytest.mark.parametrize(
        ("preset", "expected_f32", "expected_f64"),
        [
            ("default", 1e-6, 1e-12),
            ("strict", 1e-7, 1e-15),
            ("conservative", 1e-5, 1e-10),
        ],
    )
    def test_presets(self, preset: Any, expected_f32: float, expected_f64: float) -> None:
        """Test the named tolerance presets."""
        assert get_jacobian_tolerance(np.float32, preset) == expected_f32
        assert get_jacobian_tolerance(np.float64, preset) == expected_f64

    def test_unknown_preset_raises(self) -> None:
        with pytest.raises(ValueError, match="Unknown tolerance preset"):
            get_jacobian_tolerance(np.float64, "loose")  # type: ignore[arg-type]

    @pytest.mark.parametrize("dtype", [np.float32, "float64"])
    def test_get_machine_epsilon(self, dtype: Any) -> None:
        """Test get_machine_epsilon against np.finfo."""
        assert get_machine_epsilon(dtype) == np.finfo(dtype).eps

    @pytest.mark.parametrize("dtype", [np.int32, "int64", np.complex64, np.float16])
    def test_invalid_dtype_raises_error(self, dtype: Any) -> None:
        """Test that an unsupported dtype raises a ValueError."""
        with pytest.raises(ValueError, match="Unsupported dtype"):
            get_jacobian_tolerance(dtype)
        with pytest.raises(ValueError, match="Unsupported dtype"):
            get_machine_epsilon(dtype)
