"""Pytest configuration and shared builders for column evaluation tests.

Makes `src` importable without installing the package, and provides
factories for univariate B-spline data (tabulated with SciPy) and for the
derivatives of analytic geometry maps at the nodes of a column.
"""

from __future__ import annotations

import sys
from collections.abc import Callable
from pathlib import Path
from typing import Any, NamedTuple

import numpy as np
import numpy.typing as npt
import pytest


def _ensure_src_on_sys_path() -> None:
    """Prepend the repository `src` directory to `sys.path` if missing."""
    repo_root: Path = Path(__file__).resolve().parents[1]
    src_path: Path = repo_root / "src"
    if str(src_path) not in sys.path:
        sys.path.insert(0, str(src_path))


_ensure_src_on_sys_path()

from scipy.interpolate import BSpline  # noqa: E402

from tensorcol.geometry import GeometryMapData  # noqa: E402
from tensorcol.univariate import UnivariateBasisData  # noqa: E402

FloatArray = npt.NDArray[np.floating[Any]]


class BsplineData(NamedTuple):
    """Univariate B-spline data together with the parametric nodes it was tabulated at."""

    data: UnivariateBasisData
    nodes: FloatArray  # (nqn, nel)
    greville: FloatArray  # (ndof,)


def make_bspline_data(
    knots: list[float], degree: int, n_quad: int, dtype: npt.DTypeLike = np.float64
) -> BsplineData:
    """Tabulate the nonzero B-splines of an open knot vector at Gauss nodes of each element."""
    knots_arr = np.asarray(knots, dtype=np.float64)
    breaks = np.unique(knots_arr)
    num_elements = breaks.size - 1
    ndof = knots_arr.size - degree - 1
    order = degree + 1

    ref_nodes, _ = np.polynomial.legendre.leggauss(n_quad)
    ref_nodes = 0.5 * (ref_nodes + 1.0)

    nodes = np.empty((n_quad, num_elements))
    shp = np.zeros((n_quad, order, num_elements))
    shg = np.zeros_like(shp)
    shh = np.zeros_like(shp)
    conn = np.empty((order, num_elements), dtype=np.int_)

    for elem in range(num_elements):
        a, b = breaks[elem], breaks[elem + 1]
        pts = a + (b - a) * ref_nodes
        nodes[:, elem] = pts
        span = int(np.searchsorted(knots_arr, a, side="right")) - 1
        for k in range(order):
            idx = span - degree + k
            coeffs = np.zeros(ndof)
            coeffs[idx] = 1.0
            spline = BSpline(knots_arr, coeffs, degree)
            shp[:, k, elem] = spline(pts)
            if degree >= 1:
                shg[:, k, elem] = spline(pts, nu=1)
            if degree >= 2:  # noqa: PLR2004
                shh[:, k, elem] = spline(pts, nu=2)
            conn[k, elem] = idx

    greville = np.array([knots_arr[i + 1 : i + degree + 1].mean() for i in range(ndof)])

    data = UnivariateBasisData(
        np.full(num_elements, order),
        shp.astype(dtype),
        shg.astype(dtype),
        shh.astype(dtype),
        connectivity=conn,
        ndof=ndof,
    )
    return BsplineData(data, nodes, greville)


def make_column_points(
    nodes_u: FloatArray, nodes_v: FloatArray, column_index: int, order: str = "F"
) -> tuple[FloatArray, FloatArray]:
    """Parametric coordinates ``(U, V)`` of the flattened column nodes, shape ``(nqn, nel)``."""
    u_col = nodes_u[:, column_index]
    num_elements = nodes_v.shape[1]
    indexing = "xy" if order == "F" else "ij"
    U = np.empty((u_col.size * nodes_v.shape[0], num_elements))
    V = np.empty_like(U)
    for elem in range(num_elements):
        uu, vv = np.meshgrid(u_col, nodes_v[:, elem], indexing=indexing)
        U[:, elem] = uu.ravel()
        V[:, elem] = vv.ravel()
    return U, V


GeometryMap = Callable[[FloatArray, FloatArray], tuple[FloatArray, FloatArray, FloatArray]]


def identity_map(U: FloatArray, V: FloatArray) -> tuple[FloatArray, FloatArray, FloatArray]:
    """Identity map: returns ``(X, jacobians, second_derivatives)``."""
    jac = np.zeros((2, 2, *U.shape))
    jac[0, 0] = jac[1, 1] = 1.0
    return np.stack((U, V)), jac, np.zeros((2, 2, 2, *U.shape))


AFFINE_MATRIX = np.array([[2.0, 0.5], [0.3, 1.5]])


def affine_map(U: FloatArray, V: FloatArray) -> tuple[FloatArray, FloatArray, FloatArray]:
    """Affine map ``x = M (u, v) + (1, -2)``."""
    M = AFFINE_MATRIX
    X = np.stack((M[0, 0] * U + M[0, 1] * V + 1.0, M[1, 0] * U + M[1, 1] * V - 2.0))
    jac = np.broadcast_to(M[:, :, np.newaxis, np.newaxis], (2, 2, *U.shape)).copy()
    return X, jac, np.zeros((2, 2, 2, *U.shape))


def polar_map(U: FloatArray, V: FloatArray) -> tuple[FloatArray, FloatArray, FloatArray]:
    """Annular sector ``x = (1 + u) cos(v)``, ``y = (1 + u) sin(v)``."""
    r = 1.0 + U
    c, s = np.cos(V), np.sin(V)
    X = np.stack((r * c, r * s))

    jac = np.empty((2, 2, *U.shape))
    jac[0, 0], jac[0, 1] = c, -r * s
    jac[1, 0], jac[1, 1] = s, r * c

    der2 = np.zeros((2, 2, 2, *U.shape))
    der2[0, 0, 1] = der2[0, 1, 0] = -s
    der2[0, 1, 1] = -r * c
    der2[1, 0, 1] = der2[1, 1, 0] = c
    der2[1, 1, 1] = -r * s
    return X, jac, der2


def quadratic_map(U: FloatArray, V: FloatArray) -> tuple[FloatArray, FloatArray, FloatArray]:
    """Mildly distorted map ``x = u + 0.2 uv + 0.1 v^2``, ``y = v + 0.15 u^2 - 0.1 uv``."""
    X = np.stack((U + 0.2 * U * V + 0.1 * V**2, V + 0.15 * U**2 - 0.1 * U * V))

    jac = np.empty((2, 2, *U.shape))
    jac[0, 0], jac[0, 1] = 1.0 + 0.2 * V, 0.2 * U + 0.2 * V
    jac[1, 0], jac[1, 1] = 0.3 * U - 0.1 * V, 1.0 - 0.1 * U

    der2 = np.zeros((2, 2, 2, *U.shape))
    der2[0, 0, 1] = der2[0, 1, 0] = 0.2
    der2[0, 1, 1] = 0.2
    der2[1, 0, 0] = 0.3
    der2[1, 0, 1] = der2[1, 1, 0] = -0.1
    return X, jac, der2


def make_geometry(
    geo_map: GeometryMap, U: FloatArray, V: FloatArray, with_second_derivatives: bool = True
) -> tuple[GeometryMapData, FloatArray]:
    """Tabulate a geometry map at column nodes; returns the data and the physical points."""
    X, jac, der2 = geo_map(U, V)
    return GeometryMapData(jac, der2 if with_second_derivatives else None), X


@pytest.fixture
def bspline_data_factory() -> Callable[..., BsplineData]:
    """Factory building univariate B-spline data."""
    return make_bspline_data


@pytest.fixture
def column_points_factory() -> Callable[..., tuple[FloatArray, FloatArray]]:
    """Factory building the parametric nodes of a column."""
    return make_column_points


@pytest.fixture
def geometry_factory() -> Callable[..., tuple[GeometryMapData, FloatArray]]:
    """Factory tabulating a geometry map at column nodes."""
    return make_geometry


@pytest.fixture
def geometry_maps() -> dict[str, GeometryMap]:
    """Analytic geometry maps by name."""
    return {
        "identity": identity_map,
        "affine": affine_map,
        "polar": polar_map,
        "quadratic": quadratic_map,
    }


@pytest.fixture(params=["F", "C"])
def order(request: pytest.FixtureRequest) -> str:
    """Flattening order of nodes and functions."""
    return str(request.param)
