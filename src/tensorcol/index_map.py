"""Flattening of tensor-product node and function indices."""

from __future__ import annotations

import functools
from dataclasses import dataclass
from typing import Literal

import numpy as np
import numpy.typing as npt

from .errors import ShapeContractError


@dataclass(frozen=True)
class TensorIndexMap:
    """Map between 2D (direction 1, direction 2) index pairs and flat indices.

    The same map is used for quadrature nodes, ``(node_u, node_v)``, and local
    basis functions, ``(i, j)``, so that values, gradients, Hessians and
    connectivity of a column evaluation are always flattened consistently.

    Attributes:
        num_nodes (tuple[int, int]): Number of quadrature nodes per direction.
        num_functions (tuple[int, int]): Maximum number of nonzero univariate
            functions per element in each direction.
        order (Literal["C", "F"]): "F" if the first direction varies fastest,
            "C" if the second one does. Defaults to "F".
    """

    num_nodes: tuple[int, int]
    num_functions: tuple[int, int]
    order: Literal["C", "F"] = "F"

    def __post_init__(self) -> None:
        if self.order not in ("C", "F"):
            raise ShapeContractError(f"order must be 'C' or 'F', got {self.order!r}")
        if len(self.num_nodes) != 2 or len(self.num_functions) != 2:  # noqa: PLR2004
            raise ShapeContractError("num_nodes and num_functions must have two entries")
        if any(n < 1 for n in self.num_nodes):
            raise ShapeContractError("There must be at least one node per direction")
        if any(n < 1 for n in self.num_functions):
            raise ShapeContractError("There must be at least one function per direction")

    @property
    def total_nodes(self) -> int:
        """Number of flattened quadrature nodes."""
        return self.num_nodes[0] * self.num_nodes[1]

    @property
    def total_functions(self) -> int:
        """Maximum number of flattened local functions."""
        return self.num_functions[0] * self.num_functions[1]

    def node_index(self, node_u: npt.ArrayLike, node_v: npt.ArrayLike) -> npt.NDArray[np.intp]:
        """Get the flat node index of ``(node_u, node_v)``."""
        return np.ravel_multi_index((node_u, node_v), self.num_nodes, order=self.order)

    def node_pair(
        self, index: npt.ArrayLike
    ) -> tuple[npt.NDArray[np.intp], npt.NDArray[np.intp]]:
        """Get the ``(node_u, node_v)`` pair of a flat node index."""
        node_u, node_v = np.unravel_index(index, self.num_nodes, order=self.order)
        return node_u, node_v

    def function_index(self, i: npt.ArrayLike, j: npt.ArrayLike) -> npt.NDArray[np.intp]:
        """Get the flat (unpacked) function index of ``(i, j)``."""
        return np.ravel_multi_index((i, j), self.num_functions, order=self.order)

    def function_pair(
        self, index: npt.ArrayLike
    ) -> tuple[npt.NDArray[np.intp], npt.NDArray[np.intp]]:
        """Get the ``(i, j)`` pair of a flat (unpacked) function index."""
        i, j = np.unravel_index(index, self.num_functions, order=self.order)
        return i, j

    @functools.cached_property
    def _all_function_pairs(self) -> tuple[npt.NDArray[np.intp], npt.NDArray[np.intp]]:
        return self.function_pair(np.arange(self.total_functions))

    def function_pairs(self) -> tuple[npt.NDArray[np.intp], npt.NDArray[np.intp]]:
        """Get the ``(i, j)`` pairs of all flat function indices, in flat order.

        Returns:
            tuple[npt.NDArray[np.intp], npt.NDArray[np.intp]]: Two arrays of length
            ``total_functions``.
        """
        i, j = self._all_function_pairs
        return i.copy(), j.copy()

    def packed_function_index(
        self, i: npt.ArrayLike, j: npt.ArrayLike, count_u: int, count_v: int
    ) -> npt.NDArray[np.intp]:
        """Get the slot of an active function pair once an element is packed.

        In an element with ``count_u * count_v`` active functions, the active
        pairs ``(i < count_u, j < count_v)`` occupy the first slots, flattened
        with this map's order over the reduced shape ``(count_u, count_v)``.

        Args:
            i (npt.ArrayLike): Local function index along direction 1.
            j (npt.ArrayLike): Local function index along direction 2.
            count_u (int): Active functions along direction 1.
            count_v (int): Active functions along direction 2.

        Returns:
            npt.NDArray[np.intp]: Packed slot(s).

        Raises:
            ValueError: If the pair is not active.
        """
        return np.ravel_multi_index((i, j), (count_u, count_v), order=self.order)

    def packing_permutation(
        self, count_u: int, counts_v: npt.NDArray[np.int_]
    ) -> npt.NDArray[np.intp]:
        """Get, per element, the unpacked index stored in each packed slot.

        Active pairs come first (in the order given by
        :meth:`packed_function_index`), followed by inactive pairs in flat order.
        The permutation is the identity for elements where all functions are
        active.

        Args:
            count_u (int): Active functions along direction 1.
            counts_v (npt.NDArray[np.int_]): Active functions along direction 2,
                one entry per element.

        Returns:
            npt.NDArray[np.intp]: Array of shape ``(total_functions, num_elements)``.
        """
        i, j = self._all_function_pairs
        perm = np.empty((self.total_functions, counts_v.size), dtype=np.intp)
        for elem, count_v in enumerate(counts_v):
            active = (i < count_u) & (j < count_v)
            # Restricting the flat order to the active block reproduces the
            # packed order over (count_u, count_v).
            perm[:, elem] = np.concatenate((np.flatnonzero(active), np.flatnonzero(~active)))
        return perm

    def _outer_subscripts(self) -> str:
        """Einsum subscripts combining ``pi`` (direction 1) with ``qje`` (direction 2).

        The output axes are laid out so that a C-order reshape to
        ``(total_nodes, total_functions, num_elements)`` follows this map.
        """
        return "pi,qje->qpjie" if self.order == "F" else "pi,qje->pqije"


__all__ = ["TensorIndexMap"]
