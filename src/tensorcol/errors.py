"""Exceptions and warnings raised while evaluating a mesh column."""

from __future__ import annotations


class ColumnEvaluationError(ValueError):
    """Base class for all errors aborting a column evaluation."""


class OptionsError(ColumnEvaluationError):
    """Malformed option list, unknown option key or invalid option value."""


class ShapeContractError(ColumnEvaluationError):
    """Input arrays with inconsistent shapes, dtypes or index ranges."""


class SingularJacobianError(ColumnEvaluationError):
    """Singular (or non-finite) Jacobian of the geometry map.

    Attributes:
        node (int): Flat quadrature node index of the first offending Jacobian.
        element (int): Local element index (within the column) of the first
            offending Jacobian.
    """

    def __init__(self, node: int, element: int, determinant: float) -> None:
        self.node = node
        self.element = element
        self.determinant = determinant
        super().__init__(
            f"Jacobian of the geometry map is singular at node {node} of element {element}"
            f" (determinant {determinant!r})"
        )


class HessianUnavailableWarning(UserWarning):
    """Hessians were requested but second-derivative data is missing."""
