"""Public API surface for TensorCol.

Defines package metadata and exported interfaces.
"""

from typing import Final

# Private API imports (accessible but not in __all__)
# Users can access private functions via: tensorcol._jacobian_impl._function_name, etc.
from . import (
    _hessian_impl,  # noqa: F401
    _jacobian_impl,  # noqa: F401
    _tensor_product_impl,  # noqa: F401
)

# Public API imports
from .column import TensorProductBasis, evaluate_column, get_column_element_indices
from .errors import (
    ColumnEvaluationError,
    HessianUnavailableWarning,
    OptionsError,
    ShapeContractError,
    SingularJacobianError,
)
from .geometry import GeometryMapData
from .index_map import TensorIndexMap
from .options import EvaluationOptions, resolve_evaluation_options
from .tolerance import get_jacobian_tolerance, get_machine_epsilon
from .univariate import UnivariateBasisData

# Package metadata
__version__: Final[str] = "0.1.0"
__license__: Final[str] = "MIT"
__author__: Final[str] = "Pablo Antolin <pablo.antolin@epfl.ch>"

# Public interface: only functions/classes that don't start with _
__all__ = [
    "ColumnEvaluationError",
    "EvaluationOptions",
    "GeometryMapData",
    "HessianUnavailableWarning",
    "OptionsError",
    "ShapeContractError",
    "SingularJacobianError",
    "TensorIndexMap",
    "TensorProductBasis",
    "UnivariateBasisData",
    "__author__",
    "__license__",
    "__version__",
    "evaluate_column",
    "get_column_element_indices",
    "get_jacobian_tolerance",
    "get_machine_epsilon",
    "resolve_evaluation_options",
]
