"""
Core infrastructure for tidylm.

Shared abstractions and utilities used by the regression module.

Key components:
    dataset: Dataset with tagged numeric / categorical columns
    protocols: Backend protocol
    result: Generic Result[P] envelope
    exceptions: Exception hierarchy
    validation: Input validators
    compute: Timing, tolerances, linear algebra kernels
"""

from tidylm.core.dataset import (
    Dataset,
    NumericColumn,
    CategoricalColumn,
    numeric,
    categorical,
)
from tidylm.core.protocols import Backend
from tidylm.core.result import Result
from tidylm.core.exceptions import (
    TidyLMError,
    ValidationError,
    DimensionError,
    DimensionMismatchError,
    UnknownLevelError,
    NumericalError,
    SingularMatrixError,
    RankDeficiencyError,
)

__all__ = [
    # Data
    "Dataset",
    "NumericColumn",
    "CategoricalColumn",
    "numeric",
    "categorical",
    # Protocols
    "Backend",
    # Result
    "Result",
    # Exceptions
    "TidyLMError",
    "ValidationError",
    "DimensionError",
    "DimensionMismatchError",
    "UnknownLevelError",
    "NumericalError",
    "SingularMatrixError",
    "RankDeficiencyError",
]
