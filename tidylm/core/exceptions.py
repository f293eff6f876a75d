"""
Exception hierarchy for tidylm.

All exceptions inherit from TidyLMError so callers can catch any
library-specific error. Domain-specific exceptions inherit from the
appropriate base class here.

Design principles:
    - Exceptions carry diagnostic information as attributes
    - Error messages are actionable with actual vs expected values
    - Never catch and re-raise with less information
"""

from __future__ import annotations

from typing import Sequence


class TidyLMError(Exception):
    """Base exception for all tidylm errors."""
    pass


class ValidationError(TidyLMError):
    """
    Input validation failed.

    Raised when user-provided inputs fail validation checks.
    """
    pass


class DimensionError(ValidationError):
    """
    Array dimensions are incorrect.

    Raised when an array does not have the expected number of dimensions.
    """
    pass


class DimensionMismatchError(DimensionError):
    """
    Row-aligned inputs disagree on length.

    Raised when a response vector and a design matrix (or the columns of a
    dataset) do not have the same number of rows.

    Attributes:
        lengths: name -> observed length for every input that was compared
    """

    def __init__(self, message: str, lengths: dict[str, int] | None = None):
        super().__init__(message)
        self.lengths = dict(lengths) if lengths else {}


class UnknownLevelError(ValidationError):
    """
    A categorical label is not in the declared level set.

    Attributes:
        column: Name of the categorical column, if known
        labels: The offending labels (deduplicated, in order of appearance)
        levels: The declared level set
    """

    def __init__(
        self,
        message: str,
        column: str | None = None,
        labels: Sequence[str] = (),
        levels: Sequence[str] = (),
    ):
        super().__init__(message)
        self.column = column
        self.labels = tuple(labels)
        self.levels = tuple(levels)


class NumericalError(TidyLMError):
    """
    Numerical computation failed.

    Base class for errors arising from numerical issues during computation.
    """
    pass


class SingularMatrixError(NumericalError):
    """
    Matrix is singular or nearly singular.

    Attributes:
        matrix_name: Name/description of the problematic matrix
        condition_number: Estimated condition number, if available
        rank: Numerical rank, if computed
        expected_rank: Expected rank
    """

    def __init__(
        self,
        message: str,
        matrix_name: str | None = None,
        condition_number: float | None = None,
        rank: int | None = None,
        expected_rank: int | None = None
    ):
        super().__init__(message)
        self.matrix_name = matrix_name
        self.condition_number = condition_number
        self.rank = rank
        self.expected_rank = expected_rank


class RankDeficiencyError(SingularMatrixError):
    """
    Design matrix does not have full column rank.

    Raised by the least-squares fitters when explanatory columns are
    perfectly collinear, or when there are more columns than rows.

    Attributes:
        aliased: Names of the columns that the pivoted factorization
            found to be linear combinations of the others
    """

    def __init__(
        self,
        message: str,
        matrix_name: str | None = None,
        rank: int | None = None,
        expected_rank: int | None = None,
        aliased: Sequence[str] = (),
    ):
        super().__init__(
            message,
            matrix_name=matrix_name,
            rank=rank,
            expected_rank=expected_rank,
        )
        self.aliased = tuple(aliased)
