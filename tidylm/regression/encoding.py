"""
Categorical encoding for regression design matrices.

Treatment (dummy) coding: a factor with k levels becomes k-1 indicator
columns, one per non-reference level. The reference level is the first
level of the supplied level set; its rows are all zero.
"""

from dataclasses import dataclass
from typing import Any, Sequence

import numpy as np
from numpy.typing import ArrayLike, NDArray

from tidylm.core.validation import check_1d, check_levels, check_labels_in_levels


@dataclass(frozen=True)
class IndicatorBlock:
    """
    Treatment-coded indicator columns for one categorical column.

    Attributes:
        X: (n, k-1) float64 indicator matrix
        levels: the k-1 non-reference levels, one per column of X
        reference: the dropped reference level
    """
    X: NDArray[np.floating[Any]]
    levels: tuple[str, ...]
    reference: str

    @property
    def width(self) -> int:
        return self.X.shape[1]


def encode_treatment(
    labels: ArrayLike,
    levels: Sequence[Any],
    name: str = 'factor',
) -> IndicatorBlock:
    """
    Treatment (dummy) coding for a single categorical column.

    Args:
        labels: 1D sequence of labels; compared to levels as strings
        levels: Ordered level set, first level = reference
        name: Column name for error messages

    Returns:
        IndicatorBlock with one column per non-reference level

    Raises:
        ValidationError: If levels are empty or duplicated
        UnknownLevelError: If a label is not in the level set
    """
    level_set = check_levels(levels, name)
    raw = np.asarray(labels, dtype=object)
    check_1d(raw, name)
    factor_str = np.array([str(v) for v in raw], dtype=np.str_)
    check_labels_in_levels(factor_str, level_set, name)

    contrasts = level_set[1:]
    X = np.zeros((len(factor_str), len(contrasts)), dtype=np.float64)
    for j, level in enumerate(contrasts):
        X[:, j] = (factor_str == level).astype(np.float64)

    return IndicatorBlock(X=X, levels=contrasts, reference=level_set[0])


def interaction_columns(
    X_a: NDArray[np.floating[Any]],
    X_b: NDArray[np.floating[Any]],
    names_a: Sequence[str],
    names_b: Sequence[str],
) -> tuple[NDArray[np.floating[Any]], list[str]]:
    """
    Element-wise products of every column pair from X_a and X_b.

    Columns of X_a vary fastest, so for factors a (levels a2, a3) and
    b (level b2) the order is a2:b2, a3:b2.

    Returns:
        ((n, p_a * p_b) interaction columns, column names joined with ':')
    """
    n = X_a.shape[0]
    p_a = X_a.shape[1]
    p_b = X_b.shape[1]
    X_int = np.empty((n, p_a * p_b), dtype=np.float64)
    names: list[str] = []

    col = 0
    for j in range(p_b):
        for i in range(p_a):
            X_int[:, col] = X_a[:, i] * X_b[:, j]
            names.append(f"{names_a[i]}:{names_b[j]}")
            col += 1

    return X_int, names
