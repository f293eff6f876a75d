"""Shared summary computations for the regression backends."""

from typing import Any

import numpy as np
from numpy.typing import NDArray

from tidylm.core.compute.tolerances import PERFECT_FIT_RTOL


def fit_statistics(
    y: NDArray[np.floating[Any]],
    residuals: NDArray[np.floating[Any]],
    has_intercept: bool,
) -> tuple[float, float]:
    """
    Residual and total sums of squares.

    TSS is centred about the mean when the model has an intercept and
    taken about zero otherwise, so R-squared compares against the
    corresponding null model.
    """
    rss = float(residuals @ residuals)
    if has_intercept:
        centred = y - np.mean(y)
        tss = float(centred @ centred)
    else:
        tss = float(y @ y)
    return rss, tss


def fit_warnings(
    y: NDArray[np.floating[Any]],
    residuals: NDArray[np.floating[Any]],
    df_residual: int,
) -> tuple[str, ...]:
    """Non-fatal conditions that make the summary statistics unreliable."""
    warnings_list = []
    if np.linalg.norm(residuals) <= PERFECT_FIT_RTOL * np.linalg.norm(y):
        warnings_list.append(
            "essentially perfect fit: standard errors and t-statistics are unreliable"
        )
    if df_residual == 0:
        warnings_list.append(
            "no residual degrees of freedom: standard errors are undefined"
        )
    return tuple(warnings_list)
