"""
Cholesky kernels for the normal equations.

Solves X'X b = X'y. Cheaper than QR for tall, well-conditioned problems,
but squares the condition number, so callers check conditioning first.
"""

from dataclasses import dataclass
from typing import Any

import numpy as np
from numpy.typing import NDArray
from scipy.linalg import cho_factor, cho_solve, LinAlgError

from tidylm.core.exceptions import RankDeficiencyError, SingularMatrixError
from tidylm.core.compute.tolerances import RANK_RTOL_FACTOR


@dataclass(frozen=True)
class ConditionInfo:
    """
    Singular-value diagnostics of a design matrix.

    Attributes:
        singular_values: Singular values in decreasing order
        rank: Numerical rank (same tolerance rule as pivoted QR)
        condition_number: sv_max / sv_min, inf when singular
    """
    singular_values: NDArray[np.floating[Any]]
    rank: int
    condition_number: float


def condition_info(X: NDArray[np.floating[Any]]) -> ConditionInfo:
    """Compute singular values, numerical rank and 2-norm condition number."""
    sv = np.linalg.svd(X, compute_uv=False)
    if len(sv) == 0 or sv[0] == 0:
        return ConditionInfo(singular_values=sv, rank=0, condition_number=float('inf'))

    tol = RANK_RTOL_FACTOR * max(X.shape) * np.finfo(X.dtype).eps * sv[0]
    rank = int(np.sum(sv > tol))
    # A wide matrix is rank deficient in its columns even with all sv > 0
    if rank < X.shape[1]:
        cond = float('inf')
    else:
        cond = float(sv[0] / sv[-1])
    return ConditionInfo(singular_values=sv, rank=rank, condition_number=cond)


def cholesky_solve_cpu(
    X: NDArray[np.floating[Any]],
    y: NDArray[np.floating[Any]],
) -> tuple[NDArray[np.floating[Any]], NDArray[np.floating[Any]]]:
    """
    Solve least squares via Cholesky on the normal equations.

    Args:
        X: Design matrix (n x p), assumed full column rank
        y: Response vector (n,)

    Returns:
        (coefficients, (X'X)^-1)

    Raises:
        SingularMatrixError: If X'X is not numerically positive definite
    """
    p = X.shape[1]
    XtX = X.T @ X
    Xty = X.T @ y

    try:
        factor = cho_factor(XtX, lower=True)
    except LinAlgError as e:
        raise SingularMatrixError(
            f"X'X is not positive definite: {e}",
            matrix_name="X'X",
            expected_rank=p,
        ) from e

    beta = cho_solve(factor, Xty)
    XtX_inv = cho_solve(factor, np.eye(p))
    return beta, XtX_inv


def check_full_column_rank(info: ConditionInfo, p: int, n: int) -> None:
    """
    Raise if singular values show the design is not full column rank.

    Raises:
        RankDeficiencyError: If rank < p
    """
    if info.rank < p:
        raise RankDeficiencyError(
            f"Design matrix is rank-deficient: rank={info.rank}, expected={p}. "
            f"This indicates perfect multicollinearity"
            + (f" or more columns than observations (n={n})." if p > n else "."),
            matrix_name='X',
            rank=info.rank,
            expected_rank=p,
        )
