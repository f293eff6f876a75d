"""
QR decomposition kernels.

Column-pivoted Householder QR (LAPACK geqp3 through SciPy). Pivoting moves
the most linearly independent columns to the front, so the numerical rank
can be read off the diagonal of R and any collinear columns end up in the
trailing pivot positions where they can be reported by name.
"""

from dataclasses import dataclass
from typing import Any, Sequence

import numpy as np
from numpy.typing import NDArray
from scipy.linalg import qr, solve_triangular

from tidylm.core.exceptions import RankDeficiencyError
from tidylm.core.compute.tolerances import RANK_RTOL_FACTOR


@dataclass(frozen=True)
class QRResult:
    """
    Result of a column-pivoted QR decomposition X[:, pivot] = Q R.

    Attributes:
        Q: Orthonormal columns (n x k, k = min(n, p))
        R: Upper triangular factor (k x p)
        pivot: Column permutation applied to X (p,)
        rank: Numerical rank determined from the diagonal of R
    """
    Q: NDArray[np.floating[Any]]
    R: NDArray[np.floating[Any]]
    pivot: NDArray[np.intp]
    rank: int


def qr_cpu(X: NDArray[np.floating[Any]]) -> QRResult:
    """
    Economy-size pivoted QR decomposition.

    Rank is the number of |R_ii| exceeding max(n, p) * eps * |R_00|,
    the tolerance LAPACK-based least squares solvers conventionally use.
    """
    Q, R, pivot = qr(X, mode='economic', pivoting=True)

    diag_R = np.abs(np.diag(R))
    if len(diag_R) > 0 and diag_R[0] > 0:
        tol = RANK_RTOL_FACTOR * max(X.shape) * np.finfo(X.dtype).eps * diag_R[0]
        rank = int(np.sum(diag_R > tol))
    else:
        rank = 0

    return QRResult(Q=Q, R=R, pivot=np.asarray(pivot, dtype=np.intp), rank=rank)


def qr_solve_cpu(
    X: NDArray[np.floating[Any]],
    y: NDArray[np.floating[Any]],
    names: Sequence[str] | None = None,
) -> tuple[NDArray[np.floating[Any]], QRResult]:
    """
    Solve least squares min ||y - X b||^2 via pivoted QR.

    The solution is computed as:
        X P = Q R
        z = R^-1 Q'y
        b = P z

    Args:
        X: Design matrix (n x p)
        y: Response vector (n,)
        names: Column names, used to report aliased columns

    Returns:
        (coefficients in original column order, the decomposition)

    Raises:
        RankDeficiencyError: If X does not have full column rank
    """
    n, p = X.shape
    qr_result = qr_cpu(X)

    if qr_result.rank < p:
        if names is None:
            names = [f"column {j}" for j in range(p)]
        aliased = [names[j] for j in qr_result.pivot[qr_result.rank:]]
        raise RankDeficiencyError(
            f"Design matrix is rank-deficient: rank={qr_result.rank}, expected={p}. "
            f"Aliased columns: {aliased}. "
            f"This indicates perfect multicollinearity"
            + (f" or more columns than observations (n={n})." if p > n else "."),
            matrix_name='X',
            rank=qr_result.rank,
            expected_rank=p,
            aliased=aliased,
        )

    Qty = qr_result.Q.T @ y
    z = solve_triangular(qr_result.R[:p, :p], Qty[:p], lower=False)

    beta = np.empty(p, dtype=np.float64)
    beta[qr_result.pivot] = z
    return beta, qr_result


def qr_unscaled_covariance(qr_result: QRResult) -> NDArray[np.floating[Any]]:
    """
    (X'X)^-1 in the original column order, from a full-rank pivoted QR.

    With X P = Q R, (X'X)^-1 = P R^-1 R^-T P'.
    """
    p = qr_result.R.shape[1]
    R_inv = solve_triangular(qr_result.R[:p, :p], np.eye(p), lower=False)
    cov_pivoted = R_inv @ R_inv.T

    cov = np.empty((p, p), dtype=np.float64)
    cov[np.ix_(qr_result.pivot, qr_result.pivot)] = cov_pivoted
    return cov


def qr_leverage(qr_result: QRResult) -> NDArray[np.floating[Any]]:
    """Diagonal of the hat matrix X (X'X)^-1 X' = Q Q'."""
    Q = qr_result.Q[:, :qr_result.rank]
    return np.einsum('ij,ij->i', Q, Q)
