"""
Linear algebra kernels for least squares.

All functions follow these conventions:
    - NumPy/SciPy (LAPACK under the hood), float64 throughout
    - Each decomposition returns a structured result dataclass
    - Errors are raised immediately with clear messages

Submodules:
    qr: Column-pivoted QR decomposition and solve
    cholesky: Normal-equation solve and condition diagnostics
"""

from tidylm.core.compute.linalg.qr import (
    QRResult,
    qr_cpu,
    qr_solve_cpu,
    qr_unscaled_covariance,
    qr_leverage,
)
from tidylm.core.compute.linalg.cholesky import (
    ConditionInfo,
    condition_info,
    cholesky_solve_cpu,
    check_full_column_rank,
)

__all__ = [
    # QR decomposition
    "QRResult",
    "qr_cpu",
    "qr_solve_cpu",
    "qr_unscaled_covariance",
    "qr_leverage",
    # Normal equations
    "ConditionInfo",
    "condition_info",
    "cholesky_solve_cpu",
    "check_full_column_rank",
]
