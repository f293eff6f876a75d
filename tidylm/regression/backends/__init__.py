"""
Regression backends.

Available backends:
    CPUQRBackend: Reference implementation using pivoted QR decomposition
    CPUCholeskyBackend: Cholesky on the normal equations
"""

from tidylm.regression.backends.cpu import CPUQRBackend
from tidylm.regression.backends.cpu_cholesky import CPUCholeskyBackend

__all__ = [
    "CPUQRBackend",
    "CPUCholeskyBackend",
]
