"""
Shared compute infrastructure for tidylm.

This module holds NUMERIC infrastructure shared by the regression
backends. The backends themselves live in tidylm.regression.backends.

Submodules:
    timing: Execution timing utilities
    tolerances: Numerical thresholds and comparison tiers
    linalg: Linear algebra kernels (pivoted QR, Cholesky)
"""

from tidylm.core.compute.timing import Timer, timed

__all__ = [
    "Timer",
    "timed",
]
