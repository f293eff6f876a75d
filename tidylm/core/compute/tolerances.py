"""
Numerical tolerances.

Thresholds used by the least-squares kernels (rank detection, condition
checks, perfect-fit detection) and tolerance tiers for comparing results
across backends. Used by the backends and the test suite.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class ToleranceTier:
    """Tolerance specification for numerical comparison."""
    rtol: float
    atol: float
    name: str
    description: str


# Pivoted QR: reference path
CPU_QR = ToleranceTier(
    rtol=1e-10,
    atol=1e-12,
    name='cpu_qr',
    description='Householder QR in double precision',
)

# Normal equations square the condition number
CPU_CHOLESKY = ToleranceTier(
    rtol=1e-8,
    atol=1e-10,
    name='cpu_cholesky',
    description='Cholesky on normal equations in double precision',
)

# Either path on ill-conditioned problems (cond > 1e4)
ILL_CONDITIONED = ToleranceTier(
    rtol=1e-4,
    atol=1e-6,
    name='ill_conditioned',
    description='Double precision, ill-conditioned (cond > 1e4)',
)

# Rank tolerance for pivoted QR is RANK_RTOL_FACTOR * max(n, p) * eps * |R[0, 0]|
RANK_RTOL_FACTOR = 1.0

# At cond(X) = 1e6, cond(X'X) = 1e12: Cholesky on the normal equations
# loses most of the available float64 digits past this point.
CONDITION_THRESHOLD = 1e6

# ||residuals|| <= PERFECT_FIT_RTOL * ||y|| is reported as an essentially perfect fit
PERFECT_FIT_RTOL = 1e-10


def select_tolerance(
    backend_name: str,
    is_ill_conditioned: bool = False,
) -> ToleranceTier:
    """Select the tolerance tier for a given backend."""
    if is_ill_conditioned:
        return ILL_CONDITIONED
    if 'cholesky' in backend_name:
        return CPU_CHOLESKY
    return CPU_QR
