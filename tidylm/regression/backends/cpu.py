"""
CPU reference backend for linear regression.

Uses column-pivoted Householder QR (LAPACK via SciPy). This is the
reference implementation; other backends are validated against it.
"""

from typing import Any

import numpy as np

from tidylm.core.result import Result
from tidylm.core.compute.timing import Timer
from tidylm.core.compute.linalg.qr import (
    qr_solve_cpu,
    qr_unscaled_covariance,
    qr_leverage,
)
from tidylm.regression.design import Design
from tidylm.regression.solution import LinearParams
from tidylm.regression.backends._common import fit_statistics, fit_warnings


class CPUQRBackend:
    """
    CPU backend using pivoted QR decomposition.

    Implements the Backend protocol for Design -> LinearParams.
    """

    @property
    def name(self) -> str:
        return 'cpu_qr'

    def solve(self, design: Design) -> Result[LinearParams]:
        """
        Solve OLS via pivoted QR decomposition.

        Algorithm:
            1. Decompose X P = Q R, read the numerical rank off diag(R)
            2. Solve R z = Q'y, un-pivot b = P z
            3. (X'X)^-1 = P R^-1 R^-T P', leverage = rowsums(Q * Q)

        Raises:
            RankDeficiencyError: If X does not have full column rank
        """
        timer = Timer()
        timer.start()

        X = design.X
        y = design.y
        n, p = design.n, design.p

        with timer.section('qr_solve'):
            coefficients, qr_result = qr_solve_cpu(X, y, names=design.column_names)

        with timer.section('covariance'):
            unscaled_cov = qr_unscaled_covariance(qr_result)
            leverage = qr_leverage(qr_result)

        with timer.section('residuals'):
            fitted_values = X @ coefficients
            residuals = y - fitted_values

        with timer.section('statistics'):
            rss, tss = fit_statistics(y, residuals, design.has_intercept)

        timer.stop()

        params = LinearParams(
            coefficients=coefficients,
            residuals=residuals,
            fitted_values=fitted_values,
            rss=rss,
            tss=tss,
            rank=qr_result.rank,
            df_residual=n - qr_result.rank,
            unscaled_covariance=unscaled_cov,
            leverage=leverage,
        )

        info: dict[str, Any] = {
            'method': 'qr',
            'rank': qr_result.rank,
            'pivot': qr_result.pivot.tolist(),
        }

        return Result(
            params=params,
            info=info,
            timing=timer.result(),
            backend_name=self.name,
            warnings=fit_warnings(y, residuals, n - p),
        )
