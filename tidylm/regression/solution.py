"""
Regression solution types.

Contains the parameter payload computed by backends and the user-facing
fitted-model wrapper with inferential statistics, prediction and
broom-style tidy output.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, TYPE_CHECKING

import numpy as np
from numpy.typing import ArrayLike, NDArray
from scipy import stats

from tidylm.core.dataset import Dataset
from tidylm.core.exceptions import DimensionError
from tidylm.core.result import Result
from tidylm.core.validation import check_array, check_finite
from tidylm.regression.tidy import tidy_table, glance_table, augment_table

if TYPE_CHECKING:
    import pandas as pd
    from tidylm.regression.design import Design


def _significance_stars(p: float) -> str:
    """Return significance stars like R."""
    if np.isnan(p):
        return ' '
    if p < 0.001:
        return '***'
    elif p < 0.01:
        return '**'
    elif p < 0.05:
        return '*'
    elif p < 0.1:
        return '.'
    else:
        return ' '


def _format_pvalue(p: float) -> str:
    """Format p-value like R."""
    if np.isnan(p):
        return 'NA'
    if p < 2e-16:
        return '< 2e-16'
    elif p < 0.001:
        return f'{p:.2e}'
    else:
        return f'{p:.4f}'


@dataclass(frozen=True)
class LinearParams:
    """
    Parameter payload for linear regression.

    This is the immutable data computed by backends.
    """
    coefficients: NDArray[np.floating[Any]]
    residuals: NDArray[np.floating[Any]]
    fitted_values: NDArray[np.floating[Any]]
    rss: float
    tss: float
    rank: int
    df_residual: int
    unscaled_covariance: NDArray[np.floating[Any]]
    leverage: NDArray[np.floating[Any]]


class LinearSolution:
    """
    Fitted linear model.

    Wraps the backend Result and the Design it was fitted on, and provides
    accessors for coefficients, standard errors, t-statistics, p-values,
    fit statistics and tidy tables. Immutable: all derived quantities are
    recomputed from the stored result.
    """

    def __init__(self, _result: Result[LinearParams], _design: 'Design'):
        self._result = _result
        self._design = _design

    @property
    def params(self) -> LinearParams:
        return self._result.params

    @property
    def design(self) -> 'Design':
        return self._design

    # --- Coefficients ---

    @property
    def coefficients(self) -> NDArray[np.floating[Any]]:
        return self.params.coefficients

    @property
    def term_names(self) -> list[str]:
        """Design column name for each coefficient, index-aligned."""
        return list(self._design.column_names)

    @property
    def coef(self) -> dict[str, float]:
        """Coefficients as name -> value dict."""
        return dict(zip(self.term_names, self.coefficients.tolist()))

    @property
    def has_intercept(self) -> bool:
        return self._design.has_intercept

    # --- Residuals and fit ---

    @property
    def residuals(self) -> NDArray[np.floating[Any]]:
        return self.params.residuals

    @property
    def fitted_values(self) -> NDArray[np.floating[Any]]:
        return self.params.fitted_values

    @property
    def leverage(self) -> NDArray[np.floating[Any]]:
        """Diagonal of the hat matrix."""
        return self.params.leverage

    @property
    def rss(self) -> float:
        return self.params.rss

    @property
    def tss(self) -> float:
        return self.params.tss

    @property
    def rank(self) -> int:
        return self.params.rank

    @property
    def df_residual(self) -> int:
        return self.params.df_residual

    @property
    def df_model(self) -> int:
        """Model degrees of freedom, excluding the intercept."""
        return self.rank - int(self.has_intercept)

    @property
    def nobs(self) -> int:
        return self._design.n

    @property
    def r_squared(self) -> float:
        if self.tss == 0:
            return 1.0 if self.rss == 0 else 0.0
        return 1.0 - (self.rss / self.tss)

    @property
    def adjusted_r_squared(self) -> float:
        n = self._design.n
        df = self.df_residual
        if df <= 0 or self.tss == 0:
            return self.r_squared
        return 1.0 - (1.0 - self.r_squared) * (n - int(self.has_intercept)) / df

    @property
    def residual_std_error(self) -> float:
        """sigma = sqrt(RSS / (n - p)); NaN with no residual degrees of freedom."""
        df = self.df_residual
        if df <= 0:
            return float('nan')
        return float(np.sqrt(self.rss / df))

    @property
    def sigma(self) -> float:
        return self.residual_std_error

    # --- Inference ---

    @property
    def covariance(self) -> NDArray[np.floating[Any]]:
        """Estimated covariance of the coefficients, sigma^2 (X'X)^-1."""
        return self.residual_std_error ** 2 * self.params.unscaled_covariance

    @property
    def standard_errors(self) -> NDArray[np.floating[Any]]:
        """
        Standard errors of coefficients.

        Computed as SE(b) = sqrt(diag(sigma^2 (X'X)^-1)).
        """
        return np.sqrt(np.diag(self.covariance))

    @property
    def t_statistics(self) -> NDArray[np.floating[Any]]:
        """t-statistics for coefficients; NaN where SE is zero or undefined."""
        with np.errstate(divide='ignore', invalid='ignore'):
            t = self.coefficients / self.standard_errors
        return np.where(np.isfinite(t), t, np.nan)

    @property
    def p_values(self) -> NDArray[np.floating[Any]]:
        """Two-sided p-values from Student's t with df_residual degrees of freedom."""
        if self.df_residual <= 0:
            return np.full(len(self.coefficients), np.nan)
        return 2.0 * stats.t.sf(np.abs(self.t_statistics), self.df_residual)

    def confidence_intervals(self, level: float = 0.95) -> NDArray[np.floating[Any]]:
        """
        Confidence intervals for coefficients.

        Returns:
            (p, 2) array of lower and upper bounds
        """
        if not 0.0 < level < 1.0:
            raise ValueError(f"level must be in (0, 1), got {level}")
        if self.df_residual <= 0:
            return np.full((len(self.coefficients), 2), np.nan)
        q = stats.t.ppf((1.0 + level) / 2.0, self.df_residual)
        half = q * self.standard_errors
        return np.column_stack([self.coefficients - half, self.coefficients + half])

    @property
    def f_statistic(self) -> float:
        """Overall F statistic against the intercept-only (or empty) model."""
        if self.df_model <= 0 or self.df_residual <= 0 or self.rss == 0:
            return float('nan')
        return ((self.tss - self.rss) / self.df_model) / (self.rss / self.df_residual)

    @property
    def f_p_value(self) -> float:
        f = self.f_statistic
        if np.isnan(f):
            return float('nan')
        return float(stats.f.sf(f, self.df_model, self.df_residual))

    # --- Likelihood ---

    @property
    def log_likelihood(self) -> float:
        """Gaussian log-likelihood at the ML variance estimate RSS / n."""
        n = self.nobs
        with np.errstate(divide='ignore'):
            return float(0.5 * -n * (np.log(2 * np.pi) + 1 - np.log(n) + np.log(self.rss)))

    @property
    def aic(self) -> float:
        return -2.0 * self.log_likelihood + 2.0 * (self.rank + 1)

    @property
    def bic(self) -> float:
        return -2.0 * self.log_likelihood + np.log(self.nobs) * (self.rank + 1)

    # --- Prediction ---

    def predict(self, data: Dataset | 'pd.DataFrame' | ArrayLike | None = None) -> NDArray[np.floating[Any]]:
        """
        Predicted response.

        Args:
            data: None for the fitted values; a Dataset or DataFrame for
                models built from data; a matrix for models built from
                arrays (the intercept column may be omitted)

        Raises:
            UnknownLevelError: If new data has unseen categorical labels
            DimensionError: If a matrix has the wrong number of columns
        """
        if data is None:
            return self.fitted_values
        return self._new_model_matrix(data) @ self.coefficients

    def _new_model_matrix(self, data: Any) -> NDArray[np.floating[Any]]:
        if self._design.terms is not None:
            return self._design.model_matrix(_as_dataset(data))

        X = check_array(data, 'X')
        if X.ndim == 1:
            X = X.reshape(-1, 1)
        check_finite(X, 'X')
        p = self._design.p
        if self.has_intercept and X.shape[1] == p - 1:
            X = np.column_stack([np.ones(X.shape[0]), X])
        if X.ndim != 2 or X.shape[1] != p:
            raise DimensionError(f"X: expected {p} columns, got shape {X.shape}")
        return X

    # --- Tidy output ---

    def tidy(self, conf_int: bool = False, conf_level: float = 0.95) -> 'pd.DataFrame':
        """One row per coefficient: term, estimate, std_error, statistic, p_value."""
        return tidy_table(self, conf_int=conf_int, conf_level=conf_level)

    def glance(self) -> 'pd.DataFrame':
        """One-row model summary."""
        return glance_table(self)

    def augment(self, data: Dataset | 'pd.DataFrame' | None = None) -> 'pd.DataFrame':
        """Observation-level fitted values and diagnostics."""
        if data is not None:
            data = _as_dataset(data)
        return augment_table(self, data)

    # --- Metadata ---

    @property
    def info(self) -> dict[str, Any]:
        return self._result.info

    @property
    def timing(self) -> dict[str, float] | None:
        return self._result.timing

    @property
    def backend_name(self) -> str:
        return self._result.backend_name

    @property
    def warnings(self) -> tuple[str, ...]:
        return self._result.warnings

    def summary(self) -> str:
        """Generate R-style summary output."""
        names = self.term_names
        width = max(12, max(len(name) for name in names))
        lines = [
            "Linear Regression Results",
            "=" * 70,
            f"Response: {self._design.response_name}",
            f"Observations: {self.nobs}",
            "",
            "Residuals:",
        ]
        q = np.quantile(self.residuals, [0.0, 0.25, 0.5, 0.75, 1.0])
        lines.append("      Min        1Q    Median        3Q       Max")
        lines.append(" ".join(f"{v:9.4f}" for v in q))
        lines.append("")
        lines.append("Coefficients:")
        lines.append(
            f"{'':<{width}} {'Estimate':>12} {'Std. Error':>12} {'t value':>9} {'Pr(>|t|)':>10}"
        )

        for name, coef, se, t, pv in zip(
            names, self.coefficients, self.standard_errors,
            self.t_statistics, self.p_values,
        ):
            se_str = f"{se:12.6f}" if not np.isnan(se) else f"{'NA':>12}"
            t_str = f"{t:9.3f}" if not np.isnan(t) else f"{'NA':>9}"
            lines.append(
                f"{name:<{width}} {coef:12.6f} {se_str} {t_str} "
                f"{_format_pvalue(pv):>10} {_significance_stars(pv)}"
            )

        lines.append("---")
        lines.append("Signif. codes:  0 '***' 0.001 '**' 0.01 '*' 0.05 '.' 0.1 ' ' 1")
        lines.append("")
        lines.append(
            f"Residual standard error: {self.residual_std_error:.4f} "
            f"on {self.df_residual} degrees of freedom"
        )
        lines.append(
            f"Multiple R-squared: {self.r_squared:.4f},  "
            f"Adjusted R-squared: {self.adjusted_r_squared:.4f}"
        )
        if not np.isnan(self.f_statistic):
            lines.append(
                f"F-statistic: {self.f_statistic:.4g} on {self.df_model} and "
                f"{self.df_residual} DF,  p-value: {_format_pvalue(self.f_p_value)}"
            )
        for warning in self.warnings:
            lines.append(f"Warning: {warning}")
        lines.append(f"Backend: {self.backend_name}")
        if self.timing:
            lines.append(f"Time: {self.timing.get('total_seconds', 0):.4f}s")

        return "\n".join(lines)

    def __repr__(self) -> str:
        return (
            f"LinearSolution(n={self.nobs}, p={self._design.p}, "
            f"rank={self.rank}, r_squared={self.r_squared:.4f})"
        )


def _as_dataset(data: Any) -> Dataset:
    if isinstance(data, Dataset):
        return data
    if hasattr(data, 'columns') and hasattr(data, 'dtypes'):
        return Dataset.from_dataframe(data)
    if isinstance(data, dict):
        return Dataset.from_dict(data)
    raise TypeError(
        f"Expected a Dataset, DataFrame or dict of columns, got {type(data).__name__}"
    )
