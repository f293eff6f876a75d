"""
Broom-style tidy output for fitted linear models.

    tidy(model)     one row per coefficient
    glance(model)   one row per model
    augment(model)  one row per observation

All three return pandas DataFrames with snake_case column names.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import numpy as np
import pandas as pd

if TYPE_CHECKING:
    from tidylm.core.dataset import Dataset
    from tidylm.regression.solution import LinearSolution


def tidy_table(
    model: 'LinearSolution',
    conf_int: bool = False,
    conf_level: float = 0.95,
) -> pd.DataFrame:
    """
    Coefficient table.

    Columns: term, estimate, std_error, statistic, p_value, and with
    ``conf_int=True`` also conf_low, conf_high.
    """
    table = pd.DataFrame({
        'term': model.term_names,
        'estimate': model.coefficients,
        'std_error': model.standard_errors,
        'statistic': model.t_statistics,
        'p_value': model.p_values,
    })
    if conf_int:
        ci = model.confidence_intervals(conf_level)
        table['conf_low'] = ci[:, 0]
        table['conf_high'] = ci[:, 1]
    return table


def glance_table(model: 'LinearSolution') -> pd.DataFrame:
    """Single-row table of model-level statistics."""
    return pd.DataFrame([{
        'r_squared': model.r_squared,
        'adj_r_squared': model.adjusted_r_squared,
        'sigma': model.residual_std_error,
        'statistic': model.f_statistic,
        'p_value': model.f_p_value,
        'df': model.df_model,
        'log_lik': model.log_likelihood,
        'aic': model.aic,
        'bic': model.bic,
        'deviance': model.rss,
        'df_residual': model.df_residual,
        'nobs': model.nobs,
    }])


def augment_table(
    model: 'LinearSolution',
    data: 'Dataset | None' = None,
) -> pd.DataFrame:
    """
    Observation-level table.

    Without ``data``: the model's columns plus .fitted, .resid, .hat,
    .std_resid and .cooksd. With ``data``: the new data's model columns
    plus .fitted.
    """
    design = model.design

    if data is not None:
        frame = design.model_frame(data).to_dataframe()
        frame['.fitted'] = model.predict(data)
        return frame

    frame = design.model_frame().to_dataframe()
    hat = model.leverage
    sigma = model.residual_std_error
    with np.errstate(divide='ignore', invalid='ignore'):
        std_resid = model.residuals / (sigma * np.sqrt(1.0 - hat))
        cooksd = std_resid ** 2 * hat / (model.rank * (1.0 - hat))

    frame['.fitted'] = model.fitted_values
    frame['.resid'] = model.residuals
    frame['.hat'] = hat
    frame['.std_resid'] = std_resid
    frame['.cooksd'] = cooksd
    return frame


def tidy(model: 'LinearSolution', conf_int: bool = False, conf_level: float = 0.95) -> pd.DataFrame:
    """Coefficient-level summary of a fitted model."""
    return model.tidy(conf_int=conf_int, conf_level=conf_level)


def glance(model: 'LinearSolution') -> pd.DataFrame:
    """Model-level summary of a fitted model."""
    return model.glance()


def augment(model: 'LinearSolution', data=None) -> pd.DataFrame:
    """Observation-level summary of a fitted model, or predictions for ``data``."""
    return model.augment(data)
