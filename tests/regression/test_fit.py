"""
Tests for regression fit().

Tests the complete pipeline: Design construction, backend selection,
and solution properties.
"""

import numpy as np
import pandas as pd
import pytest
from scipy import stats

import tidylm
from tidylm import Dataset, categorical
from tidylm.core.compute.tolerances import CPU_QR, select_tolerance
from tidylm.core.exceptions import (
    DimensionError,
    DimensionMismatchError,
    NumericalError,
    RankDeficiencyError,
    UnknownLevelError,
    ValidationError,
)
from tidylm.regression import Design, fit
from tidylm.regression.solution import LinearSolution


class TestFitBasic:
    """Basic fit() functionality tests."""

    def test_fit_from_arrays(self, simple_regression_data):
        X, y, _ = simple_regression_data
        result = fit(X, y)
        assert isinstance(result, LinearSolution)
        assert result.coefficients.shape == (3,)
        assert result.term_names == ['x1', 'x2', 'x3']

    def test_fit_from_design(self, simple_regression_data):
        X, y, _ = simple_regression_data
        result = fit(Design.from_arrays(X, y))
        assert isinstance(result, LinearSolution)

    def test_fit_from_formula(self, grouped_dataset):
        result = tidylm.fit("y ~ x + group", data=grouped_dataset)
        assert result.term_names == ['(Intercept)', 'x', 'grouplow', 'grouphigh']

    def test_fit_requires_y_with_arrays(self, simple_regression_data):
        X, _, _ = simple_regression_data
        with pytest.raises(ValueError, match="y required"):
            fit(X)

    def test_formula_requires_data(self):
        with pytest.raises(ValueError, match="data required"):
            fit("y ~ x")

    def test_design_rejects_y(self, simple_regression_data):
        X, y, _ = simple_regression_data
        with pytest.raises(ValueError, match="must not be given"):
            fit(Design.from_arrays(X, y), y)

    def test_coefficients_close_to_truth(self, simple_regression_data):
        X, y, beta_true = simple_regression_data
        result = fit(X, y)
        np.testing.assert_allclose(result.coefficients, beta_true, atol=0.1)

    def test_matches_lstsq(self, simple_regression_data):
        X, y, _ = simple_regression_data
        expected, *_ = np.linalg.lstsq(X, y, rcond=None)
        result = fit(X, y)
        np.testing.assert_allclose(
            result.coefficients, expected, rtol=CPU_QR.rtol, atol=CPU_QR.atol,
        )

    def test_coef_dict(self, grouped_dataset):
        result = fit("y ~ x", data=grouped_dataset)
        assert list(result.coef) == ['(Intercept)', 'x']
        assert result.coef['x'] == pytest.approx(1.5, abs=0.1)


class TestExactRecovery:
    """Noise-free responses are reproduced exactly."""

    def test_exact_coefficients_and_zero_residuals(self, rng):
        x = rng.standard_normal((20, 2))
        y = 4.0 + x @ [1.5, -2.0]
        with pytest.warns(RuntimeWarning, match="perfect fit"):
            result = fit(x, y, intercept=True)
        np.testing.assert_allclose(result.coefficients, [4.0, 1.5, -2.0], rtol=1e-10)
        np.testing.assert_allclose(result.residuals, 0.0, atol=1e-10)
        assert result.r_squared == pytest.approx(1.0)
        assert result.warnings

    def test_zero_residual_degrees_of_freedom(self, rng):
        X = rng.standard_normal((3, 3))
        y = rng.standard_normal(3)
        with pytest.warns(RuntimeWarning, match="no residual degrees of freedom"):
            result = fit(X, y)
        assert result.df_residual == 0
        assert np.isnan(result.sigma)
        assert np.all(np.isnan(result.standard_errors))
        assert np.all(np.isnan(result.t_statistics))
        assert np.all(np.isnan(result.p_values))


class TestIntercept:

    def test_no_intercept_differs(self, rng):
        x = rng.uniform(1.0, 5.0, 50)
        y = 3.0 + 2.0 * x + rng.standard_normal(50) * 0.1
        with_const = fit(x, y, intercept=True)
        without = fit(x, y)
        assert with_const.term_names == ['(Intercept)', 'x1']
        assert without.term_names == ['x1']
        assert not without.has_intercept
        assert without.coefficients[0] != pytest.approx(with_const.coefficients[1], abs=0.1)

    def test_no_intercept_formula(self, grouped_dataset):
        result = fit("y ~ x - 1", data=grouped_dataset)
        assert result.term_names == ['x']
        assert result.df_model == 1

    def test_residuals_sum_to_zero_with_intercept(self, grouped_dataset):
        result = fit("y ~ x + group", data=grouped_dataset)
        assert abs(result.residuals.sum()) < 1e-10

    def test_r_squared_centred_with_intercept(self, grouped_dataset):
        result = fit("y ~ x", data=grouped_dataset)
        y = grouped_dataset['y'].values
        expected = 1.0 - result.rss / np.sum((y - y.mean()) ** 2)
        assert result.r_squared == pytest.approx(expected)

    def test_r_squared_uncentred_without_intercept(self, grouped_dataset):
        result = fit("y ~ x - 1", data=grouped_dataset)
        y = grouped_dataset['y'].values
        assert result.r_squared == pytest.approx(1.0 - result.rss / np.sum(y ** 2))


class TestCategorical:

    def test_treatment_coefficients_are_mean_differences(self, grouped_dataset):
        result = fit("y ~ group", data=grouped_dataset)
        y = grouped_dataset['y'].values
        labels = grouped_dataset['group'].labels
        means = {g: y[labels == g].mean() for g in ('ctrl', 'low', 'high')}
        np.testing.assert_allclose(
            result.coefficients,
            [means['ctrl'], means['low'] - means['ctrl'], means['high'] - means['ctrl']],
            rtol=1e-10,
        )

    def test_group_shifts_recovered(self, grouped_dataset):
        result = fit("y ~ x + group", data=grouped_dataset)
        assert result.coef['grouplow'] == pytest.approx(-1.0, abs=0.2)
        assert result.coef['grouphigh'] == pytest.approx(3.0, abs=0.2)

    def test_formula_matches_hand_built_design(self, grouped_dataset):
        labels = grouped_dataset['group'].labels
        X = np.column_stack([
            grouped_dataset['x'].values,
            labels == 'low',
            labels == 'high',
        ])
        by_hand = fit(X, grouped_dataset['y'].values, intercept=True)
        by_formula = fit("y ~ x + group", data=grouped_dataset)
        np.testing.assert_allclose(by_formula.coefficients, by_hand.coefficients)
        np.testing.assert_allclose(by_formula.standard_errors, by_hand.standard_errors)

    def test_from_dataframe(self, grouped_dataset):
        df = grouped_dataset.to_dataframe()
        result = fit("y ~ x + group", data=Dataset.from_dataframe(df))
        expected = fit("y ~ x + group", data=grouped_dataset)
        np.testing.assert_allclose(result.coefficients, expected.coefficients)


class TestFailures:

    def test_row_mismatch(self, rng):
        X = rng.standard_normal((11, 2))
        y = rng.standard_normal(10)
        with pytest.raises(DimensionMismatchError):
            fit(X, y)

    def test_collinear_arrays(self, collinear_data):
        X, y = collinear_data
        with pytest.raises(RankDeficiencyError) as exc_info:
            fit(X, y, names=['a', 'b', 'c'])
        assert exc_info.value.rank == 2
        assert len(exc_info.value.aliased) == 1

    def test_collinear_formula(self, grouped_dataset):
        ds = Dataset.from_columns(
            y=grouped_dataset['y'].values,
            x=grouped_dataset['x'].values,
            x_twice=2.0 * grouped_dataset['x'].values,
        )
        with pytest.raises(RankDeficiencyError) as exc_info:
            fit("y ~ x + x_twice", data=ds)
        assert exc_info.value.aliased[0] in ('x', 'x_twice')

    def test_more_columns_than_rows(self, rng):
        with pytest.raises(RankDeficiencyError, match="more columns than observations"):
            fit(rng.standard_normal((3, 5)), rng.standard_normal(3))

    def test_unknown_backend(self, simple_regression_data):
        X, y, _ = simple_regression_data
        with pytest.raises(ValueError, match="Unknown backend"):
            fit(X, y, backend='gpu')


class TestBackends:

    @pytest.mark.parametrize("backend", ['auto', 'cpu', 'cpu_qr'])
    def test_qr_aliases(self, simple_regression_data, backend):
        X, y, _ = simple_regression_data
        assert fit(X, y, backend=backend).backend_name == 'cpu_qr'

    def test_cholesky_agrees_with_qr(self, grouped_dataset):
        qr = fit("y ~ x * group", data=grouped_dataset)
        chol = fit("y ~ x * group", data=grouped_dataset, backend='cpu_cholesky')
        assert chol.backend_name == 'cpu_cholesky'
        tol = select_tolerance(chol.backend_name)
        np.testing.assert_allclose(
            chol.coefficients, qr.coefficients, rtol=tol.rtol, atol=tol.atol,
        )
        np.testing.assert_allclose(chol.standard_errors, qr.standard_errors, rtol=1e-6)
        np.testing.assert_allclose(chol.leverage, qr.leverage, atol=1e-8)

    def test_cholesky_agrees_with_qr_when_ill_conditioned(self, rng):
        x = rng.standard_normal(100)
        X = np.column_stack([x, x + 5e-5 * rng.standard_normal(100)])
        y = x + rng.standard_normal(100)
        qr = fit(X, y)
        chol = fit(X, y, backend='cpu_cholesky')
        cond = chol.info['condition_number']
        assert 1e4 < cond < 1e6

        tol = select_tolerance(chol.backend_name, is_ill_conditioned=cond > 1e4)
        assert tol.name == 'ill_conditioned'
        np.testing.assert_allclose(
            chol.coefficients, qr.coefficients, rtol=tol.rtol, atol=tol.atol,
        )

    def test_cholesky_rank_deficient(self, collinear_data):
        X, y = collinear_data
        with pytest.raises(RankDeficiencyError):
            fit(X, y, backend='cpu_cholesky')

    def test_cholesky_refuses_ill_conditioned(self, rng):
        x = rng.standard_normal(100)
        X = np.column_stack([x, x + 3e-7 * rng.standard_normal(100)])
        y = x + rng.standard_normal(100)
        with pytest.raises(NumericalError, match="ill-conditioned"):
            fit(X, y, backend='cpu_cholesky')

        forced = fit(X, y, backend='cpu_cholesky', force=True)
        assert forced.info['condition_number'] > 1e6
        assert np.all(np.isfinite(forced.coefficients))

        # Pivoted QR handles the same design without complaint
        assert fit(X, y).rank == 2

    def test_timing_and_info(self, simple_regression_data):
        X, y, _ = simple_regression_data
        result = fit(X, y)
        assert result.info['method'] == 'qr'
        assert result.info['rank'] == 3
        assert 'qr_solve' in result.timing


class TestInference:

    def test_standard_errors_match_formula(self, simple_regression_data):
        X, y, _ = simple_regression_data
        result = fit(X, y)
        n, p = X.shape
        sigma2 = result.rss / (n - p)
        expected = np.sqrt(np.diag(sigma2 * np.linalg.inv(X.T @ X)))
        np.testing.assert_allclose(result.standard_errors, expected, rtol=1e-10)
        assert result.sigma == pytest.approx(np.sqrt(sigma2))

    def test_p_values_from_t_distribution(self, grouped_dataset):
        result = fit("y ~ x + group", data=grouped_dataset)
        expected = 2.0 * stats.t.sf(np.abs(result.t_statistics), result.df_residual)
        np.testing.assert_allclose(result.p_values, expected)
        assert np.all((result.p_values >= 0.0) & (result.p_values <= 1.0))

    def test_confidence_intervals(self, grouped_dataset):
        result = fit("y ~ x + group", data=grouped_dataset)
        ci = result.confidence_intervals(0.9)
        assert ci.shape == (4, 2)
        assert np.all(ci[:, 0] < result.coefficients)
        assert np.all(result.coefficients < ci[:, 1])
        wider = result.confidence_intervals(0.99)
        assert np.all(wider[:, 1] - wider[:, 0] > ci[:, 1] - ci[:, 0])

    def test_confidence_level_bounds(self, grouped_dataset):
        result = fit("y ~ x", data=grouped_dataset)
        with pytest.raises(ValueError, match="level"):
            result.confidence_intervals(1.5)

    def test_f_statistic(self, grouped_dataset):
        result = fit("y ~ x + group", data=grouped_dataset)
        assert result.df_model == 3
        expected = ((result.tss - result.rss) / 3) / (result.rss / result.df_residual)
        assert result.f_statistic == pytest.approx(expected)
        assert result.f_p_value == pytest.approx(
            stats.f.sf(expected, 3, result.df_residual)
        )

    def test_log_likelihood_and_information_criteria(self, grouped_dataset):
        result = fit("y ~ x + group", data=grouped_dataset)
        sigma_ml = np.sqrt(result.rss / result.nobs)
        expected = stats.norm.logpdf(result.residuals, scale=sigma_ml).sum()
        assert result.log_likelihood == pytest.approx(expected)
        assert result.aic == pytest.approx(-2 * expected + 2 * 5)
        assert result.bic == pytest.approx(-2 * expected + np.log(90) * 5)

    def test_leverage_sums_to_rank(self, grouped_dataset):
        result = fit("y ~ x * group", data=grouped_dataset)
        assert result.leverage.sum() == pytest.approx(result.rank)


class TestPredict:

    def test_no_data_returns_fitted(self, grouped_dataset):
        result = fit("y ~ x + group", data=grouped_dataset)
        np.testing.assert_array_equal(result.predict(), result.fitted_values)

    def test_new_dataset(self, grouped_dataset):
        result = fit("y ~ x + group", data=grouped_dataset)
        new = Dataset.from_columns(x=[2.0, 2.0], group=['ctrl', 'high'])
        pred = result.predict(new)
        coef = result.coef
        np.testing.assert_allclose(pred, [
            coef['(Intercept)'] + 2.0 * coef['x'],
            coef['(Intercept)'] + 2.0 * coef['x'] + coef['grouphigh'],
        ])

    def test_dataframe_and_dict_inputs(self, grouped_dataset):
        result = fit("y ~ x + group", data=grouped_dataset)
        columns = {'x': [1.0, 5.0], 'group': ['low', 'ctrl']}
        from_dict = result.predict(columns)
        from_df = result.predict(pd.DataFrame(columns))
        np.testing.assert_allclose(from_dict, from_df)

    def test_unseen_level(self, grouped_dataset):
        result = fit("y ~ x + group", data=grouped_dataset)
        with pytest.raises(UnknownLevelError):
            result.predict({'x': [1.0], 'group': ['extreme']})

    def test_categorical_passed_as_plain_numbers(self, rng):
        cars = Dataset.from_columns(
            mpg=rng.normal(20.0, 3.0, 12),
            wt=rng.uniform(2.0, 4.0, 12),
            cyl=categorical([4, 6, 8] * 4, levels=[4, 6, 8]),
        )
        result = fit("mpg ~ wt + cyl", data=cars)
        coef = result.coef
        expected = coef['(Intercept)'] + 3.0 * coef['wt'] + coef['cyl6']

        np.testing.assert_allclose(result.predict({'wt': [3.0], 'cyl': [6]}), [expected])
        np.testing.assert_allclose(
            result.predict(pd.DataFrame({'wt': [3.0], 'cyl': [6]})), [expected],
        )

    def test_forced_categorical_on_subset_of_values(self, rng):
        ds = Dataset.from_columns(
            y=rng.standard_normal(12),
            dose=[0.5, 2.0, 1.5] * 4,
        )
        result = fit("y ~ C(dose)", data=ds)
        assert result.term_names == ['(Intercept)', 'C(dose)1.5', 'C(dose)2']
        coef = result.coef
        np.testing.assert_allclose(
            result.predict({'dose': [2.0, 2.0]}),
            [coef['(Intercept)'] + coef['C(dose)2']] * 2,
        )

    def test_numeric_factor_given_as_labels(self, grouped_dataset):
        result = fit("y ~ x + group", data=grouped_dataset)
        with pytest.raises(ValidationError, match="fitted as numeric"):
            result.predict({'x': ['a'], 'group': ['ctrl']})

    def test_arrays_without_intercept_column(self, rng):
        x = rng.standard_normal((30, 2))
        y = 1.0 + x @ [2.0, 3.0] + rng.standard_normal(30) * 0.1
        result = fit(x, y, intercept=True)
        new = np.array([[0.5, -1.0]])
        expected = result.coefficients @ [1.0, 0.5, -1.0]
        np.testing.assert_allclose(result.predict(new), [expected])
        np.testing.assert_allclose(result.predict([[1.0, 0.5, -1.0]]), [expected])

    def test_arrays_wrong_width(self, simple_regression_data):
        X, y, _ = simple_regression_data
        result = fit(X, y)
        with pytest.raises(DimensionError, match="expected 3 columns"):
            result.predict(np.ones((2, 5)))


class TestSummary:

    def test_summary_contents(self, grouped_dataset):
        result = fit("y ~ x + group", data=grouped_dataset)
        text = result.summary()
        assert "Response: y" in text
        assert "(Intercept)" in text
        assert "grouphigh" in text
        assert "Multiple R-squared" in text
        assert "F-statistic" in text
        assert "Backend: cpu_qr" in text

    def test_summary_lists_warnings(self, rng):
        x = rng.standard_normal(10)
        with pytest.warns(RuntimeWarning):
            result = fit(x, 2.0 * x)
        assert "Warning: essentially perfect fit" in result.summary()

    def test_repr(self, grouped_dataset):
        result = fit("y ~ x", data=grouped_dataset)
        assert repr(result).startswith("LinearSolution(n=90, p=2, rank=2")
