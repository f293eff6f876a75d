"""
pytest configuration and shared fixtures.
"""

import pytest
import numpy as np

from tidylm import Dataset, categorical


@pytest.fixture
def rng():
    """Seeded random number generator for reproducible tests."""
    return np.random.default_rng(42)


@pytest.fixture
def simple_regression_data(rng):
    """Simple regression dataset for basic tests."""
    n, p = 100, 3
    X = rng.standard_normal((n, p))
    beta_true = np.array([1.0, -2.0, 0.5])
    y = X @ beta_true + rng.standard_normal(n) * 0.1
    return X, y, beta_true


@pytest.fixture
def collinear_data(rng):
    """Dataset with perfect collinearity (should fail)."""
    n = 100
    x1 = rng.standard_normal(n)
    x2 = rng.standard_normal(n)
    x3 = x1 + x2  # Perfect collinearity
    X = np.column_stack([x1, x2, x3])
    y = rng.standard_normal(n)
    return X, y


@pytest.fixture
def grouped_dataset(rng):
    """
    Numeric predictor plus a three-level factor with reference 'ctrl'.

    y = 2 + 1.5 x + {ctrl: 0, low: -1, high: 3} + noise
    """
    n = 90
    x = rng.uniform(0.5, 10.0, n)
    group = np.array(['ctrl', 'low', 'high'] * (n // 3))
    shift = {'ctrl': 0.0, 'low': -1.0, 'high': 3.0}
    y = 2.0 + 1.5 * x + np.array([shift[g] for g in group]) + rng.standard_normal(n) * 0.2
    return Dataset.from_columns(
        y=y,
        x=x,
        group=categorical(group, levels=['ctrl', 'low', 'high']),
    )
