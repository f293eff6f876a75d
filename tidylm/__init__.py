"""
tidylm: linear models with tidy output.

Ordinary least squares for continuous, categorical and transformed
explanatory variables, with broom-style tidy / glance / augment tables.

Submodules:
    core: Dataset, exceptions, validation, linear algebra kernels
    regression: Design construction, formulas, fitting, tidy output
"""

__version__ = "0.1.0"

from tidylm.core import (
    Dataset,
    categorical,
    numeric,
    TidyLMError,
    ValidationError,
    DimensionMismatchError,
    UnknownLevelError,
    RankDeficiencyError,
)
from tidylm import regression
from tidylm.regression import fit, tidy, glance, augment

__all__ = [
    "__version__",
    "Dataset",
    "categorical",
    "numeric",
    "fit",
    "tidy",
    "glance",
    "augment",
    "regression",
    "TidyLMError",
    "ValidationError",
    "DimensionMismatchError",
    "UnknownLevelError",
    "RankDeficiencyError",
]
