"""
Linear models by ordinary least squares.

Public API:
    fit(X, y, ...) -> LinearSolution
    fit("y ~ x + group", data=ds) -> LinearSolution

The fit() function is the single entry point. It handles:
    - Input validation
    - Design construction (arrays, Design, or formula)
    - Backend selection
    - Result wrapping

Example:
    >>> from tidylm.regression import fit
    >>> result = fit("mpg ~ wt + C(cyl)", data=ds)
    >>> print(result.tidy())
    >>> print(result.summary())
"""

from tidylm.regression.design import Design
from tidylm.regression.encoding import IndicatorBlock, encode_treatment
from tidylm.regression.formula import Formula, parse_formula
from tidylm.regression.terms import Factor, Term
from tidylm.regression.solution import LinearSolution, LinearParams
from tidylm.regression.solvers import fit
from tidylm.regression.tidy import tidy, glance, augment

__all__ = [
    "fit",
    "Design",
    "Factor",
    "Term",
    "Formula",
    "parse_formula",
    "IndicatorBlock",
    "encode_treatment",
    "LinearSolution",
    "LinearParams",
    "tidy",
    "glance",
    "augment",
]
