"""
Solver dispatch for regression.

This module provides the fit() function (public API) and backend selection.
"""

import warnings
from typing import Literal, Sequence

from numpy.typing import ArrayLike

from tidylm.core.dataset import Dataset
from tidylm.core.protocols import Backend
from tidylm.regression.design import Design
from tidylm.regression.formula import Formula
from tidylm.regression.solution import LinearSolution
from tidylm.regression.backends.cpu import CPUQRBackend
from tidylm.regression.backends.cpu_cholesky import CPUCholeskyBackend


BackendChoice = Literal['auto', 'cpu', 'cpu_qr', 'cpu_cholesky']


def fit(
    X_or_design: 'ArrayLike | Design | str | Formula',
    y: ArrayLike | None = None,
    *,
    data: Dataset | None = None,
    intercept: bool = False,
    names: Sequence[str] | None = None,
    backend: BackendChoice = 'auto',
    force: bool = False,
) -> LinearSolution:
    """
    Fit a linear regression model by ordinary least squares.

    Solves:
        min_b ||y - X b||^2

    Three ways to call it:
        fit(X, y)                       # X is the design matrix, used as given
        fit(X, y, intercept=True)       # prepend a column of ones to X
        fit(design)                     # a prebuilt Design
        fit("y ~ x + group", data=ds)   # formula evaluated on a Dataset

    Args:
        X_or_design: Design matrix (n x p), a Design, or a formula
        y: Response vector (n,); required with a design matrix
        data: Dataset for formula fits
        intercept: For matrix input only, prepend a column of ones. Off by
            default: a matrix is fitted exactly as given, so pass
            intercept=True (or include a ones column) for a constant term.
            Formulas and Datasets include the intercept unless removed
            with "- 1" or "0 +".
        names: For matrix input only, names of the columns of X
        backend: Computational backend:
            - 'auto' / 'cpu' / 'cpu_qr': pivoted QR (reference)
            - 'cpu_cholesky': Cholesky on the normal equations
        force: Let 'cpu_cholesky' proceed on ill-conditioned designs

    Returns:
        LinearSolution with coefficients, diagnostics and tidy output

    Raises:
        ValidationError: If inputs are invalid
        DimensionMismatchError: If X and y have different numbers of rows
        UnknownLevelError: If a categorical label is outside its level set
        RankDeficiencyError: If X does not have full column rank
        NumericalError: If 'cpu_cholesky' refuses an ill-conditioned design

    Example:
        >>> import numpy as np
        >>> from tidylm.regression import fit
        >>>
        >>> X = np.column_stack([np.ones(100), np.random.randn(100, 2)])
        >>> y = X @ [1, 2, 3] + np.random.randn(100) * 0.1
        >>>
        >>> result = fit(X, y)
        >>> print(result.tidy())
    """
    # === Construct Design ===
    # This is the boundary - validate here, trust everywhere else
    if isinstance(X_or_design, Design):
        if y is not None:
            raise ValueError("y must not be given with a Design")
        design = X_or_design
    elif isinstance(X_or_design, (str, Formula)):
        if data is None:
            raise ValueError("data required when fitting a formula")
        if y is not None:
            raise ValueError("y must not be given with a formula; name it on the left of '~'")
        design = Design.from_formula(X_or_design, data)
    else:
        if y is None:
            raise ValueError("y required when X is a design matrix")
        design = Design.from_arrays(X_or_design, y, intercept=intercept, names=names)

    # === Select Backend ===
    backend_impl = _get_backend(backend, force=force)

    # === Solve ===
    result = backend_impl.solve(design)

    for message in result.warnings:
        warnings.warn(message, RuntimeWarning, stacklevel=2)

    # === Wrap and Return ===
    return LinearSolution(_result=result, _design=design)


def _get_backend(choice: BackendChoice, force: bool = False) -> Backend:
    """
    Select and instantiate the appropriate backend.

    Raises:
        ValueError: If unknown backend specified
    """
    if choice in ('auto', 'cpu', 'cpu_qr'):
        return CPUQRBackend()

    elif choice == 'cpu_cholesky':
        return CPUCholeskyBackend(force=force)

    else:
        raise ValueError(f"Unknown backend: {choice!r}")
