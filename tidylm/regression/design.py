"""
Regression Design.

Design wraps a response vector and a design matrix, with one name per
design column. It knows it is building a regression; Dataset doesn't.

When built from a Dataset (directly or through a formula), the Design
also remembers its terms and the level set of every categorical factor,
so the same columns can be rebuilt for new data.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Sequence

import numpy as np
from numpy.typing import ArrayLike, NDArray

from tidylm.core.dataset import Dataset, NumericColumn
from tidylm.core.exceptions import ValidationError
from tidylm.core.validation import (
    check_array,
    check_finite,
    check_2d,
    check_1d,
    check_consistent_length,
    check_min_samples,
)
from tidylm.regression.formula import Formula, parse_formula
from tidylm.regression.terms import Factor, Term

INTERCEPT_NAME = '(Intercept)'


@dataclass(frozen=True)
class Design:
    """
    Regression design matrix specification.

    Immutable after construction.

    Construction:
        Design.from_arrays(X, y)                                  # X used as given
        Design.from_arrays(X, y, intercept=True)                  # prepend ones
        Design.from_dataset(ds, y='y', x=['a', 'group'])          # columns
        Design.from_dataset(ds, y='y', x=[Term.of('a', 'b')])     # explicit terms
        Design.from_formula("y ~ a + group", ds)                  # formula
    """
    _X: NDArray[np.floating[Any]]
    _y: NDArray[np.floating[Any]]
    _n: int
    _p: int
    _column_names: tuple[str, ...]
    _has_intercept: bool
    _response_name: str = 'y'
    _terms: tuple[Term, ...] | None = None
    _term_slices: dict[str, slice] = field(default_factory=dict)
    _levels: dict[str, tuple[str, ...]] = field(default_factory=dict)
    _response: Factor | None = None
    _source: Dataset | None = None

    @classmethod
    def from_arrays(
        cls,
        X: ArrayLike,
        y: ArrayLike,
        *,
        intercept: bool = False,
        names: Sequence[str] | None = None,
    ) -> Design:
        """
        Build Design directly from arrays.

        Args:
            X: Design matrix (n x p) or a single column (n,)
            y: Response vector (n,)
            intercept: If True, prepend a column of ones
            names: Column names for X; defaults to x1..xp
        """
        X_arr = check_array(X, 'X')
        y_arr = check_array(y, 'y')
        if X_arr.ndim == 1:
            X_arr = X_arr.reshape(-1, 1)
        if y_arr.ndim == 2 and y_arr.shape[1] == 1:
            y_arr = y_arr.ravel()
        check_2d(X_arr, 'X')

        if names is None:
            names = [f"x{j + 1}" for j in range(X_arr.shape[1])]
        names = [str(name) for name in names]
        if len(names) != X_arr.shape[1]:
            raise ValidationError(
                f"names: got {len(names)} names for {X_arr.shape[1]} columns"
            )

        term_slices = {name: slice(j, j + 1) for j, name in enumerate(names)}
        if intercept:
            X_arr = np.column_stack([np.ones(X_arr.shape[0]), X_arr])
            names = [INTERCEPT_NAME] + names
            term_slices = {INTERCEPT_NAME: slice(0, 1)} | {
                name: slice(s.start + 1, s.stop + 1) for name, s in term_slices.items()
            }

        return cls._build(
            X_arr,
            y_arr,
            column_names=tuple(names),
            has_intercept=intercept,
            term_slices=term_slices,
        )

    @classmethod
    def from_dataset(
        cls,
        source: Dataset,
        *,
        y: str | Factor,
        x: Sequence[str | Factor | Term] | None = None,
        intercept: bool = True,
    ) -> Design:
        """
        Build Design from a Dataset.

        Args:
            source: The Dataset
            y: Response column (or response factor such as Factor('y', 'log'))
            x: Explanatory columns, factors or terms. Strings are factor
               codes, so 'log(x)' works. If None, uses every column except y.
            intercept: Prepend a constant column named '(Intercept)'

        Returns:
            Design ready for regression
        """
        response = y if isinstance(y, Factor) else Factor.from_code(y)
        if x is None:
            x = [name for name in source.keys() if name != response.variable]
            if not x:
                raise ValidationError("No explanatory columns available")

        terms = tuple(
            item if isinstance(item, Term) else Term.of(item) for item in x
        )
        return cls._from_terms(source, response, terms, intercept)

    @classmethod
    def from_formula(cls, formula: str | Formula, data: Dataset) -> Design:
        """Build Design from a model formula evaluated on ``data``."""
        if not isinstance(formula, Formula):
            formula = parse_formula(formula)
        return cls._from_terms(data, formula.response, formula.terms, formula.intercept)

    @classmethod
    def _from_terms(
        cls,
        source: Dataset,
        response: Factor,
        terms: tuple[Term, ...],
        intercept: bool,
    ) -> Design:
        if response.is_categorical(source):
            raise ValidationError(
                f"Response {response.label!r} is categorical; a numeric response is required"
            )
        y_cols, _ = response.evaluate(source)

        levels: dict[str, tuple[str, ...]] = {}
        for term in terms:
            for factor in term.factors:
                if factor.is_categorical(source):
                    levels[factor.label] = factor.levels_in(source)

        X, names, term_slices = _model_matrix(source, terms, intercept, levels)
        return cls._build(
            X,
            y_cols[:, 0],
            column_names=tuple(names),
            has_intercept=intercept,
            response_name=response.label,
            terms=terms,
            term_slices=term_slices,
            levels=levels,
            response=response,
            source=source,
        )

    @classmethod
    def _build(
        cls,
        X: NDArray,
        y: NDArray,
        *,
        column_names: tuple[str, ...],
        has_intercept: bool,
        response_name: str = 'y',
        terms: tuple[Term, ...] | None = None,
        term_slices: dict[str, slice] | None = None,
        levels: dict[str, tuple[str, ...]] | None = None,
        response: Factor | None = None,
        source: Dataset | None = None,
    ) -> Design:
        """Internal builder with validation."""
        check_2d(X, 'X')
        check_1d(y, 'y')
        check_consistent_length(X, y, names=('X', 'y'))
        check_finite(X, 'X')
        check_finite(y, 'y')
        check_min_samples(X, 1, 'X')

        n, p = X.shape
        if p == 0:
            raise ValidationError("X: design matrix has no columns")

        duplicates = sorted({c for c in column_names if column_names.count(c) > 1})
        if duplicates:
            raise ValidationError(f"Duplicate design column names: {duplicates}")

        return cls(
            _X=np.ascontiguousarray(X, dtype=np.float64),
            _y=np.asarray(y, dtype=np.float64),
            _n=n,
            _p=p,
            _column_names=column_names,
            _has_intercept=has_intercept,
            _response_name=response_name,
            _terms=terms,
            _term_slices=dict(term_slices or {}),
            _levels=dict(levels or {}),
            _response=response,
            _source=source,
        )

    # === Properties ===

    @property
    def X(self) -> NDArray[np.floating[Any]]:
        """Design matrix (n x p)."""
        return self._X

    @property
    def y(self) -> NDArray[np.floating[Any]]:
        """Response vector (n,)."""
        return self._y

    @property
    def n(self) -> int:
        """Number of observations."""
        return self._n

    @property
    def p(self) -> int:
        """Number of design columns, intercept included."""
        return self._p

    @property
    def column_names(self) -> tuple[str, ...]:
        """One name per design column, index-aligned with coefficients."""
        return self._column_names

    @property
    def has_intercept(self) -> bool:
        return self._has_intercept

    @property
    def response_name(self) -> str:
        return self._response_name

    @property
    def terms(self) -> tuple[Term, ...] | None:
        """Terms the design was built from; None for array designs."""
        return self._terms

    @property
    def term_slices(self) -> dict[str, slice]:
        """Term name -> slice of design columns."""
        return dict(self._term_slices)

    @property
    def levels(self) -> dict[str, tuple[str, ...]]:
        """Categorical factor label -> level set used for encoding."""
        return dict(self._levels)

    @property
    def source(self) -> Dataset | None:
        """Original Dataset, if available."""
        return self._source

    def XtX(self) -> NDArray[np.floating[Any]]:
        """Compute X'X."""
        return self._X.T @ self._X

    def Xty(self) -> NDArray[np.floating[Any]]:
        """Compute X'y."""
        return self._X.T @ self._y

    def model_matrix(self, data: Dataset) -> NDArray[np.floating[Any]]:
        """
        Rebuild the design columns on new data.

        Categorical factors are encoded against the levels seen when this
        design was built, whatever the tag of the new column.

        Raises:
            ValidationError: If the design was built from raw arrays, or a
                factor fitted as numeric is categorical in new data
            UnknownLevelError: If new data has labels outside those levels
            KeyError: If new data lacks a referenced column
        """
        if self._terms is None:
            raise ValidationError(
                "Design was built from arrays; new data must be passed as a matrix"
            )
        for term in self._terms:
            for factor in term.factors:
                if factor.label not in self._levels and factor.is_categorical(data):
                    raise ValidationError(
                        f"{factor.label}: fitted as numeric but categorical in new data"
                    )
        X, _, _ = _model_matrix(data, self._terms, self._has_intercept, self._levels)
        return X

    def model_frame(self, data: Dataset | None = None) -> Dataset:
        """
        Columns the design reads from, response first when present.

        For array designs, returns the response and the raw design columns.
        """
        if self._terms is None:
            columns: dict[str, Any] = {self._response_name: self._y}
            for j, name in enumerate(self._column_names):
                if name != INTERCEPT_NAME:
                    columns[name] = NumericColumn(values=self._X[:, j])
            return Dataset.from_dict(columns)

        data = self._source if data is None else data
        names = []
        for term in self._terms:
            for factor in term.factors:
                if factor.variable not in names:
                    names.append(factor.variable)
        if self._response is not None and self._response.variable in data:
            names.insert(0, self._response.variable)
        return data.select(list(dict.fromkeys(names)))


def _model_matrix(
    data: Dataset,
    terms: tuple[Term, ...],
    intercept: bool,
    levels: dict[str, tuple[str, ...]],
) -> tuple[NDArray[np.floating[Any]], list[str], dict[str, slice]]:
    """Assemble intercept and term columns into one matrix."""
    n = data.n_observations
    blocks: list[NDArray] = []
    names: list[str] = []
    term_slices: dict[str, slice] = {}
    offset = 0

    if intercept:
        blocks.append(np.ones((n, 1), dtype=np.float64))
        names.append(INTERCEPT_NAME)
        term_slices[INTERCEPT_NAME] = slice(0, 1)
        offset = 1

    for term in terms:
        X_term, term_names = term.evaluate(data, levels)
        blocks.append(X_term)
        names.extend(term_names)
        term_slices[term.name] = slice(offset, offset + X_term.shape[1])
        offset += X_term.shape[1]

    X = np.hstack(blocks) if blocks else np.empty((n, 0), dtype=np.float64)
    return X, names, term_slices
