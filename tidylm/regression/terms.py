"""
Model terms: explicit column transforms for building design matrices.

A Factor names one dataset column and the transform applied to it
(identity, forced categorical, element-wise function, power, raw
polynomial). A Term is a product of one or more factors; a single-factor
term is a main effect, a multi-factor term an interaction.

Factors are usually produced by the formula compiler from code strings
such as ``log(x)`` or ``poly(x, 2)``, but can be built directly:

    Term.of(Factor('x'), Factor('group'))     # x:group
    Term.of(Factor('x', 'poly', degree=3))    # poly(x, 3)
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Mapping

import numpy as np
from numpy.typing import NDArray

from tidylm.core.dataset import Dataset, CategoricalColumn, categorical
from tidylm.core.exceptions import ValidationError
from tidylm.regression.encoding import encode_treatment, interaction_columns


_NAME = r'([A-Za-z_][A-Za-z0-9_.]*)'

ELEMENTWISE = {
    'log': np.log,
    'log2': np.log2,
    'log10': np.log10,
    'exp': np.exp,
    'sqrt': np.sqrt,
}

TRANSFORMS = ('identity', 'categorical', 'power', 'poly') + tuple(ELEMENTWISE)

_PATTERNS = (
    (re.compile(rf'^{_NAME}$'), 'identity'),
    (re.compile(rf'^C\(\s*{_NAME}\s*\)$'), 'categorical'),
    (re.compile(rf'^({"|".join(ELEMENTWISE)})\(\s*{_NAME}\s*\)$'), 'elementwise'),
    (re.compile(rf'^I\(\s*{_NAME}\s*(?:\*\*|\^)\s*(\d+)\s*\)$'), 'power'),
    (re.compile(rf'^poly\(\s*{_NAME}\s*,\s*(\d+)\s*\)$'), 'poly'),
)


@dataclass(frozen=True)
class Factor:
    """
    One dataset column plus the transform applied to it.

    Attributes:
        variable: Dataset column name
        transform: One of TRANSFORMS
        degree: Exponent for 'power', highest degree for 'poly'
    """
    variable: str
    transform: str = 'identity'
    degree: int = 1

    def __post_init__(self) -> None:
        if self.transform not in TRANSFORMS:
            raise ValidationError(
                f"Unknown transform {self.transform!r}; expected one of {list(TRANSFORMS)}"
            )
        if self.degree < 1:
            raise ValidationError(f"{self.label}: degree must be >= 1, got {self.degree}")

    @classmethod
    def from_code(cls, code: str) -> Factor:
        """
        Parse a factor code string.

        Supported: ``x``, ``C(x)``, ``log(x)``, ``log2(x)``, ``log10(x)``,
        ``exp(x)``, ``sqrt(x)``, ``I(x ** k)``, ``I(x^k)``, ``poly(x, d)``.

        Raises:
            ValidationError: For anything else
        """
        code = code.strip()
        for pattern, kind in _PATTERNS:
            match = pattern.match(code)
            if match is None:
                continue
            if kind == 'identity':
                return cls(match.group(1))
            if kind == 'categorical':
                return cls(match.group(1), 'categorical')
            if kind == 'elementwise':
                return cls(match.group(2), match.group(1))
            return cls(match.group(1), kind, degree=int(match.group(2)))
        raise ValidationError(
            f"Unsupported term {code!r}. Supported forms: x, C(x), "
            f"{', '.join(f'{fn}(x)' for fn in ELEMENTWISE)}, I(x ** k), poly(x, d)"
        )

    @property
    def label(self) -> str:
        """Display name used as the coefficient-name prefix."""
        if self.transform == 'identity':
            return self.variable
        if self.transform == 'categorical':
            return f"C({self.variable})"
        if self.transform == 'power':
            return f"I({self.variable}^{self.degree})"
        if self.transform == 'poly':
            return f"poly({self.variable}, {self.degree})"
        return f"{self.transform}({self.variable})"

    def is_categorical(self, data: Dataset) -> bool:
        """Whether this factor expands into indicator columns on ``data``."""
        if self.transform == 'categorical':
            return True
        return self.transform == 'identity' and data.is_categorical(self.variable)

    def levels_in(self, data: Dataset) -> tuple[str, ...]:
        """Level set this factor takes on ``data`` (categorical factors only)."""
        return self._categorical_column(data).levels

    def evaluate(
        self,
        data: Dataset,
        levels: tuple[str, ...] | None = None,
    ) -> tuple[NDArray[np.floating[Any]], list[str]]:
        """
        Compute this factor's columns on ``data``.

        Args:
            data: Source dataset
            levels: Level set to encode against for categorical factors;
                defaults to the levels found in ``data``

        Returns:
            ((n, width) matrix, column names)

        Raises:
            ValidationError: If a numeric transform is applied to a
                categorical column or produces non-finite values
            UnknownLevelError: If data has labels outside ``levels``
        """
        # A factor encoded as categorical at fit time stays categorical on new
        # data, even when its values arrive untagged as plain numbers
        if levels is not None or self.is_categorical(data):
            column = self._categorical_column(data)
            block = encode_treatment(
                column.labels,
                levels if levels is not None else column.levels,
                name=self.label,
            )
            return block.X, [f"{self.label}{level}" for level in block.levels]

        x = self._numeric_values(data)
        if self.transform == 'identity':
            return x.reshape(-1, 1), [self.label]
        if self.transform == 'power':
            values = x ** self.degree
            names = [self.label]
        elif self.transform == 'poly':
            values = np.column_stack([x ** k for k in range(1, self.degree + 1)])
            names = [f"{self.label}{k}" for k in range(1, self.degree + 1)]
        else:
            with np.errstate(divide='ignore', invalid='ignore', over='ignore'):
                values = ELEMENTWISE[self.transform](x)
            names = [self.label]

        values = np.asarray(values, dtype=np.float64).reshape(len(x), -1)
        if not np.all(np.isfinite(values)):
            n_bad = int(np.sum(~np.isfinite(values)))
            raise ValidationError(
                f"{self.label}: transform produced {n_bad} non-finite values"
            )
        return values, names

    def _numeric_values(self, data: Dataset) -> NDArray[np.floating[Any]]:
        column = data[self.variable]
        if isinstance(column, CategoricalColumn):
            raise ValidationError(
                f"{self.label}: column {self.variable!r} is categorical; "
                f"numeric transforms need a numeric column"
            )
        return column.values

    def _categorical_column(self, data: Dataset) -> CategoricalColumn:
        column = data[self.variable]
        if isinstance(column, CategoricalColumn):
            return column
        # Integral codes read as 4, 6, 8 rather than 4.0, 6.0, 8.0, value by value
        # so a label does not depend on the rest of the column
        values = np.array(
            [int(v) if float(v).is_integer() else float(v) for v in column.values],
            dtype=object,
        )
        return categorical(values, name=self.label)


@dataclass(frozen=True)
class Term:
    """
    A main effect (one factor) or interaction (several factors).

    Columns of an interaction are the products of every combination of
    its factors' columns.
    """
    factors: tuple[Factor, ...]

    def __post_init__(self) -> None:
        if not self.factors:
            raise ValidationError("A term needs at least one factor")

    @classmethod
    def of(cls, *factors: Factor | str) -> Term:
        """Build a term from factors or factor code strings."""
        return cls(tuple(
            f if isinstance(f, Factor) else Factor.from_code(f) for f in factors
        ))

    @property
    def name(self) -> str:
        return ":".join(f.label for f in self.factors)

    @property
    def order(self) -> int:
        """Number of factors: 1 for a main effect, 2 for a two-way interaction."""
        return len(self.factors)

    def evaluate(
        self,
        data: Dataset,
        levels: Mapping[str, tuple[str, ...]] | None = None,
    ) -> tuple[NDArray[np.floating[Any]], list[str]]:
        """
        Compute this term's columns on ``data``.

        Args:
            data: Source dataset
            levels: Factor label -> level set to encode against

        Returns:
            ((n, width) matrix, column names)
        """
        levels = levels or {}
        X, names = self.factors[0].evaluate(data, levels.get(self.factors[0].label))
        for factor in self.factors[1:]:
            X_b, names_b = factor.evaluate(data, levels.get(factor.label))
            X, names = interaction_columns(X, X_b, names, names_b)
        return X, names
