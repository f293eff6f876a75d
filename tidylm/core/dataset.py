"""
Dataset: named, row-aligned columns.

A Dataset is the "I have data" abstraction. It knows which columns are
numeric and which are categorical, but nothing about models. Whether a
column is numeric or categorical is decided here, once, when the dataset
is built; nothing downstream re-infers it.

Usage:
    from tidylm import Dataset, categorical

    ds = Dataset.from_columns(
        y=[1.2, 2.3, 3.1],
        x=[0.5, 1.0, 1.5],
        group=categorical(['b', 'a', 'b'], levels=['b', 'a']),
    )
    ds = Dataset.from_file("data.csv")
    ds = Dataset.from_dataframe(df, levels={'group': ['ctrl', 'trt']})

    ds.keys()          # ('y', 'x', 'group')
    ds['group'].levels # ('b', 'a')
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterator, Mapping, Sequence, Union, TYPE_CHECKING

import numpy as np
from numpy.typing import ArrayLike, NDArray

from tidylm.core.exceptions import ValidationError, DimensionMismatchError
from tidylm.core.validation import (
    check_array,
    check_1d,
    check_finite,
    check_levels,
    check_labels_in_levels,
)

if TYPE_CHECKING:
    import pandas as pd


@dataclass(frozen=True)
class NumericColumn:
    """A column of finite float64 values."""
    values: NDArray[np.floating[Any]]

    def __len__(self) -> int:
        return len(self.values)

    @property
    def is_categorical(self) -> bool:
        return False


@dataclass(frozen=True)
class CategoricalColumn:
    """
    A column of string labels drawn from an ordered level set.

    The first level is the reference level for treatment coding.
    """
    labels: NDArray[np.str_]
    levels: tuple[str, ...]

    def __len__(self) -> int:
        return len(self.labels)

    @property
    def is_categorical(self) -> bool:
        return True

    @property
    def reference(self) -> str:
        """The baseline level omitted from indicator coding."""
        return self.levels[0]

    def codes(self) -> NDArray[np.intp]:
        """Integer level index for every row."""
        index = {level: i for i, level in enumerate(self.levels)}
        return np.array([index[label] for label in self.labels], dtype=np.intp)


Column = Union[NumericColumn, CategoricalColumn]


def numeric(values: ArrayLike, name: str = 'values') -> NumericColumn:
    """Build a numeric column, rejecting non-numeric or non-finite data."""
    arr = check_array(values, name)
    check_1d(arr, name)
    check_finite(arr, name)
    return NumericColumn(values=arr.astype(np.float64, copy=False))


def categorical(
    values: ArrayLike,
    levels: Sequence[Any] | None = None,
    name: str = 'values',
) -> CategoricalColumn:
    """
    Build a categorical column.

    Labels are stored as strings. Without explicit levels, the level set is
    the sorted unique labels (so the alphabetically first label becomes the
    reference level).

    Args:
        values: 1D sequence of labels
        levels: Ordered level set; the first level is the reference
        name: Column name for error messages

    Raises:
        ValidationError: If labels are missing or not 1D, or levels are empty
            or duplicated
        UnknownLevelError: If a label is not among explicit levels
    """
    raw = np.asarray(values, dtype=object)
    check_1d(raw, name)
    n_missing = sum(1 for v in raw if _is_missing(v))
    if n_missing:
        raise ValidationError(f"{name}: contains {n_missing} missing labels")

    labels = np.array([str(v) for v in raw], dtype=np.str_)

    if levels is None:
        # Sort on the raw values so 2 < 10 for integer labels
        unique = list(dict.fromkeys(raw.tolist()))
        try:
            ordered = sorted(unique)
        except TypeError:
            ordered = sorted(unique, key=str)
        level_set = tuple(dict.fromkeys(str(v) for v in ordered))
        if not level_set:
            raise ValidationError(f"{name}: cannot infer levels from an empty column")
    else:
        level_set = check_levels(levels, name)
        check_labels_in_levels(labels, level_set, name)

    return CategoricalColumn(labels=labels, levels=level_set)


def as_column(values: Any, name: str) -> Column:
    """
    Tag raw values as numeric or categorical.

    Columns already tagged are returned unchanged. Booleans, strings and
    objects become categorical; integers and floats become numeric.
    """
    if isinstance(values, (NumericColumn, CategoricalColumn)):
        return values

    arr = np.asarray(values)
    if arr.dtype.kind == 'b':
        return categorical(arr, levels=['False', 'True'], name=name)
    if arr.dtype.kind in 'iuf':
        return numeric(arr, name)
    if arr.dtype.kind in 'USO':
        return categorical(arr, name=name)
    raise ValidationError(f"{name}: unsupported column dtype {arr.dtype}")


def _is_missing(value: Any) -> bool:
    if value is None:
        return True
    return isinstance(value, float) and np.isnan(value)


@dataclass(frozen=True)
class Dataset:
    """
    Immutable, ordered collection of equal-length named columns.

    Construct via the factory classmethods, not directly.
    """
    _columns: dict[str, Column]
    _n: int
    _metadata: dict[str, Any] = field(default_factory=dict)

    # === Column Access ===

    def keys(self) -> tuple[str, ...]:
        """Column names in insertion order."""
        return tuple(self._columns)

    def __getitem__(self, key: str) -> Column:
        if key not in self._columns:
            raise KeyError(
                f"Dataset has no column '{key}'. Available: {list(self._columns)}"
            )
        return self._columns[key]

    def __contains__(self, key: object) -> bool:
        return key in self._columns

    def __iter__(self) -> Iterator[str]:
        return iter(self._columns)

    # === Properties ===

    @property
    def n_observations(self) -> int:
        """Number of rows."""
        return self._n

    @property
    def metadata(self) -> dict[str, Any]:
        return self._metadata.copy()

    def is_categorical(self, key: str) -> bool:
        return self[key].is_categorical

    def select(self, names: Sequence[str]) -> Dataset:
        """New Dataset holding only the named columns, in the given order."""
        return Dataset(
            _columns={name: self[name] for name in names},
            _n=self._n,
            _metadata=self._metadata,
        )

    def to_dataframe(self) -> 'pd.DataFrame':
        """Convert to pandas; categorical columns keep their level order."""
        import pandas as pd

        data: dict[str, Any] = {}
        for name, col in self._columns.items():
            if isinstance(col, CategoricalColumn):
                data[name] = pd.Categorical(col.labels, categories=list(col.levels))
            else:
                data[name] = col.values
        return pd.DataFrame(data)

    def __repr__(self) -> str:
        kinds = ", ".join(
            f"{name}: {'categorical' if col.is_categorical else 'numeric'}"
            for name, col in self._columns.items()
        )
        return f"Dataset(n={self._n}, {{{kinds}}})"

    # === Factory Methods ===

    @classmethod
    def from_dict(
        cls,
        columns: Mapping[str, Any],
        *,
        levels: Mapping[str, Sequence[Any]] | None = None,
        metadata: Mapping[str, Any] | None = None,
    ) -> Dataset:
        """
        Construct from a mapping of column name -> values.

        Args:
            columns: Name -> array-like, or an already-tagged column
            levels: Name -> ordered level set; forces those columns to be
                categorical with the given reference level
            metadata: Extra metadata to carry along

        Raises:
            ValidationError: If there are no columns or levels name a missing column
            DimensionMismatchError: If columns differ in length
        """
        if not columns:
            raise ValidationError("Dataset requires at least one column")

        levels = dict(levels or {})
        unknown = sorted(set(levels) - set(columns))
        if unknown:
            raise ValidationError(f"levels given for unknown columns: {unknown}")

        storage: dict[str, Column] = {}
        for name, values in columns.items():
            if name in levels:
                if isinstance(values, CategoricalColumn):
                    values = values.labels
                storage[name] = categorical(values, levels=levels[name], name=name)
            else:
                storage[name] = as_column(values, name)

        lengths = {name: len(col) for name, col in storage.items()}
        if len(set(lengths.values())) > 1:
            details = ", ".join(f"{name}={length}" for name, length in lengths.items())
            raise DimensionMismatchError(
                f"Dataset columns have inconsistent lengths: {details}",
                lengths=lengths,
            )

        meta = {'source': 'columns', 'columns': list(storage)}
        meta.update(metadata or {})
        return cls(_columns=storage, _n=next(iter(lengths.values())), _metadata=meta)

    @classmethod
    def from_columns(cls, **columns: Any) -> Dataset:
        """Construct from keyword columns: Dataset.from_columns(y=..., x=...)."""
        return cls.from_dict(columns)

    @classmethod
    def from_dataframe(
        cls,
        df: 'pd.DataFrame',
        *,
        levels: Mapping[str, Sequence[Any]] | None = None,
        source_path: str | None = None,
    ) -> Dataset:
        """
        Construct from a pandas DataFrame.

        pandas ``category`` columns keep their category order as level order;
        object/string/bool columns become categorical with sorted levels.

        Raises:
            ValidationError: If any column has missing values
        """
        import pandas as pd

        levels = dict(levels or {})
        columns: dict[str, Any] = {}
        for col in df.columns:
            name = str(col)
            series = df[col]
            n_missing = int(series.isna().sum())
            if n_missing:
                raise ValidationError(f"{name}: contains {n_missing} missing values")
            if isinstance(series.dtype, pd.CategoricalDtype) and name not in levels:
                columns[name] = categorical(
                    series.astype(str).to_numpy(),
                    levels=[str(c) for c in series.cat.categories],
                    name=name,
                )
            else:
                columns[name] = series.to_numpy()

        metadata: dict[str, Any] = {'source': 'dataframe'}
        if source_path:
            metadata['source_path'] = source_path
        return cls.from_dict(columns, levels=levels, metadata=metadata)

    @classmethod
    def from_file(
        cls,
        path: str | Path,
        *,
        columns: list[str] | None = None,
        levels: Mapping[str, Sequence[Any]] | None = None,
    ) -> Dataset:
        """Construct from a CSV or TSV file."""
        path = Path(path)
        suffix = path.suffix.lower()

        if suffix in ('.csv', '.tsv'):
            import pandas as pd
            sep = '\t' if suffix == '.tsv' else ','
            df = pd.read_csv(path, sep=sep, usecols=columns)
            return cls.from_dataframe(df, levels=levels, source_path=str(path))
        raise ValidationError(f"Unknown file format: {suffix}")
