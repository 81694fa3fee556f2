from __future__ import annotations

import itertools
from dataclasses import dataclass
from typing import Any, Dict, Iterator, Mapping, Optional, Tuple

import numpy as np

from .util import prod


@dataclass(frozen=True, eq=False)
class DataSlice:
    """Covariate values at which bases and fitted values are evaluated.

    An ordered mapping of covariate name -> 1-D array, all of one length.
    Row ``i`` of every column is evaluation point ``i``.
    """

    columns: Mapping[str, np.ndarray]

    def __post_init__(self) -> None:
        cols: Dict[str, np.ndarray] = {}
        n = None
        for name, values in dict(self.columns).items():
            arr = np.asarray(values)
            if arr.ndim == 0:
                arr = arr.reshape(1)
            if arr.ndim != 1:
                raise ValueError(f"Column {name!r} must be one-dimensional; got shape {arr.shape}.")
            if n is None:
                n = arr.size
            elif arr.size != n:
                raise ValueError(
                    f"Column {name!r} has {arr.size} rows; expected {n} like the others."
                )
            arr = arr.copy()
            arr.setflags(write=False)
            cols[str(name)] = arr
        object.__setattr__(self, "columns", cols)

    @staticmethod
    def from_frame(frame: Any) -> "DataSlice":
        """Build from a pandas DataFrame (or any mapping of columns)."""
        if hasattr(frame, "columns") and hasattr(frame, "__getitem__") and not isinstance(frame, Mapping):
            return DataSlice({str(c): np.asarray(frame[c]) for c in frame.columns})
        return DataSlice(dict(frame))

    @staticmethod
    def grid(
        fixed: Optional[Mapping[str, Any]] = None, **axes: Any
    ) -> "DataSlice":
        """Cartesian product of ``axes`` (first axis varies slowest); every
        ``fixed`` value is repeated on all rows."""
        names = list(axes.keys())
        values = [np.asarray(axes[n]).reshape(-1) for n in names]
        n = prod(tuple(v.size for v in values)) if values else 1
        cols: Dict[str, np.ndarray] = {}
        if values:
            combos = list(itertools.product(*[range(v.size) for v in values]))
            idx = np.asarray(combos, dtype=int).reshape(n, len(values))
            for j, name in enumerate(names):
                cols[name] = values[j][idx[:, j]]
        for name, value in (fixed or {}).items():
            if name in cols:
                raise ValueError(f"{name!r} given both as a grid axis and a fixed value.")
            cols[name] = np.repeat(np.asarray([value]), n)
        return DataSlice(cols)

    @property
    def n_rows(self) -> int:
        for v in self.columns.values():
            return int(v.size)
        return 0

    @property
    def names(self) -> Tuple[str, ...]:
        return tuple(self.columns.keys())

    def __getitem__(self, name: str) -> np.ndarray:
        try:
            return self.columns[name]
        except KeyError as e:
            raise KeyError(f"Covariate {name!r} is missing from the evaluation data.") from e

    def __contains__(self, name: object) -> bool:
        return name in self.columns

    def __iter__(self) -> Iterator[str]:
        return iter(self.columns)

    def __len__(self) -> int:
        return len(self.columns)


def as_data_slice(data: Any) -> DataSlice:
    if isinstance(data, DataSlice):
        return data
    return DataSlice.from_frame(data)


def evenly(x: Any, n: int = 100, lower: Optional[float] = None, upper: Optional[float] = None) -> np.ndarray:
    """``n`` evenly spaced values over the range of ``x`` (or [lower, upper])."""
    x = np.asarray(x, dtype=float)
    if n < 1:
        raise ValueError("n must be >= 1.")
    lo = float(np.min(x)) if lower is None else float(lower)
    hi = float(np.max(x)) if upper is None else float(upper)
    return np.linspace(lo, hi, int(n))


def data_slice(model: Any, fill: Optional[Mapping[str, Any]] = None, **axes: Any) -> DataSlice:
    """Grid over ``axes`` with every other model covariate held at its typical
    value (median for numeric covariates, modal level for factors)."""
    from .model import as_adapter

    adapter = as_adapter(model)
    fixed = {k: v for k, v in adapter.typical_values().items() if k not in axes}
    fixed.update({k: v for k, v in (fill or {}).items() if k not in axes})
    return DataSlice.grid(fixed=fixed, **axes)
