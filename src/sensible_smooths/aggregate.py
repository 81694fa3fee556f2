from __future__ import annotations

from dataclasses import dataclass
from typing import Any, List, Mapping, Optional, Sequence

import numpy as np
import pandas as pd

from .data import as_data_slice
from .errors import DimensionMismatch

COLUMNS = ("row_id", "draw_id", "parameter_name", "value")


@dataclass(frozen=True)
class SampleRecord:
    row_id: int
    draw_id: int
    parameter_name: str
    value: float


def _check(values: Mapping[str, np.ndarray], draw_ids: Any) -> np.ndarray:
    ids = np.asarray(draw_ids, dtype=int).reshape(-1)
    for name, v in values.items():
        v = np.asarray(v)
        if v.ndim != 2 or v.shape[0] != ids.size:
            raise DimensionMismatch(
                f"{name!r} values have shape {v.shape}; expected ({ids.size}, n)."
            )
    return ids


class SampleAggregator:
    """Flatten (draw x row) value matrices into long format.

    Order is parameter, then draw, then row, with input row order and draw ids
    preserved. Nothing is summarised here.
    """

    def records(self, values: Mapping[str, np.ndarray], draw_ids: Any) -> List[SampleRecord]:
        ids = _check(values, draw_ids)
        out: List[SampleRecord] = []
        for name, v in values.items():
            v = np.asarray(v, dtype=float)
            for s, d in enumerate(ids):
                out.extend(
                    SampleRecord(int(r), int(d), str(name), float(v[s, r]))
                    for r in range(v.shape[1])
                )
        return out

    def to_frame(
        self,
        values: Mapping[str, np.ndarray],
        draw_ids: Any,
        data: Optional[Any] = None,
    ) -> pd.DataFrame:
        """Tidy frame ``row_id, draw_id, parameter_name, <covariates...>, value``."""
        ids = _check(values, draw_ids)
        frames = []
        for name, v in values.items():
            v = np.asarray(v, dtype=float)
            S, n = v.shape
            cols = {
                "row_id": np.tile(np.arange(n, dtype=int), S),
                "draw_id": np.repeat(ids, n),
                "parameter_name": np.full(S * n, str(name), dtype=object),
            }
            if data is not None:
                ds = as_data_slice(data)
                if ds.n_rows != n:
                    raise DimensionMismatch(f"data has {ds.n_rows} rows; values have {n}.")
                for cov in ds.names:
                    if cov in COLUMNS:
                        raise ValueError(f"Covariate name {cov!r} clashes with an output column.")
                    cols[cov] = np.tile(ds[cov], S)
            cols["value"] = v.reshape(-1)
            frames.append(pd.DataFrame(cols))
        if not frames:
            return pd.DataFrame(columns=list(COLUMNS))
        return pd.concat(frames, ignore_index=True)

    def coefficients_frame(
        self, draws: np.ndarray, draw_ids: Any, names: Sequence[str]
    ) -> pd.DataFrame:
        """Long frame ``draw_id, term, value`` of raw coefficient draws."""
        B = np.asarray(draws, dtype=float)
        ids = np.asarray(draw_ids, dtype=int).reshape(-1)
        if B.ndim != 2 or B.shape != (ids.size, len(names)):
            raise DimensionMismatch(
                f"draws have shape {B.shape}; expected ({ids.size}, {len(names)})."
            )
        return pd.DataFrame(
            {
                "draw_id": np.repeat(ids, len(names)),
                "term": np.tile(np.asarray(names, dtype=object), ids.size),
                "value": B.reshape(-1),
            }
        )
