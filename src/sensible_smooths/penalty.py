from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

import numpy as np
import pandas as pd

from .errors import DimensionMismatch
from .model import ModelAdapter, as_adapter
from .terms import SmoothTerm
from .util import readonly


@dataclass(frozen=True, eq=False)
class PenaltyMatrix:
    """Roughness penalty S of one term and its smoothing parameter."""

    term: str
    matrix: np.ndarray  # K x K
    sp: float
    null_space_dim: int  # K - rank(S): functions the penalty leaves alone

    @property
    def scaled(self) -> np.ndarray:
        """lambda * S"""
        return self.sp * self.matrix


def _null_space_dim(S: np.ndarray) -> int:
    if not np.any(S):
        return S.shape[0]
    w = np.linalg.eigvalsh(S)
    tol = S.shape[0] * np.finfo(float).eps ** 0.75 * float(np.max(np.abs(w)))
    return int(np.sum(w <= tol))


class PenaltyAccessor:
    """Penalty matrices and smoothing parameters of a fitted model.

    Smoothing parameters are read from the terms and never modified.
    """

    def __init__(self, model: Any) -> None:
        self._adapter: ModelAdapter = as_adapter(model)

    def _resolve(self, term: Any) -> SmoothTerm:
        return self._adapter.term(term) if isinstance(term, str) else term

    def penalty(self, term: Any) -> PenaltyMatrix:
        t = self._resolve(term)
        if t.penalty is None:
            S = np.zeros((t.rank, t.rank))
        else:
            S = np.asarray(t.penalty, dtype=float)
            if S.shape != (t.rank, t.rank):
                raise DimensionMismatch(
                    f"Penalty of {t.label!r} is {S.shape}; term rank is {t.rank}."
                )
        return PenaltyMatrix(
            term=t.label,
            matrix=readonly(S.copy()),
            sp=float(t.sp),
            null_space_dim=_null_space_dim(S),
        )

    def smoothing_parameter(self, term: Any) -> float:
        return float(self._resolve(term).sp)

    def combined(self, predictor: Optional[int] = None) -> np.ndarray:
        """Block-diagonal sum of lambda * S over terms.

        ``predictor=None`` gives the p x p matrix for the whole model; an index
        gives the matrix for that predictor's coefficient block only.
        Intercepts and unpenalised terms contribute zero blocks.
        """
        a = self._adapter
        if predictor is None:
            start, size = 0, a.n_coefficients
            terms = a.terms()
        else:
            block = a.coefficient_block(predictor)
            start, size = block.start, block.stop - block.start
            terms = a.smooth_terms(predictor)
        out = np.zeros((size, size))
        for t in terms:
            if t.penalty is None:
                continue
            pen = self.penalty(t)
            lo = t.offset - start
            out[lo : lo + t.rank, lo : lo + t.rank] = pen.scaled
        return out

    def table(self, term: Any, rescale: bool = False) -> pd.DataFrame:
        """Tidy ``term, row, col, value`` frame of one term's penalty.

        ``rescale=True`` divides by the largest absolute entry so penalties of
        different terms can be compared by shape.
        """
        pen = self.penalty(term)
        S = np.asarray(pen.matrix, dtype=float)
        if rescale:
            top = float(np.max(np.abs(S))) if S.size else 0.0
            if top > 0:
                S = S / top
        K = S.shape[0]
        rows, cols = np.indices((K, K))
        return pd.DataFrame(
            {
                "term": np.full(K * K, pen.term, dtype=object),
                "row": rows.reshape(-1) + 1,
                "col": cols.reshape(-1) + 1,
                "value": S.reshape(-1),
            }
        )
