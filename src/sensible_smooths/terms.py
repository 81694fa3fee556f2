from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field, replace
from typing import Any, Dict, Mapping, Optional, Sequence, Tuple

import numpy as np

from .bases import get_basis_kind
from .bases.common import covariate, sum_to_zero, symmetric

__all__ = ["Constraint", "SmoothTerm", "construct_smooth"]


@dataclass(frozen=True, eq=False)
class Constraint:
    """Identifiability constraint absorbed into the basis.

    ``matrix`` (K_raw x K) maps the constrained coefficients back to the raw
    basis: X = X_raw @ matrix, S = matrix' S_raw matrix.
    """

    kind: str = "none"  # "none" | "sum_to_zero"
    matrix: Optional[np.ndarray] = None

    def apply(self, X: np.ndarray) -> np.ndarray:
        return X if self.matrix is None else X @ self.matrix

    def apply_penalty(self, S: np.ndarray) -> np.ndarray:
        if self.matrix is None:
            return S
        return symmetric(self.matrix.T @ S @ self.matrix)


@dataclass(frozen=True, eq=False)
class SmoothTerm:
    label: str
    kind: str
    covariates: Tuple[str, ...]
    rank: int
    offset: int = 0  # first column of this term in the full coefficient vector
    predictor: int = 0
    constraint: Constraint = field(default_factory=Constraint)
    state: Mapping[str, Any] = field(default_factory=dict)
    penalty: Optional[np.ndarray] = None  # rank x rank, None if unpenalised
    sp: float = 0.0
    # Typical covariate values (median / modal level) for filling data slices
    typical: Mapping[str, Any] = field(default_factory=dict)
    # Training range of each numeric covariate
    ranges: Mapping[str, Tuple[float, float]] = field(default_factory=dict)

    @property
    def block(self) -> slice:
        return slice(self.offset, self.offset + self.rank)

    @property
    def penalized(self) -> bool:
        return self.penalty is not None

    def with_sp(self, sp: float) -> "SmoothTerm":
        """Return a copy carrying smoothing parameter ``sp``."""
        sp = float(sp)
        if not np.isfinite(sp) or sp < 0:
            raise ValueError("Smoothing parameters must be finite and >= 0.")
        return replace(self, sp=sp)

    def placed(self, *, offset: int, predictor: int) -> "SmoothTerm":
        return replace(self, offset=int(offset), predictor=int(predictor))


def _typical(values: np.ndarray) -> Any:
    if np.issubdtype(values.dtype, np.number):
        return float(np.median(values))
    counts = Counter(values.tolist())
    best = max(counts.values())
    return sorted(v for v, c in counts.items() if c == best)[0]


def _default_label(kind: str, covariates: Tuple[str, ...]) -> str:
    if kind == "linear":
        return ":".join(covariates)
    return f"s({','.join(covariates)})"


def construct_smooth(
    kind: str,
    data: Mapping[str, Any],
    covariates: Sequence[str],
    *,
    k: Optional[int] = None,
    label: Optional[str] = None,
    sp: float = 0.0,
    **options: Any,
) -> Tuple[SmoothTerm, np.ndarray]:
    """Build a term from training covariates.

    Places knots, computes the identifiability constraint on ``data`` and
    projects the penalty through it. Returns the term together with its
    training design matrix (n x rank), which is what a fitting engine would
    estimate the term's coefficients against.
    """
    basis = get_basis_kind(kind)
    covariates = tuple(covariates)
    cols: Dict[str, np.ndarray] = {c: covariate(data, c) for c in covariates}
    state = basis.setup(cols, covariates, k, dict(options))

    X_raw = np.asarray(basis.design(state, cols, 0), dtype=float)
    constraint = Constraint()
    if basis.centred:
        constraint = Constraint(kind="sum_to_zero", matrix=sum_to_zero(X_raw))

    S_raw = basis.penalty(state)
    S = None if S_raw is None else constraint.apply_penalty(np.asarray(S_raw, dtype=float))
    X = constraint.apply(X_raw)

    term = SmoothTerm(
        label=label or _default_label(kind, covariates),
        kind=kind,
        covariates=covariates,
        rank=int(X.shape[1]),
        constraint=constraint,
        state=state,
        penalty=S,
        typical={c: _typical(v) for c, v in cols.items()},
        ranges={
            c: (float(np.min(v)), float(np.max(v)))
            for c, v in cols.items()
            if np.issubdtype(v.dtype, np.number)
        },
    ).with_sp(sp)
    return term, X
