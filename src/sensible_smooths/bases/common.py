from __future__ import annotations

from typing import Any, Callable, Dict, Mapping, Optional, Protocol, Tuple

import numpy as np

BasisState = Dict[str, Any]


class BasisKind(Protocol):
    """Capability set shared by every basis kind.

    ``design`` and ``penalty`` work in the raw (unconstrained) parameterisation;
    the identifiability constraint is applied by the caller.
    """

    name: str
    centred: bool  # sum-to-zero constraint applied at construction

    def setup(
        self,
        data: Mapping[str, np.ndarray],
        covariates: Tuple[str, ...],
        k: Optional[int],
        options: Dict[str, Any],
    ) -> BasisState: ...

    def max_deriv(self, state: Mapping[str, Any]) -> int: ...

    def design(
        self, state: Mapping[str, Any], data: Mapping[str, np.ndarray], deriv: int
    ) -> np.ndarray: ...

    def penalty(self, state: Mapping[str, Any]) -> Optional[np.ndarray]: ...


def covariate(data: Mapping[str, Any], name: str) -> np.ndarray:
    try:
        col = data[name]
    except KeyError as e:
        raise KeyError(f"Covariate {name!r} is missing from the evaluation data.") from e
    return np.asarray(col)


def numeric_covariate(data: Mapping[str, Any], name: str) -> np.ndarray:
    x = covariate(data, name)
    try:
        x = x.astype(float)
    except (TypeError, ValueError) as e:
        raise TypeError(f"Covariate {name!r} must be numeric for this basis.") from e
    if x.ndim != 1:
        raise ValueError(f"Covariate {name!r} must be one-dimensional; got shape {x.shape}.")
    return x


def place_knots(x: np.ndarray, k: int, name: str) -> np.ndarray:
    """``k`` knots spread evenly through the sorted unique values of ``x``."""
    xu = np.unique(x)
    if xu.size < k:
        raise ValueError(
            f"Covariate {name!r} has {xu.size} unique values; k={k} needs at least {k}."
        )
    pos = np.linspace(0.0, xu.size - 1.0, k)
    return np.interp(pos, np.arange(xu.size, dtype=float), xu)


def sum_to_zero(X: np.ndarray) -> np.ndarray:
    """Null-space basis Z of the column sums of ``X`` (K x K-1).

    ``X @ Z`` has columns summing to zero over the training points.
    """
    C = X.sum(axis=0)[:, None]
    Q, _ = np.linalg.qr(C, mode="complete")
    return Q[:, 1:]


def symmetric(S: np.ndarray) -> np.ndarray:
    return 0.5 * (S + S.T)


def extrapolate_linear(
    x: np.ndarray,
    lo: float,
    hi: float,
    inside: Callable[[np.ndarray, int], np.ndarray],
    deriv: int,
    ncol: int,
) -> np.ndarray:
    """Evaluate ``inside`` on [lo, hi] and continue it linearly beyond."""
    out = np.zeros((x.size, ncol), dtype=float)
    mask = (x >= lo) & (x <= hi)
    if mask.any():
        out[mask] = inside(x[mask], deriv)
    for bound, outside in ((lo, x < lo), (hi, x > hi)):
        if not outside.any():
            continue
        b = np.array([bound], dtype=float)
        if deriv == 0:
            out[outside] = inside(b, 0) + (x[outside] - bound)[:, None] * inside(b, 1)
        elif deriv == 1:
            out[outside] = inside(b, 1)
        # second derivative of a linear continuation is zero
    return out
