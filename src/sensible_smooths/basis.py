from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

import numpy as np

from .bases import get_basis_kind
from .data import as_data_slice
from .errors import DimensionMismatch, UnsupportedDerivative
from .terms import SmoothTerm
from .util import points_digest, readonly

logger = logging.getLogger(__name__)

DERIV_ORDERS = (0, 1, 2)


@dataclass(frozen=True, eq=False)
class Basis:
    """Evaluated basis: ``values`` is n x K, columns in coefficient order."""

    term: str
    values: np.ndarray
    deriv: int = 0

    @property
    def shape(self) -> Tuple[int, int]:
        return self.values.shape  # type: ignore[return-value]

    def contract(self, beta_block: Any) -> np.ndarray:
        """``values @ beta_block`` for one coefficient vector or a stack of draws."""
        b = np.asarray(beta_block, dtype=float)
        K = self.values.shape[1]
        if b.shape[-1] != K:
            raise DimensionMismatch(
                f"Basis for {self.term!r} has {K} columns; coefficients have {b.shape[-1]}."
            )
        return b @ self.values.T if b.ndim == 2 else self.values @ b


def check_deriv(term: SmoothTerm, deriv: int) -> int:
    if deriv not in DERIV_ORDERS:
        raise UnsupportedDerivative(f"Derivative order must be one of {DERIV_ORDERS}; got {deriv!r}.")
    kind = get_basis_kind(term.kind)
    top = kind.max_deriv(term.state)
    if deriv > top:
        raise UnsupportedDerivative(
            f"{term.kind!r} basis of {term.label!r} supports derivatives up to order {top}; "
            f"got {deriv}."
        )
    return int(deriv)


def evaluate_term(term: SmoothTerm, data: Any, deriv: int = 0) -> np.ndarray:
    """Uncached design matrix of ``term`` at ``data`` (n x term.rank)."""
    deriv = check_deriv(term, deriv)
    kind = get_basis_kind(term.kind)
    X = term.constraint.apply(np.asarray(kind.design(term.state, data, deriv), dtype=float))
    if X.ndim != 2 or X.shape[1] != term.rank:
        raise DimensionMismatch(
            f"Reconstructed basis for {term.label!r} has shape {X.shape}; "
            f"term rank is {term.rank}."
        )
    return X


class BasisEvaluator:
    """Design matrices for smooth terms, cached per (term, deriv, points).

    Cached matrices are read-only, so one evaluator can be shared between
    threads.
    """

    def __init__(self) -> None:
        self._cache: Dict[Tuple[Any, ...], np.ndarray] = {}
        self._lock = threading.Lock()

    def evaluate(self, term: SmoothTerm, data: Any, deriv: int = 0) -> Basis:
        data = as_data_slice(data)
        deriv = check_deriv(term, deriv)
        for name in term.covariates:
            if name not in data:
                raise KeyError(f"Covariate {name!r} needed by {term.label!r} is missing.")
        # terms hash by identity, so the key also pins the term object
        key = (
            term,
            deriv,
            points_digest(data.columns, term.covariates),
        )
        with self._lock:
            hit: Optional[np.ndarray] = self._cache.get(key)
        if hit is not None:
            logger.debug("basis cache hit for %s (deriv=%d)", term.label, deriv)
            return Basis(term=term.label, values=hit, deriv=deriv)

        X = readonly(evaluate_term(term, data, deriv))
        if X.shape[0] != data.n_rows:
            raise DimensionMismatch(
                f"Basis for {term.label!r} has {X.shape[0]} rows for {data.n_rows} points."
            )
        with self._lock:
            X = self._cache.setdefault(key, X)
        return Basis(term=term.label, values=X, deriv=deriv)

    def clear(self) -> None:
        with self._lock:
            self._cache.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._cache)


def evaluate_basis(term: SmoothTerm, data: Any, deriv: int = 0) -> Basis:
    """One-off evaluation without a shared cache."""
    data = as_data_slice(data)
    return Basis(term=term.label, values=readonly(evaluate_term(term, data, deriv)), deriv=deriv)
