from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Protocol, Tuple, Type
from warnings import warn

import numpy as np

from ..errors import CovarianceWarning, DimensionMismatch, SamplingCancelled
from ..util import as_square, as_vector

logger = logging.getLogger(__name__)

CancelCheck = Optional[Callable[[], bool]]
LogPosterior = Callable[[np.ndarray], float]


@dataclass(frozen=True)
class PosteriorDraws:
    """Sampled coefficient vectors returned by any sampler."""

    draws: np.ndarray  # (S, p)
    draw_ids: np.ndarray  # (S,), 1-based; 0 is reserved for the point estimate
    method: str
    seed: Optional[int] = None
    warnings: Tuple[str, ...] = ()
    stats: Dict[str, Any] = field(default_factory=dict)

    @staticmethod
    def point_estimate(beta: Any) -> "PosteriorDraws":
        b = as_vector(beta, "beta")
        return PosteriorDraws(
            draws=b[None, :].copy(),
            draw_ids=np.zeros(1, dtype=int),
            method="point_estimate",
        )

    @property
    def n_draws(self) -> int:
        return int(self.draws.shape[0])

    def __len__(self) -> int:
        return self.n_draws


class Sampler(Protocol):
    """Sampler protocol: draw coefficient vectors around beta."""

    name: str

    def draw(
        self,
        *,
        beta: np.ndarray,
        cov: np.ndarray,
        n_draws: int,
        seed: Optional[int],
        options: Dict[str, Any],
        log_posterior: Optional[LogPosterior] = None,
        cancel: CancelCheck = None,
    ) -> PosteriorDraws: ...


def check_cancel(cancel: CancelCheck, where: str) -> None:
    if cancel is not None and cancel():
        raise SamplingCancelled(f"Sampling cancelled {where}.")


def note(messages: List[str], message: str, category: Type[Warning]) -> None:
    """Record a non-fatal diagnostic on the result and emit it as a warning."""
    messages.append(message)
    warn(message, category, stacklevel=3)


def check_inputs(beta: Any, cov: Any) -> Tuple[np.ndarray, np.ndarray]:
    b = as_vector(beta, "beta")
    try:
        V = as_square(cov, "covariance")
    except ValueError as e:
        raise DimensionMismatch(str(e)) from e
    if V.shape[0] != b.size:
        raise DimensionMismatch(
            f"covariance is {V.shape} but beta has {b.size} coefficients."
        )
    if not (np.all(np.isfinite(b)) and np.all(np.isfinite(V))):
        raise ValueError("beta and covariance must be finite.")
    return b, V


def factor_covariance(cov: np.ndarray, messages: List[str]) -> Tuple[np.ndarray, str]:
    """Return L with L L' = cov and the method used.

    Cholesky first; if the matrix is not numerically positive definite, an
    eigendecomposition with negative eigenvalues clamped to zero.
    """
    cov = 0.5 * (cov + cov.T)
    try:
        L = np.linalg.cholesky(cov)
        logger.debug("covariance factorised by Cholesky (p=%d)", cov.shape[0])
        return L, "cholesky"
    except np.linalg.LinAlgError:
        pass

    w, v = np.linalg.eigh(cov)
    n_neg = int(np.sum(w < 0))
    w = np.clip(w, 0.0, None)
    note(
        messages,
        "Covariance matrix is not positive definite; sampling from an "
        f"eigendecomposition with {n_neg} negative eigenvalue(s) clamped to zero.",
        CovarianceWarning,
    )
    return v * np.sqrt(w)[None, :], "eigen"
