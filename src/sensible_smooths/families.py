"""Response families: predictor layout, log-likelihood and response simulation.

Each family names the distributional parameters it models (one linear
predictor per parameter), their default links, and two functions:

- ``loglik(y, params, scale, trials) -> float``
- ``simulate(params, scale, trials, rng) -> ndarray``

``params`` is a sequence with one array per predictor, already on the
response (inverse-link) scale.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Sequence, Tuple

import numpy as np
import scipy.stats

from .errors import ModelIncompatible

_EPS = 1e-12


@dataclass(frozen=True)
class Family:
    name: str
    parameters: Tuple[str, ...]
    links: Tuple[str, ...]
    has_scale: bool
    loglik: Callable[..., float]
    simulate: Callable[..., np.ndarray]

    @property
    def n_predictors(self) -> int:
        return len(self.parameters)


def _trials(trials: Optional[Any], shape: Tuple[int, ...]) -> np.ndarray:
    if trials is None:
        return np.ones(shape, dtype=int)
    n = np.asarray(trials)
    if np.any(n < 0) or not np.all(np.equal(np.mod(n, 1), 0)):
        raise ValueError("trials must be non-negative integers.")
    return np.broadcast_to(n.astype(int), shape)


# ---- gaussian ----------------------------------------------------------------
def _gaussian_loglik(y, params, scale=1.0, trials=None) -> float:
    mu = np.asarray(params[0], dtype=float)
    sd = np.sqrt(float(scale))
    return float(np.sum(scipy.stats.norm.logpdf(y, loc=mu, scale=sd)))


def _gaussian_simulate(params, scale=1.0, trials=None, rng=None):
    mu = np.asarray(params[0], dtype=float)
    return rng.normal(mu, np.sqrt(float(scale)))


# ---- poisson -----------------------------------------------------------------
def _poisson_loglik(y, params, scale=1.0, trials=None) -> float:
    mu = np.clip(np.asarray(params[0], dtype=float), _EPS, None)
    return float(np.sum(scipy.stats.poisson.logpmf(y, mu)))


def _poisson_simulate(params, scale=1.0, trials=None, rng=None):
    mu = np.clip(np.asarray(params[0], dtype=float), 0.0, None)
    return rng.poisson(mu).astype(float)


# ---- binomial ----------------------------------------------------------------
def _binomial_loglik(y, params, scale=1.0, trials=None) -> float:
    """``y`` holds success counts out of ``trials`` (default 1)."""
    p = np.clip(np.asarray(params[0], dtype=float), _EPS, 1.0 - _EPS)
    n = _trials(trials, p.shape)
    return float(np.sum(scipy.stats.binom.logpmf(y, n, p)))


def _binomial_simulate(params, scale=1.0, trials=None, rng=None):
    p = np.clip(np.asarray(params[0], dtype=float), 0.0, 1.0)
    n = _trials(trials, p.shape)
    return rng.binomial(n, p).astype(float)


# ---- gamma -------------------------------------------------------------------
def _gamma_loglik(y, params, scale=1.0, trials=None) -> float:
    mu = np.clip(np.asarray(params[0], dtype=float), _EPS, None)
    shape = 1.0 / float(scale)
    return float(np.sum(scipy.stats.gamma.logpdf(y, a=shape, scale=mu / shape)))


def _gamma_simulate(params, scale=1.0, trials=None, rng=None):
    mu = np.clip(np.asarray(params[0], dtype=float), _EPS, None)
    shape = 1.0 / float(scale)
    return rng.gamma(shape, mu / shape)


# ---- gaussian location-scale -------------------------------------------------
def _gaulss_loglik(y, params, scale=1.0, trials=None) -> float:
    mu = np.asarray(params[0], dtype=float)
    sd = np.clip(np.asarray(params[1], dtype=float), _EPS, None)
    return float(np.sum(scipy.stats.norm.logpdf(y, loc=mu, scale=sd)))


def _gaulss_simulate(params, scale=1.0, trials=None, rng=None):
    mu = np.asarray(params[0], dtype=float)
    sd = np.clip(np.asarray(params[1], dtype=float), 0.0, None)
    return rng.normal(mu, sd)


_FAMILIES: Dict[str, Family] = {
    "gaussian": Family(
        "gaussian", ("mu",), ("identity",), True, _gaussian_loglik, _gaussian_simulate
    ),
    "poisson": Family(
        "poisson", ("mu",), ("log",), False, _poisson_loglik, _poisson_simulate
    ),
    "binomial": Family(
        "binomial", ("mu",), ("logit",), False, _binomial_loglik, _binomial_simulate
    ),
    "gamma": Family(
        "gamma", ("mu",), ("inverse",), True, _gamma_loglik, _gamma_simulate
    ),
    "gaulss": Family(
        "gaulss",
        ("location", "scale"),
        ("identity", "log"),
        False,
        _gaulss_loglik,
        _gaulss_simulate,
    ),
}


def get_family(name: str) -> Family:
    """Return a family implementation by name."""
    try:
        return _FAMILIES[str(name)]
    except KeyError as e:
        raise ModelIncompatible(
            f"Unknown family {name!r}. Available: {tuple(_FAMILIES.keys())}"
        ) from e


AVAILABLE_FAMILIES = tuple(_FAMILIES.keys())


def simulate_response(
    family: Family,
    params: Sequence[np.ndarray],
    *,
    scale: float = 1.0,
    trials: Optional[Any] = None,
    rng: np.random.Generator,
) -> np.ndarray:
    if len(params) != family.n_predictors:
        raise ValueError(
            f"{family.name} needs {family.n_predictors} parameter arrays; got {len(params)}."
        )
    return np.asarray(family.simulate(params, scale=scale, trials=trials, rng=rng), dtype=float)
