"""Link functions and their registry."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Dict

import numpy as np
from scipy.special import expit, logit, ndtr, ndtri

from .errors import ModelIncompatible


@dataclass(frozen=True)
class Link:
    """A link g (mean scale -> linear predictor scale) and its inverse."""

    name: str
    link: Callable[[np.ndarray], np.ndarray]
    inverse: Callable[[np.ndarray], np.ndarray]

    def __call__(self, mu):
        return self.link(np.asarray(mu, dtype=float))


def _cloglog(mu):
    return np.log(-np.log1p(-mu))


def _inv_cloglog(eta):
    return -np.expm1(-np.exp(eta))


_LINKS: Dict[str, Link] = {
    "identity": Link("identity", lambda mu: mu, lambda eta: eta),
    "log": Link("log", np.log, np.exp),
    "logit": Link("logit", logit, expit),
    "probit": Link("probit", ndtri, ndtr),
    "cloglog": Link("cloglog", _cloglog, _inv_cloglog),
    "inverse": Link("inverse", lambda mu: 1.0 / mu, lambda eta: 1.0 / eta),
    "sqrt": Link("sqrt", np.sqrt, np.square),
}


def get_link(name: str) -> Link:
    """Return a link implementation by name."""
    try:
        return _LINKS[str(name)]
    except KeyError as e:
        raise ModelIncompatible(
            f"Unknown link {name!r}. Available: {tuple(_LINKS.keys())}"
        ) from e


AVAILABLE_LINKS = tuple(_LINKS.keys())
