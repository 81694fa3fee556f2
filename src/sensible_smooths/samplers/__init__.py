"""Sampler implementations + registry."""

from __future__ import annotations

from typing import Dict

from .common import PosteriorDraws, Sampler
from .gaussian import GaussianSampler, sample_gaussian
from .metropolis import MetropolisHastingsSampler

_SAMPLERS: Dict[str, Sampler] = {
    "gaussian": GaussianSampler(),
    "metropolis_hastings": MetropolisHastingsSampler(),
}


def get_sampler(name: str) -> Sampler:
    """Return a sampler implementation by name."""
    try:
        return _SAMPLERS[name]
    except KeyError as e:
        raise ValueError(
            f"Unknown sampler {name!r}. Available: {tuple(_SAMPLERS.keys())}"
        ) from e


AVAILABLE_SAMPLERS = tuple(_SAMPLERS.keys())

__all__ = [
    "AVAILABLE_SAMPLERS",
    "GaussianSampler",
    "MetropolisHastingsSampler",
    "PosteriorDraws",
    "get_sampler",
    "sample_gaussian",
]
