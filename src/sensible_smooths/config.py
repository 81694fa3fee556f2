from __future__ import annotations

from dataclasses import dataclass, fields, replace
from typing import Any, Dict, Mapping, Optional, Tuple

from .samplers import AVAILABLE_SAMPLERS
from .util import is_sequence


@dataclass(frozen=True)
class SamplingConfig:
    """Everything a posterior sampling call can be told.

    burn_in, thin, proposal_scale and n_chains only apply to
    ``metropolis_hastings``; deriv only applies to basis evaluation.
    ``n_draws=0`` skips sampling and uses the point estimate (draw id 0).
    """

    method: str = "gaussian"
    n_draws: int = 1000
    seed: Optional[int] = None
    workers: int = 1
    unconditional: bool = False
    terms: Optional[Tuple[str, ...]] = None
    exclude: Tuple[str, ...] = ()
    burn_in: int = 0
    thin: int = 1
    proposal_scale: float = 0.25
    n_chains: int = 1
    deriv: int = 0

    def __post_init__(self) -> None:
        if self.method not in AVAILABLE_SAMPLERS:
            raise ValueError(
                f"Unknown sampling method {self.method!r}. Available: {AVAILABLE_SAMPLERS}"
            )
        for name in ("n_draws", "workers", "burn_in", "thin", "n_chains", "deriv"):
            if isinstance(getattr(self, name), bool):
                raise TypeError(f"{name} must be an integer.")
            object.__setattr__(self, name, int(getattr(self, name)))
        if self.n_draws < 0:
            raise ValueError("n_draws must be >= 0.")
        if self.workers < 1:
            raise ValueError("workers must be >= 1.")
        if self.burn_in < 0:
            raise ValueError("burn_in must be >= 0.")
        if self.thin < 1:
            raise ValueError("thin must be >= 1.")
        if self.n_chains < 1:
            raise ValueError("n_chains must be >= 1.")
        if self.deriv not in (0, 1, 2):
            raise ValueError("deriv must be 0, 1 or 2.")
        if not float(self.proposal_scale) > 0:
            raise ValueError("proposal_scale must be positive.")
        object.__setattr__(self, "proposal_scale", float(self.proposal_scale))
        if self.seed is not None:
            object.__setattr__(self, "seed", int(self.seed))
        if self.terms is not None:
            object.__setattr__(self, "terms", _labels(self.terms, "terms"))
        object.__setattr__(self, "exclude", _labels(self.exclude, "exclude"))

    @staticmethod
    def from_dict(options: Mapping[str, Any]) -> "SamplingConfig":
        """Build from a plain mapping; unknown keys are an error."""
        _check_keys(options)
        return SamplingConfig(**dict(options))

    def with_options(self, **options: Any) -> "SamplingConfig":
        """Return a copy with ``options`` replaced (validated again)."""
        _check_keys(options)
        return replace(self, **options)

    def sampler_options(self) -> Dict[str, Any]:
        """Options understood by the selected sampler."""
        if self.method == "metropolis_hastings":
            return {
                "burn_in": self.burn_in,
                "thin": self.thin,
                "proposal_scale": self.proposal_scale,
                "n_chains": self.n_chains,
                "workers": self.workers,
            }
        return {"workers": self.workers}


def _labels(value: Any, name: str) -> Tuple[str, ...]:
    if isinstance(value, str):
        return (value,)
    if not is_sequence(value) and not isinstance(value, (set, frozenset)):
        raise TypeError(f"{name} must be a label or a sequence of labels.")
    return tuple(str(v) for v in value)


def _check_keys(options: Mapping[str, Any]) -> None:
    known = {f.name for f in fields(SamplingConfig)}
    unknown = sorted(set(options) - known)
    if unknown:
        raise ValueError(f"Unknown sampling options: {unknown}. Known: {sorted(known)}")
