"""Random-walk Metropolis-Hastings over the coefficient vector.

For posteriors that are visibly non-Gaussian the normal approximation can be
poor. The chain here proposes beta' = beta + scale * L z with L the Cholesky
factor of the approximate covariance, and accepts with probability
min(1, exp(logpost(beta') - logpost(beta))).
"""
from __future__ import annotations

import logging
import math
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

import numpy as np

from ..errors import ConvergenceWarning
from ..util import STREAM_CHAINS, resolve_seed, substream
from .common import (
    CancelCheck,
    LogPosterior,
    PosteriorDraws,
    check_cancel,
    check_inputs,
    factor_covariance,
    note,
)

logger = logging.getLogger(__name__)

ACCEPTANCE_BAND = (0.10, 0.50)


@dataclass(frozen=True)
class ChainResult:
    draws: np.ndarray
    accepted: int
    steps: int

    @property
    def acceptance_rate(self) -> float:
        return self.accepted / self.steps if self.steps else float("nan")


def _safe_logpost(log_posterior: LogPosterior, beta: np.ndarray) -> float:
    value = float(log_posterior(beta))
    return value if math.isfinite(value) else -math.inf


def run_chain(
    *,
    beta0: np.ndarray,
    L: np.ndarray,
    log_posterior: LogPosterior,
    n_steps: int,
    burn_in: int,
    thin: int,
    scale: float,
    rng: np.random.Generator,
    cancel: CancelCheck = None,
    chain: int = 0,
) -> ChainResult:
    """Run one chain from ``beta0``; keep every ``thin``-th state after burn-in."""
    p = beta0.size
    current = beta0.copy()
    current_lp = _safe_logpost(log_posterior, current)
    if current_lp == -math.inf:
        raise ValueError("log posterior is not finite at the starting coefficients.")

    n_keep = -(-(n_steps - burn_in) // thin)
    kept = np.empty((n_keep, p), dtype=float)
    accepted = 0
    k = 0
    for step in range(n_steps):
        check_cancel(cancel, f"at step {step} of chain {chain}")
        proposal = current + scale * (L @ rng.standard_normal(p))
        proposal_lp = _safe_logpost(log_posterior, proposal)
        # 1 - U lies in (0, 1], so the log is always finite
        log_u = math.log1p(-rng.uniform())
        if proposal_lp - current_lp > log_u:
            current = proposal
            current_lp = proposal_lp
            accepted += 1
        if step >= burn_in and (step - burn_in) % thin == 0:
            kept[k] = current
            k += 1
    return ChainResult(draws=kept, accepted=accepted, steps=n_steps)


class MetropolisHastingsSampler:
    """Options:
      - burn_in: steps discarded at the start of each chain (default 0)
      - thin: keep every thin-th state after burn-in (default 1)
      - proposal_scale: multiplier on the Cholesky factor (default 0.25)
      - n_chains: independent chains, each with its own sub-stream (default 1)
      - workers: threads used to run chains concurrently (default 1)
      - acceptance_band: advisory (low, high) acceptance rates
    """

    name = "metropolis_hastings"

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
    ) -> PosteriorDraws:
        if log_posterior is None:
            raise ValueError("metropolis_hastings needs a log_posterior callable.")
        opts = dict(options or {})
        burn_in = int(opts.pop("burn_in", 0))
        thin = int(opts.pop("thin", 1))
        scale = float(opts.pop("proposal_scale", 0.25))
        n_chains = int(opts.pop("n_chains", 1))
        workers = max(1, int(opts.pop("workers", 1) or 1))
        band: Tuple[float, float] = tuple(opts.pop("acceptance_band", ACCEPTANCE_BAND))  # type: ignore[assignment]
        if opts:
            raise ValueError(f"Unknown metropolis_hastings options: {sorted(opts)}")

        n_steps = int(n_draws)
        if n_steps < 1:
            raise ValueError("n_draws must be >= 1.")
        if not 0 <= burn_in < n_steps:
            raise ValueError(f"burn_in must be in [0, {n_steps}); got {burn_in}.")
        if thin < 1:
            raise ValueError("thin must be >= 1.")
        if not (math.isfinite(scale) and scale > 0):
            raise ValueError("proposal_scale must be positive.")
        if n_chains < 1:
            raise ValueError("n_chains must be >= 1.")

        b, V = check_inputs(beta, cov)
        seed = resolve_seed(seed)
        messages: List[str] = []
        L, method = factor_covariance(V, messages)

        def one(c: int) -> ChainResult:
            return run_chain(
                beta0=b,
                L=L,
                log_posterior=log_posterior,
                n_steps=n_steps,
                burn_in=burn_in,
                thin=thin,
                scale=scale,
                rng=substream(seed, STREAM_CHAINS, c),
                cancel=cancel,
                chain=c,
            )

        if workers > 1 and n_chains > 1:
            with ThreadPoolExecutor(max_workers=min(workers, n_chains)) as ex:
                chains = list(ex.map(one, range(n_chains)))
        else:
            chains = [one(c) for c in range(n_chains)]

        rates = [ch.acceptance_rate for ch in chains]
        rate = sum(ch.accepted for ch in chains) / sum(ch.steps for ch in chains)
        logger.debug("metropolis_hastings: acceptance %.3f over %d chain(s)", rate, n_chains)
        lo, hi = band
        if not lo <= rate <= hi:
            note(
                messages,
                f"Metropolis-Hastings acceptance rate {rate:.3f} is outside "
                f"[{lo:.2f}, {hi:.2f}]; consider changing proposal_scale "
                f"(currently {scale:g}).",
                ConvergenceWarning,
            )

        draws = np.vstack([ch.draws for ch in chains])
        chain_ids = np.concatenate(
            [np.full(ch.draws.shape[0], c, dtype=int) for c, ch in enumerate(chains)]
        )
        return PosteriorDraws(
            draws=draws,
            draw_ids=np.arange(1, draws.shape[0] + 1, dtype=int),
            method=self.name,
            seed=seed,
            warnings=tuple(messages),
            stats={
                "factorization": method,
                "acceptance_rate": rate,
                "chain_acceptance_rates": tuple(rates),
                "chain": chain_ids,
                "burn_in": burn_in,
                "thin": thin,
                "proposal_scale": scale,
            },
        )
