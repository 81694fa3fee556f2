from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Dict, List, Optional

import numpy as np

from ..util import STREAM_COEFFICIENTS, resolve_seed, substream
from .common import (
    CancelCheck,
    LogPosterior,
    PosteriorDraws,
    check_cancel,
    check_inputs,
    factor_covariance,
)

logger = logging.getLogger(__name__)


def _draw_block(
    ids: np.ndarray,
    beta: np.ndarray,
    L: np.ndarray,
    seed: int,
    cancel: CancelCheck,
) -> np.ndarray:
    out = np.empty((ids.size, beta.size), dtype=float)
    for r, i in enumerate(ids):
        check_cancel(cancel, f"before draw {int(i)}")
        z = substream(seed, STREAM_COEFFICIENTS, int(i)).standard_normal(beta.size)
        out[r] = beta + L @ z
    return out


class GaussianSampler:
    """Draws from N(beta, V) with one RNG sub-stream per draw index.

    Options:
      - workers: size of the thread pool (default 1)
      - draw_indices: explicit 1-based draw ids to generate (default 1..n_draws)
    """

    name = "gaussian"

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
        opts = dict(options or {})
        workers = max(1, int(opts.pop("workers", 1) or 1))
        indices = opts.pop("draw_indices", None)
        if opts:
            raise ValueError(f"Unknown gaussian sampler options: {sorted(opts)}")

        b, V = check_inputs(beta, cov)
        if indices is None:
            n_draws = int(n_draws)
            if n_draws < 1:
                raise ValueError("n_draws must be >= 1.")
            ids = np.arange(1, n_draws + 1, dtype=int)
        else:
            ids = np.asarray(indices, dtype=int).reshape(-1)
            if ids.size == 0 or np.any(ids < 1):
                raise ValueError("draw_indices must be non-empty and >= 1.")

        seed = resolve_seed(seed)
        messages: List[str] = []
        L, method = factor_covariance(V, messages)

        chunks = [c for c in np.array_split(ids, min(workers, ids.size)) if c.size]
        logger.debug(
            "gaussian sampler: %d draws, p=%d, %d worker(s), seed=%d",
            ids.size, b.size, len(chunks), seed,
        )
        if len(chunks) > 1:
            with ThreadPoolExecutor(max_workers=len(chunks)) as ex:
                parts = list(ex.map(lambda c: _draw_block(c, b, L, seed, cancel), chunks))
        else:
            parts = [_draw_block(chunks[0], b, L, seed, cancel)]

        return PosteriorDraws(
            draws=np.vstack(parts),
            draw_ids=ids,
            method=self.name,
            seed=seed,
            warnings=tuple(messages),
            stats={"factorization": method, "workers": len(chunks)},
        )


def sample_gaussian(
    beta: Any,
    cov: Any,
    n_draws: int,
    *,
    seed: Optional[int] = None,
    workers: int = 1,
    cancel: CancelCheck = None,
) -> PosteriorDraws:
    """Sample ``n_draws`` coefficient vectors from N(beta, cov)."""
    return GaussianSampler().draw(
        beta=beta,
        cov=cov,
        n_draws=n_draws,
        seed=seed,
        options={"workers": workers},
        cancel=cancel,
    )
