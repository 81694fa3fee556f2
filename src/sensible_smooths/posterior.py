"""Posterior sampling entry points.

Each function takes a fitted-model handle plus a :class:`SamplingConfig` (or
the same settings as keyword arguments) and returns tidy pandas frames in the
``row_id, draw_id, parameter_name, <covariates...>, value`` layout. Non-fatal
diagnostics are emitted as warnings and also stored in ``frame.attrs``.
"""
from __future__ import annotations

import logging
from dataclasses import replace
from typing import Any, Dict, Optional

import numpy as np
import pandas as pd

from .aggregate import SampleAggregator
from .basis import BasisEvaluator
from .config import SamplingConfig
from .data import DataSlice, as_data_slice, evenly
from .inference import build_log_posterior
from .model import ModelAdapter, as_adapter
from .penalty import PenaltyAccessor
from .projection import FittedValueProjector, ProjectedValues
from .samplers import PosteriorDraws, get_sampler
from .samplers.common import CancelCheck, LogPosterior
from .terms import SmoothTerm
from .util import resolve_seed

logger = logging.getLogger(__name__)

__all__ = [
    "draw_coefficients",
    "coefficient_samples",
    "fitted_samples",
    "predicted_samples",
    "smooth_samples",
    "term_grid",
    "basis_table",
    "penalty_table",
]


def _config(config: Optional[SamplingConfig], options: Dict[str, Any]) -> SamplingConfig:
    if config is None:
        cfg = SamplingConfig.from_dict(options)
    elif options:
        cfg = config.with_options(**options)
    else:
        cfg = config
    # Fix the seed once so the coefficient and response streams share it.
    return cfg.with_options(seed=resolve_seed(cfg.seed))


def _resolve_term(adapter: ModelAdapter, term: Any) -> SmoothTerm:
    if isinstance(term, str):
        return adapter.term(term)
    # a term object must belong to this model, placed where the model put it
    return adapter.term(term.label)


def _with_attrs(frame: pd.DataFrame, draws: PosteriorDraws) -> pd.DataFrame:
    frame.attrs["method"] = draws.method
    # the seed that generated the coefficient draws, which may be reused ones
    frame.attrs["seed"] = draws.seed
    frame.attrs["warnings"] = tuple(draws.warnings)
    frame.attrs["stats"] = dict(draws.stats)
    return frame


def draw_coefficients(
    model: Any,
    config: Optional[SamplingConfig] = None,
    *,
    log_posterior: Optional[LogPosterior] = None,
    data: Optional[Any] = None,
    response: Optional[Any] = None,
    trials: Optional[Any] = None,
    cancel: CancelCheck = None,
    **options: Any,
) -> PosteriorDraws:
    """Draw coefficient vectors from the model's posterior.

    ``metropolis_hastings`` needs a target: pass ``log_posterior`` directly,
    or the training ``data`` and ``response`` to build the penalized
    log-likelihood from the model. ``n_draws=0`` returns the point estimate
    as draw id 0.
    """
    cfg = _config(config, options)
    adapter = as_adapter(model)
    beta = adapter.coefficients()
    if cfg.n_draws == 0:
        return replace(PosteriorDraws.point_estimate(beta), seed=cfg.seed)

    messages = []
    if cfg.unconditional and not adapter.has_unconditional:
        messages.append(
            "Covariance corrected for smoothing parameter uncertainty is not "
            "available; using the conditional covariance."
        )
    cov = adapter.covariance(cfg.unconditional)

    if cfg.method == "metropolis_hastings" and log_posterior is None:
        if data is None or response is None:
            raise ValueError(
                "metropolis_hastings needs log_posterior, or data and response "
                "to build one from the model."
            )
        log_posterior = build_log_posterior(adapter, data, response, trials=trials)

    logger.debug(
        "drawing %d coefficient vector(s) with %s (seed=%d)", cfg.n_draws, cfg.method, cfg.seed
    )
    draws = get_sampler(cfg.method).draw(
        beta=beta,
        cov=cov,
        n_draws=cfg.n_draws,
        seed=cfg.seed,
        options=cfg.sampler_options(),
        log_posterior=log_posterior,
        cancel=cancel,
    )
    if messages:
        draws = replace(draws, warnings=tuple(messages) + draws.warnings)
    return draws


def coefficient_samples(
    model: Any,
    config: Optional[SamplingConfig] = None,
    *,
    cancel: CancelCheck = None,
    **options: Any,
) -> pd.DataFrame:
    """Long frame ``draw_id, term, value`` of raw coefficient draws."""
    cfg = _config(config, options)
    adapter = as_adapter(model)
    draws = draw_coefficients(adapter, cfg, cancel=cancel)
    frame = SampleAggregator().coefficients_frame(
        draws.draws, draws.draw_ids, adapter.coefficient_names()
    )
    return _with_attrs(frame, draws)


def _projected_frame(
    projected: ProjectedValues, data: DataSlice, draws: PosteriorDraws
) -> pd.DataFrame:
    frame = SampleAggregator().to_frame(projected.values, projected.draw_ids, data)
    frame = _with_attrs(frame, draws)
    if projected.seed is not None:
        frame.attrs["response_seed"] = projected.seed
    return frame


def fitted_samples(
    model: Any,
    data: Any,
    config: Optional[SamplingConfig] = None,
    *,
    scale: str = "response",
    intercept: bool = True,
    draws: Optional[PosteriorDraws] = None,
    cancel: CancelCheck = None,
    **options: Any,
) -> pd.DataFrame:
    """Posterior draws of the fitted values at ``data``.

    One ``parameter_name`` per linear predictor (``mu`` for single-parameter
    families). Pass ``draws`` to reuse coefficient draws from an earlier call.
    """
    cfg = _config(config, options)
    adapter = as_adapter(model)
    data = as_data_slice(data)
    if draws is None:
        draws = draw_coefficients(adapter, cfg, cancel=cancel)
    projected = FittedValueProjector(adapter).fitted(
        draws, data, terms=cfg.terms, exclude=cfg.exclude, intercept=intercept, scale=scale
    )
    return _projected_frame(projected, data, draws)


def predicted_samples(
    model: Any,
    data: Any,
    config: Optional[SamplingConfig] = None,
    *,
    trials: Optional[Any] = None,
    intercept: bool = True,
    draws: Optional[PosteriorDraws] = None,
    cancel: CancelCheck = None,
    **options: Any,
) -> pd.DataFrame:
    """Posterior predictive draws: fitted values plus simulated response noise.

    The response noise uses the config seed, recorded as
    ``frame.attrs["response_seed"]``; ``frame.attrs["seed"]`` is the seed of
    the coefficient draws.
    """
    cfg = _config(config, options)
    adapter = as_adapter(model)
    data = as_data_slice(data)
    if draws is None:
        draws = draw_coefficients(adapter, cfg, cancel=cancel)
    projected = FittedValueProjector(adapter).predicted(
        draws,
        data,
        seed=cfg.seed,
        trials=trials,
        terms=cfg.terms,
        exclude=cfg.exclude,
        intercept=intercept,
    )
    return _projected_frame(projected, data, draws)


def term_grid(model: Any, term: Any, n: int = 100) -> DataSlice:
    """Evaluation grid spanning a term's training range.

    Numeric covariates get ``n`` evenly spaced values each (a full grid for
    multi-covariate terms); factor covariates get their levels.
    """
    adapter = as_adapter(model)
    t = _resolve_term(adapter, term)
    axes: Dict[str, np.ndarray] = {}
    for name in t.covariates:
        if "levels" in t.state:
            axes[name] = np.asarray(t.state["levels"])
        elif name in t.ranges:
            lo, hi = t.ranges[name]
            axes[name] = evenly([lo, hi], n)
        else:
            raise ValueError(f"No training range recorded for covariate {name!r} of {t.label!r}.")
    return DataSlice.grid(**axes)


def smooth_samples(
    model: Any,
    term: Any,
    data: Optional[Any] = None,
    config: Optional[SamplingConfig] = None,
    *,
    n: int = 100,
    draws: Optional[PosteriorDraws] = None,
    cancel: CancelCheck = None,
    **options: Any,
) -> pd.DataFrame:
    """Posterior draws of one term's contribution ``B(x) beta_term``.

    ``config.deriv`` selects the function (0) or its first or second
    derivative. Without ``data`` the term is evaluated on :func:`term_grid`.
    """
    cfg = _config(config, options)
    adapter = as_adapter(model)
    t = _resolve_term(adapter, term)
    data = term_grid(adapter, t, n) if data is None else as_data_slice(data)
    if draws is None:
        draws = draw_coefficients(adapter, cfg, cancel=cancel)
    basis = BasisEvaluator().evaluate(t, data, cfg.deriv)
    values = basis.contract(np.asarray(draws.draws)[:, t.block])
    covs = DataSlice({name: data[name] for name in t.covariates})
    frame = SampleAggregator().to_frame({t.label: values}, draws.draw_ids, covs)
    frame.attrs["deriv"] = cfg.deriv
    return _with_attrs(frame, draws)


def basis_table(model: Any, term: Any, data: Optional[Any] = None, deriv: int = 0, *, n: int = 100) -> pd.DataFrame:
    """Tidy ``term, row_id, basis_function, <covariates...>, value`` frame of
    one term's evaluated basis (columns numbered from 1)."""
    adapter = as_adapter(model)
    t = _resolve_term(adapter, term)
    data = term_grid(adapter, t, n) if data is None else as_data_slice(data)
    B = np.asarray(BasisEvaluator().evaluate(t, data, deriv).values)
    n_rows, K = B.shape
    cols: Dict[str, Any] = {
        "term": np.full(n_rows * K, t.label, dtype=object),
        "row_id": np.repeat(np.arange(n_rows, dtype=int), K),
        "basis_function": np.tile(np.arange(1, K + 1, dtype=int), n_rows),
    }
    for name in t.covariates:
        cols[name] = np.repeat(data[name], K)
    cols["value"] = B.reshape(-1)
    frame = pd.DataFrame(cols)
    frame.attrs["deriv"] = int(deriv)
    return frame


def penalty_table(model: Any, term: Any, rescale: bool = False) -> pd.DataFrame:
    """Tidy ``term, row, col, value`` frame of one term's penalty matrix."""
    return PenaltyAccessor(model).table(term, rescale=rescale)
