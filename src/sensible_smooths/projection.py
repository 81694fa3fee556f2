from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional, Sequence, Tuple

import numpy as np

from .basis import BasisEvaluator
from .data import as_data_slice
from .errors import DimensionMismatch
from .families import simulate_response
from .model import ModelAdapter, as_adapter
from .samplers.common import PosteriorDraws
from .terms import SmoothTerm
from .util import STREAM_RESPONSE, resolve_seed, substream


@dataclass(frozen=True)
class ProjectedValues:
    """Per-parameter value matrices, each (S draws, n rows)."""

    values: Dict[str, np.ndarray]
    draw_ids: np.ndarray
    mode: str  # "link" | "fitted" | "predicted"
    seed: Optional[int] = None
    warnings: Tuple[str, ...] = ()

    def __getitem__(self, name: str) -> np.ndarray:
        return self.values[name]


def _as_draws(draws: Any) -> Tuple[np.ndarray, np.ndarray, Tuple[str, ...]]:
    if isinstance(draws, PosteriorDraws):
        return np.asarray(draws.draws, dtype=float), np.asarray(draws.draw_ids), draws.warnings
    B = np.asarray(draws, dtype=float)
    if B.ndim == 1:
        # a bare coefficient vector is the point estimate
        return B[None, :], np.zeros(1, dtype=int), ()
    if B.ndim != 2:
        raise ValueError(f"draws must have shape (S, p) or (p,); got {B.shape}.")
    return B, np.arange(1, B.shape[0] + 1, dtype=int), ()


class FittedValueProjector:
    """Map coefficient draws through term bases and inverse links.

    Term selection: ``terms`` keeps only the named terms (``None`` keeps all),
    ``exclude`` drops named terms; left-out terms contribute zero. The
    intercept is kept unless ``intercept=False``, so an empty selection
    gives the intercept contribution alone.
    """

    def __init__(self, model: Any, evaluator: Optional[BasisEvaluator] = None) -> None:
        self._adapter: ModelAdapter = as_adapter(model)
        self._evaluator = evaluator if evaluator is not None else BasisEvaluator()

    @property
    def adapter(self) -> ModelAdapter:
        return self._adapter

    def selected_terms(
        self,
        predictor: int = 0,
        terms: Optional[Sequence[str]] = None,
        exclude: Optional[Sequence[str]] = None,
    ) -> Tuple[SmoothTerm, ...]:
        for label in list(terms or ()) + list(exclude or ()):
            self._adapter.term(label)
        keep = None if terms is None else set(terms)
        drop = set(exclude or ())
        return tuple(
            t
            for t in self._adapter.smooth_terms(predictor)
            if (keep is None or t.label in keep) and t.label not in drop
        )

    def design_matrix(
        self,
        data: Any,
        predictor: int = 0,
        *,
        terms: Optional[Sequence[str]] = None,
        exclude: Optional[Sequence[str]] = None,
        intercept: bool = True,
    ) -> np.ndarray:
        """Design matrix for one predictor's coefficient block (n x block width)."""
        data = as_data_slice(data)
        a = self._adapter
        block = a.coefficient_block(predictor)
        X = np.zeros((data.n_rows, block.stop - block.start))
        if intercept and a.has_intercept(predictor):
            X[:, 0] = 1.0
        for term in self.selected_terms(predictor, terms, exclude):
            B = self._evaluator.evaluate(term, data).values
            lo = term.offset - block.start
            if B.shape != (data.n_rows, term.rank) or lo < 0 or lo + term.rank > X.shape[1]:
                raise DimensionMismatch(
                    f"Basis of {term.label!r} ({B.shape}) does not fit its coefficient block."
                )
            X[:, lo : lo + term.rank] = B
        return X

    def _check_width(self, B: np.ndarray) -> None:
        p = self._adapter.n_coefficients
        if B.shape[1] != p:
            raise DimensionMismatch(f"Draws have {B.shape[1]} coefficients; the model has {p}.")

    def linear_predictor(
        self,
        draws: Any,
        data: Any,
        predictor: int = 0,
        *,
        terms: Optional[Sequence[str]] = None,
        exclude: Optional[Sequence[str]] = None,
        intercept: bool = True,
    ) -> np.ndarray:
        """eta = X beta for every draw: shape (S, n)."""
        B, _, _ = _as_draws(draws)
        self._check_width(B)
        X = self.design_matrix(data, predictor, terms=terms, exclude=exclude, intercept=intercept)
        return B[:, self._adapter.coefficient_block(predictor)] @ X.T

    def fitted(
        self,
        draws: Any,
        data: Any,
        *,
        terms: Optional[Sequence[str]] = None,
        exclude: Optional[Sequence[str]] = None,
        intercept: bool = True,
        scale: str = "response",
    ) -> ProjectedValues:
        """Distributional parameters per draw, one entry per linear predictor.

        ``scale="link"`` leaves them on the linear predictor scale.
        """
        if scale not in ("response", "link"):
            raise ValueError(f"scale must be 'response' or 'link'; got {scale!r}.")
        B, ids, notes = _as_draws(draws)
        self._check_width(B)
        data = as_data_slice(data)
        a = self._adapter
        out: Dict[str, np.ndarray] = {}
        for i, name in enumerate(a.predictor_names):
            eta = self.linear_predictor(
                B, data, i, terms=terms, exclude=exclude, intercept=intercept
            )
            out[name] = eta if scale == "link" else np.asarray(a.inverse_link(i)(eta), dtype=float)
        return ProjectedValues(
            values=out,
            draw_ids=ids,
            mode="link" if scale == "link" else "fitted",
            warnings=notes,
        )

    def predicted(
        self,
        draws: Any,
        data: Any,
        *,
        seed: Optional[int] = None,
        trials: Optional[Any] = None,
        terms: Optional[Sequence[str]] = None,
        exclude: Optional[Sequence[str]] = None,
        intercept: bool = True,
    ) -> ProjectedValues:
        """Simulated responses: coefficient uncertainty plus sampling noise.

        The response for draw id ``d`` uses its own RNG sub-stream, so a draw's
        simulated values do not depend on the other draws.
        """
        fitted = self.fitted(
            draws, data, terms=terms, exclude=exclude, intercept=intercept
        )
        a = self._adapter
        seed = resolve_seed(seed)
        params = [fitted.values[name] for name in a.predictor_names]
        S, n = params[0].shape
        y = np.empty((S, n), dtype=float)
        for s in range(S):
            rng = substream(seed, STREAM_RESPONSE, int(fitted.draw_ids[s]))
            y[s] = simulate_response(
                a.family(),
                [par[s] for par in params],
                scale=a.scale(),
                trials=trials,
                rng=rng,
            )
        return ProjectedValues(
            values={"response": y},
            draw_ids=fitted.draw_ids,
            mode="predicted",
            seed=seed,
            warnings=fitted.warnings,
        )
