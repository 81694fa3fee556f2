from __future__ import annotations

from typing import Any, Callable, Optional

import numpy as np

from .data import as_data_slice
from .errors import DimensionMismatch
from .model import as_adapter
from .penalty import PenaltyAccessor
from .projection import FittedValueProjector
from .util import as_vector


def build_log_posterior(
    model: Any,
    data: Any,
    response: Any,
    *,
    trials: Optional[Any] = None,
) -> Callable[[np.ndarray], float]:
    """Penalized log-likelihood of the training data, as a function of beta.

      log p(beta | y) = l(beta) - beta' S_lambda beta / (2 phi) + const

    where phi is the model scale for families that have one and 1 otherwise.
    Design matrices are built once; each call costs one matrix-vector
    product per linear predictor.
    """
    adapter = as_adapter(model)
    data = as_data_slice(data)
    y = as_vector(response, "response")
    if y.size != data.n_rows:
        raise DimensionMismatch(f"response has {y.size} rows; data has {data.n_rows}.")

    projector = FittedValueProjector(adapter)
    designs = [projector.design_matrix(data, i) for i in range(adapter.n_predictors)]
    blocks = [adapter.coefficient_block(i) for i in range(adapter.n_predictors)]
    inverses = [adapter.inverse_link(i) for i in range(adapter.n_predictors)]
    S = PenaltyAccessor(adapter).combined()
    family = adapter.family()
    scale = adapter.scale()
    phi = scale if family.has_scale else 1.0
    p = adapter.n_coefficients

    def log_posterior(beta: np.ndarray) -> float:
        b = np.asarray(beta, dtype=float)
        if b.shape != (p,):
            raise DimensionMismatch(f"beta must have shape ({p},); got {b.shape}.")
        params = [inv(X @ b[blk]) for X, blk, inv in zip(designs, blocks, inverses)]
        ll = family.loglik(y, params, scale=scale, trials=trials)
        return float(ll - 0.5 * float(b @ S @ b) / phi)

    return log_posterior
