from __future__ import annotations

from typing import Any, Dict, Mapping, Optional, Tuple

import numpy as np

from .common import BasisState, covariate, numeric_covariate


class RandomEffectBasis:
    """Indicator columns for the levels of a factor, ridge (identity) penalty.

    Levels not seen at construction get an all-zero row, i.e. the population
    level prediction.
    """

    name = "re"
    centred = False

    def setup(
        self,
        data: Mapping[str, np.ndarray],
        covariates: Tuple[str, ...],
        k: Optional[int],
        options: Dict[str, Any],
    ) -> BasisState:
        if len(covariates) != 1:
            raise ValueError("re terms take exactly one (factor) covariate.")
        name = covariates[0]
        levels = options.get("levels")
        if levels is None:
            levels = np.unique(covariate(data, name))
        levels = tuple(np.asarray(levels).tolist())
        if not levels:
            raise ValueError(f"Factor {name!r} has no levels.")
        return {"covariate": name, "levels": levels}

    def max_deriv(self, state):
        return 0

    def design(self, state, data, deriv):
        values = np.asarray(covariate(data, state["covariate"]), dtype=object)
        levels = np.empty(len(state["levels"]), dtype=object)
        levels[:] = state["levels"]
        return (values[:, None] == levels[None, :]).astype(float)

    def penalty(self, state):
        return np.eye(len(state["levels"]))


class LinearBasis:
    """Unpenalised parametric columns, one per covariate."""

    name = "linear"
    centred = False

    def setup(self, data, covariates, k, options) -> BasisState:
        if not covariates:
            raise ValueError("linear terms need at least one covariate.")
        for c in covariates:
            numeric_covariate(data, c)
        return {"covariates": tuple(covariates)}

    def max_deriv(self, state):
        return 2 if len(state["covariates"]) == 1 else 0

    def design(self, state, data, deriv):
        X = np.column_stack([numeric_covariate(data, c) for c in state["covariates"]])
        if deriv == 0:
            return X
        if deriv == 1:
            return np.ones_like(X)
        return np.zeros_like(X)

    def penalty(self, state):
        return None
