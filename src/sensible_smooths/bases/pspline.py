from __future__ import annotations

from typing import Any, Dict, Mapping, Optional, Tuple

import numpy as np
from scipy.interpolate import BSpline

from .common import BasisState, extrapolate_linear, numeric_covariate


class PSplineBasis:
    """B-splines on evenly spaced knots with a difference penalty on the
    coefficients (Eilers & Marx)."""

    name = "ps"
    centred = True

    def setup(
        self,
        data: Mapping[str, np.ndarray],
        covariates: Tuple[str, ...],
        k: Optional[int],
        options: Dict[str, Any],
    ) -> BasisState:
        if len(covariates) != 1:
            raise ValueError("ps smooths take exactly one covariate.")
        degree = int(options.get("degree", 3))
        diff_order = int(options.get("diff_order", 2))
        k = 10 if k is None else int(k)
        if degree < 1:
            raise ValueError("ps degree must be >= 1.")
        if k <= degree or k <= diff_order:
            raise ValueError(
                f"ps smooths need k > degree and k > diff_order; got k={k}."
            )
        name = covariates[0]
        x = numeric_covariate(data, name)
        xl, xu = float(np.min(x)), float(np.max(x))
        pad = 0.001 * (xu - xl) if xu > xl else 0.5
        xl -= pad
        xu += pad
        dx = (xu - xl) / (k - degree)
        knots = xl + dx * np.arange(-degree, k + 1, dtype=float)
        return {
            "covariate": name,
            "knots": knots,
            "degree": degree,
            "diff_order": diff_order,
            "nbasis": k,
        }

    def max_deriv(self, state):
        return min(2, int(state["degree"]))

    def design(self, state, data, deriv):
        t = state["knots"]
        degree = int(state["degree"])
        k = int(state["nbasis"])
        spline = BSpline(t, np.eye(k), degree, extrapolate=True)

        def inside(x, d):
            return np.asarray(spline(x, nu=d), dtype=float).reshape(x.size, k)

        x = numeric_covariate(data, state["covariate"])
        return extrapolate_linear(x, t[degree], t[k], inside, deriv, k)

    def penalty(self, state):
        k = int(state["nbasis"])
        P = np.diff(np.eye(k), n=int(state["diff_order"]), axis=0)
        return P.T @ P
