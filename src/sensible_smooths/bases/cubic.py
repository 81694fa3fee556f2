"""Cubic regression splines parameterised by their values at the knots.

For knots x_1 < ... < x_k with spacings h_j, the spline on [x_j, x_{j+1}] is

    f(x) = a-(x) b_j + a+(x) b_{j+1} + c-(x) d_j + c+(x) d_{j+1}

where b are the function values at the knots (the coefficients) and
d = F b the second derivatives there. The roughness penalty
integral f''(x)^2 dx equals b' S b.
"""
from __future__ import annotations

from typing import Any, Dict, Mapping, Optional, Tuple

import numpy as np

from .common import (
    BasisState,
    extrapolate_linear,
    numeric_covariate,
    place_knots,
    symmetric,
)


def _cr_matrices(knots: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    """Second-derivative map F (k x k) and penalty S for natural cubic splines."""
    k = knots.size
    h = np.diff(knots)
    D = np.zeros((k - 2, k))
    B = np.zeros((k - 2, k - 2))
    for i in range(k - 2):
        D[i, i] = 1.0 / h[i]
        D[i, i + 1] = -1.0 / h[i] - 1.0 / h[i + 1]
        D[i, i + 2] = 1.0 / h[i + 1]
        B[i, i] = (h[i] + h[i + 1]) / 3.0
        if i < k - 3:
            B[i, i + 1] = B[i + 1, i] = h[i + 1] / 6.0
    BinvD = np.linalg.solve(B, D)
    F = np.vstack([np.zeros((1, k)), BinvD, np.zeros((1, k))])
    return F, symmetric(D.T @ BinvD)


def _cc_matrices(knots: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    """Cyclic analogue of :func:`_cr_matrices`; knots[-1] wraps onto knots[0]."""
    n = knots.size - 1
    h = np.diff(knots)
    D = np.zeros((n, n))
    B = np.zeros((n, n))
    for i in range(n):
        im = (i - 1) % n
        ip = (i + 1) % n
        B[i, i] += (h[im] + h[i]) / 3.0
        B[i, ip] += h[i] / 6.0
        B[i, im] += h[im] / 6.0
        D[i, i] += -1.0 / h[im] - 1.0 / h[i]
        D[i, ip] += 1.0 / h[i]
        D[i, im] += 1.0 / h[im]
    BinvD = np.linalg.solve(B, D)
    return BinvD, symmetric(D.T @ BinvD)


def _piecewise_weights(x, left, right, deriv):
    h = right - left
    am = right - x
    ap = x - left
    if deriv == 0:
        return am / h, ap / h, (am**3 / h - h * am) / 6.0, (ap**3 / h - h * ap) / 6.0
    if deriv == 1:
        return (
            -1.0 / h,
            1.0 / h,
            -(3.0 * am**2 / h - h) / 6.0,
            (3.0 * ap**2 / h - h) / 6.0,
        )
    zero = np.zeros_like(x)
    return zero, zero, am / h, ap / h


def _rows(x, knots, F, lo_idx, hi_idx, deriv, ncol):
    rows = np.arange(x.size)
    a_m, a_p, c_m, c_p = _piecewise_weights(x, knots[lo_idx], knots[lo_idx + 1], deriv)
    X = c_m[:, None] * F[lo_idx] + c_p[:, None] * F[hi_idx]
    X[rows, lo_idx] += a_m
    X[rows, hi_idx] += a_p
    return X


class CubicRegressionBasis:
    name = "cr"
    centred = True

    def setup(
        self,
        data: Mapping[str, np.ndarray],
        covariates: Tuple[str, ...],
        k: Optional[int],
        options: Dict[str, Any],
    ) -> BasisState:
        if len(covariates) != 1:
            raise ValueError("cr smooths take exactly one covariate.")
        k = 10 if k is None else int(k)
        if k < 3:
            raise ValueError("cr smooths need k >= 3.")
        name = covariates[0]
        knots = options.get("knots")
        if knots is None:
            knots = place_knots(numeric_covariate(data, name), k, name)
        knots = np.asarray(knots, dtype=float)
        if knots.size != k or np.any(np.diff(knots) <= 0):
            raise ValueError("cr knots must be k strictly increasing values.")
        return {"covariate": name, "knots": knots}

    def max_deriv(self, state: Mapping[str, Any]) -> int:
        return 2

    def design(self, state, data, deriv):
        knots = state["knots"]
        F, _ = _cr_matrices(knots)
        k = knots.size

        def inside(x, d):
            j = np.clip(np.searchsorted(knots, x, side="right") - 1, 0, k - 2)
            return _rows(x, knots, F, j, j + 1, d, k)

        x = numeric_covariate(data, state["covariate"])
        return extrapolate_linear(x, knots[0], knots[-1], inside, deriv, k)

    def penalty(self, state):
        return _cr_matrices(state["knots"])[1]


class CyclicCubicBasis:
    """Cubic regression spline whose value and first two derivatives match at
    the ends of the knot range; points outside wrap around the period."""

    name = "cc"
    centred = True

    def setup(self, data, covariates, k, options) -> BasisState:
        if len(covariates) != 1:
            raise ValueError("cc smooths take exactly one covariate.")
        k = 10 if k is None else int(k)
        if k < 4:
            raise ValueError("cc smooths need k >= 4.")
        name = covariates[0]
        knots = options.get("knots")
        if knots is None:
            # k knots with the last one identified with the first
            knots = place_knots(numeric_covariate(data, name), k, name)
        knots = np.asarray(knots, dtype=float)
        if knots.size != k or np.any(np.diff(knots) <= 0):
            raise ValueError("cc knots must be k strictly increasing values.")
        return {"covariate": name, "knots": knots}

    def max_deriv(self, state):
        return 2

    def design(self, state, data, deriv):
        knots = state["knots"]
        n = knots.size - 1
        F, _ = _cc_matrices(knots)
        period = knots[-1] - knots[0]
        x = numeric_covariate(data, state["covariate"])
        xx = knots[0] + np.mod(x - knots[0], period)
        j = np.clip(np.searchsorted(knots, xx, side="right") - 1, 0, n - 1)
        return _rows(xx, knots, F, j, (j + 1) % n, deriv, n)

    def penalty(self, state):
        return _cc_matrices(state["knots"])[1]
