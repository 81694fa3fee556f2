"""Thin plate regression splines (Wood, 2003).

The full thin plate spline has one radial basis function per unique
covariate point. The regression version keeps the ``k`` leading
eigenvectors of the radial kernel matrix E, restricted so the radial part
is orthogonal to the polynomial null space T, and appends T itself.
"""
from __future__ import annotations

import itertools
import math
from typing import Any, Dict, List, Mapping, Optional, Tuple

import numpy as np
from scipy.spatial.distance import cdist
from scipy.special import gamma as gamma_fn

from .common import BasisState, numeric_covariate, symmetric


def default_order(d: int) -> int:
    """Smallest penalty order m with 2m > d + 1."""
    return (d + 1) // 2 + 1


def _null_space_powers(m: int, d: int) -> List[Tuple[int, ...]]:
    powers = [e for e in itertools.product(range(m), repeat=d) if sum(e) < m]
    return sorted(powers, key=lambda e: (sum(e), tuple(-v for v in e)))


def _eta_constant(m: int, d: int) -> float:
    if d % 2 == 0:
        return (-1.0) ** (m + 1 + d // 2) / (
            2.0 ** (2 * m - 1)
            * math.pi ** (d / 2.0)
            * math.factorial(m - 1)
            * math.factorial(m - d // 2)
        )
    return float(gamma_fn(d / 2.0 - m)) / (
        2.0 ** (2 * m) * math.pi ** (d / 2.0) * math.factorial(m - 1)
    )


def _eta(r: np.ndarray, m: int, d: int) -> np.ndarray:
    theta = _eta_constant(m, d)
    p = 2 * m - d
    if d % 2 == 1:
        return theta * r**p
    out = np.zeros_like(r)
    pos = r > 0
    out[pos] = theta * r[pos] ** p * np.log(r[pos])
    return out


def _eta_1d_deriv(u: np.ndarray, m: int, deriv: int) -> np.ndarray:
    """Derivative of eta(|u|) in u for one covariate (p = 2m - 1 is odd)."""
    theta = _eta_constant(m, 1)
    p = 2 * m - 1
    a = np.abs(u)
    if deriv == 1:
        return theta * p * a ** (p - 2) * u
    return theta * p * (p - 1) * a ** (p - 2)


def _poly(X: np.ndarray, powers, deriv: int = 0) -> np.ndarray:
    out = np.empty((X.shape[0], len(powers)), dtype=float)
    for j, e in enumerate(powers):
        if deriv == 0:
            out[:, j] = np.prod(X ** np.asarray(e, dtype=float), axis=1)
            continue
        # single covariate only
        q = e[0]
        if q < deriv:
            out[:, j] = 0.0
        else:
            coef = math.factorial(q) / math.factorial(q - deriv)
            out[:, j] = coef * X[:, 0] ** (q - deriv)
    return out


class ThinPlateBasis:
    name = "tp"
    centred = True

    def setup(
        self,
        data: Mapping[str, np.ndarray],
        covariates: Tuple[str, ...],
        k: Optional[int],
        options: Dict[str, Any],
    ) -> BasisState:
        d = len(covariates)
        if d < 1:
            raise ValueError("tp smooths need at least one covariate.")
        m = options.get("m")
        m = default_order(d) if m is None else int(m)
        if 2 * m <= d:
            raise ValueError(f"tp penalty order m={m} is too low for {d} covariates.")
        powers = _null_space_powers(m, d)
        M = len(powers)
        if k is None:
            k = {1: 10, 2: 30}.get(d, M + 10)
        k = int(k)

        X = np.column_stack([numeric_covariate(data, c) for c in covariates])
        Xu = np.unique(X, axis=0)
        max_knots = int(options.get("max_knots", 2000))
        if Xu.shape[0] > max_knots:
            idx = np.round(np.linspace(0, Xu.shape[0] - 1, max_knots)).astype(int)
            Xu = Xu[idx]
        if not (M < k <= Xu.shape[0]):
            raise ValueError(
                f"tp smooth needs {M} < k <= {Xu.shape[0]} (unique points); got k={k}."
            )

        E = _eta(cdist(Xu, Xu), m, d)
        w, U = np.linalg.eigh(symmetric(E))
        order = np.argsort(-np.abs(w))[:k]
        Uk = U[:, order]
        Dk = w[order]

        T = _poly(Xu, powers)
        Q, _ = np.linalg.qr(Uk.T @ T, mode="complete")
        Zk = Q[:, M:]
        return {
            "covariates": tuple(covariates),
            "m": m,
            "powers": powers,
            "knots": Xu,
            "radial": Uk @ Zk,
            "penalty_core": symmetric(Zk.T @ (Dk[:, None] * Zk)),
        }

    def max_deriv(self, state):
        if len(state["covariates"]) != 1:
            return 0
        # eta(|u|) = theta |u|^(2m-1) is only 2m-2 times differentiable at a knot
        return min(2, 2 * int(state["m"]) - 2)

    def design(self, state, data, deriv):
        covs = state["covariates"]
        m = int(state["m"])
        d = len(covs)
        X = np.column_stack([numeric_covariate(data, c) for c in covs])
        knots = state["knots"]
        if deriv == 0:
            E = _eta(cdist(X, knots), m, d)
        else:
            E = _eta_1d_deriv(X[:, 0][:, None] - knots[:, 0][None, :], m, deriv)
        return np.hstack([E @ state["radial"], _poly(X, state["powers"], deriv)])

    def penalty(self, state):
        core = state["penalty_core"]
        M = len(state["powers"])
        r = core.shape[0]
        S = np.zeros((r + M, r + M))
        S[:r, :r] = core
        return S
