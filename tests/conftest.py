import numpy as np
import pytest

from sensible_smooths import FittedModel, construct_smooth


def fit_penalized(pairs, y, *, family="gaussian", vc=None):
    """Penalized (IRLS for poisson) fit of an intercept plus the given terms.

    ``pairs`` is a list of (term, training design) as returned by
    ``construct_smooth``. Vp is the inverse penalized information, times the
    residual scale for the gaussian family.
    """
    terms = [t for t, _ in pairs]
    y = np.asarray(y, dtype=float)
    n = y.size
    X = np.column_stack([np.ones(n)] + [Xt for _, Xt in pairs])
    p = X.shape[1]
    S = np.zeros((p, p))
    off = 1
    for t, _ in pairs:
        if t.penalty is not None:
            S[off : off + t.rank, off : off + t.rank] = t.sp * t.penalty
        off += t.rank

    if family == "gaussian":
        A = X.T @ X + S
        beta = np.linalg.solve(A, X.T @ y)
        edf = np.trace(np.linalg.solve(A, X.T @ X))
        phi = float(np.sum((y - X @ beta) ** 2) / (n - edf))
        return FittedModel.from_terms(
            beta, phi * np.linalg.inv(A), terms, vc=vc, dispersion=phi
        )

    if family != "poisson":
        raise ValueError(family)
    beta = np.zeros(p)
    beta[0] = np.log(np.mean(y))
    for _ in range(50):
        eta = X @ beta
        mu = np.exp(eta)
        z = eta + (y - mu) / mu
        A = X.T @ (mu[:, None] * X) + S
        new = np.linalg.solve(A, X.T @ (mu * z))
        done = np.max(np.abs(new - beta)) < 1e-10
        beta = new
        if done:
            break
    mu = np.exp(X @ beta)
    A = X.T @ (mu[:, None] * X) + S
    return FittedModel.from_terms(beta, np.linalg.inv(A), terms, family="poisson", vc=vc)


@pytest.fixture
def fit():
    return fit_penalized


@pytest.fixture
def training():
    rng = np.random.default_rng(0)
    n = 200
    x = rng.uniform(0.0, 1.0, n)
    z = rng.uniform(-1.0, 1.0, n)
    y = np.sin(2 * np.pi * x) + 0.5 * z**2 + rng.normal(0.0, 0.3, n)
    return {"x": x, "z": z, "y": y}


@pytest.fixture
def additive_model(training):
    """gaussian model y ~ 1 + s(x) + s(z), both cr with k=10."""
    pairs = [
        construct_smooth("cr", training, ["x"], k=10, sp=1e-3),
        construct_smooth("cr", training, ["z"], k=10, sp=1e-3),
    ]
    return fit_penalized(pairs, training["y"])


@pytest.fixture
def poisson_model():
    rng = np.random.default_rng(3)
    n = 300
    x = rng.uniform(0.0, 1.0, n)
    y = rng.poisson(np.exp(1.0 + np.sin(2 * np.pi * x))).astype(float)
    data = {"x": x}
    pairs = [construct_smooth("cr", data, ["x"], k=8, sp=1e-2)]
    return fit_penalized(pairs, y, family="poisson"), data, y
