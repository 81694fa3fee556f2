import warnings

import numpy as np

from sensible_smooths import (
    ConvergenceWarning,
    FittedModel,
    SamplingConfig,
    construct_smooth,
    draw_coefficients,
    fitted_samples,
)

rng = np.random.default_rng(2)
n = 200
x = rng.uniform(0, 1, n)
y = rng.poisson(np.exp(0.5 + np.sin(2 * np.pi * x))).astype(float)
data = {"x": x}

# --- Penalized IRLS fit --------------------------------------------------------

term, X_s = construct_smooth("ps", data, ["x"], k=8, sp=0.1)
X = np.column_stack([np.ones(n), X_s])
S = np.zeros((X.shape[1], X.shape[1]))
S[1:, 1:] = term.sp * term.penalty
beta = np.zeros(X.shape[1])
beta[0] = np.log(y.mean())
for _ in range(30):
    eta = X @ beta
    mu = np.exp(eta)
    A = X.T @ (mu[:, None] * X) + S
    beta = np.linalg.solve(A, X.T @ (mu * (eta + (y - mu) / mu)))
mu = np.exp(X @ beta)
Vp = np.linalg.inv(X.T @ (mu[:, None] * X) + S)
model = FittedModel.from_terms(beta, Vp, [term], family="poisson")

# --- Gaussian approximation vs Metropolis-Hastings -----------------------------

gauss = draw_coefficients(model, n_draws=2000, seed=3)
cfg = SamplingConfig(
    method="metropolis_hastings",
    n_draws=4000,
    burn_in=1000,
    thin=2,
    n_chains=2,
    workers=2,
    proposal_scale=0.4,
    seed=3,
)
with warnings.catch_warnings(record=True) as caught:
    warnings.simplefilter("always", ConvergenceWarning)
    mh = draw_coefficients(model, cfg, data=data, response=y)
for w in caught:
    print("warning:", w.message)

print("acceptance:", round(mh.stats["acceptance_rate"], 3), mh.stats["chain_acceptance_rates"])
print("gaussian mean:", np.round(gauss.draws.mean(axis=0)[:4], 3))
print("mh mean:      ", np.round(mh.draws.mean(axis=0)[:4], 3))

grid = {"x": np.linspace(0, 1, 6)}
frame = fitted_samples(model, grid, draws=mh)
print(frame.groupby("x")["value"].quantile([0.05, 0.95]).unstack())
