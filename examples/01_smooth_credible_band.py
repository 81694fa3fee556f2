import numpy as np

from sensible_smooths import FittedModel, SamplingConfig, construct_smooth, smooth_samples

# --- Synthetic data -------------------------------------------------------------

rng = np.random.default_rng(0)
n = 250
x = rng.uniform(0, 1, n)
y = np.sin(2 * np.pi * x) + rng.normal(0, 0.3, n)
data = {"x": x}

# --- A penalized least-squares fit stands in for the fitting engine -----------

term, X_s = construct_smooth("cr", data, ["x"], k=10, sp=1e-3)
X = np.column_stack([np.ones(n), X_s])
S = np.zeros((X.shape[1], X.shape[1]))
S[1:, 1:] = term.sp * term.penalty
A = X.T @ X + S
beta = np.linalg.solve(A, X.T @ y)
edf = np.trace(np.linalg.solve(A, X.T @ X))
phi = np.sum((y - X @ beta) ** 2) / (n - edf)
model = FittedModel.from_terms(beta, phi * np.linalg.inv(A), [term], dispersion=phi)

# --- Posterior draws of s(x) and a pointwise 95% band --------------------------

cfg = SamplingConfig(n_draws=500, seed=1)
draws = smooth_samples(model, "s(x)", n=50, config=cfg)
band = draws.groupby("x")["value"].quantile([0.025, 0.5, 0.975]).unstack()
band.columns = ["low", "median", "high"]
print(band.head(10))

# derivative of the smooth, same draws (same seed)
slopes = smooth_samples(model, "s(x)", n=50, config=cfg.with_options(deriv=1))
print(slopes.groupby("x")["value"].mean().head())
