import numpy as np

from sensible_smooths import (
    FittedModel,
    construct_smooth,
    data_slice,
    draw_coefficients,
    fitted_samples,
    predicted_samples,
)

rng = np.random.default_rng(4)
n = 300
x = rng.uniform(0, 1, n)
z = rng.uniform(-1, 1, n)
y = np.sin(2 * np.pi * x) + z**2 + rng.normal(0, 0.25, n)
data = {"x": x, "z": z}

pairs = [
    construct_smooth("cr", data, ["x"], k=8, sp=1e-3),
    construct_smooth("tp", data, ["z"], k=6, sp=1e-3),
]
X = np.column_stack([np.ones(n)] + [Xt for _, Xt in pairs])
S = np.zeros((X.shape[1], X.shape[1]))
off = 1
for t, _ in pairs:
    S[off : off + t.rank, off : off + t.rank] = t.sp * t.penalty
    off += t.rank
A = X.T @ X + S
beta = np.linalg.solve(A, X.T @ y)
phi = np.sum((y - X @ beta) ** 2) / (n - np.trace(np.linalg.solve(A, X.T @ X)))
model = FittedModel.from_terms(
    beta, phi * np.linalg.inv(A), [t for t, _ in pairs], dispersion=phi
)

# x varies, z held at its median
grid = data_slice(model, x=np.linspace(0, 1, 5))

# one set of coefficient draws reused for every summary
draws = draw_coefficients(model, n_draws=200, seed=7)

fitted = fitted_samples(model, grid, draws=draws)
no_z = fitted_samples(model, grid, draws=draws, exclude=["s(z)"])
predicted = predicted_samples(model, grid, draws=draws, seed=8)

print(fitted.groupby("row_id")["value"].agg(["mean", "std"]))
print(no_z.groupby("row_id")["value"].mean())
print(predicted.groupby("row_id")["value"].agg(["mean", "std"]))
