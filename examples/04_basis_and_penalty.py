import numpy as np

from sensible_smooths import (
    FittedModel,
    PenaltyAccessor,
    basis_table,
    construct_smooth,
    penalty_table,
)

rng = np.random.default_rng(6)
n = 150
data = {
    "hour": rng.uniform(0, 24, n),
    "x": rng.uniform(0, 1, n),
    "site": rng.choice(["north", "south", "east"], size=n),
}

terms = [
    construct_smooth("cc", data, ["hour"], k=8, sp=1.0)[0],
    construct_smooth("ps", data, ["x"], k=9, sp=0.5)[0],
    construct_smooth("re", data, ["site"], sp=2.0)[0],
]
p = 1 + sum(t.rank for t in terms)
model = FittedModel.from_terms(np.zeros(p), np.eye(p), terms)

for t in terms:
    print(t.label, t.kind, "rank", t.rank)

print(basis_table(model, "s(hour)", {"hour": [0.0, 6.0, 12.0, 24.0]}).head(8))
print(basis_table(model, "s(x)", deriv=2, n=5).pivot(index="x", columns="basis_function", values="value"))

acc = PenaltyAccessor(model)
for t in terms:
    pen = acc.penalty(t.label)
    print(t.label, "lambda", pen.sp, "null space", pen.null_space_dim)
print(penalty_table(model, "s(x)", rescale=True).head())
print("combined penalty shape:", acc.combined().shape)
