import numpy as np
import pytest

from sensible_smooths import FittedModel, PenaltyAccessor, construct_smooth, penalty_table


def _model():
    rng = np.random.default_rng(11)
    data = {
        "x": rng.uniform(0.0, 1.0, 120),
        "t": rng.uniform(0.0, 24.0, 120),
        "g": rng.choice(["a", "b", "c", "d"], size=120),
    }
    terms = [
        construct_smooth("cr", data, ["x"], k=8, sp=0.5)[0],
        construct_smooth("cc", data, ["t"], k=6, sp=2.0)[0],
        construct_smooth("re", data, ["g"], sp=3.0)[0],
        construct_smooth("linear", data, ["x"], label="x_lin")[0],
    ]
    p = 1 + 7 + 4 + 4 + 1
    return FittedModel.from_terms(np.zeros(p), np.eye(p), terms)


def test_penalty_matches_term_rank_and_is_psd():
    acc = PenaltyAccessor(_model())
    for label, K in (("s(x)", 7), ("s(t)", 4), ("s(g)", 4), ("x_lin", 1)):
        pen = acc.penalty(label)
        assert pen.matrix.shape == (K, K)
        np.testing.assert_allclose(pen.matrix, pen.matrix.T, atol=1e-12)
        assert np.min(np.linalg.eigvalsh(pen.matrix)) > -1e-8 * max(1.0, np.abs(pen.matrix).max())


def test_null_space_dimensions():
    acc = PenaltyAccessor(_model())
    # the linear trend survives the sum-to-zero constraint, the constant does not
    assert acc.penalty("s(x)").null_space_dim == 1
    assert acc.penalty("s(t)").null_space_dim == 0
    assert acc.penalty("s(g)").null_space_dim == 0
    assert acc.penalty("x_lin").null_space_dim == 1


def test_smoothing_parameters_are_read_not_changed():
    model = _model()
    acc = PenaltyAccessor(model)
    assert acc.smoothing_parameter("s(x)") == 0.5
    assert acc.penalty("s(t)").sp == 2.0
    np.testing.assert_allclose(acc.penalty("s(g)").scaled, 3.0 * np.eye(4))
    acc.combined()
    assert model.smooth_terms(0)[0].sp == 0.5


def test_combined_penalty_is_block_diagonal():
    acc = PenaltyAccessor(_model())
    S = acc.combined()
    assert S.shape == (17, 17)
    np.testing.assert_array_equal(S[0], 0.0)
    np.testing.assert_array_equal(S[:, 16], 0.0)
    np.testing.assert_allclose(S[1:8, 1:8], 0.5 * acc.penalty("s(x)").matrix)
    np.testing.assert_allclose(S[8:12, 8:12], 2.0 * acc.penalty("s(t)").matrix)
    np.testing.assert_allclose(S[12:16, 12:16], 3.0 * np.eye(4))
    np.testing.assert_array_equal(S[1:8, 8:], 0.0)
    np.testing.assert_array_equal(acc.combined(0), S)


def test_penalty_table_layout_and_rescale():
    model = _model()
    frame = penalty_table(model, "s(x)")
    assert list(frame.columns) == ["term", "row", "col", "value"]
    assert len(frame) == 49
    assert frame["row"].min() == 1 and frame["col"].max() == 7
    S = PenaltyAccessor(model).penalty("s(x)").matrix
    assert frame.loc[(frame.row == 2) & (frame.col == 3), "value"].item() == pytest.approx(S[1, 2])

    scaled = penalty_table(model, "s(x)", rescale=True)
    assert scaled["value"].abs().max() == pytest.approx(1.0)

    flat = penalty_table(model, "x_lin", rescale=True)
    assert flat["value"].tolist() == [0.0]


def test_negative_smoothing_parameter_rejected():
    with pytest.raises(ValueError, match="Smoothing parameters"):
        construct_smooth("cr", {"x": np.linspace(0, 1, 20)}, ["x"], k=5, sp=-1.0)
