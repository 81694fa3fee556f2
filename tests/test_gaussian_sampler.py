import numpy as np
import pytest

from sensible_smooths import (
    CovarianceWarning,
    DimensionMismatch,
    GaussianPosteriorSampler,
    SamplingCancelled,
    get_sampler,
)
from sensible_smooths.samplers import sample_gaussian


def _cov(p=4, seed=0):
    A = np.random.default_rng(seed).normal(size=(p, p))
    return A @ A.T / p + 0.1 * np.eye(p)


def test_rank_nine_scenario_mean_within_tolerance():
    beta = np.linspace(-1.0, 1.0, 10)
    res = sample_gaussian(beta, 0.01 * np.eye(10), 1000, seed=42)
    assert res.draws.shape == (1000, 10)
    assert np.all(np.abs(res.draws.mean(axis=0) - beta) < 0.05)
    np.testing.assert_array_equal(res.draw_ids, np.arange(1, 1001))
    assert res.seed == 42
    assert res.warnings == ()


def test_draws_identical_across_worker_counts():
    beta = np.array([1.0, -2.0, 0.5, 3.0])
    V = _cov()
    one = sample_gaussian(beta, V, 37, seed=7, workers=1)
    four = sample_gaussian(beta, V, 37, seed=7, workers=4)
    np.testing.assert_array_equal(one.draws, four.draws)
    assert four.stats["workers"] == 4


def test_draw_depends_only_on_seed_and_index():
    beta = np.zeros(4)
    V = _cov()
    full = sample_gaussian(beta, V, 20, seed=3)
    prefix = sample_gaussian(beta, V, 5, seed=3)
    np.testing.assert_array_equal(prefix.draws, full.draws[:5])

    picked = GaussianPosteriorSampler().draw(
        beta=beta, cov=V, n_draws=0, seed=3, options={"draw_indices": [17, 2]}
    )
    np.testing.assert_array_equal(picked.draws, full.draws[[16, 1]])
    np.testing.assert_array_equal(picked.draw_ids, [17, 2])

    other = sample_gaussian(beta, V, 5, seed=4)
    assert not np.allclose(other.draws, prefix.draws)


def test_covariance_converges_for_many_draws():
    beta = np.array([0.3, -0.2, 1.0, 0.0])
    V = _cov(seed=1)
    res = sample_gaussian(beta, V, 100_000, seed=123, workers=4)
    emp = np.cov(res.draws, rowvar=False)
    assert np.linalg.norm(emp - V, "fro") < 0.03 * np.linalg.norm(V, "fro")
    np.testing.assert_allclose(res.draws.mean(axis=0), beta, atol=0.02)


def test_indefinite_covariance_is_clamped_with_warning():
    V = np.array([[1.0, 2.0], [2.0, 1.0]])
    with pytest.warns(CovarianceWarning, match="not positive definite"):
        res = sample_gaussian(np.zeros(2), V, 500, seed=0)
    assert res.stats["factorization"] == "eigen"
    assert len(res.warnings) == 1
    assert np.all(np.isfinite(res.draws))
    # only the positive eigen-direction (1, 1) carries variance
    np.testing.assert_allclose(res.draws[:, 0], res.draws[:, 1], atol=1e-10)


def test_seed_none_is_recorded_and_replays():
    beta = np.zeros(3)
    V = np.eye(3)
    res = sample_gaussian(beta, V, 10)
    assert isinstance(res.seed, int)
    again = sample_gaussian(beta, V, 10, seed=res.seed)
    np.testing.assert_array_equal(res.draws, again.draws)


def test_cancellation_between_draws():
    calls = []

    def cancel():
        calls.append(1)
        return len(calls) > 3

    with pytest.raises(SamplingCancelled):
        sample_gaussian(np.zeros(2), np.eye(2), 100, seed=0, cancel=cancel)
    assert len(calls) == 4


def test_input_shapes_are_checked():
    with pytest.raises(DimensionMismatch):
        sample_gaussian(np.zeros(3), np.eye(2), 5, seed=0)
    with pytest.raises(DimensionMismatch):
        sample_gaussian(np.zeros(3), np.ones((3, 2)), 5, seed=0)
    with pytest.raises(ValueError, match="finite"):
        sample_gaussian(np.array([0.0, np.nan]), np.eye(2), 5, seed=0)


def test_registry_lookup():
    assert get_sampler("gaussian").name == "gaussian"
    with pytest.raises(ValueError, match="Available"):
        get_sampler("hmc")
    with pytest.raises(ValueError, match="Unknown gaussian sampler options"):
        get_sampler("gaussian").draw(
            beta=np.zeros(1), cov=np.eye(1), n_draws=1, seed=0, options={"chains": 2}
        )
