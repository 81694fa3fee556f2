import numpy as np
import pytest

from sensible_smooths import (
    CovarianceWarning,
    DataSlice,
    SamplingConfig,
    UnsupportedDerivative,
    basis_table,
    coefficient_samples,
    data_slice,
    draw_coefficients,
    fitted_samples,
    predicted_samples,
    smooth_samples,
    term_grid,
)


def test_config_defaults_and_validation():
    cfg = SamplingConfig()
    assert cfg.method == "gaussian"
    assert cfg.n_draws == 1000
    assert cfg.sampler_options() == {"workers": 1}

    with pytest.raises(ValueError, match="Unknown sampling method"):
        SamplingConfig(method="nuts")
    with pytest.raises(ValueError, match="n_draws"):
        SamplingConfig(n_draws=-1)
    with pytest.raises(ValueError, match="thin"):
        SamplingConfig(thin=0)
    with pytest.raises(ValueError, match="deriv"):
        SamplingConfig(deriv=3)
    with pytest.raises(TypeError):
        SamplingConfig(workers=True)


def test_config_from_dict_and_with_options():
    cfg = SamplingConfig.from_dict({"n_draws": 50, "seed": 4, "exclude": "s(z)"})
    assert cfg.exclude == ("s(z)",)
    assert cfg.with_options(n_draws=10).n_draws == 10
    assert cfg.n_draws == 50
    with pytest.raises(ValueError, match="Unknown sampling options"):
        SamplingConfig.from_dict({"draws": 5})
    with pytest.raises(ValueError, match="Unknown sampling options"):
        cfg.with_options(chains=2)

    mh = SamplingConfig(method="metropolis_hastings", burn_in=5, n_chains=2)
    assert mh.sampler_options()["burn_in"] == 5
    assert mh.sampler_options()["n_chains"] == 2


def test_zero_draws_uses_point_estimate(additive_model):
    draws = draw_coefficients(additive_model, n_draws=0)
    np.testing.assert_array_equal(draws.draw_ids, [0])
    np.testing.assert_array_equal(draws.draws[0], additive_model.coefficients())

    frame = fitted_samples(additive_model, {"x": [0.5], "z": [0.0]}, n_draws=0)
    assert frame["draw_id"].tolist() == [0]


def test_fitted_samples_frame(additive_model):
    data = DataSlice({"x": np.linspace(0, 1, 7), "z": np.zeros(7)})
    cfg = SamplingConfig(n_draws=30, seed=10)
    frame = fitted_samples(additive_model, data, cfg)
    assert list(frame.columns) == ["row_id", "draw_id", "parameter_name", "x", "z", "value"]
    assert len(frame) == 30 * 7
    assert frame.attrs["seed"] == 10
    assert frame.attrs["method"] == "gaussian"

    again = fitted_samples(additive_model, data, cfg)
    np.testing.assert_array_equal(again["value"].to_numpy(), frame["value"].to_numpy())

    # keyword options override the config
    fewer = fitted_samples(additive_model, data, cfg, n_draws=5)
    np.testing.assert_array_equal(
        fewer["value"].to_numpy(), frame["value"].to_numpy()[: 5 * 7]
    )


def test_unconditional_fallback_is_recorded(additive_model):
    with pytest.warns(CovarianceWarning):
        frame = fitted_samples(
            additive_model, {"x": [0.2], "z": [0.1]}, n_draws=3, seed=0, unconditional=True
        )
    assert any("not available" in w for w in frame.attrs["warnings"])


def test_predicted_samples_reuse_draws(additive_model):
    data = {"x": [0.1, 0.6], "z": [0.0, 0.0]}
    draws = draw_coefficients(additive_model, n_draws=8, seed=1)
    frame = predicted_samples(additive_model, data, draws=draws, seed=2)
    assert set(frame["parameter_name"]) == {"response"}
    assert frame["draw_id"].unique().tolist() == list(range(1, 9))
    # seed of the reused coefficient draws, and the seed of the response noise
    assert frame.attrs["seed"] == 1
    assert frame.attrs["response_seed"] == 2

    fitted = fitted_samples(additive_model, data, draws=draws, seed=5)
    assert fitted.attrs["seed"] == 1
    assert "response_seed" not in fitted.attrs


def test_predicted_samples_without_intercept(additive_model):
    data = {"x": [0.1, 0.6, 0.9], "z": [0.0, 0.2, 0.4]}
    draws = draw_coefficients(additive_model, n_draws=6, seed=1)
    full = predicted_samples(additive_model, data, draws=draws, seed=2)
    bare = predicted_samples(additive_model, data, draws=draws, seed=2, intercept=False)
    # same noise stream, so the responses differ by each draw's intercept
    diff = (full["value"].to_numpy() - bare["value"].to_numpy()).reshape(6, 3)
    np.testing.assert_allclose(diff, np.repeat(draws.draws[:, [0]], 3, axis=1), atol=1e-10)


def test_smooth_samples_on_default_grid(additive_model):
    frame = smooth_samples(additive_model, "s(x)", n=20, n_draws=6, seed=3)
    assert list(frame.columns) == ["row_id", "draw_id", "parameter_name", "x", "value"]
    assert len(frame) == 6 * 20
    assert set(frame["parameter_name"]) == {"s(x)"}
    lo, hi = additive_model.smooth_terms(0)[0].ranges["x"]
    assert frame["x"].min() == pytest.approx(lo)
    assert frame["x"].max() == pytest.approx(hi)


def test_smooth_derivative_samples(additive_model):
    data = {"x": np.linspace(0.1, 0.9, 5)}
    f0 = smooth_samples(additive_model, "s(x)", data, n_draws=0)
    f1 = smooth_samples(additive_model, "s(x)", data, n_draws=0, deriv=1)
    assert f1.attrs["deriv"] == 1
    assert f0["value"].iloc[0] > 0 > f0["value"].iloc[-1]
    assert f1["value"].iloc[2] < 0


def test_term_grid_and_data_slice(additive_model):
    grid = term_grid(additive_model, "s(z)", n=11)
    assert grid.names == ("z",)
    assert grid.n_rows == 11

    ds = data_slice(additive_model, x=np.linspace(0, 1, 4))
    assert ds.n_rows == 4
    assert np.all(ds["z"] == ds["z"][0])


def test_basis_table(additive_model):
    frame = basis_table(additive_model, "s(x)", {"x": [0.2, 0.4, 0.6]})
    assert list(frame.columns) == ["term", "row_id", "basis_function", "x", "value"]
    assert len(frame) == 3 * 9
    assert frame["basis_function"].max() == 9
    with pytest.raises(UnsupportedDerivative):
        basis_table(additive_model, "s(x)", {"x": [0.2]}, deriv=4)


def test_coefficient_samples(additive_model):
    frame = coefficient_samples(additive_model, n_draws=4, seed=0)
    assert len(frame) == 4 * 19
    assert frame["term"].iloc[0] == "(Intercept)"


def test_metropolis_needs_a_target(additive_model):
    with pytest.raises(ValueError, match="log_posterior"):
        draw_coefficients(additive_model, method="metropolis_hastings", n_draws=10)
