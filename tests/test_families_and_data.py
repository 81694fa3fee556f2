import numpy as np
import pandas as pd
import pytest

from sensible_smooths import DataSlice, ModelIncompatible
from sensible_smooths.families import get_family, simulate_response
from sensible_smooths.links import AVAILABLE_LINKS, get_link


@pytest.mark.parametrize("name", AVAILABLE_LINKS)
def test_links_invert(name):
    link = get_link(name)
    mu = np.array([0.1, 0.35, 0.8])
    np.testing.assert_allclose(link.inverse(link(mu)), mu, rtol=1e-10)


def test_unknown_family_lists_available():
    with pytest.raises(ModelIncompatible, match="gaussian"):
        get_family("quasi")


def test_binomial_loglik_uses_trials():
    fam = get_family("binomial")
    y = np.array([3.0, 0.0])
    p = np.array([0.5, 0.2])
    expected = np.log(10 * 0.5**5) + np.log(0.8**5)  # C(5,3) = 10
    assert fam.loglik(y, [p], trials=[5, 5]) == pytest.approx(expected)


def test_simulate_response_checks_parameter_count():
    rng = np.random.default_rng(0)
    fam = get_family("gaulss")
    out = simulate_response(fam, [np.zeros(4), np.ones(4)], rng=rng)
    assert out.shape == (4,)
    with pytest.raises(ValueError, match="2 parameter arrays"):
        simulate_response(fam, [np.zeros(4)], rng=rng)


def test_gamma_simulation_mean():
    rng = np.random.default_rng(1)
    out = simulate_response(get_family("gamma"), [np.full(20000, 3.0)], scale=0.5, rng=rng)
    assert out.mean() == pytest.approx(3.0, rel=0.03)


def test_data_slice_validates_columns():
    ds = DataSlice({"x": [1.0, 2.0], "g": ["a", "b"]})
    assert ds.n_rows == 2
    assert ds.names == ("x", "g")
    with pytest.raises(ValueError, match="rows"):
        DataSlice({"x": [1.0, 2.0], "z": [1.0]})
    with pytest.raises(ValueError, match="one-dimensional"):
        DataSlice({"x": np.zeros((2, 2))})
    with pytest.raises(KeyError, match="missing"):
        ds["w"]


def test_data_slice_grid_and_frames():
    grid = DataSlice.grid(fixed={"g": "a"}, x=[0.0, 1.0], z=[5.0, 6.0, 7.0])
    assert grid.n_rows == 6
    assert grid["x"].tolist() == [0.0, 0.0, 0.0, 1.0, 1.0, 1.0]
    assert grid["z"].tolist() == [5.0, 6.0, 7.0] * 2
    assert grid["g"].tolist() == ["a"] * 6

    frame = pd.DataFrame({"x": [0.5, 0.7], "z": [1.0, 2.0]})
    ds = DataSlice.from_frame(frame)
    assert ds.names == ("x", "z")
    np.testing.assert_array_equal(ds["z"], [1.0, 2.0])


def test_registries_list_their_names():
    from sensible_smooths.bases import AVAILABLE_BASIS_KINDS, get_basis_kind
    from sensible_smooths.families import AVAILABLE_FAMILIES

    assert AVAILABLE_BASIS_KINDS == ("cr", "cc", "ps", "tp", "re", "linear")
    assert "gaulss" in AVAILABLE_FAMILIES
    with pytest.raises(ModelIncompatible, match="cr"):
        get_basis_kind("te")
