import numpy as np
import pytest

from sensible_smooths import DimensionMismatch, SampleAggregator


def test_records_are_ordered_parameter_draw_row():
    values = {
        "location": np.array([[1.0, 2.0, 3.0], [4.0, 5.0, 6.0]]),
        "scale": np.array([[0.1, 0.2, 0.3], [0.4, 0.5, 0.6]]),
    }
    recs = SampleAggregator().records(values, [3, 8])
    assert len(recs) == 12
    assert [(r.parameter_name, r.draw_id, r.row_id) for r in recs[:4]] == [
        ("location", 3, 0),
        ("location", 3, 1),
        ("location", 3, 2),
        ("location", 8, 0),
    ]
    assert recs[5].value == 6.0
    assert recs[6].parameter_name == "scale"
    assert recs[-1].value == 0.6


def test_frame_has_tidy_columns_with_covariates():
    values = {"mu": np.array([[1.0, 2.0], [3.0, 4.0], [5.0, 6.0]])}
    data = {"x": np.array([0.1, 0.9]), "g": np.array(["a", "b"])}
    frame = SampleAggregator().to_frame(values, [1, 2, 3], data)

    assert list(frame.columns) == ["row_id", "draw_id", "parameter_name", "x", "g", "value"]
    assert frame["row_id"].tolist() == [0, 1, 0, 1, 0, 1]
    assert frame["draw_id"].tolist() == [1, 1, 2, 2, 3, 3]
    assert frame["value"].tolist() == [1.0, 2.0, 3.0, 4.0, 5.0, 6.0]
    assert frame["g"].tolist() == ["a", "b"] * 3
    assert set(frame["parameter_name"]) == {"mu"}


def test_frame_without_data_and_point_estimate_id():
    frame = SampleAggregator().to_frame({"mu": np.array([[7.0, 8.0]])}, [0])
    assert list(frame.columns) == ["row_id", "draw_id", "parameter_name", "value"]
    assert frame["draw_id"].tolist() == [0, 0]


def test_shape_checks():
    agg = SampleAggregator()
    with pytest.raises(DimensionMismatch):
        agg.to_frame({"mu": np.zeros((2, 3))}, [1, 2, 3])
    with pytest.raises(DimensionMismatch, match="rows"):
        agg.to_frame({"mu": np.zeros((1, 3))}, [1], {"x": [1.0, 2.0]})
    with pytest.raises(ValueError, match="clashes"):
        agg.to_frame({"mu": np.zeros((1, 1))}, [1], {"value": [1.0]})


def test_coefficients_frame():
    draws = np.array([[1.0, 2.0], [3.0, 4.0]])
    frame = SampleAggregator().coefficients_frame(draws, [1, 2], ["(Intercept)", "x"])
    assert frame["term"].tolist() == ["(Intercept)", "x", "(Intercept)", "x"]
    assert frame["draw_id"].tolist() == [1, 1, 2, 2]
    assert frame["value"].tolist() == [1.0, 2.0, 3.0, 4.0]
    with pytest.raises(DimensionMismatch):
        SampleAggregator().coefficients_frame(draws, [1], ["a", "b"])
