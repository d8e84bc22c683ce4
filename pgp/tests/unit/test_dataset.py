"""
Unit tests for the column-major dataset view and data loading.
"""

import numpy as np
import pandas as pd
import pytest

from pgp.data.dataset import Dataset
from pgp.utils.exceptions import DataValidationError
from pgp.utils.io import DataIO, load_dataset, save_results


class TestDatasetConstruction:
    """Test constructors and validation."""

    def test_column_major_layout(self):
        dataset = Dataset.from_columns({"a": [1.0, 2.0], "b": [3.0, 4.0], "y": [5.0, 6.0]}, target="y")
        assert list(dataset.data) == [1.0, 2.0, 3.0, 4.0, 5.0, 6.0]
        assert dataset.value(1, 0) == 3.0
        assert dataset.value(2, 1) == 6.0
        assert list(dataset.row(1)) == [2.0, 4.0, 6.0]
        assert dataset.target_index == 2
        assert dataset.input_names == ["a", "b"]

    def test_data_is_read_only(self):
        source = np.array([1.0, 2.0, 3.0])
        dataset = Dataset.from_columns({"x": source, "y": source * 2}, target="y")
        assert not dataset.data.flags.writeable
        with pytest.raises(ValueError):
            dataset.data[0] = 10.0
        assert source.flags.writeable

    def test_from_arrays_default_names(self):
        X = np.array([[1.0, 2.0], [3.0, 4.0], [5.0, 6.0]])
        dataset = Dataset.from_arrays(X, np.array([1.0, 0.0, 1.0]))
        assert dataset.variable_names == ["x1", "x2", "y"]
        assert list(dataset.column(1)) == [2.0, 4.0, 6.0]

    def test_from_arrays_validation(self):
        X = np.ones((3, 2))
        with pytest.raises(DataValidationError):
            Dataset.from_arrays(X, np.ones(4))
        with pytest.raises(DataValidationError):
            Dataset.from_arrays(X, np.ones(3), variable_names=["a"])
        with pytest.raises(DataValidationError):
            Dataset.from_arrays(X, np.ones(3), variable_names=["a", "y"])

    def test_from_dataframe_uses_numeric_columns(self):
        df = pd.DataFrame({"x": [1.0, 2.0], "label": ["p", "q"], "y": [3.0, 4.0]})
        dataset = Dataset.from_dataframe(df, target="y")
        assert dataset.variable_names == ["x", "y"]

    def test_from_dataframe_missing_columns(self):
        df = pd.DataFrame({"x": [1.0, 2.0], "y": [3.0, 4.0]})
        with pytest.raises(DataValidationError, match="target"):
            Dataset.from_dataframe(df, target="z")
        with pytest.raises(DataValidationError, match="input"):
            Dataset.from_dataframe(df, target="y", inputs=["w"])

    def test_rejects_invalid_data(self):
        with pytest.raises(DataValidationError, match="lengths"):
            Dataset.from_columns({"x": [1.0, 2.0], "y": [1.0]}, target="y")
        with pytest.raises(DataValidationError, match="NaN"):
            Dataset.from_columns({"x": [1.0, np.nan], "y": [1.0, 2.0]}, target="y")
        with pytest.raises(DataValidationError, match="target"):
            Dataset.from_columns({"x": [1.0, 2.0]}, target="y")
        with pytest.raises(DataValidationError):
            Dataset(np.zeros(5), 2, {"x": 0, "y": 1}, "y")


class TestDatasetViews:
    """Test bounds and row selection."""

    def test_variable_bounds_cover_all_columns(self, linear_dataset):
        bounds = linear_dataset.variable_bounds()
        assert bounds["x1"] == pytest.approx((0.0, 10.0))
        assert bounds["y"] == pytest.approx((0.0, 20.0))
        assert list(linear_dataset.variable_bounds(["x1"])) == ["x1"]

    def test_subset(self, linear_dataset):
        head = linear_dataset.subset(0, 10)
        assert head.row_count == 10
        assert head.variable_indices == linear_dataset.variable_indices
        assert list(head.target_values) == pytest.approx(list(2.0 * head.column(0)))

        tail = linear_dataset.subset(95, 20)
        assert tail.row_count == 5

        with pytest.raises(DataValidationError):
            linear_dataset.subset(100, 5)

    def test_shuffle_keeps_rows_together(self, linear_dataset, rng):
        shuffled = linear_dataset.shuffle(rng)
        assert shuffled.row_count == linear_dataset.row_count
        assert np.allclose(shuffled.target_values, 2.0 * shuffled.column(0))
        assert sorted(shuffled.column(0)) == pytest.approx(sorted(linear_dataset.column(0)))

    def test_to_dataframe(self, small_dataset):
        df = small_dataset.to_dataframe()
        assert list(df.columns) == ["a", "b", "y"]
        assert len(df) == len(small_dataset) == 3


class TestDataIO:
    """Test file loading and result writing."""

    def test_load_semicolon_separated(self, tmp_path):
        path = tmp_path / "poly.csv"
        path.write_text("x1;x2;y\n1;2;3\n2;3;5\n4;1;5\n")

        dataset = load_dataset(str(path), target="y")
        assert dataset.variable_names == ["x1", "x2", "y"]
        assert dataset.row_count == 3
        assert dataset.name == "poly.csv"

    def test_load_selected_inputs(self, tmp_path):
        path = tmp_path / "data.csv"
        path.write_text("a,b,y\n1,2,3\n2,3,5\n")

        dataset = DataIO(sep=",").load_dataset(str(path), target="y", inputs=["b"])
        assert dataset.variable_names == ["b", "y"]

    def test_missing_file(self, tmp_path):
        with pytest.raises(DataValidationError, match="not found"):
            load_dataset(str(tmp_path / "missing.csv"), target="y")

    def test_save_results_handles_numpy(self, tmp_path):
        path = tmp_path / "out" / "results.json"
        save_results({"fitness": np.float64(0.5), "values": np.arange(3)}, str(path))

        loaded = DataIO().load_json(str(path))
        assert loaded == {"fitness": 0.5, "values": [0, 1, 2]}
