"""
Tests for canonical chart data: normalization, validation and aggregation.
"""

import numpy as np
import pandas as pd
import pytest

from core.chart_types import default_color
from core.models import ChartData, Dataset, ParsedEntry, ParseResult
from skills.aggregate import aggregate, needs_aggregation, total_points
from skills.normalize import clean, normalize, summarize
from skills.validate import validate


def _chart(labels, *series):
    return ChartData(
        labels=labels,
        datasets=[Dataset(label=f"S{i}", data=list(values)) for i, values in enumerate(series)],
    )


class TestNormalize:
    """Tests for shape normalization into ChartData."""

    def test_parse_result_uses_series_label(self):
        """Test that a parse result's series label names the dataset."""
        parsed = ParseResult(
            entries=[ParsedEntry(label="Jan", value=12000), ParsedEntry(label="Feb", value=15500)],
            source_format="csv",
            series_label="Sales",
        )
        data = normalize(parsed)
        assert data.labels == ["Jan", "Feb"]
        assert len(data.datasets) == 1
        assert data.datasets[0].label == "Sales"
        assert data.datasets[0].data == [12000.0, 15500.0]

    def test_flat_values(self):
        """Test flat value lists."""
        data = normalize([1, "2", None, "n/a"])
        assert data.labels == ["Item 1", "Item 2", "Item 3", "Item 4"]
        assert data.datasets[0].data == [1, 2.0, None, None]

    def test_numeric_strings_are_parsed(self):
        """Test numeric strings like '$1,200' and '3.5K'."""
        data = normalize(["$1,200", "3.5K", "50%", "2e3", "abc"])
        assert data.datasets[0].data == [1200.0, 3500.0, 0.5, 2000.0, None]

    def test_two_key_records(self):
        """Test two-key label/value records."""
        data = normalize([{"name": "A", "value": 3}, {"name": "B", "value": 4}])
        assert data.labels == ["A", "B"]
        assert [ds.label for ds in data.datasets] == ["value"]
        assert data.datasets[0].data == [3, 4]

    def test_wide_records_become_one_dataset_per_column(self):
        """Test wide records become one dataset per column."""
        rows = [
            {"month": "Jan", "sales": 10, "cost": 4},
            {"month": "Feb", "sales": 12, "cost": 5},
        ]
        data = normalize(rows)
        assert data.labels == ["Jan", "Feb"]
        assert [ds.label for ds in data.datasets] == ["sales", "cost"]
        assert data.datasets[1].data == [4, 5]

    def test_point_lists_for_scatter(self):
        """Test point lists for scatter charts."""
        data = normalize([[1, 2], [3, 4]], "scatter")
        assert data.labels == []
        assert data.datasets[0].data == [[1, 2], [3, 4]]

    def test_point_records_for_scatter(self):
        """Test x/y records for scatter charts."""
        data = normalize([{"x": 1, "y": 2}, {"x": 3, "y": 5}], "scatter")
        assert data.datasets[0].data == [{"x": 1, "y": 2}, {"x": 3, "y": 5}]

    def test_table_shape(self):
        """Test the rows/columns table shape."""
        data = normalize({"columns": ["city", "pop"], "rows": [["A", 1], ["B", 2]]})
        assert data.labels == ["A", "B"]
        assert data.datasets[0].label == "pop"
        assert data.datasets[0].data == [1, 2]

    def test_dataframe(self):
        """Test pandas DataFrame input."""
        df = pd.DataFrame({"city": ["A", "B"], "pop": [1.5, np.nan]})
        data = normalize(df)
        assert data.labels == ["A", "B"]
        assert data.datasets[0].data == [1.5, None]

    def test_values_mapping(self):
        """Test a mapping with a values list."""
        data = normalize({"values": [5, 6], "label": "Visits"})
        assert data.labels == ["Item 1", "Item 2"]
        assert data.datasets[0].label == "Visits"

    def test_canonical_input_is_defaulted(self):
        """Test that canonical input gets default labels and colors."""
        data = normalize({"labels": [1, 2.0], "datasets": [{"data": [1]}]})
        assert data.labels == ["1", "2"]
        ds = data.datasets[0]
        assert ds.label == "Dataset 1"
        assert ds.backgroundColor == default_color(0)
        assert ds.borderColor == default_color(0)

    def test_extra_dataset_fields_survive(self):
        """Test that extra dataset fields are kept."""
        data = normalize({"labels": ["a"], "datasets": [{"label": "x", "data": [1], "fill": True}]})
        assert data.datasets[0].model_dump()["fill"] is True

    @pytest.mark.parametrize("raw", [None, 42, {"unknown": 1}, []])
    def test_unrecognized_input_is_empty(self, raw):
        """Test that unrecognized input normalizes to empty data."""
        data = normalize(raw)
        assert data.labels == []
        assert data.datasets == []

    @pytest.mark.parametrize("raw", [
        [1, 2, 3],
        [{"m": "Jan", "a": 1, "b": 2}],
        {"labels": ["a", "b"], "datasets": [{"data": ["1", None]}]},
    ])
    def test_normalize_is_idempotent(self, raw):
        """Test that normalizing twice changes nothing."""
        once = normalize(raw)
        assert normalize(once) == once
        assert normalize(raw) == once


class TestSummaryAndClean:
    """Tests for data summary metadata and cleaning."""

    def test_summarize(self):
        """Test summary metadata."""
        summary = summarize(_chart(["a", "b", "c"], [3, -1, None]))
        assert summary.total_points == 3
        assert summary.dataset_count == 1
        assert summary.has_null_values
        assert summary.has_negative_values
        assert summary.min == -1.0
        assert summary.max == 3.0

    def test_summarize_empty(self):
        """Test summarizing empty data."""
        summary = summarize(ChartData())
        assert summary.total_points == 0
        assert summary.min == 0.0 and summary.max == 0.0

    def test_clean_drops_missing_and_trims_labels(self):
        """Test cleaning drops missing values and trims labels."""
        cleaned = clean(_chart(["a", "b", "c"], [1, None, 3]))
        assert cleaned.datasets[0].data == [1, 3]
        assert cleaned.labels == ["a", "b"]


class TestValidate:
    """Tests for structural and quality validation."""

    def test_scatter_point_with_one_value_is_invalid(self):
        """Test scatter points need two values."""
        result = validate(normalize([[1]], "scatter"), "scatter")
        assert not result.is_valid
        assert "2 values per data point" in result.errors[0]

    def test_scatter_point_missing_y(self):
        """Test scatter points need a y property."""
        result = validate(_chart([], [{"x": 1}]), "scatter")
        assert not result.is_valid
        assert "Missing required property 'y'" in result.errors[0]

    def test_bubble_needs_radius(self):
        """Test bubble points need a radius."""
        result = validate(_chart([], [[1, 2]]), "bubble")
        assert not result.is_valid

    def test_pie_with_many_labels_warns_but_passes(self):
        """Test that many pie categories warn but pass."""
        labels = [f"c{i}" for i in range(11)]
        result = validate(_chart(labels, list(range(11))), "pie")
        assert result.is_valid
        assert any("many categories" in w for w in result.warnings)
        assert "Consider grouping smaller categories or using a bar chart" in result.suggestions

    def test_pie_with_several_datasets_warns(self):
        """Test that several pie datasets warn."""
        result = validate(_chart(["a"], [1], [2]), "pie")
        assert result.is_valid
        assert result.warnings

    def test_line_without_datasets_is_invalid(self):
        """Test that a line chart without datasets is invalid."""
        result = validate(ChartData(labels=["a", "b"]), "line")
        assert not result.is_valid

    def test_line_with_single_point_warns(self):
        """Test that a single-point line chart warns."""
        result = validate(_chart(["a"], [1]), "line")
        assert result.is_valid
        assert any("at least 2" in w for w in result.warnings)

    def test_radar_with_two_axes_warns(self):
        """Test that a two-axis radar chart warns."""
        assert validate(_chart(["a", "b"], [1, 2]), "radar").warnings

    def test_missing_values_warn(self):
        """Test missing values warning and suggestion."""
        result = validate(_chart(["a", "b", "c", "d"], [1, None, None, 4]), "bar")
        assert result.is_valid
        assert result.warnings == ["Dataset 1 has 50.0% missing values"]
        assert result.suggestions == ["Consider cleaning the data or using interpolation"]

    def test_all_missing_is_reported_empty(self):
        """Test that an all-missing dataset is reported empty."""
        result = validate(_chart(["a"], [None]), "bar")
        assert "Dataset 1 is empty" in result.warnings

    def test_clean_data_has_no_findings(self):
        """Test that clean data has no findings."""
        result = validate(_chart(["Jan", "Feb"], [12000, 15500]), "bar")
        assert result.is_valid
        assert result.errors == [] and result.warnings == [] and result.suggestions == []

    @pytest.mark.parametrize("data,message", [
        (None, "Data is required"),
        (42, "Data must be an object"),
    ])
    def test_non_data_inputs(self, data, message):
        """Test inputs that are not chart data."""
        result = validate(data, "bar")
        assert not result.is_valid
        assert result.errors == [message]

    def test_mapping_input_is_accepted(self):
        """Test that plain mappings are validated."""
        result = validate({"labels": ["a", "b"], "datasets": [{"label": "x", "data": [1, 2]}]}, "line")
        assert result.is_valid


class TestAggregate:
    """Tests for fixed-stride downsampling."""

    def test_data_within_budget_is_returned_unchanged(self):
        """Test that data within budget is returned as is."""
        data = _chart(["a", "b"], [1, 2])
        assert aggregate(data, 100) is data
        assert not needs_aggregation(data, 100)

    def test_labels_stay_aligned(self):
        """Test that labels stay aligned with kept points."""
        n = 250
        data = _chart([f"l{i}" for i in range(n)], list(range(n)))
        reduced = aggregate(data, 100)
        assert total_points(reduced) <= 100
        assert len(reduced.labels) == len(reduced.datasets[0].data) == 84
        for label, value in zip(reduced.labels, reduced.datasets[0].data):
            assert label == f"l{value}"

    def test_budget_is_shared_across_datasets(self):
        """Test that the point budget is shared across datasets."""
        data = _chart([str(i) for i in range(60)], range(60), range(60))
        reduced = aggregate(data, 100)
        assert [len(ds.data) for ds in reduced.datasets] == [30, 30]
        assert len(reduced.labels) == 30

    def test_dataset_metadata_is_kept(self):
        """Test that dataset metadata survives aggregation."""
        data = ChartData(
            labels=[str(i) for i in range(10)],
            datasets=[Dataset(label="x", data=list(range(10)), backgroundColor="#fff")],
        )
        reduced = aggregate(data, 5)
        assert reduced.datasets[0].label == "x"
        assert reduced.datasets[0].backgroundColor == "#fff"

    def test_aggregate_is_deterministic(self):
        """Test that aggregation is deterministic."""
        data = _chart([str(i) for i in range(500)], range(500))
        assert aggregate(data, 37) == aggregate(data, 37)

    def test_invalid_budget(self):
        """Test that a non-positive budget is rejected."""
        with pytest.raises(ValueError):
            aggregate(ChartData(), 0)
