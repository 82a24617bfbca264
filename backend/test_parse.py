"""
Tests for the parsing skill: format detection, CSV/JSON/free-text extraction,
unit suffixes and the example-data fallback.
"""

import pytest

from core.chart_types import EXAMPLE_SERIES
from core.models import ParsedEntry
from skills.parse import (
    TEXT_STRATEGIES,
    is_csv,
    parse,
    parse_csv,
    parse_entries,
    parse_free_text,
    parse_json_records,
)


def _pairs(entries):
    return [(e.label, e.value) for e in entries]


class TestFormatDetection:
    """Tests for CSV/JSON sniffing."""

    @pytest.mark.parametrize("text,expected", [
        ("a,1\nb,2", True),
        ("a,b,c", True),
        ("a,1", False),
        ("no commas here", False),
        ('[{"label": "A", "value": 1}, {"label": "B", "value": 2}]', False),
        ("[1, 2, 3]", False),
    ])
    def test_is_csv(self, text, expected):
        """Test CSV detection."""
        assert is_csv(text) is expected

    def test_json_array_routed_to_json(self):
        """Test that JSON arrays take the JSON path."""
        result = parse('[{"label": "A", "value": 5}, {"name": "B", "y": "7"}]')
        assert result.source_format == "json"
        assert _pairs(result.entries) == [("A", 5.0), ("B", 7.0)]


class TestCSV:
    """Tests for CSV-like text."""

    def test_header_names_the_series_and_bad_rows_are_dropped(self):
        """Test header detection and dropping of unparseable rows."""
        entries, series = parse_csv("Month,Sales\nJan,12000\nFeb,15500\nMar,nope")
        assert series == "Sales"
        assert _pairs(entries) == [("Jan", 12000.0), ("Feb", 15500.0)]

    def test_header_detected_by_keyword(self):
        """Test header detection by keyword."""
        entries, series = parse_csv("name,value2\nA,1\nB,2")
        assert series == "value2"
        assert _pairs(entries) == [("A", 1.0), ("B", 2.0)]

    def test_no_header(self):
        """Test CSV without a header."""
        entries, series = parse_csv("A,10\nB,20")
        assert series is None
        assert _pairs(entries) == [("A", 10.0), ("B", 20.0)]

    def test_currency_and_separators_are_stripped(self):
        """Test currency symbols and quotes are stripped."""
        entries, _ = parse_csv('Q1,"$1200"\nQ2,$1500.50')
        assert _pairs(entries) == [("Q1", 1200.0), ("Q2", 1500.5)]

    def test_extra_columns_are_ignored(self):
        """Only the second field is the value; later columns never merge into it."""
        entries, series = parse_csv("Month,Sales,Cost\nJan,100,50\nFeb,200,70")
        assert series == "Sales"
        assert _pairs(entries) == [("Jan", 100.0), ("Feb", 200.0)]

    def test_empty_label_defaults(self):
        """Test the default label for an empty cell."""
        entries, _ = parse_csv(",5\nB,6")
        assert entries[0].label == "Item"

    def test_parse_reports_csv_format(self):
        """Test that parse reports the CSV format."""
        result = parse("Jan,1\nFeb,2")
        assert result.source_format == "csv"
        assert not result.used_example


class TestJSON:
    """Tests for decoded JSON arrays."""

    def test_records_with_alternate_keys(self):
        """Test records using alternate label/value keys."""
        data = [{"x": "A", "amount": 3}, {"label": "B", "value": "4.5"}]
        assert _pairs(parse_json_records(data)) == [("A", 3.0), ("B", 4.5)]

    def test_scalars_get_item_labels(self):
        """Test scalars get Item labels."""
        assert _pairs(parse_json_records([1, 2])) == [("Item 1", 1.0), ("Item 2", 2.0)]

    def test_non_numeric_values_are_skipped(self):
        """Test non-numeric values are skipped."""
        assert _pairs(parse_json_records([{"label": "A", "value": "abc"}, 7])) == [("Item 2", 7.0)]

    def test_object_is_not_a_record_list(self):
        """Test that a JSON object is not a record list."""
        assert parse_json_records({"label": "A", "value": 1}) == []


class TestFreeText:
    """Tests for the regex strategy cascade."""

    @pytest.mark.parametrize("text,expected", [
        ("Sales: 12K", [("Sales", 12000.0)]),
        ("Revenue 3M", [("Revenue", 3000000.0)]),
        ("Growth: 50%", [("Growth", 0.5)]),
        ("Rent - $1,200", [("Rent", 1200.0)]),
        ("Jan: 100\nFeb: 200", [("Jan", 100.0), ("Feb", 200.0)]),
    ])
    def test_unit_suffixes_and_separators(self, text, expected):
        """Test unit suffixes and thousands separators."""
        assert _pairs(parse_free_text(text)) == expected

    def test_unit_must_not_be_part_of_a_word(self):
        """Test that a unit letter inside a word is not a suffix."""
        entries = parse_free_text("Budget 12 Marketing")
        assert entries[0].value == 12.0

    def test_first_productive_strategy_wins(self):
        """Test the first strategy with results wins."""
        calls = []

        def empty(text):
            calls.append("empty")
            return []

        def productive(text):
            calls.append("productive")
            return [ParsedEntry(label="A", value=1.0)]

        def never(text):
            calls.append("never")
            return [ParsedEntry(label="B", value=2.0)]

        entries = parse_free_text("x", [("empty", empty), ("productive", productive), ("never", never)])
        assert _pairs(entries) == [("A", 1.0)]
        assert calls == ["empty", "productive"]

    def test_strategies_are_ordered(self):
        """Test the strategy order."""
        assert [name for name, _ in TEXT_STRATEGIES] == ["colon", "space", "equals"]


class TestFallback:
    """Tests for the example-data fallback."""

    def test_empty_input_returns_pie_example(self):
        """Test empty input returns the pie example."""
        result = parse("", "pie")
        assert result.used_example
        assert result.source_format == "example"
        assert _pairs(result.entries) == EXAMPLE_SERIES["pie"]

    @pytest.mark.parametrize("text", [None, "   ", "hello world", "[]", "{}"])
    def test_unparseable_input_uses_example(self, text):
        """Test unparseable input uses example data."""
        result = parse(text, "line")
        assert result.used_example
        assert _pairs(result.entries) == EXAMPLE_SERIES["line"]

    def test_unknown_chart_type_falls_back_to_bar_example(self):
        """Test unknown chart types fall back to the bar example."""
        assert _pairs(parse("", "radar").entries) == EXAMPLE_SERIES["bar"]

    def test_table_target_has_its_own_example(self):
        """The parser serves a product table for tabular previews."""
        result = parse("", "table")
        assert result.used_example
        assert _pairs(result.entries) == EXAMPLE_SERIES["table"]

    def test_parse_never_returns_empty(self):
        """Test that parsing never returns no entries."""
        assert parse_entries("nothing to see", "doughnut")


class TestDeterminism:
    """Same input, same output."""

    @pytest.mark.parametrize("text", [
        "Month,Sales\nJan,12000\nFeb,15500",
        "Sales: 12K, Costs: 3K",
        '[{"label": "A", "value": 1}]',
        "",
    ])
    def test_parse_is_deterministic(self, text):
        """Test that parsing is deterministic."""
        assert parse(text, "bar") == parse(text, "bar")
