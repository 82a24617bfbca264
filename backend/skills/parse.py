"""
Parsing skill — turns raw user text into (label, value) entries.

Detection order (first match wins):
1. CSV   — a comma plus a newline or more than two comma-separated tokens.
2. JSON  — a JSON array of records.
3. Text  — an ordered cascade of regex strategies; the first strategy that
           yields at least one entry is used and the rest never run.

Parsing never raises. When nothing usable comes out, a canned example series
for the requested chart type is returned with ``used_example=True`` so the
caller can tell the difference.
"""

from __future__ import annotations

import json
import logging
import math
import re
from typing import Any, Callable, List, Optional, Sequence, Tuple

from core.chart_types import EXAMPLE_SERIES
from core.models import ParsedEntry, ParseResult

logger = logging.getLogger("uvicorn.error")

Strategy = Callable[[str], List[ParsedEntry]]

_UNIT_FACTORS = {"K": 1_000.0, "M": 1_000_000.0}
_LEADING_FLOAT = re.compile(r"^[-+]?(?:\d+\.?\d*|\.\d+)(?:[eE][-+]?\d+)?")
_NON_NUMERIC = re.compile(r"[^0-9.\-]")


# ---------------------------------------------------------------------------
# Number helpers
# ---------------------------------------------------------------------------

def _leading_float(text: str) -> float:
    """Parse the longest numeric prefix, like JavaScript's parseFloat."""
    m = _LEADING_FLOAT.match(text.strip())
    if not m:
        return math.nan
    return float(m.group(0))


def _coerce_float(val: Any) -> float:
    if val is None or isinstance(val, bool):
        return math.nan
    if isinstance(val, (int, float)):
        return float(val)
    return _leading_float(str(val))


def _apply_unit(value: float, unit: Optional[str]) -> float:
    unit = (unit or "").upper()
    if unit == "%":
        return value / 100.0
    return value * _UNIT_FACTORS.get(unit, 1.0)


def _entry(label: str, value: float) -> Optional[ParsedEntry]:
    label = (label or "").strip()
    if not label or not math.isfinite(value):
        return None
    return ParsedEntry(label=label, value=value)


# ---------------------------------------------------------------------------
# Format detection
# ---------------------------------------------------------------------------

def _load_json(text: str) -> Tuple[bool, Any]:
    try:
        return True, json.loads(text)
    except (ValueError, RecursionError):
        return False, None


def is_json(text: str) -> bool:
    return _load_json(text)[0]


def is_csv(text: str) -> bool:
    if "," not in text:
        return False
    if not ("\n" in text or len(text.split(",")) > 2):
        return False
    # A JSON array of records also has commas; let the JSON path claim it.
    if text[:1] in "[{" and is_json(text):
        return False
    return True


# ---------------------------------------------------------------------------
# CSV
# ---------------------------------------------------------------------------

def parse_csv(text: str) -> Tuple[List[ParsedEntry], Optional[str]]:
    """
    Split each line on commas; the first field is the label and the second
    the value. Further columns are ignored.

    Returns (entries, series_label). The first line is a header when it
    mentions "label"/"name", or when its value cell holds no digits at all;
    in both cases its value cell names the series.
    """
    lines = [ln.strip() for ln in text.strip().splitlines()]
    lines = [ln for ln in lines if ln]
    if not lines:
        return [], None

    series_label: Optional[str] = None
    header = lines[0].split(",")
    header_value = header[1].strip() if len(header) > 1 else ""
    lowered = lines[0].lower()
    if "label" in lowered or "name" in lowered or (header_value and not re.search(r"\d", header_value)):
        series_label = header_value or None
        lines = lines[1:]

    entries: List[ParsedEntry] = []
    for line in lines:
        fields = line.split(",")
        label = fields[0]
        raw_value = fields[1] if len(fields) > 1 else ""
        value = _leading_float(_NON_NUMERIC.sub("", raw_value))
        if math.isnan(value):
            continue
        entry = _entry(label.strip() or "Item", value)
        if entry is not None:
            entries.append(entry)
    return entries, series_label


# ---------------------------------------------------------------------------
# JSON
# ---------------------------------------------------------------------------

def parse_json_records(data: Any) -> List[ParsedEntry]:
    """Entries from a decoded JSON array; anything else yields nothing."""
    if not isinstance(data, list):
        return []
    entries: List[ParsedEntry] = []
    for i, item in enumerate(data):
        if isinstance(item, dict):
            label = item.get("label") or item.get("name") or item.get("x") or "Item"
            value = _coerce_float(item.get("value") or item.get("y") or item.get("amount") or 0)
        else:
            label, value = f"Item {i + 1}", _coerce_float(item)
        entry = _entry(str(label), value)
        if entry is not None:
            entries.append(entry)
    return entries


# ---------------------------------------------------------------------------
# Free text: ordered regex strategies
# ---------------------------------------------------------------------------

_LABEL = r"([A-Za-zА-Яа-я\s]+?)"
_UNIT = r"\s*(?:(K|M|%)(?![A-Za-zА-Яа-я]))?"

_COLON_PATTERN = re.compile(_LABEL + r"(?:[:\-]?\s*\$?)([\d,.]+)" + _UNIT, re.IGNORECASE)
_SPACE_PATTERN = re.compile(_LABEL + r"\s+(\d+(?:,\d+)*(?:\.\d+)?)" + _UNIT, re.IGNORECASE)
_EQUALS_PATTERN = re.compile(_LABEL + r"\s*=\s*(\d+(?:,\d+)*(?:\.\d+)?)" + _UNIT, re.IGNORECASE)


def _regex_strategy(pattern: re.Pattern) -> Strategy:
    def run(text: str) -> List[ParsedEntry]:
        entries: List[ParsedEntry] = []
        for m in pattern.finditer(text):
            try:
                value = float(m.group(2).replace(",", ""))
            except ValueError:
                continue
            entry = _entry(m.group(1), _apply_unit(value, m.group(3)))
            if entry is not None:
                entries.append(entry)
        return entries

    return run


# "Label: $12K" / "Label - 12,000", then "Label 12K", then "Label=12K"
TEXT_STRATEGIES: Tuple[Tuple[str, Strategy], ...] = (
    ("colon", _regex_strategy(_COLON_PATTERN)),
    ("space", _regex_strategy(_SPACE_PATTERN)),
    ("equals", _regex_strategy(_EQUALS_PATTERN)),
)


def parse_free_text(
    text: str,
    strategies: Sequence[Tuple[str, Strategy]] = TEXT_STRATEGIES,
) -> List[ParsedEntry]:
    """Run strategies in order and return the first non-empty result."""
    for name, strategy in strategies:
        entries = strategy(text)
        if entries:
            logger.debug("free-text strategy %s matched %d entries", name, len(entries))
            return entries
    return []


# ---------------------------------------------------------------------------
# Fallback
# ---------------------------------------------------------------------------

def example_entries(chart_type: str) -> List[ParsedEntry]:
    series = EXAMPLE_SERIES.get(chart_type) or EXAMPLE_SERIES["bar"]
    return [ParsedEntry(label=label, value=value) for label, value in series]


def _example_result(chart_type: str) -> ParseResult:
    return ParseResult(
        entries=example_entries(chart_type),
        source_format="example",
        used_example=True,
    )


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def parse(raw_text: Optional[str], chart_type_hint: str = "bar") -> ParseResult:
    """Detect the input format and extract entries; never raises."""
    text = (raw_text if isinstance(raw_text, str) else str(raw_text or "")).strip()
    try:
        if is_csv(text):
            entries, series_label = parse_csv(text)
            result = ParseResult(entries=entries, source_format="csv", series_label=series_label)
        else:
            ok, data = _load_json(text)
            if ok and isinstance(data, list):
                result = ParseResult(entries=parse_json_records(data), source_format="json")
            else:
                result = ParseResult(entries=parse_free_text(text), source_format="text")
    except Exception as e:
        logger.warning("Parsing failed, using example data: %s", e)
        return _example_result(chart_type_hint)

    if not result.entries:
        logger.info("No entries parsed from %s input; using %s example data", result.source_format, chart_type_hint)
        return _example_result(chart_type_hint)
    return result


def parse_entries(raw_text: Optional[str], chart_type_hint: str = "bar") -> List[ParsedEntry]:
    """Entries only, for callers that do not need the detection metadata."""
    return parse(raw_text, chart_type_hint).entries
