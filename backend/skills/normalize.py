"""
Normalization skill — converts any accepted input shape into ChartData.

Accepted shapes:
- ParseResult or a list of ParsedEntry          -> one dataset from the entries
- flat list of numbers / numeric strings        -> labels "Item 1..n"
- list of [x, y(, r)] lists, or of {x, y(, r)}
  records for scatter/bubble                    -> one point-based dataset
- list of dicts with 2 keys                     -> first key labels, second key data
- list of dicts with N > 2 keys                 -> first key labels, one dataset per other key
- {"rows": [...], "columns": [...]} table       -> first column labels, other columns datasets
- pandas.DataFrame                              -> same as a table
- {"values": [...], "labels"?, "label"?}        -> single dataset passthrough
- {"labels": [...], "datasets": [...]}          -> defaulted canonical data

Colors default from the palette by dataset index, so normalizing the same
input twice gives identical output and ``normalize(normalize(x)) == normalize(x)``.
"""

from __future__ import annotations

import logging
import math
from typing import Any, Dict, List, Mapping, Optional, Sequence

import pandas as pd

from core.chart_types import POINT_FAMILY, default_color
from core.models import ChartData, DataSummary, Dataset, ParsedEntry, ParseResult
from core.utils import df_json_safe, is_missing, json_safe_value, smart_numeric_value

logger = logging.getLogger("uvicorn.error")

_DEFAULT_SERIES = "Data"


# ---------------------------------------------------------------------------
# Value helpers
# ---------------------------------------------------------------------------

def _label_text(val: Any) -> str:
    val = json_safe_value(val)
    if val is None:
        return ""
    if isinstance(val, float) and val.is_integer():
        return str(int(val))
    return str(val)


def _data_value(val: Any) -> Any:
    """Numbers stay numbers, numeric strings are parsed, points pass through."""
    val = json_safe_value(val)
    if isinstance(val, (dict, list)) or val is None or isinstance(val, bool):
        return val
    if isinstance(val, (int, float)):
        return val
    if isinstance(val, str):
        if val == "":
            return val
        num = smart_numeric_value(val)
        return None if math.isnan(num) else num
    return val


def _is_point(item: Any) -> bool:
    return isinstance(item, (list, tuple)) or (isinstance(item, Mapping) and "x" in item)


def _dataset(label: str, data: Sequence[Any]) -> Dict[str, Any]:
    return {"label": label, "data": list(data)}


# ---------------------------------------------------------------------------
# Shape converters (each returns a loose {labels, datasets} dict)
# ---------------------------------------------------------------------------

def _from_entries(entries: Sequence[ParsedEntry], series_label: Optional[str]) -> Dict[str, Any]:
    return {
        "labels": [e.label for e in entries],
        "datasets": [_dataset(series_label or _DEFAULT_SERIES, [e.value for e in entries])],
    }


def _from_records(records: Sequence[Mapping[str, Any]]) -> Dict[str, Any]:
    keys = list(records[0].keys())
    if len(keys) < 2:
        logger.debug("Record list with %d key(s) cannot be charted", len(keys))
        return {"labels": [], "datasets": []}
    label_key, data_keys = keys[0], keys[1:]
    return {
        "labels": [r.get(label_key) for r in records],
        "datasets": [_dataset(str(k), [r.get(k) for r in records]) for k in data_keys],
    }


def _from_list(items: Sequence[Any], chart_type: str) -> Dict[str, Any]:
    if not items:
        return {"labels": [], "datasets": []}
    items = [it if isinstance(it, (ParsedEntry, Mapping)) else json_safe_value(it) for it in items]
    first = items[0]
    if isinstance(first, ParsedEntry):
        return _from_entries(items, None)
    if first is None or (isinstance(first, (int, float, str)) and not isinstance(first, bool)):
        return {
            "labels": [f"Item {i + 1}" for i in range(len(items))],
            "datasets": [_dataset(_DEFAULT_SERIES, items)],
        }
    if isinstance(first, list) or (chart_type in POINT_FAMILY and _is_point(first)):
        return {"labels": [], "datasets": [_dataset(_DEFAULT_SERIES, items)]}
    if isinstance(first, Mapping):
        return _from_records([it for it in items if isinstance(it, Mapping)])
    return {"labels": [], "datasets": []}


def _from_table(rows: Sequence[Any], columns: Sequence[Any]) -> Dict[str, Any]:
    columns = [str(c) for c in columns]
    if len(columns) < 2:
        return {"labels": [], "datasets": []}

    def cell(row: Any, idx: int, col: str) -> Any:
        if isinstance(row, Mapping):
            return row.get(col)
        if isinstance(row, (list, tuple)) and idx < len(row):
            return row[idx]
        return None

    return {
        "labels": [cell(r, 0, columns[0]) for r in rows],
        "datasets": [
            _dataset(col, [cell(r, i, col) for r in rows])
            for i, col in enumerate(columns[1:], start=1)
        ],
    }


def _from_dataframe(df: pd.DataFrame) -> Dict[str, Any]:
    safe = df_json_safe(df)
    return _from_table(safe.to_dict(orient="records"), list(safe.columns))


def _from_values(obj: Mapping[str, Any]) -> Dict[str, Any]:
    values = list(obj.get("values") or [])
    labels = obj.get("labels") or [f"Item {i + 1}" for i in range(len(values))]
    return {
        "labels": list(labels),
        "datasets": [_dataset(obj.get("label") or _DEFAULT_SERIES, values)],
    }


def _to_loose(raw: Any, chart_type: str) -> Dict[str, Any]:
    if raw is None:
        return {"labels": [], "datasets": []}
    if isinstance(raw, ChartData):
        return raw.model_dump()
    if isinstance(raw, ParseResult):
        return _from_entries(raw.entries, raw.series_label)
    if isinstance(raw, pd.DataFrame):
        return _from_dataframe(raw)
    if isinstance(raw, pd.Series):
        return _from_list(raw.tolist(), chart_type)
    if isinstance(raw, Mapping):
        if "datasets" in raw:
            return dict(raw)
        if "rows" in raw and "columns" in raw:
            return _from_table(raw.get("rows") or [], raw.get("columns") or [])
        if "values" in raw:
            return _from_values(raw)
        logger.debug("Unrecognized mapping shape with keys %s", sorted(map(str, raw.keys()))[:10])
        return {"labels": [], "datasets": []}
    if isinstance(raw, (list, tuple)):
        return _from_list(list(raw), chart_type)
    logger.debug("Unsupported input type %s", type(raw).__name__)
    return {"labels": [], "datasets": []}


# ---------------------------------------------------------------------------
# Canonical defaulting
# ---------------------------------------------------------------------------

def _ensure_structure(loose: Mapping[str, Any]) -> ChartData:
    labels = [_label_text(v) for v in (loose.get("labels") or [])]

    datasets: List[Dataset] = []
    for index, raw_ds in enumerate(loose.get("datasets") or []):
        if isinstance(raw_ds, Dataset):
            raw_ds = raw_ds.model_dump()
        if not isinstance(raw_ds, Mapping):
            raw_ds = {"data": raw_ds if isinstance(raw_ds, (list, tuple)) else []}
        ds = dict(raw_ds)
        ds["data"] = [_data_value(v) for v in (ds.get("data") or [])]
        if not ds.get("label"):
            ds["label"] = f"Dataset {index + 1}"
        else:
            ds["label"] = str(ds["label"])
        if not ds.get("backgroundColor"):
            ds["backgroundColor"] = default_color(index)
        if not ds.get("borderColor"):
            ds["borderColor"] = default_color(index)
        datasets.append(Dataset.model_validate(ds))

    return ChartData(labels=labels, datasets=datasets)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def normalize(raw: Any, chart_type: str = "bar") -> ChartData:
    """Convert any accepted input shape into canonical chart data."""
    data = _ensure_structure(_to_loose(raw, chart_type))
    logger.debug(
        "normalized %s input for %s: %d labels, %d datasets",
        type(raw).__name__, chart_type, len(data.labels), len(data.datasets),
    )
    return data


def summarize(data: ChartData) -> DataSummary:
    """Point counts, null/negative flags and the numeric range across datasets."""
    total = 0
    has_null = False
    has_negative = False
    lo, hi = math.inf, -math.inf
    for ds in data.datasets:
        total += len(ds.data)
        for v in ds.data:
            if v is None:
                has_null = True
            elif isinstance(v, (int, float)) and not isinstance(v, bool):
                has_negative = has_negative or v < 0
                lo, hi = min(lo, v), max(hi, v)
    return DataSummary(
        total_points=total,
        dataset_count=len(data.datasets),
        has_null_values=has_null,
        has_negative_values=has_negative,
        min=0.0 if lo == math.inf else float(lo),
        max=0.0 if hi == -math.inf else float(hi),
    )


def clean(data: ChartData) -> ChartData:
    """
    Drop missing values from every dataset and trim labels to the shortest
    remaining dataset.

    Missing values are removed per dataset, so values after a gap shift left;
    use this only when positional alignment does not matter.
    """
    datasets = [
        ds.model_copy(update={"data": [v for v in ds.data if not is_missing(v)]})
        for ds in data.datasets
    ]
    labels = list(data.labels)
    if labels and datasets:
        labels = labels[: min(len(labels), *(len(ds.data) for ds in datasets))]
    return ChartData(labels=labels, datasets=datasets)
