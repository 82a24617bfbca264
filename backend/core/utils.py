"""
Shared utility helpers for the pipeline.

Pure functions: no LLM calls, no I/O, no side effects.
"""

from __future__ import annotations

import hashlib
import json
import logging
import math
import re
from typing import Any, Optional

import numpy as np
import pandas as pd
from pydantic import BaseModel

logger = logging.getLogger("uvicorn.error")


# ---------------------------------------------------------------------------
# Smart numeric parsing (currency, SI suffixes, percentages)
# ---------------------------------------------------------------------------

_SCALE = {
    "k": 1e3,
    "m": 1e6,
    "mm": 1e6,
    "b": 1e9,
    "bn": 1e9,
    "t": 1e12,
}

_MISSING_TOKENS = {"n/a", "na", "nan", "none", "null", "-", "--"}

_NUMERIC_TEXT = re.compile(
    r"^([-+]?(?:\d+\.?\d*|\.\d+)(?:e[-+]?\d+)?)\s*(mm|bn|k|m|b|t|%)?$",
    re.IGNORECASE,
)


def smart_numeric_value(val) -> float:
    """
    Number from a cell that may carry currency symbols, thousands separators,
    a K/M/B/T suffix or a percent sign. NaN when nothing numeric is there.
    """
    if val is None or isinstance(val, bool):
        return np.nan
    if isinstance(val, (int, float, np.integer, np.floating)):
        return float(val)
    text = str(val).strip()
    for ch in ",$€£":
        text = text.replace(ch, "")
    if text.lower() in _MISSING_TOKENS:
        return np.nan
    m = _NUMERIC_TEXT.match(text)
    if not m:
        return np.nan
    number = float(m.group(1))
    unit = (m.group(2) or "").lower()
    if unit == "%":
        return number / 100.0
    return number * _SCALE.get(unit, 1.0)


def to_float(val) -> Optional[float]:
    """Plain ``float()`` coercion; None for anything non-finite or unparseable."""
    try:
        out = float(val)
    except (TypeError, ValueError):
        return None
    return out if math.isfinite(out) else None


# ---------------------------------------------------------------------------
# JSON safety
# ---------------------------------------------------------------------------

def json_safe_value(val: Any) -> Any:
    """Unwrap numpy scalars and map NaN/inf to None, recursively for points."""
    if isinstance(val, dict):
        return {k: json_safe_value(v) for k, v in val.items()}
    if isinstance(val, (list, tuple)):
        return [json_safe_value(v) for v in val]
    if isinstance(val, np.generic):
        val = val.item()
    if isinstance(val, float) and not math.isfinite(val):
        return None
    if val is pd.NA or val is pd.NaT:
        return None
    return val


def df_json_safe(df: pd.DataFrame) -> pd.DataFrame:
    """Replace +/-inf -> NaN, then NaN -> None so JSON serialization works."""
    if df.empty:
        return df
    tmp = df.replace([np.inf, -np.inf], np.nan)
    tmp = tmp.astype(object)
    return tmp.where(pd.notna(tmp), None)


def is_missing(val: Any) -> bool:
    """None, NaN and the empty string count as missing values."""
    if val is None:
        return True
    if isinstance(val, str):
        return val == ""
    if isinstance(val, float):
        return math.isnan(val)
    return False


# ---------------------------------------------------------------------------
# Numeric helpers
# ---------------------------------------------------------------------------

def pct(n: int, d: int) -> float:
    """Percentage with 2-decimal rounding; zero-safe."""
    return 0.0 if d <= 0 else round(100.0 * n / d, 2)


# ---------------------------------------------------------------------------
# Fingerprints
# ---------------------------------------------------------------------------

def _json_default(obj: Any) -> Any:
    if isinstance(obj, BaseModel):
        return obj.model_dump()
    if isinstance(obj, np.generic):
        return obj.item()
    raise TypeError(f"Object of type {type(obj).__name__} is not fingerprintable")


def fingerprint(*parts: Any) -> Optional[str]:
    """
    Stable sha256 key for a tuple of JSON-able parts.

    Returns None when the parts cannot be serialized; callers treat that as
    a cache miss.
    """
    try:
        payload = json.dumps(parts, sort_keys=True, default=_json_default, allow_nan=False)
    except (TypeError, ValueError) as exc:
        logger.debug("fingerprint unavailable: %s", exc)
        return None
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()
