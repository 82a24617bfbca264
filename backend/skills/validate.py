"""
Validation skill for canonical chart data.

Structural checks are chart-type specific and may block rendering (errors).
Quality checks apply to every chart type and only ever warn.
"""

from __future__ import annotations

from typing import Any, List, Mapping, Tuple

from core.models import ChartData, ValidationResult
from core.utils import is_missing, pct

_MISSING_WARN_PCT = 20.0
_PIE_MAX_CATEGORIES = 10


# ---------------------------------------------------------------------------
# Structural validation
# ---------------------------------------------------------------------------

def _validate_points(data: ChartData, chart_type: str) -> List[str]:
    errors: List[str] = []
    arity = 3 if chart_type == "bubble" else 2
    required = ("x", "y", "r") if chart_type == "bubble" else ("x", "y")

    for index, ds in enumerate(data.datasets, start=1):
        for point in ds.data:
            if isinstance(point, (list, tuple)):
                if len(point) < arity:
                    errors.append(
                        f"Dataset {index}: {chart_type} charts require {arity} values per data point"
                    )
            elif isinstance(point, Mapping):
                for prop in required:
                    if prop not in point:
                        errors.append(
                            f"Dataset {index}: Missing required property '{prop}' for {chart_type} chart"
                        )
    return errors


def validate_structure(data: ChartData, chart_type: str) -> Tuple[List[str], List[str], List[str]]:
    """
    Chart-type specific checks.

    Returns (errors, warnings, suggestions).
    """
    errors: List[str] = []
    warnings: List[str] = []
    suggestions: List[str] = []

    if chart_type in ("pie", "doughnut"):
        if len(data.datasets) > 1:
            warnings.append("Pie charts typically work better with a single dataset")
        if len(data.labels) > _PIE_MAX_CATEGORIES:
            warnings.append("Pie charts with many categories can be hard to read")
            suggestions.append("Consider grouping smaller categories or using a bar chart")

    elif chart_type in ("line", "area"):
        if not data.datasets:
            errors.append("Line charts require at least one dataset")
        if len(data.labels) < 2:
            warnings.append("Line charts need at least 2 data points to show trends")

    elif chart_type in ("scatter", "bubble"):
        errors.extend(_validate_points(data, chart_type))

    elif chart_type == "radar":
        if len(data.labels) < 3:
            warnings.append("Radar charts work best with 3 or more axes")

    return errors, warnings, suggestions


# ---------------------------------------------------------------------------
# Quality validation
# ---------------------------------------------------------------------------

def validate_quality(data: ChartData) -> Tuple[List[str], List[str]]:
    """
    Missing-value checks per dataset.

    Returns (warnings, suggestions); never blocks.
    """
    warnings: List[str] = []
    suggestions: List[str] = []

    for index, ds in enumerate(data.datasets, start=1):
        values = ds.data
        present = sum(1 for v in values if not is_missing(v))

        if values:
            missing_pct = pct(len(values) - present, len(values))
            if missing_pct > _MISSING_WARN_PCT:
                warnings.append(f"Dataset {index} has {missing_pct:.1f}% missing values")
                suggestions.append("Consider cleaning the data or using interpolation")

        if present == 0:
            warnings.append(f"Dataset {index} is empty")

    return warnings, suggestions


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def validate(data: Any, chart_type: str) -> ValidationResult:
    """Run structural and quality checks; ``is_valid`` reflects structure only."""
    if data is None:
        return ValidationResult(is_valid=False, errors=["Data is required"])
    if isinstance(data, Mapping):
        try:
            data = ChartData.model_validate(data)
        except ValueError as e:
            return ValidationResult(is_valid=False, errors=[f"Data is not chart data: {e}"])
    if not isinstance(data, ChartData):
        return ValidationResult(is_valid=False, errors=["Data must be an object"])

    errors, warnings, suggestions = validate_structure(data, chart_type)
    quality_warnings, quality_suggestions = validate_quality(data)

    return ValidationResult(
        is_valid=not errors,
        errors=errors,
        warnings=warnings + quality_warnings,
        suggestions=suggestions + quality_suggestions,
    )
