"""
Core Pydantic models for the chart ingestion pipeline.

All domain types live here so every module shares the same vocabulary.
"""

from __future__ import annotations

import time
from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------

SourceFormat = Literal["csv", "json", "text", "example"]


class ParsedEntry(BaseModel):
    label: str
    value: float                          # always finite


class ParseResult(BaseModel):
    entries: List[ParsedEntry] = Field(default_factory=list)
    source_format: SourceFormat = "text"
    used_example: bool = False            # True when canned example data replaced the input
    series_label: Optional[str] = None    # value-column header, when the input had one


# ---------------------------------------------------------------------------
# Canonical chart data
# ---------------------------------------------------------------------------

ColorValue = Union[str, List[str], None]


class Dataset(BaseModel):
    model_config = ConfigDict(extra="allow")

    label: str
    data: List[Any] = Field(default_factory=list)   # numbers/None, or {x, y[, r]} points
    backgroundColor: ColorValue = None
    borderColor: ColorValue = None


class ChartData(BaseModel):
    labels: List[str] = Field(default_factory=list)
    datasets: List[Dataset] = Field(default_factory=list)


class DataSummary(BaseModel):
    total_points: int = 0
    dataset_count: int = 0
    has_null_values: bool = False
    has_negative_values: bool = False
    min: float = 0.0
    max: float = 0.0


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------

class ValidationResult(BaseModel):
    is_valid: bool = True
    errors: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)
    suggestions: List[str] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Rendering configuration
# ---------------------------------------------------------------------------

class Theme(BaseModel):
    name: str
    colors: List[str]
    background: str = "#ffffff"
    grid: str = "#e5e7eb"
    text: str = "#1f2937"
    border: str = "#d1d5db"


class AnimationSettings(BaseModel):
    enabled: bool = True
    duration: int = 750
    easing: str = "easeInOutQuart"
    delay: int = 0


class ChartTypeInfo(BaseModel):
    id: str
    name: str
    category: str
    description: str = ""
    default_options: Dict[str, Any] = Field(default_factory=dict)


class ChartConfiguration(BaseModel):
    """Terminal artifact handed to a renderer. Rebuild to change anything."""

    model_config = ConfigDict(frozen=True)

    type: str
    data: ChartData
    options: Dict[str, Any] = Field(default_factory=dict)
    theme: Theme
    animation: AnimationSettings
    responsive: bool = True
    interactive: bool = True


# ---------------------------------------------------------------------------
# External services & caching
# ---------------------------------------------------------------------------

class AIParseResponse(BaseModel):
    success: bool = True
    data: List[ParsedEntry] = Field(default_factory=list)
    chartType: str = "bar"
    timestamp: float = Field(default_factory=time.time)
    source: Literal["remote", "local"] = "remote"
    used_example: bool = False            # canned data stood in for the prompt


class CacheEntry(BaseModel):
    key: str
    value: Any = None
    inserted_at: float
    last_accessed: float


# ---------------------------------------------------------------------------
# Pipeline result
# ---------------------------------------------------------------------------

class PipelineResult(BaseModel):
    chart_type: str
    parse: Optional[ParseResult] = None
    data: ChartData
    summary: DataSummary
    validation: ValidationResult
    aggregated: bool = False
    config: Optional[ChartConfiguration] = None


# ---------------------------------------------------------------------------
# Request bodies
# ---------------------------------------------------------------------------

class ParseRequest(BaseModel):
    text: str = ""
    chartType: str = "bar"


class ChartRequest(BaseModel):
    input: Any = None                    # raw text, or any structured shape
    chartType: str = "bar"
    theme: Optional[str] = None
    animation: Optional[bool] = None
    options: Optional[Dict[str, Any]] = None
    maxPoints: Optional[int] = Field(None, ge=1)


class GenerateRequest(BaseModel):
    prompt: str
    chartType: str = "bar"
