"""
Chart type registry, themes and canned example series.

Static tables only; callers must copy before mutating (see ``default_options``).
"""

from __future__ import annotations

import copy
from typing import Any, Dict, List

from core.models import AnimationSettings, ChartTypeInfo, Theme


# ---------------------------------------------------------------------------
# Palette used by the normalizer for default dataset colors
# ---------------------------------------------------------------------------

DEFAULT_PALETTE: List[str] = [
    "#3B82F6", "#8B5CF6", "#06D6A0", "#60A5FA", "#A78BFA",
    "#34D399", "#93C5FD", "#C4B5FD", "#6EE7B7", "#A5F3FC",
]


def default_color(index: int) -> str:
    return DEFAULT_PALETTE[index % len(DEFAULT_PALETTE)]


# ---------------------------------------------------------------------------
# Chart families
# ---------------------------------------------------------------------------

LINE_FAMILY = frozenset({"line", "area"})
PIE_FAMILY = frozenset({"pie", "doughnut", "polarArea"})
POINT_FAMILY = frozenset({"scatter", "bubble"})


# ---------------------------------------------------------------------------
# Chart types
# ---------------------------------------------------------------------------

def _opts(title: str, legend: Dict[str, Any] | None = None, **extra: Any) -> Dict[str, Any]:
    options: Dict[str, Any] = {
        "responsive": True,
        "maintainAspectRatio": False,
        "plugins": {
            "legend": legend if legend is not None else {"position": "top"},
            "title": {"display": True, "text": title},
        },
    }
    options.update(extra)
    return options


_Y_ZERO = {"y": {"beginAtZero": True}}
_XY_LINEAR = {"x": {"type": "linear", "position": "bottom"}, "y": {"beginAtZero": True}}

CHART_TYPES: Dict[str, ChartTypeInfo] = {
    info.id: info
    for info in [
        ChartTypeInfo(
            id="bar", name="Bar Chart", category="comparison",
            description="Compare values across categories",
            default_options=_opts("Bar Chart", {"display": True, "position": "top"}, scales=_Y_ZERO),
        ),
        ChartTypeInfo(
            id="line", name="Line Chart", category="trend",
            description="Show trends over time or continuous data",
            default_options=_opts(
                "Line Chart", scales=_Y_ZERO,
                elements={"line": {"tension": 0.4}, "point": {"radius": 5, "hoverRadius": 7}},
            ),
        ),
        ChartTypeInfo(
            id="area", name="Area Chart", category="trend",
            description="Show trends with filled areas",
            default_options=_opts(
                "Area Chart", scales={"y": {"beginAtZero": True, "stacked": True}},
                elements={"line": {"tension": 0.4, "fill": True}},
            ),
        ),
        ChartTypeInfo(
            id="pie", name="Pie Chart", category="composition",
            description="Show parts of a whole",
            default_options=_opts("Pie Chart", {"position": "right"}),
        ),
        ChartTypeInfo(
            id="doughnut", name="Doughnut Chart", category="composition",
            description="Show parts of a whole around an empty center",
            default_options=_opts("Doughnut Chart", {"position": "right"}, cutout="50%"),
        ),
        ChartTypeInfo(
            id="polarArea", name="Polar Area Chart", category="composition",
            description="Compare parts of a whole on a radial scale",
            default_options=_opts("Polar Area Chart", {"position": "right"}),
        ),
        ChartTypeInfo(
            id="scatter", name="Scatter Plot", category="correlation",
            description="Show relationship between two variables",
            default_options=_opts("Scatter Plot", scales=_XY_LINEAR),
        ),
        ChartTypeInfo(
            id="bubble", name="Bubble Chart", category="correlation",
            description="Show relationship with three variables",
            default_options=_opts("Bubble Chart", scales=_XY_LINEAR),
        ),
        ChartTypeInfo(
            id="radar", name="Radar Chart", category="comparison",
            description="Compare multiple variables",
            default_options=_opts(
                "Radar Chart", scales={"r": {"beginAtZero": True, "grid": {"circular": True}}},
            ),
        ),
        ChartTypeInfo(
            id="heatmap", name="Heatmap", category="matrix",
            description="Show data intensity in a matrix",
            default_options=_opts("Heatmap", {"position": "right"}),
        ),
        ChartTypeInfo(
            id="histogram", name="Histogram", category="distribution",
            description="Show frequency distribution",
            default_options=_opts(
                "Histogram", {"display": False},
                scales={
                    "y": {"beginAtZero": True, "title": {"display": True, "text": "Frequency"}},
                    "x": {"title": {"display": True, "text": "Value"}},
                },
            ),
        ),
        ChartTypeInfo(
            id="box", name="Box Plot", category="distribution",
            description="Show statistical distribution",
            default_options=_opts("Box Plot", {"display": False}, scales=_Y_ZERO),
        ),
        ChartTypeInfo(
            id="funnel", name="Funnel Chart", category="composition",
            description="Show progressive reduction",
            default_options=_opts("Funnel Chart", {"position": "right"}),
        ),
        ChartTypeInfo(
            id="gauge", name="Gauge Chart", category="kpi",
            description="Show progress towards a goal",
            default_options=_opts("Gauge", {"display": False}),
        ),
        ChartTypeInfo(
            id="progress", name="Progress Bar", category="kpi",
            description="Show completion percentage",
            default_options=_opts(
                "Progress", {"display": False}, indexAxis="y",
                scales={"x": {"beginAtZero": True, "max": 100}},
            ),
        ),
        ChartTypeInfo(
            id="timeline", name="Timeline", category="temporal",
            description="Show events over time",
            default_options=_opts("Timeline"),
        ),
    ]
}


def default_options(chart_type: str) -> Dict[str, Any]:
    """Deep copy of the registry defaults; safe to mutate."""
    return copy.deepcopy(CHART_TYPES[chart_type].default_options)


# ---------------------------------------------------------------------------
# Themes & animation
# ---------------------------------------------------------------------------

_DARK_BASE = {"background": "#1f2937", "grid": "#374151", "text": "#f9fafb", "border": "#4b5563"}

THEMES: Dict[str, Theme] = {
    "default": Theme(name="Default", colors=["#3B82F6", "#8B5CF6", "#06D6A0", "#60A5FA", "#A78BFA"]),
    "dark": Theme(name="Dark", colors=["#60A5FA", "#A78BFA", "#34D399", "#93C5FD", "#C4B5FD"], **_DARK_BASE),
    "vibrant": Theme(name="Vibrant", colors=["#EF4444", "#F59E0B", "#10B981", "#3B82F6", "#8B5CF6"]),
    "pastel": Theme(name="Pastel", colors=["#FCA5A5", "#FCD34D", "#86EFAC", "#93C5FD", "#DDD6FE"]),
    "monochrome": Theme(name="Monochrome", colors=["#1f2937", "#374151", "#4b5563", "#6b7280", "#9ca3af"]),
    "nature": Theme(name="Nature", colors=["#059669", "#10b981", "#34d399", "#6ee7b7", "#a7f3d0"]),
    "sunset": Theme(name="Sunset", colors=["#dc2626", "#ea580c", "#f59e0b", "#fbbf24", "#fcd34d"]),
    "ocean": Theme(name="Ocean", colors=["#0891b2", "#06b6d4", "#22d3ee", "#67e8f9", "#a5f3fc"]),
}

DEFAULT_ANIMATION = AnimationSettings()


# ---------------------------------------------------------------------------
# Example series returned when nothing could be parsed
# ---------------------------------------------------------------------------

_MONTHLY = [("Jan", 1200.0), ("Feb", 1500.0), ("Mar", 1800.0), ("Apr", 2100.0), ("May", 2400.0)]
_SEGMENTS = [("Segment A", 45.0), ("Segment B", 30.0), ("Segment C", 25.0)]

EXAMPLE_SERIES: Dict[str, List[tuple]] = {
    "bar": [("Jan", 12000.0), ("Feb", 15000.0), ("Mar", 18000.0), ("Apr", 20000.0)],
    "line": _MONTHLY,
    "area": _MONTHLY,
    "pie": _SEGMENTS,
    "doughnut": _SEGMENTS,
    # parse-only target for tabular previews; not a registered chart type,
    # so ChartPipeline rejects it
    "table": [("Product A", 4500.0), ("Product B", 3600.0), ("Product C", 6000.0)],
}
