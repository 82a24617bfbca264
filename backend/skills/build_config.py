"""
Config builder skill.

Takes chart type + canonical data + theme/animation/option overrides and
produces a renderer-agnostic ChartConfiguration.

Theme colors by chart family:
- line/area:                 borderColor = c, backgroundColor = c + alpha
- pie/doughnut/polarArea:    backgroundColor = the whole palette (one color per slice)
- everything else:           backgroundColor = borderColor = c
where c = palette[dataset_index % len(palette)].

Option setters (set_options, set_plugins, set_scales) merge one level deep:
repeated calls accumulate top-level keys while a nested value passed again
replaces the previous nested value wholesale. Callers depend on this.
"""

from __future__ import annotations

import copy
import logging
from typing import Any, Dict, List, Optional, Union

from core.cache import LRUCache
from core.chart_types import (
    CHART_TYPES,
    DEFAULT_ANIMATION,
    LINE_FAMILY,
    PIE_FAMILY,
    THEMES,
    default_options,
)
from core.models import AnimationSettings, ChartConfiguration, ChartData, ChartTypeInfo, Theme
from core.utils import fingerprint
from skills.normalize import normalize

logger = logging.getLogger("uvicorn.error")

_LINE_FILL_ALPHA = "33"


class ConfigError(ValueError):
    """Raised when the builder is misused (unknown type/theme, missing fields)."""


# ---------------------------------------------------------------------------
# Theme & animation application (pure)
# ---------------------------------------------------------------------------

def apply_theme_colors(data: ChartData, chart_type: str, theme: Theme) -> ChartData:
    """Return a copy of ``data`` with palette colors assigned per dataset."""
    colors = list(theme.colors)
    themed = data.model_copy(deep=True)
    if not colors:
        return themed

    for index, ds in enumerate(themed.datasets):
        color = colors[index % len(colors)]
        if chart_type in LINE_FAMILY:
            ds.borderColor = color
            ds.backgroundColor = color + _LINE_FILL_ALPHA
        elif chart_type in PIE_FAMILY:
            ds.backgroundColor = list(colors)
        else:
            ds.backgroundColor = color
            ds.borderColor = color
    return themed


def apply_theme_to_options(options: Dict[str, Any], theme: Theme) -> None:
    """Color every scale's grid and ticks, the legend labels and the title, in place."""
    for scale in (options.get("scales") or {}).values():
        if not isinstance(scale, dict):
            continue
        grid = scale.setdefault("grid", {})
        if isinstance(grid, dict):
            grid["color"] = theme.grid
        ticks = scale.setdefault("ticks", {})
        if isinstance(ticks, dict):
            ticks["color"] = theme.text

    plugins = options.get("plugins") or {}
    if isinstance(plugins.get("legend"), dict):
        plugins["legend"]["labels"] = {**(plugins["legend"].get("labels") or {}), "color": theme.text}
    if isinstance(plugins.get("title"), dict):
        plugins["title"]["color"] = theme.text


def animation_option(animation: AnimationSettings) -> Union[bool, Dict[str, Any]]:
    """``False`` when disabled (no sub-fields), else duration/easing/delay."""
    if not animation.enabled:
        return False
    return {
        "duration": animation.duration,
        "easing": animation.easing,
        "delay": animation.delay,
    }


# ---------------------------------------------------------------------------
# Builder
# ---------------------------------------------------------------------------

class ChartConfigBuilder:
    """
    Fluent builder for ChartConfiguration.

    Usage:
        config = (
            ChartConfigBuilder()
            .set_type("bar")
            .set_data(chart_data)
            .set_theme("dark")
            .set_animation_enabled(False)
            .build()
        )

    ``build()`` leaves the builder untouched, so it can be reconfigured and
    built again.
    """

    def __init__(self) -> None:
        self.reset()

    def reset(self) -> "ChartConfigBuilder":
        self._type: Optional[str] = None
        self._data: Optional[ChartData] = None
        self._options: Dict[str, Any] = {}
        self._theme: Theme = THEMES["default"]
        self._animation: AnimationSettings = DEFAULT_ANIMATION.model_copy()
        self._responsive: Optional[bool] = None
        self._interactive: Optional[bool] = None
        return self

    # -- required fields ----------------------------------------------------

    def set_type(self, chart_type: str) -> "ChartConfigBuilder":
        """Select the chart type; replaces current options with its defaults."""
        if chart_type not in CHART_TYPES:
            raise ConfigError(f'Chart type "{chart_type}" not supported')
        self._type = chart_type
        self._options = default_options(chart_type)
        return self

    def set_data(self, data: Any) -> "ChartConfigBuilder":
        if data is None:
            raise ConfigError("Chart data must not be None")
        if isinstance(data, ChartData):
            self._data = data.model_copy(deep=True)
        else:
            self._data = normalize(data, self._type or "bar")
        return self

    # -- theme & animation --------------------------------------------------

    def set_theme(self, theme_name: str) -> "ChartConfigBuilder":
        theme = THEMES.get(theme_name)
        if theme is None:
            raise ConfigError(f'Theme "{theme_name}" not found')
        self._theme = theme
        return self

    def set_custom_theme(self, theme: Union[Theme, Dict[str, Any]]) -> "ChartConfigBuilder":
        self._theme = theme.model_copy(deep=True) if isinstance(theme, Theme) else Theme.model_validate(theme)
        return self

    def set_animation(self, **changes: Any) -> "ChartConfigBuilder":
        unknown = set(changes) - set(AnimationSettings.model_fields)
        if unknown:
            raise ConfigError(f"Unknown animation settings: {sorted(unknown)}")
        self._animation = AnimationSettings.model_validate({**self._animation.model_dump(), **changes})
        return self

    def set_animation_enabled(self, enabled: bool) -> "ChartConfigBuilder":
        return self.set_animation(enabled=bool(enabled))

    def set_animation_duration(self, duration: int) -> "ChartConfigBuilder":
        return self.set_animation(duration=duration)

    # -- options ------------------------------------------------------------

    def set_title(self, title: str) -> "ChartConfigBuilder":
        plugins = self._options.setdefault("plugins", {})
        plugins["title"] = {**(plugins.get("title") or {}), "display": True, "text": title}
        return self

    def set_legend_position(self, position: Union[str, bool]) -> "ChartConfigBuilder":
        """'top' | 'bottom' | 'left' | 'right', or False to hide the legend."""
        plugins = self._options.setdefault("plugins", {})
        plugins["legend"] = {
            **(plugins.get("legend") or {}),
            "display": position is not False,
            "position": position or "top",
        }
        return self

    def set_responsive(self, responsive: bool = True, maintain_aspect_ratio: bool = False) -> "ChartConfigBuilder":
        self._responsive = responsive
        self._options["responsive"] = responsive
        self._options["maintainAspectRatio"] = maintain_aspect_ratio
        return self

    def set_interactive(self, interactive: bool = True) -> "ChartConfigBuilder":
        self._interactive = interactive
        return self

    def set_dimensions(
        self,
        width: Optional[int] = None,
        height: Optional[int] = None,
        aspect_ratio: Optional[float] = None,
    ) -> "ChartConfigBuilder":
        if width is not None:
            self._options["width"] = width
        if height is not None:
            self._options["height"] = height
        if aspect_ratio is not None:
            self._options["aspectRatio"] = aspect_ratio
        return self

    def set_scales(self, scales: Dict[str, Any]) -> "ChartConfigBuilder":
        self._options["scales"] = {**(self._options.get("scales") or {}), **copy.deepcopy(scales)}
        return self

    def set_x_axis(self, axis: Dict[str, Any]) -> "ChartConfigBuilder":
        return self.set_scales({"x": axis})

    def set_y_axis(self, axis: Dict[str, Any]) -> "ChartConfigBuilder":
        return self.set_scales({"y": axis})

    def set_plugins(self, plugins: Dict[str, Any]) -> "ChartConfigBuilder":
        self._options["plugins"] = {**(self._options.get("plugins") or {}), **copy.deepcopy(plugins)}
        return self

    def set_options(self, options: Dict[str, Any]) -> "ChartConfigBuilder":
        self._options = {**self._options, **copy.deepcopy(options)}
        return self

    # -- output -------------------------------------------------------------

    def fingerprint(self) -> Optional[str]:
        """Cache key over everything that affects ``build()`` output."""
        return fingerprint(
            self._type,
            self._data,
            self._options,
            self._theme,
            self._animation,
            self._responsive,
            self._interactive,
        )

    def build(self) -> ChartConfiguration:
        if not self._type:
            raise ConfigError("Chart type is required")
        if self._data is None:
            raise ConfigError("Chart data is required")

        data = apply_theme_colors(self._data, self._type, self._theme)
        options = copy.deepcopy(self._options)
        apply_theme_to_options(options, self._theme)
        options["animation"] = animation_option(self._animation)

        return ChartConfiguration(
            type=self._type,
            data=data,
            options=options,
            theme=self._theme.model_copy(deep=True),
            animation=self._animation.model_copy(),
            responsive=self._responsive is not False,
            interactive=self._interactive is not False,
        )

    @classmethod
    def from_config(cls, config: ChartConfiguration) -> "ChartConfigBuilder":
        """Seed a builder from a built configuration (for edits/rebuilds)."""
        builder = cls()
        builder._type = config.type
        builder._data = config.data.model_copy(deep=True)
        builder._options = copy.deepcopy(config.options)
        builder._options.pop("animation", None)
        builder._theme = config.theme.model_copy(deep=True)
        builder._animation = config.animation.model_copy()
        builder._responsive = config.responsive
        builder._interactive = config.interactive
        return builder


# ---------------------------------------------------------------------------
# Memoized build
# ---------------------------------------------------------------------------

def build_cached(builder: ChartConfigBuilder, cache: Optional[LRUCache]) -> ChartConfiguration:
    """
    Build through the config memo cache.

    An unavailable cache key (unserializable options, say) just means the
    build runs uncached.
    """
    if cache is None:
        return builder.build()
    key = builder.fingerprint()
    if key is None:
        return builder.build()
    config = cache.get_or_set(key, builder.build)
    return config.model_copy(deep=True)


# ---------------------------------------------------------------------------
# Registry lookups
# ---------------------------------------------------------------------------

def chart_type_info(chart_type: str) -> Optional[ChartTypeInfo]:
    return CHART_TYPES.get(chart_type)


def all_chart_types() -> Dict[str, ChartTypeInfo]:
    return dict(CHART_TYPES)


def chart_types_by_category(category: str) -> List[ChartTypeInfo]:
    return [info for info in CHART_TYPES.values() if info.category == category]


def theme_info(theme_name: str) -> Optional[Theme]:
    return THEMES.get(theme_name)


def all_themes() -> Dict[str, Theme]:
    return dict(THEMES)
