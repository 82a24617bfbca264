"""
Chart pipeline orchestrator.

raw input -> parse -> normalize -> validate -> (aggregate) -> build config

run():        local, synchronous; raw text goes through the local parser and
              structured input (lists, dicts, DataFrames) skips straight to
              normalization.
run_async():  the text is sent through the AI parse service first (cached,
              deduplicated) and the rest of the pipeline is identical.

Structural validation failures stop the pipeline before the config build;
the result then carries the errors and ``config=None``.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Dict, Optional

from app.ai_service import AIService
from core.cache import FIFOCache, LRUCache
from core.chart_types import CHART_TYPES
from core.models import ParseResult, PipelineResult
from core.settings import Settings, get_settings
from skills.aggregate import aggregate
from skills.build_config import ChartConfigBuilder, ConfigError, build_cached
from skills.normalize import normalize, summarize
from skills.parse import parse
from skills.validate import validate

logger = logging.getLogger("uvicorn.error")


class ChartPipeline:
    """Owns the prompt and config caches for its lifetime."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        *,
        ai_service: Optional[AIService] = None,
        config_cache: Optional[LRUCache] = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.config_cache = config_cache if config_cache is not None else LRUCache(
            self.settings.config_cache_size, name="config"
        )
        self.ai = ai_service if ai_service is not None else AIService(
            cache=FIFOCache(self.settings.prompt_cache_size, name="prompt")
        )

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    def run(
        self,
        raw_input: Any,
        chart_type: str = "bar",
        *,
        theme: Optional[str] = None,
        animation: Optional[bool] = None,
        options: Optional[Dict[str, Any]] = None,
        max_points: Optional[int] = None,
    ) -> PipelineResult:
        _require_chart_type(chart_type)
        parse_result: Optional[ParseResult] = None
        source = raw_input
        if raw_input is None or isinstance(raw_input, str):
            parse_result = parse(raw_input, chart_type)
            source = parse_result
        return self._finish(source, parse_result, chart_type, theme, animation, options, max_points)

    async def run_async(
        self,
        prompt: str,
        chart_type: str = "bar",
        *,
        theme: Optional[str] = None,
        animation: Optional[bool] = None,
        options: Optional[Dict[str, Any]] = None,
        max_points: Optional[int] = None,
    ) -> PipelineResult:
        _require_chart_type(chart_type)
        response = await self.ai.generate_with_cache(prompt, chart_type)
        if response.source == "remote" and response.data:
            parse_result = ParseResult(entries=response.data, source_format="text")
        else:
            parse_result = parse(prompt, chart_type)
        return self._finish(parse_result, parse_result, chart_type, theme, animation, options, max_points)

    # ------------------------------------------------------------------
    # Shared tail
    # ------------------------------------------------------------------

    def _finish(
        self,
        source: Any,
        parse_result: Optional[ParseResult],
        chart_type: str,
        theme: Optional[str],
        animation: Optional[bool],
        options: Optional[Dict[str, Any]],
        max_points: Optional[int],
    ) -> PipelineResult:
        t0 = time.perf_counter()

        data = normalize(source, chart_type)
        summary = summarize(data)
        validation = validate(data, chart_type)
        if not validation.is_valid:
            logger.info("Validation failed for %s chart: %s", chart_type, "; ".join(validation.errors))
            return PipelineResult(
                chart_type=chart_type,
                parse=parse_result,
                data=data,
                summary=summary,
                validation=validation,
            )

        budget = max_points if max_points is not None else self.settings.max_points
        reduced = aggregate(data, budget)

        builder = (
            ChartConfigBuilder()
            .set_type(chart_type)
            .set_data(reduced)
            .set_theme(theme or self.settings.default_theme)
        )
        if animation is not None:
            builder.set_animation_enabled(animation)
        if options:
            builder.set_options(options)
        config = build_cached(builder, self.config_cache)

        logger.info(
            "Pipeline built %s chart: %d labels, %d datasets in %d ms",
            chart_type,
            len(reduced.labels),
            len(reduced.datasets),
            int((time.perf_counter() - t0) * 1000),
        )
        return PipelineResult(
            chart_type=chart_type,
            parse=parse_result,
            data=reduced,
            summary=summary,
            validation=validation,
            aggregated=reduced is not data,
            config=config,
        )

    # ------------------------------------------------------------------
    # Cache management
    # ------------------------------------------------------------------

    def cache_stats(self) -> Dict[str, Any]:
        return {
            "prompt": self.ai.cache.stats(),
            "config": self.config_cache.stats(),
        }

    def clear_caches(self) -> None:
        self.ai.clear_cache()
        self.config_cache.clear()
        logger.info("Pipeline caches cleared")

    def dispose(self) -> None:
        self.ai.dispose()
        self.config_cache.dispose()


def _require_chart_type(chart_type: str) -> None:
    if chart_type not in CHART_TYPES:
        raise ConfigError(f'Chart type "{chart_type}" not supported')
