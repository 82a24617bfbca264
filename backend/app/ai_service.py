"""
AI-backed parse service with a Prompt -> Result cache.

Only the external extraction call is cached and deduplicated; the local
regex/CSV/JSON parser is cheap and never goes through the cache. When the
external call fails (or returns nothing) and ``local_fallback`` is on, the
local parser answers instead and that answer is not cached, so the next call
retries the remote side.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, List, Optional

from app.llm import extract_entries
from core.cache import FIFOCache, SingleFlight
from core.models import AIParseResponse, ParsedEntry
from core.utils import fingerprint
from skills.parse import parse

logger = logging.getLogger("uvicorn.error")

Fetcher = Callable[[str, str], Awaitable[List[ParsedEntry]]]


async def llm_fetch(prompt: str, chart_type: str) -> List[ParsedEntry]:
    """Default fetcher: the blocking LangChain call runs in a worker thread."""
    return await asyncio.to_thread(extract_entries, prompt, chart_type)


def prompt_key(prompt: str, chart_type: str) -> Optional[str]:
    return fingerprint("prompt", chart_type, prompt)


class AIService:
    def __init__(
        self,
        fetch: Optional[Fetcher] = None,
        cache: Optional[FIFOCache] = None,
        flight: Optional[SingleFlight] = None,
        *,
        cache_size: int = 100,
        local_fallback: bool = True,
    ) -> None:
        self._fetch = fetch or llm_fetch
        self.cache = cache if cache is not None else FIFOCache(cache_size, name="prompt")
        self.flight = flight if flight is not None else SingleFlight()
        self.local_fallback = local_fallback

    async def generate_with_cache(self, prompt: str, chart_type: str = "bar") -> AIParseResponse:
        """
        Cached extraction for ``(prompt, chart_type)``.

        Concurrent callers with the same key share one external call.
        """
        key = prompt_key(prompt, chart_type)
        cached = self.cache.get(key)
        if cached is not None:
            logger.debug("prompt cache hit for %s", chart_type)
            return cached.model_copy(deep=True)

        result = await self.flight.do(key, lambda: self._generate(key, prompt, chart_type))
        return result.model_copy(deep=True)

    async def _generate(self, key: Optional[str], prompt: str, chart_type: str) -> AIParseResponse:
        try:
            entries = await self._fetch(prompt, chart_type)
        except Exception as e:
            if not self.local_fallback:
                raise
            logger.warning("AI parse failed, using local parser: %s", e)
            return self._local(prompt, chart_type)

        if not entries:
            if not self.local_fallback:
                return AIParseResponse(success=False, data=[], chartType=chart_type)
            logger.info("AI parse returned no entries, using local parser")
            return self._local(prompt, chart_type)

        response = AIParseResponse(data=list(entries), chartType=chart_type, source="remote")
        self.cache.set(key, response)
        return response

    @staticmethod
    def _local(prompt: str, chart_type: str) -> AIParseResponse:
        result = parse(prompt, chart_type)
        return AIParseResponse(
            data=result.entries,
            chartType=chart_type,
            source="local",
            used_example=result.used_example,
        )

    def clear_cache(self) -> None:
        self.cache.clear()

    def cache_size(self) -> int:
        return len(self.cache)

    def dispose(self) -> None:
        self.cache.dispose()
