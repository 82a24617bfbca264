"""
HTTP boundary with a Request -> Response cache and single-flight dedup.

Safe methods (GET/HEAD) are cached for ``ttl`` seconds and concurrent
identical requests share one round trip. Other methods go straight through
unless a caller opts in to dedup; they are never cached. Failures are
raised, never cached.
"""

from __future__ import annotations

import copy
import logging
from typing import Any, Optional

import httpx

from core.cache import SingleFlight, TTLCache
from core.settings import Settings, get_settings
from core.utils import fingerprint

logger = logging.getLogger("uvicorn.error")

SAFE_METHODS = frozenset({"GET", "HEAD"})


class ApiError(RuntimeError):
    """Non-2xx response or transport failure talking to the backend."""

    def __init__(self, message: str, status: Optional[int] = None) -> None:
        super().__init__(message)
        self.status = status


class RequestTimeoutError(ApiError):
    def __init__(self, message: str = "Request timeout") -> None:
        super().__init__(message, status=None)


def _error_message(resp: httpx.Response) -> str:
    try:
        payload = resp.json()
    except ValueError:
        payload = None
    if isinstance(payload, dict):
        msg = payload.get("error") or payload.get("detail")
        if isinstance(msg, str) and msg:
            return msg
    return f"Request failed: {resp.status_code}"


class APIClient:
    def __init__(
        self,
        base_url: str = "http://localhost:8000/api",
        timeout: float = 30.0,
        cache: Optional[TTLCache] = None,
        flight: Optional[SingleFlight] = None,
        *,
        ttl: float = 300.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.cache = cache if cache is not None else TTLCache(ttl, name="request")
        self.flight = flight if flight is not None else SingleFlight()
        self._transport = transport
        self._http_client: Optional[httpx.AsyncClient] = None

    @classmethod
    def from_settings(
        cls,
        settings: Optional[Settings] = None,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> "APIClient":
        """Client for ``API_BASE_URL`` using the configured timeout and cache TTL."""
        settings = settings or get_settings()
        return cls(
            settings.api_base_url,
            timeout=settings.request_timeout,
            cache=TTLCache(settings.request_cache_ttl, name="request"),
            transport=transport,
        )

    async def _get_client(self) -> httpx.AsyncClient:
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(timeout=self.timeout, transport=self._transport)
        return self._http_client

    async def aclose(self) -> None:
        if self._http_client is not None:
            await self._http_client.aclose()
            self._http_client = None
        self.cache.dispose()

    def url_for(self, endpoint: str) -> str:
        return f"{self.base_url}/{endpoint.lstrip('/')}"

    # ------------------------------------------------------------------

    async def request(
        self,
        endpoint: str,
        method: str = "GET",
        json_body: Any = None,
        *,
        use_cache: Optional[bool] = None,
        dedupe: Optional[bool] = None,
    ) -> Any:
        """
        Send a request and return the decoded JSON body.

        Only safe methods are ever cached (``use_cache=False`` opts out).
        ``dedupe`` defaults to True for safe methods; unsafe calls may opt in.
        Raises ApiError (non-2xx, transport) or RequestTimeoutError.
        """
        method = method.upper()
        safe = method in SAFE_METHODS
        use_cache = safe and use_cache is not False
        dedupe = safe if dedupe is None else dedupe

        key = fingerprint(method, endpoint, json_body)
        if use_cache:
            cached = self.cache.get(key)
            if cached is not None:
                logger.debug("request cache hit %s %s", method, endpoint)
                return copy.deepcopy(cached)

        result = await self.flight.do(
            key if dedupe else None,
            lambda: self._send(method, endpoint, json_body, key if use_cache else None),
        )
        return copy.deepcopy(result)

    async def _send(self, method: str, endpoint: str, json_body: Any, cache_key: Optional[str]) -> Any:
        client = await self._get_client()
        url = self.url_for(endpoint)
        try:
            resp = await client.request(method, url, json=json_body)
        except httpx.TimeoutException as e:
            logger.warning("%s %s timed out after %ss", method, url, self.timeout)
            raise RequestTimeoutError() from e
        except httpx.HTTPError as e:
            raise ApiError(f"Request failed: {e}") from e

        if not resp.is_success:
            raise ApiError(_error_message(resp), status=resp.status_code)

        try:
            data = resp.json() if resp.content else None
        except ValueError:
            data = resp.text
        self.cache.set(cache_key, data)
        return data

    # -- convenience ----------------------------------------------------

    async def generate(self, prompt: str, chart_type: str = "bar") -> Any:
        return await self.request("/generate", "POST", {"prompt": prompt, "chartType": chart_type})

    async def parse(self, text: str, chart_type: str = "bar") -> Any:
        return await self.request("/parse", "POST", {"text": text, "chartType": chart_type})

    async def health(self) -> Any:
        return await self.request("/health")

    def clear_cache(self) -> None:
        self.cache.clear()
