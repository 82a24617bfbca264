"""
In-memory caches and single-flight request deduplication.

Three bounded stores share one interface (get / set / get_or_set / delete /
clear / dispose) and differ only in eviction:

- FIFOCache: insertion order at fixed capacity (prompt -> result)
- TTLCache:  expiry after a fixed duration (request -> response)
- LRUCache:  least recently accessed at fixed capacity (config memo)

Each instance exclusively owns its entries. Clearing is always explicit.
"""

from __future__ import annotations

import asyncio
import logging
import threading
import time
from collections import OrderedDict
from typing import Any, Awaitable, Callable, Dict, Optional

from core.models import CacheEntry

logger = logging.getLogger("uvicorn.error")

_MISSING = object()


class _BaseCache:
    def __init__(self, name: str, clock: Callable[[], float] = time.monotonic) -> None:
        self.name = name
        self._clock = clock
        self._entries: "OrderedDict[str, CacheEntry]" = OrderedDict()
        self._lock = threading.RLock()
        self._disposed = False
        self.hits = 0
        self.misses = 0
        self.evictions = 0

    # -- hooks --------------------------------------------------------------

    def _is_expired(self, entry: CacheEntry, now: float) -> bool:
        return False

    def _on_hit(self, key: str, entry: CacheEntry, now: float) -> None:
        pass

    def _make_room(self) -> None:
        pass

    # -- public API ---------------------------------------------------------

    def get(self, key: Optional[str], default: Any = None) -> Any:
        if key is None:
            return default
        with self._lock:
            entry = self._entries.get(key)
            now = self._clock()
            if entry is None or self._is_expired(entry, now):
                if entry is not None:
                    del self._entries[key]
                self.misses += 1
                return default
            entry.last_accessed = now
            self._on_hit(key, entry, now)
            self.hits += 1
            return entry.value

    def set(self, key: Optional[str], value: Any) -> None:
        if key is None:
            return
        with self._lock:
            if self._disposed:
                logger.debug("%s cache disposed; dropping write", self.name)
                return
            now = self._clock()
            if key in self._entries:
                del self._entries[key]
            else:
                self._make_room()
            self._entries[key] = CacheEntry(key=key, value=value, inserted_at=now, last_accessed=now)

    def get_or_set(self, key: Optional[str], compute: Callable[[], Any]) -> Any:
        """Return the cached value, or compute, store and return it."""
        cached = self.get(key, _MISSING)
        if cached is not _MISSING:
            return cached
        value = compute()
        self.set(key, value)
        return value

    def delete(self, key: str) -> bool:
        with self._lock:
            return self._entries.pop(key, None) is not None

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self.hits = self.misses = self.evictions = 0
        logger.debug("%s cache cleared", self.name)

    def dispose(self) -> None:
        """Clear and refuse further writes."""
        self.clear()
        self._disposed = True

    @property
    def disposed(self) -> bool:
        return self._disposed

    def stats(self) -> Dict[str, Any]:
        with self._lock:
            total = self.hits + self.misses
            return {
                "name": self.name,
                "size": len(self._entries),
                "hits": self.hits,
                "misses": self.misses,
                "evictions": self.evictions,
                "hit_rate": round(self.hits / total, 4) if total else 0.0,
            }

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def _evict_first(self) -> None:
        key, _ = self._entries.popitem(last=False)
        self.evictions += 1
        logger.debug("%s cache evicted %s", self.name, key[:16])


class FIFOCache(_BaseCache):
    """Evicts in insertion order once ``capacity`` entries are held."""

    def __init__(self, capacity: int = 100, *, name: str = "fifo", clock: Callable[[], float] = time.monotonic) -> None:
        if capacity < 1:
            raise ValueError("capacity must be >= 1")
        super().__init__(name, clock)
        self.capacity = capacity

    def _make_room(self) -> None:
        while len(self._entries) >= self.capacity:
            self._evict_first()


class LRUCache(_BaseCache):
    """Evicts the least recently accessed entry once ``capacity`` is reached."""

    def __init__(self, capacity: int = 30, *, name: str = "lru", clock: Callable[[], float] = time.monotonic) -> None:
        if capacity < 1:
            raise ValueError("capacity must be >= 1")
        super().__init__(name, clock)
        self.capacity = capacity

    def _on_hit(self, key: str, entry: CacheEntry, now: float) -> None:
        self._entries.move_to_end(key)

    def _make_room(self) -> None:
        while len(self._entries) >= self.capacity:
            self._evict_first()


class TTLCache(_BaseCache):
    """Entries expire ``ttl`` seconds after insertion, regardless of access."""

    def __init__(
        self,
        ttl: float = 300.0,
        *,
        capacity: Optional[int] = None,
        name: str = "ttl",
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if ttl <= 0:
            raise ValueError("ttl must be > 0")
        super().__init__(name, clock)
        self.ttl = ttl
        self.capacity = capacity

    def _is_expired(self, entry: CacheEntry, now: float) -> bool:
        return now - entry.inserted_at >= self.ttl

    def _make_room(self) -> None:
        self.purge_expired()
        if self.capacity is not None:
            while len(self._entries) >= self.capacity:
                self._evict_first()

    def purge_expired(self) -> int:
        """Drop every expired entry; returns how many were removed."""
        with self._lock:
            now = self._clock()
            stale = [k for k, e in self._entries.items() if self._is_expired(e, now)]
            for k in stale:
                del self._entries[k]
            return len(stale)


# ---------------------------------------------------------------------------
# Single-flight deduplication
# ---------------------------------------------------------------------------

class SingleFlight:
    """
    Share one in-flight call per key between concurrent callers.

    Usage:
        flight = SingleFlight()
        value = await flight.do(key, lambda: fetch(url))

    Every caller awaits the shared task through ``asyncio.shield`` so one
    caller being cancelled leaves the call running for the others. The key
    is released when the call settles, success or failure.
    """

    def __init__(self) -> None:
        self._inflight: Dict[str, asyncio.Task] = {}

    async def do(self, key: Optional[str], fn: Callable[[], Awaitable[Any]]) -> Any:
        if key is None:
            return await fn()
        task = self._inflight.get(key)
        if task is None:
            task = asyncio.ensure_future(self._run(key, fn))
            self._inflight[key] = task
        else:
            logger.debug("single-flight join %s", key[:16])
        return await asyncio.shield(task)

    async def _run(self, key: str, fn: Callable[[], Awaitable[Any]]) -> Any:
        try:
            return await fn()
        finally:
            self._inflight.pop(key, None)

    def in_flight(self, key: str) -> bool:
        return key in self._inflight

    def __len__(self) -> int:
        return len(self._inflight)
