"""
climaguard.cache — Thread-safe, bounded, TTL response cache.

Holds decoded upstream JSON keyed by (source, url, sorted params) so a
burst of dashboard requests does not hit Open-Meteo or NOAA once per
request.

Design contract:
    - Bounded by MAX_CACHED_RESPONSES entries; least-recently-used
      entry is evicted first.
    - Entries expire CACHE_TTL_SECONDS after they were stored.
    - Thread-safe via threading.Lock. The lock is never held across I/O.
    - Cached values are treated as read-only by every caller.
    - TTL of 0 disables caching entirely.
"""

from __future__ import annotations

import logging
import os
import threading
import time
from collections import OrderedDict
from typing import Any, Hashable, Optional

logger = logging.getLogger("climaguard.cache")

# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

CACHE_TTL_SECONDS: float = float(os.getenv("CACHE_TTL_SECONDS", "300"))
MAX_CACHED_RESPONSES: int = int(os.getenv("MAX_CACHED_RESPONSES", "256"))

_MISSING = object()


def make_key(source: str, url: str, params: Optional[dict[str, Any]]) -> tuple:
    """Stable cache key; param order does not matter."""
    items = tuple(sorted((str(k), str(v)) for k, v in (params or {}).items()))
    return (source, url, items)


class ResponseCache:
    """Thread-safe, bounded, LRU cache with per-entry expiry.

    Usage::

        cache = ResponseCache(ttl=300, max_entries=256)
        hit = cache.get(key)
        if hit is None:
            hit = await fetch(...)
            cache.put(key, hit)
    """

    def __init__(self, ttl: float | None = None, max_entries: int | None = None) -> None:
        self._ttl: float = ttl if ttl is not None else CACHE_TTL_SECONDS
        self._max: int = max_entries if max_entries is not None else MAX_CACHED_RESPONSES
        self._lock: threading.Lock = threading.Lock()
        # key → (expires_at, value)
        self._entries: OrderedDict[Hashable, tuple[float, Any]] = OrderedDict()
        self._hits = 0
        self._misses = 0

    @property
    def enabled(self) -> bool:
        return self._ttl > 0 and self._max > 0

    def get(self, key: Hashable) -> Any:
        """Return the cached value, or None when absent or expired."""
        if not self.enabled:
            return None
        now = time.monotonic()
        with self._lock:
            entry = self._entries.get(key, _MISSING)
            if entry is _MISSING:
                self._misses += 1
                return None
            expires_at, value = entry
            if expires_at <= now:
                del self._entries[key]
                self._misses += 1
                return None
            self._entries.move_to_end(key)
            self._hits += 1
            return value

    def put(self, key: Hashable, value: Any) -> None:
        if not self.enabled:
            return
        with self._lock:
            self._entries[key] = (time.monotonic() + self._ttl, value)
            self._entries.move_to_end(key)
            while len(self._entries) > self._max:
                evicted_key, _ = self._entries.popitem(last=False)
                logger.debug("Cache eviction: %s (max_entries=%d)", evicted_key[0], self._max)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self._hits = 0
            self._misses = 0

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def stats(self) -> dict[str, Any]:
        """Diagnostics for /ready. Never includes cached payloads."""
        with self._lock:
            return {
                "entries": len(self._entries),
                "max_entries": self._max,
                "ttl_seconds": self._ttl,
                "hits": self._hits,
                "misses": self._misses,
            }


response_cache = ResponseCache()
"""Process-wide instance used by climaguard.fetching."""
