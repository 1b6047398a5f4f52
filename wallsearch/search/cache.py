"""
Result Cache - bounded, TTL-based cache of result pages.

Keyed by the canonical query string, so two queries that serialize the same
share an entry. Eviction is by insertion age: reads never refresh an entry.
Owned by one search session; not persisted and not shared.
"""

from __future__ import annotations

import logging
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Callable, Dict, Generic, List, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class CacheEntry(Generic[T]):
    """A cached result page."""
    key: str
    data: T
    timestamp: float


class ResultCache(Generic[T]):
    """
    Size-limited TTL cache with oldest-inserted eviction.

    Features:
    - TTL-based expiration, expired entries dropped on read
    - Evicts the entry with the smallest timestamp when full
    - Injectable clock for tests
    """

    def __init__(
        self,
        max_size: int = 10,
        ttl_seconds: float = 60.0,
        clock: Optional[Callable[[], float]] = None,
    ):
        if max_size < 1:
            raise ValueError("max_size must be at least 1")
        self.max_size = max_size
        self.ttl_seconds = ttl_seconds
        self._clock = clock or time.monotonic
        self._cache: OrderedDict[str, CacheEntry[T]] = OrderedDict()

        # Stats
        self.hits = 0
        self.misses = 0
        self.evictions = 0

    def _is_expired(self, entry: CacheEntry[T]) -> bool:
        return (self._clock() - entry.timestamp) >= self.ttl_seconds

    def get(self, key: str) -> Optional[T]:
        """
        Get the cached page for `key`.

        Returns:
            Cached data if present and younger than the TTL, None otherwise
        """
        entry = self._cache.get(key)
        if entry is None:
            self.misses += 1
            return None

        if self._is_expired(entry):
            del self._cache[key]
            self.misses += 1
            logger.debug(f"[search_cache] expired: {key or '<default>'}")
            return None

        self.hits += 1
        logger.debug(f"[search_cache] hit: {key or '<default>'}")
        return entry.data

    def put(self, key: str, data: T) -> None:
        """Insert or overwrite `key`. Overwriting restarts its TTL."""
        if key in self._cache:
            del self._cache[key]

        while len(self._cache) >= self.max_size:
            oldest = min(self._cache, key=lambda k: self._cache[k].timestamp)
            del self._cache[oldest]
            self.evictions += 1
            logger.debug(f"[search_cache] evicted: {oldest or '<default>'}")

        self._cache[key] = CacheEntry(key=key, data=data, timestamp=self._clock())

    def clear(self) -> None:
        """Clear all cached entries."""
        self._cache.clear()
        self.hits = 0
        self.misses = 0
        self.evictions = 0

    def cleanup_expired(self) -> int:
        """Remove all expired entries. Returns count of removed entries."""
        expired_keys = [k for k, v in self._cache.items() if self._is_expired(v)]
        for k in expired_keys:
            del self._cache[k]
        return len(expired_keys)

    def keys(self) -> List[str]:
        return list(self._cache.keys())

    def __len__(self) -> int:
        return len(self._cache)

    def __contains__(self, key: object) -> bool:
        return key in self._cache

    def stats(self) -> Dict[str, Any]:
        """Get cache statistics."""
        total_requests = self.hits + self.misses
        hit_rate = self.hits / max(total_requests, 1)
        return {
            "size": len(self._cache),
            "max_size": self.max_size,
            "ttl_seconds": self.ttl_seconds,
            "hits": self.hits,
            "misses": self.misses,
            "evictions": self.evictions,
            "hit_rate": round(hit_rate, 3),
        }
