"""Snapshot cache backends.

``get_cache_backend`` hands the repository decorator Redis when it is
configured and reachable, otherwise a process-local LRU cache. Entries are
JSON snapshots keyed by ``<entity>:id:<id>``.
"""

import logging
import threading
import time
from collections import OrderedDict
from typing import Any, NamedTuple, Protocol

from src.core.config import Constants
from src.core.redis_client import redis_client


logger = logging.getLogger(__name__)


class CacheBackend(Protocol):
    """Key/value cache used by the repository decorator. Implementations may raise."""

    async def get(self, key: str) -> str | None: ...

    async def set(self, key: str, value: str, ttl_seconds: int) -> bool: ...

    async def delete(self, *keys: str) -> bool: ...


class _Entry(NamedTuple):
    value: str
    expires_at: float | None


class InMemoryCache:
    """Bounded, thread-safe LRU cache with per-entry TTL.

    Expired entries are dropped when read. Once ``max_entries`` is reached
    the least recently used snapshot is evicted to make room.
    """

    def __init__(self, max_entries: int = Constants.MEMORY_CACHE_MAX_ENTRIES) -> None:
        self._entries: OrderedDict[str, _Entry] = OrderedDict()
        self._max_entries = max_entries
        self._lock = threading.Lock()

        self._hits = 0
        self._misses = 0
        self._evictions = 0
        self._total_operations = 0
        self._last_successful_operation: float | None = None

    @property
    def is_available(self) -> bool:
        return True

    def get_health_status(self) -> dict[str, Any]:
        """Report size and hit counters for the health endpoint."""
        return {
            "backend": "memory",
            "enabled": True,
            "connected": True,
            "last_successful_operation": self._last_successful_operation,
            "total_operations": self._total_operations,
            "entries": len(self._entries),
            "max_entries": self._max_entries,
            "hits": self._hits,
            "misses": self._misses,
            "evictions": self._evictions,
        }

    def _touch(self) -> None:
        self._last_successful_operation = time.time()
        self._total_operations += 1

    async def get(self, key: str) -> str | None:
        """Return the snapshot under ``key``, or None when absent or expired."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is not None and entry.expires_at is not None and entry.expires_at < time.time():
                del self._entries[key]
                entry = None

            if entry is None:
                self._misses += 1
                return None

            self._entries.move_to_end(key)
            self._hits += 1
            self._touch()
            logger.debug("Cache hit for key: %s", key)
            return entry.value

    async def set(self, key: str, value: str, ttl_seconds: int) -> bool:
        """Store ``value``. A non-positive TTL keeps the entry until evicted."""
        expires_at = time.time() + ttl_seconds if ttl_seconds > 0 else None
        with self._lock:
            self._entries[key] = _Entry(value, expires_at)
            self._entries.move_to_end(key)
            while len(self._entries) > self._max_entries:
                evicted, _ = self._entries.popitem(last=False)
                self._evictions += 1
                logger.debug("Evicted cache key: %s", evicted)
            self._touch()
        return True

    async def delete(self, *keys: str) -> bool:
        if not keys:
            return False

        with self._lock:
            for key in keys:
                self._entries.pop(key, None)
            self._touch()
        logger.debug("Deleted %d cache key(s)", len(keys))
        return True

    async def ping(self) -> bool:
        return True

    async def close(self) -> None:
        with self._lock:
            self._entries.clear()
        logger.info("In-memory cache cleared")


cache_client = InMemoryCache()


def get_cache_backend() -> CacheBackend:
    """Return Redis when it is configured and reachable, otherwise the in-memory cache."""
    if redis_client.is_available:
        return redis_client
    return cache_client
