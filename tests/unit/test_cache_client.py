"""Tests for the in-memory cache backend and backend selection."""

from unittest.mock import patch

import pytest

from src.core import cache_client as cache_module
from src.core.cache_client import InMemoryCache, get_cache_backend


@pytest.mark.unit
class TestInMemoryCache:
    """Tests for InMemoryCache."""

    async def test_set_then_get(self):
        cache = InMemoryCache()

        assert await cache.set("task:id:1", '{"id": "1"}', 300) is True
        assert await cache.get("task:id:1") == '{"id": "1"}'

    async def test_entry_expires(self):
        cache = InMemoryCache()
        with patch("src.core.cache_client.time.time", return_value=1000.0):
            await cache.set("task:id:1", "v", 300)

        with patch("src.core.cache_client.time.time", return_value=1299.0):
            assert await cache.get("task:id:1") == "v"
        with patch("src.core.cache_client.time.time", return_value=1301.0):
            assert await cache.get("task:id:1") is None

    async def test_delete_many(self):
        cache = InMemoryCache()
        await cache.set("a", "1", 300)
        await cache.set("b", "2", 300)

        assert await cache.delete("a", "b") is True
        assert await cache.get("a") is None
        assert await cache.get("b") is None

    async def test_delete_nothing(self):
        assert await InMemoryCache().delete() is False

    async def test_health_status(self):
        cache = InMemoryCache()
        await cache.set("a", "1", 300)

        status = cache.get_health_status()

        assert status["backend"] == "memory"
        assert status["entries"] == 1
        assert status["total_operations"] == 1

    async def test_least_recently_used_entry_evicted(self):
        cache = InMemoryCache(max_entries=2)
        await cache.set("a", "1", 300)
        await cache.set("b", "2", 300)
        await cache.get("a")

        await cache.set("c", "3", 300)

        assert await cache.get("b") is None
        assert await cache.get("a") == "1"
        assert await cache.get("c") == "3"
        assert cache.get_health_status()["evictions"] == 1

    async def test_hit_and_miss_counters(self):
        cache = InMemoryCache()
        await cache.set("a", "1", 300)

        await cache.get("a")
        await cache.get("missing")

        status = cache.get_health_status()
        assert status["hits"] == 1
        assert status["misses"] == 1

    async def test_zero_ttl_never_expires(self):
        cache = InMemoryCache()
        with patch("src.core.cache_client.time.time", return_value=1000.0):
            await cache.set("a", "1", 0)
        with patch("src.core.cache_client.time.time", return_value=10_000_000.0):
            assert await cache.get("a") == "1"


@pytest.mark.unit
class TestBackendSelection:
    def test_memory_when_redis_unavailable(self):
        with patch.object(cache_module.redis_client, "_enabled", False):
            assert get_cache_backend() is cache_module.cache_client

    def test_redis_when_available(self):
        with (
            patch.object(cache_module.redis_client, "_enabled", True),
            patch.object(cache_module.redis_client, "_client", object()),
        ):
            assert get_cache_backend() is cache_module.redis_client
