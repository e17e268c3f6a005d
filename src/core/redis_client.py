"""Redis-backed snapshot cache."""

import asyncio
import logging
from collections import deque
from collections.abc import Callable, Coroutine
from datetime import UTC, datetime
from functools import wraps
from typing import Any, TypeVar

from redis.asyncio import Redis
from redis.asyncio.connection import ConnectionPool
from redis.exceptions import RedisError

from src.core.config import Constants, settings


logger = logging.getLogger(__name__)

T = TypeVar("T")


def with_retry(
    max_retries: int = 3, base_delay: float = 0.1
) -> Callable[[Callable[..., Coroutine[Any, Any, T]]], Callable[..., Coroutine[Any, Any, T]]]:
    """Retry an async Redis call with exponential backoff.

    Args:
        max_retries: Total attempts before the last RedisError is re-raised
        base_delay: Delay before the second attempt; doubled after each failure

    Returns:
        Decorated coroutine function
    """

    def decorator(func: Callable[..., Coroutine[Any, Any, T]]) -> Callable[..., Coroutine[Any, Any, T]]:
        @wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> T:  # noqa: ANN401
            last_exception: RedisError | None = None
            for attempt in range(max_retries):
                try:
                    return await func(*args, **kwargs)
                except RedisError as e:
                    last_exception = e
                    if attempt < max_retries - 1:
                        delay = base_delay * (2**attempt)
                        logger.warning(
                            "Redis call %s failed (attempt %d/%d): %s. Retrying in %.2fs",
                            func.__name__,
                            attempt + 1,
                            max_retries,
                            e,
                            delay,
                        )
                        await asyncio.sleep(delay)
            logger.error("Redis call %s gave up after %d attempts: %s", func.__name__, max_retries, last_exception)
            raise last_exception  # type: ignore[misc]

        return wrapper

    return decorator


class RedisClient:
    """Pooled Redis cache for aggregate snapshots.

    Reads and writes degrade to a miss or a no-op when Redis misbehaves.
    Invalidations are retried and, if Redis stays down, parked in a bounded
    queue that is replayed on the next successful invalidation.
    """

    def __init__(self, url: str | None = None) -> None:
        self._url = url if url is not None else settings.redis_url
        self._client: Redis | None = None
        self._pool: ConnectionPool | None = None
        self._enabled = bool(self._url)

        self._last_successful_operation: datetime | None = None
        self._failure_count = 0
        self._total_operations = 0

        self._invalidation_queue: deque[tuple[str, ...]] = deque(maxlen=Constants.REDIS_INVALIDATION_QUEUE_MAXLEN)

        if self._enabled and self._url:
            try:
                self._pool = ConnectionPool.from_url(
                    self._url,
                    decode_responses=True,
                    max_connections=Constants.REDIS_MAX_CONNECTIONS,
                )
                self._client = Redis(connection_pool=self._pool)
                logger.info("Redis cache initialized", extra={"redis_url": self._url})
            except (RedisError, ValueError) as e:
                logger.warning("Failed to initialize Redis cache: %s. Falling back to memory.", e)
                self._enabled = False
                self._client = None
                self._pool = None
        else:
            logger.info("REDIS_URL not configured. Snapshot cache will use memory.")

    @property
    def is_available(self) -> bool:
        """Whether Redis is configured and a client exists."""
        return self._enabled and self._client is not None

    def get_health_status(self) -> dict[str, Any]:
        """Report connectivity and operation counters for the health endpoint."""
        return {
            "backend": "redis",
            "enabled": self._enabled,
            "connected": self.is_available,
            "last_successful_operation": self._last_successful_operation.isoformat()
            if self._last_successful_operation
            else None,
            "failure_count": self._failure_count,
            "total_operations": self._total_operations,
            "pending_invalidations": len(self._invalidation_queue),
        }

    def _record_success(self) -> None:
        self._last_successful_operation = datetime.now(UTC)
        self._total_operations += 1

    def _record_failure(self) -> None:
        self._failure_count += 1
        self._total_operations += 1

    async def get(self, key: str) -> str | None:
        """Return the cached snapshot for ``key`` or None on miss or error."""
        if not self.is_available or not self._client:
            return None

        try:
            value = await self._client.get(key)
        except RedisError as e:
            self._record_failure()
            logger.warning("Redis GET error for key %s: %s", key, e)
            return None

        self._record_success()
        if value is not None:
            logger.debug("Cache hit for key: %s", key)
        return value

    async def set(self, key: str, value: str, ttl_seconds: int) -> bool:
        """Store ``value`` under ``key`` for ``ttl_seconds``. Returns False on error."""
        if not self.is_available or not self._client:
            return False

        try:
            await self._client.setex(key, ttl_seconds, value)
        except RedisError as e:
            self._record_failure()
            logger.warning("Redis SET error for key %s: %s", key, e)
            return False

        self._record_success()
        logger.debug("Cached key: %s (TTL: %ds)", key, ttl_seconds)
        return True

    async def delete(self, *keys: str) -> bool:
        """Invalidate keys, retrying transient failures.

        Keys that cannot be removed are queued and the call returns False; the
        entries then expire through their TTL unless a later invalidation
        drains the queue first.
        """
        if not keys:
            return False

        if not self.is_available or not self._client:
            self._invalidation_queue.append(keys)
            logger.info("Redis unavailable, queued %d key(s) for invalidation", len(keys))
            return False

        client = self._client

        @with_retry(max_retries=3, base_delay=0.1)
        async def _delete_keys() -> None:
            await client.delete(*keys)

        try:
            await _delete_keys()
        except RedisError as e:
            self._record_failure()
            self._invalidation_queue.append(keys)
            logger.error("Redis DELETE failed after retries: %s. Queued for later.", e)
            return False

        self._record_success()
        logger.debug("Invalidated %d cache key(s)", len(keys))
        await self._process_invalidation_queue()
        return True

    async def _process_invalidation_queue(self) -> None:
        """Replay invalidations parked while Redis was unreachable."""
        if not self._invalidation_queue or not self._client:
            return

        processed = 0
        while self._invalidation_queue:
            keys = self._invalidation_queue.popleft()
            try:
                await self._client.delete(*keys)
            except RedisError as e:
                self._record_failure()
                self._invalidation_queue.appendleft(keys)
                logger.warning("Failed to replay queued invalidation: %s", e)
                break
            self._record_success()
            processed += 1

        if processed:
            logger.info("Replayed %d queued cache invalidations", processed)

    async def ping(self) -> bool:
        """Return True when Redis answers PING."""
        if not self.is_available or not self._client:
            return False

        try:
            result = await self._client.ping()  # type: ignore[misc]
        except RedisError as e:
            logger.warning("Redis PING failed: %s", e)
            return False
        return bool(result)

    async def close(self) -> None:
        """Close the connection pool."""
        if self._client:
            await self._client.aclose()
            logger.info("Redis cache closed")


# Global Redis client instance
redis_client = RedisClient()
