"""Read-through cache in front of a repository."""

import logging
from collections.abc import Sequence
from typing import Generic, TypeVar

from pydantic import ValidationError as PydanticValidationError

from src.core.cache_client import CacheBackend
from src.core.config import Constants, settings
from src.core.repository import Repository
from src.domain.aggregate import Entity


logger = logging.getLogger(__name__)

E = TypeVar("E", bound=Entity)


def cache_key(entity_name: str, entity_id: str) -> str:
    """Cache key for one entity, e.g. ``task:id:abc123``."""
    return f"{entity_name.lower()}:id:{entity_id}"


class CachedRepository(Generic[E]):
    """Decorates a repository with a snapshot cache.

    Reads try the cache first and fall back to the store on a miss, on a cache
    error or on a snapshot that no longer parses. Writes go to the store first
    and only then remove the cached entry; a failure to remove it is logged
    and left to the TTL.
    """

    def __init__(
        self,
        inner: Repository[E],
        cache: CacheBackend,
        *,
        entity_name: str,
        model: type[E],
        ttl_seconds: int | None = None,
    ) -> None:
        self._inner = inner
        self._cache = cache
        self._entity_name = entity_name
        self._model = model
        self._ttl_seconds = ttl_seconds if ttl_seconds is not None else settings.cache_ttl_seconds

    def key_for(self, entity_id: str) -> str:
        return cache_key(self._entity_name, entity_id)

    async def _read_cache(self, key: str) -> E | None:
        try:
            raw = await self._cache.get(key)
        except Exception as e:
            logger.warning("Cache read failed, using store", extra={"cache_key": key, "error": str(e)})
            return None

        if raw is None:
            return None
        try:
            return self._model.model_validate_json(raw)
        except PydanticValidationError:
            logger.warning("Discarding unreadable cache entry", extra={"cache_key": key})
            return None

    async def _write_cache(self, key: str, entity: E) -> None:
        try:
            await self._cache.set(key, entity.model_dump_json(), self._ttl_seconds)
        except Exception as e:
            logger.warning("Cache populate failed", extra={"cache_key": key, "error": str(e)})

    async def _invalidate(self, *entity_ids: str) -> None:
        keys = [self.key_for(entity_id) for entity_id in entity_ids]
        try:
            await self._cache.delete(*keys)
        except Exception as e:
            logger.warning(
                "Cache invalidation failed, entry will expire via TTL",
                extra={"cache_keys": keys, "error": str(e), "ttl_seconds": self._ttl_seconds},
            )

    async def get(self, entity_id: str) -> E:
        key = self.key_for(entity_id)
        cached = await self._read_cache(key)
        if cached is not None:
            return cached

        entity = await self._inner.get(entity_id)
        await self._write_cache(key, entity)
        return entity

    async def add(self, entity: E) -> E:
        stored = await self._inner.add(entity)
        await self._invalidate(entity.id)
        return stored

    async def update(self, entity: E) -> E:
        stored = await self._inner.update(entity)
        await self._invalidate(entity.id)
        return stored

    async def update_many(self, entities: Sequence[E]) -> list[E]:
        stored = await self._inner.update_many(entities)
        await self._invalidate(*(entity.id for entity in entities))
        return stored

    async def delete(self, entity: E) -> None:
        await self._inner.delete(entity)
        await self._invalidate(entity.id)

    async def query(
        self, filter_query: str = "", *, sort: str = "", limit: int = Constants.DEFAULT_PER_PAGE_LIMIT
    ) -> list[E]:
        return await self._inner.query(filter_query, sort=sort, limit=limit)
