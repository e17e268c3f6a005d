"""Durable store for aggregates, one SQLite table per aggregate type."""

import logging
from collections.abc import Sequence
from typing import Any, Generic, Protocol, TypeVar

from src.core import aggregate_tracker, db_client
from src.core.config import Constants
from src.core.errors import NotFoundError
from src.domain.aggregate import AggregateRoot, Entity, utcnow


logger = logging.getLogger(__name__)

E = TypeVar("E", bound=Entity)


class Repository(Protocol[E]):
    """Storage contract shared by the SQLite store and the caching decorator."""

    async def get(self, entity_id: str) -> E: ...

    async def add(self, entity: E) -> E: ...

    async def update(self, entity: E) -> E: ...

    async def update_many(self, entities: Sequence[E]) -> list[E]: ...

    async def delete(self, entity: E) -> None: ...

    async def query(self, filter_query: str = "", *, sort: str = "", limit: int = ...) -> list[E]: ...


def to_row(entity: Entity) -> dict[str, Any]:
    """Serialise an entity to column values. Private attributes, such as pending events, are left out."""
    return entity.model_dump(mode="json")


class SqliteRepository(Generic[E]):
    """Maps one entity type to one table through ``db_client``.

    ``update`` and ``delete`` are guarded by the entity's version, and every
    successful write is reported to the aggregate tracker so its events can be
    dispatched after the request's handler returns.
    """

    def __init__(self, collection: str, model: type[E], entity_name: str | None = None) -> None:
        self.collection = collection
        self.model = model
        self.entity_name = entity_name or model.__name__

    def _load(self, record: dict[str, Any]) -> E:
        return self.model.model_validate(record)

    def _committed(self, entity: E) -> None:
        if isinstance(entity, AggregateRoot):
            aggregate_tracker.track(entity)

    async def get(self, entity_id: str) -> E:
        try:
            record = await db_client.get_record(collection=self.collection, record_id=entity_id)
        except db_client.RecordNotFoundError as e:
            raise NotFoundError(self.entity_name, entity_id) from e
        return self._load(record)

    async def add(self, entity: E) -> E:
        entity.version = 1
        await db_client.create_record(collection=self.collection, data=to_row(entity))
        self._committed(entity)
        logger.info("Added %s", self.entity_name, extra={"entity_id": entity.id, "collection": self.collection})
        return entity

    async def update(self, entity: E) -> E:
        expected_version = entity.version
        entity.updated_at = utcnow()
        row = to_row(entity)
        row["version"] = expected_version + 1
        row.pop("id")
        try:
            await db_client.update_record(
                collection=self.collection,
                record_id=entity.id,
                data=row,
                expected_version=expected_version,
            )
        except db_client.RecordNotFoundError as e:
            raise NotFoundError(self.entity_name, entity.id) from e
        entity.version = expected_version + 1
        self._committed(entity)
        return entity

    async def update_many(self, entities: Sequence[E]) -> list[E]:
        """Write several entities in one transaction, each guarded by its version.

        Nothing is written and nothing is tracked unless every row matches.
        Entities are tracked in the order given.
        """
        now = utcnow()
        updates = []
        for entity in entities:
            row = to_row(entity)
            row["version"] = entity.version + 1
            row["updated_at"] = now.isoformat()
            row.pop("id")
            updates.append(db_client.RowUpdate(entity.id, row, entity.version))

        try:
            await db_client.update_records(collection=self.collection, updates=updates)
        except db_client.RecordNotFoundError as e:
            raise NotFoundError(self.entity_name, e.record_id or "") from e

        for entity, update in zip(entities, updates, strict=True):
            entity.version = update.data["version"]
            entity.updated_at = now
            self._committed(entity)
        return list(entities)

    async def delete(self, entity: E) -> None:
        try:
            await db_client.delete_record(
                collection=self.collection, record_id=entity.id, expected_version=entity.version
            )
        except db_client.RecordNotFoundError as e:
            raise NotFoundError(self.entity_name, entity.id) from e
        self._committed(entity)

    async def query(
        self, filter_query: str = "", *, sort: str = "", limit: int = Constants.DEFAULT_PER_PAGE_LIMIT
    ) -> list[E]:
        records = await db_client.list_records(
            collection=self.collection, filter_query=filter_query, sort=sort, per_page=limit
        )
        return [self._load(record) for record in records]
