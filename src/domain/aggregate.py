"""Base classes for entities and event-buffering aggregate roots."""

from datetime import UTC, datetime
from typing import TYPE_CHECKING
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr


if TYPE_CHECKING:
    from src.domain.events import DomainEvent


def utcnow() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(UTC)


def new_id() -> str:
    """Generate a new entity identifier."""
    return uuid4().hex


class Entity(BaseModel):
    """Identity plus the optimistic-concurrency version the store checks on update."""

    model_config = ConfigDict(validate_assignment=True)

    id: str = Field(default_factory=new_id, description="Unique entity ID")
    version: int = Field(default=0, ge=0, description="Version last read from or written to the store")
    created_at: datetime = Field(default_factory=utcnow, description="Creation timestamp (UTC)")
    updated_at: datetime = Field(default_factory=utcnow, description="Last modification timestamp (UTC)")


class AggregateRoot(Entity):
    """Entity that records domain events about its own mutations.

    Events are buffered on the instance in the order they were raised. The
    buffer is a private attribute, so it never appears in ``model_dump`` and
    therefore never reaches the store or the cache. ``drain_events`` is the
    only way to read it and empties it in the same call.
    """

    _pending_events: list["DomainEvent"] = PrivateAttr(default_factory=list)

    def _raise_event(self, event: "DomainEvent") -> None:
        self._pending_events.append(event)
        self.updated_at = event.occurred_at

    @property
    def has_pending_events(self) -> bool:
        """Whether events are waiting to be drained."""
        return bool(self._pending_events)

    def drain_events(self) -> list["DomainEvent"]:
        """Return buffered events in raise order and clear the buffer."""
        events, self._pending_events = self._pending_events, []
        return events
