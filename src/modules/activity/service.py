"""Activity log projection built from dispatched events."""

import json
import logging
from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field, field_validator

from src.core import db_client
from src.core.config import Constants
from src.core.deps import Deps
from src.domain.events import DomainEvent


logger = logging.getLogger(__name__)

_ENVELOPE_FIELDS = {"event_id", "occurred_at", "actor_id", "aggregate_id", "aggregate_type"}


class ActivityEntry(BaseModel):
    """One row of the activity log."""

    id: str = Field(..., description="ID of the event this row was projected from")
    aggregate_id: str
    aggregate_type: str
    event_type: str
    actor_id: str
    occurred_at: datetime
    payload: dict[str, Any] = Field(default_factory=dict, description="Event-specific fields")

    @field_validator("payload", mode="before")
    @classmethod
    def decode_payload(cls, v: Any) -> Any:  # noqa: ANN401
        """Rows store the payload as JSON text."""
        if isinstance(v, str):
            return json.loads(v)
        return v


class ListActivity(BaseModel):
    aggregate_id: str


async def record_activity(event: DomainEvent) -> None:
    """Append one activity row for ``event``."""
    payload = event.model_dump(mode="json", exclude=_ENVELOPE_FIELDS)
    await db_client.create_record(
        collection="activity_log",
        data={
            "id": event.event_id,
            "created_at": event.occurred_at,
            "aggregate_id": event.aggregate_id,
            "aggregate_type": event.aggregate_type,
            "event_type": event.event_type,
            "actor_id": event.actor_id,
            "occurred_at": event.occurred_at,
            "payload": payload,
        },
    )
    logger.debug("Recorded activity", extra={"event_id": event.event_id, "event_type": event.event_type})


async def list_activity(request: ListActivity, deps: Deps) -> list[ActivityEntry]:
    """Activity for one aggregate, oldest first."""
    records = await db_client.list_records(
        collection="activity_log",
        filter_query=f'aggregate_id = "{db_client.sanitize_param(request.aggregate_id)}"',
        sort="occurred_at ASC",
        per_page=Constants.DEFAULT_PER_PAGE_LIMIT,
    )
    return [ActivityEntry.model_validate(record) for record in records]
