"""Activity module: read-side log of everything that happened."""

from typing import TYPE_CHECKING


if TYPE_CHECKING:
    from src.core.event_bus import SubscriberRegistry
    from src.core.pipeline import RequestRegistration


class ActivityModule:
    """Projects every dispatched event into a queryable activity log."""

    @property
    def name(self) -> str:
        """Module name (unique identifier)."""
        return "activity"

    @property
    def description(self) -> str:
        """Module description (human-readable)."""
        return "Activity log projected from domain events"

    def get_table_schemas(self) -> dict[str, str]:
        """Return table schemas for this module."""
        return {
            "activity_log": """CREATE TABLE IF NOT EXISTS activity_log (
        id TEXT PRIMARY KEY,
        created_at TEXT NOT NULL,
        aggregate_id TEXT NOT NULL,
        aggregate_type TEXT NOT NULL,
        event_type TEXT NOT NULL,
        actor_id TEXT NOT NULL,
        occurred_at TEXT NOT NULL,
        payload TEXT NOT NULL DEFAULT '{}'
    )""",
        }

    def get_indexes(self) -> list[str]:
        """Return indexes for this module's tables."""
        return [
            "CREATE INDEX IF NOT EXISTS idx_activity_log_aggregate_id ON activity_log (aggregate_id)",
            "CREATE INDEX IF NOT EXISTS idx_activity_log_event_type ON activity_log (event_type)",
        ]

    def get_request_registrations(self) -> list["RequestRegistration"]:
        from src.core.pipeline import RequestRegistration
        from src.modules.activity import service

        return [RequestRegistration(service.ListActivity, service.list_activity, is_command=False)]

    def register_subscribers(self, registry: "SubscriberRegistry") -> None:
        """Record every event type in the activity log."""
        from src.domain.events import ALL_EVENT_TYPES
        from src.modules.activity import service

        for event_type in ALL_EVENT_TYPES:
            registry.subscribe(event_type, service.record_activity)
