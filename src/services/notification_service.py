"""Outbound notifications for task events."""

import logging

from src.core.config import settings
from src.core.logging import span
from src.domain.events import DomainEvent, TaskAssigned
from src.interface import webhook_sender


logger = logging.getLogger(__name__)


class NotificationError(RuntimeError):
    """The notification receiver did not accept a notification."""


async def notify_task_assigned(event: DomainEvent) -> None:
    """Tell the configured webhook that a task changed hands.

    Raises:
        NotificationError: If the webhook rejected the payload or stayed unreachable
    """
    if not isinstance(event, TaskAssigned) or not settings.notification_webhook_url:
        return

    with span("notification_service.notify_task_assigned"):
        payload = {
            "event_id": event.event_id,
            "event_type": event.event_type,
            "task_id": event.aggregate_id,
            "previous_assignee_id": event.previous_assignee_id,
            "new_assignee_id": event.new_assignee_id,
            "assigned_by": event.actor_id,
            "occurred_at": event.occurred_at.isoformat(),
        }
        result = await webhook_sender.send_webhook(url=settings.notification_webhook_url, payload=payload)

        if not result.success:
            msg = f"Assignment notification for task {event.aggregate_id} failed: {result.error}"
            raise NotificationError(msg)

        logger.info(
            "Sent assignment notification",
            extra={"task_id": event.aggregate_id, "assignee_id": event.new_assignee_id},
        )
