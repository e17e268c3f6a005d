"""Subscriber registry and post-commit event delivery."""

import logging
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass, field

from src.core.errors import SubscriberFailure
from src.core.logging import span
from src.domain.aggregate import AggregateRoot
from src.domain.events import DomainEvent


logger = logging.getLogger(__name__)

Subscriber = Callable[[DomainEvent], Awaitable[None]]


def subscriber_name(subscriber: Subscriber) -> str:
    """Stable, human-readable identity of a subscriber for logs."""
    module = getattr(subscriber, "__module__", None) or "?"
    qualname = getattr(subscriber, "__qualname__", None) or type(subscriber).__qualname__
    return f"{module}.{qualname}"


@dataclass
class DispatchResult:
    """Outcome of delivering one request's events."""

    delivered: list[DomainEvent] = field(default_factory=list)
    failures: list[SubscriberFailure] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return not self.failures


class SubscriberRegistry:
    """Maps concrete event types to async subscribers, in subscription order."""

    def __init__(self) -> None:
        self._subscribers: dict[type[DomainEvent], list[Subscriber]] = {}

    def subscribe(self, event_type: type[DomainEvent], subscriber: Subscriber) -> None:
        """Subscribe ``subscriber`` to events of exactly ``event_type``.

        Raises:
            ValueError: If the subscriber is already subscribed to that type
        """
        handlers = self._subscribers.setdefault(event_type, [])
        if subscriber in handlers:
            msg = f"{subscriber_name(subscriber)} is already subscribed to {event_type.__name__}"
            raise ValueError(msg)
        handlers.append(subscriber)
        logger.debug("Subscribed %s to %s", subscriber_name(subscriber), event_type.__name__)

    def handlers_for(self, event: DomainEvent) -> list[Subscriber]:
        """Subscribers registered for the event's exact class."""
        return list(self._subscribers.get(type(event), ()))

    async def publish(self, event: DomainEvent, result: DispatchResult) -> None:
        """Deliver one event to its subscribers one at a time.

        A failing subscriber is recorded and logged; the remaining subscribers
        still receive the event. Cancellation propagates.
        """
        for subscriber in self.handlers_for(event):
            name = subscriber_name(subscriber)
            try:
                await subscriber(event)
            except Exception as e:
                failure = SubscriberFailure(
                    event_id=event.event_id, event_type=event.event_type, subscriber=name, cause=e
                )
                result.failures.append(failure)
                logger.exception(
                    "Subscriber failed",
                    extra={
                        "event_id": event.event_id,
                        "event_type": event.event_type,
                        "aggregate_id": event.aggregate_id,
                        "subscriber": name,
                    },
                )
        result.delivered.append(event)

    async def dispatch(self, aggregates: Iterable[AggregateRoot]) -> DispatchResult:
        """Drain each aggregate in order and publish its events in raise order."""
        result = DispatchResult()
        with span("event_bus.dispatch"):
            for aggregate in aggregates:
                for event in aggregate.drain_events():
                    await self.publish(event, result)

        if result.delivered:
            logger.info(
                "Dispatched %d event(s)",
                len(result.delivered),
                extra={"event_count": len(result.delivered), "failure_count": len(result.failures)},
            )
        return result
