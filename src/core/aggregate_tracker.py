"""Per-request record of aggregates that were written to the durable store.

Repositories call ``track`` after each successful write. The dispatch stage
opens a ``tracking`` scope around the handler and drains what was tracked
once the handler returns. The scope lives in a context variable, so
concurrent requests on the same loop never see each other's aggregates.
"""

from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar

from src.domain.aggregate import AggregateRoot


class TrackedAggregates:
    """Aggregates touched in one request, in first-touch order, unique by identity."""

    def __init__(self) -> None:
        self._aggregates: list[AggregateRoot] = []
        self._seen: set[int] = set()

    def add(self, aggregate: AggregateRoot) -> None:
        if id(aggregate) in self._seen:
            return
        self._seen.add(id(aggregate))
        self._aggregates.append(aggregate)

    def __iter__(self) -> Iterator[AggregateRoot]:
        return iter(list(self._aggregates))

    def __len__(self) -> int:
        return len(self._aggregates)


_current: ContextVar[TrackedAggregates | None] = ContextVar("tracked_aggregates", default=None)


@contextmanager
def tracking() -> Iterator[TrackedAggregates]:
    """Open a tracking scope for the current request."""
    scope = TrackedAggregates()
    token = _current.set(scope)
    try:
        yield scope
    finally:
        _current.reset(token)


def track(aggregate: AggregateRoot) -> None:
    """Mark ``aggregate`` as committed in the current scope. No-op outside a scope."""
    scope = _current.get()
    if scope is not None:
        scope.add(aggregate)
