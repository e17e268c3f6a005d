"""Logging and observability for tasklane, built on Pydantic Logfire.

Modules log through the standard library (``logging.getLogger(__name__)``)
with structured ``extra`` fields. ``configure_logfire`` routes those records
to Logfire and stamps each one with the correlation ID of the request being
handled, so a request's log lines, spans and subscriber failures can be
joined up afterwards.

Usage:
    logger = logging.getLogger(__name__)
    logger.info("Task cancelled", extra={"task_id": task.id})

    with correlation_scope() as request_id:
        log_with_request_context(logger, "info", "Handling request", request_type="StartTask")
"""

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from uuid import uuid4

import logfire
from fastapi import FastAPI

from src.core.config import settings


_correlation_id: ContextVar[str | None] = ContextVar("correlation_id", default=None)


def get_correlation_id() -> str | None:
    """Correlation ID of the request being handled, if any."""
    return _correlation_id.get()


@contextmanager
def correlation_scope(correlation_id: str | None = None) -> Iterator[str]:
    """Bind a correlation ID for the duration of the block and yield it."""
    value = correlation_id or uuid4().hex
    token = _correlation_id.set(value)
    try:
        yield value
    finally:
        _correlation_id.reset(token)


class CorrelationIdFilter(logging.Filter):
    """Adds ``correlation_id`` to every record that does not already carry one."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "correlation_id"):
            record.correlation_id = get_correlation_id()
        return True


def configure_logfire() -> None:
    """Configure Logfire and send standard-library log records to it.

    Nothing leaves the process unless ``LOGFIRE_TOKEN`` is set; records are
    still emitted to the console by Logfire in that case.
    """
    logfire.configure(
        token=settings.logfire_token,
        service_name="tasklane",
        service_version="0.1.0",
        environment=settings.environment,
        send_to_logfire="if-token-present",
    )

    handler = logfire.LogfireLoggingHandler()
    handler.addFilter(CorrelationIdFilter())
    root = logging.getLogger()
    if not any(isinstance(h, logfire.LogfireLoggingHandler) for h in root.handlers):
        root.addHandler(handler)
    root.setLevel(logging.DEBUG if not settings.is_production else logging.INFO)

    logging.getLogger(__name__).info("Logfire configured", extra={"environment": settings.environment})


def instrument_fastapi(app: FastAPI) -> None:
    """Add Logfire request spans to the FastAPI application."""
    logfire.instrument_fastapi(app)
    logging.getLogger(__name__).info("FastAPI instrumentation configured")


def span(name: str) -> logfire.LogfireSpan:
    """Open a Logfire span, e.g. ``with span("pipeline.CancelTask"):``."""
    return logfire.span(name)


def log_with_context(
    logger: logging.Logger,
    level: str,
    message: str,
    **context: object,
) -> None:
    """Log a message with structured context fields.

    Args:
        logger: Logger instance to use
        level: Log level ("debug", "info", "warning", "error", "critical")
        message: Log message
        **context: Context fields such as task_id, actor_id or event_type
    """
    log_method = getattr(logger, level.lower())
    log_method(message, extra=context)


def log_with_request_context(
    logger: logging.Logger,
    level: str,
    message: str,
    request_id: str | None = None,
    **extra: object,
) -> None:
    """Log a message tagged with the current request's correlation ID.

    ``request_id`` overrides the ID bound by ``correlation_scope``.
    """
    request_id = request_id or get_correlation_id()
    context = {"request_id": request_id, **extra} if request_id else extra
    log_with_context(logger, level, message, **context)
