"""Request pipeline wrapping every command and query.

Stages run outer to inner as Logging, Validation, Dispatch, Performance and
finally the handler. Dispatch opens its tracking scope on the way in but only
delivers events after the inner call has returned, so subscribers see
nothing from a request whose handler failed and handler timing excludes
subscriber time.
"""

import inspect
import logging
import time
from collections.abc import Awaitable, Callable, Iterable, Sequence
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Protocol

from pydantic import BaseModel

from src.core.aggregate_tracker import tracking
from src.core.config import settings
from src.core.errors import AppError, FieldError, ValidationError
from src.core.event_bus import SubscriberRegistry
from src.core.logging import correlation_scope, log_with_request_context, span


if TYPE_CHECKING:
    from src.core.deps import Deps


logger = logging.getLogger(__name__)

Handler = Callable[[Any, "Deps"], Awaitable[Any]]
ValidationRule = Callable[[Any, "Deps"], "list[FieldError] | Awaitable[list[FieldError]]"]
CallNext = Callable[[], Awaitable[Any]]

@dataclass(frozen=True)
class RequestRegistration:
    """How one request type is handled."""

    request_type: type[BaseModel]
    handler: Handler
    validators: Sequence[ValidationRule] = field(default_factory=tuple)
    is_command: bool = True

    @property
    def name(self) -> str:
        return self.request_type.__name__


class Stage(Protocol):
    async def __call__(
        self, request: BaseModel, deps: "Deps", registration: RequestRegistration, call_next: CallNext
    ) -> Any: ...  # noqa: ANN401


class LoggingStage:
    """Assigns a correlation ID and logs the start and outcome of every request."""

    async def __call__(
        self, request: BaseModel, deps: "Deps", registration: RequestRegistration, call_next: CallNext
    ) -> Any:  # noqa: ANN401
        context = {"request_type": registration.name, "actor_id": deps.actor.id}
        with correlation_scope() as request_id:
            with span(f"pipeline.{registration.name}"):
                log_with_request_context(logger, "info", "Handling request", request_id=request_id, **context)
                try:
                    result = await call_next()
                except AppError as e:
                    log_with_request_context(
                        logger,
                        "warning",
                        "Request rejected",
                        request_id=request_id,
                        error_code=e.code,
                        error=str(e),
                        **context,
                    )
                    raise
                except Exception:
                    logger.exception("Request failed unexpectedly", extra={"request_id": request_id, **context})
                    raise
                log_with_request_context(logger, "info", "Request succeeded", request_id=request_id, **context)
                return result


class ValidationStage:
    """Runs every rule of the request's rule set and rejects the request if any fails."""

    async def __call__(
        self, request: BaseModel, deps: "Deps", registration: RequestRegistration, call_next: CallNext
    ) -> Any:  # noqa: ANN401
        errors: list[FieldError] = []
        for rule in registration.validators:
            outcome = rule(request, deps)
            if inspect.isawaitable(outcome):
                outcome = await outcome
            errors.extend(outcome)

        if errors:
            raise ValidationError(errors)
        return await call_next()


class DispatchStage:
    """Delivers the events of every aggregate a command wrote, once the handler has returned."""

    def __init__(self, subscribers: SubscriberRegistry) -> None:
        self._subscribers = subscribers

    async def __call__(
        self, request: BaseModel, deps: "Deps", registration: RequestRegistration, call_next: CallNext
    ) -> Any:  # noqa: ANN401
        if not registration.is_command:
            return await call_next()

        with tracking() as touched:
            result = await call_next()

        await self._subscribers.dispatch(touched)
        return result


class PerformanceStage:
    """Times the handler and warns about slow requests."""

    def __init__(self, threshold_ms: int, exclude_patterns: Iterable[str] = ()) -> None:
        self._threshold_ms = threshold_ms
        self._exclude_patterns = [pattern.lower() for pattern in exclude_patterns if pattern]

    def is_excluded(self, request_name: str) -> bool:
        name = request_name.lower()
        return any(pattern in name for pattern in self._exclude_patterns)

    async def __call__(
        self, request: BaseModel, deps: "Deps", registration: RequestRegistration, call_next: CallNext
    ) -> Any:  # noqa: ANN401
        if self.is_excluded(registration.name):
            return await call_next()

        started = time.perf_counter()
        try:
            result = await call_next()
        except Exception:
            elapsed_ms = (time.perf_counter() - started) * 1000
            logger.error(
                "%s failed after %.1fms",
                registration.name,
                elapsed_ms,
                extra={"request_type": registration.name, "elapsed_ms": elapsed_ms},
            )
            raise

        elapsed_ms = (time.perf_counter() - started) * 1000
        extra = {"request_type": registration.name, "elapsed_ms": elapsed_ms, "threshold_ms": self._threshold_ms}
        if elapsed_ms > self._threshold_ms:
            logger.warning("Slow request %s took %.1fms", registration.name, elapsed_ms, extra=extra)
        else:
            logger.debug("%s took %.1fms", registration.name, elapsed_ms, extra=extra)
        return result


class Pipeline:
    """Statically composed chain of stages in front of the registered handlers."""

    def __init__(self, registrations: Iterable[RequestRegistration], stages: Sequence[Stage]) -> None:
        self._registrations: dict[type[BaseModel], RequestRegistration] = {}
        for registration in registrations:
            if registration.request_type in self._registrations:
                msg = f"Request type {registration.name} is registered twice"
                raise ValueError(msg)
            self._registrations[registration.request_type] = registration
        self._stages = tuple(stages)

    @property
    def request_types(self) -> list[type[BaseModel]]:
        return list(self._registrations)

    async def send(self, request: BaseModel, deps: "Deps") -> Any:  # noqa: ANN401
        """Run ``request`` through every stage and its handler.

        Raises:
            LookupError: If no handler is registered for the request type
        """
        registration = self._registrations.get(type(request))
        if registration is None:
            msg = f"No handler registered for {type(request).__name__}"
            raise LookupError(msg)
        return await self._invoke(0, request, deps, registration)

    async def _invoke(
        self, index: int, request: BaseModel, deps: "Deps", registration: RequestRegistration
    ) -> Any:  # noqa: ANN401
        if index == len(self._stages):
            return await registration.handler(request, deps)

        async def call_next() -> Any:  # noqa: ANN401
            return await self._invoke(index + 1, request, deps, registration)

        return await self._stages[index](request, deps, registration, call_next)


def build_pipeline(
    registrations: Iterable[RequestRegistration],
    subscribers: SubscriberRegistry,
    *,
    slow_threshold_ms: int | None = None,
    exclude_patterns: Iterable[str] | None = None,
) -> Pipeline:
    """Assemble the standard stage order around ``registrations``."""
    stages: list[Stage] = [
        LoggingStage(),
        ValidationStage(),
        DispatchStage(subscribers),
        PerformanceStage(
            slow_threshold_ms if slow_threshold_ms is not None else settings.slow_request_threshold_ms,
            exclude_patterns if exclude_patterns is not None else settings.performance_exclude_patterns,
        ),
    ]
    return Pipeline(registrations, stages)
