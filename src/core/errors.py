"""Error taxonomy and structured error responses."""

from enum import Enum
from typing import Any, ClassVar

from pydantic import BaseModel


class ErrorCategory(Enum):
    """Categories of errors that can occur while handling a request."""

    VALIDATION = "validation"
    DOMAIN_RULE = "domain_rule"
    NOT_FOUND = "not_found"
    CONCURRENCY = "concurrency"
    SUBSCRIBER = "subscriber"
    INFRASTRUCTURE = "infrastructure"
    UNKNOWN = "unknown"


class ErrorSeverity(Enum):
    """Severity levels for errors."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ErrorCode:
    """Error codes for specific error conditions."""

    ERR_VALIDATION_FAILED = "ERR_VALIDATION_FAILED"
    ERR_DOMAIN_RULE_VIOLATION = "ERR_DOMAIN_RULE_VIOLATION"
    ERR_NOT_FOUND = "ERR_NOT_FOUND"
    ERR_CONCURRENCY_CONFLICT = "ERR_CONCURRENCY_CONFLICT"
    ERR_SUBSCRIBER_FAILURE = "ERR_SUBSCRIBER_FAILURE"
    ERR_INFRASTRUCTURE_FAILURE = "ERR_INFRASTRUCTURE_FAILURE"
    ERR_UNKNOWN = "ERR_UNKNOWN"


class FieldError(BaseModel):
    """A single field-addressable validation failure."""

    field: str
    message: str


class AppError(Exception):
    """Base class for every error the application raises deliberately."""

    category: ClassVar[ErrorCategory] = ErrorCategory.UNKNOWN
    code: ClassVar[str] = ErrorCode.ERR_UNKNOWN
    status_code: ClassVar[int] = 500


class ValidationError(AppError):
    """User-correctable request errors, addressed by field."""

    category = ErrorCategory.VALIDATION
    code = ErrorCode.ERR_VALIDATION_FAILED
    status_code = 422

    def __init__(self, errors: list[FieldError]) -> None:
        self.errors = list(errors)
        fields = ", ".join(sorted({error.field for error in self.errors}))
        super().__init__(f"Validation failed for: {fields}")

    def as_dict(self) -> dict[str, list[str]]:
        """Group error messages by field name."""
        grouped: dict[str, list[str]] = {}
        for error in self.errors:
            messages = grouped.setdefault(error.field, [])
            if error.message not in messages:
                messages.append(error.message)
        return grouped


class DomainRuleViolation(AppError):
    """An operation broke a business rule (illegal transition, forbidden action, terminal entity)."""

    category = ErrorCategory.DOMAIN_RULE
    code = ErrorCode.ERR_DOMAIN_RULE_VIOLATION
    status_code = 409


class NotFoundError(DomainRuleViolation):
    """A referenced entity does not exist."""

    category = ErrorCategory.NOT_FOUND
    code = ErrorCode.ERR_NOT_FOUND
    status_code = 404

    def __init__(self, entity: str, entity_id: str) -> None:
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} not found: {entity_id}")


class ConcurrencyConflict(AppError):
    """The store rejected a write made against a stale version."""

    category = ErrorCategory.CONCURRENCY
    code = ErrorCode.ERR_CONCURRENCY_CONFLICT
    status_code = 409

    def __init__(self, entity: str, entity_id: str, expected_version: int) -> None:
        self.entity = entity
        self.entity_id = entity_id
        self.expected_version = expected_version
        super().__init__(f"{entity} {entity_id} was modified concurrently (expected version {expected_version})")


class SubscriberFailure(AppError):
    """An event subscriber raised while an event was being dispatched."""

    category = ErrorCategory.SUBSCRIBER
    code = ErrorCode.ERR_SUBSCRIBER_FAILURE

    def __init__(self, *, event_id: str, event_type: str, subscriber: str, cause: Exception) -> None:
        self.event_id = event_id
        self.event_type = event_type
        self.subscriber = subscriber
        self.cause = cause
        super().__init__(f"Subscriber {subscriber} failed on {event_type} ({event_id}): {cause}")


class InfrastructureFailure(AppError):
    """The cache or the durable store could not be reached."""

    category = ErrorCategory.INFRASTRUCTURE
    code = ErrorCode.ERR_INFRASTRUCTURE_FAILURE
    status_code = 503


class ErrorResponse(BaseModel):
    """Structured error response with user-friendly messaging."""

    code: str
    message: str
    suggestion: str
    severity: ErrorSeverity
    status_code: int
    errors: dict[str, list[str]] | None = None

    def to_body(self) -> dict[str, Any]:
        """Render the response as a JSON-compatible body."""
        return self.model_dump(mode="json", exclude={"status_code"}, exclude_none=True)


def classify_error_with_response(exception: Exception) -> ErrorResponse:
    """Classify an error and return a structured response with recovery suggestions.

    Args:
        exception: The exception raised while handling a request

    Returns:
        ErrorResponse with code, message, suggestion, severity and HTTP status
    """
    if isinstance(exception, ValidationError):
        return ErrorResponse(
            code=exception.code,
            message="The request is invalid.",
            suggestion="Correct the listed fields and try again.",
            severity=ErrorSeverity.LOW,
            status_code=exception.status_code,
            errors=exception.as_dict(),
        )

    if isinstance(exception, NotFoundError):
        return ErrorResponse(
            code=exception.code,
            message=str(exception),
            suggestion="Check the identifier and try again.",
            severity=ErrorSeverity.LOW,
            status_code=exception.status_code,
        )

    if isinstance(exception, DomainRuleViolation):
        return ErrorResponse(
            code=exception.code,
            message=str(exception),
            suggestion="Check the current state of the item before retrying.",
            severity=ErrorSeverity.LOW,
            status_code=exception.status_code,
        )

    if isinstance(exception, ConcurrencyConflict):
        return ErrorResponse(
            code=exception.code,
            message="The item was changed by someone else.",
            suggestion="Reload the item and retry your change.",
            severity=ErrorSeverity.MEDIUM,
            status_code=exception.status_code,
        )

    if isinstance(exception, InfrastructureFailure):
        return ErrorResponse(
            code=exception.code,
            message="A backing service is unavailable.",
            suggestion="Please try again later.",
            severity=ErrorSeverity.HIGH,
            status_code=exception.status_code,
        )

    return ErrorResponse(
        code=ErrorCode.ERR_UNKNOWN,
        message="An unexpected error occurred.",
        suggestion="Please try again later. If the problem persists, contact support.",
        severity=ErrorSeverity.MEDIUM,
        status_code=500,
    )
