"""Small building blocks for request validation rules."""

from datetime import UTC, datetime

from src.core.errors import FieldError


def require_text(field: str, value: str | None, *, max_length: int, required: bool = True) -> list[FieldError]:
    """Non-blank (when required) and within ``max_length`` characters."""
    if value is None:
        return [FieldError(field=field, message="Is required")] if required else []
    if required and not value.strip():
        return [FieldError(field=field, message="Cannot be empty")]
    if len(value) > max_length:
        return [FieldError(field=field, message=f"Must be at most {max_length} characters")]
    return []


def require_positive(field: str, value: float | None, *, maximum: float | None = None) -> list[FieldError]:
    """Greater than zero and, if given, not above ``maximum``. None passes."""
    if value is None:
        return []
    if value <= 0:
        return [FieldError(field=field, message="Must be greater than 0")]
    if maximum is not None and value > maximum:
        return [FieldError(field=field, message=f"Must be at most {maximum:g}")]
    return []


def require_future(field: str, value: datetime | None, *, now: datetime) -> list[FieldError]:
    """Not in the past. Naive datetimes are read as UTC. None passes."""
    if value is None:
        return []
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    if value < now:
        return [FieldError(field=field, message="Cannot be in the past")]
    return []
