"""Status enums and transition tables for tasks and projects.

The tables are the single source of truth for which status changes are
legal. Aggregates consult them through ``ensure_transition`` before mutating.
"""

from enum import StrEnum

from src.core.errors import DomainRuleViolation


class TaskStatus(StrEnum):
    """Task lifecycle status."""

    TODO = "ToDo"
    IN_PROGRESS = "InProgress"
    IN_REVIEW = "InReview"
    DONE = "Done"
    CANCELLED = "Cancelled"


class TaskPriority(StrEnum):
    """Task priority."""

    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"
    CRITICAL = "Critical"


class ProjectStatus(StrEnum):
    """Project lifecycle status."""

    PLANNING = "Planning"
    ACTIVE = "Active"
    ON_HOLD = "OnHold"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"


# Done and Cancelled are terminal; there is no reopen edge.
TASK_TRANSITIONS: dict[TaskStatus, frozenset[TaskStatus]] = {
    TaskStatus.TODO: frozenset({TaskStatus.IN_PROGRESS, TaskStatus.CANCELLED}),
    TaskStatus.IN_PROGRESS: frozenset(
        {TaskStatus.TODO, TaskStatus.IN_REVIEW, TaskStatus.DONE, TaskStatus.CANCELLED}
    ),
    TaskStatus.IN_REVIEW: frozenset({TaskStatus.IN_PROGRESS, TaskStatus.DONE, TaskStatus.CANCELLED}),
    TaskStatus.DONE: frozenset(),
    TaskStatus.CANCELLED: frozenset(),
}

PROJECT_TRANSITIONS: dict[ProjectStatus, frozenset[ProjectStatus]] = {
    ProjectStatus.PLANNING: frozenset({ProjectStatus.ACTIVE, ProjectStatus.CANCELLED}),
    ProjectStatus.ACTIVE: frozenset({ProjectStatus.ON_HOLD, ProjectStatus.COMPLETED, ProjectStatus.CANCELLED}),
    ProjectStatus.ON_HOLD: frozenset({ProjectStatus.ACTIVE, ProjectStatus.CANCELLED}),
    ProjectStatus.COMPLETED: frozenset(),
    ProjectStatus.CANCELLED: frozenset(),
}


def _table_for(status: StrEnum) -> dict:
    if isinstance(status, TaskStatus):
        return TASK_TRANSITIONS
    if isinstance(status, ProjectStatus):
        return PROJECT_TRANSITIONS
    msg = f"No transition table for {type(status).__name__}"
    raise TypeError(msg)


def allowed_targets(current: TaskStatus | ProjectStatus) -> frozenset:
    """Statuses reachable from ``current`` in one step."""
    return _table_for(current)[current]


def can_transition(current: TaskStatus | ProjectStatus, target: TaskStatus | ProjectStatus) -> bool:
    """Whether ``current -> target`` is an edge of the table."""
    return target in allowed_targets(current)


def is_terminal(status: TaskStatus | ProjectStatus) -> bool:
    """Whether no transition leaves ``status``."""
    return not allowed_targets(status)


def ensure_transition(
    current: TaskStatus | ProjectStatus,
    target: TaskStatus | ProjectStatus,
    *,
    entity: str = "task",
) -> None:
    """Raise DomainRuleViolation unless ``current -> target`` is legal."""
    if can_transition(current, target):
        return
    if is_terminal(current):
        msg = f"Cannot move {entity} to {target}: {entity} is {current}, which is final"
    else:
        msg = f"Cannot move {entity} from {current} to {target}"
    raise DomainRuleViolation(msg)
