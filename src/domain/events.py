"""Domain events raised by aggregates.

Events are frozen pydantic models. Subscribers are matched on the concrete
class, so ``TaskStarted`` subscribers do not receive ``TaskCancelled`` even
though both carry a status change.
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from src.domain.aggregate import new_id, utcnow
from src.domain.state_machine import ProjectStatus, TaskPriority, TaskStatus
from src.domain.user import TeamRole


class DomainEvent(BaseModel):
    """Immutable record of a change that already happened."""

    model_config = ConfigDict(frozen=True)

    event_id: str = Field(default_factory=new_id, description="Unique event ID")
    occurred_at: datetime = Field(default_factory=utcnow, description="When the change happened (UTC)")
    actor_id: str = Field(..., description="User who caused the change")
    aggregate_id: str = Field(..., description="ID of the aggregate that raised the event")

    aggregate_type: str = "unknown"

    @property
    def event_type(self) -> str:
        """Name subscribers and the activity log use for this event."""
        return type(self).__name__


class TaskEvent(DomainEvent):
    aggregate_type: str = "task"


class TaskCreated(TaskEvent):
    title: str
    project_id: str
    parent_task_id: str | None = None


class TaskStatusChanged(TaskEvent):
    """Base for every status transition event."""

    previous_status: TaskStatus
    new_status: TaskStatus


class TaskStarted(TaskStatusChanged):
    pass


class TaskSubmittedForReview(TaskStatusChanged):
    pass


class TaskCompleted(TaskStatusChanged):
    actual_hours: float


class TaskCancelled(TaskStatusChanged):
    cascaded_from: str | None = Field(default=None, description="Parent task whose cancellation caused this one")


class TaskPaused(TaskStatusChanged):
    pass


class TaskAssigned(TaskEvent):
    previous_assignee_id: str | None
    new_assignee_id: str | None


class TaskPriorityChanged(TaskEvent):
    previous_priority: TaskPriority
    new_priority: TaskPriority


class TaskDeleted(TaskEvent):
    project_id: str


class ProjectEvent(DomainEvent):
    aggregate_type: str = "project"


class ProjectCreated(ProjectEvent):
    name: str
    team_id: str


class ProjectStatusChanged(ProjectEvent):
    previous_status: ProjectStatus
    new_status: ProjectStatus


class TeamEvent(DomainEvent):
    aggregate_type: str = "team"


class TeamCreated(TeamEvent):
    name: str


class TeamUpdated(TeamEvent):
    name: str
    description: str


class MemberJoinedTeam(TeamEvent):
    user_id: str
    role: TeamRole


class MemberLeftTeam(TeamEvent):
    user_id: str
    role: TeamRole


class MemberRoleChanged(TeamEvent):
    user_id: str
    previous_role: TeamRole
    new_role: TeamRole


class TeamDeleted(TeamEvent):
    name: str


ALL_EVENT_TYPES: tuple[type[DomainEvent], ...] = (
    TaskCreated,
    TaskStarted,
    TaskSubmittedForReview,
    TaskCompleted,
    TaskCancelled,
    TaskPaused,
    TaskAssigned,
    TaskPriorityChanged,
    TaskDeleted,
    ProjectCreated,
    ProjectStatusChanged,
    TeamCreated,
    TeamUpdated,
    MemberJoinedTeam,
    MemberLeftTeam,
    MemberRoleChanged,
    TeamDeleted,
)
