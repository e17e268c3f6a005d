"""Task aggregate and its lifecycle operations.

Status only changes through the named operations below. Each one checks the
transition table first, applies its side effects, then raises exactly one
event for the task it was called on.
"""

from collections.abc import Sequence
from datetime import datetime
from typing import Any

from pydantic import Field

from src.core.config import Constants
from src.core.errors import DomainRuleViolation, FieldError, ValidationError
from src.domain.aggregate import AggregateRoot, utcnow
from src.domain.events import (
    TaskAssigned,
    TaskCancelled,
    TaskCompleted,
    TaskCreated,
    TaskDeleted,
    TaskPaused,
    TaskPriorityChanged,
    TaskStarted,
    TaskStatusChanged,
    TaskSubmittedForReview,
)
from src.domain.project import Project
from src.domain.state_machine import TaskPriority, TaskStatus, ensure_transition, is_terminal
from src.domain.user import User


ASSIGNABLE_STATUSES = frozenset({TaskStatus.TODO, TaskStatus.IN_PROGRESS})
DELETABLE_STATUSES = frozenset({TaskStatus.TODO, TaskStatus.CANCELLED})


class Task(AggregateRoot):
    """A unit of work inside a project, optionally nested one level under another task."""

    title: str = Field(..., min_length=1, max_length=Constants.MAX_TITLE_LENGTH, description="Task title")
    description: str = Field(default="", max_length=Constants.MAX_DESCRIPTION_LENGTH, description="Details")
    status: TaskStatus = Field(default=TaskStatus.TODO, description="Current lifecycle status")
    priority: TaskPriority = Field(default=TaskPriority.MEDIUM, description="Priority")
    project_id: str = Field(..., description="Owning project ID")
    parent_task_id: str | None = Field(default=None, description="Parent task ID for subtasks")
    assignee_id: str | None = Field(default=None, description="Assigned user ID")
    created_by: str = Field(..., description="User who created the task")
    estimated_hours: float | None = Field(default=None, gt=0, description="Estimated effort in hours")
    actual_hours: float | None = Field(
        default=None, gt=0, le=Constants.MAX_ACTUAL_HOURS, description="Recorded effort in hours"
    )
    due_date: datetime | None = Field(default=None, description="Due date (UTC)")
    started_at: datetime | None = Field(default=None, description="First time work started")
    completed_at: datetime | None = Field(default=None, description="When the task reached Done")

    @classmethod
    def create(
        cls,
        *,
        title: str,
        project: Project,
        created_by: User,
        description: str = "",
        priority: TaskPriority = TaskPriority.MEDIUM,
        estimated_hours: float | None = None,
        due_date: datetime | None = None,
        parent: "Task | None" = None,
    ) -> "Task":
        """Create a ToDo task (or subtask of ``parent``) and raise TaskCreated."""
        if not created_by.has_permission("create:tasks"):
            raise DomainRuleViolation(f"User {created_by.id} is not allowed to create tasks")
        if not project.accepts_tasks:
            raise DomainRuleViolation(f"Project {project.id} is {project.status} and does not accept new tasks")

        if parent is not None:
            if parent.parent_task_id is not None:
                raise DomainRuleViolation("Subtasks cannot have subtasks of their own")
            if parent.project_id != project.id:
                raise DomainRuleViolation("A subtask must belong to the same project as its parent")
            if parent.is_terminal:
                raise DomainRuleViolation(f"Cannot add a subtask to a task that is {parent.status}")

        task = cls(
            title=title.strip(),
            description=description,
            priority=priority,
            project_id=project.id,
            parent_task_id=parent.id if parent else None,
            created_by=created_by.id,
            estimated_hours=estimated_hours,
            due_date=due_date,
        )
        task._raise_event(
            TaskCreated(
                actor_id=created_by.id,
                aggregate_id=task.id,
                title=task.title,
                project_id=project.id,
                parent_task_id=task.parent_task_id,
            )
        )
        return task

    @property
    def is_terminal(self) -> bool:
        return is_terminal(self.status)

    @property
    def is_subtask(self) -> bool:
        return self.parent_task_id is not None

    def _ensure_may_work_on(self, actor: User, action: str) -> None:
        if not actor.has_permission("update:tasks"):
            raise DomainRuleViolation(f"User {actor.id} is not allowed to {action} tasks")
        if self.assignee_id and actor.id != self.assignee_id and not actor.has_permission("assign:tasks"):
            raise DomainRuleViolation(f"Only the assignee can {action} task {self.id}")

    def _move_to(
        self, target: TaskStatus, event_type: type[TaskStatusChanged], actor: User, **payload: Any
    ) -> None:
        ensure_transition(self.status, target)
        previous = self.status
        self.status = target
        self._raise_event(
            event_type(
                actor_id=actor.id,
                aggregate_id=self.id,
                previous_status=previous,
                new_status=target,
                **payload,
            )
        )

    def start(self, *, started_by: User) -> None:
        """Begin (or resume) work. Records the first start time."""
        self._ensure_may_work_on(started_by, "start")
        ensure_transition(self.status, TaskStatus.IN_PROGRESS)
        if self.started_at is None:
            self.started_at = utcnow()
        self._move_to(TaskStatus.IN_PROGRESS, TaskStarted, started_by)

    def submit_for_review(self, *, submitted_by: User) -> None:
        self._ensure_may_work_on(submitted_by, "submit")
        self._move_to(TaskStatus.IN_REVIEW, TaskSubmittedForReview, submitted_by)

    def pause(self, *, paused_by: User) -> None:
        """Return an in-progress task to ToDo."""
        self._ensure_may_work_on(paused_by, "pause")
        self._move_to(TaskStatus.TODO, TaskPaused, paused_by)

    def complete(self, *, completed_by: User, actual_hours: float, dependents: Sequence["Task"] = ()) -> None:
        """Finish the task. Every subtask must already be Done or Cancelled."""
        self._ensure_may_work_on(completed_by, "complete")
        ensure_transition(self.status, TaskStatus.DONE)
        if not 0 < actual_hours <= Constants.MAX_ACTUAL_HOURS:
            raise ValidationError(
                [FieldError(field="actual_hours", message=f"Must be between 0 and {Constants.MAX_ACTUAL_HOURS}")]
            )
        self._ensure_own_dependents(dependents)
        open_subtasks = [d.id for d in dependents if not d.is_terminal]
        if open_subtasks:
            raise DomainRuleViolation(f"Task {self.id} has {len(open_subtasks)} unfinished subtask(s)")

        self.actual_hours = actual_hours
        self.completed_at = utcnow()
        self._move_to(TaskStatus.DONE, TaskCompleted, completed_by, actual_hours=actual_hours)

    def cancel(self, *, cancelled_by: User, dependents: Sequence["Task"] = ()) -> list["Task"]:
        """Cancel the task and every non-terminal subtask.

        Returns the subtasks that were cancelled along with it. Ownership of
        every dependent is checked before anything changes, and cancel is legal
        from every non-terminal status, so either all of them move or none do.
        """
        if not cancelled_by.has_permission("update:tasks"):
            raise DomainRuleViolation(f"User {cancelled_by.id} is not allowed to cancel tasks")
        ensure_transition(self.status, TaskStatus.CANCELLED)
        self._ensure_own_dependents(dependents)

        self._move_to(TaskStatus.CANCELLED, TaskCancelled, cancelled_by)

        cascaded = [d for d in dependents if not d.is_terminal]
        for dependent in cascaded:
            dependent._move_to(TaskStatus.CANCELLED, TaskCancelled, cancelled_by, cascaded_from=self.id)
        return cascaded

    def _ensure_own_dependents(self, dependents: Sequence["Task"]) -> None:
        strangers = [d.id for d in dependents if d.parent_task_id != self.id]
        if strangers:
            raise DomainRuleViolation(f"Tasks {', '.join(strangers)} are not subtasks of {self.id}")

    def assign_to(self, assignee: User, *, assigned_by: User) -> None:
        """Assign (or reassign) the task while it is ToDo or InProgress."""
        if not assigned_by.has_permission("assign:tasks"):
            raise DomainRuleViolation(f"User {assigned_by.id} is not allowed to assign tasks")
        self._ensure_assignable()
        if not assignee.can_be_assigned_tasks():
            raise DomainRuleViolation(f"User {assignee.id} cannot be assigned tasks")
        if self.assignee_id == assignee.id:
            raise DomainRuleViolation(f"Task {self.id} is already assigned to {assignee.id}")

        previous = self.assignee_id
        self.assignee_id = assignee.id
        self._raise_event(
            TaskAssigned(
                actor_id=assigned_by.id,
                aggregate_id=self.id,
                previous_assignee_id=previous,
                new_assignee_id=assignee.id,
            )
        )

    def unassign(self, *, unassigned_by: User) -> None:
        if not unassigned_by.has_permission("assign:tasks"):
            raise DomainRuleViolation(f"User {unassigned_by.id} is not allowed to assign tasks")
        self._ensure_assignable()
        if self.assignee_id is None:
            raise DomainRuleViolation(f"Task {self.id} is not assigned")

        previous = self.assignee_id
        self.assignee_id = None
        self._raise_event(
            TaskAssigned(
                actor_id=unassigned_by.id,
                aggregate_id=self.id,
                previous_assignee_id=previous,
                new_assignee_id=None,
            )
        )

    def _ensure_assignable(self) -> None:
        if self.status not in ASSIGNABLE_STATUSES:
            raise DomainRuleViolation(f"Cannot change the assignee of a task that is {self.status}")

    def update_info(
        self,
        *,
        updated_by: User,
        title: str | None = None,
        description: str | None = None,
        priority: TaskPriority | None = None,
        estimated_hours: float | None = None,
        due_date: datetime | None = None,
    ) -> None:
        """Edit descriptive fields. Only a priority change raises an event."""
        if not updated_by.has_permission("update:tasks"):
            raise DomainRuleViolation(f"User {updated_by.id} is not allowed to update tasks")
        if self.is_terminal:
            raise DomainRuleViolation(f"Cannot update a task that is {self.status}")

        if title is not None:
            self.title = title.strip()
        if description is not None:
            self.description = description
        if estimated_hours is not None:
            self.estimated_hours = estimated_hours
        if due_date is not None:
            self.due_date = due_date
        self.updated_at = utcnow()

        if priority is not None and priority != self.priority:
            previous = self.priority
            self.priority = priority
            self._raise_event(
                TaskPriorityChanged(
                    actor_id=updated_by.id,
                    aggregate_id=self.id,
                    previous_priority=previous,
                    new_priority=priority,
                )
            )

    def mark_deleted(self, *, deleted_by: User, dependents: Sequence["Task"] = ()) -> None:
        """Record deletion. Only ToDo or Cancelled tasks without subtasks can go."""
        if not deleted_by.has_permission("delete:tasks"):
            raise DomainRuleViolation(f"User {deleted_by.id} is not allowed to delete tasks")
        if self.status not in DELETABLE_STATUSES:
            raise DomainRuleViolation(f"Cannot delete a task that is {self.status}")
        if dependents:
            raise DomainRuleViolation(f"Task {self.id} still has {len(dependents)} subtask(s)")

        self._raise_event(TaskDeleted(actor_id=deleted_by.id, aggregate_id=self.id, project_id=self.project_id))
