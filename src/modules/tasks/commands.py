"""Commands and queries handled by the tasks module."""

from datetime import datetime

from pydantic import BaseModel, Field

from src.domain.state_machine import TaskPriority, TaskStatus


class CreateTask(BaseModel):
    project_id: str
    title: str
    description: str = ""
    priority: TaskPriority = TaskPriority.MEDIUM
    estimated_hours: float | None = None
    due_date: datetime | None = None
    parent_task_id: str | None = Field(default=None, description="Create the task as a subtask of this task")


class UpdateTask(BaseModel):
    """Edit descriptive fields. Omitted fields are left unchanged."""

    task_id: str
    title: str | None = None
    description: str | None = None
    priority: TaskPriority | None = None
    estimated_hours: float | None = None
    due_date: datetime | None = None


class StartTask(BaseModel):
    task_id: str


class SubmitTaskForReview(BaseModel):
    task_id: str


class CompleteTask(BaseModel):
    task_id: str
    actual_hours: float


class CancelTask(BaseModel):
    task_id: str


class PauseTask(BaseModel):
    task_id: str


class AssignTask(BaseModel):
    task_id: str
    assignee_id: str


class UnassignTask(BaseModel):
    task_id: str


class DeleteTask(BaseModel):
    task_id: str


class GetTask(BaseModel):
    task_id: str


class ListProjectTasks(BaseModel):
    project_id: str
    status: TaskStatus | None = None


class ListSubtasks(BaseModel):
    task_id: str
