"""Validation rules for task requests.

Rules return field errors rather than raising, so the validation stage can
report every problem with a request at once.
"""

from src.core.config import Constants
from src.core.deps import Deps
from src.core.errors import FieldError, NotFoundError
from src.core.validation import require_future, require_positive, require_text
from src.domain.task import ASSIGNABLE_STATUSES
from src.modules.tasks.commands import AssignTask, CompleteTask, CreateTask, UnassignTask, UpdateTask


def create_task_fields(request: CreateTask, deps: Deps) -> list[FieldError]:
    return [
        *require_text("title", request.title, max_length=Constants.MAX_TITLE_LENGTH),
        *require_text("description", request.description, max_length=Constants.MAX_DESCRIPTION_LENGTH, required=False),
        *require_positive("estimated_hours", request.estimated_hours),
        *require_future("due_date", request.due_date, now=deps.current_time),
    ]


async def project_exists(request: CreateTask, deps: Deps) -> list[FieldError]:
    try:
        await deps.projects.get(request.project_id)
    except NotFoundError:
        return [FieldError(field="project_id", message="Project not found")]
    return []


async def parent_task_exists(request: CreateTask, deps: Deps) -> list[FieldError]:
    if request.parent_task_id is None:
        return []
    try:
        await deps.tasks.get(request.parent_task_id)
    except NotFoundError:
        return [FieldError(field="parent_task_id", message="Parent task not found")]
    return []


def update_task_fields(request: UpdateTask, deps: Deps) -> list[FieldError]:
    return [
        *require_text(
            "title", request.title, max_length=Constants.MAX_TITLE_LENGTH, required=request.title is not None
        ),
        *require_text("description", request.description, max_length=Constants.MAX_DESCRIPTION_LENGTH, required=False),
        *require_positive("estimated_hours", request.estimated_hours),
        *require_future("due_date", request.due_date, now=deps.current_time),
    ]


def complete_task_fields(request: CompleteTask, deps: Deps) -> list[FieldError]:
    return require_positive("actual_hours", request.actual_hours, maximum=Constants.MAX_ACTUAL_HOURS)


async def task_is_assignable(request: AssignTask | UnassignTask, deps: Deps) -> list[FieldError]:
    """Only ToDo and InProgress tasks can change hands. A missing task is left to the handler."""
    try:
        task = await deps.tasks.get(request.task_id)
    except NotFoundError:
        return []
    if task.status not in ASSIGNABLE_STATUSES:
        return [FieldError(field="task_id", message=f"Task is {task.status} and cannot be assigned")]
    return []


async def assignee_can_take_tasks(request: AssignTask, deps: Deps) -> list[FieldError]:
    """The assignee must be able to take tasks and have access to the project's team.

    Users who manage teams have access to every team. A missing task, project
    or team is reported by the handler or by other rules.
    """
    try:
        assignee = await deps.users.get(request.assignee_id)
    except NotFoundError:
        return [FieldError(field="assignee_id", message="User not found")]
    if not assignee.can_be_assigned_tasks():
        return [FieldError(field="assignee_id", message="User cannot be assigned tasks")]

    try:
        task = await deps.tasks.get(request.task_id)
        project = await deps.projects.get(task.project_id)
        team = await deps.teams.get(project.team_id)
    except NotFoundError:
        return []
    if not team.has_access(assignee):
        return [FieldError(field="assignee_id", message="User has no access to this project's team")]
    return []
