"""Task request handlers.

Handlers load aggregates, call one domain operation and persist every
aggregate that changed. Events are delivered by the pipeline afterwards.
"""

import logging

from src.core.config import Constants
from src.core.db_client import sanitize_param
from src.core.deps import Deps
from src.core.logging import span
from src.domain.task import Task
from src.modules.tasks.commands import (
    AssignTask,
    CancelTask,
    CompleteTask,
    CreateTask,
    DeleteTask,
    GetTask,
    ListProjectTasks,
    ListSubtasks,
    PauseTask,
    StartTask,
    SubmitTaskForReview,
    UnassignTask,
    UpdateTask,
)


logger = logging.getLogger(__name__)


async def _subtasks(deps: Deps, task_id: str) -> list[Task]:
    return await deps.tasks.query(
        f'parent_task_id = "{sanitize_param(task_id)}"',
        limit=Constants.MAX_SUBTASKS_PER_TASK,
    )


async def create_task(request: CreateTask, deps: Deps) -> Task:
    """Create a task, or a subtask when ``parent_task_id`` is given."""
    with span("task_service.create_task"):
        project = await deps.projects.get(request.project_id)
        parent = await deps.tasks.get(request.parent_task_id) if request.parent_task_id else None

        task = Task.create(
            title=request.title,
            project=project,
            created_by=deps.actor,
            description=request.description,
            priority=request.priority,
            estimated_hours=request.estimated_hours,
            due_date=request.due_date,
            parent=parent,
        )
        await deps.tasks.add(task)

        logger.info(
            "Created task",
            extra={"task_id": task.id, "project_id": project.id, "parent_task_id": task.parent_task_id},
        )
        return task


async def update_task(request: UpdateTask, deps: Deps) -> Task:
    with span("task_service.update_task"):
        task = await deps.tasks.get(request.task_id)
        task.update_info(
            updated_by=deps.actor,
            title=request.title,
            description=request.description,
            priority=request.priority,
            estimated_hours=request.estimated_hours,
            due_date=request.due_date,
        )
        return await deps.tasks.update(task)


async def start_task(request: StartTask, deps: Deps) -> Task:
    with span("task_service.start_task"):
        task = await deps.tasks.get(request.task_id)
        task.start(started_by=deps.actor)
        return await deps.tasks.update(task)


async def submit_task_for_review(request: SubmitTaskForReview, deps: Deps) -> Task:
    with span("task_service.submit_task_for_review"):
        task = await deps.tasks.get(request.task_id)
        task.submit_for_review(submitted_by=deps.actor)
        return await deps.tasks.update(task)


async def pause_task(request: PauseTask, deps: Deps) -> Task:
    with span("task_service.pause_task"):
        task = await deps.tasks.get(request.task_id)
        task.pause(paused_by=deps.actor)
        return await deps.tasks.update(task)


async def complete_task(request: CompleteTask, deps: Deps) -> Task:
    with span("task_service.complete_task"):
        task = await deps.tasks.get(request.task_id)
        task.complete(
            completed_by=deps.actor,
            actual_hours=request.actual_hours,
            dependents=await _subtasks(deps, task.id),
        )
        return await deps.tasks.update(task)


async def cancel_task(request: CancelTask, deps: Deps) -> Task:
    """Cancel a task and every unfinished subtask.

    The parent and its cascaded subtasks are written in one transaction,
    parent first, so either all of them are cancelled or none are.
    """
    with span("task_service.cancel_task"):
        task = await deps.tasks.get(request.task_id)
        cascaded = task.cancel(cancelled_by=deps.actor, dependents=await _subtasks(deps, task.id))

        await deps.tasks.update_many([task, *cascaded])

        logger.info("Cancelled task", extra={"task_id": task.id, "cascaded_count": len(cascaded)})
        return task


async def assign_task(request: AssignTask, deps: Deps) -> Task:
    with span("task_service.assign_task"):
        task = await deps.tasks.get(request.task_id)
        assignee = await deps.users.get(request.assignee_id)
        task.assign_to(assignee, assigned_by=deps.actor)
        return await deps.tasks.update(task)


async def unassign_task(request: UnassignTask, deps: Deps) -> Task:
    with span("task_service.unassign_task"):
        task = await deps.tasks.get(request.task_id)
        task.unassign(unassigned_by=deps.actor)
        return await deps.tasks.update(task)


async def delete_task(request: DeleteTask, deps: Deps) -> None:
    with span("task_service.delete_task"):
        task = await deps.tasks.get(request.task_id)
        task.mark_deleted(deleted_by=deps.actor, dependents=await _subtasks(deps, task.id))
        await deps.tasks.delete(task)
        logger.info("Deleted task", extra={"task_id": task.id})


async def get_task(request: GetTask, deps: Deps) -> Task:
    return await deps.tasks.get(request.task_id)


async def list_project_tasks(request: ListProjectTasks, deps: Deps) -> list[Task]:
    await deps.projects.get(request.project_id)
    filter_query = f'project_id = "{sanitize_param(request.project_id)}"'
    if request.status is not None:
        filter_query += f' && status = "{request.status.value}"'
    return await deps.tasks.query(filter_query, limit=Constants.DEFAULT_PER_PAGE_LIMIT)


async def list_subtasks(request: ListSubtasks, deps: Deps) -> list[Task]:
    await deps.tasks.get(request.task_id)
    return await _subtasks(deps, request.task_id)
