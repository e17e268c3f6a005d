"""HTTP routes. Every route builds one request and sends it through the pipeline."""

import logging
from datetime import datetime
from typing import Any

from fastapi import APIRouter, Depends, Header, HTTPException, Request, Response, status
from pydantic import BaseModel

from src.core.deps import Deps, Repositories
from src.core.errors import NotFoundError
from src.core.pipeline import Pipeline
from src.domain.project import Project
from src.domain.state_machine import ProjectStatus, TaskPriority, TaskStatus
from src.domain.task import Task
from src.domain.team import Team
from src.domain.user import TeamRole, User, UserRole, UserStatus
from src.modules.activity.service import ActivityEntry, ListActivity
from src.modules.projects import commands as project_commands
from src.modules.tasks import commands as task_commands
from src.modules.teams import commands as team_commands
from src.modules.users import commands as user_commands


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api")


class SubtaskBody(BaseModel):
    title: str
    description: str = ""
    priority: TaskPriority = TaskPriority.MEDIUM
    estimated_hours: float | None = None
    due_date: datetime | None = None


class TaskUpdateBody(BaseModel):
    title: str | None = None
    description: str | None = None
    priority: TaskPriority | None = None
    estimated_hours: float | None = None
    due_date: datetime | None = None


class CompleteBody(BaseModel):
    actual_hours: float


class AssignBody(BaseModel):
    assignee_id: str


class ProjectStatusBody(BaseModel):
    status: ProjectStatus


class UserRoleBody(BaseModel):
    role: UserRole


class UserStatusBody(BaseModel):
    status: UserStatus


class TeamUpdateBody(BaseModel):
    name: str | None = None
    description: str | None = None


class TeamMemberBody(BaseModel):
    user_id: str
    role: TeamRole = TeamRole.DEVELOPER


class MemberRoleBody(BaseModel):
    role: TeamRole


def get_pipeline(request: Request) -> Pipeline:
    return request.app.state.pipeline


def get_repositories(request: Request) -> Repositories:
    return request.app.state.repositories


async def get_deps(
    repositories: Repositories = Depends(get_repositories),
    x_user_id: str | None = Header(default=None),
) -> Deps:
    """Resolve the acting user from the ``X-User-Id`` header."""
    if not x_user_id:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing X-User-Id header")
    try:
        actor = await repositories.users.get(x_user_id)
    except NotFoundError:
        logger.warning("api_auth_unknown_user", extra={"user_id": x_user_id})
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unknown user") from None
    if not actor.is_active:
        logger.warning("api_auth_inactive_user", extra={"user_id": x_user_id, "status": actor.status.value})
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User is not active")
    return Deps.for_actor(actor, repositories)


async def _send(pipeline: Pipeline, command: BaseModel, deps: Deps) -> Any:  # noqa: ANN401
    return await pipeline.send(command, deps)


# Users


@router.post("/users", status_code=status.HTTP_201_CREATED, tags=["users"])
async def register_user(
    body: user_commands.RegisterUser, deps: Deps = Depends(get_deps), pipeline: Pipeline = Depends(get_pipeline)
) -> User:
    return await _send(pipeline, body, deps)


@router.get("/users/{user_id}", tags=["users"])
async def get_user(user_id: str, deps: Deps = Depends(get_deps), pipeline: Pipeline = Depends(get_pipeline)) -> User:
    return await _send(pipeline, user_commands.GetUser(user_id=user_id), deps)


@router.put("/users/{user_id}/role", tags=["users"])
async def change_user_role(
    user_id: str,
    body: UserRoleBody,
    deps: Deps = Depends(get_deps),
    pipeline: Pipeline = Depends(get_pipeline),
) -> User:
    return await _send(pipeline, user_commands.ChangeUserRole(user_id=user_id, role=body.role), deps)


@router.put("/users/{user_id}/status", tags=["users"])
async def change_user_status(
    user_id: str,
    body: UserStatusBody,
    deps: Deps = Depends(get_deps),
    pipeline: Pipeline = Depends(get_pipeline),
) -> User:
    return await _send(pipeline, user_commands.ChangeUserStatus(user_id=user_id, status=body.status), deps)


# Teams


@router.post("/teams", status_code=status.HTTP_201_CREATED, tags=["teams"])
async def create_team(
    body: team_commands.CreateTeam, deps: Deps = Depends(get_deps), pipeline: Pipeline = Depends(get_pipeline)
) -> Team:
    return await _send(pipeline, body, deps)


@router.get("/teams", tags=["teams"])
async def list_teams(
    member_id: str | None = None, deps: Deps = Depends(get_deps), pipeline: Pipeline = Depends(get_pipeline)
) -> list[Team]:
    return await _send(pipeline, team_commands.ListTeams(member_id=member_id), deps)


@router.get("/teams/{team_id}", tags=["teams"])
async def get_team(team_id: str, deps: Deps = Depends(get_deps), pipeline: Pipeline = Depends(get_pipeline)) -> Team:
    return await _send(pipeline, team_commands.GetTeam(team_id=team_id), deps)


@router.patch("/teams/{team_id}", tags=["teams"])
async def update_team(
    team_id: str,
    body: TeamUpdateBody,
    deps: Deps = Depends(get_deps),
    pipeline: Pipeline = Depends(get_pipeline),
) -> Team:
    command = team_commands.UpdateTeam(team_id=team_id, **body.model_dump(exclude_unset=True))
    return await _send(pipeline, command, deps)


@router.delete("/teams/{team_id}", status_code=status.HTTP_204_NO_CONTENT, tags=["teams"])
async def delete_team(
    team_id: str, deps: Deps = Depends(get_deps), pipeline: Pipeline = Depends(get_pipeline)
) -> Response:
    await _send(pipeline, team_commands.DeleteTeam(team_id=team_id), deps)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/teams/{team_id}/members", status_code=status.HTTP_201_CREATED, tags=["teams"])
async def add_team_member(
    team_id: str,
    body: TeamMemberBody,
    deps: Deps = Depends(get_deps),
    pipeline: Pipeline = Depends(get_pipeline),
) -> Team:
    command = team_commands.AddTeamMember(team_id=team_id, user_id=body.user_id, role=body.role)
    return await _send(pipeline, command, deps)


@router.delete("/teams/{team_id}/members/{user_id}", tags=["teams"])
async def remove_team_member(
    team_id: str, user_id: str, deps: Deps = Depends(get_deps), pipeline: Pipeline = Depends(get_pipeline)
) -> Team:
    return await _send(pipeline, team_commands.RemoveTeamMember(team_id=team_id, user_id=user_id), deps)


@router.put("/teams/{team_id}/members/{user_id}/role", tags=["teams"])
async def update_member_role(
    team_id: str,
    user_id: str,
    body: MemberRoleBody,
    deps: Deps = Depends(get_deps),
    pipeline: Pipeline = Depends(get_pipeline),
) -> Team:
    command = team_commands.UpdateMemberRole(team_id=team_id, user_id=user_id, role=body.role)
    return await _send(pipeline, command, deps)


# Projects


@router.post("/projects", status_code=status.HTTP_201_CREATED, tags=["projects"])
async def create_project(
    body: project_commands.CreateProject,
    deps: Deps = Depends(get_deps),
    pipeline: Pipeline = Depends(get_pipeline),
) -> Project:
    return await _send(pipeline, body, deps)


@router.get("/projects", tags=["projects"])
async def list_projects(
    team_id: str | None = None,
    project_status: ProjectStatus | None = None,
    deps: Deps = Depends(get_deps),
    pipeline: Pipeline = Depends(get_pipeline),
) -> list[Project]:
    return await _send(pipeline, project_commands.ListProjects(team_id=team_id, status=project_status), deps)


@router.get("/projects/{project_id}", tags=["projects"])
async def get_project(
    project_id: str, deps: Deps = Depends(get_deps), pipeline: Pipeline = Depends(get_pipeline)
) -> Project:
    return await _send(pipeline, project_commands.GetProject(project_id=project_id), deps)


@router.post("/projects/{project_id}/status", tags=["projects"])
async def change_project_status(
    project_id: str,
    body: ProjectStatusBody,
    deps: Deps = Depends(get_deps),
    pipeline: Pipeline = Depends(get_pipeline),
) -> Project:
    command = project_commands.ChangeProjectStatus(project_id=project_id, status=body.status)
    return await _send(pipeline, command, deps)


@router.get("/projects/{project_id}/tasks", tags=["projects"])
async def list_project_tasks(
    project_id: str,
    task_status: TaskStatus | None = None,
    deps: Deps = Depends(get_deps),
    pipeline: Pipeline = Depends(get_pipeline),
) -> list[Task]:
    return await _send(pipeline, task_commands.ListProjectTasks(project_id=project_id, status=task_status), deps)


# Tasks


@router.post("/tasks", status_code=status.HTTP_201_CREATED, tags=["tasks"])
async def create_task(
    body: task_commands.CreateTask, deps: Deps = Depends(get_deps), pipeline: Pipeline = Depends(get_pipeline)
) -> Task:
    return await _send(pipeline, body, deps)


@router.get("/tasks/{task_id}", tags=["tasks"])
async def get_task(task_id: str, deps: Deps = Depends(get_deps), pipeline: Pipeline = Depends(get_pipeline)) -> Task:
    return await _send(pipeline, task_commands.GetTask(task_id=task_id), deps)


@router.patch("/tasks/{task_id}", tags=["tasks"])
async def update_task(
    task_id: str,
    body: TaskUpdateBody,
    deps: Deps = Depends(get_deps),
    pipeline: Pipeline = Depends(get_pipeline),
) -> Task:
    command = task_commands.UpdateTask(task_id=task_id, **body.model_dump(exclude_unset=True))
    return await _send(pipeline, command, deps)


@router.delete("/tasks/{task_id}", status_code=status.HTTP_204_NO_CONTENT, tags=["tasks"])
async def delete_task(
    task_id: str, deps: Deps = Depends(get_deps), pipeline: Pipeline = Depends(get_pipeline)
) -> Response:
    await _send(pipeline, task_commands.DeleteTask(task_id=task_id), deps)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/tasks/{task_id}/subtasks", status_code=status.HTTP_201_CREATED, tags=["tasks"])
async def create_subtask(
    task_id: str,
    body: SubtaskBody,
    deps: Deps = Depends(get_deps),
    pipeline: Pipeline = Depends(get_pipeline),
) -> Task:
    parent = await _send(pipeline, task_commands.GetTask(task_id=task_id), deps)
    command = task_commands.CreateTask(project_id=parent.project_id, parent_task_id=task_id, **body.model_dump())
    return await _send(pipeline, command, deps)


@router.get("/tasks/{task_id}/subtasks", tags=["tasks"])
async def list_subtasks(
    task_id: str, deps: Deps = Depends(get_deps), pipeline: Pipeline = Depends(get_pipeline)
) -> list[Task]:
    return await _send(pipeline, task_commands.ListSubtasks(task_id=task_id), deps)


@router.post("/tasks/{task_id}/start", tags=["tasks"])
async def start_task(
    task_id: str, deps: Deps = Depends(get_deps), pipeline: Pipeline = Depends(get_pipeline)
) -> Task:
    return await _send(pipeline, task_commands.StartTask(task_id=task_id), deps)


@router.post("/tasks/{task_id}/submit", tags=["tasks"])
async def submit_task_for_review(
    task_id: str, deps: Deps = Depends(get_deps), pipeline: Pipeline = Depends(get_pipeline)
) -> Task:
    return await _send(pipeline, task_commands.SubmitTaskForReview(task_id=task_id), deps)


@router.post("/tasks/{task_id}/complete", tags=["tasks"])
async def complete_task(
    task_id: str,
    body: CompleteBody,
    deps: Deps = Depends(get_deps),
    pipeline: Pipeline = Depends(get_pipeline),
) -> Task:
    return await _send(pipeline, task_commands.CompleteTask(task_id=task_id, actual_hours=body.actual_hours), deps)


@router.post("/tasks/{task_id}/cancel", tags=["tasks"])
async def cancel_task(
    task_id: str, deps: Deps = Depends(get_deps), pipeline: Pipeline = Depends(get_pipeline)
) -> Task:
    return await _send(pipeline, task_commands.CancelTask(task_id=task_id), deps)


@router.post("/tasks/{task_id}/pause", tags=["tasks"])
async def pause_task(
    task_id: str, deps: Deps = Depends(get_deps), pipeline: Pipeline = Depends(get_pipeline)
) -> Task:
    return await _send(pipeline, task_commands.PauseTask(task_id=task_id), deps)


@router.post("/tasks/{task_id}/assign", tags=["tasks"])
async def assign_task(
    task_id: str,
    body: AssignBody,
    deps: Deps = Depends(get_deps),
    pipeline: Pipeline = Depends(get_pipeline),
) -> Task:
    return await _send(pipeline, task_commands.AssignTask(task_id=task_id, assignee_id=body.assignee_id), deps)


@router.post("/tasks/{task_id}/unassign", tags=["tasks"])
async def unassign_task(
    task_id: str, deps: Deps = Depends(get_deps), pipeline: Pipeline = Depends(get_pipeline)
) -> Task:
    return await _send(pipeline, task_commands.UnassignTask(task_id=task_id), deps)


@router.get("/tasks/{task_id}/activity", tags=["tasks"])
async def list_task_activity(
    task_id: str, deps: Deps = Depends(get_deps), pipeline: Pipeline = Depends(get_pipeline)
) -> list[ActivityEntry]:
    return await _send(pipeline, ListActivity(aggregate_id=task_id), deps)
