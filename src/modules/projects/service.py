"""Project request handlers."""

import logging

from src.core.config import Constants
from src.core.db_client import sanitize_param
from src.core.deps import Deps
from src.core.errors import FieldError, NotFoundError
from src.core.logging import span
from src.core.validation import require_future, require_text
from src.domain.project import Project
from src.modules.projects.commands import ChangeProjectStatus, CreateProject, GetProject, ListProjects


logger = logging.getLogger(__name__)


def create_project_fields(request: CreateProject, deps: Deps) -> list[FieldError]:
    return [
        *require_text("name", request.name, max_length=Constants.MAX_TITLE_LENGTH),
        *require_text("team_id", request.team_id, max_length=Constants.MAX_TITLE_LENGTH),
        *require_text("description", request.description, max_length=Constants.MAX_DESCRIPTION_LENGTH, required=False),
        *require_future("planned_end_date", request.planned_end_date, now=deps.current_time),
    ]


async def team_exists(request: CreateProject, deps: Deps) -> list[FieldError]:
    if not request.team_id.strip():
        return []
    try:
        await deps.teams.get(request.team_id)
    except NotFoundError:
        return [FieldError(field="team_id", message="Team not found")]
    return []


async def create_project(request: CreateProject, deps: Deps) -> Project:
    with span("project_service.create_project"):
        project = Project.create(
            name=request.name,
            team_id=request.team_id,
            created_by=deps.actor,
            description=request.description,
            planned_end_date=request.planned_end_date,
        )
        await deps.projects.add(project)
        logger.info("Created project", extra={"project_id": project.id, "team_id": project.team_id})
        return project


async def change_project_status(request: ChangeProjectStatus, deps: Deps) -> Project:
    with span("project_service.change_project_status"):
        project = await deps.projects.get(request.project_id)
        project.change_status(request.status, changed_by=deps.actor)
        return await deps.projects.update(project)


async def get_project(request: GetProject, deps: Deps) -> Project:
    return await deps.projects.get(request.project_id)


async def list_projects(request: ListProjects, deps: Deps) -> list[Project]:
    conditions = []
    if request.team_id is not None:
        conditions.append(f'team_id = "{sanitize_param(request.team_id)}"')
    if request.status is not None:
        conditions.append(f'status = "{request.status.value}"')
    return await deps.projects.query(" && ".join(conditions), limit=Constants.DEFAULT_PER_PAGE_LIMIT)
