"""Team request handlers and validation rules."""

import logging

from src.core.config import Constants
from src.core.db_client import sanitize_param
from src.core.deps import Deps
from src.core.errors import FieldError, NotFoundError
from src.core.logging import span
from src.core.validation import require_text
from src.domain.team import Team
from src.modules.teams.commands import (
    AddTeamMember,
    CreateTeam,
    DeleteTeam,
    GetTeam,
    ListTeams,
    RemoveTeamMember,
    UpdateMemberRole,
    UpdateTeam,
)


logger = logging.getLogger(__name__)


def create_team_fields(request: CreateTeam, deps: Deps) -> list[FieldError]:
    return [
        *require_text("name", request.name, max_length=Constants.MAX_TEAM_NAME_LENGTH),
        *require_text(
            "description", request.description, max_length=Constants.MAX_TEAM_DESCRIPTION_LENGTH, required=False
        ),
    ]


def update_team_fields(request: UpdateTeam, deps: Deps) -> list[FieldError]:
    return [
        *require_text(
            "name", request.name, max_length=Constants.MAX_TEAM_NAME_LENGTH, required=request.name is not None
        ),
        *require_text(
            "description", request.description, max_length=Constants.MAX_TEAM_DESCRIPTION_LENGTH, required=False
        ),
    ]


async def member_is_known_user(request: AddTeamMember, deps: Deps) -> list[FieldError]:
    try:
        await deps.users.get(request.user_id)
    except NotFoundError:
        return [FieldError(field="user_id", message="User not found")]
    return []


async def create_team(request: CreateTeam, deps: Deps) -> Team:
    with span("team_service.create_team"):
        team = Team.create(name=request.name, description=request.description, created_by=deps.actor)
        await deps.teams.add(team)
        logger.info("Created team", extra={"team_id": team.id})
        return team


async def update_team(request: UpdateTeam, deps: Deps) -> Team:
    with span("team_service.update_team"):
        team = await deps.teams.get(request.team_id)
        team.update_info(updated_by=deps.actor, name=request.name, description=request.description)
        return await deps.teams.update(team)


async def delete_team(request: DeleteTeam, deps: Deps) -> None:
    with span("team_service.delete_team"):
        team = await deps.teams.get(request.team_id)
        projects = await deps.projects.query(f'team_id = "{sanitize_param(team.id)}"')
        team.mark_deleted(deleted_by=deps.actor, project_ids=[p.id for p in projects])
        await deps.teams.delete(team)
        logger.info("Deleted team", extra={"team_id": team.id})


async def add_team_member(request: AddTeamMember, deps: Deps) -> Team:
    with span("team_service.add_team_member"):
        team = await deps.teams.get(request.team_id)
        user = await deps.users.get(request.user_id)
        team.add_member(user, request.role, added_by=deps.actor)
        return await deps.teams.update(team)


async def remove_team_member(request: RemoveTeamMember, deps: Deps) -> Team:
    with span("team_service.remove_team_member"):
        team = await deps.teams.get(request.team_id)
        team.remove_member(request.user_id, removed_by=deps.actor)
        return await deps.teams.update(team)


async def update_member_role(request: UpdateMemberRole, deps: Deps) -> Team:
    with span("team_service.update_member_role"):
        team = await deps.teams.get(request.team_id)
        team.change_member_role(request.user_id, request.role, changed_by=deps.actor)
        return await deps.teams.update(team)


async def get_team(request: GetTeam, deps: Deps) -> Team:
    return await deps.teams.get(request.team_id)


async def list_teams(request: ListTeams, deps: Deps) -> list[Team]:
    teams = await deps.teams.query(sort="name ASC", limit=Constants.DEFAULT_PER_PAGE_LIMIT)
    if request.member_id is None:
        return teams
    return [team for team in teams if team.member(request.member_id) is not None]
