"""Commands and queries handled by the teams module."""

from pydantic import BaseModel

from src.domain.user import TeamRole


class CreateTeam(BaseModel):
    name: str
    description: str = ""


class UpdateTeam(BaseModel):
    team_id: str
    name: str | None = None
    description: str | None = None


class DeleteTeam(BaseModel):
    team_id: str


class AddTeamMember(BaseModel):
    team_id: str
    user_id: str
    role: TeamRole = TeamRole.DEVELOPER


class RemoveTeamMember(BaseModel):
    team_id: str
    user_id: str


class UpdateMemberRole(BaseModel):
    team_id: str
    user_id: str
    role: TeamRole


class GetTeam(BaseModel):
    team_id: str


class ListTeams(BaseModel):
    member_id: str | None = None
