"""Commands and queries handled by the projects module."""

from datetime import datetime

from pydantic import BaseModel

from src.domain.state_machine import ProjectStatus


class CreateProject(BaseModel):
    name: str
    team_id: str
    description: str = ""
    planned_end_date: datetime | None = None


class ChangeProjectStatus(BaseModel):
    project_id: str
    status: ProjectStatus


class GetProject(BaseModel):
    project_id: str


class ListProjects(BaseModel):
    team_id: str | None = None
    status: ProjectStatus | None = None
