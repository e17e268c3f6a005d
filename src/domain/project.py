"""Project aggregate."""

from datetime import datetime

from pydantic import Field

from src.core.errors import DomainRuleViolation
from src.domain.aggregate import AggregateRoot
from src.domain.events import ProjectCreated, ProjectStatusChanged
from src.domain.state_machine import ProjectStatus, ensure_transition
from src.domain.user import User


ACCEPTS_TASKS = frozenset({ProjectStatus.PLANNING, ProjectStatus.ACTIVE})


class Project(AggregateRoot):
    """A body of work owned by a team."""

    name: str = Field(..., min_length=1, max_length=200, description="Project name")
    description: str = Field(default="", max_length=2000, description="Project description")
    team_id: str = Field(..., description="Owning team ID")
    status: ProjectStatus = Field(default=ProjectStatus.PLANNING, description="Current lifecycle status")
    planned_end_date: datetime | None = Field(default=None, description="Planned end date (UTC)")
    created_by: str = Field(..., description="User who created the project")

    @classmethod
    def create(
        cls,
        *,
        name: str,
        team_id: str,
        created_by: User,
        description: str = "",
        planned_end_date: datetime | None = None,
    ) -> "Project":
        """Create a project in Planning and raise ProjectCreated."""
        if not created_by.has_permission("create:projects"):
            raise DomainRuleViolation(f"User {created_by.id} is not allowed to create projects")

        project = cls(
            name=name.strip(),
            description=description,
            team_id=team_id,
            planned_end_date=planned_end_date,
            created_by=created_by.id,
        )
        project._raise_event(
            ProjectCreated(actor_id=created_by.id, aggregate_id=project.id, name=project.name, team_id=team_id)
        )
        return project

    @property
    def accepts_tasks(self) -> bool:
        return self.status in ACCEPTS_TASKS

    def change_status(self, target: ProjectStatus, *, changed_by: User) -> None:
        """Move the project along its transition table."""
        if not changed_by.has_permission("update:projects"):
            raise DomainRuleViolation(f"User {changed_by.id} is not allowed to update projects")
        ensure_transition(self.status, target, entity="project")

        previous = self.status
        self.status = target
        self._raise_event(
            ProjectStatusChanged(
                actor_id=changed_by.id,
                aggregate_id=self.id,
                previous_status=previous,
                new_status=target,
            )
        )
