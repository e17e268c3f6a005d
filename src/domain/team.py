"""Team aggregate: who works on a team's projects and in which role."""

import json
from collections.abc import Sequence
from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field, field_validator

from src.core.config import Constants
from src.core.errors import DomainRuleViolation
from src.domain.aggregate import AggregateRoot, utcnow
from src.domain.events import (
    MemberJoinedTeam,
    MemberLeftTeam,
    MemberRoleChanged,
    TeamCreated,
    TeamDeleted,
    TeamUpdated,
)
from src.domain.user import TeamRole, User


LEADERSHIP_ROLES = frozenset({TeamRole.PROJECT_MANAGER, TeamRole.TEAM_LEAD})


class TeamMember(BaseModel):
    user_id: str
    role: TeamRole = TeamRole.DEVELOPER
    joined_at: datetime = Field(default_factory=utcnow)


class Team(AggregateRoot):
    """A group of users. Projects belong to exactly one team."""

    name: str = Field(..., min_length=1, max_length=Constants.MAX_TEAM_NAME_LENGTH, description="Team name")
    description: str = Field(
        default="", max_length=Constants.MAX_TEAM_DESCRIPTION_LENGTH, description="Team description"
    )
    members: list[TeamMember] = Field(default_factory=list, description="Current members in join order")

    @field_validator("members", mode="before")
    @classmethod
    def decode_members(cls, v: Any) -> Any:  # noqa: ANN401
        """Rows store the member list as JSON text."""
        if isinstance(v, str):
            return json.loads(v)
        return v

    @classmethod
    def create(cls, *, name: str, created_by: User, description: str = "") -> "Team":
        """Create an empty team and raise TeamCreated."""
        if not created_by.has_permission("manage:teams"):
            raise DomainRuleViolation(f"User {created_by.id} is not allowed to create teams")

        team = cls(name=name.strip(), description=description.strip())
        team._raise_event(TeamCreated(actor_id=created_by.id, aggregate_id=team.id, name=team.name))
        return team

    def member(self, user_id: str) -> TeamMember | None:
        return next((m for m in self.members if m.user_id == user_id), None)

    def role_of(self, user_id: str) -> TeamRole | None:
        member = self.member(user_id)
        return member.role if member else None

    def has_access(self, user: User) -> bool:
        """Team managers see every team; everyone else needs a membership."""
        return user.has_permission("manage:teams") or self.member(user.id) is not None

    def _can_manage(self, user: User) -> bool:
        return user.has_permission("manage:teams") or self.role_of(user.id) in LEADERSHIP_ROLES

    def _require_member(self, user_id: str) -> TeamMember:
        member = self.member(user_id)
        if member is None:
            raise DomainRuleViolation(f"User {user_id} is not a member of team {self.id}")
        return member

    def update_info(self, *, updated_by: User, name: str | None = None, description: str | None = None) -> None:
        if not self._can_manage(updated_by):
            raise DomainRuleViolation(f"User {updated_by.id} is not allowed to update team {self.id}")

        if name is not None:
            self.name = name.strip()
        if description is not None:
            self.description = description.strip()
        self._raise_event(
            TeamUpdated(actor_id=updated_by.id, aggregate_id=self.id, name=self.name, description=self.description)
        )

    def add_member(self, user: User, role: TeamRole, *, added_by: User) -> None:
        if not self._can_manage(added_by):
            raise DomainRuleViolation(f"User {added_by.id} is not allowed to add members to team {self.id}")
        if not user.is_active:
            raise DomainRuleViolation(f"User {user.id} is not active")
        if self.member(user.id) is not None:
            raise DomainRuleViolation(f"User {user.id} is already a member of team {self.id}")
        if len(self.members) >= Constants.MAX_TEAM_MEMBERS:
            raise DomainRuleViolation(f"Team cannot have more than {Constants.MAX_TEAM_MEMBERS} members")

        self.members = [*self.members, TeamMember(user_id=user.id, role=role)]
        self._raise_event(MemberJoinedTeam(actor_id=added_by.id, aggregate_id=self.id, user_id=user.id, role=role))

    def remove_member(self, user_id: str, *, removed_by: User) -> None:
        """Managers remove anyone, members remove themselves, team leads remove developers and viewers."""
        member = self._require_member(user_id)
        allowed = (
            removed_by.has_permission("manage:teams")
            or removed_by.id == user_id
            or self.role_of(removed_by.id) == TeamRole.PROJECT_MANAGER
            or (self.role_of(removed_by.id) == TeamRole.TEAM_LEAD and member.role not in LEADERSHIP_ROLES)
        )
        if not allowed:
            raise DomainRuleViolation(f"User {removed_by.id} is not allowed to remove {user_id} from team {self.id}")

        self.members = [m for m in self.members if m.user_id != user_id]
        self._raise_event(
            MemberLeftTeam(actor_id=removed_by.id, aggregate_id=self.id, user_id=user_id, role=member.role)
        )

    def change_member_role(self, user_id: str, role: TeamRole, *, changed_by: User) -> None:
        member = self._require_member(user_id)
        allowed = (
            changed_by.has_permission("manage:teams")
            or self.role_of(changed_by.id) == TeamRole.PROJECT_MANAGER
            or (
                self.role_of(changed_by.id) == TeamRole.TEAM_LEAD
                and member.role not in LEADERSHIP_ROLES
                and role not in LEADERSHIP_ROLES
            )
        )
        if not allowed:
            raise DomainRuleViolation(f"User {changed_by.id} is not allowed to change roles in team {self.id}")
        if member.role == role:
            raise DomainRuleViolation(f"User {user_id} already has role {role}")

        previous = member.role
        self.members = [m.model_copy(update={"role": role}) if m.user_id == user_id else m for m in self.members]
        self._raise_event(
            MemberRoleChanged(
                actor_id=changed_by.id, aggregate_id=self.id, user_id=user_id, previous_role=previous, new_role=role
            )
        )

    def mark_deleted(self, *, deleted_by: User, project_ids: Sequence[str] = ()) -> None:
        """Record deletion. A team that still owns projects cannot go."""
        if not deleted_by.has_permission("manage:teams"):
            raise DomainRuleViolation(f"User {deleted_by.id} is not allowed to delete teams")
        if project_ids:
            raise DomainRuleViolation(f"Team {self.id} still owns {len(project_ids)} project(s)")

        self._raise_event(TeamDeleted(actor_id=deleted_by.id, aggregate_id=self.id, name=self.name))
