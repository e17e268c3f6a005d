"""User identity, roles and permissions."""

import re
from enum import StrEnum

from pydantic import Field, field_validator

from src.domain.aggregate import Entity


MAX_NAME_LENGTH = 100
EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


class UserRole(StrEnum):
    """Role that decides what a user may do."""

    VIEWER = "viewer"
    DEVELOPER = "developer"
    PROJECT_MANAGER = "project_manager"
    ADMIN = "admin"


class TeamRole(StrEnum):
    """Role a user holds inside one team, independent of their system role."""

    DEVELOPER = "developer"
    PROJECT_MANAGER = "project_manager"
    TEAM_LEAD = "team_lead"
    VIEWER = "viewer"


class UserStatus(StrEnum):
    """User account status."""

    ACTIVE = "active"
    INACTIVE = "inactive"
    SUSPENDED = "suspended"


_VIEWER = frozenset({"read:projects", "read:tasks"})
_DEVELOPER = _VIEWER | {"create:tasks", "update:tasks"}
_PROJECT_MANAGER = _DEVELOPER | {"create:projects", "update:projects", "manage:teams", "assign:tasks"}

ROLE_PERMISSIONS: dict[UserRole, frozenset[str]] = {
    UserRole.VIEWER: _VIEWER,
    UserRole.DEVELOPER: frozenset(_DEVELOPER),
    UserRole.PROJECT_MANAGER: frozenset(_PROJECT_MANAGER),
    UserRole.ADMIN: frozenset(
        {"read:*", "create:*", "update:*", "delete:*", "assign:*", "manage:users", "manage:teams", "manage:system"}
    ),
}

ASSIGNABLE_ROLES = frozenset({UserRole.DEVELOPER, UserRole.PROJECT_MANAGER, UserRole.ADMIN})


class User(Entity):
    """Acting identity. Users are not event-sourced, so this is a plain entity."""

    name: str = Field(..., description="Display name")
    email: str = Field(..., description="Unique email address")
    role: UserRole = Field(default=UserRole.DEVELOPER, description="Role deciding permissions")
    status: UserStatus = Field(default=UserStatus.ACTIVE, description="Account status")

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        """Strip and bound the display name."""
        v = v.strip()
        if not v:
            raise ValueError("Name cannot be empty")
        if len(v) > MAX_NAME_LENGTH:
            raise ValueError(f"Name too long (max {MAX_NAME_LENGTH} characters)")
        return v

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        """Normalise and sanity-check the email address."""
        v = v.strip().lower()
        if not EMAIL_PATTERN.match(v):
            raise ValueError("Email address is not valid")
        return v

    @property
    def is_active(self) -> bool:
        return self.status == UserStatus.ACTIVE

    def has_permission(self, permission: str) -> bool:
        """Check ``action:resource`` against the role, honouring ``action:*`` wildcards."""
        granted = ROLE_PERMISSIONS[self.role]
        if permission in granted:
            return True
        action, _, _ = permission.partition(":")
        return f"{action}:*" in granted

    def can_be_assigned_tasks(self) -> bool:
        return self.is_active and self.role in ASSIGNABLE_ROLES
