"""Users module: identities acting on projects and tasks."""

from typing import TYPE_CHECKING


if TYPE_CHECKING:
    from src.core.event_bus import SubscriberRegistry
    from src.core.pipeline import RequestRegistration


class UsersModule:
    """User accounts with roles that gate every task and project operation."""

    @property
    def name(self) -> str:
        """Module name (unique identifier)."""
        return "users"

    @property
    def description(self) -> str:
        """Module description (human-readable)."""
        return "User accounts, roles and status"

    def get_table_schemas(self) -> dict[str, str]:
        """Return table schemas for this module."""
        return {
            "users": """CREATE TABLE IF NOT EXISTS users (
        id TEXT PRIMARY KEY,
        version INTEGER NOT NULL DEFAULT 1,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL,
        name TEXT NOT NULL,
        email TEXT NOT NULL UNIQUE,
        role TEXT NOT NULL CHECK (role IN ('viewer', 'developer', 'project_manager', 'admin')),
        status TEXT NOT NULL DEFAULT 'active' CHECK (status IN ('active', 'inactive', 'suspended'))
    )""",
        }

    def get_indexes(self) -> list[str]:
        """Return indexes for this module's tables."""
        return ["CREATE INDEX IF NOT EXISTS idx_users_role ON users (role)"]

    def get_request_registrations(self) -> list["RequestRegistration"]:
        from src.core.pipeline import RequestRegistration
        from src.modules.users import commands, service

        return [
            RequestRegistration(
                commands.RegisterUser,
                service.register_user,
                (service.register_user_fields, service.email_is_unused),
            ),
            RequestRegistration(commands.ChangeUserRole, service.change_user_role),
            RequestRegistration(commands.ChangeUserStatus, service.change_user_status),
            RequestRegistration(commands.GetUser, service.get_user, is_command=False),
        ]

    def register_subscribers(self, registry: "SubscriberRegistry") -> None:
        """Users have no subscribers."""
