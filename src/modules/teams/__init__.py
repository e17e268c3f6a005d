"""Teams module: teams, their members and member roles."""

from typing import TYPE_CHECKING


if TYPE_CHECKING:
    from src.core.event_bus import SubscriberRegistry
    from src.core.pipeline import RequestRegistration


class TeamsModule:
    """Teams that own projects and decide who may be assigned their tasks."""

    @property
    def name(self) -> str:
        """Module name (unique identifier)."""
        return "teams"

    @property
    def description(self) -> str:
        """Module description (human-readable)."""
        return "Teams and team membership"

    def get_table_schemas(self) -> dict[str, str]:
        """Return table schemas for this module."""
        return {
            "teams": """CREATE TABLE IF NOT EXISTS teams (
        id TEXT PRIMARY KEY,
        version INTEGER NOT NULL DEFAULT 1,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL,
        name TEXT NOT NULL,
        description TEXT NOT NULL DEFAULT '',
        members TEXT NOT NULL DEFAULT '[]'
    )""",
        }

    def get_indexes(self) -> list[str]:
        """Return indexes for this module's tables."""
        return ["CREATE INDEX IF NOT EXISTS idx_teams_name ON teams (name)"]

    def get_request_registrations(self) -> list["RequestRegistration"]:
        from src.core.pipeline import RequestRegistration
        from src.modules.teams import commands, service

        return [
            RequestRegistration(commands.CreateTeam, service.create_team, (service.create_team_fields,)),
            RequestRegistration(commands.UpdateTeam, service.update_team, (service.update_team_fields,)),
            RequestRegistration(commands.DeleteTeam, service.delete_team),
            RequestRegistration(commands.AddTeamMember, service.add_team_member, (service.member_is_known_user,)),
            RequestRegistration(commands.RemoveTeamMember, service.remove_team_member),
            RequestRegistration(commands.UpdateMemberRole, service.update_member_role),
            RequestRegistration(commands.GetTeam, service.get_team, is_command=False),
            RequestRegistration(commands.ListTeams, service.list_teams, is_command=False),
        ]

    def register_subscribers(self, registry: "SubscriberRegistry") -> None:
        """Teams have no subscribers of their own."""
