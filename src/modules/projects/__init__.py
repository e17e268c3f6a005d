"""Projects module: projects and their lifecycle."""

from typing import TYPE_CHECKING


if TYPE_CHECKING:
    from src.core.event_bus import SubscriberRegistry
    from src.core.pipeline import RequestRegistration


class ProjectsModule:
    """Projects that group tasks and gate whether new tasks may be added."""

    @property
    def name(self) -> str:
        """Module name (unique identifier)."""
        return "projects"

    @property
    def description(self) -> str:
        """Module description (human-readable)."""
        return "Projects owned by teams"

    def get_table_schemas(self) -> dict[str, str]:
        """Return table schemas for this module."""
        return {
            "projects": """CREATE TABLE IF NOT EXISTS projects (
        id TEXT PRIMARY KEY,
        version INTEGER NOT NULL DEFAULT 1,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL,
        name TEXT NOT NULL,
        description TEXT NOT NULL DEFAULT '',
        team_id TEXT NOT NULL,
        status TEXT NOT NULL DEFAULT 'Planning'
            CHECK (status IN ('Planning', 'Active', 'OnHold', 'Completed', 'Cancelled')),
        planned_end_date TEXT,
        created_by TEXT NOT NULL
    )""",
        }

    def get_indexes(self) -> list[str]:
        """Return indexes for this module's tables."""
        return [
            "CREATE INDEX IF NOT EXISTS idx_projects_team_id ON projects (team_id)",
            "CREATE INDEX IF NOT EXISTS idx_projects_status ON projects (status)",
        ]

    def get_request_registrations(self) -> list["RequestRegistration"]:
        from src.core.pipeline import RequestRegistration
        from src.modules.projects import commands, service

        return [
            RequestRegistration(
                commands.CreateProject, service.create_project, (service.create_project_fields, service.team_exists)
            ),
            RequestRegistration(commands.ChangeProjectStatus, service.change_project_status),
            RequestRegistration(commands.GetProject, service.get_project, is_command=False),
            RequestRegistration(commands.ListProjects, service.list_projects, is_command=False),
        ]

    def register_subscribers(self, registry: "SubscriberRegistry") -> None:
        """Projects have no subscribers of their own."""
