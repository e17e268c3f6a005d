"""Tasks module: task lifecycle, subtasks and assignment."""

from typing import TYPE_CHECKING


if TYPE_CHECKING:
    from src.core.event_bus import SubscriberRegistry
    from src.core.pipeline import RequestRegistration


class TasksModule:
    """Tasks module for project work items.

    Provides:
    - Task and subtask creation (single-level nesting)
    - Status transitions with cascading cancellation
    - Role-gated assignment
    - Assignment notifications through the configured webhook
    """

    @property
    def name(self) -> str:
        """Module name (unique identifier)."""
        return "tasks"

    @property
    def description(self) -> str:
        """Module description (human-readable)."""
        return "Task lifecycle, subtasks and assignment"

    def get_table_schemas(self) -> dict[str, str]:
        """Return table schemas for this module."""
        return {
            "tasks": """CREATE TABLE IF NOT EXISTS tasks (
        id TEXT PRIMARY KEY,
        version INTEGER NOT NULL DEFAULT 1,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL,
        title TEXT NOT NULL,
        description TEXT NOT NULL DEFAULT '',
        status TEXT NOT NULL DEFAULT 'ToDo'
            CHECK (status IN ('ToDo', 'InProgress', 'InReview', 'Done', 'Cancelled')),
        priority TEXT NOT NULL DEFAULT 'Medium'
            CHECK (priority IN ('Low', 'Medium', 'High', 'Critical')),
        project_id TEXT NOT NULL REFERENCES projects(id),
        parent_task_id TEXT REFERENCES tasks(id),
        assignee_id TEXT,
        created_by TEXT NOT NULL,
        estimated_hours REAL,
        actual_hours REAL,
        due_date TEXT,
        started_at TEXT,
        completed_at TEXT
    )""",
        }

    def get_indexes(self) -> list[str]:
        """Return indexes for this module's tables."""
        return [
            "CREATE INDEX IF NOT EXISTS idx_tasks_project_id ON tasks (project_id)",
            "CREATE INDEX IF NOT EXISTS idx_tasks_parent_task_id ON tasks (parent_task_id)",
            "CREATE INDEX IF NOT EXISTS idx_tasks_assignee_id ON tasks (assignee_id)",
            "CREATE INDEX IF NOT EXISTS idx_tasks_status ON tasks (status)",
        ]

    def get_request_registrations(self) -> list["RequestRegistration"]:
        """Return the task commands and queries with their validation rules."""
        from src.core.pipeline import RequestRegistration
        from src.modules.tasks import commands, service, validators

        return [
            RequestRegistration(
                commands.CreateTask,
                service.create_task,
                (validators.create_task_fields, validators.project_exists, validators.parent_task_exists),
            ),
            RequestRegistration(commands.UpdateTask, service.update_task, (validators.update_task_fields,)),
            RequestRegistration(commands.StartTask, service.start_task),
            RequestRegistration(commands.SubmitTaskForReview, service.submit_task_for_review),
            RequestRegistration(commands.PauseTask, service.pause_task),
            RequestRegistration(commands.CompleteTask, service.complete_task, (validators.complete_task_fields,)),
            RequestRegistration(commands.CancelTask, service.cancel_task),
            RequestRegistration(
                commands.AssignTask,
                service.assign_task,
                (validators.task_is_assignable, validators.assignee_can_take_tasks),
            ),
            RequestRegistration(commands.UnassignTask, service.unassign_task, (validators.task_is_assignable,)),
            RequestRegistration(commands.DeleteTask, service.delete_task),
            RequestRegistration(commands.GetTask, service.get_task, is_command=False),
            RequestRegistration(commands.ListProjectTasks, service.list_project_tasks, is_command=False),
            RequestRegistration(commands.ListSubtasks, service.list_subtasks, is_command=False),
        ]

    def register_subscribers(self, registry: "SubscriberRegistry") -> None:
        """Send assignment notifications when a webhook is configured."""
        from src.core.config import settings
        from src.domain.events import TaskAssigned
        from src.services import notification_service

        if settings.notification_webhook_url:
            registry.subscribe(TaskAssigned, notification_service.notify_task_assigned)
