"""Domain aggregates, events and transition rules."""

from src.domain.aggregate import AggregateRoot, Entity
from src.domain.events import ALL_EVENT_TYPES, DomainEvent
from src.domain.project import Project
from src.domain.state_machine import ProjectStatus, TaskPriority, TaskStatus
from src.domain.task import Task
from src.domain.team import Team, TeamMember
from src.domain.user import TeamRole, User, UserRole, UserStatus


__all__ = [
    "ALL_EVENT_TYPES",
    "AggregateRoot",
    "DomainEvent",
    "Entity",
    "Project",
    "ProjectStatus",
    "Task",
    "TaskPriority",
    "TaskStatus",
    "Team",
    "TeamMember",
    "TeamRole",
    "User",
    "UserRole",
    "UserStatus",
]
