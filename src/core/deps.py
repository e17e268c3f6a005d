"""Dependencies handed to validation rules and request handlers."""

from dataclasses import dataclass, field
from datetime import datetime

from src.core.cache_client import CacheBackend, get_cache_backend
from src.core.cached_repository import CachedRepository
from src.core.repository import Repository, SqliteRepository
from src.domain.aggregate import utcnow
from src.domain.project import Project
from src.domain.task import Task
from src.domain.team import Team
from src.domain.user import User


@dataclass
class Repositories:
    """One repository per entity type."""

    tasks: Repository[Task]
    projects: Repository[Project]
    users: Repository[User]
    teams: Repository[Team]


def build_repositories(cache: CacheBackend | None = None, *, ttl_seconds: int | None = None) -> Repositories:
    """SQLite repositories for every entity, each behind the snapshot cache."""
    backend = cache if cache is not None else get_cache_backend()
    return Repositories(
        tasks=CachedRepository(
            SqliteRepository("tasks", Task, "task"), backend, entity_name="task", model=Task, ttl_seconds=ttl_seconds
        ),
        projects=CachedRepository(
            SqliteRepository("projects", Project, "project"),
            backend,
            entity_name="project",
            model=Project,
            ttl_seconds=ttl_seconds,
        ),
        users=CachedRepository(
            SqliteRepository("users", User, "user"), backend, entity_name="user", model=User, ttl_seconds=ttl_seconds
        ),
        teams=CachedRepository(
            SqliteRepository("teams", Team, "team"), backend, entity_name="team", model=Team, ttl_seconds=ttl_seconds
        ),
    )


@dataclass
class Deps:
    """Per-request context: who is acting and where entities live."""

    actor: User
    tasks: Repository[Task]
    projects: Repository[Project]
    users: Repository[User]
    teams: Repository[Team]
    current_time: datetime = field(default_factory=utcnow)

    @classmethod
    def for_actor(cls, actor: User, repositories: Repositories) -> "Deps":
        return cls(
            actor=actor,
            tasks=repositories.tasks,
            projects=repositories.projects,
            users=repositories.users,
            teams=repositories.teams,
        )
