"""Pytest configuration and fixtures for unit tests."""

from collections.abc import Callable

import pytest

from src.core.deps import Deps, Repositories
from src.core.event_bus import SubscriberRegistry
from src.core.pipeline import Pipeline, build_pipeline
from src.domain.events import ALL_EVENT_TYPES
from src.domain.project import Project
from src.domain.state_machine import ProjectStatus
from src.domain.task import Task
from src.domain.team import Team
from src.domain.user import TeamRole, User
from src.modules.projects import ProjectsModule
from src.modules.tasks import TasksModule
from src.modules.teams import TeamsModule
from src.modules.users import UsersModule
from tests.unit.mocks import FakeCache, InMemoryRepository, RecordingSubscriber


@pytest.fixture
def fake_cache() -> FakeCache:
    return FakeCache()


@pytest.fixture
def repositories(admin: User, manager: User, developer: User, other_developer: User, viewer: User) -> Repositories:
    """In-memory repositories with the standard users already stored."""
    users = InMemoryRepository(User, "user")
    users.seed(admin, manager, developer, other_developer, viewer)
    return Repositories(
        tasks=InMemoryRepository(Task, "task"),
        projects=InMemoryRepository(Project, "project"),
        users=users,
        teams=InMemoryRepository(Team, "team"),
    )


@pytest.fixture
def deps_for(repositories: Repositories) -> Callable[[User], Deps]:
    """Build request dependencies for an acting user."""

    def _deps_for(actor: User) -> Deps:
        return Deps.for_actor(actor, repositories)

    return _deps_for


@pytest.fixture
def team(repositories: Repositories, manager: User, developer: User, other_developer: User) -> Team:
    """A stored team with both developers as members."""
    team = Team.create(name="Web", created_by=manager)
    team.add_member(developer, TeamRole.DEVELOPER, added_by=manager)
    team.add_member(other_developer, TeamRole.DEVELOPER, added_by=manager)
    team.drain_events()
    repositories.teams.seed(team)
    return team


@pytest.fixture
def active_project(repositories: Repositories, manager: User, team: Team) -> Project:
    """An Active project of ``team`` stored in the project repository."""
    project = Project.create(name="Website relaunch", team_id=team.id, created_by=manager)
    project.change_status(ProjectStatus.ACTIVE, changed_by=manager)
    project.drain_events()
    repositories.projects.seed(project)
    return project


@pytest.fixture
def recorder() -> RecordingSubscriber:
    return RecordingSubscriber()


@pytest.fixture
def subscribers(recorder: RecordingSubscriber) -> SubscriberRegistry:
    """Registry with ``recorder`` subscribed to every event type."""
    registry = SubscriberRegistry()
    for event_type in ALL_EVENT_TYPES:
        registry.subscribe(event_type, recorder)
    return registry


@pytest.fixture
def pipeline(subscribers: SubscriberRegistry) -> Pipeline:
    """Pipeline over the real task, project, team and user handlers."""
    registrations = [
        *UsersModule().get_request_registrations(),
        *TeamsModule().get_request_registrations(),
        *ProjectsModule().get_request_registrations(),
        *TasksModule().get_request_registrations(),
    ]
    return build_pipeline(registrations, subscribers, slow_threshold_ms=500, exclude_patterns=[])
