"""Test that handlers sanitize user input before building filters."""

import pytest

from src.core.db_client import parse_filter
from src.core.deps import Deps
from src.domain.project import Project
from src.domain.task import Task
from src.domain.team import Team
from src.domain.user import User, UserRole
from src.modules.projects.commands import ListProjects
from src.modules.projects.service import list_projects
from src.modules.tasks.commands import ListSubtasks
from src.modules.tasks.service import list_subtasks
from src.modules.teams.commands import DeleteTeam
from src.modules.teams.service import delete_team
from src.modules.users.service import find_by_email
from tests.unit.mocks import InMemoryRepository, make_user


MALICIOUS = 'x" || id != "'


class CapturingRepository(InMemoryRepository):
    """In-memory repository that keeps every filter it was queried with."""

    def __init__(self, model, entity_name=None):
        super().__init__(model, entity_name)
        self.filters: list[str] = []

    async def query(self, filter_query="", *, sort="", limit=100):
        self.filters.append(filter_query)
        return []


@pytest.fixture
def deps():
    tasks = CapturingRepository(Task, "task")
    projects = CapturingRepository(Project, "project")
    users = CapturingRepository(User, "user")
    teams = CapturingRepository(Team, "team")
    return Deps(actor=make_user(UserRole.ADMIN), tasks=tasks, projects=projects, users=users, teams=teams)


def _assert_single_bound_value(filter_query: str, expected: str) -> None:
    where, params = parse_filter(filter_query)
    assert expected in params
    assert " OR " not in where


@pytest.mark.unit
class TestFilterInjection:
    async def test_list_projects_team_filter(self, deps):
        await list_projects(ListProjects(team_id=MALICIOUS), deps)

        assert deps.projects.filters == ['team_id = "x\\" || id != \\""']
        _assert_single_bound_value(deps.projects.filters[0], MALICIOUS)

    async def test_list_subtasks_parent_filter(self, deps, manager):
        project = Project.create(name="P", team_id="t", created_by=manager)
        parent = Task(id=MALICIOUS, title="Parent", project_id=project.id, created_by=manager.id)
        deps.tasks.seed(parent)

        await list_subtasks(ListSubtasks(task_id=MALICIOUS), deps)

        _assert_single_bound_value(deps.tasks.filters[0], MALICIOUS)

    async def test_find_by_email(self, deps):
        await find_by_email(deps.users, MALICIOUS)

        _assert_single_bound_value(deps.users.filters[0], MALICIOUS)

    async def test_delete_team_project_filter(self, deps, manager):
        deps.teams.seed(Team(id=MALICIOUS, name="Team"))

        await delete_team(DeleteTeam(team_id=MALICIOUS), deps)

        _assert_single_bound_value(deps.projects.filters[0], MALICIOUS)
        assert MALICIOUS not in deps.teams
