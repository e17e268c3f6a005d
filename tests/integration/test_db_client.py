"""Integration tests for the SQLite client and repository."""

from datetime import timedelta

import pytest

from src.core import aggregate_tracker, db_client
from src.core.errors import ConcurrencyConflict, NotFoundError
from src.core.repository import SqliteRepository
from src.domain.project import Project
from src.domain.state_machine import ProjectStatus, TaskStatus
from src.domain.task import Task
from src.domain.user import User


pytestmark = [pytest.mark.integration, pytest.mark.usefixtures("sqlite_db")]


@pytest.fixture
def projects() -> SqliteRepository[Project]:
    return SqliteRepository("projects", Project, "project")


@pytest.fixture
def tasks() -> SqliteRepository[Task]:
    return SqliteRepository("tasks", Task, "task")


@pytest.fixture
async def stored_manager(manager: User) -> User:
    await SqliteRepository("users", User, "user").add(manager)
    return manager


@pytest.fixture
async def project(projects, stored_manager) -> Project:
    project = Project.create(name="Integration", team_id="team-int", created_by=stored_manager)
    project.change_status(ProjectStatus.ACTIVE, changed_by=stored_manager)
    project.drain_events()
    return await projects.add(project)


class TestRawRecords:
    """Tests for the module-level CRUD functions."""

    async def test_create_get_update_delete(self):
        now = "2026-01-01T00:00:00+00:00"
        data = {
            "id": "u1",
            "version": 1,
            "created_at": now,
            "updated_at": now,
            "name": "Raw",
            "email": "raw@example.com",
            "role": "developer",
            "status": "active",
        }

        created = await db_client.create_record(collection="users", data=data)
        assert created["email"] == "raw@example.com"

        updated = await db_client.update_record(
            collection="users", record_id="u1", data={"name": "Renamed", "version": 2}, expected_version=1
        )
        assert updated["name"] == "Renamed"

        with pytest.raises(ConcurrencyConflict):
            await db_client.update_record(
                collection="users", record_id="u1", data={"name": "Stale", "version": 2}, expected_version=1
            )
        assert (await db_client.get_record(collection="users", record_id="u1"))["name"] == "Renamed"

        await db_client.delete_record(collection="users", record_id="u1", expected_version=2)
        with pytest.raises(db_client.RecordNotFoundError, match="Record not found in users: u1"):
            await db_client.get_record(collection="users", record_id="u1")

    async def test_conflict_keeps_row_and_connection_usable(self, stored_manager):
        await db_client.update_record(
            collection="users", record_id=stored_manager.id, data={"name": "First", "version": 2}, expected_version=1
        )

        with pytest.raises(ConcurrencyConflict):
            await db_client.update_record(
                collection="users",
                record_id=stored_manager.id,
                data={"name": "Stale", "version": 2},
                expected_version=1,
            )
        assert not (await db_client.get_connection()).in_transaction
        await db_client.update_record(
            collection="users", record_id=stored_manager.id, data={"name": "Second", "version": 3}, expected_version=2
        )

        stored = await db_client.get_record(collection="users", record_id=stored_manager.id)
        assert (stored["name"], stored["version"]) == ("Second", 3)

    async def test_update_records_is_all_or_nothing(self, stored_manager, other_developer):
        await SqliteRepository("users", User, "user").add(other_developer)
        updates = [
            db_client.RowUpdate(stored_manager.id, {"name": "Renamed", "version": 2}, 1),
            db_client.RowUpdate(other_developer.id, {"name": "Renamed", "version": 6}, 5),
        ]

        with pytest.raises(ConcurrencyConflict):
            await db_client.update_records(collection="users", updates=updates)

        manager_row = await db_client.get_record(collection="users", record_id=stored_manager.id)
        developer_row = await db_client.get_record(collection="users", record_id=other_developer.id)
        assert (manager_row["name"], manager_row["version"]) == (stored_manager.name, 1)
        assert (developer_row["name"], developer_row["version"]) == (other_developer.name, 1)

    async def test_update_records_missing_row(self, stored_manager):
        updates = [
            db_client.RowUpdate(stored_manager.id, {"name": "Renamed", "version": 2}, 1),
            db_client.RowUpdate("ghost", {"name": "Renamed", "version": 2}, 1),
        ]

        with pytest.raises(db_client.RecordNotFoundError) as exc_info:
            await db_client.update_records(collection="users", updates=updates)

        assert exc_info.value.record_id == "ghost"
        assert (await db_client.get_record(collection="users", record_id=stored_manager.id))["version"] == 1

    async def test_update_missing_record(self):
        with pytest.raises(db_client.RecordNotFoundError):
            await db_client.update_record(collection="users", record_id="ghost", data={"name": "x"})

    async def test_unknown_table(self):
        with pytest.raises(db_client.DatabaseError, match="does not exist"):
            await db_client.get_record(collection="nope", record_id="x")

    async def test_list_with_filter_and_sort(self, stored_manager):
        for name in ("Charlie", "alpha", "Bravo"):
            await db_client.create_record(
                collection="projects",
                data={
                    "id": f"p-{name}",
                    "version": 1,
                    "created_at": "2026-01-01T00:00:00+00:00",
                    "updated_at": "2026-01-01T00:00:00+00:00",
                    "name": name,
                    "description": "",
                    "team_id": "team-a" if name != "Bravo" else "team-b",
                    "status": "Planning",
                    "planned_end_date": None,
                    "created_by": stored_manager.id,
                },
            )

        team_a = await db_client.list_records(collection="projects", filter_query='team_id = "team-a"', sort="name ASC")
        first = await db_client.get_first_record(collection="projects", filter_query='name ~ "rav"')
        none = await db_client.get_first_record(collection="projects", filter_query='name = "Delta"')

        assert [r["name"] for r in team_a] == ["Charlie", "alpha"]
        assert first["id"] == "p-Bravo"
        assert none is None

    async def test_invalid_sort_falls_back_to_default(self):
        records = await db_client.list_records(collection="projects", sort="name; DROP TABLE projects")

        assert records == []


class TestSqliteRepository:
    """Tests for SqliteRepository against real tables."""

    async def test_round_trip_preserves_types(self, tasks, project, stored_manager):
        task = Task.create(
            title="Typed",
            project=project,
            created_by=stored_manager,
            estimated_hours=2.5,
            due_date=project.created_at + timedelta(days=7),
        )
        await tasks.add(task)

        loaded = await tasks.get(task.id)

        assert loaded.status == TaskStatus.TODO
        assert loaded.estimated_hours == 2.5
        assert loaded.due_date == task.due_date
        assert loaded.version == 1
        assert not loaded.has_pending_events

    async def test_update_bumps_version(self, tasks, project, stored_manager):
        task = await tasks.add(Task.create(title="Versioned", project=project, created_by=stored_manager))
        task.start(started_by=stored_manager)

        await tasks.update(task)

        assert task.version == 2
        assert (await tasks.get(task.id)).status == TaskStatus.IN_PROGRESS

    async def test_stale_update_is_rejected(self, tasks, project, stored_manager):
        task = await tasks.add(Task.create(title="Contended", project=project, created_by=stored_manager))
        first = await tasks.get(task.id)
        second = await tasks.get(task.id)

        first.start(started_by=stored_manager)
        await tasks.update(first)
        second.cancel(cancelled_by=stored_manager)

        with aggregate_tracker.tracking() as scope:
            with pytest.raises(ConcurrencyConflict):
                await tasks.update(second)

        assert list(scope) == []
        assert (await tasks.get(task.id)).status == TaskStatus.IN_PROGRESS

    async def test_missing_entity(self, tasks):
        with pytest.raises(NotFoundError):
            await tasks.get("missing")

    async def test_subtask_foreign_key(self, tasks, project, stored_manager):
        parent = await tasks.add(Task.create(title="Parent", project=project, created_by=stored_manager))
        child = await tasks.add(
            Task.create(title="Child", project=project, created_by=stored_manager, parent=parent)
        )

        subtasks = await tasks.query(f'parent_task_id = "{parent.id}"')

        assert [t.id for t in subtasks] == [child.id]

    async def test_writes_are_tracked(self, tasks, project, stored_manager):
        task = Task.create(title="Tracked", project=project, created_by=stored_manager)

        with aggregate_tracker.tracking() as scope:
            await tasks.add(task)

        assert list(scope) == [task]
        assert task.has_pending_events

    async def test_update_many_writes_every_row(self, tasks, project, stored_manager):
        parent = await tasks.add(Task.create(title="Parent", project=project, created_by=stored_manager))
        child = await tasks.add(
            Task.create(title="Child", project=project, created_by=stored_manager, parent=parent)
        )
        cascaded = parent.cancel(cancelled_by=stored_manager, dependents=[child])

        with aggregate_tracker.tracking() as scope:
            await tasks.update_many([parent, *cascaded])

        assert list(scope) == [parent, child]
        assert [t.version for t in (parent, child)] == [2, 2]
        assert (await tasks.get(child.id)).status == TaskStatus.CANCELLED

    async def test_stale_subtask_aborts_the_whole_cascade(self, tasks, project, stored_manager):
        parent = await tasks.add(Task.create(title="Parent", project=project, created_by=stored_manager))
        child = await tasks.add(
            Task.create(title="Child", project=project, created_by=stored_manager, parent=parent)
        )
        concurrent = await tasks.get(child.id)
        concurrent.start(started_by=stored_manager)
        await tasks.update(concurrent)

        cascaded = parent.cancel(cancelled_by=stored_manager, dependents=[child])
        with aggregate_tracker.tracking() as scope:
            with pytest.raises(ConcurrencyConflict):
                await tasks.update_many([parent, *cascaded])

        assert list(scope) == []
        assert (await tasks.get(parent.id)).status == TaskStatus.TODO
        assert (await tasks.get(parent.id)).version == 1
        assert (await tasks.get(child.id)).status == TaskStatus.IN_PROGRESS
