"""Tests for role-gated task assignment."""

import pytest

from src.core.errors import DomainRuleViolation, NotFoundError, ValidationError
from src.domain.state_machine import TaskStatus
from src.domain.user import UserRole, UserStatus
from src.modules.tasks.commands import AssignTask, CancelTask, CreateTask, StartTask, UnassignTask
from src.modules.teams.commands import RemoveTeamMember
from tests.unit.mocks import make_user


@pytest.fixture
async def task(pipeline, deps_for, manager, active_project, recorder):
    task = await pipeline.send(CreateTask(project_id=active_project.id, title="Assignable"), deps_for(manager))
    recorder.received.clear()
    return task


@pytest.mark.unit
class TestAssignTask:
    """Tests for AssignTask."""

    async def test_reassign_records_previous(
        self, pipeline, deps_for, manager, developer, other_developer, task, recorder
    ):
        await pipeline.send(AssignTask(task_id=task.id, assignee_id=developer.id), deps_for(manager))
        await pipeline.send(AssignTask(task_id=task.id, assignee_id=other_developer.id), deps_for(manager))

        assert [(e.previous_assignee_id, e.new_assignee_id) for e in recorder.received] == [
            (None, developer.id),
            (developer.id, other_developer.id),
        ]

    async def test_admin_may_assign(self, pipeline, deps_for, admin, developer, task):
        assigned = await pipeline.send(AssignTask(task_id=task.id, assignee_id=developer.id), deps_for(admin))

        assert assigned.assignee_id == developer.id

    async def test_developer_may_not_assign(self, pipeline, deps_for, developer, task, recorder):
        with pytest.raises(DomainRuleViolation, match="not allowed to assign"):
            await pipeline.send(AssignTask(task_id=task.id, assignee_id=developer.id), deps_for(developer))

        assert recorder.received == []

    async def test_same_assignee_twice_is_rejected(self, pipeline, deps_for, manager, developer, task):
        await pipeline.send(AssignTask(task_id=task.id, assignee_id=developer.id), deps_for(manager))

        with pytest.raises(DomainRuleViolation, match="already assigned"):
            await pipeline.send(AssignTask(task_id=task.id, assignee_id=developer.id), deps_for(manager))

    async def test_in_progress_task_can_be_reassigned(self, pipeline, deps_for, manager, other_developer, task):
        await pipeline.send(StartTask(task_id=task.id), deps_for(manager))

        assigned = await pipeline.send(
            AssignTask(task_id=task.id, assignee_id=other_developer.id), deps_for(manager)
        )

        assert assigned.status == TaskStatus.IN_PROGRESS
        assert assigned.assignee_id == other_developer.id

    async def test_cancelled_task_cannot_be_assigned(self, pipeline, deps_for, manager, developer, task, recorder):
        await pipeline.send(CancelTask(task_id=task.id), deps_for(manager))
        recorder.received.clear()

        with pytest.raises(ValidationError) as exc_info:
            await pipeline.send(AssignTask(task_id=task.id, assignee_id=developer.id), deps_for(manager))

        assert exc_info.value.as_dict() == {"task_id": ["Task is Cancelled and cannot be assigned"]}
        assert recorder.received == []

    async def test_in_review_task_cannot_be_assigned(
        self, pipeline, deps_for, manager, developer, repositories, task, recorder
    ):
        stored = repositories.tasks.stored(task.id)
        stored.status = TaskStatus.IN_REVIEW
        repositories.tasks.seed(stored)

        with pytest.raises(ValidationError) as exc_info:
            await pipeline.send(AssignTask(task_id=task.id, assignee_id=developer.id), deps_for(manager))

        assert "task_id" in exc_info.value.as_dict()
        assert recorder.received == []

    async def test_unknown_task_is_not_found(self, pipeline, deps_for, manager, developer):
        with pytest.raises(NotFoundError):
            await pipeline.send(AssignTask(task_id="missing", assignee_id=developer.id), deps_for(manager))


@pytest.mark.unit
class TestAssigneeEligibility:
    """Tests for the assignee validation rule."""

    async def test_unknown_assignee(self, pipeline, deps_for, manager, task):
        with pytest.raises(ValidationError) as exc_info:
            await pipeline.send(AssignTask(task_id=task.id, assignee_id="ghost"), deps_for(manager))

        assert exc_info.value.as_dict() == {"assignee_id": ["User not found"]}

    async def test_viewer_cannot_be_assignee(self, pipeline, deps_for, manager, viewer, task):
        with pytest.raises(ValidationError) as exc_info:
            await pipeline.send(AssignTask(task_id=task.id, assignee_id=viewer.id), deps_for(manager))

        assert exc_info.value.as_dict() == {"assignee_id": ["User cannot be assigned tasks"]}

    async def test_assignee_outside_the_team(self, pipeline, deps_for, manager, repositories, task, recorder):
        outsider = make_user(UserRole.DEVELOPER, name="Outsider")
        repositories.users.seed(outsider)

        with pytest.raises(ValidationError) as exc_info:
            await pipeline.send(AssignTask(task_id=task.id, assignee_id=outsider.id), deps_for(manager))

        assert exc_info.value.as_dict() == {"assignee_id": ["User has no access to this project's team"]}
        assert repositories.tasks.stored(task.id).assignee_id is None
        assert recorder.received == []

    async def test_managers_need_no_membership(self, pipeline, deps_for, admin, manager, team, task):
        assert team.member(manager.id) is None

        assigned = await pipeline.send(AssignTask(task_id=task.id, assignee_id=manager.id), deps_for(admin))

        assert assigned.assignee_id == manager.id

    async def test_removed_member_loses_access(self, pipeline, deps_for, manager, developer, team, task):
        await pipeline.send(RemoveTeamMember(team_id=team.id, user_id=developer.id), deps_for(manager))

        with pytest.raises(ValidationError, match="assignee_id"):
            await pipeline.send(AssignTask(task_id=task.id, assignee_id=developer.id), deps_for(manager))

    async def test_suspended_developer_cannot_be_assignee(self, pipeline, deps_for, manager, repositories, task):
        suspended = make_user(UserRole.DEVELOPER, status=UserStatus.SUSPENDED)
        repositories.users.seed(suspended)

        with pytest.raises(ValidationError):
            await pipeline.send(AssignTask(task_id=task.id, assignee_id=suspended.id), deps_for(manager))


@pytest.mark.unit
class TestUnassignTask:
    """Tests for UnassignTask."""

    async def test_unassign(self, pipeline, deps_for, manager, developer, task, recorder):
        await pipeline.send(AssignTask(task_id=task.id, assignee_id=developer.id), deps_for(manager))

        unassigned = await pipeline.send(UnassignTask(task_id=task.id), deps_for(manager))

        assert unassigned.assignee_id is None
        assert (recorder.received[-1].previous_assignee_id, recorder.received[-1].new_assignee_id) == (
            developer.id,
            None,
        )

    async def test_unassign_unassigned_task(self, pipeline, deps_for, manager, task):
        with pytest.raises(DomainRuleViolation, match="not assigned"):
            await pipeline.send(UnassignTask(task_id=task.id), deps_for(manager))

    async def test_assignee_cannot_unassign_themselves(self, pipeline, deps_for, manager, developer, task):
        await pipeline.send(AssignTask(task_id=task.id, assignee_id=developer.id), deps_for(manager))

        with pytest.raises(DomainRuleViolation):
            await pipeline.send(UnassignTask(task_id=task.id), deps_for(developer))

    async def test_unassign_done_task_fails_validation(
        self, pipeline, deps_for, manager, developer, repositories, task
    ):
        await pipeline.send(AssignTask(task_id=task.id, assignee_id=developer.id), deps_for(manager))
        stored = repositories.tasks.stored(task.id)
        stored.status = TaskStatus.DONE
        repositories.tasks.seed(stored)

        with pytest.raises(ValidationError) as exc_info:
            await pipeline.send(UnassignTask(task_id=task.id), deps_for(manager))

        assert exc_info.value.as_dict() == {"task_id": ["Task is Done and cannot be assigned"]}
        assert repositories.tasks.stored(task.id).assignee_id == developer.id
