"""Tests for the task and project transition tables."""

import pytest

from src.core.errors import DomainRuleViolation
from src.domain.state_machine import (
    PROJECT_TRANSITIONS,
    TASK_TRANSITIONS,
    ProjectStatus,
    TaskStatus,
    allowed_targets,
    can_transition,
    ensure_transition,
    is_terminal,
)


@pytest.mark.unit
class TestTaskTransitions:
    """Tests for the task status table."""

    @pytest.mark.parametrize(
        ("current", "expected"),
        [
            (TaskStatus.TODO, {TaskStatus.IN_PROGRESS, TaskStatus.CANCELLED}),
            (
                TaskStatus.IN_PROGRESS,
                {TaskStatus.TODO, TaskStatus.IN_REVIEW, TaskStatus.DONE, TaskStatus.CANCELLED},
            ),
            (TaskStatus.IN_REVIEW, {TaskStatus.IN_PROGRESS, TaskStatus.DONE, TaskStatus.CANCELLED}),
            (TaskStatus.DONE, set()),
            (TaskStatus.CANCELLED, set()),
        ],
    )
    def test_allowed_targets(self, current, expected):
        assert allowed_targets(current) == expected

    def test_every_status_has_a_row(self):
        assert set(TASK_TRANSITIONS) == set(TaskStatus)

    @pytest.mark.parametrize("status", [TaskStatus.DONE, TaskStatus.CANCELLED])
    def test_done_and_cancelled_are_terminal(self, status):
        assert is_terminal(status)
        for target in TaskStatus:
            assert not can_transition(status, target)

    @pytest.mark.parametrize("status", [TaskStatus.TODO, TaskStatus.IN_PROGRESS, TaskStatus.IN_REVIEW])
    def test_cancel_is_legal_from_every_open_status(self, status):
        assert not is_terminal(status)
        assert can_transition(status, TaskStatus.CANCELLED)

    def test_todo_cannot_jump_to_done(self):
        assert not can_transition(TaskStatus.TODO, TaskStatus.DONE)

    def test_ensure_transition_rejects_illegal_edge(self):
        with pytest.raises(DomainRuleViolation, match="from ToDo to InReview"):
            ensure_transition(TaskStatus.TODO, TaskStatus.IN_REVIEW)

    def test_ensure_transition_mentions_final_status(self):
        with pytest.raises(DomainRuleViolation, match="final"):
            ensure_transition(TaskStatus.DONE, TaskStatus.IN_PROGRESS)

    def test_ensure_transition_accepts_legal_edge(self):
        ensure_transition(TaskStatus.IN_REVIEW, TaskStatus.IN_PROGRESS)


@pytest.mark.unit
class TestProjectTransitions:
    """Tests for the project status table."""

    def test_every_status_has_a_row(self):
        assert set(PROJECT_TRANSITIONS) == set(ProjectStatus)

    def test_on_hold_can_resume(self):
        assert can_transition(ProjectStatus.ON_HOLD, ProjectStatus.ACTIVE)

    def test_planning_cannot_complete(self):
        assert not can_transition(ProjectStatus.PLANNING, ProjectStatus.COMPLETED)

    @pytest.mark.parametrize("status", [ProjectStatus.COMPLETED, ProjectStatus.CANCELLED])
    def test_final_statuses(self, status):
        assert is_terminal(status)

    def test_ensure_transition_names_the_entity(self):
        with pytest.raises(DomainRuleViolation, match="project"):
            ensure_transition(ProjectStatus.COMPLETED, ProjectStatus.ACTIVE, entity="project")


@pytest.mark.unit
def test_unknown_status_type_is_rejected():
    with pytest.raises(TypeError):
        allowed_targets("ToDo")  # type: ignore[arg-type]
