"""Tests for the subscriber registry and event dispatch."""

import logging

import pytest

from src.core.event_bus import SubscriberRegistry, subscriber_name
from src.domain.events import ProjectCreated, ProjectStatusChanged, TaskCreated
from src.domain.project import Project
from src.domain.state_machine import ProjectStatus
from tests.unit.mocks import RecordingSubscriber


@pytest.fixture
def registry():
    return SubscriberRegistry()


@pytest.fixture
def project(manager):
    project = Project.create(name="Payments", team_id="team-pay", created_by=manager)
    project.change_status(ProjectStatus.ACTIVE, changed_by=manager)
    return project


@pytest.mark.unit
class TestSubscribe:
    """Tests for SubscriberRegistry.subscribe."""

    def test_duplicate_subscription_is_rejected(self, registry):
        subscriber = RecordingSubscriber()
        registry.subscribe(ProjectCreated, subscriber)

        with pytest.raises(ValueError, match="already subscribed"):
            registry.subscribe(ProjectCreated, subscriber)

    def test_same_subscriber_for_two_types(self, registry, manager):
        subscriber = RecordingSubscriber()
        registry.subscribe(ProjectCreated, subscriber)
        registry.subscribe(ProjectStatusChanged, subscriber)

        event = ProjectCreated(actor_id=manager.id, aggregate_id="p1", name="P", team_id="t")
        assert registry.handlers_for(event) == [subscriber]

    def test_handlers_match_exact_type_only(self, registry, manager):
        subscriber = RecordingSubscriber()
        registry.subscribe(TaskCreated, subscriber)

        event = ProjectCreated(actor_id=manager.id, aggregate_id="p1", name="P", team_id="t")
        assert registry.handlers_for(event) == []

    def test_subscriber_name_uses_module_and_qualname(self):
        assert subscriber_name(RecordingSubscriber("audit")) == "tests.unit.mocks.audit"


@pytest.mark.unit
class TestDispatch:
    """Tests for SubscriberRegistry.dispatch."""

    async def test_delivers_events_in_raise_order(self, registry, project):
        subscriber = RecordingSubscriber()
        registry.subscribe(ProjectCreated, subscriber)
        registry.subscribe(ProjectStatusChanged, subscriber)

        result = await registry.dispatch([project])

        assert subscriber.event_types == ["ProjectCreated", "ProjectStatusChanged"]
        assert result.succeeded
        assert len(result.delivered) == 2
        assert not project.has_pending_events

    async def test_subscribers_run_in_subscription_order(self, registry, project):
        log = []
        registry.subscribe(ProjectCreated, RecordingSubscriber("first", log=log))
        registry.subscribe(ProjectCreated, RecordingSubscriber("second", log=log))

        await registry.dispatch([project])

        assert [name for name, _ in log] == ["first", "second"]

    async def test_aggregates_drain_in_given_order(self, registry, manager, project):
        other = Project.create(name="Other", team_id="team-pay", created_by=manager)
        subscriber = RecordingSubscriber()
        registry.subscribe(ProjectCreated, subscriber)

        await registry.dispatch([other, project])

        assert [e.aggregate_id for e in subscriber.received] == [other.id, project.id]

    async def test_failure_is_recorded_and_others_still_run(self, registry, project, caplog):
        failing = RecordingSubscriber("failing", fail_with=RuntimeError("boom"))
        healthy = RecordingSubscriber("healthy")
        registry.subscribe(ProjectCreated, failing)
        registry.subscribe(ProjectCreated, healthy)
        registry.subscribe(ProjectStatusChanged, healthy)

        with caplog.at_level(logging.ERROR, logger="src.core.event_bus"):
            result = await registry.dispatch([project])

        assert not result.succeeded
        assert len(result.failures) == 1
        failure = result.failures[0]
        assert failure.subscriber == "tests.unit.mocks.failing"
        assert failure.event_type == "ProjectCreated"
        assert isinstance(failure.cause, RuntimeError)
        assert healthy.event_types == ["ProjectCreated", "ProjectStatusChanged"]
        assert any(record.subscriber == "tests.unit.mocks.failing" for record in caplog.records)

    async def test_events_without_subscribers_are_still_drained(self, registry, project):
        result = await registry.dispatch([project])

        assert len(result.delivered) == 2
        assert not project.has_pending_events

    async def test_second_dispatch_delivers_nothing(self, registry, project):
        subscriber = RecordingSubscriber()
        registry.subscribe(ProjectCreated, subscriber)

        await registry.dispatch([project])
        await registry.dispatch([project])

        assert len(subscriber.received) == 1
