"""
Case Service Tests (in-memory storage)
======================================

Tests for the intent plans and the unit-of-work guarantees covering:
- The intent list produced by each lifecycle operation
- All-or-nothing application when an intent fails
- Best-effort notifications that never undo an operation
"""

import pytest

from app.core.exceptions import MissingFieldError, NotificationDeliveryError
from app.schemas.case import CaseCreate
from app.services.case_service import CaseService
from app.services.intents import (
    AppendActivity,
    AppendAssignment,
    InsertCase,
    Notify,
    PersistCase,
    StartSlaTracking,
)
from app.services.notifications import NotificationDispatcher


pytestmark = pytest.mark.unit


def _report(service: CaseService, reporter, **fields):
    data = {"category": "Fire", "severity": "High"}
    data.update(fields)
    return service.create(CaseCreate(**data), reporter.id)


def _types(plan):
    return [type(intent) for intent in plan]


class FailingDispatcher(NotificationDispatcher):
    """Dispatcher whose deliveries always fail."""

    def __init__(self):
        self.attempts = []

    def notify(self, uow, user_id, title, message, module, reference_id=None):
        self.attempts.append((user_id, title))
        raise NotificationDeliveryError(user_id, "smtp relay down")


class TestIntentPlans:
    """Tests for the plans each operation hands to the coordinator."""

    @pytest.fixture
    def plans(self, memory_service):
        captured = []
        memory_service.coordinator.interceptors.append(captured.append)
        return captured

    def test_create_plan(self, memory_service, memory, plans):
        """Test insert, journal and tracking intents, then one notify per supervisor."""
        # Act
        case = _report(memory_service, memory.employee)

        # Assert
        plan = plans[-1]
        assert _types(plan) == [InsertCase, AppendActivity, StartSlaTracking, Notify]
        assert plan[1].new_status.value == "RAISED"
        assert plan[3].user_id == memory.supervisor.id
        assert plan[3].reference_id == case.id

    def test_assign_plan_journals_before_persisting(self, memory_service, memory, plans):
        """Test that the journal entry is planned ahead of the status write."""
        # Arrange
        case = _report(memory_service, memory.employee)

        # Act
        memory_service.assign(case.id, memory.practitioner.id, memory.supervisor.id)

        # Assert
        plan = plans[-1]
        assert _types(plan) == [AppendAssignment, AppendActivity, PersistCase, Notify]
        assert plan[2].changes["status"] == "ASSIGNED"
        assert plan[3].title == "Case Assigned to You"

    def test_escalate_plan(self, memory_service, memory, plans):
        # Arrange
        case = _report(memory_service, memory.employee)

        # Act
        memory_service.escalate(case.id, memory.supervisor.id, memory.practitioner.id, "Out of hours")

        # Assert
        plan = plans[-1]
        assert _types(plan) == [AppendAssignment, AppendActivity, PersistCase, Notify]
        assert plan[2].changes["is_escalated"] is True
        assert plan[2].changes["escalation_reason"] == "Out of hours"

    def test_soft_delete_plan_has_no_journal(self, memory_service, memory, plans):
        # Arrange
        case = _report(memory_service, memory.employee)

        # Act
        memory_service.soft_delete(case.id)

        # Assert
        assert _types(plans[-1]) == [PersistCase]
        assert set(plans[-1][0].changes) == {"deleted_at", "updated_at"}

    def test_rejected_escalation_plans_nothing(self, memory_service, memory, plans):
        """Test that validation fails before any plan reaches the coordinator."""
        # Arrange
        case = _report(memory_service, memory.employee)
        planned = len(plans)

        # Act
        with pytest.raises(MissingFieldError):
            memory_service.escalate(case.id, memory.supervisor.id, memory.practitioner.id, "")

        # Assert
        assert len(plans) == planned


class TestAtomicity:
    """Tests for all-or-nothing operations."""

    def test_journal_failure_rolls_back_ledger(self, memory_service, memory, monkeypatch):
        """Test that a ledger entry already written is undone when the journal write fails."""
        # Arrange
        case = _report(memory_service, memory.employee)

        def broken_append(*args, **kwargs):
            raise RuntimeError("disk full")

        monkeypatch.setattr(memory_service.journal, "append", broken_append)

        # Act
        with pytest.raises(RuntimeError):
            memory_service.assign(case.id, memory.practitioner.id, memory.supervisor.id)

        # Assert
        monkeypatch.undo()
        detail = memory_service.get_detail(case.id)
        assert detail.status == "RAISED"
        assert detail.assignments == []
        assert len(detail.timeline) == 1
        assert memory.db.tables["notifications"] and all(
            n.user_id != memory.practitioner.id for n in memory.db.tables["notifications"].values()
        )

    def test_interceptor_failure_applies_nothing(self, memory_service, memory):
        # Arrange
        case = _report(memory_service, memory.employee)

        def veto(plan):
            raise RuntimeError("vetoed")

        memory_service.coordinator.interceptors.append(veto)

        # Act
        with pytest.raises(RuntimeError):
            memory_service.update_status(case.id, "COMPLETED", memory.practitioner.id)

        # Assert
        memory_service.coordinator.interceptors.remove(veto)
        assert memory_service.get_detail(case.id).status == "RAISED"

    def test_failed_create_leaves_no_rows(self, memory_service, memory, monkeypatch):
        """Test that a failure while starting SLA tracking undoes the insert."""
        # Arrange
        memory.add_rule("Fire", "High", 60, 240)

        def broken_tracking(uow, case_id):
            raise RuntimeError("rule store offline")

        monkeypatch.setattr(memory_service.sla, "initialize_tracking", broken_tracking)

        # Act
        with pytest.raises(RuntimeError):
            _report(memory_service, memory.employee)

        # Assert
        assert memory.db.tables["incidents"] == {}
        assert memory.db.tables["status_logs"] == {}


class TestNotificationFailures:
    """Tests for best-effort notification delivery."""

    def test_delivery_failure_does_not_fail_assign(self, memory, clock):
        """Test that the assignment persists although the assignee could not be told."""
        # Arrange
        dispatcher = FailingDispatcher()
        service = CaseService(memory.uow, dispatcher, clock=clock)
        case = _report(service, memory.employee)

        # Act
        result = service.assign(case.id, memory.practitioner.id, memory.supervisor.id)

        # Assert
        assert result.status == "ASSIGNED"
        assert (memory.practitioner.id, "Case Assigned to You") in dispatcher.attempts
        assert len(service.get_detail(case.id).assignments) == 1

    def test_unexpected_dispatcher_error_is_swallowed(self, memory, clock):
        # Arrange
        class ExplodingDispatcher(NotificationDispatcher):
            def notify(self, uow, user_id, title, message, module, reference_id=None):
                raise ConnectionError("broker unreachable")

        service = CaseService(memory.uow, ExplodingDispatcher(), clock=clock)

        # Act
        case = _report(service, memory.employee)

        # Assert
        assert service.get_detail(case.id).status == "RAISED"

    def test_store_failure_keeps_other_writes(self, memory_service, memory, monkeypatch):
        """Test that a failed notification row is undone alone."""
        # Arrange
        case = _report(memory_service, memory.employee)
        before = dict(memory.db.tables["notifications"])

        def broken_add(self, notification):
            raise RuntimeError("constraint violated")

        monkeypatch.setattr(
            "app.repositories.memory.InMemoryNotificationStore.add", broken_add
        )

        # Act
        memory_service.assign(case.id, memory.practitioner.id, memory.supervisor.id)

        # Assert
        assert memory.db.tables["notifications"].keys() == before.keys()
        assert memory_service.get_detail(case.id).status == "ASSIGNED"


class TestTrustedActor:
    """Tests for actors the directory does not know."""

    def test_unknown_actor_named_unknown_in_escalation(self, memory_service, memory):
        """Test the escalation narrative for an actor missing from the directory."""
        # Arrange
        case = _report(memory_service, memory.employee)

        # Act
        memory_service.escalate(case.id, "gateway-service", memory.practitioner.id, "Night shift")

        # Assert
        timeline = memory_service.timeline(case.id)
        assert timeline[-1].description == "Case escalated by Unknown: Night shift"
        assert timeline[-1].user is None

    def test_unknown_actor_close_uses_id(self, memory_service, memory):
        # Arrange
        case = _report(memory_service, memory.employee)

        # Act
        memory_service.close(case.id, "gateway-service")

        # Assert
        assert memory_service.timeline(case.id)[-1].description == "Closed by gateway-service"
