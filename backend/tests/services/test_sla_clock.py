"""
SLA Clock Tests
===============

Tests for SlaClock covering:
- Tracking initialization and rule snapshots
- The tracking list and its ordering
- The breach sweep and its monotonic flags
- SLA rule administration
"""

import pytest
from datetime import timedelta

from app.core.exceptions import SLARuleExistsError, SLARuleInUseError, SLARuleNotFoundError
from app.schemas.case import CaseCreate
from app.schemas.sla import SLARuleCreate, SLARuleUpdate


pytestmark = pytest.mark.unit


@pytest.fixture
def rules(memory):
    return {
        "fire": memory.add_rule("Fire", "High", 60, 240),
        "slip": memory.add_rule("Slip", "Low", 120, 60 * 24),
    }


def _report(service, memory, category, severity):
    return service.create(CaseCreate(category=category, severity=severity), memory.employee.id)


def _tracking(memory, case_id):
    with memory.uow() as uow:
        return uow.sla.get_tracking(case_id)


class TestInitializeTracking:
    """Tests for tracking initialization."""

    def test_snapshot_of_rule(self, memory_service, memory, rules, clock):
        # Act
        case = _report(memory_service, memory, "Fire", "High")

        # Assert
        tracking = _tracking(memory, case.id)
        assert tracking.sla_id == rules["fire"].id
        assert tracking.response_due_at == clock.now + timedelta(minutes=60)
        assert tracking.resolution_due_at == clock.now + timedelta(minutes=240)
        assert tracking.resolution_minutes == 240

    def test_initialize_is_idempotent(self, memory_service, memory, rules):
        # Arrange
        case = _report(memory_service, memory, "Fire", "High")

        # Act
        with memory.uow() as uow:
            again = memory_service.sla.initialize_tracking(uow, case.id)

        # Assert
        assert again.id == _tracking(memory, case.id).id
        assert len(memory.db.tables["sla_tracking"]) == 1

    def test_rule_edit_does_not_move_existing_deadlines(self, memory_service, memory, rules, clock):
        """Test that tracked cases keep the budget captured at creation."""
        # Arrange
        case = _report(memory_service, memory, "Fire", "High")

        # Act
        memory_service.sla.update_rule(rules["fire"].id, SLARuleUpdate(resolution_minutes=30))
        clock.advance(minutes=45)
        view = memory_service.list_sla_tracking()[0]

        # Assert
        assert view.incident_id == case.id
        assert view.total_resolution_hours == 4.0
        assert view.sla_status == "on-track"


class TestListTracking:
    """Tests for the SLA tracking list."""

    def test_soonest_resolution_first(self, memory_service, memory, rules, clock):
        # Arrange
        slip = _report(memory_service, memory, "Slip", "Low")
        clock.advance(minutes=1)
        fire = _report(memory_service, memory, "Fire", "High")
        _report(memory_service, memory, "Theft", "High")

        # Act
        items = memory_service.list_sla_tracking()

        # Assert
        assert [i.incident_id for i in items] == [fire.id, slip.id]

    def test_view_fields(self, memory_service, memory, rules, clock):
        """Test rounding, assignee and labels of a tracked case."""
        # Arrange
        case = _report(memory_service, memory, "Fire", "High")
        memory_service.assign(case.id, memory.practitioner.id, memory.supervisor.id)
        clock.advance(minutes=190)

        # Act
        item = memory_service.list_sla_tracking()[0]

        # Assert
        assert item.incident_number == case.incident_number
        assert item.status == "ASSIGNED"
        assert item.assigned_to.id == memory.practitioner.id
        assert item.resolution_hours_left == 0.8
        assert item.response_hours_left == -2.2
        assert item.progress == 79
        assert item.sla_status == "warning"
        assert item.response_breached is False

    def test_breached_label_before_sweep(self, memory_service, memory, rules, clock):
        # Arrange
        _report(memory_service, memory, "Fire", "High")
        clock.advance(hours=5)

        # Act
        item = memory_service.list_sla_tracking()[0]

        # Assert
        assert item.sla_status == "breached"
        assert item.resolution_breached is False
        assert item.progress == 100


class TestSweep:
    """Tests for the periodic breach sweep."""

    def test_nothing_due(self, memory_service, memory, rules, clock):
        # Arrange
        _report(memory_service, memory, "Fire", "High")
        clock.advance(minutes=59)

        # Act
        result = memory_service.sla.sweep_breaches()

        # Assert
        assert (result.examined, result.response_breaches, result.resolution_breaches) == (1, 0, 0)

    def test_response_breach_only_while_raised(self, memory_service, memory, rules, clock):
        """Test that an assigned case does not collect a response breach."""
        # Arrange
        waiting = _report(memory_service, memory, "Fire", "High")
        handled = _report(memory_service, memory, "Fire", "High")
        memory_service.assign(handled.id, memory.practitioner.id, memory.supervisor.id)
        clock.advance(minutes=61)

        # Act
        result = memory_service.sla.sweep_breaches()

        # Assert
        assert result.response_breaches == 1
        assert _tracking(memory, waiting.id).response_breached is True
        assert _tracking(memory, handled.id).response_breached is False

    def test_resolution_breach_and_replay(self, memory_service, memory, rules, clock):
        """Test that flags are set once and a replay changes nothing."""
        # Arrange
        case = _report(memory_service, memory, "Fire", "High")
        clock.advance(hours=5)

        # Act
        first = memory_service.sla.sweep_breaches()
        second = memory_service.sla.sweep_breaches()

        # Assert
        assert (first.response_breaches, first.resolution_breaches) == (1, 1)
        assert (second.response_breaches, second.resolution_breaches) == (0, 0)
        tracking = _tracking(memory, case.id)
        assert tracking.response_breached is True
        assert tracking.resolution_breached is True

    def test_flags_never_reset(self, memory_service, memory, rules, clock):
        """Test that sweeping at an earlier instant keeps persisted flags."""
        # Arrange
        case = _report(memory_service, memory, "Fire", "High")
        memory_service.sla.sweep_breaches(now=clock.now + timedelta(hours=5))

        # Act
        memory_service.sla.sweep_breaches(now=clock.now)

        # Assert
        assert _tracking(memory, case.id).resolution_breached is True

    def test_finished_and_deleted_cases_skipped(self, memory_service, memory, rules, clock):
        # Arrange
        done = _report(memory_service, memory, "Fire", "High")
        closed = _report(memory_service, memory, "Fire", "High")
        gone = _report(memory_service, memory, "Fire", "High")
        memory_service.update_status(done.id, "COMPLETED", memory.practitioner.id)
        memory_service.close(closed.id, memory.supervisor.id)
        memory_service.soft_delete(gone.id)
        clock.advance(hours=5)

        # Act
        result = memory_service.sla.sweep_breaches()

        # Assert
        assert result.examined == 0
        for case in (done, closed, gone):
            assert _tracking(memory, case.id).resolution_breached is False


class TestRules:
    """Tests for SLA rule administration."""

    def test_create_and_list(self, memory_service):
        # Act
        created = memory_service.sla.create_rule(
            SLARuleCreate(category="Fire", severity="High", response_minutes=30, resolution_minutes=120)
        )

        # Assert
        assert [r.id for r in memory_service.sla.list_rules()] == [created.id]
        assert memory_service.sla.get_rule(created.id).resolution_minutes == 120

    def test_duplicate_rule_conflicts(self, memory_service, rules):
        # Act / Assert
        with pytest.raises(SLARuleExistsError):
            memory_service.sla.create_rule(
                SLARuleCreate(category="Fire", severity="High", response_minutes=1, resolution_minutes=2)
            )

    def test_missing_rule(self, memory_service):
        # Act / Assert
        with pytest.raises(SLARuleNotFoundError):
            memory_service.sla.get_rule("nope")
        with pytest.raises(SLARuleNotFoundError):
            memory_service.sla.update_rule("nope", SLARuleUpdate(response_minutes=5))

    def test_rule_in_use_cannot_be_deleted(self, memory_service, memory, rules):
        # Arrange
        _report(memory_service, memory, "Fire", "High")

        # Act / Assert
        with pytest.raises(SLARuleInUseError):
            memory_service.sla.delete_rule(rules["fire"].id)

        memory_service.sla.delete_rule(rules["slip"].id)
        assert [r.category for r in memory_service.sla.list_rules()] == ["Fire"]
