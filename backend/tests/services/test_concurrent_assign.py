"""
Concurrent Assignment Tests
===========================

Tests that assignments racing on one case are all kept, numbered
without gaps, and journaled as an unbroken chain.
"""

import threading

import pytest

from app.schemas.case import CaseCreate


pytestmark = pytest.mark.unit

WORKERS = 8


class TestConcurrentAssign:
    """Tests for simultaneous assign calls on one case."""

    def test_every_assignment_recorded(self, memory_service, memory):
        # Arrange
        case = memory_service.create(CaseCreate(category="Fire", severity="High"), memory.employee.id)
        assignees = [memory.practitioner.id, memory.second_practitioner.id]
        start = threading.Barrier(WORKERS)
        errors = []

        def worker(index):
            start.wait()
            try:
                memory_service.assign(case.id, assignees[index % 2], memory.supervisor.id)
            except Exception as exc:  # surfaced through the errors list
                errors.append(exc)

        threads = [threading.Thread(target=worker, args=(i,)) for i in range(WORKERS)]

        # Act
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=10)

        # Assert
        assert errors == []
        with memory.uow() as uow:
            history = memory_service.ledger.history(uow, case.id)
            timeline = memory_service.journal.timeline(uow, case.id)

        assert sorted(r.sequence for r in history) == list(range(1, WORKERS + 1))
        assert sorted(e.sequence for e in timeline) == list(range(1, WORKERS + 2))
        for previous, entry in zip(timeline, timeline[1:]):
            assert entry.old_status == previous.new_status

    def test_current_assignee_is_last_writer(self, memory_service, memory, clock):
        """Test that with equal timestamps the last recorded assignment wins."""
        # Arrange
        case = memory_service.create(CaseCreate(), memory.employee.id)

        # Act
        memory_service.assign(case.id, memory.practitioner.id, memory.supervisor.id)
        memory_service.assign(case.id, memory.second_practitioner.id, memory.supervisor.id)

        # Assert
        detail = memory_service.get_detail(case.id)
        assert detail.assigned_to.id == memory.second_practitioner.id
