"""
Case Model Tests
================

Tests for column defaults and database constraints.
"""

import uuid
from datetime import datetime, UTC

import pytest
from sqlalchemy.exc import IntegrityError

from app.models import Incident, IncidentAssignment, IncidentStatusLog, SLARule


pytestmark = pytest.mark.unit

NOW = datetime(2026, 3, 2, 9, 0, tzinfo=UTC)


def _incident(reporter, building, number="INC-0001"):
    return Incident(
        incident_number=number,
        reported_by_id=reporter.id,
        building_id=building.id,
        occurred_at=NOW,
        created_at=NOW,
        updated_at=NOW,
    )


class TestIncidentModel:
    """Tests for the Incident model."""

    def test_defaults_on_flush(self, db_session, employee, building):
        """Test that a bare case starts RAISED, unescalated and undeleted."""
        # Arrange
        case = _incident(employee, building)

        # Act
        db_session.add(case)
        db_session.commit()

        # Assert
        assert len(case.id) == 36
        assert case.status == "RAISED"
        assert case.type == "INCIDENT"
        assert case.is_escalated is False
        assert case.people_impacted == 0
        assert case.is_deleted is False

    def test_incident_number_unique(self, db_session, employee, building):
        # Arrange
        db_session.add(_incident(employee, building))
        db_session.commit()

        # Act / Assert
        db_session.add(_incident(employee, building))
        with pytest.raises(IntegrityError):
            db_session.commit()
        db_session.rollback()

    def test_building_required(self, db_session, employee):
        # Arrange
        case = Incident(
            incident_number="INC-0002",
            reported_by_id=employee.id,
            occurred_at=NOW,
            created_at=NOW,
            updated_at=NOW,
        )

        # Act / Assert
        db_session.add(case)
        with pytest.raises(IntegrityError):
            db_session.commit()
        db_session.rollback()


class TestHistoryModels:
    """Tests for ledger and journal rows."""

    def test_assignment_sequence_unique_per_case(self, db_session, employee, practitioner, building):
        # Arrange
        case = _incident(employee, building)
        db_session.add(case)
        db_session.commit()

        for _ in range(2):
            db_session.add(
                IncidentAssignment(
                    incident_id=case.id,
                    assigned_to_id=practitioner.id,
                    assigned_at=NOW,
                    sequence=1,
                )
            )

        # Act / Assert
        with pytest.raises(IntegrityError):
            db_session.commit()
        db_session.rollback()

    def test_journal_sequence_unique_per_case(self, db_session, employee, supervisor, building):
        # Arrange
        case = _incident(employee, building)
        db_session.add(case)
        db_session.commit()

        for _ in range(2):
            db_session.add(
                IncidentStatusLog(
                    incident_id=case.id,
                    old_status="RAISED",
                    new_status="RAISED",
                    user_id=supervisor.id,
                    changed_at=NOW,
                    sequence=1,
                )
            )

        # Act / Assert
        with pytest.raises(IntegrityError):
            db_session.commit()
        db_session.rollback()

    def test_journal_comment_defaults_to_empty(self, db_session, employee, supervisor, building):
        # Arrange
        case = _incident(employee, building)
        db_session.add(case)
        db_session.commit()
        entry = IncidentStatusLog(
            id=str(uuid.uuid4()),
            incident_id=case.id,
            old_status="RAISED",
            new_status="ASSIGNED",
            user_id=supervisor.id,
            changed_at=NOW,
            sequence=1,
        )

        # Act
        db_session.add(entry)
        db_session.commit()

        # Assert
        assert entry.comments == ""


class TestSLARuleModel:
    """Tests for the SLARule model."""

    def test_one_rule_per_category_and_severity(self, db_session):
        # Arrange
        for _ in range(2):
            db_session.add(
                SLARule(
                    category="Fire",
                    severity="High",
                    response_minutes=60,
                    resolution_minutes=240,
                    created_at=NOW,
                    updated_at=NOW,
                )
            )

        # Act / Assert
        with pytest.raises(IntegrityError):
            db_session.commit()
        db_session.rollback()
