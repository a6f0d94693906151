"""
Incident Models
===============

The case (incident) row and its append-only histories:

- IncidentAssignment: assignment and escalation ledger
- IncidentStatusLog: activity journal
- IncidentMedia: evidence file references
- IncidentComment: free-text comments
- ImpactedPerson: people named on the report

Ledger and journal rows are never updated or deleted. Each carries a
per-case ``sequence`` assigned while the case row is locked, which breaks
timestamp ties in insertion order.
"""

import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import (
    String,
    Integer,
    Float,
    Boolean,
    DateTime,
    Text,
    ForeignKey,
    Index,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from app.core.enums import IncidentStatus
from app.db.base import Base


def _uuid() -> str:
    return str(uuid.uuid4())


class Incident(Base):
    """
    Workplace incident case.

    ``status`` is written only by the case lifecycle service. Soft deletion
    sets ``deleted_at`` and leaves status and history untouched.
    """

    __tablename__ = "incidents"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    incident_number: Mapped[str] = mapped_column(String(64), nullable=False, unique=True, index=True)

    # Classification
    type: Mapped[str] = mapped_column(String(64), nullable=False, default="INCIDENT")
    category: Mapped[str] = mapped_column(String(128), nullable=False, default="others", index=True)
    severity: Mapped[str] = mapped_column(String(64), nullable=False, default="medium", index=True)

    status: Mapped[str] = mapped_column(
        String(40),
        nullable=False,
        default=IncidentStatus.RAISED.value,
        index=True,
    )

    description: Mapped[str] = mapped_column(Text, nullable=False, default="")

    # Placement
    reported_by_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("users.id"),
        nullable=False,
        index=True,
    )
    building_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("buildings.id"),
        nullable=False,
        index=True,
    )
    department_id: Mapped[Optional[str]] = mapped_column(
        String(36),
        ForeignKey("departments.id"),
        nullable=True,
    )
    location: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    latitude: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    longitude: Mapped[Optional[float]] = mapped_column(Float, nullable=True)

    # Report details
    immediate_actions: Mapped[Optional[str]] = mapped_column(Text, nullable=True)  # JSON list
    other_actions: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    people_impacted: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    # Escalation (history lives in the journal)
    is_escalated: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, index=True)
    escalated_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    escalation_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Timestamps
    occurred_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    deleted_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True, index=True)

    def __repr__(self) -> str:
        return f"<Incident(id={self.id}, number={self.incident_number}, status={self.status})>"

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None


class IncidentAssignment(Base):
    """Ledger entry: who a case was handed to, by whom, and when."""

    __tablename__ = "incident_assignments"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    incident_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("incidents.id"),
        nullable=False,
    )
    assigned_to_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("users.id"),
        nullable=False,
        index=True,
    )
    assigned_by_id: Mapped[Optional[str]] = mapped_column(
        String(36),
        ForeignKey("users.id"),
        nullable=True,
    )
    assigned_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    sequence: Mapped[int] = mapped_column(Integer, nullable=False)

    __table_args__ = (
        UniqueConstraint("incident_id", "sequence", name="uq_incident_assignments_sequence"),
        Index("ix_incident_assignments_incident_assigned_at", "incident_id", "assigned_at"),
    )


class IncidentStatusLog(Base):
    """
    Journal entry for a status change or narrative event.

    ``old_status`` is the case status read immediately before the write.
    """

    __tablename__ = "incident_status_logs"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    incident_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("incidents.id"),
        nullable=False,
    )
    old_status: Mapped[str] = mapped_column(String(40), nullable=False)
    new_status: Mapped[str] = mapped_column(String(40), nullable=False)
    comments: Mapped[str] = mapped_column(Text, nullable=False, default="")
    user_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("users.id"),
        nullable=False,
    )
    changed_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    sequence: Mapped[int] = mapped_column(Integer, nullable=False)

    __table_args__ = (
        UniqueConstraint("incident_id", "sequence", name="uq_incident_status_logs_sequence"),
        Index("ix_incident_status_logs_incident_changed_at", "incident_id", "changed_at"),
    )


class IncidentMedia(Base):
    """Evidence reference. File bytes live in external storage."""

    __tablename__ = "incident_media"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    incident_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("incidents.id"),
        nullable=False,
        index=True,
    )
    file_url: Mapped[str] = mapped_column(Text, nullable=False)
    file_type: Mapped[str] = mapped_column(String(128), nullable=False, default="unknown")
    uploader_role: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    uploaded_by_id: Mapped[Optional[str]] = mapped_column(
        String(36),
        ForeignKey("users.id"),
        nullable=True,
    )
    uploaded_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


class IncidentComment(Base):
    __tablename__ = "incident_comments"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    incident_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("incidents.id"),
        nullable=False,
        index=True,
    )
    user_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("users.id"),
        nullable=False,
    )
    comment: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


class ImpactedPerson(Base):
    __tablename__ = "incident_impacted_people"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    incident_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("incidents.id"),
        nullable=False,
        index=True,
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    phone: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
