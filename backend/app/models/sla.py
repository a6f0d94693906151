"""
SLA Models
==========

SLARule pairs a (category, severity) with response and resolution
budgets. IncidentSLATracking is created at most once per case, when the
case is raised, and snapshots the rule's budgets so later rule edits do
not move existing deadlines.

Breach flags only ever go from False to True.
"""

import uuid
from datetime import datetime

from sqlalchemy import (
    String,
    Integer,
    Boolean,
    DateTime,
    ForeignKey,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base


def _uuid() -> str:
    return str(uuid.uuid4())


class SLARule(Base):
    __tablename__ = "sla_rules"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    category: Mapped[str] = mapped_column(String(128), nullable=False)
    severity: Mapped[str] = mapped_column(String(64), nullable=False)
    response_minutes: Mapped[int] = mapped_column(Integer, nullable=False)
    resolution_minutes: Mapped[int] = mapped_column(Integer, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        UniqueConstraint("category", "severity", name="uq_sla_rules_category_severity"),
    )

    def __repr__(self) -> str:
        return f"<SLARule(category={self.category}, severity={self.severity})>"


class IncidentSLATracking(Base):
    __tablename__ = "incident_sla_tracking"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    incident_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("incidents.id"),
        nullable=False,
        unique=True,
    )
    sla_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("sla_rules.id"),
        nullable=False,
        index=True,
    )

    # Snapshot of the rule at creation
    response_minutes: Mapped[int] = mapped_column(Integer, nullable=False)
    resolution_minutes: Mapped[int] = mapped_column(Integer, nullable=False)

    response_due_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    resolution_due_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)

    response_breached: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    resolution_breached: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
