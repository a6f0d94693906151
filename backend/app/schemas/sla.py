"""
SLA Schemas Module
==================

Pydantic models for SLA rules and SLA views.

Hours are rounded to one decimal and progress to a whole percent when a
view is serialized; the underlying computation is unrounded.
"""

from datetime import datetime
from typing import Optional

from pydantic import Field

from app.core.sla import SlaView
from app.schemas.common import CamelModel, UserBrief


# ==========================
# Rule Schemas
# ==========================

class SLARuleCreate(CamelModel):
    """Schema for creating an SLA rule."""

    category: str = Field(
        ...,
        min_length=1,
        max_length=128,
        description="Case category the rule applies to (exact match)"
    )
    severity: str = Field(
        ...,
        min_length=1,
        max_length=64,
        description="Case severity the rule applies to (exact match)"
    )
    response_minutes: int = Field(
        ...,
        gt=0,
        description="Minutes allowed before first response"
    )
    resolution_minutes: int = Field(
        ...,
        gt=0,
        description="Minutes allowed before resolution"
    )


class SLARuleUpdate(CamelModel):
    """Schema for changing an SLA rule's budgets."""

    response_minutes: Optional[int] = Field(default=None, gt=0)
    resolution_minutes: Optional[int] = Field(default=None, gt=0)


class SLARuleResponse(CamelModel):
    id: str
    category: str
    severity: str
    response_minutes: int
    resolution_minutes: int
    created_at: datetime
    updated_at: datetime


# ==========================
# View Schemas
# ==========================

class SlaViewResponse(CamelModel):
    """SLA state of one case at request time."""

    response_due_at: datetime
    resolution_due_at: datetime
    response_breached: bool
    resolution_breached: bool
    response_hours_left: float
    resolution_hours_left: float
    total_resolution_hours: float
    progress: int = Field(..., ge=0, le=100)
    sla_status: str

    @staticmethod
    def view_fields(view: SlaView) -> dict:
        return {
            "response_due_at": view.response_due_at,
            "resolution_due_at": view.resolution_due_at,
            "response_breached": view.response_breached,
            "resolution_breached": view.resolution_breached,
            "response_hours_left": round(view.response_hours_left, 1),
            "resolution_hours_left": round(view.resolution_hours_left, 1),
            "total_resolution_hours": view.total_resolution_hours,
            "progress": round(view.progress),
            "sla_status": view.status.value,
        }

    @classmethod
    def from_view(cls, view: SlaView) -> "SlaViewResponse":
        return cls(**cls.view_fields(view))


class SlaTrackingResponse(SlaViewResponse):
    """One row of the SLA tracking list."""

    id: str
    incident_id: str
    incident_number: str
    category: str
    severity: str
    status: str
    is_escalated: bool
    assigned_to: Optional[UserBrief] = None


class SweepResponse(CamelModel):
    """Outcome of one breach sweep."""

    examined: int
    response_breaches: int
    resolution_breaches: int
