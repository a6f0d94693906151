"""
Case Schemas Module
===================

Pydantic models for case requests and responses.

JSON uses camelCase. Several request fields also accept the alternative
names older clients send (``categoryId``, ``severityLevel``,
``priorityLevel``, ``storagePath``).
"""

from datetime import datetime
from typing import List, Optional

from pydantic import AliasChoices, Field

from app.schemas.common import CamelModel, PlaceBrief, UserBrief
from app.schemas.sla import SlaViewResponse


# ==========================
# Request Schemas
# ==========================

class ImpactedPersonInput(CamelModel):
    name: str = Field(..., min_length=1, max_length=255)
    email: Optional[str] = Field(default=None, max_length=255)
    phone: Optional[str] = Field(default=None, max_length=64)


class EvidenceCreate(CamelModel):
    """File reference for evidence already stored elsewhere."""

    file_url: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("fileUrl", "file_url", "storagePath", "path", "url"),
        description="Location of the stored file"
    )
    file_type: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("fileType", "file_type"),
        description="MIME type or kind of file; defaults to 'unknown'"
    )
    uploader_role: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("uploaderRole", "uploader_role"),
    )


class CaseCreate(CamelModel):
    """Schema for reporting a new case."""

    id: Optional[str] = Field(
        default=None,
        description="Client supplied id (offline capture)"
    )
    case_number: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("caseNumber", "incidentNumber", "case_number"),
        description="Human readable number; generated when absent"
    )
    type: Optional[str] = Field(default=None, max_length=64)
    category: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("categoryId", "category"),
        max_length=128,
    )
    severity: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("severityLevel", "severity", "priorityLevel"),
        max_length=64,
    )
    description: Optional[str] = None
    occurred_at: Optional[datetime] = Field(
        default=None,
        validation_alias=AliasChoices("occurredAt", "occurred_at"),
    )
    building_id: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("buildingId", "building_id"),
    )
    department_id: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("departmentId", "department_id"),
    )
    location: Optional[str] = Field(default=None, max_length=255)
    latitude: Optional[float] = Field(default=None, ge=-90, le=90)
    longitude: Optional[float] = Field(default=None, ge=-180, le=180)
    immediate_actions: Optional[List[str]] = Field(
        default=None,
        validation_alias=AliasChoices("immediateActions", "immediate_actions"),
    )
    other_actions: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("otherActions", "other_actions"),
    )
    people_impacted: Optional[int] = Field(
        default=None,
        ge=0,
        validation_alias=AliasChoices("peopleImpacted", "people_impacted"),
    )
    impacted_people: List[ImpactedPersonInput] = Field(
        default_factory=list,
        validation_alias=AliasChoices("impactedPeople", "impacted_people"),
    )
    media: List[EvidenceCreate] = Field(default_factory=list)


class CaseUpdate(CamelModel):
    """Supervisor edits. A status is routed through the lifecycle."""

    severity: Optional[str] = Field(default=None, max_length=64)
    description: Optional[str] = None
    building_id: Optional[str] = None
    department_id: Optional[str] = None
    status: Optional[str] = None


class AssignRequest(CamelModel):
    assigned_to_id: Optional[str] = None


class StatusUpdateRequest(CamelModel):
    status: Optional[str] = None


class EscalateRequest(CamelModel):
    assigned_to_id: Optional[str] = None
    reason: Optional[str] = None


class CommentCreate(CamelModel):
    comment: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("comment", "text"),
    )


class ActivityCreate(CamelModel):
    description: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("description", "comments", "comment"),
    )


class CaseFilters(CamelModel):
    """Query parameters for case listings."""

    status: Optional[str] = None
    building_id: Optional[str] = None
    reported_by_id: Optional[str] = None
    type: Optional[str] = None
    severity: Optional[str] = None
    category: Optional[str] = None
    is_escalated: Optional[bool] = None
    assigned_to_id: Optional[str] = None
    take: Optional[int] = Field(default=None, ge=1)
    skip: int = Field(default=0, ge=0)


# ==========================
# Response Schemas
# ==========================

class EvidenceResponse(CamelModel):
    id: str
    incident_id: str
    file_url: str
    file_type: str
    uploader_role: Optional[str] = None
    uploaded_by_id: Optional[str] = None
    uploaded_at: datetime


class CommentResponse(CamelModel):
    id: str
    incident_id: str
    comment: str
    user: Optional[UserBrief] = None
    created_at: datetime


class ImpactedPersonResponse(CamelModel):
    id: str
    name: str
    email: Optional[str] = None
    phone: Optional[str] = None


class TimelineEntry(CamelModel):
    """One journal entry as shown in the activity timeline."""

    id: str
    type: str
    old_status: str
    new_status: str
    description: str
    user: Optional[UserBrief] = None
    timestamp: datetime


class AssignmentResponse(CamelModel):
    id: str
    assigned_to: Optional[UserBrief] = None
    assigned_by: Optional[UserBrief] = None
    assigned_at: datetime


class CaseResponse(CamelModel):
    """Case summary returned by listings and write operations."""

    id: str
    incident_number: str
    type: str
    category: str
    severity: str
    status: str
    description: str
    reported_by_id: str
    building_id: str
    department_id: Optional[str] = None
    location: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    people_impacted: int = 0
    is_escalated: bool = False
    escalated_at: Optional[datetime] = None
    escalation_reason: Optional[str] = None
    occurred_at: datetime
    created_at: datetime
    updated_at: datetime
    deleted_at: Optional[datetime] = None
    assigned_to: Optional[UserBrief] = None


class CaseDetailResponse(CaseResponse):
    """Full case view with histories."""

    reported_by: Optional[UserBrief] = None
    building: Optional[PlaceBrief] = None
    department: Optional[PlaceBrief] = None
    immediate_actions: List[str] = Field(default_factory=list)
    other_actions: Optional[str] = None
    impacted_people: List[ImpactedPersonResponse] = Field(default_factory=list)
    assignments: List[AssignmentResponse] = Field(default_factory=list)
    evidence: List[EvidenceResponse] = Field(default_factory=list)
    comments: List[CommentResponse] = Field(default_factory=list)
    timeline: List[TimelineEntry] = Field(default_factory=list)
    sla: Optional[SlaViewResponse] = None


class CaseListResponse(CamelModel):
    data: List[CaseResponse]
    total: int = Field(
        ...,
        description="Number of matching cases before pagination"
    )
