"""
Schemas Package Initialization
==============================

Exports all Pydantic schemas for the application.

Usage:
    from app.schemas import CaseCreate, CaseResponse, SlaTrackingResponse
"""

# Common schemas
from app.schemas.common import (
    CamelModel,
    UserBrief,
    PlaceBrief,
    ErrorResponse,
)

# Case schemas
from app.schemas.case import (
    ImpactedPersonInput,
    EvidenceCreate,
    CaseCreate,
    CaseUpdate,
    AssignRequest,
    StatusUpdateRequest,
    EscalateRequest,
    CommentCreate,
    ActivityCreate,
    CaseFilters,
    EvidenceResponse,
    CommentResponse,
    ImpactedPersonResponse,
    TimelineEntry,
    AssignmentResponse,
    CaseResponse,
    CaseDetailResponse,
    CaseListResponse,
)

# SLA schemas
from app.schemas.sla import (
    SLARuleCreate,
    SLARuleUpdate,
    SLARuleResponse,
    SlaViewResponse,
    SlaTrackingResponse,
    SweepResponse,
)

__all__ = [
    # Common
    "CamelModel",
    "UserBrief",
    "PlaceBrief",
    "ErrorResponse",
    # Case
    "ImpactedPersonInput",
    "EvidenceCreate",
    "CaseCreate",
    "CaseUpdate",
    "AssignRequest",
    "StatusUpdateRequest",
    "EscalateRequest",
    "CommentCreate",
    "ActivityCreate",
    "CaseFilters",
    "EvidenceResponse",
    "CommentResponse",
    "ImpactedPersonResponse",
    "TimelineEntry",
    "AssignmentResponse",
    "CaseResponse",
    "CaseDetailResponse",
    "CaseListResponse",
    # SLA
    "SLARuleCreate",
    "SLARuleUpdate",
    "SLARuleResponse",
    "SlaViewResponse",
    "SlaTrackingResponse",
    "SweepResponse",
]
