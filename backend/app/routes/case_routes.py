"""
Case Routes Module
==================

HTTP endpoints for incident cases.

Features:
- Case reporting, listing and detail
- Lifecycle operations (assign, status, escalate, close, delete)
- Evidence, comments and activity timeline
- SLA tracking list

Identity:
- Every endpoint requires the gateway's ``X-User-ID`` header
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status

from app.core.dependencies.auth import Actor, get_current_actor
from app.core.dependencies.context import bind_case_context
from app.core.dependencies.services import get_case_service
from app.core.logging import get_logger
from app.schemas import (
    ActivityCreate,
    AssignRequest,
    CaseCreate,
    CaseDetailResponse,
    CaseFilters,
    CaseListResponse,
    CaseResponse,
    CaseUpdate,
    CommentCreate,
    CommentResponse,
    ErrorResponse,
    EscalateRequest,
    EvidenceCreate,
    EvidenceResponse,
    SlaTrackingResponse,
    StatusUpdateRequest,
    TimelineEntry,
)
from app.services.case_service import CaseService

# Initialize logger
logger = get_logger(__name__)


# =====================================
# Router Setup
# =====================================

router = APIRouter(
    prefix="/cases",
    tags=["Cases"],
    dependencies=[Depends(bind_case_context)],
    responses={
        401: {"model": ErrorResponse, "description": "Caller not identified"},
        404: {"model": ErrorResponse, "description": "Case not found"},
        422: {"model": ErrorResponse, "description": "Validation error"},
    },
)


# =====================================
# Reporting and Queries
# =====================================

@router.post(
    "",
    response_model=CaseResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Report Case",
    description="Raise a new case. The building defaults to the reporter's department building.",
)
def create_case(
    payload: CaseCreate,
    actor: Actor = Depends(get_current_actor),
    service: CaseService = Depends(get_case_service),
) -> CaseResponse:
    return service.create(payload, actor.user_id)


@router.get(
    "",
    response_model=CaseListResponse,
    summary="List Cases",
    description="Filtered case listing, newest first. Deleted cases are excluded.",
)
def list_cases(
    status_filter: Optional[str] = Query(default=None, alias="status"),
    building_id: Optional[str] = Query(default=None, alias="buildingId"),
    reported_by_id: Optional[str] = Query(default=None, alias="reportedById"),
    type: Optional[str] = Query(default=None),
    severity: Optional[str] = Query(default=None),
    category: Optional[str] = Query(default=None),
    is_escalated: Optional[str] = Query(default=None, alias="isEscalated"),
    assigned_to_id: Optional[str] = Query(default=None, alias="assignedToId"),
    take: Optional[int] = Query(default=None, ge=1),
    skip: int = Query(default=0, ge=0),
    actor: Actor = Depends(get_current_actor),
    service: CaseService = Depends(get_case_service),
) -> CaseListResponse:
    """
    List cases.

    ``isEscalated`` narrows the listing only when it is ``true``.
    """
    filters = CaseFilters(
        status=status_filter,
        building_id=building_id,
        reported_by_id=reported_by_id,
        type=type,
        severity=severity,
        category=category,
        is_escalated=True if (is_escalated or "").lower() == "true" else None,
        assigned_to_id=assigned_to_id,
        take=take,
        skip=skip,
    )
    return service.list(filters)


@router.get(
    "/categories/list",
    response_model=List[str],
    summary="List Categories",
)
def list_categories(
    actor: Actor = Depends(get_current_actor),
    service: CaseService = Depends(get_case_service),
) -> List[str]:
    return service.list_categories()


@router.get(
    "/sla/tracking",
    response_model=List[SlaTrackingResponse],
    summary="SLA Tracking",
    description="SLA state of every tracked case, soonest resolution deadline first.",
)
def sla_tracking(
    actor: Actor = Depends(get_current_actor),
    service: CaseService = Depends(get_case_service),
) -> List[SlaTrackingResponse]:
    return service.list_sla_tracking()


@router.get(
    "/{id_or_number}",
    response_model=CaseDetailResponse,
    summary="Case Detail",
    description="Look a case up by id or case number.",
)
def get_case(
    id_or_number: str,
    actor: Actor = Depends(get_current_actor),
    service: CaseService = Depends(get_case_service),
) -> CaseDetailResponse:
    return service.get_detail(id_or_number)


@router.get(
    "/{id_or_number}/activity-timeline",
    response_model=List[TimelineEntry],
    summary="Activity Timeline",
)
def activity_timeline(
    id_or_number: str,
    actor: Actor = Depends(get_current_actor),
    service: CaseService = Depends(get_case_service),
) -> List[TimelineEntry]:
    return service.timeline(id_or_number)


# =====================================
# Lifecycle
# =====================================

@router.put(
    "/{case_id}",
    response_model=CaseResponse,
    summary="Update Case",
)
def update_case(
    case_id: str,
    payload: CaseUpdate,
    actor: Actor = Depends(get_current_actor),
    service: CaseService = Depends(get_case_service),
) -> CaseResponse:
    return service.update(case_id, payload, actor.user_id)


@router.put(
    "/{case_id}/assign",
    response_model=CaseResponse,
    summary="Assign Case",
)
def assign_case(
    case_id: str,
    payload: AssignRequest,
    actor: Actor = Depends(get_current_actor),
    service: CaseService = Depends(get_case_service),
) -> CaseResponse:
    return service.assign(case_id, payload.assigned_to_id, actor.user_id)


@router.put(
    "/{case_id}/status",
    response_model=CaseResponse,
    summary="Update Case Status",
)
def update_case_status(
    case_id: str,
    payload: StatusUpdateRequest,
    actor: Actor = Depends(get_current_actor),
    service: CaseService = Depends(get_case_service),
) -> CaseResponse:
    return service.update_status(case_id, payload.status, actor.user_id)


@router.put(
    "/{case_id}/escalate",
    response_model=CaseResponse,
    summary="Escalate Case",
)
def escalate_case(
    case_id: str,
    payload: EscalateRequest,
    actor: Actor = Depends(get_current_actor),
    service: CaseService = Depends(get_case_service),
) -> CaseResponse:
    return service.escalate(case_id, actor.user_id, payload.assigned_to_id, payload.reason)


@router.put(
    "/{case_id}/close",
    response_model=CaseResponse,
    summary="Close Case",
)
def close_case(
    case_id: str,
    actor: Actor = Depends(get_current_actor),
    service: CaseService = Depends(get_case_service),
) -> CaseResponse:
    return service.close(case_id, actor.user_id)


@router.delete(
    "/{case_id}",
    response_model=CaseResponse,
    summary="Delete Case",
    description="Soft delete: the case disappears from listings, its history is kept.",
)
def delete_case(
    case_id: str,
    actor: Actor = Depends(get_current_actor),
    service: CaseService = Depends(get_case_service),
) -> CaseResponse:
    return service.soft_delete(case_id, actor.user_id)


# =====================================
# Evidence, Comments, Activity
# =====================================

@router.post(
    "/{case_id}/evidence",
    response_model=EvidenceResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Add Evidence",
)
def add_evidence(
    case_id: str,
    payload: EvidenceCreate,
    actor: Actor = Depends(get_current_actor),
    service: CaseService = Depends(get_case_service),
) -> EvidenceResponse:
    return service.add_evidence(case_id, payload, actor.user_id)


@router.get(
    "/{case_id}/evidence",
    response_model=List[EvidenceResponse],
    summary="List Evidence",
)
def list_evidence(
    case_id: str,
    actor: Actor = Depends(get_current_actor),
    service: CaseService = Depends(get_case_service),
) -> List[EvidenceResponse]:
    return service.list_evidence(case_id)


@router.post(
    "/{case_id}/comments",
    response_model=CommentResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Add Comment",
)
def add_comment(
    case_id: str,
    payload: CommentCreate,
    actor: Actor = Depends(get_current_actor),
    service: CaseService = Depends(get_case_service),
) -> CommentResponse:
    return service.add_comment(case_id, payload.comment, actor.user_id)


@router.get(
    "/{case_id}/comments",
    response_model=List[CommentResponse],
    summary="List Comments",
)
def list_comments(
    case_id: str,
    actor: Actor = Depends(get_current_actor),
    service: CaseService = Depends(get_case_service),
) -> List[CommentResponse]:
    return service.list_comments(case_id)


@router.post(
    "/{case_id}/activity",
    response_model=Optional[TimelineEntry],
    status_code=status.HTTP_201_CREATED,
    summary="Add Activity",
    description="Narrative journal entry. The case status is unchanged.",
)
def add_activity(
    case_id: str,
    payload: ActivityCreate,
    actor: Actor = Depends(get_current_actor),
    service: CaseService = Depends(get_case_service),
) -> Optional[TimelineEntry]:
    return service.add_activity(case_id, payload.description, actor.user_id)
