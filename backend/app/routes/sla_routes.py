"""
SLA Routes Module
=================

SLA rule administration and the on-demand breach sweep.
"""

from typing import List

from fastapi import APIRouter, Depends, Response, status

from app.core.dependencies.auth import Actor, get_current_actor
from app.core.dependencies.services import get_sla_clock
from app.core.logging import get_logger
from app.schemas import (
    ErrorResponse,
    SLARuleCreate,
    SLARuleResponse,
    SLARuleUpdate,
    SweepResponse,
)
from app.services.sla_service import SlaClock

# Initialize logger
logger = get_logger(__name__)


# =====================================
# Router Setup
# =====================================

router = APIRouter(
    prefix="/sla",
    tags=["SLA"],
    responses={
        401: {"model": ErrorResponse, "description": "Caller not identified"},
    },
)


# =====================================
# Rules
# =====================================

@router.get("/rules", response_model=List[SLARuleResponse], summary="List SLA Rules")
def list_rules(
    actor: Actor = Depends(get_current_actor),
    sla: SlaClock = Depends(get_sla_clock),
) -> List[SLARuleResponse]:
    return sla.list_rules()


@router.post(
    "/rules",
    response_model=SLARuleResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create SLA Rule",
    responses={409: {"model": ErrorResponse, "description": "Rule already exists"}},
)
def create_rule(
    payload: SLARuleCreate,
    actor: Actor = Depends(get_current_actor),
    sla: SlaClock = Depends(get_sla_clock),
) -> SLARuleResponse:
    return sla.create_rule(payload)


@router.get(
    "/rules/{rule_id}",
    response_model=SLARuleResponse,
    summary="Get SLA Rule",
    responses={404: {"model": ErrorResponse, "description": "Rule not found"}},
)
def get_rule(
    rule_id: str,
    actor: Actor = Depends(get_current_actor),
    sla: SlaClock = Depends(get_sla_clock),
) -> SLARuleResponse:
    return sla.get_rule(rule_id)


@router.put(
    "/rules/{rule_id}",
    response_model=SLARuleResponse,
    summary="Update SLA Rule",
    description="Changes apply to cases raised afterwards; tracked cases keep their deadlines.",
)
def update_rule(
    rule_id: str,
    payload: SLARuleUpdate,
    actor: Actor = Depends(get_current_actor),
    sla: SlaClock = Depends(get_sla_clock),
) -> SLARuleResponse:
    return sla.update_rule(rule_id, payload)


@router.delete(
    "/rules/{rule_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete SLA Rule",
    responses={409: {"model": ErrorResponse, "description": "Rule is in use"}},
)
def delete_rule(
    rule_id: str,
    actor: Actor = Depends(get_current_actor),
    sla: SlaClock = Depends(get_sla_clock),
) -> Response:
    sla.delete_rule(rule_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# =====================================
# Sweep
# =====================================

@router.post("/sweep", response_model=SweepResponse, summary="Run Breach Sweep")
def run_sweep(
    actor: Actor = Depends(get_current_actor),
    sla: SlaClock = Depends(get_sla_clock),
) -> SweepResponse:
    logger.info("sla_sweep_requested", actor_id=actor.user_id)
    result = sla.sweep_breaches()
    return SweepResponse(
        examined=result.examined,
        response_breaches=result.response_breaches,
        resolution_breaches=result.resolution_breaches,
    )
