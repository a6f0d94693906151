"""
SLA Service Module
==================

SLA tracking for incident cases.

Two independent concerns live here:

- read-time views (``compute_view``/``list_tracking``): pure computation
  over a tracking row, never writes
- the periodic breach sweep (``sweep_breaches``): sets persisted breach
  flags, only ever from False to True

Tracking starts once, when a case is raised, and snapshots the matching
rule's budgets.
"""

import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, List, Optional

from app.core.config import get_settings
from app.core.enums import IncidentStatus
from app.core.exceptions import (
    SLARuleExistsError,
    SLARuleInUseError,
    SLARuleNotFoundError,
)
from app.core.logging import get_logger, log_execution_time
from app.core.sla import SlaView, as_utc, calculate_sla_due, compute_sla_view, utcnow
from app.models import IncidentSLATracking, SLARule
from app.repositories.base import UnitOfWork
from app.schemas.common import UserBrief
from app.schemas.sla import (
    SLARuleCreate,
    SLARuleResponse,
    SLARuleUpdate,
    SlaTrackingResponse,
)

logger = get_logger(__name__)

# Cases in these states are no longer swept
SWEEP_EXEMPT_STATUSES = frozenset({
    IncidentStatus.COMPLETED.value,
    IncidentStatus.CLOSED.value,
})


@dataclass
class SweepResult:
    examined: int = 0
    response_breaches: int = 0
    resolution_breaches: int = 0


class SlaClock:
    def __init__(
        self,
        uow_factory: Callable[[], UnitOfWork],
        *,
        clock: Callable[[], datetime] = utcnow,
        warning_ratio: Optional[float] = None,
    ):
        self._uow_factory = uow_factory
        self._clock = clock
        self._warning_ratio = (
            warning_ratio if warning_ratio is not None else get_settings().SLA_WARNING_RATIO
        )

    # ==========================
    # Tracking
    # ==========================

    def initialize_tracking(self, uow: UnitOfWork, case_id: str) -> Optional[IncidentSLATracking]:
        """
        Start SLA tracking for a newly raised case.

        Deadlines run from the case's ``created_at``. Cases without a rule
        for their exact (category, severity) are simply not tracked.

        Returns:
            The tracking row, or None when no rule matches
        """
        existing = uow.sla.get_tracking(case_id)
        if existing is not None:
            return existing

        case = uow.cases.get(case_id, include_deleted=True)
        rule = uow.sla.find_rule(case.category, case.severity)
        if rule is None:
            logger.info(
                "sla_rule_not_matched",
                case_id=case_id,
                category=case.category,
                severity=case.severity,
            )
            return None

        tracking = IncidentSLATracking(
            id=str(uuid.uuid4()),
            incident_id=case_id,
            sla_id=rule.id,
            response_minutes=rule.response_minutes,
            resolution_minutes=rule.resolution_minutes,
            response_due_at=calculate_sla_due(case.created_at, rule.response_minutes),
            resolution_due_at=calculate_sla_due(case.created_at, rule.resolution_minutes),
            response_breached=False,
            resolution_breached=False,
            created_at=case.created_at,
        )
        uow.sla.add_tracking(tracking)

        logger.info(
            "sla_tracking_started",
            case_id=case_id,
            sla_id=rule.id,
            resolution_due_at=tracking.resolution_due_at.isoformat(),
        )
        return tracking

    def compute_view(self, tracking: IncidentSLATracking, now: Optional[datetime] = None) -> SlaView:
        """Derived SLA state of a tracking row. Reads breach flags, never sets them."""
        return compute_sla_view(
            response_due_at=tracking.response_due_at,
            resolution_due_at=tracking.resolution_due_at,
            resolution_minutes=tracking.resolution_minutes,
            response_breached=tracking.response_breached,
            resolution_breached=tracking.resolution_breached,
            now=now or self._clock(),
            warning_ratio=self._warning_ratio,
        )

    def view_for_case(
        self,
        uow: UnitOfWork,
        case_id: str,
        now: Optional[datetime] = None,
    ) -> Optional[SlaView]:
        tracking = uow.sla.get_tracking(case_id)
        if tracking is None:
            return None
        return self.compute_view(tracking, now)

    def list_tracking(self, now: Optional[datetime] = None) -> List[SlaTrackingResponse]:
        """
        SLA views for every tracked, non-deleted case.

        Ordered by resolution deadline, soonest first.
        """
        now = now or self._clock()

        with self._uow_factory() as uow:
            pairs = uow.sla.list_tracking()
            latest = uow.ledger.latest_for_cases(case.id for _, case in pairs)

            items = []
            for tracking, case in pairs:
                assignee = None
                record = latest.get(case.id)
                if record is not None:
                    user = uow.directory.get_user(record.assigned_to_id)
                    if user is not None:
                        assignee = UserBrief.model_validate(user)

                items.append(
                    SlaTrackingResponse(
                        id=tracking.id,
                        incident_id=case.id,
                        incident_number=case.incident_number,
                        category=case.category,
                        severity=case.severity,
                        status=case.status,
                        is_escalated=case.is_escalated,
                        assigned_to=assignee,
                        **SlaTrackingResponse.view_fields(self.compute_view(tracking, now)),
                    )
                )
            return items

    # ==========================
    # Breach Sweep
    # ==========================

    @log_execution_time(logger, "sla_sweep")
    def sweep_breaches(self, now: Optional[datetime] = None) -> SweepResult:
        """
        Persist breach flags for open cases.

        - ``response_breached`` once the response deadline has passed while
          the case is still RAISED
        - ``resolution_breached`` once the resolution deadline has passed

        Completed, closed and deleted cases are skipped. Flags are never
        cleared, so replaying a sweep changes nothing.
        """
        now = as_utc(now or self._clock())
        result = SweepResult()

        with self._uow_factory() as uow:
            for tracking, case in uow.sla.list_tracking():
                if case.status in SWEEP_EXEMPT_STATUSES:
                    continue
                result.examined += 1

                response = (
                    not tracking.response_breached
                    and case.status == IncidentStatus.RAISED.value
                    and now > as_utc(tracking.response_due_at)
                )
                resolution = (
                    not tracking.resolution_breached
                    and now > as_utc(tracking.resolution_due_at)
                )

                if response or resolution:
                    uow.sla.mark_breached(tracking.id, response=response, resolution=resolution)
                    result.response_breaches += int(response)
                    result.resolution_breaches += int(resolution)
                    logger.info(
                        "sla_breach_flagged",
                        case_id=case.id,
                        response=response,
                        resolution=resolution,
                    )

        logger.info(
            "sla_sweep_finished",
            examined=result.examined,
            response_breaches=result.response_breaches,
            resolution_breaches=result.resolution_breaches,
        )
        return result

    # ==========================
    # Rules
    # ==========================

    def list_rules(self) -> List[SLARuleResponse]:
        with self._uow_factory() as uow:
            return [SLARuleResponse.model_validate(rule) for rule in uow.sla.list_rules()]

    def get_rule(self, rule_id: str) -> SLARuleResponse:
        with self._uow_factory() as uow:
            rule = uow.sla.get_rule(rule_id)
            if rule is None:
                raise SLARuleNotFoundError(rule_id)
            return SLARuleResponse.model_validate(rule)

    def create_rule(self, data: SLARuleCreate) -> SLARuleResponse:
        now = self._clock()
        with self._uow_factory() as uow:
            if uow.sla.find_rule(data.category, data.severity) is not None:
                raise SLARuleExistsError(data.category, data.severity)

            rule = uow.sla.add_rule(
                SLARule(
                    id=str(uuid.uuid4()),
                    category=data.category,
                    severity=data.severity,
                    response_minutes=data.response_minutes,
                    resolution_minutes=data.resolution_minutes,
                    created_at=now,
                    updated_at=now,
                )
            )
            response = SLARuleResponse.model_validate(rule)

        logger.info(
            "sla_rule_created",
            sla_id=response.id,
            category=response.category,
            severity=response.severity,
        )
        return response

    def update_rule(self, rule_id: str, data: SLARuleUpdate) -> SLARuleResponse:
        """Change a rule's budgets. Existing tracking rows keep their snapshot."""
        changes = data.model_dump(exclude_none=True)
        with self._uow_factory() as uow:
            if uow.sla.get_rule(rule_id) is None:
                raise SLARuleNotFoundError(rule_id)
            changes["updated_at"] = self._clock()
            rule = uow.sla.update_rule(rule_id, changes)
            response = SLARuleResponse.model_validate(rule)

        logger.info("sla_rule_updated", sla_id=rule_id, fields=sorted(changes))
        return response

    def delete_rule(self, rule_id: str) -> None:
        with self._uow_factory() as uow:
            if uow.sla.get_rule(rule_id) is None:
                raise SLARuleNotFoundError(rule_id)
            if uow.sla.rule_in_use(rule_id):
                raise SLARuleInUseError(rule_id)
            uow.sla.delete_rule(rule_id)

        logger.info("sla_rule_deleted", sla_id=rule_id)
