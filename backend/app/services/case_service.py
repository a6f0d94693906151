"""
Case Service Module
===================

Owns the case lifecycle: creation, assignment, status changes,
escalation, closing and soft deletion, plus the case read models.

Every mutating operation validates its input first, then loads and locks
the case, builds a plan of intents and executes it through the
``IntentCoordinator`` in one unit of work. Validation failures therefore
leave no trace, and a failure in any data intent rolls back the rest.

Journal entries are planned before the case change they describe, so
each entry records the status the case held immediately before.
"""

import json
import uuid
from datetime import datetime
from typing import Callable, List, Optional

from app.core.config import Settings, get_settings
from app.core.enums import IncidentStatus, NotificationModule
from app.core.exceptions import (
    BuildingRequiredError,
    CaseNotFoundError,
    CaseExistsError,
    MissingFieldError,
    NotFoundError,
    UserNotFoundError,
)
from app.core.logging import get_logger
from app.core.sla import utcnow
from app.models import (
    ImpactedPerson,
    Incident,
    IncidentComment,
    IncidentMedia,
    IncidentStatusLog,
    User,
)
from app.repositories.base import CaseQuery, UnitOfWork
from app.schemas.case import (
    AssignmentResponse,
    CaseCreate,
    CaseDetailResponse,
    CaseFilters,
    CaseListResponse,
    CaseResponse,
    CaseUpdate,
    CommentResponse,
    EvidenceCreate,
    EvidenceResponse,
    ImpactedPersonResponse,
    TimelineEntry,
)
from app.schemas.common import PlaceBrief, UserBrief
from app.schemas.sla import SlaViewResponse
from app.services.intents import (
    AppendActivity,
    AppendAssignment,
    InsertCase,
    Intent,
    IntentCoordinator,
    Interceptor,
    Notify,
    PersistCase,
    StartSlaTracking,
    Unit,
)
from app.services.journal import ActivityJournal
from app.services.ledger import AssignmentLedger
from app.services.lifecycle_service import parse_status, validate_transition
from app.services.notifications import NotificationDispatcher, StoreNotificationDispatcher
from app.services.sla_service import SlaClock

logger = get_logger(__name__)


def _blank(value: Optional[str]) -> bool:
    return value is None or not str(value).strip()


def _brief(user: Optional[User]) -> Optional[UserBrief]:
    return UserBrief.model_validate(user) if user is not None else None


class CaseService:
    """
    Incident case lifecycle.

    Args:
        uow_factory: Returns a fresh unit of work per operation
        dispatcher: Notification dispatcher; defaults to in-app rows
        clock: Source of the current time
        settings: Application settings
        interceptors: Called with every plan before it executes
    """

    def __init__(
        self,
        uow_factory: Callable[[], UnitOfWork],
        dispatcher: Optional[NotificationDispatcher] = None,
        *,
        clock: Callable[[], datetime] = utcnow,
        settings: Optional[Settings] = None,
        interceptors: Optional[List[Interceptor]] = None,
    ):
        self._uow_factory = uow_factory
        self._clock = clock
        self._settings = settings or get_settings()

        self.journal = ActivityJournal()
        self.ledger = AssignmentLedger()
        self.sla = SlaClock(
            uow_factory,
            clock=clock,
            warning_ratio=self._settings.SLA_WARNING_RATIO,
        )
        self.coordinator = IntentCoordinator(
            uow_factory,
            dispatcher or StoreNotificationDispatcher(clock),
            journal=self.journal,
            ledger=self.ledger,
            sla_clock=self.sla,
            interceptors=interceptors,
        )

    # ==========================
    # Lifecycle Operations
    # ==========================

    def create(self, data: CaseCreate, reporter_id: str) -> CaseResponse:
        """
        Raise a new case.

        The building comes from the request or, failing that, from the
        reporter's department. The case starts RAISED with a first journal
        entry, supervisors are notified and SLA tracking starts when a
        rule matches.

        Raises:
            BuildingRequiredError: if no building can be resolved
            UserNotFoundError: if the reporter is unknown
            CaseExistsError: if an explicit id or case number is taken
        """
        with self.coordinator.unit() as unit:
            uow = unit.uow

            reporter = uow.directory.get_user(reporter_id)
            if reporter is None:
                raise UserNotFoundError(reporter_id)

            building_id = data.building_id or uow.directory.building_for_user(reporter_id)
            if not building_id:
                raise BuildingRequiredError()
            if uow.directory.get_building(building_id) is None:
                raise NotFoundError("Building", building_id)
            if data.department_id and uow.directory.get_department(data.department_id) is None:
                raise NotFoundError("Department", data.department_id)

            if data.id and uow.cases.get(data.id, include_deleted=True) is not None:
                raise CaseExistsError("id", data.id)

            now = self._clock()

            if data.case_number:
                if uow.cases.get_by_number(data.case_number, include_deleted=True) is not None:
                    raise CaseExistsError("caseNumber", data.case_number)
                number = data.case_number
            else:
                number = self._next_case_number(uow, now)

            case = Incident(
                id=data.id or str(uuid.uuid4()),
                incident_number=number,
                type=data.type or "INCIDENT",
                category=data.category or "others",
                severity=data.severity or "medium",
                status=IncidentStatus.RAISED.value,
                description=data.description or "",
                reported_by_id=reporter_id,
                building_id=building_id,
                department_id=data.department_id,
                location=data.location,
                latitude=data.latitude,
                longitude=data.longitude,
                immediate_actions=(
                    json.dumps(data.immediate_actions)
                    if data.immediate_actions is not None
                    else None
                ),
                other_actions=data.other_actions,
                people_impacted=(
                    data.people_impacted
                    if data.people_impacted is not None
                    else len(data.impacted_people)
                ),
                is_escalated=False,
                occurred_at=data.occurred_at or now,
                created_at=now,
                updated_at=now,
            )

            impacted = [
                ImpactedPerson(
                    id=str(uuid.uuid4()),
                    incident_id=case.id,
                    name=person.name,
                    email=person.email,
                    phone=person.phone,
                )
                for person in data.impacted_people
            ]
            media = [
                self._media_row(case.id, item, reporter_id, now)
                for item in data.media
                if not _blank(item.file_url)
            ]

            plan: List[Intent] = [
                InsertCase(case, impacted_people=impacted, media=media),
                AppendActivity(case.id, IncidentStatus.RAISED, "Incident created", reporter_id, now),
                StartSlaTracking(case.id),
            ]
            plan.extend(
                Notify(
                    user.id,
                    "New Case Reported",
                    f"Case {number} has been reported and requires review.",
                    NotificationModule.CASES.value,
                    case.id,
                )
                for user in uow.directory.users_with_role(self._settings.SUPERVISOR_ROLE)
            )
            unit.execute(plan)
            response = self._to_response(uow, case)

        logger.info(
            "case_created",
            case_id=response.id,
            case_number=response.incident_number,
            reporter_id=reporter_id,
            category=response.category,
            severity=response.severity,
        )
        return response

    def assign(self, case_id: str, assigned_to_id: Optional[str], actor_id: str) -> CaseResponse:
        """
        Hand a case to a practitioner.

        Moves the case to ASSIGNED from any status.

        Raises:
            MissingFieldError: if no assignee is given
            CaseNotFoundError: if the case does not exist or is deleted
            UserNotFoundError: if the assignee is unknown
        """
        if _blank(assigned_to_id):
            raise MissingFieldError("assignedToId")

        with self.coordinator.unit() as unit:
            uow = unit.uow
            case = self._load_for_update(uow, case_id)

            assignee = uow.directory.get_user(assigned_to_id)
            if assignee is None:
                raise UserNotFoundError(assigned_to_id)

            now = self._clock()
            unit.execute([
                AppendAssignment(case.id, assignee.id, actor_id, now),
                AppendActivity(
                    case.id,
                    IncidentStatus.ASSIGNED,
                    f"Assigned to {assignee.name or 'practitioner'}",
                    actor_id,
                    now,
                ),
                PersistCase(case.id, {"status": IncidentStatus.ASSIGNED.value, "updated_at": now}),
                Notify(
                    assignee.id,
                    "Case Assigned to You",
                    f"Case {case.incident_number} has been assigned to you for investigation.",
                    NotificationModule.CASES.value,
                    case.id,
                ),
            ])
            response = self._to_response(uow, case)

        logger.info(
            "case_assigned",
            case_id=case_id,
            assignee_id=assigned_to_id,
            actor_id=actor_id,
        )
        return response

    def update_status(
        self,
        case_id: str,
        status: Optional[str],
        actor_id: str,
        comment: Optional[str] = None,
    ) -> CaseResponse:
        """
        Move a case to another lifecycle status.

        Any recognized status is accepted; with STRICT_TRANSITIONS the move
        must follow the lifecycle graph. Entering UNDER_REVIEW notifies
        whoever made the latest assignment.

        Raises:
            MissingFieldError: if no status is given
            InvalidStatusError: if the status is not a lifecycle state
            InvalidTransitionError: if strict transitions reject the move
            CaseNotFoundError: if the case does not exist or is deleted
        """
        if _blank(status):
            raise MissingFieldError("status")
        new_status = parse_status(status)

        with self.coordinator.unit() as unit:
            case = self._load_for_update(unit.uow, case_id)
            if self._settings.STRICT_TRANSITIONS:
                validate_transition(case.status, new_status)

            unit.execute(self._status_plan(unit, case, new_status, actor_id, comment))
            response = self._to_response(unit.uow, case)

        logger.info(
            "case_status_updated",
            case_id=case_id,
            status=new_status.value,
            actor_id=actor_id,
        )
        return response

    def escalate(
        self,
        case_id: str,
        actor_id: str,
        assigned_to_id: Optional[str],
        reason: Optional[str],
    ) -> CaseResponse:
        """
        Escalate a case to another user with a reason.

        Records a new ledger entry, flags the case as escalated and moves
        it to ASSIGNED.

        Raises:
            MissingFieldError: if the assignee or the reason is missing
            CaseNotFoundError: if the case does not exist or is deleted
            UserNotFoundError: if the assignee is unknown
        """
        if _blank(assigned_to_id):
            raise MissingFieldError("assignedToId")
        if _blank(reason):
            raise MissingFieldError("reason", "Escalation reason is required")
        reason = reason.strip()

        with self.coordinator.unit() as unit:
            uow = unit.uow
            case = self._load_for_update(uow, case_id)

            assignee = uow.directory.get_user(assigned_to_id)
            if assignee is None:
                raise UserNotFoundError(assigned_to_id)
            actor = uow.directory.get_user(actor_id)
            actor_name = actor.name if actor is not None else None

            now = self._clock()
            unit.execute([
                AppendAssignment(case.id, assignee.id, actor_id, now),
                AppendActivity(
                    case.id,
                    IncidentStatus.ASSIGNED,
                    f"Case escalated by {actor_name or 'Unknown'}: {reason}",
                    actor_id,
                    now,
                ),
                PersistCase(
                    case.id,
                    {
                        "status": IncidentStatus.ASSIGNED.value,
                        "is_escalated": True,
                        "escalated_at": now,
                        "escalation_reason": reason,
                        "updated_at": now,
                    },
                ),
                Notify(
                    assignee.id,
                    "Case Escalated to You",
                    f"Case {case.incident_number} has been escalated to you by "
                    f"{actor_name or 'a colleague'}. Reason: {reason}",
                    NotificationModule.CASES.value,
                    case.id,
                ),
            ])
            response = self._to_response(uow, case)

        logger.info(
            "case_escalated",
            case_id=case_id,
            assignee_id=assigned_to_id,
            actor_id=actor_id,
        )
        return response

    def close(self, case_id: str, actor_id: str) -> CaseResponse:
        """Close a case from any status with a single journal entry."""
        with self.coordinator.unit() as unit:
            uow = unit.uow
            case = self._load_for_update(uow, case_id)

            actor = uow.directory.get_user(actor_id)
            narrative = f"Closed by {actor.name if actor is not None else actor_id}"

            unit.execute(self._status_plan(unit, case, IncidentStatus.CLOSED, actor_id, narrative))
            response = self._to_response(uow, case)

        logger.info("case_closed", case_id=case_id, actor_id=actor_id)
        return response

    def soft_delete(self, case_id: str, actor_id: Optional[str] = None) -> CaseResponse:
        """Hide a case from normal queries. Status and history are kept."""
        with self.coordinator.unit() as unit:
            uow = unit.uow
            case = self._load_for_update(uow, case_id)

            now = self._clock()
            unit.execute([PersistCase(case.id, {"deleted_at": now, "updated_at": now})])
            response = self._to_response(uow, case)

        logger.info("case_soft_deleted", case_id=case_id, actor_id=actor_id)
        return response

    def update(self, case_id: str, data: CaseUpdate, actor_id: str) -> CaseResponse:
        """
        Supervisor edits of severity, description and placement.

        A status in the payload goes through the same path as
        ``update_status``. Moving the case to another department adds a
        narrative journal entry.
        """
        new_status = None if _blank(data.status) else parse_status(data.status)

        with self.coordinator.unit() as unit:
            uow = unit.uow
            case = self._load_for_update(uow, case_id)
            now = self._clock()

            changes = {}
            plan: List[Intent] = []

            if data.severity is not None:
                changes["severity"] = data.severity
            if data.description is not None:
                changes["description"] = data.description
            if data.building_id is not None:
                if uow.directory.get_building(data.building_id) is None:
                    raise NotFoundError("Building", data.building_id)
                changes["building_id"] = data.building_id
            if data.department_id is not None and data.department_id != case.department_id:
                department = uow.directory.get_department(data.department_id)
                if department is None:
                    raise NotFoundError("Department", data.department_id)
                changes["department_id"] = data.department_id
                plan.append(
                    AppendActivity(
                        case.id,
                        None,
                        f"Assigned to department: {department.name}",
                        actor_id,
                        now,
                    )
                )

            if new_status is not None:
                if self._settings.STRICT_TRANSITIONS:
                    validate_transition(case.status, new_status)
                plan.extend(self._status_plan(unit, case, new_status, actor_id, None))

            if changes:
                changes["updated_at"] = now
                plan.append(PersistCase(case.id, changes))

            if plan:
                unit.execute(plan)
            response = self._to_response(uow, case)

        logger.info(
            "case_updated",
            case_id=case_id,
            actor_id=actor_id,
            fields=sorted(changes),
            status=new_status.value if new_status else None,
        )
        return response

    def add_activity(
        self,
        case_id: str,
        description: Optional[str],
        actor_id: str,
    ) -> Optional[TimelineEntry]:
        """Narrative journal entry that keeps the current status."""
        if _blank(description):
            raise MissingFieldError("description")

        with self.coordinator.unit() as unit:
            uow = unit.uow
            case = self._load_for_update(uow, case_id)
            entry, = unit.execute([
                AppendActivity(case.id, None, description.strip(), actor_id, self._clock()),
            ])
            response = self._timeline_entry(uow, entry) if entry is not None else None

        logger.info("case_activity_added", case_id=case_id, actor_id=actor_id)
        return response

    # ==========================
    # Evidence and Comments
    # ==========================

    def add_evidence(
        self,
        case_id: str,
        data: EvidenceCreate,
        uploader_id: str,
    ) -> EvidenceResponse:
        if _blank(data.file_url):
            raise MissingFieldError("fileUrl")

        with self._uow_factory() as uow:
            case = self._load(uow, case_id)
            media = uow.cases.add_media(
                self._media_row(case.id, data, uploader_id, self._clock())
            )
            response = EvidenceResponse.model_validate(media)

        logger.info("case_evidence_added", case_id=case_id, evidence_id=response.id)
        return response

    def list_evidence(self, case_id: str) -> List[EvidenceResponse]:
        with self._uow_factory() as uow:
            case = self._load(uow, case_id)
            return [EvidenceResponse.model_validate(m) for m in uow.cases.list_media(case.id)]

    def add_comment(self, case_id: str, text: Optional[str], user_id: str) -> CommentResponse:
        if _blank(text):
            raise MissingFieldError("comment", "Comment is required")

        with self._uow_factory() as uow:
            case = self._load(uow, case_id)
            comment = uow.cases.add_comment(
                IncidentComment(
                    id=str(uuid.uuid4()),
                    incident_id=case.id,
                    user_id=user_id,
                    comment=text.strip(),
                    created_at=self._clock(),
                )
            )
            response = self._comment_response(uow, comment)

        logger.info("case_comment_added", case_id=case_id, user_id=user_id)
        return response

    def list_comments(self, case_id: str) -> List[CommentResponse]:
        with self._uow_factory() as uow:
            case = self._load(uow, case_id)
            return [self._comment_response(uow, c) for c in uow.cases.list_comments(case.id)]

    # ==========================
    # Read Models
    # ==========================

    def get_detail(self, id_or_number: str) -> CaseDetailResponse:
        """Full case view by id or case number."""
        with self._uow_factory() as uow:
            case = self._resolve(uow, id_or_number)

            building = uow.directory.get_building(case.building_id)
            department = (
                uow.directory.get_department(case.department_id) if case.department_id else None
            )
            view = self.sla.view_for_case(uow, case.id)

            return CaseDetailResponse(
                **self._to_response(uow, case).model_dump(),
                reported_by=_brief(uow.directory.get_user(case.reported_by_id)),
                building=PlaceBrief.model_validate(building) if building else None,
                department=PlaceBrief.model_validate(department) if department else None,
                immediate_actions=json.loads(case.immediate_actions) if case.immediate_actions else [],
                other_actions=case.other_actions,
                impacted_people=[
                    ImpactedPersonResponse.model_validate(p)
                    for p in uow.cases.list_impacted_people(case.id)
                ],
                assignments=[
                    AssignmentResponse(
                        id=record.id,
                        assigned_to=_brief(uow.directory.get_user(record.assigned_to_id)),
                        assigned_by=(
                            _brief(uow.directory.get_user(record.assigned_by_id))
                            if record.assigned_by_id
                            else None
                        ),
                        assigned_at=record.assigned_at,
                    )
                    for record in self.ledger.history(uow, case.id)
                ],
                evidence=[EvidenceResponse.model_validate(m) for m in uow.cases.list_media(case.id)],
                comments=[self._comment_response(uow, c) for c in uow.cases.list_comments(case.id)],
                timeline=[self._timeline_entry(uow, e) for e in self.journal.timeline(uow, case.id)],
                sla=SlaViewResponse.from_view(view) if view is not None else None,
            )

    def timeline(self, id_or_number: str) -> List[TimelineEntry]:
        with self._uow_factory() as uow:
            case = self._resolve(uow, id_or_number)
            return [self._timeline_entry(uow, e) for e in self.journal.timeline(uow, case.id)]

    def list(self, filters: CaseFilters) -> CaseListResponse:
        """
        Filtered listing, newest first.

        Raises:
            InvalidStatusError: if the status filter is not a lifecycle state
        """
        take = min(filters.take or self._settings.DEFAULT_PAGE_SIZE, self._settings.MAX_PAGE_SIZE)
        query = CaseQuery(
            status=parse_status(filters.status).value if filters.status else None,
            building_id=filters.building_id,
            reported_by_id=filters.reported_by_id,
            type=filters.type,
            severity=filters.severity,
            category=filters.category,
            is_escalated=filters.is_escalated,
            assigned_to_id=filters.assigned_to_id,
        )

        with self._uow_factory() as uow:
            rows, total = uow.cases.list(query, take, filters.skip)
            latest = uow.ledger.latest_for_cases(case.id for case in rows)
            data = [self._to_response(uow, case, latest.get(case.id)) for case in rows]

        return CaseListResponse(data=data, total=total)

    def list_categories(self) -> List[str]:
        with self._uow_factory() as uow:
            return uow.cases.distinct_categories()

    def list_sla_tracking(self):
        return self.sla.list_tracking()

    # ==========================
    # Helpers
    # ==========================

    def _status_plan(
        self,
        unit: Unit,
        case: Incident,
        new_status: IncidentStatus,
        actor_id: str,
        comment: Optional[str],
    ) -> List[Intent]:
        now = self._clock()
        plan: List[Intent] = [
            AppendActivity(
                case.id,
                new_status,
                comment or f"Status updated to {new_status.value}",
                actor_id,
                now,
            ),
            PersistCase(case.id, {"status": new_status.value, "updated_at": now}),
        ]

        if new_status == IncidentStatus.UNDER_REVIEW:
            latest = unit.uow.ledger.latest(case.id)
            if latest is not None and latest.assigned_by_id:
                plan.append(
                    Notify(
                        latest.assigned_by_id,
                        "Case Submitted for Review",
                        f"Case {case.incident_number} has been submitted back for your review.",
                        NotificationModule.CASES.value,
                        case.id,
                    )
                )
        return plan

    def _next_case_number(self, uow: UnitOfWork, now: datetime) -> str:
        # <prefix>-<epoch millis>, bumped past numbers already taken
        millis = int(now.timestamp() * 1000)
        prefix = self._settings.CASE_NUMBER_PREFIX
        while uow.cases.get_by_number(f"{prefix}-{millis}", include_deleted=True) is not None:
            millis += 1
        return f"{prefix}-{millis}"

    @staticmethod
    def _media_row(
        case_id: str,
        data: EvidenceCreate,
        uploader_id: Optional[str],
        at: datetime,
    ) -> IncidentMedia:
        return IncidentMedia(
            id=str(uuid.uuid4()),
            incident_id=case_id,
            file_url=data.file_url.strip(),
            file_type=data.file_type or "unknown",
            uploader_role=data.uploader_role,
            uploaded_by_id=uploader_id,
            uploaded_at=at,
        )

    @staticmethod
    def _load(uow: UnitOfWork, case_id: str) -> Incident:
        case = uow.cases.get(case_id)
        if case is None:
            raise CaseNotFoundError(case_id)
        return case

    @staticmethod
    def _load_for_update(uow: UnitOfWork, case_id: str) -> Incident:
        case = uow.cases.get(case_id, for_update=True)
        if case is None:
            raise CaseNotFoundError(case_id)
        return case

    @staticmethod
    def _resolve(uow: UnitOfWork, id_or_number: str) -> Incident:
        case = uow.cases.get(id_or_number) or uow.cases.get_by_number(id_or_number)
        if case is None:
            raise CaseNotFoundError(id_or_number)
        return case

    def _to_response(self, uow: UnitOfWork, case: Incident, latest=None) -> CaseResponse:
        response = CaseResponse.model_validate(case)
        record = latest if latest is not None else uow.ledger.latest(case.id)
        if record is not None:
            response.assigned_to = _brief(uow.directory.get_user(record.assigned_to_id))
        return response

    @staticmethod
    def _timeline_entry(uow: UnitOfWork, entry: IncidentStatusLog) -> TimelineEntry:
        return TimelineEntry(
            id=entry.id,
            type=entry.new_status,
            old_status=entry.old_status,
            new_status=entry.new_status,
            description=entry.comments or "",
            user=_brief(uow.directory.get_user(entry.user_id)),
            timestamp=entry.changed_at,
        )

    @staticmethod
    def _comment_response(uow: UnitOfWork, comment: IncidentComment) -> CommentResponse:
        return CommentResponse(
            id=comment.id,
            incident_id=comment.incident_id,
            comment=comment.comment,
            user=_brief(uow.directory.get_user(comment.user_id)),
            created_at=comment.created_at,
        )
