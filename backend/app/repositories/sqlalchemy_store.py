"""
SQLAlchemy Storage
==================

Storage ports backed by a SQLAlchemy session.

Every write is flushed immediately so later reads in the same unit of
work (which run with ``autoflush=False``) see it, and so constraint
violations surface at the write that caused them.

Loading a case ``for_update`` issues ``SELECT ... FOR UPDATE``; concurrent
operations on the same case serialize on that row lock. SQLite ignores
the clause and serializes writers at the database level instead.
"""

from contextlib import contextmanager
from typing import Any, Dict, Iterable, Iterator, List, Optional, Tuple

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from app.models import (
    Building,
    Department,
    ImpactedPerson,
    Incident,
    IncidentAssignment,
    IncidentComment,
    IncidentMedia,
    IncidentSLATracking,
    IncidentStatusLog,
    Notification,
    SLARule,
    User,
    UserRole,
)
from app.repositories.base import (
    CaseQuery,
    CaseStore,
    DirectoryStore,
    JournalStore,
    LedgerStore,
    NotificationStore,
    SLAStore,
    UnitOfWork,
)


class SqlAlchemyCaseStore(CaseStore):
    def __init__(self, session: Session):
        self.session = session

    def add(self, case: Incident) -> Incident:
        self.session.add(case)
        self.session.flush()
        return case

    def get(
        self,
        case_id: str,
        *,
        for_update: bool = False,
        include_deleted: bool = False,
    ) -> Optional[Incident]:
        if for_update:
            case = self.session.get(
                Incident,
                case_id,
                with_for_update=True,
                populate_existing=True,
            )
        else:
            case = self.session.get(Incident, case_id)

        if case is None or (case.deleted_at is not None and not include_deleted):
            return None
        return case

    def get_by_number(self, number: str, *, include_deleted: bool = False) -> Optional[Incident]:
        stmt = select(Incident).where(Incident.incident_number == number)
        if not include_deleted:
            stmt = stmt.where(Incident.deleted_at.is_(None))
        return self.session.scalars(stmt).first()

    def update(self, case_id: str, changes: Dict[str, Any]) -> Incident:
        case = self.session.get(Incident, case_id)
        for field, value in changes.items():
            setattr(case, field, value)
        self.session.flush()
        return case

    def list(self, query: CaseQuery, take: int, skip: int) -> Tuple[List[Incident], int]:
        stmt = select(Incident).where(Incident.deleted_at.is_(None))

        if query.status:
            stmt = stmt.where(Incident.status == query.status)
        if query.building_id:
            stmt = stmt.where(Incident.building_id == query.building_id)
        if query.reported_by_id:
            stmt = stmt.where(Incident.reported_by_id == query.reported_by_id)
        if query.type:
            stmt = stmt.where(Incident.type == query.type)
        if query.severity:
            stmt = stmt.where(func.lower(Incident.severity) == query.severity.lower())
        if query.category:
            stmt = stmt.where(func.lower(Incident.category) == query.category.lower())
        if query.is_escalated:
            stmt = stmt.where(Incident.is_escalated.is_(True))
        if query.assigned_to_id:
            assigned = select(IncidentAssignment.incident_id).where(
                IncidentAssignment.assigned_to_id == query.assigned_to_id
            )
            stmt = stmt.where(Incident.id.in_(assigned))

        total = self.session.scalar(select(func.count()).select_from(stmt.subquery())) or 0

        rows = self.session.scalars(
            stmt.order_by(Incident.created_at.desc(), Incident.incident_number.desc())
            .offset(skip)
            .limit(take)
        ).all()

        return list(rows), total

    def distinct_categories(self) -> List[str]:
        stmt = (
            select(Incident.category)
            .where(Incident.deleted_at.is_(None))
            .distinct()
            .order_by(Incident.category)
        )
        return list(self.session.scalars(stmt).all())

    def add_media(self, media: IncidentMedia) -> IncidentMedia:
        self.session.add(media)
        self.session.flush()
        return media

    def list_media(self, case_id: str) -> List[IncidentMedia]:
        stmt = (
            select(IncidentMedia)
            .where(IncidentMedia.incident_id == case_id)
            .order_by(IncidentMedia.uploaded_at.desc())
        )
        return list(self.session.scalars(stmt).all())

    def add_comment(self, comment: IncidentComment) -> IncidentComment:
        self.session.add(comment)
        self.session.flush()
        return comment

    def list_comments(self, case_id: str) -> List[IncidentComment]:
        stmt = (
            select(IncidentComment)
            .where(IncidentComment.incident_id == case_id)
            .order_by(IncidentComment.created_at.asc())
        )
        return list(self.session.scalars(stmt).all())

    def add_impacted_person(self, person: ImpactedPerson) -> ImpactedPerson:
        self.session.add(person)
        self.session.flush()
        return person

    def list_impacted_people(self, case_id: str) -> List[ImpactedPerson]:
        stmt = select(ImpactedPerson).where(ImpactedPerson.incident_id == case_id)
        return list(self.session.scalars(stmt).all())


class SqlAlchemyLedgerStore(LedgerStore):
    def __init__(self, session: Session):
        self.session = session

    def append(self, record: IncidentAssignment) -> IncidentAssignment:
        self.session.add(record)
        self.session.flush()
        return record

    def list_for_case(self, case_id: str) -> List[IncidentAssignment]:
        stmt = (
            select(IncidentAssignment)
            .where(IncidentAssignment.incident_id == case_id)
            .order_by(IncidentAssignment.assigned_at.asc(), IncidentAssignment.sequence.asc())
        )
        return list(self.session.scalars(stmt).all())

    def latest(self, case_id: str) -> Optional[IncidentAssignment]:
        stmt = (
            select(IncidentAssignment)
            .where(IncidentAssignment.incident_id == case_id)
            .order_by(IncidentAssignment.assigned_at.desc(), IncidentAssignment.sequence.desc())
            .limit(1)
        )
        return self.session.scalars(stmt).first()

    def latest_for_cases(self, case_ids: Iterable[str]) -> Dict[str, IncidentAssignment]:
        ids = list(case_ids)
        if not ids:
            return {}
        stmt = (
            select(IncidentAssignment)
            .where(IncidentAssignment.incident_id.in_(ids))
            .order_by(IncidentAssignment.assigned_at.asc(), IncidentAssignment.sequence.asc())
        )
        latest: Dict[str, IncidentAssignment] = {}
        for record in self.session.scalars(stmt):
            latest[record.incident_id] = record
        return latest

    def next_sequence(self, case_id: str) -> int:
        current = self.session.scalar(
            select(func.max(IncidentAssignment.sequence)).where(
                IncidentAssignment.incident_id == case_id
            )
        )
        return (current or 0) + 1


class SqlAlchemyJournalStore(JournalStore):
    def __init__(self, session: Session):
        self.session = session

    def append(self, entry: IncidentStatusLog) -> IncidentStatusLog:
        self.session.add(entry)
        self.session.flush()
        return entry

    def list_for_case(self, case_id: str) -> List[IncidentStatusLog]:
        stmt = (
            select(IncidentStatusLog)
            .where(IncidentStatusLog.incident_id == case_id)
            .order_by(IncidentStatusLog.changed_at.asc(), IncidentStatusLog.sequence.asc())
        )
        return list(self.session.scalars(stmt).all())

    def next_sequence(self, case_id: str) -> int:
        current = self.session.scalar(
            select(func.max(IncidentStatusLog.sequence)).where(
                IncidentStatusLog.incident_id == case_id
            )
        )
        return (current or 0) + 1


class SqlAlchemySLAStore(SLAStore):
    def __init__(self, session: Session):
        self.session = session

    def find_rule(self, category: str, severity: str) -> Optional[SLARule]:
        stmt = select(SLARule).where(
            SLARule.category == category,
            SLARule.severity == severity,
        )
        return self.session.scalars(stmt).first()

    def get_rule(self, rule_id: str) -> Optional[SLARule]:
        return self.session.get(SLARule, rule_id)

    def list_rules(self) -> List[SLARule]:
        stmt = select(SLARule).order_by(SLARule.category, SLARule.severity)
        return list(self.session.scalars(stmt).all())

    def add_rule(self, rule: SLARule) -> SLARule:
        self.session.add(rule)
        self.session.flush()
        return rule

    def update_rule(self, rule_id: str, changes: Dict[str, Any]) -> SLARule:
        rule = self.session.get(SLARule, rule_id)
        for field, value in changes.items():
            setattr(rule, field, value)
        self.session.flush()
        return rule

    def delete_rule(self, rule_id: str) -> None:
        rule = self.session.get(SLARule, rule_id)
        if rule is not None:
            self.session.delete(rule)
            self.session.flush()

    def rule_in_use(self, rule_id: str) -> bool:
        count = self.session.scalar(
            select(func.count(IncidentSLATracking.id)).where(IncidentSLATracking.sla_id == rule_id)
        )
        return bool(count)

    def add_tracking(self, tracking: IncidentSLATracking) -> IncidentSLATracking:
        self.session.add(tracking)
        self.session.flush()
        return tracking

    def get_tracking(self, case_id: str) -> Optional[IncidentSLATracking]:
        stmt = select(IncidentSLATracking).where(IncidentSLATracking.incident_id == case_id)
        return self.session.scalars(stmt).first()

    def list_tracking(self) -> List[Tuple[IncidentSLATracking, Incident]]:
        stmt = (
            select(IncidentSLATracking, Incident)
            .join(Incident, Incident.id == IncidentSLATracking.incident_id)
            .where(Incident.deleted_at.is_(None))
            .order_by(IncidentSLATracking.resolution_due_at.asc())
        )
        return [(tracking, case) for tracking, case in self.session.execute(stmt).all()]

    def mark_breached(
        self,
        tracking_id: str,
        *,
        response: bool = False,
        resolution: bool = False,
    ) -> None:
        tracking = self.session.get(IncidentSLATracking, tracking_id)
        if response:
            tracking.response_breached = True
        if resolution:
            tracking.resolution_breached = True
        self.session.flush()


class SqlAlchemyDirectoryStore(DirectoryStore):
    def __init__(self, session: Session):
        self.session = session

    def get_user(self, user_id: str) -> Optional[User]:
        return self.session.get(User, user_id)

    def users_with_role(self, role: str) -> List[User]:
        stmt = (
            select(User)
            .join(UserRole, UserRole.user_id == User.id)
            .where(UserRole.role == role)
            .order_by(User.name)
        )
        return list(self.session.scalars(stmt).unique().all())

    def building_for_user(self, user_id: str) -> Optional[str]:
        user = self.session.get(User, user_id)
        if user is None or user.department is None:
            return None
        return user.department.building_id

    def get_building(self, building_id: str) -> Optional[Building]:
        return self.session.get(Building, building_id)

    def get_department(self, department_id: str) -> Optional[Department]:
        return self.session.get(Department, department_id)


class SqlAlchemyNotificationStore(NotificationStore):
    def __init__(self, session: Session):
        self.session = session

    def add(self, notification: Notification) -> Notification:
        self.session.add(notification)
        self.session.flush()
        return notification

    def list_for_user(self, user_id: str) -> List[Notification]:
        stmt = (
            select(Notification)
            .where(Notification.user_id == user_id)
            .order_by(Notification.created_at.desc())
        )
        return list(self.session.scalars(stmt).all())


class SqlAlchemyUnitOfWork(UnitOfWork):
    """Unit of work over one request-scoped session."""

    def __init__(self, session: Session):
        self.session = session
        self.cases = SqlAlchemyCaseStore(session)
        self.ledger = SqlAlchemyLedgerStore(session)
        self.journal = SqlAlchemyJournalStore(session)
        self.sla = SqlAlchemySLAStore(session)
        self.directory = SqlAlchemyDirectoryStore(session)
        self.notifications = SqlAlchemyNotificationStore(session)

    def commit(self) -> None:
        self.session.commit()

    def rollback(self) -> None:
        self.session.rollback()

    @contextmanager
    def savepoint(self) -> Iterator[None]:
        with self.session.begin_nested():
            yield
