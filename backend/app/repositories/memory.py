"""
In-Memory Storage
=================

Storage ports backed by plain dictionaries of transient ORM instances.

Used by unit tests and handy for local experiments. A unit of work holds
the database's re-entrant lock from ``__enter__`` to ``__exit__``, so
units run one at a time, which stands in for the row lock of the SQL
implementation. Rollback restores a snapshot taken when the unit began.

Column defaults declared on the models only fire on a SQL flush, so they
are applied by hand when rows are added here.
"""

import threading
from contextlib import contextmanager
from typing import Any, Dict, Iterable, Iterator, List, Optional, Tuple

from sqlalchemy import inspect

from app.core.sla import as_utc
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

TABLES = (
    "incidents",
    "assignments",
    "status_logs",
    "media",
    "comments",
    "impacted_people",
    "sla_rules",
    "sla_tracking",
    "notifications",
)


# ==========================
# Helpers
# ==========================

def _apply_defaults(obj: Any) -> Any:
    for attr in inspect(type(obj)).column_attrs:
        if getattr(obj, attr.key) is not None:
            continue
        default = attr.columns[0].default
        if default is None:
            continue
        if default.is_callable:
            setattr(obj, attr.key, default.arg(None))
        elif default.is_scalar:
            setattr(obj, attr.key, default.arg)
    return obj


def _clone(obj: Any) -> Any:
    mapper = inspect(type(obj))
    return type(obj)(**{attr.key: getattr(obj, attr.key) for attr in mapper.column_attrs})


def _same(left: Optional[str], right: str) -> bool:
    return (left or "").lower() == right.lower()


class InMemoryDatabase:
    """
    Process-local tables keyed by primary key.

    Directory data (users, buildings, departments) is seeded with the
    ``add_*`` helpers and is read-only to the case service.
    """

    def __init__(self):
        self.lock = threading.RLock()
        self.tables: Dict[str, Dict[str, Any]] = {name: {} for name in TABLES}
        self.users: Dict[str, User] = {}
        self.buildings: Dict[str, Building] = {}
        self.departments: Dict[str, Department] = {}

    def add_user(self, user: User, roles: Iterable[str] = ()) -> User:
        _apply_defaults(user)
        user.roles = [UserRole(user_id=user.id, role=role) for role in roles]
        self.users[user.id] = user
        return user

    def add_building(self, building: Building) -> Building:
        _apply_defaults(building)
        self.buildings[building.id] = building
        return building

    def add_department(self, department: Department) -> Department:
        _apply_defaults(department)
        self.departments[department.id] = department
        return department

    def snapshot(self) -> Dict[str, Dict[str, Any]]:
        return {
            name: {key: _clone(row) for key, row in table.items()}
            for name, table in self.tables.items()
        }

    def restore(self, snapshot: Dict[str, Dict[str, Any]]) -> None:
        for name, rows in snapshot.items():
            self.tables[name].clear()
            self.tables[name].update(rows)


# ==========================
# Stores
# ==========================

class InMemoryCaseStore(CaseStore):
    def __init__(self, db: InMemoryDatabase):
        self.db = db

    @property
    def _cases(self) -> Dict[str, Incident]:
        return self.db.tables["incidents"]

    def add(self, case: Incident) -> Incident:
        _apply_defaults(case)
        self._cases[case.id] = case
        return case

    def get(
        self,
        case_id: str,
        *,
        for_update: bool = False,
        include_deleted: bool = False,
    ) -> Optional[Incident]:
        case = self._cases.get(case_id)
        if case is None or (case.deleted_at is not None and not include_deleted):
            return None
        return case

    def get_by_number(self, number: str, *, include_deleted: bool = False) -> Optional[Incident]:
        for case in self._cases.values():
            if case.incident_number == number:
                if case.deleted_at is not None and not include_deleted:
                    return None
                return case
        return None

    def update(self, case_id: str, changes: Dict[str, Any]) -> Incident:
        case = self._cases[case_id]
        for field, value in changes.items():
            setattr(case, field, value)
        return case

    def list(self, query: CaseQuery, take: int, skip: int) -> Tuple[List[Incident], int]:
        assigned_cases = None
        if query.assigned_to_id:
            assigned_cases = {
                record.incident_id
                for record in self.db.tables["assignments"].values()
                if record.assigned_to_id == query.assigned_to_id
            }

        def matches(case: Incident) -> bool:
            if case.deleted_at is not None:
                return False
            if query.status and case.status != query.status:
                return False
            if query.building_id and case.building_id != query.building_id:
                return False
            if query.reported_by_id and case.reported_by_id != query.reported_by_id:
                return False
            if query.type and case.type != query.type:
                return False
            if query.severity and not _same(case.severity, query.severity):
                return False
            if query.category and not _same(case.category, query.category):
                return False
            if query.is_escalated and not case.is_escalated:
                return False
            if assigned_cases is not None and case.id not in assigned_cases:
                return False
            return True

        rows = sorted(
            (case for case in self._cases.values() if matches(case)),
            key=lambda case: (as_utc(case.created_at), case.incident_number),
            reverse=True,
        )
        return rows[skip:skip + take], len(rows)

    def distinct_categories(self) -> List[str]:
        return sorted({
            case.category for case in self._cases.values() if case.deleted_at is None
        })

    def add_media(self, media: IncidentMedia) -> IncidentMedia:
        _apply_defaults(media)
        self.db.tables["media"][media.id] = media
        return media

    def list_media(self, case_id: str) -> List[IncidentMedia]:
        rows = [m for m in self.db.tables["media"].values() if m.incident_id == case_id]
        return sorted(rows, key=lambda m: as_utc(m.uploaded_at), reverse=True)

    def add_comment(self, comment: IncidentComment) -> IncidentComment:
        _apply_defaults(comment)
        self.db.tables["comments"][comment.id] = comment
        return comment

    def list_comments(self, case_id: str) -> List[IncidentComment]:
        rows = [c for c in self.db.tables["comments"].values() if c.incident_id == case_id]
        return sorted(rows, key=lambda c: as_utc(c.created_at))

    def add_impacted_person(self, person: ImpactedPerson) -> ImpactedPerson:
        _apply_defaults(person)
        self.db.tables["impacted_people"][person.id] = person
        return person

    def list_impacted_people(self, case_id: str) -> List[ImpactedPerson]:
        return [
            p for p in self.db.tables["impacted_people"].values() if p.incident_id == case_id
        ]


class InMemoryLedgerStore(LedgerStore):
    def __init__(self, db: InMemoryDatabase):
        self.db = db

    def append(self, record: IncidentAssignment) -> IncidentAssignment:
        _apply_defaults(record)
        self.db.tables["assignments"][record.id] = record
        return record

    def list_for_case(self, case_id: str) -> List[IncidentAssignment]:
        rows = [
            r for r in self.db.tables["assignments"].values() if r.incident_id == case_id
        ]
        return sorted(rows, key=lambda r: (as_utc(r.assigned_at), r.sequence))

    def latest(self, case_id: str) -> Optional[IncidentAssignment]:
        rows = self.list_for_case(case_id)
        return rows[-1] if rows else None

    def latest_for_cases(self, case_ids: Iterable[str]) -> Dict[str, IncidentAssignment]:
        latest: Dict[str, IncidentAssignment] = {}
        for case_id in case_ids:
            record = self.latest(case_id)
            if record is not None:
                latest[case_id] = record
        return latest

    def next_sequence(self, case_id: str) -> int:
        sequences = [
            r.sequence for r in self.db.tables["assignments"].values() if r.incident_id == case_id
        ]
        return max(sequences, default=0) + 1


class InMemoryJournalStore(JournalStore):
    def __init__(self, db: InMemoryDatabase):
        self.db = db

    def append(self, entry: IncidentStatusLog) -> IncidentStatusLog:
        _apply_defaults(entry)
        self.db.tables["status_logs"][entry.id] = entry
        return entry

    def list_for_case(self, case_id: str) -> List[IncidentStatusLog]:
        rows = [
            e for e in self.db.tables["status_logs"].values() if e.incident_id == case_id
        ]
        return sorted(rows, key=lambda e: (as_utc(e.changed_at), e.sequence))

    def next_sequence(self, case_id: str) -> int:
        sequences = [
            e.sequence for e in self.db.tables["status_logs"].values() if e.incident_id == case_id
        ]
        return max(sequences, default=0) + 1


class InMemorySLAStore(SLAStore):
    def __init__(self, db: InMemoryDatabase):
        self.db = db

    @property
    def _rules(self) -> Dict[str, SLARule]:
        return self.db.tables["sla_rules"]

    @property
    def _tracking(self) -> Dict[str, IncidentSLATracking]:
        return self.db.tables["sla_tracking"]

    def find_rule(self, category: str, severity: str) -> Optional[SLARule]:
        for rule in self._rules.values():
            if rule.category == category and rule.severity == severity:
                return rule
        return None

    def get_rule(self, rule_id: str) -> Optional[SLARule]:
        return self._rules.get(rule_id)

    def list_rules(self) -> List[SLARule]:
        return sorted(self._rules.values(), key=lambda r: (r.category, r.severity))

    def add_rule(self, rule: SLARule) -> SLARule:
        _apply_defaults(rule)
        self._rules[rule.id] = rule
        return rule

    def update_rule(self, rule_id: str, changes: Dict[str, Any]) -> SLARule:
        rule = self._rules[rule_id]
        for field, value in changes.items():
            setattr(rule, field, value)
        return rule

    def delete_rule(self, rule_id: str) -> None:
        self._rules.pop(rule_id, None)

    def rule_in_use(self, rule_id: str) -> bool:
        return any(t.sla_id == rule_id for t in self._tracking.values())

    def add_tracking(self, tracking: IncidentSLATracking) -> IncidentSLATracking:
        _apply_defaults(tracking)
        self._tracking[tracking.id] = tracking
        return tracking

    def get_tracking(self, case_id: str) -> Optional[IncidentSLATracking]:
        for tracking in self._tracking.values():
            if tracking.incident_id == case_id:
                return tracking
        return None

    def list_tracking(self) -> List[Tuple[IncidentSLATracking, Incident]]:
        cases = self.db.tables["incidents"]
        pairs = [
            (tracking, cases[tracking.incident_id])
            for tracking in self._tracking.values()
            if tracking.incident_id in cases and cases[tracking.incident_id].deleted_at is None
        ]
        return sorted(pairs, key=lambda pair: as_utc(pair[0].resolution_due_at))

    def mark_breached(
        self,
        tracking_id: str,
        *,
        response: bool = False,
        resolution: bool = False,
    ) -> None:
        tracking = self._tracking[tracking_id]
        if response:
            tracking.response_breached = True
        if resolution:
            tracking.resolution_breached = True


class InMemoryDirectoryStore(DirectoryStore):
    def __init__(self, db: InMemoryDatabase):
        self.db = db

    def get_user(self, user_id: str) -> Optional[User]:
        return self.db.users.get(user_id)

    def users_with_role(self, role: str) -> List[User]:
        users = [u for u in self.db.users.values() if u.has_role(role)]
        return sorted(users, key=lambda u: u.name)

    def building_for_user(self, user_id: str) -> Optional[str]:
        user = self.db.users.get(user_id)
        if user is None or user.department_id is None:
            return None
        department = self.db.departments.get(user.department_id)
        return department.building_id if department else None

    def get_building(self, building_id: str) -> Optional[Building]:
        return self.db.buildings.get(building_id)

    def get_department(self, department_id: str) -> Optional[Department]:
        return self.db.departments.get(department_id)


class InMemoryNotificationStore(NotificationStore):
    def __init__(self, db: InMemoryDatabase):
        self.db = db

    def add(self, notification: Notification) -> Notification:
        _apply_defaults(notification)
        self.db.tables["notifications"][notification.id] = notification
        return notification

    def list_for_user(self, user_id: str) -> List[Notification]:
        rows = [
            n for n in self.db.tables["notifications"].values() if n.user_id == user_id
        ]
        return sorted(rows, key=lambda n: as_utc(n.created_at), reverse=True)


# ==========================
# Unit of Work
# ==========================

class InMemoryUnitOfWork(UnitOfWork):
    def __init__(self, db: InMemoryDatabase):
        self.db = db
        self.cases = InMemoryCaseStore(db)
        self.ledger = InMemoryLedgerStore(db)
        self.journal = InMemoryJournalStore(db)
        self.sla = InMemorySLAStore(db)
        self.directory = InMemoryDirectoryStore(db)
        self.notifications = InMemoryNotificationStore(db)
        self._snapshot: Optional[Dict[str, Dict[str, Any]]] = None

    def __enter__(self) -> "InMemoryUnitOfWork":
        self.db.lock.acquire()
        self._snapshot = self.db.snapshot()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        try:
            super().__exit__(exc_type, exc_val, exc_tb)
        finally:
            self._snapshot = None
            self.db.lock.release()

    def commit(self) -> None:
        self._snapshot = self.db.snapshot()

    def rollback(self) -> None:
        if self._snapshot is not None:
            self.db.restore(self._snapshot)

    @contextmanager
    def savepoint(self) -> Iterator[None]:
        snapshot = self.db.snapshot()
        try:
            yield
        except Exception:
            self.db.restore(snapshot)
            raise
