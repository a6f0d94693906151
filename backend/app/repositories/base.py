"""
Storage Ports
=============

Abstract storage interfaces used by the case lifecycle services.

Implementations:
- ``app.repositories.sqlalchemy_store``: SQLAlchemy session (production)
- ``app.repositories.memory``: in-process dictionaries (tests, local runs)

A ``UnitOfWork`` groups the stores behind one transaction::

    with uow_factory() as uow:
        case = uow.cases.get(case_id, for_update=True)
        ...

Leaving the block normally commits; an exception rolls everything back.
"""

from abc import ABC, abstractmethod
from contextlib import AbstractContextManager
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Tuple

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
)


@dataclass
class CaseQuery:
    """
    Filters for case listings.

    ``severity`` and ``category`` compare case-insensitively.
    ``is_escalated`` only narrows the result when True.
    ``assigned_to_id`` matches any ledger entry, not only the current one.
    """

    status: Optional[str] = None
    building_id: Optional[str] = None
    reported_by_id: Optional[str] = None
    type: Optional[str] = None
    severity: Optional[str] = None
    category: Optional[str] = None
    is_escalated: Optional[bool] = None
    assigned_to_id: Optional[str] = None


# ============================================================
# Case Store
# ============================================================

class CaseStore(ABC):
    """Case rows and their evidence, comments and impacted people."""

    @abstractmethod
    def add(self, case: Incident) -> Incident:
        pass

    @abstractmethod
    def get(
        self,
        case_id: str,
        *,
        for_update: bool = False,
        include_deleted: bool = False,
    ) -> Optional[Incident]:
        """
        Retrieve a case by id.

        Args:
            case_id: Case identifier
            for_update: Lock the row until the unit of work ends
            include_deleted: Return soft-deleted cases too

        Returns:
            Case if found, None otherwise
        """
        pass

    @abstractmethod
    def get_by_number(self, number: str, *, include_deleted: bool = False) -> Optional[Incident]:
        pass

    @abstractmethod
    def update(self, case_id: str, changes: Dict[str, Any]) -> Incident:
        pass

    @abstractmethod
    def list(self, query: CaseQuery, take: int, skip: int) -> Tuple[List[Incident], int]:
        """
        List non-deleted cases, newest first.

        Returns:
            Tuple of (cases, total_count)
        """
        pass

    @abstractmethod
    def distinct_categories(self) -> List[str]:
        pass

    @abstractmethod
    def add_media(self, media: IncidentMedia) -> IncidentMedia:
        pass

    @abstractmethod
    def list_media(self, case_id: str) -> List[IncidentMedia]:
        """Evidence for a case, newest first."""
        pass

    @abstractmethod
    def add_comment(self, comment: IncidentComment) -> IncidentComment:
        pass

    @abstractmethod
    def list_comments(self, case_id: str) -> List[IncidentComment]:
        """Comments for a case, oldest first."""
        pass

    @abstractmethod
    def add_impacted_person(self, person: ImpactedPerson) -> ImpactedPerson:
        pass

    @abstractmethod
    def list_impacted_people(self, case_id: str) -> List[ImpactedPerson]:
        pass


# ============================================================
# Ledger / Journal Stores
# ============================================================

class LedgerStore(ABC):
    """Append-only assignment history."""

    @abstractmethod
    def append(self, record: IncidentAssignment) -> IncidentAssignment:
        pass

    @abstractmethod
    def list_for_case(self, case_id: str) -> List[IncidentAssignment]:
        """Entries ordered by (assigned_at, sequence)."""
        pass

    @abstractmethod
    def latest(self, case_id: str) -> Optional[IncidentAssignment]:
        pass

    @abstractmethod
    def latest_for_cases(self, case_ids: Iterable[str]) -> Dict[str, IncidentAssignment]:
        pass

    @abstractmethod
    def next_sequence(self, case_id: str) -> int:
        pass


class JournalStore(ABC):
    """Append-only status and narrative history."""

    @abstractmethod
    def append(self, entry: IncidentStatusLog) -> IncidentStatusLog:
        pass

    @abstractmethod
    def list_for_case(self, case_id: str) -> List[IncidentStatusLog]:
        """Entries ordered by (changed_at, sequence)."""
        pass

    @abstractmethod
    def next_sequence(self, case_id: str) -> int:
        pass


# ============================================================
# SLA Store
# ============================================================

class SLAStore(ABC):
    @abstractmethod
    def find_rule(self, category: str, severity: str) -> Optional[SLARule]:
        """Exact (category, severity) match."""
        pass

    @abstractmethod
    def get_rule(self, rule_id: str) -> Optional[SLARule]:
        pass

    @abstractmethod
    def list_rules(self) -> List[SLARule]:
        pass

    @abstractmethod
    def add_rule(self, rule: SLARule) -> SLARule:
        pass

    @abstractmethod
    def update_rule(self, rule_id: str, changes: Dict[str, Any]) -> SLARule:
        pass

    @abstractmethod
    def delete_rule(self, rule_id: str) -> None:
        pass

    @abstractmethod
    def rule_in_use(self, rule_id: str) -> bool:
        pass

    @abstractmethod
    def add_tracking(self, tracking: IncidentSLATracking) -> IncidentSLATracking:
        pass

    @abstractmethod
    def get_tracking(self, case_id: str) -> Optional[IncidentSLATracking]:
        pass

    @abstractmethod
    def list_tracking(self) -> List[Tuple[IncidentSLATracking, Incident]]:
        """
        Tracking rows of non-deleted cases, soonest resolution deadline first.

        Returns:
            List of (tracking, case) pairs
        """
        pass

    @abstractmethod
    def mark_breached(
        self,
        tracking_id: str,
        *,
        response: bool = False,
        resolution: bool = False,
    ) -> None:
        """Set the given breach flags. Flags are never cleared."""
        pass


# ============================================================
# Directory / Notification Stores
# ============================================================

class DirectoryStore(ABC):
    """Read-only view of users and organizational placement."""

    @abstractmethod
    def get_user(self, user_id: str) -> Optional[User]:
        pass

    @abstractmethod
    def users_with_role(self, role: str) -> List[User]:
        pass

    @abstractmethod
    def building_for_user(self, user_id: str) -> Optional[str]:
        """Building of the user's department, if any."""
        pass

    @abstractmethod
    def get_building(self, building_id: str) -> Optional[Building]:
        pass

    @abstractmethod
    def get_department(self, department_id: str) -> Optional[Department]:
        pass


class NotificationStore(ABC):
    @abstractmethod
    def add(self, notification: Notification) -> Notification:
        pass

    @abstractmethod
    def list_for_user(self, user_id: str) -> List[Notification]:
        """Notifications for a user, newest first."""
        pass


# ============================================================
# Unit of Work
# ============================================================

class UnitOfWork(ABC):
    """
    Transaction boundary over all stores.

    Attributes:
        cases: CaseStore
        ledger: LedgerStore
        journal: JournalStore
        sla: SLAStore
        directory: DirectoryStore
        notifications: NotificationStore
    """

    cases: CaseStore
    ledger: LedgerStore
    journal: JournalStore
    sla: SLAStore
    directory: DirectoryStore
    notifications: NotificationStore

    def __enter__(self) -> "UnitOfWork":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        if exc_type is None:
            self.commit()
        else:
            self.rollback()

    @abstractmethod
    def commit(self) -> None:
        pass

    @abstractmethod
    def rollback(self) -> None:
        pass

    @abstractmethod
    def savepoint(self) -> AbstractContextManager:
        """
        Nested transaction: an exception inside undoes only the writes
        made inside the block, then propagates.
        """
        pass
