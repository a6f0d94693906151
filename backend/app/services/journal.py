"""
Activity Journal
================

Append-only log of status changes and narrative events per case.

``old_status`` is taken from the case as currently persisted, at the
moment of the write. Callers append the journal entry before applying
the status change itself, so consecutive entries always chain:
entry n's ``new_status`` equals entry n+1's ``old_status``.
"""

import uuid
from datetime import datetime
from typing import List, Optional

from app.core.enums import IncidentStatus
from app.core.exceptions import CaseNotFoundError
from app.core.logging import get_logger
from app.models import IncidentStatusLog
from app.repositories.base import UnitOfWork
from app.services.lifecycle_service import parse_status

logger = get_logger(__name__)


class ActivityJournal:
    def append(
        self,
        uow: UnitOfWork,
        case_id: str,
        new_status: Optional[IncidentStatus | str],
        comment: Optional[str],
        actor_id: Optional[str],
        at: datetime,
    ) -> Optional[IncidentStatusLog]:
        """
        Write one journal entry.

        Args:
            uow: Active unit of work
            case_id: Case the entry belongs to
            new_status: Status after the event; None records a narrative
                entry that keeps the current status
            comment: Free text shown in the timeline
            actor_id: Acting user; without one nothing is written
            at: Entry timestamp

        Returns:
            The stored entry, or None when skipped
        """
        if not actor_id:
            logger.debug("journal_entry_skipped", case_id=case_id, reason="no_actor")
            return None

        case = uow.cases.get(case_id, include_deleted=True)
        if case is None:
            raise CaseNotFoundError(case_id)

        old_status = case.status
        target = old_status if new_status is None else parse_status(new_status).value

        entry = IncidentStatusLog(
            id=str(uuid.uuid4()),
            incident_id=case_id,
            old_status=old_status,
            new_status=target,
            comments=comment or "",
            user_id=actor_id,
            changed_at=at,
            sequence=uow.journal.next_sequence(case_id),
        )
        return uow.journal.append(entry)

    def timeline(self, uow: UnitOfWork, case_id: str) -> List[IncidentStatusLog]:
        """Entries oldest first; equal timestamps keep insertion order."""
        return uow.journal.list_for_case(case_id)
