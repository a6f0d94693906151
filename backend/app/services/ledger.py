"""
Assignment Ledger
=================

Append-only record of who a case was handed to. Reassignment and
escalation both add a new entry; nothing is edited or removed.
"""

import uuid
from datetime import datetime
from typing import List, Optional

from app.models import IncidentAssignment, User
from app.repositories.base import UnitOfWork


class AssignmentLedger:
    def record(
        self,
        uow: UnitOfWork,
        case_id: str,
        assignee_id: str,
        assigner_id: Optional[str],
        at: datetime,
    ) -> IncidentAssignment:
        record = IncidentAssignment(
            id=str(uuid.uuid4()),
            incident_id=case_id,
            assigned_to_id=assignee_id,
            assigned_by_id=assigner_id,
            assigned_at=at,
            sequence=uow.ledger.next_sequence(case_id),
        )
        return uow.ledger.append(record)

    def current_assignee(self, uow: UnitOfWork, case_id: str) -> Optional[User]:
        """
        Assignee of the latest entry.

        Ties on ``assigned_at`` go to the entry inserted last.
        """
        latest = uow.ledger.latest(case_id)
        if latest is None:
            return None
        return uow.directory.get_user(latest.assigned_to_id)

    def history(self, uow: UnitOfWork, case_id: str) -> List[IncidentAssignment]:
        return uow.ledger.list_for_case(case_id)
