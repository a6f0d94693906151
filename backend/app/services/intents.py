"""
Intent Coordinator
==================

Case operations describe their side effects as a plan of intents and
hand the plan to the coordinator, which applies it inside one unit of
work:

- data intents (``InsertCase``, ``PersistCase``, ``AppendAssignment``,
  ``AppendActivity``, ``StartSlaTracking``) run in plan order; any error
  rolls back the whole unit
- ``Notify`` intents run afterwards, each one guarded; delivery errors
  are logged and never propagate

Usage:
    with coordinator.unit() as unit:
        case = unit.uow.cases.get(case_id, for_update=True)
        unit.execute([AppendActivity(...), PersistCase(...)])

Interceptors are called with every plan before it runs. Tests use them
to capture plans or to inject failures.
"""

from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, Iterator, List, Optional, Sequence, Union

from app.core.enums import IncidentStatus, NotificationModule
from app.core.exceptions import NotificationDeliveryError
from app.core.logging import get_logger
from app.models import ImpactedPerson, Incident, IncidentMedia
from app.repositories.base import UnitOfWork
from app.services.journal import ActivityJournal
from app.services.ledger import AssignmentLedger
from app.services.notifications import NotificationDispatcher
from app.services.sla_service import SlaClock

logger = get_logger(__name__)


# ==========================
# Intents
# ==========================

@dataclass(frozen=True)
class InsertCase:
    case: Incident
    impacted_people: Sequence[ImpactedPerson] = ()
    media: Sequence[IncidentMedia] = ()


@dataclass(frozen=True)
class PersistCase:
    case_id: str
    changes: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class AppendAssignment:
    case_id: str
    assigned_to_id: str
    assigned_by_id: Optional[str]
    at: datetime


@dataclass(frozen=True)
class AppendActivity:
    """Journal entry; ``new_status=None`` keeps the current status."""

    case_id: str
    new_status: Optional[IncidentStatus]
    comments: str
    actor_id: Optional[str]
    at: datetime


@dataclass(frozen=True)
class StartSlaTracking:
    case_id: str


@dataclass(frozen=True)
class Notify:
    user_id: str
    title: str
    message: str
    module: str = NotificationModule.CASES.value
    reference_id: Optional[str] = None


Intent = Union[InsertCase, PersistCase, AppendAssignment, AppendActivity, StartSlaTracking, Notify]
Interceptor = Callable[[List[Intent]], None]


# ==========================
# Coordinator
# ==========================

class Unit:
    """One open unit of work plus the plans executed in it."""

    def __init__(self, coordinator: "IntentCoordinator", uow: UnitOfWork):
        self.coordinator = coordinator
        self.uow = uow
        self.executed: List[Intent] = []

    def execute(self, plan: List[Intent]) -> List[Any]:
        """
        Apply a plan.

        Returns:
            One result per intent in plan order (None for notifications
            and for intents without a result)
        """
        return self.coordinator._execute(self, list(plan))


class IntentCoordinator:
    def __init__(
        self,
        uow_factory: Callable[[], UnitOfWork],
        dispatcher: NotificationDispatcher,
        *,
        journal: ActivityJournal,
        ledger: AssignmentLedger,
        sla_clock: SlaClock,
        interceptors: Optional[List[Interceptor]] = None,
    ):
        self._uow_factory = uow_factory
        self._dispatcher = dispatcher
        self._journal = journal
        self._ledger = ledger
        self._sla_clock = sla_clock
        self.interceptors: List[Interceptor] = list(interceptors or [])

    @contextmanager
    def unit(self) -> Iterator[Unit]:
        with self._uow_factory() as uow:
            yield Unit(self, uow)

    def _execute(self, unit: Unit, plan: List[Intent]) -> List[Any]:
        for interceptor in self.interceptors:
            interceptor(plan)

        results: List[Any] = [None] * len(plan)

        for index, intent in enumerate(plan):
            if not isinstance(intent, Notify):
                results[index] = self._apply(unit.uow, intent)

        for intent in plan:
            if isinstance(intent, Notify):
                self._notify(unit.uow, intent)

        unit.executed.extend(plan)
        return results

    def _apply(self, uow: UnitOfWork, intent: Intent) -> Any:
        if isinstance(intent, InsertCase):
            case = uow.cases.add(intent.case)
            for person in intent.impacted_people:
                uow.cases.add_impacted_person(person)
            for media in intent.media:
                uow.cases.add_media(media)
            return case

        if isinstance(intent, PersistCase):
            return uow.cases.update(intent.case_id, intent.changes)

        if isinstance(intent, AppendAssignment):
            return self._ledger.record(
                uow,
                intent.case_id,
                intent.assigned_to_id,
                intent.assigned_by_id,
                intent.at,
            )

        if isinstance(intent, AppendActivity):
            return self._journal.append(
                uow,
                intent.case_id,
                intent.new_status,
                intent.comments,
                intent.actor_id,
                intent.at,
            )

        if isinstance(intent, StartSlaTracking):
            return self._sla_clock.initialize_tracking(uow, intent.case_id)

        raise TypeError(f"Unsupported intent: {type(intent).__name__}")

    def _notify(self, uow: UnitOfWork, intent: Notify) -> None:
        try:
            self._dispatcher.notify(
                uow,
                intent.user_id,
                intent.title,
                intent.message,
                intent.module,
                intent.reference_id,
            )
        except NotificationDeliveryError as exc:
            logger.warning(
                "notification_delivery_failed",
                user_id=intent.user_id,
                reference_id=intent.reference_id,
                error=exc.message,
            )
        except Exception as exc:
            logger.warning(
                "notification_delivery_failed",
                user_id=intent.user_id,
                reference_id=intent.reference_id,
                error=str(exc),
                error_type=type(exc).__name__,
            )
