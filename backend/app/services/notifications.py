"""
Notification Dispatch
=====================

Dispatchers receive ``Notify`` intents from the coordinator.
Delivery is best effort: dispatchers raise ``NotificationDeliveryError``
and the coordinator logs it without failing the operation.
"""

import uuid
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Callable, Optional

from app.core.exceptions import NotificationDeliveryError
from app.core.logging import get_logger
from app.core.sla import utcnow
from app.models import Notification
from app.repositories.base import UnitOfWork

logger = get_logger(__name__)


class NotificationDispatcher(ABC):
    @abstractmethod
    def notify(
        self,
        uow: UnitOfWork,
        user_id: str,
        title: str,
        message: str,
        module: str,
        reference_id: Optional[str] = None,
    ) -> None:
        """
        Deliver one notification.

        Raises:
            NotificationDeliveryError: if delivery fails
        """
        pass


class StoreNotificationDispatcher(NotificationDispatcher):
    """
    Writes in-app notification rows through the active unit of work.

    The write runs in a savepoint so a failed insert leaves the rest of
    the operation intact.
    """

    def __init__(self, clock: Callable[[], datetime] = utcnow):
        self._clock = clock

    def notify(
        self,
        uow: UnitOfWork,
        user_id: str,
        title: str,
        message: str,
        module: str,
        reference_id: Optional[str] = None,
    ) -> None:
        try:
            with uow.savepoint():
                uow.notifications.add(
                    Notification(
                        id=str(uuid.uuid4()),
                        user_id=user_id,
                        title=title,
                        message=message,
                        module=module,
                        reference_id=reference_id,
                        is_read=False,
                        created_at=self._clock(),
                    )
                )
        except Exception as exc:
            raise NotificationDeliveryError(user_id, str(exc)) from exc

        logger.debug("notification_stored", user_id=user_id, reference_id=reference_id)
