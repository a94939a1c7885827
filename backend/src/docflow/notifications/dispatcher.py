"""In-app notification dispatcher writing `notification` rows."""

import logging
from typing import Any, Dict
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..errors import NotificationDispatchError
from ..models.notification import Notification
from .ports import NotificationDispatcher, NotificationType

logger = logging.getLogger(__name__)


class DatabaseNotificationDispatcher(NotificationDispatcher):
    """Writes notifications in the caller's transaction.

    Each row is flushed inside its own SAVEPOINT, so a failed insert (for
    example a dedupe constraint hit by a concurrent request) rolls back that
    row only and surfaces as NotificationDispatchError. The operation that
    produced the notification stays intact and commits as usual.
    """

    def __init__(self, db: Session):
        self.db = db

    def _already_sent(self, recipient_id: UUID, type_value: str, dedupe_key: str) -> bool:
        existing = self.db.query(Notification.id).filter(
            Notification.recipient_id == recipient_id,
            Notification.type == type_value,
            Notification.dedupe_key == dedupe_key,
        ).first()
        return existing is not None

    def create_notification(
        self,
        org_id: UUID,
        recipient_id: UUID,
        type: NotificationType,
        title: str,
        message: str,
        data: Dict[str, Any],
        dedupe_key: str,
    ) -> bool:
        type_value = NotificationType(type).value

        try:
            if self._already_sent(recipient_id, type_value, dedupe_key):
                logger.debug(
                    "Duplicate notification skipped",
                    extra={"recipient_id": recipient_id, "notification_type": type_value},
                )
                return False

            with self.db.begin_nested():
                self.db.add(Notification(
                    org_id=org_id,
                    recipient_id=recipient_id,
                    type=type_value,
                    title=title,
                    message=message,
                    data=dict(data),
                    dedupe_key=dedupe_key,
                ))
                self.db.flush()
        except SQLAlchemyError as e:
            raise NotificationDispatchError(
                f"Failed to store notification: {e}",
                details={"recipient_id": str(recipient_id), "type": type_value},
            ) from e

        return True
