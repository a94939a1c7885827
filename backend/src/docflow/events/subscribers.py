"""Event subscribers: audit log writer and notification delivery."""

import logging
from typing import Optional

from sqlalchemy.orm import Session

from ..audit.service import log_audit_event
from ..errors import NotificationDispatchError
from ..notifications.dispatcher import DatabaseNotificationDispatcher
from ..notifications.ports import NotificationDispatcher
from ..observability.metrics import notification_failures_total
from .bus import DomainEvent, EventBus

logger = logging.getLogger(__name__)


class AuditSubscriber:
    """Writes one audit_log row per event.

    Audit failures propagate: an operation that cannot be audited fails.
    """

    def __init__(self, db: Session):
        self.db = db

    def __call__(self, event: DomainEvent) -> None:
        log_audit_event(
            db=self.db,
            org_id=event.org_id,
            action=event.type.value,
            actor_id=event.actor_id,
            entity_type=event.entity_type,
            entity_id=event.entity_id,
            metadata=event.details,
        )


class NotificationSubscriber:
    """Hands each NotificationRequest to the dispatcher.

    A failed delivery is logged, counted and recorded on the event; it never
    reaches the caller of the operation.
    """

    def __init__(self, dispatcher: NotificationDispatcher):
        self.dispatcher = dispatcher

    def __call__(self, event: DomainEvent) -> None:
        for request in event.notifications:
            try:
                self.dispatcher.create_notification(
                    org_id=event.org_id,
                    recipient_id=request.recipient_id,
                    type=request.type,
                    title=request.title,
                    message=request.message,
                    data=request.data,
                    dedupe_key=request.dedupe_key,
                )
            except Exception as e:
                error = e if isinstance(e, NotificationDispatchError) else NotificationDispatchError(
                    str(e), details={"recipient_id": str(request.recipient_id)}
                )
                event.delivery_failures.append(error)
                notification_failures_total.labels(type=request.type.value).inc()
                logger.warning(
                    f"Notification dispatch failed: {e}",
                    extra={
                        "recipient_id": request.recipient_id,
                        "notification_type": request.type.value,
                        "document_id": event.entity_id,
                    },
                )


def build_event_bus(db: Session, dispatcher: Optional[NotificationDispatcher] = None) -> EventBus:
    """Request-scoped bus with the audit and notification subscribers."""
    return EventBus([
        AuditSubscriber(db),
        NotificationSubscriber(dispatcher or DatabaseNotificationDispatcher(db)),
    ])
