"""Synchronous in-process event bus.

Every state-changing document operation publishes exactly one DomainEvent.
Subscribers handle delivery concerns (audit log, notifications) so the
engine never depends on a particular transport.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Dict, List, Optional
from uuid import UUID

from ..models.base import utcnow
from ..notifications.ports import NotificationRequest

logger = logging.getLogger(__name__)


class EventType(str, Enum):
    DOCUMENT_CREATED = "DOCUMENT_CREATED"
    DOCUMENT_APPROVED = "DOCUMENT_APPROVED"
    DOCUMENT_REJECTED = "DOCUMENT_REJECTED"
    DOCUMENT_REPLACED = "DOCUMENT_REPLACED"
    DOCUMENT_SUBMITTED = "DOCUMENT_SUBMITTED"
    DOCUMENT_DELETED = "DOCUMENT_DELETED"


@dataclass
class DomainEvent:
    """Something that happened to a document.

    Attributes:
        type: What happened
        org_id: Tenant the document belongs to
        actor_id: User who caused it
        entity_type: Audit entity type ("document")
        entity_id: Affected entity
        details: JSON-serializable context for the audit log
        notifications: Who should be told, resolved by the operation
        delivery_failures: Filled by subscribers that could not deliver
    """
    type: EventType
    org_id: UUID
    actor_id: Optional[UUID]
    entity_id: UUID
    entity_type: str = "document"
    details: Dict[str, Any] = field(default_factory=dict)
    notifications: List[NotificationRequest] = field(default_factory=list)
    occurred_at: datetime = field(default_factory=utcnow)
    delivery_failures: List[Exception] = field(default_factory=list)


Subscriber = Callable[[DomainEvent], None]


class EventBus:
    """Calls each subscriber in registration order.

    Subscribers that must not fail the operation handle their own errors;
    anything they raise propagates to the publisher.
    """

    def __init__(self, subscribers: Optional[List[Subscriber]] = None):
        self._subscribers: List[Subscriber] = list(subscribers or [])
        self.published: List[DomainEvent] = []

    def subscribe(self, subscriber: Subscriber) -> None:
        self._subscribers.append(subscriber)

    def publish(self, event: DomainEvent) -> DomainEvent:
        logger.info(
            f"Domain event {event.type.value}",
            extra={
                "event_type": event.type.value,
                "org_id": event.org_id,
                "actor_id": event.actor_id,
                "document_id": event.entity_id,
            },
        )
        for subscriber in self._subscribers:
            subscriber(event)
        self.published.append(event)
        return event
