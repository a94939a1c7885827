"""Domain events emitted by document operations and their subscribers."""

from .bus import DomainEvent, EventBus, EventType
from .subscribers import AuditSubscriber, NotificationSubscriber, build_event_bus

__all__ = [
    "DomainEvent",
    "EventBus",
    "EventType",
    "AuditSubscriber",
    "NotificationSubscriber",
    "build_event_bus",
]
