"""Notification dispatch contract and the database-backed dispatcher."""

from .ports import NotificationDispatcher, NotificationRequest, NotificationType
from .dispatcher import DatabaseNotificationDispatcher

__all__ = [
    "NotificationDispatcher",
    "NotificationRequest",
    "NotificationType",
    "DatabaseNotificationDispatcher",
]
