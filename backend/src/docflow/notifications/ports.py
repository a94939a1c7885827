"""Notification dispatch contract.

The document engine decides who is told what; delivery (in-app rows today,
email or sockets elsewhere) sits behind NotificationDispatcher.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict
from uuid import UUID


class NotificationType(str, Enum):
    DOCUMENT_UPLOADED = "DOCUMENT_UPLOADED"
    DOCUMENT_APPROVAL_REQUIRED = "DOCUMENT_APPROVAL_REQUIRED"
    PROJECT_READY_FOR_APPROVAL = "PROJECT_READY_FOR_APPROVAL"
    DOCUMENT_APPROVED = "DOCUMENT_APPROVED"
    DOCUMENT_REJECTED = "DOCUMENT_REJECTED"
    DOCUMENT_REPLACED = "DOCUMENT_REPLACED"
    APPROVAL_ESCALATED = "APPROVAL_ESCALATED"


@dataclass
class NotificationRequest:
    """One notification for one recipient.

    `data` must carry an `action_url` the recipient can follow. `dedupe_key`
    identifies the triggering occurrence so repeats are dropped.
    """
    recipient_id: UUID
    type: NotificationType
    title: str
    message: str
    dedupe_key: str
    data: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        self.type = NotificationType(self.type)
        if not self.data.get("action_url"):
            raise ValueError("Notification data must include action_url")


class NotificationDispatcher(ABC):
    """Port for delivering notifications."""

    @abstractmethod
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
        """Deliver one notification.

        Returns:
            False when an identical (recipient, type, dedupe_key) notification
            already exists, True otherwise

        Raises:
            NotificationDispatchError: If delivery fails
        """
