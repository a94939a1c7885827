"""Notification SQLAlchemy model"""

import uuid

from sqlalchemy import Column, Text, Boolean, ForeignKey, DateTime, Index, UniqueConstraint, Uuid

from .base import Base, PortableJSONB, utcnow


class Notification(Base):
    """In-app notification row written by the database dispatcher.

    (recipient_id, type, dedupe_key) is unique so that repeating the same
    event never notifies twice.
    """
    __tablename__ = "notification"
    __table_args__ = (
        UniqueConstraint("recipient_id", "type", "dedupe_key", name="uq_notification_dedupe"),
        Index("ix_notification_recipient_read", "recipient_id", "is_read"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    org_id = Column(Uuid, ForeignKey("org.id", ondelete="RESTRICT"), nullable=False)
    recipient_id = Column(Uuid, ForeignKey("user.id", ondelete="CASCADE"), nullable=False)
    type = Column(Text, nullable=False)
    title = Column(Text, nullable=False)
    message = Column(Text, nullable=False)
    data = Column(PortableJSONB, nullable=False, default=dict)
    dedupe_key = Column(Text, nullable=False)
    is_read = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    def to_dict(self):
        """Convert notification to dictionary representation"""
        return {
            "id": str(self.id),
            "recipient_id": str(self.recipient_id),
            "type": self.type,
            "title": self.title,
            "message": self.message,
            "data": dict(self.data or {}),
            "is_read": self.is_read,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
