"""ApprovalStep SQLAlchemy model"""

import uuid

from sqlalchemy import (
    Column, Text, Integer, ForeignKey, DateTime, UniqueConstraint, CheckConstraint, Index, Uuid,
)
from sqlalchemy.orm import relationship

from .base import Base, utcnow


class ApprovalStep(Base):
    """One level of a document's approval chain.

    Steps are keyed by (document_id, version, level) and are never deleted:
    a replacement starts a fresh set of steps for the new document version.
    `status` only moves out of PENDING through the conditional update in
    approvals.engine, which also stamps `action_date` exactly once.
    """
    __tablename__ = "approval_step"
    __table_args__ = (
        UniqueConstraint("document_id", "version", "level", name="uq_approval_step_document_version_level"),
        CheckConstraint(
            "status IN ('PENDING', 'APPROVED', 'REJECTED', 'DELEGATED')",
            name="ck_approval_step_status",
        ),
        CheckConstraint("level >= 1", name="ck_approval_step_level"),
        Index("ix_approval_step_document_status", "document_id", "status"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    org_id = Column(Uuid, ForeignKey("org.id", ondelete="RESTRICT"), nullable=False)
    document_id = Column(Uuid, ForeignKey("document.id", ondelete="CASCADE"), nullable=False)
    version = Column(Integer, nullable=False, default=1)
    level = Column(Integer, nullable=False)
    approver_id = Column(Uuid, ForeignKey("user.id", ondelete="SET NULL"), nullable=True)
    department_id = Column(Uuid, ForeignKey("department.id", ondelete="SET NULL"), nullable=True)
    status = Column(Text, nullable=False, default="PENDING")
    comments = Column(Text, nullable=True)
    action_date = Column(DateTime(timezone=True), nullable=True)
    acted_by_id = Column(Uuid, ForeignKey("user.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    # Relationships
    document = relationship("Document", back_populates="approval_steps")
    approver = relationship("User", foreign_keys=[approver_id])
    acted_by = relationship("User", foreign_keys=[acted_by_id])

    def to_dict(self):
        """Convert approval step to dictionary representation"""
        return {
            "id": str(self.id),
            "version": self.version,
            "level": self.level,
            "approver_id": str(self.approver_id) if self.approver_id else None,
            "department_id": str(self.department_id) if self.department_id else None,
            "status": self.status,
            "comments": self.comments,
            "action_date": self.action_date.isoformat() if self.action_date else None,
            "acted_by_id": str(self.acted_by_id) if self.acted_by_id else None,
        }

    def __repr__(self):
        return f"<ApprovalStep(document_id={self.document_id}, level={self.level}, status='{self.status}')>"
