"""ApprovalWorkflow SQLAlchemy model"""

import uuid

from sqlalchemy import Column, Text, Boolean, ForeignKey, DateTime, Index, Uuid
from sqlalchemy.orm import relationship

from .base import Base, PortableJSONB, utcnow


class ApprovalWorkflow(Base):
    """Org-scoped approval configuration.

    `category` is a document category or "ALL"; `department_id` NULL means
    every department. `steps` is a template list of
    {"level", "department_id", "approver_id"} dicts used to build a document's
    chain when the workflow matches.
    """
    __tablename__ = "approval_workflow"
    __table_args__ = (
        Index("ix_approval_workflow_org_active", "org_id", "is_active"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    org_id = Column(Uuid, ForeignKey("org.id", ondelete="RESTRICT"), nullable=False)
    name = Column(Text, nullable=False)
    category = Column(Text, nullable=False, default="ALL")
    department_id = Column(Uuid, ForeignKey("department.id", ondelete="CASCADE"), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    steps = Column(PortableJSONB, nullable=False, default=list)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    department = relationship("Department")

    def __repr__(self):
        return f"<ApprovalWorkflow(name='{self.name}', category='{self.category}')>"
