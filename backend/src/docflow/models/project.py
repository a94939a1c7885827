"""Project and ProjectRequiredDocument SQLAlchemy models

The project itself is owned elsewhere in the ERP; documents only read its
approval template and mutate its required-document checklist.
"""

import uuid

from sqlalchemy import (
    Column, Text, Integer, Boolean, ForeignKey, DateTime, UniqueConstraint, CheckConstraint, Index, Uuid,
)
from sqlalchemy.orm import relationship

from .base import Base, PortableJSONB, utcnow


class Project(Base):
    """Project referenced by documents."""
    __tablename__ = "project"
    __table_args__ = (
        CheckConstraint(
            "status IN ('planning', 'pending_approval', 'approved', 'active', "
            "'on_hold', 'completed', 'cancelled')",
            name="ck_project_status",
        ),
        CheckConstraint("progress >= 0 AND progress <= 100", name="ck_project_progress"),
        Index("ix_project_org_id", "org_id"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    org_id = Column(Uuid, ForeignKey("org.id", ondelete="RESTRICT"), nullable=False)
    name = Column(Text, nullable=False)
    code = Column(Text, nullable=True)
    status = Column(Text, nullable=False, default="planning")
    department_id = Column(Uuid, ForeignKey("department.id", ondelete="SET NULL"), nullable=True)
    progress = Column(Integer, nullable=False, default=0)
    approval_chain = Column(PortableJSONB, nullable=False, default=list)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    # Relationships
    department = relationship("Department")
    documents = relationship("Document", back_populates="project")
    required_documents = relationship(
        "ProjectRequiredDocument",
        back_populates="project",
        order_by="ProjectRequiredDocument.document_type",
    )

    def __repr__(self):
        return f"<Project(id={self.id}, name='{self.name}', status='{self.status}')>"


class ProjectRequiredDocument(Base):
    """One checklist entry, keyed by (project_id, document_type)."""
    __tablename__ = "project_required_document"
    __table_args__ = (
        UniqueConstraint("project_id", "document_type", name="uq_project_required_document_type"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    project_id = Column(Uuid, ForeignKey("project.id", ondelete="CASCADE"), nullable=False)
    document_type = Column(Text, nullable=False)
    is_submitted = Column(Boolean, nullable=False, default=False)
    submitted_at = Column(DateTime(timezone=True), nullable=True)
    submitted_by_id = Column(Uuid, ForeignKey("user.id", ondelete="SET NULL"), nullable=True)
    document_id = Column(Uuid, ForeignKey("document.id", ondelete="SET NULL"), nullable=True)
    file_name = Column(Text, nullable=True)
    file_url = Column(Text, nullable=True)

    project = relationship("Project", back_populates="required_documents")

    def to_dict(self):
        """Convert checklist entry to dictionary representation"""
        return {
            "document_type": self.document_type,
            "is_submitted": self.is_submitted,
            "submitted_at": self.submitted_at.isoformat() if self.submitted_at else None,
            "submitted_by_id": str(self.submitted_by_id) if self.submitted_by_id else None,
            "document_id": str(self.document_id) if self.document_id else None,
            "file_name": self.file_name,
            "file_url": self.file_url,
        }
