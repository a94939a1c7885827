"""Document SQLAlchemy model

Document is the authoritative record for an uploaded artifact: file
metadata, classification, approval workflow pointer, project linkage,
version history, consumed OCR payload and the append-only audit trail.
"""

import uuid

from sqlalchemy import (
    Column, Text, ForeignKey, BigInteger, Integer, Boolean, DateTime, Index, CheckConstraint, Uuid,
)
from sqlalchemy.orm import relationship

from .base import Base, PortableJSONB, utcnow


class Document(Base):
    """Document model.

    `reference` is generated once at creation (and again on replacement) and
    is unique across the installation. `status` is derived from the approval
    chain in `approval_step` and is never written by API clients directly.
    JSON list columns are reassigned rather than mutated in place so that
    SQLAlchemy sees the change.
    """
    __tablename__ = "document"
    __table_args__ = (
        Index("ix_document_org_id", "org_id"),
        Index("ix_document_org_status", "org_id", "status"),
        Index("ix_document_org_project", "org_id", "project_id"),
        Index("ix_document_reference", "reference", unique=True),
        CheckConstraint(
            "status IN ('draft', 'pending_review', 'approved', 'rejected')",
            name="ck_document_status",
        ),
        CheckConstraint(
            "ocr_confidence IS NULL OR (ocr_confidence >= 0 AND ocr_confidence <= 100)",
            name="ck_document_ocr_confidence",
        ),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    org_id = Column(Uuid, ForeignKey("org.id", ondelete="RESTRICT"), nullable=False)
    reference = Column(Text, nullable=False)

    # Content
    title = Column(Text, nullable=False)
    description = Column(Text, nullable=True)
    file_name = Column(Text, nullable=False)
    original_file_name = Column(Text, nullable=False)
    file_url = Column(Text, nullable=False)
    storage_key = Column(Text, nullable=True)
    sha256 = Column(Text, nullable=True)
    file_size = Column(BigInteger, nullable=False, default=0)
    mime_type = Column(Text, nullable=False)

    # Classification
    category = Column(Text, nullable=False)
    document_type = Column(Text, nullable=False)
    priority = Column(Text, nullable=False, default="Medium")
    tags = Column(PortableJSONB, nullable=False, default=list)

    # Workflow
    status = Column(Text, nullable=False, default="draft")
    current_approver_id = Column(Uuid, ForeignKey("user.id", ondelete="SET NULL"), nullable=True)
    approved_by_id = Column(Uuid, ForeignKey("user.id", ondelete="SET NULL"), nullable=True)
    approved_at = Column(DateTime(timezone=True), nullable=True)

    # Linkage
    project_id = Column(Uuid, ForeignKey("project.id", ondelete="SET NULL"), nullable=True)
    department_id = Column(Uuid, ForeignKey("department.id", ondelete="SET NULL"), nullable=True)

    # Provenance
    created_by_id = Column(Uuid, ForeignKey("user.id", ondelete="RESTRICT"), nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)
    is_confidential = Column(Boolean, nullable=False, default=False)
    version = Column(Integer, nullable=False, default=1)
    previous_versions = Column(PortableJSONB, nullable=False, default=list)
    metadata_json = Column(PortableJSONB, nullable=False, default=dict)

    # OCR payload (produced elsewhere, consumed by search)
    ocr_extracted_text = Column(Text, nullable=True)
    ocr_confidence = Column(Integer, nullable=True)
    ocr_document_type = Column(Text, nullable=True)
    ocr_keywords = Column(PortableJSONB, nullable=False, default=list)
    ocr_date_references = Column(PortableJSONB, nullable=False, default=list)
    ocr_organization_references = Column(PortableJSONB, nullable=False, default=list)
    ocr_monetary_values = Column(PortableJSONB, nullable=False, default=list)

    audit_trail = Column(PortableJSONB, nullable=False, default=list)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    # Relationships
    org = relationship("Org", back_populates="documents")
    created_by = relationship("User", foreign_keys=[created_by_id])
    current_approver = relationship("User", foreign_keys=[current_approver_id])
    approved_by = relationship("User", foreign_keys=[approved_by_id])
    department = relationship("Department")
    project = relationship("Project", back_populates="documents")
    approval_steps = relationship(
        "ApprovalStep",
        back_populates="document",
        order_by="[ApprovalStep.version, ApprovalStep.level]",
    )

    @property
    def ocr_data(self):
        """OCR payload in the shape producers hand it over."""
        return {
            "extracted_text": self.ocr_extracted_text,
            "confidence": self.ocr_confidence,
            "document_type": self.ocr_document_type,
            "keywords": list(self.ocr_keywords or []),
            "date_references": list(self.ocr_date_references or []),
            "organization_references": list(self.ocr_organization_references or []),
            "monetary_values": list(self.ocr_monetary_values or []),
        }

    def apply_ocr_data(self, ocr_data):
        """Copy an OCR payload dict onto the ocr_* columns."""
        ocr_data = ocr_data or {}
        self.ocr_extracted_text = ocr_data.get("extracted_text")
        self.ocr_confidence = ocr_data.get("confidence")
        self.ocr_document_type = ocr_data.get("document_type")
        self.ocr_keywords = list(ocr_data.get("keywords") or [])
        self.ocr_date_references = list(ocr_data.get("date_references") or [])
        self.ocr_organization_references = list(ocr_data.get("organization_references") or [])
        self.ocr_monetary_values = list(ocr_data.get("monetary_values") or [])

    def append_audit(self, action, user_id, details=None, timestamp=None):
        """Append one entry to the audit trail (never rewrites history)."""
        entry = {
            "action": action,
            "user_id": str(user_id) if user_id else None,
            "timestamp": (timestamp or utcnow()).isoformat(),
            "details": details or {},
        }
        self.audit_trail = list(self.audit_trail or []) + [entry]
        return entry

    def current_steps(self):
        """Approval steps belonging to the current document version."""
        return [step for step in self.approval_steps if step.version == self.version]

    def to_dict(self):
        """Convert document to dictionary representation"""
        return {
            "id": str(self.id),
            "org_id": str(self.org_id),
            "reference": self.reference,
            "title": self.title,
            "description": self.description,
            "file_name": self.file_name,
            "original_file_name": self.original_file_name,
            "file_url": self.file_url,
            "file_size": self.file_size,
            "mime_type": self.mime_type,
            "category": self.category,
            "document_type": self.document_type,
            "priority": self.priority,
            "tags": list(self.tags or []),
            "status": self.status,
            "current_approver_id": str(self.current_approver_id) if self.current_approver_id else None,
            "approved_by_id": str(self.approved_by_id) if self.approved_by_id else None,
            "approved_at": self.approved_at.isoformat() if self.approved_at else None,
            "project_id": str(self.project_id) if self.project_id else None,
            "department_id": str(self.department_id) if self.department_id else None,
            "created_by_id": str(self.created_by_id) if self.created_by_id else None,
            "is_active": self.is_active,
            "is_confidential": self.is_confidential,
            "version": self.version,
            "previous_versions": list(self.previous_versions or []),
            "metadata": dict(self.metadata_json or {}),
            "ocr_data": self.ocr_data,
            "audit_trail": list(self.audit_trail or []),
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }

    def __repr__(self):
        return f"<Document(id={self.id}, reference='{self.reference}', status='{self.status}')>"
