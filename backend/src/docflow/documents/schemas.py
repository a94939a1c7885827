"""Document API request/response schemas"""

from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, Field


class UploadedByResponse(BaseModel):
    """Uploader summary"""
    id: UUID = Field(..., description="User ID")
    name: str = Field(..., description="Display name")
    email: str = Field(..., description="Email address")


class DocumentUploadResponse(BaseModel):
    """Response for upload and replace endpoints"""
    id: UUID = Field(..., description="Document ID")
    reference: str = Field(..., description="Generated reference (PREFIX-TIMESTAMP-RANDOM)")
    status: str = Field(..., description="draft | pending_review | approved | rejected")
    file_size: str = Field(..., description="Human readable file size (e.g. '1.5 MB')")
    uploaded_by: UploadedByResponse
    upload_date: datetime = Field(..., description="Creation timestamp")
    file_url: str = Field(..., description="Public URL of the stored file")
    version: int = Field(..., description="Document version (1 until replaced)")
    current_approver_id: Optional[UUID] = Field(None, description="Reviewer of the actionable step")

    class Config:
        json_schema_extra = {
            "example": {
                "id": "123e4567-e89b-12d3-a456-426614174000",
                "reference": "POL-1767225600123-9F3A",
                "status": "pending_review",
                "file_size": "1.5 MB",
                "uploaded_by": {
                    "id": "987e6543-e21b-12d3-a456-426614174111",
                    "name": "Ada Staff",
                    "email": "ada@acme.test",
                },
                "upload_date": "2026-01-01T10:00:00Z",
                "file_url": "http://localhost:9000/docflow-documents/...",
                "version": 1,
                "current_approver_id": None,
            }
        }


class ApprovalActionRequest(BaseModel):
    """Body for approve/reject"""
    comments: Optional[str] = Field(None, max_length=2000, description="Reviewer comments")


class ApprovalStepResponse(BaseModel):
    """One approval chain step"""
    id: UUID
    version: int
    level: int
    approver_id: Optional[UUID] = None
    department_id: Optional[UUID] = None
    status: str
    comments: Optional[str] = None
    action_date: Optional[datetime] = None

    class Config:
        from_attributes = True


class ApprovalActionResponse(BaseModel):
    """Document state after an approve/reject action"""
    id: UUID = Field(..., description="Document ID")
    reference: str
    status: str = Field(..., description="Aggregate document status")
    version: int
    current_approver_id: Optional[UUID] = Field(None, description="Reviewer of the next step, if any")
    approved_by_id: Optional[UUID] = None
    approved_at: Optional[datetime] = None
    approval_chain: List[ApprovalStepResponse] = Field(default_factory=list)


class PendingApprovalItem(BaseModel):
    """Document waiting for the caller's review"""
    document_id: UUID
    reference: str
    title: str
    category: str
    document_type: str
    priority: str
    level: int = Field(..., description="Level of the actionable step")
    project_id: Optional[UUID] = None
    created_at: datetime


class PendingApprovalsResponse(BaseModel):
    documents: List[PendingApprovalItem]
    total: int


class DocumentDetailResponse(BaseModel):
    """Full document with its approval chain"""
    document: Dict[str, Any]


class SubmitForApprovalRequest(BaseModel):
    """Body for submitting a draft. Without approvers the workflow decides."""
    approvers: Optional[List[UUID]] = Field(
        None,
        description="Reviewers in level order; one approval level each",
    )
    comments: Optional[str] = Field(None, max_length=2000)


class DocumentDeleteResponse(BaseModel):
    id: UUID
    reference: str
    is_active: bool
