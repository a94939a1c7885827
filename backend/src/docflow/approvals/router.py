"""Approval API endpoints: submit, approve, reject and the caller's review queue."""

from typing import Annotated, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..auth.dependencies import CurrentUser
from ..database import get_db
from ..dependencies import get_event_bus
from ..documents import service as document_service
from ..documents.schemas import (
    ApprovalActionRequest,
    ApprovalActionResponse,
    ApprovalStepResponse,
    PendingApprovalItem,
    PendingApprovalsResponse,
    SubmitForApprovalRequest,
)
from ..events.bus import EventBus
from ..models.document import Document
from . import engine

router = APIRouter(prefix="/documents", tags=["Approvals"])


def _action_response(document: Document) -> ApprovalActionResponse:
    return ApprovalActionResponse(
        id=document.id,
        reference=document.reference,
        status=document.status,
        version=document.version,
        current_approver_id=document.current_approver_id,
        approved_by_id=document.approved_by_id,
        approved_at=document.approved_at,
        approval_chain=[ApprovalStepResponse.model_validate(step) for step in document.current_steps()],
    )


@router.get("/approvals/pending", response_model=PendingApprovalsResponse)
def list_pending(
    current_user: CurrentUser,
    db: Annotated[Session, Depends(get_db)],
    limit: int = Query(100, ge=1, le=500, description="Maximum number of documents"),
):
    """Documents whose actionable step the caller may approve or reject.

    Oldest first, so the queue is worked in upload order.
    """
    pending = engine.list_pending_approvals(db, current_user, limit=limit)
    items = [
        PendingApprovalItem(
            document_id=document.id,
            reference=document.reference,
            title=document.title,
            category=document.category,
            document_type=document.document_type,
            priority=document.priority,
            level=step.level,
            project_id=document.project_id,
            created_at=document.created_at,
        )
        for document, step in pending
    ]
    return PendingApprovalsResponse(documents=items, total=len(items))


@router.post("/{document_id}/approve", response_model=ApprovalActionResponse)
def approve_document(
    document_id: UUID,
    current_user: CurrentUser,
    db: Annotated[Session, Depends(get_db)],
    events: Annotated[EventBus, Depends(get_event_bus)],
    body: Optional[ApprovalActionRequest] = None,
):
    """Approve the current approval step.

    After the last level the document becomes `approved`; otherwise the
    next level's reviewers are notified.

    Errors:
        403: caller is not a reviewer for the current step
        404: document not found in the caller's org
        409: document already approved/rejected, or the step was resolved concurrently
    """
    comments = body.comments if body else None
    document = engine.approve(db, current_user.org_id, document_id, current_user, comments, events)
    db.commit()
    db.refresh(document)
    return _action_response(document)


@router.post("/{document_id}/reject", response_model=ApprovalActionResponse)
def reject_document(
    document_id: UUID,
    current_user: CurrentUser,
    db: Annotated[Session, Depends(get_db)],
    events: Annotated[EventBus, Depends(get_event_bus)],
    body: Optional[ApprovalActionRequest] = None,
):
    """Reject the current approval step. The document is rejected immediately."""
    comments = body.comments if body else None
    document = engine.reject(db, current_user.org_id, document_id, current_user, comments, events)
    db.commit()
    db.refresh(document)
    return _action_response(document)


@router.post("/{document_id}/submit", response_model=ApprovalActionResponse)
def submit_document(
    document_id: UUID,
    current_user: CurrentUser,
    db: Annotated[Session, Depends(get_db)],
    events: Annotated[EventBus, Depends(get_event_bus)],
    body: Optional[SubmitForApprovalRequest] = None,
):
    """Submit one of the caller's drafts for approval.

    Named approvers become levels 1..n in the given order; without them the
    approval workflows decide as for a new upload.

    Errors:
        403: caller is not the uploader
        404: document not found in the caller's org
        409: document is not a draft
        422: empty, duplicate or unknown approvers
    """
    approvers = body.approvers if body else None
    comments = body.comments if body else None
    document = document_service.submit_for_approval(db, current_user, document_id, approvers, comments, events)
    db.commit()
    db.refresh(document)
    return _action_response(document)
