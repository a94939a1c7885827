"""Document and approval step status values and transition rules

State flow per document version:
draft → pending_review → approved | rejected
draft → approved (no workflow applies)

pending_review steps through approval levels internally; approved and
rejected are terminal for the version. A replacement starts a new version.
"""

from enum import Enum
from typing import Dict, List, Optional


class DocumentStatus(str, Enum):
    """Aggregate document status derived from the approval chain"""
    DRAFT = "draft"
    PENDING_REVIEW = "pending_review"
    APPROVED = "approved"
    REJECTED = "rejected"


class StepStatus(str, Enum):
    """Approval step status.

    DELEGATED is accepted by the schema but no operation produces it.
    """
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    DELEGATED = "DELEGATED"


ALLOWED_TRANSITIONS: Dict[Optional[DocumentStatus], List[DocumentStatus]] = {
    None: [DocumentStatus.DRAFT],
    DocumentStatus.DRAFT: [DocumentStatus.PENDING_REVIEW, DocumentStatus.APPROVED],
    DocumentStatus.PENDING_REVIEW: [DocumentStatus.APPROVED, DocumentStatus.REJECTED],
    DocumentStatus.APPROVED: [],  # Terminal for the version
    DocumentStatus.REJECTED: [],  # Terminal for the version
}

TERMINAL_STATUSES = frozenset({DocumentStatus.APPROVED, DocumentStatus.REJECTED})


def can_transition(from_status: Optional[DocumentStatus], to_status: DocumentStatus) -> bool:
    """Validate if status transition is allowed

    Example:
        >>> can_transition(DocumentStatus.PENDING_REVIEW, DocumentStatus.APPROVED)
        True
        >>> can_transition(DocumentStatus.REJECTED, DocumentStatus.APPROVED)
        False
    """
    if from_status is not None:
        from_status = DocumentStatus(from_status)
    return DocumentStatus(to_status) in ALLOWED_TRANSITIONS.get(from_status, [])


def is_terminal(status) -> bool:
    return DocumentStatus(status) in TERMINAL_STATUSES


def derive_document_status(step_statuses: List[str]) -> DocumentStatus:
    """Aggregate status of a version from its step statuses.

    Any REJECTED step makes the version rejected; every step APPROVED (or no
    steps at all) makes it approved; otherwise review is still pending.

    Example:
        >>> derive_document_status([])
        <DocumentStatus.APPROVED: 'approved'>
        >>> derive_document_status(["APPROVED", "PENDING"])
        <DocumentStatus.PENDING_REVIEW: 'pending_review'>
    """
    statuses = [StepStatus(s) for s in step_statuses]
    if StepStatus.REJECTED in statuses:
        return DocumentStatus.REJECTED
    if all(s == StepStatus.APPROVED for s in statuses):
        return DocumentStatus.APPROVED
    return DocumentStatus.PENDING_REVIEW
