"""Builders for the notifications document operations send."""

from typing import List
from uuid import UUID

from ..models.document import Document
from ..models.project import Project
from .ports import NotificationRequest, NotificationType


def document_url(document_id) -> str:
    return f"/documents/{document_id}"


def project_url(project_id) -> str:
    return f"/projects/{project_id}"


def _document_data(document: Document, **extra) -> dict:
    data = {
        "document_id": str(document.id),
        "reference": document.reference,
        "action_url": document_url(document.id),
    }
    data.update(extra)
    return data


def document_uploaded(document: Document) -> NotificationRequest:
    return NotificationRequest(
        recipient_id=document.created_by_id,
        type=NotificationType.DOCUMENT_UPLOADED,
        title="Document uploaded",
        message=f'"{document.title}" was uploaded as {document.reference} ({document.status}).',
        dedupe_key=f"{document.id}:v{document.version}:uploaded",
        data=_document_data(document, status=document.status),
    )


def approval_required(document: Document, recipients: List[UUID], level: int) -> List[NotificationRequest]:
    return [
        NotificationRequest(
            recipient_id=recipient_id,
            type=NotificationType.DOCUMENT_APPROVAL_REQUIRED,
            title="Approval required",
            message=f'"{document.title}" ({document.reference}) is waiting for your level {level} review.',
            dedupe_key=f"{document.id}:v{document.version}:l{level}",
            data=_document_data(document, level=level),
        )
        for recipient_id in recipients
    ]


def approval_escalated(document: Document, recipients: List[UUID], level: int) -> List[NotificationRequest]:
    return [
        NotificationRequest(
            recipient_id=recipient_id,
            type=NotificationType.APPROVAL_ESCALATED,
            title="Approval escalated",
            message=(
                f'No approver could be resolved for level {level} of "{document.title}" '
                f"({document.reference}); it has been escalated to you."
            ),
            dedupe_key=f"{document.id}:v{document.version}:l{level}",
            data=_document_data(document, level=level),
        )
        for recipient_id in recipients
    ]


def project_documents(
    project: Project,
    document: Document,
    recipients: List[UUID],
    all_submitted: bool,
) -> List[NotificationRequest]:
    """Notify the project's next approvers about a new project document.

    PROJECT_READY_FOR_APPROVAL once every required document is in,
    DOCUMENT_APPROVAL_REQUIRED before that.
    """
    if all_submitted:
        notification_type = NotificationType.PROJECT_READY_FOR_APPROVAL
        title = "Project ready for approval"
        message = f'All required documents for project "{project.name}" have been submitted.'
        dedupe_key = f"{project.id}:ready:{document.id}:v{document.version}"
        data = {
            "project_id": str(project.id),
            "document_id": str(document.id),
            "action_url": project_url(project.id),
        }
    else:
        notification_type = NotificationType.DOCUMENT_APPROVAL_REQUIRED
        title = "Project document requires approval"
        message = (
            f'"{document.title}" ({document.document_type}) was submitted for project '
            f'"{project.name}".'
        )
        dedupe_key = f"{document.id}:v{document.version}:project"
        data = _document_data(document, project_id=str(project.id))

    return [
        NotificationRequest(
            recipient_id=recipient_id,
            type=notification_type,
            title=title,
            message=message,
            dedupe_key=dedupe_key,
            data=data,
        )
        for recipient_id in recipients
    ]


def decision(document: Document, approved: bool, level: int, comments=None) -> NotificationRequest:
    """Tell the uploader about an approve/reject decision."""
    if approved:
        notification_type = NotificationType.DOCUMENT_APPROVED
        verb = "fully approved" if document.status == "approved" else f"approved at level {level}"
    else:
        notification_type = NotificationType.DOCUMENT_REJECTED
        verb = f"rejected at level {level}"

    return NotificationRequest(
        recipient_id=document.created_by_id,
        type=notification_type,
        title=f"Document {'approved' if approved else 'rejected'}",
        message=f'"{document.title}" ({document.reference}) was {verb}.',
        dedupe_key=f"{document.id}:v{document.version}:l{level}",
        data=_document_data(document, level=level, status=document.status, comments=comments),
    )


def document_replaced(document: Document, recipients: List[UUID]) -> List[NotificationRequest]:
    return [
        NotificationRequest(
            recipient_id=recipient_id,
            type=NotificationType.DOCUMENT_REPLACED,
            title="Document replaced",
            message=(
                f'"{document.title}" was replaced with version {document.version} '
                f"({document.reference})."
            ),
            dedupe_key=f"{document.id}:v{document.version}:replaced",
            data=_document_data(document, version=document.version),
        )
        for recipient_id in recipients
    ]
