"""Document store operations: upload, replacement and detail.

Validation and permission checks run before the router stores any bytes;
everything after that happens in the request's transaction and publishes
exactly one DomainEvent per operation.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlalchemy.orm import Session

from ..approvals.engine import (
    assign_current_approver,
    create_chain,
    explicit_chain,
    set_status,
    step_notifications,
)
from ..approvals.workflow import WorkflowDecision, decide_initial_status
from ..auth.roles import has_permission
from ..config import settings
from ..dependencies import TenantQuery
from ..domain.documents.classification import validate_classification
from ..domain.documents.document_status import DocumentStatus
from ..domain.documents.ports.object_storage_port import StoredFile
from ..domain.documents.validation import format_file_size
from ..errors import ConflictError, NotAuthorizedError, NotFoundError, ValidationError
from ..events.bus import DomainEvent, EventBus, EventType
from ..models.base import utcnow
from ..models.department import Department
from ..models.document import Document
from ..models.org import Org
from ..models.project import Project
from ..models.user import User
from ..notifications import messages
from ..notifications.ports import NotificationRequest
from ..observability.metrics import (
    documents_deleted_total,
    documents_replaced_total,
    documents_submitted_total,
    documents_uploaded_total,
)
from ..projects import linker
from .access import can_view
from .reference import with_unique_reference

logger = logging.getLogger(__name__)

MAX_TAGS = 20
OCR_TAG_COUNT = 5


@dataclass
class DocumentInput:
    """Client supplied fields of an upload."""
    title: str
    category: str
    document_type: str
    description: Optional[str] = None
    priority: Optional[str] = None
    tags: List[str] = field(default_factory=list)
    department_id: Optional[UUID] = None
    project_id: Optional[UUID] = None
    is_confidential: bool = False
    ocr_data: Dict[str, Any] = field(default_factory=dict)
    save_as_draft: bool = False


@dataclass
class UploadedFile:
    """A file already written to object storage."""
    stored: StoredFile
    file_name: str
    original_file_name: str
    file_url: str


def parse_tags(raw: Optional[str]) -> List[str]:
    """Comma separated tags, trimmed, blanks and duplicates dropped.

    Example:
        >>> parse_tags(" hr, policy ,,hr")
        ['hr', 'policy']
    """
    tags = []
    for tag in (raw or "").split(","):
        tag = tag.strip()
        if tag and tag not in tags:
            tags.append(tag)
    return tags[:MAX_TAGS]


def _normalize_ocr_data(ocr_data: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    ocr_data = dict(ocr_data or {})
    confidence = ocr_data.get("confidence")
    if confidence is not None:
        try:
            confidence = int(round(float(confidence)))
        except (TypeError, ValueError):
            raise ValidationError("OCR confidence must be a number", field="ocr_data.confidence")
        if not 0 <= confidence <= 100:
            raise ValidationError("OCR confidence must be between 0 and 100", field="ocr_data.confidence")
        ocr_data["confidence"] = confidence

    for key in ("keywords", "date_references", "organization_references", "monetary_values"):
        values = ocr_data.get(key) or []
        if not isinstance(values, list):
            raise ValidationError(f"OCR {key} must be a list", field=f"ocr_data.{key}")
        ocr_data[key] = [str(value) for value in values]
    return ocr_data


def check_upload_permission(actor: User) -> None:
    if not has_permission(actor.role_level, settings.UPLOAD_MIN_ROLE_LEVEL):
        logger.warning("Upload refused for role", extra={"user_id": actor.id})
        raise NotAuthorizedError(
            "You do not have permission to upload documents",
            details={"required_level": settings.UPLOAD_MIN_ROLE_LEVEL},
        )


def validate_upload(db: Session, actor: User, data: DocumentInput) -> Optional[Project]:
    """All checks that must pass before the file is stored.

    Returns:
        The linked project, if any

    Raises:
        NotAuthorizedError, ValidationError, NotFoundError
    """
    check_upload_permission(actor)

    if not data.title or not data.title.strip():
        raise ValidationError("Title is required", field="title")
    data.title = data.title.strip()
    data.priority = validate_classification(data.category, data.document_type, data.priority)
    data.ocr_data = _normalize_ocr_data(data.ocr_data)

    if data.department_id is not None:
        department = TenantQuery.scoped_query(db, Department, actor.org_id).filter(
            Department.id == data.department_id
        ).first()
        if department is None:
            raise ValidationError("Unknown department", field="department_id")

    if data.project_id is not None:
        return linker.get_project(db, actor.org_id, data.project_id)
    return None


def _tenant_code(db: Session, org_id: UUID) -> Optional[str]:
    if not settings.REFERENCE_USE_TENANT_CODE:
        return None
    org = db.get(Org, org_id)
    return org.code if org else None


def _start_review(
    db: Session,
    actor: User,
    document: Document,
    decision: WorkflowDecision,
    project: Optional[Project],
    template: Optional[List[dict]] = None,
) -> List[NotificationRequest]:
    """Create the chain, point current_approver at it and link the project.

    Returns the notifications for the reviewers. A project document notifies
    the project's next approvers unless the chain was named explicitly.
    """
    create_chain(db, document, decision, project, template)
    step, candidates = assign_current_approver(db, document)

    notifications: List[NotificationRequest] = []
    if step is not None and (project is None or template is not None):
        notifications.extend(step_notifications(document, step, candidates))
    if project is not None:
        link = linker.link_uploaded_document(db, project, document, actor)
        notifications.extend(link.notifications)
    return notifications


def create_document(
    db: Session,
    actor: User,
    data: DocumentInput,
    upload: UploadedFile,
    events: EventBus,
) -> Document:
    """Persist a new document, start its approval chain and link it to its project.

    A document saved as draft gets no chain and no project link until it is
    submitted.
    """
    project = validate_upload(db, actor, data)
    org_id = actor.org_id
    actor_id = actor.id

    if data.save_as_draft:
        decision = WorkflowDecision(DocumentStatus.DRAFT)
    else:
        decision = decide_initial_status(db, actor, org_id, data.category, data.department_id)
    tags = data.tags or data.ocr_data.get("keywords", [])[:OCR_TAG_COUNT]

    def build(reference: str) -> Document:
        document = Document(
            org_id=org_id,
            reference=reference,
            title=data.title,
            description=data.description,
            file_name=upload.file_name,
            original_file_name=upload.original_file_name,
            file_url=upload.file_url,
            storage_key=upload.stored.storage_key,
            sha256=upload.stored.sha256,
            file_size=upload.stored.size_bytes,
            mime_type=upload.stored.mime_type,
            category=data.category,
            document_type=data.document_type,
            priority=data.priority,
            tags=list(tags),
            status=DocumentStatus.DRAFT.value,
            project_id=data.project_id,
            department_id=data.department_id,
            created_by_id=actor_id,
            is_active=True,
            is_confidential=bool(data.is_confidential),
            version=1,
            previous_versions=[],
            metadata_json={"replacement_count": 0},
        )
        document.apply_ocr_data(data.ocr_data)
        set_status(document, decision.status)
        document.append_audit(
            "UPLOADED",
            actor_id,
            {"file_name": upload.original_file_name, "status": decision.status.value},
        )
        db.add(document)
        return document

    document = with_unique_reference(db, data.category, build, tenant_code=_tenant_code(db, org_id))

    notifications: List[NotificationRequest] = []
    if decision.status != DocumentStatus.DRAFT:
        notifications.extend(_start_review(db, actor, document, decision, project))
    notifications.append(messages.document_uploaded(document))
    db.flush()

    events.publish(DomainEvent(
        type=EventType.DOCUMENT_CREATED,
        org_id=org_id,
        actor_id=actor_id,
        entity_id=document.id,
        details={
            "reference": document.reference,
            "title": document.title,
            "category": document.category,
            "document_type": document.document_type,
            "status": document.status,
            "project_id": str(document.project_id) if document.project_id else None,
            "file_name": document.original_file_name,
            "file_size": document.file_size,
        },
        notifications=notifications,
    ))
    documents_uploaded_total.labels(status=document.status).inc()
    logger.info(
        f"Document {document.reference} created with status {document.status}",
        extra={"document_id": document.id, "org_id": org_id, "user_id": actor_id},
    )
    return document


def get_active_document(db: Session, org_id: UUID, document_id: UUID) -> Document:
    document = TenantQuery.get_or_404(db, Document, document_id, org_id)
    if not document.is_active:
        raise NotFoundError("Document not found", details={"id": str(document_id)})
    return document


def prepare_replacement(db: Session, actor: User, document_id: UUID) -> Document:
    """Checks that must pass before a replacement file is stored.

    Raises:
        NotFoundError: Unknown document
        NotAuthorizedError: Actor is neither the uploader nor an approver-level user
        ConflictError: The document's project is approved or completed
    """
    document = get_active_document(db, actor.org_id, document_id)
    if document.created_by_id != actor.id and not has_permission(
        actor.role_level, settings.APPROVER_MIN_ROLE_LEVEL
    ):
        raise NotAuthorizedError(
            "Only the uploader or an approver can replace this document",
            details={"document_id": str(document.id)},
        )
    linker.ensure_replaceable(document.project)
    return document


def replace_document(
    db: Session,
    actor: User,
    document_id: UUID,
    upload: UploadedFile,
    events: EventBus,
) -> Document:
    """Swap the document's file, keeping its id.

    The old file goes to previous_versions, the document gets a fresh
    reference and version, and a new approval chain starts for that version
    when a workflow applies.
    """
    document = prepare_replacement(db, actor, document_id)
    org_id = actor.org_id
    actor_id = actor.id

    if document.status == DocumentStatus.DRAFT.value:
        decision = WorkflowDecision(DocumentStatus.DRAFT)
    else:
        decision = decide_initial_status(db, actor, org_id, document.category, document.department_id)

    def apply(reference: str) -> Document:
        now = utcnow()
        previous = {
            "version": document.version,
            "reference": document.reference,
            "file_name": document.file_name,
            "original_file_name": document.original_file_name,
            "file_url": document.file_url,
            "file_size": document.file_size,
            "mime_type": document.mime_type,
            "status": document.status,
            "replaced_at": now.isoformat(),
            "replaced_by": str(actor_id),
        }
        metadata = dict(document.metadata_json or {})
        metadata["replacement_count"] = int(metadata.get("replacement_count", 0)) + 1
        metadata["previous_file_name"] = document.original_file_name
        metadata["previous_file_size"] = document.file_size

        document.previous_versions = list(document.previous_versions or []) + [previous]
        document.metadata_json = metadata
        document.reference = reference
        document.version = document.version + 1
        document.file_name = upload.file_name
        document.original_file_name = upload.original_file_name
        document.file_url = upload.file_url
        document.storage_key = upload.stored.storage_key
        document.sha256 = upload.stored.sha256
        document.file_size = upload.stored.size_bytes
        document.mime_type = upload.stored.mime_type
        # A new version starts from draft.
        document.status = DocumentStatus.DRAFT.value
        set_status(document, decision.status)
        document.approved_by_id = None
        document.approved_at = None
        document.current_approver_id = None
        document.append_audit(
            "REPLACED",
            actor_id,
            {
                "previous_file_name": previous["original_file_name"],
                "previous_reference": previous["reference"],
                "version": document.version,
            },
            timestamp=now,
        )
        return document

    previous_reference = document.reference
    document = with_unique_reference(db, document.category, apply, tenant_code=_tenant_code(db, org_id))

    project = document.project
    create_chain(db, document, decision, project)
    step, candidates = assign_current_approver(db, document)

    notifications: List[NotificationRequest] = []
    if step is not None:
        notifications.extend(step_notifications(document, step, candidates))
    if project is not None and decision.status != DocumentStatus.DRAFT:
        linker.mark_submitted(db, project, document, actor)
        linker.recompute_progress(db, project)

    recipients = [document.created_by_id]
    if actor_id != document.created_by_id:
        recipients.append(actor_id)
    notifications.extend(messages.document_replaced(document, recipients))
    db.flush()

    events.publish(DomainEvent(
        type=EventType.DOCUMENT_REPLACED,
        org_id=org_id,
        actor_id=actor_id,
        entity_id=document.id,
        details={
            "reference": document.reference,
            "previous_reference": previous_reference,
            "version": document.version,
            "status": document.status,
            "replacement_count": document.metadata_json.get("replacement_count"),
            "previous_file_name": document.metadata_json.get("previous_file_name"),
            "previous_file_size": document.metadata_json.get("previous_file_size"),
        },
        notifications=notifications,
    ))
    documents_replaced_total.inc()
    logger.info(
        f"Document replaced, now version {document.version} ({document.reference})",
        extra={"document_id": document.id, "user_id": actor_id},
    )
    return document


def submit_for_approval(
    db: Session,
    actor: User,
    document_id: UUID,
    approver_ids: Optional[List[UUID]],
    comments: Optional[str],
    events: EventBus,
) -> Document:
    """Move a draft into review.

    With `approver_ids` the chain has one level per approver, in order;
    without them the workflow lookup decides, exactly as for an upload.

    Raises:
        NotFoundError: Unknown document
        NotAuthorizedError: Actor is not the uploader
        ConflictError: Document is not a draft
        ValidationError: Bad approver list
    """
    document = get_active_document(db, actor.org_id, document_id)
    if document.created_by_id != actor.id:
        raise NotAuthorizedError(
            "You can only submit your own documents for approval",
            details={"document_id": str(document.id)},
        )
    if document.status != DocumentStatus.DRAFT.value:
        raise ConflictError(
            f"Only draft documents can be submitted, document is {document.status}",
            details={"document_id": str(document.id), "status": document.status},
        )

    template = None
    if approver_ids is not None:
        template = explicit_chain(db, actor.org_id, approver_ids)
        decision = WorkflowDecision(DocumentStatus.PENDING_REVIEW)
    else:
        decision = decide_initial_status(db, actor, actor.org_id, document.category, document.department_id)

    set_status(document, decision.status)
    notifications = _start_review(db, actor, document, decision, document.project, template)

    details = {
        "reference": document.reference,
        "previous_status": DocumentStatus.DRAFT.value,
        "status": document.status,
        "approvers": [str(approver_id) for approver_id in approver_ids or []],
        "comments": comments,
    }
    document.append_audit("SUBMITTED", actor.id, details)
    db.flush()

    events.publish(DomainEvent(
        type=EventType.DOCUMENT_SUBMITTED,
        org_id=document.org_id,
        actor_id=actor.id,
        entity_id=document.id,
        details=details,
        notifications=notifications,
    ))
    documents_submitted_total.labels(status=document.status).inc()
    logger.info(
        f"Document {document.reference} submitted, now {document.status}",
        extra={"document_id": document.id, "user_id": actor.id},
    )
    return document


def delete_document(db: Session, actor: User, document_id: UUID, events: EventBus) -> Document:
    """Soft delete: the document leaves every listing but keeps its history.

    Raises:
        NotFoundError: Unknown or already deleted document
        NotAuthorizedError: Actor is neither the uploader nor at DELETE_MIN_ROLE_LEVEL
    """
    document = get_active_document(db, actor.org_id, document_id)
    if document.created_by_id != actor.id and not has_permission(
        actor.role_level, settings.DELETE_MIN_ROLE_LEVEL
    ):
        raise NotAuthorizedError(
            "You do not have permission to delete this document",
            details={"document_id": str(document.id)},
        )

    document.is_active = False
    document.current_approver_id = None
    details = {
        "reference": document.reference,
        "title": document.title,
        "status": document.status,
        "version": document.version,
    }
    document.append_audit("DELETED", actor.id, details)
    db.flush()

    events.publish(DomainEvent(
        type=EventType.DOCUMENT_DELETED,
        org_id=document.org_id,
        actor_id=actor.id,
        entity_id=document.id,
        details=details,
    ))
    documents_deleted_total.inc()
    logger.info(
        f"Document {document.reference} deleted",
        extra={"document_id": document.id, "user_id": actor.id},
    )
    return document


def get_document_detail(db: Session, actor: User, document_id: UUID) -> Dict[str, Any]:
    """Document with its approval chain, if the actor may see it."""
    document = get_active_document(db, actor.org_id, document_id)
    if not can_view(actor, document):
        raise NotAuthorizedError("You do not have access to this document")

    detail = document.to_dict()
    detail["file_size_formatted"] = format_file_size(document.file_size)
    detail["approval_chain"] = [step.to_dict() for step in document.current_steps()]
    detail["approval_history"] = [
        step.to_dict() for step in document.approval_steps if step.version != document.version
    ]
    return detail


def upload_summary(document: Document, uploader: User) -> Dict[str, Any]:
    """Body returned by the upload and replace endpoints."""
    return {
        "id": document.id,
        "reference": document.reference,
        "status": document.status,
        "file_size": format_file_size(document.file_size),
        "uploaded_by": {
            "id": uploader.id,
            "name": uploader.name,
            "email": uploader.email,
        },
        "upload_date": document.created_at,
        "file_url": document.file_url,
        "version": document.version,
        "current_approver_id": document.current_approver_id,
    }
