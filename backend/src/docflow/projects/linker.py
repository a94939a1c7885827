"""Project-document linker.

A project's required documents are rows keyed by (project_id,
document_type). Uploads mark their entry submitted with one conditional
UPDATE; progress is always recomputed from the checklist so running it
again changes nothing.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional
from uuid import UUID

from sqlalchemy import func, update
from sqlalchemy.orm import Session

from ..approvals.engine import as_uuid, normalize_chain
from ..approvals.resolver import StepCandidates, candidates_for, super_admins
from ..config import settings
from ..dependencies import TenantQuery
from ..errors import ConflictError
from ..models.base import utcnow
from ..models.document import Document
from ..models.project import Project, ProjectRequiredDocument
from ..models.user import User
from ..notifications import messages
from ..notifications.ports import NotificationRequest

logger = logging.getLogger(__name__)

FINALIZED_PROJECT_STATUSES = frozenset({"approved", "completed"})
DOCUMENT_PHASE_COMPLETE_STATUSES = frozenset({"approved", "active"})


@dataclass
class ProjectReadiness:
    uploaded_count: int
    required_count: int

    @property
    def all_documents_submitted(self) -> bool:
        return self.uploaded_count >= self.required_count


@dataclass
class LinkResult:
    checklist_updated: bool
    progress: int
    readiness: ProjectReadiness
    notifications: List[NotificationRequest] = field(default_factory=list)


def compute_progress(submitted: int, required: int, status: str, weight: Optional[int] = None) -> int:
    """Project progress (0-100) from checklist counts.

    The document phase is worth `weight` percent. Approved and active
    projects have finished that phase; completed projects are at 100.

    Example:
        >>> compute_progress(2, 4, "planning", 50)
        25
        >>> compute_progress(0, 4, "active", 50)
        50
    """
    if weight is None:
        weight = settings.DOCUMENT_PHASE_WEIGHT
    if status == "completed":
        return 100

    fraction = 1.0 if required == 0 else min(submitted, required) / required
    progress = int(fraction * weight)
    if status in DOCUMENT_PHASE_COMPLETE_STATUSES:
        progress = max(progress, weight)
    return max(0, min(100, progress))


def get_project(db: Session, org_id: UUID, project_id: UUID) -> Project:
    """Project in the org, or NotFoundError."""
    return TenantQuery.get_or_404(db, Project, project_id, org_id)


def ensure_replaceable(project: Optional[Project]) -> None:
    """Refuse replacements on approved or completed projects.

    Raises:
        ConflictError: If the project is finalized
    """
    if project is not None and project.status in FINALIZED_PROJECT_STATUSES:
        raise ConflictError(
            f"Documents of a project with status '{project.status}' cannot be replaced",
            details={"project_id": str(project.id), "status": project.status},
        )


def mark_submitted(db: Session, project: Project, document: Document, actor: User) -> bool:
    """Record the document on its checklist entry.

    Returns False when the project does not require this document type.
    """
    result = db.execute(
        update(ProjectRequiredDocument)
        .where(
            ProjectRequiredDocument.project_id == project.id,
            ProjectRequiredDocument.document_type == document.document_type,
        )
        .values(
            is_submitted=True,
            submitted_at=utcnow(),
            submitted_by_id=actor.id,
            document_id=document.id,
            file_name=document.original_file_name,
            file_url=document.file_url,
        )
    )
    return result.rowcount > 0


def checklist_counts(db: Session, project: Project):
    """(submitted, required) for the project's checklist."""
    required = db.query(func.count(ProjectRequiredDocument.id)).filter(
        ProjectRequiredDocument.project_id == project.id
    ).scalar() or 0
    submitted = db.query(func.count(ProjectRequiredDocument.id)).filter(
        ProjectRequiredDocument.project_id == project.id,
        ProjectRequiredDocument.is_submitted.is_(True),
    ).scalar() or 0
    return submitted, required


def recompute_progress(db: Session, project: Project) -> int:
    submitted, required = checklist_counts(db, project)
    progress = compute_progress(submitted, required, project.status)
    if project.progress != progress:
        project.progress = progress
        db.flush()
    return progress


def document_readiness(db: Session, project: Project) -> ProjectReadiness:
    """Submitted (active, non-draft) documents against the number of required ones."""
    db.flush()
    uploaded = db.query(func.count(Document.id)).filter(
        Document.org_id == project.org_id,
        Document.project_id == project.id,
        Document.is_active.is_(True),
        Document.status != "draft",
    ).scalar() or 0
    _, required = checklist_counts(db, project)
    return ProjectReadiness(uploaded_count=uploaded, required_count=required)


def project_next_approvers(db: Session, project: Project) -> StepCandidates:
    """Candidates for the lowest level of the project's approval template."""
    chain = normalize_chain(project.approval_chain)
    if not chain:
        return StepCandidates(super_admins(db, project.org_id), escalated=True)

    first = chain[0]
    return candidates_for(
        db,
        project.org_id,
        as_uuid(first.get("approver_id")),
        as_uuid(first.get("department_id")) or project.department_id,
    )


def link_uploaded_document(db: Session, project: Project, document: Document, actor: User) -> LinkResult:
    """Checklist update, one progress recomputation and the readiness notification."""
    updated = mark_submitted(db, project, document, actor)
    if not updated:
        logger.info(
            f"Project does not require '{document.document_type}', checklist unchanged",
            extra={"project_id": project.id, "document_id": document.id},
        )

    progress = recompute_progress(db, project)
    readiness = document_readiness(db, project)
    approvers = project_next_approvers(db, project)
    notifications = messages.project_documents(
        project,
        document,
        approvers.user_ids,
        readiness.all_documents_submitted,
    )

    logger.info(
        f"Linked document to project: {readiness.uploaded_count}/{readiness.required_count} submitted",
        extra={"project_id": project.id, "document_id": document.id},
    )
    return LinkResult(
        checklist_updated=updated,
        progress=progress,
        readiness=readiness,
        notifications=notifications,
    )


def project_document_status(db: Session, org_id: UUID, project_id: UUID) -> dict:
    """Checklist, readiness and progress for one project."""
    project = get_project(db, org_id, project_id)
    entries = db.query(ProjectRequiredDocument).filter(
        ProjectRequiredDocument.project_id == project.id
    ).order_by(ProjectRequiredDocument.document_type).all()
    readiness = document_readiness(db, project)

    return {
        "project_id": str(project.id),
        "name": project.name,
        "status": project.status,
        "progress": project.progress,
        "required_documents": [entry.to_dict() for entry in entries],
        "uploaded_count": readiness.uploaded_count,
        "required_count": readiness.required_count,
        "all_documents_submitted": readiness.all_documents_submitted,
    }
