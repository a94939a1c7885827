"""Approval chain engine.

A document version's chain is the set of ApprovalStep rows for that
version. Only the lowest-level PENDING step is actionable, and steps leave
PENDING only through `transition_step`, a conditional UPDATE that succeeds
for exactly one caller.
"""

import logging
from typing import List, Optional, Tuple
from uuid import UUID

from sqlalchemy import update, exists, and_
from sqlalchemy.orm import Session, aliased

from ..dependencies import TenantQuery
from ..domain.documents.document_status import (
    DocumentStatus,
    StepStatus,
    can_transition,
    derive_document_status,
    is_terminal,
)
from ..errors import ConflictError, NotAuthorizedError, NotFoundError, ValidationError
from ..events.bus import DomainEvent, EventBus, EventType
from ..models.approval_step import ApprovalStep
from ..models.base import utcnow
from ..models.document import Document
from ..models.project import Project
from ..models.user import User
from ..notifications import messages
from ..notifications.ports import NotificationRequest
from ..observability.metrics import approval_actions_total
from .resolver import StepCandidates, candidates_for
from .workflow import WorkflowDecision

logger = logging.getLogger(__name__)


def as_uuid(value) -> Optional[UUID]:
    if value in (None, ""):
        return None
    if isinstance(value, UUID):
        return value
    try:
        return UUID(str(value))
    except ValueError:
        raise ValidationError(f"Approval chain holds an invalid id {value!r}", field="approval_chain")


def _step_level(entry: dict, position: int) -> int:
    raw = entry.get("level")
    if raw in (None, ""):
        return position
    try:
        level = int(raw)
    except (TypeError, ValueError):
        level = 0
    if isinstance(raw, bool) or level < 1:
        raise ValidationError(
            f"Approval chain level must be a positive integer, got {raw!r}",
            field="approval_chain",
        )
    return level


def normalize_chain(template) -> List[dict]:
    """Dict entries of a stored chain, one per level, ordered by level.

    Entries that are not objects are ignored; a missing level means the
    entry's position. The first entry for a level wins.

    Raises:
        ValidationError: A level is not a positive integer
    """
    steps = {}
    entries = [entry for entry in (template or []) if isinstance(entry, dict)]
    for position, entry in enumerate(entries, start=1):
        steps.setdefault(_step_level(entry, position), entry)
    return [dict(steps[level], level=level) for level in sorted(steps)]


def chain_template(decision: WorkflowDecision, project: Optional[Project]) -> List[dict]:
    """Step template for a new chain.

    The project's approval chain wins when the document belongs to a project
    that has one, then the matched workflow's steps, then a single level 1
    step for the document's department.
    """
    for template in (
        project.approval_chain if project is not None else None,
        decision.workflow.steps if decision.workflow is not None else None,
    ):
        steps = normalize_chain(template)
        if steps:
            return steps
    return [{"level": 1}]


def explicit_chain(db: Session, org_id: UUID, approver_ids: List[UUID]) -> List[dict]:
    """One level per named approver, in the given order.

    Raises:
        ValidationError: No approvers, duplicates, or an approver who is not
            an active user of the org
    """
    if not approver_ids:
        raise ValidationError("At least one approver is required", field="approvers")
    if len(set(approver_ids)) != len(approver_ids):
        raise ValidationError("Approvers must be distinct", field="approvers")

    found = {
        user.id for user in db.query(User).filter(
            User.org_id == org_id,
            User.id.in_(approver_ids),
            User.status == "ACTIVE",
        ).all()
    }
    missing = [str(approver_id) for approver_id in approver_ids if approver_id not in found]
    if missing:
        raise ValidationError(
            "Unknown or inactive approver",
            field="approvers",
            details={"approver_ids": missing},
        )
    return [
        {"level": level, "approver_id": approver_id}
        for level, approver_id in enumerate(approver_ids, start=1)
    ]


def create_chain(
    db: Session,
    document: Document,
    decision: WorkflowDecision,
    project: Optional[Project] = None,
    template: Optional[List[dict]] = None,
) -> List[ApprovalStep]:
    """Create the PENDING steps for the document's current version.

    `template` overrides the project/workflow template when given.
    """
    if decision.status != DocumentStatus.PENDING_REVIEW:
        return []

    steps = []
    for entry in template or chain_template(decision, project):
        step = ApprovalStep(
            org_id=document.org_id,
            version=document.version,
            level=entry["level"],
            approver_id=as_uuid(entry.get("approver_id")),
            department_id=as_uuid(entry.get("department_id")) or document.department_id,
            status=StepStatus.PENDING.value,
        )
        step.document = document
        db.add(step)
        steps.append(step)
    return steps


def current_step(db: Session, document: Document) -> Optional[ApprovalStep]:
    """Lowest-level PENDING step of the current version, read from the database."""
    return db.query(ApprovalStep).filter(
        ApprovalStep.document_id == document.id,
        ApprovalStep.version == document.version,
        ApprovalStep.status == StepStatus.PENDING.value,
    ).order_by(ApprovalStep.level).first()


def step_candidates(db: Session, document: Document, step: ApprovalStep) -> StepCandidates:
    return candidates_for(
        db,
        document.org_id,
        step.approver_id,
        step.department_id or document.department_id,
    )


def step_notifications(
    document: Document,
    step: ApprovalStep,
    candidates: StepCandidates,
) -> List[NotificationRequest]:
    if candidates.escalated:
        return messages.approval_escalated(document, candidates.user_ids, step.level)
    return messages.approval_required(document, candidates.user_ids, step.level)


def assign_current_approver(
    db: Session,
    document: Document,
) -> Tuple[Optional[ApprovalStep], Optional[StepCandidates]]:
    """Point current_approver at the first candidate of the actionable step."""
    db.flush()
    step = current_step(db, document)
    if step is None:
        document.current_approver_id = None
        return None, None

    candidates = step_candidates(db, document, step)
    document.current_approver_id = candidates.user_ids[0] if candidates.users else None
    return step, candidates


def transition_step(
    db: Session,
    step: ApprovalStep,
    new_status: StepStatus,
    actor_id: UUID,
    comments: Optional[str] = None,
) -> bool:
    """Move a step out of PENDING if, and only if, it is still PENDING.

    The update also refuses while a lower level of the same version is
    pending. Returns False when another request got there first.
    """
    lower = aliased(ApprovalStep)
    lower_pending = exists().where(and_(
        lower.document_id == step.document_id,
        lower.version == step.version,
        lower.level < step.level,
        lower.status == StepStatus.PENDING.value,
    ))

    result = db.execute(
        update(ApprovalStep)
        .where(
            ApprovalStep.id == step.id,
            ApprovalStep.status == StepStatus.PENDING.value,
            ~lower_pending,
        )
        .values(
            status=new_status.value,
            action_date=utcnow(),
            comments=comments,
            acted_by_id=actor_id,
        )
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


def version_status(db: Session, document: Document) -> DocumentStatus:
    """Status of the current version as derived from its stored steps."""
    rows = db.query(ApprovalStep.status).filter(
        ApprovalStep.document_id == document.id,
        ApprovalStep.version == document.version,
    ).all()
    return derive_document_status([row[0] for row in rows])


def set_status(document: Document, new_status: DocumentStatus) -> None:
    """Move the document to new_status along an allowed transition.

    Raises:
        ConflictError: The transition is not allowed from the current status
    """
    current = DocumentStatus(document.status) if document.status else None
    if current == new_status:
        return
    if not can_transition(current, new_status):
        raise ConflictError(
            f"Document cannot move from {document.status} to {new_status.value}",
            details={"document_id": str(document.id), "status": document.status},
        )
    document.status = new_status.value


def _act(
    db: Session,
    org_id: UUID,
    document_id: UUID,
    actor: User,
    comments: Optional[str],
    events: EventBus,
    approve: bool,
) -> Document:
    action = "approve" if approve else "reject"
    document = TenantQuery.get_or_404(db, Document, document_id, org_id)
    if not document.is_active:
        raise NotFoundError("Document not found", details={"id": str(document_id)})

    if is_terminal(document.status):
        approval_actions_total.labels(action=action, outcome="conflict").inc()
        raise ConflictError(
            f"Document is already {document.status}",
            details={"document_id": str(document.id), "status": document.status},
        )

    step = current_step(db, document)
    if step is None:
        approval_actions_total.labels(action=action, outcome="conflict").inc()
        raise ConflictError(
            "Document has no pending approval step",
            details={"document_id": str(document.id)},
        )

    candidates = step_candidates(db, document, step)
    if not candidates.includes(actor):
        approval_actions_total.labels(action=action, outcome="not_authorized").inc()
        logger.warning(
            f"Rejected {action} attempt by non-reviewer",
            extra={"document_id": document.id, "user_id": actor.id, "step_id": step.id},
        )
        raise NotAuthorizedError(
            "You are not a reviewer for the current approval step",
            details={"document_id": str(document.id), "level": step.level},
        )

    new_status = StepStatus.APPROVED if approve else StepStatus.REJECTED
    if not transition_step(db, step, new_status, actor.id, comments):
        approval_actions_total.labels(action=action, outcome="conflict").inc()
        raise ConflictError(
            "Approval step already resolved",
            details={"document_id": str(document.id), "level": step.level},
        )
    db.refresh(step)

    derived = version_status(db, document)
    set_status(document, derived)

    notifications: List[NotificationRequest] = []
    if derived == DocumentStatus.PENDING_REVIEW:
        next_step, next_candidates = assign_current_approver(db, document)
        if next_step is not None:
            notifications.extend(step_notifications(document, next_step, next_candidates))
    else:
        document.current_approver_id = None
        if derived == DocumentStatus.APPROVED:
            document.approved_by_id = actor.id
            document.approved_at = step.action_date

    event_type = EventType.DOCUMENT_APPROVED if approve else EventType.DOCUMENT_REJECTED
    details = {
        "level": step.level,
        "version": step.version,
        "comments": comments,
        "status": document.status,
    }
    document.append_audit(event_type.value, actor.id, details)
    notifications.append(messages.decision(document, approve, step.level, comments))
    db.flush()

    events.publish(DomainEvent(
        type=event_type,
        org_id=document.org_id,
        actor_id=actor.id,
        entity_id=document.id,
        details=dict(details, reference=document.reference),
        notifications=notifications,
    ))
    approval_actions_total.labels(action=action, outcome="success").inc()
    logger.info(
        f"Document {action}d at level {step.level}",
        extra={"document_id": document.id, "user_id": actor.id},
    )
    return document


def approve(
    db: Session,
    org_id: UUID,
    document_id: UUID,
    actor: User,
    comments: Optional[str],
    events: EventBus,
) -> Document:
    """Approve the current step; the document is approved after the last one.

    Raises:
        NotFoundError: Unknown document in this org
        NotAuthorizedError: Actor is not a reviewer for the current step
        ConflictError: Document is terminal, or the step was resolved concurrently
    """
    return _act(db, org_id, document_id, actor, comments, events, approve=True)


def reject(
    db: Session,
    org_id: UUID,
    document_id: UUID,
    actor: User,
    comments: Optional[str],
    events: EventBus,
) -> Document:
    """Reject the current step; the document is rejected immediately.

    Raises the same errors as approve().
    """
    return _act(db, org_id, document_id, actor, comments, events, approve=False)


def list_pending_approvals(db: Session, actor: User, limit: int = 100) -> List[Tuple[Document, ApprovalStep]]:
    """Documents whose actionable step lists the actor as a candidate."""
    documents = TenantQuery.scoped_query(db, Document, actor.org_id).filter(
        Document.status == DocumentStatus.PENDING_REVIEW.value,
        Document.is_active.is_(True),
    ).order_by(Document.created_at.asc()).all()

    pending = []
    for document in documents:
        step = current_step(db, document)
        if step is None:
            continue
        if step_candidates(db, document, step).includes(actor):
            pending.append((document, step))
            if len(pending) >= limit:
                break
    return pending
