"""Initial status decision from the org's approval workflow configuration.

Lookup failures fail open: a document whose workflow cannot be read is
approved rather than lost.
"""

import logging
from dataclasses import dataclass
from typing import Iterable, List, Optional
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..domain.documents.classification import ALL_CATEGORIES
from ..domain.documents.document_status import DocumentStatus
from ..errors import WorkflowLookupError
from ..models.approval_workflow import ApprovalWorkflow
from ..models.user import User
from ..observability.metrics import workflow_lookup_failures_total

logger = logging.getLogger(__name__)


@dataclass
class WorkflowDecision:
    """Initial status plus the workflow that produced it (if any)."""
    status: DocumentStatus
    workflow: Optional[ApprovalWorkflow] = None


def load_active_workflows(db: Session, org_id: UUID) -> List[ApprovalWorkflow]:
    """Active workflows of an org.

    Raises:
        WorkflowLookupError: If a stored configuration is malformed
        SQLAlchemyError: If the query fails
    """
    workflows = db.query(ApprovalWorkflow).filter(
        ApprovalWorkflow.org_id == org_id,
        ApprovalWorkflow.is_active.is_(True),
    ).order_by(ApprovalWorkflow.created_at, ApprovalWorkflow.id).all()

    for workflow in workflows:
        if not isinstance(workflow.steps, list):
            raise WorkflowLookupError(
                f"Workflow '{workflow.name}' has malformed steps",
                details={"workflow_id": str(workflow.id)},
            )
    return workflows


def match_workflow(
    workflows: Iterable[ApprovalWorkflow],
    category: str,
    department_id: Optional[UUID],
) -> Optional[ApprovalWorkflow]:
    """Pick the workflow for a category/department pair.

    Exact (category, department) first, then the global (ALL, ALL) default.
    """
    workflows = list(workflows)
    for workflow in workflows:
        if workflow.category == category and workflow.department_id == department_id:
            return workflow
    for workflow in workflows:
        if workflow.category == ALL_CATEGORIES and workflow.department_id is None:
            return workflow
    return None


def decide_initial_status(
    db: Session,
    actor: User,
    org_id: UUID,
    category: str,
    department_id: Optional[UUID],
) -> WorkflowDecision:
    """Decide whether a new document needs review.

    - no active workflow in the org: approved
    - a matching workflow: pending_review
    - workflows exist but none applies: approved
    - the lookup fails: approved (logged)
    """
    try:
        workflows = load_active_workflows(db, org_id)
    except (SQLAlchemyError, WorkflowLookupError) as e:
        db.rollback()
        workflow_lookup_failures_total.inc()
        logger.error(
            f"Workflow lookup failed, defaulting to approved: {e}",
            extra={"org_id": org_id, "user_id": actor.id if actor else None},
        )
        return WorkflowDecision(DocumentStatus.APPROVED)

    if not workflows:
        return WorkflowDecision(DocumentStatus.APPROVED)

    workflow = match_workflow(workflows, category, department_id)
    if workflow is None:
        return WorkflowDecision(DocumentStatus.APPROVED)

    logger.debug(
        f"Workflow '{workflow.name}' applies to {category}",
        extra={"org_id": org_id},
    )
    return WorkflowDecision(DocumentStatus.PENDING_REVIEW, workflow)


def determine_document_status(
    db: Session,
    actor: User,
    org_id: UUID,
    category: str,
    department_id: Optional[UUID],
) -> DocumentStatus:
    return decide_initial_status(db, actor, org_id, category, department_id).status
