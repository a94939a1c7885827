"""Approval chain engine: workflow lookup, approver resolution, approve/reject."""

from .engine import approve, reject, create_chain, current_step, list_pending_approvals
from .resolver import resolve_approvers, select_approvers
from .workflow import WorkflowDecision, decide_initial_status, determine_document_status

__all__ = [
    "approve",
    "reject",
    "create_chain",
    "current_step",
    "list_pending_approvals",
    "resolve_approvers",
    "select_approvers",
    "WorkflowDecision",
    "decide_initial_status",
    "determine_document_status",
]
