"""Prometheus metrics for DocFlow."""

from prometheus_client import Counter

documents_uploaded_total = Counter(
    "docflow_documents_uploaded_total",
    "Total documents created, by initial status",
    ["status"]  # status: draft|approved|pending_review
)

documents_replaced_total = Counter(
    "docflow_documents_replaced_total",
    "Total document file replacements",
)

approval_actions_total = Counter(
    "docflow_approval_actions_total",
    "Approval actions attempted",
    ["action", "outcome"]  # action: approve|reject, outcome: success|not_authorized|conflict
)

workflow_lookup_failures_total = Counter(
    "docflow_workflow_lookup_failures_total",
    "Workflow lookups that failed and defaulted to approved",
)

search_requests_total = Counter(
    "docflow_search_requests_total",
    "Search requests served",
    ["kind"]  # kind: advanced|full_text|metadata|similar|suggestions
)

notification_failures_total = Counter(
    "docflow_notification_failures_total",
    "Notifications that could not be dispatched",
    ["type"]
)

documents_submitted_total = Counter(
    "docflow_documents_submitted_total",
    "Draft documents submitted for approval, by resulting status",
    ["status"]
)

documents_deleted_total = Counter(
    "docflow_documents_deleted_total",
    "Documents soft-deleted",
)
