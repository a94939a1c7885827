"""Domain error taxonomy.

Services raise these; main.py maps them to HTTP responses. WorkflowLookupError
and NotificationDispatchError are recovered where they occur and never reach
the caller.
"""

from typing import Any, Dict, Optional


class DocflowError(Exception):
    """Base class for domain errors surfaced to API callers."""

    status_code = 400
    error_code = "docflow_error"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": self.error_code,
            "message": self.message,
            "details": self.details,
        }


class ValidationError(DocflowError):
    """Bad field value or combination, rejected before persistence."""

    status_code = 422
    error_code = "validation_error"

    def __init__(self, message: str, field: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        details = dict(details or {})
        if field:
            details["field"] = field
        super().__init__(message, details)
        self.field = field


class NotAuthorizedError(DocflowError):
    """Actor lacks the permission or is not the reviewer for the step."""

    status_code = 403
    error_code = "not_authorized"


class NotFoundError(DocflowError):
    """Document, project or related record does not exist in the tenant."""

    status_code = 404
    error_code = "not_found"


class ConflictError(DocflowError):
    """State does not allow the operation (finalized project, resolved step)."""

    status_code = 409
    error_code = "conflict"


class WorkflowLookupError(DocflowError):
    """Approval workflow configuration could not be read."""

    status_code = 500
    error_code = "workflow_lookup_error"


class NotificationDispatchError(DocflowError):
    """A notification could not be delivered to one recipient."""

    status_code = 500
    error_code = "notification_dispatch_error"
