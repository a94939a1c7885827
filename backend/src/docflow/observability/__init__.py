"""Observability for DocFlow: structured logging, request IDs and metrics."""

from .logging_config import configure_logging, get_logger
from .metrics import (
    documents_uploaded_total,
    approval_actions_total,
    search_requests_total,
    notification_failures_total,
)
from .request_id import request_id_var, get_request_id, set_request_id, generate_request_id
from .middleware import RequestIDMiddleware

__all__ = [
    "configure_logging",
    "get_logger",
    "documents_uploaded_total",
    "approval_actions_total",
    "search_requests_total",
    "notification_failures_total",
    "request_id_var",
    "get_request_id",
    "set_request_id",
    "generate_request_id",
    "RequestIDMiddleware",
]
