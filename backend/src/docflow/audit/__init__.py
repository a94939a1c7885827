"""Append-only audit logging."""

from .service import log_audit_event

__all__ = ["log_audit_event"]
