"""Audit logging service.

Centralized interface for creating immutable audit log entries. Document
operations reach it through the audit subscriber in docflow.events.

Audit actions:
- DOCUMENT_CREATED
- DOCUMENT_APPROVED, DOCUMENT_REJECTED
- DOCUMENT_REPLACED
"""

from typing import Optional, Dict, Any
from uuid import UUID

from sqlalchemy.orm import Session

from ..models.audit_log import AuditLog


def log_audit_event(
    db: Session,
    org_id: UUID,
    action: str,
    actor_id: Optional[UUID] = None,
    entity_type: Optional[str] = None,
    entity_id: Optional[UUID] = None,
    metadata: Optional[Dict[str, Any]] = None,
    ip_address: Optional[str] = None,
    user_agent: Optional[str] = None,
) -> AuditLog:
    """Create an audit log entry.

    All parameters are stored as-is. This function does not validate action
    names or entity types.

    Args:
        db: Database session
        org_id: Organization ID
        action: Event action (e.g., "DOCUMENT_APPROVED")
        actor_id: User who performed the action
        entity_type: Type of entity affected (e.g., "document")
        entity_id: ID of affected entity
        metadata: Additional context as JSON
        ip_address: Client IP address
        user_agent: Client User-Agent header

    Returns:
        AuditLog: The created audit log entry
    """
    audit_entry = AuditLog(
        org_id=org_id,
        actor_id=actor_id,
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        metadata_json=metadata,
        ip_address=ip_address,
        user_agent=user_agent,
    )

    db.add(audit_entry)
    db.flush()  # Get ID without committing transaction

    return audit_entry
