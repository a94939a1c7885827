"""Who can see which documents.

Users at or above SEARCH_FULL_ACCESS_LEVEL see every document of their org.
Everyone else sees documents they uploaded, documents of their department
and documents that are not confidential.
"""

from sqlalchemy import or_, true

from ..config import settings
from ..models.document import Document
from ..models.user import User


def has_full_access(actor: User) -> bool:
    return (actor.role_level or 0) >= settings.SEARCH_FULL_ACCESS_LEVEL


def visibility_clause(actor: User):
    """SQL criterion equivalent to can_view, without the org filter."""
    if has_full_access(actor):
        return true()

    clauses = [Document.created_by_id == actor.id, Document.is_confidential.is_(False)]
    if actor.department_id is not None:
        clauses.append(Document.department_id == actor.department_id)
    return or_(*clauses)


def can_view(actor: User, document: Document) -> bool:
    if document.org_id != actor.org_id:
        return False
    if has_full_access(actor):
        return True
    return (
        document.created_by_id == actor.id
        or not document.is_confidential
        or (actor.department_id is not None and document.department_id == actor.department_id)
    )
