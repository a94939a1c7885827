"""Global FastAPI dependencies for tenant isolation.

- TenantQuery: helpers that always filter by org_id
- get_event_bus: request-scoped DomainEvent bus

All document, project and search queries go through one of these so a
record from another tenant is indistinguishable from a missing one.
The org_id always comes from the authenticated user, never from input.
"""

from uuid import UUID

from fastapi import Depends
from sqlalchemy.orm import Session

from .database import get_db
from .errors import NotFoundError
from .events.bus import EventBus
from .events.subscribers import build_event_bus


class TenantQuery:
    """Utility class for building tenant-scoped queries.

    Example:
        document = TenantQuery.get_or_404(db, Document, document_id, org_id)
    """

    @staticmethod
    def scoped_query(session: Session, model, org_id: UUID):
        """Create a query automatically filtered by org_id.

        Raises:
            AttributeError: If model doesn't have org_id attribute
        """
        if not hasattr(model, 'org_id'):
            raise AttributeError(f"Model {model.__name__} does not have org_id column")

        return session.query(model).filter(model.org_id == org_id)

    @staticmethod
    def get_or_404(session: Session, model, record_id: UUID, org_id: UUID):
        """Get a record by ID with org_id scoping, or raise NotFoundError.

        Same error whether the record doesn't exist or belongs to another org,
        which prevents tenant enumeration.
        """
        record = TenantQuery.scoped_query(session, model, org_id).filter(
            model.id == record_id
        ).first()

        if not record:
            raise NotFoundError(
                f"{model.__name__} not found",
                details={"id": str(record_id)},
            )

        return record


def get_event_bus(db: Session = Depends(get_db)) -> EventBus:
    """Request-scoped event bus (audit log + in-app notifications)."""
    return build_event_bus(db)
