"""Project document status endpoint."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..auth.dependencies import CurrentUser
from ..database import get_db
from .linker import project_document_status

router = APIRouter(prefix="/projects", tags=["Projects"])


@router.get("/{project_id}/documents/status")
def get_project_document_status(
    project_id: UUID,
    current_user: CurrentUser,
    db: Annotated[Session, Depends(get_db)],
):
    """Required document checklist, readiness and progress of a project."""
    return project_document_status(db, current_user.org_id, project_id)
