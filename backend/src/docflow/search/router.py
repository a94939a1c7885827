"""Search API endpoints.

Registered before the document router so that `/documents/search` is not
taken for a document id.
"""

from typing import Annotated, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..auth.dependencies import CurrentUser
from ..database import get_db
from ..documents.service import parse_tags
from . import service
from .schemas import SearchResponse, SimilarDocumentsResponse, SuggestionsResponse

router = APIRouter(prefix="/documents", tags=["Search"])


@router.get("/search", response_model=SearchResponse)
def advanced_search(
    current_user: CurrentUser,
    db: Annotated[Session, Depends(get_db)],
    q: Optional[str] = Query(None, description="Free text over title, description, reference, OCR text, keywords and tags"),
    document_type: Optional[str] = Query(None, description="Declared or OCR-detected document type"),
    category: Optional[str] = Query(None),
    status_filter: Optional[str] = Query(None, alias="status"),
    priority: Optional[str] = Query(None),
    department_id: Optional[UUID] = Query(None),
    date_from: Optional[str] = Query(None, description="Created on or after (ISO format YYYY-MM-DD)"),
    date_to: Optional[str] = Query(None, description="Created on or before (ISO format YYYY-MM-DD)"),
    uploaded_by: Optional[UUID] = Query(None),
    tags: Optional[str] = Query(None, description="Comma separated, any of"),
    keywords: Optional[str] = Query(None, description="Comma separated OCR keywords, any of"),
    organization: Optional[str] = Query(None, description="Substring of an OCR organisation reference"),
    has_monetary_values: bool = Query(False),
    page: int = Query(1, ge=1),
    limit: Optional[int] = Query(None, ge=1, description="Page size, capped at SEARCH_MAX_LIMIT"),
    sort_by: str = Query("created_at"),
    sort_order: str = Query("desc"),
):
    """Advanced document search.

    Filters are combined with AND. Results are limited to active documents
    of the caller's org that the caller may see. With `q`, each hit carries
    a `search_relevance` score and the page is ordered by it.
    """
    criteria = service.SearchCriteria(
        query=q,
        document_type=document_type,
        category=category,
        status=status_filter,
        priority=priority,
        department_id=department_id,
        date_from=date_from,
        date_to=date_to,
        uploaded_by=uploaded_by,
        tags=parse_tags(tags),
        keywords=parse_tags(keywords),
        organization=organization,
        has_monetary_values=has_monetary_values,
        page=page,
        limit=limit,
        sort_by=sort_by,
        sort_order=sort_order,
    )
    return service.search(db, current_user, criteria)


@router.get("/search/full-text", response_model=SearchResponse)
def full_text_search(
    current_user: CurrentUser,
    db: Annotated[Session, Depends(get_db)],
    q: str = Query(..., min_length=1, description="Text to find in OCR output"),
    min_confidence: Optional[int] = Query(None, ge=0, le=100),
    page: int = Query(1, ge=1),
    limit: Optional[int] = Query(None, ge=1),
):
    """Search OCR extracted text, most confident recognitions first."""
    return service.full_text_search(db, current_user, q, min_confidence, page, limit)


@router.get("/search/metadata", response_model=SearchResponse)
def metadata_search(
    current_user: CurrentUser,
    db: Annotated[Session, Depends(get_db)],
    date_references: Optional[str] = Query(None, description="Comma separated, any of"),
    organization: Optional[str] = Query(None),
    monetary_value: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    limit: Optional[int] = Query(None, ge=1),
):
    """Search by OCR metadata (dates, organisations, amounts), newest first."""
    return service.metadata_search(
        db,
        current_user,
        date_references=parse_tags(date_references),
        organization=organization,
        monetary_value=monetary_value,
        page=page,
        limit=limit,
    )


@router.get("/search/suggestions", response_model=SuggestionsResponse)
def suggestions(
    current_user: CurrentUser,
    db: Annotated[Session, Depends(get_db)],
    q: str = Query("", description="Partial query"),
):
    return service.get_suggestions(db, current_user, q)


@router.get("/{document_id}/similar", response_model=SimilarDocumentsResponse)
def similar_documents(
    document_id: UUID,
    current_user: CurrentUser,
    db: Annotated[Session, Depends(get_db)],
    limit: Optional[int] = Query(None, ge=1),
):
    """Documents sharing OCR keywords with this one, newest first."""
    return service.find_similar_documents(db, current_user, document_id, limit)
