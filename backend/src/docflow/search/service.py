"""Document search and ranking.

Every query here is restricted to active documents of the actor's org and
to what the actor may see (see documents.access). User input only ever
reaches SQL as bound LIKE patterns with the wildcards escaped.

JSON list columns (tags, OCR keywords and references) are matched element
by element through a correlated EXISTS over the array, never against the
serialized JSON text.
"""

import logging
import math
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlalchemy import Text, column as sql_column, func, or_, select
from sqlalchemy.orm import Session, joinedload

from ..config import settings
from ..documents.access import can_view, visibility_clause
from ..domain.documents.validation import format_file_size
from ..errors import NotAuthorizedError, NotFoundError, ValidationError
from ..models.document import Document
from ..models.user import User
from ..observability.metrics import search_requests_total
from .scoring import calculate_relevance, rank_by_relevance

logger = logging.getLogger(__name__)

LIKE_ESCAPE = "\\"
SUGGESTION_SCAN_LIMIT = 200

SORT_COLUMNS = {
    "created_at": Document.created_at,
    "updated_at": Document.updated_at,
    "title": Document.title,
    "reference": Document.reference,
    "category": Document.category,
    "document_type": Document.document_type,
    "priority": Document.priority,
    "status": Document.status,
    "file_size": Document.file_size,
    "ocr_confidence": Document.ocr_confidence,
}


@dataclass
class SearchCriteria:
    """Advanced search filters; every set filter must match."""
    query: Optional[str] = None
    document_type: Optional[str] = None
    category: Optional[str] = None
    status: Optional[str] = None
    priority: Optional[str] = None
    department_id: Optional[UUID] = None
    date_from: Optional[str] = None
    date_to: Optional[str] = None
    uploaded_by: Optional[UUID] = None
    tags: List[str] = field(default_factory=list)
    keywords: List[str] = field(default_factory=list)
    organization: Optional[str] = None
    has_monetary_values: bool = False
    page: int = 1
    limit: Optional[int] = None
    sort_by: str = "created_at"
    sort_order: str = "desc"


def escape_like(value: str) -> str:
    """Escape LIKE wildcards so user input matches literally.

    Example:
        >>> escape_like("50%_off")
        '50\\\\%\\\\_off'
    """
    return (
        value.replace(LIKE_ESCAPE, LIKE_ESCAPE * 2)
        .replace("%", LIKE_ESCAPE + "%")
        .replace("_", LIKE_ESCAPE + "_")
    )


def contains_pattern(value: str) -> str:
    return f"%{escape_like(value)}%"


def _elements(db: Session, column):
    """The string elements of a JSON list column, one row each."""
    if db.get_bind().dialect.name == "postgresql":
        expand = func.jsonb_array_elements_text
    else:
        expand = func.json_each
    return expand(column).table_valued(sql_column("value", Text))


def element_matches(db: Session, column, pattern: str):
    """Some element of the list matches the LIKE pattern, ignoring case."""
    elements = _elements(db, column)
    return select(elements.c.value).where(
        elements.c.value.ilike(pattern, escape=LIKE_ESCAPE)
    ).exists()


def element_contains(db: Session, column, value: str):
    return element_matches(db, column, contains_pattern(value))


def element_equals(db: Session, column, value: str):
    return element_matches(db, column, escape_like(value))


def has_elements(db: Session, column):
    elements = _elements(db, column)
    return select(elements.c.value).exists()


def _parse_date(value: Optional[str], field_name: str, end_of_day: bool = False) -> Optional[datetime]:
    """ISO date or datetime; a bare date used as an upper bound covers the whole day."""
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        raise ValidationError(
            f"Invalid {field_name} format. Use ISO format (YYYY-MM-DD)",
            field=field_name,
        )
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    if end_of_day and len(value) == 10:
        parsed = parsed + timedelta(days=1) - timedelta(microseconds=1)
    return parsed


def _page_window(page: int, limit: Optional[int]):
    if page < 1:
        raise ValidationError("page must be at least 1", field="page")
    if limit is None:
        limit = settings.SEARCH_DEFAULT_LIMIT
    if limit < 1:
        raise ValidationError("limit must be at least 1", field="limit")
    return page, min(limit, settings.SEARCH_MAX_LIMIT)


def _pagination(page: int, limit: int, total: int) -> Dict[str, int]:
    return {
        "page": page,
        "limit": limit,
        "total": total,
        "pages": math.ceil(total / limit) if total else 0,
    }


def scope_filters(actor: User) -> list:
    """Org, active flag and visibility for the actor."""
    return [
        Document.org_id == actor.org_id,
        Document.is_active.is_(True),
        visibility_clause(actor),
    ]


def scoped_documents(db: Session, actor: User):
    return db.query(Document).options(joinedload(Document.created_by)).filter(*scope_filters(actor))


def search_result(document: Document, relevance: int = 0) -> Dict[str, Any]:
    """Search hit as returned to clients."""
    uploader = document.created_by
    return {
        "id": str(document.id),
        "reference": document.reference,
        "title": document.title,
        "description": document.description,
        "category": document.category,
        "document_type": document.document_type,
        "priority": document.priority,
        "status": document.status,
        "tags": list(document.tags or []),
        "department_id": str(document.department_id) if document.department_id else None,
        "project_id": str(document.project_id) if document.project_id else None,
        "uploaded_by": {
            "id": str(uploader.id),
            "name": uploader.name,
            "email": uploader.email,
        } if uploader else None,
        "is_confidential": document.is_confidential,
        "file_url": document.file_url,
        "file_size": format_file_size(document.file_size),
        "version": document.version,
        "ocr_document_type": document.ocr_document_type,
        "ocr_keywords": list(document.ocr_keywords or []),
        "created_at": document.created_at.isoformat() if document.created_at else None,
        "search_relevance": relevance,
        "ocr_confidence": document.ocr_confidence or 0,
    }


def _text_query_clause(db: Session, query: str):
    pattern = contains_pattern(query)
    return or_(
        Document.title.ilike(pattern, escape=LIKE_ESCAPE),
        Document.description.ilike(pattern, escape=LIKE_ESCAPE),
        Document.reference.ilike(pattern, escape=LIKE_ESCAPE),
        Document.ocr_extracted_text.ilike(pattern, escape=LIKE_ESCAPE),
        element_matches(db, Document.ocr_keywords, pattern),
        element_matches(db, Document.tags, pattern),
    )


def _any_element(db: Session, column, values: List[str]):
    return or_(*[element_equals(db, column, value) for value in values])


def _order_clause(sort_by: str, sort_order: str):
    column = SORT_COLUMNS.get(sort_by)
    if column is None:
        raise ValidationError(
            f"Cannot sort by '{sort_by}'",
            field="sort_by",
            details={"allowed": sorted(SORT_COLUMNS)},
        )
    if sort_order not in ("asc", "desc"):
        raise ValidationError("sort_order must be 'asc' or 'desc'", field="sort_order")
    return column.asc() if sort_order == "asc" else column.desc()


def search(db: Session, actor: User, criteria: SearchCriteria) -> Dict[str, Any]:
    """Advanced search.

    Filters are ANDed; the free-text query ORs over title, description,
    reference, OCR text, OCR keywords and tags. With a query, the page is
    re-sorted by relevance.

    Raises:
        ValidationError: Bad date, sort field or pagination values
    """
    page, limit = _page_window(criteria.page, criteria.limit)
    order = _order_clause(criteria.sort_by, criteria.sort_order)
    date_from = _parse_date(criteria.date_from, "date_from")
    date_to = _parse_date(criteria.date_to, "date_to", end_of_day=True)

    query = scoped_documents(db, actor)
    text = (criteria.query or "").strip()
    if text:
        query = query.filter(_text_query_clause(db, text))
    if criteria.document_type:
        query = query.filter(or_(
            Document.document_type == criteria.document_type,
            Document.ocr_document_type == criteria.document_type,
        ))
    if criteria.category:
        query = query.filter(Document.category == criteria.category)
    if criteria.status:
        query = query.filter(Document.status == criteria.status)
    if criteria.priority:
        query = query.filter(Document.priority == criteria.priority)
    if criteria.department_id:
        query = query.filter(Document.department_id == criteria.department_id)
    if date_from:
        query = query.filter(Document.created_at >= date_from)
    if date_to:
        query = query.filter(Document.created_at <= date_to)
    if criteria.uploaded_by:
        query = query.filter(Document.created_by_id == criteria.uploaded_by)
    if criteria.tags:
        query = query.filter(_any_element(db, Document.tags, criteria.tags))
    if criteria.keywords:
        query = query.filter(_any_element(db, Document.ocr_keywords, criteria.keywords))
    if criteria.organization:
        query = query.filter(
            element_contains(db, Document.ocr_organization_references, criteria.organization)
        )
    if criteria.has_monetary_values:
        query = query.filter(has_elements(db, Document.ocr_monetary_values))

    total = query.order_by(None).count()
    documents = query.order_by(order, Document.id).offset((page - 1) * limit).limit(limit).all()

    scored = [(document, calculate_relevance(document, text)) for document in documents]
    if text:
        scored = rank_by_relevance(scored)

    search_requests_total.labels(kind="advanced").inc()
    logger.info(
        f"Search returned {len(documents)} of {total} documents",
        extra={"org_id": actor.org_id, "user_id": actor.id},
    )
    return {
        "documents": [search_result(document, score) for document, score in scored],
        "pagination": _pagination(page, limit, total),
    }


def full_text_search(
    db: Session,
    actor: User,
    text: str,
    min_confidence: Optional[int] = None,
    page: int = 1,
    limit: Optional[int] = None,
) -> Dict[str, Any]:
    """Search inside OCR text of documents recognised with enough confidence.

    Most confident first.
    """
    text = (text or "").strip()
    if not text:
        raise ValidationError("Search query is required", field="q")
    if min_confidence is None:
        min_confidence = settings.FULLTEXT_MIN_CONFIDENCE
    page, limit = _page_window(page, limit)

    query = scoped_documents(db, actor).filter(
        Document.ocr_extracted_text.ilike(contains_pattern(text), escape=LIKE_ESCAPE),
        Document.ocr_confidence >= min_confidence,
    )
    total = query.order_by(None).count()
    documents = query.order_by(
        Document.ocr_confidence.desc(), Document.created_at.desc(), Document.id
    ).offset((page - 1) * limit).limit(limit).all()

    search_requests_total.labels(kind="full_text").inc()
    return {
        "documents": [search_result(document) for document in documents],
        "pagination": _pagination(page, limit, total),
    }


def metadata_search(
    db: Session,
    actor: User,
    date_references: Optional[List[str]] = None,
    organization: Optional[str] = None,
    monetary_value: Optional[str] = None,
    page: int = 1,
    limit: Optional[int] = None,
) -> Dict[str, Any]:
    """Search by OCR metadata: any of the date references, organisation and
    monetary value substrings. Newest first."""
    page, limit = _page_window(page, limit)

    query = scoped_documents(db, actor)
    if date_references:
        query = query.filter(_any_element(db, Document.ocr_date_references, date_references))
    if organization:
        query = query.filter(element_contains(db, Document.ocr_organization_references, organization))
    if monetary_value:
        query = query.filter(element_contains(db, Document.ocr_monetary_values, monetary_value))

    total = query.order_by(None).count()
    documents = query.order_by(
        Document.created_at.desc(), Document.id
    ).offset((page - 1) * limit).limit(limit).all()

    search_requests_total.labels(kind="metadata").inc()
    return {
        "documents": [search_result(document) for document in documents],
        "pagination": _pagination(page, limit, total),
    }


def find_similar_documents(
    db: Session,
    actor: User,
    document_id: UUID,
    limit: Optional[int] = None,
) -> Dict[str, Any]:
    """Visible documents sharing at least one OCR keyword with the given one.

    Raises:
        NotFoundError: Unknown or inactive document
        NotAuthorizedError: The actor may not see the source document
    """
    source = db.query(Document).filter(
        Document.id == document_id,
        Document.org_id == actor.org_id,
        Document.is_active.is_(True),
    ).first()
    if source is None:
        raise NotFoundError("Document not found", details={"id": str(document_id)})
    if not can_view(actor, source):
        raise NotAuthorizedError("You do not have access to this document")

    if limit is None:
        limit = settings.SIMILAR_DOCUMENTS_LIMIT
    limit = max(1, min(limit, settings.SEARCH_MAX_LIMIT))

    keywords = [str(keyword) for keyword in (source.ocr_keywords or [])]
    documents: List[Document] = []
    if keywords:
        documents = scoped_documents(db, actor).filter(
            Document.id != source.id,
            _any_element(db, Document.ocr_keywords, keywords),
        ).order_by(Document.created_at.desc(), Document.id).limit(limit).all()

    search_requests_total.labels(kind="similar").inc()
    lowered = {keyword.lower() for keyword in keywords}
    results = []
    for document in documents:
        result = search_result(document)
        result["shared_keywords"] = sorted(
            keyword for keyword in (document.ocr_keywords or []) if str(keyword).lower() in lowered
        )
        results.append(result)

    return {
        "documents": results,
        "original_document": {
            "id": str(source.id),
            "title": source.title,
            "keywords": keywords,
        },
    }


def _distinct_column(db: Session, actor: User, column, text: str, limit: int) -> List[str]:
    rows = db.query(column).filter(
        *scope_filters(actor),
        column.ilike(contains_pattern(text), escape=LIKE_ESCAPE),
    ).distinct().order_by(column).limit(limit).all()
    return [row[0] for row in rows]


def _distinct_elements(db: Session, actor: User, column, text: str, limit: int) -> List[str]:
    rows = db.query(column).filter(
        *scope_filters(actor),
        element_contains(db, column, text),
    ).order_by(Document.created_at.desc()).limit(SUGGESTION_SCAN_LIMIT).all()

    needle = text.lower()
    values: List[str] = []
    for (elements,) in rows:
        for element in elements or []:
            element = str(element)
            if needle in element.lower() and element not in values:
                values.append(element)
                if len(values) >= limit:
                    return values
    return values


def get_suggestions(db: Session, actor: User, text: str, limit: Optional[int] = None) -> Dict[str, List[str]]:
    """Autocomplete values for a partial query."""
    text = (text or "").strip()
    if limit is None:
        limit = settings.SUGGESTION_LIMIT
    suggestions = {"titles": [], "keywords": [], "organizations": [], "document_types": []}
    if not text:
        return suggestions

    suggestions["titles"] = _distinct_column(db, actor, Document.title, text, limit)
    suggestions["keywords"] = _distinct_elements(db, actor, Document.ocr_keywords, text, limit)
    suggestions["organizations"] = _distinct_elements(
        db, actor, Document.ocr_organization_references, text, limit
    )
    suggestions["document_types"] = _distinct_column(db, actor, Document.document_type, text, limit)

    search_requests_total.labels(kind="suggestions").inc()
    return suggestions
