"""Document search and relevance ranking."""

from .scoring import calculate_relevance
from .service import (
    SearchCriteria,
    escape_like,
    find_similar_documents,
    full_text_search,
    get_suggestions,
    metadata_search,
    search,
)

__all__ = [
    "calculate_relevance",
    "SearchCriteria",
    "escape_like",
    "find_similar_documents",
    "full_text_search",
    "get_suggestions",
    "metadata_search",
    "search",
]
