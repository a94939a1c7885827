"""Search relevance scoring.

A document's relevance to a free-text query is the sum of fixed weights for
every field the query appears in (case-insensitive substring):

    title 100, description 50, OCR text 30, reference 25,
    20 per matching OCR keyword, 15 per matching tag
"""

from typing import Iterable, Optional

TITLE_WEIGHT = 100
DESCRIPTION_WEIGHT = 50
OCR_TEXT_WEIGHT = 30
KEYWORD_WEIGHT = 20
TAG_WEIGHT = 15
REFERENCE_WEIGHT = 25


def _contains(value: Optional[str], needle: str) -> bool:
    return bool(value) and needle in value.lower()


def _count_matches(values: Optional[Iterable[str]], needle: str) -> int:
    return sum(1 for value in (values or []) if _contains(str(value), needle))


def calculate_relevance(document, query: Optional[str]) -> int:
    """Relevance score of a document for a query; 0 without a query.

    Example:
        >>> doc.title, doc.tags = "Budget 2026", ["budget", "finance"]
        >>> calculate_relevance(doc, "budget")
        115
    """
    if not query or not query.strip():
        return 0

    needle = query.strip().lower()
    score = 0
    if _contains(document.title, needle):
        score += TITLE_WEIGHT
    if _contains(document.description, needle):
        score += DESCRIPTION_WEIGHT
    if _contains(document.ocr_extracted_text, needle):
        score += OCR_TEXT_WEIGHT
    score += KEYWORD_WEIGHT * _count_matches(document.ocr_keywords, needle)
    score += TAG_WEIGHT * _count_matches(document.tags, needle)
    if _contains(document.reference, needle):
        score += REFERENCE_WEIGHT
    return score


def rank_by_relevance(scored):
    """Stable sort of (document, score) pairs, best first."""
    return sorted(scored, key=lambda pair: pair[1], reverse=True)
