"""Search API response schemas"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class UploaderSummary(BaseModel):
    id: str
    name: str
    email: str


class SearchHit(BaseModel):
    """One matching document"""
    id: str
    reference: str
    title: str
    description: Optional[str] = None
    category: str
    document_type: str
    priority: str
    status: str
    tags: List[str] = Field(default_factory=list)
    department_id: Optional[str] = None
    project_id: Optional[str] = None
    uploaded_by: Optional[UploaderSummary] = None
    is_confidential: bool
    file_url: str
    file_size: str = Field(..., description="Human readable file size")
    version: int
    ocr_document_type: Optional[str] = None
    ocr_keywords: List[str] = Field(default_factory=list)
    created_at: Optional[str] = None
    search_relevance: int = Field(0, description="Relevance score for the free-text query")
    ocr_confidence: int = Field(0, description="OCR confidence (0-100)")
    shared_keywords: Optional[List[str]] = Field(None, description="Only set by similar-document search")


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    pages: int


class SearchResponse(BaseModel):
    documents: List[SearchHit]
    pagination: Pagination


class SimilarDocumentsResponse(BaseModel):
    documents: List[SearchHit]
    original_document: Dict[str, Any]


class SuggestionsResponse(BaseModel):
    titles: List[str] = Field(default_factory=list)
    keywords: List[str] = Field(default_factory=list)
    organizations: List[str] = Field(default_factory=list)
    document_types: List[str] = Field(default_factory=list)
