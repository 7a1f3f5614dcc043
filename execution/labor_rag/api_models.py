"""
Pydantic models for the Labor-Law RAG FastAPI backend.
"""

from typing import Optional
from pydantic import BaseModel, Field


class RetrieveRequest(BaseModel):
    """Request body for the retrieval endpoint."""
    query: str = Field(..., min_length=1, max_length=2000)
    stratified: bool = False


class PassageInfo(BaseModel):
    """One retrieved passage with its provenance."""
    id: str
    score: float
    doc_type: str
    retrieval: str  # "direct" or "semantic"
    text: str
    article_number: Optional[int] = None
    article_title: Optional[str] = None
    case_number: Optional[str] = None
    case_title: Optional[str] = None
    title: Optional[str] = None
    source_file: Optional[str] = None
    source_url: Optional[str] = None
    source_page: Optional[int] = None


class RetrieveResponse(BaseModel):
    """Response body for the retrieval endpoint."""
    query: str
    article_numbers: list[int]
    passages: list[PassageInfo]
    context: str
    latency_ms: float


class ArticleResponse(BaseModel):
    """A single Labor Code article."""
    articleNumber: int
    title: str
    text: str
    eTarUrl: str
    chapter: Optional[str] = None
    effectiveDate: Optional[str] = None


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    version: str
    index: str
    vectors: Optional[int] = None
