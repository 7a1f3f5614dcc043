"""
FastAPI Backend for the Labor-Law RAG

Exposes hybrid retrieval to the chat frontend: labelled passages for the
answer generator plus a direct article lookup for the citation modal.

Run with: uvicorn execution.labor_rag.api:app --host 0.0.0.0 --port 8000
"""

import os
import logging

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from dotenv import load_dotenv

from . import __version__
from .api_models import (
    RetrieveRequest, RetrieveResponse, PassageInfo,
    ArticleResponse, HealthResponse,
)
from .article_extractor import MAX_ARTICLE

load_dotenv()
logger = logging.getLogger(__name__)

LABOR_CODE_URL = "https://www.e-tar.lt/portal/lt/legalAct/f6d686707e7011e6b969d7ae07280e89/asr"

app = FastAPI(
    title="Labor Law RAG API",
    description="Retrieval over Lithuanian employment law: Labor Code, LAT practice, resolutions, VDI FAQ",
    version=__version__,
)

_cors_origins = os.getenv("CORS_ORIGINS", "http://localhost:5173,http://localhost:3000").split(",")
app.add_middleware(
    CORSMiddleware,
    allow_origins=[o.strip() for o in _cors_origins],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# =============================================================================
# Service Container - built once per process
# =============================================================================

class ServiceContainer:
    """Lazily builds the store and the retrievers on first use."""

    def __init__(self):
        self._settings = None
        self._store = None
        self._services = {}  # keyed by "default" / "stratified"

    def get_settings(self):
        if self._settings is None:
            from .config import Settings
            self._settings = Settings.from_env()
        return self._settings

    def get_store(self):
        if self._store is None:
            from .vector_store import get_vector_store
            self._store = get_vector_store(self.get_settings())
            self._store.connect()
        return self._store

    def get_services(self, stratified: bool = False) -> dict:
        key = "stratified" if stratified else "default"
        if key not in self._services:
            from .completion import get_completion_service
            from .embeddings import get_embedding_service
            from .article_extractor import ArticleExtractor
            from .retriever import HybridRetriever, RetrievalConfig

            settings = self.get_settings()
            completion = get_completion_service(settings) if settings.nvidia_api_key else None
            embeddings = get_embedding_service(settings=settings)
            self._services[key] = {
                "embeddings": embeddings,
                "retriever": HybridRetriever(
                    self.get_store(),
                    embeddings,
                    ArticleExtractor(completion),
                    RetrievalConfig(stratified=stratified),
                ),
            }
        return self._services[key]


_container = ServiceContainer()


def _passage(result) -> PassageInfo:
    meta = result.metadata
    article = result.provenance.get("articleNumber")
    page = meta.get("sourcePage")
    return PassageInfo(
        id=result.id,
        score=result.score,
        doc_type=result.doc_type,
        retrieval=result.source,
        text=result.text,
        article_number=article,
        article_title=meta.get("articleTitle"),
        case_number=meta.get("caseNumber"),
        case_title=meta.get("caseTitle"),
        title=meta.get("title") or meta.get("question"),
        source_file=meta.get("sourceFile"),
        source_url=meta.get("sourceUrl"),
        source_page=int(page) if page else None,
    )


# =============================================================================
# Endpoints
# =============================================================================

@app.get("/api/v1/health", response_model=HealthResponse)
async def health_check():
    """Health check endpoint."""
    settings = _container.get_settings()
    vectors = None
    status = "ok"
    try:
        vectors = _container.get_store().describe_stats()["total_vectors"]
    except Exception as e:
        logger.warning(f"Health check: index unavailable: {e}")
        status = "degraded"

    return HealthResponse(
        status=status,
        version=__version__,
        index=settings.pinecone_index,
        vectors=vectors,
    )


@app.post("/api/v1/retrieve", response_model=RetrieveResponse)
async def retrieve(request: RetrieveRequest):
    """Hybrid retrieval: direct article fetch merged with semantic search."""
    retriever = _container.get_services(request.stratified)["retriever"]
    try:
        result = await retriever.retrieve(request.query)
    except Exception as e:
        logger.error(f"Retrieval failed for '{request.query[:60]}': {e}")
        raise HTTPException(status_code=502, detail="Search backend unavailable")

    return RetrieveResponse(
        query=result.query,
        article_numbers=result.article_numbers,
        passages=[_passage(r) for r in result.results],
        context=result.context,
        latency_ms=round(result.elapsed_ms, 1),
    )


@app.get("/api/v1/articles/{article_number}", response_model=ArticleResponse)
async def get_article(article_number: int):
    """Full text of one Labor Code article."""
    if not 1 <= article_number <= MAX_ARTICLE:
        raise HTTPException(status_code=400, detail=f"Article number must be between 1 and {MAX_ARTICLE}")

    retriever = _container.get_services()["retriever"]
    try:
        article = await retriever.get_article(article_number)
    except Exception as e:
        logger.error(f"Article fetch failed for {article_number}: {e}")
        raise HTTPException(status_code=502, detail="Search backend unavailable")

    if article is None:
        raise HTTPException(status_code=404, detail=f"Article {article_number} not found")

    meta = article.metadata
    return ArticleResponse(
        articleNumber=article_number,
        title=meta.get("articleTitle") or f"{article_number} straipsnis",
        text=article.text,
        eTarUrl=f"{LABOR_CODE_URL}#part_{article_number}",
        chapter=meta.get("skyriusTitle") or None,
        effectiveDate=meta.get("effectiveDate"),
    )
