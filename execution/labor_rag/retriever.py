"""
Hybrid Retriever for Lithuanian Labor Law

Combines two retrieval paths for every question:
1. Direct fetch - Labor Code articles named in the question or suggested by
   the LLM are fetched by ID and ranked first with score 1.0
2. Semantic search - top-k similarity matches over the whole index

Both paths run concurrently; the merged list is deduplicated by ID and capped.
Statute questions usually hinge on two or three specific articles that pure
similarity search ranks inconsistently, which is what the direct path fixes.
"""

import time
import asyncio
import logging
from typing import Optional
from dataclasses import dataclass, field

from .ids import article_id
from .vector_store import SearchResult
from .article_extractor import ArticleExtractor, MAX_ARTICLE
from .language_patterns import LABELS

logger = logging.getLogger(__name__)

NO_SOURCES_MESSAGE = LABELS["no_sources"]


@dataclass
class RetrievalConfig:
    """Configuration for retrieval."""
    semantic_top_k: int = 10
    max_results: int = 12
    direct_score: float = 1.0
    statute_slug: str = "darbo-kodeksas"

    # Stratified mode: one filtered query per doc type instead of one global query
    stratified: bool = False
    quotas: dict = field(default_factory=lambda: {
        "legislation": 8,
        "ruling": 4,
        "nutarimas": 2,
        "vdi_faq": 4,
        "vdi_doc": 3,
    })
    # Over-fetch factor for types that are filtered or trimmed after the query
    overfetch: int = 2
    score_floor: float = 0.65
    floor_doc_types: tuple[str, ...] = ("nutarimas", "vdi_faq", "vdi_doc")


@dataclass
class RetrievalResult:
    """Merged passages for one question."""
    query: str
    results: list[SearchResult]
    article_numbers: list[int] = field(default_factory=list)
    direct_count: int = 0
    semantic_count: int = 0
    elapsed_ms: float = 0.0

    @property
    def context(self) -> str:
        return format_context(self.results)

    def to_dict(self) -> dict:
        return {
            "query": self.query,
            "articleNumbers": self.article_numbers,
            "directCount": self.direct_count,
            "semanticCount": self.semantic_count,
            "elapsedMs": round(self.elapsed_ms, 1),
            "results": [r.to_dict() for r in self.results],
        }


# =============================================================================
# Merging and Context Formatting
# =============================================================================

def merge_results(direct: list[SearchResult], semantic: list[SearchResult], cap: int = 12) -> list[SearchResult]:
    """
    Direct results first, then semantic results by descending score.

    IDs already taken are skipped; the output never exceeds cap and never
    holds the same ID twice.
    """
    merged = []
    seen = set()
    for result in direct:
        if result.id in seen or len(merged) >= cap:
            continue
        seen.add(result.id)
        merged.append(result)

    for result in sorted(semantic, key=lambda r: r.score, reverse=True):
        if len(merged) >= cap:
            break
        if result.id in seen:
            continue
        seen.add(result.id)
        merged.append(result)
    return merged


def format_source(result: SearchResult) -> str:
    """One labelled context block for the answer generator."""
    meta = result.metadata
    doc_type = result.doc_type

    if doc_type == "legislation":
        title = meta.get("articleTitle") or ""
        key = "osh_legislation" if str(meta.get("docId", "")).startswith("dss") else "legislation"
        header = LABELS[key].format(
            number=meta.get("articleNumber", ""),
            title=f": {title}" if title else "",
        )
        return f"{header}\n{result.text}"

    if doc_type == "ruling":
        if meta.get("caseNumber"):
            reference = f", Nr. {meta['caseNumber']}"
        elif meta.get("year") and meta.get("year") != "unknown":
            reference = f", {meta['year']}"
        else:
            reference = ""
        content = ""
        if meta.get("caseTitle"):
            content += LABELS["ruling_topic"].format(title=meta["caseTitle"]) + "\n"
        if meta.get("caseSummary"):
            content += LABELS["ruling_summary"].format(summary=meta["caseSummary"]) + "\n\n"
        return f"{LABELS['ruling'].format(reference=reference)}\n{content}{result.text}"

    if doc_type == "nutarimas":
        return f"{LABELS['nutarimas'].format(title=meta.get('title') or meta.get('docId', ''))}\n{result.text}"

    if doc_type == "vdi_faq":
        return f"{LABELS['vdi_faq'].format(question=meta.get('question', ''))}\n{result.text}"

    if doc_type == "vdi_doc":
        return f"{LABELS['vdi_doc'].format(title=meta.get('title', ''))}\n{result.text}"

    return result.text


def format_context(results: list[SearchResult]) -> str:
    """Context block for the answer prompt; a fixed message when nothing was found."""
    if not results:
        return NO_SOURCES_MESSAGE
    return "\n\n---\n\n".join(format_source(r) for r in results)


# =============================================================================
# Retriever
# =============================================================================

class HybridRetriever:
    """
    Direct article fetch plus semantic search.

    Usage:
        retriever = HybridRetriever(store, embeddings, ArticleExtractor(completion))
        result = await retriever.retrieve("Kiek trunka išbandymas?")
    """

    def __init__(
        self,
        vector_store,
        embedding_service,
        extractor: Optional[ArticleExtractor] = None,
        config: Optional[RetrievalConfig] = None,
    ):
        """
        Initialize retriever.

        Args:
            vector_store: Vector store instance
            embedding_service: Embedding service instance
            extractor: Article extractor; explicit mentions only when omitted
            config: Optional retrieval configuration
        """
        self.store = vector_store
        self.embeddings = embedding_service
        self.extractor = extractor or ArticleExtractor()
        self.config = config or RetrievalConfig()

    # =========================================================================
    # Direct Path
    # =========================================================================

    async def fetch_articles(self, numbers: list[int]) -> list[SearchResult]:
        """
        Fetch articles by number, in the given order.

        Returns:
            Found articles with the direct score; [] when the fetch fails
        """
        if not numbers:
            return []
        ids = [article_id(self.config.statute_slug, n) for n in numbers]
        try:
            records = await asyncio.to_thread(self.store.fetch, ids)
        except Exception as e:
            logger.warning(f"Direct article fetch failed: {e}. Continuing with semantic results only.")
            return []

        return [
            SearchResult(id=vector_id, score=self.config.direct_score, metadata=records[vector_id], source="direct")
            for vector_id in ids
            if vector_id in records
        ]

    async def get_article(self, number: int) -> Optional[SearchResult]:
        """One Labor Code article by number, or None when it is not indexed."""
        if not 1 <= number <= MAX_ARTICLE:
            return None
        vector_id = article_id(self.config.statute_slug, number)
        records = await asyncio.to_thread(self.store.fetch, [vector_id])
        if vector_id not in records:
            return None
        return SearchResult(id=vector_id, score=self.config.direct_score, metadata=records[vector_id], source="direct")

    # =========================================================================
    # Semantic Path
    # =========================================================================

    async def _semantic_search(self, query: str) -> list[SearchResult]:
        """Embed the query and search; errors propagate to the caller."""
        vector = await asyncio.to_thread(self.embeddings.embed_query, query)
        if self.config.stratified:
            return await self._stratified_search(vector)
        return await asyncio.to_thread(self.store.query, vector, self.config.semantic_top_k)

    async def _stratified_search(self, vector: list[float]) -> list[SearchResult]:
        """Per-doc-type queries with quotas, run one after another."""
        results = []
        for doc_type, quota in self.config.quotas.items():
            top_k = quota if doc_type == "legislation" else quota * self.config.overfetch
            matches = await asyncio.to_thread(
                self.store.query, vector, top_k, {"docType": {"$eq": doc_type}}
            )
            if doc_type in self.config.floor_doc_types:
                matches = [m for m in matches if m.score >= self.config.score_floor]
            results.extend(matches[:quota])
        results.sort(key=lambda r: r.score, reverse=True)
        return results

    # =========================================================================
    # Main Entry Point
    # =========================================================================

    async def retrieve(self, query: str) -> RetrievalResult:
        """
        Retrieve merged passages for a question.

        Args:
            query: User question in Lithuanian

        Returns:
            RetrievalResult with direct articles first

        Raises:
            Exception: from the embedding service or the semantic query
        """
        started = time.monotonic()

        numbers, semantic = await asyncio.gather(
            self.extractor.extract(query),
            self._semantic_search(query),
        )
        direct = await self.fetch_articles(numbers)
        merged = merge_results(direct, semantic, self.config.max_results)

        direct_ids = {r.id for r in direct}
        result = RetrievalResult(
            query=query,
            results=merged,
            article_numbers=numbers,
            direct_count=sum(1 for r in merged if r.id in direct_ids),
            semantic_count=sum(1 for r in merged if r.id not in direct_ids),
            elapsed_ms=(time.monotonic() - started) * 1000,
        )
        logger.info(
            f"Retrieved {len(merged)} passages ({result.direct_count} direct, "
            f"{result.semantic_count} semantic) in {result.elapsed_ms:.0f}ms for: '{query[:60]}'"
        )
        return result


def get_retriever(settings=None, stratified: bool = False) -> HybridRetriever:
    """Factory: retriever wired to the configured store, embeddings and LLM."""
    from .config import Settings
    from .completion import get_completion_service
    from .embeddings import get_embedding_service
    from .vector_store import get_vector_store

    settings = settings or Settings.from_env()
    completion = get_completion_service(settings) if settings.nvidia_api_key else None
    return HybridRetriever(
        vector_store=get_vector_store(settings),
        embedding_service=get_embedding_service(settings=settings),
        extractor=ArticleExtractor(completion),
        config=RetrievalConfig(stratified=stratified),
    )


# CLI for testing
if __name__ == "__main__":
    import sys
    from dotenv import load_dotenv

    load_dotenv()
    logging.basicConfig(level=logging.INFO)

    question = " ".join(sys.argv[1:]) or "Koks yra išbandymo terminas sudarant darbo sutartį?"
    outcome = asyncio.run(get_retriever().retrieve(question))
    for item in outcome.results:
        print(f"{item.score:.3f}  {item.source:8}  {item.id}")
    print()
    print(outcome.context[:3000])
