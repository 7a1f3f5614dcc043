"""
Vector Store backed by a Pinecone index

Thin wrapper over the Pinecone client: upsert, similarity query, fetch by ID,
delete by ID, ID listing by prefix and index statistics. All methods are
synchronous; async callers run them through asyncio.to_thread.

Records are keyed by the deterministic IDs from ids.py, so an upsert of an
existing ID replaces the stored vector and metadata.
"""

import os
import time
import logging
from typing import Optional
from dataclasses import dataclass, field

from pinecone import Pinecone

from .ids import parse_article_number

logger = logging.getLogger(__name__)


@dataclass
class VectorStoreConfig:
    """Configuration for vector store."""
    api_key: Optional[str] = None
    index_name: str = "law-agent"
    namespace: str = ""
    dimensions: int = 1024
    # Pinecone caps metadata at 40KB per record; long strings are cut well below that
    max_metadata_chars: int = 8000
    # Retries for a single failed call (connection resets, 5xx)
    max_retries: int = 2
    retry_delay: float = 1.0


@dataclass
class IndexedVector:
    """A vector as stored in the index."""
    id: str
    values: list[float]
    metadata: dict = field(default_factory=dict)

    def to_record(self) -> dict:
        return {"id": self.id, "values": self.values, "metadata": self.metadata}


@dataclass
class SearchResult:
    """A single search result with score."""
    id: str
    score: float
    metadata: dict
    # "direct" for article fetches, "semantic" for similarity matches
    source: str = "semantic"

    @property
    def text(self) -> str:
        return self.metadata.get("text", "")

    @property
    def doc_type(self) -> str:
        return self.metadata.get("docType", "")

    @property
    def provenance(self) -> dict:
        """Where the passage came from, for citations."""
        meta = self.metadata
        info = {
            "docType": self.doc_type,
            "docId": meta.get("docId", ""),
            "sourceFile": meta.get("sourceFile", ""),
            "retrieval": self.source,
        }
        article = meta.get("articleNumber") or parse_article_number(self.id)
        if article:
            info["articleNumber"] = int(article)
        for key in ("caseNumber", "sourceUrl", "sourcePage", "effectiveDate"):
            if meta.get(key):
                info[key] = meta[key]
        return info

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "score": self.score,
            "text": self.text,
            "metadata": self.metadata,
            "provenance": self.provenance,
        }


class VectorStore:
    """
    Pinecone index client.

    Features:
    - Batched upsert of IndexedVector records
    - Similarity query with optional metadata filter
    - Direct fetch and delete by ID
    """

    def __init__(self, config: Optional[VectorStoreConfig] = None, index=None):
        """
        Initialize vector store.

        Args:
            config: Optional configuration. Uses env vars if not provided.
            index: Pre-built index handle (tests, shared clients)
        """
        self.config = config or VectorStoreConfig()
        self._index = index

    def connect(self) -> None:
        """Open the index handle."""
        if self._index is not None:
            return
        api_key = self.config.api_key or os.getenv("PINECONE_API_KEY")
        if not api_key:
            raise RuntimeError("PINECONE_API_KEY not set. Cannot connect to the vector index.")
        client = Pinecone(api_key=api_key)
        self._index = client.Index(self.config.index_name)
        logger.info(f"Connected to Pinecone index {self.config.index_name}")

    @property
    def index(self):
        if self._index is None:
            self.connect()
        return self._index

    def _execute_with_retry(self, operation, label: str = "pinecone_operation"):
        """Run an index call, retrying a failed attempt after a fixed delay."""
        for attempt in range(self.config.max_retries + 1):
            try:
                return operation()
            except Exception as e:
                if attempt == self.config.max_retries:
                    raise
                logger.warning(
                    f"{label} failed (attempt {attempt + 1}/{self.config.max_retries + 1}): {e}"
                )
                time.sleep(self.config.retry_delay)

    def sanitize_metadata(self, metadata: dict) -> dict:
        """Drop nulls and cut long strings; Pinecone rejects null metadata values."""
        clean = {}
        for key, value in metadata.items():
            if value is None:
                continue
            if isinstance(value, str) and len(value) > self.config.max_metadata_chars:
                value = value[:self.config.max_metadata_chars]
            clean[key] = value
        return clean

    # =========================================================================
    # Writes
    # =========================================================================

    def upsert(self, vectors: list[IndexedVector]) -> int:
        """
        Insert or replace vectors.

        Returns:
            Number of vectors written
        """
        if not vectors:
            return 0
        records = [
            IndexedVector(v.id, v.values, self.sanitize_metadata(v.metadata)).to_record()
            for v in vectors
        ]
        self._execute_with_retry(
            lambda: self.index.upsert(vectors=records, namespace=self.config.namespace),
            "upsert",
        )
        return len(records)

    def delete_many(self, ids: list[str]) -> int:
        """Delete vectors by ID; unknown IDs are ignored by the index."""
        if not ids:
            return 0
        self._execute_with_retry(
            lambda: self.index.delete(ids=ids, namespace=self.config.namespace),
            "delete",
        )
        return len(ids)

    # =========================================================================
    # Reads
    # =========================================================================

    def query(
        self,
        vector: list[float],
        top_k: int = 10,
        filter: Optional[dict] = None,
    ) -> list[SearchResult]:
        """
        Similarity search.

        Args:
            vector: Query embedding
            top_k: Number of results to return
            filter: Optional Pinecone metadata filter, e.g. {"docType": "ruling"}

        Returns:
            Results in descending score order
        """
        kwargs = {
            "vector": vector,
            "top_k": top_k,
            "include_metadata": True,
            "namespace": self.config.namespace,
        }
        if filter:
            kwargs["filter"] = filter

        response = self._execute_with_retry(lambda: self.index.query(**kwargs), "query")
        return [
            SearchResult(id=m.id, score=float(m.score or 0.0), metadata=dict(m.metadata or {}))
            for m in response.matches
        ]

    def list_ids(self, prefix: str) -> list[str]:
        """
        Every stored ID starting with prefix.

        Pinecone yields the IDs page by page; all pages are collected.
        """
        def _collect():
            return [
                vector_id
                for page in self.index.list(prefix=prefix, namespace=self.config.namespace)
                for vector_id in page
            ]

        return self._execute_with_retry(_collect, f"list {prefix}")

    def fetch(self, ids: list[str]) -> dict[str, dict]:
        """
        Fetch stored records by ID.

        Returns:
            Mapping of found IDs to their metadata; missing IDs are absent
        """
        if not ids:
            return {}
        response = self._execute_with_retry(
            lambda: self.index.fetch(ids=ids, namespace=self.config.namespace),
            "fetch",
        )
        return {
            vector_id: dict(record.metadata or {})
            for vector_id, record in response.vectors.items()
        }

    def describe_stats(self) -> dict:
        """Vector counts for the health endpoint and CLI reports."""
        stats = self._execute_with_retry(self.index.describe_index_stats, "describe_stats")
        return {
            "total_vectors": getattr(stats, "total_vector_count", 0),
            "dimension": getattr(stats, "dimension", self.config.dimensions),
        }


def get_vector_store(settings=None) -> VectorStore:
    """Factory: vector store configured from Settings (or the environment)."""
    if settings is None:
        return VectorStore()
    return VectorStore(VectorStoreConfig(
        api_key=settings.pinecone_api_key,
        index_name=settings.pinecone_index,
    ))


# CLI for testing
if __name__ == "__main__":
    import sys
    from dotenv import load_dotenv

    load_dotenv()
    logging.basicConfig(level=logging.INFO)

    store = VectorStore()
    print(store.describe_stats())
    if len(sys.argv) > 1:
        for vector_id, meta in store.fetch(sys.argv[1:]).items():
            print(vector_id, meta.get("articleTitle") or meta.get("caseTitle") or "", len(meta.get("text", "")))
