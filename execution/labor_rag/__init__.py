"""
Labor-Law RAG - Retrieval for Lithuanian Employment Law

This module provides:
- Structural parsing of consolidated statute editions (Labor Code, OSH law)
- Case segmentation of Supreme Court (LAT) practice bulletins
- Sliding-window chunking of resolutions and guidance documents
- Incremental, idempotent ingestion into a Pinecone index
- Hybrid retrieval: direct article fetch merged with semantic search
"""

from .statute_parser import StatuteParser
from .case_segmenter import CaseSegmenter
from .chunker import TextChunker
from .embeddings import EmbeddingService, VoyageEmbeddingService
from .vector_store import VectorStore
from .ingestion import IngestionPipeline
from .retriever import HybridRetriever

__all__ = [
    "StatuteParser",
    "CaseSegmenter",
    "TextChunker",
    "EmbeddingService",
    "VoyageEmbeddingService",
    "VectorStore",
    "IngestionPipeline",
    "HybridRetriever",
]

__version__ = "0.1.0"
