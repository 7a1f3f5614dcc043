"""
Incremental Ingestion Pipeline

Turns parsed sources into IngestionUnits (ID + embedding text + metadata),
then replaces them in the vector index: delete stale IDs, embed each unit,
upsert in batches.

Re-running an ingestion with the same input leaves the index unchanged,
because every ID is derived from document identity and position (ids.py).
Failures of single units or batches are logged and counted, never fatal:
a long run over hundreds of units should not be lost to one timeout.
"""

import time
import asyncio
import logging
from dataclasses import dataclass, field
from typing import Optional

from .ids import article_id, case_id, chunk_id, faq_id
from .vector_store import IndexedVector
from .case_segmenter import Case, build_case_embedding_text

logger = logging.getLogger(__name__)

STATUTE_METADATA_TEXT = 4000
CASE_METADATA_TEXT = 3500
CHUNK_METADATA_TEXT = 8000
FAQ_METADATA_TEXT = 8000
MAX_EMBEDDING_CHARS = 30000


@dataclass
class IngestionUnit:
    """One vector-to-be: ID, text to embed and metadata to store."""
    id: str
    embedding_text: str
    metadata: dict = field(default_factory=dict)


@dataclass
class IngestionConfig:
    """Batching and pacing of remote calls."""
    delete_batch_size: int = 100
    upsert_batch_size: int = 100
    max_input_chars: int = MAX_EMBEDDING_CHARS
    # Fixed pause between embedding calls (provider rate limits)
    embed_delay: float = 0.1
    batch_retries: int = 3
    retry_delay: float = 2.0
    progress_every: int = 20
    dry_run: bool = False


@dataclass
class IngestionReport:
    """Counts for one ingestion run."""
    source: str = ""
    total: int = 0
    embedded: int = 0
    upserted: int = 0
    deleted: int = 0
    skipped: int = 0
    failed_embeddings: int = 0
    failed_batches: int = 0
    elapsed_s: float = 0.0
    failed_ids: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failed_embeddings and not self.failed_batches

    def to_dict(self) -> dict:
        return {
            "source": self.source,
            "total": self.total,
            "embedded": self.embedded,
            "upserted": self.upserted,
            "deleted": self.deleted,
            "skipped": self.skipped,
            "failed_embeddings": self.failed_embeddings,
            "failed_batches": self.failed_batches,
            "elapsed_s": round(self.elapsed_s, 2),
        }

    def merge(self, other: "IngestionReport") -> None:
        """Add another run's counts (multi-document sources)."""
        self.total += other.total
        self.embedded += other.embedded
        self.upserted += other.upserted
        self.deleted += other.deleted
        self.skipped += other.skipped
        self.failed_embeddings += other.failed_embeddings
        self.failed_batches += other.failed_batches
        self.elapsed_s += other.elapsed_s
        self.failed_ids.extend(other.failed_ids)


# =============================================================================
# Unit Builders
# =============================================================================

def statute_units(articles, profile, effective_date: str, source_file: str = "e-tar.lt") -> list[IngestionUnit]:
    """One unit per article, prefixed with its place in the hierarchy."""
    units = []
    for article in articles:
        header = [f"{profile.label} {article.number} straipsnis: {article.title}"]
        if article.part_title:
            header.append(f"Dalis: {article.part_title}")
        if article.chapter_title:
            header.append(f"Skyrius: {article.chapter_title}")
        if article.section_title:
            header.append(f"Skirsnis: {article.section_title}")
        embedding_text = "\n".join(header) + "\n\n" + article.text

        units.append(IngestionUnit(
            id=article_id(profile.slug, article.number),
            embedding_text=embedding_text[:MAX_EMBEDDING_CHARS],
            metadata={
                "docId": profile.slug,
                "docType": "legislation",
                "sourceFile": source_file,
                "effectiveDate": effective_date,
                "articleNumber": article.number,
                "articleTitle": article.title,
                "dalis": article.part_number,
                "dalisTitle": article.part_title,
                "skyrius": article.chapter_number,
                "skyriusTitle": article.chapter_title,
                "skirsnis": article.section_number,
                "skirsnisTitle": article.section_title,
                "references": ",".join(str(r) for r in article.references),
                "text": article.text[:STATUTE_METADATA_TEXT],
                "chunkIndex": 0,
                "totalChunks": 1,
            },
        ))
    return units


def case_units(
    cases: list[Case],
    doc_slug: str,
    source_file: str,
    year: str = "unknown",
    month: str = "unknown",
    source_url: Optional[str] = None,
) -> list[IngestionUnit]:
    """One unit per court case of a bulletin."""
    units = []
    for case in cases:
        metadata = {
            "docId": doc_slug,
            "docType": "ruling",
            "sourceFile": f"rulings/{source_file}",
            "caseIndex": case.index,
            "totalCases": len(cases),
            "text": case.raw_content[:CASE_METADATA_TEXT],
            "year": year,
            "month": month,
            "section": "darbo_teise",
            "caseTitle": case.title,
        }
        if case.case_number:
            metadata["caseNumber"] = case.case_number
        if case.summary:
            metadata["caseSummary"] = case.summary
        if source_url:
            metadata["sourceUrl"] = source_url
        if case.source_page:
            metadata["sourcePage"] = case.source_page

        units.append(IngestionUnit(
            id=case_id(doc_slug, case.index),
            embedding_text=build_case_embedding_text(case),
            metadata=metadata,
        ))
    return units


def chunk_units(
    chunks,
    doc_slug: str,
    doc_type: str,
    title: str,
    description: str = "",
    source_file: str = "",
) -> list[IngestionUnit]:
    """One unit per chunk of a long document (resolutions, VDI guidance)."""
    return [
        IngestionUnit(
            id=chunk_id(doc_slug, c.index),
            embedding_text=f"{title}\n\n{c.text}",
            metadata={
                "docId": doc_slug,
                "docType": doc_type,
                "title": title,
                "description": description,
                "text": c.text[:CHUNK_METADATA_TEXT],
                "chunkIndex": c.index,
                "totalChunks": c.total_chunks,
                "sourceFile": source_file,
            },
        )
        for c in chunks
    ]


def faq_units(items, source_url: str) -> list[IngestionUnit]:
    """One unit per question-answer pair."""
    return [
        IngestionUnit(
            id=faq_id(i),
            embedding_text=f"Klausimas: {item.question}\n\nAtsakymas: {item.answer}",
            metadata={
                "docId": faq_id(i),
                "docType": "vdi_faq",
                "question": item.question[:FAQ_METADATA_TEXT],
                "text": item.answer[:FAQ_METADATA_TEXT],
                "category": item.category[:500],
                "sourceUrl": source_url,
            },
        )
        for i, item in enumerate(items)
    ]


def _batches(items: list, size: int):
    for i in range(0, len(items), size):
        yield items[i:i + size]


# =============================================================================
# Pipeline
# =============================================================================

class IngestionPipeline:
    """
    Embeds and upserts units of one document at a time.

    Calls are sequential with fixed delays; the embedding provider and the
    index see at most one request in flight from this pipeline.
    """

    def __init__(self, embedding_service, vector_store, config: Optional[IngestionConfig] = None):
        self.embeddings = embedding_service
        self.store = vector_store
        self.config = config or IngestionConfig()

    async def delete_stale(self, ids: list[str]) -> int:
        """Delete IDs in batches; a failed batch is logged and skipped."""
        deleted = 0
        for batch in _batches(ids, self.config.delete_batch_size):
            try:
                deleted += await asyncio.to_thread(self.store.delete_many, batch)
            except Exception as e:
                logger.warning(f"Delete of {len(batch)} ids failed ({batch[0]}...): {e}")
        return deleted

    async def list_existing(self, prefix: str) -> Optional[list[str]]:
        """IDs already in the index under prefix; None when the listing fails."""
        try:
            return await asyncio.to_thread(self.store.list_ids, prefix)
        except Exception as e:
            logger.warning(f"Listing ids under {prefix} failed: {e}")
            return None

    async def embed_units(self, units: list[IngestionUnit], report: IngestionReport) -> list[IndexedVector]:
        """Embed units one by one, skipping failures."""
        vectors = []
        for i, unit in enumerate(units):
            if not unit.embedding_text.strip():
                report.skipped += 1
                continue
            if vectors or report.failed_embeddings:
                await asyncio.sleep(self.config.embed_delay)

            text = unit.embedding_text[:self.config.max_input_chars]
            try:
                values = await asyncio.to_thread(self.embeddings.embed_document, text)
            except Exception as e:
                logger.warning(f"Embedding failed for {unit.id}: {e}")
                report.failed_embeddings += 1
                report.failed_ids.append(unit.id)
                continue

            vectors.append(IndexedVector(id=unit.id, values=values, metadata=unit.metadata))
            report.embedded += 1
            if (i + 1) % self.config.progress_every == 0:
                logger.info(f"Embedded {i + 1}/{len(units)}")
        return vectors

    async def upsert_vectors(self, vectors: list[IndexedVector], report: IngestionReport) -> None:
        """Upsert in batches, retrying each failed batch a fixed number of times."""
        for batch in _batches(vectors, self.config.upsert_batch_size):
            for attempt in range(1, self.config.batch_retries + 1):
                try:
                    report.upserted += await asyncio.to_thread(self.store.upsert, batch)
                    break
                except Exception as e:
                    if attempt < self.config.batch_retries:
                        logger.warning(
                            f"Upsert batch starting {batch[0].id} failed "
                            f"(attempt {attempt}/{self.config.batch_retries}): {e}"
                        )
                        await asyncio.sleep(self.config.retry_delay)
                    else:
                        logger.error(f"Upsert batch starting {batch[0].id} gave up: {e}")
                        report.failed_batches += 1
                        report.failed_ids.extend(v.id for v in batch)

    async def ingest(
        self,
        units: list[IngestionUnit],
        stale_ids: Optional[list[str]] = None,
        replace: bool = True,
        source: str = "",
        stale_prefix: Optional[str] = None,
    ) -> IngestionReport:
        """
        Replace a document's vectors in the index.

        Args:
            units: Units of one document
            stale_ids: IDs to delete first; defaults to the units' own IDs
            replace: Delete before upserting
            stale_prefix: ID prefix of the document; every indexed ID under it
                is deleted too, so units from an earlier, longer split go away
            source: Label for logs and the report

        Returns:
            IngestionReport with per-stage counts
        """
        started = time.monotonic()
        report = IngestionReport(source=source, total=len(units))

        if self.config.dry_run:
            report.skipped = len(units)
            logger.info(f"[dry-run] {source}: {len(units)} units built, nothing sent")
            return report

        if replace:
            ids = stale_ids if stale_ids is not None else [u.id for u in units]
            if stale_prefix:
                existing = await self.list_existing(stale_prefix)
                if existing:
                    ids = list(dict.fromkeys([*ids, *existing]))
            report.deleted = await self.delete_stale(ids)

        vectors = await self.embed_units(units, report)
        await self.upsert_vectors(vectors, report)

        report.elapsed_s = time.monotonic() - started
        logger.info(
            f"Ingested {source or 'document'}: {report.upserted}/{report.total} upserted, "
            f"{report.failed_embeddings} embedding failures, {report.failed_batches} failed batches, "
            f"{report.deleted} deleted in {report.elapsed_s:.1f}s"
        )
        return report
