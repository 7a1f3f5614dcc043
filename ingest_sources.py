"""
Ingestion CLI for the Lithuanian labor-law index.

Each subcommand fetches one source family, parses it and replaces its vectors
in the Pinecone index:
- labor-code:   Labor Code consolidated edition from e-TAR (one vector per article)
- osh-law:      Occupational Safety and Health law from e-TAR
- lat-rulings:  LAT monthly practice bulletins (one vector per labor-law case)
- resolutions:  Government resolutions (chunked)
- vdi-faq:      VDI frequently asked questions

Usage:
    python ingest_sources.py labor-code
    python ingest_sources.py labor-code --file data/darbo-kodeksas.docx --dry-run
    python ingest_sources.py lat-rulings --dir data/rulings --download
    python ingest_sources.py vdi-faq --dry-run
"""

import sys
import json
import asyncio
import argparse
import logging
from datetime import date
from pathlib import Path
from dotenv import load_dotenv

# Ensure project root is on path
PROJECT_ROOT = Path(__file__).resolve().parent
sys.path.insert(0, str(PROJECT_ROOT))
load_dotenv()

from execution.labor_rag.config import Settings, ConfigurationError  # noqa: E402
from execution.labor_rag.ids import (  # noqa: E402
    article_id, case_prefix, chunk_prefix, document_slug_from_filename, FAQ_PREFIX,
)
from execution.labor_rag.statute_parser import (  # noqa: E402
    StatuteParser, LABOR_CODE, SAFETY_AND_HEALTH_LAW,
)
from execution.labor_rag.case_segmenter import (  # noqa: E402
    CaseSegmenter, summarize_case, parse_bulletin_filename,
)
from execution.labor_rag.chunker import TextChunker  # noqa: E402
from execution.labor_rag.faq_parser import parse_faq_html, VDI_FAQ_URL  # noqa: E402
from execution.labor_rag.ingestion import (  # noqa: E402
    IngestionPipeline, IngestionConfig, IngestionReport,
    statute_units, case_units, chunk_units, faq_units,
)
from execution.labor_rag.sync_state import RulingsSyncState, EditionTracker  # noqa: E402
from execution.labor_rag import sources  # noqa: E402

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger(__name__)

CASE_SUMMARY_DELAY = 0.15


def build_pipeline(settings: Settings, dry_run: bool) -> IngestionPipeline:
    """Pipeline wired to real services, or to nothing for a dry run."""
    config = IngestionConfig(dry_run=dry_run)
    if dry_run:
        return IngestionPipeline(None, None, config)

    from execution.labor_rag.embeddings import get_embedding_service
    from execution.labor_rag.vector_store import get_vector_store

    store = get_vector_store(settings)
    store.connect()
    cache_dir = str(settings.data_dir / "embedding_cache")
    return IngestionPipeline(get_embedding_service(settings=settings, cache_dir=cache_dir), store, config)


# =============================================================================
# Statutes
# =============================================================================

async def ingest_statute(args, settings: Settings, profile) -> IngestionReport:
    data_dir = settings.data_dir
    tracker = EditionTracker(data_dir / f"{profile.slug}-latest.json")
    session = sources.make_session()

    if args.file:
        document = sources.load_local_document(Path(args.file), "statute", title=profile.label)
        edition_id, effective_date = f"file:{document.source_id}", date.today().isoformat()
    else:
        info = sources.discover_edition(profile.etar_id, session)
        if info is None:
            logger.error(f"Could not determine the current edition of {profile.label}")
            return IngestionReport(source=profile.slug)
        if tracker.is_current(info.edition_id) and not args.force:
            logger.info(f"{profile.label} edition {info.edition_id} already ingested. Use --force to re-run.")
            return IngestionReport(source=profile.slug)
        document = sources.fetch_statute_document(info, session, title=profile.label)
        if document is None:
            logger.error(f"Download of {profile.label} edition {info.edition_id} failed")
            return IngestionReport(source=profile.slug)
        edition_id, effective_date = info.edition_id, info.effective_date

    logger.info(f"Loaded {document.source_id}: {len(document.raw_text)} chars")
    parser = StatuteParser(profile)
    articles = parser.parse(document.raw_text)
    if not articles:
        logger.error(f"No articles parsed from {profile.label}; nothing ingested")
        return IngestionReport(source=profile.slug)

    data_dir.mkdir(parents=True, exist_ok=True)
    (data_dir / f"{profile.slug}.json").write_text(
        json.dumps([a.to_dict() for a in articles], ensure_ascii=False, indent=2), encoding="utf-8"
    )
    (data_dir / f"{profile.slug}-lookup.json").write_text(
        json.dumps(StatuteParser.to_lookup(articles), ensure_ascii=False, indent=2), encoding="utf-8"
    )

    units = statute_units(articles, profile, effective_date, source_file="e-tar.lt")
    # Delete the whole article range so repealed articles disappear too
    stale_ids = [article_id(profile.slug, n) for n in range(1, profile.max_article + 1)]
    report = await build_pipeline(settings, args.dry_run).ingest(units, stale_ids=stale_ids, source=profile.slug)

    if not args.dry_run and report.ok:
        tracker.record(edition_id, effective_date, len(articles))
    return report


# =============================================================================
# LAT Rulings
# =============================================================================

async def ingest_rulings(args, settings: Settings) -> IngestionReport:
    rulings_dir = Path(args.dir) if args.dir else settings.data_dir / "rulings"
    state = RulingsSyncState(settings.data_dir / "lat-sync-state.json", force=args.force)
    session = sources.make_session()

    urls = {}
    if args.download:
        for url in sources.discover_bulletins(session):
            path = sources.download_file(url, rulings_dir, session)
            if path is not None:
                urls[path.name] = url

    files = sorted(rulings_dir.glob("*.pdf"))
    pending = [f for f in files if not state.is_processed(f.name)]
    logger.info(f"{len(files)} bulletins on disk, {len(pending)} not yet processed")

    completion = None
    if not args.dry_run and not args.no_summaries and settings.nvidia_api_key:
        from execution.labor_rag.completion import get_completion_service
        completion = get_completion_service(settings)

    pipeline = build_pipeline(settings, args.dry_run)
    segmenter = CaseSegmenter()
    total = IngestionReport(source="lat-rulings")

    for path in pending:
        document = sources.load_local_document(path, "ruling")
        document.url = urls.get(path.name)
        cases = segmenter.segment(document.raw_text, document.source_id)
        if not cases:
            state.mark_processed(path.name)
            continue

        if completion is not None:
            for case in cases:
                case.summary = await summarize_case(case, completion)
                await asyncio.sleep(CASE_SUMMARY_DELAY)

        info = parse_bulletin_filename(path.name)
        doc_slug = document_slug_from_filename(path.name)
        units = case_units(
            cases,
            doc_slug=doc_slug,
            source_file=path.name,
            year=info["year"],
            month=info["month"],
            source_url=document.url,
        )
        report = await pipeline.ingest(units, source=path.name, stale_prefix=case_prefix(doc_slug))
        total.merge(report)
        if report.ok and not args.dry_run:
            state.mark_processed(path.name)

    if not args.dry_run:
        state.save()
    return total


# =============================================================================
# Resolutions and VDI FAQ
# =============================================================================

async def ingest_resolutions(args, settings: Settings) -> IngestionReport:
    session = sources.make_session()
    chunker = TextChunker()
    pipeline = build_pipeline(settings, args.dry_run)
    total = IngestionReport(source="resolutions")

    for resolution in sources.RESOLUTIONS:
        document = sources.fetch_resolution_document(resolution, session)
        if document is None or document.is_empty:
            logger.warning(f"Skipping {resolution.id}: no text")
            continue
        chunks = chunker.chunk(document.raw_text, parent_id=document.source_id)
        units = chunk_units(
            chunks,
            doc_slug=resolution.id,
            doc_type="nutarimas",
            title=resolution.title,
            description=resolution.description,
            source_file=f"e-tar.lt/{resolution.legal_act_id}",
        )
        total.merge(await pipeline.ingest(
            units, source=resolution.id, stale_prefix=chunk_prefix(resolution.id),
        ))
    return total


async def ingest_faq(args, settings: Settings) -> IngestionReport:
    session = sources.make_session()
    html = sources.fetch_page(VDI_FAQ_URL, session)
    if html is None:
        logger.error("Failed to fetch the VDI FAQ page")
        return IngestionReport(source="vdi-faq")

    document = sources.SourceDocument(source_type="faq", source_id="vdi-duk", raw_text=html, url=VDI_FAQ_URL)
    items = parse_faq_html(document.raw_text)
    if not items:
        logger.error("No FAQ items found. Page structure may have changed.")
        return IngestionReport(source="vdi-faq")

    for item in items[:3]:
        logger.info(f"  [{item.category}] {item.question[:80]}")
    units = faq_units(items, document.url)
    return await build_pipeline(settings, args.dry_run).ingest(units, source="vdi-faq", stale_prefix=FAQ_PREFIX)


# =============================================================================
# Entry Point
# =============================================================================

COMMANDS = {
    "labor-code": lambda args, s: ingest_statute(args, s, LABOR_CODE),
    "osh-law": lambda args, s: ingest_statute(args, s, SAFETY_AND_HEALTH_LAW),
    "lat-rulings": ingest_rulings,
    "resolutions": ingest_resolutions,
    "vdi-faq": ingest_faq,
}


def main():
    parser = argparse.ArgumentParser(description="Ingest labor-law sources into the vector index")
    parser.add_argument("source", choices=sorted(COMMANDS), help="Source family to ingest")
    parser.add_argument("--dry-run", action="store_true", help="Parse and build units without remote writes")
    parser.add_argument("--force", action="store_true", help="Ignore sync state and edition trackers")
    parser.add_argument("--dir", default=None, help="Directory of bulletin PDFs (lat-rulings)")
    parser.add_argument("--file", default=None, help="Local statute file (.docx, .pdf or .txt)")
    parser.add_argument("--download", action="store_true", help="Download new bulletins from lat.lt first")
    parser.add_argument("--no-summaries", action="store_true", help="Skip LLM case summaries")
    args = parser.parse_args()

    settings = Settings.from_env(dotenv=False)
    if not args.dry_run:
        try:
            settings.require("pinecone_api_key", settings.embedding_key_name)
        except ConfigurationError as e:
            logger.error(str(e))
            sys.exit(1)

    report = asyncio.run(COMMANDS[args.source](args, settings))

    logger.info("=" * 60)
    logger.info(f"INGESTION COMPLETE: {args.source}")
    for key, value in report.to_dict().items():
        logger.info(f"  {key}: {value}")
    logger.info("=" * 60)
    if not report.ok:
        sys.exit(2)


if __name__ == "__main__":
    main()
