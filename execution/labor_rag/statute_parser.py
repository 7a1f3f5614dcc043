"""
Statute Parser - Splits consolidated statute editions into articles

Works on the plain text of an e-TAR consolidated edition (Labor Code, OSH law).
Detects the part / chapter / section hierarchy, finds article boundaries,
strips amendment-history noise and extracts cross-references between articles.

Every step is a regex heuristic behind its own function, so each one can be
tested and tuned without touching the rest. A pattern that finds nothing
yields an empty result, never an exception.
"""

import re
import logging
from dataclasses import dataclass, field
from typing import Optional

from .language_patterns import (
    STRUCTURE_PATTERNS,
    STRUCTURE_NUMBERING,
    ARTICLE_START_PATTERN,
    ARTICLE_TITLE_NOISE,
    LABOR_CODE_BODY_ANCHOR,
    AMENDMENT_NOISE_PATTERNS,
    TRAILING_HEADING_PATTERNS,
    REFERENCE_PATTERNS,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StatuteProfile:
    """Per-statute parsing and identity settings."""
    slug: str
    label: str  # prefix of the embedding text, e.g. "Darbo kodeksas"
    etar_id: str
    max_article: int
    body_anchor: Optional[re.Pattern] = None
    # Pre-body articles with numbers up to this limit are kept when the body lacks them
    pre_body_limit: int = 0
    min_article_chars: int = 50

    @property
    def register_url(self) -> str:
        return f"https://www.e-tar.lt/portal/lt/legalAct/{self.etar_id}/asr"


LABOR_CODE = StatuteProfile(
    slug="darbo-kodeksas",
    label="Darbo kodeksas",
    etar_id="f6d686707e7011e6b969d7ae07280e89",
    max_article=300,
    body_anchor=LABOR_CODE_BODY_ANCHOR,
    pre_body_limit=6,
)

SAFETY_AND_HEALTH_LAW = StatuteProfile(
    slug="dss-istatymas",
    label="DSS įstatymas",
    etar_id="TAR.95C79D036AA4",
    max_article=60,
)


@dataclass
class StructureMarker:
    """A part (dalis), chapter (skyrius) or section (skirsnis) heading."""
    kind: str
    number: int
    title: str
    position: int


@dataclass
class Article:
    """One numbered article with its place in the statute hierarchy."""
    number: int
    title: str
    text: str
    start: int
    end: int
    part_number: int = 0
    part_title: str = ""
    chapter_number: int = 0
    chapter_title: str = ""
    section_number: int = 0
    section_title: str = ""
    references: list[int] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "number": self.number,
            "title": self.title,
            "text": self.text,
            "dalis": self.part_number,
            "dalisTitle": self.part_title,
            "skyrius": self.chapter_number,
            "skyriusTitle": self.chapter_title,
            "skirsnis": self.section_number,
            "skirsnisTitle": self.section_title,
            "references": self.references,
        }


@dataclass
class ParseReport:
    """Counts of what the parser kept and dropped, for operator review."""
    candidates: int = 0
    pre_body_kept: int = 0
    duplicates_dropped: int = 0
    too_short_dropped: int = 0
    articles: int = 0
    markers: int = 0

    def to_dict(self) -> dict:
        return {
            "candidates": self.candidates,
            "pre_body_kept": self.pre_body_kept,
            "duplicates_dropped": self.duplicates_dropped,
            "too_short_dropped": self.too_short_dropped,
            "articles": self.articles,
            "markers": self.markers,
        }


# =============================================================================
# Text Normalisation
# =============================================================================

def clean_source_text(text: str) -> str:
    """Normalise line endings and horizontal whitespace of a raw edition."""
    text = text.replace("\r\n", "\n")
    text = re.sub(r"[ \t]+", " ", text)
    return re.sub(r"\n{3,}", "\n\n", text)


def clean_article_text(text: str) -> str:
    """Remove amendment-history blocks and headings leaked from the next unit."""
    for pattern in AMENDMENT_NOISE_PATTERNS:
        text = pattern.sub("\n", text)
    for pattern in TRAILING_HEADING_PATTERNS:
        text = pattern.sub("", text)
    return re.sub(r"\n{3,}", "\n\n", text).strip()


def _normalise_article_body(raw: str) -> str:
    text = re.sub(r"\n{2,}", "\n\n", raw.strip())
    text = re.sub(r"^\s+", "", text, flags=re.MULTILINE)
    return clean_article_text(text)


# =============================================================================
# Structure Detection
# =============================================================================

def extract_structure(text: str) -> list[StructureMarker]:
    """
    Find part, chapter and section headings.

    Number words that do not resolve through the ordinal or Roman lookup
    are not markers.

    Returns:
        Markers sorted by position
    """
    markers = []
    for kind, pattern in STRUCTURE_PATTERNS.items():
        numbering = STRUCTURE_NUMBERING[kind]
        for match in pattern.finditer(text):
            number = numbering.get(match.group(1), 0)
            if number:
                markers.append(StructureMarker(
                    kind=kind,
                    number=number,
                    title=match.group(2).strip(),
                    position=match.start(),
                ))
    markers.sort(key=lambda m: m.position)
    return markers


def find_body_start(text: str, anchor: Optional[re.Pattern]) -> int:
    """Offset where the operative body begins; 0 without an anchor match."""
    if anchor is None:
        return 0
    match = anchor.search(text)
    return match.start() if match else 0


def _valid_candidate(number: int, title: str, profile: StatuteProfile) -> bool:
    if number < 1 or number > profile.max_article:
        return False
    if len(title) <= 3:
        return False
    return not ARTICLE_TITLE_NOISE.match(title)


def find_article_starts(
    text: str,
    profile: StatuteProfile,
    report: Optional[ParseReport] = None,
) -> list[tuple[int, str, int]]:
    """
    Locate article headings.

    The table of contents before the body anchor repeats every heading, so
    only body matches count, except for low-numbered articles that appear
    before the anchor and nowhere in the body.

    Returns:
        (number, title, position) tuples ordered by position, one per number
    """
    report = report if report is not None else ParseReport()
    body_start = find_body_start(text, profile.body_anchor)

    body, pre_body = [], []
    for match in ARTICLE_START_PATTERN.finditer(text):
        number = int(match.group(1))
        title = re.sub(r"\s+", " ", match.group(2).strip())
        if not _valid_candidate(number, title, profile):
            continue
        report.candidates += 1
        candidate = (number, title, match.start(1))
        if match.start(1) >= body_start:
            body.append(candidate)
        else:
            pre_body.append(candidate)

    body_numbers = {number for number, _, _ in body}
    kept_pre_body = [
        c for c in pre_body
        if c[0] <= profile.pre_body_limit and c[0] not in body_numbers
    ]
    report.pre_body_kept += len(kept_pre_body)

    seen = set()
    starts = []
    for candidate in sorted(kept_pre_body + body, key=lambda c: c[2]):
        if candidate[0] in seen:
            report.duplicates_dropped += 1
            continue
        seen.add(candidate[0])
        starts.append(candidate)
    return starts


# =============================================================================
# Hierarchy and References
# =============================================================================

def assign_hierarchy(article: Article, markers: list[StructureMarker]) -> Article:
    """Attach the nearest preceding part, chapter and section to an article."""
    part = chapter = section = None
    for marker in markers:
        if marker.position >= article.start:
            break
        if marker.kind == "dalis":
            part = marker
        elif marker.kind == "skyrius":
            chapter = marker

    # A section only applies inside the current chapter
    for marker in markers:
        if marker.position >= article.start:
            break
        if marker.kind == "skirsnis" and (chapter is None or marker.position > chapter.position):
            section = marker

    if part:
        article.part_number, article.part_title = part.number, part.title
    if chapter:
        article.chapter_number, article.chapter_title = chapter.number, chapter.title
    if section:
        article.section_number, article.section_title = section.number, section.title
    return article


def extract_references(text: str, self_number: int, max_number: int) -> list[int]:
    """Article numbers cited in text, excluding the citing article itself."""
    found = set()
    for pattern in REFERENCE_PATTERNS:
        for match in pattern.finditer(text):
            number = int(match.group(1))
            if number != self_number and 1 <= number <= max_number:
                found.add(number)
    return sorted(found)


# =============================================================================
# Parser
# =============================================================================

class StatuteParser:
    """
    Parses one statute edition into Article records.

    The parser is stateless apart from the report of its last run.
    """

    def __init__(self, profile: StatuteProfile = LABOR_CODE):
        self.profile = profile
        self.report = ParseReport()

    def parse(self, raw_text: str) -> list[Article]:
        """
        Split an edition into articles in document order.

        Args:
            raw_text: Plain text of the consolidated edition

        Returns:
            Articles ordered by start offset
        """
        self.report = ParseReport()
        text = clean_source_text(raw_text)
        markers = extract_structure(text)
        self.report.markers = len(markers)

        starts = find_article_starts(text, self.profile, self.report)
        articles = []
        for i, (number, title, start) in enumerate(starts):
            end = starts[i + 1][2] if i + 1 < len(starts) else len(text)
            body = _normalise_article_body(text[start:end])
            if len(body) < self.profile.min_article_chars:
                self.report.too_short_dropped += 1
                continue

            article = Article(number=number, title=title, text=body, start=start, end=end)
            assign_hierarchy(article, markers)
            article.references = extract_references(body, number, self.profile.max_article)
            articles.append(article)

        self.report.articles = len(articles)
        logger.info(
            f"Parsed {len(articles)} articles from {self.profile.label} "
            f"({self.report.candidates} candidates, {self.report.duplicates_dropped} duplicates, "
            f"{self.report.too_short_dropped} too short, {len(markers)} markers)"
        )
        return articles

    @staticmethod
    def to_lookup(articles: list[Article]) -> dict:
        """Chapter-grouped index of article numbers and titles."""
        by_chapter: dict[str, list[dict]] = {}
        for article in articles:
            chapter = article.chapter_title or "Kita"
            by_chapter.setdefault(chapter, []).append(
                {"number": article.number, "title": article.title}
            )
        return {
            "totalArticles": len(articles),
            "articles": {str(a.number): a.title for a in articles},
            "byChapter": by_chapter,
        }


# CLI for testing
if __name__ == "__main__":
    import sys
    import json
    from pathlib import Path

    if len(sys.argv) < 2:
        print("Usage: python -m execution.labor_rag.statute_parser <text_file> [osh]")
        sys.exit(1)

    logging.basicConfig(level=logging.INFO)

    profile = SAFETY_AND_HEALTH_LAW if "osh" in sys.argv[2:] else LABOR_CODE
    parser = StatuteParser(profile)
    result = parser.parse(Path(sys.argv[1]).read_text(encoding="utf-8"))

    print(json.dumps([a.to_dict() for a in result[:5]], indent=2, ensure_ascii=False))
    print(json.dumps(parser.report.to_dict(), indent=2))
