"""
Case Segmenter - Extracts labor-law cases from LAT practice bulletins

A monthly bulletin of the Supreme Court (LAT) groups case summaries by legal
topic. Only the labor-law subsection is relevant here: it is located by its
heading, bounded by the next sibling topic heading, cleaned of layout noise
and split into one Case per "Dėl ..." title line. Each case gets its docket
number when one can be found.
"""

import re
import logging
from dataclasses import dataclass
from typing import Optional

from .language_patterns import (
    SUBSECTION_HEADING_TEMPLATE,
    LABOR_LAW_SUBSECTION,
    TOC_FOLLOWER_PATTERNS,
    TOC_PRECEDER_PATTERN,
    NEXT_SECTION_PATTERN,
    LEADER_DOTS_PATTERN,
    PAGE_NUMBER_LINE_PATTERN,
    CASE_SPLIT_PATTERN,
    CASE_TITLE_PATTERN,
    CASE_NUMBER_PATTERN,
    BULLETIN_FILENAME_PATTERNS,
    LLM_PROMPTS,
)

logger = logging.getLogger(__name__)

DEFAULT_CASE_TITLE = "Darbo teisė"
MIN_CASE_CHARS = 200
MAX_TITLE_CHARS = 200
CHARS_PER_PAGE = 3000
SUMMARY_INPUT_CHARS = 6000
SUMMARY_MAX_CHARS = 500


@dataclass
class Case:
    """One court case summary from a bulletin."""
    title: str
    raw_content: str
    index: int
    source_document: str
    case_number: Optional[str] = None
    summary: str = ""
    source_page: Optional[int] = None

    def to_dict(self) -> dict:
        return {
            "title": self.title,
            "caseNumber": self.case_number,
            "summary": self.summary,
            "index": self.index,
            "sourceDocument": self.source_document,
            "sourcePage": self.source_page,
            "content": self.raw_content,
        }


# =============================================================================
# Subsection Boundaries
# =============================================================================

def find_subsection_heading(text: str, label: str = LABOR_LAW_SUBSECTION) -> Optional[re.Match]:
    """
    First subsection heading that is not a table-of-contents entry.

    A heading is a TOC entry when the next line starts with leader dots or a
    page number, or when the text just before it ends in leader dots.

    Returns:
        The heading match (group 1 is the label), or None when the bulletin
        has no such subsection
    """
    pattern = re.compile(SUBSECTION_HEADING_TEMPLATE.format(label=label))
    for match in pattern.finditer(text):
        follower = text[match.end():match.end() + 50]
        if any(p.match(follower) for p in TOC_FOLLOWER_PATTERNS):
            continue
        if TOC_PRECEDER_PATTERN.search(text[max(0, match.start() - 50):match.start()]):
            continue
        return match
    return None


def find_subsection_start(text: str, label: str = LABOR_LAW_SUBSECTION) -> Optional[int]:
    """Offset of the subsection heading line, or None when absent."""
    heading = find_subsection_heading(text, label)
    return heading.start() if heading else None


def find_subsection_end(text: str, search_from: int) -> int:
    """Offset of the next sibling topic heading at or after search_from, or the text end."""
    match = NEXT_SECTION_PATTERN.search(text, search_from)
    return match.start() if match else len(text)


def clean_section_text(text: str) -> str:
    """Remove leader dots and page-number lines, normalise whitespace."""
    text = LEADER_DOTS_PATTERN.sub(" ", text)
    text = PAGE_NUMBER_LINE_PATTERN.sub("\n", text)
    text = re.sub(r"[ \t]+", " ", text)
    text = re.sub(r"\n{3,}", "\n\n", text)
    return text.strip()


# =============================================================================
# Case Splitting
# =============================================================================

def split_cases(section_text: str) -> list[str]:
    """Split a cleaned subsection into case texts, dropping short fragments."""
    parts = CASE_SPLIT_PATTERN.split(section_text)
    return [p.strip() for p in parts if len(p.strip()) >= MIN_CASE_CHARS]


def extract_case_title(case_text: str) -> str:
    match = CASE_TITLE_PATTERN.match(case_text)
    title = match.group(1).strip() if match else DEFAULT_CASE_TITLE
    return title[:MAX_TITLE_CHARS]


def extract_case_number(text: str) -> Optional[str]:
    """
    Docket number of a case.

    A summary cites earlier rulings before naming its own docket number at
    the end, so the last match is taken.
    """
    matches = CASE_NUMBER_PATTERN.findall(text)
    return matches[-1] if matches else None


def build_case_embedding_text(case: Case) -> str:
    parts = []
    if case.case_number:
        parts.append(f"LAT byla Nr. {case.case_number}\n")
    if case.summary:
        parts.append(f"Santrauka: {case.summary}\n\n")
    parts.append(case.raw_content)
    return "".join(parts)


def estimate_source_page(offset: int) -> int:
    """Rough 1-based page number of a text offset in a bulletin PDF."""
    return offset // CHARS_PER_PAGE + 1


def parse_bulletin_filename(filename: str) -> dict:
    """
    Year and month encoded in a bulletin filename.

    Returns:
        {"year": ..., "month": ...}, both "unknown" for unrecognised names
    """
    for pattern, order in BULLETIN_FILENAME_PATTERNS:
        match = pattern.search(filename)
        if not match:
            continue
        if order == "year_first":
            return {"year": match.group(1), "month": match.group(2)}
        return {"year": match.group(2), "month": match.group(1)}
    return {"year": "unknown", "month": "unknown"}


# =============================================================================
# Segmenter
# =============================================================================

class CaseSegmenter:
    """Turns the text of one bulletin into labor-law Case records."""

    def __init__(self, label: str = LABOR_LAW_SUBSECTION):
        self.label = label

    def extract_section(self, text: str) -> Optional[tuple[str, int]]:
        """Cleaned subsection text and its offset, or None when absent."""
        heading = find_subsection_heading(text, self.label)
        if heading is None:
            return None
        start = heading.start()
        # Next heading may reuse this heading's trailing newline
        end = find_subsection_end(text, heading.end(1))
        return clean_section_text(text[start:end]), start

    def segment(self, text: str, source_document: str) -> list[Case]:
        """
        Extract the cases of the labor-law subsection.

        Args:
            text: Full text of the bulletin
            source_document: Filename the text came from

        Returns:
            Cases in bulletin order; empty when the subsection is missing
        """
        section = self.extract_section(text)
        if section is None:
            logger.info(f"No labor-law subsection in {source_document}")
            return []

        section_text, section_start = section
        cases = []
        for i, case_text in enumerate(split_cases(section_text)):
            offset = text.find(case_text[:80])
            cases.append(Case(
                title=extract_case_title(case_text),
                raw_content=case_text,
                index=i,
                source_document=source_document,
                case_number=extract_case_number(case_text),
                source_page=estimate_source_page(offset if offset >= 0 else section_start),
            ))

        logger.info(f"Found {len(cases)} labor-law cases in {source_document}")
        return cases


async def summarize_case(case: Case, completion) -> str:
    """
    Short Lithuanian summary of a case from the completion service.

    Returns:
        Summary truncated to 500 characters, or "" when generation fails
    """
    prompt = LLM_PROMPTS["case_summary"].format(
        title=case.title,
        content=case.raw_content[:SUMMARY_INPUT_CHARS],
    )
    try:
        summary = await completion.complete(prompt, max_tokens=300, temperature=0.3)
    except Exception as e:
        logger.warning(f"Summary failed for case {case.index} of {case.source_document}: {e}")
        return ""
    return (summary or "").strip()[:SUMMARY_MAX_CHARS]


# CLI for testing
if __name__ == "__main__":
    import sys
    import json
    from pathlib import Path

    if len(sys.argv) < 2:
        print("Usage: python -m execution.labor_rag.case_segmenter <bulletin.txt>")
        sys.exit(1)

    logging.basicConfig(level=logging.INFO)

    path = Path(sys.argv[1])
    found = CaseSegmenter().segment(path.read_text(encoding="utf-8"), path.name)
    print(json.dumps([c.to_dict() for c in found], indent=2, ensure_ascii=False)[:4000])
