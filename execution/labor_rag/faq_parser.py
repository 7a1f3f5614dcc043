"""
VDI FAQ Parser - question/answer pairs from the Labour Inspectorate FAQ page

The page is a nested accordion: category panels contain question links whose
href points at the answer panel. Markup has changed over time, so three
strategies are tried in order, each only when the previous one found fewer
than MIN_EXPECTED_ITEMS pairs.
"""

import re
import logging
from dataclasses import dataclass
from typing import Optional

from bs4 import BeautifulSoup

logger = logging.getLogger(__name__)

VDI_FAQ_URL = "https://vdi.lrv.lt/lt/dazniausiai-uzduodami-klausimai/"
DEFAULT_CATEGORY = "VDI DUK"
MIN_EXPECTED_ITEMS = 10
MIN_QUESTION_CHARS = 10
MIN_ANSWER_CHARS = 20


@dataclass
class FaqItem:
    question: str
    answer: str
    category: str = DEFAULT_CATEGORY


def clean_text(text: str) -> str:
    return re.sub(r"\s+", " ", text or "").strip()


def _target_id(link) -> Optional[str]:
    href = link.get("href") or ""
    return href.lstrip("#") or None


def _element_text(soup: BeautifulSoup, element_id: Optional[str]) -> str:
    if not element_id:
        return ""
    element = soup.find(id=element_id)
    return element.get_text(" ", strip=True) if element else ""


def _keep(question: str, answer: str) -> bool:
    return len(question) > MIN_QUESTION_CHARS and len(answer) > MIN_ANSWER_CHARS


# =============================================================================
# Strategies
# =============================================================================

def _parse_by_category(soup: BeautifulSoup) -> list[FaqItem]:
    """Category links, then the nested question links inside each category panel."""
    items = []
    for category_link in soup.select("a.accordion-links.js-accordion-links-individual"):
        category = clean_text(category_link.get_text())
        panel_id = _target_id(category_link)
        panel = soup.find(id=panel_id) if panel_id else None
        if not category or panel is None:
            continue
        for question_link in panel.select("a.accordion-links--nested"):
            question = clean_text(question_link.get_text())
            answer = clean_text(_element_text(soup, _target_id(question_link)))
            if question and _keep(question, answer):
                items.append(FaqItem(question, answer, category))
    return items


def _parse_nested_links(soup: BeautifulSoup) -> list[FaqItem]:
    """Every nested question link; category from the enclosing panel's controlling link."""
    items = []
    for question_link in soup.select("a.accordion-links--nested"):
        question = clean_text(question_link.get_text())
        answer = clean_text(_element_text(soup, _target_id(question_link)))
        if not question or not _keep(question, answer):
            continue

        category = DEFAULT_CATEGORY
        parent = question_link.find_parent(class_="accordion-panels")
        if parent is not None and parent.get("id"):
            parent_link = soup.find("a", href=f"#{parent['id']}")
            if parent_link is not None and "accordion-links--nested" not in (parent_link.get("class") or []):
                category = clean_text(parent_link.get_text())
        items.append(FaqItem(question, answer, category))
    return items


def _parse_by_panel_ids(soup: BeautifulSoup) -> list[FaqItem]:
    """Sub-accordion panels ('accordion-N-sub-M') paired with their '-header' element."""
    items = []
    for panel in soup.select('[id^="accordion-"][id*="-sub-"]'):
        panel_id = panel.get("id", "")
        if "-header" in panel_id:
            continue
        header = soup.find(id=f"{panel_id}-header")
        if header is None:
            continue
        question = clean_text(header.get_text())
        answer = clean_text(panel.get_text(" ", strip=True))
        if _keep(question, answer):
            items.append(FaqItem(question, answer, DEFAULT_CATEGORY))
    return items


def deduplicate(items: list[FaqItem]) -> list[FaqItem]:
    """Drop repeats by the first 100 characters of the lowercased question."""
    seen = set()
    unique = []
    for item in items:
        key = item.question.lower()[:100]
        if key in seen:
            continue
        seen.add(key)
        unique.append(item)
    return unique


def parse_faq_html(html: str) -> list[FaqItem]:
    """
    Extract FAQ items from the VDI FAQ page.

    Returns:
        Deduplicated items in page order; [] when the markup is unrecognised
    """
    soup = BeautifulSoup(html, "html.parser")
    items = _parse_by_category(soup)

    if len(items) < MIN_EXPECTED_ITEMS:
        logger.info("Category parsing found few items, trying nested links")
        items.extend(_parse_nested_links(soup))

    if len(items) < MIN_EXPECTED_ITEMS:
        logger.info("Nested link parsing found few items, trying panel ids")
        items.extend(_parse_by_panel_ids(soup))

    unique = deduplicate(items)
    logger.info(f"Parsed {len(unique)} FAQ items")
    return unique
