"""
Article Extractor - Labor Code article numbers relevant to a question

Two sources, in priority order:
1. Explicit mentions in the question ("56 straipsnis", "DK 56", "str. 56")
2. Articles suggested by the LLM from a catalogue of the Code's structure

The result drives the direct-fetch half of hybrid retrieval: each number is
fetched by ID and placed ahead of the semantic matches.
"""

import logging
from typing import Optional

from .language_patterns import (
    QUERY_ARTICLE_PATTERNS,
    LLM_PROMPTS,
    LLM_NUMBER_SPLIT,
    LABOR_CODE_CATALOGUE,
)

logger = logging.getLogger(__name__)

MAX_ARTICLE = 264
MAX_ARTICLES = 5


def _in_range(number: int) -> bool:
    return 1 <= number <= MAX_ARTICLE


def parse_article_list(reply: str, limit: int = MAX_ARTICLES) -> list[int]:
    """Integers in the valid range from an LLM reply like '62, 63, 61'."""
    numbers = []
    for token in LLM_NUMBER_SPLIT.split(reply or ""):
        token = token.strip().rstrip(".")
        if not token.isdigit():
            continue
        number = int(token)
        if _in_range(number) and number not in numbers:
            numbers.append(number)
        if len(numbers) >= limit:
            break
    return numbers


class ArticleExtractor:
    """Finds Labor Code article numbers for a user question."""

    def __init__(self, completion=None, max_articles: int = MAX_ARTICLES):
        """
        Args:
            completion: CompletionService; without one only explicit mentions are found
            max_articles: Cap on numbers returned by extract()
        """
        self.completion = completion
        self.max_articles = max_articles

    def extract_explicit(self, query: str) -> list[int]:
        """Article numbers written out in the question, in pattern order."""
        found = []
        for pattern in QUERY_ARTICLE_PATTERNS:
            for match in pattern.finditer(query):
                number = int(match.group(1))
                if _in_range(number) and number not in found:
                    found.append(number)
        return found

    async def extract_relevant(self, query: str) -> list[int]:
        """
        Ask the LLM which articles apply to the question.

        Returns:
            Up to max_articles numbers; [] when the model is unavailable or fails
        """
        if self.completion is None:
            return []

        prompt = LLM_PROMPTS["article_extraction"].format(
            catalogue=LABOR_CODE_CATALOGUE,
            query=query,
        )
        try:
            reply = await self.completion.complete(prompt, max_tokens=50, temperature=0.1)
        except Exception as e:
            logger.warning(f"Article extraction failed: {e}. Using explicit mentions only.")
            return []

        numbers = parse_article_list(reply, self.max_articles)
        logger.info(f"LLM suggested articles {numbers} for: '{query[:60]}'")
        return numbers

    async def extract(self, query: str, explicit: Optional[list[int]] = None) -> list[int]:
        """Explicit mentions first, then LLM suggestions, deduplicated and capped."""
        explicit = self.extract_explicit(query) if explicit is None else explicit
        suggested = await self.extract_relevant(query)

        merged = []
        for number in explicit + suggested:
            if number not in merged:
                merged.append(number)
        return merged[:self.max_articles]
