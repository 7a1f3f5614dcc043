"""
Tests for execution/labor_rag/article_extractor.py

Covers: explicit article mentions, LLM reply parsing, merging and capping,
        and degradation when the LLM is unavailable.
All external API calls are mocked.
"""

import pytest

from tests.conftest import MockCompletionService


class TestExplicitMentions:
    """Tests for ArticleExtractor.extract_explicit."""

    @pytest.mark.parametrize("query,expected", [
        ("Ką numato 56 straipsnis?", [56]),
        ("Pagal DK 57 ir DK58", [57, 58]),
        ("Žr. str. 126", [126]),
        ("Kas sakoma 5 straipsnyje?", []),
        ("Ką numato 999 straipsnis?", []),
        ("Kiek trunka išbandymas?", []),
    ])
    def test_patterns(self, query, expected):
        from execution.labor_rag.article_extractor import ArticleExtractor

        assert ArticleExtractor().extract_explicit(query) == expected

    def test_duplicates_removed(self):
        from execution.labor_rag.article_extractor import ArticleExtractor

        assert ArticleExtractor().extract_explicit("DK 57, 57 straipsnis, str. 57") == [57]


class TestParseArticleList:
    """Tests for parse_article_list."""

    def test_plain_list(self):
        from execution.labor_rag.article_extractor import parse_article_list

        assert parse_article_list("62, 63, 61") == [62, 63, 61]

    def test_noise_and_range(self):
        from execution.labor_rag.article_extractor import parse_article_list

        assert parse_article_list("Straipsniai: 57, 0, 300, 58.\n57") == [57, 58]

    def test_limit(self):
        from execution.labor_rag.article_extractor import parse_article_list

        assert parse_article_list("1 2 3 4 5 6 7", limit=5) == [1, 2, 3, 4, 5]

    def test_empty_reply(self):
        from execution.labor_rag.article_extractor import parse_article_list

        assert parse_article_list("") == []
        assert parse_article_list(None) == []


class TestExtract:
    """Tests for the combined extraction."""

    @pytest.mark.asyncio
    async def test_explicit_first_then_llm(self):
        from execution.labor_rag.article_extractor import ArticleExtractor

        completion = MockCompletionService(reply="58, 57, 59")
        numbers = await ArticleExtractor(completion).extract("Ar teisėtas atleidimas pagal DK 57?")
        assert numbers == [57, 58, 59]
        assert completion.prompts[0]["max_tokens"] == 50
        assert "Ar teisėtas atleidimas" in completion.prompts[0]["prompt"]

    @pytest.mark.asyncio
    async def test_capped(self):
        from execution.labor_rag.article_extractor import ArticleExtractor

        completion = MockCompletionService(reply="1, 2, 3, 4, 5")
        numbers = await ArticleExtractor(completion).extract("DK 57 ir DK 58")
        assert numbers == [57, 58, 1, 2, 3]

    @pytest.mark.asyncio
    async def test_llm_failure_falls_back_to_explicit(self):
        from execution.labor_rag.article_extractor import ArticleExtractor

        extractor = ArticleExtractor(MockCompletionService(error=RuntimeError("503")))
        assert await extractor.extract("Ką numato DK 126?") == [126]

    @pytest.mark.asyncio
    async def test_no_completion_service(self):
        from execution.labor_rag.article_extractor import ArticleExtractor

        assert await ArticleExtractor().extract_relevant("Kiek trunka išbandymas?") == []
