"""
Tests for execution/labor_rag/statute_parser.py

Covers: structure marker detection, article boundary detection with the
        pre-body carve-out, amendment-noise stripping, hierarchy assignment,
        cross-reference extraction, and the chapter lookup.
"""

import pytest


# ---------------------------------------------------------------------------
# Structure markers
# ---------------------------------------------------------------------------

class TestExtractStructure:
    """Tests for part / chapter / section heading detection."""

    def test_finds_all_kinds_in_order(self, sample_labor_code_text):
        from execution.labor_rag.statute_parser import extract_structure

        markers = extract_structure(sample_labor_code_text)
        kinds = [(m.kind, m.number) for m in markers]
        assert kinds == [
            ("dalis", 1), ("skyrius", 1),
            ("dalis", 2), ("skyrius", 2), ("skirsnis", 1),
        ]
        assert markers[0].title == "BENDROSIOS NUOSTATOS"
        assert markers[3].title == "DARBO SUTARTIS"

    def test_unknown_number_word_is_not_a_marker(self):
        from execution.labor_rag.statute_parser import extract_structure

        assert extract_structure("\nKITOKIA DALIS\nPAVADINIMAS\n") == []

    def test_no_markers(self):
        from execution.labor_rag.statute_parser import extract_structure

        assert extract_structure("Paprastas tekstas be antraščių.") == []


# ---------------------------------------------------------------------------
# Article boundaries
# ---------------------------------------------------------------------------

class TestFindArticleStarts:
    """Tests for article heading detection and deduplication."""

    def test_table_of_contents_entries_are_ignored(self):
        from execution.labor_rag.statute_parser import find_article_starts, LABOR_CODE, ParseReport

        text = (
            "TURINYS\n"
            "12 straipsnis. Darbo teisės normų taikymas\n"
            "DARBO KODEKSAS\n"
            "12 straipsnis. Darbo teisės normų taikymas\n"
            "Tekstas.\n"
        )
        report = ParseReport()
        starts = find_article_starts(text, LABOR_CODE, report)
        assert [s[0] for s in starts] == [12]
        assert starts[0][2] > text.index("DARBO KODEKSAS")
        assert report.pre_body_kept == 0

    def test_low_numbered_pre_body_article_kept_when_missing_from_body(self):
        from execution.labor_rag.statute_parser import find_article_starts, LABOR_CODE, ParseReport

        text = (
            "2 straipsnis. Kodekso įsigaliojimas\n"
            "Tekstas.\n"
            "DARBO KODEKSAS\n"
            "3 straipsnis. Darbo teisės šaltiniai\n"
            "Tekstas.\n"
        )
        report = ParseReport()
        starts = find_article_starts(text, LABOR_CODE, report)
        assert [s[0] for s in starts] == [2, 3]
        assert report.pre_body_kept == 1

    def test_high_numbered_pre_body_article_dropped(self):
        from execution.labor_rag.statute_parser import find_article_starts, LABOR_CODE

        text = (
            "40 straipsnis. Turinyje minimas straipsnis\n"
            "DARBO KODEKSAS\n"
            "3 straipsnis. Darbo teisės šaltiniai\n"
        )
        assert [s[0] for s in find_article_starts(text, LABOR_CODE)] == [3]

    def test_duplicate_number_keeps_first(self):
        from execution.labor_rag.statute_parser import find_article_starts, SAFETY_AND_HEALTH_LAW, ParseReport

        text = (
            "5 straipsnis. Pirmas\n"
            "Tekstas.\n"
            "5 straipsnis. Antras\n"
        )
        report = ParseReport()
        starts = find_article_starts(text, SAFETY_AND_HEALTH_LAW, report)
        assert len(starts) == 1
        assert starts[0][1] == "Pirmas"
        assert report.duplicates_dropped == 1

    @pytest.mark.parametrize("line", [
        "0 straipsnis. Nulinis",
        "999 straipsnis. Per didelis",
        "5 straipsnis. Ab",
    ])
    def test_invalid_candidates_rejected(self, line):
        from execution.labor_rag.statute_parser import find_article_starts, SAFETY_AND_HEALTH_LAW

        assert find_article_starts(line + "\n", SAFETY_AND_HEALTH_LAW) == []

    def test_no_articles(self):
        from execution.labor_rag.statute_parser import find_article_starts, LABOR_CODE

        assert find_article_starts("Be straipsnių.", LABOR_CODE) == []


# ---------------------------------------------------------------------------
# Noise and references
# ---------------------------------------------------------------------------

class TestCleaning:
    """Tests for amendment-history and trailing heading removal."""

    def test_amendment_block_removed(self):
        from execution.labor_rag.statute_parser import clean_article_text

        text = (
            "1. Darbuotojas turi teisę.\n"
            "Straipsnio pakeitimai:\n"
            "Nr. ,\n"
            "2019-12-19,\n"
            "paskelbta TAR 2019-12-30, i. k. 2019-21543\n"
            "2. Darbdavys privalo."
        )
        cleaned = clean_article_text(text)
        assert "paskelbta TAR" not in cleaned
        assert "Straipsnio pakeitimai" not in cleaned
        assert cleaned.startswith("1. Darbuotojas")
        assert cleaned.endswith("2. Darbdavys privalo.")

    def test_trailing_heading_removed(self):
        from execution.labor_rag.statute_parser import clean_article_text

        text = "1. Tekstas.\nTREČIASIS SKIRSNIS\nDARBO SUTARTIES SĄLYGOS"
        assert clean_article_text(text) == "1. Tekstas."


class TestExtractReferences:
    """Tests for cross-reference extraction."""

    def test_references_sorted_without_self(self):
        from execution.labor_rag.statute_parser import extract_references

        text = "Pagal 57 straipsnio 1 dalį ir 33 straipsnį, taip pat str. 12; šis 36 straipsnis."
        assert extract_references(text, self_number=36, max_number=300) == [12, 33, 57]

    def test_out_of_range_ignored(self):
        from execution.labor_rag.statute_parser import extract_references

        assert extract_references("Pagal 500 straipsnio nuostatas", 1, 300) == []


# ---------------------------------------------------------------------------
# Full parse
# ---------------------------------------------------------------------------

class TestStatuteParser:
    """Tests for StatuteParser.parse on an abridged edition."""

    def test_article_boundaries(self, sample_labor_code_text):
        from execution.labor_rag.statute_parser import StatuteParser

        articles = StatuteParser().parse(sample_labor_code_text)
        assert [a.number for a in articles] == [1, 2, 36, 37]

        art36 = next(a for a in articles if a.number == 36)
        assert art36.title.startswith("Išbandymas")
        assert art36.end == sample_labor_code_text.index("37 straipsnis")
        assert "trys mėnesiai" in art36.text
        assert "37 straipsnis" not in art36.text

    def test_amendment_noise_stripped_from_article(self, sample_labor_code_text):
        from execution.labor_rag.statute_parser import StatuteParser

        art36 = next(a for a in StatuteParser().parse(sample_labor_code_text) if a.number == 36)
        assert "paskelbta TAR" not in art36.text
        assert art36.text.endswith("trys mėnesiai.")

    def test_pre_body_duplicate_of_body_article_dropped(self, sample_labor_code_text):
        from execution.labor_rag.statute_parser import StatuteParser

        art1 = StatuteParser().parse(sample_labor_code_text)[0]
        assert art1.title == "Darbo kodekso paskirtis"

    def test_hierarchy(self, sample_labor_code_text):
        from execution.labor_rag.statute_parser import StatuteParser

        articles = {a.number: a for a in StatuteParser().parse(sample_labor_code_text)}
        assert articles[1].part_number == 1
        assert articles[1].chapter_title == "DARBO KODEKSO PASKIRTIS"
        assert articles[1].section_number == 0
        assert articles[36].part_number == 2
        assert articles[36].chapter_number == 2
        assert articles[36].section_title == "DARBO SUTARTIES SAMPRATA"

    def test_next_unit_heading_not_in_previous_article(self, sample_labor_code_text):
        from execution.labor_rag.statute_parser import StatuteParser

        art2 = StatuteParser().parse(sample_labor_code_text)[1]
        assert "SKYRIUS" not in art2.text
        assert "ANTROJI DALIS" not in art2.text

    def test_references(self, sample_labor_code_text):
        from execution.labor_rag.statute_parser import StatuteParser

        articles = {a.number: a for a in StatuteParser().parse(sample_labor_code_text)}
        assert articles[2].references == [36]
        assert articles[36].references == [33]

    def test_short_article_dropped(self):
        from execution.labor_rag.statute_parser import StatuteParser, SAFETY_AND_HEALTH_LAW

        text = "1 straipsnis. Tikslas\nTrumpa.\n2 straipsnis. Sąvokos\n" + "Sąvokos apibrėžimas. " * 5
        parser = StatuteParser(SAFETY_AND_HEALTH_LAW)
        articles = parser.parse(text)
        assert [a.number for a in articles] == [2]
        assert parser.report.too_short_dropped == 1

    def test_empty_text(self):
        from execution.labor_rag.statute_parser import StatuteParser

        assert StatuteParser().parse("") == []

    def test_to_dict_keys(self, sample_labor_code_text):
        from execution.labor_rag.statute_parser import StatuteParser

        d = StatuteParser().parse(sample_labor_code_text)[0].to_dict()
        assert set(d) == {
            "number", "title", "text", "dalis", "dalisTitle", "skyrius",
            "skyriusTitle", "skirsnis", "skirsnisTitle", "references",
        }


class TestLookup:
    """Tests for the chapter-grouped lookup."""

    def test_lookup_groups_by_chapter(self, sample_labor_code_text):
        from execution.labor_rag.statute_parser import StatuteParser

        lookup = StatuteParser.to_lookup(StatuteParser().parse(sample_labor_code_text))
        assert lookup["totalArticles"] == 4
        assert lookup["articles"]["36"] == "Išbandymas"
        assert [a["number"] for a in lookup["byChapter"]["DARBO SUTARTIS"]] == [36, 37]

    def test_articles_without_chapter_grouped_as_other(self):
        from execution.labor_rag.statute_parser import StatuteParser, Article

        lookup = StatuteParser.to_lookup([Article(number=1, title="Tikslas", text="x", start=0, end=1)])
        assert list(lookup["byChapter"]) == ["Kita"]
