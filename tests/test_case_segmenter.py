"""
Tests for execution/labor_rag/case_segmenter.py

Covers: labor-law subsection location (skipping table-of-contents entries),
        subsection end detection, case splitting, docket number extraction,
        bulletin filename parsing, and LLM case summaries.
All external API calls are mocked.
"""

import pytest


# ---------------------------------------------------------------------------
# Subsection boundaries
# ---------------------------------------------------------------------------

class TestSubsectionBoundaries:
    """Tests for find_subsection_start / find_subsection_end."""

    def test_table_of_contents_entry_skipped(self, sample_bulletin_text):
        from execution.labor_rag.case_segmenter import find_subsection_start

        start = find_subsection_start(sample_bulletin_text)
        toc_entry = sample_bulletin_text.index("Darbo teisė")
        assert start is not None
        assert start > toc_entry
        assert sample_bulletin_text[start:start + 40].strip().startswith("Darbo teisė\nDėl darbuotojo")

    def test_missing_subsection(self):
        from execution.labor_rag.case_segmenter import find_subsection_start

        assert find_subsection_start("\nCivilinio proceso teisė\nDėl išlaidų.\n") is None

    def test_end_at_next_sibling_topic(self, sample_bulletin_text):
        from execution.labor_rag.case_segmenter import find_subsection_heading, find_subsection_end

        heading = find_subsection_heading(sample_bulletin_text)
        end = find_subsection_end(sample_bulletin_text, heading.end(1))
        assert sample_bulletin_text[end:].lstrip().startswith("Civilinio proceso teisė")

    def test_empty_subsection_ends_at_following_heading(self):
        from execution.labor_rag.case_segmenter import find_subsection_heading, find_subsection_end

        text = "Įvadas\nDarbo teisė\nCivilinio proceso teisė\nDėl išlaidų.\n"
        heading = find_subsection_heading(text)
        end = find_subsection_end(text, heading.end(1))
        assert text[end:].lstrip().startswith("Civilinio proceso teisė")

    def test_toc_entry_with_bare_page_number_skipped(self):
        from execution.labor_rag.case_segmenter import find_subsection_start, CaseSegmenter
        from tests.conftest import _CASE_ONE, _CASE_TWO

        bulletin = (
            "TURINYS\nDarbo teisė\n5\nDėl darbuotojo atleidimo be kaltės\n6\n"
            "Civilinio proceso teisė\n12\n\nDarbo teisė\n"
            + _CASE_ONE + _CASE_TWO
            + "Civilinio proceso teisė\nDėl bylinėjimosi išlaidų paskirstymo.\n"
        )
        start = find_subsection_start(bulletin)
        assert bulletin[start:].lstrip().startswith("Darbo teisė\nDėl darbuotojo atleidimo iš darbo")

        cases = CaseSegmenter().segment(bulletin, "LAT_2024_Spalio.pdf")
        assert len(cases) == 2
        assert [c.case_number for c in cases] == ["e3K-3-99/2021", "e3K-3-176-684/2024"]

    def test_toc_entry_after_leader_dots_skipped(self):
        from execution.labor_rag.case_segmenter import find_subsection_start

        text = (
            "TURINYS\nPrievolių teisė ............... 3\nDarbo teisė\n"
            "Įžanga apie apžvalgą.\n\nDarbo teisė\nDėl atleidimo iš darbo.\n"
        )
        start = find_subsection_start(text)
        assert text[start:].lstrip().startswith("Darbo teisė\nDėl atleidimo")

    def test_end_defaults_to_text_end(self):
        from execution.labor_rag.case_segmenter import find_subsection_end

        text = "\nDarbo teisė\nDėl atleidimo iš darbo ir jo pasekmių.\n"
        assert find_subsection_end(text, 0) == len(text)


class TestCleanSectionText:
    """Tests for layout noise removal."""

    def test_leader_dots_and_page_numbers_removed(self):
        from execution.labor_rag.case_segmenter import clean_section_text

        text = "Darbo teisė ........... 5\nTekstas   su  tarpais\n  17  \nToliau"
        cleaned = clean_section_text(text)
        assert "....." not in cleaned
        assert "17" not in cleaned
        assert "Tekstas su tarpais" in cleaned


# ---------------------------------------------------------------------------
# Case fields
# ---------------------------------------------------------------------------

class TestCaseNumber:
    """Tests for docket number extraction."""

    def test_last_occurrence_wins(self):
        from execution.labor_rag.case_segmenter import extract_case_number

        text = "... Nr. 3K-3-45/2020 ... vėliau paminėta e3K-3-99/2021"
        assert extract_case_number(text) == "e3K-3-99/2021"

    def test_multi_part_docket(self):
        from execution.labor_rag.case_segmenter import extract_case_number

        assert extract_case_number("byloje Nr. e3K-3-176-684/2024.") == "e3K-3-176-684/2024"

    def test_no_docket(self):
        from execution.labor_rag.case_segmenter import extract_case_number

        assert extract_case_number("Teismas konstatavo pažeidimą.") is None


class TestCaseTitle:
    """Tests for title extraction."""

    def test_title_is_first_line(self):
        from execution.labor_rag.case_segmenter import extract_case_title

        assert extract_case_title("Dėl atostogų suteikimo\nTekstas") == "Dėl atostogų suteikimo"

    def test_default_title(self):
        from execution.labor_rag.case_segmenter import extract_case_title, DEFAULT_CASE_TITLE

        assert extract_case_title("Be pavadinimo") == DEFAULT_CASE_TITLE

    def test_title_truncated(self):
        from execution.labor_rag.case_segmenter import extract_case_title, MAX_TITLE_CHARS

        assert len(extract_case_title("Dėl " + "x" * 500)) == MAX_TITLE_CHARS


class TestSplitCases:
    """Tests for split_cases."""

    def test_short_fragments_dropped(self):
        from execution.labor_rag.case_segmenter import split_cases

        text = "Darbo teisė\nDėl trumpo\nDėl ilgo atvejo\n" + "Tekstas. " * 40
        parts = split_cases(text)
        assert len(parts) == 1
        assert parts[0].startswith("Dėl ilgo atvejo")


class TestBulletinFilename:
    """Tests for parse_bulletin_filename."""

    @pytest.mark.parametrize("filename,year,month", [
        ("LAT_2024_Spalio.pdf", "2024", "Spalio"),
        ("lat_aktuali_praktika_birzelis_2025.pdf", "2025", "birzelis"),
        ("apzvalga.pdf", "unknown", "unknown"),
    ])
    def test_formats(self, filename, year, month):
        from execution.labor_rag.case_segmenter import parse_bulletin_filename

        assert parse_bulletin_filename(filename) == {"year": year, "month": month}


# ---------------------------------------------------------------------------
# Segmenter
# ---------------------------------------------------------------------------

class TestCaseSegmenter:
    """Tests for CaseSegmenter.segment."""

    def test_segments_labor_cases_only(self, sample_bulletin_text):
        from execution.labor_rag.case_segmenter import CaseSegmenter

        cases = CaseSegmenter().segment(sample_bulletin_text, "LAT_2024_Spalio.pdf")
        assert len(cases) == 2
        assert [c.index for c in cases] == [0, 1]
        assert cases[0].title.startswith("Dėl darbuotojo atleidimo")
        assert cases[1].title == "Dėl kasmetinių atostogų kompensacijos apskaičiavimo"
        assert all("bylinėjimosi išlaidų" not in c.raw_content for c in cases)
        assert all("netesybų" not in c.raw_content for c in cases)

    def test_case_numbers_prefer_last(self, sample_bulletin_text):
        from execution.labor_rag.case_segmenter import CaseSegmenter

        cases = CaseSegmenter().segment(sample_bulletin_text, "LAT_2024_Spalio.pdf")
        assert cases[0].case_number == "e3K-3-99/2021"
        assert cases[1].case_number == "e3K-3-176-684/2024"

    def test_page_number_lines_removed(self, sample_bulletin_text):
        from execution.labor_rag.case_segmenter import CaseSegmenter

        case = CaseSegmenter().segment(sample_bulletin_text, "b.pdf")[1]
        assert "\n14\n" not in case.raw_content
        assert case.source_page >= 1
        assert case.source_document == "b.pdf"

    def test_no_labor_subsection(self):
        from execution.labor_rag.case_segmenter import CaseSegmenter

        text = "\nCivilinio proceso teisė\nDėl bylinėjimosi išlaidų.\n"
        assert CaseSegmenter().segment(text, "x.pdf") == []

    def test_embedding_text_includes_docket_and_summary(self):
        from execution.labor_rag.case_segmenter import Case, build_case_embedding_text

        case = Case(title="Dėl x", raw_content="Turinys", index=0, source_document="a.pdf",
                    case_number="e3K-3-99/2021", summary="Trumpai.")
        text = build_case_embedding_text(case)
        assert text.startswith("LAT byla Nr. e3K-3-99/2021\n")
        assert "Santrauka: Trumpai." in text
        assert text.endswith("Turinys")

    def test_embedding_text_plain(self):
        from execution.labor_rag.case_segmenter import Case, build_case_embedding_text

        case = Case(title="Dėl x", raw_content="Turinys", index=0, source_document="a.pdf")
        assert build_case_embedding_text(case) == "Turinys"


# ---------------------------------------------------------------------------
# Summaries
# ---------------------------------------------------------------------------

class TestSummarizeCase:
    """Tests for summarize_case with a mocked completion service."""

    @pytest.mark.asyncio
    async def test_summary_truncated(self):
        from execution.labor_rag.case_segmenter import Case, summarize_case, SUMMARY_MAX_CHARS
        from tests.conftest import MockCompletionService

        completion = MockCompletionService(reply="  " + "s" * 800)
        case = Case(title="Dėl x", raw_content="Turinys", index=0, source_document="a.pdf")
        summary = await summarize_case(case, completion)
        assert len(summary) == SUMMARY_MAX_CHARS
        assert completion.prompts[0]["max_tokens"] == 300
        assert "Dėl x" in completion.prompts[0]["prompt"]

    @pytest.mark.asyncio
    async def test_failure_returns_empty(self):
        from execution.labor_rag.case_segmenter import Case, summarize_case
        from tests.conftest import MockCompletionService

        completion = MockCompletionService(error=RuntimeError("rate limited"))
        case = Case(title="Dėl x", raw_content="Turinys", index=0, source_document="a.pdf")
        assert await summarize_case(case, completion) == ""
