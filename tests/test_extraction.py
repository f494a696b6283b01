"""Tests for document text extraction and practice-word selection."""

import io
import random
from unittest.mock import AsyncMock, MagicMock

import fitz
import pytest
from docx import Document
from openpyxl import Workbook

from taltrekkers.errors import ExtractionError
from taltrekkers.extraction.documents import (
    DocumentKind,
    clean_text,
    detect_kind,
    extract_text,
)
from taltrekkers.extraction.terms import (
    extract_terms_from_text,
    list_progress_stats,
    partition_terms,
    select_practice_words,
)
from taltrekkers.models.profile import PracticeSettings, WordListProgress

DOCX_MIME = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"


def _docx_bytes() -> bytes:
    document = Document()
    document.add_paragraph("De fotosynthese vindt plaats in de bladgroenkorrels.")
    table = document.add_table(rows=1, cols=2)
    table.rows[0].cells[0].text = "chlorofyl"
    table.rows[0].cells[1].text = "glucose"
    buffer = io.BytesIO()
    document.save(buffer)
    return buffer.getvalue()


def _xlsx_bytes() -> bytes:
    workbook = Workbook()
    sheet = workbook.active
    sheet.append(["begrip", "aantal", "actief"])
    sheet.append(["mitochondrion", 42, True])
    buffer = io.BytesIO()
    workbook.save(buffer)
    return buffer.getvalue()


def _pdf_bytes(pages: list[str]) -> bytes:
    doc = fitz.open()
    for text in pages:
        page = doc.new_page()
        page.insert_text((72, 72), text)
    data = doc.tobytes()
    doc.close()
    return data


class TestDetectKind:
    def test_by_mime_type(self):
        assert detect_kind("application/pdf", None) is DocumentKind.PDF

    def test_by_extension(self):
        assert detect_kind("application/octet-stream", "Les.XLSX") is DocumentKind.XLSX

    def test_unsupported(self):
        with pytest.raises(ExtractionError, match="niet ondersteund"):
            detect_kind("text/plain", "notities.txt")


class TestExtractText:
    def test_clean_text_collapses_whitespace(self):
        assert clean_text("  een\n\n twee\tdrie ") == "een twee drie"

    def test_docx_paragraphs_and_tables(self):
        text = extract_text(_docx_bytes(), DOCX_MIME, "les.docx")
        assert "fotosynthese" in text
        assert "chlorofyl glucose" in text

    def test_xlsx_skips_booleans(self):
        text = extract_text(_xlsx_bytes(), None, "lijst.xlsx")
        assert text == "begrip aantal actief mitochondrion 42"

    def test_pdf_page_limit(self):
        data = _pdf_bytes(["Eerste pagina over cellen", "Tweede pagina over weefsels"])
        text = extract_text(data, "application/pdf", "les.pdf", max_pdf_pages=1)
        assert "Eerste" in text
        assert "Tweede" not in text

    def test_corrupt_file(self):
        with pytest.raises(ExtractionError, match="Kon het bestand niet lezen"):
            extract_text(b"geen echte pdf", "application/pdf", "kapot.pdf")

    def test_too_little_text(self):
        with pytest.raises(ExtractionError, match="Geen leesbare tekst"):
            extract_text(_pdf_bytes([""]), "application/pdf", "leeg.pdf")


class TestExtractTerms:
    async def test_empty_text(self):
        generator = MagicMock()
        with pytest.raises(ExtractionError, match="Voer tekst in"):
            await extract_terms_from_text("   ", generator, PracticeSettings())

    async def test_no_terms_found(self):
        generator = MagicMock()
        generator.extract_key_terms = AsyncMock(return_value=[])
        with pytest.raises(ExtractionError, match="Geen geschikte termen"):
            await extract_terms_from_text("Een tekst.", generator, PracticeSettings())

    async def test_terms_returned(self):
        generator = MagicMock()
        generator.extract_key_terms = AsyncMock(return_value=["cel", "weefsel"])
        terms = await extract_terms_from_text(" Een  tekst ", generator, PracticeSettings())
        assert terms == ["cel", "weefsel"]
        generator.extract_key_terms.assert_awaited_once_with("Een tekst", PracticeSettings())


class TestSelectPracticeWords:
    def test_partition_case_insensitive(self):
        fresh, seen = partition_terms(["Cel", "weefsel"], {"cel"})
        assert fresh == ["weefsel"]
        assert seen == ["Cel"]

    def test_case_variants_collapse(self):
        fresh, seen = partition_terms(["Kat", "kat", "hond", "KAT"], {"hond"})
        assert fresh == ["Kat"]
        assert seen == ["hond"]

    def test_case_variants_sampled_once(self):
        selected = select_practice_words(["Kat", "kat"], [], 20, rng=random.Random(3))
        assert selected == ["Kat"]

    def test_prefers_new_words(self):
        terms = [f"woord{i}" for i in range(30)]
        practiced = terms[:20]
        selected = select_practice_words(terms, practiced, 10, rng=random.Random(7))

        assert len(selected) == 10
        assert set(selected) == set(terms[20:])

    def test_tops_up_with_practiced(self):
        terms = [f"woord{i}" for i in range(30)]
        practiced = terms[:25]
        selected = select_practice_words(terms, practiced, 20, rng=random.Random(7))

        assert len(selected) == 20
        assert set(terms[25:]) <= set(selected)
        assert len(set(selected)) == 20

    def test_short_list_returns_everything(self):
        selected = select_practice_words(["a", "b"], [], 20, rng=random.Random(1))
        assert sorted(selected) == ["a", "b"]


class TestListProgressStats:
    def test_no_progress(self):
        assert list_progress_stats(None, ["a", "b"]) == {
            "total": 2,
            "practiced": 0,
            "practicedPercent": 0,
            "isFullyPracticed": False,
        }

    def test_fully_practiced(self):
        progress = WordListProgress(list_id="x", practiced_words=["a", "B"])
        stats = list_progress_stats(progress, ["a", "b"])
        assert stats["practicedPercent"] == 100
        assert stats["isFullyPracticed"]

    def test_empty_list(self):
        assert list_progress_stats(None, [])["practicedPercent"] == 0
