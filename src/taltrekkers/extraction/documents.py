"""Raw text extraction from uploaded PDF, DOCX and XLSX documents."""

import io
import re
from enum import StrEnum

import fitz  # PyMuPDF
import structlog
from docx import Document
from openpyxl import load_workbook

from taltrekkers.errors import ExtractionError

logger = structlog.get_logger()

MIN_TEXT_LENGTH = 10
DEFAULT_MAX_PDF_PAGES = 20


class DocumentKind(StrEnum):
    PDF = "pdf"
    DOCX = "docx"
    XLSX = "xlsx"


MIME_TYPES: dict[str, DocumentKind] = {
    "application/pdf": DocumentKind.PDF,
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document": DocumentKind.DOCX,
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet": DocumentKind.XLSX,
}

EXTENSIONS: dict[str, DocumentKind] = {
    ".pdf": DocumentKind.PDF,
    ".docx": DocumentKind.DOCX,
    ".xlsx": DocumentKind.XLSX,
}

_WHITESPACE = re.compile(r"\s+")


def clean_text(text: str) -> str:
    """Collapse runs of whitespace into single spaces."""
    return _WHITESPACE.sub(" ", text).strip()


def detect_kind(content_type: str | None, filename: str | None) -> DocumentKind:
    if content_type in MIME_TYPES:
        return MIME_TYPES[content_type]
    if filename:
        lowered = filename.lower()
        for extension, kind in EXTENSIONS.items():
            if lowered.endswith(extension):
                return kind
    raise ExtractionError("Bestandstype niet ondersteund. Kies een .pdf, .docx of .xlsx bestand.")


def extract_pdf_text(data: bytes, max_pages: int = DEFAULT_MAX_PDF_PAGES) -> str:
    """Text of the first ``max_pages`` pages."""
    parts = []
    with fitz.open(stream=data, filetype="pdf") as doc:
        for index, page in enumerate(doc):
            if index >= max_pages:
                break
            parts.append(page.get_text("text") or "")
    return clean_text(" ".join(parts))


def extract_docx_text(data: bytes) -> str:
    document = Document(io.BytesIO(data))
    parts = [p.text for p in document.paragraphs]
    for table in document.tables:
        for row in table.rows:
            parts.extend(cell.text for cell in row.cells)
    return clean_text(" ".join(parts))


def extract_xlsx_text(data: bytes) -> str:
    """String and numeric cells of every sheet, row by row."""
    workbook = load_workbook(io.BytesIO(data), read_only=True, data_only=True)
    parts = []
    try:
        for sheet in workbook.worksheets:
            for row in sheet.iter_rows(values_only=True):
                for cell in row:
                    if isinstance(cell, bool) or cell is None:
                        continue
                    if isinstance(cell, (str, int, float)):
                        parts.append(str(cell))
    finally:
        workbook.close()
    return clean_text(" ".join(parts))


def extract_text(
    data: bytes,
    content_type: str | None,
    filename: str | None,
    max_pdf_pages: int = DEFAULT_MAX_PDF_PAGES,
) -> str:
    """Extract readable text from an uploaded document.

    Raises:
        ExtractionError: unsupported type, unreadable file, or too little text.
    """
    kind = detect_kind(content_type, filename)
    try:
        if kind is DocumentKind.PDF:
            text = extract_pdf_text(data, max_pages=max_pdf_pages)
        elif kind is DocumentKind.DOCX:
            text = extract_docx_text(data)
        else:
            text = extract_xlsx_text(data)
    except Exception as e:
        logger.exception("document_parse_failed", kind=str(kind), filename=filename)
        raise ExtractionError(f"Kon het bestand niet lezen: {e}") from e

    if len(text) < MIN_TEXT_LENGTH:
        raise ExtractionError("Geen leesbare tekst gevonden in dit bestand.")
    logger.info("document_extracted", kind=str(kind), filename=filename, chars=len(text))
    return text
