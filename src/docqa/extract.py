"""PDF validation and per-page text extraction."""
from __future__ import annotations

import io
import logging
from typing import Dict, List, Optional

from PyPDF2 import PdfReader

from docqa.config import MAX_UPLOAD_BYTES
from docqa.errors import InvalidFileError, ParseFailedError
from docqa.models import ExtractedPage, ExtractionResult

LOGGER = logging.getLogger(__name__)

ALLOWED_CONTENT_TYPES = frozenset({"application/pdf"})


def _format_limit(max_bytes: int) -> str:
    if max_bytes % (1024 * 1024) == 0:
        return f"{max_bytes // (1024 * 1024)}MB"
    return f"{max_bytes} bytes"


def validate_upload(
    file_name: Optional[str],
    content_type: Optional[str],
    size: Optional[int],
    *,
    max_bytes: int = MAX_UPLOAD_BYTES,
) -> None:
    """Reject missing, non-PDF or oversized uploads before any processing."""

    if not file_name or size is None:
        raise InvalidFileError("No file provided")
    if (content_type or "").split(";")[0].strip().lower() not in ALLOWED_CONTENT_TYPES:
        raise InvalidFileError("Invalid file type. Only PDF files are allowed")
    if size > max_bytes:
        raise InvalidFileError(f"File size exceeds {_format_limit(max_bytes)} limit")
    if size <= 0:
        raise InvalidFileError("Uploaded file is empty")


def _document_info(reader: PdfReader) -> Dict[str, str]:
    try:
        metadata = reader.metadata
    except Exception as error:  # pragma: no cover - depends on malformed trailers
        LOGGER.warning("Failed to read PDF document info: %s", error)
        return {}
    if not metadata:
        return {}
    return {str(key).lstrip("/"): str(value) for key, value in metadata.items() if value is not None}


class PDFExtractor:
    """Extract text from each page of a PDF document with PyPDF2."""

    def extract(self, data: bytes) -> ExtractionResult:
        try:
            reader = PdfReader(io.BytesIO(data))
            page_objects = list(reader.pages)
        except Exception as error:
            raise ParseFailedError(f"Failed to parse PDF: {error}", cause=error) from error

        if not page_objects:
            raise ParseFailedError("Failed to parse PDF: document has no pages")

        pages: List[ExtractedPage] = []
        for index, page in enumerate(page_objects, start=1):
            try:
                text = (page.extract_text() or "").strip()
            except Exception as error:  # pragma: no cover - depends on page content streams
                LOGGER.warning("Failed to extract text from PDF page %s: %s", index, error)
                text = ""
            pages.append(ExtractedPage(page_number=index, text=text, word_count=len(text.split())))

        LOGGER.info("PDF parsed: %s pages", len(pages))
        return ExtractionResult(total_pages=len(pages), pages=pages, info=_document_info(reader))


__all__ = ["ALLOWED_CONTENT_TYPES", "PDFExtractor", "validate_upload"]
