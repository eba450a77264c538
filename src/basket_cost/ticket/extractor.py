from __future__ import annotations

from typing import BinaryIO, Protocol

import fitz  # PyMuPDF

from ..logging import get_logger

LOG = get_logger("ticket-extractor")


class TextExtractor(Protocol):
    def extract(self, stream: BinaryIO, size: int) -> str:
        """Return the plain text of every page of the document in `stream`."""
        ...


class PdfExtractionError(Exception):
    pass


class PdfTextExtractor:
    """Extract receipt text with PyMuPDF; pages are joined with a newline."""

    def extract(self, stream: BinaryIO, size: int) -> str:
        data = stream.read(size) if size > 0 else stream.read()
        try:
            doc = fitz.open(stream=data, filetype="pdf")
        except Exception as exc:  # PyMuPDF raises its own types for corrupt input
            raise PdfExtractionError(f"open pdf reader: {exc}") from exc
        parts = []
        try:
            for i in range(doc.page_count):
                page = doc.load_page(i)
                try:
                    text = page.get_text("text") or ""
                except Exception as exc:
                    raise PdfExtractionError(f"extract text from page {i + 1}: {exc}") from exc
                parts.append(text)
                parts.append("\n")
        finally:
            doc.close()
        LOG.debug(f"Extracted {sum(len(p) for p in parts)} chars from {len(parts) // 2} page(s)")
        return "".join(parts)
