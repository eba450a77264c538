from __future__ import annotations

import io

import fitz
import pytest

from basket_cost.ticket.extractor import PdfExtractionError, PdfTextExtractor


def _pdf_bytes(*pages: str) -> bytes:
    doc = fitz.open()
    for text in pages:
        page = doc.new_page()
        page.insert_text((72, 72), text)
    data = doc.tobytes()
    doc.close()
    return data


def test_extracts_every_page() -> None:
    data = _pdf_bytes("FACTURA SIMPLIFICADA: 1-2-3", "TOTAL 9,99")
    text = PdfTextExtractor().extract(io.BytesIO(data), len(data))
    assert "FACTURA SIMPLIFICADA: 1-2-3" in text
    assert "TOTAL 9,99" in text
    assert text.index("FACTURA") < text.index("TOTAL")


def test_corrupt_input_raises() -> None:
    data = b"this is not a pdf"
    with pytest.raises(PdfExtractionError):
        PdfTextExtractor().extract(io.BytesIO(data), len(data))
