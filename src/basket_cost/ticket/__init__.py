"""Receipt ingestion: PDF text extraction, Mercadona parsing and import."""

from .extractor import PdfExtractionError, PdfTextExtractor, TextExtractor
from .importer import (
    DuplicateFileError,
    ExtractionError,
    ImportResult,
    PersistenceError,
    TicketImportError,
    TicketImporter,
    TicketParseError,
)
from .models import Ticket, TicketLine
from .parser import MercadonaParser, ReceiptFormatError

__all__ = [
    "DuplicateFileError",
    "ExtractionError",
    "ImportResult",
    "MercadonaParser",
    "PdfExtractionError",
    "PdfTextExtractor",
    "PersistenceError",
    "ReceiptFormatError",
    "TextExtractor",
    "Ticket",
    "TicketImportError",
    "TicketImporter",
    "TicketLine",
    "TicketParseError",
]
