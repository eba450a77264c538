from __future__ import annotations

import io
from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, Optional, Protocol

from ..domain.models import PriceRecord, PriceRecordEntry
from ..logging import get_logger
from .extractor import PdfTextExtractor, TextExtractor
from .parser import MercadonaParser, Parser


LOG = get_logger("ticket-importer")


class TicketImportError(Exception):
    """Base class for every failure of a ticket import."""


class ExtractionError(TicketImportError):
    pass


class TicketParseError(TicketImportError):
    pass


class PersistenceError(TicketImportError):
    pass


class DuplicateFileError(TicketImportError):
    def __init__(self, filename: str) -> None:
        super().__init__(f"file already imported: {filename}")
        self.filename = filename


class TicketStore(Protocol):
    def upsert_price_record_batch(self, entries: Iterable[PriceRecordEntry]) -> int:
        ...

    def is_file_processed(self, filename: str) -> bool:
        ...

    def mark_file_processed(self, filename: str, when: Optional[datetime] = None) -> bool:
        ...


@dataclass(frozen=True)
class ImportResult:
    invoice_number: str
    lines_imported: int

    def to_json(self) -> dict:
        return {"invoiceNumber": self.invoice_number, "linesImported": self.lines_imported}


class TicketImporter:
    """Extract -> parse -> persist one receipt.

    The whole ticket is written in a single batch: either every line is stored
    or none is, and no partial result is returned on error.
    """

    def __init__(
        self,
        store: TicketStore,
        *,
        extractor: Optional[TextExtractor] = None,
        parser: Optional[Parser] = None,
    ) -> None:
        self.store = store
        self.extractor = extractor or PdfTextExtractor()
        self.parser = parser or MercadonaParser()

    def import_bytes(self, data: bytes) -> ImportResult:
        try:
            text = self.extractor.extract(io.BytesIO(data), len(data))
        except Exception as exc:
            raise ExtractionError(f"extract pdf text: {exc}") from exc

        try:
            ticket = self.parser.parse(text)
        except Exception as exc:
            raise TicketParseError(f"parse receipt: {exc}") from exc

        entries = [
            PriceRecordEntry(
                name=line.name,
                record=PriceRecord(date=ticket.date, price=line.unit_price, store=ticket.store),
            )
            for line in ticket.lines
        ]
        try:
            self.store.upsert_price_record_batch(entries)
        except Exception as exc:
            raise PersistenceError(f"store price records: {exc}") from exc

        LOG.info(f"Imported ticket {ticket.invoice_number or '<no invoice>'}: {len(entries)} line(s)")
        return ImportResult(invoice_number=ticket.invoice_number, lines_imported=len(entries))

    def import_file(self, filename: str, data: bytes) -> ImportResult:
        """Import `data` unless a file with the same name was imported before."""
        if self.store.is_file_processed(filename):
            raise DuplicateFileError(filename)
        result = self.import_bytes(data)
        try:
            self.store.mark_file_processed(filename, datetime.now())
        except Exception as exc:
            LOG.error(f"Ticket {filename} imported but could not be marked as processed: {exc}")
        return result


__all__ = [
    "DuplicateFileError",
    "ExtractionError",
    "ImportResult",
    "PersistenceError",
    "TicketImportError",
    "TicketImporter",
    "TicketParseError",
    "TicketStore",
]
