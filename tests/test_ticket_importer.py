from __future__ import annotations

from datetime import date
from typing import Iterable, List

import pytest

from basket_cost.domain.models import PriceRecordEntry
from basket_cost.ticket.importer import (
    DuplicateFileError,
    ExtractionError,
    PersistenceError,
    TicketImporter,
    TicketImportError,
    TicketParseError,
)

from receipts import MULTI_LINE_RECEIPT, FakeExtractor


class FailingStore:
    def __init__(self) -> None:
        self.batches: List[List[PriceRecordEntry]] = []

    def upsert_price_record_batch(self, entries: Iterable[PriceRecordEntry]) -> int:
        self.batches.append(list(entries))
        raise RuntimeError("database is locked")

    def is_file_processed(self, filename: str) -> bool:
        return False

    def mark_file_processed(self, filename, when=None) -> bool:
        raise AssertionError("must not be called after a failed import")


def test_import_bytes_persists_every_line(db) -> None:
    importer = TicketImporter(db, extractor=FakeExtractor())
    result = importer.import_bytes(b"%PDF-1.4")
    assert result.invoice_number == "2831-021-575287"
    assert result.lines_imported == 4

    product = db.get_product("aigua-mineral-1-5l")
    assert product is not None
    assert product.name == "AIGUA MINERAL 1,5L"
    assert product.price_history[0].date == date(2024, 3, 12)
    assert product.price_history[0].price == pytest.approx(0.45)
    assert product.price_history[0].store == "Mercadona"


def test_weight_items_store_price_per_kg(db) -> None:
    TicketImporter(db, extractor=FakeExtractor(MULTI_LINE_RECEIPT)).import_bytes(b"pdf")
    assert db.get_product("platan").current_price == pytest.approx(1.99)


def test_extraction_failure_is_wrapped(db) -> None:
    importer = TicketImporter(db, extractor=FakeExtractor(error=ValueError("not a pdf")))
    with pytest.raises(ExtractionError) as excinfo:
        importer.import_bytes(b"garbage")
    assert isinstance(excinfo.value.__cause__, ValueError)
    assert db.search_products("") == []


def test_parse_failure_is_wrapped(db) -> None:
    importer = TicketImporter(db, extractor=FakeExtractor("no receipt here"))
    with pytest.raises(TicketParseError):
        importer.import_bytes(b"pdf")


def test_store_failure_returns_no_partial_result() -> None:
    store = FailingStore()
    importer = TicketImporter(store, extractor=FakeExtractor())
    with pytest.raises(PersistenceError):
        importer.import_bytes(b"pdf")
    # the whole ticket went to the store as one batch
    assert len(store.batches) == 1
    assert len(store.batches[0]) == 4


def test_import_errors_share_a_base_class() -> None:
    for cls in (ExtractionError, TicketParseError, PersistenceError, DuplicateFileError):
        assert issubclass(cls, TicketImportError)


def test_import_file_rejects_duplicates_before_extraction(db) -> None:
    extractor = FakeExtractor()
    importer = TicketImporter(db, extractor=extractor)
    importer.import_file("ticket-1.pdf", b"pdf")
    assert db.is_file_processed("ticket-1.pdf")

    with pytest.raises(DuplicateFileError):
        importer.import_file("ticket-1.pdf", b"pdf")
    assert extractor.calls == 1
    assert len(db.get_product("platan").price_history) == 1


def test_failed_import_does_not_mark_file(db) -> None:
    importer = TicketImporter(db, extractor=FakeExtractor("garbage"))
    with pytest.raises(TicketParseError):
        importer.import_file("bad.pdf", b"pdf")
    assert not db.is_file_processed("bad.pdf")
