from __future__ import annotations

import sqlite3
from datetime import date, datetime
from pathlib import Path

import pytest

from basket_cost.domain.models import PriceRecord, PriceRecordEntry, Product, ProductRef
from basket_cost.store.db import PriceDatabase, slugify


def _record(day: str, price: float) -> PriceRecord:
    return PriceRecord(date=date.fromisoformat(day), price=price, store="Mercadona")


def test_slugify() -> None:
    assert slugify("LECHE ENTERA HACENDADO 1L") == "leche-entera-hacendado-1l"
    assert slugify("  Llet d'Ametlla  ") == "llet-d-ametlla"


def test_db_path_defaults_under_project_var(tmp_path: Path) -> None:
    (tmp_path / "README.md").write_text("marker", encoding="utf-8")
    db = PriceDatabase(root_dir=str(tmp_path))
    assert db.db_path == str(tmp_path / "var" / "basketcost" / "basket-cost.sqlite3")
    assert Path(db.db_path).is_file()


def test_upsert_creates_product_once(db) -> None:
    db.upsert_price_record("LECHE ENTERA", _record("2024-01-01", 0.89))
    db.upsert_price_record("LECHE ENTERA", _record("2024-02-01", 0.95))
    product = db.get_product("leche-entera")
    assert product is not None
    assert [r.price for r in product.price_history] == [0.89, 0.95]
    assert product.current_price == pytest.approx(0.95)
    assert db.get_product("missing") is None


def test_batch_is_all_or_nothing(db) -> None:
    entries = [
        PriceRecordEntry("PA", _record("2024-01-01", 0.60)),
        PriceRecordEntry("OUS", PriceRecord(date=None, price=2.10)),  # type: ignore[arg-type]
    ]
    with pytest.raises(AttributeError):
        db.upsert_price_record_batch(entries)
    assert db.search_products("") == []


def test_search_is_case_insensitive_and_ordered_by_last_purchase(db) -> None:
    db.upsert_price_record_batch(
        [
            PriceRecordEntry("LECHE ENTERA", _record("2024-01-01", 0.89)),
            PriceRecordEntry("LECHE SEMI", _record("2024-03-01", 0.85)),
            PriceRecordEntry("LECHE SEMI", _record("2024-02-01", 0.99)),
            PriceRecordEntry("PAN", _record("2024-02-01", 0.60)),
        ]
    )
    results = db.search_products("leche")
    assert [r.id for r in results] == ["leche-semi", "leche-entera"]
    semi = results[0]
    assert semi.current_price == pytest.approx(0.85)
    assert semi.min_price == pytest.approx(0.85)
    assert semi.max_price == pytest.approx(0.99)
    assert semi.last_purchase_date == "2024-03-01"
    assert len(db.search_products("")) == 3


def test_products_without_image_and_update(db) -> None:
    db.upsert_price_record("PA", _record("2024-01-01", 0.60))
    db.upsert_price_record("OUS", _record("2024-01-01", 2.10))
    assert db.get_products_without_image() == [ProductRef("ous", "OUS"), ProductRef("pa", "PA")]

    db.update_product_image_url("pa", "https://img/pa.jpg")
    db.update_product_image_url("unknown", "https://img/x.jpg")
    assert db.get_products_without_image() == [ProductRef("ous", "OUS")]
    assert db.get_product("pa").image_url == "https://img/pa.jpg"


def test_processed_files(db) -> None:
    assert not db.is_file_processed("a.pdf")
    assert db.mark_file_processed("a.pdf", datetime(2024, 5, 1, 10, 0, 0))
    assert db.is_file_processed("a.pdf")
    assert not db.mark_file_processed("a.pdf")


def test_insert_product_is_idempotent(db) -> None:
    product = Product(
        id="aceite-oliva",
        name="ACEITE OLIVA",
        category="Aceites",
        price_history=[_record("2024-01-01", 4.50)],
    )
    db.insert_product(product)
    db.insert_product(Product(id="aceite-oliva", name="OTHER", category="x"))
    stored = db.get_product("aceite-oliva")
    assert stored.name == "ACEITE OLIVA"
    assert stored.category == "Aceites"
    assert len(stored.price_history) == 1


def test_analytics(db) -> None:
    db.upsert_price_record_batch(
        [
            PriceRecordEntry("ACEITE", _record("2024-01-01", 4.00)),
            PriceRecordEntry("ACEITE", _record("2024-03-01", 6.00)),
            PriceRecordEntry("PA", _record("2024-01-01", 0.60)),
            PriceRecordEntry("PA", _record("2024-02-01", 0.60)),
            PriceRecordEntry("PA", _record("2024-03-01", 0.60)),
            PriceRecordEntry("OUS", _record("2024-01-01", 2.10)),
        ]
    )
    result = db.get_analytics(limit=2)
    assert [p.id for p in result.most_purchased] == ["pa", "aceite"]
    assert result.most_purchased[0].purchase_count == 3
    assert [p.id for p in result.biggest_increases] == ["aceite"]
    assert result.biggest_increases[0].increase_percent == pytest.approx(50.0)

    payload = result.to_json()
    assert payload["biggestIncreases"][0]["firstPrice"] == pytest.approx(4.0)


def test_legacy_products_table_gains_image_url(tmp_path: Path) -> None:
    path = tmp_path / "legacy.sqlite3"
    conn = sqlite3.connect(path)
    conn.execute("CREATE TABLE products (id TEXT PRIMARY KEY, name TEXT NOT NULL, category TEXT NOT NULL DEFAULT '')")
    conn.execute("INSERT INTO products (id, name) VALUES ('pa', 'PA')")
    conn.commit()
    conn.close()

    db = PriceDatabase(str(path))
    assert db.get_products_without_image() == [ProductRef("pa", "PA")]
