from __future__ import annotations

import os
import re
import sqlite3
from contextlib import contextmanager
from datetime import date, datetime
from typing import Iterable, Iterator, List, Optional

from ..config import default_db_path
from ..domain.models import (
    AnalyticsResult,
    MostPurchasedProduct,
    PriceIncreaseProduct,
    PriceRecord,
    PriceRecordEntry,
    Product,
    ProductRef,
    SearchResult,
)
from ..logging import get_logger
from ..paths import find_project_root


LOG = get_logger("store-db")

BUSY_TIMEOUT_SEC = 10.0
DEFAULT_ANALYTICS_LIMIT = 10


SCHEMA_SQL = """
PRAGMA foreign_keys = ON;

CREATE TABLE IF NOT EXISTS products (
  id         TEXT PRIMARY KEY,         -- slug of the receipt name
  name       TEXT NOT NULL,
  category   TEXT NOT NULL DEFAULT '',
  image_url  TEXT NOT NULL DEFAULT ''
);

CREATE TABLE IF NOT EXISTS price_records (
  id          INTEGER PRIMARY KEY AUTOINCREMENT,
  product_id  TEXT NOT NULL REFERENCES products(id) ON DELETE CASCADE,
  date        TEXT NOT NULL,           -- "YYYY-MM-DD"
  price       REAL NOT NULL,
  store       TEXT NOT NULL DEFAULT ''
);

CREATE TABLE IF NOT EXISTS processed_files (
  filename     TEXT PRIMARY KEY,
  imported_at  TEXT NOT NULL           -- ISO timestamp
);

CREATE INDEX IF NOT EXISTS idx_price_records_product ON price_records(product_id);
"""

_CURRENT_PRICE_SQL = (
    "(SELECT price FROM price_records WHERE product_id = p.id ORDER BY date DESC, id DESC LIMIT 1)"
)

_RE_NON_ALNUM = re.compile(r"[^a-z0-9]+")


def slugify(name: str) -> str:
    """Stable product id: "LECHE ENTERA 1L" -> "leche-entera-1l"."""
    return _RE_NON_ALNUM.sub("-", name.lower()).strip("-")


class PriceDatabase:
    """SQLite-backed price history store.

    - Places the DB under `<repo-root>/var/basketcost/basket-cost.sqlite3`
      unless an explicit path is given.
    - Ensures schema on first use.
    - Every operation opens its own connection, so instances are safe to share
      between threads.
    """

    def __init__(self, db_path: Optional[str] = None, root_dir: Optional[str] = None) -> None:
        if not db_path:
            db_path = default_db_path(find_project_root(root_dir))
        folder = os.path.dirname(os.path.abspath(db_path))
        os.makedirs(folder, exist_ok=True)
        self.db_path = db_path
        LOG.info(f"Price DB path: {self.db_path}")
        self._ensure_schema()

    @contextmanager
    def connect(self) -> Iterator[sqlite3.Connection]:
        conn = sqlite3.connect(self.db_path, timeout=BUSY_TIMEOUT_SEC)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys=ON;")
        try:
            yield conn
        finally:
            conn.close()

    def _ensure_schema(self) -> None:
        with self.connect() as conn:
            cur = conn.cursor()
            try:
                cur.execute("PRAGMA journal_mode=WAL;")
                cur.execute("PRAGMA synchronous=NORMAL;")
            except sqlite3.OperationalError:
                # Non-fatal; continue with schema creation
                pass
            LOG.debug("Ensuring price DB schema is present")
            self._migrate_products_image_url(conn)
            cur.executescript(SCHEMA_SQL)
            conn.commit()

    def _migrate_products_image_url(self, conn: sqlite3.Connection) -> None:
        """Add image_url to products tables created before enrichment existed."""
        cur = conn.cursor()
        cur.execute("PRAGMA table_info(products);")
        columns = [row[1] for row in cur.fetchall()]
        if not columns or "image_url" in columns:
            return
        LOG.info("Migrating products table to add image_url column")
        cur.execute("ALTER TABLE products ADD COLUMN image_url TEXT NOT NULL DEFAULT '';")
        conn.commit()

    # --------------- Writes ---------------
    @staticmethod
    def _insert_record(cur: sqlite3.Cursor, name: str, record: PriceRecord) -> None:
        product_id = slugify(name)
        cur.execute(
            "INSERT OR IGNORE INTO products (id, name, category) VALUES (?, ?, '');",
            (product_id, name),
        )
        cur.execute(
            "INSERT INTO price_records (product_id, date, price, store) VALUES (?, ?, ?, ?);",
            (product_id, record.date.isoformat(), float(record.price), record.store),
        )

    def upsert_price_record_batch(self, entries: Iterable[PriceRecordEntry]) -> int:
        """Persist every entry in one transaction; nothing is written on failure.

        Products are created on first sight (id = slug of the name); each entry
        appends one price record. Returns the number of records written.
        """
        entries = list(entries)
        with self.connect() as conn:
            cur = conn.cursor()
            try:
                conn.execute("BEGIN IMMEDIATE;")
                for entry in entries:
                    self._insert_record(cur, entry.name, entry.record)
                conn.commit()
            except Exception:
                LOG.error(f"Batch of {len(entries)} price record(s) failed; rolling back")
                conn.rollback()
                raise
        LOG.debug(f"Stored {len(entries)} price record(s)")
        return len(entries)

    def upsert_price_record(self, name: str, record: PriceRecord) -> None:
        self.upsert_price_record_batch([PriceRecordEntry(name=name, record=record)])

    def insert_product(self, product: Product) -> None:
        """Insert a product and its history; an existing product id is left untouched."""
        with self.connect() as conn:
            cur = conn.cursor()
            try:
                conn.execute("BEGIN IMMEDIATE;")
                cur.execute(
                    "INSERT OR IGNORE INTO products (id, name, category, image_url) VALUES (?, ?, ?, ?);",
                    (product.id, product.name, product.category, product.image_url),
                )
                for r in product.price_history:
                    cur.execute(
                        "INSERT INTO price_records (product_id, date, price, store) VALUES (?, ?, ?, ?);",
                        (product.id, r.date.isoformat(), float(r.price), r.store),
                    )
                conn.commit()
            except Exception:
                conn.rollback()
                raise

    def update_product_image_url(self, product_id: str, image_url: str) -> None:
        """Set the image URL; unknown ids are a no-op."""
        with self.connect() as conn:
            conn.execute("UPDATE products SET image_url = ? WHERE id = ?;", (image_url, product_id))
            conn.commit()

    def is_file_processed(self, filename: str) -> bool:
        with self.connect() as conn:
            row = conn.execute(
                "SELECT 1 FROM processed_files WHERE filename = ?;", (filename,)
            ).fetchone()
            return row is not None

    def mark_file_processed(self, filename: str, when: Optional[datetime] = None) -> bool:
        """Record `filename` as imported. Returns False when it was already recorded."""
        stamp = (when or datetime.now()).isoformat(timespec="seconds")
        with self.connect() as conn:
            cur = conn.execute(
                "INSERT OR IGNORE INTO processed_files (filename, imported_at) VALUES (?, ?);",
                (filename, stamp),
            )
            conn.commit()
            return cur.rowcount == 1

    # --------------- Reads ---------------
    def get_products_without_image(self) -> List[ProductRef]:
        with self.connect() as conn:
            rows = conn.execute(
                "SELECT id, name FROM products WHERE image_url = '' ORDER BY name;"
            ).fetchall()
        return [ProductRef(id=row["id"], name=row["name"]) for row in rows]

    def search_products(self, query: str = "") -> List[SearchResult]:
        """Case-insensitive substring search on product names.

        An empty query returns every product. Results are ordered by the most
        recent purchase first.
        """
        sql = f"""
            SELECT
                p.id,
                p.name,
                p.category,
                p.image_url,
                {_CURRENT_PRICE_SQL} AS current_price,
                (SELECT MIN(price) FROM price_records WHERE product_id = p.id) AS min_price,
                (SELECT MAX(price) FROM price_records WHERE product_id = p.id) AS max_price,
                (SELECT MAX(date)  FROM price_records WHERE product_id = p.id) AS last_purchase_date
            FROM products p
        """
        params: List[str] = []
        q = (query or "").strip()
        if q:
            sql += " WHERE LOWER(p.name) LIKE ?"
            params.append(f"%{q.lower()}%")
        sql += " ORDER BY last_purchase_date IS NULL, last_purchase_date DESC, p.name;"
        with self.connect() as conn:
            rows = conn.execute(sql, params).fetchall()
        return [
            SearchResult(
                id=row["id"],
                name=row["name"],
                category=row["category"] or "",
                image_url=row["image_url"] or "",
                current_price=float(row["current_price"] or 0.0),
                min_price=float(row["min_price"] or 0.0),
                max_price=float(row["max_price"] or 0.0),
                last_purchase_date=row["last_purchase_date"],
            )
            for row in rows
        ]

    def get_product(self, product_id: str) -> Optional[Product]:
        """Return the product with its price history (oldest first), or None."""
        with self.connect() as conn:
            row = conn.execute(
                "SELECT id, name, category, image_url FROM products WHERE id = ?;", (product_id,)
            ).fetchone()
            if row is None:
                return None
            history_rows = conn.execute(
                "SELECT date, price, store FROM price_records WHERE product_id = ? ORDER BY date ASC, id ASC;",
                (product_id,),
            ).fetchall()
        history = [
            PriceRecord(date=date.fromisoformat(r["date"]), price=float(r["price"]), store=r["store"] or "")
            for r in history_rows
        ]
        return Product(
            id=row["id"],
            name=row["name"],
            category=row["category"] or "",
            image_url=row["image_url"] or "",
            current_price=history[-1].price if history else 0.0,
            price_history=history,
        )

    def get_analytics(self, limit: int = DEFAULT_ANALYTICS_LIMIT) -> AnalyticsResult:
        """Rank products by purchase count and by price increase since first purchase."""
        limit = max(1, int(limit))
        with self.connect() as conn:
            most_rows = conn.execute(
                f"""
                SELECT
                    p.id,
                    p.name,
                    p.image_url,
                    COUNT(r.id) AS purchase_count,
                    {_CURRENT_PRICE_SQL} AS current_price
                FROM products p
                JOIN price_records r ON r.product_id = p.id
                GROUP BY p.id
                ORDER BY purchase_count DESC, p.name
                LIMIT ?;
                """,
                (limit,),
            ).fetchall()
            price_rows = conn.execute(
                f"""
                SELECT
                    p.id,
                    p.name,
                    p.image_url,
                    (SELECT price FROM price_records WHERE product_id = p.id ORDER BY date ASC, id ASC LIMIT 1) AS first_price,
                    {_CURRENT_PRICE_SQL} AS current_price
                FROM products p
                WHERE (SELECT COUNT(*) FROM price_records WHERE product_id = p.id) >= 2;
                """
            ).fetchall()

        most = [
            MostPurchasedProduct(
                id=row["id"],
                name=row["name"],
                image_url=row["image_url"] or "",
                purchase_count=int(row["purchase_count"]),
                current_price=float(row["current_price"] or 0.0),
            )
            for row in most_rows
        ]

        increases: List[PriceIncreaseProduct] = []
        for row in price_rows:
            first = float(row["first_price"] or 0.0)
            current = float(row["current_price"] or 0.0)
            if first <= 0 or current <= first:
                continue
            increases.append(
                PriceIncreaseProduct(
                    id=row["id"],
                    name=row["name"],
                    image_url=row["image_url"] or "",
                    first_price=first,
                    current_price=current,
                    increase_percent=round((current - first) / first * 100, 2),
                )
            )
        increases.sort(key=lambda p: (-p.increase_percent, p.name))
        return AnalyticsResult(most_purchased=most, biggest_increases=increases[:limit])


__all__ = ["PriceDatabase", "SCHEMA_SQL", "slugify"]
