"""
Basket Cost – grocery receipt price tracker.

This package imports Mercadona PDF receipts into a SQLite price history and
enriches the stored products with thumbnails from the Mercadona catalogue.
"""

__all__ = [
    "config",
    "logging",
    "paths",
]
