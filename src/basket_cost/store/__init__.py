"""SQLite persistence for products, price history and imported files."""

from .db import PriceDatabase, slugify

__all__ = ["PriceDatabase", "slugify"]
