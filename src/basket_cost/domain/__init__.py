"""Domain records shared by the ticket importer, the store and the API."""

from .models import (
    AnalyticsResult,
    MostPurchasedProduct,
    PriceIncreaseProduct,
    PriceRecord,
    PriceRecordEntry,
    Product,
    ProductRef,
    SearchResult,
)

__all__ = [
    "AnalyticsResult",
    "MostPurchasedProduct",
    "PriceIncreaseProduct",
    "PriceRecord",
    "PriceRecordEntry",
    "Product",
    "ProductRef",
    "SearchResult",
]
