from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, List, Optional


@dataclass(frozen=True)
class PriceRecord:
    date: date
    price: float
    store: str = ""

    def to_json(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"date": self.date.isoformat(), "price": self.price}
        if self.store:
            out["store"] = self.store
        return out


@dataclass(frozen=True)
class PriceRecordEntry:
    """One product observation handed to the store as part of a batch."""

    name: str
    record: PriceRecord


@dataclass(frozen=True)
class ProductRef:
    id: str
    name: str


@dataclass
class Product:
    id: str
    name: str
    category: str = ""
    image_url: str = ""
    current_price: float = 0.0
    price_history: List[PriceRecord] = field(default_factory=list)

    def to_json(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "currentPrice": self.current_price,
            "priceHistory": [r.to_json() for r in self.price_history],
        }
        if self.category:
            out["category"] = self.category
        if self.image_url:
            out["imageUrl"] = self.image_url
        return out


@dataclass
class SearchResult:
    id: str
    name: str
    category: str = ""
    image_url: str = ""
    current_price: float = 0.0
    min_price: float = 0.0
    max_price: float = 0.0
    last_purchase_date: Optional[str] = None

    def to_json(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "currentPrice": self.current_price,
            "minPrice": self.min_price,
            "maxPrice": self.max_price,
        }
        if self.category:
            out["category"] = self.category
        if self.image_url:
            out["imageUrl"] = self.image_url
        if self.last_purchase_date:
            out["lastPurchaseDate"] = self.last_purchase_date
        return out


@dataclass
class MostPurchasedProduct:
    id: str
    name: str
    image_url: str
    purchase_count: int  # number of price records (ticket lines)
    current_price: float

    def to_json(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "imageUrl": self.image_url,
            "purchaseCount": self.purchase_count,
            "currentPrice": self.current_price,
        }


@dataclass
class PriceIncreaseProduct:
    id: str
    name: str
    image_url: str
    first_price: float
    current_price: float
    increase_percent: float  # (current - first) / first * 100

    def to_json(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "imageUrl": self.image_url,
            "firstPrice": self.first_price,
            "currentPrice": self.current_price,
            "increasePercent": self.increase_percent,
        }


@dataclass
class AnalyticsResult:
    most_purchased: List[MostPurchasedProduct] = field(default_factory=list)
    biggest_increases: List[PriceIncreaseProduct] = field(default_factory=list)

    def to_json(self) -> Dict[str, Any]:
        return {
            "mostPurchased": [p.to_json() for p in self.most_purchased],
            "biggestIncreases": [p.to_json() for p in self.biggest_increases],
        }
