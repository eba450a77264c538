from __future__ import annotations

import threading
from typing import Any, Dict, List, Optional

import requests

from ..config import (
    DEFAULT_HTTP_TIMEOUT_SEC,
    DEFAULT_MERCADONA_BASE_URL,
    DEFAULT_MERCADONA_LANG,
    DEFAULT_REQUEST_INTERVAL_SEC,
    Settings,
)
from ..logging import get_logger
from .matcher import ProductEntry, ProductIndex
from .normalize import keywords, normalise


LOG = get_logger("mercadona-client")

# Mercadona's WAF answers 403 to anything that does not look like a browser.
BROWSER_HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 (KHTML, like Gecko) "
        "Chrome/131.0.0.0 Safari/537.36"
    ),
    "Accept": "application/json, text/plain, */*",
    "Accept-Language": "es-ES,es;q=0.9",
    "Referer": "https://tienda.mercadona.es/",
}


class CatalogError(Exception):
    pass


class CrawlCancelled(Exception):
    pass


class MercadonaClient:
    """Client for the public Mercadona shop API (category tree only).

    Subcategory requests are throttled to one per `request_interval` seconds;
    bursts get the caller's IP blocked for a few minutes.
    """

    def __init__(
        self,
        base_url: str = DEFAULT_MERCADONA_BASE_URL,
        *,
        lang: str = DEFAULT_MERCADONA_LANG,
        request_interval: float = DEFAULT_REQUEST_INTERVAL_SEC,
        timeout: float = DEFAULT_HTTP_TIMEOUT_SEC,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.base = base_url.rstrip("/")
        self.lang = lang
        self.request_interval = max(0.0, float(request_interval))
        self.timeout = timeout
        self.s = session or requests.Session()
        self.s.headers.update(BROWSER_HEADERS)

    @classmethod
    def from_settings(cls, settings: Settings) -> "MercadonaClient":
        return cls(
            settings.mercadona_base_url,
            lang=settings.mercadona_lang,
            request_interval=settings.request_interval,
            timeout=settings.http_timeout,
        )

    # ---------- helpers ----------
    def _url(self, path: str) -> str:
        return f"{self.base}{path}?lang={self.lang}"

    def _get_json(self, url: str) -> Any:
        try:
            r = self.s.get(url, timeout=self.timeout)
        except requests.RequestException as e:
            raise CatalogError(f"get {url}: {e}") from e
        if r.status_code != 200:
            raise CatalogError(f"get {url}: unexpected status {r.status_code}")
        try:
            return r.json()
        except ValueError as e:
            raise CatalogError(f"decode {url}: {e}") from e

    # ---------- categories ----------
    def fetch_subcategory_ids(self) -> List[int]:
        """IDs of every published subcategory in the category tree."""
        data = self._get_json(self._url("/categories/"))
        ids: List[int] = []
        results = data.get("results") if isinstance(data, dict) else None
        if not isinstance(results, list):
            raise CatalogError("category tree: missing results list")
        for top in results:
            subs = top.get("categories") if isinstance(top, dict) else None
            if not isinstance(subs, list):
                raise CatalogError(f"category tree: malformed top category {top!r:.80}")
            for sub in subs:
                if isinstance(sub, dict) and sub.get("published") and isinstance(sub.get("id"), int):
                    ids.append(sub["id"])
        return ids

    def fetch_products(self, category_id: int) -> List[Dict[str, Any]]:
        data = self._get_json(self._url(f"/categories/{int(category_id)}/"))
        products: List[Dict[str, Any]] = []
        subs = data.get("categories") if isinstance(data, dict) else None
        if not isinstance(subs, list):
            raise CatalogError(f"category {category_id}: missing categories list")
        for sub in subs:
            items = sub.get("products") if isinstance(sub, dict) else None
            if not isinstance(items, list):
                raise CatalogError(f"category {category_id}: malformed subcategory {sub!r:.80}")
            products.extend(p for p in items if isinstance(p, dict))
        return products

    def build_product_index(self, stop_event: Optional[threading.Event] = None) -> ProductIndex:
        """Download every published subcategory and index its products.

        Raises CatalogError when the category tree itself is unavailable and
        CrawlCancelled as soon as `stop_event` is set. A failing subcategory is
        logged and skipped.
        """
        stop = stop_event or threading.Event()
        if stop.is_set():
            raise CrawlCancelled("crawl cancelled before start")
        subcategory_ids = self.fetch_subcategory_ids()
        LOG.info(f"Crawling {len(subcategory_ids)} subcategories (one request every {self.request_interval}s)")

        index: ProductIndex = []
        for cid in subcategory_ids:
            if stop.wait(self.request_interval):
                raise CrawlCancelled(f"crawl cancelled after {len(index)} entries")
            try:
                products = self.fetch_products(cid)
            except CatalogError as e:
                LOG.warning(f"Skip subcategory {cid}: {e}")
                continue
            for p in products:
                thumbnail = p.get("thumbnail")
                name = p.get("display_name")
                if not isinstance(thumbnail, str) or not isinstance(name, str):
                    continue
                kw = keywords(normalise(name))
                if not thumbnail or not kw:
                    continue
                index.append(ProductEntry(thumbnail=thumbnail, keywords=tuple(dict.fromkeys(kw))))
        LOG.info(f"Product index contains {len(index)} entries")
        return index
