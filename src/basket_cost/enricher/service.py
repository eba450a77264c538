from __future__ import annotations

import queue
import threading
import time
from dataclasses import dataclass
from datetime import timedelta
from typing import Callable, List, Optional, Protocol

from ..domain.models import ProductRef
from ..logging import get_logger
from .catalan import translate_catalan
from .client import CrawlCancelled
from .matcher import ProductIndex, best_match
from .normalize import keywords, normalise


LOG = get_logger("enricher")

DEFAULT_INDEX_TTL = timedelta(hours=24)
WORKER_POLL_SEC = 0.5


class CatalogSource(Protocol):
    def build_product_index(self, stop_event: Optional[threading.Event] = None) -> ProductIndex:
        ...


class ImageStore(Protocol):
    def get_products_without_image(self) -> List[ProductRef]:
        ...

    def update_product_image_url(self, product_id: str, image_url: str) -> None:
        ...


@dataclass
class EnrichResult:
    total: int = 0    # products inspected
    updated: int = 0  # image URL set
    skipped: int = 0  # no usable keywords or no match


class IndexCache:
    """Catalog index plus the time it was built, behind one lock.

    The rebuild runs while holding the lock, so concurrent callers wait for a
    single crawl instead of starting their own.
    """

    def __init__(
        self,
        build: Callable[[Optional[threading.Event]], ProductIndex],
        ttl: timedelta = DEFAULT_INDEX_TTL,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._build = build
        self._ttl = ttl.total_seconds()
        self._clock = clock
        self._lock = threading.Lock()
        self._index: ProductIndex = []
        self._fetched_at: Optional[float] = None

    def _fresh(self) -> bool:
        if not self._index or self._fetched_at is None:
            return False
        return self._clock() - self._fetched_at < self._ttl

    def get(self, stop_event: Optional[threading.Event] = None) -> ProductIndex:
        with self._lock:
            if self._fresh():
                return self._index
            LOG.info("Building Mercadona product index")
            index = self._build(stop_event)
            self._index = index
            self._fetched_at = self._clock()
            return index


class Enricher:
    """Background image enrichment for products that have none yet.

    `schedule()` never blocks: a capacity-1 queue holds at most one pending
    run, so any burst of uploads yields one active run plus one queued.
    """

    def __init__(
        self,
        store: ImageStore,
        client: CatalogSource,
        *,
        index_ttl: timedelta = DEFAULT_INDEX_TTL,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.store = store
        self.client = client
        self.cache = IndexCache(client.build_product_index, index_ttl, clock)
        self._pending: "queue.Queue[None]" = queue.Queue(maxsize=1)
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def schedule(self) -> bool:
        """Request one enrichment run. Returns False when one is already queued."""
        try:
            self._pending.put_nowait(None)
        except queue.Full:
            return False
        return True

    def start(self) -> None:
        if self._thread is not None and self._thread.is_alive():
            # a worker left behind by a timed-out stop keeps serving
            self._stop.clear()
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._worker, name="enricher", daemon=True)
        self._thread.start()
        LOG.debug("Enrichment worker started")

    def stop(self, timeout: Optional[float] = None) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            if self._thread.is_alive():
                LOG.warning("Enrichment worker still busy; it exits after the current run")
                return
            self._thread = None
        LOG.debug("Enrichment worker stopped")

    def _worker(self) -> None:
        while not self._stop.is_set():
            try:
                self._pending.get(timeout=WORKER_POLL_SEC)
            except queue.Empty:
                continue
            try:
                res = self.run()
            except CrawlCancelled:
                LOG.info("Enrichment run cancelled")
                continue
            except Exception as e:
                LOG.error(f"Background enrichment run failed: {e}")
                continue
            LOG.info(f"Updated {res.updated}/{res.total} products ({res.skipped} skipped)")

    def run(self, stop_event: Optional[threading.Event] = None) -> EnrichResult:
        """One pass: match every product without an image against the catalog."""
        index = self.cache.get(stop_event or self._stop)
        products = self.store.get_products_without_image()
        res = EnrichResult(total=len(products))
        for p in products:
            local = keywords(translate_catalan(normalise(p.name)))
            url = best_match(local, index) if local else None
            if url is None:
                res.skipped += 1
                continue
            self.store.update_product_image_url(p.id, url)
            res.updated += 1
        return res
