"""Product image enrichment from the Mercadona public catalog.

Modules:
- normalize: name normalisation, stop words and keyword extraction
- catalan: Catalan -> Spanish token translation
- client: throttled catalog crawler
- matcher: Dice keyword matching
- service: cached index and the background enrichment worker
"""

from .catalan import CATALAN_TO_SPANISH, translate_catalan
from .client import CatalogError, CrawlCancelled, MercadonaClient
from .matcher import MIN_MATCH_SCORE, ProductEntry, best_match, dice_score
from .normalize import STOP_WORDS, deaccent, keywords, normalise
from .service import EnrichResult, Enricher, IndexCache

__all__ = [
    "CATALAN_TO_SPANISH",
    "CatalogError",
    "CrawlCancelled",
    "EnrichResult",
    "Enricher",
    "IndexCache",
    "MIN_MATCH_SCORE",
    "MercadonaClient",
    "ProductEntry",
    "STOP_WORDS",
    "best_match",
    "deaccent",
    "dice_score",
    "keywords",
    "normalise",
    "translate_catalan",
]
