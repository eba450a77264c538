from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence, Tuple


# Dice >= 0.5 rejects "patata" vs "patatas fritas onduladas pringles" (0.33)
# but accepts "patata 3kg" vs "patata 3 kg hacendado" (0.67).
MIN_MATCH_SCORE = 0.5


@dataclass(frozen=True)
class ProductEntry:
    """One catalog product: its thumbnail URL and normalised keywords."""

    thumbnail: str
    keywords: Tuple[str, ...]


ProductIndex = List[ProductEntry]


def dice_score(local: Iterable[str], entry: Iterable[str]) -> float:
    """Dice coefficient 2*|A & B| / (|A| + |B|) over keyword sets."""
    a, b = set(local), set(entry)
    if not a or not b:
        return 0.0
    return 2.0 * len(a & b) / (len(a) + len(b))


def best_match(local_keywords: Sequence[str], index: Iterable[ProductEntry]) -> Optional[str]:
    """Thumbnail of the best-scoring entry, or None below MIN_MATCH_SCORE.

    The first entry wins ties.
    """
    if not local_keywords:
        return None
    local = set(local_keywords)
    best_score = 0.0
    best_url: Optional[str] = None
    for entry in index:
        if not entry.keywords:
            continue
        score = dice_score(local, entry.keywords)
        if score > best_score:
            best_score = score
            best_url = entry.thumbnail
    if best_url is not None and best_score >= MIN_MATCH_SCORE:
        return best_url
    return None
