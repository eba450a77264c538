"""Product-name normalisation and keyword extraction.

Receipt names ("PIT POLLASTRE FILET") and catalog names ("Filetes de pechuga
de pollo") are reduced to the same vocabulary before matching: accents are
folded, punctuation splits words and short or meaningless tokens are dropped.
"""

from __future__ import annotations

from typing import List

_ACCENT_GROUPS = {
    "a": "àáâãäåÀÁÂÃÄÅ",
    "e": "èéêëÈÉÊË",
    "i": "ìíîïÌÍÎÏ",
    "o": "òóôõöÒÓÔÕÖ",
    "u": "ùúûüÙÚÛÜ",
    "n": "ñÑ",
    "c": "çÇ",
    "l": "łŁ",
}

ACCENT_TABLE = str.maketrans({ch: base for base, chars in _ACCENT_GROUPS.items() for ch in chars})

MIN_KEYWORD_LENGTH = 3

STOP_WORDS = frozenset(
    {
        # Spanish articles, prepositions, conjunctions
        "de", "del", "la", "el", "los", "las", "un", "una", "en", "con", "sin",
        "y", "a", "al", "o", "para", "por", "e",
        # units and formats
        "kg", "g", "ml", "l", "cl", "ud", "uds", "u", "pack", "bot", "lata",
        # Catalan articles and prepositions
        "dels", "les", "uns", "unes", "amb", "per", "i", "d", "s",
    }
)


def deaccent(text: str) -> str:
    """Fold the accented letters found in Spanish/Catalan names to plain ASCII."""
    return text.translate(ACCENT_TABLE)


def normalise(name: str) -> str:
    """Lowercase, accent-free, single-spaced form of `name`.

    Every run of characters that are neither letters nor digits becomes one
    space, so "d'Embolicar" -> "d embolicar" and "S/LACT" -> "s lact".
    """
    out: List[str] = []
    boundary = True
    for ch in deaccent(name):
        if ch.isalpha() or ch.isdigit():
            out.append(ch.lower())
            boundary = False
        elif not boundary:
            out.append(" ")
            boundary = True
    return "".join(out).rstrip(" ")


def keywords(normalised: str) -> List[str]:
    """Significant tokens of an already normalised name, in order."""
    return [tok for tok in normalised.split() if len(tok) >= MIN_KEYWORD_LENGTH and tok not in STOP_WORDS]
