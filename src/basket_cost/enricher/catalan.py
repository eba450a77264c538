"""Catalan -> Spanish token dictionary for Mercadona Catalunya receipts.

Keys and values are in normalised form (see `normalise`). An empty value
means the token carries no useful signal and is dropped.
"""

from __future__ import annotations

from types import MappingProxyType
from typing import Mapping

CATALAN_TO_SPANISH: Mapping[str, str] = MappingProxyType(
    {
        # dairy
        "llet": "leche",
        "semi": "semidesnatada",
        "llact": "",
        "lact": "",  # left over from "s/lact"
        "ous": "huevos",
        "clara": "clara",
        "pasteu": "",
        # meat and poultry
        "pollastre": "pollo",
        "pit": "pollo",
        "llom": "lomo",
        "pernil": "jamon",
        "burger": "hamburguesa",
        "bovi": "vacuno",
        "gruixuda": "gruesa",
        # fish and seafood
        "tonyina": "atun",
        "salmo": "salmon",
        "fumat": "ahumado",
        "verat": "caballa",
        "filet": "filetes",
        "musclo": "mejillon",
        "escabetx": "escabeche",
        "paqu": "",
        # vegetables
        "carbasso": "calabacin",
        "pebrot": "pimiento",
        "ceba": "cebolla",
        "espinaca": "espinaca",
        "esparrec": "esparrago",
        "xampinyo": "champinon",
        "brots": "brotes",
        "tendres": "tiernos",
        "llima": "lima",
        "verd": "verde",
        "mitja": "mediano",
        "mitjana": "mediana",
        "patata": "patata",
        "tub": "",
        # fruit
        "manz": "manzana",
        # legumes and grains
        "cigro": "garbanzo",
        "cuit": "cocido",
        "nyoquis": "gnocchi",
        "arros": "arroz",
        # cheese
        "formatge": "queso",
        "formatges": "queso",
        "provolone": "provolone",
        "mescla": "mezcla",
        # bakery
        "xapata": "chapata",
        "torrat": "tostado",
        "panses": "pasas",
        "vidre": "",
        # oils and condiments
        "oliva": "aceituna",
        "pinyol": "",
        # drinks
        "cervesa": "cerveza",
        # snacks and sweets
        "cacau": "cacao",
        "patates": "patatas",
        # eggs
        "pages": "campo",
        "pags": "campo",
        # misc
        "hummus": "hummus",
        "truita": "tortilla",
        "crema": "crema",
        "curri": "curry",
        "light": "light",
        "classic": "clasico",
        "fam": "",
        "nat": "",
        "granel": "",
        "talls": "",
        "engreix": "",
        "piquillo": "piquillo",
        "trico": "tricolor",
        "ultra": "ultra",
        "white": "white",
        "net": "",
        "laminat": "laminado",
        "baby": "baby",
        "extrafinatr": "extrafino",  # truncated "extrafina Trébol"
        "trev": "",
        "sense": "",
    }
)


def translate_catalan(normalised: str, dictionary: Mapping[str, str] = CATALAN_TO_SPANISH) -> str:
    """Replace known Catalan tokens; unknown tokens pass through unchanged."""
    out = []
    for tok in normalised.split():
        if tok in dictionary:
            replacement = dictionary[tok]
            if replacement:
                out.append(replacement)
        else:
            out.append(tok)
    return " ".join(out)
