from __future__ import annotations

from types import MappingProxyType

from basket_cost.enricher.catalan import CATALAN_TO_SPANISH, translate_catalan
from basket_cost.enricher.normalize import STOP_WORDS, deaccent, keywords, normalise


def test_deaccent_table() -> None:
    assert deaccent("àÉîõüñÇł") == "aeiouncl"
    assert deaccent("Pagès Espàrrec Xampinyó") == "Pages Esparrec Xampinyo"
    assert deaccent("ÑOÑO Ç Ł") == "nOnO c l"


def test_normalise_splits_on_punctuation() -> None:
    assert normalise("Llet S/LACT. d'Ametlla") == "llet s lact d ametlla"
    assert normalise("  PIT POLLASTRE  FILET ") == "pit pollastre filet"
    assert normalise("Patata 3 kg.") == "patata 3 kg"
    assert normalise("***") == ""


def test_keywords_drop_short_tokens_and_stop_words() -> None:
    assert keywords("leche entera de vaca 1l") == ["leche", "entera", "vaca"]
    assert keywords("pack lata cerveza sin alcohol") == ["cerveza", "alcohol"]
    assert keywords("amb dels les uns unes per") == []
    assert "para" in STOP_WORDS and "amb" in STOP_WORDS


def test_translate_catalan() -> None:
    assert translate_catalan("pit pollastre filet") == "pollo pollo filetes"
    assert translate_catalan("llet semi s lact") == "leche semidesnatada s"
    assert translate_catalan("platan canari") == "platan canari"


def test_translate_catalan_is_idempotent() -> None:
    once = translate_catalan("ous pages formatge tonyina sense pinyol")
    assert once == "huevos campo queso atun"
    assert translate_catalan(once) == once


def test_dictionary_is_read_only_and_injectable() -> None:
    assert isinstance(CATALAN_TO_SPANISH, MappingProxyType)
    custom = MappingProxyType({"poma": "manzana", "gran": ""})
    assert translate_catalan("poma gran roja", custom) == "manzana roja"


def test_receipt_name_pipeline() -> None:
    name = "FORMATGE TRICO RATLLAT"
    assert keywords(translate_catalan(normalise(name))) == ["queso", "tricolor", "ratllat"]
