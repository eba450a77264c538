from __future__ import annotations

from pathlib import Path

import pytest

from basket_cost.config import DEFAULT_MERCADONA_BASE_URL, load_settings

KEYS = (
    "BASKET_COST_DB",
    "MERCADONA_BASE_URL",
    "MERCADONA_LANG",
    "MERCADONA_REQUEST_INTERVAL",
    "MERCADONA_TIMEOUT",
    "ENRICH_INDEX_TTL_HOURS",
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for key in KEYS:
        monkeypatch.delenv(key, raising=False)


def test_defaults(tmp_path: Path) -> None:
    (tmp_path / "pyproject.toml").write_text("", encoding="utf-8")
    settings = load_settings(str(tmp_path))
    assert settings.db_path == str(tmp_path / "var" / "basketcost" / "basket-cost.sqlite3")
    assert settings.mercadona_base_url == DEFAULT_MERCADONA_BASE_URL
    assert settings.mercadona_lang == "es"
    assert settings.request_interval == 2.0
    assert settings.http_timeout == 15.0
    assert settings.index_ttl_hours == 24.0


def test_dotenv_is_found_from_subdirectory(tmp_path: Path) -> None:
    (tmp_path / "pyproject.toml").write_text("", encoding="utf-8")
    (tmp_path / ".env").write_text(
        "# local overrides\nMERCADONA_REQUEST_INTERVAL=3.5\nBASKET_COST_DB='~/prices.db'\n",
        encoding="utf-8",
    )
    sub = tmp_path / "src"
    sub.mkdir()
    settings = load_settings(str(sub))
    assert settings.request_interval == 3.5
    assert settings.db_path == str(Path("~/prices.db").expanduser())


def test_environment_wins_over_dotenv(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    (tmp_path / ".env").write_text("MERCADONA_LANG=ca\n", encoding="utf-8")
    monkeypatch.setenv("MERCADONA_LANG", "es")
    monkeypatch.setenv("MERCADONA_BASE_URL", "http://localhost:9000/api/")
    settings = load_settings(str(tmp_path))
    assert settings.mercadona_lang == "es"
    assert settings.mercadona_base_url == "http://localhost:9000/api"


def test_invalid_numbers_fall_back_to_defaults(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("ENRICH_INDEX_TTL_HOURS", "soon")
    monkeypatch.setenv("MERCADONA_TIMEOUT", "-1")
    settings = load_settings(str(tmp_path))
    assert settings.index_ttl_hours == 24.0
    assert settings.http_timeout == 15.0
