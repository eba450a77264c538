import os
from dataclasses import dataclass
from typing import Dict, Optional

from .logging import get_logger
from .paths import expand_abs, find_project_root, var_dir

log = get_logger("config")


DEFAULT_DB_FOLDER = "basketcost"
DEFAULT_DB_FILENAME = "basket-cost.sqlite3"

DEFAULT_MERCADONA_BASE_URL = "https://tienda.mercadona.es/api"
DEFAULT_MERCADONA_LANG = "es"
DEFAULT_REQUEST_INTERVAL_SEC = 2.0
DEFAULT_HTTP_TIMEOUT_SEC = 15.0
DEFAULT_INDEX_TTL_HOURS = 24.0


def _find_upwards(start_dir: str, filename: str) -> Optional[str]:
    """Return first matching file found when walking up from start_dir.

    This makes running tools from subdirectories (e.g., `src/`) still find
    the repository-level `.env`.
    """
    d = os.path.abspath(start_dir or ".")
    while True:
        candidate = os.path.join(d, filename)
        if os.path.isfile(candidate):
            return candidate
        parent = os.path.dirname(d)
        if parent == d:
            return None
        d = parent


def _read_dotenv(dotenv_dir: str) -> Dict[str, str]:
    """Minimal .env reader (no external dependencies).

    - Reads key=value pairs, ignores comments (#/;) and blank lines.
    - Trims single/double quotes around the value.
    - Returns mapping; does not mutate environment.
    """
    env: Dict[str, str] = {}
    path = _find_upwards(dotenv_dir, ".env")
    if not path:
        log.debug(f"No .env found starting from: {os.path.abspath(dotenv_dir)}")
        return env
    try:
        with open(path, "r", encoding="utf-8") as f:
            for raw in f:
                line = raw.strip()
                if not line or line.startswith("#") or line.startswith(";"):
                    continue
                if "=" not in line:
                    continue
                k, v = line.split("=", 1)
                k = k.strip()
                v = v.strip()
                if (v.startswith('"') and v.endswith('"')) or (v.startswith("'") and v.endswith("'")):
                    v = v[1:-1]
                env[k] = v.strip()
        log.debug(f"Loaded {len(env)} key(s) from .env at {path}")
    except OSError as e:
        log.warning(f"Failed reading .env: {e}")
    return env


def _lookup(env: Dict[str, str], key: str) -> Optional[str]:
    v = os.environ.get(key)
    if v and v.strip():
        return v.strip()
    v = env.get(key)
    if v and v.strip():
        return v.strip()
    return None


def _float_setting(env: Dict[str, str], key: str, default: float) -> float:
    raw = _lookup(env, key)
    if raw is None:
        return default
    try:
        value = float(raw)
    except ValueError:
        log.warning(f"Ignoring non-numeric {key}={raw!r}; using {default}")
        return default
    if value <= 0:
        log.warning(f"Ignoring non-positive {key}={raw!r}; using {default}")
        return default
    return value


@dataclass
class Settings:
    db_path: str
    mercadona_base_url: str
    mercadona_lang: str
    request_interval: float
    http_timeout: float
    index_ttl_hours: float
    repo_root: str


def default_db_path(repo_root: str) -> str:
    return os.path.join(var_dir(repo_root), DEFAULT_DB_FOLDER, DEFAULT_DB_FILENAME)


def load_settings(start_dir: Optional[str] = None) -> Settings:
    """Resolve settings from environment, then `.env`, then defaults."""
    start = start_dir or os.getcwd()
    env = _read_dotenv(start)
    repo_root = find_project_root(start)

    db_raw = _lookup(env, "BASKET_COST_DB")
    db_path = expand_abs(db_raw) if db_raw else default_db_path(repo_root)

    settings = Settings(
        db_path=db_path,
        mercadona_base_url=(_lookup(env, "MERCADONA_BASE_URL") or DEFAULT_MERCADONA_BASE_URL).rstrip("/"),
        mercadona_lang=_lookup(env, "MERCADONA_LANG") or DEFAULT_MERCADONA_LANG,
        request_interval=_float_setting(env, "MERCADONA_REQUEST_INTERVAL", DEFAULT_REQUEST_INTERVAL_SEC),
        http_timeout=_float_setting(env, "MERCADONA_TIMEOUT", DEFAULT_HTTP_TIMEOUT_SEC),
        index_ttl_hours=_float_setting(env, "ENRICH_INDEX_TTL_HOURS", DEFAULT_INDEX_TTL_HOURS),
        repo_root=repo_root,
    )
    log.debug(f"Settings resolved: {settings}")
    return settings
