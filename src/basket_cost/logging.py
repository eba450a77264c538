import logging
import os
from typing import List, Optional, Union

ROOT_NAMESPACE = "basket_cost"
LOG_FORMAT = "%(asctime)s [%(name)s] %(levelname)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

_LEVEL_NAMES = {
    "CRITICAL": logging.CRITICAL,
    "ERROR": logging.ERROR,
    "WARN": logging.WARNING,
    "WARNING": logging.WARNING,
    "INFO": logging.INFO,
    "DEBUG": logging.DEBUG,
}

# loggers handed out so far, so set_level can reach every one of them
_configured: List[logging.Logger] = []


def parse_level(value: Union[str, int, None], default: int = logging.INFO) -> int:
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        return _LEVEL_NAMES.get(value.strip().upper(), default)
    return default


def _handlers(level: int) -> List[logging.Handler]:
    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT)
    out: List[logging.Handler] = [logging.StreamHandler()]
    log_file = os.environ.get("LOG_FILE")
    if log_file:
        try:
            out.append(logging.FileHandler(log_file, encoding="utf-8"))
        except OSError:
            pass
    for h in out:
        h.setLevel(level)
        h.setFormatter(formatter)
    return out


def get_logger(name: str) -> logging.Logger:
    """Return the `basket_cost.<name>` logger, configured on first use.

    - Level from LOG_LEVEL (default INFO); LOG_FILE adds an append-mode file.
    - Records do not propagate, so each line is printed once.
    """
    logger = logging.getLogger(f"{ROOT_NAMESPACE}.{name}")
    if logger in _configured:
        return logger

    level = parse_level(os.environ.get("LOG_LEVEL"))
    logger.setLevel(level)
    for h in _handlers(level):
        logger.addHandler(h)
    if os.environ.get("LOG_FILE") and len(logger.handlers) == 1:
        logger.warning("LOG_FILE could not be opened; continuing without file logging")
    logger.propagate = False
    _configured.append(logger)
    return logger


def set_level(level: Union[str, int, None]) -> int:
    """Change the level of every basket_cost logger (used by the CLI -v flag)."""
    resolved = parse_level(level)
    for logger in _configured:
        logger.setLevel(resolved)
        for h in logger.handlers:
            h.setLevel(resolved)
    return resolved
