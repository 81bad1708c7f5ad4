"""Logging setup for the chunkscribe CLI."""

from __future__ import annotations

import logging
from typing import Optional, Union

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"

# Held at WARNING unless DEBUG is requested.
_NOISY_LOGGERS = ("httpx", "httpcore", "openai")

_handler: Optional[logging.Handler] = None


def configure_logging(level: Union[int, str] = logging.INFO) -> int:
    """Install the console handler once and apply ``level``.

    ``level`` may be a number or a name such as ``"debug"``. Calling this again
    only changes the level. HTTP client loggers stay at WARNING unless
    ``level`` is DEBUG. Returns the numeric level that was applied.
    """

    global _handler
    numeric = _to_level(level)
    root = logging.getLogger()
    if _handler is None:
        _handler = logging.StreamHandler()
        _handler.setFormatter(logging.Formatter(LOG_FORMAT))
        root.addHandler(_handler)
    root.setLevel(numeric)

    library_level = logging.DEBUG if numeric <= logging.DEBUG else logging.WARNING
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(library_level)
    return numeric


def _to_level(level: Union[int, str]) -> int:
    if isinstance(level, int):
        return level
    numeric = logging.getLevelName(level.strip().upper())
    if not isinstance(numeric, int):
        raise ValueError(f"Unknown log level: {level}")
    return numeric


def get_logger(name: Optional[str] = None) -> logging.Logger:
    return logging.getLogger(name or "chunkscribe")


__all__ = ["LOG_FORMAT", "configure_logging", "get_logger"]
