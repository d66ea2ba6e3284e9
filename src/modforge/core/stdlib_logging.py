from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Optional

from modforge.core.file_io.utils import ensure_directory

DEFAULT_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

_CONFIGURED_KEY: str | None = None
_MODFORGE_HANDLER: logging.Handler | None = None


def _level_from_name(name: str) -> int:
    try:
        return int(getattr(logging, name.upper()))
    except (AttributeError, TypeError, ValueError):
        return logging.INFO


def configure_logging(
    *,
    level: str = "INFO",
    log_path: Optional[Path] = None,
    fmt: str = DEFAULT_FORMAT,
) -> logging.Logger:
    """Attach a single modforge handler to the ``modforge`` logger.

    Writes to ``log_path`` when given, otherwise to stderr. Idempotent
    per-process: calling again with the same target is a no-op, calling with
    a different target swaps the handler.
    """
    global _CONFIGURED_KEY, _MODFORGE_HANDLER

    key = str(Path(log_path).resolve()) if log_path is not None else "<stderr>"
    logger = logging.getLogger("modforge")
    logger.setLevel(_level_from_name(level))

    if _CONFIGURED_KEY == key and _MODFORGE_HANDLER is not None:
        _MODFORGE_HANDLER.setLevel(_level_from_name(level))
        return logger

    if _MODFORGE_HANDLER is not None:
        logger.removeHandler(_MODFORGE_HANDLER)
        _MODFORGE_HANDLER.close()
        _MODFORGE_HANDLER = None

    handler: logging.Handler
    if log_path is not None:
        ensure_directory(Path(key).parent)
        handler = logging.FileHandler(key, encoding="utf-8")
    else:
        handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(_level_from_name(level))
    handler.setFormatter(logging.Formatter(fmt))
    logger.addHandler(handler)

    _MODFORGE_HANDLER = handler
    _CONFIGURED_KEY = key
    return logger


def configure_logging_from_config(config: dict, *, log_path: Optional[Path] = None) -> logging.Logger:
    """Configure logging from the ``logging`` section of a loaded config."""
    section = config.get("logging") or {}
    return configure_logging(
        level=str(section.get("level", "INFO")),
        log_path=log_path,
        fmt=str(section.get("format", DEFAULT_FORMAT)),
    )


def reset_logging_for_tests() -> None:
    """Test-only: drop the handler installed by :func:`configure_logging`."""
    global _CONFIGURED_KEY, _MODFORGE_HANDLER
    logger = logging.getLogger("modforge")
    if _MODFORGE_HANDLER is not None:
        logger.removeHandler(_MODFORGE_HANDLER)
        _MODFORGE_HANDLER.close()
    _CONFIGURED_KEY = None
    _MODFORGE_HANDLER = None
    logger.setLevel(logging.NOTSET)


__all__ = ["configure_logging", "configure_logging_from_config", "reset_logging_for_tests"]
