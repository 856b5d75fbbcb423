"""Logging configuration.

The terminal belongs to the TUI, so records only ever go to a rotating
file under the config directory.
"""

from __future__ import annotations

import logging
import os
from logging.handlers import RotatingFileHandler
from pathlib import Path

from sqldeck.shared.core.store import config_dir

LOG_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"
MAX_BYTES = 1_000_000
BACKUP_COUNT = 3


def resolve_log_level(level: str | None = None) -> int:
    name = (level or os.environ.get("SQLDECK_LOG_LEVEL") or "WARNING").upper()
    value = logging.getLevelName(name)
    return value if isinstance(value, int) else logging.WARNING


def setup_logging(level: str | None = None, log_dir: Path | None = None) -> Path:
    """Attach a rotating file handler to the ``sqldeck`` logger.

    Calling it again replaces the previous handler.

    Args:
        level: Level name; falls back to ``SQLDECK_LOG_LEVEL`` then WARNING.
        log_dir: Directory for ``sqldeck.log``; defaults to ``<config>/logs``.

    Returns:
        Path of the log file.
    """
    log_dir = log_dir or config_dir() / "logs"
    log_dir.mkdir(parents=True, exist_ok=True)
    log_path = log_dir / "sqldeck.log"

    root = logging.getLogger("sqldeck")
    for handler in list(root.handlers):
        if getattr(handler, "_sqldeck_owned", False):
            root.removeHandler(handler)
            handler.close()

    handler = RotatingFileHandler(log_path, maxBytes=MAX_BYTES, backupCount=BACKUP_COUNT, encoding="utf-8")
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    handler._sqldeck_owned = True  # type: ignore[attr-defined]
    root.addHandler(handler)
    root.setLevel(resolve_log_level(level))
    root.propagate = False
    return log_path
