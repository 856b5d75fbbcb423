"""JSON persistence shared by the settings, history and connection stores."""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, ClassVar

logger = logging.getLogger(__name__)

# Overridable so tests never touch the real home directory
CONFIG_DIR = Path(os.environ.get("SQLDECK_CONFIG_DIR", Path.home() / ".sqldeck"))

CORRUPT_SUFFIX = ".corrupt"


def config_dir() -> Path:
    """Resolve the config directory, honouring a late environment override."""
    override = os.environ.get("SQLDECK_CONFIG_DIR", "").strip()
    if override:
        return Path(override).expanduser()
    return CONFIG_DIR


class JSONFileStore:
    """One JSON document on disk, of a fixed top-level shape.

    Subclasses set ``shape`` to the container type they persist (settings
    are an object, history and connections are arrays). A file that cannot
    be parsed, or holds the wrong shape, is renamed to ``<name>.corrupt``
    so the next save starts clean without destroying what the user had.

    Writes go through a temp file in the same directory and an atomic
    rename, with the file readable by its owner only.
    """

    shape: ClassVar[type] = dict

    def __init__(self, file_path: Path):
        self._file_path = file_path

    @property
    def file_path(self) -> Path:
        return self._file_path

    @property
    def quarantine_path(self) -> Path:
        return self._file_path.with_name(self._file_path.name + CORRUPT_SUFFIX)

    def exists(self) -> bool:
        return self._file_path.exists()

    def _ensure_dir(self) -> None:
        dir_path = self._file_path.parent
        dir_path.mkdir(parents=True, exist_ok=True)
        try:
            os.chmod(dir_path, 0o700)
        except OSError:
            logger.debug("Could not restrict permissions on %s", dir_path)

    def _read_json(self) -> Any:
        """Load the document.

        Returns:
            The parsed document, or None when the file is missing or was
            set aside as corrupt.
        """
        if not self._file_path.exists():
            return None
        try:
            with open(self._file_path, encoding="utf-8") as f:
                data = json.load(f)
        except (json.JSONDecodeError, UnicodeDecodeError) as error:
            self._quarantine(f"unreadable JSON ({error})")
            return None
        if not isinstance(data, self.shape):
            self._quarantine(f"expected a JSON {self.shape.__name__}, found {type(data).__name__}")
            return None
        return data

    def _quarantine(self, reason: str) -> None:
        target = self.quarantine_path
        try:
            os.replace(self._file_path, target)
        except OSError as error:
            logger.warning("Ignoring %s: %s; could not move it aside: %s", self._file_path, reason, error)
            return
        logger.warning("Moved %s to %s: %s", self._file_path, target.name, reason)

    def _write_json(self, data: Any) -> None:
        """Atomically replace the document with ``data``.

        Raises:
            OSError: The directory or temp file could not be written. The
                previous document is left untouched.
        """
        self._ensure_dir()
        fd, tmp_path = tempfile.mkstemp(dir=self._file_path.parent, prefix=".tmp_", suffix=".json")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2)
            os.chmod(tmp_path, 0o600)
            os.replace(tmp_path, self._file_path)
        except (OSError, TypeError, ValueError):
            logger.error("Could not write %s", self._file_path, exc_info=True)
            try:
                os.unlink(tmp_path)
            except OSError:
                logger.debug("Temp file %s already gone", tmp_path)
            raise
