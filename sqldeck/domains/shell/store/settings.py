"""Settings store for persisted user preferences."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any

from sqldeck.shared.core.store import JSONFileStore, config_dir

logger = logging.getLogger(__name__)

DEFAULT_SETTINGS: dict[str, Any] = {
    "query_timeout_seconds": 30,
    "preferred_timeout_seconds": 0,
    "page_size": 50,
    "history_max_entries": 1000,
    "history_persist": True,
    "ai_consent": False,
    "last_ai_provider": "",
    "last_ai_model": "",
}


def _resolve_settings_path() -> Path:
    override = os.environ.get("SQLDECK_SETTINGS_PATH", "").strip()
    if override:
        return Path(override).expanduser()
    return config_dir() / "settings.json"


class SettingsStore(JSONFileStore):
    """Application settings kept in memory and written on ``save()``.

    Settings are stored as a JSON object in ~/.sqldeck/settings.json.
    Unknown keys found on disk are preserved.
    """

    def __init__(self, file_path: Path | None = None) -> None:
        super().__init__(file_path or _resolve_settings_path())
        self._settings: dict[str, Any] = dict(DEFAULT_SETTINGS)
        self.reload()

    def reload(self) -> None:
        data = self._read_json()
        self._settings = dict(DEFAULT_SETTINGS)
        if isinstance(data, dict):
            self._settings.update(data)

    def load_all(self) -> dict[str, Any]:
        return dict(self._settings)

    def save(self) -> None:
        """Write the current settings to disk."""
        self._write_json(self._settings)
        logger.debug("Settings saved to %s", self.file_path)

    def get(self, key: str, default: Any = None) -> Any:
        """Get a specific setting.

        Args:
            key: Setting key.
            default: Returned when the key is unknown and has no built-in default.

        Returns:
            Setting value or default.
        """
        return self._settings.get(key, default)

    def set(self, key: str, value: Any) -> None:
        """Set a specific setting in memory; call ``save()`` to persist."""
        self._settings[key] = value

    def delete(self, key: str) -> bool:
        if key in self._settings:
            del self._settings[key]
            return True
        return False

    def _seconds(self, key: str) -> float:
        value = self._settings.get(key, DEFAULT_SETTINGS.get(key, 0))
        try:
            return max(0.0, float(value))
        except (TypeError, ValueError):
            logger.warning("Invalid %s setting %r; using default", key, value)
            return float(DEFAULT_SETTINGS.get(key, 0))

    def get_query_timeout(self) -> float:
        """Default deadline for a fresh call, in seconds."""
        return self._seconds("query_timeout_seconds")

    def get_preferred_timeout(self) -> float:
        """Timeout saved from the retry menu; 0 when none was chosen."""
        return self._seconds("preferred_timeout_seconds")

    def set_preferred_timeout(self, seconds: float) -> None:
        self._settings["preferred_timeout_seconds"] = int(seconds) if float(seconds).is_integer() else seconds
