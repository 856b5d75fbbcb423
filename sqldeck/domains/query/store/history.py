"""History store for executed queries."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

from sqldeck.shared.core.store import JSONFileStore, config_dir

logger = logging.getLogger(__name__)


@dataclass
class QueryHistoryEntry:
    """A query history entry."""

    query: str
    success: bool
    database: str
    timestamp: str  # ISO format

    def to_dict(self) -> dict:
        return {
            "query": self.query,
            "success": self.success,
            "database": self.database,
            "timestamp": self.timestamp,
        }

    @classmethod
    def from_dict(cls, data: dict) -> QueryHistoryEntry:
        return cls(
            query=data["query"],
            success=bool(data.get("success", True)),
            database=data.get("database", ""),
            timestamp=data.get("timestamp", ""),
        )


class HistoryStore(JSONFileStore):
    """Append-only history of executed queries, newest first.

    History is stored as a JSON array in ~/.sqldeck/history.json. With
    ``persist=False`` entries live only for the session.
    """

    shape = list

    DEFAULT_MAX_ENTRIES = 1000

    def __init__(
        self,
        file_path: Path | None = None,
        *,
        max_entries: int = DEFAULT_MAX_ENTRIES,
        persist: bool = True,
    ) -> None:
        super().__init__(file_path or config_dir() / "history.json")
        self.max_entries = max(1, max_entries)
        self.persist = persist
        self._entries: list[QueryHistoryEntry] = self._load() if persist else []

    def _load(self) -> list[QueryHistoryEntry]:
        data = self._read_json()
        if not isinstance(data, list):
            return []
        entries = []
        for item in data:
            try:
                entries.append(QueryHistoryEntry.from_dict(item))
            except (KeyError, TypeError, AttributeError):
                logger.warning("Skipping malformed history entry: %r", item)
        return entries[: self.max_entries]

    def _flush(self) -> None:
        if self.persist:
            self._write_json([entry.to_dict() for entry in self._entries])

    def add(self, query: str, success: bool, database: str) -> None:
        """Record an executed query.

        Args:
            query: SQL text as executed.
            success: Whether execution succeeded.
            database: Name of the database it ran against.
        """
        query = query.strip()
        if not query:
            return
        entry = QueryHistoryEntry(
            query=query,
            success=success,
            database=database,
            timestamp=datetime.now().isoformat(timespec="seconds"),
        )
        self._entries.insert(0, entry)
        del self._entries[self.max_entries :]
        self._flush()

    def get_all(self) -> list[QueryHistoryEntry]:
        return list(self._entries)

    def clear(self) -> None:
        self._entries.clear()
        self._flush()
