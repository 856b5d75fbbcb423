"""Connection store for saved database connections."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from sqldeck.shared.core.store import JSONFileStore, config_dir

logger = logging.getLogger(__name__)


@dataclass
class ConnectionConfig:
    """A saved connection. Only file-backed SQLite databases are bundled."""

    name: str
    path: str
    db_type: str = "sqlite"

    def to_dict(self) -> dict:
        return {"name": self.name, "path": self.path, "db_type": self.db_type}

    @classmethod
    def from_dict(cls, data: dict) -> ConnectionConfig:
        return cls(name=data["name"], path=data["path"], db_type=data.get("db_type", "sqlite"))

    @classmethod
    def for_path(cls, path: str) -> ConnectionConfig:
        return cls(name=Path(path).stem or path, path=path)


class ConnectionStore(JSONFileStore):
    """Store for managing saved database connections.

    Connections are stored as a JSON array in ~/.sqldeck/connections.json.
    """

    shape = list

    def __init__(self, file_path: Path | None = None) -> None:
        super().__init__(file_path or config_dir() / "connections.json")

    def load_all(self) -> list[ConnectionConfig]:
        data = self._read_json()
        if not isinstance(data, list):
            return []
        configs = []
        for item in data:
            try:
                configs.append(ConnectionConfig.from_dict(item))
            except (KeyError, TypeError):
                logger.warning("Skipping malformed connection entry: %r", item)
        return configs

    def save_all(self, connections: list[ConnectionConfig]) -> None:
        self._write_json([conn.to_dict() for conn in connections])

    def add(self, config: ConnectionConfig) -> None:
        """Add a connection, replacing any saved one with the same name."""
        connections = [c for c in self.load_all() if c.name != config.name]
        connections.append(config)
        self.save_all(connections)

    def delete(self, name: str) -> bool:
        connections = self.load_all()
        remaining = [c for c in connections if c.name != name]
        if len(remaining) == len(connections):
            return False
        self.save_all(remaining)
        return True
