"""Service container handed to every screen."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from sqldeck.domains.connections.store.connections import ConnectionConfig, ConnectionStore
    from sqldeck.shared.core.protocols import (
        DataAccessProtocol,
        ExporterProtocol,
        HistorySinkProtocol,
        PreferencesProtocol,
    )

logger = logging.getLogger(__name__)

DataAccessFactory = Callable[["ConnectionConfig"], "DataAccessProtocol"]


@dataclass
class AppServices:
    """Collaborators shared across screens.

    ``data_access`` is None until a connection succeeds.
    """

    preferences: PreferencesProtocol
    history: HistorySinkProtocol
    connections: ConnectionStore | None = None
    exporter: ExporterProtocol | None = None
    data_access_factory: DataAccessFactory | None = None
    data_access: DataAccessProtocol | None = None
    clipboard: Callable[[str], None] | None = None
    extra_connections: list[ConnectionConfig] = field(default_factory=list)

    @property
    def database_name(self) -> str:
        return self.data_access.database_name if self.data_access is not None else ""

    def replace_data_access(self, data_access: DataAccessProtocol | None) -> None:
        """Swap the active connection, closing the previous one."""
        previous = self.data_access
        self.data_access = data_access
        if previous is not None and previous is not data_access:
            previous.close()
            logger.info("Closed connection to %s", previous.database_name)


def build_default_services() -> AppServices:
    """Wire the on-disk stores and the bundled SQLite access."""
    from sqldeck.domains.connections.app.sqlite_access import SQLiteDataAccess
    from sqldeck.domains.connections.store.connections import ConnectionStore
    from sqldeck.domains.query.store.history import HistoryStore
    from sqldeck.domains.results.app.export import CsvExporter, copy_to_clipboard
    from sqldeck.domains.shell.store.settings import SettingsStore

    settings = SettingsStore()
    history = HistoryStore(
        max_entries=int(settings.get("history_max_entries", HistoryStore.DEFAULT_MAX_ENTRIES)),
        persist=bool(settings.get("history_persist", True)),
    )
    return AppServices(
        preferences=settings,
        history=history,
        connections=ConnectionStore(),
        exporter=CsvExporter(),
        data_access_factory=lambda config: SQLiteDataAccess(config.path, name=config.name),
        clipboard=copy_to_clipboard,
    )
