"""Picker for saved connections."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from rich.console import Group
from rich.table import Table
from rich.text import Text

from sqldeck.domains.shell.app.screen import Screen
from sqldeck.domains.shell.app.view_controller import ViewMode
from sqldeck.shared.app.messages import ConnectionResult
from sqldeck.shared.app.operation import Operation, OutcomeKind
from sqldeck.shared.core.errors import ConfigurationError

if TYPE_CHECKING:
    from rich.console import RenderableType

    from sqldeck.domains.connections.store.connections import ConnectionConfig
    from sqldeck.domains.shell.app.events import KeyEvent
    from sqldeck.domains.shell.app.view_controller import ViewController
    from sqldeck.shared.app.messages import Completion
    from sqldeck.shared.app.tasks import Task
    from sqldeck.shared.core.protocols import DataAccessProtocol

logger = logging.getLogger(__name__)


class ConnectionView(Screen):
    mode = ViewMode.CONNECTION
    context = "connection"
    title = "Connections"

    def __init__(self, controller: ViewController) -> None:
        super().__init__(controller)
        self.connections: list[ConnectionConfig] = []
        self.selected = 0
        self.connecting: ConnectionConfig | None = None
        self.connect_op = Operation("connect", origin=self.mode)
        self.reload()

    def reload(self) -> None:
        saved = self.services.connections.load_all() if self.services.connections is not None else []
        extra_names = {config.name for config in self.services.extra_connections}
        self.connections = [*self.services.extra_connections, *(c for c in saved if c.name not in extra_names)]
        self.selected = min(self.selected, max(0, len(self.connections) - 1))

    def _is_saved(self, config: ConnectionConfig) -> bool:
        return config not in self.services.extra_connections

    @property
    def selected_connection(self) -> ConnectionConfig | None:
        if not self.connections:
            return None
        return self.connections[self.selected]

    def on_key(self, event: KeyEvent) -> list[Task]:
        action = self.action_for(event)
        if action == "cursor_up" and self.connections:
            self.selected = max(0, self.selected - 1)
        elif action == "cursor_down" and self.connections:
            self.selected = min(len(self.connections) - 1, self.selected + 1)
        elif action == "connect":
            config = self.selected_connection
            if config is not None:
                return self.connect(config)
        elif action == "delete":
            self._delete_selected()
        elif action == "refresh":
            self.reload()
        elif action == "quit":
            self.controller.quit()
        elif event.key == "escape":
            self.connect_op.cancel()
        return []

    def _delete_selected(self) -> None:
        config = self.selected_connection
        if config is None or self.services.connections is None:
            return
        if not self._is_saved(config):
            self.controller.set_status(f"{config.name} was given on the command line")
            return
        if self.services.connections.delete(config.name):
            self.controller.set_status(f"Deleted {config.name}")
        self.reload()

    def connect(self, config: ConnectionConfig) -> list[Task]:
        factory = self.services.data_access_factory
        if factory is None:
            self.error = "no database driver configured"
            return []

        def open_connection(token) -> DataAccessProtocol:
            token.check()
            return factory(config)

        task = self.connect_op.start(
            open_connection,
            self.query_timeout(),
            lambda outcome: ConnectionResult(name=config.name, outcome=outcome),
        )
        if task is None:
            return []
        self.connecting = config
        self.error = None
        logger.info("Connecting to %s", config.name)
        return [task]

    def handle_message(self, message: Completion) -> list[Task]:
        if not isinstance(message, ConnectionResult) or not self.connect_op.finish(message):
            return []
        outcome = message.outcome
        self.connecting = None
        if outcome.kind is OutcomeKind.SUCCESS:
            self._on_connected(message.name, outcome.value)
        elif outcome.kind is OutcomeKind.CANCELLED:
            self.controller.set_status("Connection cancelled")
        elif outcome.kind is OutcomeKind.TIMED_OUT:
            self.error = f"timed out connecting to {message.name}"
        elif isinstance(outcome.error, ConfigurationError):
            self.controller.set_fatal_error(outcome.error_message)
        else:
            self.error = outcome.error_message
        return []

    def _on_connected(self, name: str, data_access: DataAccessProtocol) -> None:
        services = self.services
        services.replace_data_access(data_access)
        self.controller.connected = True
        editor = self.controller.screens.get(ViewMode.EDITOR)
        if editor is not None:
            editor.autocomplete.corpus.invalidate()
        browser = self.controller.screens.get(ViewMode.BROWSER)
        if browser is not None:
            browser.reset()
        logger.info("Connected to %s", name)
        self.controller.switch_to(ViewMode.BROWSER)
        self.controller.set_status(f"Connected to {name}")

    def render(self) -> RenderableType:
        parts: list[RenderableType] = [Text(self.title, style="bold")]
        if not self.connections:
            parts.append(Text("No saved connections. Start with: sqldeck path/to/database.db", style="dim"))
        else:
            table = Table(box=None, show_edge=False, pad_edge=False, expand=True)
            table.add_column("Name")
            table.add_column("Database", style="dim")
            for index, config in enumerate(self.connections):
                table.add_row(config.name, config.path, style="reverse" if index == self.selected else "")
            parts.append(table)
        if self.connecting is not None:
            parts.append(Text(f"Connecting to {self.connecting.name}... (esc to cancel)", style="yellow"))
        error = self.render_error()
        if error is not None:
            parts.append(error)
        return Group(*parts)
