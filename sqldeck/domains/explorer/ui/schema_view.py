"""Overview of every table in a schema together with its columns."""

from __future__ import annotations

from typing import TYPE_CHECKING

from rich.console import Group
from rich.text import Text

from sqldeck.domains.shell.app.screen import Screen
from sqldeck.domains.shell.app.view_controller import ViewMode
from sqldeck.shared.app.messages import SchemaLoaded
from sqldeck.shared.app.operation import OutcomeKind
from sqldeck.shared.core.errors import DataAccessError

if TYPE_CHECKING:
    from rich.console import RenderableType

    from sqldeck.domains.shell.app.events import KeyEvent
    from sqldeck.domains.shell.app.view_controller import ViewController
    from sqldeck.shared.app.messages import Completion
    from sqldeck.shared.app.services import AppServices
    from sqldeck.shared.app.tasks import Task
    from sqldeck.shared.core.cancellation import CancellationToken
    from sqldeck.shared.core.models import ColumnDescriptor, TableDescriptor

SchemaGraph = list[tuple["TableDescriptor", list["ColumnDescriptor"]]]


def fetch_schema(services: AppServices, token: CancellationToken, schema: str) -> SchemaGraph:
    access = services.data_access
    if access is None:
        raise DataAccessError("not connected")
    graph = []
    for unit in access.get_storage_units(token, schema):
        token.check()
        graph.append((unit, access.get_columns(token, schema, unit.name)))
    return graph


class SchemaView(Screen):
    mode = ViewMode.SCHEMA
    context = "schema"
    title = "Schema"

    def __init__(self, controller: ViewController) -> None:
        super().__init__(controller)
        self.schema = ""
        self.graph: SchemaGraph = []
        self.scroll = 0
        self.loader = self.retryable(
            "schema",
            lambda token, schema: fetch_schema(self.services, token, schema),
            lambda schema, outcome: SchemaLoaded(schema=schema, outcome=outcome),
        )

    def _target_schema(self) -> str:
        browser = self.controller.screens.get(ViewMode.BROWSER)
        return getattr(browser, "current_schema", "") or ""

    def on_enter(self) -> None:
        schema = self._target_schema()
        if schema and (schema != self.schema or not self.graph):
            self.schedule(self.load(schema))

    def load(self, schema: str) -> Task | None:
        if not schema:
            self.error = "no schema selected"
            return None
        task = self.loader.start(schema, self.query_timeout())
        if task is not None:
            self.error = None
        return task

    def _lines(self) -> list[Text]:
        lines: list[Text] = []
        for unit, columns in self.graph:
            lines.append(Text.assemble((unit.name, "bold cyan"), (f"  {unit.kind}", "dim")))
            for column in columns:
                key = " PK" if column.is_primary else ""
                lines.append(Text.assemble("   ", column.name, (f"  {column.data_type}{key}", "dim")))
        return lines

    def on_key(self, event: KeyEvent) -> list[Task]:
        if self.loader.prompt_active:
            _, task = self.loader.handle_key(event.key)
            return [task] if task else []

        action = self.action_for(event)
        if action == "cursor_up":
            self.scroll = max(0, self.scroll - 1)
        elif action == "cursor_down":
            self.scroll = min(max(0, len(self._lines()) - 1), self.scroll + 1)
        elif action == "refresh":
            task = self.load(self.schema or self._target_schema())
            return [task] if task else []
        elif action == "back":
            if self.loader.cancel():
                return []
            return self.back(ViewMode.BROWSER)
        return []

    def handle_message(self, message: Completion) -> list[Task]:
        if not isinstance(message, SchemaLoaded):
            return []
        resolution = self.loader.resolve(message)
        if resolution.stale or resolution.prompted:
            return []
        if resolution.retrying:
            return [resolution.task]
        outcome = resolution.outcome
        if outcome.kind is OutcomeKind.SUCCESS:
            self.schema = message.schema
            self.graph = outcome.value
            self.scroll = 0
        elif outcome.kind is OutcomeKind.FAILED:
            self.error = outcome.error_message
        return []

    def render(self) -> RenderableType:
        parts: list[RenderableType] = [
            Text.assemble((f"{self.title} ", "bold"), (self.schema or "-", "cyan"), (f"  {len(self.graph)} tables", "dim"))
        ]
        rows = max(3, self.height - 6)
        parts.extend(self._lines()[self.scroll : self.scroll + rows])
        if self.loader.prompt_active:
            parts.append(self.loader.prompt.render("Loading schema"))
        elif self.loader.is_running:
            parts.append(Text("Loading schema... (esc to cancel)", style="yellow"))
        error = self.render_error()
        if error is not None:
            parts.append(error)
        return Group(*parts)
