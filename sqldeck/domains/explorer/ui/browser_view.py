"""Schema and table browser."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from rich.console import Group
from rich.table import Table
from rich.text import Text

from sqldeck.domains.query.completion.corpus import select_best_schema
from sqldeck.domains.shell.app.screen import Screen
from sqldeck.domains.shell.app.view_controller import ViewMode
from sqldeck.shared.app.messages import TableListLoaded
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
    from sqldeck.shared.core.models import TableDescriptor

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ListingRequest:
    """Schema to list; None lets the loader pick the best one."""

    schema: str | None = None


@dataclass
class TableListing:
    schemas: list[str]
    schema: str
    tables: list[TableDescriptor] = field(default_factory=list)


def fetch_listing(services: AppServices, token: CancellationToken, request: ListingRequest) -> TableListing:
    access = services.data_access
    if access is None:
        raise DataAccessError("not connected")
    try:
        schemas = access.get_schemas(token)
    except DataAccessError as error:
        raise DataAccessError(f"error fetching schemas: {error}") from error

    schema = request.schema if request.schema in schemas else select_best_schema(schemas)
    if not schema:
        return TableListing(schemas, "")
    try:
        tables = access.get_storage_units(token, schema)
    except DataAccessError as error:
        raise DataAccessError(f"error fetching tables: {error}") from error
    return TableListing(schemas, schema, tables)


class BrowserView(Screen):
    mode = ViewMode.BROWSER
    context = "browser"
    title = "Browser"

    def __init__(self, controller: ViewController) -> None:
        super().__init__(controller)
        self.schemas: list[str] = []
        self.current_schema = ""
        self.tables: list[TableDescriptor] = []
        self.selected = 0
        self.filter_text = ""
        self.filtering = False
        self.loaded = False
        self.listing = self.retryable(
            "tables",
            lambda token, request: fetch_listing(self.services, token, request),
            lambda request, outcome: TableListLoaded(schema=request.schema or "", outcome=outcome),
        )

    @property
    def captures_text(self) -> bool:  # type: ignore[override]
        return self.filtering

    def reset(self) -> None:
        """Forget everything loaded from the previous connection."""
        self.schemas = []
        self.current_schema = ""
        self.tables = []
        self.selected = 0
        self.filter_text = ""
        self.filtering = False
        self.loaded = False
        self.error = None

    def on_enter(self) -> None:
        if self.controller.connected and not self.loaded and not self.listing.is_running:
            self.schedule(self.refresh())

    def refresh(self, schema: str | None = None) -> Task | None:
        task = self.listing.start(ListingRequest(schema or self.current_schema or None), self.query_timeout())
        if task is not None:
            self.error = None
        return task

    @property
    def visible_tables(self) -> list[TableDescriptor]:
        if not self.filter_text:
            return self.tables
        needle = self.filter_text.lower()
        return [table for table in self.tables if needle in table.name.lower()]

    @property
    def selected_table(self) -> TableDescriptor | None:
        tables = self.visible_tables
        if not tables:
            return None
        return tables[min(self.selected, len(tables) - 1)]

    def on_key(self, event: KeyEvent) -> list[Task]:
        if self.listing.prompt_active:
            _, task = self.listing.handle_key(event.key)
            return [task] if task else []

        if self.filtering:
            return self._on_filter_key(event)

        action = self.action_for(event)
        tables = self.visible_tables
        if action == "cursor_up" and tables:
            self.selected = max(0, self.selected - 1)
        elif action == "cursor_down" and tables:
            self.selected = min(len(tables) - 1, self.selected + 1)
        elif action == "open_table":
            return self._open_selected()
        elif action == "next_schema" and self.schemas:
            index = self.schemas.index(self.current_schema) if self.current_schema in self.schemas else -1
            schema = self.schemas[(index + 1) % len(self.schemas)]
            task = self.refresh(schema)
            return [task] if task else []
        elif action == "refresh":
            self._invalidate_suggestions()
            task = self.refresh()
            return [task] if task else []
        elif action == "filter":
            self.filtering = True
        elif action == "editor":
            self.controller.push_view(ViewMode.EDITOR)
        elif action == "history":
            self.controller.push_view(ViewMode.HISTORY)
        elif action == "schema":
            self.controller.push_view(ViewMode.SCHEMA)
        elif action == "chat":
            self.controller.push_view(ViewMode.CHAT)
        elif action == "back":
            if self.listing.cancel():
                return []
            return self.back(ViewMode.CONNECTION)
        elif action == "quit":
            self.controller.quit()
        return []

    def _on_filter_key(self, event: KeyEvent) -> list[Task]:
        if event.key == "escape":
            self.filter_text = ""
            self.filtering = False
        elif event.key == "enter":
            self.filtering = False
        elif event.key == "backspace":
            self.filter_text = self.filter_text[:-1]
        elif event.is_printable:
            self.filter_text += event.character or ""
        self.selected = 0
        return []

    def _open_selected(self) -> list[Task]:
        table = self.selected_table
        results = self.controller.screens.get(ViewMode.RESULTS)
        if table is None or results is None:
            return []
        task = results.open_table(self.current_schema, table.name)
        self.controller.push_view(ViewMode.RESULTS)
        return [task] if task else []

    def _invalidate_suggestions(self) -> None:
        editor = self.controller.screens.get(ViewMode.EDITOR)
        if editor is not None:
            editor.autocomplete.corpus.invalidate()

    def handle_message(self, message: Completion) -> list[Task]:
        if not isinstance(message, TableListLoaded):
            return []
        resolution = self.listing.resolve(message)
        if resolution.stale or resolution.prompted:
            return []
        if resolution.retrying:
            return [resolution.task]
        outcome = resolution.outcome
        if outcome.kind is OutcomeKind.FAILED:
            self.error = outcome.error_message
        elif outcome.kind is OutcomeKind.SUCCESS:
            listing: TableListing = outcome.value
            self.schemas = listing.schemas
            if listing.schema != self.current_schema:
                self._invalidate_suggestions()
            self.current_schema = listing.schema
            self.tables = listing.tables
            self.selected = min(self.selected, max(0, len(self.visible_tables) - 1))
            self.loaded = True
            self.error = None
        return []

    def render(self) -> RenderableType:
        header = Text.assemble(
            (f"{self.title} ", "bold"),
            (self.services.database_name, "cyan"),
            "  schema: ",
            (self.current_schema or "-", "bold cyan"),
            (f"  ({len(self.schemas)} schemas, s to switch)", "dim"),
        )
        parts: list[RenderableType] = [header]
        if self.filtering or self.filter_text:
            parts.append(Text(f"/{self.filter_text}", style="yellow" if self.filtering else "dim"))

        table = Table(box=None, show_edge=False, pad_edge=False, expand=True)
        table.add_column("Table")
        table.add_column("Kind", style="dim")
        visible = self.visible_tables
        rows = max(3, self.height - 8)
        start = max(0, min(self.selected - rows // 2, len(visible) - rows))
        for index, unit in enumerate(visible[start : start + rows], start=start):
            style = "reverse" if index == self.selected else ""
            table.add_row(unit.name, unit.kind, style=style)
        parts.append(table)

        if self.listing.prompt_active:
            parts.append(self.listing.prompt.render("Fetching tables"))
        elif self.listing.is_running:
            parts.append(Text("Loading tables... (esc to cancel)", style="yellow"))
        elif self.loaded and not visible:
            parts.append(Text("No tables.", style="dim"))
        error = self.render_error()
        if error is not None:
            parts.append(error)
        return Group(*parts)
