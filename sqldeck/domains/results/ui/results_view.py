"""Result grid for query results and paged table contents."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from rich.console import Group
from rich.markup import escape
from rich.table import Table
from rich.text import Text

from sqldeck.domains.results.app.export import format_cell, row_to_tsv
from sqldeck.domains.shell.app.screen import Screen
from sqldeck.domains.shell.app.view_controller import ViewMode
from sqldeck.shared.app.messages import PageLoaded
from sqldeck.shared.app.operation import OutcomeKind
from sqldeck.shared.core.errors import DataAccessError

if TYPE_CHECKING:
    from rich.console import RenderableType

    from sqldeck.domains.shell.app.events import KeyEvent, MouseEvent
    from sqldeck.domains.shell.app.view_controller import ViewController
    from sqldeck.shared.app.messages import Completion
    from sqldeck.shared.app.services import AppServices
    from sqldeck.shared.app.tasks import Task
    from sqldeck.shared.core.cancellation import CancellationToken
    from sqldeck.shared.core.models import QueryResult

MAX_CELL_WIDTH = 40


@dataclass(frozen=True)
class PageRequest:
    schema: str
    table: str
    where: str
    limit: int
    offset: int


def fetch_page(services: AppServices, token: CancellationToken, request: PageRequest) -> QueryResult:
    if services.data_access is None:
        raise DataAccessError("not connected")
    return services.data_access.get_rows(
        token, request.schema, request.table, request.where, request.limit, request.offset
    )


class ResultsView(Screen):
    mode = ViewMode.RESULTS
    context = "results"
    title = "Results"

    def __init__(self, controller: ViewController) -> None:
        super().__init__(controller)
        self.columns: list[str] = []
        self.rows: list[tuple[Any, ...]] = []
        self.rows_affected: int | None = None
        self.query = ""
        self.schema = ""
        self.table = ""
        self.offset = 0
        self.conditions: list[str] = []
        self.hidden: set[str] = set()
        self.selected = 0
        self.column_offset = 0
        self.pages = self.retryable(
            "page",
            lambda token, request: fetch_page(self.services, token, request),
            lambda request, outcome: PageLoaded(
                schema=request.schema, table=request.table, offset=request.offset, outcome=outcome
            ),
        )

    # -- content ----------------------------------------------------------

    @property
    def is_table_page(self) -> bool:
        return bool(self.table)

    @property
    def page_size(self) -> int:
        try:
            return max(1, int(self.services.preferences.get("page_size", 50)))
        except (TypeError, ValueError):
            return 50

    @property
    def where_clause(self) -> str:
        return " AND ".join(f"({condition})" for condition in self.conditions)

    @property
    def visible_columns(self) -> list[int]:
        return [index for index, name in enumerate(self.columns) if name not in self.hidden]

    def visible_rows(self) -> tuple[list[str], list[tuple[Any, ...]]]:
        """Column names and rows restricted to the visible columns."""
        indexes = self.visible_columns
        names = [self.columns[i] for i in indexes]
        rows = [tuple(row[i] for i in indexes) for row in self.rows]
        return names, rows

    def _reset_view(self) -> None:
        self.selected = 0
        self.column_offset = 0
        self.error = None

    def show_query_result(self, query: str, result: QueryResult) -> None:
        self.query = query
        self.schema = ""
        self.table = ""
        self.offset = 0
        self.conditions = []
        self.hidden = set()
        self.columns = list(result.columns)
        self.rows = list(result.rows)
        self.rows_affected = result.rows_affected if not result.columns else None
        self._reset_view()

    def open_table(self, schema: str, table: str) -> Task | None:
        if self.pages.is_running:
            self.controller.set_status("Still loading the previous table")
            return None
        self.query = ""
        self.schema = schema
        self.table = table
        self.conditions = []
        self.hidden = set()
        self.columns = []
        self.rows = []
        self.rows_affected = None
        self._reset_view()
        return self.load_page(0)

    def load_page(self, offset: int) -> Task | None:
        if not self.is_table_page:
            return None
        request = PageRequest(self.schema, self.table, self.where_clause, self.page_size, max(0, offset))
        task = self.pages.start(request, self.query_timeout())
        if task is not None:
            self.error = None
        return task

    def apply_where(self, conditions: list[str]) -> Task | None:
        self.conditions = list(conditions)
        return self.load_page(0)

    # -- input ------------------------------------------------------------

    def on_key(self, event: KeyEvent) -> list[Task]:
        if self.pages.prompt_active:
            _, task = self.pages.handle_key(event.key)
            return [task] if task else []

        action = self.action_for(event)
        task: Task | None = None
        if action == "cursor_up" and self.rows:
            self.selected = max(0, self.selected - 1)
        elif action == "cursor_down" and self.rows:
            self.selected = min(len(self.rows) - 1, self.selected + 1)
        elif action == "scroll_left":
            self.column_offset = max(0, self.column_offset - 1)
        elif action == "scroll_right":
            self.column_offset = min(max(0, len(self.visible_columns) - 1), self.column_offset + 1)
        elif action == "next_page" and self.is_table_page and len(self.rows) >= self.page_size:
            task = self.load_page(self.offset + self.page_size)
        elif action == "previous_page" and self.is_table_page and self.offset > 0:
            task = self.load_page(self.offset - self.page_size)
        elif action == "refresh":
            task = self.load_page(self.offset)
        elif action == "where":
            if self.is_table_page:
                self.controller.push_view(ViewMode.WHERE)
            else:
                self.controller.set_status("Filtering is only available for table pages")
        elif action == "columns" and self.columns:
            self.controller.push_view(ViewMode.COLUMNS)
        elif action == "export" and self.columns:
            self.controller.push_view(ViewMode.EXPORT)
        elif action == "copy_row":
            self._copy_selected_row()
        elif action == "editor":
            self.controller.push_view(ViewMode.EDITOR)
        elif action == "back":
            if self.pages.cancel():
                return []
            return self.back(ViewMode.BROWSER)
        return [task] if task else []

    def on_mouse(self, event: MouseEvent) -> list[Task]:
        if self.rows:
            self.selected = max(0, min(len(self.rows) - 1, self.selected + event.delta))
        return []

    def _copy_selected_row(self) -> None:
        if not self.rows or self.services.clipboard is None:
            return
        _, rows = self.visible_rows()
        try:
            self.services.clipboard(row_to_tsv(rows[self.selected]))
        except DataAccessError as error:
            self.error = str(error)
            return
        self.controller.set_status("Row copied to clipboard")

    def handle_message(self, message: Completion) -> list[Task]:
        if not isinstance(message, PageLoaded):
            return []
        resolution = self.pages.resolve(message)
        if resolution.stale or resolution.prompted:
            return []
        if resolution.retrying:
            return [resolution.task]
        outcome = resolution.outcome
        if outcome.kind is OutcomeKind.FAILED:
            self.error = outcome.error_message
        elif outcome.kind is OutcomeKind.SUCCESS and (message.schema, message.table) == (self.schema, self.table):
            result: QueryResult = outcome.value
            self.columns = list(result.columns)
            self.rows = list(result.rows)
            self.offset = message.offset
            self._reset_view()
        return []

    # -- rendering --------------------------------------------------------

    def _heading(self) -> Text:
        if self.is_table_page:
            first = self.offset + 1 if self.rows else 0
            heading = Text.assemble(
                (f"{self.schema}.{self.table}", "bold cyan"),
                (f"  rows {first}-{self.offset + len(self.rows)}", "dim"),
            )
            if self.conditions:
                heading.append(f"  where {self.where_clause}", style="yellow")
            return heading
        if self.rows_affected is not None:
            return Text.assemble(("Statement executed", "bold"), f"  {self.rows_affected} rows affected")
        first_line = self.query.splitlines()[0] if self.query else ""
        return Text.assemble((self.title, "bold"), (f"  {len(self.rows)} rows  ", "dim"), (first_line, "dim"))

    def render(self) -> RenderableType:
        parts: list[RenderableType] = [self._heading()]
        indexes = self.visible_columns[self.column_offset :]
        if indexes:
            grid = Table(show_lines=False, expand=False, header_style="bold")
            for index in indexes:
                grid.add_column(escape(self.columns[index]), max_width=MAX_CELL_WIDTH, no_wrap=True)
            rows = max(3, self.height - 8)
            start = max(0, min(self.selected - rows // 2, len(self.rows) - rows))
            for row_index, row in enumerate(self.rows[start : start + rows], start=start):
                cells = [Text(format_cell(row[i]), style="dim italic" if row[i] is None else "") for i in indexes]
                grid.add_row(*cells, style="reverse" if row_index == self.selected else "")
            parts.append(grid)
        elif not self.pages.is_running and self.rows_affected is None:
            parts.append(Text("No rows.", style="dim"))

        if self.pages.prompt_active:
            parts.append(self.pages.prompt.render("Loading rows"))
        elif self.pages.is_running:
            parts.append(Text("Loading rows... (esc to cancel)", style="yellow"))
        error = self.render_error()
        if error is not None:
            parts.append(error)
        return Group(*parts)
