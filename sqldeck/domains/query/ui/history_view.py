"""Query history screen."""

from __future__ import annotations

from typing import TYPE_CHECKING

from rich.console import Group
from rich.text import Text

from sqldeck.domains.query.ui.editor_view import run_query
from sqldeck.domains.shell.app.screen import Screen
from sqldeck.domains.shell.app.view_controller import ViewMode
from sqldeck.shared.app.messages import QueryExecuted, query_completion
from sqldeck.shared.app.operation import OutcomeKind

if TYPE_CHECKING:
    from rich.console import RenderableType

    from sqldeck.domains.query.store.history import QueryHistoryEntry
    from sqldeck.domains.shell.app.events import KeyEvent
    from sqldeck.domains.shell.app.view_controller import ViewController
    from sqldeck.shared.app.messages import Completion
    from sqldeck.shared.app.tasks import Task


class HistoryView(Screen):
    mode = ViewMode.HISTORY
    context = "history"
    title = "Query History"

    def __init__(self, controller: ViewController) -> None:
        super().__init__(controller)
        self.entries: list[QueryHistoryEntry] = []
        self.selected = 0
        self.confirm_clear = False
        self.rerun = self.retryable(
            "history-rerun",
            lambda token, query: run_query(self.services, token, query),
            lambda query, outcome: query_completion(query)(outcome),
        )

    def on_enter(self) -> None:
        self.reload()

    def reload(self) -> None:
        self.entries = self.services.history.get_all()
        if self.selected >= len(self.entries):
            self.selected = max(0, len(self.entries) - 1)

    @property
    def selected_entry(self) -> QueryHistoryEntry | None:
        if not self.entries:
            return None
        return self.entries[self.selected]

    def on_key(self, event: KeyEvent) -> list[Task]:
        if self.rerun.prompt_active:
            _, task = self.rerun.handle_key(event.key)
            return [task] if task else []

        action = self.action_for(event)
        if action == "back" and self.rerun.cancel():
            return []

        if self.confirm_clear:
            if event.key == "y":
                self.services.history.clear()
                self.reload()
                self.controller.set_status("History cleared")
            if event.key in ("y", "n", "escape"):
                self.confirm_clear = False
            return []

        if action == "cursor_up" and self.entries:
            self.selected = max(0, self.selected - 1)
        elif action == "cursor_down" and self.entries:
            self.selected = min(len(self.entries) - 1, self.selected + 1)
        elif action == "rerun":
            entry = self.selected_entry
            if entry is not None:
                task = self.rerun.start(entry.query, self.query_timeout())
                if task is not None:
                    self.error = None
                    return [task]
        elif action == "edit":
            entry = self.selected_entry
            editor = self.controller.screens.get(ViewMode.EDITOR)
            if entry is not None and editor is not None:
                editor.set_text(entry.query)
                self.controller.push_view(ViewMode.EDITOR)
        elif action == "clear" and self.entries:
            self.confirm_clear = True
        elif action == "back":
            return self.back(ViewMode.BROWSER)
        return []

    def handle_message(self, message: Completion) -> list[Task]:
        if not isinstance(message, QueryExecuted):
            return []
        resolution = self.rerun.resolve(message)
        if resolution.stale or resolution.prompted:
            return []
        if resolution.retrying:
            return [resolution.task]

        outcome = resolution.outcome
        if outcome.kind is OutcomeKind.CANCELLED:
            return []
        database = self.services.database_name
        if outcome.kind is OutcomeKind.FAILED:
            self.services.history.add(message.query, False, database)
            self.error = outcome.error_message
            self.reload()
            return []

        result = outcome.value
        self.services.history.add(message.query, True, database)
        self.reload()
        results = self.controller.screens.get(ViewMode.RESULTS)
        if results is not None:
            results.show_query_result(message.query, result)
            self.controller.push_view(ViewMode.RESULTS)
        self.controller.set_status(f"Query executed ({result.row_count} rows)")
        return []

    def render(self) -> RenderableType:
        parts: list[RenderableType] = [Text(f"{self.title} ({len(self.entries)})", style="bold")]
        if not self.entries:
            parts.append(Text("No queries yet.", style="dim"))
        visible = max(3, self.height - 8)
        start = max(0, min(self.selected - visible // 2, len(self.entries) - visible))
        for index, entry in enumerate(self.entries[start : start + visible], start=start):
            marker = "✓" if entry.success else "✗"
            first_line = entry.query.splitlines()[0] if entry.query else ""
            line = Text(f" {marker} {entry.timestamp:<19}  {entry.database:<12} {first_line}")
            if not entry.success:
                line.stylize("red", 1, 2)
            if index == self.selected:
                line.stylize("reverse")
            parts.append(line)
        if self.confirm_clear:
            parts.append(Text("Clear all history? (y/n)", style="bold yellow"))
        if self.rerun.prompt_active:
            parts.append(self.rerun.prompt.render("Query"))
        elif self.rerun.is_running:
            parts.append(Text("Running query... (esc to cancel)", style="yellow"))
        error = self.render_error()
        if error is not None:
            parts.append(error)
        return Group(*parts)
