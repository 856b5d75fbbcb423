"""Query editor screen with debounced autocomplete."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from rich.console import Group
from rich.text import Text

from sqldeck.domains.query.app.autocomplete import AutocompleteController
from sqldeck.domains.query.app.buffer import EditorBuffer
from sqldeck.domains.query.completion.corpus import SuggestionCorpus
from sqldeck.domains.shell.app.events import KeyEvent, MouseEvent, PasteEvent
from sqldeck.domains.shell.app.screen import Screen
from sqldeck.domains.shell.app.view_controller import ViewMode
from sqldeck.shared.app.messages import (
    AutocompleteDebounceFired,
    QueryExecuted,
    SuggestionMetadataLoaded,
    query_completion,
)
from sqldeck.shared.app.operation import OutcomeKind
from sqldeck.shared.core.errors import DataAccessError

if TYPE_CHECKING:
    from rich.console import RenderableType

    from sqldeck.domains.shell.app.view_controller import ViewController
    from sqldeck.shared.app.messages import Completion
    from sqldeck.shared.app.services import AppServices
    from sqldeck.shared.app.tasks import Task
    from sqldeck.shared.core.cancellation import CancellationToken
    from sqldeck.shared.core.models import QueryResult

logger = logging.getLogger(__name__)

MAX_SUGGESTION_ROWS = 8


def run_query(services: AppServices, token: CancellationToken, query: str) -> QueryResult:
    """Execute ``query`` on the active connection."""
    if services.data_access is None:
        raise DataAccessError("not connected")
    return services.data_access.execute_query(token, query)


class EditorView(Screen):
    mode = ViewMode.EDITOR
    context = "editor"
    title = "Query Editor"
    captures_text = True

    def __init__(self, controller: ViewController) -> None:
        super().__init__(controller)
        self.buffer = EditorBuffer()
        self.autocomplete = AutocompleteController(
            SuggestionCorpus(lambda: self.services.data_access, self._browser_schema, cache_only=True)
        )
        self.query = self.retryable(
            "query",
            lambda token, query: run_query(self.services, token, query),
            lambda query, outcome: query_completion(query)(outcome),
        )
        self.last_row_count: int | None = None

    def _browser_schema(self) -> str:
        browser = self.controller.screens.get(ViewMode.BROWSER)
        return getattr(browser, "current_schema", "") or ""

    def set_text(self, text: str, cursor: int | None = None) -> None:
        """Replace the buffer, e.g. when a query is loaded from history."""
        self.buffer.set(text, cursor)
        self.autocomplete.last_text = self.buffer.text
        self.autocomplete.cursor = self.buffer.cursor
        self.autocomplete.dismiss()
        self.error = None

    # -- input ------------------------------------------------------------

    def on_key(self, event: KeyEvent) -> list[Task]:
        if self.query.prompt_active:
            _, task = self.query.handle_key(event.key)
            return [task] if task else []

        if self.autocomplete.visible:
            action = self.controller.keymap.action_for("suggestions", event.key)
            if action == "suggestion_next":
                self.autocomplete.move(1)
                return []
            if action == "suggestion_previous":
                self.autocomplete.move(-1)
                return []
            if action == "suggestion_accept":
                self._accept()
                return []

        action = self.action_for(event)
        if action == "execute":
            return self.execute()
        if action == "trigger_suggestions":
            self.autocomplete.trigger(self.buffer.text, self.buffer.cursor)
            return self._fetch_missing()
        if action == "clear":
            self.buffer.clear()
            self.autocomplete.last_text = ""
            self.autocomplete.cursor = 0
            self.autocomplete.dismiss()
            self.error = None
            self.last_row_count = None
            return []
        if action == "back":
            if self.query.cancel():
                return []
            if self.autocomplete.visible:
                self.autocomplete.dismiss()
                return []
            return self.back(ViewMode.BROWSER)

        if self._edit(event):
            return [self.autocomplete.on_keystroke(self.buffer.text, self.buffer.cursor)]
        return []

    def _edit(self, event: KeyEvent) -> bool:
        """Apply an editing key to the buffer; True if the text or cursor changed."""
        buffer = self.buffer
        before = (buffer.text, buffer.cursor)
        key = event.key
        if key == "enter":
            buffer.insert("\n")
        elif key == "backspace":
            buffer.backspace()
        elif key == "delete":
            buffer.delete()
        elif key == "left":
            buffer.move(-1)
        elif key == "right":
            buffer.move(1)
        elif key == "up":
            buffer.move_line(-1)
        elif key == "down":
            buffer.move_line(1)
        elif key == "home":
            buffer.home()
        elif key == "end":
            buffer.end()
        elif event.is_printable:
            buffer.insert(event.character or "")
        else:
            return False
        return (buffer.text, buffer.cursor) != before

    def on_paste(self, event: PasteEvent) -> list[Task]:
        if self.query.prompt_active or not event.text:
            return []
        self.buffer.insert(event.text)
        return [self.autocomplete.on_keystroke(self.buffer.text, self.buffer.cursor)]

    def on_mouse(self, event: MouseEvent) -> list[Task]:
        if self.autocomplete.visible:
            self.autocomplete.move(event.delta)
        return []

    def _accept(self) -> None:
        result = self.autocomplete.accept(self.buffer.text, self.buffer.cursor)
        if result is not None:
            self.buffer.set(result.text, result.cursor)

    # -- execution --------------------------------------------------------

    def execute(self) -> list[Task]:
        query = self.buffer.text.strip()
        if not query:
            self.error = "query is empty"
            return []
        self.autocomplete.dismiss()
        task = self.query.start(query, self.query_timeout())
        if task is None:
            return []
        self.error = None
        return [task]

    def handle_message(self, message: Completion) -> list[Task]:
        if isinstance(message, AutocompleteDebounceFired):
            if self.autocomplete.apply(message):
                return self._fetch_missing()
            return []
        if isinstance(message, SuggestionMetadataLoaded):
            self.autocomplete.apply_metadata(message)
            return []
        if isinstance(message, QueryExecuted):
            return self._on_query_finished(message)
        return []

    def _fetch_missing(self) -> list[Task]:
        task = self.autocomplete.fetch_task()
        return [task] if task else []

    def _on_query_finished(self, message: QueryExecuted) -> list[Task]:
        resolution = self.query.resolve(message)
        if resolution.stale:
            return []
        if resolution.retrying:
            return [resolution.task]
        if resolution.prompted:
            self.error = None
            return []

        outcome = resolution.outcome
        database = self.services.database_name
        if outcome.kind is OutcomeKind.CANCELLED:
            self.controller.set_status("Query cancelled")
            return []
        if outcome.kind is OutcomeKind.FAILED:
            self.services.history.add(message.query, False, database)
            self.error = outcome.error_message
            return []

        result = outcome.value
        self.services.history.add(message.query, True, database)
        self.last_row_count = result.row_count
        results = self.controller.screens.get(ViewMode.RESULTS)
        if results is not None:
            results.show_query_result(message.query, result)
            self.controller.push_view(ViewMode.RESULTS)
        self.controller.set_status(f"Query executed ({result.row_count} rows)")
        return []

    # -- rendering --------------------------------------------------------

    def _render_text(self) -> Text:
        text = Text()
        body = self.buffer.text
        cursor = self.buffer.cursor
        text.append(body[:cursor])
        under = body[cursor : cursor + 1]
        if not under or under == "\n":
            text.append(" ", style="reverse")
            text.append(under)
        else:
            text.append(under, style="reverse")
        text.append(body[cursor + 1 :])
        return text

    def _render_suggestions(self) -> Text:
        controller = self.autocomplete
        lines = Text()
        total = len(controller.filtered)
        start = max(0, min(controller.selected - MAX_SUGGESTION_ROWS // 2, total - MAX_SUGGESTION_ROWS))
        for index in range(start, min(total, start + MAX_SUGGESTION_ROWS)):
            candidate = controller.filtered[index]
            style = "reverse" if index == controller.selected else ""
            lines.append(f" {candidate.label:<32} ", style=style)
            lines.append(f"{candidate.kind.value:<9}{candidate.detail}\n", style="dim")
        return lines

    def render(self) -> RenderableType:
        parts: list[RenderableType] = [Text(self.title, style="bold"), self._render_text()]
        if self.autocomplete.visible:
            parts.append(self._render_suggestions())
        if self.query.prompt_active:
            parts.append(self.query.prompt.render("Query"))
        elif self.query.is_running:
            parts.append(Text("Running query... (esc to cancel)", style="yellow"))
        error = self.render_error()
        if error is not None:
            parts.append(error)
        elif self.last_row_count is not None:
            parts.append(Text(f"Last query returned {self.last_row_count} rows", style="dim"))
        return Group(*parts)
