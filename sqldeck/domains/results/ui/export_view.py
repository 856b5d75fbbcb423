"""Export of the current result grid to a CSV file."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

from rich.console import Group
from rich.text import Text

from sqldeck.domains.shell.app.screen import Screen
from sqldeck.domains.shell.app.view_controller import ViewMode
from sqldeck.shared.app.messages import ExportFinished
from sqldeck.shared.app.operation import Operation, OutcomeKind
from sqldeck.shared.core.errors import DataAccessError

if TYPE_CHECKING:
    from rich.console import RenderableType

    from sqldeck.domains.shell.app.events import KeyEvent, PasteEvent
    from sqldeck.domains.shell.app.view_controller import ViewController
    from sqldeck.shared.app.messages import Completion
    from sqldeck.shared.app.tasks import Task


class ExportView(Screen):
    mode = ViewMode.EXPORT
    context = "export"
    title = "Export to CSV"
    captures_text = True

    def __init__(self, controller: ViewController) -> None:
        super().__init__(controller)
        self.filename = ""
        self.export_op = Operation("export", origin=self.mode)

    def _results(self):
        return self.controller.screens.get(ViewMode.RESULTS)

    def on_enter(self) -> None:
        results = self._results()
        stem = results.table if results is not None and results.table else "results"
        self.filename = f"{stem}.csv"
        self.error = None

    def on_key(self, event: KeyEvent) -> list[Task]:
        action = self.action_for(event)
        if action == "export":
            return self.export()
        if action == "back":
            if self.export_op.cancel():
                return []
            return self.back(ViewMode.RESULTS)
        if event.key == "backspace":
            self.filename = self.filename[:-1]
        elif event.is_printable:
            self.filename += event.character or ""
        return []

    def on_paste(self, event: PasteEvent) -> list[Task]:
        self.filename += event.text.strip()
        return []

    def export(self) -> list[Task]:
        results = self._results()
        exporter = self.services.exporter
        if not self.filename.strip():
            self.error = "file name is empty"
            return []
        if results is None or exporter is None:
            self.error = "nothing to export"
            return []
        path = Path(self.filename.strip())
        columns, rows = results.visible_rows()

        def write(token) -> int:
            token.check()
            return exporter.export(path, columns, rows)

        task = self.export_op.start(
            write,
            None,
            lambda outcome: ExportFinished(path=str(path), outcome=outcome),
        )
        if task is None:
            return []
        self.error = None
        return [task]

    def handle_message(self, message: Completion) -> list[Task]:
        if not isinstance(message, ExportFinished) or not self.export_op.finish(message):
            return []
        outcome = message.outcome
        if outcome.kind is OutcomeKind.SUCCESS:
            self.controller.set_status(f"Exported {outcome.value} rows to {message.path}")
            if self.controller.mode is self.mode:
                self.back(ViewMode.RESULTS)
        elif outcome.kind is OutcomeKind.FAILED:
            error = outcome.error
            self.error = str(error) if isinstance(error, DataAccessError) else f"export failed: {error}"
        return []

    def render(self) -> RenderableType:
        results = self._results()
        count = len(results.rows) if results is not None else 0
        parts: list[RenderableType] = [
            Text(self.title, style="bold"),
            Text(f"{count} rows", style="dim"),
            Text.assemble(("File: ", "bold"), self.filename, (" ", "reverse")),
        ]
        if self.export_op.is_running:
            parts.append(Text("Writing...", style="yellow"))
        error = self.render_error()
        if error is not None:
            parts.append(error)
        return Group(*parts)
