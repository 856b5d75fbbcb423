"""Column visibility picker for the result grid."""

from __future__ import annotations

from typing import TYPE_CHECKING

from rich.console import Group
from rich.text import Text

from sqldeck.domains.shell.app.screen import Screen
from sqldeck.domains.shell.app.view_controller import ViewMode

if TYPE_CHECKING:
    from rich.console import RenderableType

    from sqldeck.domains.shell.app.events import KeyEvent
    from sqldeck.domains.shell.app.view_controller import ViewController
    from sqldeck.shared.app.tasks import Task


class ColumnsView(Screen):
    mode = ViewMode.COLUMNS
    context = "columns"
    title = "Columns"

    def __init__(self, controller: ViewController) -> None:
        super().__init__(controller)
        self.selected = 0

    def _results(self):
        return self.controller.screens.get(ViewMode.RESULTS)

    def on_enter(self) -> None:
        self.selected = 0

    def on_key(self, event: KeyEvent) -> list[Task]:
        results = self._results()
        columns = results.columns if results is not None else []
        action = self.action_for(event)
        if action == "cursor_up" and columns:
            self.selected = max(0, self.selected - 1)
        elif action == "cursor_down" and columns:
            self.selected = min(len(columns) - 1, self.selected + 1)
        elif action == "toggle" and columns:
            name = columns[self.selected]
            if name in results.hidden:
                results.hidden.discard(name)
            elif len(results.hidden) < len(columns) - 1:
                results.hidden.add(name)
            else:
                self.controller.set_status("At least one column must stay visible")
        elif action == "toggle_all" and results is not None:
            results.hidden.clear()
        elif action == "back":
            if results is not None:
                results.column_offset = 0
            return self.back(ViewMode.RESULTS)
        return []

    def render(self) -> RenderableType:
        results = self._results()
        parts: list[RenderableType] = [Text(self.title, style="bold")]
        if results is None or not results.columns:
            parts.append(Text("No columns.", style="dim"))
            return Group(*parts)
        for index, name in enumerate(results.columns):
            mark = " " if name in results.hidden else "x"
            line = Text(f" [{mark}] {name}")
            if index == self.selected:
                line.stylize("reverse")
            parts.append(line)
        return Group(*parts)
