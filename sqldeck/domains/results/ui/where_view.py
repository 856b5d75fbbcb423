"""Row filter editor for table pages."""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

from rich.console import Group
from rich.text import Text

from sqldeck.domains.shell.app.screen import Screen
from sqldeck.domains.shell.app.view_controller import ViewMode
from sqldeck.shared.core.errors import QueryValidationError

if TYPE_CHECKING:
    from rich.console import RenderableType

    from sqldeck.domains.shell.app.events import KeyEvent, PasteEvent
    from sqldeck.domains.shell.app.view_controller import ViewController
    from sqldeck.shared.app.tasks import Task

OPERATORS = ("=", "!=", ">", "<", ">=", "<=", "LIKE")

_CONDITION = re.compile(r"^\s*(\w+)\s*(>=|<=|!=|=|>|<|\bLIKE\b)\s*(.+?)\s*$", re.IGNORECASE)
_NUMBER = re.compile(r"^-?\d+(?:\.\d+)?$")


def quote_literal(value: str) -> str:
    """Numbers, NULL and already-quoted strings pass through; the rest is quoted."""
    if _NUMBER.match(value) or value.upper() == "NULL":
        return value
    if len(value) >= 2 and value[0] == value[-1] == "'":
        return value
    return "'" + value.replace("'", "''") + "'"


def parse_condition(text: str, columns: list[str]) -> str:
    """Turn ``column operator value`` into a SQL condition.

    Raises:
        QueryValidationError: Unknown column or operator, or missing value.
    """
    match = _CONDITION.match(text)
    if match is None:
        raise QueryValidationError(f"expected: column operator value (operators: {', '.join(OPERATORS)})")
    column, operator, value = match.groups()
    by_lower = {name.lower(): name for name in columns}
    if columns and column.lower() not in by_lower:
        raise QueryValidationError(f"unknown column: {column}")
    name = by_lower.get(column.lower(), column)
    quoted = '"' + name.replace('"', '""') + '"'
    return f"{quoted} {operator.upper()} {quote_literal(value)}"


class WhereView(Screen):
    mode = ViewMode.WHERE
    context = "where"
    title = "Filter rows"
    captures_text = True

    def __init__(self, controller: ViewController) -> None:
        super().__init__(controller)
        self.conditions: list[str] = []
        self.input = ""
        self.selected = 0

    def _results(self):
        return self.controller.screens.get(ViewMode.RESULTS)

    def on_enter(self) -> None:
        results = self._results()
        self.conditions = list(results.conditions) if results is not None else []
        self.input = ""
        self.selected = 0
        self.error = None

    def on_key(self, event: KeyEvent) -> list[Task]:
        action = self.action_for(event)
        if action == "submit":
            return self._submit()
        if action == "back":
            return self.back(ViewMode.RESULTS)
        if action == "cursor_up" and self.conditions:
            self.selected = max(0, self.selected - 1)
        elif action == "cursor_down" and self.conditions:
            self.selected = min(len(self.conditions) - 1, self.selected + 1)
        elif action == "delete" and self.conditions:
            del self.conditions[self.selected]
            self.selected = max(0, min(self.selected, len(self.conditions) - 1))
        elif event.key == "backspace":
            self.input = self.input[:-1]
        elif event.is_printable:
            self.input += event.character or ""
        return []

    def on_paste(self, event: PasteEvent) -> list[Task]:
        self.input += event.text.replace("\n", " ")
        return []

    def _submit(self) -> list[Task]:
        results = self._results()
        if results is None:
            return []
        if self.input.strip():
            try:
                self.conditions.append(parse_condition(self.input, results.columns))
            except QueryValidationError as error:
                self.error = str(error)
                return []
            self.input = ""
            self.error = None
            self.selected = len(self.conditions) - 1
            return []
        task = results.apply_where(self.conditions)
        self.back(ViewMode.RESULTS)
        return [task] if task else []

    def render(self) -> RenderableType:
        parts: list[RenderableType] = [Text(self.title, style="bold")]
        if not self.conditions:
            parts.append(Text("No conditions; enter on an empty line shows all rows.", style="dim"))
        for index, condition in enumerate(self.conditions):
            parts.append(Text(f"  {condition}", style="reverse" if index == self.selected else ""))
        parts.append(Text.assemble(("> ", "bold"), self.input, (" ", "reverse")))
        parts.append(Text("column operator value, enter to add; empty enter applies", style="dim"))
        error = self.render_error()
        if error is not None:
            parts.append(error)
        return Group(*parts)
