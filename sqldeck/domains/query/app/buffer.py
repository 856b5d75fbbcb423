"""Editable text with an explicit cursor offset."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class EditorBuffer:
    """Query text plus cursor offset.

    The cursor is tracked directly on every edit, so pastes and deletions
    anywhere in the text never need to be reconstructed from diffs.
    """

    text: str = ""
    cursor: int = 0

    def set(self, text: str, cursor: int | None = None) -> None:
        self.text = text
        self.cursor = len(text) if cursor is None else max(0, min(cursor, len(text)))

    def clear(self) -> None:
        self.set("", 0)

    def insert(self, value: str) -> None:
        self.text = self.text[: self.cursor] + value + self.text[self.cursor :]
        self.cursor += len(value)

    def backspace(self) -> bool:
        if self.cursor == 0:
            return False
        self.text = self.text[: self.cursor - 1] + self.text[self.cursor :]
        self.cursor -= 1
        return True

    def delete(self) -> bool:
        if self.cursor >= len(self.text):
            return False
        self.text = self.text[: self.cursor] + self.text[self.cursor + 1 :]
        return True

    def move(self, delta: int) -> None:
        self.cursor = max(0, min(self.cursor + delta, len(self.text)))

    def _line_bounds(self) -> tuple[int, int]:
        start = self.text.rfind("\n", 0, self.cursor) + 1
        end = self.text.find("\n", self.cursor)
        return start, len(self.text) if end == -1 else end

    def home(self) -> None:
        self.cursor = self._line_bounds()[0]

    def end(self) -> None:
        self.cursor = self._line_bounds()[1]

    def move_line(self, delta: int) -> None:
        """Move up or down one line, keeping the column where possible."""
        start, end = self._line_bounds()
        column = self.cursor - start
        if delta < 0:
            if start == 0:
                self.cursor = 0
                return
            prev_start = self.text.rfind("\n", 0, start - 1) + 1
            self.cursor = min(prev_start + column, start - 1)
        else:
            if end == len(self.text):
                self.cursor = end
                return
            next_start = end + 1
            next_end = self.text.find("\n", next_start)
            next_end = len(self.text) if next_end == -1 else next_end
            self.cursor = min(next_start + column, next_end)

    @property
    def location(self) -> tuple[int, int]:
        """(row, column) of the cursor."""
        row = self.text.count("\n", 0, self.cursor)
        column = self.cursor - (self.text.rfind("\n", 0, self.cursor) + 1)
        return row, column
