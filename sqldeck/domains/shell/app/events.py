"""Input events fed to the view controller by the host."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class KeyEvent:
    """A key press using Textual key names (``"escape"``, ``"ctrl+e"``, ``"a"``)."""

    key: str
    character: str | None = None

    @property
    def is_printable(self) -> bool:
        return self.character is not None and len(self.character) == 1 and self.character.isprintable()


@dataclass(frozen=True)
class PasteEvent:
    text: str


@dataclass(frozen=True)
class MouseEvent:
    """Mouse wheel input; ``delta`` is -1 for up and 1 for down."""

    delta: int


@dataclass(frozen=True)
class ResizeEvent:
    width: int
    height: int


InputEvent = KeyEvent | PasteEvent | MouseEvent | ResizeEvent


def key(name: str) -> KeyEvent:
    """Build a KeyEvent, filling ``character`` for single printable keys."""
    if name == "space":
        return KeyEvent("space", " ")
    if len(name) == 1:
        return KeyEvent(name, name)
    return KeyEvent(name)
