"""Key bindings per screen context (UI-agnostic)."""

from __future__ import annotations

from dataclasses import dataclass

KEY_DISPLAY_OVERRIDES: dict[str, str] = {
    "question_mark": "?",
    "slash": "/",
    "space": "<space>",
    "escape": "esc",
    "enter": "<enter>",
    "delete": "delete",
    "backspace": "<backspace>",
    "tab": "tab",
    "up": "↑",
    "down": "↓",
    "left": "←",
    "right": "→",
}


def format_key(key: str) -> str:
    """Format a key name for display in UI hints."""
    if key in KEY_DISPLAY_OVERRIDES:
        return KEY_DISPLAY_OVERRIDES[key]
    if key.startswith("ctrl+"):
        return f"^{key.split('+', 1)[1]}"
    return key


@dataclass(frozen=True)
class ActionKeyDef:
    """Definition of a regular action keybinding."""

    key: str
    action: str
    context: str
    label: str = ""
    primary: bool = True  # secondary aliases are hidden from help


DEFAULT_BINDINGS: list[ActionKeyDef] = [
    # global
    ActionKeyDef("ctrl+c", "quit", "global", "Quit"),
    ActionKeyDef("tab", "next_tab", "global", "Next view"),
    ActionKeyDef("question_mark", "help", "global", "Help"),
    ActionKeyDef("?", "help", "global", primary=False),
    # connection
    ActionKeyDef("up", "cursor_up", "connection", "Previous"),
    ActionKeyDef("k", "cursor_up", "connection", primary=False),
    ActionKeyDef("down", "cursor_down", "connection", "Next"),
    ActionKeyDef("j", "cursor_down", "connection", primary=False),
    ActionKeyDef("enter", "connect", "connection", "Connect"),
    ActionKeyDef("d", "delete", "connection", "Delete saved connection"),
    ActionKeyDef("r", "refresh", "connection", "Reload list"),
    ActionKeyDef("q", "quit", "connection", "Quit"),
    # browser
    ActionKeyDef("up", "cursor_up", "browser", "Previous table"),
    ActionKeyDef("k", "cursor_up", "browser", primary=False),
    ActionKeyDef("down", "cursor_down", "browser", "Next table"),
    ActionKeyDef("j", "cursor_down", "browser", primary=False),
    ActionKeyDef("enter", "open_table", "browser", "Open table"),
    ActionKeyDef("s", "next_schema", "browser", "Next schema"),
    ActionKeyDef("r", "refresh", "browser", "Refresh"),
    ActionKeyDef("slash", "filter", "browser", "Filter tables"),
    ActionKeyDef("/", "filter", "browser", primary=False),
    ActionKeyDef("e", "editor", "browser", "Query editor"),
    ActionKeyDef("h", "history", "browser", "History"),
    ActionKeyDef("g", "schema", "browser", "Schema overview"),
    ActionKeyDef("a", "chat", "browser", "AI chat"),
    ActionKeyDef("escape", "back", "browser", "Back"),
    ActionKeyDef("q", "quit", "browser", "Quit"),
    # editor
    ActionKeyDef("ctrl+e", "execute", "editor", "Run query"),
    ActionKeyDef("f5", "execute", "editor", primary=False),
    ActionKeyDef("alt+enter", "execute", "editor", primary=False),
    ActionKeyDef("ctrl+space", "trigger_suggestions", "editor", "Suggest"),
    ActionKeyDef("ctrl+@", "trigger_suggestions", "editor", primary=False),
    ActionKeyDef("ctrl+l", "clear", "editor", "Clear"),
    ActionKeyDef("escape", "back", "editor", "Cancel / back"),
    # editor while suggestions are showing
    ActionKeyDef("down", "suggestion_next", "suggestions", "Next suggestion"),
    ActionKeyDef("ctrl+n", "suggestion_next", "suggestions", primary=False),
    ActionKeyDef("up", "suggestion_previous", "suggestions", "Previous suggestion"),
    ActionKeyDef("ctrl+p", "suggestion_previous", "suggestions", primary=False),
    ActionKeyDef("shift+tab", "suggestion_previous", "suggestions", primary=False),
    ActionKeyDef("enter", "suggestion_accept", "suggestions", "Accept suggestion"),
    # results
    ActionKeyDef("up", "cursor_up", "results", "Previous row"),
    ActionKeyDef("k", "cursor_up", "results", primary=False),
    ActionKeyDef("down", "cursor_down", "results", "Next row"),
    ActionKeyDef("j", "cursor_down", "results", primary=False),
    ActionKeyDef("left", "scroll_left", "results", "Scroll left"),
    ActionKeyDef("right", "scroll_right", "results", "Scroll right"),
    ActionKeyDef("n", "next_page", "results", "Next page"),
    ActionKeyDef("p", "previous_page", "results", "Previous page"),
    ActionKeyDef("r", "refresh", "results", "Reload"),
    ActionKeyDef("w", "where", "results", "Filter rows"),
    ActionKeyDef("c", "columns", "results", "Choose columns"),
    ActionKeyDef("x", "export", "results", "Export"),
    ActionKeyDef("y", "copy_row", "results", "Copy row"),
    ActionKeyDef("e", "editor", "results", "Query editor"),
    ActionKeyDef("escape", "back", "results", "Back"),
    # where
    ActionKeyDef("enter", "submit", "where", "Add condition / apply"),
    ActionKeyDef("up", "cursor_up", "where", "Previous condition"),
    ActionKeyDef("down", "cursor_down", "where", "Next condition"),
    ActionKeyDef("ctrl+d", "delete", "where", "Remove condition"),
    ActionKeyDef("escape", "back", "where", "Back"),
    # columns
    ActionKeyDef("up", "cursor_up", "columns", "Previous column"),
    ActionKeyDef("k", "cursor_up", "columns", primary=False),
    ActionKeyDef("down", "cursor_down", "columns", "Next column"),
    ActionKeyDef("j", "cursor_down", "columns", primary=False),
    ActionKeyDef("space", "toggle", "columns", "Show / hide"),
    ActionKeyDef("a", "toggle_all", "columns", "Show all"),
    ActionKeyDef("enter", "back", "columns", "Done"),
    ActionKeyDef("escape", "back", "columns", primary=False),
    # export
    ActionKeyDef("enter", "export", "export", "Write file"),
    ActionKeyDef("escape", "back", "export", "Back"),
    # history
    ActionKeyDef("up", "cursor_up", "history", "Previous"),
    ActionKeyDef("k", "cursor_up", "history", primary=False),
    ActionKeyDef("down", "cursor_down", "history", "Next"),
    ActionKeyDef("j", "cursor_down", "history", primary=False),
    ActionKeyDef("enter", "rerun", "history", "Run again"),
    ActionKeyDef("e", "edit", "history", "Edit in editor"),
    ActionKeyDef("c", "clear", "history", "Clear history"),
    ActionKeyDef("escape", "back", "history", "Back"),
    # chat
    ActionKeyDef("enter", "send", "chat", "Send"),
    ActionKeyDef("ctrl+r", "reload_models", "chat", "Reload models"),
    ActionKeyDef("ctrl+t", "next_provider", "chat", "Next provider"),
    ActionKeyDef("ctrl+o", "next_model", "chat", "Next model"),
    ActionKeyDef("ctrl+e", "run_sql", "chat", "Run suggested SQL"),
    ActionKeyDef("escape", "back", "chat", "Back"),
    ActionKeyDef("a", "accept", "consent", "Accept"),
    ActionKeyDef("escape", "back", "consent", "Decline"),
    ActionKeyDef("q", "back", "consent", primary=False),
    ActionKeyDef("d", "back", "consent", primary=False),
    # schema
    ActionKeyDef("up", "cursor_up", "schema", "Scroll up"),
    ActionKeyDef("k", "cursor_up", "schema", primary=False),
    ActionKeyDef("down", "cursor_down", "schema", "Scroll down"),
    ActionKeyDef("j", "cursor_down", "schema", primary=False),
    ActionKeyDef("r", "refresh", "schema", "Reload"),
    ActionKeyDef("escape", "back", "schema", "Back"),
]


class Keymap:
    """Lookup of actions by context and key."""

    def __init__(self, bindings: list[ActionKeyDef] | None = None) -> None:
        self._bindings = list(bindings if bindings is not None else DEFAULT_BINDINGS)
        self._index: dict[tuple[str, str], str] = {}
        for binding in self._bindings:
            self._index.setdefault((binding.context, binding.key), binding.action)

    def action_for(self, context: str, key: str) -> str | None:
        return self._index.get((context, key))

    def keys_for(self, context: str, action: str) -> list[str]:
        return [b.key for b in self._bindings if b.context == context and b.action == action]

    def help_rows(self, *contexts: str) -> list[tuple[str, str, str]]:
        """(context, keys, label) rows for the help overlay, primary keys first."""
        rows = []
        for context in contexts:
            for binding in self._bindings:
                if binding.context != context or not binding.primary:
                    continue
                aliases = [format_key(k) for k in self.keys_for(context, binding.action)]
                rows.append((context, " / ".join(dict.fromkeys(aliases)), binding.label))
        return rows
