"""Tab bar, status bar and the overlays drawn above the active screen."""

from __future__ import annotations

from typing import TYPE_CHECKING

from rich.console import Group
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from sqldeck.domains.shell.app.view_controller import TAB_ORDER, ViewMode

if TYPE_CHECKING:
    from rich.console import RenderableType

    from sqldeck.domains.shell.app.view_controller import ViewController

TAB_LABELS: dict[ViewMode, str] = {
    ViewMode.BROWSER: "Browser",
    ViewMode.EDITOR: "Editor",
    ViewMode.RESULTS: "Results",
    ViewMode.HISTORY: "History",
    ViewMode.CHAT: "Chat",
}


def render_tabs(controller: ViewController) -> Text:
    text = Text()
    text.append(" sqldeck ", style="bold reverse")
    if not controller.connected:
        text.append("  not connected", style="dim")
        return text
    text.append(f" {controller.services.database_name} ", style="cyan")
    for mode in TAB_ORDER:
        style = "bold reverse" if mode is controller.mode else "dim"
        text.append(" ")
        text.append(f" {TAB_LABELS[mode]} ", style=style)
    screen = controller.active
    if controller.mode not in TAB_ORDER and screen is not None:
        text.append(f"  > {screen.title}", style="bold")
    return text


def render_status(controller: ViewController, busy_caption: str = "") -> Text:
    text = Text()
    if controller.busy and busy_caption:
        text.append(busy_caption, style="yellow")
        text.append("  ")
    if controller.status:
        text.append(controller.status)
        text.append("  ")
    hint = "esc: back  ?: help  ctrl+c: quit"
    if controller.connected:
        hint = "tab: next view  " + hint
    text.append(hint, style="dim")
    return text


def render_help(controller: ViewController) -> RenderableType:
    screen = controller.active
    contexts = ["global"]
    if screen is not None and screen.context:
        contexts.append(screen.context)
        if screen.context == "editor":
            contexts.append("suggestions")
    table = Table(box=None, show_header=True, header_style="bold", pad_edge=False)
    table.add_column("Keys", style="cyan", no_wrap=True)
    table.add_column("Action")
    table.add_column("Where", style="dim")
    for context, keys, label in controller.keymap.help_rows(*contexts):
        table.add_row(keys, label, context)
    return Panel(table, title="Help", subtitle="any key to close", border_style="cyan")


def render_fatal(message: str) -> RenderableType:
    body = Group(
        Text(message, style="bold red"),
        Text(""),
        Text("esc: dismiss   ctrl+c / q: quit", style="dim"),
    )
    return Panel(body, title="Error", border_style="red")


def render_body(controller: ViewController) -> RenderableType:
    if controller.fatal_error is not None:
        return render_fatal(controller.fatal_error)
    if controller.help_visible:
        return render_help(controller)
    screen = controller.active
    if screen is None:
        return Text("")
    return screen.render()
