"""Textual host for the view controller.

The app turns Textual input into controller events, runs the returned
tasks (timers on the loop, everything else in thread workers) and feeds
their completions back through ``ViewController.deliver``.
"""

from __future__ import annotations

import logging
from functools import partial
from typing import TYPE_CHECKING

from textual import events
from textual.app import App, ComposeResult
from textual.widgets import Static

from sqldeck.domains.chat.ui.chat_view import ChatView
from sqldeck.domains.connections.ui.connection_view import ConnectionView
from sqldeck.domains.explorer.ui.browser_view import BrowserView
from sqldeck.domains.explorer.ui.schema_view import SchemaView
from sqldeck.domains.query.ui.editor_view import EditorView
from sqldeck.domains.query.ui.history_view import HistoryView
from sqldeck.domains.results.ui.columns_view import ColumnsView
from sqldeck.domains.results.ui.export_view import ExportView
from sqldeck.domains.results.ui.results_view import ResultsView
from sqldeck.domains.results.ui.where_view import WhereView
from sqldeck.domains.shell.app.events import KeyEvent, MouseEvent, PasteEvent, ResizeEvent
from sqldeck.domains.shell.app.view_controller import ViewController, ViewMode
from sqldeck.domains.shell.ui.chrome import render_body, render_status, render_tabs
from sqldeck.domains.shell.ui.spinner import BusySpinner
from sqldeck.shared.app.services import build_default_services

if TYPE_CHECKING:
    from sqldeck.domains.connections.store.connections import ConnectionConfig
    from sqldeck.domains.shell.app.events import InputEvent
    from sqldeck.shared.app.messages import Completion
    from sqldeck.shared.app.services import AppServices
    from sqldeck.shared.app.tasks import Task

logger = logging.getLogger(__name__)

SCREEN_TYPES = (
    ConnectionView,
    BrowserView,
    EditorView,
    ResultsView,
    HistoryView,
    ExportView,
    WhereView,
    ColumnsView,
    ChatView,
    SchemaView,
)


def build_controller(services: AppServices, *, initial_mode: ViewMode = ViewMode.CONNECTION) -> ViewController:
    """Create the controller with every screen registered."""
    controller = ViewController(services, initial_mode=initial_mode)
    for screen_type in SCREEN_TYPES:
        controller.register(screen_type(controller))
    return controller


class DeckBody(Static, can_focus=True):
    """Focus target that forwards all input to the app.

    Stopping the events here keeps Textual's own bindings (tab focus
    cycling among them) out of the way.
    """

    def on_key(self, event: events.Key) -> None:
        event.stop()
        event.prevent_default()
        self.app.handle_input(KeyEvent(event.key, event.character))

    def on_paste(self, event: events.Paste) -> None:
        event.stop()
        self.app.handle_input(PasteEvent(event.text))

    def on_mouse_scroll_down(self, event: events.MouseScrollDown) -> None:
        event.stop()
        event.prevent_default()
        self.app.handle_input(MouseEvent(1))

    def on_mouse_scroll_up(self, event: events.MouseScrollUp) -> None:
        event.stop()
        event.prevent_default()
        self.app.handle_input(MouseEvent(-1))

    def on_resize(self, event: events.Resize) -> None:
        self.app.handle_input(ResizeEvent(event.size.width, event.size.height))


class SqlDeckApp(App, inherit_bindings=False):
    """Terminal client for browsing and querying a database."""

    TITLE = "sqldeck"
    ENABLE_COMMAND_PALETTE = False

    CSS = """
    Screen {
        background: $surface;
        layout: vertical;
    }

    #tabs {
        height: 1;
        background: $panel;
    }

    #body {
        height: 1fr;
        padding: 0 1;
    }

    #status {
        height: 1;
        background: $panel;
    }
    """

    def __init__(
        self,
        services: AppServices | None = None,
        *,
        startup_connection: ConnectionConfig | None = None,
        fatal_error: str | None = None,
    ) -> None:
        super().__init__()
        self.services = services if services is not None else build_default_services()
        if startup_connection is not None and startup_connection not in self.services.extra_connections:
            self.services.extra_connections.insert(0, startup_connection)
        self._startup_connection = startup_connection
        self._startup_error = fatal_error
        self.controller = build_controller(self.services)
        self._spinner: BusySpinner | None = None

    def compose(self) -> ComposeResult:
        yield Static(id="tabs")
        yield DeckBody(id="body")
        yield Static(id="status")

    def on_mount(self) -> None:
        self._spinner = BusySpinner(self, lambda: self.controller.busy, self._refresh_status)
        self.query_one(DeckBody).focus()
        if self._startup_error is not None:
            self.controller.set_fatal_error(self._startup_error)
        elif self._startup_connection is not None:
            connection = self.controller.screen(ViewMode.CONNECTION)
            self._schedule(connection.connect(self._startup_connection))
        self._schedule(self.controller.take_scheduled())
        self._refresh()

    def on_unmount(self) -> None:
        self.controller.quit()
        self.services.replace_data_access(None)

    # -- event flow ---------------------------------------------------------

    def handle_input(self, event: InputEvent) -> None:
        tasks = self.controller.dispatch(event)
        self._schedule(tasks)
        if self.controller.should_quit:
            self.exit()
            return
        self._refresh()

    def deliver(self, message: Completion) -> None:
        tasks = self.controller.deliver(message)
        self._schedule(tasks)
        self._refresh()

    def _schedule(self, tasks: list[Task]) -> None:
        for task in tasks:
            if task.is_timer:
                self.set_timer(task.delay, partial(self._run_timer, task), name=task.name)
            else:
                self.run_worker(partial(self._run_in_thread, task), name=task.name, thread=True)

    def _run_timer(self, task: Task) -> None:
        self.deliver(task.run())

    def _run_in_thread(self, task: Task) -> None:
        message = task.run()
        if not self.is_running:
            logger.debug("App stopped; dropping %s completion", message.kind)
            return
        self.call_from_thread(self.deliver, message)

    # -- rendering ----------------------------------------------------------

    def _refresh(self) -> None:
        self.query_one("#tabs", Static).update(render_tabs(self.controller))
        self.query_one(DeckBody).update(render_body(self.controller))
        if self._spinner is not None:
            self._spinner.sync()
        self._refresh_status()

    def _refresh_status(self) -> None:
        caption = self._spinner.caption if self._spinner is not None else ""
        self.query_one("#status", Static).update(render_status(self.controller, caption))
