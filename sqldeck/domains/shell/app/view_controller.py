"""Routing of input events and completions between screens.

The controller owns the active mode, the navigation stack and the tab
order. Screens are looked up in a registry keyed by ``ViewMode``.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import TYPE_CHECKING

from sqldeck.domains.shell.app.events import KeyEvent, MouseEvent, ResizeEvent
from sqldeck.domains.shell.app.keymap import Keymap
from sqldeck.shared.app.messages import StatusExpired
from sqldeck.shared.app.tasks import Task

if TYPE_CHECKING:
    from sqldeck.domains.shell.app.events import InputEvent
    from sqldeck.domains.shell.app.screen import Screen
    from sqldeck.shared.app.messages import Completion
    from sqldeck.shared.app.services import AppServices

logger = logging.getLogger(__name__)

STATUS_SECONDS = 3.0


class ViewMode(Enum):
    CONNECTION = "connection"
    BROWSER = "browser"
    EDITOR = "editor"
    RESULTS = "results"
    HISTORY = "history"
    EXPORT = "export"
    WHERE = "where"
    COLUMNS = "columns"
    CHAT = "chat"
    SCHEMA = "schema"


TAB_ORDER: tuple[ViewMode, ...] = (
    ViewMode.BROWSER,
    ViewMode.EDITOR,
    ViewMode.RESULTS,
    ViewMode.HISTORY,
    ViewMode.CHAT,
)

# Where dismissing a fatal error lands, keyed by the mode it interrupted
FATAL_DISMISS_TARGETS: dict[ViewMode, ViewMode] = {
    ViewMode.WHERE: ViewMode.RESULTS,
    ViewMode.EXPORT: ViewMode.BROWSER,
    ViewMode.COLUMNS: ViewMode.BROWSER,
    ViewMode.CHAT: ViewMode.BROWSER,
    ViewMode.SCHEMA: ViewMode.BROWSER,
}

QUIT_KEYS = ("ctrl+c", "q")


class NavigationStack:
    """Modes to return to on "back"."""

    def __init__(self) -> None:
        self._modes: list[ViewMode] = []

    def push(self, mode: ViewMode) -> None:
        self._modes.append(mode)

    def pop(self) -> ViewMode | None:
        """Remove and return the top mode, or None when empty."""
        return self._modes.pop() if self._modes else None

    def peek(self) -> ViewMode | None:
        return self._modes[-1] if self._modes else None

    def clear(self) -> None:
        self._modes.clear()

    def __len__(self) -> int:
        return len(self._modes)

    def __iter__(self):
        return iter(list(self._modes))


class ViewController:
    """Single entry point for input events and task completions.

    ``dispatch`` and ``deliver`` return the tasks the host must schedule:
    whatever the handling screen returned plus anything queued through
    ``schedule`` while handling.
    """

    def __init__(
        self,
        services: AppServices,
        *,
        keymap: Keymap | None = None,
        initial_mode: ViewMode = ViewMode.CONNECTION,
    ) -> None:
        self.services = services
        self.keymap = keymap or Keymap()
        self.screens: dict[ViewMode, Screen] = {}
        self.stack = NavigationStack()
        self._mode = initial_mode
        self.connected = False
        self.fatal_error: str | None = None
        self._fatal_mode: ViewMode | None = None
        self.help_visible = False
        self.should_quit = False
        self.status = ""
        self._status_seq = 0
        self._outbox: list[Task] = []

    # -- registry ---------------------------------------------------------

    def register(self, screen: Screen) -> None:
        self.screens[screen.mode] = screen

    def screen(self, mode: ViewMode) -> Screen:
        return self.screens[mode]

    @property
    def mode(self) -> ViewMode:
        return self._mode

    @property
    def active(self) -> Screen | None:
        return self.screens.get(self._mode)

    @property
    def busy(self) -> bool:
        return any(screen.is_busy for screen in self.screens.values())

    # -- navigation -------------------------------------------------------

    def _activate(self, mode: ViewMode) -> None:
        self._mode = mode
        screen = self.screens.get(mode)
        if screen is not None:
            screen.on_enter()

    def push_view(self, mode: ViewMode) -> None:
        """Remember the current mode and activate ``mode``."""
        self.stack.push(self._mode)
        self._activate(mode)

    def pop_view(self) -> bool:
        """Return to the previous mode.

        Returns:
            False if the stack was empty; the caller picks a fallback.
        """
        previous = self.stack.pop()
        if previous is None:
            return False
        self._activate(previous)
        return True

    def switch_to(self, mode: ViewMode) -> None:
        """Lateral move: activate ``mode`` and forget the stack."""
        self.stack.clear()
        self._activate(mode)

    def next_tab(self) -> None:
        if self._mode in TAB_ORDER:
            index = (TAB_ORDER.index(self._mode) + 1) % len(TAB_ORDER)
        else:
            index = 0
        self.switch_to(TAB_ORDER[index])

    # -- fatal errors and status -------------------------------------------

    def set_fatal_error(self, message: str) -> None:
        logger.error("Fatal error in %s view: %s", self._mode.value, message)
        self.fatal_error = message
        self._fatal_mode = self._mode
        self.help_visible = False

    def dismiss_fatal_error(self) -> None:
        interrupted = self._fatal_mode or self._mode
        self.fatal_error = None
        self._fatal_mode = None
        target = FATAL_DISMISS_TARGETS.get(interrupted, interrupted)
        if target is not self._mode:
            self.switch_to(target)

    def set_status(self, message: str) -> None:
        """Show a transient status message; it clears itself after a few seconds."""
        self._status_seq += 1
        seq = self._status_seq
        self.status = message
        self.schedule(Task(lambda: StatusExpired(seq=seq), name="status-expiry", delay=STATUS_SECONDS))

    def schedule(self, task: Task) -> None:
        self._outbox.append(task)

    def take_scheduled(self) -> list[Task]:
        """Tasks queued outside of dispatch and deliver, e.g. at startup."""
        return self._drain([], None)

    def _drain(self, tasks: list[Task], origin: ViewMode | None) -> list[Task]:
        for task in tasks:
            if task.origin is None:
                task.origin = origin
        queued, self._outbox = self._outbox, []
        return [*tasks, *queued]

    def quit(self) -> None:
        self.should_quit = True
        for screen in self.screens.values():
            screen.cancel_all()

    # -- dispatch ---------------------------------------------------------

    def dispatch(self, event: InputEvent) -> list[Task]:
        """Route one input event and return the tasks to schedule."""
        if isinstance(event, ResizeEvent):
            for screen in self.screens.values():
                screen.on_resize(event.width, event.height)
            return self._drain([], None)

        if self.fatal_error is not None:
            if isinstance(event, KeyEvent):
                if event.key in QUIT_KEYS:
                    self.quit()
                elif event.key == "escape":
                    self.dismiss_fatal_error()
            return self._drain([], None)

        if self.help_visible:
            if isinstance(event, KeyEvent):
                self.help_visible = False
            return self._drain([], None)

        screen = self.active
        if isinstance(event, KeyEvent):
            action = self.keymap.action_for("global", event.key)
            if action == "quit":
                self.quit()
                return self._drain([], None)
            if action == "next_tab" and self._mode is not ViewMode.CONNECTION:
                if self.connected:
                    self.next_tab()
                return self._drain([], None)
            if action == "help" and screen is not None and screen.is_help_safe():
                self.help_visible = True
                return self._drain([], None)

        if screen is None:
            logger.debug("No screen registered for %s; event ignored", self._mode.value)
            return self._drain([], None)
        if isinstance(event, MouseEvent) and screen.prompt_active:
            return self._drain([], None)

        origin = self._mode
        tasks = screen.handle_event(event)
        return self._drain(tasks, origin)

    def deliver(self, message: Completion) -> list[Task]:
        """Route a completion to the screen that started the work."""
        if isinstance(message, StatusExpired):
            if message.seq == self._status_seq:
                self.status = ""
            return self._drain([], None)

        screen = self.screens.get(message.origin)
        if screen is None:
            logger.debug("Dropping %s completion with no receiving screen", message.kind)
            return self._drain([], None)
        tasks = screen.handle_message(message)
        return self._drain(tasks, screen.mode)
