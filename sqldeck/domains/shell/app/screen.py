"""Base class for the screens registered with the view controller."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from rich.text import Text

from sqldeck.domains.shell.app.events import KeyEvent, MouseEvent, PasteEvent
from sqldeck.shared.app.operation import Operation
from sqldeck.shared.app.retry import RetryableOperation

if TYPE_CHECKING:
    from rich.console import RenderableType

    from sqldeck.domains.shell.app.events import InputEvent
    from sqldeck.domains.shell.app.view_controller import ViewController, ViewMode
    from sqldeck.shared.app.messages import Completion
    from sqldeck.shared.app.services import AppServices
    from sqldeck.shared.app.tasks import Task


class Screen:
    """A view: owns its local state, handles events, renders itself.

    Subclasses set ``mode`` and ``context`` (the keymap context) and
    override the ``on_*`` hooks they need. Handlers return the tasks to
    schedule; work that starts outside a handler goes through ``schedule``.
    """

    mode: ViewMode
    context: str = ""
    title: str = ""
    # True while the screen takes free text, which makes "?" plain input
    captures_text: bool = False

    def __init__(self, controller: ViewController) -> None:
        self.controller = controller
        self.error: str | None = None
        self.width = 80
        self.height = 24

    @property
    def services(self) -> AppServices:
        return self.controller.services

    # -- operations -------------------------------------------------------

    def operations(self) -> list[Operation | RetryableOperation]:
        return [value for value in vars(self).values() if isinstance(value, (Operation, RetryableOperation))]

    def retryable(
        self,
        name: str,
        call: Any,
        build: Any,
    ) -> RetryableOperation:
        return RetryableOperation(name, call, build, self.services.preferences, origin=self.mode)

    @property
    def is_busy(self) -> bool:
        return any(op.is_running for op in self.operations())

    @property
    def prompt_active(self) -> bool:
        return any(isinstance(op, RetryableOperation) and op.prompt_active for op in self.operations())

    def cancel_all(self) -> None:
        for op in self.operations():
            op.cancel()

    def is_help_safe(self) -> bool:
        return not self.captures_text and not self.prompt_active

    def schedule(self, *tasks: Task | None) -> None:
        for task in tasks:
            if task is not None:
                if task.origin is None:
                    task.origin = self.mode
                self.controller.schedule(task)

    def query_timeout(self) -> float:
        return self.services.preferences.get_query_timeout()

    # -- dispatch ---------------------------------------------------------

    def handle_event(self, event: InputEvent) -> list[Task]:
        if isinstance(event, KeyEvent):
            return self.on_key(event)
        if isinstance(event, PasteEvent):
            return self.on_paste(event)
        if isinstance(event, MouseEvent):
            return self.on_mouse(event)
        return []

    def action_for(self, event: KeyEvent) -> str | None:
        return self.controller.keymap.action_for(self.context, event.key)

    def on_key(self, event: KeyEvent) -> list[Task]:
        return []

    def on_paste(self, event: PasteEvent) -> list[Task]:
        return []

    def on_mouse(self, event: MouseEvent) -> list[Task]:
        return []

    def on_resize(self, width: int, height: int) -> None:
        self.width = width
        self.height = height

    def on_enter(self) -> None:
        """Called each time the screen becomes active."""

    def handle_message(self, message: Completion) -> list[Task]:
        return []

    def back(self, fallback: ViewMode) -> list[Task]:
        if not self.controller.pop_view():
            self.controller.switch_to(fallback)
        return []

    # -- rendering --------------------------------------------------------

    def render(self) -> RenderableType:
        return Text(self.title)

    def render_error(self) -> Text | None:
        if not self.error:
            return None
        return Text.assemble(("Error: ", "bold red"), (self.error, "red"), ("  (retry with the same action)", "dim"))
