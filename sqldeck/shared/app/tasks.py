"""Units of background work handed from screens to the host loop."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from sqldeck.shared.app.messages import Completion
    from sqldeck.shared.core.cancellation import CancellationToken


@dataclass
class Task:
    """One piece of work that posts exactly one completion.

    ``delay`` > 0 marks a timer task: the host waits that long on the loop
    and then runs ``fn`` there. Otherwise ``fn`` runs in a worker thread.
    ``origin`` names the screen that receives the completion.
    """

    fn: Callable[[], Completion]
    name: str = "task"
    delay: float = 0.0
    token: CancellationToken | None = None
    origin: Any = None

    @property
    def is_timer(self) -> bool:
        return self.delay > 0

    def run(self) -> Completion:
        message = self.fn()
        if message.origin is None:
            message.origin = self.origin
        return message
