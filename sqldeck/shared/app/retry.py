"""Timeout escalation shared by every retryable call site.

When a call times out, a saved preferred timeout (if any) is used for one
silent retry per input. After that the user gets a ``RetryPrompt`` with
fixed durations to pick from.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from rich.text import Text

from sqldeck.shared.app.operation import Operation, Outcome, OutcomeKind

if TYPE_CHECKING:
    from sqldeck.shared.app.messages import OperationCompletion
    from sqldeck.shared.app.tasks import Task
    from sqldeck.shared.core.cancellation import CancellationToken
    from sqldeck.shared.core.protocols import PreferencesProtocol

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RetryOption:
    key: str
    timeout: float | None
    label: str
    save: bool


RETRY_OPTIONS: tuple[RetryOption, ...] = (
    RetryOption("1", 60, "60 seconds", True),
    RetryOption("2", 120, "2 minutes", True),
    RetryOption("3", 300, "5 minutes", True),
    RetryOption("4", None, "No limit", False),
)


@dataclass(frozen=True)
class RetryChoice:
    """The user's pick from the retry menu. ``timeout`` None means unlimited."""

    timeout: float | None
    save: bool


class RetryPrompt:
    """Pending decision after a timeout.

    Holds the input that timed out and whether it was already retried
    automatically once.
    """

    def __init__(self) -> None:
        self.active = False
        self.timed_out_input: Any = None
        self.auto_retried = False

    def show(self, timed_out_input: Any) -> None:
        if timed_out_input is None or timed_out_input == "":
            raise ValueError("retry prompt needs the input that timed out")
        self.timed_out_input = timed_out_input
        self.active = True

    def clear(self) -> None:
        self.active = False
        self.timed_out_input = None

    def handle_key(self, key: str) -> tuple[RetryChoice | None, bool]:
        """Resolve a keystroke against the menu.

        Returns:
            ``(choice, handled)``. While active every key is handled; keys
            outside the menu are swallowed without changing anything.
        """
        if not self.active:
            return None, False
        for option in RETRY_OPTIONS:
            if key == option.key:
                self.active = False
                return RetryChoice(option.timeout, option.save), True
        if key == "escape":
            self.clear()
            return None, True
        return None, True

    def render(self, subject: str = "Query") -> Text:
        text = Text()
        text.append(f"{subject} timed out.\n", style="bold yellow")
        text.append("Retry with a longer timeout:\n")
        for option in RETRY_OPTIONS:
            suffix = " (saved as default)" if option.save else ""
            text.append(f"  [{option.key}] {option.label}{suffix}\n")
        text.append("  [esc] Cancel", style="dim")
        return text


@dataclass
class Resolution:
    """What a screen should do after a completion passed through the policy."""

    outcome: Outcome
    task: Task | None = None
    prompted: bool = False
    stale: bool = False

    @property
    def succeeded(self) -> bool:
        return not self.stale and self.outcome.kind is OutcomeKind.SUCCESS

    @property
    def failed(self) -> bool:
        return not self.stale and self.outcome.kind is OutcomeKind.FAILED

    @property
    def retrying(self) -> bool:
        return self.task is not None


class RetryableOperation:
    """An ``Operation`` plus its ``RetryPrompt`` for one call site.

    ``call(token, input)`` does the work; ``build(input, outcome)`` wraps
    the outcome into the site's completion message.
    """

    def __init__(
        self,
        name: str,
        call: Callable[[CancellationToken, Any], Any],
        build: Callable[[Any, Outcome], OperationCompletion],
        preferences: PreferencesProtocol,
        *,
        origin: Any = None,
    ) -> None:
        self.operation = Operation(name, origin=origin)
        self.prompt = RetryPrompt()
        self.current_input: Any = None
        self._call = call
        self._build = build
        self._preferences = preferences

    @property
    def name(self) -> str:
        return self.operation.name

    @property
    def is_running(self) -> bool:
        return self.operation.is_running

    @property
    def prompt_active(self) -> bool:
        return self.prompt.active

    def start(self, value: Any, timeout: float | None) -> Task | None:
        """Start a fresh call for ``value``; resets the auto-retry flag."""
        if self.operation.is_running:
            return None
        self.prompt.auto_retried = False
        self.prompt.clear()
        return self._launch(value, timeout)

    def _launch(self, value: Any, timeout: float | None) -> Task | None:
        task = self.operation.start(
            lambda token: self._call(token, value),
            timeout,
            lambda outcome: self._build(value, outcome),
        )
        if task is not None:
            self.current_input = value
        return task

    def cancel(self) -> bool:
        return self.operation.cancel()

    def resolve(self, message: OperationCompletion) -> Resolution:
        """Apply the timeout policy to a completion of this slot."""
        if not self.operation.finish(message):
            return Resolution(message.outcome, stale=True)

        outcome = message.outcome
        if outcome.kind is not OutcomeKind.TIMED_OUT:
            return Resolution(outcome)

        preferred = self._preferences.get_preferred_timeout()
        if preferred > 0 and not self.prompt.auto_retried:
            self.prompt.auto_retried = True
            logger.info("%s timed out; retrying once with saved timeout %ss", self.name, preferred)
            return Resolution(outcome, task=self._launch(self.current_input, preferred))

        self.prompt.show(self.current_input)
        logger.info("%s timed out; asking for a longer timeout", self.name)
        return Resolution(outcome, prompted=True)

    def handle_key(self, key: str) -> tuple[bool, Task | None]:
        """Feed a key to the retry prompt.

        Returns:
            ``(handled, task)``; ``task`` is the retry when an option was picked.
        """
        value = self.prompt.timed_out_input
        choice, handled = self.prompt.handle_key(key)
        if choice is None:
            return handled, None
        if choice.save and choice.timeout is not None:
            self._preferences.set_preferred_timeout(choice.timeout)
            self._preferences.save()
            logger.info("Saved preferred timeout %ss", choice.timeout)
        return True, self._launch(value, choice.timeout)
