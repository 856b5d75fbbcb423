"""Lifecycle of one cancellable, deadline-bound background call.

An ``Operation`` is a slot: it runs at most one call at a time, and every
call ends in exactly one ``Outcome`` no matter how it stopped.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any

from sqldeck.shared.app.tasks import Task
from sqldeck.shared.core.cancellation import CancellationToken, DeadlineExceeded, OperationCancelled

if TYPE_CHECKING:
    from sqldeck.shared.app.messages import OperationCompletion

logger = logging.getLogger(__name__)


class OperationState(Enum):
    IDLE = "idle"
    RUNNING = "running"
    CANCELLING = "cancelling"


class OutcomeKind(Enum):
    SUCCESS = "success"
    TIMED_OUT = "timed_out"
    CANCELLED = "cancelled"
    FAILED = "failed"


@dataclass(frozen=True)
class Outcome:
    """Terminal result of an operation."""

    kind: OutcomeKind
    value: Any = None
    error: BaseException | None = None

    @classmethod
    def success(cls, value: Any = None) -> Outcome:
        return cls(OutcomeKind.SUCCESS, value=value)

    @classmethod
    def timed_out(cls, error: BaseException | None = None) -> Outcome:
        return cls(OutcomeKind.TIMED_OUT, error=error)

    @classmethod
    def cancelled(cls) -> Outcome:
        return cls(OutcomeKind.CANCELLED)

    @classmethod
    def failed(cls, error: BaseException) -> Outcome:
        return cls(OutcomeKind.FAILED, error=error)

    @property
    def ok(self) -> bool:
        return self.kind is OutcomeKind.SUCCESS

    @property
    def error_message(self) -> str:
        return str(self.error) if self.error is not None else ""


def classify_error(error: BaseException, token: CancellationToken | None = None) -> Outcome:
    """Map an exception raised by a call onto the outcome taxonomy.

    The two sentinel types are checked first. A driver error raised after
    the token was cancelled or expired is attributed to that condition,
    since drivers report interruption in their own error types.
    """
    if isinstance(error, OperationCancelled):
        return Outcome.cancelled()
    if isinstance(error, DeadlineExceeded):
        return Outcome.timed_out(error)
    if token is not None:
        if token.cancelled:
            return Outcome.cancelled()
        if token.expired:
            return Outcome.timed_out(DeadlineExceeded(token.timeout))
    return Outcome.failed(error)


class Operation:
    """A single logical call slot, e.g. the editor's query.

    States: IDLE -> RUNNING -> (CANCELLING ->) IDLE. ``start`` while not
    idle is a no-op and returns None.
    """

    def __init__(self, name: str, *, origin: Any = None) -> None:
        self.name = name
        self.origin = origin
        self.state = OperationState.IDLE
        self.token: CancellationToken | None = None
        self._ticket = 0

    @property
    def is_running(self) -> bool:
        return self.state is not OperationState.IDLE

    @property
    def ticket(self) -> int:
        return self._ticket

    def start(
        self,
        call: Callable[[CancellationToken], Any],
        timeout: float | None,
        build: Callable[[Outcome], OperationCompletion],
    ) -> Task | None:
        """Begin a call unless one is already in flight.

        Args:
            call: Work to run off the loop; receives the token.
            timeout: Deadline in seconds, None for no limit.
            build: Turns the outcome into the completion message.

        Returns:
            The task to schedule, or None when the slot is busy.
        """
        if self.state is not OperationState.IDLE:
            logger.debug("Operation %s already %s; start ignored", self.name, self.state.value)
            return None

        self._ticket += 1
        ticket = self._ticket
        token = CancellationToken(timeout)
        self.token = token
        self.state = OperationState.RUNNING
        logger.debug("Operation %s started (ticket=%d, timeout=%s)", self.name, ticket, timeout)

        def run() -> OperationCompletion:
            try:
                value = call(token)
            except Exception as error:
                outcome = classify_error(error, token)
            else:
                outcome = Outcome.cancelled() if token.cancelled else Outcome.success(value)
            message = build(outcome)
            message.ticket = ticket
            return message

        return Task(run, name=self.name, token=token, origin=self.origin)

    def cancel(self) -> bool:
        """Request cancellation of the running call.

        Returns:
            True if a running call was signalled.
        """
        if self.state is not OperationState.RUNNING or self.token is None:
            return False
        self.state = OperationState.CANCELLING
        self.token.cancel()
        logger.debug("Operation %s cancelling (ticket=%d)", self.name, self._ticket)
        return True

    def finish(self, message: OperationCompletion) -> bool:
        """Return to IDLE if ``message`` belongs to the current call.

        Returns:
            False for a completion from an older call, which is ignored.
        """
        if self.state is OperationState.IDLE or message.ticket != self._ticket:
            return False
        self.state = OperationState.IDLE
        self.token = None
        logger.debug(
            "Operation %s finished (ticket=%d, outcome=%s)", self.name, message.ticket, message.outcome.kind.value
        )
        return True
