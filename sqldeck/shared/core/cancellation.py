"""Cooperative cancellation tokens shared by background tasks."""

from __future__ import annotations

import threading
import time


class DeadlineExceeded(TimeoutError):
    """Raised when a token's deadline passes before the work finished."""

    def __init__(self, timeout: float | None = None) -> None:
        if timeout is None:
            super().__init__("deadline exceeded")
        else:
            super().__init__(f"deadline exceeded after {timeout:g}s")
        self.timeout = timeout


class OperationCancelled(Exception):
    """Raised when a token was cancelled explicitly by the user."""

    def __init__(self) -> None:
        super().__init__("operation cancelled")


class CancellationToken:
    """A cancellation flag bound to an optional deadline.

    The token is created on the event loop and handed to a worker thread.
    Workers poll it with ``check()`` at their suspension points; the
    loop side calls ``cancel()``.

    A ``timeout`` of ``None`` means the work may run without a deadline.
    """

    def __init__(self, timeout: float | None = None, *, clock=time.monotonic) -> None:
        self._clock = clock
        self._timeout = timeout
        self._deadline = None if timeout is None else clock() + timeout
        self._cancelled = threading.Event()

    @property
    def timeout(self) -> float | None:
        return self._timeout

    @property
    def deadline(self) -> float | None:
        return self._deadline

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    @property
    def expired(self) -> bool:
        return self._deadline is not None and self._clock() >= self._deadline

    @property
    def done(self) -> bool:
        """True once the token was cancelled or its deadline passed."""
        return self.cancelled or self.expired

    def cancel(self) -> None:
        self._cancelled.set()

    def remaining(self) -> float | None:
        """Seconds left before the deadline, or None when unbounded."""
        if self._deadline is None:
            return None
        return max(0.0, self._deadline - self._clock())

    def check(self) -> None:
        """Raise the matching sentinel if the token is done.

        Explicit cancellation wins over an expired deadline.

        Raises:
            OperationCancelled: The token was cancelled.
            DeadlineExceeded: The deadline passed.
        """
        if self.cancelled:
            raise OperationCancelled()
        if self.expired:
            raise DeadlineExceeded(self._timeout)

    def wait(self, seconds: float) -> bool:
        """Sleep up to ``seconds``, waking early on cancel.

        Returns:
            True if the token is done when the wait ends.
        """
        remaining = self.remaining()
        if remaining is not None:
            seconds = min(seconds, remaining)
        self._cancelled.wait(max(0.0, seconds))
        return self.done
