"""Busy indicator for the status bar."""

from __future__ import annotations

import time
from collections.abc import Callable
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from textual.timer import Timer
    from textual.widget import Widget

SPINNER_FRAMES = ["⠋", "⠙", "⠹", "⠸", "⠼", "⠴", "⠦", "⠧", "⠇", "⠏"]


class BusySpinner:
    """Animates while the controller has background work in flight.

    The host calls ``sync()`` after every dispatch and delivery. The
    spinner starts its interval timer when work begins and stops it once
    ``is_busy`` reports idle; every tick re-checks ``is_busy`` too, so the
    animation never outlives the work it reports. ``on_frame`` is called
    on each tick so the owner can redraw the status line.

    ``caption`` is what the status line shows: the frame plus how long the
    current busy stretch has lasted, once that passes a second.
    """

    def __init__(
        self,
        widget: Widget,
        is_busy: Callable[[], bool],
        on_frame: Callable[[], None] | None = None,
        *,
        fps: float = 12,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._widget = widget
        self._is_busy = is_busy
        self._on_frame = on_frame
        self._fps = fps
        self._clock = clock
        self._index = 0
        self._started = 0.0
        self._timer: Timer | None = None

    @property
    def running(self) -> bool:
        return self._timer is not None

    @property
    def frame(self) -> str:
        return SPINNER_FRAMES[self._index]

    @property
    def elapsed(self) -> float:
        return self._clock() - self._started if self.running else 0.0

    @property
    def caption(self) -> str:
        if not self.running:
            return ""
        seconds = int(self.elapsed)
        return f"{self.frame} working {seconds}s" if seconds else f"{self.frame} working"

    def sync(self) -> None:
        if self._is_busy():
            self._start()
        else:
            self._stop()

    def _start(self) -> None:
        if self._timer is not None:
            return
        self._index = 0
        self._started = self._clock()
        self._timer = self._widget.set_interval(1 / self._fps, self._tick)

    def _stop(self) -> None:
        if self._timer is not None:
            self._timer.stop()
            self._timer = None

    def _tick(self) -> None:
        if self._is_busy():
            self._index = (self._index + 1) % len(SPINNER_FRAMES)
        else:
            self._stop()
        if self._on_frame:
            self._on_frame()
