"""Tests for the status bar busy indicator."""

from __future__ import annotations

from sqldeck.domains.shell.ui.spinner import SPINNER_FRAMES, BusySpinner


class FakeTimer:
    def __init__(self, callback):
        self.callback = callback
        self.stopped = False

    def stop(self):
        self.stopped = True


class FakeWidget:
    def __init__(self):
        self.timers = []

    def set_interval(self, interval, callback):
        timer = FakeTimer(callback)
        self.timers.append(timer)
        return timer


class Clock:
    def __init__(self):
        self.now = 100.0

    def __call__(self):
        return self.now


def make_spinner(busy):
    widget = FakeWidget()
    clock = Clock()
    frames = []
    spinner = BusySpinner(widget, lambda: busy[0], lambda: frames.append(spinner.caption), clock=clock)
    return spinner, widget, clock, frames


class TestBusySpinner:
    def test_idle_sync_starts_nothing(self):
        spinner, widget, _, _ = make_spinner([False])
        spinner.sync()
        assert not spinner.running
        assert widget.timers == []
        assert spinner.caption == ""

    def test_sync_while_busy_starts_one_timer(self):
        spinner, widget, _, _ = make_spinner([True])
        spinner.sync()
        spinner.sync()
        assert spinner.running
        assert len(widget.timers) == 1
        assert spinner.caption == f"{SPINNER_FRAMES[0]} working"

    def test_tick_advances_frame_and_redraws(self):
        spinner, widget, _, frames = make_spinner([True])
        spinner.sync()
        widget.timers[0].callback()
        assert spinner.frame == SPINNER_FRAMES[1]
        assert frames == [f"{SPINNER_FRAMES[1]} working"]

    def test_caption_shows_elapsed_seconds(self):
        spinner, _, clock, _ = make_spinner([True])
        spinner.sync()
        clock.now += 3.4
        assert spinner.caption.endswith("working 3s")

    def test_tick_stops_once_work_is_done(self):
        busy = [True]
        spinner, widget, _, frames = make_spinner(busy)
        spinner.sync()
        busy[0] = False
        widget.timers[0].callback()
        assert widget.timers[0].stopped
        assert not spinner.running
        assert frames == [""]

    def test_restart_resets_frame_and_clock(self):
        busy = [True]
        spinner, widget, clock, _ = make_spinner(busy)
        spinner.sync()
        widget.timers[0].callback()
        clock.now += 5
        busy[0] = False
        spinner.sync()
        busy[0] = True
        spinner.sync()
        assert len(widget.timers) == 2
        assert spinner.frame == SPINNER_FRAMES[0]
        assert spinner.elapsed == 0
