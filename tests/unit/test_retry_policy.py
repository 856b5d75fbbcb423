"""Tests for the timeout escalation policy shared by retryable call sites."""

from __future__ import annotations

import pytest

from sqldeck.shared.app.messages import TableListLoaded
from sqldeck.shared.app.operation import OutcomeKind
from sqldeck.shared.app.retry import RETRY_OPTIONS, RetryableOperation, RetryPrompt
from sqldeck.shared.core.cancellation import DeadlineExceeded
from tests.fakes import FakePreferences


class ScriptedCall:
    """Times out for the first ``timeouts`` calls, then returns the input."""

    def __init__(self, timeouts: int) -> None:
        self.timeouts = timeouts
        self.seen: list[tuple[str, float | None]] = []

    def __call__(self, token, value):
        self.seen.append((value, token.timeout))
        if len(self.seen) <= self.timeouts:
            raise DeadlineExceeded(token.timeout)
        return f"rows for {value}"


def _retryable(call, preferences):
    return RetryableOperation(
        "tables",
        call,
        lambda value, outcome: TableListLoaded(schema=value, outcome=outcome),
        preferences,
        origin="browser",
    )


class TestRetryPrompt:
    def test_show_requires_input(self):
        prompt = RetryPrompt()
        with pytest.raises(ValueError):
            prompt.show("")
        with pytest.raises(ValueError):
            prompt.show(None)

    def test_unknown_keys_are_swallowed(self):
        prompt = RetryPrompt()
        prompt.show("main")
        choice, handled = prompt.handle_key("x")
        assert choice is None
        assert handled is True
        assert prompt.active

    def test_escape_clears(self):
        prompt = RetryPrompt()
        prompt.show("main")
        choice, handled = prompt.handle_key("escape")
        assert (choice, handled) == (None, True)
        assert not prompt.active
        assert prompt.timed_out_input is None

    def test_inactive_prompt_does_not_handle(self):
        assert RetryPrompt().handle_key("1") == (None, False)

    def test_menu_options(self):
        assert [(o.key, o.timeout, o.save) for o in RETRY_OPTIONS] == [
            ("1", 60, True),
            ("2", 120, True),
            ("3", 300, True),
            ("4", None, False),
        ]

    def test_render_lists_options(self):
        prompt = RetryPrompt()
        prompt.show("main")
        rendered = prompt.render("Fetching tables").plain
        assert "Fetching tables timed out" in rendered
        for option in RETRY_OPTIONS:
            assert option.label in rendered


class TestRetryableOperation:
    def test_success_passes_through(self):
        call = ScriptedCall(timeouts=0)
        op = _retryable(call, FakePreferences())
        resolution = op.resolve(op.start("main", 30).run())
        assert resolution.succeeded
        assert resolution.outcome.value == "rows for main"

    def test_timeout_without_preference_shows_prompt(self):
        op = _retryable(ScriptedCall(timeouts=1), FakePreferences())
        resolution = op.resolve(op.start("main", 30).run())
        assert resolution.prompted
        assert op.prompt_active
        assert op.prompt.timed_out_input == "main"

    def test_saved_preference_auto_retries_once(self):
        call = ScriptedCall(timeouts=1)
        op = _retryable(call, FakePreferences({"preferred_timeout_seconds": 90}))
        first = op.resolve(op.start("main", 30).run())
        assert first.retrying
        assert not op.prompt_active
        second = op.resolve(first.task.run())
        assert second.succeeded
        assert call.seen == [("main", 30), ("main", 90)]

    def test_second_timeout_after_auto_retry_prompts(self):
        op = _retryable(ScriptedCall(timeouts=2), FakePreferences({"preferred_timeout_seconds": 90}))
        first = op.resolve(op.start("main", 30).run())
        second = op.resolve(first.task.run())
        assert second.prompted
        assert op.prompt_active

    def test_fresh_start_resets_auto_retry(self):
        call = ScriptedCall(timeouts=10)
        op = _retryable(call, FakePreferences({"preferred_timeout_seconds": 90}))
        first = op.resolve(op.start("main", 30).run())
        op.resolve(first.task.run())
        op.prompt.handle_key("escape")
        again = op.resolve(op.start("main", 30).run())
        assert again.retrying

    def test_choosing_saved_option_persists_and_retries(self):
        preferences = FakePreferences()
        call = ScriptedCall(timeouts=1)
        op = _retryable(call, preferences)
        op.resolve(op.start("main", 30).run())
        handled, task = op.handle_key("2")
        assert handled
        assert task is not None
        assert preferences.values["preferred_timeout_seconds"] == 120
        assert preferences.saves == 1
        assert op.resolve(task.run()).succeeded
        assert call.seen[-1] == ("main", 120)

    def test_unlimited_option_is_not_saved(self):
        preferences = FakePreferences()
        call = ScriptedCall(timeouts=1)
        op = _retryable(call, preferences)
        op.resolve(op.start("main", 30).run())
        _, task = op.handle_key("4")
        assert task.token.timeout is None
        assert preferences.saves == 0
        assert preferences.values["preferred_timeout_seconds"] == 0

    def test_cancelled_outcome_is_not_an_error(self):
        op = _retryable(ScriptedCall(timeouts=0), FakePreferences())
        task = op.start("main", 30)
        op.cancel()
        resolution = op.resolve(task.run())
        assert resolution.outcome.kind is OutcomeKind.CANCELLED
        assert not resolution.failed
        assert not op.prompt_active

    def test_stale_completion_is_flagged(self):
        op = _retryable(ScriptedCall(timeouts=0), FakePreferences())
        task = op.start("main", 30)
        message = task.run()
        op.resolve(message)
        assert op.resolve(message).stale
