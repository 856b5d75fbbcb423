"""Tests for file logging setup."""

from __future__ import annotations

import logging

import pytest

from sqldeck.shared.core.log_setup import resolve_log_level, setup_logging


@pytest.fixture
def restore_logger():
    logger = logging.getLogger("sqldeck")
    handlers, level, propagate = list(logger.handlers), logger.level, logger.propagate
    yield logger
    for handler in list(logger.handlers):
        if handler not in handlers:
            logger.removeHandler(handler)
            handler.close()
    logger.setLevel(level)
    logger.propagate = propagate


class TestLogSetup:
    def test_level_from_environment(self, monkeypatch):
        monkeypatch.setenv("SQLDECK_LOG_LEVEL", "debug")
        assert resolve_log_level() == logging.DEBUG

    def test_unknown_level_defaults_to_warning(self, monkeypatch):
        monkeypatch.delenv("SQLDECK_LOG_LEVEL", raising=False)
        assert resolve_log_level("loud") == logging.WARNING

    def test_records_go_to_file(self, tmp_path, restore_logger):
        path = setup_logging("INFO", tmp_path)
        logging.getLogger("sqldeck.test").info("hello from the test")
        for handler in restore_logger.handlers:
            handler.flush()
        assert path == tmp_path / "sqldeck.log"
        assert "hello from the test" in path.read_text(encoding="utf-8")

    def test_repeat_setup_replaces_handler(self, tmp_path, restore_logger):
        before = len(restore_logger.handlers)
        setup_logging("INFO", tmp_path)
        setup_logging("INFO", tmp_path)
        assert len(restore_logger.handlers) == before + 1
