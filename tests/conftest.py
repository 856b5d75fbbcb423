"""Shared pytest setup: keep every store out of the real home directory."""

from __future__ import annotations

import os
import tempfile
from pathlib import Path

import pytest

_TEST_CONFIG_DIR = Path(tempfile.mkdtemp(prefix="sqldeck-test-config-"))
os.environ.setdefault("SQLDECK_CONFIG_DIR", str(_TEST_CONFIG_DIR))


@pytest.fixture
def config_dir(tmp_path, monkeypatch):
    """Point the config directory at a fresh temporary directory."""
    monkeypatch.setenv("SQLDECK_CONFIG_DIR", str(tmp_path))
    monkeypatch.delenv("SQLDECK_SETTINGS_PATH", raising=False)
    return tmp_path
