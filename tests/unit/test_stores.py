"""Tests for the JSON-backed settings, history and connection stores."""

from __future__ import annotations

import json

import pytest

from sqldeck.domains.connections.store.connections import ConnectionConfig, ConnectionStore
from sqldeck.domains.query.store.history import HistoryStore
from sqldeck.domains.shell.store.settings import DEFAULT_SETTINGS, SettingsStore


class TestSettingsStore:
    def test_defaults_without_file(self, config_dir):
        store = SettingsStore()
        assert store.get_query_timeout() == DEFAULT_SETTINGS["query_timeout_seconds"]
        assert store.get_preferred_timeout() == 0
        assert store.file_path == config_dir / "settings.json"

    def test_preferred_timeout_round_trips_through_disk(self, config_dir):
        store = SettingsStore()
        store.set_preferred_timeout(120)
        store.save()
        assert json.loads((config_dir / "settings.json").read_text())["preferred_timeout_seconds"] == 120
        assert SettingsStore().get_preferred_timeout() == 120

    def test_unknown_keys_are_preserved(self, config_dir):
        (config_dir / "settings.json").write_text(json.dumps({"theme": "dark"}))
        store = SettingsStore()
        store.set("page_size", 10)
        store.save()
        data = json.loads((config_dir / "settings.json").read_text())
        assert data["theme"] == "dark"
        assert data["page_size"] == 10

    def test_invalid_timeout_falls_back_to_default(self, config_dir):
        (config_dir / "settings.json").write_text(json.dumps({"query_timeout_seconds": "soon"}))
        assert SettingsStore().get_query_timeout() == DEFAULT_SETTINGS["query_timeout_seconds"]

    def test_corrupt_file_is_ignored(self, config_dir):
        (config_dir / "settings.json").write_text("{not json")
        assert SettingsStore().get("page_size") == 50

    def test_settings_path_override(self, config_dir, monkeypatch):
        path = config_dir / "elsewhere" / "prefs.json"
        monkeypatch.setenv("SQLDECK_SETTINGS_PATH", str(path))
        store = SettingsStore()
        store.save()
        assert path.exists()


class TestHistoryStore:
    def test_newest_first_and_blank_queries_skipped(self, config_dir):
        store = HistoryStore()
        store.add("SELECT 1", True, "db")
        store.add("   ", True, "db")
        store.add("SELECT 2", False, "db")
        assert [(e.query, e.success) for e in store.get_all()] == [("SELECT 2", False), ("SELECT 1", True)]

    def test_persisted_between_instances(self, config_dir):
        HistoryStore().add("SELECT 1", True, "db")
        assert HistoryStore().get_all()[0].query == "SELECT 1"

    def test_trimmed_to_max_entries(self, config_dir):
        store = HistoryStore(max_entries=2)
        for n in range(4):
            store.add(f"SELECT {n}", True, "db")
        assert [e.query for e in store.get_all()] == ["SELECT 3", "SELECT 2"]

    def test_session_only_history_is_not_written(self, config_dir):
        store = HistoryStore(persist=False)
        store.add("SELECT 1", True, "db")
        assert store.get_all()
        assert not (config_dir / "history.json").exists()

    def test_clear(self, config_dir):
        store = HistoryStore()
        store.add("SELECT 1", True, "db")
        store.clear()
        assert store.get_all() == []
        assert HistoryStore().get_all() == []


class TestConnectionStore:
    def test_add_replaces_same_name(self, config_dir):
        store = ConnectionStore()
        store.add(ConnectionConfig("local", "/tmp/a.db"))
        store.add(ConnectionConfig("local", "/tmp/b.db"))
        assert [(c.name, c.path) for c in store.load_all()] == [("local", "/tmp/b.db")]

    def test_delete(self, config_dir):
        store = ConnectionStore()
        store.add(ConnectionConfig("local", "/tmp/a.db"))
        assert store.delete("local") is True
        assert store.delete("local") is False
        assert store.load_all() == []

    def test_malformed_entries_are_skipped(self, config_dir):
        (config_dir / "connections.json").write_text(json.dumps([{"name": "ok", "path": "x.db"}, {"oops": 1}]))
        assert [c.name for c in ConnectionStore().load_all()] == ["ok"]

    def test_for_path_uses_file_stem(self):
        assert ConnectionConfig.for_path("/data/shop.sqlite").name == "shop"


class TestCorruptFiles:
    def test_unreadable_settings_are_moved_aside(self, config_dir):
        (config_dir / "settings.json").write_text("{not json")
        store = SettingsStore()
        assert (config_dir / "settings.json.corrupt").read_text() == "{not json"
        assert not store.exists()
        store.save()
        assert json.loads((config_dir / "settings.json").read_text())["page_size"] == 50

    def test_wrong_shape_history_is_moved_aside(self, config_dir):
        (config_dir / "history.json").write_text(json.dumps({"query": "SELECT 1"}))
        assert HistoryStore().get_all() == []
        assert (config_dir / "history.json.corrupt").exists()

    def test_object_where_connections_expect_array(self, config_dir):
        (config_dir / "connections.json").write_text(json.dumps({"name": "local"}))
        assert ConnectionStore().load_all() == []
        assert (config_dir / "connections.json.corrupt").exists()

    def test_failed_write_leaves_previous_document(self, config_dir):
        store = SettingsStore()
        store.save()
        store.set("page_size", object())
        with pytest.raises(TypeError):
            store.save()
        assert json.loads((config_dir / "settings.json").read_text())["page_size"] == 50
        assert not list(config_dir.glob(".tmp_*"))
