"""Tests for the bundled SQLite data access."""

from __future__ import annotations

import sqlite3
import threading
import time

import pytest

from sqldeck.domains.connections.app.sqlite_access import SQLiteDataAccess
from sqldeck.domains.query.completion.corpus import LOOKUP_TIMEOUT, SuggestionCorpus
from sqldeck.shared.core.cancellation import CancellationToken, DeadlineExceeded, OperationCancelled
from sqldeck.shared.core.errors import ConfigurationError, DataAccessError, UnsupportedOperationError


@pytest.fixture
def database(tmp_path):
    path = tmp_path / "shop.db"
    conn = sqlite3.connect(path)
    conn.executescript(
        """
        CREATE TABLE users (id INTEGER PRIMARY KEY, name TEXT, email TEXT);
        CREATE TABLE orders (id INTEGER PRIMARY KEY, user_id INTEGER, total REAL);
        CREATE VIEW big_orders AS SELECT * FROM orders WHERE total > 100;
        INSERT INTO users (name, email) VALUES ('alice', 'a@example.com'), ('bob', 'b@example.com'), ('carol', NULL);
        """
    )
    conn.commit()
    conn.close()
    access = SQLiteDataAccess(path)
    yield access
    access.close()


ENDLESS = "WITH RECURSIVE n(x) AS (SELECT 1 UNION ALL SELECT x + 1 FROM n) SELECT count(*) FROM n"


def token(timeout: float | None = 5):
    return CancellationToken(timeout)


class TestMetadata:
    def test_missing_file_is_configuration_error(self, tmp_path):
        with pytest.raises(ConfigurationError):
            SQLiteDataAccess(tmp_path / "missing.db")

    def test_database_name_is_file_stem(self, database):
        assert database.database_name == "shop"

    def test_schemas(self, database):
        assert database.get_schemas(token())[0] == "main"

    def test_storage_units_include_views(self, database):
        units = database.get_storage_units(token(), "main")
        assert [(u.name, u.kind) for u in units] == [("big_orders", "view"), ("orders", "table"), ("users", "table")]

    def test_columns(self, database):
        columns = database.get_columns(token(), "main", "users")
        assert [c.name for c in columns] == ["id", "name", "email"]
        assert columns[0].is_primary


class TestQueries:
    def test_select(self, database):
        result = database.execute_query(token(), "SELECT name FROM users ORDER BY id")
        assert result.columns == ["name"]
        assert result.rows == [("alice",), ("bob",), ("carol",)]

    def test_statement_without_rows_reports_affected(self, database):
        result = database.execute_query(token(), "UPDATE users SET email = 'x' WHERE email IS NULL")
        assert result.rows_affected == 1
        assert result.row_count == 1

    def test_syntax_error_is_data_access_error(self, database):
        with pytest.raises(DataAccessError):
            database.execute_query(token(), "SELEC 1")

    def test_get_rows_pages_with_filter(self, database):
        page = database.get_rows(token(), "main", "users", '"name" != \'alice\'', 1, 1)
        assert page.columns == ["id", "name", "email"]
        assert page.rows == [(3, "carol", None)]

    def test_cancelled_token_raises_before_running(self, database):
        cancelled = token()
        cancelled.cancel()
        with pytest.raises(OperationCancelled):
            database.execute_query(cancelled, "SELECT 1")

    def test_long_query_is_interrupted_by_deadline(self, database):
        with pytest.raises(DeadlineExceeded):
            database.execute_query(token(0.2), ENDLESS)

    def test_long_query_is_interrupted_by_cancel(self, database):
        running = token(None)
        threading.Timer(0.2, running.cancel).start()
        with pytest.raises(OperationCancelled):
            database.execute_query(running, ENDLESS)

    def test_connection_usable_after_interrupt(self, database):
        expired = token(0.0)
        with pytest.raises(DeadlineExceeded):
            database.execute_query(expired, "SELECT 1")
        assert database.execute_query(token(), "SELECT 1").rows == [(1,)]

    def test_chat_is_unsupported(self, database):
        with pytest.raises(UnsupportedOperationError):
            database.get_ai_models(token(), "ollama")


@pytest.fixture
def busy(database):
    """The database while a worker thread holds it with an endless query."""
    running = token(None)

    def run():
        with pytest.raises(OperationCancelled):
            database.execute_query(running, ENDLESS)

    worker = threading.Thread(target=run)
    worker.start()
    started = time.monotonic()
    while not database._lock.locked() and time.monotonic() - started < 5:
        time.sleep(0.01)
    yield database
    running.cancel()
    worker.join(5)


class TestLockContention:
    def test_waiting_call_gives_up_at_its_deadline(self, busy):
        started = time.monotonic()
        with pytest.raises(DeadlineExceeded):
            busy.get_schemas(token(0.3))
        assert time.monotonic() - started < 1.5

    def test_waiting_call_honours_cancel(self, busy):
        waiting = token(None)
        threading.Timer(0.2, waiting.cancel).start()
        with pytest.raises(OperationCancelled):
            busy.get_columns(waiting, "main", "users")

    def test_suggestion_lookup_does_not_wait_for_running_query(self, busy):
        corpus = SuggestionCorpus(lambda: busy)
        started = time.monotonic()
        assert corpus.schemas() == []
        assert time.monotonic() - started < LOOKUP_TIMEOUT + 0.5

    def test_lock_released_after_query_is_cancelled(self, database):
        running = token(None)
        threading.Timer(0.2, running.cancel).start()
        with pytest.raises(OperationCancelled):
            database.execute_query(running, ENDLESS)
        assert not database._lock.locked()
        assert database.get_schemas(token())[0] == "main"
