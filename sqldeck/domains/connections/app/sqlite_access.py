"""Data access for SQLite using the built-in sqlite3 module."""

from __future__ import annotations

import logging
import sqlite3
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import TYPE_CHECKING, Any

from sqldeck.shared.core.errors import ConfigurationError, DataAccessError, UnsupportedOperationError
from sqldeck.shared.core.models import ChatReply, ColumnDescriptor, QueryResult, TableDescriptor

if TYPE_CHECKING:
    from collections.abc import Iterator

    from sqldeck.shared.core.cancellation import CancellationToken

logger = logging.getLogger(__name__)

# Virtual machine instructions between cancellation checks
PROGRESS_INTERVAL = 1000
# Seconds between token checks while waiting for the connection lock
LOCK_POLL = 0.05
FETCH_BATCH = 500
MAX_ROWS = 10_000


def quote_identifier(name: str) -> str:
    """Quote an identifier with double quotes, doubling embedded quotes."""
    escaped = name.replace('"', '""')
    return f'"{escaped}"'


class SQLiteDataAccess:
    """SQLite implementation of ``DataAccessProtocol``.

    A single connection is shared by every worker thread, so calls are
    serialised with a lock. Cancellation is cooperative: a progress handler
    interrupts the running statement once the caller's token is done, and
    the interruption is reported as the token's own sentinel.
    """

    def __init__(self, path: str | Path, *, name: str | None = None) -> None:
        self._path = str(path)
        if self._path != ":memory:" and not Path(self._path).expanduser().exists():
            raise ConfigurationError(f"database file not found: {self._path}")
        self._name = name or Path(self._path).stem or self._path
        # Workers run in threads; the lock below serialises access.
        self._conn = sqlite3.connect(
            self._path if self._path == ":memory:" else str(Path(self._path).expanduser()),
            check_same_thread=False,
        )
        self._lock = threading.Lock()

    @property
    def database_name(self) -> str:
        return self._name

    @property
    def connection(self) -> sqlite3.Connection:
        return self._conn

    @contextmanager
    def _guarded(self, token: CancellationToken) -> Iterator[sqlite3.Cursor]:
        token.check()
        while not self._lock.acquire(timeout=LOCK_POLL):
            token.check()
        try:
            token.check()
            self._conn.set_progress_handler(lambda: 1 if token.done else 0, PROGRESS_INTERVAL)
            cursor = self._conn.cursor()
            try:
                yield cursor
            except sqlite3.Error as error:
                token.check()
                raise DataAccessError(str(error)) from error
            finally:
                cursor.close()
                self._conn.set_progress_handler(None, 0)
        finally:
            self._lock.release()

    def get_schemas(self, token: CancellationToken) -> list[str]:
        with self._guarded(token) as cursor:
            cursor.execute("PRAGMA database_list")
            return [row[1] for row in cursor.fetchall()]

    def get_storage_units(self, token: CancellationToken, schema: str) -> list[TableDescriptor]:
        master = f"{quote_identifier(schema)}.sqlite_master"
        with self._guarded(token) as cursor:
            cursor.execute(
                f"SELECT name, type FROM {master} "
                "WHERE type IN ('table', 'view') AND name NOT LIKE 'sqlite_%' ORDER BY name"
            )
            return [TableDescriptor(name=row[0], kind=row[1]) for row in cursor.fetchall()]

    def get_columns(self, token: CancellationToken, schema: str, table: str) -> list[ColumnDescriptor]:
        with self._guarded(token) as cursor:
            cursor.execute(f"PRAGMA {quote_identifier(schema)}.table_info({quote_identifier(table)})")
            # table_info rows: cid, name, type, notnull, dflt_value, pk
            return [
                ColumnDescriptor(name=row[1], data_type=row[2] or "TEXT", is_primary=row[5] > 0)
                for row in cursor.fetchall()
            ]

    def execute_query(self, token: CancellationToken, sql: str) -> QueryResult:
        with self._guarded(token) as cursor:
            cursor.execute(sql)
            if cursor.description is None:
                self._conn.commit()
                return QueryResult(rows_affected=cursor.rowcount)
            columns = [col[0] for col in cursor.description]
            rows = self._fetch(cursor, token, MAX_ROWS)
            return QueryResult(columns=columns, rows=rows)

    def get_rows(
        self,
        token: CancellationToken,
        schema: str,
        table: str,
        where: str,
        limit: int,
        offset: int,
    ) -> QueryResult:
        sql = f"SELECT * FROM {quote_identifier(schema)}.{quote_identifier(table)}"
        if where.strip():
            sql += f" WHERE {where}"
        sql += " LIMIT ? OFFSET ?"
        with self._guarded(token) as cursor:
            cursor.execute(sql, (limit, offset))
            columns = [col[0] for col in cursor.description or ()]
            return QueryResult(columns=columns, rows=self._fetch(cursor, token, limit))

    def _fetch(self, cursor: sqlite3.Cursor, token: CancellationToken, max_rows: int) -> list[tuple[Any, ...]]:
        rows: list[tuple[Any, ...]] = []
        while len(rows) < max_rows:
            batch = cursor.fetchmany(min(FETCH_BATCH, max_rows - len(rows)))
            if not batch:
                break
            rows.extend(tuple(row) for row in batch)
            token.check()
        return rows

    def get_ai_models(self, token: CancellationToken, provider: str) -> list[str]:
        raise UnsupportedOperationError("AI chat is not available for SQLite connections")

    def send_ai_chat(
        self,
        token: CancellationToken,
        provider: str,
        model: str,
        schema: str,
        prompt: str,
    ) -> ChatReply:
        raise UnsupportedOperationError("AI chat is not available for SQLite connections")

    def close(self) -> None:
        with self._lock:
            self._conn.close()
        logger.debug("Closed SQLite connection %s", self._name)
