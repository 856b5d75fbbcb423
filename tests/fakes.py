"""In-memory collaborators for driving screens without a real database."""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import Any

from sqldeck.shared.app.services import AppServices
from sqldeck.shared.core.errors import DataAccessError, UnsupportedOperationError
from sqldeck.shared.core.models import ChatReply, ColumnDescriptor, QueryResult, TableDescriptor

DEFAULT_SCHEMA: dict[str, dict[str, list[ColumnDescriptor]]] = {
    "main": {
        "users": [
            ColumnDescriptor("id", "INTEGER", True),
            ColumnDescriptor("name", "TEXT"),
            ColumnDescriptor("email", "TEXT"),
        ],
        "orders": [
            ColumnDescriptor("id", "INTEGER", True),
            ColumnDescriptor("user_id", "INTEGER"),
            ColumnDescriptor("total", "REAL"),
        ],
        "products": [
            ColumnDescriptor("id", "INTEGER", True),
            ColumnDescriptor("price", "REAL"),
        ],
    },
    "temp": {},
}


class FakeDataAccess:
    """Schema-backed fake of ``DataAccessProtocol``.

    ``fail_with`` raises the given error from every call; ``block`` makes
    calls wait on their token until it is cancelled or expires.
    """

    def __init__(
        self,
        schema: dict[str, dict[str, list[ColumnDescriptor]]] | None = None,
        *,
        name: str = "test-db",
    ) -> None:
        self.schema = schema if schema is not None else DEFAULT_SCHEMA
        self.name = name
        self.rows: dict[str, list[tuple[Any, ...]]] = {
            "users": [(1, "alice", "alice@example.com"), (2, "bob", "bob@example.com")],
        }
        self.query_results: dict[str, QueryResult] = {}
        self.models: dict[str, list[str]] = {"ollama": ["llama3", "sqlcoder"]}
        self.replies: list[ChatReply] = []
        self.fail_with: Exception | None = None
        self.block = False
        self.calls: list[tuple[Any, ...]] = []
        self.closed = False
        self._lock = threading.Lock()

    @property
    def database_name(self) -> str:
        return self.name

    def _enter(self, token, *call: Any) -> None:
        with self._lock:
            self.calls.append(call)
        token.check()
        if self.fail_with is not None:
            raise self.fail_with
        if self.block:
            while not token.wait(0.01):
                pass
            token.check()

    def get_schemas(self, token) -> list[str]:
        self._enter(token, "get_schemas")
        return list(self.schema)

    def get_storage_units(self, token, schema: str) -> list[TableDescriptor]:
        self._enter(token, "get_storage_units", schema)
        return [TableDescriptor(name) for name in sorted(self.schema.get(schema, {}))]

    def get_columns(self, token, schema: str, table: str) -> list[ColumnDescriptor]:
        self._enter(token, "get_columns", schema, table)
        return list(self.schema.get(schema, {}).get(table, []))

    def execute_query(self, token, sql: str) -> QueryResult:
        self._enter(token, "execute_query", sql)
        if sql in self.query_results:
            return self.query_results[sql]
        if sql.lower().startswith("select"):
            return QueryResult(columns=["value"], rows=[(1,)])
        return QueryResult(rows_affected=1)

    def get_rows(self, token, schema: str, table: str, where: str, limit: int, offset: int) -> QueryResult:
        self._enter(token, "get_rows", schema, table, where, limit, offset)
        if table not in self.schema.get(schema, {}):
            raise DataAccessError(f"no such table: {table}")
        columns = [column.name for column in self.schema[schema][table]]
        rows = self.rows.get(table, [])[offset : offset + limit]
        return QueryResult(columns=columns, rows=rows)

    def get_ai_models(self, token, provider: str) -> list[str]:
        self._enter(token, "get_ai_models", provider)
        if provider not in self.models:
            raise UnsupportedOperationError(f"provider {provider} is not configured")
        return list(self.models[provider])

    def send_ai_chat(self, token, provider: str, model: str, schema: str, prompt: str) -> ChatReply:
        self._enter(token, "send_ai_chat", provider, model, schema, prompt)
        if self.replies:
            return self.replies.pop(0)
        return ChatReply(text=f"echo: {prompt}")

    def close(self) -> None:
        self.closed = True


class FakePreferences:
    def __init__(self, values: dict[str, Any] | None = None) -> None:
        self.values: dict[str, Any] = {"query_timeout_seconds": 30, "preferred_timeout_seconds": 0, "page_size": 50}
        self.values.update(values or {})
        self.saves = 0

    def get_preferred_timeout(self) -> float:
        return float(self.values.get("preferred_timeout_seconds", 0))

    def set_preferred_timeout(self, seconds: float) -> None:
        self.values["preferred_timeout_seconds"] = seconds

    def get_query_timeout(self) -> float:
        return float(self.values.get("query_timeout_seconds", 30))

    def get(self, key: str, default: Any = None) -> Any:
        return self.values.get(key, default)

    def set(self, key: str, value: Any) -> None:
        self.values[key] = value

    def save(self) -> None:
        self.saves += 1


@dataclass
class FakeHistory:
    entries: list[tuple[str, bool, str]] = field(default_factory=list)

    def add(self, query: str, success: bool, database: str) -> None:
        if query.strip():
            self.entries.insert(0, (query.strip(), success, database))

    def get_all(self) -> list[Any]:
        from sqldeck.domains.query.store.history import QueryHistoryEntry

        return [QueryHistoryEntry(query, success, database, "") for query, success, database in self.entries]

    def clear(self) -> None:
        self.entries.clear()


@dataclass
class FakeExporter:
    exports: list[tuple[str, list[str], list[tuple[Any, ...]]]] = field(default_factory=list)

    def export(self, path, columns, rows) -> int:
        self.exports.append((str(path), list(columns), list(rows)))
        return len(rows)


class FakeConnectionStore:
    def __init__(self, connections=None) -> None:
        self.connections = list(connections or [])

    def load_all(self):
        return list(self.connections)

    def add(self, config) -> None:
        self.connections = [c for c in self.connections if c.name != config.name] + [config]

    def delete(self, name: str) -> bool:
        before = len(self.connections)
        self.connections = [c for c in self.connections if c.name != name]
        return len(self.connections) < before


def make_services(
    data_access: FakeDataAccess | None = None,
    *,
    preferences: dict[str, Any] | None = None,
    connections=None,
    connected: bool = True,
) -> AppServices:
    """Services wired to fakes; ``connected`` pre-installs the data access."""
    access = data_access or FakeDataAccess()
    copied: list[str] = []
    services = AppServices(
        preferences=FakePreferences(preferences),
        history=FakeHistory(),
        connections=FakeConnectionStore(connections),
        exporter=FakeExporter(),
        data_access_factory=lambda config: access,
        data_access=access if connected else None,
        clipboard=copied.append,
    )
    services.copied = copied  # type: ignore[attr-defined]
    return services


def run_tasks(controller, tasks, *, timers: bool = False, depth: int = 10) -> None:
    """Run worker tasks inline and feed completions back, like the host does.

    Timer tasks are skipped unless ``timers`` is set.
    """
    for task in tasks:
        if task.is_timer and not timers:
            continue
        follow_up = controller.deliver(task.run())
        if depth > 0:
            run_tasks(controller, follow_up, timers=timers, depth=depth - 1)
