"""Protocols for the collaborators the interactive core depends on.

Screens only talk to these interfaces, so tests can hand in in-memory
fakes and the SQLite implementation stays swappable.
"""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from sqldeck.shared.core.cancellation import CancellationToken
    from sqldeck.shared.core.models import ChatReply, ColumnDescriptor, QueryResult, TableDescriptor


@runtime_checkable
class DataAccessProtocol(Protocol):
    """Database operations used by the screens.

    Every call receives a cancellation token and must return promptly once
    it is done, raising ``OperationCancelled`` or ``DeadlineExceeded``.
    Driver failures are raised as ``DataAccessError``.
    """

    @property
    def database_name(self) -> str: ...

    def get_schemas(self, token: CancellationToken) -> list[str]: ...

    def get_storage_units(self, token: CancellationToken, schema: str) -> list[TableDescriptor]: ...

    def get_columns(self, token: CancellationToken, schema: str, table: str) -> list[ColumnDescriptor]: ...

    def execute_query(self, token: CancellationToken, sql: str) -> QueryResult: ...

    def get_rows(
        self,
        token: CancellationToken,
        schema: str,
        table: str,
        where: str,
        limit: int,
        offset: int,
    ) -> QueryResult: ...

    def get_ai_models(self, token: CancellationToken, provider: str) -> list[str]: ...

    def send_ai_chat(
        self,
        token: CancellationToken,
        provider: str,
        model: str,
        schema: str,
        prompt: str,
    ) -> ChatReply: ...

    def close(self) -> None: ...


@runtime_checkable
class PreferencesProtocol(Protocol):
    """Persisted user preferences consumed by the retry policy and screens."""

    def get_preferred_timeout(self) -> float: ...

    def set_preferred_timeout(self, seconds: float) -> None: ...

    def get_query_timeout(self) -> float: ...

    def get(self, key: str, default: Any = None) -> Any: ...

    def set(self, key: str, value: Any) -> None: ...

    def save(self) -> None: ...


@runtime_checkable
class HistorySinkProtocol(Protocol):
    """Append-only query history."""

    def add(self, query: str, success: bool, database: str) -> None: ...

    def get_all(self) -> list[Any]: ...

    def clear(self) -> None: ...


@runtime_checkable
class ExporterProtocol(Protocol):
    """Writes a result set to disk."""

    def export(self, path: Path, columns: Sequence[str], rows: Sequence[Sequence[Any]]) -> int: ...
