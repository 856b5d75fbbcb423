"""Plain data carried between the data-access layer and the screens."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class TableDescriptor:
    """A table-like storage unit inside a schema."""

    name: str
    kind: str = "table"
    row_count: int | None = None


@dataclass(frozen=True)
class ColumnDescriptor:
    name: str
    data_type: str = ""
    is_primary: bool = False


@dataclass
class QueryResult:
    """Rows returned by a query or a table page.

    ``rows_affected`` is set for statements that return no rows.
    """

    columns: list[str] = field(default_factory=list)
    rows: list[tuple[Any, ...]] = field(default_factory=list)
    rows_affected: int | None = None

    @property
    def row_count(self) -> int:
        if self.rows_affected is not None and not self.columns:
            return self.rows_affected
        return len(self.rows)


@dataclass(frozen=True)
class ChatReply:
    """One assistant answer, optionally carrying SQL to run."""

    text: str
    sql: str | None = None
