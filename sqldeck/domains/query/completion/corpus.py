"""Candidate sets for each context kind, and prefix filtering."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from sqldeck.domains.query.completion.core import (
    ContextKind,
    SQLContext,
    SuggestionCandidate,
    SuggestionKind,
    TableRef,
    find_table,
    function_candidates,
    keyword_candidates,
    snippet_candidates,
)
from sqldeck.shared.core.cancellation import CancellationToken
from sqldeck.shared.core.errors import DataAccessError

if TYPE_CHECKING:
    from sqldeck.shared.core.models import ColumnDescriptor
    from sqldeck.shared.core.protocols import DataAccessProtocol

logger = logging.getLogger(__name__)

# Only this many tables contribute column suggestions
MAX_COLUMN_TABLES = 3
# Deadline for one metadata lookup while typing
LOOKUP_TIMEOUT = 2.0

SYSTEM_SCHEMAS = {"information_schema", "pg_catalog", "pg_toast", "mysql", "sys", "performance_schema", "temp"}
PREFERRED_SCHEMAS = ("public", "main")


def is_system_schema(name: str) -> bool:
    lowered = name.lower()
    return lowered in SYSTEM_SCHEMAS or lowered.startswith(("pg_temp_", "pg_toast_temp_"))


def select_best_schema(schemas: list[str]) -> str:
    """Pick the schema a fresh session should start in.

    Prefers ``public``/``main``, then the first non-system schema, then
    whatever comes first. Empty when there are no schemas.
    """
    if not schemas:
        return ""
    user_schemas = [s for s in schemas if not is_system_schema(s)]
    for preferred in PREFERRED_SCHEMAS:
        if preferred in user_schemas:
            return preferred
    return user_schemas[0] if user_schemas else schemas[0]


def _dedupe(candidates: Iterable[SuggestionCandidate]) -> list[SuggestionCandidate]:
    seen: set[str] = set()
    unique = []
    for candidate in candidates:
        if candidate.label in seen:
            continue
        seen.add(candidate.label)
        unique.append(candidate)
    return unique


def filter_candidates(candidates: list[SuggestionCandidate], word: str) -> list[SuggestionCandidate]:
    """Case-insensitive prefix match on the label, or on what follows its last dot."""
    if not word:
        return list(candidates)
    word = word.lower()
    matched = []
    for candidate in candidates:
        label = candidate.label.lower()
        if label.startswith(word) or ("." in label and label.rsplit(".", 1)[1].startswith(word)):
            matched.append(candidate)
    return matched


@dataclass
class CorpusMetadata:
    """Metadata fetched off the loop, ready to merge into a corpus cache."""

    generation: int
    schemas: list[str] | None = None
    tables: dict[str, list[str]] = field(default_factory=dict)
    columns: dict[tuple[str, str], list[ColumnDescriptor]] = field(default_factory=dict)


class SuggestionCorpus:
    """Loads the full candidate set for a parsed context.

    Metadata comes from the data-access collaborator and is cached per
    schema/table until ``invalidate()``. Lookup failures yield no
    candidates rather than an error, since suggestions are best effort.

    A ``cache_only`` corpus never calls the collaborator. A cache miss sets
    ``missed`` instead, and the caller loads the metadata in a worker with
    ``prefetcher()`` and hands the result back to ``merge()``.
    """

    def __init__(
        self,
        data_access: Callable[[], DataAccessProtocol | None],
        current_schema: Callable[[], str] | None = None,
        *,
        cache_only: bool = False,
    ) -> None:
        self._data_access = data_access
        self._current_schema = current_schema or (lambda: "")
        self.cache_only = cache_only
        self.missed = False
        self.generation = 0
        self._schemas: list[str] | None = None
        self._tables: dict[str, list[str]] = {}
        self._columns: dict[tuple[str, str], list[ColumnDescriptor]] = {}

    def invalidate(self) -> None:
        self.generation += 1
        self._schemas = None
        self._tables.clear()
        self._columns.clear()

    def prefetcher(self) -> SuggestionCorpus:
        """A fetching copy of this corpus, safe to hand to a worker thread.

        The copy is seeded with the current cache and a fixed current
        schema, so the worker never reads state the loop keeps mutating.
        """
        hint = self._current_schema()
        copy = SuggestionCorpus(self._data_access, lambda: hint)
        copy.generation = self.generation
        copy._schemas = None if self._schemas is None else list(self._schemas)
        copy._tables = dict(self._tables)
        copy._columns = dict(self._columns)
        return copy

    def metadata(self) -> CorpusMetadata:
        return CorpusMetadata(self.generation, self._schemas, dict(self._tables), dict(self._columns))

    def merge(self, metadata: CorpusMetadata) -> bool:
        """Fill cache gaps from ``metadata``; False if it predates ``invalidate()``."""
        if metadata.generation != self.generation:
            logger.debug("Dropping suggestion metadata from generation %d", metadata.generation)
            return False
        if self._schemas is None and metadata.schemas is not None:
            self._schemas = metadata.schemas
        for schema, tables in metadata.tables.items():
            self._tables.setdefault(schema, tables)
        for key, columns in metadata.columns.items():
            self._columns.setdefault(key, columns)
        return True

    def _access(self) -> DataAccessProtocol | None:
        access = self._data_access()
        if access is not None and self.cache_only:
            self.missed = True
            return None
        return access

    def schemas(self) -> list[str]:
        if self._schemas is None:
            access = self._access()
            if access is None:
                return []
            try:
                self._schemas = access.get_schemas(CancellationToken(LOOKUP_TIMEOUT))
            except (DataAccessError, TimeoutError) as error:
                logger.debug("Schema lookup for suggestions failed: %s", error)
                return []
        return self._schemas

    def current_schema(self) -> str:
        return self._current_schema() or select_best_schema(self.schemas())

    def tables(self, schema: str) -> list[str]:
        if schema not in self._tables:
            access = self._access()
            if access is None:
                return []
            try:
                units = access.get_storage_units(CancellationToken(LOOKUP_TIMEOUT), schema)
            except (DataAccessError, TimeoutError) as error:
                logger.debug("Table lookup for %s failed: %s", schema, error)
                return []
            self._tables[schema] = [unit.name for unit in units]
        return self._tables[schema]

    def columns(self, ref: TableRef) -> list[ColumnDescriptor]:
        schema = ref.schema or self.current_schema()
        key = (schema, ref.name)
        if key not in self._columns:
            access = self._access()
            if access is None:
                return []
            try:
                self._columns[key] = access.get_columns(CancellationToken(LOOKUP_TIMEOUT), schema, ref.name)
            except (DataAccessError, TimeoutError) as error:
                logger.debug("Column lookup for %s.%s failed: %s", schema, ref.name, error)
                return []
        return self._columns[key]

    def load(self, context: SQLContext) -> list[SuggestionCandidate]:
        """Every candidate for ``context``, before filtering."""
        self.missed = False
        kind = context.kind
        if kind is ContextKind.NONE:
            return []
        if kind is ContextKind.SCHEMA:
            candidates = self._schema_candidates() + self._table_candidates(self.current_schema())
        elif kind is ContextKind.TABLE:
            candidates = self._table_candidates(context.schema or self.current_schema())
        elif kind is ContextKind.QUALIFIED_COLUMN:
            candidates = self._qualified_column_candidates(context)
        elif kind is ContextKind.COLUMN:
            candidates = self._column_candidates(context) + function_candidates()
        elif kind is ContextKind.MIXED:
            candidates = self._mixed_candidates(context) + function_candidates() + snippet_candidates()
        else:
            candidates = keyword_candidates() + function_candidates() + snippet_candidates()
        return _dedupe(candidates)

    def _schema_candidates(self) -> list[SuggestionCandidate]:
        return [SuggestionCandidate(name, SuggestionKind.SCHEMA, "Schema", name) for name in self.schemas()]

    def _table_candidates(self, schema: str) -> list[SuggestionCandidate]:
        return [SuggestionCandidate(name, SuggestionKind.TABLE, "Table", name) for name in self.tables(schema)]

    def _ref_candidates(self, refs: list[TableRef]) -> list[SuggestionCandidate]:
        candidates = []
        for ref in refs:
            if ref.alias:
                candidates.append(
                    SuggestionCandidate(ref.alias, SuggestionKind.TABLE, f"Alias for {ref.name}", ref.alias)
                )
            candidates.append(SuggestionCandidate(ref.name, SuggestionKind.TABLE, "Table", ref.name))
        return candidates

    def _qualified_column_candidates(self, context: SQLContext) -> list[SuggestionCandidate]:
        qualifier = context.token_before_dot
        ref = find_table(context.tables, qualifier)
        if ref is None:
            return self._table_candidates(qualifier)
        candidates = []
        for column in self.columns(ref):
            qualified = f"{qualifier}.{column.name}"
            candidates.append(SuggestionCandidate(qualified, SuggestionKind.COLUMN, column.data_type, qualified))
            candidates.append(SuggestionCandidate(column.name, SuggestionKind.COLUMN, column.data_type, column.name))
        return candidates

    def _column_candidates(self, context: SQLContext) -> list[SuggestionCandidate]:
        tables = context.tables
        if not tables:
            return []
        if len(tables) == 1:
            return [
                SuggestionCandidate(column.name, SuggestionKind.COLUMN, column.data_type, column.name)
                for column in self.columns(tables[0])
            ]
        return self._ref_candidates(tables[:MAX_COLUMN_TABLES])

    def _mixed_candidates(self, context: SQLContext) -> list[SuggestionCandidate]:
        candidates = self._ref_candidates(context.tables)
        for ref in context.tables[:MAX_COLUMN_TABLES]:
            for column in self.columns(ref):
                if ref.alias:
                    label = f"{ref.alias}.{column.name}"
                    candidates.append(SuggestionCandidate(label, SuggestionKind.COLUMN, column.data_type, label))
                label = f"{ref.name}.{column.name}"
                candidates.append(SuggestionCandidate(label, SuggestionKind.COLUMN, column.data_type, label))
                candidates.append(
                    SuggestionCandidate(column.name, SuggestionKind.COLUMN, column.data_type, column.name)
                )
        return candidates
