"""Completion messages posted back to the loop by background tasks.

All completions share the ``Completion`` base and carry a ``kind``
discriminant. Operation-backed completions also carry the ``Outcome`` and
the ticket of the call that produced them; the remaining fields identify
what the call was about so the receiving screen can judge whether it still
applies.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, ClassVar

from sqldeck.shared.app.operation import Outcome, OutcomeKind

if TYPE_CHECKING:
    from sqldeck.domains.query.app.autocomplete import DebounceTicket
    from sqldeck.domains.query.completion.corpus import CorpusMetadata


@dataclass(kw_only=True)
class Completion:
    kind: ClassVar[str] = "completion"

    origin: Any = None


@dataclass(kw_only=True)
class OperationCompletion(Completion):
    kind: ClassVar[str] = "operation"

    outcome: Outcome
    ticket: int = 0


@dataclass(kw_only=True)
class TableListLoaded(OperationCompletion):
    kind: ClassVar[str] = "table-list-loaded"

    schema: str


@dataclass(kw_only=True)
class SchemaLoaded(OperationCompletion):
    kind: ClassVar[str] = "schema-loaded"

    schema: str


@dataclass(kw_only=True)
class PageLoaded(OperationCompletion):
    kind: ClassVar[str] = "page-loaded"

    schema: str
    table: str
    offset: int = 0


@dataclass(kw_only=True)
class QueryExecuted(OperationCompletion):
    kind: ClassVar[str] = "query-executed"

    query: str


@dataclass(kw_only=True)
class QueryTimedOut(QueryExecuted):
    kind: ClassVar[str] = "query-timed-out"


@dataclass(kw_only=True)
class QueryCancelled(QueryExecuted):
    kind: ClassVar[str] = "query-cancelled"


@dataclass(kw_only=True)
class ModelsLoaded(OperationCompletion):
    kind: ClassVar[str] = "models-loaded"

    provider: str


@dataclass(kw_only=True)
class ChatResponse(OperationCompletion):
    kind: ClassVar[str] = "chat-response"

    prompt: str


@dataclass(kw_only=True)
class ConnectionResult(OperationCompletion):
    kind: ClassVar[str] = "connection-result"

    name: str


@dataclass(kw_only=True)
class ExportFinished(OperationCompletion):
    kind: ClassVar[str] = "export-finished"

    path: str


@dataclass(kw_only=True)
class AutocompleteDebounceFired(Completion):
    kind: ClassVar[str] = "autocomplete-debounce-fired"

    ticket: DebounceTicket


@dataclass(kw_only=True)
class SuggestionMetadataLoaded(Completion):
    kind: ClassVar[str] = "suggestion-metadata-loaded"

    seq: int
    metadata: CorpusMetadata


@dataclass(kw_only=True)
class StatusExpired(Completion):
    kind: ClassVar[str] = "status-expired"

    seq: int


def query_completion(query: str) -> Callable[[Outcome], QueryExecuted]:
    """Builder for the query completion matching an outcome's kind."""

    def build(outcome: Outcome) -> QueryExecuted:
        if outcome.kind is OutcomeKind.TIMED_OUT:
            return QueryTimedOut(query=query, outcome=outcome)
        if outcome.kind is OutcomeKind.CANCELLED:
            return QueryCancelled(query=query, outcome=outcome)
        return QueryExecuted(query=query, outcome=outcome)

    return build
