"""Debounced autocomplete state for one editor.

Every keystroke issues a ``DebounceTicket``. The refresh scheduled for a
ticket only takes effect if no newer ticket was issued in the meantime, so
only the latest keystroke ever produces visible suggestions.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from sqldeck.domains.query.completion.core import (
    ContextKind,
    SQLContext,
    SuggestionCandidate,
    get_last_word,
    trailing_token,
)
from sqldeck.domains.query.completion.corpus import filter_candidates
from sqldeck.domains.query.completion.parser import parse_sql_context
from sqldeck.shared.app.messages import AutocompleteDebounceFired, SuggestionMetadataLoaded
from sqldeck.shared.app.tasks import Task

if TYPE_CHECKING:
    from sqldeck.domains.query.completion.corpus import SuggestionCorpus

logger = logging.getLogger(__name__)

DEBOUNCE_SECONDS = 0.1


@dataclass(frozen=True)
class DebounceTicket:
    seq: int
    text: str
    cursor: int


@dataclass(frozen=True)
class Acceptance:
    """Editor state after a suggestion was accepted."""

    text: str
    cursor: int
    start: int
    inserted: str


class AutocompleteController:
    """Owns suggestion state: sequence counter, candidates, selection."""

    def __init__(self, corpus: SuggestionCorpus, *, debounce: float = DEBOUNCE_SECONDS) -> None:
        self.corpus = corpus
        self.debounce = debounce
        self.seq = 0
        self.last_text = ""
        self.cursor = 0
        self.context: SQLContext | None = None
        self.all_candidates: list[SuggestionCandidate] = []
        self.filtered: list[SuggestionCandidate] = []
        self.selected = 0
        self.visible = False
        self.manual = False

    @property
    def selected_candidate(self) -> SuggestionCandidate | None:
        if not self.visible or not self.filtered:
            return None
        return self.filtered[self.selected]

    def on_keystroke(self, text: str, cursor: int) -> Task:
        """Record an edit and return the debounce timer task for it."""
        self.seq += 1
        self.last_text = text
        self.cursor = cursor
        ticket = DebounceTicket(self.seq, text, cursor)
        return Task(
            lambda: AutocompleteDebounceFired(ticket=ticket),
            name=f"autocomplete-debounce-{ticket.seq}",
            delay=self.debounce,
        )

    def apply(self, message: AutocompleteDebounceFired) -> bool:
        """Refresh from a fired ticket unless a newer keystroke superseded it.

        Returns:
            True if the ticket was current and suggestions were refreshed.
        """
        ticket = message.ticket
        if ticket.seq != self.seq:
            logger.debug("Dropping stale autocomplete ticket %d (current %d)", ticket.seq, self.seq)
            return False
        self.refresh(ticket.text, ticket.cursor)
        return True

    def trigger(self, text: str, cursor: int) -> None:
        """Manual request: refresh immediately and invalidate pending tickets."""
        self.seq += 1
        self.last_text = text
        self.cursor = cursor
        self.refresh(text, cursor, manual=True)

    def refresh(self, text: str, cursor: int, *, manual: bool = False) -> None:
        cursor = max(0, min(cursor, len(text)))
        if cursor == 0 and not manual:
            self.context = None
            self.hide()
            return

        self.manual = manual
        before = text[:cursor]
        context = parse_sql_context(text, cursor)
        self.context = context
        self.all_candidates = self.corpus.load(context)
        self.filtered = filter_candidates(self.all_candidates, get_last_word(before))

        token = trailing_token(before)
        wanted = manual or bool(token) or context.kind is not ContextKind.KEYWORD
        self.visible = bool(self.filtered) and wanted
        self._clamp()

    def fetch_task(self) -> Task | None:
        """Worker task loading the metadata the last refresh found missing.

        The worker fetches through a copy of the corpus; its completion is
        handed to ``apply_metadata`` on the loop.
        """
        if not self.corpus.missed or self.context is None:
            return None
        seq = self.seq
        context = self.context
        prefetcher = self.corpus.prefetcher()

        def fetch() -> SuggestionMetadataLoaded:
            prefetcher.load(context)
            return SuggestionMetadataLoaded(seq=seq, metadata=prefetcher.metadata())

        return Task(fetch, name=f"autocomplete-metadata-{seq}")

    def apply_metadata(self, message: SuggestionMetadataLoaded) -> bool:
        """Merge fetched metadata and redo the refresh it was fetched for.

        Returns:
            True if the suggestions were refreshed.
        """
        if not self.corpus.merge(message.metadata):
            return False
        if message.seq != self.seq:
            logger.debug("Metadata for ticket %d arrived after ticket %d", message.seq, self.seq)
            return False
        self.refresh(self.last_text, self.cursor, manual=self.manual)
        return True

    def _clamp(self) -> None:
        if not self.filtered:
            self.selected = 0
        else:
            self.selected = max(0, min(self.selected, len(self.filtered) - 1))

    def move(self, delta: int) -> None:
        """Move the selection, wrapping at both ends."""
        if not self.visible or not self.filtered:
            return
        self.selected = (self.selected + delta) % len(self.filtered)

    def hide(self) -> None:
        self.visible = False
        self.selected = 0

    def dismiss(self) -> None:
        """Hide suggestions and drop any pending refresh."""
        self.seq += 1
        self.hide()

    def accept(self, text: str, cursor: int, candidate: SuggestionCandidate | None = None) -> Acceptance | None:
        """Replace the in-progress token with the selected candidate.

        A qualified token keeps its qualifier when the candidate is
        unqualified; otherwise the whole token is replaced. Without a token
        the candidate is inserted at the cursor.

        Returns:
            The new editor state, or None when nothing is selected.
        """
        candidate = candidate or self.selected_candidate
        if candidate is None:
            return None

        cursor = max(0, min(cursor, len(text)))
        before, after = text[:cursor], text[cursor:]
        token = trailing_token(before)
        inserted = candidate.text

        if token and "." in token and "." not in inserted:
            start = cursor - len(token) + token.rindex(".") + 1
        elif token:
            start = cursor - len(token)
        else:
            start = cursor

        new_text = text[:start] + inserted + after
        new_cursor = start + len(inserted)

        self.last_text = new_text
        self.cursor = new_cursor
        self.seq += 1
        self.hide()
        return Acceptance(text=new_text, cursor=new_cursor, start=start, inserted=inserted)
