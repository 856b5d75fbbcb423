"""Tests for candidate loading and filtering."""

from __future__ import annotations

from sqldeck.domains.query.completion.core import (
    ContextKind,
    SQLContext,
    SuggestionCandidate,
    SuggestionKind,
    TableRef,
)
from sqldeck.domains.query.completion.corpus import SuggestionCorpus, filter_candidates, select_best_schema
from sqldeck.domains.query.completion.parser import parse_sql_context
from sqldeck.shared.core.errors import DataAccessError
from tests.fakes import FakeDataAccess


def labels(candidates):
    return [c.label for c in candidates]


def corpus_for(access, schema: str = ""):
    return SuggestionCorpus(lambda: access, lambda: schema)


class TestSelectBestSchema:
    def test_prefers_main_over_system(self):
        assert select_best_schema(["temp", "main"]) == "main"

    def test_first_user_schema(self):
        assert select_best_schema(["information_schema", "sales", "hr"]) == "sales"

    def test_falls_back_to_first(self):
        assert select_best_schema(["pg_catalog"]) == "pg_catalog"

    def test_empty(self):
        assert select_best_schema([]) == ""


class TestFilterCandidates:
    def test_case_insensitive_prefix(self):
        candidates = [SuggestionCandidate("SELECT", SuggestionKind.KEYWORD), SuggestionCandidate("SET", SuggestionKind.KEYWORD)]
        assert labels(filter_candidates(candidates, "sel")) == ["SELECT"]

    def test_qualified_label_matches_after_dot(self):
        candidates = [SuggestionCandidate("u.name", SuggestionKind.COLUMN), SuggestionCandidate("u.id", SuggestionKind.COLUMN)]
        assert labels(filter_candidates(candidates, "na")) == ["u.name"]

    def test_empty_word_keeps_everything(self):
        candidates = [SuggestionCandidate("a", SuggestionKind.TABLE)]
        assert filter_candidates(candidates, "") == candidates


class TestSuggestionCorpus:
    def test_keyword_context_has_keywords_functions_and_snippets(self):
        corpus = corpus_for(FakeDataAccess())
        kinds = {c.kind for c in corpus.load(SQLContext(ContextKind.KEYWORD))}
        assert kinds == {SuggestionKind.KEYWORD, SuggestionKind.FUNCTION, SuggestionKind.SNIPPET}

    def test_schema_context_lists_schemas_then_tables(self):
        corpus = corpus_for(FakeDataAccess())
        result = labels(corpus.load(SQLContext(ContextKind.SCHEMA)))
        assert result[:2] == ["main", "temp"]
        assert "users" in result

    def test_table_context_uses_current_schema(self):
        corpus = corpus_for(FakeDataAccess(), schema="main")
        assert labels(corpus.load(SQLContext(ContextKind.TABLE))) == ["orders", "products", "users"]

    def test_single_table_column_context(self):
        corpus = corpus_for(FakeDataAccess())
        context = parse_sql_context("SELECT  FROM users", len("SELECT "))
        result = labels(corpus.load(context))
        assert result[:3] == ["id", "name", "email"]
        assert "COUNT" in result

    def test_qualified_column_offers_both_forms(self):
        corpus = corpus_for(FakeDataAccess())
        sql = "SELECT * FROM users u WHERE u."
        result = labels(corpus.load(parse_sql_context(sql, len(sql))))
        assert result[:2] == ["u.id", "id"]

    def test_mixed_context_has_aliases_and_qualified_columns(self):
        corpus = corpus_for(FakeDataAccess())
        sql = "SELECT * FROM users u JOIN orders o ON u.id = o.user_id WHERE "
        result = labels(corpus.load(parse_sql_context(sql, len(sql))))
        assert result[:4] == ["u", "users", "o", "orders"]
        assert "u.email" in result
        assert "orders.total" in result

    def test_labels_are_unique(self):
        corpus = corpus_for(FakeDataAccess())
        sql = "SELECT * FROM users u JOIN orders o ON u.id = o.user_id WHERE "
        result = labels(corpus.load(parse_sql_context(sql, len(sql))))
        assert len(result) == len(set(result))
        assert result.count("id") == 1

    def test_none_context_is_empty(self):
        assert corpus_for(FakeDataAccess()).load(SQLContext(ContextKind.NONE)) == []

    def test_metadata_is_cached_until_invalidated(self):
        access = FakeDataAccess()
        corpus = corpus_for(access, schema="main")
        corpus.tables("main")
        corpus.tables("main")
        assert access.calls.count(("get_storage_units", "main")) == 1
        corpus.invalidate()
        corpus.tables("main")
        assert access.calls.count(("get_storage_units", "main")) == 2

    def test_lookup_failure_yields_no_candidates(self):
        access = FakeDataAccess()
        access.fail_with = DataAccessError("disk I/O error")
        corpus = corpus_for(access, schema="main")
        assert corpus.columns(TableRef("users")) == []
        assert corpus.load(SQLContext(ContextKind.TABLE)) == []

    def test_disconnected_corpus_is_empty(self):
        corpus = SuggestionCorpus(lambda: None)
        assert corpus.schemas() == []
        assert corpus.load(SQLContext(ContextKind.SCHEMA)) == []


class TestCacheOnlyCorpus:
    def test_miss_is_recorded_without_calling_data_access(self):
        access = FakeDataAccess()
        corpus = SuggestionCorpus(lambda: access, lambda: "main", cache_only=True)
        assert corpus.load(SQLContext(ContextKind.TABLE)) == []
        assert corpus.missed
        assert access.calls == []

    def test_prefetched_metadata_fills_the_cache(self):
        access = FakeDataAccess()
        corpus = SuggestionCorpus(lambda: access, cache_only=True)
        context = parse_sql_context("SELECT * FROM users u WHERE u.", len("SELECT * FROM users u WHERE u."))
        corpus.load(context)

        prefetcher = corpus.prefetcher()
        prefetcher.load(context)
        assert corpus.merge(prefetcher.metadata())

        calls = len(access.calls)
        assert "u.name" in labels(corpus.load(context))
        assert not corpus.missed
        assert len(access.calls) == calls

    def test_metadata_from_before_invalidate_is_dropped(self):
        access = FakeDataAccess()
        corpus = SuggestionCorpus(lambda: access, lambda: "main", cache_only=True)
        prefetcher = corpus.prefetcher()
        prefetcher.load(SQLContext(ContextKind.TABLE))
        corpus.invalidate()
        assert not corpus.merge(prefetcher.metadata())
        assert corpus.load(SQLContext(ContextKind.TABLE)) == []
        assert corpus.missed

    def test_disconnected_cache_only_corpus_does_not_miss(self):
        corpus = SuggestionCorpus(lambda: None, cache_only=True)
        corpus.load(SQLContext(ContextKind.SCHEMA))
        assert not corpus.missed
