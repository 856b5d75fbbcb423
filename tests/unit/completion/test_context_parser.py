"""Tests for classifying the cursor position in SQL text."""

from __future__ import annotations

import pytest

from sqldeck.domains.query.completion.core import (
    ContextKind,
    extract_tables,
    get_last_word,
    is_inside_comment,
    is_inside_string,
)
from sqldeck.domains.query.completion.parser import parse_sql_context


def parse(sql: str):
    return parse_sql_context(sql, len(sql))


class TestExtractTables:
    def test_plain_and_aliased_tables(self):
        refs = extract_tables("SELECT * FROM users u JOIN orders AS o ON u.id = o.user_id")
        assert [(r.name, r.alias) for r in refs] == [("users", "u"), ("orders", "o")]

    def test_schema_qualified_and_quoted(self):
        refs = extract_tables('SELECT * FROM main."order items" oi')
        assert refs[0].schema == "main"
        assert refs[0].name == "order items"
        assert refs[0].alias == "oi"

    def test_keyword_after_table_is_not_an_alias(self):
        refs = extract_tables("SELECT * FROM users WHERE id = 1")
        assert refs[0].alias is None

    def test_join_right_after_table_is_still_found(self):
        refs = extract_tables("SELECT * FROM users JOIN orders ON users.id = orders.user_id")
        assert [r.name for r in refs] == ["users", "orders"]


class TestStringsAndComments:
    def test_inside_single_quotes(self):
        assert is_inside_string("SELECT * FROM users WHERE name = 'al")
        assert not is_inside_string("SELECT * FROM users WHERE name = 'al'")

    def test_doubled_quote_escape(self):
        assert is_inside_string("SELECT 'it''s")

    def test_line_comment(self):
        assert is_inside_comment("SELECT 1 -- note")
        assert not is_inside_comment("SELECT 1 -- note\nFROM ")

    def test_block_comment(self):
        assert is_inside_comment("SELECT /* unfinished")
        assert not is_inside_comment("SELECT /* done */ id")


class TestParseSqlContext:
    def test_empty_buffer_is_keyword(self):
        assert parse("").kind is ContextKind.KEYWORD

    def test_after_from_suggests_schemas(self):
        assert parse("SELECT * FROM ").kind is ContextKind.SCHEMA

    def test_after_join_suggests_schemas(self):
        assert parse("SELECT * FROM users JOIN ").kind is ContextKind.SCHEMA

    def test_partial_table_after_from(self):
        context = parse("SELECT * FROM us")
        assert context.kind is ContextKind.TABLE
        assert context.token == "us"

    def test_alias_dot_is_qualified_column(self):
        context = parse("SELECT * FROM users u WHERE u.na")
        assert context.kind is ContextKind.QUALIFIED_COLUMN
        assert context.token_before_dot == "u"
        assert context.table == "users"
        assert context.alias == "u"

    def test_unknown_qualifier_is_table_in_schema(self):
        context = parse("SELECT * FROM main.pro")
        assert context.kind is ContextKind.TABLE
        assert context.schema == "main"

    def test_select_list_before_from_is_column(self):
        sql = "SELECT na FROM users"
        context = parse_sql_context(sql, len("SELECT na"))
        assert context.kind is ContextKind.COLUMN
        assert context.token == "na"

    def test_where_clause_is_mixed(self):
        assert parse("SELECT * FROM users u JOIN orders o ON u.id = o.user_id WHERE ").kind is ContextKind.MIXED

    def test_bare_token_with_one_table_is_column(self):
        context = parse("SELECT * FROM users ORDER BY na")
        assert context.kind is ContextKind.COLUMN
        assert context.table == "users"

    def test_inside_string_is_none(self):
        assert parse("SELECT * FROM users WHERE name = 'us").kind is ContextKind.NONE

    def test_inside_comment_is_none(self):
        assert parse("SELECT * FROM users -- us").kind is ContextKind.NONE

    def test_tables_collected_from_whole_text(self):
        sql = "SELECT  FROM users u"
        context = parse_sql_context(sql, len("SELECT "))
        assert [ref.name for ref in context.tables] == ["users"]

    @pytest.mark.parametrize("cursor", [-5, 1000])
    def test_cursor_is_clamped(self, cursor):
        parse_sql_context("SELECT", cursor)


class TestLastWord:
    def test_after_delimiter_is_empty(self):
        assert get_last_word("SELECT ") == ""

    def test_qualified_word_keeps_part_after_dot(self):
        assert get_last_word("SELECT u.`na") == "na"
