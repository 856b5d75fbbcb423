"""Classify the cursor position of a SQL buffer.

The parser is regex-based and best effort: it only has to pick the right
family of completions, not validate SQL.
"""

from __future__ import annotations

import re

from sqldeck.domains.query.completion.core import (
    ContextKind,
    SQLContext,
    extract_tables,
    find_table,
    is_inside_comment,
    is_inside_string,
    strip_backticks,
    trailing_token,
)

_ENDS_WITH_FROM_JOIN = re.compile(r"\b(?:FROM|JOIN)\s*$")
_FROM_JOIN_PARTIAL = re.compile(r"\b(?:FROM|JOIN)\s+\w*$")
_SELECT = re.compile(r"\bSELECT\b")
_FROM = re.compile(r"\bFROM\b")
_WHERE = re.compile(r"\bWHERE\b")
_ON = re.compile(r"\bON\b")


def _last_index(pattern: re.Pattern[str], text: str) -> int:
    last = -1
    for match in pattern.finditer(text):
        last = match.start()
    return last


def parse_sql_context(text: str, cursor: int) -> SQLContext:
    """Work out what kind of token is expected at ``cursor``.

    Checks run in priority order: qualified token, keyword right before the
    cursor, partial table name after FROM/JOIN, select list, WHERE/ON
    clause, bare identifier, then the keyword default.

    Args:
        text: Full editor text. Table references are collected from all of it.
        cursor: Offset into ``text``.

    Returns:
        The classified context.
    """
    cursor = max(0, min(cursor, len(text)))
    before = text[:cursor]
    token = trailing_token(before)
    tables = extract_tables(text)

    if is_inside_string(before) or is_inside_comment(before):
        return SQLContext(ContextKind.NONE, token=token, tables=tables)

    if "." in token:
        qualifier = token.rsplit(".", 1)[0]
        word = strip_backticks(qualifier.rsplit(".", 1)[-1])
        ref = find_table(tables, word)
        if ref is not None:
            return SQLContext(
                ContextKind.QUALIFIED_COLUMN,
                token=token,
                token_before_dot=word,
                schema=ref.schema,
                table=ref.name,
                alias=ref.alias,
                tables=tables,
            )
        return SQLContext(ContextKind.TABLE, token=token, token_before_dot=word, schema=word, tables=tables)

    upper_before = before.upper()
    if _ENDS_WITH_FROM_JOIN.search(upper_before):
        return SQLContext(ContextKind.SCHEMA, token=token, tables=tables)

    if _FROM_JOIN_PARTIAL.search(upper_before):
        return SQLContext(ContextKind.TABLE, token=token, tables=tables)

    last_select = _last_index(_SELECT, upper_before)
    last_from = _last_index(_FROM, upper_before)
    if tables and last_select > -1 and last_from < last_select and _FROM.search(text.upper(), last_select):
        return SQLContext(ContextKind.COLUMN, token=token, tables=tables)

    last_where = _last_index(_WHERE, upper_before)
    last_on = _last_index(_ON, upper_before)
    if tables and max(last_where, last_on) > last_from:
        return SQLContext(ContextKind.MIXED, token=token, tables=tables)

    if token and tables:
        if len(tables) == 1:
            ref = tables[0]
            return SQLContext(
                ContextKind.COLUMN,
                token=token,
                schema=ref.schema,
                table=ref.name,
                alias=ref.alias,
                tables=tables,
            )
        return SQLContext(ContextKind.MIXED, token=token, tables=tables)

    return SQLContext(ContextKind.KEYWORD, token=token, tables=tables)
