"""Core SQL completion types and text helpers.

Shared vocabulary (context and suggestion kinds, keyword/function/snippet
tables) plus the regex-level helpers the context parser is built from.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum

from sqlparse import lexer
from sqlparse import tokens as T


class ContextKind(Enum):
    """What kind of token is expected at the cursor."""

    KEYWORD = "keyword"
    SCHEMA = "schema"
    TABLE = "table"
    COLUMN = "column"
    QUALIFIED_COLUMN = "qualified-column"
    MIXED = "mixed"
    NONE = "none"  # inside a string literal or comment


class SuggestionKind(Enum):
    """Types of SQL completion suggestions."""

    KEYWORD = "keyword"
    TABLE = "table"
    COLUMN = "column"
    SCHEMA = "schema"
    FUNCTION = "function"
    SNIPPET = "snippet"
    MIXED = "mixed"


@dataclass(frozen=True)
class SuggestionCandidate:
    """One autocomplete entry; ``apply_text`` is what gets inserted."""

    label: str
    kind: SuggestionKind
    detail: str = ""
    apply_text: str = ""

    @property
    def text(self) -> str:
        return self.apply_text or self.label


@dataclass
class TableRef:
    """A table reference with optional alias and schema."""

    name: str
    alias: str | None = None
    schema: str | None = None

    def matches(self, word: str) -> bool:
        """True when ``word`` names this table or its alias (case-insensitive)."""
        word = word.lower()
        return word == self.name.lower() or (self.alias is not None and word == self.alias.lower())


@dataclass
class SQLContext:
    """Parsed understanding of the cursor position.

    ``token`` is the identifier fragment right before the cursor and
    ``token_before_dot`` its qualifier when it contains a dot.
    """

    kind: ContextKind
    token: str = ""
    token_before_dot: str = ""
    schema: str | None = None
    table: str | None = None
    alias: str | None = None
    tables: list[TableRef] = field(default_factory=list)


SQL_KEYWORDS: list[str] = [
    "SELECT", "FROM", "WHERE", "JOIN", "INNER", "LEFT", "RIGHT", "OUTER", "FULL",
    "ON", "AND", "OR", "NOT", "NULL", "TRUE", "FALSE", "ORDER", "BY", "GROUP",
    "HAVING", "LIMIT", "OFFSET", "INSERT", "UPDATE", "DELETE", "CREATE", "DROP",
    "ALTER", "TABLE", "INDEX", "VIEW", "DATABASE", "SCHEMA", "INTO", "VALUES",
    "SET", "AS", "DISTINCT", "CASE", "WHEN", "THEN", "ELSE", "END", "IF",
    "EXISTS", "LIKE", "IN", "BETWEEN", "IS", "ASC", "DESC", "UNION", "ALL",
    "ANY", "SOME", "WITH", "RECURSIVE", "CASCADE", "CONSTRAINT", "PRIMARY", "KEY",
    "FOREIGN", "REFERENCES", "UNIQUE", "CHECK", "DEFAULT", "TRUNCATE", "EXPLAIN",
    "ANALYZE", "GRANT", "REVOKE", "COMMIT", "ROLLBACK", "TRANSACTION", "BEGIN", "START",
]  # fmt: skip

# name -> signature shown as detail
SQL_FUNCTIONS: dict[str, str] = {
    "COUNT": "COUNT(expr)",
    "SUM": "SUM(expr)",
    "AVG": "AVG(expr)",
    "MIN": "MIN(expr)",
    "MAX": "MAX(expr)",
    "COALESCE": "COALESCE(expr1, expr2)",
    "CAST": "CAST(expr AS type)",
    "CONCAT": "CONCAT(expr, ...)",
}

# (label, detail, inserted text)
SQL_SNIPPETS: list[tuple[str, str, str]] = [
    ("JOIN ... ON ...", "Snippet: JOIN with ON", "JOIN schema.table alias ON alias.column = other.column"),
    ("LEFT JOIN ... ON ...", "Snippet: LEFT JOIN with ON", "LEFT JOIN schema.table alias ON alias.column = other.column"),
    ("WHERE IN (...)", "Snippet: WHERE IN", "WHERE column IN (value1, value2)"),
    ("GROUP BY ...", "Snippet: GROUP BY", "GROUP BY column1, column2"),
    ("SELECT DISTINCT ...", "Snippet: SELECT DISTINCT", "SELECT DISTINCT column FROM schema.table"),
]

# Words a FROM/JOIN pattern can capture that are never table names or aliases
RESERVED_WORDS = {
    "select", "from", "where", "join", "inner", "outer", "left", "right", "cross",
    "full", "on", "and", "or", "not", "in", "as", "order", "by", "group", "having",
    "union", "intersect", "except", "limit", "offset", "set", "values", "using",
    "natural", "when", "then", "else", "end", "is", "like", "between", "exists",
}  # fmt: skip

_TRAILING_TOKEN = re.compile(r"[A-Za-z0-9_.`]+$")
_WORD_DELIMITERS = " \n\t,()"

# "name", `name`, [name] or bare name
_IDENT = r'(?:"([^"]+)"|`([^`]+)`|\[([^\]]+)\]|(\w+))'
_NOT_RESERVED = r"(?!(?:" + "|".join(sorted(RESERVED_WORDS)) + r")\b)"
_TABLE_REF_PATTERN = re.compile(
    r"\b(?:FROM|JOIN)\s+"
    + r"(?:" + _IDENT + r"\.)?"  # optional schema
    + _IDENT  # table name
    + r"(?:\s+(?:AS\s+)?" + _NOT_RESERVED + r"`?(\w+)`?)?",  # optional alias
    re.IGNORECASE,
)


def keyword_candidates() -> list[SuggestionCandidate]:
    return [SuggestionCandidate(kw, SuggestionKind.KEYWORD, "SQL Keyword", kw) for kw in SQL_KEYWORDS]


def function_candidates() -> list[SuggestionCandidate]:
    return [
        SuggestionCandidate(name, SuggestionKind.FUNCTION, signature, f"{name}()")
        for name, signature in SQL_FUNCTIONS.items()
    ]


def snippet_candidates() -> list[SuggestionCandidate]:
    return [SuggestionCandidate(label, SuggestionKind.SNIPPET, detail, text) for label, detail, text in SQL_SNIPPETS]


def strip_backticks(text: str) -> str:
    return text.replace("`", "")


def trailing_token(before_cursor: str) -> str:
    """Identifier-like fragment (letters, digits, ``_``, ``.``, backtick) ending at the cursor."""
    match = _TRAILING_TOKEN.search(before_cursor)
    return match.group(0) if match else ""


def get_last_word(before_cursor: str) -> str:
    """Word used to filter suggestions.

    Empty right after a delimiter. For a qualified word only the part after
    the last dot is returned, without backticks.
    """
    if not before_cursor or before_cursor[-1] in _WORD_DELIMITERS:
        return ""
    start = max(before_cursor.rfind(ch) for ch in _WORD_DELIMITERS) + 1
    word = before_cursor[start:]
    if "." in word:
        word = word.rsplit(".", 1)[1]
    return strip_backticks(word)


def extract_tables(sql: str) -> list[TableRef]:
    """Extract table references and aliases from FROM and JOIN clauses.

    Handles patterns like:
    - FROM users
    - FROM users u / FROM users AS u
    - JOIN public.orders o ON ...
    - FROM "quoted_table", `backtick_table`, [bracketed_table]

    Args:
        sql: The SQL text to scan, normally the whole editor buffer.

    Returns:
        References in text order; captured keywords are dropped.
    """
    refs: list[TableRef] = []
    for match in _TABLE_REF_PATTERN.finditer(sql):
        groups = match.groups()
        schema = next((g for g in groups[0:4] if g is not None), None)
        table = next((g for g in groups[4:8] if g is not None), None)
        alias = groups[8]

        if table is None or table.lower() in RESERVED_WORDS:
            continue
        refs.append(TableRef(name=table, alias=alias, schema=schema))
    return refs


def find_table(tables: list[TableRef], word: str) -> TableRef | None:
    """First reference whose alias or name equals ``word``."""
    word = strip_backticks(word)
    for ref in tables:
        if ref.alias is not None and ref.alias.lower() == word.lower():
            return ref
    for ref in tables:
        if ref.matches(word):
            return ref
    return None


def is_inside_string(sql: str) -> bool:
    """Check if the end of ``sql`` is inside an unclosed string literal.

    Args:
        sql: The SQL text up to cursor position

    Returns:
        True if inside a string literal, False otherwise
    """
    in_single_quote = False
    in_double_quote = False
    i = 0

    while i < len(sql):
        char = sql[i]

        if char == "'" and not in_double_quote:
            if in_single_quote and i + 1 < len(sql) and sql[i + 1] == "'":
                i += 2
                continue
            in_single_quote = not in_single_quote
        elif char == '"' and not in_single_quote:
            if in_double_quote and i + 1 < len(sql) and sql[i + 1] == '"':
                i += 2
                continue
            in_double_quote = not in_double_quote

        i += 1

    return in_single_quote or in_double_quote


def is_inside_comment(sql: str) -> bool:
    """Check if the end of ``sql`` is inside a ``--`` or unclosed ``/*`` comment."""
    tokens = list(lexer.tokenize(sql))
    if tokens and tokens[-1][0] in T.Comment.Single:
        return not tokens[-1][1].endswith(("\n", "\r"))
    return sql.rfind("/*") > sql.rfind("*/")
