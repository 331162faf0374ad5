"""
Script-level helpers: text normalisation, statement splitting and re-joining.

This module provides functions to:
- Normalise raw input (BOM, line endings).
- Split a script into statements without breaking string literals, quoted
  identifiers, comments, dollar-quoted bodies or Oracle PL/SQL units.
- Re-join converted statements into a single script.
- Identify the leading SQL verb of a statement.
"""
import re
from typing import List

from .sql_scanner import mask_literals

# PL/SQL units contain their own semicolons and end at a "/" line (or end of input).
_PLSQL_UNIT_START = re.compile(
    r"^\s*(?:CREATE\s+(?:OR\s+REPLACE\s+)?(?:(?:NON)?EDITIONABLE\s+)?"
    r"(?:TRIGGER|PACKAGE|PROCEDURE|FUNCTION|TYPE\s+BODY)\b|DECLARE\b|BEGIN\b)",
    re.IGNORECASE,
)
_SLASH_LINE = re.compile(r"[ \t]*/[ \t]*(?:\n|$)")
_DOLLAR_TAG = re.compile(r"\$(?:[A-Za-z_]\w*)?\$")

RECOGNIZED_VERBS = frozenset({
    "SELECT", "WITH", "INSERT", "UPDATE", "DELETE", "MERGE", "UPSERT", "REPLACE",
    "CREATE", "ALTER", "DROP", "TRUNCATE", "RENAME", "COMMENT", "GRANT", "REVOKE",
    "BEGIN", "DECLARE", "CALL", "EXEC", "EXECUTE", "SET", "SHOW", "DESCRIBE", "DESC",
    "REFRESH", "COMMIT", "ROLLBACK", "SAVEPOINT", "LOCK", "ANALYZE", "EXPLAIN",
    "USE", "DELIMITER", "VALUES", "PURGE", "START", "DO", "PERFORM", "RAISE",
})


def normalize_sql_text(sql: str) -> str:
    if sql.startswith('\ufeff'):
        sql = sql[1:]
    return sql.replace('\r\n', '\n').replace('\r', '\n')


def _skip_quoted(sql: str, start: int) -> int:
    """Index past the quoted region opened at *start*; backslash pairs and doubled quotes are skipped."""
    quote = sql[start]
    i = start + 1
    n = len(sql)
    while i < n:
        ch = sql[i]
        if ch == '\\':
            i += 2
            continue
        if ch == quote:
            if i + 1 < n and sql[i + 1] == quote:
                i += 2
                continue
            return i + 1
        i += 1
    return n


def split_statements(sql: str, *, plsql_blocks: bool = False) -> List[str]:
    """
    Split a script on top-level semicolons.

    Args:
        sql: The script.
        plsql_blocks: When True (Oracle-compatible sources), CREATE TRIGGER /
            PACKAGE / PROCEDURE / FUNCTION / TYPE BODY units and anonymous
            DECLARE/BEGIN blocks are kept whole until a line holding only ``/``
            or the end of input.

    Returns:
        Trimmed, non-empty statements without their separating semicolon.
    """
    statements = []
    start = 0
    i = 0
    n = len(sql)
    in_block = False

    while i < n:
        ch = sql[i]

        if plsql_blocks and (i == 0 or sql[i - 1] == '\n'):
            slash = _SLASH_LINE.match(sql, i)
            if slash:
                statements.append(sql[start:i])
                start = i = slash.end()
                in_block = False
                continue

        if ch in ("'", '"', '`'):
            i = _skip_quoted(sql, i)
        elif ch == '\\':
            i += 2
        elif ch == '-' and sql.startswith('--', i):
            end = sql.find('\n', i)
            i = n if end == -1 else end
        elif ch == '/' and sql.startswith('/*', i):
            end = sql.find('*/', i + 2)
            i = n if end == -1 else end + 2
        elif ch == '$' and (i == 0 or not (sql[i - 1].isalnum() or sql[i - 1] == '_')):
            tag = _DOLLAR_TAG.match(sql, i)
            if tag:
                close = sql.find(tag.group(0), tag.end())
                i = n if close == -1 else close + len(tag.group(0))
            else:
                i += 1
        elif ch == ';':
            if in_block:
                i += 1
            elif plsql_blocks and _PLSQL_UNIT_START.match(strip_leading_comments(sql[start:i])):
                in_block = True
                i += 1
            else:
                statements.append(sql[start:i])
                i += 1
                start = i
        else:
            i += 1

    statements.append(sql[start:])
    return [s.strip() for s in statements if s.strip()]


def join_statements(statements: List[str]) -> str:
    """Join statements with ``;\\n`` and a trailing ``;``; a statement already ending in ``;`` is not doubled."""
    parts = []
    for statement in statements:
        statement = statement.rstrip()
        parts.append(statement if statement.endswith(';') else statement + ';')
    return '\n'.join(parts)


def strip_leading_comments(sql: str) -> str:
    masked = mask_literals(sql)
    i = 0
    n = len(masked)
    while i < n and masked[i].isspace():
        i += 1
    return sql[i:]


def leading_keyword(sql: str) -> str:
    """First word of the statement (upper-cased), ignoring comments; ``(`` for a parenthesised query."""
    body = strip_leading_comments(sql)
    if body.startswith('('):
        return '('
    match = re.match(r"[A-Za-z_]+", body)
    return match.group(0).upper() if match else ''


def starts_with_sql_verb(sql: str) -> bool:
    keyword = leading_keyword(sql)
    return keyword == '(' or keyword in RECOGNIZED_VERBS
