"""
SQL parsing helpers for the AST path.

parse_statement() never raises: it returns ``(ParsedStatement, None)`` when
sqlglot produces a real statement tree, or ``(None, ParseFailure)`` when the
statement has to go through the fallback pipeline instead.
"""
import logging
import re
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

import sqlglot
from sqlglot import exp

from ..models import DialectType
from .sql_scanner import mask_literals

logger = logging.getLogger(__name__)

_STATEMENT_TYPES = tuple(
    getattr(exp, name) for name in (
        "Select", "Union", "Intersect", "Except", "SetOperation", "Subquery",
        "Insert", "Update", "Delete", "Merge",
        "Create", "Drop", "Alter", "AlterTable", "TruncateTable",
    )
    if hasattr(exp, name)
)

# Text the generic grammar either rejects or silently mangles. Hints are
# checked on the raw text since masking blanks comments.
_VENDOR_CONSTRUCTS = [
    ("vendor package call", re.compile(r"\b(?:DBMS|UTL)_\w+\s*\.", re.IGNORECASE)),
    ("RAISE_APPLICATION_ERROR", re.compile(r"\bRAISE_APPLICATION_ERROR\b", re.IGNORECASE)),
    ("PL/SQL unit", re.compile(
        r"^\s*(?:CREATE\s+(?:OR\s+REPLACE\s+)?(?:(?:NON)?EDITIONABLE\s+)?"
        r"(?:TRIGGER|PACKAGE|PROCEDURE|FUNCTION|TYPE\s+BODY)\b|DECLARE\b|BEGIN\b)",
        re.IGNORECASE)),
    ("partition clause", re.compile(r"\bPARTITION\s+(?:BY\s+(?:RANGE|LIST|HASH|KEY)\b|OF\b)", re.IGNORECASE)),
    ("materialized view", re.compile(r"\bMATERIALIZED\s+VIEW\b", re.IGNORECASE)),
    ("sequence DDL", re.compile(r"^\s*(?:CREATE|ALTER|DROP)\s+SEQUENCE\b", re.IGNORECASE)),
    ("storage option", re.compile(
        r"\b(?:TABLESPACE|PCTFREE|PCTUSED|INITRANS|MAXTRANS|NOLOGGING|NOCOMPRESS|NOCACHE|NOPARALLEL|"
        r"ROWDEPENDENCIES|NOROWDEPENDENCIES|NOMONITORING|SECUREFILE|BASICFILE|RESULT_CACHE)\b"
        r"|\bSTORAGE\s*\(|\bSEGMENT\s+CREATION\b|\b(?:ENABLE|DISABLE)\s+ROW\s+MOVEMENT\b"
        r"|\bFLASHBACK\s+ARCHIVE\b|\)\s*(?:LOGGING|COMPRESS|CACHE|PARALLEL|MONITORING)\b",
        re.IGNORECASE)),
    ("COMMENT ON", re.compile(r"^\s*COMMENT\s+ON\b", re.IGNORECASE)),
]


@dataclass
class StatementAnalysis:
    """Structural inventory of a parsed statement, used for diagnostics."""
    statement_type: str = ""
    tables: List[str] = field(default_factory=list)
    columns: List[str] = field(default_factory=list)
    functions: List[str] = field(default_factory=list)
    join_count: int = 0
    subquery_count: int = 0
    window_function_count: int = 0
    cte_count: int = 0

    def to_dict(self) -> dict:
        return {
            "statement_type": self.statement_type,
            "tables": self.tables,
            "columns": self.columns,
            "functions": self.functions,
            "join_count": self.join_count,
            "subquery_count": self.subquery_count,
            "window_function_count": self.window_function_count,
            "cte_count": self.cte_count,
        }


@dataclass
class ParsedStatement:
    sql: str
    expression: exp.Expression
    analysis: StatementAnalysis


@dataclass
class ParseFailure:
    sql: str
    reason: str


def _function_name(node: exp.Expression) -> str:
    if isinstance(node, exp.Anonymous):
        return str(node.this).upper()
    return node.sql_name().upper()


def analyze_statement(expression: exp.Expression) -> StatementAnalysis:
    """Collect tables, columns, functions and join/subquery/window/CTE counts."""
    tables = [t.name for t in expression.find_all(exp.Table) if t.name]
    columns = [c.name for c in expression.find_all(exp.Column) if c.name]
    functions = [_function_name(f) for f in expression.find_all(exp.Func)]
    return StatementAnalysis(
        statement_type=type(expression).__name__,
        tables=list(dict.fromkeys(tables)),
        columns=list(dict.fromkeys(columns)),
        functions=list(dict.fromkeys(functions)),
        join_count=len(list(expression.find_all(exp.Join))),
        subquery_count=len(list(expression.find_all(exp.Subquery))),
        window_function_count=len(list(expression.find_all(exp.Window))),
        cte_count=len(list(expression.find_all(exp.CTE))),
    )


def find_vendor_construct(sql: str) -> Optional[str]:
    """Name of the first vendor-only construct in *sql*, or None."""
    if "/*+" in sql:
        return "optimizer hint"
    masked = mask_literals(sql)
    for name, pattern in _VENDOR_CONSTRUCTS:
        if pattern.search(masked):
            return name
    return None


def safe_parse_one(sql: str, dialect: str) -> Tuple[Optional[exp.Expression], Optional[str]]:
    """
    Safely parses a single SQL statement into an AST.

    Args:
        sql: The SQL statement string to parse.
        dialect: The sqlglot dialect to use for parsing.

    Returns:
        A tuple containing (ast, error_message).
        If successful, ast is the parsed expression and error_message is None.
        If fails, ast is None and error_message describes the failure.
    """
    try:
        ast = sqlglot.parse_one(sql, read=dialect)
        return ast, None
    except Exception as e:
        logger.debug(f"Failed to parse statement: {e}")
        return None, f"{type(e).__name__}: {e}"


def parse_statement(sql: str, dialect: DialectType) -> Tuple[Optional[ParsedStatement], Optional[ParseFailure]]:
    """
    Parse one statement for the AST path.

    Returns:
        ``(ParsedStatement, None)`` on success, ``(None, ParseFailure)`` when
        the statement holds vendor-only syntax, is not a statement sqlglot
        understands, or fails to parse.
    """
    construct = find_vendor_construct(sql)
    if construct:
        return None, ParseFailure(sql, f"{construct} requires the structural path")

    ast, error = safe_parse_one(sql, dialect.sqlglot_dialect)
    if error:
        return None, ParseFailure(sql, error)
    if ast is None or isinstance(ast, exp.Command) or not isinstance(ast, _STATEMENT_TYPES):
        kind = type(ast).__name__ if ast is not None else "empty"
        return None, ParseFailure(sql, f"unsupported statement kind: {kind}")

    return ParsedStatement(sql=sql, expression=ast, analysis=analyze_statement(ast)), None
