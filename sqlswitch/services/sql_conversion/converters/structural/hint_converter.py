"""
Oracle optimizer hints (``/*+ ... */``).

Hints carry no portable meaning. For MySQL the mechanically convertible ones
become index hints on the referenced table (FORCE INDEX / IGNORE INDEX) or
STRAIGHT_JOIN; everything else is dropped with a warning. For PostgreSQL the
parallel and row-goal hints become session SET statements and the rest is kept
as a plain comment pointing at pg_hint_plan.

FUNCTIONS:
==========
  - HintConverter.convert(): rewrite every hint comment in a statement.
  - extract_hints(): hint bodies in text order.
  - parse_hints(): typed HintInfo records for one hint body.
  - remove_all_hints(): the statement with every hint comment removed.
"""
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple

from ...models import DialectType, WarningSeverity, WarningType
from ...utils.result_formatter import add_warning
from ...utils.sql_scanner import mask_literals
from ..base_converter import BaseConverter

# Literals and ordinary comments are matched first so that they are never taken for hints.
_HINT_SCANNER = re.compile(
    r"'(?:[^']|'')*'|\"[^\"]*\"|`[^`]*`|--[^\n]*|/\*\+\s*(?P<hint>.*?)\s*\*/|/\*.*?\*/",
    re.DOTALL,
)
_HINT_TOKEN = re.compile(r"(?P<name>[A-Za-z_]\w*)\s*(?:\((?P<args>[^)]*)\))?")
_TABLE_REFERENCE = re.compile(
    r"(?:\bFROM|\bJOIN|\bUPDATE|,)\s+(?P<table>[\w$#]+(?:\.[\w$#]+)?)(?:\s+(?:AS\s+)?(?P<alias>[\w$#]+))?",
    re.IGNORECASE,
)
_NOT_AN_ALIAS = frozenset({
    "WHERE", "JOIN", "INNER", "LEFT", "RIGHT", "FULL", "CROSS", "OUTER", "NATURAL", "ON", "USING",
    "GROUP", "ORDER", "HAVING", "UNION", "MINUS", "INTERSECT", "EXCEPT", "SET", "LIMIT", "FETCH",
    "CONNECT", "START", "FOR", "PARTITION", "WITH", "VALUES", "SELECT", "WINDOW",
})


class HintType(Enum):
    INDEX = "INDEX"
    NO_INDEX = "NO_INDEX"
    FULL = "FULL"
    PARALLEL = "PARALLEL"
    LEADING = "LEADING"
    USE_NL = "USE_NL"
    USE_HASH = "USE_HASH"
    FIRST_ROWS = "FIRST_ROWS"
    ALL_ROWS = "ALL_ROWS"
    APPEND = "APPEND"
    OTHER = "OTHER"


@dataclass
class HintInfo:
    type: HintType
    raw: str
    table: Optional[str] = None
    index: Optional[str] = None
    degree: Optional[int] = None
    tables: List[str] = field(default_factory=list)


def _hint_arguments(args: Optional[str]) -> List[str]:
    # Query-block suffixes (t@sel$1) do not survive outside Oracle.
    return [a.split("@")[0] for a in re.split(r"[\s,]+", (args or "").strip()) if a and not a.startswith("@")]


def _hint_spans(sql: str) -> List[Tuple[int, int, str]]:
    return [(m.start(), m.end(), m.group("hint")) for m in _HINT_SCANNER.finditer(sql) if m.group("hint") is not None]


def extract_hints(sql: str) -> List[str]:
    """Hint bodies (text between ``/*+`` and ``*/``), skipping literals and ordinary comments."""
    return [content for _, _, content in _hint_spans(sql)]


def parse_hints(hint_content: str) -> List[HintInfo]:
    """Split one hint body into typed records, in the order they appear."""
    hints = []
    for match in _HINT_TOKEN.finditer(hint_content):
        name = match.group("name").upper()
        args = _hint_arguments(match.group("args"))
        raw = match.group(0).strip()
        try:
            hint_type = HintType(name)
        except ValueError:
            hints.append(HintInfo(HintType.OTHER, raw))
            continue

        if hint_type in (HintType.INDEX, HintType.NO_INDEX):
            hints.append(HintInfo(hint_type, raw,
                                  table=args[0] if args else None,
                                  index=args[1] if len(args) > 1 else None))
        elif hint_type is HintType.FULL:
            hints.append(HintInfo(hint_type, raw, table=args[0] if args else None))
        elif hint_type is HintType.PARALLEL:
            table = next((a for a in args if not a.isdigit()), None)
            degree = next((int(a) for a in args if a.isdigit()), None)
            hints.append(HintInfo(hint_type, raw, table=table, degree=degree))
        elif hint_type in (HintType.LEADING, HintType.USE_NL, HintType.USE_HASH):
            hints.append(HintInfo(hint_type, raw, tables=args))
        elif hint_type is HintType.FIRST_ROWS:
            degree = int(args[0]) if args and args[0].isdigit() else None
            hints.append(HintInfo(hint_type, raw, degree=degree))
        else:
            hints.append(HintInfo(hint_type, raw))
    return hints


def remove_all_hints(sql: str) -> str:
    text = sql
    for start, end, _ in reversed(_hint_spans(sql)):
        text = _cut(text, start, end)
    return text


def _cut(text: str, start: int, end: int, replacement: str = "") -> str:
    """Replace text[start:end], keeping exactly one space between the neighbours."""
    before = text[:start].rstrip(" \t")
    after = text[end:].lstrip(" \t")
    if replacement:
        return f"{before} {replacement} {after}" if before else f"{replacement} {after}"
    if before and after and not before.endswith("\n") and not after.startswith("\n"):
        return f"{before} {after}"
    return before + after


def _table_insertion_point(text: str, search_from: int, table: str) -> Optional[int]:
    """Index just after the FROM/JOIN reference to *table* (name or alias)."""
    masked = mask_literals(text)
    from_match = re.compile(r"\bFROM\b|\bUPDATE\b", re.IGNORECASE).search(masked, search_from)
    if not from_match:
        return None
    wanted = table.upper()
    for match in _TABLE_REFERENCE.finditer(masked, from_match.start()):
        alias = match.group("alias")
        if alias and alias.upper() in _NOT_AN_ALIAS:
            alias = None
        name = match.group("table").split(".")[-1].upper()
        if wanted in (name, (alias or "").upper()):
            return match.end("alias") if alias else match.end("table")
    return None


class HintConverter(BaseConverter):
    """Converts Oracle hints for MySQL and PostgreSQL targets."""
    name = "hint"
    construct_pattern = re.compile(r"/\*\+")

    def matches(self, sql: str) -> bool:
        return bool(_hint_spans(sql))

    def supports(self, source_dialect: DialectType, target_dialect: DialectType) -> bool:
        return source_dialect.is_oracle_compatible and target_dialect in (DialectType.MYSQL, DialectType.POSTGRESQL)

    def _convert(self, sql, source_dialect, target_dialect, warnings, applied_rules):
        if target_dialect is DialectType.MYSQL:
            return self._to_mysql(sql, warnings, applied_rules)
        return self._to_postgresql(sql, warnings, applied_rules)

    # ------------------------------------------------------------------
    # MySQL
    # ------------------------------------------------------------------

    def _to_mysql(self, sql, warnings, applied_rules):
        text = sql
        converted, removed = [], []
        for start, end, content in reversed(_hint_spans(sql)):
            insertions = []
            straight_join = False
            for hint in parse_hints(content):
                if hint.type in (HintType.INDEX, HintType.NO_INDEX) and hint.table and hint.index:
                    keyword = "FORCE INDEX" if hint.type is HintType.INDEX else "IGNORE INDEX"
                    position = _table_insertion_point(text, end, hint.table)
                    if position is None:
                        removed.append(f"{hint.raw} (table {hint.table} not found)")
                        continue
                    insertions.append((position, f" {keyword} ({hint.index})"))
                    converted.append(f"{hint.raw} -> {keyword} ({hint.index})")
                elif hint.type is HintType.LEADING:
                    straight_join = True
                    converted.append(f"{hint.raw} -> STRAIGHT_JOIN")
                elif hint.type in (HintType.INDEX, HintType.NO_INDEX):
                    removed.append(f"{hint.raw} (index name required)")
                else:
                    removed.append(hint.raw)

            for position, clause in sorted(insertions, reverse=True):
                text = text[:position] + clause + text[position:]
            follows_select = re.search(r"\bSELECT\s*$", text[:start], re.IGNORECASE)
            text = _cut(text, start, end, "STRAIGHT_JOIN" if straight_join and follows_select else "")

        for rule in reversed(converted):
            applied_rules.append(f"Hint {rule}")
        if removed:
            add_warning(warnings, WarningType.SYNTAX_DIFFERENCE,
                        f"Oracle hints with no MySQL equivalent were removed: {', '.join(reversed(removed))}",
                        WarningSeverity.WARNING,
                        "Leave plan choices to the MySQL optimizer, or add index hints by hand after checking EXPLAIN")
            applied_rules.append(f"Removed {len(removed)} Oracle hint(s)")
        return text

    # ------------------------------------------------------------------
    # PostgreSQL
    # ------------------------------------------------------------------

    def _to_postgresql(self, sql, warnings, applied_rules):
        text = sql
        settings, advice = [], []
        for start, end, content in reversed(_hint_spans(sql)):
            plan_hints = []
            for hint in parse_hints(content):
                if hint.type is HintType.PARALLEL:
                    settings.append(f"SET max_parallel_workers_per_gather = {hint.degree or 4}")
                elif hint.type is HintType.FIRST_ROWS:
                    rows = hint.degree or 10
                    settings.append(f"SET cursor_tuple_fraction = {round(1.0 / rows, 6)}")
                elif hint.type is HintType.ALL_ROWS:
                    settings.append("SET cursor_tuple_fraction = 1.0")
                elif hint.type is HintType.LEADING:
                    plan_hints.append(f"Leading({' '.join(hint.tables)})")
                elif hint.type is HintType.USE_NL:
                    plan_hints.append(f"NestLoop({' '.join(hint.tables)})")
                elif hint.type is HintType.USE_HASH:
                    plan_hints.append(f"HashJoin({' '.join(hint.tables)})")
                elif hint.type is HintType.INDEX and hint.table:
                    plan_hints.append(f"IndexScan({hint.table}{' ' + hint.index if hint.index else ''})")
                elif hint.type is HintType.NO_INDEX and hint.table:
                    plan_hints.append(f"NoIndexScan({hint.table})")
                elif hint.type is HintType.FULL and hint.table:
                    plan_hints.append(f"SeqScan({hint.table})")
                elif hint.type is HintType.APPEND:
                    advice.append("APPEND: load with COPY or into an UNLOGGED table")

            comment = f"/* Oracle hint: {content}"
            if plan_hints:
                comment += f" -- pg_hint_plan: {' '.join(plan_hints)}"
                advice.extend(plan_hints)
            text = _cut(text, start, end, comment + " */")

        if settings:
            settings = list(dict.fromkeys(reversed(settings)))
            text = ";\n".join(settings) + ";\n" + text
            applied_rules.append(f"Oracle hints -> {len(settings)} PostgreSQL SET statement(s)")
        if advice:
            add_warning(warnings, WarningType.SYNTAX_DIFFERENCE,
                        "Oracle hints are not supported by PostgreSQL and were kept as comments",
                        WarningSeverity.WARNING,
                        f"Install the pg_hint_plan extension and use: {', '.join(reversed(advice))}")
        applied_rules.append("Oracle hints -> PostgreSQL comments")
        return text
