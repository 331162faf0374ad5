"""
Handles the text-level clean-up of Data Definition Language (DDL) statements
before the structural converters and the registry rewrites see them.

FUNCTIONS:
==========
Public Functions:
    handle                  - run all DDL clean-ups, return (sql, logs)
    strip_storage_options   - remove Oracle physical/storage clauses, rewrite DEFAULT SYSDATE
    collapse_schema_names   - drop schema prefixes on object references (MySQL targets)
    remove_comment_on       - comment out COMMENT ON statements (MySQL targets)

Private Functions:
    _cut_matches            - remove masked regex matches from the original text
    _in_query_scope         - whether a FROM keyword belongs to a query rather than a function call
"""
import re
from typing import Any, Dict, List, Tuple

from sqlswitch.utils.logger import setup_logger

from ...models import ConversionWarning, DialectType, WarningSeverity, WarningType
from ...utils.regex_utils import compile_rules
from ...utils.result_formatter import add_warning
from ...utils.sql_scanner import mask_literals

_OPTION_KEYWORDS = r"(?:TABLESPACE|PARTITION|LOB|STORAGE|LOGGING|NOLOGGING|COMPRESS|NOCOMPRESS|CACHE|NOCACHE)"

# (name, pattern, flags) -- applied in order on the literal-masked statement.
_STORAGE_OPTION_RULES = compile_rules([
    ('LOB storage',
     r"\s+LOB\s*\([^)]*\)\s*STORE\s+AS\s+(?:(?:SECUREFILE|BASICFILE)\s*)?"
     r"(?:(?!" + _OPTION_KEYWORDS + r"\b)[A-Za-z_][\w$#]*\s*)?(?:\((?:[^()]|\([^()]*\))*\))?",
     'IGNORECASE'),
    ('SECUREFILE/BASICFILE', r"\s+(?:SECUREFILE|BASICFILE)\b", 'IGNORECASE'),
    ('STORAGE', r"\s+STORAGE\s*\((?:[^()]|\([^()]*\))*\)", 'IGNORECASE'),
    ('TABLESPACE', r"\s+TABLESPACE\s+[A-Za-z_][\w$#]*", 'IGNORECASE'),
    ('PCTFREE/PCTUSED/INITRANS/MAXTRANS', r"\s+(?:PCTFREE|PCTUSED|INITRANS|MAXTRANS)\s+\d+", 'IGNORECASE'),
    ('SEGMENT CREATION', r"\s+SEGMENT\s+CREATION\s+(?:IMMEDIATE|DEFERRED)", 'IGNORECASE'),
    ('LOGGING', r"\s+(?:NO)?LOGGING\b", 'IGNORECASE'),
    ('COMPRESS',
     r"\s+(?:NOCOMPRESS|COMPRESS(?:\s+(?:BASIC|ADVANCED|FOR\s+(?:OLTP|QUERY|ARCHIVE)(?:\s+(?:LOW|HIGH))?))?)\b",
     'IGNORECASE'),
    ('CACHE', r"\s+(?:NO)?CACHE\b(?!\s*\d)", 'IGNORECASE'),
    ('PARALLEL', r"\s+(?:NOPARALLEL|PARALLEL(?:\s+\d+)?)\b", 'IGNORECASE'),
    ('RESULT_CACHE', r"\s+RESULT_CACHE(?:\s*\([^)]*\))?", 'IGNORECASE'),
    ('ROWDEPENDENCIES', r"\s+(?:NO)?ROWDEPENDENCIES\b", 'IGNORECASE'),
    ('MONITORING', r"\s+(?:NO)?MONITORING\b", 'IGNORECASE'),
    ('FLASHBACK ARCHIVE',
     r"\s+(?:NO\s+)?FLASHBACK\s+ARCHIVE(?:\s+(?!" + _OPTION_KEYWORDS + r"\b)[A-Za-z_][\w$#]*)?",
     'IGNORECASE'),
    ('ROW MOVEMENT', r"\s+(?:ENABLE|DISABLE)\s+ROW\s+MOVEMENT\b", 'IGNORECASE'),
    ('constraint state',
     r"\s+(?:(?:ENABLE|DISABLE)(?:\s+(?:NO)?VALIDATE)?|(?:NO)?VALIDATE)\b(?=\s*(?:[,)]|$))",
     'IGNORECASE'),
    ('USING INDEX', r"\s+USING\s+INDEX\b(?=\s*(?:[,)]|$))", 'IGNORECASE'),
    ('LOCAL index', r"\s+LOCAL\b(?!\s+(?:TIME|TEMPORARY)\b)(?:\s*\((?:[^()]|\([^()]*\))*\))?(?=\s*$)",
     'IGNORECASE'),
    ('GLOBAL index', r"\s+GLOBAL\b(?!\s+TEMPORARY\b)(?=\s*$)", 'IGNORECASE'),
])

_DDL_STATEMENT = re.compile(
    r"^\s*(?:CREATE|ALTER)\b(?!\s+(?:OR\s+REPLACE\s+)?(?:(?:NON)?EDITIONABLE\s+)?"
    r"(?:SEQUENCE|TRIGGER|PACKAGE|PROCEDURE|FUNCTION|TYPE)\b)",
    re.IGNORECASE,
)
_DEFAULT_SYSDATE = re.compile(r"\bDEFAULT\s+(SYSDATE|SYSTIMESTAMP)\b", re.IGNORECASE)

_NAME = r'(?:"[^"]+"|`[^`]+`|[A-Za-z_][\w$#]*)'
_QUALIFIED_REFERENCE = re.compile(
    r"\b(?P<kw>(?:INSERT|MERGE)\s+INTO|TABLE|VIEW|UPDATE|FROM|JOIN|REFERENCES|TRIGGER|PROCEDURE|FUNCTION|ON)\s+"
    r"(?:IF\s+(?:NOT\s+)?EXISTS\s+)?"
    r"(?P<schema>" + _NAME + r")\s*\.\s*(?P<name>" + _NAME + r")(?!\s*\.)",
    re.IGNORECASE,
)
_OBJECT_ON = re.compile(r"\b(?:INDEX\s+\S+|INSERT|UPDATE|DELETE|UPDATE\s+OF\s+[\w$#\s,]+)\s+ON\s*$", re.IGNORECASE)
_QUERY_VERB = re.compile(r"\b(?:SELECT|DELETE)\b", re.IGNORECASE)

_COMMENT_ON = re.compile(
    r"^\s*COMMENT\s+ON\s+(?P<kind>TABLE|COLUMN)\s+(?P<target>\S+)\s+IS\s+(?P<text>'(?:[^']|'')*')\s*;?\s*$",
    re.IGNORECASE | re.DOTALL,
)


def _cut_matches(text: str, pattern: re.Pattern) -> Tuple[str, int]:
    masked = mask_literals(text)
    matches = list(pattern.finditer(masked))
    for match in reversed(matches):
        text = text[:match.start()] + text[match.end():]
    return text, len(matches)


def _in_query_scope(masked: str, index: int) -> bool:
    depth = 0
    i = index - 1
    while i >= 0:
        ch = masked[i]
        if ch == ')':
            depth += 1
        elif ch == '(':
            if depth == 0:
                break
            depth -= 1
        i -= 1
    return bool(_QUERY_VERB.search(masked[i + 1:index]))


class DdlHandler:
    """
    Applies the table/index DDL clean-ups of the fallback pipeline.

    Every method takes and returns SQL text. Warnings and applied rules are
    appended to the caller's lists; ``handle`` also returns action logs in the
    ``{'action': ..., 'details': ...}`` form used across the engine.
    """

    def __init__(self):
        self.logger = setup_logger('DdlHandler')
        self.option_rules = _STORAGE_OPTION_RULES

    def handle(self, sql: str, source: DialectType, target: DialectType,
               warnings: List[ConversionWarning], applied_rules: List[str]) -> Tuple[str, List[Dict[str, Any]]]:
        """Run every DDL clean-up on one statement."""
        logs = []
        for step in (self.strip_storage_options, self.collapse_schema_names, self.remove_comment_on):
            converted = step(sql, source, target, warnings, applied_rules)
            if converted != sql:
                logs.append({'action': step.__name__, 'details': f'{source.value} -> {target.value}'})
            sql = converted
        return sql, logs

    def strip_storage_options(self, sql: str, source: DialectType, target: DialectType,
                              warnings: List[ConversionWarning], applied_rules: List[str]) -> str:
        """
        Remove Oracle physical storage clauses that no other engine understands.

        Only runs for an Oracle-compatible source going to MySQL or PostgreSQL.
        ``DEFAULT SYSDATE`` / ``DEFAULT SYSTIMESTAMP`` become
        ``DEFAULT CURRENT_TIMESTAMP``.
        """
        if not source.is_oracle_compatible or target.is_oracle_compatible:
            return sql

        text = sql
        masked = mask_literals(text)
        for match in reversed(list(_DEFAULT_SYSDATE.finditer(masked))):
            text = text[:match.start()] + "DEFAULT CURRENT_TIMESTAMP" + text[match.end():]
            applied_rules.append(f"DEFAULT {match.group(1).upper()} -> DEFAULT CURRENT_TIMESTAMP")

        if not _DDL_STATEMENT.match(mask_literals(text)):
            return text

        removed = []
        for name, pattern in self.option_rules:
            text, count = _cut_matches(text, pattern)
            if count:
                removed.append(name)
                applied_rules.append(f"Oracle {name} clause removed")
        if removed:
            self.logger.debug({'action': 'strip_storage_options', 'details': removed})
            add_warning(warnings, WarningType.SYNTAX_DIFFERENCE,
                        f"Oracle storage options removed: {', '.join(removed)}",
                        severity=WarningSeverity.INFO,
                        suggestion=f"Configure storage with {target.value} specific table options if needed")
        return text

    def collapse_schema_names(self, sql: str, source: DialectType, target: DialectType,
                              warnings: List[ConversionWarning], applied_rules: List[str]) -> str:
        """``schema.object`` -> ``object`` on object references when the target is MySQL."""
        if target is not DialectType.MYSQL or source is target:
            return sql

        masked = mask_literals(sql)
        text = sql
        for match in reversed(list(_QUALIFIED_REFERENCE.finditer(sql))):
            kw_start = match.start('kw')
            if masked[kw_start] != sql[kw_start]:
                # Keyword sits inside a literal or comment.
                continue
            keyword = match.group('kw').upper()
            if keyword == 'FROM' and not _in_query_scope(masked, kw_start):
                continue
            if keyword == 'ON' and not _OBJECT_ON.search(masked[:match.end('kw')]):
                continue
            qualified = text[match.start('schema'):match.end('name')]
            text = text[:match.start('schema')] + match.group('name') + text[match.end('name'):]
            applied_rules.append(f"Schema prefix removed: {' '.join(qualified.split())} -> {match.group('name')}")
        return text

    def remove_comment_on(self, sql: str, source: DialectType, target: DialectType,
                          warnings: List[ConversionWarning], applied_rules: List[str]) -> str:
        """MySQL has no COMMENT ON; the statement is commented out and a WARNING explains the alternative."""
        if target is not DialectType.MYSQL or source is target:
            return sql
        match = _COMMENT_ON.match(sql)
        if not match:
            return sql

        kind = match.group('kind').upper()
        if kind == 'TABLE':
            suggestion = f"ALTER TABLE {match.group('target')} COMMENT = {match.group('text')}"
        else:
            suggestion = "ALTER TABLE ... MODIFY COLUMN ... COMMENT '...'"
        add_warning(warnings, WarningType.UNSUPPORTED_STATEMENT,
                    f"COMMENT ON {kind} {match.group('target')} is not supported by MySQL and was removed",
                    severity=WarningSeverity.WARNING,
                    suggestion=suggestion)
        applied_rules.append(f"COMMENT ON {kind} removed")
        return "\n".join(f"-- {line}" for line in sql.strip().rstrip(';').splitlines())
