"""
Materialized views: CREATE / DROP / REFRESH MATERIALIZED VIEW and DBMS_MVIEW.REFRESH.

MySQL has no materialized views, so one is emulated with a table plus a
``<name>_refresh`` procedure that truncates and repopulates it. PostgreSQL is
native apart from the Oracle refresh modes. An Oracle target gets explicit
BUILD and REFRESH clauses.

FUNCTIONS:
==========
  - MaterializedViewConverter.convert(): rewrite the statement for the target.
  - parse_mview_options(): MViewInfo from the clause text before AS.
"""
import re
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from ...models import DialectType, WarningSeverity, WarningType
from ...utils.result_formatter import add_warning
from ...utils.sql_scanner import (
    NOT_FOUND,
    find_matching_bracket,
    is_string_literal,
    mask_literals,
    split_arguments,
    unquote_literal,
)
from ..base_converter import BaseConverter

_NAME = r"(?P<name>(?:[\w$#]+\.)?[\w$#]+)"
_CREATE = re.compile(
    r"^\s*CREATE\s+MATERIALIZED\s+VIEW\s+(?:IF\s+NOT\s+EXISTS\s+)?" + _NAME
    + r"(?P<options>.*?)\bAS\s+(?=SELECT\b|WITH\b|\()",
    re.IGNORECASE | re.DOTALL,
)
_DROP = re.compile(r"^\s*DROP\s+MATERIALIZED\s+VIEW\s+(?:IF\s+EXISTS\s+)?" + _NAME + r"(?:\s+CASCADE)?\s*;?\s*$",
                   re.IGNORECASE)
_REFRESH = re.compile(
    r"^\s*REFRESH\s+MATERIALIZED\s+VIEW\s+(?:CONCURRENTLY\s+)?" + _NAME
    + r"(?:\s+WITH\s+(?P<no>NO\s+)?DATA)?\s*;?\s*$",
    re.IGNORECASE,
)
_DBMS_MVIEW_REFRESH = re.compile(r"(?<![\w$#.])DBMS_MVIEW\s*\.\s*REFRESH\s*\(", re.IGNORECASE)
_TRAILING_DATA = re.compile(r"\s*\bWITH\s+(?P<no>NO\s+)?DATA\s*;?\s*$", re.IGNORECASE)
_CONSTRUCT = re.compile(r"\bMATERIALIZED\s+VIEW\b|\bDBMS_MVIEW\s*\.", re.IGNORECASE)


class RefreshType(Enum):
    FAST = "FAST"
    COMPLETE = "COMPLETE"
    FORCE = "FORCE"


class RefreshTiming(Enum):
    ON_COMMIT = "ON COMMIT"
    ON_DEMAND = "ON DEMAND"


class BuildOption(Enum):
    IMMEDIATE = "IMMEDIATE"
    DEFERRED = "DEFERRED"


@dataclass
class MViewInfo:
    refresh_type: RefreshType = RefreshType.COMPLETE
    refresh_timing: RefreshTiming = RefreshTiming.ON_DEMAND
    build_option: BuildOption = BuildOption.IMMEDIATE
    query_rewrite: bool = False
    tablespace: Optional[str] = None
    with_data: bool = True


def parse_mview_options(options: str) -> MViewInfo:
    info = MViewInfo()
    refresh = re.search(r"\bREFRESH\s+(FAST|COMPLETE|FORCE)\b", options, re.IGNORECASE)
    if refresh:
        info.refresh_type = RefreshType(refresh.group(1).upper())
    if re.search(r"\bON\s+COMMIT\b", options, re.IGNORECASE):
        info.refresh_timing = RefreshTiming.ON_COMMIT
    info.with_data = not re.search(r"\bWITH\s+NO\s+DATA\b", options, re.IGNORECASE)
    if re.search(r"\bBUILD\s+DEFERRED\b", options, re.IGNORECASE) or not info.with_data:
        info.build_option = BuildOption.DEFERRED
    rewrite = re.search(r"\b(ENABLE|DISABLE)\s+QUERY\s+REWRITE\b", options, re.IGNORECASE)
    info.query_rewrite = bool(rewrite and rewrite.group(1).upper() == "ENABLE")
    tablespace = re.search(r"\bTABLESPACE\s+([\w$#]+)", options, re.IGNORECASE)
    info.tablespace = tablespace.group(1) if tablespace else None
    return info


class MaterializedViewConverter(BaseConverter):
    """Converts materialized view DDL and refresh calls between dialects."""
    name = "materialized_view"
    construct_pattern = _CONSTRUCT
    source_dialects = (DialectType.ORACLE, DialectType.TIBERO, DialectType.POSTGRESQL)

    def matches(self, sql: str) -> bool:
        return bool(_CONSTRUCT.search(mask_literals(sql)))

    def supports(self, source_dialect: DialectType, target_dialect: DialectType) -> bool:
        if source_dialect.is_oracle_compatible and target_dialect.is_oracle_compatible:
            return False
        return super().supports(source_dialect, target_dialect)

    def _convert(self, sql, source_dialect, target_dialect, warnings, applied_rules):
        masked = mask_literals(sql)
        create = _CREATE.match(masked)
        if create:
            return self._create(sql, create, target_dialect, warnings, applied_rules)

        drop = _DROP.match(masked)
        if drop:
            name = sql[drop.start("name"):drop.end("name")]
            applied_rules.append(f"DROP MATERIALIZED VIEW {name} -> {target_dialect.value}")
            if target_dialect is DialectType.MYSQL:
                return f"DROP TABLE IF EXISTS {name};\nDROP PROCEDURE IF EXISTS {name}_refresh"
            if target_dialect is DialectType.POSTGRESQL:
                return f"DROP MATERIALIZED VIEW IF EXISTS {name} CASCADE"
            return f"DROP MATERIALIZED VIEW {name}"

        refresh = _REFRESH.match(masked)
        if refresh:
            name = sql[refresh.start("name"):refresh.end("name")]
            return self._refresh_call(name, bool(refresh.group("no")), target_dialect, applied_rules)

        return self._dbms_mview_calls(sql, target_dialect, warnings, applied_rules)

    # ------------------------------------------------------------------
    # CREATE
    # ------------------------------------------------------------------

    def _create(self, sql, match, target, warnings, applied_rules):
        name = sql[match.start("name"):match.end("name")]
        options = sql[match.start("options"):match.end("options")]
        query = sql[match.end():].strip()
        trailing = _TRAILING_DATA.search(mask_literals(query))
        if trailing:
            options += " WITH NO DATA" if trailing.group("no") else ""
            query = query[:trailing.start()]
        query = query.rstrip().rstrip(";").rstrip()
        info = parse_mview_options(options)
        self.logger.debug({'action': 'materialized_view', 'details': {'name': name, 'info': info}})

        if target is DialectType.MYSQL:
            applied_rules.append(f"CREATE MATERIALIZED VIEW {name} -> MySQL table + {name}_refresh procedure")
            return self._create_mysql(name, query, info, warnings)
        if target is DialectType.POSTGRESQL:
            applied_rules.append(f"CREATE MATERIALIZED VIEW {name} -> PostgreSQL")
            return self._create_postgresql(name, query, info, warnings)
        applied_rules.append(f"CREATE MATERIALIZED VIEW {name} -> {target.value}")
        return self._create_oracle(name, query, info)

    def _create_mysql(self, name, query, info: MViewInfo, warnings):
        add_warning(warnings, WarningType.UNSUPPORTED_STATEMENT,
                    "MySQL has no materialized views; emulated with a table and a refresh procedure",
                    WarningSeverity.WARNING,
                    f"Refresh with CALL {name}_refresh(), manually or from a CREATE EVENT schedule")
        if info.refresh_timing is RefreshTiming.ON_COMMIT:
            add_warning(warnings, WarningType.SEMANTIC_DIFFERENCE,
                        "REFRESH ON COMMIT cannot be emulated in MySQL", WarningSeverity.WARNING,
                        "Call the refresh procedure from triggers on the base tables")
        bare = name.split(".")[-1]
        populate = query if info.with_data else f"SELECT * FROM ({query}) AS mview_source WHERE 1 = 0"
        return "\n".join([
            f"-- Materialized view emulation for {name}",
            f"CREATE TABLE {name} AS",
            f"{populate};",
            "",
            f"DROP PROCEDURE IF EXISTS {name}_refresh;",
            "DELIMITER //",
            f"CREATE PROCEDURE {name}_refresh()",
            "BEGIN",
            f"    TRUNCATE TABLE {name};",
            f"    INSERT INTO {name}",
            f"    {query};",
            "END//",
            "DELIMITER ;",
            "",
            f"-- CREATE EVENT {bare}_refresh_event ON SCHEDULE EVERY 1 HOUR DO CALL {name}_refresh();",
        ])

    def _create_postgresql(self, name, query, info: MViewInfo, warnings):
        if info.refresh_timing is RefreshTiming.ON_COMMIT:
            add_warning(warnings, WarningType.SYNTAX_DIFFERENCE,
                        "PostgreSQL does not refresh materialized views ON COMMIT", WarningSeverity.WARNING,
                        "Run REFRESH MATERIALIZED VIEW from a trigger or from the application")
        if info.refresh_type is RefreshType.FAST:
            add_warning(warnings, WarningType.SYNTAX_DIFFERENCE,
                        "PostgreSQL has no incremental (FAST) refresh", WarningSeverity.INFO,
                        "Use REFRESH MATERIALIZED VIEW CONCURRENTLY with a unique index")
        if info.query_rewrite:
            add_warning(warnings, WarningType.UNSUPPORTED_FUNCTION,
                        "PostgreSQL has no query rewrite for materialized views", WarningSeverity.INFO,
                        "Reference the materialized view directly in queries")
        data = "WITH DATA" if info.with_data and info.build_option is BuildOption.IMMEDIATE else "WITH NO DATA"
        return f"CREATE MATERIALIZED VIEW {name} AS\n{query}\n{data}"

    def _create_oracle(self, name, query, info: MViewInfo):
        lines = [f"CREATE MATERIALIZED VIEW {name}",
                 f"BUILD {info.build_option.value}",
                 f"REFRESH {info.refresh_type.value} {info.refresh_timing.value}"]
        if info.query_rewrite:
            lines.append("ENABLE QUERY REWRITE")
        if info.tablespace:
            lines.append(f"TABLESPACE {info.tablespace}")
        lines.extend(["AS", query])
        return "\n".join(lines)

    # ------------------------------------------------------------------
    # REFRESH
    # ------------------------------------------------------------------

    def _refresh_call(self, name, no_data, target, applied_rules):
        if target is DialectType.MYSQL:
            applied_rules.append(f"REFRESH MATERIALIZED VIEW {name} -> CALL {name}_refresh()")
            return f"CALL {name}_refresh()"
        if target is DialectType.POSTGRESQL:
            return f"REFRESH MATERIALIZED VIEW {name}{' WITH NO DATA' if no_data else ''}"
        applied_rules.append(f"REFRESH MATERIALIZED VIEW {name} -> DBMS_MVIEW.REFRESH")
        return f"BEGIN DBMS_MVIEW.REFRESH('{name}'); END;"

    def _dbms_mview_calls(self, sql, target, warnings, applied_rules):
        if target not in (DialectType.MYSQL, DialectType.POSTGRESQL):
            return sql
        text = sql
        for match in reversed(list(_DBMS_MVIEW_REFRESH.finditer(mask_literals(text)))):
            close = find_matching_bracket(text, match.end())
            if close == NOT_FOUND:
                continue
            args = split_arguments(text[match.end():close - 1])
            names = [n.strip() for n in unquote_literal(args[0]).split(",")] if args and is_string_literal(args[0]) else []
            if not names or not all(names):
                add_warning(warnings, WarningType.MANUAL_REVIEW_REQUIRED,
                            "DBMS_MVIEW.REFRESH with a computed view list was not converted",
                            suggestion="Refresh each materialized view explicitly")
                continue
            if target is DialectType.MYSQL:
                calls = "; ".join(f"CALL {n}_refresh()" for n in names)
            else:
                calls = "; ".join(f"REFRESH MATERIALIZED VIEW {n}" for n in names)
            text = text[:match.start()] + calls + text[close:]
            applied_rules.append(f"DBMS_MVIEW.REFRESH -> {target.value} refresh")
        return text
