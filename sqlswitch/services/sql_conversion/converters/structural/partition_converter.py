"""
Partitioned tables between Oracle, MySQL and PostgreSQL.

Oracle and MySQL declare every partition inside CREATE TABLE; PostgreSQL
declares the partitioning key on the parent and creates one child table per
partition (``CREATE TABLE ... PARTITION OF ... FOR VALUES ...``). The clause is
parsed into a PartitionTableInfo and re-rendered for the target rather than
patched in place.

FUNCTIONS:
==========
  - PartitionConverter.convert(): rewrite a partitioned CREATE TABLE (or a PostgreSQL child table).
  - get_partition_info(): parsed partition clause of a CREATE TABLE statement.
"""
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from ...models import DialectType, WarningSeverity, WarningType
from ...utils.date_format import mysql_to_oracle_format, oracle_to_mysql_format
from ...utils.result_formatter import add_warning
from ...utils.sql_scanner import NOT_FOUND, find_matching_bracket, mask_literals, split_arguments
from ..base_converter import BaseConverter

_IDENT = r'(?:"[^"]+"|`[^`]+`|[\w$#]+)'
_CREATE_TABLE = re.compile(
    r"^\s*CREATE\s+(?:(?:GLOBAL\s+|LOCAL\s+)?TEMPORARY\s+|UNLOGGED\s+)?TABLE\s+(?:IF\s+NOT\s+EXISTS\s+)?"
    r"(?P<name>(?:" + _IDENT + r"\.)?" + _IDENT + r")",
    re.IGNORECASE,
)
_PARTITION_BY = re.compile(
    r"(?<![\w$#])PARTITION\s+BY\s+(?P<type>RANGE|LIST|HASH|KEY)(?:\s+(?P<columns>COLUMNS))?\s*\(", re.IGNORECASE)
_PARTITION_OF = re.compile(
    r"^\s*CREATE\s+TABLE\s+(?:IF\s+NOT\s+EXISTS\s+)?(?P<child>(?:" + _IDENT + r"\.)?" + _IDENT + r")\s+"
    r"PARTITION\s+OF\s+(?P<parent>(?:" + _IDENT + r"\.)?" + _IDENT + r")\s+"
    r"(?:FOR\s+VALUES\s+(?P<spec>.*?)|(?P<default>DEFAULT))\s*;?\s*$",
    re.IGNORECASE | re.DOTALL,
)
_INTERVAL = re.compile(r"\s*INTERVAL\s*\(", re.IGNORECASE)
_SUBPARTITION_BY = re.compile(
    r"\s*SUBPARTITION\s+BY\s+(?P<type>RANGE|LIST|HASH|KEY)(?:\s+COLUMNS)?\s*\(", re.IGNORECASE)
_SUBPARTITION_TEMPLATE = re.compile(r"\s*SUBPARTITION\s+TEMPLATE\s*\(", re.IGNORECASE)
_SUBPARTITIONS = re.compile(r"\s*SUBPARTITIONS\s+(?P<count>\d+)", re.IGNORECASE)
_PARTITIONS = re.compile(r"\s*PARTITIONS\s+(?P<count>\d+)", re.IGNORECASE)
_STORE_IN = re.compile(r"\s*STORE\s+IN\s*\([^)]*\)", re.IGNORECASE)
_OPEN = re.compile(r"\s*\(")
_DEFINITION = re.compile(r"^\s*PARTITION\s+(?P<name>" + _IDENT + r")(?P<rest>.*)$", re.IGNORECASE | re.DOTALL)
_LESS_THAN = re.compile(r"\bVALUES\s+LESS\s+THAN\s*(?:(?P<open>\()|(?P<max>MAXVALUE\b))", re.IGNORECASE)
_VALUES_LIST = re.compile(r"\bVALUES\s+(?:IN\s*)?\(", re.IGNORECASE)
_TABLESPACE = re.compile(r"\s*\bTABLESPACE\s+" + _IDENT, re.IGNORECASE)
_SUBPARTITION_LIST = re.compile(r"\(\s*SUBPARTITION\b", re.IGNORECASE)
_TO_DATE = re.compile(
    r"TO_DATE\s*\(\s*'\s*(?P<value>[^']*?)\s*'\s*,\s*'(?P<fmt>[^']*)'(?:\s*,\s*'[^']*')?\s*\)", re.IGNORECASE)
_STR_TO_DATE = re.compile(r"STR_TO_DATE\s*\(\s*'(?P<value>[^']*)'\s*,\s*'(?P<fmt>[^']*)'\s*\)", re.IGNORECASE)
_MYSQL_TABLE_OPTIONS = [
    re.compile(r"\s*\bENGINE\s*=\s*\w+", re.IGNORECASE),
    re.compile(r"\s*\bDEFAULT\s+(?:CHARSET|CHARACTER\s+SET)\s*=?\s*\w+", re.IGNORECASE),
    re.compile(r"\s*\bCOLLATE\s*=\s*\w+", re.IGNORECASE),
    re.compile(r"\s*\bAUTO_INCREMENT\s*=\s*\d+", re.IGNORECASE),
    re.compile(r"\s*\bCOMMENT\s*=\s*'(?:[^']|'')*'", re.IGNORECASE),
]


class PartitionType(Enum):
    RANGE = "RANGE"
    LIST = "LIST"
    HASH = "HASH"
    KEY = "KEY"


@dataclass
class PartitionDef:
    name: str
    bounds: List[str] = field(default_factory=list)
    values: List[str] = field(default_factory=list)
    is_max_value: bool = False
    is_default: bool = False
    tablespace: Optional[str] = None
    subpartition_count: Optional[int] = None


@dataclass
class PartitionTableInfo:
    table: str
    partition_type: PartitionType
    columns: List[str]
    columns_keyword: bool = False
    partitions: List[PartitionDef] = field(default_factory=list)
    interval: Optional[str] = None
    subpartition_type: Optional[PartitionType] = None
    subpartition_columns: List[str] = field(default_factory=list)
    subpartition_count: Optional[int] = None
    partition_count: Optional[int] = None
    clause_start: int = 0
    clause_end: int = 0


def _unquote(identifier: str) -> str:
    return ".".join(part.strip('"`') for part in identifier.split("."))


def _bracket_content(sql: str, index_after_open: int):
    close = find_matching_bracket(sql, index_after_open)
    if close == NOT_FOUND:
        return None, NOT_FOUND
    return sql[index_after_open:close - 1], close


def _parse_definition(text: str) -> Optional[PartitionDef]:
    match = _DEFINITION.match(mask_literals(text))
    if not match:
        return None
    definition = PartitionDef(name=_unquote(text[match.start("name"):match.end("name")]))
    rest = text[match.start("rest"):]
    masked_rest = mask_literals(rest)

    less_than = _LESS_THAN.search(masked_rest)
    values = _VALUES_LIST.search(masked_rest)
    if less_than:
        if less_than.group("max"):
            definition.is_max_value = True
        else:
            content, _ = _bracket_content(rest, less_than.end())
            definition.bounds = [b.strip() for b in split_arguments(content or "")]
            definition.is_max_value = all(b.upper() == "MAXVALUE" for b in definition.bounds)
    elif values:
        content, _ = _bracket_content(rest, values.end())
        definition.values = [v.strip() for v in split_arguments(content or "")]
        definition.is_default = [v.upper() for v in definition.values] == ["DEFAULT"]

    tablespace = _TABLESPACE.search(masked_rest)
    if tablespace:
        definition.tablespace = tablespace.group(0).split()[-1].strip('"`')
    subpartitions = _SUBPARTITION_LIST.search(masked_rest)
    if subpartitions:
        content, _ = _bracket_content(rest, subpartitions.start() + 1)
        definition.subpartition_count = len(split_arguments(content or ""))
    return definition


def get_partition_info(sql: str) -> Optional[PartitionTableInfo]:
    """
    Parse the partition clause of a CREATE TABLE statement.

    Returns None when the statement is not a CREATE TABLE or has no top-level
    PARTITION BY clause (a window function's PARTITION BY does not count).
    """
    masked = mask_literals(sql)
    table = _CREATE_TABLE.match(masked)
    if not table:
        return None
    by = None
    for candidate in _PARTITION_BY.finditer(masked, table.end()):
        prefix = masked[:candidate.start()]
        if prefix.count("(") == prefix.count(")"):
            by = candidate
            break
    if by is None:
        return None

    columns_text, position = _bracket_content(sql, by.end())
    if columns_text is None:
        return None
    info = PartitionTableInfo(
        table=sql[table.start("name"):table.end("name")],
        partition_type=PartitionType(by.group("type").upper()),
        columns=[_unquote(c.strip()) for c in split_arguments(columns_text)],
        columns_keyword=bool(by.group("columns")),
        clause_start=by.start(),
    )

    while True:
        interval = _INTERVAL.match(masked, position)
        subpartition_by = _SUBPARTITION_BY.match(masked, position)
        template = _SUBPARTITION_TEMPLATE.match(masked, position)
        count = _SUBPARTITIONS.match(masked, position) or _PARTITIONS.match(masked, position)
        store_in = _STORE_IN.match(masked, position)
        if interval:
            info.interval, position = _bracket_content(sql, interval.end())
        elif subpartition_by:
            info.subpartition_type = PartitionType(subpartition_by.group("type").upper())
            content, position = _bracket_content(sql, subpartition_by.end())
            info.subpartition_columns = [_unquote(c.strip()) for c in split_arguments(content or "")]
        elif template:
            content, position = _bracket_content(sql, template.end())
            info.subpartition_count = info.subpartition_count or len(split_arguments(content or ""))
        elif count:
            if count.group(0).strip().upper().startswith("SUB"):
                info.subpartition_count = int(count.group("count"))
            else:
                info.partition_count = int(count.group("count"))
            position = count.end()
        elif store_in:
            position = store_in.end()
        else:
            break
        if position == NOT_FOUND:
            return None

    definitions = _OPEN.match(masked, position)
    if definitions:
        content, close = _bracket_content(sql, definitions.end())
        if content is not None:
            parsed = [_parse_definition(d) for d in split_arguments(content)]
            info.partitions = [d for d in parsed if d is not None]
            position = close
    info.clause_end = position
    if info.subpartition_count is None:
        info.subpartition_count = next((p.subpartition_count for p in info.partitions if p.subpartition_count), None)
    return info


class PartitionConverter(BaseConverter):
    """Converts partitioned table DDL between Oracle, MySQL and PostgreSQL."""
    name = "partition"
    construct_pattern = re.compile(r"\bPARTITION\s+(?:BY|OF)\b", re.IGNORECASE)
    source_dialects = (DialectType.ORACLE, DialectType.TIBERO, DialectType.MYSQL, DialectType.POSTGRESQL)

    def matches(self, sql: str) -> bool:
        masked = mask_literals(sql)
        return bool(_CREATE_TABLE.match(masked) and self.construct_pattern.search(masked))

    def supports(self, source_dialect: DialectType, target_dialect: DialectType) -> bool:
        if source_dialect.is_oracle_compatible and target_dialect.is_oracle_compatible:
            return False
        return super().supports(source_dialect, target_dialect)

    def _convert(self, sql, source_dialect, target_dialect, warnings, applied_rules):
        child = _PARTITION_OF.match(mask_literals(sql))
        if child:
            if source_dialect is not DialectType.POSTGRESQL:
                return sql
            return self._child_table(sql, child, target_dialect, warnings, applied_rules)

        info = get_partition_info(sql)
        if info is None:
            return sql
        self.logger.debug({'action': 'partition', 'details': {
            'table': info.table, 'type': info.partition_type.value, 'partitions': len(info.partitions)}})

        if target_dialect is DialectType.POSTGRESQL:
            return self._to_postgresql(sql, info, source_dialect, warnings, applied_rules)
        if target_dialect is DialectType.MYSQL:
            clause = self._mysql_clause(info, source_dialect, warnings, applied_rules)
        else:
            clause = self._oracle_clause(info, source_dialect, warnings, applied_rules)
        if source_dialect is DialectType.POSTGRESQL and info.partition_type in (PartitionType.RANGE,
                                                                                 PartitionType.LIST):
            add_warning(warnings, WarningType.MANUAL_REVIEW_REQUIRED,
                        f"{target_dialect.value} needs the partitions of {info.table} inside CREATE TABLE",
                        WarningSeverity.WARNING,
                        "Move the partitions added by the converted PARTITION OF statements into this definition")
        return sql[:info.clause_start] + clause + sql[info.clause_end:]

    # ------------------------------------------------------------------
    # Bound values
    # ------------------------------------------------------------------

    def _bound_for_mysql(self, value: str) -> str:
        def to_str_to_date(match):
            fmt = oracle_to_mysql_format(re.sub(r"^S(?=Y)", "", match.group("fmt"), flags=re.IGNORECASE))
            return f"STR_TO_DATE('{match.group('value')}', '{fmt}')"
        return _TO_DATE.sub(to_str_to_date, value)

    def _bound_for_oracle(self, value: str) -> str:
        return _STR_TO_DATE.sub(
            lambda m: f"TO_DATE('{m.group('value')}', '{mysql_to_oracle_format(m.group('fmt'))}')", value)

    def _bound_for_postgresql(self, value: str) -> str:
        value = _TO_DATE.sub(lambda m: f"'{m.group('value')}'", value)
        return _STR_TO_DATE.sub(lambda m: f"'{m.group('value')}'", value)

    # ------------------------------------------------------------------
    # MySQL
    # ------------------------------------------------------------------

    def _mysql_clause(self, info: PartitionTableInfo, source, warnings, applied_rules) -> str:
        kind = info.partition_type
        use_columns = info.columns_keyword or (kind in (PartitionType.RANGE, PartitionType.LIST)
                                               and len(info.columns) > 1)
        lines = [f"PARTITION BY {kind.value}{' COLUMNS' if use_columns else ''} ({', '.join(info.columns)})"]

        if info.interval is not None:
            add_warning(warnings, WarningType.UNSUPPORTED_STATEMENT,
                        "MySQL has no INTERVAL partitioning; the INTERVAL clause was removed",
                        WarningSeverity.WARNING,
                        "Pre-create future partitions or add them from a scheduled EVENT")
            applied_rules.append("INTERVAL partitioning removed (MySQL)")

        if info.subpartition_type in (PartitionType.HASH, PartitionType.KEY):
            sub = f"SUBPARTITION BY {info.subpartition_type.value} ({', '.join(info.subpartition_columns)})"
            if info.subpartition_count:
                sub += f" SUBPARTITIONS {info.subpartition_count}"
            lines.append(sub)
        elif info.subpartition_type is not None:
            add_warning(warnings, WarningType.PARTIAL_SUPPORT,
                        f"MySQL only supports HASH/KEY subpartitions; {info.subpartition_type.value} "
                        f"subpartitioning was removed", WarningSeverity.WARNING,
                        f"Use SUBPARTITION BY KEY ({', '.join(info.subpartition_columns)}) if a second level is needed")

        if info.partition_count and not info.partitions:
            lines.append(f"PARTITIONS {info.partition_count}")

        definitions = []
        for partition in info.partitions:
            if kind is PartitionType.RANGE:
                if partition.is_max_value and not use_columns:
                    definitions.append(f"PARTITION {partition.name} VALUES LESS THAN MAXVALUE")
                else:
                    bounds = ", ".join(self._bound_for_mysql(b) for b in partition.bounds
                                       or ["MAXVALUE"] * len(info.columns))
                    definitions.append(f"PARTITION {partition.name} VALUES LESS THAN ({bounds})")
            elif kind is PartitionType.LIST:
                if partition.is_default:
                    add_warning(warnings, WarningType.UNSUPPORTED_STATEMENT,
                                f"MySQL has no DEFAULT list partition; {partition.name} was removed",
                                WarningSeverity.WARNING, "Rows matching no list value will be rejected")
                    continue
                values = ", ".join(self._bound_for_mysql(v) for v in partition.values)
                definitions.append(f"PARTITION {partition.name} VALUES IN ({values})")
            else:
                definitions.append(f"PARTITION {partition.name}")
        if definitions:
            lines.append("(\n    " + ",\n    ".join(definitions) + "\n)")

        if source.is_oracle_compatible and any("TO_DATE" in b.upper() for p in info.partitions for b in p.bounds):
            applied_rules.append("Partition bound TO_DATE -> STR_TO_DATE")
        applied_rules.append(f"{kind.value} partitioning -> MySQL")
        return "\n".join(lines)

    # ------------------------------------------------------------------
    # Oracle
    # ------------------------------------------------------------------

    def _oracle_clause(self, info: PartitionTableInfo, source, warnings, applied_rules) -> str:
        kind = info.partition_type
        if kind is PartitionType.KEY:
            kind = PartitionType.HASH
            applied_rules.append("PARTITION BY KEY -> PARTITION BY HASH")
        if any("(" in c for c in info.columns):
            add_warning(warnings, WarningType.UNSUPPORTED_STATEMENT,
                        "Oracle partition keys must be plain columns", WarningSeverity.WARNING,
                        "Partition on a virtual column holding the expression")
        lines = [f"PARTITION BY {kind.value} ({', '.join(info.columns)})"]
        if info.subpartition_type is not None:
            sub_kind = PartitionType.HASH if info.subpartition_type is PartitionType.KEY else info.subpartition_type
            sub = f"SUBPARTITION BY {sub_kind.value} ({', '.join(info.subpartition_columns)})"
            if info.subpartition_count:
                sub += f" SUBPARTITIONS {info.subpartition_count}"
            lines.append(sub)
        if info.partition_count and not info.partitions:
            lines.append(f"PARTITIONS {info.partition_count}")

        definitions = []
        for partition in info.partitions:
            if kind is PartitionType.RANGE:
                bounds = ", ".join(self._bound_for_oracle(b) for b in partition.bounds) or "MAXVALUE"
                definitions.append(f"PARTITION {partition.name} VALUES LESS THAN ({bounds})")
            elif kind is PartitionType.LIST:
                values = ", ".join(self._bound_for_oracle(v) for v in partition.values)
                definitions.append(f"PARTITION {partition.name} VALUES ({values})")
            else:
                definitions.append(f"PARTITION {partition.name}")
        if definitions:
            lines.append("(\n    " + ",\n    ".join(definitions) + "\n)")
        applied_rules.append(f"{info.partition_type.value} partitioning -> Oracle")
        return "\n".join(lines)

    # ------------------------------------------------------------------
    # PostgreSQL
    # ------------------------------------------------------------------

    def _to_postgresql(self, sql, info: PartitionTableInfo, source, warnings, applied_rules):
        base = sql[:info.clause_start].rstrip()
        tail = sql[info.clause_end:].strip().rstrip(";").strip()
        if source is DialectType.MYSQL:
            for pattern in _MYSQL_TABLE_OPTIONS:
                base = pattern.sub("", base)
                tail = pattern.sub("", tail).strip()

        kind = PartitionType.HASH if info.partition_type is PartitionType.KEY else info.partition_type
        columns = [f"({c})" if "(" in c else c for c in info.columns]
        parent = f"{base}\nPARTITION BY {kind.value} ({', '.join(columns)})"
        if tail:
            parent += f"\n{tail}"

        if info.interval is not None:
            add_warning(warnings, WarningType.UNSUPPORTED_STATEMENT,
                        "PostgreSQL has no INTERVAL partitioning", WarningSeverity.WARNING,
                        "Use the pg_partman extension or create future partitions ahead of time")
            applied_rules.append("INTERVAL partitioning removed (pg_partman recommended)")
        if info.subpartition_type is not None:
            add_warning(warnings, WarningType.PARTIAL_SUPPORT,
                        f"{info.subpartition_type.value} subpartitions of {info.table} were not carried over",
                        WarningSeverity.WARNING,
                        "Declare each child with its own PARTITION BY and create the sub-children with PARTITION OF")

        partitions = list(info.partitions)
        if not partitions and kind is PartitionType.HASH and info.partition_count:
            partitions = [PartitionDef(name=f"p{i}") for i in range(info.partition_count)]

        statements = [parent]
        previous = None
        for index, partition in enumerate(partitions):
            child = f"{_unquote(info.table)}_{partition.name}"
            statement = f"CREATE TABLE {child} PARTITION OF {info.table}"
            if kind is PartitionType.RANGE:
                width = len(info.columns)
                if partition.is_max_value:
                    if previous is None:
                        statement += " DEFAULT"
                    else:
                        statement += f" FOR VALUES FROM ({previous}) TO ({', '.join(['MAXVALUE'] * width)})"
                else:
                    upper = ", ".join(self._bound_for_postgresql(b) for b in partition.bounds)
                    lower = previous or ", ".join(["MINVALUE"] * width)
                    statement += f" FOR VALUES FROM ({lower}) TO ({upper})"
                    previous = upper
            elif kind is PartitionType.LIST:
                if partition.is_default:
                    statement += " DEFAULT"
                else:
                    statement += f" FOR VALUES IN ({', '.join(self._bound_for_postgresql(v) for v in partition.values)})"
            else:
                statement += f" FOR VALUES WITH (MODULUS {len(partitions)}, REMAINDER {index})"
            statements.append(statement)

        applied_rules.append(f"{info.partition_type.value} partitioning -> PostgreSQL declarative partitions "
                             f"({len(partitions)} child table(s))")
        return ";\n\n".join(statements)

    def _child_table(self, sql, match, target, warnings, applied_rules):
        """A PostgreSQL ``PARTITION OF`` child becomes ALTER TABLE ... ADD PARTITION."""
        child = _unquote(sql[match.start("child"):match.end("child")]).split(".")[-1]
        parent = sql[match.start("parent"):match.end("parent")]
        oracle = target.is_oracle_compatible

        if match.group("default"):
            if oracle:
                applied_rules.append(f"PARTITION OF {parent} DEFAULT -> ADD PARTITION")
                return f"ALTER TABLE {parent} ADD PARTITION {child} VALUES (DEFAULT)"
            add_warning(warnings, WarningType.UNSUPPORTED_STATEMENT,
                        f"MySQL has no DEFAULT partition; {child} was not created", WarningSeverity.WARNING,
                        "Add a MAXVALUE range partition or extend the list values")
            return f"-- DEFAULT partition {child} of {parent} has no MySQL equivalent"

        spec = sql[match.start("spec"):match.end("spec")]
        masked_spec = mask_literals(spec)
        range_to = re.search(r"\bTO\s*\(", masked_spec, re.IGNORECASE)
        values_in = re.match(r"\s*IN\s*\(", masked_spec, re.IGNORECASE)
        if range_to:
            upper, _ = _bracket_content(spec, range_to.end())
            upper = ", ".join(b.strip() for b in split_arguments(upper or ""))
            if oracle:
                clause = f"VALUES LESS THAN ({upper})"
            elif all(b.strip().upper() == "MAXVALUE" for b in upper.split(",")):
                clause = "VALUES LESS THAN MAXVALUE"
            else:
                clause = f"VALUES LESS THAN ({upper})"
            add_warning(warnings, WarningType.SEMANTIC_DIFFERENCE,
                        f"Lower bound of partition {child} is implied by the previous partition",
                        suggestion="Add the partitions in ascending bound order")
        elif values_in:
            values, _ = _bracket_content(spec, values_in.end())
            clause = f"VALUES ({values})" if oracle else f"VALUES IN ({values})"
        else:
            if oracle:
                applied_rules.append(f"PARTITION OF {parent} -> ADD PARTITION")
                return f"ALTER TABLE {parent} ADD PARTITION {child}"
            add_warning(warnings, WarningType.SYNTAX_DIFFERENCE,
                        f"MySQL hash partitions are not named; {child} became one added partition",
                        suggestion="Declare PARTITIONS n on the parent table instead")
            applied_rules.append(f"PARTITION OF {parent} -> ADD PARTITION PARTITIONS 1")
            return f"ALTER TABLE {parent} ADD PARTITION PARTITIONS 1"

        applied_rules.append(f"PARTITION OF {parent} FOR VALUES -> ADD PARTITION")
        if oracle:
            return f"ALTER TABLE {parent} ADD PARTITION {child} {clause}"
        return f"ALTER TABLE {parent} ADD PARTITION (PARTITION {child} {clause})"
