"""
Sequences: CREATE / ALTER / DROP SEQUENCE and NEXTVAL / CURRVAL references.

Oracle and PostgreSQL both have native sequences and only differ in option
spelling (``NOCYCLE`` against ``NO CYCLE``). MySQL has none, so a sequence is
emulated with an AUTO_INCREMENT table and two stored functions,
``<name>_nextval()`` and ``<name>_currval()``; references are rewritten to
call them.

FUNCTIONS:
==========
  - SequenceConverter.convert(): rewrite sequence DDL or references for the target.
  - parse_sequence_options(): SequenceInfo from the option text after the name.
"""
import re
from dataclasses import dataclass
from typing import Optional

from ...models import DialectType, WarningSeverity, WarningType
from ...utils.result_formatter import add_warning
from ...utils.sql_scanner import mask_literals
from ..base_converter import BaseConverter

_NAME = r"(?P<name>(?:[\w$#]+\.)?[\w$#]+)"
_CREATE = re.compile(r"^\s*CREATE\s+SEQUENCE\s+(?:IF\s+NOT\s+EXISTS\s+)?" + _NAME + r"(?P<options>.*?)\s*;?\s*$",
                     re.IGNORECASE | re.DOTALL)
_ALTER = re.compile(r"^\s*ALTER\s+SEQUENCE\s+(?:IF\s+EXISTS\s+)?" + _NAME + r"(?P<options>.*?)\s*;?\s*$",
                    re.IGNORECASE | re.DOTALL)
_DROP = re.compile(r"^\s*DROP\s+SEQUENCE\s+(?:IF\s+EXISTS\s+)?" + _NAME + r"(?:\s+(?:CASCADE|RESTRICT))?\s*;?\s*$",
                   re.IGNORECASE)
_ORACLE_REFERENCE = re.compile(r"(?<![\w$#.])(?P<name>(?:[\w$#]+\.)?[\w$#]+)\s*\.\s*(?P<member>NEXTVAL|CURRVAL)\b",
                               re.IGNORECASE)
_POSTGRESQL_REFERENCE = re.compile(r"(?<![\w$#.])(?P<member>NEXTVAL|CURRVAL)\s*\(\s*'(?P<name>[^']*)'\s*\)",
                                   re.IGNORECASE)
_CONSTRUCT = re.compile(r"\bSEQUENCE\b|\.\s*(?:NEXTVAL|CURRVAL)\b|\b(?:NEXTVAL|CURRVAL)\s*\(", re.IGNORECASE)

# Largest value a PostgreSQL sequence (bigint) can hold.
_BIGINT_MAX = 9223372036854775807

# Oracle spelling -> PostgreSQL spelling; None drops the option.
_TO_POSTGRESQL = [
    (re.compile(r"\bNOCYCLE\b", re.IGNORECASE), "NO CYCLE"),
    (re.compile(r"\bNOMAXVALUE\b", re.IGNORECASE), "NO MAXVALUE"),
    (re.compile(r"\bNOMINVALUE\b", re.IGNORECASE), "NO MINVALUE"),
    (re.compile(r"\s*\bNOCACHE\b", re.IGNORECASE), ""),
    (re.compile(r"\s*\b(?:NO)?ORDER\b", re.IGNORECASE), ""),
    (re.compile(r"\s*\b(?:NO)?KEEP\b", re.IGNORECASE), ""),
    (re.compile(r"\s*\b(?:NO)?SCALE(?:\s+(?:NO)?EXTEND)?\b", re.IGNORECASE), ""),
    (re.compile(r"\s*\b(?:GLOBAL|SESSION)\b", re.IGNORECASE), ""),
]
_TO_ORACLE = [
    (re.compile(r"\bNO\s+CYCLE\b", re.IGNORECASE), "NOCYCLE"),
    (re.compile(r"\bNO\s+MAXVALUE\b", re.IGNORECASE), "NOMAXVALUE"),
    (re.compile(r"\bNO\s+MINVALUE\b", re.IGNORECASE), "NOMINVALUE"),
    (re.compile(r"\s*\bAS\s+(?:SMALLINT|INTEGER|INT|BIGINT)\b", re.IGNORECASE), ""),
    (re.compile(r"\s*\bOWNED\s+BY\s+(?:NONE|[\w$#.]+)", re.IGNORECASE), ""),
]


@dataclass
class SequenceInfo:
    start: int = 1
    increment: int = 1
    min_value: Optional[int] = None
    max_value: Optional[int] = None
    cycle: bool = False
    cache: Optional[int] = None


def _option(options: str, pattern: str) -> Optional[int]:
    match = re.search(pattern + r"\s+(-?\d+)", options, re.IGNORECASE)
    return int(match.group(1)) if match else None


def parse_sequence_options(options: str) -> SequenceInfo:
    info = SequenceInfo()
    start = _option(options, r"\bSTART\s+(?:WITH\s+)?")
    increment = _option(options, r"\bINCREMENT\s+(?:BY\s+)?")
    info.increment = increment if increment is not None else 1
    info.min_value = _option(options, r"\bMINVALUE")
    info.max_value = _option(options, r"\bMAXVALUE")
    info.start = start if start is not None else (info.min_value if info.min_value is not None else 1)
    info.cycle = bool(re.search(r"(?<!NO)(?<!NO\s)\bCYCLE\b", options, re.IGNORECASE))
    info.cache = _option(options, r"\bCACHE")
    return info


class SequenceConverter(BaseConverter):
    """Converts sequence DDL and sequence references between dialects."""
    name = "sequence"
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
            name = sql[create.start("name"):create.end("name")]
            options = sql[create.start("options"):create.end("options")]
            return self._create(name, options, target_dialect, warnings, applied_rules)

        alter = _ALTER.match(masked)
        if alter:
            name = sql[alter.start("name"):alter.end("name")]
            options = sql[alter.start("options"):alter.end("options")]
            return self._alter(sql, name, options, target_dialect, warnings, applied_rules)

        drop = _DROP.match(masked)
        if drop:
            name = sql[drop.start("name"):drop.end("name")]
            applied_rules.append(f"DROP SEQUENCE {name} -> {target_dialect.value}")
            if target_dialect is DialectType.MYSQL:
                bare = name.split(".")[-1]
                return "\n".join([
                    f"DROP FUNCTION IF EXISTS {bare}_nextval;",
                    f"DROP FUNCTION IF EXISTS {bare}_currval;",
                    f"DROP TABLE IF EXISTS {bare}_seq",
                ])
            if target_dialect is DialectType.POSTGRESQL:
                return f"DROP SEQUENCE IF EXISTS {name}"
            return f"DROP SEQUENCE {name}"

        if source_dialect is DialectType.POSTGRESQL:
            return self._postgresql_references(sql, masked, target_dialect, warnings, applied_rules)
        return self._oracle_references(sql, masked, target_dialect, warnings, applied_rules)

    # ------------------------------------------------------------------
    # DDL
    # ------------------------------------------------------------------

    def _create(self, name, options, target, warnings, applied_rules):
        info = parse_sequence_options(options)
        self.logger.debug({'action': 'sequence', 'details': {'name': name, 'info': info}})
        if target is DialectType.MYSQL:
            applied_rules.append(f"CREATE SEQUENCE {name} -> MySQL table + {name.split('.')[-1]}_nextval() function")
            return self._create_mysql(name, info, warnings)
        if target is DialectType.POSTGRESQL:
            applied_rules.append(f"CREATE SEQUENCE {name} -> PostgreSQL")
            return f"CREATE SEQUENCE {name}{self._postgresql_options(options, info, applied_rules)}"
        applied_rules.append(f"CREATE SEQUENCE {name} -> {target.value}")
        return f"CREATE SEQUENCE {name}{_substitute(options, _TO_ORACLE)}"

    def _alter(self, sql, name, options, target, warnings, applied_rules):
        if target is DialectType.MYSQL:
            add_warning(warnings, WarningType.MANUAL_REVIEW_REQUIRED,
                        f"ALTER SEQUENCE {name} has no MySQL equivalent", WarningSeverity.WARNING,
                        f"Change the emulation table instead, e.g. ALTER TABLE {name.split('.')[-1]}_seq "
                        f"AUTO_INCREMENT = <value>")
            return sql
        applied_rules.append(f"ALTER SEQUENCE {name} -> {target.value}")
        if target is DialectType.POSTGRESQL:
            info = parse_sequence_options(options)
            return f"ALTER SEQUENCE {name}{self._postgresql_options(options, info, applied_rules)}"
        return f"ALTER SEQUENCE {name}{_substitute(options, _TO_ORACLE)}"

    def _postgresql_options(self, options, info: SequenceInfo, applied_rules):
        converted = _substitute(options, _TO_POSTGRESQL)
        if info.max_value is not None and info.max_value > _BIGINT_MAX:
            converted = re.sub(r"\bMAXVALUE\s+\d+", "NO MAXVALUE", converted, flags=re.IGNORECASE)
            applied_rules.append(f"MAXVALUE {info.max_value} -> NO MAXVALUE")
        return converted

    def _create_mysql(self, name, info: SequenceInfo, warnings):
        add_warning(warnings, WarningType.UNSUPPORTED_STATEMENT,
                    "MySQL has no sequences; emulated with an AUTO_INCREMENT table and stored functions",
                    WarningSeverity.WARNING,
                    f"Replace {name}.NEXTVAL with {name.split('.')[-1]}_nextval(), or use an AUTO_INCREMENT column")
        if info.increment != 1:
            add_warning(warnings, WarningType.SEMANTIC_DIFFERENCE,
                        f"INCREMENT BY {info.increment} needs auto_increment_increment = {info.increment} "
                        f"on the MySQL server", WarningSeverity.WARNING,
                        "Set auto_increment_increment for the session that calls the emulation function")
        if info.cycle:
            add_warning(warnings, WarningType.SEMANTIC_DIFFERENCE,
                        "CYCLE cannot be emulated with AUTO_INCREMENT", WarningSeverity.WARNING)
        bare = name.split(".")[-1]
        lines = [
            f"-- Sequence emulation for {name}",
            f"CREATE TABLE {bare}_seq (",
            "    id BIGINT NOT NULL AUTO_INCREMENT PRIMARY KEY,",
            "    stub CHAR(1) NOT NULL DEFAULT ''",
            ") ENGINE=InnoDB;",
        ]
        if info.start != 1:
            lines.append(f"ALTER TABLE {bare}_seq AUTO_INCREMENT = {info.start};")
        lines += [
            "",
            "DELIMITER //",
            f"CREATE FUNCTION {bare}_nextval() RETURNS BIGINT",
            "MODIFIES SQL DATA",
            "BEGIN",
            f"    INSERT INTO {bare}_seq (stub) VALUES ('');",
            f"    DELETE FROM {bare}_seq WHERE id < LAST_INSERT_ID();",
            "    RETURN LAST_INSERT_ID();",
            "END//",
            "",
            f"CREATE FUNCTION {bare}_currval() RETURNS BIGINT",
            "READS SQL DATA",
            "BEGIN",
            "    RETURN LAST_INSERT_ID();",
            "END//",
            "DELIMITER ;",
        ]
        return "\n".join(lines)

    # ------------------------------------------------------------------
    # References
    # ------------------------------------------------------------------

    def _oracle_references(self, sql, masked, target, warnings, applied_rules):
        emulated = set()
        for match in reversed(list(_ORACLE_REFERENCE.finditer(masked))):
            name = sql[match.start("name"):match.end("name")]
            member = match.group("member").upper()
            if target is DialectType.POSTGRESQL:
                replacement = f"{member.lower()}('{name}')"
            else:
                bare = name.split(".")[-1]
                replacement = f"{bare}_{member.lower()}()"
                emulated.add(bare)
            sql = sql[:match.start()] + replacement + sql[match.end():]
            applied_rules.append(f"{name}.{member} -> {replacement}")
        for bare in sorted(emulated):
            add_warning(warnings, WarningType.PARTIAL_SUPPORT,
                        f"MySQL has no sequences; {bare} calls the emulation functions {bare}_nextval() / "
                        f"{bare}_currval()", WarningSeverity.WARNING,
                        f"Convert CREATE SEQUENCE {bare} to create the emulation table and functions")
        return sql

    def _postgresql_references(self, sql, masked, target, warnings, applied_rules):
        emulated = set()
        for match in reversed(list(_POSTGRESQL_REFERENCE.finditer(masked))):
            name = sql[match.start("name"):match.end("name")]
            member = match.group("member").upper()
            if target.is_oracle_compatible:
                replacement = f"{name}.{member}"
            else:
                bare = name.split(".")[-1]
                replacement = f"{bare}_{member.lower()}()"
                emulated.add(bare)
            sql = sql[:match.start()] + replacement + sql[match.end():]
            applied_rules.append(f"{member.lower()}('{name}') -> {replacement}")
        for bare in sorted(emulated):
            add_warning(warnings, WarningType.PARTIAL_SUPPORT,
                        f"MySQL has no sequences; {bare} calls the emulation functions {bare}_nextval() / "
                        f"{bare}_currval()", WarningSeverity.WARNING,
                        f"Convert CREATE SEQUENCE {bare} to create the emulation table and functions")
        return sql


def _substitute(options: str, replacements) -> str:
    for pattern, replacement in replacements:
        options = pattern.sub(replacement, options)
    return options
