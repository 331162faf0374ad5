"""
Oracle row and statement triggers.

MySQL gets one ``CREATE TRIGGER`` per event wrapped in DELIMITER lines, with
the WHEN clause moved into an IF guard. PostgreSQL gets a ``RETURNS TRIGGER``
plpgsql function plus a ``CREATE TRIGGER ... EXECUTE FUNCTION`` declaration.
A trigger that fails validation is returned untouched with one ERROR warning
per problem.

FUNCTIONS:
==========
  - TriggerConverter.convert(): convert one CREATE TRIGGER statement.
  - parse_trigger(): TriggerInfo for a trigger, or None.
  - validate_trigger(): list of problems that stop a conversion.
  - extract_triggers(): CREATE TRIGGER units found in a script.
"""
import re
from dataclasses import dataclass, field
from typing import List, Optional

from ...models import ConversionWarning, DialectType, WarningSeverity, WarningType
from ...utils.result_formatter import add_warning
from ...utils.sql_preprocessing import split_statements
from ...utils.sql_scanner import NOT_FOUND, find_call_sites, find_matching_bracket, mask_literals, split_arguments
from ..base_converter import BaseConverter
from ..inline_rewriter import rewrite_data_types, rewrite_functions
from .procedure_body_converter import mysql_assignments, mysql_declare_section
from .vendor_runtime_converter import raise_application_error_replacement

_TRIGGER_START = re.compile(
    r"^\s*CREATE\s+(?:OR\s+REPLACE\s+)?(?:(?:NON)?EDITIONABLE\s+)?TRIGGER\b", re.IGNORECASE)
_HEADER = re.compile(
    r"^\s*CREATE\s+(?:OR\s+REPLACE\s+)?(?:(?:NON)?EDITIONABLE\s+)?TRIGGER\s+(?P<name>[\w$#.\"]+)\s+"
    r"(?P<timing>BEFORE|AFTER|INSTEAD\s+OF|FOR)\s+(?P<events>.+?)\s+ON\s+(?P<table>[\w$#.\"]+)",
    re.IGNORECASE | re.DOTALL,
)
_EVENT = re.compile(r"^\s*(?P<event>INSERT|UPDATE|DELETE)(?:\s+OF\s+(?P<columns>.+?))?\s*$",
                    re.IGNORECASE | re.DOTALL)
_REFERENCING = re.compile(
    r"\bREFERENCING\s+(?P<pairs>(?:(?:NEW|OLD|PARENT)\s+(?:AS\s+)?\w+\s*)+)", re.IGNORECASE)
_REFERENCING_PAIR = re.compile(r"(?P<kind>NEW|OLD|PARENT)\s+(?:AS\s+)?(?P<alias>\w+)", re.IGNORECASE)
_FOR_EACH_ROW = re.compile(r"\bFOR\s+EACH\s+ROW\b", re.IGNORECASE)
_WHEN = re.compile(r"\bWHEN\s*\(", re.IGNORECASE)
_COMPOUND = re.compile(r"\bCOMPOUND\s+TRIGGER\b", re.IGNORECASE)
_BLOCK_START = re.compile(r"\b(?P<kw>DECLARE|BEGIN)\b", re.IGNORECASE)
_BLOCK_END = re.compile(r"\bEND\b(?:\s+[\w$#\"]+)?\s*;?\s*$", re.IGNORECASE)
_PREDICATE = re.compile(r"(?<![\w.$#])(?P<pred>INSERTING|UPDATING|DELETING)\b(?:\s*\(\s*'(?P<col>\w+)'\s*\))?",
                        re.IGNORECASE)
_RETURN = re.compile(r"\bRETURN\b", re.IGNORECASE)


@dataclass
class TriggerInfo:
    name: str
    timing: str
    events: List[str]
    table: str
    schema: Optional[str] = None
    update_columns: List[str] = field(default_factory=list)
    for_each_row: bool = False
    when_condition: Optional[str] = None
    declarations: Optional[str] = None
    body: str = ""
    new_alias: Optional[str] = None
    old_alias: Optional[str] = None
    compound: bool = False

    @property
    def bare_name(self) -> str:
        return self.name.split(".")[-1].strip('"')


def _block_span(sql: str, masked: str, search_from: int):
    """(keyword, start, body_start, body_end) of the trigger's PL/SQL block, or None."""
    start = _BLOCK_START.search(masked, search_from)
    end = _BLOCK_END.search(masked, search_from)
    if not start or not end or end.start() <= start.end():
        return None
    return start.group("kw").upper(), start.start(), start.end(), end.start()


def parse_trigger(sql: str) -> Optional[TriggerInfo]:
    """Parse the header, WHEN clause, DECLARE section and body of a CREATE TRIGGER statement."""
    masked = mask_literals(sql)
    header = _HEADER.match(masked)
    if not header:
        return None

    events, update_columns = [], []
    for part in re.split(r"\s+OR\s+", sql[header.start("events"):header.end("events")], flags=re.IGNORECASE):
        event = _EVENT.match(part)
        if not event:
            return None
        events.append(event.group("event").upper())
        if event.group("columns"):
            update_columns.extend(c.strip() for c in event.group("columns").split(","))

    table_text = sql[header.start("table"):header.end("table")]
    schema, _, table = table_text.rpartition(".")
    info = TriggerInfo(
        name=sql[header.start("name"):header.end("name")],
        timing=" ".join(header.group("timing").upper().split()),
        events=events,
        table=table_text,
        schema=schema or None,
        update_columns=update_columns,
        compound=bool(_COMPOUND.search(masked, header.end())),
    )

    block = _block_span(sql, masked, header.end())
    clause_end = block[1] if block else len(sql)
    clauses = masked[header.end():clause_end]
    info.for_each_row = bool(_FOR_EACH_ROW.search(clauses))

    referencing = _REFERENCING.search(clauses)
    if referencing:
        for pair in _REFERENCING_PAIR.finditer(referencing.group("pairs")):
            alias = pair.group("alias")
            if pair.group("kind").upper() == "NEW":
                info.new_alias = alias
            elif pair.group("kind").upper() == "OLD":
                info.old_alias = alias

    when = _WHEN.search(clauses)
    if when:
        after_open = header.end() + when.end()
        close = find_matching_bracket(sql, after_open)
        if close != NOT_FOUND:
            info.when_condition = " ".join(sql[after_open:close - 1].split())

    if block:
        keyword, start, body_start, body_end = block
        if keyword == "DECLARE":
            begin = re.compile(r"\bBEGIN\b", re.IGNORECASE).search(masked, body_start, body_end)
            if begin:
                info.declarations = sql[body_start:begin.start()].strip() or None
                body_start = begin.end()
        info.body = sql[body_start:body_end].strip()
    return info


def validate_trigger(sql: str) -> List[str]:
    """Problems that prevent converting *sql*; empty when the trigger is well formed."""
    masked = mask_literals(sql)
    if not _TRIGGER_START.match(masked):
        return ["CREATE TRIGGER header not found"]
    errors = []
    header = _HEADER.match(masked)
    if not header:
        if not re.search(r"\b(?:BEFORE|AFTER|INSTEAD\s+OF|FOR)\b", masked, re.IGNORECASE):
            errors.append("Trigger timing (BEFORE / AFTER / INSTEAD OF) not found")
        if not re.search(r"\bON\s+[\w$#.\"]+", masked, re.IGNORECASE):
            errors.append("ON <table> clause not found")
        return errors or ["Trigger header could not be parsed"]
    if parse_trigger(sql) is None:
        errors.append("Trigger events must be INSERT, UPDATE [OF columns] or DELETE")
    block = _block_span(sql, masked, header.end())
    if not block:
        errors.append("BEGIN ... END block not found")
    elif block[0] == "DECLARE" and not re.search(r"\bBEGIN\b", masked[block[2]:block[3]], re.IGNORECASE):
        errors.append("DECLARE section is not followed by BEGIN")
    return errors


def extract_triggers(script: str) -> List[str]:
    """CREATE TRIGGER units of a script, each kept whole."""
    return [statement for statement in split_statements(script, plsql_blocks=True)
            if _TRIGGER_START.match(mask_literals(statement))]


def _indent(text: str, prefix: str) -> List[str]:
    return [prefix + line.strip() for line in text.splitlines() if line.strip()]


class TriggerConverter(BaseConverter):
    """Converts Oracle CREATE TRIGGER statements for MySQL and PostgreSQL."""
    name = "trigger"
    construct_pattern = _TRIGGER_START

    def matches(self, sql: str) -> bool:
        return bool(_TRIGGER_START.match(mask_literals(sql)))

    def supports(self, source_dialect: DialectType, target_dialect: DialectType) -> bool:
        return source_dialect.is_oracle_compatible and target_dialect in (DialectType.MYSQL, DialectType.POSTGRESQL)

    def _convert(self, sql, source_dialect, target_dialect, warnings, applied_rules):
        errors = validate_trigger(sql)
        if errors:
            for error in errors:
                add_warning(warnings, WarningType.MANUAL_REVIEW_REQUIRED,
                            f"Trigger validation failed: {error}", WarningSeverity.ERROR,
                            "Fix the trigger definition and convert it again")
            self.logger.warning(f"Trigger left unconverted: {errors}")
            return sql

        info = parse_trigger(sql)
        if target_dialect is DialectType.MYSQL:
            return self._to_mysql(sql, info, source_dialect, warnings, applied_rules)
        return self._to_postgresql(info, source_dialect, warnings, applied_rules)

    # ------------------------------------------------------------------
    # Shared body rewriting
    # ------------------------------------------------------------------

    def _row_references(self, text: str, info: TriggerInfo) -> str:
        names = {"NEW": "NEW", "OLD": "OLD"}
        if info.new_alias:
            names[info.new_alias.upper()] = "NEW"
        if info.old_alias:
            names[info.old_alias.upper()] = "OLD"
        pattern = re.compile(r":\s*(?P<ref>" + "|".join(map(re.escape, names)) + r")\s*\.", re.IGNORECASE)
        masked = mask_literals(text)
        for match in reversed(list(pattern.finditer(masked))):
            text = text[:match.start()] + names[match.group("ref").upper()] + "." + text[match.end():]
        return text

    def _raise_errors(self, text: str, target: DialectType, warnings: List[ConversionWarning]) -> str:
        for name_start, after_open in reversed(find_call_sites(text, "RAISE_APPLICATION_ERROR")):
            close = find_matching_bracket(text, after_open)
            if close == NOT_FOUND:
                continue
            replacement = raise_application_error_replacement(
                split_arguments(text[after_open:close - 1]), target, warnings)
            if replacement:
                text = text[:name_start] + replacement + text[close:]
        return text

    def _predicates(self, text: str, event: Optional[str]) -> str:
        """INSERTING/UPDATING/DELETING as TG_OP tests, or constants for a single-event MySQL trigger."""
        masked = mask_literals(text)
        for match in reversed(list(_PREDICATE.finditer(masked))):
            operation = {"INSERTING": "INSERT", "UPDATING": "UPDATE", "DELETING": "DELETE"}[match.group("pred").upper()]
            if event is None:
                replacement = f"TG_OP = '{operation}'"
            else:
                replacement = "TRUE" if operation == event else "FALSE"
            text = text[:match.start()] + replacement + text[match.end():]
        return text

    def _rewrite_body(self, body: str, info: TriggerInfo, source: DialectType, target: DialectType,
                      event: Optional[str], warnings, applied_rules) -> str:
        text = self._row_references(body, info)
        text = self._predicates(text, event)
        text = self._raise_errors(text, target, warnings)
        text = rewrite_functions(text, source, target, warnings, applied_rules)
        if target is DialectType.MYSQL:
            text = mysql_assignments(text)
        return text

    # ------------------------------------------------------------------
    # MySQL
    # ------------------------------------------------------------------

    def _mysql_declarations(self, info: TriggerInfo, source, warnings, applied_rules) -> List[str]:
        if not info.declarations:
            return []
        converted = rewrite_data_types(info.declarations, source, DialectType.MYSQL, warnings, applied_rules,
                                       declarations=True)
        return mysql_declare_section(converted)

    def _to_mysql(self, sql, info: TriggerInfo, source, warnings, applied_rules):
        if info.compound or info.timing in ("INSTEAD OF", "FOR"):
            kind = "COMPOUND triggers" if info.compound or info.timing == "FOR" else "INSTEAD OF triggers"
            add_warning(warnings, WarningType.UNSUPPORTED_STATEMENT,
                        f"MySQL does not support {kind}", WarningSeverity.ERROR,
                        "Use a BEFORE/AFTER trigger per event, or move the logic to a stored procedure")
            applied_rules.append(f"{kind} commented out")
            commented = "\n".join(f"-- {line}" for line in sql.splitlines())
            return f"-- {kind} are not supported by MySQL\n{commented}"

        if not info.for_each_row:
            add_warning(warnings, WarningType.SEMANTIC_DIFFERENCE,
                        "MySQL only supports row-level triggers; the statement trigger now fires per row",
                        WarningSeverity.WARNING,
                        "Check the trigger logic is safe to run once per affected row")

        conditions = []
        if info.when_condition:
            conditions.append(self._row_references(info.when_condition, info))
            applied_rules.append("Trigger WHEN -> IF guard")
        if info.update_columns and "UPDATE" in info.events:
            changed = " OR ".join(f"NOT (NEW.{c} <=> OLD.{c})" for c in info.update_columns)
            add_warning(warnings, WarningType.SYNTAX_DIFFERENCE,
                        "MySQL has no UPDATE OF column triggers; the column list became an IF guard")

        declarations = self._mysql_declarations(info, source, warnings, applied_rules)
        triggers = []
        names = []
        for event in info.events:
            name = info.bare_name if len(info.events) == 1 else f"{info.bare_name}_{event.lower()}"
            names.append(name)
            body = self._rewrite_body(info.body, info, source, DialectType.MYSQL, event, warnings, applied_rules)
            guard = list(conditions)
            if event == "UPDATE" and info.update_columns:
                guard.append(f"({changed})")

            lines = ["DELIMITER //", "", f"CREATE TRIGGER {name}",
                     f"{'BEFORE' if info.timing == 'BEFORE' else 'AFTER'} {event} ON {info.table}",
                     "FOR EACH ROW", "BEGIN"]
            lines.extend(_indent("\n".join(declarations), "    "))
            if guard:
                lines.append(f"    IF {' AND '.join(guard)} THEN")
                lines.extend(_indent(body, "        "))
                lines.append("    END IF;")
            else:
                lines.extend(_indent(body, "    "))
            lines.extend(["END//", "", "DELIMITER ;"])
            triggers.append("\n".join(lines))

        if len(info.events) > 1:
            add_warning(warnings, WarningType.SYNTAX_DIFFERENCE,
                        f"MySQL triggers handle one event each; {info.bare_name} was split into {len(names)} triggers",
                        WarningSeverity.WARNING, f"Created triggers: {', '.join(names)}")
        applied_rules.append(f"Oracle trigger -> MySQL trigger: {info.bare_name}")
        self.logger.debug({'action': 'trigger', 'details': {'name': info.bare_name, 'events': info.events}})
        return "\n\n".join(triggers)

    # ------------------------------------------------------------------
    # PostgreSQL
    # ------------------------------------------------------------------

    def _return_statement(self, info: TriggerInfo) -> str:
        if not info.for_each_row or info.timing == "AFTER":
            return "RETURN NULL;"
        if info.events == ["DELETE"]:
            return "RETURN OLD;"
        return "RETURN NEW;"

    def _to_postgresql(self, info: TriggerInfo, source, warnings, applied_rules):
        if info.compound or info.timing == "FOR":
            add_warning(warnings, WarningType.SYNTAX_DIFFERENCE,
                        "PostgreSQL has no COMPOUND triggers", WarningSeverity.WARNING,
                        "Create one trigger function per timing point")

        function_name = f"{info.name}_func"
        body = self._rewrite_body(info.body, info, source, DialectType.POSTGRESQL, None, warnings, applied_rules)
        lines = [f"CREATE OR REPLACE FUNCTION {function_name}()", "RETURNS TRIGGER", "LANGUAGE plpgsql", "AS $$"]
        if info.declarations:
            declarations = rewrite_data_types(info.declarations, source, DialectType.POSTGRESQL,
                                              warnings, applied_rules, declarations=True)
            lines.append("DECLARE")
            lines.extend(_indent(declarations, "    "))
        lines.append("BEGIN")
        lines.extend(_indent(body, "    "))
        if not _RETURN.search(mask_literals(body)):
            lines.append(f"    {self._return_statement(info)}")
        lines.extend(["END;", "$$;", ""])

        events = []
        for event in info.events:
            if event == "UPDATE" and info.update_columns:
                events.append(f"UPDATE OF {', '.join(info.update_columns)}")
            else:
                events.append(event)
        lines.append(f"CREATE TRIGGER {info.bare_name}")
        lines.append(f"{info.timing} {' OR '.join(events)} ON {info.table}")
        lines.append("FOR EACH ROW" if info.for_each_row else "FOR EACH STATEMENT")
        if info.when_condition:
            lines.append(f"WHEN ({self._row_references(info.when_condition, info)})")
        lines.append(f"EXECUTE FUNCTION {function_name}()")

        applied_rules.append(f"Oracle trigger -> PostgreSQL trigger function: {info.bare_name}")
        self.logger.debug({'action': 'trigger', 'details': {'name': info.bare_name, 'function': function_name}})
        return "\n".join(lines)
