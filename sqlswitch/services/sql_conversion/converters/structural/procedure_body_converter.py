"""
PL/SQL body constructs inside procedures, functions, packages and anonymous blocks.

Cursor attributes, pragmas, pipelined functions, collection/record/cursor type
declarations, loop exits, GOTO, exception raising and RETURNING INTO are each
handled by one stage. Stages find their matches on the literal-masked text, so
nothing inside a string literal or a comment is touched.

FUNCTIONS:
==========
  - ProcedureBodyConverter.convert(): run every stage for the target dialect.
"""
import re
from typing import Callable, Dict, List, Optional, Tuple

from ...models import ConversionWarning, DialectType, WarningSeverity, WarningType
from ...utils.result_formatter import add_warning
from ...utils.sql_preprocessing import split_statements
from ...utils.sql_scanner import NOT_FOUND, find_call_sites, find_matching_bracket, mask_literals, split_arguments
from ..base_converter import BaseConverter
from .vendor_runtime_converter import raise_application_error_replacement

_SQL_ATTRIBUTE = re.compile(r"\bSQL%(?P<attr>ROWCOUNT|FOUND|NOTFOUND|ISOPEN)\b", re.IGNORECASE)
_ROWCOUNT_ASSIGNMENT = re.compile(r"(?P<var>\w+)\s*:=\s*SQL%ROWCOUNT\s*;", re.IGNORECASE)
_AUTONOMOUS_TRANSACTION = re.compile(r"\bPRAGMA\s+AUTONOMOUS_TRANSACTION\s*;", re.IGNORECASE)
_EXCEPTION_INIT = re.compile(
    r"\bPRAGMA\s+EXCEPTION_INIT\s*\(\s*(?P<name>\w+)\s*,\s*(?P<code>-?\d+)\s*\)\s*;", re.IGNORECASE)
_PIPELINED_RETURN = re.compile(r"\bRETURN\s+(?P<type>[\w.%]+)\s+PIPELINED\b", re.IGNORECASE)
_PIPELINED = re.compile(r"\bPIPELINED\b", re.IGNORECASE)
_PIPE_ROW = re.compile(r"\bPIPE\s+ROW\s*\((?P<row>.+?)\)\s*;", re.IGNORECASE | re.DOTALL)
_TABLE_OF = re.compile(
    r"\bTYPE\s+(?P<name>\w+)\s+IS\s+TABLE\s+OF\s+(?P<elem>.+?)(?:\s+INDEX\s+BY\s+(?P<key>[\w\s()]+?))?\s*;",
    re.IGNORECASE | re.DOTALL)
_VARRAY = re.compile(
    r"\bTYPE\s+(?P<name>\w+)\s+IS\s+(?:VARRAY|VARYING\s+ARRAY)\s*\(\s*(?P<size>\d+)\s*\)\s+OF\s+(?P<elem>.+?)\s*;",
    re.IGNORECASE | re.DOTALL)
_RECORD = re.compile(
    r"\bTYPE\s+(?P<name>\w+)\s+IS\s+RECORD\s*\((?P<fields>.+?)\)\s*;", re.IGNORECASE | re.DOTALL)
_REF_CURSOR = re.compile(
    r"\bTYPE\s+(?P<name>\w+)\s+IS\s+REF\s+CURSOR(?:\s+RETURN\s+(?P<ret>[^;]+?))?\s*;", re.IGNORECASE)
_SYS_REFCURSOR = re.compile(r"\bSYS_REFCURSOR\b", re.IGNORECASE)
_LOOP_EXIT = re.compile(r"\b(?P<kind>EXIT|CONTINUE)(?:\s+(?P<label>\w+))?\s+WHEN\s+(?P<cond>.+?)\s*;",
                        re.IGNORECASE | re.DOTALL)
_LOOP_LABEL = re.compile(r"<<\s*(?P<label>\w+)\s*>>(?P<ws>\s*)(?=(?:LOOP|WHILE|FOR)\b)", re.IGNORECASE)
_MYSQL_LABELED_LOOP = re.compile(r"\b(?P<label>\w+)\s*:\s*(?:LOOP|WHILE|REPEAT)\b", re.IGNORECASE)
_GOTO = re.compile(r"\bGOTO\s+(?P<label>\w+)\s*;", re.IGNORECASE)
_BLOCK_LABEL = re.compile(r"<<\s*(?P<label>\w+)\s*>>", re.IGNORECASE)
_RAISE_NAMED = re.compile(
    r"\bRAISE\s+(?!(?:EXCEPTION|NOTICE|INFO|WARNING|LOG|DEBUG|SQLSTATE)\b)(?P<name>\w+)\s*;", re.IGNORECASE)
_RERAISE = re.compile(r"\bRAISE\s*;", re.IGNORECASE)
_USER_EXCEPTION = re.compile(r"\b(?P<name>\w+)\s+EXCEPTION\s*;", re.IGNORECASE)
_HANDLER = re.compile(r"\bWHEN\s+(?P<name>\w+)\s+THEN\b", re.IGNORECASE)
_EXCEPTION_SECTION = re.compile(r"\bEXCEPTION\s+WHEN\b", re.IGNORECASE)
_RETURNING_INTO = re.compile(
    r"\bRETURNING\s+(?P<cols>.+?)\s+INTO\s+(?P<vars>[^;]+?)\s*;", re.IGNORECASE | re.DOTALL)
_ASSIGNMENT = re.compile(r"^(?P<indent>[ \t]*)(?P<lhs>[\w$#.]+)\s*:=", re.MULTILINE)

# name -> (PostgreSQL SQLSTATE, PostgreSQL condition, MySQL SQLSTATE, message)
_PREDEFINED_EXCEPTIONS = {
    "NO_DATA_FOUND": ("P0002", "no_data_found", "02000", "No data found"),
    "TOO_MANY_ROWS": ("P0003", "too_many_rows", "45000", "Too many rows"),
    "DUP_VAL_ON_INDEX": ("23505", "unique_violation", "23000", "Duplicate value on index"),
    "ZERO_DIVIDE": ("22012", "division_by_zero", "22012", "Division by zero"),
    "INVALID_NUMBER": ("22P02", "invalid_text_representation", "22007", "Invalid number"),
    "VALUE_ERROR": ("22000", "data_exception", "22000", "Value error"),
    "INVALID_CURSOR": ("34000", "invalid_cursor_state", "24000", "Invalid cursor"),
    "CURSOR_ALREADY_OPEN": ("42P03", "duplicate_cursor", "24000", "Cursor already open"),
}

_CONSTRUCT = re.compile(
    r"\bSQL%|\bPRAGMA\b|\bPIPE\s+ROW\b|\bPIPELINED\b|\bTYPE\s+\w+\s+IS\s+(?:TABLE|VARRAY|VARYING|RECORD|REF)\b"
    r"|\bSYS_REFCURSOR\b|\b(?:EXIT|CONTINUE)\b[^;]*?\bWHEN\b|\bGOTO\b|\bRAISE_APPLICATION_ERROR\b"
    r"|\bRAISE\b|\bRETURNING\b[^;]+\bINTO\b|\bEXCEPTION\s+WHEN\b",
    re.IGNORECASE,
)


def _substitute(text: str, pattern: re.Pattern,
                build: Callable[[str, Dict[str, Optional[str]]], Optional[str]]) -> Tuple[str, int]:
    """Replace matches found on the masked text; *build* gets the raw match and raw groups."""
    masked = mask_literals(text)
    count = 0
    for match in reversed(list(pattern.finditer(masked))):
        groups = {name: (text[match.start(name):match.end(name)] if match.start(name) >= 0 else None)
                  for name in pattern.groupindex}
        replacement = build(text[match.start():match.end()], groups)
        if replacement is None:
            continue
        text = text[:match.start()] + replacement + text[match.end():]
        count += 1
    return text, count


def _comment_out(fragment: str, note: str) -> str:
    lines = fragment.splitlines() or [fragment]
    commented = "\n".join(f"-- {line.strip()}" for line in lines)
    return f"{commented} -- {note}"


_CURSOR_DECLARATION = re.compile(
    r"^CURSOR\s+(?P<name>\w+)(?:\s*\([^)]*\))?\s+IS\s+(?P<query>.+)$", re.IGNORECASE | re.DOTALL)


def mysql_assignments(text: str) -> str:
    """Statement-level ``v := x`` assignments as MySQL ``SET v = x``."""
    return _ASSIGNMENT.sub(lambda m: f"{m.group('indent')}SET {m.group('lhs')} =", text)


def mysql_declare_section(declarations: str) -> List[str]:
    """
    An Oracle declaration section as MySQL ``DECLARE`` statements.

    ``:=`` initialisers become DEFAULT, CONSTANT is dropped and cursors become
    ``DECLARE c CURSOR FOR``. MySQL wants cursors after variables, so they are
    emitted last.
    """
    variables, cursors = [], []
    for declaration in split_statements(declarations):
        cursor = _CURSOR_DECLARATION.match(declaration)
        if cursor:
            cursors.append(f"DECLARE {cursor.group('name')} CURSOR FOR {cursor.group('query').strip()};")
            continue
        declaration = re.sub(r"\s*:=\s*", " DEFAULT ", declaration, count=1)
        declaration = re.sub(r"\s+CONSTANT\b", "", declaration, flags=re.IGNORECASE)
        variables.append(f"DECLARE {declaration};")
    return variables + cursors


class ProcedureBodyConverter(BaseConverter):
    """Converts PL/SQL body constructs for MySQL stored programs and PL/pgSQL."""
    name = "procedure_body"
    construct_pattern = _CONSTRUCT

    def matches(self, sql: str) -> bool:
        return bool(self.construct_pattern.search(mask_literals(sql)))

    def supports(self, source_dialect: DialectType, target_dialect: DialectType) -> bool:
        return source_dialect.is_oracle_compatible and target_dialect in (DialectType.MYSQL, DialectType.POSTGRESQL)

    def _convert(self, sql, source_dialect, target_dialect, warnings, applied_rules):
        stages = (
            self._sql_attributes,
            self._pragmas,
            self._pipelined,
            self._collections,
            self._ref_cursors,
            self._loop_exits,
            self._goto,
            self._named_raises,
            self._raise_application_error,
            self._exception_handlers,
            self._returning_into,
        )
        text = sql
        for stage in stages:
            text = stage(text, target_dialect, warnings, applied_rules)
        return text

    # ------------------------------------------------------------------
    # Cursor attributes and pragmas
    # ------------------------------------------------------------------

    def _sql_attributes(self, text, target, warnings, applied_rules):
        if target is DialectType.POSTGRESQL:
            text, count = _substitute(text, _ROWCOUNT_ASSIGNMENT,
                                      lambda raw, g: f"GET DIAGNOSTICS {g['var']} = ROW_COUNT;")
            if count:
                applied_rules.append("SQL%ROWCOUNT -> GET DIAGNOSTICS ROW_COUNT")
            replacements = {"FOUND": "FOUND", "NOTFOUND": "NOT FOUND", "ISOPEN": "FALSE"}
        else:
            replacements = {"ROWCOUNT": "ROW_COUNT()", "FOUND": "(ROW_COUNT() > 0)",
                            "NOTFOUND": "(ROW_COUNT() = 0)", "ISOPEN": "FALSE"}

        def build(raw, groups):
            attribute = groups["attr"].upper()
            if attribute not in replacements:
                add_warning(warnings, WarningType.MANUAL_REVIEW_REQUIRED,
                            "SQL%ROWCOUNT used inside an expression has no PL/pgSQL equivalent",
                            suggestion="Capture it first with GET DIAGNOSTICS v_count = ROW_COUNT")
                return None
            applied_rules.append(f"SQL%{attribute} -> {replacements[attribute]}")
            return replacements[attribute]

        text, _ = _substitute(text, _SQL_ATTRIBUTE, build)
        return text

    def _pragmas(self, text, target, warnings, applied_rules):
        def autonomous(raw, groups):
            if target is DialectType.POSTGRESQL:
                add_warning(warnings, WarningType.PARTIAL_SUPPORT,
                            "PRAGMA AUTONOMOUS_TRANSACTION is not supported by PostgreSQL",
                            WarningSeverity.WARNING,
                            "Run the autonomous work through dblink or the pg_background extension")
                note = "use dblink for autonomous transactions"
            else:
                add_warning(warnings, WarningType.UNSUPPORTED_STATEMENT,
                            "PRAGMA AUTONOMOUS_TRANSACTION is not supported by MySQL",
                            WarningSeverity.ERROR,
                            "Move the autonomous work to a separate connection in the application")
                note = "not supported by MySQL"
            applied_rules.append("PRAGMA AUTONOMOUS_TRANSACTION commented out")
            return _comment_out(raw, note)

        def exception_init(raw, groups):
            add_warning(warnings, WarningType.UNSUPPORTED_STATEMENT,
                        f"PRAGMA EXCEPTION_INIT is not supported by {target.value}",
                        WarningSeverity.WARNING,
                        "Catch the error by SQLSTATE in the handler, e.g. WHEN SQLSTATE '23505' THEN"
                        if target is DialectType.POSTGRESQL else
                        f"Declare {groups['name']} CONDITION FOR SQLSTATE '...' instead")
            applied_rules.append("PRAGMA EXCEPTION_INIT commented out")
            return _comment_out(raw, "map the error code to a SQLSTATE")

        text, _ = _substitute(text, _AUTONOMOUS_TRANSACTION, autonomous)
        text, _ = _substitute(text, _EXCEPTION_INIT, exception_init)
        return text

    def _pipelined(self, text, target, warnings, applied_rules):
        if target is DialectType.POSTGRESQL:
            text, count = _substitute(text, _PIPELINED_RETURN, lambda raw, g: f"RETURNS SETOF {g['type']}")
            text, rest = _substitute(text, _PIPELINED, lambda raw, g: "")
            if count or rest:
                applied_rules.append("PIPELINED -> RETURNS SETOF")
                add_warning(warnings, WarningType.SYNTAX_DIFFERENCE,
                            "Pipelined function converted to a set-returning function",
                            suggestion="Call it as SELECT * FROM fn(...) and end the body with RETURN")
            text, count = _substitute(text, _PIPE_ROW, lambda raw, g: f"RETURN NEXT {g['row'].strip()};")
            if count:
                applied_rules.append("PIPE ROW -> RETURN NEXT")
            return text

        masked = mask_literals(text)
        if not (_PIPELINED.search(masked) or _PIPE_ROW.search(masked)):
            return text
        add_warning(warnings, WarningType.UNSUPPORTED_STATEMENT,
                    "Pipelined functions and PIPE ROW are not supported by MySQL",
                    WarningSeverity.ERROR,
                    "Fill a temporary table and select from it, or return a result set from a procedure")
        text, _ = _substitute(text, _PIPE_ROW, lambda raw, g: _comment_out(raw, "not supported by MySQL"))
        text, _ = _substitute(text, _PIPELINED, lambda raw, g: "/* PIPELINED */")
        applied_rules.append("PIPELINED / PIPE ROW commented out")
        return text

    # ------------------------------------------------------------------
    # Type declarations
    # ------------------------------------------------------------------

    def _retype_variables(self, text: str, type_names: Dict[str, str]) -> str:
        """Re-declare variables and parameters of a removed local type."""
        if not type_names:
            return text
        pattern = re.compile(
            r"\b(?P<var>\w+)\s+(?:(?:IN\s+OUT|IN|OUT)\s+)?(?P<type>" + "|".join(map(re.escape, type_names))
            + r")\b(?!\s+IS\b)", re.IGNORECASE)

        def build(raw, groups):
            if groups["var"].upper() in ("TYPE", "SUBTYPE"):
                return None
            replacement = type_names[groups["type"].upper()]
            return raw[:len(raw) - len(groups["type"])] + replacement

        text, _ = _substitute(text, pattern, build)
        return text

    def _collections(self, text, target, warnings, applied_rules):
        if target is DialectType.MYSQL:
            found = False

            def unsupported(raw, groups):
                nonlocal found
                found = True
                return _comment_out(raw, "not supported by MySQL")

            for pattern in (_TABLE_OF, _VARRAY, _RECORD):
                text, _ = _substitute(text, pattern, unsupported)
            if found:
                add_warning(warnings, WarningType.UNSUPPORTED_STATEMENT,
                            "Collection and record types (TABLE OF, VARRAY, RECORD) are not supported by MySQL",
                            WarningSeverity.ERROR,
                            "Use a temporary table, a JSON column or individual variables")
                applied_rules.append("Collection types commented out")
            return text

        retyped = {}

        def table_of(raw, groups):
            name, element = groups["name"], " ".join(groups["elem"].split())
            if groups["key"]:
                add_warning(warnings, WarningType.PARTIAL_SUPPORT,
                            f"Associative array {name} (INDEX BY) converted to jsonb",
                            WarningSeverity.WARNING,
                            "Use jsonb or hstore keyed access in place of the index-by table")
                retyped[name.upper()] = "jsonb"
            else:
                retyped[name.upper()] = f"{element}[]"
            applied_rules.append(f"TABLE OF {element} -> array type")
            return _comment_out(raw, f"variables of {name} use {retyped[name.upper()]}")

        def varray(raw, groups):
            name, element = groups["name"], " ".join(groups["elem"].split())
            retyped[name.upper()] = f"{element}[]"
            add_warning(warnings, WarningType.SYNTAX_DIFFERENCE,
                        f"VARRAY({groups['size']}) {name} converted to an unbounded array",
                        suggestion="Enforce the size limit with a CHECK on array_length()")
            applied_rules.append(f"VARRAY OF {element} -> array type")
            return _comment_out(raw, f"variables of {name} use {element}[]")

        def record(raw, groups):
            fields = ", ".join(" ".join(f.split()) for f in split_arguments(groups["fields"]))
            add_warning(warnings, WarningType.SYNTAX_DIFFERENCE,
                        f"RECORD type {groups['name']} must be created outside the routine",
                        WarningSeverity.WARNING,
                        f"CREATE TYPE {groups['name']} AS ({fields});")
            applied_rules.append("RECORD type -> composite type")
            return _comment_out(raw, f"CREATE TYPE {groups['name']} AS ({fields})")

        text, _ = _substitute(text, _TABLE_OF, table_of)
        text, _ = _substitute(text, _VARRAY, varray)
        text, _ = _substitute(text, _RECORD, record)
        return self._retype_variables(text, retyped)

    def _ref_cursors(self, text, target, warnings, applied_rules):
        retyped = {}

        def ref_cursor(raw, groups):
            if target is DialectType.POSTGRESQL:
                retyped[groups["name"].upper()] = "refcursor"
                if groups["ret"]:
                    add_warning(warnings, WarningType.SYNTAX_DIFFERENCE,
                                "refcursor variables are untyped; the RETURN clause was dropped")
                applied_rules.append("REF CURSOR -> refcursor")
                return _comment_out(raw, "variables use refcursor")
            add_warning(warnings, WarningType.PARTIAL_SUPPORT,
                        "REF CURSOR types are not supported by MySQL",
                        WarningSeverity.WARNING,
                        "Use DECLARE ... CURSOR FOR inside the procedure or return a result set")
            applied_rules.append("REF CURSOR commented out")
            return _comment_out(raw, "use a MySQL cursor")

        text, _ = _substitute(text, _REF_CURSOR, ref_cursor)
        if target is DialectType.POSTGRESQL:
            text = self._retype_variables(text, retyped)
            text, count = _substitute(text, _SYS_REFCURSOR, lambda raw, g: "refcursor")
            if count:
                applied_rules.append("SYS_REFCURSOR -> refcursor")
        elif _SYS_REFCURSOR.search(mask_literals(text)):
            add_warning(warnings, WarningType.PARTIAL_SUPPORT,
                        "SYS_REFCURSOR parameters are not supported by MySQL",
                        WarningSeverity.WARNING,
                        "Return the rows as a result set by ending the procedure with the SELECT")
        return text

    # ------------------------------------------------------------------
    # Control flow
    # ------------------------------------------------------------------

    def _loop_exits(self, text, target, warnings, applied_rules):
        if target is DialectType.POSTGRESQL:
            # EXIT WHEN / CONTINUE WHEN are native PL/pgSQL.
            return text

        text, count = _substitute(text, _LOOP_LABEL, lambda raw, g: f"{g['label']}:{g['ws'] or ' '}")
        if count:
            applied_rules.append("<<label>> -> label:")

        unlabeled = False
        masked = mask_literals(text)
        for match in reversed(list(_LOOP_EXIT.finditer(masked))):
            kind = match.group("kind").upper()
            label = match.group("label")
            if not label:
                enclosing = list(_MYSQL_LABELED_LOOP.finditer(masked, 0, match.start()))
                if enclosing:
                    label = enclosing[-1].group("label")
                else:
                    label = "loop_label"
                    unlabeled = True
            condition = " ".join(text[match.start("cond"):match.end("cond")].split())
            keyword = "LEAVE" if kind == "EXIT" else "ITERATE"
            text = text[:match.start()] + f"IF {condition} THEN {keyword} {label}; END IF;" + text[match.end():]
            applied_rules.append(f"{kind} WHEN -> IF ... THEN {keyword}")
        if unlabeled:
            add_warning(warnings, WarningType.MANUAL_REVIEW_REQUIRED,
                        "MySQL LEAVE/ITERATE need a loop label",
                        suggestion="Label the enclosing loop as loop_label: LOOP ... END LOOP loop_label")
        return text

    def _goto(self, text, target, warnings, applied_rules):
        text, count = _substitute(text, _GOTO, lambda raw, g: _comment_out(raw, "GOTO is not supported"))
        if not count:
            return text
        add_warning(warnings, WarningType.UNSUPPORTED_STATEMENT,
                    f"GOTO is not supported by {target.value}",
                    WarningSeverity.ERROR,
                    "Restructure the jump with LOOP/EXIT or IF blocks")
        if target is DialectType.MYSQL:
            text, _ = _substitute(text, _BLOCK_LABEL, lambda raw, g: f"/* {raw} */")
        applied_rules.append("GOTO commented out")
        return text

    # ------------------------------------------------------------------
    # Exceptions
    # ------------------------------------------------------------------

    def _named_raises(self, text, target, warnings, applied_rules):
        declared = {m.group("name").upper() for m in _USER_EXCEPTION.finditer(mask_literals(text))
                    if m.group("name").upper() not in ("WHEN", "RAISE")}

        def build(raw, groups):
            name = groups["name"]
            key = name.upper()
            if key in _PREDEFINED_EXCEPTIONS:
                pg_state, _, mysql_state, message = _PREDEFINED_EXCEPTIONS[key]
                applied_rules.append(f"RAISE {key} -> {'RAISE EXCEPTION' if target is DialectType.POSTGRESQL else 'SIGNAL'}")
                if target is DialectType.POSTGRESQL:
                    return f"RAISE EXCEPTION '{message}' USING ERRCODE = '{pg_state}';"
                return f"SIGNAL SQLSTATE '{mysql_state}' SET MESSAGE_TEXT = '{message}';"
            if key not in declared:
                return None
            applied_rules.append(f"RAISE {name} -> {'RAISE EXCEPTION' if target is DialectType.POSTGRESQL else 'SIGNAL'}")
            if target is DialectType.POSTGRESQL:
                return f"RAISE EXCEPTION '{name}' USING ERRCODE = 'P0001';"
            return f"SIGNAL {name} SET MESSAGE_TEXT = '{name}';"

        text, _ = _substitute(text, _RAISE_NAMED, build)

        def declaration(raw, groups):
            if groups["name"].upper() not in declared:
                return None
            if target is DialectType.MYSQL:
                return f"DECLARE {groups['name']} CONDITION FOR SQLSTATE '45000';"
            return _comment_out(raw, "raised with RAISE EXCEPTION")

        if declared:
            text, _ = _substitute(text, _USER_EXCEPTION, declaration)
            applied_rules.append("User-defined exceptions converted")

        if target is DialectType.MYSQL:
            text, count = _substitute(text, _RERAISE, lambda raw, g: "RESIGNAL;")
            if count:
                applied_rules.append("RAISE -> RESIGNAL")
        return text

    def _raise_application_error(self, text, target, warnings, applied_rules):
        for name_start, after_open in reversed(find_call_sites(text, "RAISE_APPLICATION_ERROR")):
            close = find_matching_bracket(text, after_open)
            if close == NOT_FOUND:
                continue
            replacement = raise_application_error_replacement(
                split_arguments(text[after_open:close - 1]), target, warnings)
            if replacement is None:
                continue
            text = text[:name_start] + replacement + text[close:]
            applied_rules.append("RAISE_APPLICATION_ERROR -> "
                                 + ("RAISE EXCEPTION" if target is DialectType.POSTGRESQL else "SIGNAL SQLSTATE"))
        return text

    def _exception_handlers(self, text, target, warnings, applied_rules):
        masked = mask_literals(text)
        section = _EXCEPTION_SECTION.search(masked)
        if not section:
            return text
        if target is DialectType.MYSQL:
            add_warning(warnings, WarningType.MANUAL_REVIEW_REQUIRED,
                        "EXCEPTION sections must be rewritten as MySQL DECLARE ... HANDLER blocks",
                        WarningSeverity.WARNING,
                        "DECLARE EXIT HANDLER FOR NOT FOUND / SQLEXCEPTION at the start of the BEGIN block")
            return text

        def build(raw, groups):
            key = groups["name"].upper()
            if key not in _PREDEFINED_EXCEPTIONS:
                return None
            condition = _PREDEFINED_EXCEPTIONS[key][1]
            if condition == key.lower():
                return None
            applied_rules.append(f"WHEN {key} -> WHEN {condition}")
            return f"WHEN {condition} THEN"

        prefix, rest = text[:section.start()], text[section.start():]
        rest, _ = _substitute(rest, _HANDLER, build)
        return prefix + rest

    def _returning_into(self, text, target, warnings, applied_rules):
        masked = mask_literals(text)
        if not _RETURNING_INTO.search(masked):
            return text
        if target is DialectType.POSTGRESQL:
            applied_rules.append("RETURNING ... INTO kept")
            return text

        def build(raw, groups):
            columns = " ".join(groups["cols"].split())
            variables = " ".join(groups["vars"].split())
            return f";\n-- RETURNING {columns} INTO {variables}: use LAST_INSERT_ID() or a follow-up SELECT"

        text, _ = _substitute(text, _RETURNING_INTO, build)
        add_warning(warnings, WarningType.UNSUPPORTED_STATEMENT,
                    "RETURNING ... INTO is not supported by MySQL",
                    WarningSeverity.WARNING,
                    "Use LAST_INSERT_ID() after the INSERT or run a separate SELECT ... INTO")
        applied_rules.append("RETURNING INTO commented out")
        return text
