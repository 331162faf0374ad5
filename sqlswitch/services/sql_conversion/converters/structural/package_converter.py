"""
Oracle packages (CREATE PACKAGE / CREATE PACKAGE BODY).

Neither MySQL nor PostgreSQL has packages. A package specification becomes a
comment banner plus one function per top-level CONSTANT; a package body
becomes one routine per member, named ``<package>_<member>`` for MySQL or
``<package>.<member>`` (a schema named after the package) for PostgreSQL.
Package-level variables have no equivalent and are reported.

FUNCTIONS:
==========
  - PackageConverter.convert(): convert one package specification or body.
  - parse_package(): PackageInfo model of either form.
  - parse_routine(): PackageMember model of a standalone procedure or function.
"""
import re
from dataclasses import dataclass, field
from typing import List, Optional

from ...models import DialectType, WarningSeverity, WarningType
from ...utils.result_formatter import add_warning
from ...utils.sql_preprocessing import split_statements
from ...utils.sql_scanner import NOT_FOUND, find_matching_bracket, mask_literals, split_arguments
from ..base_converter import BaseConverter
from ..inline_rewriter import convert_type_name, rewrite_data_types, rewrite_functions
from .procedure_body_converter import ProcedureBodyConverter, mysql_assignments, mysql_declare_section
from .vendor_runtime_converter import VendorRuntimeConverter

_HEADER = re.compile(
    r"^\s*CREATE\s+(?:OR\s+REPLACE\s+)?(?:(?:NON)?EDITIONABLE\s+)?PACKAGE\s+(?P<body>BODY\s+)?"
    r"(?P<name>(?:[\w$#]+\.)?[\w$#]+)(?:\s+AUTHID\s+\w+)?\s+(?:AS|IS)\b",
    re.IGNORECASE,
)
_MEMBER = re.compile(r"\b(?P<kind>FUNCTION|PROCEDURE)\s+(?P<name>[\w$#]+)", re.IGNORECASE)
_FUNCTION_TAIL = re.compile(
    r"\s*RETURN\s+(?P<type>[\w$#.%]+(?:\s*\([^)]*\))?)"
    r"(?:\s+(?:DETERMINISTIC|PIPELINED|PARALLEL_ENABLE|RESULT_CACHE))*\s*(?P<end>;|\bIS\b|\bAS\b)",
    re.IGNORECASE,
)
_PROCEDURE_TAIL = re.compile(r"\s*(?P<end>;|\bIS\b|\bAS\b)", re.IGNORECASE)
_ROUTINE = re.compile(
    r"^\s*CREATE\s+(?:OR\s+REPLACE\s+)?(?:(?:NON)?EDITIONABLE\s+)?(?P<kind>FUNCTION|PROCEDURE)\s+"
    r"(?P<name>(?:[\w$#]+\.)?[\w$#]+)",
    re.IGNORECASE,
)
_AUTHID = re.compile(r"\s*AUTHID\s+(?:DEFINER|CURRENT_USER)\b", re.IGNORECASE)
_PIPELINED_TAIL = re.compile(r"\bPIPELINED\b", re.IGNORECASE)
_BLOCK_TOKEN = re.compile(r"\b(?:(?P<close>END)(?:\s+(?P<what>IF|LOOP|CASE)\b)?|(?P<open>BEGIN|CASE))\b",
                          re.IGNORECASE)
_MEMBER_END = re.compile(r"END(?:\s+[\w$#]+)?\s*;", re.IGNORECASE)
_PARAMETER = re.compile(
    r"^(?P<name>[\w$#]+)\s+(?:(?P<mode>IN\s+OUT|IN|OUT)\s+)?(?:NOCOPY\s+)?(?P<type>.+?)"
    r"(?:\s+(?:DEFAULT|:=)\s*(?P<default>.+))?$",
    re.IGNORECASE | re.DOTALL,
)
_CONSTANT = re.compile(
    r"^(?P<name>[\w$#]+)\s+CONSTANT\s+(?P<type>.+?)\s*(?::=|\bDEFAULT\b)\s*(?P<value>.+)$",
    re.IGNORECASE | re.DOTALL)
_VARIABLE = re.compile(r"^(?P<name>[\w$#]+)\s+(?P<type>[^:]+?)(?:\s*(?::=|\bDEFAULT\b)\s*(?P<value>.+))?$",
                       re.IGNORECASE | re.DOTALL)


@dataclass
class PackageMember:
    kind: str
    name: str
    parameters: List[str] = field(default_factory=list)
    return_type: Optional[str] = None
    declarations: str = ""
    body: str = ""
    has_body: bool = False
    pipelined: bool = False


@dataclass
class PackageInfo:
    name: str
    is_body: bool
    schema: Optional[str] = None
    members: List[PackageMember] = field(default_factory=list)
    constants: List[tuple] = field(default_factory=list)
    variables: List[str] = field(default_factory=list)
    types: List[str] = field(default_factory=list)

    @property
    def bare_name(self) -> str:
        return self.name.split(".")[-1]


def _block_end(masked: str, start: int) -> Optional[re.Match]:
    """The END token closing the first BEGIN block at or after *start*."""
    depth = 0
    for token in _BLOCK_TOKEN.finditer(masked, start):
        if token.group("open"):
            depth += 1
        elif token.group("what") and token.group("what").upper() in ("IF", "LOOP"):
            continue
        else:
            depth -= 1
            if depth <= 0:
                return token
    return None


def _package_items(text: str, info: PackageInfo) -> None:
    for item in split_statements(text):
        item = " ".join(item.split())
        upper = item.upper()
        if upper.startswith(("PRAGMA", "--")) or not item:
            continue
        if upper.startswith(("TYPE ", "SUBTYPE ")):
            info.types.append(item)
            continue
        constant = _CONSTANT.match(item)
        if constant:
            info.constants.append((constant.group("name"), constant.group("type").strip(), constant.group("value").strip()))
            continue
        if re.match(r"^[\w$#]+\s+EXCEPTION$", item, re.IGNORECASE):
            continue
        info.variables.append(item)


def parse_package(sql: str) -> Optional[PackageInfo]:
    """Members, constants, variables and types of a package specification or body."""
    masked = mask_literals(sql)
    header = _HEADER.match(masked)
    if not header:
        return None
    name = sql[header.start("name"):header.end("name")]
    schema, _, _ = name.rpartition(".")
    info = PackageInfo(name=name, is_body=bool(header.group("body")), schema=schema or None)

    closing = re.compile(r"\bEND(?:\s+" + re.escape(info.bare_name) + r")?\s*;?\s*$", re.IGNORECASE)
    package_end = closing.search(masked, header.end())
    content_end = package_end.start() if package_end else len(sql)

    position = header.end()
    loose_items = []
    while True:
        member = _MEMBER.search(masked, position, content_end)
        if not member:
            loose_items.append(sql[position:content_end])
            break
        loose_items.append(sql[position:member.start()])
        read = _read_member(sql, masked, member.group("kind").upper(), member.group("name"),
                            member.end(), content_end)
        if read is None:
            return None
        entry, position = read
        if entry is None:
            position = member.end()
            continue
        info.members.append(entry)

    _package_items("\n".join(loose_items), info)
    return info


def _read_member(sql: str, masked: str, kind: str, name: str, cursor: int, content_end: int):
    """
    Parameters, return type and body of one routine starting at *cursor* (just
    after its name).

    Returns ``(member, position after it)``, ``(None, cursor)`` when no
    signature follows, or None when the text is malformed.
    """
    parameters = []
    opening = re.compile(r"\s*\(").match(masked, cursor)
    if opening:
        close = find_matching_bracket(sql, opening.end())
        if close == NOT_FOUND:
            return None
        parameters = [" ".join(p.split()) for p in split_arguments(sql[opening.end():close - 1])]
        cursor = close
    authid = _AUTHID.match(masked, cursor)
    if authid:
        cursor = authid.end()

    tail = (_FUNCTION_TAIL if kind == "FUNCTION" else _PROCEDURE_TAIL).match(masked, cursor)
    if not tail:
        return None, cursor
    entry = PackageMember(kind=kind, name=name, parameters=parameters,
                          return_type=" ".join(tail.group("type").split()) if kind == "FUNCTION" else None,
                          pipelined=bool(_PIPELINED_TAIL.search(masked, cursor, tail.end())))
    if tail.group("end") == ";":
        return entry, tail.end()

    named_end = re.compile(r"\bEND\s+" + re.escape(name) + r"\s*;", re.IGNORECASE).search(
        masked, tail.end(), content_end)
    end_token = named_end or _block_end(masked, tail.end())
    if not end_token:
        return None
    begin = re.compile(r"\bBEGIN\b", re.IGNORECASE).search(masked, tail.end(), end_token.start())
    if not begin:
        return None
    entry.has_body = True
    entry.declarations = sql[tail.end():begin.start()].strip()
    entry.body = sql[begin.end():end_token.start()].strip()
    member_end = _MEMBER_END.match(masked, end_token.start())
    return entry, member_end.end() if member_end else end_token.end()


def parse_routine(sql: str) -> Optional[PackageMember]:
    """The standalone CREATE PROCEDURE / CREATE FUNCTION in *sql*, or None."""
    masked = mask_literals(sql)
    header = _ROUTINE.match(masked)
    if not header:
        return None
    read = _read_member(sql, masked, header.group("kind").upper(), sql[header.start("name"):header.end("name")],
                        header.end(), len(sql))
    if read is None or read[0] is None or not read[0].has_body:
        return None
    return read[0]


def _indent(text: str, prefix: str = "    ") -> List[str]:
    return [prefix + line.strip() for line in text.splitlines() if line.strip()]


class PackageConverter(BaseConverter):
    """Converts Oracle package specifications and bodies into standalone routines."""
    name = "package"
    construct_pattern = _HEADER

    def __init__(self):
        super().__init__()
        self._body_converters = (ProcedureBodyConverter(), VendorRuntimeConverter())

    def matches(self, sql: str) -> bool:
        return bool(_HEADER.match(mask_literals(sql)))

    def supports(self, source_dialect: DialectType, target_dialect: DialectType) -> bool:
        return source_dialect.is_oracle_compatible and target_dialect in (DialectType.MYSQL, DialectType.POSTGRESQL)

    def _convert(self, sql, source_dialect, target_dialect, warnings, applied_rules):
        info = parse_package(sql)
        if info is None:
            add_warning(warnings, WarningType.MANUAL_REVIEW_REQUIRED,
                        "Package could not be parsed and was left unchanged", WarningSeverity.ERROR,
                        "Check that every member ends with END <name>;")
            return sql

        self.logger.debug({'action': 'package', 'details': {
            'name': info.name, 'body': info.is_body, 'members': [m.name for m in info.members]}})
        if info.variables:
            add_warning(warnings, WarningType.PARTIAL_SUPPORT,
                        f"Package {info.bare_name} variables are not carried over: {', '.join(info.variables)}",
                        WarningSeverity.WARNING,
                        "Use session variables (@name)" if target_dialect is DialectType.MYSQL
                        else "Use set_config()/current_setting() or a session table")
        if info.types:
            add_warning(warnings, WarningType.UNSUPPORTED_STATEMENT,
                        f"Package {info.bare_name} type declarations need manual conversion",
                        WarningSeverity.WARNING, "; ".join(info.types))

        if target_dialect is DialectType.MYSQL:
            return self._to_mysql(info, source_dialect, warnings, applied_rules)
        return self._to_postgresql(info, source_dialect, warnings, applied_rules)

    # ------------------------------------------------------------------
    # Member helpers
    # ------------------------------------------------------------------

    def _routine_names(self, info: PackageInfo, target: DialectType, warnings) -> List[str]:
        names, seen = [], {}
        for member in info.members:
            if not member.has_body and info.is_body:
                names.append("")
                continue
            if target is DialectType.MYSQL:
                base = f"{info.bare_name}_{member.name}"
                if info.schema:
                    base = f"{info.schema}.{base}"
            else:
                base = f"{info.bare_name.lower()}.{member.name}"
            count = seen.get(base.upper(), 0) + 1
            seen[base.upper()] = count
            if count > 1 and target is DialectType.MYSQL:
                add_warning(warnings, WarningType.SYNTAX_DIFFERENCE,
                            f"MySQL has no overloading; {member.name} overload renamed to {base}_{count}",
                            WarningSeverity.WARNING, "Update callers of the overloaded routine")
                base = f"{base}_{count}"
            names.append(base)
        return names

    def _convert_parameters(self, member: PackageMember, source, target, warnings) -> str:
        converted = []
        for parameter in member.parameters:
            match = _PARAMETER.match(parameter)
            if not match:
                converted.append(parameter)
                continue
            name, type_text = match.group("name"), match.group("type").strip()
            mode = " ".join((match.group("mode") or "").upper().split())
            mode = "INOUT" if mode == "IN OUT" else mode
            type_text = self._convert_type(type_text, source, target, warnings)

            if target is DialectType.MYSQL:
                if match.group("default"):
                    add_warning(warnings, WarningType.SYNTAX_DIFFERENCE,
                                f"MySQL parameters have no defaults; default of {name} dropped",
                                WarningSeverity.WARNING, "Pass the value explicitly from every caller")
                if member.kind == "FUNCTION":
                    if mode in ("OUT", "INOUT"):
                        add_warning(warnings, WarningType.UNSUPPORTED_STATEMENT,
                                    f"MySQL functions cannot have {mode} parameters ({member.name}.{name})",
                                    WarningSeverity.ERROR, "Turn the function into a procedure")
                    converted.append(f"{name} {type_text}")
                else:
                    converted.append(f"{mode or 'IN'} {name} {type_text}")
            else:
                prefix = f"{mode} " if mode in ("OUT", "INOUT") else ""
                default = f" DEFAULT {match.group('default').strip()}" if match.group("default") else ""
                converted.append(f"{prefix}{name} {type_text}{default}")
        return ", ".join(converted)

    def _convert_type(self, type_text: str, source, target, warnings) -> str:
        if "%" in type_text:
            if target is DialectType.MYSQL:
                add_warning(warnings, WarningType.UNSUPPORTED_STATEMENT,
                            f"MySQL has no anchored types ({type_text})", WarningSeverity.WARNING,
                            "Replace the %TYPE/%ROWTYPE reference with the column's data type")
            return type_text
        converted = convert_type_name(type_text, source, target, warnings)
        if target is DialectType.MYSQL and converted.upper() in ("VARCHAR", "CHAR"):
            # MySQL routine signatures require a length.
            converted = f"{converted}(4000)" if converted.upper() == "VARCHAR" else f"{converted}(255)"
        return converted

    def _qualify_calls(self, text: str, info: PackageInfo, names: List[str]) -> str:
        """Calls to sibling members (bare or package-qualified) use the generated routine names."""
        for member, routine in zip(info.members, names):
            if not routine:
                continue
            pattern = re.compile(
                r"(?<![\w$#.])(?:" + re.escape(info.bare_name) + r"\s*\.\s*)?" + re.escape(member.name)
                + r"\b(?=\s*[(;])", re.IGNORECASE)
            masked = mask_literals(text)
            for match in reversed(list(pattern.finditer(masked))):
                replacement = routine
                if member.kind == "PROCEDURE":
                    before = masked[:match.start()].rstrip()
                    if not before or before.endswith(";") or re.search(r"\b(?:BEGIN|THEN|ELSE|LOOP)$", before,
                                                                        re.IGNORECASE):
                        replacement = f"CALL {routine}"
                text = text[:match.start()] + replacement + text[match.end():]
        return text

    def _convert_body(self, text: str, info: PackageInfo, names: List[str], source, target,
                      warnings, applied_rules) -> str:
        text = self._qualify_calls(text, info, names)
        for converter in self._body_converters:
            text = converter.convert(text, source, target, warnings, applied_rules)
        return rewrite_functions(text, source, target, warnings, applied_rules)

    # ------------------------------------------------------------------
    # MySQL
    # ------------------------------------------------------------------

    def _to_mysql(self, info: PackageInfo, source, warnings, applied_rules):
        target = DialectType.MYSQL
        blocks = []
        if not info.is_body:
            add_warning(warnings, WarningType.SYNTAX_DIFFERENCE,
                        f"MySQL has no packages; specification {info.bare_name} was turned into comments",
                        suggestion=f"Members are created from the package body as {info.bare_name}_<member>")
            banner = [f"-- Oracle package specification {info.name}: MySQL has no packages.",
                      f"-- Members are created from the package body as {info.bare_name}_<member>."]
            banner.extend(f"-- {m.kind} {m.name}({', '.join(m.parameters)})"
                          + (f" RETURN {m.return_type}" if m.return_type else "") for m in info.members)
            blocks.append("\n".join(banner))
            for name, type_text, value in info.constants:
                value = rewrite_functions(value, source, target, warnings, applied_rules)
                blocks.append("\n".join([
                    "DELIMITER //",
                    f"CREATE FUNCTION {info.bare_name}_{name}()",
                    f"RETURNS {self._convert_type(type_text, source, target, warnings)}",
                    "DETERMINISTIC",
                    "BEGIN",
                    f"    RETURN {value};",
                    "END//",
                    "DELIMITER ;",
                ]))
                applied_rules.append(f"Package constant {info.bare_name}.{name} -> {info.bare_name}_{name}()")
            applied_rules.append(f"Oracle package specification -> MySQL comments: {info.bare_name}")
            return "\n\n".join(blocks)

        names = self._routine_names(info, target, warnings)
        blocks.append(f"-- Oracle package body {info.name}: members created as {info.bare_name}_<member>")
        for member, routine in zip(info.members, names):
            if not routine:
                continue
            blocks.append(self._mysql_routine(member, routine, info, names, source, warnings, applied_rules))
            applied_rules.append(f"Package member {info.bare_name}.{member.name} -> {routine}")
        return "\n\n".join(blocks)

    def _mysql_routine(self, member: PackageMember, routine: str, info: PackageInfo, names: List[str],
                       source, warnings, applied_rules) -> str:
        target = DialectType.MYSQL
        lines = ["DELIMITER //", f"DROP {member.kind} IF EXISTS {routine}//"]
        parameters = self._convert_parameters(member, source, target, warnings)
        lines.append(f"CREATE {member.kind} {routine}({parameters})")
        if member.kind == "FUNCTION":
            lines.append(f"RETURNS {self._convert_type(member.return_type, source, target, warnings)}")
            lines.append("DETERMINISTIC")
        lines.append("BEGIN")
        if member.declarations:
            declarations = rewrite_data_types(member.declarations, source, target, warnings, applied_rules,
                                              declarations=True)
            lines.extend(_indent("\n".join(mysql_declare_section(declarations))))
        body = self._convert_body(member.body, info, names, source, target, warnings, applied_rules)
        lines.extend(_indent(mysql_assignments(body)))
        lines.extend(["END//", "DELIMITER ;"])
        return "\n".join(lines)

    # ------------------------------------------------------------------
    # PostgreSQL
    # ------------------------------------------------------------------

    def _to_postgresql(self, info: PackageInfo, source, warnings, applied_rules):
        target = DialectType.POSTGRESQL
        schema = info.bare_name.lower()
        blocks = [f"CREATE SCHEMA IF NOT EXISTS {schema};"]
        applied_rules.append(f"Oracle package {info.bare_name} -> PostgreSQL schema {schema}")

        if not info.is_body:
            add_warning(warnings, WarningType.SYNTAX_DIFFERENCE,
                        f"PostgreSQL has no packages; specification {info.bare_name} became schema {schema}",
                        suggestion=f"Members are created from the package body as {schema}.<member>")
            for name, type_text, value in info.constants:
                pg_type = self._convert_type(type_text, source, target, warnings)
                value = rewrite_functions(value, source, target, warnings, applied_rules)
                blocks.append("\n".join([
                    f"CREATE OR REPLACE FUNCTION {schema}.{name.lower()}()",
                    f"RETURNS {pg_type}",
                    "LANGUAGE sql IMMUTABLE",
                    f"AS $$ SELECT CAST({value} AS {pg_type}) $$;",
                ]))
                applied_rules.append(f"Package constant {info.bare_name}.{name} -> {schema}.{name.lower()}()")
            return "\n\n".join(blocks)

        names = self._routine_names(info, target, warnings)
        for member, routine in zip(info.members, names):
            if not routine:
                continue
            blocks.append(self._postgresql_routine(member, routine, info, names, source, warnings, applied_rules))
            applied_rules.append(f"Package member {info.bare_name}.{member.name} -> {routine}")
        return "\n\n".join(blocks)

    def _postgresql_routine(self, member: PackageMember, routine: str, info: PackageInfo, names: List[str],
                            source, warnings, applied_rules) -> str:
        target = DialectType.POSTGRESQL
        parameters = self._convert_parameters(member, source, target, warnings)
        lines = [f"CREATE OR REPLACE {member.kind} {routine}({parameters})"]
        if member.kind == "FUNCTION":
            setof = "SETOF " if member.pipelined else ""
            lines.append(f"RETURNS {setof}{self._convert_type(member.return_type, source, target, warnings)}")
        lines.extend(["LANGUAGE plpgsql", "AS $$"])
        if member.declarations:
            declarations = rewrite_data_types(member.declarations, source, target, warnings, applied_rules,
                                              declarations=True)
            lines.append("DECLARE")
            lines.extend(_indent(declarations))
        lines.append("BEGIN")
        body = self._convert_body(member.body, info, names, source, target, warnings, applied_rules)
        lines.extend(_indent(body))
        lines.extend(["END;", "$$;"])
        return "\n".join(lines)
