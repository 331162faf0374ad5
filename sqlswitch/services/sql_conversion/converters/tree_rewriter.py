"""
Rewriting of function calls, data types and pseudo-columns on sqlglot trees.

The AST path counterpart of ``inline_rewriter``: the same registry rules are
applied to ``exp.Func`` / ``exp.Anonymous`` / ``exp.DataType`` nodes through
``Expression.transform`` and sqlglot generates the target text afterwards.

``transform`` does not descend into a node it has just replaced, so every
replacement is built from arguments that were already rewritten. Function
names are read back from the statement text through the token positions
sqlglot stores in ``node.meta``; sqlglot canonicalises many names
(``IFNULL`` parses as ``COALESCE``) and the rules are keyed by what the user
wrote.

FUNCTIONS:
==========
  - TreeRewriter.rewrite(): apply every node rule to a statement tree.
  - is_date_expression(): heuristic used by the date arithmetic rule.
"""
import re
from typing import List, Optional, Tuple

import sqlglot
from sqlglot import exp
from sqlglot.errors import ParseError, TokenError

from sqlswitch.utils.logger import setup_logger

from ..mapping.function_mappings import NILADIC_FUNCTIONS, STRING_AGGREGATES, get_function_registry
from ..models import (
    ConversionWarning,
    DialectType,
    FunctionMappingRule,
    ParameterTransform,
    WarningSeverity,
    WarningType,
    normalize_rule_name,
)
from ..utils.date_format import translate_date_format
from ..utils.result_formatter import add_warning
from ..utils.sql_scanner import NOT_FOUND, find_matching_bracket, split_arguments
from .inline_rewriter import (
    TEMPLATE_PLACEHOLDER,
    case_when_expression,
    convert_type_name,
    report_rule_warning,
)

_CALL_NAME = re.compile(r"([A-Za-z_][\w$#]*(?:\.[A-Za-z_][\w$#]*)*)(\s*\()?")
_INTEGER = re.compile(r"\d+")
_NUMBER = re.compile(r"\d*\.?\d+(?:[eE][-+]?\d+)?")

# Column names treated as dates in ``x + n`` / ``x - n``.
_DATE_COLUMN = re.compile(r"(?:\w+_)?date|\w+_(?:at|dt)", re.IGNORECASE)
_DATE_KEYWORDS = frozenset({"SYSDATE", "SYSTIMESTAMP", "CURRENT_DATE", "CURRENT_TIMESTAMP", "LOCALTIMESTAMP"})
_DATE_NODES = (exp.CurrentTimestamp, exp.CurrentDate, exp.StrToDate, exp.StrToTime,
               exp.DateTrunc, exp.TimestampTrunc)
_SEQUENCE_MEMBERS = frozenset({"NEXTVAL", "CURRVAL"})


def is_date_expression(node: exp.Expression) -> bool:
    """True for SYSDATE-like calls, date conversions, date casts and date-named columns."""
    node = node.unnest()
    if isinstance(node, _DATE_NODES):
        return True
    if isinstance(node, exp.Cast):
        return node.to.is_type("date", "timestamp", "datetime")
    if isinstance(node, exp.Anonymous):
        return node.name.upper() in _DATE_KEYWORDS
    if isinstance(node, exp.Column):
        if not node.table and node.name.upper() in _DATE_KEYWORDS:
            return True
        return bool(_DATE_COLUMN.fullmatch(node.name))
    return False


def _day_count(node: exp.Expression) -> Optional[str]:
    """The numeric literal text of *node*, or None when it is not a plain number."""
    node = node.unnest()
    if isinstance(node, exp.Literal) and not node.is_string and _NUMBER.fullmatch(node.this):
        return node.this
    return None


class TreeRewriter:
    """
    Applies the registry rules of one (source, target) pair to statement trees.

    Warnings and applied-rule descriptions are appended to the lists given at
    construction, the same collectors the rest of the statement's conversion
    uses. An instance is cheap; make one per statement.
    """

    def __init__(self, source: DialectType, target: DialectType,
                 warnings: List[ConversionWarning], applied_rules: List[str],
                 *, replace_unsupported: bool = True):
        self.logger = setup_logger('TreeRewriter')
        self.source = source
        self.target = target
        self.warnings = warnings
        self.applied_rules = applied_rules
        self.replace_unsupported = replace_unsupported
        self.functions = get_function_registry()
        self._reported = set()

    @property
    def _oracle_to_other(self) -> bool:
        return self.source.is_oracle_compatible and not self.target.is_oracle_compatible

    def rewrite(self, expression: exp.Expression, text: str) -> exp.Expression:
        """
        Return a rewritten copy of *expression*.

        Args:
            expression: A tree parsed from *text* in the source dialect.
            text: The exact text the tree was parsed from; function names are
                read from it.
        """
        return expression.transform(self._rewrite_node, text)

    def _rewrite_node(self, node: exp.Expression, text: str) -> exp.Expression:
        if isinstance(node, exp.DataType):
            return self._rewrite_data_type(node)
        if isinstance(node, exp.Column):
            return self._rewrite_column(node)
        if isinstance(node, (exp.Add, exp.Sub)) and self._oracle_to_other:
            return self._rewrite_date_arithmetic(node, text)
        if isinstance(node, exp.DPipe):
            self._note_concat()
            return node
        if isinstance(node, exp.Func):
            return self._rewrite_function(node, text)
        return node

    def _once(self, key: str) -> bool:
        if key in self._reported:
            return False
        self._reported.add(key)
        return True

    # ------------------------------------------------------------------
    # Function calls
    # ------------------------------------------------------------------

    def _call_parts(self, node: exp.Expression, text: str) -> Optional[Tuple[str, Optional[List[str]]]]:
        """(normalized name, argument texts) of a call; arguments are None for a bare word."""
        start = node.meta.get("start")
        if start is not None and text:
            source_text, offset = text, start
        else:
            source_text, offset = node.sql(dialect=self.source.sqlglot_dialect), 0

        match = _CALL_NAME.match(source_text, offset)
        if not match:
            return None
        name = normalize_rule_name(match.group(1))
        if not match.group(2):
            if offset == 0 and match.end() != len(source_text):
                return None
            return name, None
        close = find_matching_bracket(source_text, match.end())
        if close == NOT_FOUND:
            return None
        if offset == 0 and source_text[close:].strip():
            return None
        return name, split_arguments(source_text[match.end():close - 1])

    def _parse_fragment(self, fragment: str) -> Optional[exp.Expression]:
        try:
            node = sqlglot.parse_one(fragment, read=self.source.sqlglot_dialect)
        except (ParseError, TokenError) as e:
            self.logger.debug(f"Argument '{fragment}' does not parse on its own: {e}")
            return None
        return self.rewrite(node, fragment)

    def _parse_target(self, sql: str) -> Optional[exp.Expression]:
        try:
            return sqlglot.parse_one(sql, read=self.target.sqlglot_dialect)
        except (ParseError, TokenError) as e:
            self.logger.debug(f"Rewritten expression '{sql}' does not parse as {self.target.value}: {e}")
            return None

    def _render(self, node: exp.Expression) -> str:
        return node.sql(dialect=self.target.sqlglot_dialect)

    def _rewrite_function(self, node: exp.Expression, text: str) -> exp.Expression:
        parts = self._call_parts(node, text)
        if parts is None:
            return node
        name, args_text = parts
        if args_text is None and name not in NILADIC_FUNCTIONS:
            return node
        if name in _SEQUENCE_MEMBERS and self.source is DialectType.POSTGRESQL:
            return self._postgresql_sequence_call(node, name, args_text or [])

        rule = self.functions.lookup(self.source, self.target, name)
        if rule is None:
            return node
        report_rule_warning(rule, self.warnings)
        if rule.is_unsupported and not self.replace_unsupported:
            return node

        if isinstance(node, exp.GroupConcat) and rule.target_function_name in STRING_AGGREGATES:
            # sqlglot already reshapes ORDER BY / SEPARATOR between dialects.
            if name == "LISTAGG" and node.args.get("separator") is None:
                node.set("separator", exp.Literal.string(""))
            self.applied_rules.append(f"{name} -> {rule.target_function_name}")
            return node

        args = []
        for fragment in args_text or []:
            converted = self._parse_fragment(fragment)
            if converted is None:
                return node
            args.append(converted)

        replacement, description = self._apply_rule(name, rule, args, bare=args_text is None)
        if replacement is None:
            return node
        self.applied_rules.append(description)
        return replacement

    def _apply_rule(self, name: str, rule: FunctionMappingRule, args: List[exp.Expression],
                    *, bare: bool) -> Tuple[Optional[exp.Expression], str]:
        target_name = rule.target_function_name
        transform = rule.parameter_transform
        description = f"{name} -> {target_name}"

        if transform is ParameterTransform.NONE:
            if name == "WM_CONCAT" and target_name in STRING_AGGREGATES and len(args) == 1:
                return exp.GroupConcat(this=args[0], separator=exp.Literal.string(",")), description
            if not args and (target_name in NILADIC_FUNCTIONS or "(" in target_name):
                return exp.Var(this=target_name), description
            if bare:
                description = f"{name} -> {target_name}()"
            return exp.Anonymous(this=target_name, expressions=args), description

        if transform is ParameterTransform.SWAP_FIRST_TWO:
            if len(args) < 2:
                add_warning(self.warnings, WarningType.MANUAL_REVIEW_REQUIRED,
                            f"{name} called with {len(args)} argument(s); argument order not converted")
                return None, description
            swapped = [args[1], args[0]] + args[2:]
            return exp.Anonymous(this=target_name, expressions=swapped), f"{name}(a, b) -> {target_name}(b, a)"

        if transform is ParameterTransform.DATE_FORMAT_CONVERT:
            if len(args) < 2:
                add_warning(self.warnings, WarningType.MANUAL_REVIEW_REQUIRED,
                            f"{name} without a format mask left unchanged",
                            suggestion=f"Rewrite {name} manually for {self.target.value}")
                return None, description
            mask = args[1]
            if isinstance(mask, exp.Literal) and mask.is_string:
                translated = translate_date_format(mask.this, self.source, self.target)
                if translated != mask.this:
                    self.applied_rules.append(f"Date format '{mask.this}' -> '{translated}'")
                mask = exp.Literal.string(translated)
            else:
                add_warning(self.warnings, WarningType.MANUAL_REVIEW_REQUIRED,
                            f"{name} format mask is not a literal; translate it manually",
                            suggestion="Format tokens differ between Oracle-style and MySQL-style masks")
            return exp.Anonymous(this=target_name, expressions=[args[0], mask] + args[2:]), description

        if transform is ParameterTransform.TO_CASE_WHEN:
            case_text = case_when_expression(name, [self._render(a) for a in args])
            if case_text is None:
                add_warning(self.warnings, WarningType.MANUAL_REVIEW_REQUIRED,
                            f"{name} with {len(args)} argument(s) could not be rewritten as CASE")
                return None, description
            return self._parse_target(case_text), f"{name} -> CASE WHEN"

        # WRAP_WITH_FUNCTION
        needed = max((int(i) for i in TEMPLATE_PLACEHOLDER.findall(target_name)), default=-1) + 1
        if len(args) != needed:
            add_warning(self.warnings, WarningType.MANUAL_REVIEW_REQUIRED,
                        f"{name} with {len(args)} argument(s) has no direct {self.target.value} equivalent",
                        suggestion=f"Rewrite {name} manually")
            return None, description
        rendered = [self._render(a) for a in args]
        filled = TEMPLATE_PLACEHOLDER.sub(lambda m: rendered[int(m.group(1))], target_name)
        replacement = self._parse_target(filled) or exp.Var(this=filled)
        return replacement, f"{name} -> {TEMPLATE_PLACEHOLDER.sub('…', target_name)}"

    # ------------------------------------------------------------------
    # Sequences
    # ------------------------------------------------------------------

    def _sequence_function(self, sequence: str, member: str) -> exp.Expression:
        """``nextval('s')`` for PostgreSQL, the ``s_nextval()`` emulation function for MySQL."""
        if self.target is DialectType.POSTGRESQL:
            return exp.Anonymous(this=member.lower(), expressions=[exp.Literal.string(sequence)])
        bare = sequence.split(".")[-1]
        if self._once(f"sequence:{bare}"):
            add_warning(self.warnings, WarningType.PARTIAL_SUPPORT,
                        f"MySQL has no sequences; {bare}.{member} calls the emulation function {bare}_{member.lower()}()",
                        suggestion=f"Convert CREATE SEQUENCE {bare} to create the emulation table and functions")
        return exp.Anonymous(this=f"{bare}_{member.lower()}")

    def _postgresql_sequence_call(self, node: exp.Expression, member: str,
                                  args_text: List[str]) -> exp.Expression:
        if len(args_text) != 1:
            return node
        argument = self._parse_fragment(args_text[0])
        if not isinstance(argument, exp.Literal) or not argument.is_string:
            return node
        sequence = argument.this
        if self.target.is_oracle_compatible:
            parts = sequence.split(".")
            replacement = exp.column(member, table=parts[-1], db=parts[0] if len(parts) > 1 else None)
        else:
            replacement = self._sequence_function(sequence, member)
        self.applied_rules.append(f"{member.lower()}('{sequence}') -> {self._render(replacement)}")
        return replacement

    # ------------------------------------------------------------------
    # Columns: ROWID and sequence pseudo-columns
    # ------------------------------------------------------------------

    def _rewrite_column(self, node: exp.Column) -> exp.Expression:
        if not self._oracle_to_other:
            return node
        name = node.name.upper()
        if name == "ROWID" and not node.table:
            return self._rowid()
        if name in _SEQUENCE_MEMBERS and node.table:
            sequence = ".".join(part for part in (node.db, node.table) if part)
            replacement = self._sequence_function(sequence, name)
            self.applied_rules.append(f"{sequence}.{name} -> {self._render(replacement)}")
            return replacement
        return node

    def _rowid(self) -> exp.Expression:
        if self.target is DialectType.POSTGRESQL:
            if self._once("rowid"):
                self.applied_rules.append("ROWID -> ctid")
                add_warning(self.warnings, WarningType.PARTIAL_SUPPORT,
                            "Oracle ROWID was converted to PostgreSQL ctid",
                            suggestion="ctid changes after VACUUM FULL or UPDATE; prefer the primary key")
            return exp.column("ctid")
        if self._once("rowid"):
            self.applied_rules.append("ROWID -> NULL placeholder")
            add_warning(self.warnings, WarningType.UNSUPPORTED_FUNCTION,
                        "MySQL has no ROWID pseudo-column",
                        severity=WarningSeverity.ERROR,
                        suggestion="Use the PRIMARY KEY or an AUTO_INCREMENT column")
        placeholder = exp.Null()
        placeholder.add_comments(["ROWID: not supported by MySQL"])
        return placeholder

    # ------------------------------------------------------------------
    # Date arithmetic
    # ------------------------------------------------------------------

    def _rewrite_date_arithmetic(self, node: exp.Binary, text: str) -> exp.Expression:
        """Oracle ``date +/- n`` counts days; the targets need an explicit INTERVAL."""
        left, right = node.left, node.right
        if is_date_expression(left) and _day_count(right) is not None:
            date_side, count = left, _day_count(right)
        elif isinstance(node, exp.Add) and is_date_expression(right) and _day_count(left) is not None:
            date_side, count = right, _day_count(left)
        else:
            if isinstance(node, exp.Sub) and is_date_expression(left) and is_date_expression(right):
                if self._once("date-difference"):
                    add_warning(self.warnings, WarningType.SEMANTIC_DIFFERENCE,
                                f"Oracle date subtraction returns a number of days; {self.target.value} "
                                f"returns an interval for timestamps",
                                suggestion="Use DATEDIFF() for MySQL or EXTRACT(DAY FROM a - b) for PostgreSQL")
            return node

        if not _INTEGER.fullmatch(count):
            add_warning(self.warnings, WarningType.MANUAL_REVIEW_REQUIRED,
                        f"Date arithmetic with a fractional day count ({count}) left unchanged",
                        suggestion="Express the offset as INTERVAL 'n' HOUR / MINUTE")
            return node

        date_expression = self.rewrite(date_side, text)
        interval = exp.Interval(this=exp.Literal.number(count), unit=exp.Var(this="DAY"))
        operator = "+" if isinstance(node, exp.Add) else "-"
        self.applied_rules.append(f"date {operator} {count} -> INTERVAL {count} DAY")
        return type(node)(this=date_expression, expression=interval)

    # ------------------------------------------------------------------
    # Data types and operators
    # ------------------------------------------------------------------

    def _rewrite_data_type(self, node: exp.DataType) -> exp.Expression:
        if isinstance(node.parent, exp.DataType):
            return node
        type_text = node.sql(dialect=self.source.sqlglot_dialect)
        converted = convert_type_name(type_text, self.source, self.target, self.warnings)
        if converted == type_text:
            return node
        self.applied_rules.append(f"{type_text} -> {converted}")
        try:
            return sqlglot.parse_one(converted, read=self.target.sqlglot_dialect, into=exp.DataType)
        except (ParseError, TokenError):
            # Multi-word targets such as "INT AUTO_INCREMENT" are emitted verbatim.
            return exp.DataType(this=exp.DataType.Type.USERDEFINED, kind=converted)

    def _note_concat(self) -> None:
        if self.target is not DialectType.MYSQL or self.source is DialectType.MYSQL:
            return
        if not self._once("concat"):
            return
        self.applied_rules.append("|| -> CONCAT()")
        if self.source.is_oracle_compatible:
            add_warning(self.warnings, WarningType.SEMANTIC_DIFFERENCE,
                        "MySQL CONCAT returns NULL when any argument is NULL; Oracle || treats NULL as an empty string",
                        suggestion="Wrap nullable operands with IFNULL(x, '') or use CONCAT_WS('', ...)")
