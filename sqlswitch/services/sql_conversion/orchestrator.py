"""ConversionOrchestrator – high-level driver for SQL dialect conversion.

Responsibilities
----------------
1. Short-circuit same-dialect requests.
2. Split the input into statements (PL/SQL units kept whole for Oracle-family
   sources).
3. For each statement:
     • parse → AST path (`StatementConverter`)
     • parse failure → fallback pipeline (`FallbackPipeline`)
4. Aggregate converted statements, warnings and applied rules.
5. Apply the request options (strict mode, comments, pretty printing).

All detailed rewrite logic lives in the converter layer; the orchestrator only
handles routing, failure isolation and aggregation.

WHAT THIS CLASS DOES:
====================
- Creates the AST converter and the fallback pipeline once.
- Converts a whole input and never raises: any failure becomes an ERROR
  warning and the original SQL is returned.
- In a multi-statement input, a statement that fails is kept verbatim with one
  WARNING while the rest still convert. A single statement that fails to parse
  goes through the fallback pipeline instead.

FUNCTIONS:
==========
Public Functions (called by external code):
  - convert(): Main entry point, converts SQL text between two dialects.

Private Functions (internal helpers, start with _):
  - _convert_statement(): AST path or fallback for one statement.
  - _convert_batch(): per-statement conversion with failure isolation.
  - _apply_options(): strict mode, pretty printing and rule comments.
  - _format(): sqlglot pretty printing when the output re-parses and keeps
    its function names.

NOTE: Functions starting with _ are private (internal use only).
      Functions without _ are public (intended for external calling).
"""
import re
from typing import List, Optional, Set, Tuple, Union

import sqlglot
from sqlglot import exp
from sqlglot.errors import SqlglotError

from sqlswitch.utils.logger import setup_logger

from .converters.declarative.fallback_pipeline import FallbackPipeline, StageContext
from .converters.declarative.statement_converter import StatementConverter
from .models import (
    ConversionOptions,
    ConversionResult,
    ConversionWarning,
    DialectType,
    WarningSeverity,
    WarningType,
    escalate,
)
from .utils.parser_utils import parse_statement
from .utils.result_formatter import add_warning
from .utils.sql_preprocessing import join_statements, normalize_sql_text, split_statements
from .utils.sql_scanner import mask_literals


class ConversionOrchestrator:

    def __init__(self):
        self.logger = setup_logger('ConversionOrchestrator')
        self.statement_converter = StatementConverter()
        self.fallback_pipeline = FallbackPipeline()

    def convert(self, sql: str,
                source_dialect: Union[str, DialectType],
                target_dialect: Union[str, DialectType],
                options: Optional[ConversionOptions] = None) -> ConversionResult:
        """
        Convert SQL text from one dialect to another.

        Args:
            sql: One statement or a whole script.
            source_dialect: Dialect the SQL is written in.
            target_dialect: Dialect to produce.
            options: Request options; defaults come from settings.yaml.

        Returns:
            ConversionResult. Never raises.
        """
        try:
            source = DialectType.from_name(source_dialect)
            target = DialectType.from_name(target_dialect)
            if source is target:
                return ConversionResult(converted_sql=sql)
            options = options or ConversionOptions.from_config()

            self.logger.info(f"Starting SQL conversion: {source.value} -> {target.value}")
            statements = split_statements(normalize_sql_text(sql), plsql_blocks=source.is_oracle_compatible)
            if not statements:
                return ConversionResult(converted_sql=sql)

            if len(statements) == 1:
                converted, warnings, applied_rules = self._convert_statement(statements[0], source, target, options)
                if sql.rstrip().endswith(';') and not converted.rstrip().endswith(';'):
                    converted = converted.rstrip() + ';'
            else:
                converted, warnings, applied_rules = self._convert_batch(statements, source, target, options)

            applied_rules.append(f"Processed {len(statements)} statement(s): {source.value} -> {target.value}")
            return self._apply_options(converted, warnings, applied_rules, target, options)
        except Exception as e:
            self.logger.error(f"Conversion failed: {e}", exc_info=True)
            return ConversionResult(
                converted_sql=sql,
                warnings=[ConversionWarning(
                    type=WarningType.MANUAL_REVIEW_REQUIRED,
                    message=f"Conversion failed, original SQL returned: {e}",
                    severity=WarningSeverity.ERROR,
                    suggestion="Convert this SQL manually",
                )],
            )

    def _convert_statement(self, statement: str, source: DialectType, target: DialectType,
                           options: ConversionOptions) -> Tuple[str, List[ConversionWarning], List[str]]:
        parsed, failure = parse_statement(statement, source)
        if parsed is not None:
            ctx = StageContext(source=source, target=target, options=options)
            try:
                converted, logs = self.statement_converter.convert_statement(parsed, ctx)
            except SqlglotError as e:
                self.logger.warning(f"AST conversion failed, using the fallback pipeline: {e}")
                reason = f"{type(e).__name__}: {e}"
            else:
                self.logger.debug({'action': 'ast_path', 'details': logs[-1]['details'] if logs else None})
                return converted, ctx.warnings, ctx.applied_rules
        else:
            reason = failure.reason

        self.logger.info({'action': 'fallback', 'details': reason})
        warnings: List[ConversionWarning] = []
        add_warning(warnings, WarningType.SYNTAX_DIFFERENCE,
                    f"Statement converted with the fallback pipeline ({reason})",
                    severity=WarningSeverity.INFO)
        converted, stage_warnings, applied_rules, _ = self.fallback_pipeline.run(statement, source, target, options)
        return converted, warnings + stage_warnings, applied_rules

    def _convert_batch(self, statements: List[str], source: DialectType, target: DialectType,
                       options: ConversionOptions) -> Tuple[str, List[ConversionWarning], List[str]]:
        converted_statements = []
        warnings: List[ConversionWarning] = []
        applied_rules: List[str] = []
        for i, statement in enumerate(statements, start=1):
            try:
                converted, statement_warnings, statement_rules = self._convert_statement(
                    statement, source, target, options)
            except Exception as e:
                self.logger.error(f"Error converting statement {i}/{len(statements)}: {e}", exc_info=True)
                converted_statements.append(statement)
                add_warning(warnings, WarningType.MANUAL_REVIEW_REQUIRED,
                            f"Statement {i} could not be converted and was kept unchanged: {e}",
                            severity=WarningSeverity.WARNING)
                continue
            converted_statements.append(converted)
            warnings.extend(statement_warnings)
            applied_rules.extend(statement_rules)
        return join_statements(converted_statements), warnings, applied_rules

    def _apply_options(self, converted: str, warnings: List[ConversionWarning], applied_rules: List[str],
                       target: DialectType, options: ConversionOptions) -> ConversionResult:
        if options.format_sql:
            converted = self._format(converted, target, warnings, applied_rules)
        if options.strict_mode:
            warnings = [escalate(w) for w in warnings]
        result = ConversionResult(converted_sql=converted, warnings=warnings, applied_rules=applied_rules)
        if options.enable_comments and result.applied_rules:
            header = "\n".join(f"-- {rule}" for rule in result.applied_rules)
            result.converted_sql = f"{header}\n{result.converted_sql}"
        self.logger.info(
            f"Conversion finished: {len(result.warnings)} warning(s), {len(result.applied_rules)} rule(s) applied")
        return result

    def _format(self, sql: str, target: DialectType, warnings: List[ConversionWarning],
                applied_rules: List[str]) -> str:
        dialect = target.sqlglot_dialect
        try:
            expressions = [e for e in sqlglot.parse(sql, read=dialect) if e is not None]
        except Exception as e:
            self.logger.debug(f"Output does not re-parse as {target.value}, formatting skipped: {e}")
            add_warning(warnings, WarningType.SYNTAX_DIFFERENCE,
                        f"SQL formatting skipped: output does not parse as {target.value}",
                        severity=WarningSeverity.INFO)
            return sql
        if not expressions or any(isinstance(e, exp.Command) for e in expressions):
            add_warning(warnings, WarningType.SYNTAX_DIFFERENCE,
                        f"SQL formatting skipped: output does not parse as {target.value}",
                        severity=WarningSeverity.INFO)
            return sql
        formatted = ";\n".join(e.sql(dialect=dialect, pretty=True) for e in expressions) + (
            ";" if sql.rstrip().endswith(";") else "")
        lost = _function_names(sql) - _function_names(formatted)
        if lost:
            # sqlglot canonicalises some names (IFNULL -> COALESCE); keep the converted text instead.
            add_warning(warnings, WarningType.SYNTAX_DIFFERENCE,
                        f"SQL formatting skipped: pretty printing would rename {', '.join(sorted(lost))}",
                        severity=WarningSeverity.INFO)
            return sql
        applied_rules.append("Output formatted")
        return formatted


_FUNCTION_CALL = re.compile(r"(?<![\w$#.])([A-Za-z_][\w$#]*(?:\.[A-Za-z_][\w$#]*)*)\s*\(")
# Keywords that may precede a parenthesis without naming a function.
_NOT_FUNCTIONS = frozenset({
    "AND", "AS", "BY", "ELSE", "EXISTS", "FROM", "IN", "INTO", "IS", "JOIN", "KEY", "NOT", "ON", "OR",
    "OVER", "SELECT", "TABLE", "THEN", "USING", "VALUES", "WHEN", "WHERE", "WITH",
})


def _function_names(sql: str) -> Set[str]:
    """Upper-cased names of everything called like a function in *sql*."""
    names = {m.group(1).upper() for m in _FUNCTION_CALL.finditer(mask_literals(sql))}
    return names - _NOT_FUNCTIONS
