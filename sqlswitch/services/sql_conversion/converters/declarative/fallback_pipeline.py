"""
Text pipeline for statements the AST path cannot handle.

Each stage is a plain ``(sql, context) -> sql`` function. Stages run in a fixed
order; warnings and applied rules collect on the shared context.

FUNCTIONS:
==========
Public Functions:
    run         - convert one statement, return (sql, warnings, applied_rules, logs)

Private Functions (stages, in order):
    _strip_ddl_options          - Oracle storage clauses, DEFAULT SYSDATE
    _collapse_schema_names      - schema prefixes (MySQL targets)
    _remove_comment_on          - COMMENT ON (MySQL targets)
    _apply_structural           - partition, package, routine header, procedure
                                  body, trigger, materialized view, sequence,
                                  vendor runtime, hint
    _rewrite_oracle_syntax      - FROM DUAL, SYSDATE +/- n, notes on (+), CONNECT BY
                                  and MERGE
    _rewrite_pg_casts           - PostgreSQL :: casts to CAST()
    _rewrite_functions          - registry function rules
    _rewrite_data_types         - registry data-type rules
    _rewrite_operators          - || to CONCAT, identifier quotes
    _normalize_whitespace       - collapse runs of blank lines
"""
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from sqlswitch.utils.logger import setup_logger

from ...errors import StatementConversionError
from ...models import ConversionOptions, ConversionWarning, DialectType, WarningType
from ...utils.result_formatter import add_warning
from ...utils.sql_preprocessing import leading_keyword, starts_with_sql_verb
from ...utils.sql_scanner import mask_literals
from ..inline_rewriter import (
    convert_identifier_quotes,
    rewrite_concat_operator,
    rewrite_data_types,
    rewrite_functions,
    rewrite_pg_casts,
)
from ..structural import (
    HintConverter,
    MaterializedViewConverter,
    PackageConverter,
    PartitionConverter,
    ProcedureBodyConverter,
    RoutineConverter,
    SequenceConverter,
    TriggerConverter,
    VendorRuntimeConverter,
)
from .ddl_handler import DdlHandler

_BLANK_LINES = re.compile(r"\n\s*\n\s*\n")
_FROM_DUAL = re.compile(r"\s+FROM\s+(?:SYS\s*\.\s*)?DUAL\b(?!\s*[.,])", re.IGNORECASE)
_DATE_ARITHMETIC = re.compile(
    r"(?<![\w$#.])(?P<date>SYSDATE|SYSTIMESTAMP|CURRENT_DATE|TRUNC\s*\(\s*SYSDATE\s*\))"
    r"\s*(?P<op>[+-])\s*(?P<days>\d*\.?\d+)\b(?!\s*[*/(.])",
    re.IGNORECASE,
)
_JOIN_MARK = re.compile(r"\(\s*\+\s*\)")
_CONNECT_BY = re.compile(r"\bCONNECT\s+BY\b", re.IGNORECASE)
_MERGE = re.compile(r"^\s*MERGE\s+INTO\b", re.IGNORECASE)


@dataclass
class StageContext:
    """Per-statement state shared by the stages of both conversion paths."""
    source: DialectType
    target: DialectType
    options: ConversionOptions
    warnings: List[ConversionWarning] = field(default_factory=list)
    applied_rules: List[str] = field(default_factory=list)
    logs: List[Dict[str, Any]] = field(default_factory=list)


class FallbackPipeline:
    """
    Runs the ordered text stages on one statement.

    The structural converters are stateless; one pipeline instance can be
    shared by every request.
    """

    def __init__(self):
        self.logger = setup_logger('FallbackPipeline')
        self.ddl_handler = DdlHandler()
        self.structural_converters = [
            PartitionConverter(),
            PackageConverter(),
            RoutineConverter(),
            ProcedureBodyConverter(),
            TriggerConverter(),
            MaterializedViewConverter(),
            SequenceConverter(),
            VendorRuntimeConverter(),
            HintConverter(),
        ]
        self.stages = [
            ('ddl_options', self._strip_ddl_options),
            ('schema_names', self._collapse_schema_names),
            ('comment_on', self._remove_comment_on),
            ('structural', self._apply_structural),
            ('oracle_syntax', self._rewrite_oracle_syntax),
            ('pg_casts', self._rewrite_pg_casts),
            ('functions', self._rewrite_functions),
            ('data_types', self._rewrite_data_types),
            ('operators', self._rewrite_operators),
            ('whitespace', self._normalize_whitespace),
        ]

    def run(self, sql: str, source: DialectType, target: DialectType,
            options: Optional[ConversionOptions] = None
            ) -> Tuple[str, List[ConversionWarning], List[str], List[Dict[str, Any]]]:
        """
        Convert one statement through every stage.

        Raises:
            StatementConversionError: The statement does not start with a
                recognised SQL verb.
        """
        if not starts_with_sql_verb(sql):
            keyword = leading_keyword(sql) or sql.strip()[:20]
            raise StatementConversionError(f"Unrecognized statement starting with '{keyword}'", sql)

        context = StageContext(source=source, target=target, options=options or ConversionOptions())
        text = sql
        for name, stage in self.stages:
            converted = stage(text, context)
            if converted != text:
                context.logs.append({'action': name, 'details': f'{len(text)} -> {len(converted)} chars'})
            text = converted
        self.logger.debug({'action': 'fallback', 'details': [log['action'] for log in context.logs]})
        return text, context.warnings, context.applied_rules, context.logs

    # ------------------------------------------------------------------
    # Stages
    # ------------------------------------------------------------------

    def _strip_ddl_options(self, sql: str, ctx: StageContext) -> str:
        return self.ddl_handler.strip_storage_options(sql, ctx.source, ctx.target, ctx.warnings, ctx.applied_rules)

    def _collapse_schema_names(self, sql: str, ctx: StageContext) -> str:
        return self.ddl_handler.collapse_schema_names(sql, ctx.source, ctx.target, ctx.warnings, ctx.applied_rules)

    def _remove_comment_on(self, sql: str, ctx: StageContext) -> str:
        return self.ddl_handler.remove_comment_on(sql, ctx.source, ctx.target, ctx.warnings, ctx.applied_rules)

    def _apply_structural(self, sql: str, ctx: StageContext) -> str:
        for converter in self.structural_converters:
            converted = converter.convert(sql, ctx.source, ctx.target, ctx.warnings, ctx.applied_rules)
            if converted != sql:
                ctx.logs.append({'action': f'structural:{converter.name}', 'details': 'converted'})
            sql = converted
        return sql

    def _rewrite_oracle_syntax(self, sql: str, ctx: StageContext) -> str:
        if ctx.source.is_oracle_compatible and not ctx.target.is_oracle_compatible:
            sql = self._rewrite_date_arithmetic(sql, ctx)
            if ctx.target is DialectType.POSTGRESQL:
                sql = self._remove_from_dual(sql, ctx)
            masked = mask_literals(sql)
            if _JOIN_MARK.search(masked):
                add_warning(ctx.warnings, WarningType.MANUAL_REVIEW_REQUIRED,
                            "Oracle (+) outer join syntax was not converted",
                            suggestion="Rewrite the (+) conditions as LEFT JOIN ... ON")
            if _CONNECT_BY.search(masked):
                add_warning(ctx.warnings, WarningType.MANUAL_REVIEW_REQUIRED,
                            "Hierarchical query (CONNECT BY) was not converted",
                            suggestion="Rewrite it as a WITH RECURSIVE common table expression")
        if ctx.target is DialectType.MYSQL and _MERGE.search(mask_literals(sql)):
            add_warning(ctx.warnings, WarningType.MANUAL_REVIEW_REQUIRED,
                        "MERGE has no MySQL equivalent and was not converted",
                        suggestion="Use INSERT ... ON DUPLICATE KEY UPDATE syntax")
        return sql

    def _rewrite_date_arithmetic(self, sql: str, ctx: StageContext) -> str:
        masked = mask_literals(sql)
        for match in reversed(list(_DATE_ARITHMETIC.finditer(masked))):
            days, op = match.group('days'), match.group('op')
            if not days.isdigit():
                add_warning(ctx.warnings, WarningType.MANUAL_REVIEW_REQUIRED,
                            f"Fractional day arithmetic '{op} {days}' was not converted",
                            suggestion="Express the offset as an INTERVAL in hours, minutes or seconds")
                continue
            interval = f"INTERVAL '{days} DAY'" if ctx.target is DialectType.POSTGRESQL else f"INTERVAL {days} DAY"
            date = sql[match.start('date'):match.end('date')]
            sql = sql[:match.start()] + f"{date} {op} {interval}" + sql[match.end():]
            ctx.applied_rules.append(f"date {op} {days} -> INTERVAL {days} DAY")
        return sql

    def _remove_from_dual(self, sql: str, ctx: StageContext) -> str:
        matches = list(_FROM_DUAL.finditer(mask_literals(sql)))
        for match in reversed(matches):
            sql = sql[:match.start()] + sql[match.end():]
        if matches:
            ctx.applied_rules.append("FROM DUAL removed")
        return sql

    def _rewrite_pg_casts(self, sql: str, ctx: StageContext) -> str:
        if ctx.source is not DialectType.POSTGRESQL or ctx.target is DialectType.POSTGRESQL:
            return sql
        return rewrite_pg_casts(sql, ctx.warnings, ctx.applied_rules)

    def _rewrite_functions(self, sql: str, ctx: StageContext) -> str:
        return rewrite_functions(sql, ctx.source, ctx.target, ctx.warnings, ctx.applied_rules,
                                 replace_unsupported=ctx.options.replace_unsupported_functions)

    def _rewrite_data_types(self, sql: str, ctx: StageContext) -> str:
        return rewrite_data_types(sql, ctx.source, ctx.target, ctx.warnings, ctx.applied_rules)

    def _rewrite_operators(self, sql: str, ctx: StageContext) -> str:
        if ctx.target is DialectType.MYSQL and ctx.source is not DialectType.MYSQL:
            sql = rewrite_concat_operator(sql, ctx.source, ctx.warnings, ctx.applied_rules)
        return convert_identifier_quotes(sql, ctx.source, ctx.target, ctx.applied_rules, ctx.warnings)

    def _normalize_whitespace(self, sql: str, ctx: StageContext) -> str:
        return _BLANK_LINES.sub("\n\n", sql).strip()
