"""
AST path: converts statements sqlglot parsed cleanly.

Registry rules are applied to the parse tree by ``TreeRewriter``, the
statement-level Oracle constructs by ``query_rewriter``, and sqlglot generates
the target text. Pagination, identifier quoting and ``::`` casts are left to
sqlglot's generator; only the rule descriptions are recorded here.

FUNCTIONS:
==========
Public Functions:
    convert_statement   - convert a ParsedStatement for the context's target dialect

Private Functions:
    _rewrite_tree       - node rules, then the statement-level rewrites
    _from_dual          - drop FROM DUAL for PostgreSQL
    _mysql_table_options - drop ENGINE / CHARSET options, map AUTO_INCREMENT columns
    _recursive_ctes     - add RECURSIVE to self-referencing CTEs
    _mysql_limit        - LIMIT on UPDATE / DELETE
    _generated_rules    - record what the generator rewrites by itself
    _diagnostics        - version notes from the statement analysis
"""
import re
from typing import Any, Dict, List, Tuple

from sqlglot import exp

from sqlswitch.utils.logger import setup_logger

from ...models import DialectType, WarningSeverity, WarningType
from ...utils.parser_utils import ParsedStatement
from ...utils.regex_utils import compile_rules
from ...utils.result_formatter import add_warning
from ...utils.sql_scanner import mask_literals
from ..tree_rewriter import TreeRewriter
from .fallback_pipeline import StageContext
from .query_rewriter import rewrite_connect_by, rewrite_join_marks, rewrite_merge, rewrite_rownum

_ORACLE_FAMILY = (DialectType.ORACLE, DialectType.TIBERO)

# (name, pattern, flags, sources, targets); the generator performs the rewrite itself.
_PAGINATION_RULES = compile_rules([
    ('OFFSET ... FETCH -> LIMIT ... OFFSET',
     r"\bOFFSET\s+\d+\s+ROWS?\s+FETCH\s+(?:FIRST|NEXT)\s+\d+\s+ROWS?\s+ONLY\b", 'IGNORECASE',
     _ORACLE_FAMILY, (DialectType.MYSQL,)),
    ('FETCH FIRST -> LIMIT',
     r"(?<!ROWS\s)\bFETCH\s+(?:FIRST|NEXT)\s+\d+\s+ROWS?\s+ONLY\b", 'IGNORECASE',
     _ORACLE_FAMILY, (DialectType.MYSQL,)),
    ('LIMIT m, n -> LIMIT n OFFSET m',
     r"\bLIMIT\s+\d+\s*,\s*\d+\b", 'IGNORECASE',
     (DialectType.MYSQL,), (DialectType.POSTGRESQL,)),
    ('LIMIT m, n -> OFFSET ... FETCH',
     r"\bLIMIT\s+\d+\s*,\s*\d+\b", 'IGNORECASE',
     (DialectType.MYSQL,), _ORACLE_FAMILY),
    ('LIMIT ... OFFSET -> OFFSET ... FETCH',
     r"\bLIMIT\s+\d+\s+OFFSET\s+\d+\b", 'IGNORECASE',
     (DialectType.MYSQL, DialectType.POSTGRESQL), _ORACLE_FAMILY),
    ('LIMIT -> FETCH FIRST',
     r"\bLIMIT\s+\d+\b(?!\s*(?:,|OFFSET\b))", 'IGNORECASE',
     (DialectType.MYSQL, DialectType.POSTGRESQL), _ORACLE_FAMILY),
])

_QUERY_TYPES = (exp.Select, exp.Union, exp.Subquery) + ((exp.SetOperation,) if hasattr(exp, "SetOperation") else ())
_MYSQL_TABLE_OPTIONS = (exp.EngineProperty, exp.CharacterSetProperty, exp.CollateProperty, exp.AutoIncrementProperty)


class StatementConverter:
    """
    Converts one parsed statement: rewrites the tree, then lets sqlglot
    generate it in the target dialect.
    """

    def __init__(self):
        self.logger = setup_logger('StatementConverter')

    def convert_statement(self, parsed: ParsedStatement, ctx: StageContext) -> Tuple[str, List[Dict[str, Any]]]:
        """
        Converts a single parsed statement.

        Args:
            parsed: Output of ``parse_statement``.
            ctx: Dialect pair, options and the warning / rule collectors.

        Returns:
            The converted SQL and the action logs.
        """
        self.logger.debug({'action': 'ast_route', 'details': f'{parsed.analysis.statement_type}: '
                                                             f'{ctx.source.value} -> {ctx.target.value}'})
        if ctx.source.is_oracle_compatible and ctx.target.is_oracle_compatible:
            # Tibero accepts Oracle syntax as it is.
            converted = parsed.sql
        else:
            tree = self._rewrite_tree(parsed, ctx)
            converted = tree.sql(dialect=ctx.target.sqlglot_dialect)
        self._diagnostics(parsed, ctx)
        ctx.logs.append({'action': 'ast_convert', 'details': parsed.analysis.to_dict()})
        return converted, ctx.logs

    def _rewrite_tree(self, parsed: ParsedStatement, ctx: StageContext) -> exp.Expression:
        rewriter = TreeRewriter(ctx.source, ctx.target, ctx.warnings, ctx.applied_rules,
                                replace_unsupported=ctx.options.replace_unsupported_functions)
        tree = rewriter.rewrite(parsed.expression, parsed.sql)
        if ctx.source.is_oracle_compatible:
            tree = rewrite_join_marks(tree, ctx)
            tree = rewrite_connect_by(tree, parsed.sql, ctx)
            tree = rewrite_rownum(tree, ctx)
            if ctx.target is DialectType.POSTGRESQL:
                self._from_dual(tree, ctx)
        tree = rewrite_merge(tree, ctx)
        if ctx.source is DialectType.MYSQL and ctx.target is not DialectType.MYSQL:
            self._mysql_table_options(tree, ctx)
        self._recursive_ctes(tree, ctx)
        self._mysql_limit(parsed, tree, ctx)
        self._generated_rules(parsed, tree, ctx)
        return tree

    # ------------------------------------------------------------------
    # Tree rewrites
    # ------------------------------------------------------------------

    def _from_dual(self, tree: exp.Expression, ctx: StageContext) -> None:
        removed = False
        for select in tree.find_all(exp.Select):
            source = select.args.get("from_")
            if source is None or select.args.get("joins"):
                continue
            table = source.this
            if isinstance(table, exp.Table) and table.name.upper() == "DUAL" and not table.args.get("db"):
                select.set("from_", None)
                removed = True
        if removed:
            ctx.applied_rules.append("FROM DUAL removed")

    def _mysql_table_options(self, tree: exp.Expression, ctx: StageContext) -> None:
        options = list(tree.find_all(*_MYSQL_TABLE_OPTIONS))
        for option in options:
            properties = option.parent
            option.pop()
            if isinstance(properties, exp.Properties) and not properties.expressions:
                properties.pop()
        if options:
            ctx.applied_rules.append("MySQL table options removed")
            add_warning(ctx.warnings, WarningType.SYNTAX_DIFFERENCE,
                        f"ENGINE / CHARSET / AUTO_INCREMENT table options have no {ctx.target.value} equivalent "
                        f"and were removed")

        identities = list(tree.find_all(exp.AutoIncrementColumnConstraint))
        if not identities:
            return
        if ctx.target.is_oracle_compatible:
            for constraint in identities:
                constraint.replace(exp.GeneratedAsIdentityColumnConstraint(this=False))
        # The PostgreSQL generator turns AUTO_INCREMENT columns into identity columns itself.
        ctx.applied_rules.append("AUTO_INCREMENT -> GENERATED BY DEFAULT AS IDENTITY")

    def _recursive_ctes(self, tree: exp.Expression, ctx: StageContext) -> None:
        recursive = False
        for with_ in tree.find_all(exp.With):
            if not with_.recursive:
                for cte in with_.expressions:
                    alias = (cte.alias or "").upper()
                    if alias and any(t.name.upper() == alias for t in cte.this.find_all(exp.Table)):
                        with_.set("recursive", True)
                        ctx.applied_rules.append("WITH -> WITH RECURSIVE")
                        break
            recursive = recursive or with_.recursive
        if recursive and ctx.target is DialectType.MYSQL:
            add_warning(ctx.warnings, WarningType.COMPATIBILITY_ISSUE,
                        "WITH RECURSIVE requires MySQL 8.0 or later",
                        severity=WarningSeverity.INFO)

    def _mysql_limit(self, parsed: ParsedStatement, tree: exp.Expression, ctx: StageContext) -> None:
        if ctx.source is not DialectType.MYSQL or isinstance(parsed.expression, _QUERY_TYPES):
            return
        if tree.args.get("limit") is not None:
            add_warning(ctx.warnings, WarningType.MANUAL_REVIEW_REQUIRED,
                        f"LIMIT on a {parsed.analysis.statement_type} statement has no {ctx.target.value} equivalent",
                        suggestion="Restrict the affected rows with a key-based subquery")

    # ------------------------------------------------------------------
    # Rule descriptions for rewrites the generator performs
    # ------------------------------------------------------------------

    def _generated_rules(self, parsed: ParsedStatement, tree: exp.Expression, ctx: StageContext) -> None:
        masked = mask_literals(parsed.sql)
        if isinstance(parsed.expression, _QUERY_TYPES):
            for name, pattern, sources, targets in _PAGINATION_RULES:
                if ctx.source in sources and ctx.target in targets and pattern.search(masked):
                    ctx.applied_rules.append(name)

        if ctx.source is DialectType.POSTGRESQL and "::" in masked:
            for cast in parsed.expression.find_all(exp.Cast):
                type_text = cast.to.sql(dialect="postgres")
                if cast.to.is_type("array"):
                    add_warning(ctx.warnings, WarningType.DATA_TYPE_MISMATCH,
                                f"Array cast ::{type_text} has no equivalent",
                                suggestion="Store arrays as JSON or in a child table")
                ctx.applied_rules.append(f"::{type_text} -> CAST(... AS {type_text})")

        source_quote, target_quote = ctx.source.quote_char, ctx.target.quote_char
        if source_quote != target_quote and re.search(re.escape(source_quote), masked):
            if any(i.quoted for i in tree.find_all(exp.Identifier)):
                ctx.applied_rules.append(
                    f"Identifier quotes {source_quote}…{source_quote} -> {target_quote}…{target_quote}")

    def _diagnostics(self, parsed: ParsedStatement, ctx: StageContext) -> None:
        if ctx.target is not DialectType.MYSQL or ctx.source is DialectType.MYSQL:
            return
        analysis = parsed.analysis
        if analysis.window_function_count:
            add_warning(ctx.warnings, WarningType.COMPATIBILITY_ISSUE,
                        "Window functions require MySQL 8.0 or later",
                        severity=WarningSeverity.INFO)
        if analysis.cte_count:
            add_warning(ctx.warnings, WarningType.COMPATIBILITY_ISSUE,
                        "Common table expressions require MySQL 8.0 or later",
                        severity=WarningSeverity.INFO)
