"""
Statement-level rewrites of Oracle query constructs on sqlglot trees.

These work on the whole statement rather than on single nodes: a ROWNUM filter
moves from WHERE to LIMIT, ``(+)`` join marks become ANSI joins, a
hierarchical query becomes a recursive CTE and MERGE becomes the MySQL upsert.
Each function returns the (possibly new) tree; when a construct is present but
cannot be converted the tree is returned unchanged with a warning that says
how to finish the job by hand.

FUNCTIONS:
==========
    rewrite_rownum          - ``WHERE ROWNUM <= n`` -> ``LIMIT n``
    rewrite_join_marks      - ``a.x = b.y(+)`` -> ``LEFT JOIN b ON ...``
    rewrite_connect_by      - START WITH / CONNECT BY -> WITH RECURSIVE
    rewrite_merge           - MERGE for PostgreSQL 15+ and MySQL
"""
import re
from typing import List, Optional

import sqlglot
from sqlglot import exp, transforms
from sqlglot.errors import ParseError, SqlglotError, TokenError

from ...models import DialectType, WarningSeverity, WarningType
from ...utils.result_formatter import add_warning
from ...utils.sql_scanner import mask_literals
from .fallback_pipeline import StageContext

HIERARCHY_CTE = "hierarchy"

_HIERARCHY_EXTRAS = re.compile(
    r"\b(?:SYS_CONNECT_BY_PATH|CONNECT_BY_ROOT|CONNECT_BY_ISLEAF|CONNECT_BY_ISCYCLE|NOCYCLE|SIBLINGS)\b",
    re.IGNORECASE,
)


def _is_rownum(node: exp.Expression) -> bool:
    return isinstance(node, exp.Column) and not node.table and node.name.upper() == "ROWNUM"


def _rownum_bound(condition: exp.Expression) -> Optional[int]:
    """Row count of ``ROWNUM <= n`` / ``ROWNUM < n`` / ``ROWNUM = 1``; None otherwise."""
    if not isinstance(condition, (exp.LTE, exp.LT, exp.EQ)) or not _is_rownum(condition.left):
        return None
    bound = condition.right
    if not isinstance(bound, exp.Literal) or bound.is_string or not bound.this.isdigit():
        return None
    n = int(bound.this)
    if isinstance(condition, exp.LT):
        return n - 1
    if isinstance(condition, exp.EQ):
        return 1 if n == 1 else None
    return n


def rewrite_rownum(tree: exp.Expression, ctx: StageContext) -> exp.Expression:
    if not any(_is_rownum(c) for c in tree.find_all(exp.Column)):
        return tree

    limit = None
    candidate = tree.copy()
    where = candidate.args.get("where") if isinstance(candidate, exp.Select) else None
    if where is not None and not candidate.args.get("limit") and not candidate.args.get("fetch"):
        conjuncts = list(where.this.flatten()) if isinstance(where.this, exp.And) else [where.this]
        for condition in conjuncts:
            limit = _rownum_bound(condition)
            if limit is None:
                continue
            remaining = [c for c in conjuncts if c is not condition]
            if remaining:
                where.set("this", exp.and_(*remaining))
            else:
                candidate.set("where", None)
            break

    if limit is None or any(_is_rownum(c) for c in candidate.find_all(exp.Column)):
        add_warning(ctx.warnings, WarningType.MANUAL_REVIEW_REQUIRED,
                    "Complex ROWNUM usage detected",
                    suggestion=f"Use ROW_NUMBER() OVER (...) or LIMIT in {ctx.target.value}")
        ctx.applied_rules.append("ROWNUM detected - manual conversion required")
        return tree

    candidate.set("limit", exp.Limit(expression=exp.Literal.number(limit)))
    ctx.applied_rules.append(f"ROWNUM filter -> LIMIT {limit}")
    if candidate.args.get("order"):
        add_warning(ctx.warnings, WarningType.SEMANTIC_DIFFERENCE,
                    "ROWNUM filters rows before ORDER BY; LIMIT applies after it",
                    suggestion="Check that the sorted result is the one intended")
    return candidate


def rewrite_join_marks(tree: exp.Expression, ctx: StageContext) -> exp.Expression:
    if not any(c.args.get("join_mark") for c in tree.find_all(exp.Column)):
        return tree
    try:
        converted = transforms.eliminate_join_marks(tree.copy())
    except (AssertionError, SqlglotError) as e:
        add_warning(ctx.warnings, WarningType.MANUAL_REVIEW_REQUIRED,
                    f"Oracle (+) outer join could not be converted automatically: {e}",
                    suggestion="Rewrite the join as ANSI LEFT JOIN ... ON")
        return tree
    ctx.applied_rules.append("(+) outer join -> LEFT JOIN")
    return converted


def _identifier(name: str, ctx: StageContext) -> str:
    return exp.to_identifier(name).sql(dialect=ctx.target.sqlglot_dialect)


def _hierarchy_cte(select: exp.Select, connect: exp.Connect, text: str,
                   ctx: StageContext) -> Optional[exp.CTE]:
    """The recursive CTE equivalent to *connect*, or None when the query is not a plain tree walk."""
    if connect.args.get("nocycle") or _HIERARCHY_EXTRAS.search(mask_literals(text)):
        return None
    source = select.args.get("from_")
    if source is None or not isinstance(source.this, exp.Table) or select.args.get("joins"):
        return None
    condition = connect.args.get("connect")
    if not isinstance(condition, exp.EQ) or len(list(select.find_all(exp.Prior))) != 1:
        return None
    if isinstance(condition.left, exp.Prior):
        prior, other = condition.left.this, condition.right
    elif isinstance(condition.right, exp.Prior):
        prior, other = condition.right.this, condition.left
    else:
        return None
    if not isinstance(prior, exp.Column) or not isinstance(other, exp.Column):
        return None

    dialect = ctx.target.sqlglot_dialect
    table = source.this
    alias = _identifier(table.alias_or_name, ctx)
    table_sql = table.sql(dialect=dialect)
    start = connect.args.get("start")
    start_sql = f" WHERE {start.sql(dialect=dialect)}" if start is not None else ""
    query = (
        f"SELECT {alias}.*, 1 AS level FROM {table_sql}{start_sql} "
        f"UNION ALL "
        f"SELECT {alias}.*, h.level + 1 FROM {table_sql} JOIN {HIERARCHY_CTE} AS h "
        f"ON {alias}.{_identifier(other.name, ctx)} = h.{_identifier(prior.name, ctx)}"
    )
    try:
        body = sqlglot.parse_one(query, read=dialect)
    except (ParseError, TokenError):
        return None
    return exp.CTE(this=body, alias=exp.TableAlias(this=exp.to_identifier(HIERARCHY_CTE)))


def rewrite_connect_by(tree: exp.Expression, text: str, ctx: StageContext) -> exp.Expression:
    """
    Rewrite ``START WITH ... CONNECT BY PRIOR parent = child`` as a recursive CTE.

    The CTE is aliased with the original table's alias so the select list,
    WHERE and ORDER BY keep working unchanged; LEVEL resolves to the CTE's
    ``level`` column.
    """
    if tree.find(exp.Connect) is None:
        return tree
    connect = tree.args.get("connect") if isinstance(tree, exp.Select) else None
    cte = _hierarchy_cte(tree, connect, text, ctx) if connect is not None else None
    if cte is None:
        add_warning(ctx.warnings, WarningType.MANUAL_REVIEW_REQUIRED,
                    "Hierarchical query (CONNECT BY) could not be converted automatically",
                    suggestion="Rewrite it as WITH RECURSIVE: START WITH as the base case, "
                               "CONNECT BY as the recursive JOIN")
        return tree

    select = tree.copy()
    alias = select.args["from_"].this.alias_or_name
    select.set("connect", None)
    select.set("from_", exp.From(this=exp.Table(this=exp.to_identifier(HIERARCHY_CTE),
                                                alias=exp.TableAlias(this=exp.to_identifier(alias)))))
    existing = select.args.get("with_")
    if existing is not None:
        existing.append("expressions", cte)
        existing.set("recursive", True)
    else:
        select.set("with_", exp.With(expressions=[cte], recursive=True))

    ctx.applied_rules.append("CONNECT BY -> WITH RECURSIVE")
    add_warning(ctx.warnings, WarningType.SEMANTIC_DIFFERENCE,
                "Hierarchical query rewritten as a recursive CTE; Oracle's depth-first row order is not kept",
                suggestion="Add an ORDER BY on a path or level column if the row order matters")
    return select


# ---------------------------------------------------------------------------
# MERGE
# ---------------------------------------------------------------------------

def _merge_branches(merge: exp.Merge):
    """(insert, update) actions of a MERGE with at most one unconditional branch of each kind."""
    whens = merge.args.get("whens")
    insert = update = None
    for when in (whens.expressions if whens else []):
        then = when.args.get("then")
        if when.args.get("condition") or when.args.get("source"):
            return None
        if isinstance(then, (exp.Insert, exp.Update)) and then.args.get("where"):
            return None
        if when.args.get("matched") and isinstance(then, exp.Update) and update is None:
            update = then
        elif not when.args.get("matched") and isinstance(then, exp.Insert) and insert is None:
            insert = then
        else:
            return None
    if insert is None and update is None:
        return None
    return insert, update


def _assignments(update: exp.Update, target: exp.Table, qualified: bool, dialect: str) -> List[str]:
    alias, name = target.alias_or_name, target.name
    items = []
    for assignment in update.expressions:
        if not isinstance(assignment, exp.EQ) or not isinstance(assignment.left, exp.Column):
            return []
        column = assignment.left.copy()
        if not qualified:
            column = exp.Column(this=column.this)
        value = assignment.right
        if not qualified and alias != name:
            # Target columns in ON DUPLICATE KEY UPDATE are qualified with the table name.
            value = value.transform(
                lambda n: exp.column(n.this, table=name) if isinstance(n, exp.Column) and n.table == alias else n)
        items.append(f"{column.sql(dialect=dialect)} = {value.sql(dialect=dialect)}")
    return items


def _merge_to_mysql(merge: exp.Merge, ctx: StageContext) -> Optional[exp.Expression]:
    branches = _merge_branches(merge)
    target, using, on = merge.this, merge.args.get("using"), merge.args.get("on")
    if branches is None or not isinstance(target, exp.Table) or using is None or on is None:
        return None
    insert, update = branches
    dialect = ctx.target.sqlglot_dialect
    using_sql = using.sql(dialect=dialect)

    if insert is None:
        assignments = _assignments(update, target, True, dialect)
        if not assignments:
            return None
        sql = (f"UPDATE {target.sql(dialect=dialect)} JOIN {using_sql} ON {on.unnest().sql(dialect=dialect)} "
               f"SET {', '.join(assignments)}")
        rule = "MERGE -> UPDATE ... JOIN"
    else:
        columns, values = insert.this, insert.expression
        if not isinstance(columns, exp.Tuple) or not isinstance(values, exp.Tuple):
            return None
        table = target.copy()
        table.set("alias", None)
        column_list = ", ".join(c.sql(dialect=dialect) for c in columns.expressions)
        value_list = ", ".join(v.sql(dialect=dialect) for v in values.expressions)
        verb = "INSERT INTO" if update is not None else "INSERT IGNORE INTO"
        sql = f"{verb} {table.sql(dialect=dialect)} ({column_list}) SELECT {value_list} FROM {using_sql}"
        rule = "MERGE -> INSERT IGNORE"
        if update is not None:
            assignments = _assignments(update, target, False, dialect)
            if not assignments:
                return None
            sql += f" ON DUPLICATE KEY UPDATE {', '.join(assignments)}"
            rule = "MERGE -> INSERT ... ON DUPLICATE KEY UPDATE"

    try:
        converted = sqlglot.parse_one(sql, read=dialect)
    except (ParseError, TokenError):
        return None
    ctx.applied_rules.append(rule)
    if insert is not None:
        add_warning(ctx.warnings, WarningType.SEMANTIC_DIFFERENCE,
                    "MySQL matches existing rows through PRIMARY KEY or UNIQUE indexes, not the MERGE ON condition",
                    suggestion=f"Make sure a UNIQUE index covers the columns of: {on.unnest().sql(dialect=dialect)}")
    return converted


def rewrite_merge(tree: exp.Expression, ctx: StageContext) -> exp.Expression:
    if not isinstance(tree, exp.Merge):
        return tree
    if ctx.target is DialectType.POSTGRESQL:
        add_warning(ctx.warnings, WarningType.COMPATIBILITY_ISSUE,
                    "MERGE requires PostgreSQL 15 or later",
                    severity=WarningSeverity.INFO,
                    suggestion="Use INSERT ... ON CONFLICT on older versions")
        return tree
    if ctx.target is not DialectType.MYSQL:
        return tree
    converted = _merge_to_mysql(tree, ctx)
    if converted is None:
        add_warning(ctx.warnings, WarningType.MANUAL_REVIEW_REQUIRED,
                    "MERGE has no MySQL equivalent and could not be rewritten automatically",
                    suggestion="Use INSERT ... ON DUPLICATE KEY UPDATE syntax")
        return tree
    return converted
