"""
Inline rewriting of function calls, data types and dialect-specific operators.

Shared by the AST path and the fallback pipeline. Every function here works on
SQL text, positions are computed on ``mask_literals`` output so string
literals and comments are never touched, and edits are applied right-to-left
so earlier positions stay valid while nested calls are rewritten innermost
first.
"""
import re
from typing import List, Optional, Tuple

from ..mapping.data_type_mappings import (
    UNQUALIFIED_NUMERIC_DEFAULT,
    get_data_type_registry,
    integer_type_for,
    split_qualifier,
)
from ..mapping.function_mappings import NILADIC_FUNCTIONS, STRING_AGGREGATES, get_function_registry
from ..models import (
    ConversionWarning,
    DataTypeMappingRule,
    DialectType,
    FunctionMappingRule,
    ParameterTransform,
    PrecisionHandler,
    WarningType,
    normalize_rule_name,
)
from ..utils.date_format import translate_date_format
from ..utils.result_formatter import add_warning, severity_for
from ..utils.sql_scanner import (
    NOT_FOUND,
    extract_expression_after,
    extract_expression_before,
    find_bare_words,
    find_call_sites,
    find_matching_bracket,
    is_string_literal,
    mask_literals,
    split_arguments,
)

TEMPLATE_PLACEHOLDER = re.compile(r"\{(\d+)\}")


def report_rule_warning(rule, warnings: List[ConversionWarning]) -> None:
    if rule.warning_type is None:
        return
    add_warning(
        warnings,
        rule.warning_type,
        rule.warning_message or f"{rule.source_name} requires manual review",
        severity_for(rule.warning_type),
        rule.suggestion,
    )


def _alternation(names) -> str:
    return "|".join(re.escape(n) for n in sorted(names, key=len, reverse=True))


# ---------------------------------------------------------------------------
# Function calls
# ---------------------------------------------------------------------------

def _argument_spans(text: str, start: int, end: int) -> List[Tuple[int, int]]:
    """Trimmed (start, end) spans of the top-level arguments in text[start:end]."""
    spans = []
    masked = mask_literals(text[start:end])
    depth = 0
    seg_start = 0
    for i, ch in enumerate(masked):
        if ch == "(":
            depth += 1
        elif ch == ")":
            depth -= 1
        elif ch == "," and depth == 0:
            spans.append((seg_start, i))
            seg_start = i + 1
    spans.append((seg_start, len(masked)))

    trimmed = []
    for s, e in spans:
        segment = text[start + s:start + e]
        lead = len(segment) - len(segment.lstrip())
        trail = len(segment) - len(segment.rstrip())
        trimmed.append((start + s + lead, start + e - trail))
    return trimmed


def case_when_expression(name: str, args: List[str]) -> Optional[str]:
    if name == "DECODE":
        if len(args) < 3:
            return None
        expr = args[0]
        pairs = args[1:]
        default = pairs.pop() if len(pairs) % 2 == 1 else None
        branches = []
        for i in range(0, len(pairs), 2):
            search, result = pairs[i], pairs[i + 1]
            if search.strip().upper() == "NULL":
                branches.append(f"WHEN {expr} IS NULL THEN {result}")
            else:
                branches.append(f"WHEN {expr} = {search} THEN {result}")
        else_part = f" ELSE {default}" if default is not None else ""
        return "CASE " + " ".join(branches) + else_part + " END"
    if name == "NVL2":
        if len(args) != 3:
            return None
        return f"CASE WHEN {args[0]} IS NOT NULL THEN {args[1]} ELSE {args[2]} END"
    if name == "IF":
        if len(args) != 3:
            return None
        return f"CASE WHEN {args[0]} THEN {args[1]} ELSE {args[2]} END"
    return None


def _find_top_level_keyword(text: str, keyword_pattern: str) -> Optional[re.Match]:
    """First match of *keyword_pattern* at paren depth 0 outside literals."""
    masked = mask_literals(text)
    depth_at = []
    depth = 0
    for ch in masked:
        depth_at.append(depth)
        if ch == "(":
            depth += 1
        elif ch == ")":
            depth -= 1
    for match in re.finditer(keyword_pattern, masked, re.IGNORECASE):
        if depth_at[match.start()] == 0:
            return match
    return None


def _parse_string_aggregate(source_name: str, inner: str) -> Tuple[str, str, Optional[str], Optional[str]]:
    """(distinct_prefix, expression, separator, order_by) of a string-aggregate call body."""
    distinct = ""
    body = inner.strip()
    distinct_match = re.match(r"DISTINCT\s+", body, re.IGNORECASE)
    if distinct_match:
        distinct = "DISTINCT "
        body = body[distinct_match.end():]

    separator = None
    order_by = None
    if source_name == "GROUP_CONCAT":
        sep_match = _find_top_level_keyword(body, r"\bSEPARATOR\b")
        if sep_match:
            separator = body[sep_match.end():].strip()
            body = body[:sep_match.start()]
        order_match = _find_top_level_keyword(body, r"\bORDER\s+BY\b")
        if order_match:
            order_by = body[order_match.end():].strip()
            body = body[:order_match.start()]
        expression = body.strip()
        if separator is None:
            separator = "','"
    else:
        order_match = _find_top_level_keyword(body, r"\bORDER\s+BY\b")
        if order_match:
            order_by = body[order_match.end():].strip()
            body = body[:order_match.start()]
        args = split_arguments(body)
        expression = args[0] if args else ""
        if len(args) > 1:
            separator = args[1]
        elif source_name == "LISTAGG":
            separator = "''"
        else:
            separator = "','"
    return distinct, expression, separator, order_by


def _build_string_aggregate(target_name: str, distinct: str, expression: str,
                            separator: str, order_by: Optional[str]) -> str:
    if target_name == "GROUP_CONCAT":
        order_part = f" ORDER BY {order_by}" if order_by else ""
        return f"GROUP_CONCAT({distinct}{expression}{order_part} SEPARATOR {separator})"
    if target_name == "STRING_AGG":
        order_part = f" ORDER BY {order_by}" if order_by else ""
        return f"STRING_AGG({distinct}{expression}, {separator}{order_part})"
    return f"LISTAGG({distinct}{expression}, {separator}) WITHIN GROUP (ORDER BY {order_by or 'NULL'})"


def _rewrite_call(text: str, name_start: int, after_open: int, rule: FunctionMappingRule,
                  source: DialectType, target: DialectType,
                  warnings: List[ConversionWarning], applied_rules: List[str]) -> str:
    close = find_matching_bracket(text, after_open)
    if close == NOT_FOUND:
        return text

    name = normalize_rule_name(rule.source_function_name)
    name_end = name_start + len(rule.source_function_name)
    inner = text[after_open:close - 1]
    args = split_arguments(inner)
    target_name = rule.target_function_name
    transform = rule.parameter_transform
    end = close
    replacement = None
    description = f"{name} -> {target_name}"

    if transform is ParameterTransform.NONE:
        if name in STRING_AGGREGATES | {"WM_CONCAT"} and target_name in STRING_AGGREGATES:
            within = re.match(r"\s*WITHIN\s+GROUP\s*\(", text[close:], re.IGNORECASE)
            distinct, expression, separator, order_by = _parse_string_aggregate(name, inner)
            if within:
                group_close = find_matching_bracket(text, close + within.end())
                if group_close != NOT_FOUND:
                    group_body = text[close + within.end():group_close - 1].strip()
                    order_by = re.sub(r"^ORDER\s+BY\s+", "", group_body, flags=re.IGNORECASE)
                    end = group_close
            replacement = _build_string_aggregate(target_name, distinct, expression, separator, order_by)
        elif not args and (target_name in NILADIC_FUNCTIONS or "(" in target_name):
            replacement = target_name
        else:
            replacement = target_name + text[name_end:close]

    elif transform is ParameterTransform.SWAP_FIRST_TWO:
        if len(args) < 2:
            add_warning(warnings, WarningType.MANUAL_REVIEW_REQUIRED,
                        f"{name} called with {len(args)} argument(s); argument order not converted")
            return text
        swapped = [args[1], args[0]] + args[2:]
        replacement = f"{target_name}({', '.join(swapped)})"
        description = f"{name}(a, b) -> {target_name}(b, a)"

    elif transform is ParameterTransform.DATE_FORMAT_CONVERT:
        if len(args) < 2:
            add_warning(warnings, WarningType.MANUAL_REVIEW_REQUIRED,
                        f"{name} without a format mask left unchanged",
                        suggestion=f"Rewrite {name} manually for {target.value}")
            return text
        spans = _argument_spans(text, after_open, close - 1)
        fmt_start, fmt_end = spans[1]
        fmt_text = text[fmt_start:fmt_end]
        if is_string_literal(fmt_text):
            translated = translate_date_format(fmt_text[1:-1], source, target)
            new_fmt = f"'{translated}'"
            if translated != fmt_text[1:-1]:
                applied_rules.append(f"Date format '{fmt_text[1:-1]}' -> '{translated}'")
        else:
            new_fmt = fmt_text
            add_warning(warnings, WarningType.MANUAL_REVIEW_REQUIRED,
                        f"{name} format mask is not a literal; translate it manually",
                        suggestion="Format tokens differ between Oracle-style and MySQL-style masks")
        replacement = (target_name + text[name_end:after_open]
                       + text[after_open:fmt_start] + new_fmt + text[fmt_end:close])

    elif transform is ParameterTransform.TO_CASE_WHEN:
        replacement = case_when_expression(name, args)
        if replacement is None:
            if name != "IF":
                # Procedural IF (cond) THEN is not the IF() function.
                add_warning(warnings, WarningType.MANUAL_REVIEW_REQUIRED,
                            f"{name} with {len(args)} argument(s) could not be rewritten as CASE")
            return text
        description = f"{name} -> CASE WHEN"

    elif transform is ParameterTransform.WRAP_WITH_FUNCTION:
        needed = max((int(i) for i in TEMPLATE_PLACEHOLDER.findall(target_name)), default=-1) + 1
        if len(args) != needed:
            add_warning(warnings, WarningType.MANUAL_REVIEW_REQUIRED,
                        f"{name} with {len(args)} argument(s) has no direct {target.value} equivalent",
                        suggestion=f"Rewrite {name} manually")
            return text
        replacement = TEMPLATE_PLACEHOLDER.sub(lambda m: args[int(m.group(1))], target_name)
        description = f"{name} -> {TEMPLATE_PLACEHOLDER.sub('…', target_name)}"

    if replacement is None:
        return text
    applied_rules.append(description)
    return text[:name_start] + replacement + text[end:]


# Function names that double as column types (CHAR(10), YEAR(4)).
_TYPE_NAMED_FUNCTIONS = frozenset({"CHAR", "YEAR", "BINARY", "DATE", "TIME", "TIMESTAMP"})


def _bare_word_replacement(target_name: str) -> str:
    if target_name in NILADIC_FUNCTIONS or "(" in target_name:
        return target_name
    return target_name + "()"


def rewrite_functions(sql: str, source: DialectType, target: DialectType,
                      warnings: List[ConversionWarning], applied_rules: List[str],
                      *, replace_unsupported: bool = True) -> str:
    """
    Apply every function rule of the (source, target) pair to *sql*.

    Args:
        replace_unsupported: When False, calls whose rule is tagged
            UNSUPPORTED_FUNCTION are left untouched (the warning is still raised).

    Returns:
        The rewritten SQL.
    """
    if source is target:
        return sql
    rules = {normalize_rule_name(r.source_function_name): r
             for r in get_function_registry().list_rules(source, target)}
    if not rules:
        return sql

    text = sql
    masked = mask_literals(text)

    def _usable(rule):
        report_rule_warning(rule, warnings)
        return replace_unsupported or not rule.is_unsupported

    # Niladic names appear as bare words (SYSDATE, CURRENT_DATE).
    bare_hits = []
    for name, rule in rules.items():
        if name in NILADIC_FUNCTIONS:
            bare_hits.extend((start, end, rule) for start, end in find_bare_words(text, name, masked))
    for start, end, rule in sorted(bare_hits, key=lambda hit: hit[0], reverse=True):
        if not _usable(rule):
            continue
        replacement = _bare_word_replacement(rule.target_function_name)
        text = text[:start] + replacement + text[end:]
        applied_rules.append(f"{normalize_rule_name(rule.source_function_name)} -> {replacement}")

    masked = mask_literals(text)
    declarations = is_declaration_context(text)
    call_pattern = re.compile(r"(?<![\w.$#:@])(" + _alternation(rules.keys()) + r")\s*\(", re.IGNORECASE)
    sites = [(m.start(), m.end(), normalize_rule_name(m.group(1))) for m in call_pattern.finditer(masked)]
    for name_start, after_open, name in sorted(sites, key=lambda site: site[0], reverse=True):
        if declarations and name in _TYPE_NAMED_FUNCTIONS and _in_type_position(masked, name_start):
            continue
        rule = rules[name]
        if not _usable(rule):
            continue
        text = _rewrite_call(text, name_start, after_open, rule, source, target, warnings, applied_rules)
    return text


# ---------------------------------------------------------------------------
# Data types
# ---------------------------------------------------------------------------

_DECLARATION_CONTEXT = re.compile(
    r"^\s*(?:CREATE\s+(?:OR\s+REPLACE\s+)?(?:(?:NON)?EDITIONABLE\s+)?"
    r"(?:GLOBAL\s+TEMPORARY\s+|TEMPORARY\s+|UNLOGGED\s+)?"
    r"(?:TABLE|TYPE|PROCEDURE|FUNCTION|PACKAGE|TRIGGER)\b|ALTER\s+TABLE\b|DECLARE\b|BEGIN\b)",
    re.IGNORECASE,
)

# Words that can precede a type name without making it a column/variable type.
_TYPE_POSITION_STOPWORDS = frozenset({
    "SELECT", "WHERE", "AND", "OR", "NOT", "BY", "ON", "FROM", "SET", "WHEN", "THEN",
    "ELSE", "JOIN", "HAVING", "RETURNING", "INTO", "VALUES", "DEFAULT", "IS", "AS",
    "LIKE", "BETWEEN", "TABLE", "INDEX", "VIEW", "CASE", "END", "DISTINCT", "ALL",
    "UNION", "EXISTS", "NULL", "CHECK", "KEY", "REFERENCES", "EXCEPTION", "RAISE",
    "INTERVAL", "TIMESTAMP", "CURRENT", "WITH", "LOCAL", "ADD", "DROP", "COLUMN",
    "MODIFY", "ALTER", "CONSTRAINT", "PRIMARY", "UNIQUE", "FOREIGN", "LOOP", "IF",
})

_MYSQL_CAST_TARGETS = {
    "INT": "SIGNED", "INTEGER": "SIGNED", "BIGINT": "SIGNED", "SMALLINT": "SIGNED",
    "TINYINT": "SIGNED", "MEDIUMINT": "SIGNED", "NUMBER": "DECIMAL", "NUMERIC": "DECIMAL",
    "VARCHAR": "CHAR", "VARCHAR2": "CHAR", "TEXT": "CHAR", "LONGTEXT": "CHAR", "CLOB": "CHAR",
    "TIMESTAMP": "DATETIME", "DOUBLE PRECISION": "DOUBLE", "REAL": "FLOAT",
}


def is_declaration_context(sql: str) -> bool:
    return bool(_DECLARATION_CONTEXT.match(mask_literals(sql)))


def _type_pattern(names) -> re.Pattern:
    alternatives = []
    for name in sorted(names, key=len, reverse=True):
        words = name.split()
        if len(words) == 1:
            alternatives.append(re.escape(words[0]))
        else:
            alternatives.append(
                re.escape(words[0]) + r"(?:\s*\([^)]*\))?\s+" + r"\s+".join(re.escape(w) for w in words[1:])
            )
    return re.compile(
        r"(?<![\w.$#%])(?P<name>" + "|".join(alternatives) + r")(?![\w$#])(?P<qual>\s*\([^)]*\))?",
        re.IGNORECASE,
    )


def _in_type_position(masked: str, start: int) -> bool:
    j = start - 1
    while j >= 0 and masked[j].isspace():
        j -= 1
    if j < 0:
        return False
    if masked[j] in ('"', "`"):
        return True
    if not (masked[j].isalnum() or masked[j] in "_$#"):
        return False
    k = j
    while k >= 0 and (masked[k].isalnum() or masked[k] in "_$#"):
        k -= 1
    word = masked[k + 1:j + 1].upper()
    if word[0].isdigit():
        return False
    return word not in _TYPE_POSITION_STOPWORDS


def _convert_type(rule: DataTypeMappingRule, qualifier: str, target: DialectType,
                  warnings: List[ConversionWarning]) -> str:
    target_name = rule.target_type_name
    handler = rule.precision_handler
    qualifier = qualifier.strip()

    if handler is PrecisionHandler.CONVERT:
        return target_name
    if handler is PrecisionHandler.DROP:
        return target_name
    if handler is PrecisionHandler.PRESERVE:
        if not qualifier or "(" in target_name:
            return target_name
        head, _, rest = target_name.partition(" ")
        return f"{head}{qualifier}" + (f" {rest}" if rest else "")

    # MAP_TO_INTEGER
    if not qualifier:
        default = UNQUALIFIED_NUMERIC_DEFAULT.get(target)
        if default:
            add_warning(warnings, WarningType.PRECISION_LOSS,
                        f"{rule.source_type_name} without precision mapped to {default}",
                        suggestion="Declare an explicit precision and scale")
            return default
        return target_name
    precision, scale = split_qualifier(qualifier)
    if precision == "*":
        precision = "38"
    if not precision.isdigit():
        return f"{target_name}{qualifier}"
    scale_value = int(scale) if scale.lstrip("-").isdigit() else 0
    if scale_value <= 0:
        integer_type = integer_type_for(target, int(precision))
        if integer_type:
            return integer_type
        return f"{target_name}({precision})"
    return f"{target_name}({precision},{scale_value})"


def _convert_type_text(type_text: str, rules, target: DialectType,
                       warnings: List[ConversionWarning]) -> Optional[str]:
    """Convert a complete type expression such as ``VARCHAR2(20)``; None when no rule applies."""
    pattern = _type_pattern(rules.keys())
    match = pattern.fullmatch(type_text.strip())
    if not match:
        return None
    rule = rules[normalize_rule_name(match.group("name"))]
    inner_qual = re.search(r"\([^)]*\)", match.group("name"))
    qualifier = inner_qual.group(0) if inner_qual else (match.group("qual") or "")
    report_rule_warning(rule, warnings)
    return _convert_type(rule, qualifier, target, warnings)


def convert_type_name(type_text: str, source: DialectType, target: DialectType,
                      warnings: List[ConversionWarning]) -> str:
    """A standalone type expression (a RETURN type, a CAST target) in the target dialect."""
    if source is target:
        return type_text
    rules = {normalize_rule_name(r.source_type_name): r
             for r in get_data_type_registry().list_rules(source, target)}
    if not rules:
        return type_text
    return _convert_type_text(type_text, rules, target, warnings) or type_text


def _rewrite_cast_targets(text: str, rules, target: DialectType,
                          warnings: List[ConversionWarning], applied_rules: List[str]) -> str:
    for name_start, after_open in sorted(find_call_sites(text, "CAST"), reverse=True):
        close = find_matching_bracket(text, after_open)
        if close == NOT_FOUND:
            continue
        inner = text[after_open:close - 1]
        masked_inner = mask_literals(inner)
        depth = 0
        as_index = -1
        for match in re.finditer(r"\bAS\b", masked_inner, re.IGNORECASE):
            depth = masked_inner[:match.start()].count("(") - masked_inner[:match.start()].count(")")
            if depth == 0:
                as_index = match.end()
        if as_index < 0:
            continue
        type_text = inner[as_index:].strip()
        converted = _convert_type_text(type_text, rules, target, warnings) if rules else None
        new_type = converted or type_text
        if target is DialectType.MYSQL:
            base = normalize_rule_name(new_type)
            if base in _MYSQL_CAST_TARGETS:
                mysql_type = _MYSQL_CAST_TARGETS[base]
                qual = re.search(r"\([^)]*\)", new_type)
                new_type = mysql_type + (qual.group(0) if qual and mysql_type in ("DECIMAL", "CHAR") else "")
        if new_type != type_text:
            applied_rules.append(f"CAST target {type_text} -> {new_type}")
            text = text[:after_open] + inner[:as_index] + " " + new_type + text[close - 1:]
    return text


def rewrite_data_types(sql: str, source: DialectType, target: DialectType,
                       warnings: List[ConversionWarning], applied_rules: List[str],
                       *, declarations: Optional[bool] = None) -> str:
    """
    Rewrite data-type names of the (source, target) pair.

    Type tokens are rewritten inside CAST(... AS type) everywhere, and in
    column / parameter / variable declarations when the statement is DDL or a
    PL/SQL unit (auto-detected unless *declarations* is given).
    """
    if source is target:
        return sql
    rules = {normalize_rule_name(r.source_type_name): r
             for r in get_data_type_registry().list_rules(source, target)}

    text = _rewrite_cast_targets(sql, rules, target, warnings, applied_rules)
    if not rules:
        return text
    if declarations is None:
        declarations = is_declaration_context(text)
    if not declarations:
        return text

    masked = mask_literals(text)
    pattern = _type_pattern(rules.keys())
    for match in reversed(list(pattern.finditer(masked))):
        if not _in_type_position(masked, match.start()):
            continue
        name_text = text[match.start("name"):match.end("name")]
        rule = rules[normalize_rule_name(name_text)]
        inner_qual = re.search(r"\([^)]*\)", name_text)
        trailing_qual = text[match.start("qual"):match.end("qual")] if match.group("qual") else ""
        qualifier = inner_qual.group(0) if inner_qual else trailing_qual
        report_rule_warning(rule, warnings)
        replacement = _convert_type(rule, qualifier, target, warnings)
        original = text[match.start():match.end()]
        if inner_qual and trailing_qual:
            # The trailing group belongs to the next token, not this type.
            original = name_text
        end = match.start() + len(original)
        text = text[:match.start()] + replacement + text[end:]
        applied_rules.append(f"{' '.join(original.split())} -> {replacement}")
    return text


# ---------------------------------------------------------------------------
# Operators and quoting
# ---------------------------------------------------------------------------

def rewrite_concat_operator(sql: str, source: DialectType,
                            warnings: List[ConversionWarning], applied_rules: List[str]) -> str:
    """``a || b || c`` -> ``CONCAT(a, b, c)`` (MySQL treats ``||`` as logical OR)."""
    text = sql
    offset = 0
    rewritten = False
    while True:
        masked = mask_literals(text)
        index = masked.find("||", offset)
        if index < 0:
            break
        left, start = extract_expression_before(text, index)
        if not left:
            offset = index + 2
            continue
        operands = [left]
        position = index
        end = index + 2
        complete = True
        while True:
            right, right_end = extract_expression_after(text, position + 2)
            if not right:
                complete = False
                break
            operands.append(right)
            end = right_end
            j = right_end
            while j < len(masked) and masked[j].isspace():
                j += 1
            if masked.startswith("||", j):
                position = j
                continue
            break
        if not complete:
            offset = index + 2
            continue
        replacement = f"CONCAT({', '.join(operands)})"
        text = text[:start] + replacement + text[end:]
        offset = start + len(replacement)
        rewritten = True

    if rewritten:
        applied_rules.append("|| -> CONCAT()")
        if source.is_oracle_compatible:
            add_warning(warnings, WarningType.SEMANTIC_DIFFERENCE,
                        "MySQL CONCAT returns NULL when any argument is NULL; Oracle || treats NULL as an empty string",
                        suggestion="Wrap nullable operands with IFNULL(x, '') or use CONCAT_WS('', ...)")
    return text


_PG_CAST_TYPE = re.compile(
    r"::\s*(?P<type>[A-Za-z_]\w*"
    r"(?:\s+(?:PRECISION|VARYING|WITH\s+TIME\s+ZONE|WITHOUT\s+TIME\s+ZONE))?"
    r"(?:\s*\(\s*\d+(?:\s*,\s*\d+)?\s*\))?)(?P<array>\[\])?",
    re.IGNORECASE,
)


def rewrite_pg_casts(sql: str, warnings: List[ConversionWarning], applied_rules: List[str]) -> str:
    """PostgreSQL ``expr::type`` -> ``CAST(expr AS type)``."""
    text = sql
    offset = 0
    while True:
        masked = mask_literals(text)
        index = masked.find("::", offset)
        if index < 0:
            break
        match = _PG_CAST_TYPE.match(text, index)
        left, start = extract_expression_before(text, index)
        if not match or not left:
            offset = index + 2
            continue
        if match.group("array"):
            add_warning(warnings, WarningType.DATA_TYPE_MISMATCH,
                        f"Array cast ::{match.group('type')}[] has no equivalent",
                        suggestion="Store arrays as JSON or in a child table")
        replacement = f"CAST({left} AS {match.group('type')})"
        text = text[:start] + replacement + text[match.end():]
        applied_rules.append(f"::{match.group('type')} -> CAST(... AS {match.group('type')})")
        offset = start + len(replacement)
    return text


def convert_identifier_quotes(sql: str, source: DialectType, target: DialectType,
                              applied_rules: List[str],
                              warnings: Optional[List[ConversionWarning]] = None) -> str:
    """
    Swap identifier quoting between backticks (MySQL) and double quotes (everyone else).

    MySQL reads ``"text"`` as a string literal, so for a MySQL source those
    become single-quoted strings instead of identifiers.
    """
    source_quote, target_quote = source.quote_char, target.quote_char
    if source_quote == target_quote:
        return sql

    out = []
    i = 0
    n = len(sql)
    changed = False
    strings = 0
    while i < n:
        ch = sql[i]
        if ch == "'":
            end = sql.find("'", i + 1)
            while end != -1 and end + 1 < n and sql[end + 1] == "'":
                end = sql.find("'", end + 2)
            end = n if end == -1 else end + 1
            out.append(sql[i:end])
            i = end
        elif sql.startswith("--", i):
            end = sql.find("\n", i)
            end = n if end == -1 else end
            out.append(sql[i:end])
            i = end
        elif sql.startswith("/*", i):
            end = sql.find("*/", i + 2)
            end = n if end == -1 else end + 2
            out.append(sql[i:end])
            i = end
        elif ch == '"' and source is DialectType.MYSQL:
            end = _closing_double_quote(sql, i)
            if end == -1:
                out.append(sql[i:])
                break
            value = sql[i + 1:end].replace('""', '"').replace('\\"', '"').replace("'", "''")
            out.append(f"'{value}'")
            strings += 1
            i = end + 1
        elif ch == source_quote:
            end = sql.find(source_quote, i + 1)
            if end == -1:
                out.append(sql[i:])
                break
            identifier = sql[i + 1:end]
            out.append(f"{target_quote}{identifier}{target_quote}")
            changed = True
            i = end + 1
        else:
            out.append(ch)
            i += 1

    if changed:
        applied_rules.append(f"Identifier quotes {source_quote}…{source_quote} -> {target_quote}…{target_quote}")
    if strings:
        applied_rules.append("Double-quoted strings -> single-quoted strings")
        if warnings is not None:
            add_warning(warnings, WarningType.SYNTAX_DIFFERENCE,
                        f"{strings} double-quoted MySQL string(s) rewritten with single quotes; "
                        f"{target.value} reads double quotes as identifiers",
                        suggestion="If the server runs with ANSI_QUOTES, restore them as identifiers")
    return "".join(out)


def _closing_double_quote(sql: str, start: int) -> int:
    i = start + 1
    while i < len(sql):
        if sql[i] == "\\":
            i += 2
            continue
        if sql[i] == '"':
            if sql.startswith('""', i):
                i += 2
                continue
            return i
        i += 1
    return -1
