"""
Function-name equivalences per dialect pair.

Rows with ``WRAP_WITH_FUNCTION`` carry a template in ``target_function_name``
whose ``{0}``, ``{1}`` … placeholders are filled with the call's arguments.
Rows tagged ``UNSUPPORTED_FUNCTION`` hold a best-effort replacement that is
only applied when ``replace_unsupported_functions`` is on; the warning is
always raised.
"""
from typing import List

from ..models import DialectType, FunctionMappingRule, ParameterTransform, WarningType
from .registry import FrozenRegistryFactory

O = DialectType.ORACLE
M = DialectType.MYSQL
P = DialectType.POSTGRESQL

NONE = ParameterTransform.NONE
SWAP = ParameterTransform.SWAP_FIRST_TWO
DATE_FMT = ParameterTransform.DATE_FORMAT_CONVERT
CASE_WHEN = ParameterTransform.TO_CASE_WHEN
WRAP = ParameterTransform.WRAP_WITH_FUNCTION

# Emitted without parentheses and recognised as bare words in the source.
NILADIC_FUNCTIONS = frozenset({
    "SYSDATE", "SYSTIMESTAMP", "CURRENT_DATE", "CURRENT_TIMESTAMP", "CURRENT_TIME",
    "LOCALTIMESTAMP", "LOCALTIME", "DBMS_RANDOM.VALUE",
})

# Aggregates whose ordering/separator clauses are re-shaped on rename.
STRING_AGGREGATES = frozenset({"LISTAGG", "GROUP_CONCAT", "STRING_AGG"})


def _rule(source, target, name, target_name, transform=NONE, warning=None, message=None, suggestion=None):
    return FunctionMappingRule(
        source_dialect=source,
        target_dialect=target,
        source_function_name=name,
        target_function_name=target_name,
        parameter_transform=transform,
        warning_type=warning,
        warning_message=message,
        suggestion=suggestion,
    )


def oracle_to_mysql() -> List[FunctionMappingRule]:
    return [
        _rule(O, M, "NVL", "IFNULL"),
        _rule(O, M, "NVL2", "CASE_WHEN", CASE_WHEN, WarningType.SYNTAX_DIFFERENCE,
              "NVL2 is rewritten as a CASE expression"),
        _rule(O, M, "DECODE", "CASE_WHEN", CASE_WHEN, WarningType.SYNTAX_DIFFERENCE,
              "DECODE is rewritten as a CASE expression"),
        _rule(O, M, "TO_CHAR", "DATE_FORMAT", DATE_FMT),
        _rule(O, M, "TO_DATE", "STR_TO_DATE", DATE_FMT),
        _rule(O, M, "LISTAGG", "GROUP_CONCAT"),
        _rule(O, M, "WM_CONCAT", "GROUP_CONCAT", warning=WarningType.DEPRECATED_FEATURE,
              message="WM_CONCAT is undocumented in Oracle; converted to GROUP_CONCAT"),
        _rule(O, M, "XMLAGG", "GROUP_CONCAT", warning=WarningType.MANUAL_REVIEW_REQUIRED,
              message="XMLAGG string aggregation converted to GROUP_CONCAT; review XMLELEMENT/EXTRACT wrappers",
              suggestion="Remove XMLELEMENT(...).EXTRACT('//text()') wrappers around the aggregated value"),
        _rule(O, M, "SUBSTR", "SUBSTRING"),
        _rule(O, M, "INSTR", "LOCATE", SWAP),
        _rule(O, M, "LENGTH", "CHAR_LENGTH"),
        _rule(O, M, "TRUNC", "TRUNCATE", warning=WarningType.SEMANTIC_DIFFERENCE,
              message="TRUNC converted to TRUNCATE; TRUNC on dates must use DATE() instead",
              suggestion="Use DATE(expr) when truncating a date value"),
        _rule(O, M, "SYSDATE", "NOW"),
        _rule(O, M, "SYSTIMESTAMP", "NOW(6)"),
        _rule(O, M, "ADD_MONTHS", "DATE_ADD({0}, INTERVAL {1} MONTH)", WRAP),
        _rule(O, M, "MONTHS_BETWEEN", "TIMESTAMPDIFF(MONTH, {1}, {0})", WRAP, WarningType.SEMANTIC_DIFFERENCE,
              "MONTHS_BETWEEN converted to TIMESTAMPDIFF(MONTH, ...), which returns whole months only"),
        _rule(O, M, "POWER", "POW"),
        _rule(O, M, "REGEXP_LIKE", "({0} REGEXP {1})", WRAP),
        _rule(O, M, "TO_NUMBER", "CAST({0} AS DECIMAL(38,10))", WRAP),
        _rule(O, M, "BITAND", "({0} & {1})", WRAP),
        _rule(O, M, "CHR", "CHAR"),
        _rule(O, M, "SYS_GUID", "UUID", warning=WarningType.DATA_TYPE_MISMATCH,
              message="SYS_GUID returns RAW(16); UUID() returns a 36-character string"),
        _rule(O, M, "INITCAP", "CONCAT(UPPER(SUBSTRING({0}, 1, 1)), LOWER(SUBSTRING({0}, 2)))", WRAP,
              WarningType.UNSUPPORTED_FUNCTION, "INITCAP has no MySQL equivalent",
              "Best-effort replacement only capitalises the first letter of the string"),
    ]


def oracle_to_postgresql() -> List[FunctionMappingRule]:
    return [
        _rule(O, P, "NVL", "COALESCE"),
        _rule(O, P, "NVL2", "CASE_WHEN", CASE_WHEN, WarningType.SYNTAX_DIFFERENCE,
              "NVL2 is rewritten as a CASE expression"),
        _rule(O, P, "DECODE", "CASE_WHEN", CASE_WHEN, WarningType.SYNTAX_DIFFERENCE,
              "DECODE is rewritten as a CASE expression"),
        _rule(O, P, "TO_DATE", "TO_TIMESTAMP", DATE_FMT),
        _rule(O, P, "LISTAGG", "STRING_AGG"),
        _rule(O, P, "WM_CONCAT", "STRING_AGG", warning=WarningType.DEPRECATED_FEATURE,
              message="WM_CONCAT is undocumented in Oracle; converted to STRING_AGG"),
        _rule(O, P, "XMLAGG", "STRING_AGG", warning=WarningType.MANUAL_REVIEW_REQUIRED,
              message="XMLAGG string aggregation converted to STRING_AGG; review XMLELEMENT/EXTRACT wrappers"),
        _rule(O, P, "INSTR", "POSITION({1} IN {0})", WRAP),
        _rule(O, P, "SYSDATE", "CURRENT_TIMESTAMP"),
        _rule(O, P, "SYSTIMESTAMP", "CURRENT_TIMESTAMP"),
        _rule(O, P, "ADD_MONTHS", "({0} + ({1}) * INTERVAL '1 month')", WRAP),
        _rule(O, P, "MONTHS_BETWEEN",
              "(EXTRACT(YEAR FROM AGE({0}, {1})) * 12 + EXTRACT(MONTH FROM AGE({0}, {1})))", WRAP,
              WarningType.SEMANTIC_DIFFERENCE,
              "MONTHS_BETWEEN converted to an AGE() expression, which ignores fractional months"),
        _rule(O, P, "LAST_DAY", "(DATE_TRUNC('month', {0}) + INTERVAL '1 month - 1 day')::date", WRAP),
        _rule(O, P, "REGEXP_LIKE", "({0} ~ {1})", WRAP),
        _rule(O, P, "TO_NUMBER", "CAST({0} AS NUMERIC)", WRAP),
        _rule(O, P, "BITAND", "({0} & {1})", WRAP),
        _rule(O, P, "SYS_GUID", "GEN_RANDOM_UUID"),
    ]


def mysql_to_oracle() -> List[FunctionMappingRule]:
    return [
        _rule(M, O, "IFNULL", "NVL"),
        _rule(M, O, "DATE_FORMAT", "TO_CHAR", DATE_FMT),
        _rule(M, O, "STR_TO_DATE", "TO_DATE", DATE_FMT),
        _rule(M, O, "GROUP_CONCAT", "LISTAGG"),
        _rule(M, O, "SUBSTRING", "SUBSTR"),
        _rule(M, O, "LOCATE", "INSTR", SWAP),
        _rule(M, O, "CHAR_LENGTH", "LENGTH"),
        _rule(M, O, "TRUNCATE", "TRUNC"),
        _rule(M, O, "IF", "CASE_WHEN", CASE_WHEN, WarningType.SYNTAX_DIFFERENCE,
              "IF is rewritten as a CASE expression"),
        _rule(M, O, "NOW", "SYSDATE"),
        _rule(M, O, "CURDATE", "TRUNC(SYSDATE)"),
        _rule(M, O, "RAND", "DBMS_RANDOM.VALUE"),
        _rule(M, O, "UUID", "SYS_GUID", warning=WarningType.DATA_TYPE_MISMATCH,
              message="UUID() returns a string; SYS_GUID returns RAW(16)"),
        _rule(M, O, "POW", "POWER"),
        _rule(M, O, "DATEDIFF", "(TRUNC({0}) - TRUNC({1}))", WRAP),
        _rule(M, O, "DATE_ADD", "DATE_ADD", warning=WarningType.UNSUPPORTED_FUNCTION,
              message="DATE_ADD has no Oracle equivalent",
              suggestion="Use date + INTERVAL 'n' UNIT or ADD_MONTHS"),
        _rule(M, O, "DATE_SUB", "DATE_SUB", warning=WarningType.UNSUPPORTED_FUNCTION,
              message="DATE_SUB has no Oracle equivalent",
              suggestion="Use date - INTERVAL 'n' UNIT or ADD_MONTHS with a negative value"),
    ]


def mysql_to_postgresql() -> List[FunctionMappingRule]:
    return [
        _rule(M, P, "IFNULL", "COALESCE"),
        _rule(M, P, "DATE_FORMAT", "TO_CHAR", DATE_FMT),
        _rule(M, P, "STR_TO_DATE", "TO_TIMESTAMP", DATE_FMT),
        _rule(M, P, "GROUP_CONCAT", "STRING_AGG"),
        _rule(M, P, "LOCATE", "POSITION({0} IN {1})", WRAP),
        _rule(M, P, "IF", "CASE_WHEN", CASE_WHEN, WarningType.SYNTAX_DIFFERENCE,
              "IF is rewritten as a CASE expression"),
        _rule(M, P, "CURDATE", "CURRENT_DATE"),
        _rule(M, P, "CURTIME", "CURRENT_TIME"),
        _rule(M, P, "RAND", "RANDOM"),
        _rule(M, P, "UUID", "GEN_RANDOM_UUID"),
        _rule(M, P, "TRUNCATE", "TRUNC"),
        _rule(M, P, "POW", "POWER"),
        _rule(M, P, "LOG", "LN", warning=WarningType.SEMANTIC_DIFFERENCE,
              message="Single-argument LOG is the natural logarithm in MySQL; converted to LN"),
        _rule(M, P, "LOG10", "LOG"),
        _rule(M, P, "LOG2", "LOG(2, {0})", WRAP),
        _rule(M, P, "CHAR", "CHR"),
        _rule(M, P, "ORD", "ASCII"),
        _rule(M, P, "SPACE", "REPEAT(' ', {0})", WRAP),
        _rule(M, P, "DAYOFMONTH", "EXTRACT(DAY FROM {0})", WRAP),
        _rule(M, P, "DAYOFWEEK", "(EXTRACT(DOW FROM {0}) + 1)", WRAP),
        _rule(M, P, "DAYOFYEAR", "EXTRACT(DOY FROM {0})", WRAP),
        _rule(M, P, "WEEK", "EXTRACT(WEEK FROM {0})", WRAP),
        _rule(M, P, "YEAR", "EXTRACT(YEAR FROM {0})", WRAP),
        _rule(M, P, "MONTH", "EXTRACT(MONTH FROM {0})", WRAP),
        _rule(M, P, "HOUR", "EXTRACT(HOUR FROM {0})", WRAP),
        _rule(M, P, "MINUTE", "EXTRACT(MINUTE FROM {0})", WRAP),
        _rule(M, P, "SECOND", "EXTRACT(SECOND FROM {0})", WRAP),
        _rule(M, P, "UNIX_TIMESTAMP", "EXTRACT(EPOCH FROM {0})", WRAP),
        _rule(M, P, "FROM_UNIXTIME", "TO_TIMESTAMP"),
        _rule(M, P, "DATEDIFF", "({0}::date - {1}::date)", WRAP),
        _rule(M, P, "LAST_DAY", "(DATE_TRUNC('month', {0}) + INTERVAL '1 month - 1 day')::date", WRAP),
        _rule(M, P, "JSON_ARRAY", "JSON_BUILD_ARRAY"),
        _rule(M, P, "JSON_OBJECT", "JSON_BUILD_OBJECT"),
        _rule(M, P, "JSON_ARRAYAGG", "JSON_AGG"),
        _rule(M, P, "JSON_OBJECTAGG", "JSON_OBJECT_AGG"),
        _rule(M, P, "SHA1", "ENCODE(DIGEST({0}, 'sha1'), 'hex')", WRAP, WarningType.COMPATIBILITY_ISSUE,
              "SHA1 converted to DIGEST(), which requires the pgcrypto extension",
              "CREATE EXTENSION IF NOT EXISTS pgcrypto;"),
        _rule(M, P, "DATE_ADD", "DATE_ADD", warning=WarningType.UNSUPPORTED_FUNCTION,
              message="DATE_ADD has no PostgreSQL equivalent",
              suggestion="Use date + INTERVAL 'n unit'"),
        _rule(M, P, "DATE_SUB", "DATE_SUB", warning=WarningType.UNSUPPORTED_FUNCTION,
              message="DATE_SUB has no PostgreSQL equivalent",
              suggestion="Use date - INTERVAL 'n unit'"),
        _rule(M, P, "TIMESTAMPDIFF", "TIMESTAMPDIFF", warning=WarningType.UNSUPPORTED_FUNCTION,
              message="TIMESTAMPDIFF has no PostgreSQL equivalent",
              suggestion="Combine EXTRACT(EPOCH FROM ...) or AGE() for the required unit"),
        _rule(M, P, "JSON_EXTRACT", "JSON_EXTRACT", warning=WarningType.UNSUPPORTED_FUNCTION,
              message="JSON_EXTRACT path syntax differs in PostgreSQL",
              suggestion="Use the -> / ->> operators or jsonb_path_query"),
        _rule(M, P, "BIT_XOR", "BIT_XOR", warning=WarningType.UNSUPPORTED_FUNCTION,
              message="BIT_XOR aggregate has no PostgreSQL equivalent"),
    ]


def postgresql_to_oracle() -> List[FunctionMappingRule]:
    return [
        _rule(P, O, "TO_TIMESTAMP", "TO_DATE"),
        _rule(P, O, "STRING_AGG", "LISTAGG"),
        _rule(P, O, "RANDOM", "DBMS_RANDOM.VALUE"),
        _rule(P, O, "NOW", "SYSTIMESTAMP"),
        _rule(P, O, "GEN_RANDOM_UUID", "SYS_GUID"),
        _rule(P, O, "STRPOS", "INSTR"),
        _rule(P, O, "DATE_TRUNC", "DATE_TRUNC", warning=WarningType.UNSUPPORTED_FUNCTION,
              message="DATE_TRUNC has no Oracle equivalent",
              suggestion="Use TRUNC(date, 'MM') style format masks"),
        _rule(P, O, "SPLIT_PART", "SPLIT_PART", warning=WarningType.UNSUPPORTED_FUNCTION,
              message="SPLIT_PART has no Oracle equivalent",
              suggestion="Use REGEXP_SUBSTR(str, '[^,]+', 1, n)"),
        _rule(P, O, "ARRAY_AGG", "ARRAY_AGG", warning=WarningType.UNSUPPORTED_FUNCTION,
              message="ARRAY_AGG has no Oracle equivalent",
              suggestion="Use COLLECT() into a nested table type or LISTAGG"),
    ]


def postgresql_to_mysql() -> List[FunctionMappingRule]:
    return [
        _rule(P, M, "TO_CHAR", "DATE_FORMAT", DATE_FMT),
        _rule(P, M, "TO_TIMESTAMP", "STR_TO_DATE", DATE_FMT),
        _rule(P, M, "CURRENT_DATE", "CURDATE"),
        _rule(P, M, "CURRENT_TIME", "CURTIME"),
        _rule(P, M, "STRING_AGG", "GROUP_CONCAT"),
        _rule(P, M, "STRPOS", "LOCATE({1}, {0})", WRAP),
        _rule(P, M, "TRUNC", "TRUNCATE"),
        _rule(P, M, "POWER", "POW"),
        _rule(P, M, "LN", "LOG"),
        _rule(P, M, "LOG", "LOG10"),
        _rule(P, M, "RANDOM", "RAND"),
        _rule(P, M, "CHR", "CHAR"),
        _rule(P, M, "GEN_RANDOM_UUID", "UUID"),
        _rule(P, M, "SPLIT_PART", "SUBSTRING_INDEX(SUBSTRING_INDEX({0}, {1}, {2}), {1}, -1)", WRAP),
        _rule(P, M, "JSON_BUILD_ARRAY", "JSON_ARRAY"),
        _rule(P, M, "JSON_BUILD_OBJECT", "JSON_OBJECT"),
        _rule(P, M, "JSON_AGG", "JSON_ARRAYAGG"),
        _rule(P, M, "JSON_OBJECT_AGG", "JSON_OBJECTAGG"),
        _rule(P, M, "ARRAY_AGG", "GROUP_CONCAT", warning=WarningType.PARTIAL_SUPPORT,
              message="ARRAY_AGG converted to GROUP_CONCAT; the result is a string, not an array"),
        _rule(P, M, "INITCAP", "CONCAT(UPPER(SUBSTRING({0}, 1, 1)), LOWER(SUBSTRING({0}, 2)))", WRAP,
              WarningType.UNSUPPORTED_FUNCTION, "INITCAP has no MySQL equivalent",
              "Best-effort replacement only capitalises the first letter of the string"),
        _rule(P, M, "DATE_TRUNC", "DATE_TRUNC", warning=WarningType.UNSUPPORTED_FUNCTION,
              message="DATE_TRUNC has no MySQL equivalent",
              suggestion="Use DATE_FORMAT(d, '%Y-%m-01') style expressions"),
        _rule(P, M, "AGE", "AGE", warning=WarningType.UNSUPPORTED_FUNCTION,
              message="AGE has no MySQL equivalent", suggestion="Use TIMESTAMPDIFF(unit, a, b)"),
        _rule(P, M, "REGEXP_MATCHES", "REGEXP_MATCHES", warning=WarningType.UNSUPPORTED_FUNCTION,
              message="REGEXP_MATCHES has no MySQL equivalent", suggestion="Use REGEXP_SUBSTR or REGEXP_LIKE"),
        _rule(P, M, "ARRAY_LENGTH", "ARRAY_LENGTH", warning=WarningType.UNSUPPORTED_FUNCTION,
              message="MySQL does not support array types"),
        _rule(P, M, "UNNEST", "UNNEST", warning=WarningType.UNSUPPORTED_FUNCTION,
              message="UNNEST has no MySQL equivalent", suggestion="Use JSON_TABLE over a JSON array"),
    ]


def all_function_rules() -> List[FunctionMappingRule]:
    return (
        oracle_to_mysql()
        + oracle_to_postgresql()
        + mysql_to_oracle()
        + mysql_to_postgresql()
        + postgresql_to_oracle()
        + postgresql_to_mysql()
    )


get_function_registry = FrozenRegistryFactory("function", all_function_rules)
