"""Tests for the in-place function, type, operator and quoting rewrites."""

from sqlswitch.services.sql_conversion.converters.inline_rewriter import (
    convert_identifier_quotes,
    convert_type_name,
    rewrite_concat_operator,
    rewrite_functions,
    rewrite_pg_casts,
)
from sqlswitch.services.sql_conversion.models import DialectType, WarningSeverity, WarningType

O = DialectType.ORACLE
M = DialectType.MYSQL
P = DialectType.POSTGRESQL


class TestRewriteFunctions:
    """rewrite_functions tests."""

    def test_rename_keeps_argument_text(self) -> None:
        """NVL -> IFNULL leaves the arguments byte for byte."""
        # Given
        warnings, applied_rules = [], []

        # When
        result = rewrite_functions("SELECT NVL(name, 'n/a') FROM emp", O, M, warnings, applied_rules)

        # Then
        assert result == "SELECT IFNULL(name, 'n/a') FROM emp"
        assert warnings == []
        assert applied_rules

    def test_date_format_literal_is_translated(self) -> None:
        """The format mask of TO_CHAR is translated in place."""
        # Given
        warnings, applied_rules = [], []

        # When
        result = rewrite_functions("SELECT TO_CHAR(hired, 'YYYY-MM-DD') FROM emp", O, M, warnings, applied_rules)

        # Then
        assert result == "SELECT DATE_FORMAT(hired, '%Y-%m-%d') FROM emp"

    def test_niladic_bare_word(self) -> None:
        """SYSDATE is a bare word in Oracle and a call in MySQL."""
        # When
        mysql = rewrite_functions("SELECT SYSDATE FROM dual", O, M, [], [])
        postgres = rewrite_functions("SELECT SYSDATE FROM dual", O, P, [], [])

        # Then
        assert mysql == "SELECT NOW() FROM dual"
        assert postgres == "SELECT CURRENT_TIMESTAMP FROM dual"

    def test_literals_and_member_calls_are_untouched(self) -> None:
        """NVL inside a literal or as pkg.NVL is not rewritten."""
        # Given
        sql = "SELECT 'NVL(a, b)', pkg.NVL(a, b) FROM t"

        # When
        result = rewrite_functions(sql, O, M, [], [])

        # Then
        assert result == sql

    def test_same_dialect_is_identity(self) -> None:
        """Nothing is rewritten when source and target are equal."""
        # When / Then
        assert rewrite_functions("SELECT NVL(a, 0) FROM t", O, O, [], []) == "SELECT NVL(a, 0) FROM t"

    def test_swapped_arguments(self) -> None:
        """INSTR(haystack, needle) becomes LOCATE(needle, haystack)."""
        # Given
        applied_rules = []

        # When
        result = rewrite_functions("SELECT INSTR(name, 'a') FROM t", O, M, [], applied_rules)

        # Then
        assert result == "SELECT LOCATE('a', name) FROM t"
        assert applied_rules == ["INSTR(a, b) -> LOCATE(b, a)"]

    def test_decode_becomes_case(self) -> None:
        """DECODE pairs become WHEN branches and the odd trailing argument the ELSE."""
        # Given
        sql = "SELECT DECODE(status, 'A', 'Active', NULL, 'None', 'Other') FROM emp"
        warnings, applied_rules = [], []

        # When
        result = rewrite_functions(sql, O, M, warnings, applied_rules)

        # Then
        assert result == ("SELECT CASE WHEN status = 'A' THEN 'Active' WHEN status IS NULL THEN 'None' "
                          "ELSE 'Other' END FROM emp")
        assert applied_rules == ["DECODE -> CASE WHEN"]
        assert [w.message for w in warnings] == ["DECODE is rewritten as a CASE expression"]

    def test_nvl2_becomes_case(self) -> None:
        """NVL2(a, b, c) tests a for NULL."""
        # When
        result = rewrite_functions("SELECT NVL2(bonus, 'yes', 'no') FROM emp", O, P, [], [])

        # Then
        assert result == "SELECT CASE WHEN bonus IS NOT NULL THEN 'yes' ELSE 'no' END FROM emp"

    def test_mysql_if_becomes_case(self) -> None:
        """The MySQL IF() function becomes a CASE expression."""
        # When
        result = rewrite_functions("SELECT IF(qty > 0, 'in', 'out') FROM stock", M, P, [], [])

        # Then
        assert result == "SELECT CASE WHEN qty > 0 THEN 'in' ELSE 'out' END FROM stock"

    def test_unsupported_function_kept_when_replacement_disabled(self) -> None:
        """INITCAP stays as written but its warning is still raised."""
        # Given
        sql = "SELECT INITCAP(name) FROM emp"
        warnings, applied_rules = [], []

        # When
        kept = rewrite_functions(sql, O, M, warnings, applied_rules, replace_unsupported=False)
        replaced = rewrite_functions(sql, O, M, [], [])

        # Then
        assert kept == sql
        assert applied_rules == []
        assert [w.type for w in warnings] == [WarningType.UNSUPPORTED_FUNCTION]
        assert replaced == "SELECT CONCAT(UPPER(SUBSTRING(name, 1, 1)), LOWER(SUBSTRING(name, 2))) FROM emp"


class TestTypesAndOperators:
    """Type-name, concatenation, cast and quoting tests."""

    def test_type_names(self) -> None:
        """Precision is preserved or bucketed into integer types."""
        # Given
        warnings = []

        # When / Then
        assert convert_type_name("VARCHAR2(100)", O, M, warnings) == "VARCHAR(100)"
        assert convert_type_name("NUMBER(5)", O, M, warnings) == "SMALLINT"
        assert convert_type_name("NUMBER(10,2)", O, M, warnings) == "DECIMAL(10,2)"
        assert convert_type_name("CLOB", O, M, warnings) == "LONGTEXT"

    def test_unqualified_number_warns_about_precision(self) -> None:
        """A bare NUMBER maps to a wide DECIMAL with a PRECISION_LOSS warning."""
        # Given
        warnings = []

        # When
        result = convert_type_name("NUMBER", O, M, warnings)

        # Then
        assert result == "DECIMAL(38,10)"
        assert [w.type for w in warnings] == [WarningType.PRECISION_LOSS]

    def test_concat_operator_becomes_concat_call(self) -> None:
        """a || b || c becomes a single CONCAT with a NULL-semantics warning."""
        # Given
        warnings, applied_rules = [], []

        # When
        result = rewrite_concat_operator("SELECT a || ' ' || b FROM t", O, warnings, applied_rules)

        # Then
        assert result == "SELECT CONCAT(a, ' ', b) FROM t"
        assert applied_rules == ["|| -> CONCAT()"]
        assert warnings[0].type is WarningType.SEMANTIC_DIFFERENCE
        assert warnings[0].severity is WarningSeverity.WARNING

    def test_pg_cast_becomes_cast_call(self) -> None:
        """expr::type becomes CAST(expr AS type)."""
        # When
        result = rewrite_pg_casts("SELECT id::text FROM t", [], [])

        # Then
        assert result == "SELECT CAST(id AS text) FROM t"

    def test_identifier_quotes_skip_literals(self) -> None:
        """Backticks become double quotes; backticks inside literals stay."""
        # Given
        applied_rules = []

        # When
        result = convert_identifier_quotes("SELECT `name`, '`x`' FROM `t`", M, P, applied_rules)

        # Then
        assert result == "SELECT \"name\", '`x`' FROM \"t\""
        assert len(applied_rules) == 1

    def test_mysql_double_quoted_strings_stay_strings(self) -> None:
        """MySQL "text" is a string, so PostgreSQL gets 'text' and a warning."""
        # Given
        warnings, applied_rules = [], []

        # When
        result = convert_identifier_quotes('SELECT "it\'s", `name` FROM `t` WHERE code = "A"', M, P,
                                           applied_rules, warnings)

        # Then
        assert result == "SELECT 'it''s', \"name\" FROM \"t\" WHERE code = 'A'"
        assert "Double-quoted strings -> single-quoted strings" in applied_rules
        assert [w.type for w in warnings] == [WarningType.SYNTAX_DIFFERENCE]
        assert warnings[0].message.startswith("2 double-quoted MySQL string(s)")
