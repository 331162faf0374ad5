"""Tests for ConversionOrchestrator, end to end."""

import pytest

from sqlswitch.services.sql_conversion import (
    ConversionOptions,
    ConversionOrchestrator,
    DialectType,
)
from sqlswitch.services.sql_conversion.models import WarningSeverity, WarningType

TRIGGER_SQL = """CREATE OR REPLACE TRIGGER trg_emp_updated
BEFORE UPDATE ON emp
FOR EACH ROW
BEGIN
  :NEW.updated_at := SYSDATE;
END;"""


@pytest.fixture(scope="module")
def orchestrator() -> ConversionOrchestrator:
    return ConversionOrchestrator()


class TestSingleStatement:
    """Single-statement conversion tests."""

    def test_oracle_nvl_to_mysql(self, orchestrator: ConversionOrchestrator) -> None:
        """NVL becomes IFNULL through the AST path."""
        # When
        result = orchestrator.convert("SELECT NVL(name, 'x') FROM emp", "oracle", "mysql")

        # Then
        assert result.converted_sql == "SELECT IFNULL(name, 'x') FROM emp"
        assert "NVL -> IFNULL" in result.applied_rules
        assert "Processed 1 statement(s): oracle -> mysql" in result.applied_rules
        assert not result.has_errors

    def test_oracle_sysdate_from_dual_to_postgresql(self, orchestrator: ConversionOrchestrator) -> None:
        """SYSDATE becomes CURRENT_TIMESTAMP and FROM DUAL is dropped."""
        # When
        result = orchestrator.convert("SELECT SYSDATE FROM DUAL", DialectType.ORACLE, DialectType.POSTGRESQL)

        # Then
        assert result.converted_sql == "SELECT CURRENT_TIMESTAMP"
        assert "FROM DUAL removed" in result.applied_rules

    def test_mysql_date_format_to_oracle(self, orchestrator: ConversionOrchestrator) -> None:
        """DATE_FORMAT becomes TO_CHAR with a translated mask."""
        # When
        result = orchestrator.convert("SELECT DATE_FORMAT(d, '%Y-%m-%d') FROM t", "mysql", "oracle")

        # Then
        assert result.converted_sql == "SELECT TO_CHAR(d, 'YYYY-MM-DD') FROM t"

    def test_rownum_filter_becomes_limit(self, orchestrator: ConversionOrchestrator) -> None:
        """A simple ROWNUM bound becomes LIMIT for MySQL."""
        # When
        result = orchestrator.convert("SELECT * FROM emp WHERE ROWNUM <= 10", "oracle", "mysql")

        # Then
        assert result.converted_sql == "SELECT * FROM emp LIMIT 10"
        assert "ROWNUM filter -> LIMIT 10" in result.applied_rules

    def test_mysql_limit_offset_to_postgresql(self, orchestrator: ConversionOrchestrator) -> None:
        """LIMIT m, n becomes LIMIT n OFFSET m."""
        # When
        result = orchestrator.convert("SELECT * FROM t LIMIT 5, 10", "mysql", "postgresql")

        # Then
        assert result.converted_sql == "SELECT * FROM t LIMIT 10 OFFSET 5"

    def test_trailing_semicolon_is_kept(self, orchestrator: ConversionOrchestrator) -> None:
        """Input ending in ';' produces output ending in ';'."""
        # When
        result = orchestrator.convert("SELECT NVL(a, 0) FROM t;", "oracle", "postgresql")

        # Then
        assert result.converted_sql == "SELECT COALESCE(a, 0) FROM t;"

    def test_trigger_goes_through_fallback(self, orchestrator: ConversionOrchestrator) -> None:
        """PL/SQL units are converted by the structural converters."""
        # When
        result = orchestrator.convert(TRIGGER_SQL, "oracle", "mysql")

        # Then
        assert "SET NEW.updated_at = NOW();" in result.converted_sql
        assert any(w.message.startswith("Statement converted with the fallback pipeline") for w in result.warnings)
        assert not result.has_errors


class TestIdentityAndFailures:
    """Same-dialect, batch isolation and never-raise tests."""

    def test_same_dialect_is_identity(self, orchestrator: ConversionOrchestrator) -> None:
        """Source equal to target returns the input untouched."""
        # Given
        sql = "SELECT NVL(a, 0) FROM t; SELECT 1 FROM dual"

        # When
        result = orchestrator.convert(sql, "oracle", "ORACLE")

        # Then
        assert result.converted_sql == sql
        assert result.warnings == []
        assert result.applied_rules == []

    def test_oracle_to_tibero_keeps_oracle_syntax(self, orchestrator: ConversionOrchestrator) -> None:
        """Tibero accepts Oracle functions as they are."""
        # When
        result = orchestrator.convert("SELECT NVL(a, 0) FROM dual", "oracle", "tibero")

        # Then
        assert result.converted_sql == "SELECT NVL(a, 0) FROM dual"
        assert result.warnings == []

    def test_failed_batch_statement_is_kept(self, orchestrator: ConversionOrchestrator) -> None:
        """One bad statement in a script is kept verbatim with one WARNING."""
        # When
        result = orchestrator.convert("SELECT 1; !!!broken!!!; SELECT 2", "mysql", "postgresql")

        # Then
        assert result.converted_sql == "SELECT 1;\n!!!broken!!!;\nSELECT 2;"
        problems = [w for w in result.warnings if w.severity is WarningSeverity.WARNING]
        assert len(problems) == 1
        assert problems[0].message.startswith("Statement 2 could not be converted")
        assert "Processed 3 statement(s): mysql -> postgresql" in result.applied_rules

    def test_unknown_dialect_never_raises(self, orchestrator: ConversionOrchestrator) -> None:
        """Failures come back as an ERROR warning with the original SQL."""
        # When
        result = orchestrator.convert("SELECT 1", "sybase", "mysql")

        # Then
        assert result.converted_sql == "SELECT 1"
        assert len(result.warnings) == 1
        assert result.warnings[0].severity is WarningSeverity.ERROR
        assert result.warnings[0].type is WarningType.MANUAL_REVIEW_REQUIRED
        assert result.warnings[0].message.startswith("Conversion failed, original SQL returned")

    def test_blank_input(self, orchestrator: ConversionOrchestrator) -> None:
        """Whitespace-only input comes back unchanged."""
        # When
        result = orchestrator.convert("   ", "oracle", "mysql")

        # Then
        assert result.converted_sql == "   "
        assert result.warnings == []


class TestOptions:
    """Request option tests."""

    def test_strict_mode_escalates_warnings(self, orchestrator: ConversionOrchestrator) -> None:
        """WARNING severity becomes ERROR."""
        # Given
        options = ConversionOptions(strict_mode=True)

        # When
        result = orchestrator.convert("SELECT a || b FROM t", "oracle", "mysql", options)

        # Then
        assert result.converted_sql == "SELECT CONCAT(a, b) FROM t"
        assert result.has_errors
        assert all(w.severity is not WarningSeverity.WARNING for w in result.warnings)

    def test_enable_comments_prefixes_rules(self, orchestrator: ConversionOrchestrator) -> None:
        """Applied rules are written as leading SQL comments."""
        # Given
        options = ConversionOptions(enable_comments=True)

        # When
        result = orchestrator.convert("SELECT NVL(a, 0) FROM t", "oracle", "mysql", options)

        # Then
        lines = result.converted_sql.splitlines()
        assert lines[0] == "-- NVL -> IFNULL"
        assert lines[-1] == "SELECT IFNULL(a, 0) FROM t"
