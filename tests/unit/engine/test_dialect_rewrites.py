"""End-to-end tests for statement-level rewrites: DDL options, Oracle query constructs, sequences and formatting."""

import pytest

from sqlswitch.services.sql_conversion import ConversionOptions, ConversionOrchestrator
from sqlswitch.services.sql_conversion.models import WarningSeverity, WarningType


@pytest.fixture(scope="module")
def orchestrator() -> ConversionOrchestrator:
    return ConversionOrchestrator()


class TestTableDefinitions:
    """MySQL CREATE TABLE conversion tests."""

    def test_auto_increment_and_engine_for_postgresql(self, orchestrator: ConversionOrchestrator) -> None:
        """AUTO_INCREMENT becomes an identity column and ENGINE is dropped."""
        # When
        result = orchestrator.convert(
            "CREATE TABLE t (g INT AUTO_INCREMENT PRIMARY KEY, name VARCHAR(50)) ENGINE=InnoDB DEFAULT CHARSET=utf8mb4",
            "mysql", "postgresql")

        # Then
        sql = result.converted_sql.upper()
        assert "GENERATED BY DEFAULT AS IDENTITY" in sql
        assert "AUTO_INCREMENT" not in sql
        assert "ENGINE" not in sql
        assert "CHARSET" not in sql
        assert "MySQL table options removed" in result.applied_rules
        assert "AUTO_INCREMENT -> GENERATED BY DEFAULT AS IDENTITY" in result.applied_rules

    def test_auto_increment_for_oracle(self, orchestrator: ConversionOrchestrator) -> None:
        """Oracle gets an identity column as well."""
        # When
        result = orchestrator.convert("CREATE TABLE t (g INT AUTO_INCREMENT PRIMARY KEY) ENGINE=InnoDB",
                                      "mysql", "oracle")

        # Then
        sql = result.converted_sql.upper()
        assert "GENERATED BY DEFAULT AS IDENTITY" in sql
        assert "AUTO_INCREMENT" not in sql
        assert "ENGINE" not in sql


class TestOracleQueries:
    """Oracle query construct tests."""

    def test_vendor_call_from_dual_for_postgresql(self, orchestrator: ConversionOrchestrator) -> None:
        """FROM DUAL is dropped on the fallback path too."""
        # When
        result = orchestrator.convert("SELECT DBMS_RANDOM.VALUE(1, 10) FROM DUAL", "oracle", "postgresql")

        # Then
        assert "DUAL" not in result.converted_sql.upper()
        assert "DBMS_RANDOM" not in result.converted_sql
        assert "FROM DUAL removed" in result.applied_rules

    def test_date_minus_days(self, orchestrator: ConversionOrchestrator) -> None:
        """SYSDATE - 1 subtracts an explicit one-day interval."""
        # When
        result = orchestrator.convert("SELECT SYSDATE - 1 FROM DUAL", "oracle", "postgresql")

        # Then
        assert result.converted_sql == "SELECT CURRENT_TIMESTAMP - INTERVAL '1 DAY'"
        assert "date - 1 -> INTERVAL 1 DAY" in result.applied_rules

    def test_date_plus_days_for_mysql(self, orchestrator: ConversionOrchestrator) -> None:
        """MySQL gets an explicit day INTERVAL as well."""
        # When
        result = orchestrator.convert("SELECT hire_date + 30 FROM emp", "oracle", "mysql")

        # Then
        assert "INTERVAL" in result.converted_sql.upper()
        assert "30" in result.converted_sql
        assert "date + 30 -> INTERVAL 30 DAY" in result.applied_rules

    def test_join_marks_become_left_join(self, orchestrator: ConversionOrchestrator) -> None:
        """a.x = b.y(+) becomes LEFT JOIN b."""
        # When
        result = orchestrator.convert(
            "SELECT e.name, d.name FROM emp e, dept d WHERE e.dept_id = d.id(+)", "oracle", "postgresql")

        # Then
        assert "LEFT JOIN DEPT" in result.converted_sql.upper()
        assert "(+)" not in result.converted_sql
        assert "(+) outer join -> LEFT JOIN" in result.applied_rules

    def test_connect_by_becomes_recursive_cte(self, orchestrator: ConversionOrchestrator) -> None:
        """START WITH / CONNECT BY PRIOR becomes WITH RECURSIVE."""
        # Given
        sql = ("SELECT employee_id, manager_id FROM employees "
               "START WITH manager_id IS NULL CONNECT BY PRIOR employee_id = manager_id")

        # When
        result = orchestrator.convert(sql, "oracle", "postgresql")

        # Then
        assert result.converted_sql.startswith("WITH RECURSIVE hierarchy AS (")
        assert "CONNECT BY" not in result.converted_sql.upper()
        assert "CONNECT BY -> WITH RECURSIVE" in result.applied_rules
        assert any(w.type is WarningType.SEMANTIC_DIFFERENCE for w in result.warnings)

    def test_connect_by_with_path_is_reported(self, orchestrator: ConversionOrchestrator) -> None:
        """SYS_CONNECT_BY_PATH is left for a manual rewrite."""
        # Given
        sql = ("SELECT SYS_CONNECT_BY_PATH(name, '/') FROM employees "
               "START WITH manager_id IS NULL CONNECT BY PRIOR employee_id = manager_id")

        # When
        result = orchestrator.convert(sql, "oracle", "postgresql")

        # Then
        assert any(w.type is WarningType.MANUAL_REVIEW_REQUIRED and "CONNECT BY" in w.message
                   for w in result.warnings)

    def test_merge_becomes_upsert_for_mysql(self, orchestrator: ConversionOrchestrator) -> None:
        """MERGE with both branches becomes INSERT ... ON DUPLICATE KEY UPDATE."""
        # Given
        sql = ("MERGE INTO emp t USING src s ON (t.id = s.id) "
               "WHEN MATCHED THEN UPDATE SET t.name = s.name "
               "WHEN NOT MATCHED THEN INSERT (id, name) VALUES (s.id, s.name)")

        # When
        result = orchestrator.convert(sql, "oracle", "mysql")

        # Then
        assert result.converted_sql.upper().startswith("INSERT INTO EMP")
        assert "ON DUPLICATE KEY UPDATE" in result.converted_sql.upper()
        assert "MERGE -> INSERT ... ON DUPLICATE KEY UPDATE" in result.applied_rules

    def test_merge_for_postgresql_notes_version(self, orchestrator: ConversionOrchestrator) -> None:
        """PostgreSQL keeps MERGE with a version note."""
        # Given
        sql = ("MERGE INTO emp t USING src s ON (t.id = s.id) "
               "WHEN MATCHED THEN UPDATE SET t.name = s.name")

        # When
        result = orchestrator.convert(sql, "oracle", "postgresql")

        # Then
        assert result.converted_sql.upper().startswith("MERGE INTO")
        assert any(w.message == "MERGE requires PostgreSQL 15 or later" for w in result.warnings)


class TestSequences:
    """Sequence DDL and reference tests."""

    def test_nextval_for_postgresql(self, orchestrator: ConversionOrchestrator) -> None:
        """seq.NEXTVAL becomes nextval('seq')."""
        # When
        result = orchestrator.convert("SELECT emp_seq.NEXTVAL FROM DUAL", "oracle", "postgresql")

        # Then
        assert "NEXTVAL('EMP_SEQ')" in result.converted_sql.upper()
        assert "DUAL" not in result.converted_sql.upper()

    def test_create_sequence_for_mysql(self, orchestrator: ConversionOrchestrator) -> None:
        """CREATE SEQUENCE is emulated for MySQL with a WARNING."""
        # When
        result = orchestrator.convert("CREATE SEQUENCE order_seq START WITH 10", "oracle", "mysql")

        # Then
        assert "CREATE TABLE order_seq_seq (" in result.converted_sql
        assert "CREATE FUNCTION order_seq_nextval() RETURNS BIGINT" in result.converted_sql
        assert any(w.type is WarningType.UNSUPPORTED_STATEMENT and w.severity is WarningSeverity.WARNING
                   for w in result.warnings)


class TestFormatting:
    """format_sql option tests."""

    def test_formatting_keeps_converted_function_names(self, orchestrator: ConversionOrchestrator) -> None:
        """Pretty printing never turns IFNULL back into another name."""
        # Given
        options = ConversionOptions(format_sql=True)

        # When
        result = orchestrator.convert("SELECT NVL(name, 'x') FROM emp", "oracle", "mysql", options)

        # Then
        assert "IFNULL(name, 'x')" in result.converted_sql
        assert "COALESCE" not in result.converted_sql.upper()

    def test_formatting_pretty_prints(self, orchestrator: ConversionOrchestrator) -> None:
        """Output that re-parses is laid out over several lines."""
        # Given
        options = ConversionOptions(format_sql=True)

        # When
        result = orchestrator.convert("SELECT a, b FROM t WHERE a = 1 LIMIT 5", "mysql", "postgresql", options)

        # Then
        assert "\n" in result.converted_sql
        assert "Output formatted" in result.applied_rules

    def test_unsupported_function_kept_when_replacement_disabled(self, orchestrator: ConversionOrchestrator) -> None:
        """replace_unsupported_functions=False keeps INITCAP and still reports it."""
        # Given
        options = ConversionOptions(replace_unsupported_functions=False)

        # When
        result = orchestrator.convert("SELECT INITCAP(name) FROM emp", "oracle", "mysql", options)

        # Then
        assert "INITCAP(NAME)" in result.converted_sql.upper()
        assert any(w.type is WarningType.UNSUPPORTED_FUNCTION for w in result.warnings)


class TestRoutines:
    """Standalone procedure tests."""

    def test_oracle_procedure_for_postgresql(self, orchestrator: ConversionOrchestrator) -> None:
        """A standalone procedure reaches PostgreSQL with a plpgsql header and no Oracle IS."""
        # Given
        sql = ("CREATE OR REPLACE PROCEDURE touch_emp(p_id IN NUMBER) IS\n"
               "BEGIN\n"
               "  UPDATE emp SET touched = SYSDATE WHERE id = p_id;\n"
               "END touch_emp;\n"
               "/")

        # When
        result = orchestrator.convert(sql, "oracle", "postgresql")

        # Then
        assert result.converted_sql.startswith("CREATE OR REPLACE PROCEDURE touch_emp(")
        assert "LANGUAGE plpgsql" in result.converted_sql
        assert "AS $$" in result.converted_sql
        assert "SYSDATE" not in result.converted_sql
        assert "PROCEDURE touch_emp header -> postgresql" in result.applied_rules
        assert not result.has_errors
