"""Tests for the DDL clean-ups of the fallback pipeline."""

import pytest

from sqlswitch.services.sql_conversion.converters.declarative.ddl_handler import DdlHandler
from sqlswitch.services.sql_conversion.converters.declarative.fallback_pipeline import FallbackPipeline
from sqlswitch.services.sql_conversion.errors import StatementConversionError
from sqlswitch.services.sql_conversion.models import DialectType, WarningSeverity, WarningType

O = DialectType.ORACLE
M = DialectType.MYSQL
P = DialectType.POSTGRESQL


@pytest.fixture
def handler() -> DdlHandler:
    return DdlHandler()


class TestDdlHandler:
    """DdlHandler tests."""

    def test_storage_options_are_removed(self, handler: DdlHandler) -> None:
        """TABLESPACE and PCTFREE are dropped with a single INFO warning."""
        # Given
        sql = "CREATE TABLE t (id NUMBER) TABLESPACE users PCTFREE 10"
        warnings, applied_rules = [], []

        # When
        result = handler.strip_storage_options(sql, O, M, warnings, applied_rules)

        # Then
        assert result == "CREATE TABLE t (id NUMBER)"
        assert len(warnings) == 1
        assert warnings[0].severity is WarningSeverity.INFO
        assert warnings[0].message.startswith("Oracle storage options removed: TABLESPACE")
        assert "Oracle TABLESPACE clause removed" in applied_rules

    def test_default_sysdate(self, handler: DdlHandler) -> None:
        """DEFAULT SYSDATE becomes DEFAULT CURRENT_TIMESTAMP."""
        # Given
        sql = "CREATE TABLE t (created DATE DEFAULT SYSDATE)"

        # When
        result = handler.strip_storage_options(sql, O, P, [], [])

        # Then
        assert result == "CREATE TABLE t (created DATE DEFAULT CURRENT_TIMESTAMP)"

    def test_oracle_compatible_target_keeps_options(self, handler: DdlHandler) -> None:
        """Tibero understands Oracle storage clauses."""
        # Given
        sql = "CREATE TABLE t (id NUMBER) TABLESPACE users"

        # When / Then
        assert handler.strip_storage_options(sql, O, DialectType.TIBERO, [], []) == sql

    def test_schema_prefix_collapsed_for_mysql(self, handler: DdlHandler) -> None:
        """INSERT INTO and FROM references lose their schema."""
        # Given
        sql = "INSERT INTO hr.emp (id) SELECT id FROM hr.src"
        applied_rules = []

        # When
        result = handler.collapse_schema_names(sql, O, M, [], applied_rules)

        # Then
        assert result == "INSERT INTO emp (id) SELECT id FROM src"
        assert "Schema prefix removed: hr.emp -> emp" in applied_rules

    def test_schema_prefix_in_literal_is_kept(self, handler: DdlHandler) -> None:
        """A qualified name inside a string literal is not touched."""
        # Given
        sql = "SELECT 'FROM hr.emp' FROM dual"

        # When / Then
        assert handler.collapse_schema_names(sql, O, M, [], []) == sql

    def test_comment_on_table_for_mysql(self, handler: DdlHandler) -> None:
        """COMMENT ON is commented out with an ALTER TABLE suggestion."""
        # Given
        sql = "COMMENT ON TABLE emp IS 'Employees'"
        warnings = []

        # When
        result = handler.remove_comment_on(sql, O, M, warnings, [])

        # Then
        assert result == "-- COMMENT ON TABLE emp IS 'Employees'"
        assert warnings[0].type is WarningType.UNSUPPORTED_STATEMENT
        assert warnings[0].suggestion == "ALTER TABLE emp COMMENT = 'Employees'"


class TestFallbackPipeline:
    """FallbackPipeline tests."""

    def test_runs_ddl_and_type_stages(self) -> None:
        """Storage options go and column types are mapped."""
        # Given
        sql = "CREATE TABLE t (name VARCHAR2(100), total NUMBER(10,2)) TABLESPACE users"

        # When
        result, warnings, applied_rules, logs = FallbackPipeline().run(sql, O, M)

        # Then
        assert result == "CREATE TABLE t (name VARCHAR(100), total DECIMAL(10,2))"
        assert "Oracle TABLESPACE clause removed" in applied_rules
        assert logs

    def test_unrecognised_statement_raises(self) -> None:
        """Text that does not start with a SQL verb is rejected."""
        # When / Then
        with pytest.raises(StatementConversionError):
            FallbackPipeline().run("!!!broken!!!", M, P)
