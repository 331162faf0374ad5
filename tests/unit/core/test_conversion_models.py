"""Tests for the conversion data models."""

import pytest

from sqlswitch.services.sql_conversion.models import (
    ConversionOptions,
    ConversionResult,
    ConversionWarning,
    DialectType,
    WarningSeverity,
    WarningType,
    escalate,
    normalize_rule_name,
)


class TestDialectType:
    """DialectType tests."""

    @pytest.mark.parametrize(
        "name,expected",
        [
            ("oracle", DialectType.ORACLE),
            ("MySQL", DialectType.MYSQL),
            ("postgres", DialectType.POSTGRESQL),
            ("pg", DialectType.POSTGRESQL),
            (" tibero ", DialectType.TIBERO),
        ],
    )
    def test_from_name_accepts_aliases(self, name: str, expected: DialectType) -> None:
        """Names are case-insensitive and accept PostgreSQL aliases."""
        # When / Then
        assert DialectType.from_name(name) is expected

    def test_from_name_rejects_unknown_dialect(self) -> None:
        """Unknown names raise ValueError."""
        # When / Then
        with pytest.raises(ValueError, match="Unsupported dialect"):
            DialectType.from_name("sybase")

    def test_tibero_parses_as_oracle(self) -> None:
        """Tibero is Oracle-compatible and uses sqlglot's Oracle grammar."""
        # When / Then
        assert DialectType.TIBERO.is_oracle_compatible
        assert DialectType.TIBERO.sqlglot_dialect == "oracle"
        assert DialectType.POSTGRESQL.sqlglot_dialect == "postgres"
        assert DialectType.MYSQL.quote_char == "`"


class TestConversionResult:
    """ConversionResult tests."""

    def test_warnings_and_rules_are_deduplicated_in_order(self) -> None:
        """The first warning per message and the first copy of each rule survive."""
        # Given
        first = ConversionWarning(WarningType.SYNTAX_DIFFERENCE, "same", WarningSeverity.INFO)
        duplicate = ConversionWarning(WarningType.MANUAL_REVIEW_REQUIRED, "same", WarningSeverity.ERROR)
        other = ConversionWarning(WarningType.PRECISION_LOSS, "other")

        # When
        result = ConversionResult("SELECT 1", [first, duplicate, other], ["b", "a", "b"])

        # Then
        assert result.warnings == [first, other]
        assert result.applied_rules == ["b", "a"]
        assert not result.has_errors

    def test_to_dict_serialises_warnings(self) -> None:
        """Warnings serialise with the type name and the severity value."""
        # Given
        warning = ConversionWarning(WarningType.UNSUPPORTED_FUNCTION, "x", WarningSeverity.ERROR, "fix it")

        # When
        result = ConversionResult("SELECT 1", [warning]).to_dict()

        # Then
        assert result["converted_sql"] == "SELECT 1"
        assert result["warnings"][0]["type"] == "UNSUPPORTED_FUNCTION"
        assert result["warnings"][0]["severity"] == "ERROR"
        assert result["warnings"][0]["suggestion"] == "fix it"


class TestOptions:
    """ConversionOptions / escalate tests."""

    def test_escalate_only_raises_warning_severity(self) -> None:
        """WARNING becomes ERROR; INFO and ERROR are untouched."""
        # Given
        info = ConversionWarning(WarningType.SYNTAX_DIFFERENCE, "i", WarningSeverity.INFO)
        warning = ConversionWarning(WarningType.SEMANTIC_DIFFERENCE, "w", WarningSeverity.WARNING)

        # When / Then
        assert escalate(info).severity is WarningSeverity.INFO
        assert escalate(warning).severity is WarningSeverity.ERROR
        assert warning.severity is WarningSeverity.WARNING

    def test_from_config_applies_overrides(self) -> None:
        """Request overrides win over settings.yaml; unknown keys are ignored."""
        # When
        options = ConversionOptions.from_config({"strict_mode": 1, "unknown": True})

        # Then
        assert options.strict_mode is True
        assert options.replace_unsupported_functions is True
        assert options.enable_comments is False

    def test_normalize_rule_name(self) -> None:
        """Qualifiers are dropped and whitespace collapsed."""
        # When / Then
        assert normalize_rule_name("varchar2(100)") == "VARCHAR2"
        assert normalize_rule_name("timestamp(6)  with time zone") == "TIMESTAMP WITH TIME ZONE"
