"""Tests for date-format mask translation."""

from sqlswitch.services.sql_conversion.models import DialectType
from sqlswitch.services.sql_conversion.utils.date_format import (
    mysql_to_oracle_format,
    oracle_to_mysql_format,
    translate_date_format,
)


class TestDateFormat:
    """translate_date_format tests."""

    def test_oracle_to_mysql_prefers_longest_token(self) -> None:
        """HH24 wins over HH and YYYY over YY."""
        # Given
        fmt = "YYYY-MM-DD HH24:MI:SS"

        # When
        result = translate_date_format(fmt, DialectType.ORACLE, DialectType.MYSQL)

        # Then
        assert result == "%Y-%m-%d %H:%i:%s"

    def test_mysql_to_oracle(self) -> None:
        """MySQL specifiers become Oracle tokens."""
        # When
        result = translate_date_format("%Y-%m-%d %H:%i:%s", DialectType.MYSQL, DialectType.ORACLE)

        # Then
        assert result == "YYYY-MM-DD HH24:MI:SS"

    def test_month_names_and_lowercase_tokens(self) -> None:
        """Oracle tokens match case-insensitively; MON is not read as MM."""
        # When / Then
        assert oracle_to_mysql_format("dd-MON-yyyy") == "%d-%b-%Y"
        assert mysql_to_oracle_format("%d %M %Y") == "DD MONTH YYYY"

    def test_double_quoted_text_is_literal(self) -> None:
        """Double-quoted runs are copied without their quotes."""
        # When
        result = oracle_to_mysql_format('YYYY"T"HH24')

        # Then
        assert result == "%YT%H"

    def test_oracle_family_masks_are_unchanged(self) -> None:
        """PostgreSQL and Tibero share Oracle masks."""
        # When / Then
        assert translate_date_format("YYYY-MM-DD", DialectType.POSTGRESQL, DialectType.ORACLE) == "YYYY-MM-DD"
        assert translate_date_format("YYYY-MM-DD", DialectType.ORACLE, DialectType.TIBERO) == "YYYY-MM-DD"
