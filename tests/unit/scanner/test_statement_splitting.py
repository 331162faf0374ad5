"""Tests for script splitting and re-joining."""

from sqlswitch.services.sql_conversion.utils.sql_preprocessing import (
    join_statements,
    leading_keyword,
    normalize_sql_text,
    split_statements,
    starts_with_sql_verb,
)


class TestSplitStatements:
    """split_statements tests."""

    def test_semicolon_inside_literal_does_not_split(self) -> None:
        """A ';' inside a string literal stays in its statement."""
        # Given
        script = "SELECT 'a;b' FROM t; SELECT 1"

        # When
        result = split_statements(script)

        # Then
        assert result == ["SELECT 'a;b' FROM t", "SELECT 1"]

    def test_comments_and_quoted_identifiers_are_skipped(self) -> None:
        """Semicolons in comments and quoted identifiers are not separators."""
        # Given
        script = 'SELECT "a;b" FROM t -- trailing; comment\n;\nSELECT 2 /* x; y */'

        # When
        result = split_statements(script)

        # Then
        assert len(result) == 2
        assert result[0].startswith('SELECT "a;b" FROM t')
        assert result[1] == "SELECT 2 /* x; y */"

    def test_plsql_unit_is_kept_whole(self) -> None:
        """A procedure body ends at the '/' line, not at its inner semicolons."""
        # Given
        script = (
            "CREATE OR REPLACE PROCEDURE p AS\n"
            "BEGIN\n"
            "  NULL;\n"
            "END;\n"
            "/\n"
            "SELECT 1 FROM dual"
        )

        # When
        result = split_statements(script, plsql_blocks=True)

        # Then
        assert len(result) == 2
        assert result[0].startswith("CREATE OR REPLACE PROCEDURE p")
        assert result[0].endswith("END;")
        assert result[1] == "SELECT 1 FROM dual"

    def test_dollar_quoted_body_is_kept_whole(self) -> None:
        """PostgreSQL $$ bodies are not split."""
        # Given
        script = "CREATE FUNCTION f() RETURNS int AS $$ BEGIN RETURN 1; END; $$ LANGUAGE plpgsql; SELECT f()"

        # When
        result = split_statements(script)

        # Then
        assert len(result) == 2
        assert result[1] == "SELECT f()"

    def test_blank_input_has_no_statements(self) -> None:
        """Whitespace and empty statements are dropped."""
        # When / Then
        assert split_statements("  ;  ;\n") == []


class TestJoinStatements:
    """join_statements and helper tests."""

    def test_join_adds_missing_semicolons(self) -> None:
        """Each statement ends with exactly one semicolon."""
        # Given
        statements = ["SELECT 1", "SELECT 2;"]

        # When
        result = join_statements(statements)

        # Then
        assert result == "SELECT 1;\nSELECT 2;"

    def test_normalize_strips_bom_and_carriage_returns(self) -> None:
        """BOM and CRLF line endings are normalised."""
        # When
        result = normalize_sql_text("\ufeffSELECT 1\r\nFROM t\r")

        # Then
        assert result == "SELECT 1\nFROM t\n"

    def test_leading_keyword_ignores_comments(self) -> None:
        """The verb after leading comments is recognised."""
        # Given
        sql = "-- header\n/* block */ select * from t"

        # When / Then
        assert leading_keyword(sql) == "SELECT"
        assert starts_with_sql_verb(sql)
        assert not starts_with_sql_verb("!!!broken!!!")
