"""Tests for the SQL scanner: bracket matching, argument splitting and literal masking."""

from sqlswitch.services.sql_conversion.utils.sql_scanner import (
    NOT_FOUND,
    extract_expression_after,
    extract_expression_before,
    find_bare_words,
    find_call_sites,
    find_matching_bracket,
    mask_literals,
    split_arguments,
)


class TestFindMatchingBracket:
    """find_matching_bracket tests."""

    def test_skips_parens_inside_literals(self) -> None:
        """A ')' inside a string literal does not close the call."""
        # Given
        text = "f(a, (b), ')') x"

        # When
        result = find_matching_bracket(text, 2)

        # Then
        assert result == len("f(a, (b), ')')")
        assert text[result - 1] == ")"

    def test_unbalanced_returns_not_found(self) -> None:
        """Unbalanced input reports NOT_FOUND."""
        # Given
        text = "NVL(a, (b"

        # When
        result = find_matching_bracket(text, 4)

        # Then
        assert result == NOT_FOUND


class TestSplitArguments:
    """split_arguments tests."""

    def test_splits_on_top_level_commas_only(self) -> None:
        """Commas inside nested calls and literals are kept."""
        # Given
        args_text = "a, f(b, c), 'x,y'"

        # When
        result = split_arguments(args_text)

        # Then
        assert result == ["a", "f(b, c)", "'x,y'"]

    def test_blank_argument_list_is_empty(self) -> None:
        """An empty argument list yields no arguments."""
        # When / Then
        assert split_arguments("") == []
        assert split_arguments("   ") == []

    def test_arguments_rejoin_to_original(self) -> None:
        """Joining the trimmed arguments restores a normalised argument list."""
        # Given
        args_text = "d, 'YYYY-MM-DD', NVL(x, 0)"

        # When
        result = ", ".join(split_arguments(args_text))

        # Then
        assert result == args_text


class TestMaskLiterals:
    """mask_literals tests."""

    def test_blanks_literal_contents_and_comments(self) -> None:
        """Literal contents and comments become spaces; quotes and length are kept."""
        # Given
        text = "SELECT 'a;b' -- c\nFROM t"

        # When
        result = mask_literals(text)

        # Then
        assert len(result) == len(text)
        assert result == "SELECT '   '     \nFROM t"

    def test_blanks_block_comments_and_hints(self) -> None:
        """Block comments, hints included, are blanked completely."""
        # Given
        text = "SELECT /*+ FULL(t) */ 1"

        # When
        result = mask_literals(text)

        # Then
        assert "FULL" not in result
        assert result.startswith("SELECT ")
        assert result.endswith(" 1")


class TestCallSites:
    """find_call_sites / find_bare_words tests."""

    def test_member_access_is_not_a_call_site(self) -> None:
        """pkg.NVL( is skipped, a bare NVL( is found."""
        # Given
        text = "SELECT pkg.NVL(a), NVL(b) FROM t"

        # When
        result = find_call_sites(text, "NVL")

        # Then
        assert len(result) == 1
        name_start, after_open = result[0]
        assert name_start == text.index("NVL(b")
        assert text[after_open - 1] == "("

    def test_names_inside_literals_are_ignored(self) -> None:
        """A function name inside a string literal is not a call site."""
        # Given
        text = "SELECT 'NVL(x)' FROM t"

        # When / Then
        assert find_call_sites(text, "NVL") == []

    def test_bare_words_exclude_calls(self) -> None:
        """SYSDATE as a bare word is found; SYSDATE( is not."""
        # Given
        text = "SELECT SYSDATE, SYSDATE() FROM dual"

        # When
        result = find_bare_words(text, "SYSDATE")

        # Then
        assert result == [(7, 14)]


class TestExtractExpression:
    """extract_expression_before / extract_expression_after tests."""

    def test_operands_around_operator(self) -> None:
        """Identifiers, literals and calls are taken whole."""
        # Given
        text = "SELECT first_name || ' ' || UPPER(last_name) FROM emp"
        first = text.index("||")

        # When
        left, left_start = extract_expression_before(text, first)
        right, right_end = extract_expression_after(text, first + 2)

        # Then
        assert left == "first_name"
        assert left_start == text.index("first_name")
        assert right == "' '"
        assert text[right_end - 1] == "'"

    def test_function_call_operand(self) -> None:
        """A call to the right of the operator includes its argument list."""
        # Given
        text = "a || UPPER(b) FROM t"

        # When
        right, right_end = extract_expression_after(text, 4)

        # Then
        assert right == "UPPER(b)"
        assert right_end == len("a || UPPER(b)")
