"""
Quote-aware scanning primitives.

Every rewrite in the engine works on raw SQL text, so these helpers are the one
place that knows how string literals, quoted identifiers, comments and nested
parentheses look. They are pure functions with no shared state.

Functions:
  - find_matching_bracket(): index just past the ``)`` matching an open paren.
  - split_arguments(): top-level comma split of an argument list.
  - extract_expression_before() / extract_expression_after(): operand spans
    around a binary operator (``||``, ``::``).
  - mask_literals(): same-length copy with literals and comments blanked out.
  - find_call_sites() / find_bare_words(): regex search on the masked text.
"""
import re
from typing import List, Tuple

NOT_FOUND = -1

_QUOTES = ("'", '"')


def _is_ident_char(ch: str) -> bool:
    return ch.isalnum() or ch in "_$#.:@"


def _quoted_end(text: str, start: int) -> int:
    """Index just past the literal opened at *start*; doubled quotes are escapes."""
    quote = text[start]
    i = start + 1
    n = len(text)
    while i < n:
        if text[i] == quote:
            if i + 1 < n and text[i + 1] == quote:
                i += 2
                continue
            return i + 1
        i += 1
    return n


def _quoted_start(text: str, end: int) -> int:
    """Index of the opening quote for the literal whose closing quote is at *end*."""
    quote = text[end]
    j = end - 1
    while j >= 0:
        if text[j] == quote:
            if j - 1 >= 0 and text[j - 1] == quote:
                j -= 2
                continue
            return j
        j -= 1
    return 0


def find_matching_bracket(text: str, index_after_open: int) -> int:
    """
    Find the close paren matching an already-consumed ``(``.

    Args:
        text: SQL text.
        index_after_open: Index of the first character after the opening paren.

    Returns:
        The index immediately after the matching ``)``, or NOT_FOUND when the
        parentheses are unbalanced.
    """
    depth = 1
    i = index_after_open
    n = len(text)
    while i < n:
        ch = text[i]
        if ch in _QUOTES:
            i = _quoted_end(text, i)
            continue
        if ch == "(":
            depth += 1
        elif ch == ")":
            depth -= 1
            if depth == 0:
                return i + 1
        i += 1
    return NOT_FOUND


def find_opening_bracket(text: str, close_index: int) -> int:
    """Backward counterpart of find_matching_bracket: index of the ``(`` matching ``text[close_index]``."""
    depth = 1
    j = close_index - 1
    while j >= 0:
        ch = text[j]
        if ch in _QUOTES:
            j = _quoted_start(text, j) - 1
            continue
        if ch == ")":
            depth += 1
        elif ch == "(":
            depth -= 1
            if depth == 0:
                return j
        j -= 1
    return NOT_FOUND


def split_arguments(args_text: str) -> List[str]:
    """Split an argument list on top-level commas; each argument is trimmed."""
    if not args_text or not args_text.strip():
        return []

    args = []
    depth = 0
    start = 0
    i = 0
    n = len(args_text)
    while i < n:
        ch = args_text[i]
        if ch in _QUOTES:
            i = _quoted_end(args_text, i)
            continue
        if ch == "(":
            depth += 1
        elif ch == ")":
            depth -= 1
        elif ch == "," and depth == 0:
            args.append(args_text[start:i].strip())
            start = i + 1
        i += 1
    args.append(args_text[start:].strip())
    return args


def _identifier_start(text: str, index: int) -> int:
    j = index
    while j >= 0:
        ch = text[j]
        if _is_ident_char(ch):
            j -= 1
        elif ch == '"':
            j = _quoted_start(text, j) - 1
        else:
            break
    return j + 1


def extract_expression_before(text: str, operator_index: int) -> Tuple[str, int]:
    """
    Operand immediately to the left of a binary operator.

    Returns:
        (expression, start_index). The expression is empty and start_index is
        *operator_index* when nothing usable precedes the operator.
    """
    i = operator_index - 1
    while i >= 0 and text[i].isspace():
        i -= 1
    if i < 0:
        return "", operator_index

    ch = text[i]
    if ch == "'":
        start = _quoted_start(text, i)
    elif ch == ")":
        open_index = find_opening_bracket(text, i)
        if open_index == NOT_FOUND:
            return "", operator_index
        start = open_index
        # Function name glued to the paren belongs to the operand.
        j = start - 1
        while j >= 0 and _is_ident_char(text[j]):
            j -= 1
        start = j + 1
    else:
        start = _identifier_start(text, i)
        if start > i:
            return "", operator_index
    return text[start:i + 1], start


def extract_expression_after(text: str, index_after_operator: int) -> Tuple[str, int]:
    """
    Operand immediately to the right of a binary operator.

    Returns:
        (expression, end_index) where end_index is exclusive. Empty expression
        and *index_after_operator* when nothing usable follows.
    """
    n = len(text)
    i = index_after_operator
    while i < n and text[i].isspace():
        i += 1
    if i >= n:
        return "", index_after_operator

    ch = text[i]
    if ch == "'":
        end = _quoted_end(text, i)
    elif ch == "(":
        end = find_matching_bracket(text, i + 1)
        if end == NOT_FOUND:
            return "", index_after_operator
    else:
        j = i
        while j < n:
            c = text[j]
            if _is_ident_char(c):
                j += 1
            elif c == '"':
                j = _quoted_end(text, j)
            else:
                break
        if j == i:
            return "", index_after_operator
        if j < n and text[j] == "(":
            close = find_matching_bracket(text, j + 1)
            if close != NOT_FOUND:
                j = close
        end = j
    return text[i:end], end


def _blank(chars: List[str], start: int, end: int) -> None:
    for k in range(start, end):
        if chars[k] != "\n":
            chars[k] = " "


def mask_literals(text: str) -> str:
    """
    Same-length copy of *text* with literal contents and comments blanked.

    Quote characters of string literals and quoted identifiers are kept so that
    argument boundaries stay visible; their contents become spaces. ``--`` and
    ``/* */`` comments (hints included) are blanked completely. Newlines are kept.
    """
    chars = list(text)
    n = len(text)
    i = 0
    while i < n:
        ch = text[i]
        if ch in ("'", '"', "`"):
            end = _quoted_end(text, i)
            inner_end = end - 1 if end <= n and end - 1 > i and text[end - 1] == ch else end
            _blank(chars, i + 1, inner_end)
            i = end
        elif ch == "-" and text.startswith("--", i):
            end = text.find("\n", i)
            end = n if end == -1 else end
            _blank(chars, i, end)
            i = end
        elif ch == "/" and text.startswith("/*", i):
            end = text.find("*/", i + 2)
            end = n if end == -1 else end + 2
            _blank(chars, i, end)
            i = end
        else:
            i += 1
    return "".join(chars)


def find_call_sites(text: str, name: str, masked: str = None) -> List[Tuple[int, int]]:
    """
    Locate real call sites of *name* (case-insensitive).

    Member accesses such as ``pkg.NVL(`` and names inside literals or comments
    are skipped.

    Returns:
        A list of (name_start, index_after_open_paren) tuples in text order.
    """
    masked = mask_literals(text) if masked is None else masked
    pattern = re.compile(r"(?<![\w.$#:@])" + re.escape(name) + r"\s*\(", re.IGNORECASE)
    return [(m.start(), m.end()) for m in pattern.finditer(masked)]


def find_bare_words(text: str, name: str, masked: str = None) -> List[Tuple[int, int]]:
    """Occurrences of *name* as a standalone word that is not followed by ``(``."""
    masked = mask_literals(text) if masked is None else masked
    pattern = re.compile(r"(?<![\w.$#:@])" + re.escape(name) + r"\b(?!\s*\()", re.IGNORECASE)
    return [(m.start(), m.end()) for m in pattern.finditer(masked)]


def is_string_literal(expression: str) -> bool:
    expression = expression.strip()
    return len(expression) >= 2 and expression[0] == "'" and expression[-1] == "'"


def unquote_literal(expression: str) -> str:
    expression = expression.strip()
    return expression[1:-1].replace("''", "'")
