"""
Date-format mini-language translation between Oracle-style and MySQL-style masks.

Oracle, Tibero and PostgreSQL share the ``YYYY-MM-DD HH24:MI:SS`` token family;
MySQL uses ``%``-prefixed specifiers. Tokens are substituted through a single
longest-first alternation so ``HH24`` wins over ``HH`` and ``YYYY`` over ``YY``.
"""
import re
from typing import Dict

from ..models import DialectType

# Oracle tokens are matched case-insensitively.
ORACLE_TO_MYSQL: Dict[str, str] = {
    "YYYY": "%Y",
    "RRRR": "%Y",
    "YY": "%y",
    "RR": "%y",
    "MONTH": "%M",
    "MON": "%b",
    "MM": "%m",
    "DDD": "%j",
    "DD": "%d",
    "DAY": "%W",
    "DY": "%a",
    "HH24": "%H",
    "HH12": "%h",
    "HH": "%h",
    "MI": "%i",
    "SS": "%s",
    "FF6": "%f",
    "FF": "%f",
    "US": "%f",
    "AM": "%p",
    "PM": "%p",
    "A.M.": "%p",
    "P.M.": "%p",
}

# MySQL specifiers are case-sensitive (%M is the month name, %m the month number).
MYSQL_TO_ORACLE: Dict[str, str] = {
    "%Y": "YYYY",
    "%y": "YY",
    "%m": "MM",
    "%c": "MM",
    "%d": "DD",
    "%e": "DD",
    "%H": "HH24",
    "%k": "HH24",
    "%h": "HH12",
    "%I": "HH12",
    "%l": "HH12",
    "%i": "MI",
    "%s": "SS",
    "%S": "SS",
    "%W": "DAY",
    "%a": "DY",
    "%b": "MON",
    "%M": "MONTH",
    "%p": "AM",
    "%j": "DDD",
    "%f": "FF6",
    "%T": "HH24:MI:SS",
    "%r": "HH12:MI:SS AM",
    "%%": "%",
}


def _alternation(tokens, flags=0):
    ordered = sorted(tokens, key=len, reverse=True)
    return re.compile("|".join(re.escape(t) for t in ordered), flags)


# Double-quoted runs are literal text in Oracle masks.
_ORACLE_PATTERN = re.compile(
    r'"[^"]*"|' + _alternation(ORACLE_TO_MYSQL.keys()).pattern, re.IGNORECASE
)
_MYSQL_PATTERN = _alternation(MYSQL_TO_ORACLE.keys())
_MYSQL_TOKEN = re.compile(r"%[A-Za-z%]")


def oracle_to_mysql_format(fmt: str) -> str:
    def _sub(match):
        token = match.group(0)
        if token.startswith('"'):
            return token[1:-1]
        return ORACLE_TO_MYSQL[token.upper()]
    return _ORACLE_PATTERN.sub(_sub, fmt)


def mysql_to_oracle_format(fmt: str) -> str:
    return _MYSQL_PATTERN.sub(lambda m: MYSQL_TO_ORACLE[m.group(0)], fmt)


def has_mysql_tokens(fmt: str) -> bool:
    return bool(_MYSQL_TOKEN.search(fmt))


def translate_date_format(fmt: str, source: DialectType, target: DialectType) -> str:
    """
    Translate a date-format string from *source* conventions to *target* conventions.

    PostgreSQL and Tibero masks are Oracle-compatible, so a translation between
    two such dialects is the identity unless the mask carries MySQL ``%`` tokens.
    """
    if source is target:
        return fmt

    source_is_mysql = source is DialectType.MYSQL
    target_is_mysql = target is DialectType.MYSQL

    if source_is_mysql and not target_is_mysql:
        return mysql_to_oracle_format(fmt)
    if target_is_mysql and not source_is_mysql:
        return oracle_to_mysql_format(fmt)
    if has_mysql_tokens(fmt):
        return mysql_to_oracle_format(fmt)
    return fmt
