"""
Dialect name utilities for SQL conversion.
Handles mapping between user-supplied dialect names and DialectType members.
"""
from typing import Union

from ..models import DialectType


def get_dialect(name: Union[str, DialectType]) -> DialectType:
    """Resolve a user-supplied dialect name (``oracle``, ``postgres`` ...) to a DialectType."""
    return DialectType.from_name(name)


def supported_dialects() -> list:
    return [d.value for d in DialectType]
