import re
from typing import List, Optional, Sequence

from sqlswitch.utils.logger import setup_logger

from ..models import ConversionWarning, DialectType


class BaseConverter:
    """
    A base class for the structural converters to ensure a consistent interface.

    Subclasses set ``construct_pattern`` (a quick pre-check) and
    ``source_dialects`` and implement ``_convert``. ``convert`` handles the
    pass-through contract: an unsupported source or non-matching input comes
    back unchanged with nothing appended.
    """
    name = "base"
    construct_pattern: Optional[re.Pattern] = None
    source_dialects: Sequence[DialectType] = (DialectType.ORACLE, DialectType.TIBERO)

    def __init__(self):
        self.logger = setup_logger(type(self).__name__)

    def matches(self, sql: str) -> bool:
        return bool(self.construct_pattern and self.construct_pattern.search(sql))

    def supports(self, source_dialect: DialectType, target_dialect: DialectType) -> bool:
        return source_dialect in self.source_dialects and source_dialect is not target_dialect

    def convert(self, sql: str, source_dialect: DialectType, target_dialect: DialectType,
                warnings: List[ConversionWarning], applied_rules: List[str]) -> str:
        """
        Convert the construct this converter specialises in.

        Args:
            sql: A single SQL statement.
            source_dialect: Dialect the statement is written in.
            target_dialect: Dialect to produce.
            warnings: Receives any warnings raised.
            applied_rules: Receives a description of every rewrite performed.

        Returns:
            The rewritten SQL, or *sql* itself when nothing applies.
        """
        if not self.supports(source_dialect, target_dialect) or not self.matches(sql):
            return sql
        self.logger.debug(f"{self.name}: {source_dialect.value} -> {target_dialect.value}")
        return self._convert(sql, source_dialect, target_dialect, warnings, applied_rules)

    def _convert(self, sql: str, source_dialect: DialectType, target_dialect: DialectType,
                 warnings: List[ConversionWarning], applied_rules: List[str]) -> str:
        raise NotImplementedError("Each converter must implement its own _convert method.")
