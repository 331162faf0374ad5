"""
Standalone stored routines (CREATE PROCEDURE / CREATE FUNCTION).

An Oracle routine is rebuilt around the target's header, the same way a
package member is: ``RETURNS ... LANGUAGE plpgsql AS $$ ... $$`` for
PostgreSQL, ``DELIMITER //`` with DECLARE and SET statements for MySQL.
Routines written in MySQL or PostgreSQL are reported instead of converted.

FUNCTIONS:
==========
  - RoutineConverter.convert(): rebuild one CREATE PROCEDURE / FUNCTION for the target.
"""
import re

from ...models import DialectType, WarningSeverity, WarningType
from ...utils.result_formatter import add_warning
from ...utils.sql_scanner import mask_literals
from .package_converter import PackageConverter, PackageInfo, parse_routine

_ROUTINE_HEADER = re.compile(
    r"^\s*CREATE\s+(?:OR\s+REPLACE\s+)?(?:(?:NON)?EDITIONABLE\s+|DEFINER\s*=\s*\S+\s+)?(?:FUNCTION|PROCEDURE)\b",
    re.IGNORECASE,
)


class RoutineConverter(PackageConverter):
    """Converts standalone procedures and functions between procedural dialects."""
    name = "routine"
    construct_pattern = _ROUTINE_HEADER
    source_dialects = (DialectType.ORACLE, DialectType.TIBERO, DialectType.MYSQL, DialectType.POSTGRESQL)

    def matches(self, sql: str) -> bool:
        return bool(_ROUTINE_HEADER.match(mask_literals(sql)))

    def supports(self, source_dialect: DialectType, target_dialect: DialectType) -> bool:
        if source_dialect.is_oracle_compatible and target_dialect.is_oracle_compatible:
            return False
        return source_dialect is not target_dialect

    def _convert(self, sql, source_dialect, target_dialect, warnings, applied_rules):
        if not source_dialect.is_oracle_compatible or target_dialect.is_oracle_compatible:
            add_warning(warnings, WarningType.MANUAL_REVIEW_REQUIRED,
                        f"{source_dialect.value} stored routine was not converted to {target_dialect.value}",
                        WarningSeverity.WARNING,
                        f"Rewrite the routine header and body in {target_dialect.value} procedural syntax")
            return sql

        member = parse_routine(sql)
        if member is None:
            add_warning(warnings, WarningType.MANUAL_REVIEW_REQUIRED,
                        "Stored routine could not be parsed and its header was left unchanged",
                        WarningSeverity.ERROR, "Check that the routine has a BEGIN ... END block")
            return sql

        self.logger.debug({'action': 'routine', 'details': {'kind': member.kind, 'name': member.name}})
        info = PackageInfo(name=member.name, is_body=True)
        if target_dialect is DialectType.MYSQL:
            converted = self._mysql_routine(member, member.name, info, [], source_dialect, warnings, applied_rules)
        else:
            converted = self._postgresql_routine(member, member.name, info, [], source_dialect, warnings,
                                                 applied_rules)
        applied_rules.append(f"{member.kind} {member.name} header -> {target_dialect.value}")
        return converted
