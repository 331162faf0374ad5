"""
Result formatting utilities for SQL conversion.
Handles warning creation and the standardized result dictionary returned by the API.
"""
from typing import Dict, List, Optional

from ..models import ConversionResult, ConversionWarning, DialectType, WarningSeverity, WarningType

# Severity a rule-level warning gets when the rule does not say otherwise.
_DEFAULT_SEVERITY = {
    WarningType.SYNTAX_DIFFERENCE: WarningSeverity.INFO,
    WarningType.PERFORMANCE_IMPACT: WarningSeverity.INFO,
}


def severity_for(warning_type: WarningType) -> WarningSeverity:
    return _DEFAULT_SEVERITY.get(warning_type, WarningSeverity.WARNING)


def add_warning(warnings: List[ConversionWarning],
                warning_type: WarningType,
                message: str,
                severity: Optional[WarningSeverity] = None,
                suggestion: Optional[str] = None) -> None:
    warnings.append(ConversionWarning(
        type=warning_type,
        message=message,
        severity=severity or severity_for(warning_type),
        suggestion=suggestion,
    ))


def summarize_by_severity(warnings: List[ConversionWarning]) -> Dict[str, int]:
    summary = {severity.value: 0 for severity in WarningSeverity}
    for warning in warnings:
        summary[warning.severity.value] += 1
    return summary


def summarize_by_type(warnings: List[ConversionWarning]) -> Dict[str, int]:
    summary = {}
    for warning in warnings:
        summary[warning.type.name] = summary.get(warning.type.name, 0) + 1
    return dict(sorted(summary.items(), key=lambda x: x[1], reverse=True))


def create_result_dictionary(result: ConversionResult, source: DialectType, target: DialectType, **kwargs) -> dict:
    """
    Create the standardized dictionary for a conversion result.

    Args:
        result: The engine's ConversionResult.
        source: Source dialect.
        target: Target dialect.
        **kwargs: Extra keys copied into the dictionary (e.g. duration_s).

    Returns:
        Dictionary with status, dialects, converted SQL, warnings, applied rules and summaries.
    """
    status = 'partial_success' if result.has_errors else 'success'
    return {
        "status": status,
        "source_dialect": source.value,
        "target_dialect": target.value,
        **result.to_dict(),
        "summary": {
            "by_severity": summarize_by_severity(result.warnings),
            "by_type": summarize_by_type(result.warnings),
            "applied_rule_count": len(result.applied_rules),
        },
        **kwargs,
    }
