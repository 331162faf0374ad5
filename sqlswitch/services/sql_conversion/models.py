"""
Core value types shared by every part of the conversion engine.

Dialects, rule tags, the immutable mapping rules held by the registries and the
per-request warning/result/option objects all live here so that converters only
ever depend on this module and on each other's public functions.
"""
import re
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, List, Optional


class DialectType(Enum):
    ORACLE = "oracle"
    MYSQL = "mysql"
    POSTGRESQL = "postgresql"
    TIBERO = "tibero"

    @property
    def sqlglot_dialect(self) -> str:
        # Tibero speaks Oracle syntax; sqlglot has no dedicated dialect for it.
        return {
            DialectType.ORACLE: "oracle",
            DialectType.TIBERO: "oracle",
            DialectType.MYSQL: "mysql",
            DialectType.POSTGRESQL: "postgres",
        }[self]

    @property
    def quote_char(self) -> str:
        return "`" if self is DialectType.MYSQL else '"'

    @property
    def is_oracle_compatible(self) -> bool:
        return self in (DialectType.ORACLE, DialectType.TIBERO)

    @classmethod
    def from_name(cls, name: str) -> "DialectType":
        if isinstance(name, DialectType):
            return name
        key = (name or "").strip().lower()
        aliases = {"postgres": "postgresql", "pg": "postgresql", "pgsql": "postgresql"}
        key = aliases.get(key, key)
        for member in cls:
            if member.value == key:
                return member
        raise ValueError(f"Unsupported dialect: '{name}'. Expected one of {[m.value for m in cls]}")


class ParameterTransform(Enum):
    NONE = "none"
    SWAP_FIRST_TWO = "swap_first_two"
    DATE_FORMAT_CONVERT = "date_format_convert"
    TO_CASE_WHEN = "to_case_when"
    WRAP_WITH_FUNCTION = "wrap_with_function"


class PrecisionHandler(Enum):
    PRESERVE = "preserve"
    CONVERT = "convert"
    DROP = "drop"
    MAP_TO_INTEGER = "map_to_integer"


class WarningType(Enum):
    UNSUPPORTED_FUNCTION = "unsupported_function"
    UNSUPPORTED_STATEMENT = "unsupported_statement"
    SYNTAX_DIFFERENCE = "syntax_difference"
    DATA_TYPE_MISMATCH = "data_type_mismatch"
    PRECISION_LOSS = "precision_loss"
    SEMANTIC_DIFFERENCE = "semantic_difference"
    PERFORMANCE_IMPACT = "performance_impact"
    MANUAL_REVIEW_REQUIRED = "manual_review_required"
    DEPRECATED_FEATURE = "deprecated_feature"
    SECURITY_CONCERN = "security_concern"
    COMPATIBILITY_ISSUE = "compatibility_issue"
    PARTIAL_SUPPORT = "partial_support"


class WarningSeverity(Enum):
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"


def normalize_rule_name(name: str) -> str:
    """Key form of a function/type name: qualifiers removed, whitespace collapsed, upper-cased."""
    stripped = re.sub(r"\([^)]*\)", " ", name or "")
    return " ".join(stripped.split()).upper()


@dataclass(frozen=True)
class FunctionMappingRule:
    source_dialect: DialectType
    target_dialect: DialectType
    source_function_name: str
    target_function_name: str
    parameter_transform: ParameterTransform = ParameterTransform.NONE
    warning_type: Optional[WarningType] = None
    warning_message: Optional[str] = None
    suggestion: Optional[str] = None

    @property
    def source_name(self) -> str:
        return self.source_function_name

    @property
    def is_unsupported(self) -> bool:
        return self.warning_type is WarningType.UNSUPPORTED_FUNCTION


@dataclass(frozen=True)
class DataTypeMappingRule:
    source_dialect: DialectType
    target_dialect: DialectType
    source_type_name: str
    target_type_name: str
    precision_handler: PrecisionHandler = PrecisionHandler.PRESERVE
    warning_type: Optional[WarningType] = None
    warning_message: Optional[str] = None
    suggestion: Optional[str] = None

    @property
    def source_name(self) -> str:
        return self.source_type_name


@dataclass(frozen=True)
class ConversionWarning:
    type: WarningType
    message: str
    severity: WarningSeverity = WarningSeverity.WARNING
    suggestion: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type.name,
            "message": self.message,
            "severity": self.severity.value,
            "suggestion": self.suggestion,
        }


@dataclass
class ConversionResult:
    """Converted SQL plus everything a human should review.

    Warnings are de-duplicated by message (first occurrence wins) and applied
    rules by exact text; both keep their original order.
    """
    converted_sql: str
    warnings: List[ConversionWarning] = field(default_factory=list)
    applied_rules: List[str] = field(default_factory=list)

    def __post_init__(self):
        seen_messages = set()
        unique_warnings = []
        for warning in self.warnings:
            if warning.message in seen_messages:
                continue
            seen_messages.add(warning.message)
            unique_warnings.append(warning)
        self.warnings = unique_warnings
        self.applied_rules = list(dict.fromkeys(self.applied_rules))

    @property
    def has_errors(self) -> bool:
        return any(w.severity is WarningSeverity.ERROR for w in self.warnings)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "converted_sql": self.converted_sql,
            "warnings": [w.to_dict() for w in self.warnings],
            "applied_rules": list(self.applied_rules),
        }


@dataclass(frozen=True)
class ConversionOptions:
    enable_comments: bool = False
    format_sql: bool = False
    strict_mode: bool = False
    replace_unsupported_functions: bool = True

    @classmethod
    def from_config(cls, overrides: Optional[Dict[str, Any]] = None) -> "ConversionOptions":
        """Options from ``conversion.defaults`` in settings.yaml, with per-request overrides on top."""
        from sqlswitch import config

        values = dict(config.get("conversion", {}).get("defaults", {}) or {})
        values.update(overrides or {})
        known = {k: bool(v) for k, v in values.items() if k in cls.__dataclass_fields__}
        return cls(**known)


def escalate(warning: ConversionWarning) -> ConversionWarning:
    """WARNING severity raised to ERROR (strict mode); other severities untouched."""
    if warning.severity is WarningSeverity.WARNING:
        return replace(warning, severity=WarningSeverity.ERROR)
    return warning
