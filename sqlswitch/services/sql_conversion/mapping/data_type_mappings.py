"""
Data-type equivalences per dialect pair.

Precision handling:
  PRESERVE        - the source qualifier is carried over, ``VARCHAR2(100)`` -> ``VARCHAR(100)``.
  CONVERT         - the target text is complete, ``BOOLEAN`` -> ``NUMBER(1)``.
  DROP            - the qualifier is dropped, ``CLOB`` -> ``LONGTEXT``.
  MAP_TO_INTEGER  - numeric precision is bucketed via INTEGER_BUCKETS.
"""
from typing import List, Tuple

from ..models import DataTypeMappingRule, DialectType, PrecisionHandler, WarningType
from .registry import FrozenRegistryFactory

O = DialectType.ORACLE
M = DialectType.MYSQL
P = DialectType.POSTGRESQL

PRESERVE = PrecisionHandler.PRESERVE
CONVERT = PrecisionHandler.CONVERT
DROP = PrecisionHandler.DROP
MAP_TO_INTEGER = PrecisionHandler.MAP_TO_INTEGER

# (max precision, integer type) checked in order for scale-0 numerics.
INTEGER_BUCKETS = {
    M: [(3, "TINYINT"), (5, "SMALLINT"), (9, "INT"), (18, "BIGINT")],
    P: [(4, "SMALLINT"), (9, "INTEGER"), (18, "BIGINT")],
}

# Unqualified numeric on targets whose default would truncate fractions.
UNQUALIFIED_NUMERIC_DEFAULT = {
    M: "DECIMAL(38,10)",
}


def integer_type_for(target: DialectType, precision: int) -> str:
    for max_precision, type_name in INTEGER_BUCKETS.get(target, []):
        if precision <= max_precision:
            return type_name
    return ""


def _rule(source, target, name, target_name, handler=PRESERVE, warning=None, message=None, suggestion=None):
    return DataTypeMappingRule(
        source_dialect=source,
        target_dialect=target,
        source_type_name=name,
        target_type_name=target_name,
        precision_handler=handler,
        warning_type=warning,
        warning_message=message,
        suggestion=suggestion,
    )


def oracle_to_mysql() -> List[DataTypeMappingRule]:
    return [
        _rule(O, M, "NUMBER", "DECIMAL", MAP_TO_INTEGER),
        _rule(O, M, "VARCHAR2", "VARCHAR"),
        _rule(O, M, "NVARCHAR2", "VARCHAR"),
        _rule(O, M, "NCHAR", "CHAR"),
        _rule(O, M, "CLOB", "LONGTEXT", DROP),
        _rule(O, M, "NCLOB", "LONGTEXT", DROP),
        _rule(O, M, "BLOB", "LONGBLOB", DROP),
        _rule(O, M, "RAW", "VARBINARY"),
        _rule(O, M, "LONG RAW", "LONGBLOB", DROP, WarningType.DEPRECATED_FEATURE,
              "LONG RAW is deprecated in Oracle; converted to LONGBLOB"),
        _rule(O, M, "LONG", "LONGTEXT", DROP, WarningType.DEPRECATED_FEATURE,
              "LONG is deprecated in Oracle; converted to LONGTEXT"),
        _rule(O, M, "DATE", "DATETIME", DROP),
        _rule(O, M, "TIMESTAMP", "DATETIME"),
        _rule(O, M, "TIMESTAMP WITH TIME ZONE", "DATETIME", PRESERVE, WarningType.DATA_TYPE_MISMATCH,
              "TIMESTAMP WITH TIME ZONE converted to DATETIME; time zone information is lost",
              "Store values in UTC or add a separate offset column"),
        _rule(O, M, "TIMESTAMP WITH LOCAL TIME ZONE", "TIMESTAMP"),
        _rule(O, M, "BINARY_FLOAT", "FLOAT", CONVERT),
        _rule(O, M, "BINARY_DOUBLE", "DOUBLE", CONVERT),
        _rule(O, M, "FLOAT", "DOUBLE", DROP),
        _rule(O, M, "XMLTYPE", "LONGTEXT", DROP, WarningType.DATA_TYPE_MISMATCH,
              "XMLTYPE converted to LONGTEXT; XML validation and XPath access are lost"),
        _rule(O, M, "BFILE", "VARCHAR(255)", CONVERT, WarningType.DATA_TYPE_MISMATCH,
              "BFILE converted to VARCHAR(255) holding a file path",
              "Load external file contents into a LONGBLOB column"),
        _rule(O, M, "ROWID", "VARCHAR(18)", CONVERT, WarningType.DATA_TYPE_MISMATCH,
              "ROWID has no MySQL equivalent; stored as VARCHAR(18)"),
        _rule(O, M, "UROWID", "VARCHAR(4000)", CONVERT, WarningType.DATA_TYPE_MISMATCH,
              "UROWID has no MySQL equivalent; stored as VARCHAR(4000)"),
        _rule(O, M, "INTERVAL YEAR TO MONTH", "VARCHAR(30)", CONVERT, WarningType.DATA_TYPE_MISMATCH,
              "INTERVAL YEAR TO MONTH has no MySQL equivalent; stored as VARCHAR(30)"),
        _rule(O, M, "INTERVAL DAY TO SECOND", "VARCHAR(30)", CONVERT, WarningType.DATA_TYPE_MISMATCH,
              "INTERVAL DAY TO SECOND has no MySQL equivalent; stored as VARCHAR(30)"),
        _rule(O, M, "SDO_GEOMETRY", "GEOMETRY", DROP, WarningType.MANUAL_REVIEW_REQUIRED,
              "SDO_GEOMETRY converted to GEOMETRY; spatial reference and metadata need review"),
    ]


def oracle_to_postgresql() -> List[DataTypeMappingRule]:
    return [
        _rule(O, P, "NUMBER", "NUMERIC", MAP_TO_INTEGER),
        _rule(O, P, "VARCHAR2", "VARCHAR"),
        _rule(O, P, "NVARCHAR2", "VARCHAR"),
        _rule(O, P, "NCHAR", "CHAR"),
        _rule(O, P, "CLOB", "TEXT", DROP),
        _rule(O, P, "NCLOB", "TEXT", DROP),
        _rule(O, P, "BLOB", "BYTEA", DROP),
        _rule(O, P, "RAW", "BYTEA", DROP),
        _rule(O, P, "LONG RAW", "BYTEA", DROP, WarningType.DEPRECATED_FEATURE,
              "LONG RAW is deprecated in Oracle; converted to BYTEA"),
        _rule(O, P, "LONG", "TEXT", DROP, WarningType.DEPRECATED_FEATURE,
              "LONG is deprecated in Oracle; converted to TEXT"),
        _rule(O, P, "DATE", "TIMESTAMP", DROP),
        _rule(O, P, "TIMESTAMP WITH TIME ZONE", "TIMESTAMPTZ"),
        _rule(O, P, "TIMESTAMP WITH LOCAL TIME ZONE", "TIMESTAMPTZ"),
        _rule(O, P, "BINARY_FLOAT", "REAL", CONVERT),
        _rule(O, P, "BINARY_DOUBLE", "DOUBLE PRECISION", CONVERT),
        _rule(O, P, "FLOAT", "DOUBLE PRECISION", DROP),
        _rule(O, P, "XMLTYPE", "XML", DROP),
        _rule(O, P, "BFILE", "TEXT", CONVERT, WarningType.DATA_TYPE_MISMATCH,
              "BFILE converted to TEXT holding a file path",
              "Load external file contents into a BYTEA column or use pg_read_binary_file"),
        _rule(O, P, "ROWID", "TEXT", CONVERT, WarningType.DATA_TYPE_MISMATCH,
              "ROWID has no PostgreSQL equivalent; stored as TEXT (consider ctid)"),
        _rule(O, P, "UROWID", "TEXT", CONVERT, WarningType.DATA_TYPE_MISMATCH,
              "UROWID has no PostgreSQL equivalent; stored as TEXT"),
        _rule(O, P, "SDO_GEOMETRY", "GEOMETRY", DROP, WarningType.COMPATIBILITY_ISSUE,
              "SDO_GEOMETRY converted to GEOMETRY, which requires the PostGIS extension",
              "CREATE EXTENSION IF NOT EXISTS postgis;"),
    ]


def mysql_to_oracle() -> List[DataTypeMappingRule]:
    return [
        _rule(M, O, "TINYINT", "NUMBER(3)", CONVERT),
        _rule(M, O, "SMALLINT", "NUMBER(5)", CONVERT),
        _rule(M, O, "MEDIUMINT", "NUMBER(7)", CONVERT),
        _rule(M, O, "INT", "NUMBER(10)", CONVERT),
        _rule(M, O, "INTEGER", "NUMBER(10)", CONVERT),
        _rule(M, O, "BIGINT", "NUMBER(19)", CONVERT),
        _rule(M, O, "DECIMAL", "NUMBER"),
        _rule(M, O, "NUMERIC", "NUMBER"),
        _rule(M, O, "FLOAT", "BINARY_FLOAT", DROP),
        _rule(M, O, "DOUBLE", "BINARY_DOUBLE", DROP),
        _rule(M, O, "BOOLEAN", "NUMBER(1)", CONVERT),
        _rule(M, O, "BOOL", "NUMBER(1)", CONVERT),
        _rule(M, O, "BIT", "NUMBER(1)", CONVERT),
        _rule(M, O, "VARCHAR", "VARCHAR2"),
        _rule(M, O, "TINYTEXT", "VARCHAR2(255)", CONVERT),
        _rule(M, O, "TEXT", "CLOB", DROP),
        _rule(M, O, "MEDIUMTEXT", "CLOB", DROP),
        _rule(M, O, "LONGTEXT", "CLOB", DROP),
        _rule(M, O, "TINYBLOB", "RAW(255)", CONVERT),
        _rule(M, O, "MEDIUMBLOB", "BLOB", DROP),
        _rule(M, O, "LONGBLOB", "BLOB", DROP),
        _rule(M, O, "BINARY", "RAW"),
        _rule(M, O, "VARBINARY", "RAW"),
        _rule(M, O, "DATETIME", "TIMESTAMP"),
        _rule(M, O, "TIME", "INTERVAL DAY TO SECOND", CONVERT, WarningType.DATA_TYPE_MISMATCH,
              "TIME converted to INTERVAL DAY TO SECOND"),
        _rule(M, O, "YEAR", "NUMBER(4)", CONVERT),
        _rule(M, O, "ENUM", "VARCHAR2(255)", CONVERT, WarningType.DATA_TYPE_MISMATCH,
              "ENUM converted to VARCHAR2(255); allowed values are not enforced",
              "Add a CHECK (col IN (...)) constraint"),
        _rule(M, O, "JSON", "CLOB", DROP, WarningType.DATA_TYPE_MISMATCH,
              "JSON converted to CLOB", "Add a CHECK (col IS JSON) constraint"),
    ]


def mysql_to_postgresql() -> List[DataTypeMappingRule]:
    return [
        _rule(M, P, "TINYINT", "SMALLINT", CONVERT),
        _rule(M, P, "MEDIUMINT", "INTEGER", CONVERT),
        _rule(M, P, "INT", "INTEGER", CONVERT),
        _rule(M, P, "BIGINT", "BIGINT", CONVERT),
        _rule(M, P, "SMALLINT", "SMALLINT", CONVERT),
        _rule(M, P, "DOUBLE", "DOUBLE PRECISION", DROP),
        _rule(M, P, "FLOAT", "REAL", DROP),
        _rule(M, P, "DATETIME", "TIMESTAMP"),
        _rule(M, P, "TINYTEXT", "TEXT", DROP),
        _rule(M, P, "MEDIUMTEXT", "TEXT", DROP),
        _rule(M, P, "LONGTEXT", "TEXT", DROP),
        _rule(M, P, "TINYBLOB", "BYTEA", DROP),
        _rule(M, P, "BLOB", "BYTEA", DROP),
        _rule(M, P, "MEDIUMBLOB", "BYTEA", DROP),
        _rule(M, P, "LONGBLOB", "BYTEA", DROP),
        _rule(M, P, "BINARY", "BYTEA", DROP),
        _rule(M, P, "VARBINARY", "BYTEA", DROP),
        _rule(M, P, "BOOL", "BOOLEAN", CONVERT),
        _rule(M, P, "YEAR", "SMALLINT", CONVERT),
        _rule(M, P, "ENUM", "VARCHAR(255)", CONVERT, WarningType.DATA_TYPE_MISMATCH,
              "ENUM converted to VARCHAR(255); allowed values are not enforced",
              "Create an ENUM type (CREATE TYPE ... AS ENUM) or add a CHECK constraint"),
        _rule(M, P, "JSON", "JSONB", CONVERT),
    ]


def postgresql_to_oracle() -> List[DataTypeMappingRule]:
    return [
        _rule(P, O, "SMALLINT", "NUMBER(5)", CONVERT),
        _rule(P, O, "INTEGER", "NUMBER(10)", CONVERT),
        _rule(P, O, "INT", "NUMBER(10)", CONVERT),
        _rule(P, O, "BIGINT", "NUMBER(19)", CONVERT),
        _rule(P, O, "SERIAL", "NUMBER(10) GENERATED BY DEFAULT AS IDENTITY", CONVERT),
        _rule(P, O, "BIGSERIAL", "NUMBER(19) GENERATED BY DEFAULT AS IDENTITY", CONVERT),
        _rule(P, O, "NUMERIC", "NUMBER"),
        _rule(P, O, "DECIMAL", "NUMBER"),
        _rule(P, O, "REAL", "BINARY_FLOAT", CONVERT),
        _rule(P, O, "DOUBLE PRECISION", "BINARY_DOUBLE", CONVERT),
        _rule(P, O, "BOOLEAN", "NUMBER(1)", CONVERT),
        _rule(P, O, "VARCHAR", "VARCHAR2"),
        _rule(P, O, "TEXT", "CLOB", DROP),
        _rule(P, O, "BYTEA", "BLOB", DROP),
        _rule(P, O, "TIMESTAMPTZ", "TIMESTAMP WITH TIME ZONE"),
        _rule(P, O, "JSONB", "CLOB", DROP, WarningType.DATA_TYPE_MISMATCH,
              "JSONB converted to CLOB", "Add a CHECK (col IS JSON) constraint"),
        _rule(P, O, "JSON", "CLOB", DROP, WarningType.DATA_TYPE_MISMATCH,
              "JSON converted to CLOB", "Add a CHECK (col IS JSON) constraint"),
        _rule(P, O, "UUID", "RAW(16)", CONVERT, WarningType.DATA_TYPE_MISMATCH,
              "UUID converted to RAW(16); textual UUID values need HEXTORAW conversion"),
        _rule(P, O, "XML", "XMLTYPE", DROP),
    ]


def postgresql_to_mysql() -> List[DataTypeMappingRule]:
    return [
        _rule(P, M, "SERIAL", "INT AUTO_INCREMENT", CONVERT),
        _rule(P, M, "BIGSERIAL", "BIGINT AUTO_INCREMENT", CONVERT),
        _rule(P, M, "BOOLEAN", "TINYINT(1)", CONVERT),
        _rule(P, M, "TEXT", "LONGTEXT", DROP),
        _rule(P, M, "BYTEA", "LONGBLOB", DROP),
        _rule(P, M, "TIMESTAMP", "DATETIME"),
        _rule(P, M, "TIMESTAMPTZ", "DATETIME", PRESERVE, WarningType.DATA_TYPE_MISMATCH,
              "TIMESTAMPTZ converted to DATETIME; time zone information is lost"),
        _rule(P, M, "TIMESTAMP WITH TIME ZONE", "DATETIME", PRESERVE, WarningType.DATA_TYPE_MISMATCH,
              "TIMESTAMP WITH TIME ZONE converted to DATETIME; time zone information is lost"),
        _rule(P, M, "DOUBLE PRECISION", "DOUBLE", CONVERT),
        _rule(P, M, "REAL", "FLOAT", CONVERT),
        _rule(P, M, "NUMERIC", "DECIMAL"),
        _rule(P, M, "UUID", "CHAR(36)", CONVERT),
        _rule(P, M, "JSONB", "JSON", CONVERT),
        _rule(P, M, "INTERVAL", "VARCHAR(64)", CONVERT, WarningType.DATA_TYPE_MISMATCH,
              "INTERVAL has no MySQL column type; stored as VARCHAR(64)"),
    ]


def all_data_type_rules() -> List[DataTypeMappingRule]:
    return (
        oracle_to_mysql()
        + oracle_to_postgresql()
        + mysql_to_oracle()
        + mysql_to_postgresql()
        + postgresql_to_oracle()
        + postgresql_to_mysql()
    )


get_data_type_registry = FrozenRegistryFactory("data_type", all_data_type_rules)


def split_qualifier(qualifier: str) -> Tuple[str, str]:
    """``(10, 2)`` -> ("10", "2"); ``(10)`` -> ("10", ""); ``*`` precision is returned as-is."""
    inner = qualifier.strip()[1:-1] if qualifier else ""
    parts = [p.strip() for p in inner.split(",")]
    precision = parts[0] if parts else ""
    scale = parts[1] if len(parts) > 1 else ""
    return precision, scale
