"""
SQL Conversion Package - dialect conversion between Oracle, MySQL, PostgreSQL and Tibero.

Main Components:
    - ConversionOrchestrator: Main entry point for SQL conversion operations
    - StatementConverter: AST path for statements sqlglot parses cleanly
    - FallbackPipeline: ordered text stages for vendor-only syntax
    - Structural converters: partitions, PL/SQL bodies, triggers, packages,
      standalone routines, materialized views, sequences, vendor packages,
      optimizer hints
    - Mapping registries: function and data-type rules per dialect pair

Usage:
    from sqlswitch.services.sql_conversion import ConversionOrchestrator, DialectType

    orchestrator = ConversionOrchestrator()
    result = orchestrator.convert(
        "SELECT NVL(name, 'x') FROM users",
        DialectType.ORACLE,
        DialectType.MYSQL,
    )
"""

from .models import ConversionOptions, ConversionResult, ConversionWarning, DialectType
from .orchestrator import ConversionOrchestrator

__all__ = [
    'ConversionOrchestrator',
    'ConversionOptions',
    'ConversionResult',
    'ConversionWarning',
    'DialectType',
]
