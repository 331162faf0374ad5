"""Tests for the function and data-type mapping registries."""

import threading
from concurrent.futures import ThreadPoolExecutor

import pytest

from sqlswitch.services.sql_conversion.errors import RegistryFrozenError
from sqlswitch.services.sql_conversion.mapping import (
    MappingRegistry,
    derive_tibero_rules,
    get_data_type_registry,
    get_function_registry,
)
from sqlswitch.services.sql_conversion.mapping.registry import FrozenRegistryFactory
from sqlswitch.services.sql_conversion.models import DialectType, FunctionMappingRule

O = DialectType.ORACLE
M = DialectType.MYSQL
P = DialectType.POSTGRESQL
T = DialectType.TIBERO


class TestMappingRegistry:
    """MappingRegistry tests."""

    def test_lookup_ignores_case_and_qualifiers(self) -> None:
        """VARCHAR2(100) and varchar2 resolve to the same rule."""
        # Given
        registry = get_data_type_registry()

        # When
        qualified = registry.lookup(O, M, "VARCHAR2(100)")
        bare = registry.lookup(O, M, "varchar2")

        # Then
        assert qualified is not None
        assert qualified is bare
        assert qualified.target_type_name == "VARCHAR"

    def test_function_rules_per_pair(self) -> None:
        """NVL maps to IFNULL for MySQL and COALESCE for PostgreSQL."""
        # Given
        registry = get_function_registry()

        # When / Then
        assert registry.lookup(O, M, "nvl").target_function_name == "IFNULL"
        assert registry.lookup(O, P, "NVL").target_function_name == "COALESCE"
        assert registry.lookup(M, O, "IFNULL").target_function_name == "NVL"
        assert registry.lookup(O, M, "NO_SUCH_FUNCTION") is None

    def test_factory_returns_same_frozen_instance(self) -> None:
        """The registry is built once and frozen."""
        # When
        first = get_function_registry()
        second = get_function_registry()

        # Then
        assert first is second
        assert first.frozen

    def test_frozen_registry_rejects_registration(self) -> None:
        """register() after freeze() raises RegistryFrozenError."""
        # Given
        registry = MappingRegistry("test").freeze()
        rule = FunctionMappingRule(O, M, "NVL", "IFNULL")

        # When / Then
        with pytest.raises(RegistryFrozenError):
            registry.register(rule)

    def test_tibero_rules_are_derived_from_oracle(self) -> None:
        """ORACLE->X rows are cloned as TIBERO->X and X->ORACLE as X->TIBERO."""
        # Given
        registry = MappingRegistry("test")
        registry.register(FunctionMappingRule(O, M, "NVL", "IFNULL"))
        registry.register(FunctionMappingRule(M, O, "IFNULL", "NVL"))

        # When
        added = derive_tibero_rules(registry)

        # Then
        assert added == 2
        assert registry.lookup(T, M, "NVL").target_function_name == "IFNULL"
        assert registry.lookup(M, T, "IFNULL").target_function_name == "NVL"

    def test_built_registry_covers_tibero(self) -> None:
        """The shared registries already carry the Tibero rows."""
        # When / Then
        assert get_function_registry().lookup(T, M, "NVL").target_function_name == "IFNULL"
        assert get_data_type_registry().lookup(T, P, "VARCHAR2").target_type_name == "VARCHAR"

    def test_factory_builds_once_under_concurrent_first_use(self) -> None:
        """Threads racing on first use all get the one registry built by a single call."""
        # Given
        calls = []
        gate = threading.Barrier(8, timeout=5)

        def rule_sources():
            calls.append(threading.get_ident())
            return [FunctionMappingRule(O, M, "NVL", "IFNULL")]

        factory = FrozenRegistryFactory("concurrent", rule_sources)

        def first_use(_):
            gate.wait()
            return factory()

        # When
        with ThreadPoolExecutor(max_workers=8) as pool:
            registries = list(pool.map(first_use, range(8)))

        # Then
        assert len(calls) == 1
        assert all(registry is registries[0] for registry in registries)
        assert registries[0].frozen
        assert registries[0].lookup(T, M, "NVL").target_function_name == "IFNULL"
