"""
Generic two-phase rule registry.

A registry is populated once (``register``), then ``freeze`` swaps the backing
dict for a read-only ``MappingProxyType``. Lookups after that need no locking:
the only writes ever made happen before the factory hands the instance out.
"""
import logging
import threading
from dataclasses import replace
from types import MappingProxyType
from typing import Callable, Dict, Iterable, List, Optional, Tuple

from ..errors import RegistryFrozenError
from ..models import DialectType, normalize_rule_name

logger = logging.getLogger(__name__)

RuleKey = Tuple[DialectType, DialectType, str]


class MappingRegistry:

    def __init__(self, name: str):
        self.name = name
        self._rules: Dict[RuleKey, object] = {}
        self._frozen = False

    @staticmethod
    def make_key(source: DialectType, target: DialectType, name: str) -> RuleKey:
        return source, target, normalize_rule_name(name)

    @property
    def frozen(self) -> bool:
        return self._frozen

    def register(self, rule) -> None:
        """Insert or overwrite a rule by its (source, target, name) key."""
        if self._frozen:
            raise RegistryFrozenError(f"Registry '{self.name}' is frozen; cannot register {rule.source_name}.")
        key = self.make_key(rule.source_dialect, rule.target_dialect, rule.source_name)
        self._rules[key] = rule

    def register_all(self, rules: Iterable) -> None:
        for rule in rules:
            self.register(rule)

    def freeze(self) -> "MappingRegistry":
        if not self._frozen:
            self._rules = MappingProxyType(dict(self._rules))
            self._frozen = True
            logger.debug(f"Registry '{self.name}' frozen with {len(self._rules)} rules.")
        return self

    def lookup(self, source: DialectType, target: DialectType, name: str):
        return self._rules.get(self.make_key(source, target, name))

    def list_rules(self, source: DialectType, target: DialectType) -> List:
        return [rule for (src, tgt, _), rule in self._rules.items() if src is source and tgt is target]

    def __len__(self) -> int:
        return len(self._rules)


def derive_tibero_rules(registry: MappingRegistry) -> int:
    """
    Clone Oracle rows for Tibero: ORACLE->X becomes TIBERO->X and X->ORACLE
    becomes X->TIBERO. Must run after every Oracle pair is registered.

    Returns:
        Number of rules added.
    """
    oracle_rows = [
        rule for (src, tgt, _), rule in list(registry._rules.items())
        if DialectType.ORACLE in (src, tgt) and DialectType.TIBERO not in (src, tgt)
    ]
    added = 0
    for rule in oracle_rows:
        if rule.source_dialect is DialectType.ORACLE and rule.target_dialect is not DialectType.TIBERO:
            registry.register(replace(rule, source_dialect=DialectType.TIBERO))
            added += 1
        if rule.target_dialect is DialectType.ORACLE and rule.source_dialect is not DialectType.TIBERO:
            registry.register(replace(rule, target_dialect=DialectType.TIBERO))
            added += 1
    return added


class FrozenRegistryFactory:
    """Builds a registry on first use behind a lock; every later call returns the same frozen value."""

    def __init__(self, name: str, rule_sources: Callable[[], Iterable]):
        self._name = name
        self._rule_sources = rule_sources
        self._lock = threading.Lock()
        self._instance: Optional[MappingRegistry] = None

    def __call__(self) -> MappingRegistry:
        if self._instance is None:
            with self._lock:
                if self._instance is None:
                    registry = MappingRegistry(self._name)
                    registry.register_all(self._rule_sources())
                    derived = derive_tibero_rules(registry)
                    self._instance = registry.freeze()
                    logger.info(f"Built '{self._name}' registry: {len(registry)} rules ({derived} derived for Tibero).")
        return self._instance
