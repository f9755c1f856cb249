"""
Rule Registry

The registry is the single place the linter asks "which conventions
apply here?". Rules are registered (and validated) once, resolved by id,
overridden by configuration, and listed in run order.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Protocol, Sequence

from .defaults import DEFAULT_RULES
from .model import RuleCategory, RuleDefinition, Severity
from .validation import validate_rule

logger = logging.getLogger(__name__)


class RuleNotFoundError(Exception):
    """Raised when a referenced rule cannot be resolved."""

    def __init__(self, rule_id: str):
        self.rule_id = rule_id
        super().__init__(f"Rule not found: {rule_id}")


class RuleStore(Protocol):
    """Protocol for rule storage backends."""

    def get(self, rule_id: str) -> Optional[RuleDefinition]:
        """Retrieve a rule by id."""
        ...

    def put(self, rule: RuleDefinition) -> None:
        """Store a rule, replacing any rule with the same id."""
        ...

    def remove(self, rule_id: str) -> None:
        """Forget a rule."""
        ...

    def exists(self, rule_id: str) -> bool:
        """Check if a rule exists."""
        ...

    def list_all(self) -> List[RuleDefinition]:
        """All rules in registration order."""
        ...


class InMemoryRuleStore:
    """In-memory rule store keeping registration order."""

    def __init__(self) -> None:
        self._rules: Dict[str, RuleDefinition] = {}

    def get(self, rule_id: str) -> Optional[RuleDefinition]:
        return self._rules.get(rule_id)

    def put(self, rule: RuleDefinition) -> None:
        self._rules[rule.rule_id] = rule

    def remove(self, rule_id: str) -> None:
        self._rules.pop(rule_id, None)

    def exists(self, rule_id: str) -> bool:
        return rule_id in self._rules

    def list_all(self) -> List[RuleDefinition]:
        return list(self._rules.values())


class RuleRegistry:
    """
    Central registry of the conventions to enforce.

    Usage:
        registry = RuleRegistry()
        registry.override("N3.4", enabled=False)
        for rule in registry.enabled_rules():
            ...
    """

    def __init__(
        self,
        store: Optional[RuleStore] = None,
        include_defaults: bool = True,
    ) -> None:
        self._store: RuleStore = store or InMemoryRuleStore()
        if include_defaults:
            for rule in DEFAULT_RULES:
                self.register(rule)

    def resolve(self, rule_id: str) -> RuleDefinition:
        """
        Resolve a rule id to its definition.

        Raises:
            RuleNotFoundError: If the rule is not registered.
        """
        rule = self._store.get(rule_id)
        if rule is None:
            raise RuleNotFoundError(rule_id)
        return rule

    def register(self, rule: RuleDefinition) -> None:
        """
        Register a rule, replacing any rule with the same id.

        Raises:
            RuleValidationError: If the definition is invalid.
        """
        validate_rule(rule)
        if self._store.exists(rule.rule_id):
            logger.debug("Replacing rule %s", rule.rule_id)
        self._store.put(rule)

    def override(
        self,
        rule_id: str,
        enabled: Optional[bool] = None,
        severity: Optional[Severity] = None,
        options: Optional[Dict[str, Any]] = None,
    ) -> RuleDefinition:
        """Apply configuration overrides to a registered rule."""
        rule = self.resolve(rule_id).with_overrides(
            enabled=enabled,
            severity=severity,
            options=options,
        )
        self.register(rule)
        logger.debug("Overrode rule %s", rule_id)
        return rule

    def disable(self, rule_id: str) -> None:
        self.override(rule_id, enabled=False)

    def exists(self, rule_id: str) -> bool:
        return self._store.exists(rule_id)

    def all_rules(self) -> List[RuleDefinition]:
        """Every rule, enabled or not, in run order."""
        return _in_run_order(self._store.list_all())

    def enabled_rules(
        self,
        category: Optional[RuleCategory] = None,
        only: Optional[Sequence[str]] = None,
    ) -> List[RuleDefinition]:
        """
        Enabled rules in run order.

        Args:
            category: Restrict to a single category
            only: Restrict to these rule ids

        Raises:
            RuleNotFoundError: If `only` names an unregistered rule.
        """
        if only:
            for rule_id in only:
                self.resolve(rule_id)
        rules = [
            r for r in self._store.list_all()
            if r.enabled
            and (category is None or r.category == category)
            and (not only or r.rule_id in only)
        ]
        return _in_run_order(rules)


def _in_run_order(rules: List[RuleDefinition]) -> List[RuleDefinition]:
    # sorted() is stable, so registration order holds within a category
    return sorted(rules, key=lambda r: r.category.value)
