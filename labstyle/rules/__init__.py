"""
Rule Registry

Declarative descriptions of each style-guide convention: field order,
parameter order, naming patterns, required snippets, file layout,
changelog format and the release checklist.
"""

from .model import (
    CATEGORY_NAMES,
    RuleCategory,
    RuleDefinition,
    RuleKind,
    Severity,
)
from .defaults import DEFAULT_RULES
from .registry import InMemoryRuleStore, RuleNotFoundError, RuleRegistry
from .validation import RuleValidationError, validate_rule
from .serialize import (
    parse_enum,
    rule_from_dict,
    rule_to_dict,
    rules_from_json,
    rules_to_json,
)

__all__ = [
    "CATEGORY_NAMES",
    "DEFAULT_RULES",
    "InMemoryRuleStore",
    "RuleCategory",
    "RuleDefinition",
    "RuleKind",
    "RuleNotFoundError",
    "RuleRegistry",
    "RuleValidationError",
    "Severity",
    "parse_enum",
    "rule_from_dict",
    "rule_to_dict",
    "rules_from_json",
    "rules_to_json",
    "validate_rule",
]
