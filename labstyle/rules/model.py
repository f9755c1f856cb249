"""
Rule Model

Each convention of the style guide is described by data, not code:
a `RuleDefinition` names the kind of check to run, where it sits in the
run order, how severe a violation is, and the options that make it
concrete (an ordering, a pattern, a snippet, a set of paths).

Several rules may share a kind. The naming rules for traits, types and
functions are all `NAMING_PATTERN` rules with different targets.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, Optional, Tuple


# ---------- Enums (closed-world) ----------


class RuleKind(str, Enum):
    """The check implementation a rule is evaluated with."""

    FILE_LAYOUT = "file_layout"
    FIELD_ORDER = "field_order"
    PARAM_ORDER = "param_order"
    NAMING_PATTERN = "naming_pattern"
    REQUIRED_SNIPPET = "required_snippet"
    FORBIDDEN_SNIPPET = "forbidden_snippet"
    TEST_LAYOUT = "test_layout"
    CHANGELOG_FORMAT = "changelog_format"
    RELEASE_CHECKLIST = "release_checklist"


class RuleCategory(Enum):
    """
    Where a rule runs in the lint order.

    LAYOUT rules are blockers: if one fails, the crate is not something
    the remaining rules can meaningfully inspect.
    """

    LAYOUT = 0
    STRUCTURE = 1
    SIGNATURES = 2
    NAMING = 3
    BOILERPLATE = 4
    TESTING = 5
    DOCUMENTATION = 6
    RELEASE = 7


CATEGORY_NAMES = {
    RuleCategory.LAYOUT: "Crate Layout",
    RuleCategory.STRUCTURE: "Structure Field Order",
    RuleCategory.SIGNATURES: "Signature Parameter Order",
    RuleCategory.NAMING: "Naming",
    RuleCategory.BOILERPLATE: "Required Boilerplate",
    RuleCategory.TESTING: "Test Layout",
    RuleCategory.DOCUMENTATION: "Documentation",
    RuleCategory.RELEASE: "Release Checklist",
}


class Severity(str, Enum):
    ERROR = "error"
    WARNING = "warning"
    INFO = "info"


# ---------- Vocabularies ----------

# Field visibility groups, matching `Visibility` values
FIELD_GROUPS: Tuple[str, ...] = ("pub", "pub(crate)", "pub(restricted)", "private")

PARAM_CATEGORIES: Tuple[str, ...] = ("receiver", "input", "output", "options", "callback")

NAMING_TARGETS: Tuple[str, ...] = ("trait", "type", "struct", "enum", "fn", "method", "mod")


# ---------- Rule ----------


@dataclass(frozen=True)
class RuleDefinition:
    """
    A declarative description of one convention.

    `options` is interpreted by the check for `kind`; validation of the
    option keys happens in `labstyle.rules.validation`.
    """

    rule_id: str
    kind: RuleKind
    name: str
    category: RuleCategory
    description: str = ""
    severity: Severity = Severity.ERROR
    options: Dict[str, Any] = field(default_factory=dict)
    enabled: bool = True
    recommendations: Tuple[str, ...] = ()

    @property
    def is_blocker(self) -> bool:
        return self.category == RuleCategory.LAYOUT and bool(self.options.get("blocker"))

    def option(self, key: str, default: Any = None) -> Any:
        return self.options.get(key, default)

    def with_overrides(
        self,
        enabled: Optional[bool] = None,
        severity: Optional[Severity] = None,
        options: Optional[Dict[str, Any]] = None,
    ) -> "RuleDefinition":
        """Copy of this rule with the given fields replaced; options merge."""
        changes: Dict[str, Any] = {}
        if enabled is not None:
            changes["enabled"] = enabled
        if severity is not None:
            changes["severity"] = Severity(severity)
        if options:
            changes["options"] = {**self.options, **options}
        return replace(self, **changes)
