"""
Rule Validation

A rule that cannot be evaluated must be refused when it is registered,
not discovered halfway through a lint run. `validate_rule` collects
every problem with a definition and reports them together.
"""

from __future__ import annotations

import re
from typing import Any, Dict, List, Sequence

from .model import (
    FIELD_GROUPS,
    NAMING_TARGETS,
    PARAM_CATEGORIES,
    RuleDefinition,
    RuleKind,
)

_RULE_ID_RE = re.compile(r"^[A-Za-z][\w.-]*$")

# Option keys each kind understands
ALLOWED_OPTIONS: Dict[RuleKind, Sequence[str]] = {
    RuleKind.FILE_LAYOUT: ("required", "required_any", "forbidden", "blocker"),
    RuleKind.FIELD_ORDER: ("order", "leading", "files"),
    RuleKind.PARAM_ORDER: ("order", "option_suffixes", "files"),
    RuleKind.NAMING_PATTERN: ("target", "pattern", "forbidden", "allow", "files"),
    RuleKind.REQUIRED_SNIPPET: ("files", "nested", "any_of", "requires_files"),
    RuleKind.FORBIDDEN_SNIPPET: ("files", "nested", "patterns"),
    RuleKind.TEST_LAYOUT: (
        "files", "integration_files", "module_name", "require_last", "allow_out_of_line",
    ),
    RuleKind.CHANGELOG_FORMAT: ("path", "title", "require_unreleased", "sections"),
    RuleKind.RELEASE_CHECKLIST: ("required_package_keys", "changelog"),
}


class RuleValidationError(ValueError):
    """
    Raised when a rule definition cannot be evaluated.

    Carries every error found, not just the first.
    """

    def __init__(self, errors: List[str], rule: RuleDefinition | None = None):
        self.errors = errors
        self.rule = rule
        rule_id = rule.rule_id if rule is not None else "<rule>"
        msg = f"Rule {rule_id} failed validation:\n- " + "\n- ".join(errors)
        super().__init__(msg)


def validate_rule(rule: RuleDefinition) -> None:
    """
    Check that a rule definition is complete and coherent.

    Raises:
        RuleValidationError: If any problem is found.
    """
    errors: List[str] = []

    if not rule.rule_id or not _RULE_ID_RE.match(rule.rule_id):
        errors.append(f"rule_id {rule.rule_id!r} must start with a letter and contain no spaces.")
    if not rule.name:
        errors.append("name must be non-empty.")
    if not isinstance(rule.kind, RuleKind):
        errors.append(f"kind {rule.kind!r} is not a RuleKind.")
        raise RuleValidationError(errors, rule)

    allowed = ALLOWED_OPTIONS[rule.kind]
    for key in rule.options:
        if key not in allowed:
            errors.append(f"unknown option {key!r} for {rule.kind.value} rules.")

    validator = _KIND_VALIDATORS.get(rule.kind)
    if validator is not None:
        validator(rule.options, errors)

    if errors:
        raise RuleValidationError(errors, rule)


def _string_list(options: Dict[str, Any], key: str, errors: List[str], required: bool = False) -> List[str]:
    value = options.get(key)
    if value is None:
        if required:
            errors.append(f"option {key!r} is required.")
        return []
    if not isinstance(value, (list, tuple)) or not all(isinstance(v, str) for v in value):
        errors.append(f"option {key!r} must be a list of strings.")
        return []
    if required and not value:
        errors.append(f"option {key!r} must not be empty.")
    return list(value)


def _flag(options: Dict[str, Any], key: str, errors: List[str]) -> None:
    if key in options and not isinstance(options[key], bool):
        errors.append(f"option {key!r} must be true or false.")


def _ordering(options: Dict[str, Any], vocabulary: Sequence[str], errors: List[str]) -> None:
    order = _string_list(options, "order", errors, required=True)
    for entry in order:
        if entry not in vocabulary:
            errors.append(f"order entry {entry!r} is not one of {', '.join(vocabulary)}.")
    if len(set(order)) != len(order):
        errors.append("order entries must be unique.")


def _regexes(patterns: List[str], key: str, errors: List[str]) -> None:
    for pattern in patterns:
        try:
            re.compile(pattern)
        except re.error as e:
            errors.append(f"option {key!r} has invalid regex {pattern!r}: {e}.")


def _validate_file_layout(options: Dict[str, Any], errors: List[str]) -> None:
    required = _string_list(options, "required", errors)
    required_any = _string_list(options, "required_any", errors)
    forbidden = _string_list(options, "forbidden", errors)
    if not (required or required_any or forbidden):
        errors.append("file_layout rules need one of 'required', 'required_any' or 'forbidden'.")
    blocker = options.get("blocker")
    if blocker is not None and not isinstance(blocker, str):
        errors.append("option 'blocker' must be a blocker id string.")


def _validate_field_order(options: Dict[str, Any], errors: List[str]) -> None:
    _ordering(options, FIELD_GROUPS, errors)
    _string_list(options, "leading", errors)
    _string_list(options, "files", errors)


def _validate_param_order(options: Dict[str, Any], errors: List[str]) -> None:
    _ordering(options, PARAM_CATEGORIES, errors)
    order = options.get("order") or []
    if "receiver" in order and order[0] != "receiver":
        errors.append("'receiver' must come first; the language fixes its position.")
    _string_list(options, "option_suffixes", errors)
    _string_list(options, "files", errors)


def _validate_naming(options: Dict[str, Any], errors: List[str]) -> None:
    target = options.get("target")
    if target not in NAMING_TARGETS:
        errors.append(f"option 'target' must be one of {', '.join(NAMING_TARGETS)}.")
    pattern = options.get("pattern")
    forbidden = _string_list(options, "forbidden", errors)
    if pattern is None and not forbidden:
        errors.append("naming_pattern rules need 'pattern' or 'forbidden'.")
    if pattern is not None:
        if not isinstance(pattern, str):
            errors.append("option 'pattern' must be a string.")
        else:
            _regexes([pattern], "pattern", errors)
    _regexes(forbidden, "forbidden", errors)
    _string_list(options, "allow", errors)
    _string_list(options, "files", errors)


def _validate_required_snippet(options: Dict[str, Any], errors: List[str]) -> None:
    _string_list(options, "files", errors, required=True)
    _flag(options, "nested", errors)
    _string_list(options, "any_of", errors, required=True)
    _string_list(options, "requires_files", errors)


def _validate_forbidden_snippet(options: Dict[str, Any], errors: List[str]) -> None:
    _string_list(options, "files", errors, required=True)
    _flag(options, "nested", errors)
    _string_list(options, "patterns", errors, required=True)


def _validate_test_layout(options: Dict[str, Any], errors: List[str]) -> None:
    _string_list(options, "files", errors)
    _string_list(options, "integration_files", errors)
    _flag(options, "require_last", errors)
    _flag(options, "allow_out_of_line", errors)
    module_name = options.get("module_name", "tests")
    if not isinstance(module_name, str) or not module_name:
        errors.append("option 'module_name' must be a non-empty string.")


def _validate_changelog(options: Dict[str, Any], errors: List[str]) -> None:
    path = options.get("path", "CHANGELOG.md")
    if not isinstance(path, str) or not path:
        errors.append("option 'path' must be a non-empty string.")
    _flag(options, "require_unreleased", errors)
    _string_list(options, "sections", errors)


def _validate_release(options: Dict[str, Any], errors: List[str]) -> None:
    _string_list(options, "required_package_keys", errors)


_KIND_VALIDATORS = {
    RuleKind.FILE_LAYOUT: _validate_file_layout,
    RuleKind.FIELD_ORDER: _validate_field_order,
    RuleKind.PARAM_ORDER: _validate_param_order,
    RuleKind.NAMING_PATTERN: _validate_naming,
    RuleKind.REQUIRED_SNIPPET: _validate_required_snippet,
    RuleKind.FORBIDDEN_SNIPPET: _validate_forbidden_snippet,
    RuleKind.TEST_LAYOUT: _validate_test_layout,
    RuleKind.CHANGELOG_FORMAT: _validate_changelog,
    RuleKind.RELEASE_CHECKLIST: _validate_release,
}
