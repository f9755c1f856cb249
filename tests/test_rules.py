"""
Tests for the rule registry, rule validation and rule serialization.

Conventions are data: every rule the linter enforces must be
registrable, overridable by configuration, and refused early when it
cannot be evaluated.
"""

import json

import pytest

from labstyle.rules import (
    DEFAULT_RULES,
    InMemoryRuleStore,
    RuleCategory,
    RuleDefinition,
    RuleKind,
    RuleNotFoundError,
    RuleRegistry,
    RuleValidationError,
    Severity,
    parse_enum,
    rule_from_dict,
    rule_to_dict,
    rules_from_json,
    rules_to_json,
    validate_rule,
)


def _snippet_rule(**overrides):
    data = dict(
        rule_id="X9.1",
        kind=RuleKind.FORBIDDEN_SNIPPET,
        name="No unwrap",
        category=RuleCategory.RELEASE,
        options={"files": ["src/*.rs"], "patterns": [".unwrap()"]},
    )
    data.update(overrides)
    return RuleDefinition(**data)


# =============================================================================
# Registry
# =============================================================================


class TestRuleRegistry:
    """Tests for the rule registry."""

    def test_defaults_registered(self):
        """Every default rule is present and valid."""
        registry = RuleRegistry()

        assert [r.rule_id for r in registry.all_rules()] == [r.rule_id for r in DEFAULT_RULES]

    def test_default_rule_ids_unique(self):
        ids = [r.rule_id for r in DEFAULT_RULES]
        assert len(ids) == len(set(ids))

    def test_resolve(self):
        registry = RuleRegistry()
        rule = registry.resolve("S1.1")

        assert rule.kind == RuleKind.FIELD_ORDER
        assert rule.category == RuleCategory.STRUCTURE

    def test_resolve_missing_fails(self):
        registry = RuleRegistry()

        with pytest.raises(RuleNotFoundError) as exc_info:
            registry.resolve("Z0.0")
        assert exc_info.value.rule_id == "Z0.0"

    def test_empty_registry(self):
        registry = RuleRegistry(include_defaults=False)

        assert registry.all_rules() == []
        assert registry.enabled_rules() == []

    def test_register_custom_rule(self):
        registry = RuleRegistry()
        registry.register(_snippet_rule())

        assert registry.exists("X9.1")
        assert registry.resolve("X9.1").name == "No unwrap"

    def test_register_invalid_rule_fails(self):
        registry = RuleRegistry()

        with pytest.raises(RuleValidationError):
            registry.register(_snippet_rule(options={"files": ["src/*.rs"]}))
        assert not registry.exists("X9.1")

    def test_override_merges_options(self):
        registry = RuleRegistry()
        rule = registry.override(
            "P2.1",
            severity=Severity.WARNING,
            options={"option_suffixes": ["Params"]},
        )

        assert rule.severity == Severity.WARNING
        assert rule.option("option_suffixes") == ["Params"]
        assert rule.option("order")[0] == "receiver"
        assert registry.resolve("P2.1") == rule

    def test_override_validates(self):
        registry = RuleRegistry()

        with pytest.raises(RuleValidationError):
            registry.override("P2.1", options={"order": ["input", "receiver"]})
        assert registry.resolve("P2.1").option("order")[0] == "receiver"

    def test_disable(self):
        registry = RuleRegistry()
        registry.disable("N3.4")

        assert "N3.4" not in [r.rule_id for r in registry.enabled_rules()]
        assert "N3.4" in [r.rule_id for r in registry.all_rules()]

    def test_enabled_rules_in_category_order(self):
        """Rules registered later still run in category order."""
        registry = RuleRegistry()
        registry.register(_snippet_rule(rule_id="A0.9", category=RuleCategory.LAYOUT,
                                        kind=RuleKind.FILE_LAYOUT,
                                        options={"forbidden": ["*.orig"]}))
        categories = [r.category.value for r in registry.enabled_rules()]

        assert categories == sorted(categories)
        layout = registry.enabled_rules(category=RuleCategory.LAYOUT)
        assert [r.rule_id for r in layout] == ["B0.1", "B0.2", "A0.9"]

    def test_enabled_rules_only(self):
        registry = RuleRegistry()
        selected = registry.enabled_rules(only=["N3.1", "S1.1"])

        assert [r.rule_id for r in selected] == ["S1.1", "N3.1"]

    def test_enabled_rules_only_unknown_fails(self):
        registry = RuleRegistry()

        with pytest.raises(RuleNotFoundError):
            registry.enabled_rules(only=["S1.1", "nope"])

    def test_custom_store(self):
        store = InMemoryRuleStore()
        registry = RuleRegistry(store=store, include_defaults=False)
        registry.register(_snippet_rule())

        assert store.exists("X9.1")
        store.remove("X9.1")
        assert not registry.exists("X9.1")


class TestRuleDefinition:
    """Tests for rule definitions."""

    def test_blockers(self):
        registry = RuleRegistry()

        assert registry.resolve("B0.1").is_blocker
        assert not registry.resolve("T5.2").is_blocker

    def test_with_overrides_returns_copy(self):
        rule = _snippet_rule()
        changed = rule.with_overrides(enabled=False, severity="warning")

        assert rule.enabled
        assert not changed.enabled
        assert changed.severity == Severity.WARNING


# =============================================================================
# Validation
# =============================================================================


class TestValidateRule:
    """Tests for rule validation."""

    def test_default_rules_valid(self):
        for rule in DEFAULT_RULES:
            validate_rule(rule)

    def test_collects_all_errors(self):
        rule = _snippet_rule(
            rule_id="9 bad",
            name="",
            options={"files": "src/lib.rs", "colour": "red"},
        )

        with pytest.raises(RuleValidationError) as exc_info:
            validate_rule(rule)
        errors = exc_info.value.errors

        assert any("rule_id" in e for e in errors)
        assert any("name" in e for e in errors)
        assert any("colour" in e for e in errors)
        assert any("'files'" in e for e in errors)
        assert any("'patterns'" in e for e in errors)
        assert exc_info.value.rule is rule

    def test_field_order_vocabulary(self):
        rule = RuleDefinition(
            rule_id="S1.9",
            kind=RuleKind.FIELD_ORDER,
            name="Order",
            category=RuleCategory.STRUCTURE,
            options={"order": ["pub", "protected", "pub"]},
        )

        with pytest.raises(RuleValidationError) as exc_info:
            validate_rule(rule)
        errors = exc_info.value.errors
        assert any("protected" in e for e in errors)
        assert any("unique" in e for e in errors)

    def test_receiver_must_be_first(self):
        rule = RuleDefinition(
            rule_id="P2.9",
            kind=RuleKind.PARAM_ORDER,
            name="Order",
            category=RuleCategory.SIGNATURES,
            options={"order": ["input", "receiver"]},
        )

        with pytest.raises(RuleValidationError, match="receiver"):
            validate_rule(rule)

    def test_naming_regex_compiles(self):
        rule = RuleDefinition(
            rule_id="N3.9",
            kind=RuleKind.NAMING_PATTERN,
            name="Naming",
            category=RuleCategory.NAMING,
            options={"target": "widget", "pattern": "([a-z"},
        )

        with pytest.raises(RuleValidationError) as exc_info:
            validate_rule(rule)
        errors = exc_info.value.errors
        assert any("target" in e for e in errors)
        assert any("invalid regex" in e for e in errors)

    def test_file_layout_needs_paths(self):
        rule = RuleDefinition(
            rule_id="B0.9",
            kind=RuleKind.FILE_LAYOUT,
            name="Layout",
            category=RuleCategory.LAYOUT,
        )

        with pytest.raises(RuleValidationError):
            validate_rule(rule)

    def test_flags_must_be_booleans(self):
        rule = _snippet_rule(
            kind=RuleKind.REQUIRED_SNIPPET,
            options={"files": ["src/main.rs"], "any_of": ["init()"], "nested": "no"},
        )

        with pytest.raises(RuleValidationError, match="'nested' must be true or false"):
            validate_rule(rule)

    def test_nested_flag_accepted(self):
        validate_rule(_snippet_rule(options={
            "files": ["src/bin/*.rs"], "patterns": ["dbg!("], "nested": False,
        }))

    def test_validation_error_is_value_error(self):
        assert issubclass(RuleValidationError, ValueError)


# =============================================================================
# Serialization
# =============================================================================


class TestRuleSerialization:
    """Tests for rule serialization."""

    def test_to_dict(self):
        data = rule_to_dict(RuleRegistry().resolve("N3.4"))

        assert data["rule_id"] == "N3.4"
        assert data["kind"] == "naming_pattern"
        assert data["category"] == "naming"
        assert data["severity"] == "warning"
        assert data["recommendations"] == ["Rename get_x() to x()"]

    def test_roundtrip_defaults(self):
        restored = rules_from_json(rules_to_json(DEFAULT_RULES))

        assert restored == DEFAULT_RULES

    def test_from_dict_accepts_names(self):
        rule = rule_from_dict({
            "rule_id": "X9.2",
            "kind": "FORBIDDEN_SNIPPET",
            "name": "No println",
            "category": "Release",
            "severity": "WARNING",
            "options": {"files": ["src/*.rs"], "patterns": ["println!("]},
        })

        assert rule.kind == RuleKind.FORBIDDEN_SNIPPET
        assert rule.category == RuleCategory.RELEASE
        assert rule.severity == Severity.WARNING

    def test_from_dict_accepts_category_number(self):
        assert parse_enum(RuleCategory, 3) == RuleCategory.NAMING

    def test_from_dict_missing_field(self):
        with pytest.raises(ValueError, match="Missing required field"):
            rule_from_dict({"rule_id": "X", "kind": "file_layout", "name": "n"})

    def test_from_dict_unknown_field(self):
        with pytest.raises(ValueError, match="Unknown rule field"):
            rule_from_dict({
                "rule_id": "X", "kind": "file_layout", "name": "n",
                "category": "layout", "colour": "red",
            })

    def test_from_dict_bad_enum(self):
        with pytest.raises(ValueError, match="Invalid data format"):
            rule_from_dict({
                "rule_id": "X", "kind": "spellcheck", "name": "n", "category": "layout",
            })

    def test_from_dict_enabled_must_be_boolean(self):
        with pytest.raises(ValueError, match="enabled must be true or false"):
            rule_from_dict({
                "rule_id": "X9.3", "kind": "file_layout", "name": "n",
                "category": "layout", "enabled": "false",
                "options": {"required": ["Cargo.toml"]},
            })

    def test_from_dict_recommendations_must_be_list(self):
        with pytest.raises(ValueError, match="recommendations must be a list"):
            rule_from_dict({
                "rule_id": "X9.3", "kind": "file_layout", "name": "n",
                "category": "layout", "recommendations": "Add a README",
            })

    def test_from_json_requires_list(self):
        with pytest.raises(ValueError):
            rules_from_json(json.dumps({"rule_id": "X"}))
