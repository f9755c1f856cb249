"""
Tests for linter configuration.
"""

from pathlib import Path

import pytest

from labstyle.config import ConfigError, LintConfig, is_excluded, matches_within_segments
from labstyle.rules import Severity


class TestFromYaml:
    """Tests for loading labstyle.yaml."""

    def test_full_file(self, temp_crate):
        path = temp_crate / "labstyle.yaml"
        path.write_text(
            "exclude:\n"
            "  - src/generated\n"
            "max_failures: 2\n"
            "fail_fast: false\n"
            "output_format: markdown\n"
            "rules:\n"
            "  N3.4:\n"
            "    enabled: false\n"
        )

        config = LintConfig.from_yaml(path)

        assert config.crate_root == temp_crate
        assert config.exclude == ["src/generated"]
        assert config.max_failures == 2
        assert config.fail_fast is False
        assert config.output_format == "markdown"
        assert config.rules == {"N3.4": {"enabled": False}}

    def test_empty_file(self, temp_crate):
        path = temp_crate / "labstyle.yaml"
        path.write_text("")

        config = LintConfig.from_yaml(path)

        assert config.max_failures == 0
        assert config.fail_fast is True
        assert config.crate_root == temp_crate

    def test_relative_crate_root(self, temp_crate):
        path = temp_crate / "labstyle.yaml"
        path.write_text("crate_root: crates/codec\n")

        assert LintConfig.from_yaml(path).crate_root == temp_crate / "crates" / "codec"

    def test_absolute_crate_root(self, temp_crate):
        path = temp_crate / "labstyle.yaml"
        path.write_text("crate_root: /srv/codec\n")

        assert LintConfig.from_yaml(path).crate_root == Path("/srv/codec")

    def test_missing_file(self, temp_crate):
        with pytest.raises(ConfigError, match="cannot read file"):
            LintConfig.from_yaml(temp_crate / "labstyle.yaml")

    def test_malformed_yaml(self, temp_crate):
        path = temp_crate / "labstyle.yaml"
        path.write_text("rules: [unclosed\n")

        with pytest.raises(ConfigError) as exc_info:
            LintConfig.from_yaml(path)
        assert exc_info.value.source == str(path)
        assert "malformed YAML" in exc_info.value.errors[0]


class TestFromDict:
    """Tests for validating configuration values."""

    def test_defaults(self):
        config = LintConfig.from_dict({})

        assert config.exclude == []
        assert config.output_format == "text"
        assert config.extra_rules == []

    def test_collects_every_error(self):
        with pytest.raises(ConfigError) as exc_info:
            LintConfig.from_dict({
                "exclud": ["target"],
                "max_failures": -1,
                "fail_fast": "yes",
                "output_format": "html",
                "rules": {"S1.1": {"enable": False}, "P2.1": "off"},
            })
        errors = exc_info.value.errors

        assert "unknown key 'exclud'" in errors
        assert "'max_failures' must be a non-negative integer" in errors
        assert "'fail_fast' must be true or false" in errors
        assert any("output_format" in e for e in errors)
        assert "rules.S1.1: unknown key 'enable'" in errors
        assert "rules.P2.1 must be a mapping" in errors

    def test_crate_root_must_be_path(self):
        with pytest.raises(ConfigError) as exc_info:
            LintConfig.from_dict({"crate_root": 5})

        assert exc_info.value.errors == ["'crate_root' must be a path"]

    def test_override_value_types(self):
        with pytest.raises(ConfigError) as exc_info:
            LintConfig.from_dict({"rules": {
                "N3.4": {"enabled": "false"},
                "R7.2": {"severity": 2},
                "P2.1": {"options": ["Params"]},
            }})
        errors = exc_info.value.errors

        assert "rules.N3.4: 'enabled' must be true or false" in errors
        assert "rules.R7.2: 'severity' must be a severity name" in errors
        assert "rules.P2.1: 'options' must be a mapping" in errors

    def test_boolean_is_not_a_count(self):
        with pytest.raises(ConfigError):
            LintConfig.from_dict({"max_failures": True})

    def test_top_level_must_be_mapping(self):
        with pytest.raises(ConfigError, match="mapping"):
            LintConfig.from_dict(["S1.1"])

    def test_error_is_value_error(self):
        assert issubclass(ConfigError, ValueError)

    def test_to_dict(self):
        config = LintConfig.from_dict({"exclude": ["vendor"], "max_failures": 3})
        data = config.to_dict()

        assert data["exclude"] == ["vendor"]
        assert data["max_failures"] == 3
        assert data["crate_root"] == "."


class TestDiscover:
    """Tests for finding a config file in a crate."""

    def test_no_config(self, temp_crate):
        assert LintConfig.discover(temp_crate) is None

    def test_visible_name_preferred(self, temp_crate):
        (temp_crate / "labstyle.yaml").write_text("max_failures: 1\n")
        (temp_crate / ".labstyle.yaml").write_text("max_failures: 5\n")

        assert LintConfig.discover(temp_crate).max_failures == 1

    def test_hidden_name(self, temp_crate):
        (temp_crate / ".labstyle.yaml").write_text("max_failures: 5\n")

        assert LintConfig.discover(temp_crate).max_failures == 5


class TestExclusion:
    """Tests for exclude patterns."""

    def test_directory_pattern(self):
        assert is_excluded("src/generated", ["src/generated"])
        assert is_excluded("src/generated/proto.rs", ["src/generated"])
        assert is_excluded("src/generated/proto.rs", ["src/generated/"])
        assert not is_excluded("src/generator.rs", ["src/generated"])

    def test_glob_pattern(self):
        assert is_excluded("benches/big.rs", ["*.rs"])
        assert not is_excluded("README.md", ["*.rs"])

    def test_segment_match_stays_in_directory(self):
        assert matches_within_segments("src/bin/tool.rs", "src/bin/*.rs")
        assert matches_within_segments("src/bin/tool/main.rs", "src/bin/*/main.rs")
        assert not matches_within_segments("src/bin/tool/args.rs", "src/bin/*.rs")
        assert not matches_within_segments("src/bin/tool/args.rs", "src/bin/*/main.rs")

    def test_should_skip(self):
        config = LintConfig(exclude=["examples"])

        assert config.should_skip("examples/demo.rs")
        assert not config.should_skip("src/lib.rs")


class TestBuildRegistry:
    """Tests for applying configuration to the rule registry."""

    def test_defaults(self):
        registry = LintConfig().build_registry()

        assert registry.exists("S1.1")
        assert len(registry.enabled_rules()) == len(registry.all_rules())

    def test_overrides(self):
        config = LintConfig(rules={
            "N3.4": {"enabled": False},
            "R7.2": {"severity": "ERROR"},
            "P2.1": {"options": {"option_suffixes": ["Params"]}},
        })
        registry = config.build_registry()

        assert not registry.resolve("N3.4").enabled
        assert registry.resolve("R7.2").severity == Severity.ERROR
        assert registry.resolve("P2.1").option("option_suffixes") == ["Params"]
        assert registry.resolve("P2.1").option("order")[0] == "receiver"

    def test_extra_rules_then_overrides(self):
        config = LintConfig(
            extra_rules=[{
                "rule_id": "X9.1",
                "kind": "forbidden_snippet",
                "name": "No unwrap",
                "category": "release",
                "options": {"files": ["src/*.rs"], "patterns": [".unwrap()"]},
            }],
            rules={"X9.1": {"severity": "warning"}},
        )
        registry = config.build_registry()

        assert registry.resolve("X9.1").severity == Severity.WARNING

    def test_collects_errors(self):
        config = LintConfig(
            extra_rules=[
                {"rule_id": "X9.2", "kind": "forbidden_snippet", "name": "Broken",
                 "category": "release", "options": {"files": ["src/*.rs"]}},
                {"kind": "file_layout"},
            ],
            rules={
                "Z0.1": {"enabled": False},
                "S1.1": {"severity": "fatal"},
                "P2.1": {"options": {"order": ["input", "receiver"]}},
            },
        )

        with pytest.raises(ConfigError) as exc_info:
            config.build_registry()
        errors = exc_info.value.errors

        assert any(e.startswith("extra_rules X9.2:") and "patterns" in e for e in errors)
        assert any(e.startswith("extra_rules #1:") for e in errors)
        assert "rules.Z0.1: no such rule" in errors
        assert any(e.startswith("rules.S1.1:") for e in errors)
        assert any(e.startswith("rules.P2.1:") and "receiver" in e for e in errors)
