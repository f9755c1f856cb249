"""
Configuration for the Style Linter.

Manages which rules run, how severe they are, which paths are ignored
and how many failures a crate may carry and still count as clean.

Example `labstyle.yaml`:

    exclude:
      - "src/generated/*"
    max_failures: 1
    rules:
      N3.4:
        enabled: false
      P2.1:
        options:
          option_suffixes: [Options, Config, Params]
    extra_rules:
      - rule_id: X9.1
        kind: forbidden_snippet
        name: No unwrap in library code
        category: release
        options:
          files: ["src/*.rs"]
          patterns: [".unwrap()"]
"""

import fnmatch
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Sequence

import yaml

from labstyle.rules.model import Severity
from labstyle.rules.registry import RuleNotFoundError, RuleRegistry
from labstyle.rules.serialize import parse_enum, rule_from_dict
from labstyle.rules.validation import RuleValidationError

logger = logging.getLogger(__name__)

CONFIG_FILENAMES = ("labstyle.yaml", ".labstyle.yaml")

OUTPUT_FORMATS = ("text", "markdown", "json", "github")

_OVERRIDE_KEYS = ("enabled", "severity", "options")


class ConfigError(ValueError):
    """
    Raised when configuration cannot be loaded or applied.

    Carries every problem found, not just the first.
    """

    def __init__(self, errors: list[str], source: str | None = None):
        self.errors = errors
        self.source = source
        where = f" in {source}" if source else ""
        super().__init__(f"Invalid configuration{where}:\n- " + "\n- ".join(errors))


def matches_within_segments(rel_path: str, pattern: str) -> bool:
    """Glob match where `*` never crosses `/`: one pattern segment per path segment."""
    path_parts = rel_path.split("/")
    pattern_parts = pattern.split("/")
    return len(path_parts) == len(pattern_parts) and all(
        fnmatch.fnmatchcase(part, glob) for part, glob in zip(path_parts, pattern_parts)
    )


def is_excluded(rel_path: str, patterns: Sequence[str]) -> bool:
    """True if a crate-relative path, or a directory containing it, matches a pattern."""
    return any(
        fnmatch.fnmatchcase(rel_path, pattern)
        or fnmatch.fnmatchcase(rel_path, pattern.rstrip("/") + "/*")
        for pattern in patterns
    )


@dataclass
class LintConfig:
    """Configuration for a lint run.

    Attributes:
        crate_root: Root directory of the crate to lint
        exclude: Glob patterns of crate-relative paths to ignore
        max_failures: Failed rules tolerated in a clean crate
        fail_fast: Stop at the first layout blocker
        output_format: Default report format
        rules: Per-rule overrides keyed by rule id
            (`enabled`, `severity`, `options`)
        extra_rules: Additional rule definitions, as dictionaries
    """

    crate_root: Path = field(default_factory=lambda: Path("."))

    # File scanning
    exclude: list[str] = field(default_factory=list)

    # Verdict
    max_failures: int = 0
    fail_fast: bool = True

    output_format: str = "text"

    # Rule customization
    rules: dict[str, dict[str, Any]] = field(default_factory=dict)
    extra_rules: list[dict[str, Any]] = field(default_factory=list)

    def __post_init__(self):
        """Convert paths to Path objects if strings."""
        if isinstance(self.crate_root, str):
            self.crate_root = Path(self.crate_root)

    @classmethod
    def from_yaml(cls, yaml_path: Path) -> "LintConfig":
        """Load configuration from a YAML file.

        A relative `crate_root` is taken relative to the file's directory.

        Raises:
            ConfigError: If the file cannot be read or is malformed.
        """
        yaml_path = Path(yaml_path)
        try:
            with open(yaml_path, encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except OSError as e:
            raise ConfigError([f"cannot read file: {e.strerror or e}"], str(yaml_path)) from e
        except yaml.YAMLError as e:
            raise ConfigError([f"malformed YAML: {e}"], str(yaml_path)) from e

        data = {} if data is None else data
        config = cls.from_dict(data, source=str(yaml_path))
        if "crate_root" not in data:
            config.crate_root = yaml_path.parent
        elif not config.crate_root.is_absolute():
            config.crate_root = yaml_path.parent / config.crate_root
        logger.debug("Loaded configuration from %s", yaml_path)
        return config

    @classmethod
    def from_dict(cls, data: dict[str, Any], source: str | None = None) -> "LintConfig":
        """Create config from a dictionary.

        Raises:
            ConfigError: If keys are unknown or values have the wrong type.
        """
        if not isinstance(data, dict):
            raise ConfigError(["top level must be a mapping"], source)

        errors = []
        known = set(cls.__dataclass_fields__)
        for key in sorted(set(data) - known):
            errors.append(f"unknown key '{key}'")

        exclude = data.get("exclude", [])
        if not isinstance(exclude, list) or not all(isinstance(p, str) for p in exclude):
            errors.append("'exclude' must be a list of glob patterns")

        max_failures = data.get("max_failures", 0)
        if not isinstance(max_failures, int) or isinstance(max_failures, bool) or max_failures < 0:
            errors.append("'max_failures' must be a non-negative integer")

        if not isinstance(data.get("crate_root", "."), str):
            errors.append("'crate_root' must be a path")

        if not isinstance(data.get("fail_fast", True), bool):
            errors.append("'fail_fast' must be true or false")

        if data.get("output_format", "text") not in OUTPUT_FORMATS:
            errors.append(
                f"'output_format' must be one of {', '.join(OUTPUT_FORMATS)}"
            )

        rules = data.get("rules", {}) or {}
        if not isinstance(rules, dict):
            errors.append("'rules' must map rule ids to overrides")
        else:
            for rule_id, override in rules.items():
                if not isinstance(override, dict):
                    errors.append(f"rules.{rule_id} must be a mapping")
                    continue
                for key in sorted(set(override) - set(_OVERRIDE_KEYS)):
                    errors.append(f"rules.{rule_id}: unknown key '{key}'")
                if not isinstance(override.get("enabled", True), bool):
                    errors.append(f"rules.{rule_id}: 'enabled' must be true or false")
                if not isinstance(override.get("severity", ""), str):
                    errors.append(f"rules.{rule_id}: 'severity' must be a severity name")
                if not isinstance(override.get("options", {}), dict):
                    errors.append(f"rules.{rule_id}: 'options' must be a mapping")

        extra_rules = data.get("extra_rules", []) or []
        if not isinstance(extra_rules, list) or not all(isinstance(r, dict) for r in extra_rules):
            errors.append("'extra_rules' must be a list of rule definitions")

        if errors:
            raise ConfigError(errors, source)

        return cls(
            crate_root=data.get("crate_root", "."),
            exclude=list(exclude),
            max_failures=max_failures,
            fail_fast=data.get("fail_fast", True),
            output_format=data.get("output_format", "text"),
            rules={str(k): dict(v) for k, v in rules.items()},
            extra_rules=[dict(r) for r in extra_rules],
        )

    @classmethod
    def discover(cls, root: Path) -> "LintConfig | None":
        """Load the first config file found in `root`, if any."""
        root = Path(root)
        for name in CONFIG_FILENAMES:
            candidate = root / name
            if candidate.is_file():
                return cls.from_yaml(candidate)
        return None

    def to_dict(self) -> dict[str, Any]:
        """Convert config to dictionary."""
        return {
            "crate_root": str(self.crate_root),
            "exclude": self.exclude,
            "max_failures": self.max_failures,
            "fail_fast": self.fail_fast,
            "output_format": self.output_format,
            "rules": self.rules,
            "extra_rules": self.extra_rules,
        }

    def should_skip(self, rel_path: str) -> bool:
        """Check if a crate-relative path is excluded from linting."""
        return is_excluded(rel_path, self.exclude)

    def build_registry(self) -> RuleRegistry:
        """
        Default rules with `extra_rules` registered and `rules` overrides applied.

        Raises:
            ConfigError: If a rule id is unknown or a rule ends up invalid.
        """
        registry = RuleRegistry()
        errors = []

        for index, data in enumerate(self.extra_rules):
            label = data.get("rule_id", f"#{index}")
            try:
                registry.register(rule_from_dict(data))
            except RuleValidationError as e:
                errors.extend(f"extra_rules {label}: {err}" for err in e.errors)
            except ValueError as e:
                errors.append(f"extra_rules {label}: {e}")

        for rule_id, override in self.rules.items():
            try:
                severity = override.get("severity")
                registry.override(
                    rule_id,
                    enabled=override.get("enabled"),
                    severity=parse_enum(Severity, severity) if severity is not None else None,
                    options=override.get("options"),
                )
            except RuleNotFoundError:
                errors.append(f"rules.{rule_id}: no such rule")
            except RuleValidationError as e:
                errors.extend(f"rules.{rule_id}: {err}" for err in e.errors)
            except (TypeError, ValueError) as e:
                errors.append(f"rules.{rule_id}: {e}")

        if errors:
            raise ConfigError(errors)
        return registry
