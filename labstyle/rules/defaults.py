"""
The laboratory style guide, as rules.

Identifiers are `<letter><category>.<n>`: B0.x crate layout blockers,
S1 structures, P2 signatures, N3 naming, L4 logging boilerplate,
T5 tests, D6 documentation, R7 release checklist.
"""

from typing import List

from .model import RuleCategory, RuleDefinition, RuleKind, Severity

SOURCE_FILES = ["src/*.rs"]

CHANGELOG_SECTIONS = ["Added", "Changed", "Deprecated", "Removed", "Fixed", "Security"]


DEFAULT_RULES: List[RuleDefinition] = [
    # ---------- Layout (blockers) ----------
    RuleDefinition(
        rule_id="B0.1",
        kind=RuleKind.FILE_LAYOUT,
        name="Cargo Manifest Present",
        category=RuleCategory.LAYOUT,
        description="The crate root holds a Cargo.toml manifest",
        options={"required": ["Cargo.toml"], "blocker": "B0.1"},
        recommendations=("Run the linter from the crate root, or pass the crate path",),
    ),
    RuleDefinition(
        rule_id="B0.2",
        kind=RuleKind.FILE_LAYOUT,
        name="Crate Root Present",
        category=RuleCategory.LAYOUT,
        description="The crate has a src/lib.rs or src/main.rs root module",
        options={"required_any": ["src/lib.rs", "src/main.rs"], "blocker": "B0.2"},
        recommendations=("Keep sources under src/ with lib.rs or main.rs as the crate root",),
    ),
    # ---------- Structures ----------
    RuleDefinition(
        rule_id="S1.1",
        kind=RuleKind.FIELD_ORDER,
        name="Struct Field Order",
        category=RuleCategory.STRUCTURE,
        description="Struct fields are grouped by visibility, most visible first",
        options={
            "order": ["pub", "pub(crate)", "pub(restricted)", "private"],
            "leading": [],
            "files": SOURCE_FILES,
        },
        recommendations=(
            "Declare public fields first, then crate-visible, then private fields",
        ),
    ),
    # ---------- Signatures ----------
    RuleDefinition(
        rule_id="P2.1",
        kind=RuleKind.PARAM_ORDER,
        name="Parameter Order",
        category=RuleCategory.SIGNATURES,
        description=(
            "Parameters follow receiver, inputs, outputs (&mut), options, callbacks"
        ),
        options={
            "order": ["receiver", "input", "output", "options", "callback"],
            "option_suffixes": ["Options", "Config", "Settings"],
            "files": SOURCE_FILES,
        },
        recommendations=(
            "Pass data being read first, buffers being written next",
            "Put optional settings and closures at the end of the signature",
        ),
    ),
    # ---------- Naming ----------
    RuleDefinition(
        rule_id="N3.1",
        kind=RuleKind.NAMING_PATTERN,
        name="Trait Naming",
        category=RuleCategory.NAMING,
        description="Traits are UpperCamelCase without an I prefix or Trait suffix",
        options={
            "target": "trait",
            "pattern": r"^[A-Z][A-Za-z0-9]*$",
            "forbidden": [r"^I[A-Z]", r"Trait$"],
            "files": SOURCE_FILES,
        },
        recommendations=("Name traits for the capability they provide, e.g. Encode, Sample",),
    ),
    RuleDefinition(
        rule_id="N3.2",
        kind=RuleKind.NAMING_PATTERN,
        name="Type Naming",
        category=RuleCategory.NAMING,
        description="Structs and enums are UpperCamelCase",
        options={
            "target": "type",
            "pattern": r"^[A-Z][A-Za-z0-9]*$",
            "files": SOURCE_FILES,
        },
    ),
    RuleDefinition(
        rule_id="N3.3",
        kind=RuleKind.NAMING_PATTERN,
        name="Function Naming",
        category=RuleCategory.NAMING,
        description="Functions and methods are snake_case",
        options={
            "target": "fn",
            "pattern": r"^[a-z_][a-z0-9_]*$",
            "files": SOURCE_FILES,
        },
    ),
    RuleDefinition(
        rule_id="N3.4",
        kind=RuleKind.NAMING_PATTERN,
        name="Getter Naming",
        category=RuleCategory.NAMING,
        description="Accessor methods are named after the field, without get_",
        severity=Severity.WARNING,
        options={
            "target": "method",
            "forbidden": [r"^get_"],
            "files": SOURCE_FILES,
        },
        recommendations=("Rename get_x() to x()",),
    ),
    # ---------- Boilerplate ----------
    RuleDefinition(
        rule_id="L4.1",
        kind=RuleKind.REQUIRED_SNIPPET,
        name="Logging Initialization",
        category=RuleCategory.BOILERPLATE,
        description="Every binary initializes a logger before doing work",
        options={
            "files": ["src/main.rs", "src/bin/*.rs", "src/bin/*/main.rs"],
            "nested": False,
            "any_of": [
                "env_logger::init()",
                "env_logger::builder()",
                "env_logger::Builder",
                "env_logger::try_init()",
                "tracing_subscriber::",
            ],
        },
        recommendations=("Call env_logger::init() at the top of main()",),
    ),
    # ---------- Tests ----------
    RuleDefinition(
        rule_id="T5.1",
        kind=RuleKind.TEST_LAYOUT,
        name="Unit Test Module Layout",
        category=RuleCategory.TESTING,
        description="Unit tests live in a trailing #[cfg(test)] mod tests",
        options={
            "files": SOURCE_FILES,
            "integration_files": ["tests/*.rs"],
            "module_name": "tests",
            "require_last": True,
            "allow_out_of_line": False,
        },
        recommendations=(
            "Move #[test] functions into #[cfg(test)] mod tests at the bottom of the file",
        ),
    ),
    RuleDefinition(
        rule_id="T5.2",
        kind=RuleKind.FILE_LAYOUT,
        name="Integration Test Directory",
        category=RuleCategory.TESTING,
        description="Integration tests live in the tests/ directory",
        severity=Severity.WARNING,
        options={"required": ["tests"]},
        recommendations=("Add integration tests under tests/",),
    ),
    # ---------- Documentation ----------
    RuleDefinition(
        rule_id="D6.1",
        kind=RuleKind.REQUIRED_SNIPPET,
        name="README Included In Crate Docs",
        category=RuleCategory.DOCUMENTATION,
        description="The library root pulls README.md in as crate-level documentation",
        options={
            "files": ["src/lib.rs"],
            "any_of": ['#![doc = include_str!("../README.md")]'],
            "requires_files": ["README.md"],
        },
        recommendations=('Add #![doc = include_str!("../README.md")] to the top of src/lib.rs',),
    ),
    RuleDefinition(
        rule_id="D6.2",
        kind=RuleKind.CHANGELOG_FORMAT,
        name="Changelog Format",
        category=RuleCategory.DOCUMENTATION,
        description="CHANGELOG.md follows the Keep a Changelog layout",
        options={
            "path": "CHANGELOG.md",
            "title": "Changelog",
            "require_unreleased": True,
            "sections": CHANGELOG_SECTIONS,
        },
        recommendations=(
            "Start with '# Changelog' and an '## [Unreleased]' section",
            "Head each release '## [X.Y.Z] - YYYY-MM-DD', newest first",
        ),
    ),
    # ---------- Release ----------
    RuleDefinition(
        rule_id="R7.1",
        kind=RuleKind.RELEASE_CHECKLIST,
        name="Release Checklist",
        category=RuleCategory.RELEASE,
        description="Package metadata is complete and the version has a changelog entry",
        options={
            "required_package_keys": [
                "name", "version", "edition", "description", "license", "repository",
            ],
            "changelog": "CHANGELOG.md",
        },
        recommendations=(
            "Fill in the [package] metadata in Cargo.toml",
            "Move the Unreleased notes under a heading for the new version before tagging",
        ),
    ),
    RuleDefinition(
        rule_id="R7.2",
        kind=RuleKind.FORBIDDEN_SNIPPET,
        name="Release Leftovers",
        category=RuleCategory.RELEASE,
        description="No debugging or placeholder macros remain in library code",
        severity=Severity.WARNING,
        options={
            "files": SOURCE_FILES,
            "patterns": ["dbg!(", "todo!(", "unimplemented!("],
        },
        recommendations=("Remove dbg!() calls and finish todo!() branches before release",),
    ),
]
