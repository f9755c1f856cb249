"""
Style Check Implementations.

Each check evaluates one kind of convention. A check is bound to a
`RuleDefinition`, which supplies its identity, category, severity and
the options that make it concrete, so one check class serves every
rule of its kind.

Kinds:
    file_layout        Required / forbidden paths (crate layout blockers)
    field_order        Struct field ordering
    param_order        Function parameter ordering
    naming_pattern     Naming of traits, types, functions, modules
    required_snippet   Boilerplate that must appear in matching files
    forbidden_snippet  Text that must not appear in matching files
    test_layout        Unit test module placement
    changelog_format   CHANGELOG.md structure
    release_checklist  Cargo metadata and changelog agree on the release
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Protocol, Sequence, Tuple, Type
import re

from labstyle.config import matches_within_segments
from labstyle.rules.defaults import SOURCE_FILES
from labstyle.rules.model import RuleCategory, RuleDefinition, RuleKind, Severity
from labstyle.rules.registry import RuleRegistry
from labstyle.source.manifest import CargoManifest, ManifestError
from labstyle.source.markdown import Changelog, is_semver, version_key
from labstyle.source.model import (
    EnumDef,
    FieldDef,
    FnDef,
    ImplDef,
    ModDef,
    Param,
    SourceFile,
    StructDef,
    StructKind,
    TraitDef,
)

from .types import (
    CheckResult,
    CheckStatus,
    Evidence,
)


class TargetCrate(Protocol):
    """Protocol for the crate being linted. Paths are crate-relative, `/`-separated."""

    def all_files(self) -> List[str]:
        """Return every file in the crate."""
        ...

    def rust_files(self) -> List[str]:
        """Return all `.rs` files in the crate."""
        ...

    def files_matching(self, patterns: Sequence[str]) -> List[str]:
        """Return files matching any of the glob patterns."""
        ...

    def read_file(self, path: str) -> str:
        """Read the contents of a file."""
        ...

    def has_file(self, path: str) -> bool:
        """Check if a file or directory exists."""
        ...

    def source_file(self, path: str) -> SourceFile:
        """Scan a Rust file."""
        ...

    def changelog(self, path: str = "CHANGELOG.md") -> Optional[Changelog]:
        """Parse the changelog, or None if it does not exist."""
        ...

    def manifest(self) -> Optional[CargoManifest]:
        """Parse Cargo.toml, or None if it does not exist."""
        ...


class Check(ABC):
    """Base class for all style checks."""

    kind: RuleKind

    def __init__(self, rule: RuleDefinition):
        if rule.kind != self.kind:
            raise ValueError(
                f"{type(self).__name__} evaluates {self.kind.value} rules, "
                f"not {rule.kind.value} ({rule.rule_id})"
            )
        self.rule = rule

    @property
    def check_id(self) -> str:
        return self.rule.rule_id

    @property
    def name(self) -> str:
        return self.rule.name

    @property
    def category(self) -> RuleCategory:
        return self.rule.category

    @property
    def description(self) -> str:
        return self.rule.description

    @abstractmethod
    def run(self, crate: TargetCrate) -> CheckResult:
        """Execute the check against the target crate."""
        ...

    def _finding(
        self,
        location: str,
        line: Optional[int] = None,
        description: str = "",
        snippet: Optional[str] = None,
        suggestion: Optional[str] = None,
        severity: Optional[Severity] = None,
    ) -> Evidence:
        return Evidence(
            location=location,
            line_number=line,
            description=description,
            code_snippet=snippet or None,
            severity=(severity or self.rule.severity).value,
            suggestion=suggestion,
        )

    def _result(self, status: CheckStatus, **kwargs: Any) -> CheckResult:
        return CheckResult(
            check_id=self.check_id,
            name=self.name,
            category=self.category,
            status=status,
            description=self.description,
            evidence=kwargs.get("evidence") or [],
            recommendations=kwargs.get("recommendations") or [],
            details=kwargs.get("details") or {},
            kind=self.rule.kind,
        )

    def _pass(self, evidence: List[Evidence] = None, details: Dict[str, Any] = None) -> CheckResult:
        return self._result(CheckStatus.PASS, evidence=evidence, details=details)

    def _fail(
        self,
        evidence: List[Evidence] = None,
        recommendations: List[str] = None,
        details: Dict[str, Any] = None,
    ) -> CheckResult:
        details = dict(details or {})
        if self.rule.is_blocker:
            details["blocker"] = self.rule.option("blocker")
        return self._result(
            CheckStatus.FAIL,
            evidence=evidence,
            recommendations=recommendations,
            details=details,
        )

    def _warn(
        self,
        evidence: List[Evidence] = None,
        recommendations: List[str] = None,
        details: Dict[str, Any] = None,
    ) -> CheckResult:
        return self._result(
            CheckStatus.WARN,
            evidence=evidence,
            recommendations=recommendations,
            details=details,
        )

    def _not_applicable(self, reason: str) -> CheckResult:
        return self._result(CheckStatus.NOT_APPLICABLE, details={"na_reason": reason})

    def _conclude(self, evidence: List[Evidence], details: Dict[str, Any] = None) -> CheckResult:
        """Fail on any error finding, warn on lesser findings, pass otherwise."""
        recommendations = list(self.rule.recommendations)
        if any(ev.severity == Severity.ERROR.value for ev in evidence):
            return self._fail(evidence, recommendations, details)
        if evidence:
            return self._warn(evidence, recommendations, details)
        return self._pass(details=details)

    def _matching_files(self, crate: TargetCrate, patterns: Sequence[str]) -> List[str]:
        """Files matching `patterns`; with `nested: false` a `*` stays within one directory."""
        files = crate.files_matching(patterns)
        if self.rule.option("nested", True):
            return files
        return [f for f in files if any(matches_within_segments(f, p) for p in patterns)]

    def _rust_sources(self, crate: TargetCrate) -> List[SourceFile]:
        patterns = self.rule.option("files", SOURCE_FILES)
        return [
            crate.source_file(path)
            for path in crate.files_matching(patterns)
            if path.endswith(".rs")
        ]


def _in_trait_impl(parents: Tuple[Any, ...]) -> bool:
    """Items of `impl Trait for Type` take their names and signatures from the trait."""
    return any(isinstance(p, ImplDef) and p.trait_name for p in parents)


def _squash_all(text: str) -> str:
    return re.sub(r"\s+", "", text)


# =============================================================================
# LAYOUT
# =============================================================================


class FileLayoutCheck(Check):
    """
    Required and forbidden paths.

    `required`: every path must exist. `required_any`: at least one must
    exist. `forbidden`: no file may match any of the globs.
    """

    kind = RuleKind.FILE_LAYOUT

    def run(self, crate: TargetCrate) -> CheckResult:
        evidence = []
        required = self.rule.option("required", [])
        required_any = self.rule.option("required_any", [])
        forbidden = self.rule.option("forbidden", [])

        for path in required:
            if not crate.has_file(path):
                evidence.append(self._finding(
                    location=path,
                    description=f"Required path '{path}' is missing",
                ))

        if required_any and not any(crate.has_file(p) for p in required_any):
            evidence.append(self._finding(
                location=required_any[0],
                description=f"None of {', '.join(required_any)} exists",
            ))

        if forbidden:
            for path in crate.files_matching(forbidden):
                evidence.append(self._finding(
                    location=path,
                    description="Path matches a forbidden pattern",
                ))

        return self._conclude(evidence)


# =============================================================================
# STRUCTURE
# =============================================================================


class FieldOrderCheck(Check):
    """
    Field ordering in structures.

    Fields named in `leading` come first, in that order; the rest are
    grouped by visibility following `order`. Tuple structs are left
    alone, since reordering them changes their meaning.
    """

    kind = RuleKind.FIELD_ORDER

    def _rank(self, field: FieldDef) -> Tuple[int, int]:
        leading = self.rule.option("leading", [])
        order = self.rule.option("order", [])
        if field.name in leading:
            return (0, leading.index(field.name))
        group = field.visibility.value
        return (1, order.index(group) if group in order else len(order))

    def run(self, crate: TargetCrate) -> CheckResult:
        sources = self._rust_sources(crate)
        if not sources:
            return self._not_applicable("No source files to inspect")

        evidence = []
        checked = 0
        for source in sources:
            for struct in source.structs():
                if struct.kind != StructKind.NAMED or len(struct.fields) < 2:
                    continue
                checked += 1
                finding = self._check_struct(source, struct)
                if finding is not None:
                    evidence.append(finding)

        if checked == 0:
            return self._not_applicable("No structs with named fields")
        return self._conclude(evidence, details={"structs_checked": checked})

    def _check_struct(self, source: SourceFile, struct: StructDef) -> Optional[Evidence]:
        ranks = [self._rank(f) for f in struct.fields]
        for i in range(1, len(ranks)):
            if ranks[i] < ranks[i - 1]:
                misplaced = struct.fields[i]
                previous = struct.fields[i - 1]
                suggested = sorted(struct.fields, key=self._rank)
                return self._finding(
                    location=source.path,
                    line=misplaced.line,
                    description=(
                        f"Field '{misplaced.name}' ({misplaced.visibility.value}) of struct "
                        f"{struct.name} is declared after '{previous.name}' "
                        f"({previous.visibility.value})"
                    ),
                    snippet=source.line_text(misplaced.line),
                    suggestion="Reorder fields: " + ", ".join(f.name for f in suggested),
                )
        return None


# =============================================================================
# SIGNATURES
# =============================================================================


_CALLBACK_RE = re.compile(
    r"^(?:&\s*(?:'\w+\s+)?(?:mut\s+)?)?(?:impl\s+|dyn\s+|Box\s*<\s*dyn\s+)?(?:FnOnce|FnMut|Fn)\s*\("
)
_FN_POINTER_RE = re.compile(r"^(?:unsafe\s+)?(?:extern\s+\"[^\"]*\"\s+)?fn\s*\(")
_OPTION_RE = re.compile(r"^(?:(?:std|core)::option::)?Option\s*<")
_OUTPUT_RE = re.compile(r"^&\s*(?:'\w+\s+)?mut\b")
_REFERENCE_RE = re.compile(r"^&\s*(?:'\w+\s+)?(?:mut\s+)?")


def classify_param(
    param: Param,
    fn: Optional[FnDef] = None,
    option_suffixes: Sequence[str] = (),
) -> str:
    """
    Place a parameter in one of the ordering categories.

    receiver: `self` in any form
    callback: closures, `fn` pointers, generics bound by `Fn*`
    options:  `Option<T>` or a type named `*Options`, `*Config`, ...
    output:   `&mut T`, a buffer the function writes into
    input:    everything else
    """
    if param.is_receiver:
        return "receiver"
    type_text = param.type_text.strip()
    if _CALLBACK_RE.match(type_text) or _FN_POINTER_RE.match(type_text):
        return "callback"
    base = _REFERENCE_RE.sub("", type_text)
    if fn is not None and base in fn.callable_generics:
        return "callback"
    if _OPTION_RE.match(type_text):
        return "options"
    if _OUTPUT_RE.match(type_text):
        return "output"
    type_name = re.split(r"[<\s]", base, maxsplit=1)[0].split("::")[-1]
    if any(type_name.endswith(suffix) for suffix in option_suffixes):
        return "options"
    return "input"


class ParamOrderCheck(Check):
    """
    Parameter ordering in function signatures.

    Methods of trait implementations are skipped: their signature is
    dictated by the trait.
    """

    kind = RuleKind.PARAM_ORDER

    def run(self, crate: TargetCrate) -> CheckResult:
        sources = self._rust_sources(crate)
        if not sources:
            return self._not_applicable("No source files to inspect")

        order = self.rule.option("order", [])
        suffixes = self.rule.option("option_suffixes", [])
        evidence = []
        checked = 0

        for source in sources:
            for item, parents in source.iter_items():
                if not isinstance(item, FnDef) or _in_trait_impl(parents):
                    continue
                if len(item.params) < 2:
                    continue
                checked += 1
                ranked = [
                    (param, category, order.index(category))
                    for param in item.params
                    for category in [classify_param(param, item, suffixes)]
                    if category in order
                ]
                finding = self._check_fn(source, item, ranked)
                if finding is not None:
                    evidence.append(finding)

        if checked == 0:
            return self._not_applicable("No functions with two or more parameters")
        return self._conclude(evidence, details={"functions_checked": checked})

    def _check_fn(
        self,
        source: SourceFile,
        fn: FnDef,
        ranked: List[Tuple[Param, str, int]],
    ) -> Optional[Evidence]:
        for i in range(1, len(ranked)):
            param, category, rank = ranked[i]
            previous, previous_category, previous_rank = ranked[i - 1]
            if rank < previous_rank:
                suggested = sorted(ranked, key=lambda entry: entry[2])
                return self._finding(
                    location=source.path,
                    line=param.line,
                    description=(
                        f"Parameter '{param.name}' ({category}) of fn {fn.name} "
                        f"comes after '{previous.name}' ({previous_category})"
                    ),
                    snippet=source.line_text(fn.line),
                    suggestion="Reorder parameters: " + ", ".join(p.name for p, _, _ in suggested),
                )
        return None


# =============================================================================
# NAMING
# =============================================================================


class NamingPatternCheck(Check):
    """
    Naming conventions.

    Targets:
        trait, struct, enum, type (struct or enum), mod,
        fn (every function except trait-impl methods),
        method (functions inside inherent impls and trait declarations)
    """

    kind = RuleKind.NAMING_PATTERN

    _LABELS = {
        TraitDef: "Trait",
        StructDef: "Struct",
        EnumDef: "Enum",
        ModDef: "Module",
        FnDef: "Function",
    }

    def _targets(self, source: SourceFile) -> List[Tuple[str, int, str]]:
        target = self.rule.option("target")
        names = []
        for item, parents in source.iter_items():
            if target == "trait":
                selected = isinstance(item, TraitDef)
            elif target == "struct":
                selected = isinstance(item, StructDef)
            elif target == "enum":
                selected = isinstance(item, EnumDef)
            elif target == "type":
                selected = isinstance(item, (StructDef, EnumDef))
            elif target == "mod":
                selected = isinstance(item, ModDef)
            elif target == "fn":
                selected = isinstance(item, FnDef) and not _in_trait_impl(parents)
            elif target == "method":
                selected = (
                    isinstance(item, FnDef)
                    and bool(parents)
                    and (
                        isinstance(parents[-1], TraitDef)
                        or (isinstance(parents[-1], ImplDef) and not parents[-1].trait_name)
                    )
                )
            else:
                selected = False
            if selected:
                names.append((item.name, item.line, self._LABELS[type(item)]))
        return names

    def run(self, crate: TargetCrate) -> CheckResult:
        sources = self._rust_sources(crate)
        if not sources:
            return self._not_applicable("No source files to inspect")

        pattern_text = self.rule.option("pattern")
        pattern = re.compile(pattern_text) if pattern_text else None
        forbidden = [re.compile(p) for p in self.rule.option("forbidden", [])]
        allow = set(self.rule.option("allow", []))

        evidence = []
        checked = 0
        for source in sources:
            for name, line, label in self._targets(source):
                if name in allow:
                    continue
                checked += 1
                if pattern is not None and not pattern.search(name):
                    evidence.append(self._finding(
                        location=source.path,
                        line=line,
                        description=f"{label} '{name}' does not match {pattern.pattern}",
                        snippet=source.line_text(line),
                    ))
                for rx in forbidden:
                    if rx.search(name):
                        evidence.append(self._finding(
                            location=source.path,
                            line=line,
                            description=f"{label} '{name}' matches forbidden pattern {rx.pattern}",
                            snippet=source.line_text(line),
                        ))

        if checked == 0:
            return self._not_applicable(f"No {self.rule.option('target')} names to check")
        return self._conclude(evidence, details={"names_checked": checked})


# =============================================================================
# BOILERPLATE
# =============================================================================


class RequiredSnippetCheck(Check):
    """
    Boilerplate that must be present.

    Each file matching `files` must contain at least one of `any_of`.
    Whitespace is ignored and comments do not count. Paths listed in
    `requires_files` must exist as well.
    With `nested: false`, `*` in `files` matches within one directory.
    """

    kind = RuleKind.REQUIRED_SNIPPET

    def run(self, crate: TargetCrate) -> CheckResult:
        patterns = self.rule.option("files", [])
        any_of = self.rule.option("any_of", [])
        files = self._matching_files(crate, patterns)
        if not files:
            return self._not_applicable(f"No files match {', '.join(patterns)}")

        needles = [_squash_all(s) for s in any_of]
        evidence = []
        for path in files:
            if path.endswith(".rs"):
                haystack = _squash_all(crate.source_file(path).code)
            else:
                haystack = _squash_all(crate.read_file(path))
            if not any(needle in haystack for needle in needles):
                evidence.append(self._finding(
                    location=path,
                    line=1,
                    description=f"Missing required snippet: one of {', '.join(any_of)}",
                    suggestion=f"Add {any_of[0]}",
                ))

        for required in self.rule.option("requires_files", []):
            if not crate.has_file(required):
                evidence.append(self._finding(
                    location=required,
                    description=f"'{required}' is referenced by this convention but missing",
                ))

        return self._conclude(evidence, details={"files_checked": len(files)})


class ForbiddenSnippetCheck(Check):
    """
    Text that must not appear in matching files.

    Comments and string literals are ignored in Rust files.
    """

    kind = RuleKind.FORBIDDEN_SNIPPET

    def run(self, crate: TargetCrate) -> CheckResult:
        patterns = self.rule.option("files", [])
        needles = [(p, _squash_all(p)) for p in self.rule.option("patterns", [])]
        files = self._matching_files(crate, patterns)
        if not files:
            return self._not_applicable(f"No files match {', '.join(patterns)}")

        evidence = []
        for path in files:
            if path.endswith(".rs"):
                source = crate.source_file(path)
                searchable, original = source.skeleton or source.code, source.text
            else:
                searchable = original = crate.read_file(path)
            original_lines = original.splitlines()
            for line_no, line in enumerate(searchable.splitlines(), start=1):
                squashed = _squash_all(line)
                for text, needle in needles:
                    if needle in squashed:
                        evidence.append(self._finding(
                            location=path,
                            line=line_no,
                            description=f"Forbidden snippet '{text}'",
                            snippet=original_lines[line_no - 1].strip(),
                        ))

        return self._conclude(evidence, details={"files_checked": len(files)})


# =============================================================================
# TESTING
# =============================================================================


class TestLayoutCheck(Check):
    """
    Unit test placement.

    In library and binary sources, `#[test]` functions belong in an
    inline `#[cfg(test)] mod tests` that closes the file (or the module
    that contains it). Integration test files under `tests/` are only
    compiled for tests, so `#[cfg(test)]` modules there are redundant.
    """

    kind = RuleKind.TEST_LAYOUT
    __test__ = False  # not a pytest class

    def run(self, crate: TargetCrate) -> CheckResult:
        src_files = [
            p for p in crate.files_matching(self.rule.option("files", SOURCE_FILES))
            if p.endswith(".rs")
        ]
        integration_files = [
            p for p in crate.files_matching(self.rule.option("integration_files", []))
            if p.endswith(".rs")
        ]
        if not src_files and not integration_files:
            return self._not_applicable("No source or test files")

        evidence = []
        for path in src_files:
            evidence.extend(self._check_unit_tests(crate.source_file(path)))
        for path in integration_files:
            source = crate.source_file(path)
            for module in source.modules():
                if module.is_cfg_test:
                    evidence.append(self._finding(
                        location=path,
                        line=module.line,
                        description=(
                            f"#[cfg(test)] on mod {module.name} is redundant in an "
                            f"integration test file"
                        ),
                        snippet=source.line_text(module.line),
                        severity=Severity.WARNING,
                    ))

        return self._conclude(evidence, details={
            "source_files": len(src_files),
            "integration_files": len(integration_files),
        })

    def _check_unit_tests(self, source: SourceFile) -> List[Evidence]:
        module_name = self.rule.option("module_name", "tests")
        require_last = self.rule.option("require_last", True)
        allow_out_of_line = self.rule.option("allow_out_of_line", False)
        evidence = []

        for item, parents in source.iter_items():
            if isinstance(item, FnDef) and item.is_test:
                if not any(isinstance(p, ModDef) and p.is_cfg_test for p in parents):
                    evidence.append(self._finding(
                        location=source.path,
                        line=item.line,
                        description=f"Test function '{item.name}' is outside a #[cfg(test)] module",
                        snippet=source.line_text(item.line),
                        suggestion=f"Move it into #[cfg(test)] mod {module_name}",
                    ))
            elif isinstance(item, ModDef) and item.is_cfg_test:
                if not item.inline and not allow_out_of_line:
                    evidence.append(self._finding(
                        location=source.path,
                        line=item.line,
                        description=(
                            f"Test module '{item.name}' is declared out of line; "
                            f"unit tests stay in the file they test"
                        ),
                        snippet=source.line_text(item.line),
                    ))
                if item.name != module_name:
                    evidence.append(self._finding(
                        location=source.path,
                        line=item.line,
                        description=f"Test module '{item.name}' should be named '{module_name}'",
                        snippet=source.line_text(item.line),
                        suggestion=f"Rename to mod {module_name}",
                    ))
                siblings = parents[-1].items if parents else source.items
                if require_last and siblings[-1] is not item:
                    evidence.append(self._finding(
                        location=source.path,
                        line=item.line,
                        description=f"Test module '{item.name}' is followed by other items",
                        snippet=source.line_text(item.line),
                        suggestion="Move the test module to the end of the file",
                    ))

        return evidence


# =============================================================================
# DOCUMENTATION
# =============================================================================


class ChangelogFormatCheck(Check):
    """
    CHANGELOG.md structure (Keep a Changelog).

    - `# <title>` heading
    - `## [Unreleased]` as the first section
    - releases headed `## [X.Y.Z] - YYYY-MM-DD`, newest first, no repeats
    - change-type subsections drawn from `sections`
    """

    kind = RuleKind.CHANGELOG_FORMAT

    def run(self, crate: TargetCrate) -> CheckResult:
        path = self.rule.option("path", "CHANGELOG.md")
        changelog = crate.changelog(path)
        if changelog is None:
            return self._conclude([self._finding(
                location=path,
                description=f"{path} is missing",
            )])

        evidence = []
        title = self.rule.option("title", "Changelog")
        if title and changelog.title != title:
            evidence.append(self._finding(
                location=path,
                line=changelog.title_line or 1,
                description=f"Changelog title is {changelog.title!r}; expected '# {title}'",
            ))

        releases = changelog.releases
        if self.rule.option("require_unreleased", True):
            if not releases or not releases[0].is_unreleased:
                evidence.append(self._finding(
                    location=path,
                    line=releases[0].line if releases else changelog.title_line or 1,
                    description="The first section must be '## [Unreleased]'",
                ))
        for extra in [r for r in releases if r.is_unreleased][1:]:
            evidence.append(self._finding(
                location=path,
                line=extra.line,
                description="Duplicate '## [Unreleased]' section",
            ))

        evidence.extend(self._check_releases(changelog))
        return self._conclude(evidence, details={"releases": len(changelog.versioned)})

    def _check_releases(self, changelog: Changelog) -> List[Evidence]:
        allowed = self.rule.option("sections", [])
        evidence = []
        seen = set()
        previous = None

        for release in changelog.releases:
            if not release.well_formed:
                evidence.append(self._finding(
                    location=changelog.path,
                    line=release.line,
                    description=(
                        f"Malformed release heading '## {release.heading}'; "
                        f"expected '## [X.Y.Z] - YYYY-MM-DD'"
                    ),
                ))
            elif release.version:
                if release.version in seen:
                    evidence.append(self._finding(
                        location=changelog.path,
                        line=release.line,
                        description=f"Release {release.version} is listed more than once",
                    ))
                elif previous is not None:
                    if version_key(release.version) >= version_key(previous.version):
                        evidence.append(self._finding(
                            location=changelog.path,
                            line=release.line,
                            description=(
                                f"Release {release.version} is listed below "
                                f"{previous.version} but is not older"
                            ),
                        ))
                    if release.released > previous.released:
                        evidence.append(self._finding(
                            location=changelog.path,
                            line=release.line,
                            description=(
                                f"Release {release.version} is dated {release.date}, after "
                                f"the newer release {previous.version} ({previous.date})"
                            ),
                        ))
                seen.add(release.version)
                previous = release

            names = set()
            for section in release.sections:
                if allowed and section.name not in allowed:
                    evidence.append(self._finding(
                        location=changelog.path,
                        line=section.line,
                        description=(
                            f"Unknown change type '### {section.name}'; "
                            f"use one of {', '.join(allowed)}"
                        ),
                    ))
                elif section.name in names:
                    evidence.append(self._finding(
                        location=changelog.path,
                        line=section.line,
                        description=f"'### {section.name}' appears twice under '## {release.heading}'",
                        severity=Severity.WARNING,
                    ))
                names.add(section.name)

        return evidence


# =============================================================================
# RELEASE
# =============================================================================


class ReleaseChecklistCheck(Check):
    """
    Release readiness.

    The `[package]` table carries the metadata a release needs, and its
    version is the newest release recorded in the changelog.
    """

    kind = RuleKind.RELEASE_CHECKLIST

    def run(self, crate: TargetCrate) -> CheckResult:
        try:
            manifest = crate.manifest()
        except ManifestError as e:
            return self._conclude([self._finding(
                location=e.path,
                description=f"Cargo.toml cannot be parsed: {e.reason}",
            )])
        if manifest is None:
            return self._not_applicable("No Cargo.toml")
        if manifest.is_virtual:
            return self._not_applicable("Virtual workspace manifest has no package to release")

        evidence = []
        for key in manifest.missing_keys(self.rule.option("required_package_keys", [])):
            evidence.append(self._finding(
                location=manifest.path,
                description=f"[package] is missing '{key}'",
            ))

        version = manifest.version
        if manifest.version_inherited:
            evidence.append(self._finding(
                location=manifest.path,
                description="Version is inherited from the workspace and cannot be matched to the changelog",
                severity=Severity.WARNING,
            ))
        elif version is not None:
            evidence.extend(self._check_version(crate, manifest, version))

        return self._conclude(evidence, details={"version": version})

    def _check_version(
        self,
        crate: TargetCrate,
        manifest: CargoManifest,
        version: str,
    ) -> List[Evidence]:
        changelog_path = self.rule.option("changelog", "CHANGELOG.md")
        if not is_semver(version):
            return [self._finding(
                location=manifest.path,
                description=f"Package version '{version}' is not a semantic version",
            )]

        changelog = crate.changelog(changelog_path)
        if changelog is None:
            return [self._finding(
                location=changelog_path,
                description=f"No changelog records release {version}",
            )]

        evidence = []
        if changelog.find(version) is None:
            evidence.append(self._finding(
                location=changelog_path,
                description=f"Version {version} from Cargo.toml has no changelog entry",
                suggestion=f"Add '## [{version}] - YYYY-MM-DD' with the release notes",
            ))
        latest = changelog.latest
        if latest is not None and version_key(latest.version) > version_key(version):
            evidence.append(self._finding(
                location=changelog_path,
                line=latest.line,
                description=(
                    f"Changelog lists {latest.version}, newer than the Cargo.toml "
                    f"version {version}"
                ),
            ))
        return evidence


# =============================================================================
# Check Registry
# =============================================================================


CHECK_TYPES: Dict[RuleKind, Type[Check]] = {
    cls.kind: cls
    for cls in (
        FileLayoutCheck,
        FieldOrderCheck,
        ParamOrderCheck,
        NamingPatternCheck,
        RequiredSnippetCheck,
        ForbiddenSnippetCheck,
        TestLayoutCheck,
        ChangelogFormatCheck,
        ReleaseChecklistCheck,
    )
}


def check_for(rule: RuleDefinition) -> Check:
    """Instantiate the check that evaluates `rule`."""
    return CHECK_TYPES[rule.kind](rule)


def get_all_checks(registry: Optional[RuleRegistry] = None) -> List[Check]:
    """Checks for every enabled rule, in run order."""
    registry = registry or RuleRegistry()
    return [check_for(rule) for rule in registry.enabled_rules()]


def get_blocker_checks(registry: Optional[RuleRegistry] = None) -> List[Check]:
    """Checks for the enabled crate layout rules."""
    registry = registry or RuleRegistry()
    return [check_for(rule) for rule in registry.enabled_rules(category=RuleCategory.LAYOUT)]
