"""
Style Lint Runner.

Executes the enabled rule checks against a crate on disk and produces
a complete lint report.
"""

import fnmatch
import logging
import os
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from labstyle.config import LintConfig, is_excluded
from labstyle.rules.model import CATEGORY_NAMES, RuleCategory
from labstyle.rules.registry import RuleRegistry
from labstyle.source.manifest import CargoManifest, ManifestError, load_manifest
from labstyle.source.markdown import Changelog, parse_changelog
from labstyle.source.model import SourceFile
from labstyle.source.rust import parse_source

from .types import (
    CategorySummary,
    CheckResult,
    CheckStatus,
    LintReport,
)
from .checks import (
    Check,
    check_for,
    get_all_checks,
    TargetCrate,
)

logger = logging.getLogger(__name__)

# Build output and vendored trees, never linted
SKIPPED_DIRS = ("target", "node_modules")


@dataclass
class FileSystemCrate:
    """
    Implementation of TargetCrate for file system access.

    Walks the crate once, then serves file lists, file contents and
    parsed sources from caches.
    """

    path: Path
    exclude: Sequence[str] = ()
    _files: Optional[List[str]] = None
    _text_cache: Dict[str, str] = field(default_factory=dict)
    _source_cache: Dict[str, SourceFile] = field(default_factory=dict)

    def __post_init__(self):
        if isinstance(self.path, str):
            self.path = Path(self.path)
        if not self.path.exists():
            raise ValueError(f"Crate path does not exist: {self.path}")
        if not self.path.is_dir():
            raise ValueError(f"Crate path is not a directory: {self.path}")

    def _excluded(self, rel_path: str) -> bool:
        return is_excluded(rel_path, self.exclude)

    def all_files(self) -> List[str]:
        """Return every file in the crate, as sorted crate-relative paths."""
        if self._files is not None:
            return self._files

        files = []
        for root, dirs, filenames in os.walk(self.path):
            rel_root = Path(root).relative_to(self.path)
            # Skip hidden directories and build output
            dirs[:] = sorted(
                d for d in dirs
                if not d.startswith('.')
                and d not in SKIPPED_DIRS
                and not self._excluded((rel_root / d).as_posix())
            )
            for filename in filenames:
                rel = (rel_root / filename).as_posix()
                if not self._excluded(rel):
                    files.append(rel)

        self._files = sorted(files)
        logger.debug("Found %d files under %s", len(self._files), self.path)
        return self._files

    def rust_files(self) -> List[str]:
        return [f for f in self.all_files() if f.endswith(".rs")]

    def files_matching(self, patterns: Sequence[str]) -> List[str]:
        """Files matching any glob; `*` also crosses directory separators."""
        return [
            f for f in self.all_files()
            if any(fnmatch.fnmatchcase(f, p) for p in patterns)
        ]

    def read_file(self, path: str) -> str:
        """Read the contents of a file, or "" if it cannot be read."""
        if path in self._text_cache:
            return self._text_cache[path]

        try:
            with open(self.path / path, 'r', encoding='utf-8', errors='replace') as f:
                content = f.read()
        except OSError as e:
            logger.warning("Cannot read %s: %s", path, e)
            return ""
        self._text_cache[path] = content
        return content

    def has_file(self, path: str) -> bool:
        """Check if a file or directory exists."""
        return (self.path / path).exists()

    def source_file(self, path: str) -> SourceFile:
        if path not in self._source_cache:
            self._source_cache[path] = parse_source(self.read_file(path), path)
        return self._source_cache[path]

    def changelog(self, path: str = "CHANGELOG.md") -> Optional[Changelog]:
        if not (self.path / path).is_file():
            return None
        return parse_changelog(self.read_file(path), path)

    def manifest(self) -> Optional[CargoManifest]:
        """
        Parse Cargo.toml.

        Raises:
            ManifestError: If the manifest is not valid TOML.
        """
        if not (self.path / "Cargo.toml").is_file():
            return None
        return load_manifest(self.read_file("Cargo.toml"), "Cargo.toml")


class LintRunner:
    """
    Runs style checks against a crate.

    Checks execute in category order, crate layout first. If a layout
    blocker fails, the crate cannot be meaningfully inspected and the
    run stops there.

    Usage:
        runner = LintRunner()
        report = runner.run("/path/to/crate")
        print(report.verdict_text)
    """

    def __init__(
        self,
        registry: Optional[RuleRegistry] = None,
        checks: Optional[List[Check]] = None,
        fail_fast: bool = True,
        max_failures: int = 0,
        exclude: Sequence[str] = (),
    ):
        """
        Initialize the lint runner.

        Args:
            registry: Rules to enforce. If None, uses the default rules.
            checks: Explicit list of checks; overrides the registry.
            fail_fast: If True, stop at the first blocker failure.
            max_failures: Failed rules tolerated in a clean crate.
            exclude: Glob patterns of crate paths to ignore.
        """
        self.registry = registry or RuleRegistry()
        self.checks = checks
        self.fail_fast = fail_fast
        self.max_failures = max_failures
        self.exclude = exclude

    def _select_checks(self, only: Optional[Sequence[str]]) -> List[Check]:
        if self.checks is not None:
            if only:
                return [c for c in self.checks if c.check_id in only]
            return list(self.checks)
        if only:
            return [check_for(rule) for rule in self.registry.enabled_rules(only=only)]
        return get_all_checks(self.registry)

    def run(
        self,
        crate_path: str,
        stop_at_category: Optional[RuleCategory] = None,
        only: Optional[Sequence[str]] = None,
    ) -> LintReport:
        """
        Lint a crate.

        Args:
            crate_path: Path to the crate root
            stop_at_category: Optional category to stop after
            only: Optional rule ids to restrict the run to

        Returns:
            LintReport with all results and verdict

        Raises:
            ValueError: If the crate path is not a directory.
            RuleNotFoundError: If `only` names an unknown rule.
        """
        crate = FileSystemCrate(Path(crate_path), exclude=self.exclude)
        checks = self._select_checks(only)

        report = LintReport(
            crate_path=str(crate_path),
            timestamp=datetime.now(timezone.utc).isoformat(),
            max_failures=self.max_failures,
        )
        self._read_identity(crate, report)

        checks_by_category: Dict[RuleCategory, List[Check]] = {}
        for check in checks:
            checks_by_category.setdefault(check.category, []).append(check)

        blocked = False
        for category in sorted(checks_by_category, key=lambda c: c.value):
            if stop_at_category is not None and category.value > stop_at_category.value:
                break

            category_results = []
            for check in checks_by_category[category]:
                result = self._run_check(check, crate)
                category_results.append(result)

                if result.is_blocker:
                    report.blockers.append(result.details["blocker"])
                    blocked = True
                    if self.fail_fast:
                        break

            report.results[category] = category_results

            if blocked and self.fail_fast:
                logger.info("Blocker triggered; skipping the remaining categories")
                break

        report.category_summaries = self._generate_summaries(report.results)

        report.failure_count = report.total_failures
        report.is_clean = self._determine_clean(report)

        from .report import generate_verdict
        report.verdict_text = generate_verdict(report)

        return report

    def _run_check(self, check: Check, crate: TargetCrate) -> CheckResult:
        try:
            return check.run(crate)
        except Exception as e:
            logger.warning("Check %s failed to run: %s", check.check_id, e, exc_info=True)
            return CheckResult(
                check_id=check.check_id,
                name=check.name,
                category=check.category,
                status=CheckStatus.SKIP,
                description=check.description,
                details={"error": str(e)},
                kind=check.rule.kind,
            )

    def _read_identity(self, crate: FileSystemCrate, report: LintReport) -> None:
        try:
            manifest = crate.manifest()
        except ManifestError as e:
            logger.debug("Crate identity unavailable: %s", e)
            return
        if manifest is not None:
            report.crate_name = manifest.name
            report.crate_version = manifest.version

    def _generate_summaries(
        self,
        results: Dict[RuleCategory, List[CheckResult]],
    ) -> List[CategorySummary]:
        summaries = []
        for category in sorted(results.keys(), key=lambda c: c.value):
            category_results = results[category]
            summaries.append(CategorySummary(
                category=category,
                category_name=CATEGORY_NAMES.get(category, category.name.title()),
                total_checks=len(category_results),
                passed=sum(1 for r in category_results if r.passed),
                failed=sum(1 for r in category_results if r.status == CheckStatus.FAIL),
                warnings=sum(1 for r in category_results if r.status == CheckStatus.WARN),
                skipped=sum(1 for r in category_results if r.status == CheckStatus.SKIP),
            ))
        return summaries

    def _determine_clean(self, report: LintReport) -> bool:
        if report.has_blockers:
            return False
        return report.total_failures <= self.max_failures


def run_lint(
    crate_path: str,
    config: Optional[LintConfig] = None,
    fail_fast: Optional[bool] = None,
    stop_at_category: Optional[RuleCategory] = None,
    only: Optional[Sequence[str]] = None,
) -> LintReport:
    """
    Convenience function to lint a crate.

    Args:
        crate_path: Path to the crate root
        config: Configuration; rules, excludes and thresholds come from here
        fail_fast: Overrides the configured fail-fast behavior
        stop_at_category: Optional category to stop after
        only: Optional rule ids to restrict the run to

    Returns:
        LintReport with all results and verdict
    """
    if config is None:
        runner = LintRunner(fail_fast=True if fail_fast is None else fail_fast)
    else:
        runner = LintRunner(
            registry=config.build_registry(),
            fail_fast=config.fail_fast if fail_fast is None else fail_fast,
            max_failures=config.max_failures,
            exclude=config.exclude,
        )
    return runner.run(crate_path, stop_at_category=stop_at_category, only=only)
