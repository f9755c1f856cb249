"""
Core types for the style linter.

This module defines the data structures used throughout the lint
engine for representing findings, check results, and the final report.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterator, List, Optional, Tuple

from labstyle.rules.model import RuleCategory, RuleKind


class CheckStatus(Enum):
    """Status of a single rule check."""
    PASS = "pass"
    FAIL = "fail"
    WARN = "warn"  # Only warning-level findings
    SKIP = "skip"  # Check could not be performed
    NOT_APPLICABLE = "n/a"  # Nothing in the crate the rule applies to


@dataclass(frozen=True)
class Evidence:
    """
    A single finding.

    Points to a location in the crate and describes what was found
    there. Ordering rules put the reordering they propose in
    `suggestion`; nothing is ever rewritten.
    """
    location: str  # Crate-relative file path
    line_number: Optional[int] = None
    description: str = ""
    code_snippet: Optional[str] = None
    severity: str = "error"  # error, warning, info
    suggestion: Optional[str] = None


@dataclass
class CheckResult:
    """
    Result of evaluating one rule against a crate.

    Includes the rule identifier, its status, and the findings
    supporting the determination.
    """
    check_id: str
    name: str
    category: RuleCategory
    status: CheckStatus
    description: str
    evidence: List[Evidence] = field(default_factory=list)
    recommendations: List[str] = field(default_factory=list)
    details: Dict[str, Any] = field(default_factory=dict)
    kind: Optional[RuleKind] = None

    @property
    def passed(self) -> bool:
        """Check passed or is not applicable."""
        return self.status in (CheckStatus.PASS, CheckStatus.NOT_APPLICABLE)

    @property
    def failed(self) -> bool:
        return self.status == CheckStatus.FAIL

    @property
    def is_blocker(self) -> bool:
        """A failed layout rule that marks the crate unlintable."""
        return self.failed and bool(self.details.get("blocker"))


@dataclass
class CategorySummary:
    """Summary of all checks in one category."""
    category: RuleCategory
    category_name: str
    total_checks: int
    passed: int
    failed: int
    warnings: int
    skipped: int

    @property
    def pass_rate(self) -> float:
        """Fraction of checks that passed (excluding skipped)."""
        applicable = self.total_checks - self.skipped
        if applicable == 0:
            return 1.0
        return self.passed / applicable


@dataclass
class LintReport:
    """
    Complete lint report for a crate.

    Contains results for every rule run, grouped by category, the
    summaries, and the final verdict.
    """
    crate_path: str
    timestamp: str
    crate_name: Optional[str] = None
    crate_version: Optional[str] = None

    # All check results organized by category
    results: Dict[RuleCategory, List[CheckResult]] = field(default_factory=dict)

    category_summaries: List[CategorySummary] = field(default_factory=list)

    # Blocker ids of failed layout rules
    blockers: List[str] = field(default_factory=list)

    # Final verdict
    is_clean: bool = False
    max_failures: int = 0
    failure_count: Optional[int] = None

    verdict_text: str = ""

    @property
    def has_blockers(self) -> bool:
        return len(self.blockers) > 0

    @property
    def total_failures(self) -> int:
        """Total number of failed checks across all categories."""
        return sum(
            sum(1 for r in results if r.failed)
            for results in self.results.values()
        )

    @property
    def total_checks(self) -> int:
        return sum(len(results) for results in self.results.values())

    @property
    def total_findings(self) -> int:
        return sum(len(r.evidence) for r in self.all_results())

    def all_results(self) -> List[CheckResult]:
        ordered = []
        for category in sorted(self.results, key=lambda c: c.value):
            ordered.extend(self.results[category])
        return ordered

    def findings(self) -> Iterator[Tuple[CheckResult, Evidence]]:
        """Every finding paired with the result it belongs to."""
        for result in self.all_results():
            for ev in result.evidence:
                yield result, ev

    def get_failures(self) -> List[CheckResult]:
        return [r for r in self.all_results() if r.failed]

    def get_warnings(self) -> List[CheckResult]:
        return [r for r in self.all_results() if r.status == CheckStatus.WARN]


@dataclass
class StyleVerdict:
    """
    The final verdict in structured form.

    Used to generate the one-paragraph verdict. An aspect is None when
    no check of its kinds ran to a result.
    """
    # Required fields (no defaults) - all must come first
    is_clean: bool
    keeps_field_order: Optional[bool]
    keeps_param_order: Optional[bool]
    follows_naming: Optional[bool]
    housekeeping_complete: Optional[bool]

    # Blockers triggered
    blockers: List[str] = field(default_factory=list)

    # Additional notes
    additional_notes: List[str] = field(default_factory=list)
