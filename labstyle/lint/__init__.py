"""
Style Lint

Evaluates a crate against every enabled rule, category by category,
and turns the results into a report with a one-paragraph verdict.

Categories run in order. Crate layout comes first: if the crate has no
manifest or no root module, nothing else can be inspected meaningfully
and the run stops there.
"""

from .types import (
    CategorySummary,
    CheckResult,
    CheckStatus,
    Evidence,
    LintReport,
    StyleVerdict,
)
from .checks import (
    ChangelogFormatCheck,
    Check,
    CHECK_TYPES,
    FieldOrderCheck,
    FileLayoutCheck,
    ForbiddenSnippetCheck,
    NamingPatternCheck,
    ParamOrderCheck,
    ReleaseChecklistCheck,
    RequiredSnippetCheck,
    TargetCrate,
    TestLayoutCheck,
    check_for,
    classify_param,
    get_all_checks,
    get_blocker_checks,
)
from .runner import FileSystemCrate, LintRunner, run_lint
from .report import generate_report, generate_verdict, print_summary

__all__ = [
    # Types
    "CategorySummary",
    "CheckResult",
    "CheckStatus",
    "Evidence",
    "LintReport",
    "StyleVerdict",
    # Checks
    "CHECK_TYPES",
    "ChangelogFormatCheck",
    "Check",
    "FieldOrderCheck",
    "FileLayoutCheck",
    "ForbiddenSnippetCheck",
    "NamingPatternCheck",
    "ParamOrderCheck",
    "ReleaseChecklistCheck",
    "RequiredSnippetCheck",
    "TargetCrate",
    "TestLayoutCheck",
    "check_for",
    "classify_param",
    "get_all_checks",
    "get_blocker_checks",
    # Runner
    "FileSystemCrate",
    "LintRunner",
    "run_lint",
    # Report
    "generate_report",
    "generate_verdict",
    "print_summary",
]
