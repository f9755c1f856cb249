"""
Lint Report Generation.

This module generates human-readable reports and verdicts from lint
results, including the one-paragraph verdict template, and GitHub
Actions annotations for CI.
"""

import json
from enum import Enum
from typing import List, Optional

from labstyle.rules.model import RuleKind

from .types import (
    CheckResult,
    CheckStatus,
    Evidence,
    LintReport,
    StyleVerdict,
)

# Kinds whose failure leaves the crate's housekeeping incomplete
_HOUSEKEEPING_KINDS = (
    RuleKind.FILE_LAYOUT,
    RuleKind.REQUIRED_SNIPPET,
    RuleKind.FORBIDDEN_SNIPPET,
    RuleKind.TEST_LAYOUT,
    RuleKind.CHANGELOG_FORMAT,
    RuleKind.RELEASE_CHECKLIST,
)


def generate_verdict(report: LintReport) -> str:
    """
    Generate the one-paragraph verdict for a lint report.

    This follows the template:
        This crate ⟨does / does not⟩ follow the laboratory style guide.
        Its structures ⟨keep / break⟩ the field ordering convention, its
        signatures ⟨keep / break⟩ the parameter ordering convention, and
        its names ⟨follow / break⟩ the naming conventions.
        Its boilerplate, tests and documentation are ⟨in place / incomplete⟩.
        Therefore, the crate is ⟨style-clean / not style-clean⟩.

    An aspect none of whose checks ran (a blocker stopped the run, or the
    check could not be performed) reads "were not checked" instead.
    """
    verdict = _analyze_for_verdict(report)

    follows = "does" if verdict.is_clean else "does not"
    fields = _aspect(verdict.keeps_field_order, "keep", "break", "were not checked against")
    params = _aspect(verdict.keeps_param_order, "keep", "break", "were not checked against")
    naming = _aspect(verdict.follows_naming, "follow", "break", "were not checked against")
    housekeeping = _aspect(
        verdict.housekeeping_complete, "are in place", "are incomplete", "were not checked"
    )
    final_status = "style-clean" if verdict.is_clean else "not style-clean"

    paragraph = (
        f"This crate {follows} follow the laboratory style guide. "
        f"Its structures {fields} the field ordering convention, "
        f"its signatures {params} the parameter ordering convention, "
        f"and its names {naming} the naming conventions. "
        f"Its boilerplate, tests and documentation {housekeeping}. "
        f"Therefore, the crate is {final_status}."
    )

    if verdict.blockers:
        paragraph += f"\n\nBlockers triggered: {', '.join(verdict.blockers)}"

    if verdict.additional_notes:
        paragraph += "\n\nNotes:\n" + "\n".join(f"  - {note}" for note in verdict.additional_notes)

    return paragraph


def _aspect(held: Optional[bool], kept: str, broken: str, unchecked: str) -> str:
    if held is None:
        return unchecked
    return kept if held else broken


def _analyze_for_verdict(report: LintReport) -> StyleVerdict:
    """Analyze the report to build a structured verdict."""
    verdict = StyleVerdict(
        is_clean=report.is_clean,
        keeps_field_order=None,
        keeps_param_order=None,
        follows_naming=None,
        housekeeping_complete=None,
        blockers=list(report.blockers),
    )

    for result in report.all_results():
        if result.status == CheckStatus.SKIP:
            if "error" in result.details:
                verdict.additional_notes.append(
                    f"{result.check_id} could not be run: {result.details['error']}"
                )
            continue
        _update_verdict_from_result(verdict, result)

    if report.is_clean and report.total_failures:
        verdict.additional_notes.append(
            f"{report.total_failures} failed rule(s) tolerated "
            f"(max failures: {report.max_failures})"
        )

    return verdict


def _update_verdict_from_result(verdict: StyleVerdict, result: CheckResult) -> None:
    # A not-applicable check ran and found nothing to hold the crate to
    held = not result.failed
    if result.kind == RuleKind.FIELD_ORDER:
        verdict.keeps_field_order = verdict.keeps_field_order is not False and held
    elif result.kind == RuleKind.PARAM_ORDER:
        verdict.keeps_param_order = verdict.keeps_param_order is not False and held
    elif result.kind == RuleKind.NAMING_PATTERN:
        verdict.follows_naming = verdict.follows_naming is not False and held
    elif result.kind in _HOUSEKEEPING_KINDS:
        verdict.housekeeping_complete = verdict.housekeeping_complete is not False and held


def generate_report(report: LintReport, format: str = "text") -> str:
    """
    Generate a full lint report in the specified format.

    Args:
        report: The lint report to format
        format: Output format ("text", "markdown", "json", "github")

    Returns:
        Formatted report string
    """
    if format == "text":
        return _generate_text_report(report)
    elif format == "markdown":
        return _generate_markdown_report(report)
    elif format == "json":
        return _generate_json_report(report)
    elif format == "github":
        return _generate_github_report(report)
    else:
        raise ValueError(f"Unknown format: {format}")


def _location(ev: Evidence) -> str:
    if ev.line_number:
        return f"{ev.location}:{ev.line_number}"
    return ev.location


def _crate_label(report: LintReport) -> str:
    if report.crate_name and report.crate_version:
        return f"{report.crate_name} {report.crate_version}"
    return report.crate_name or "-"


def _generate_markdown_report(report: LintReport) -> str:
    """Generate a Markdown-formatted report."""
    lines = []

    # Header
    lines.append("# Style Lint Report")
    lines.append("")
    lines.append(f"**Crate:** `{report.crate_path}`")
    if report.crate_name:
        lines.append(f"**Package:** {_crate_label(report)}")
    lines.append(f"**Timestamp:** {report.timestamp}")
    lines.append("")

    # Verdict
    lines.append("## Verdict")
    lines.append("")
    if report.is_clean:
        lines.append("✅ **STYLE-CLEAN**")
    else:
        lines.append("❌ **NOT STYLE-CLEAN**")
    lines.append("")
    lines.append(report.verdict_text)
    lines.append("")

    # Summary
    lines.append("## Summary")
    lines.append("")
    lines.append(f"- **Total Checks:** {report.total_checks}")
    lines.append(f"- **Failures:** {report.total_failures} (tolerated: {report.max_failures})")
    lines.append(f"- **Findings:** {report.total_findings}")
    lines.append(f"- **Blockers Triggered:** {len(report.blockers)}")
    lines.append("")

    # Category Summaries
    lines.append("## Category Results")
    lines.append("")

    for summary in report.category_summaries:
        status_icon = "✅" if summary.failed == 0 else "❌"
        lines.append(f"### {summary.category.value}. {summary.category_name} {status_icon}")
        lines.append("")
        lines.append(f"- Passed: {summary.passed}/{summary.total_checks}")
        lines.append(f"- Failed: {summary.failed}")
        lines.append(f"- Warnings: {summary.warnings}")
        if summary.skipped > 0:
            lines.append(f"- Skipped: {summary.skipped}")
        lines.append("")

        for result in report.results.get(summary.category, []):
            _append_result_markdown(lines, result)
        lines.append("")

    # Failures Detail
    failures = report.get_failures()
    if failures:
        lines.append("## Failure Details")
        lines.append("")
        for failure in failures:
            lines.append(f"### {failure.check_id}: {failure.name}")
            lines.append("")
            lines.append(f"**Description:** {failure.description}")
            lines.append("")
            if failure.evidence:
                lines.append("**Findings:**")
                for ev in failure.evidence:
                    lines.append(f"- `{_location(ev)}` ({ev.severity}): {ev.description}")
                    if ev.code_snippet:
                        lines.append("  ```rust")
                        lines.append(f"  {ev.code_snippet}")
                        lines.append("  ```")
                    if ev.suggestion:
                        lines.append(f"  *Suggestion:* {ev.suggestion}")
                lines.append("")
            if failure.recommendations:
                lines.append("**Recommendations:**")
                for rec in failure.recommendations:
                    lines.append(f"- {rec}")
                lines.append("")

    # Warnings
    warnings = report.get_warnings()
    if warnings:
        lines.append("## Warnings")
        lines.append("")
        for warning in warnings:
            lines.append(f"### {warning.check_id}: {warning.name}")
            lines.append("")
            for ev in warning.evidence:
                lines.append(f"- `{_location(ev)}`: {ev.description}")
                if ev.suggestion:
                    lines.append(f"  *Suggestion:* {ev.suggestion}")
            if warning.recommendations:
                lines.append("")
                lines.append("**Recommendations:**")
                for rec in warning.recommendations:
                    lines.append(f"- {rec}")
            lines.append("")

    return "\n".join(lines)


def _append_result_markdown(lines: List[str], result: CheckResult) -> None:
    """Append a single result to the markdown output."""
    if result.status == CheckStatus.PASS:
        icon = "✅"
    elif result.status == CheckStatus.FAIL:
        icon = "❌"
    elif result.status == CheckStatus.WARN:
        icon = "⚠️"
    elif result.status == CheckStatus.SKIP:
        icon = "⏭️"
    else:
        icon = "➖"

    line = f"- {icon} **{result.check_id}**: {result.name}"
    if result.evidence:
        line += f" ({len(result.evidence)} finding{'s' if len(result.evidence) != 1 else ''})"
    lines.append(line)


def _generate_text_report(report: LintReport) -> str:
    """Generate a plain-text report."""
    lines = []

    lines.append("=" * 60)
    lines.append("STYLE LINT REPORT")
    lines.append("=" * 60)
    lines.append("")
    lines.append(f"Crate:      {report.crate_path}")
    if report.crate_name:
        lines.append(f"Package:    {_crate_label(report)}")
    lines.append(f"Timestamp:  {report.timestamp}")
    lines.append("")

    # Verdict
    lines.append("-" * 60)
    lines.append("VERDICT")
    lines.append("-" * 60)
    if report.is_clean:
        lines.append("[PASS] STYLE-CLEAN")
    else:
        lines.append("[FAIL] NOT STYLE-CLEAN")
    lines.append("")
    lines.append(report.verdict_text)
    lines.append("")

    # Summary
    lines.append("-" * 60)
    lines.append("SUMMARY")
    lines.append("-" * 60)
    lines.append(f"Total Checks:   {report.total_checks}")
    lines.append(f"Failures:       {report.total_failures}")
    lines.append(f"Findings:       {report.total_findings}")
    lines.append(f"Blockers:       {len(report.blockers)}")
    lines.append("")

    for summary in report.category_summaries:
        status = "PASS" if summary.failed == 0 else "FAIL"
        lines.append(f"[{status}] {summary.category.value}. {summary.category_name}")
        lines.append(f"       Passed: {summary.passed}/{summary.total_checks}, "
                     f"Failed: {summary.failed}, Warnings: {summary.warnings}")
    lines.append("")

    # Findings
    findings = list(report.findings())
    if findings:
        lines.append("-" * 60)
        lines.append("FINDINGS")
        lines.append("-" * 60)
        for result, ev in findings:
            lines.append(f"{_location(ev)}: {ev.severity}[{result.check_id}] {ev.description}")
            if ev.suggestion:
                lines.append(f"    suggestion: {ev.suggestion}")
        lines.append("")

    return "\n".join(lines)


def _serialize(obj):
    if isinstance(obj, Enum):
        return obj.value
    elif hasattr(obj, '__dict__'):
        return {k: _serialize(v) for k, v in obj.__dict__.items()}
    elif isinstance(obj, dict):
        return {str(k): _serialize(v) for k, v in obj.items()}
    elif isinstance(obj, (list, tuple)):
        return [_serialize(v) for v in obj]
    return obj


def _generate_json_report(report: LintReport) -> str:
    """Generate a JSON report."""
    data = {
        "crate_path": report.crate_path,
        "timestamp": report.timestamp,
        "crate_name": report.crate_name,
        "crate_version": report.crate_version,
        "is_clean": report.is_clean,
        "max_failures": report.max_failures,
        "total_checks": report.total_checks,
        "total_failures": report.total_failures,
        "total_findings": report.total_findings,
        "blockers": list(report.blockers),
        "verdict": report.verdict_text,
        "category_summaries": [
            {**_serialize(s), "category": s.category.name.lower()}
            for s in report.category_summaries
        ],
        "results": {
            category.name.lower(): [
                {**_serialize(r), "category": category.name.lower()}
                for r in results
            ]
            for category, results in sorted(report.results.items(), key=lambda kv: kv[0].value)
        },
    }

    return json.dumps(data, indent=2)


def _escape_data(text: str) -> str:
    return text.replace("%", "%25").replace("\r", "%0D").replace("\n", "%0A")


def _escape_property(text: str) -> str:
    return _escape_data(text).replace(":", "%3A").replace(",", "%2C")


_GITHUB_COMMANDS = {"error": "error", "warning": "warning", "info": "notice"}


def _generate_github_report(report: LintReport) -> str:
    """One GitHub Actions workflow command per finding."""
    lines = []
    for result, ev in report.findings():
        command = _GITHUB_COMMANDS.get(ev.severity, "warning")
        props = [f"file={_escape_property(ev.location)}"]
        if ev.line_number:
            props.append(f"line={ev.line_number}")
        props.append(f"title={_escape_property(f'{result.check_id} {result.name}')}")
        message = ev.description
        if ev.suggestion:
            message += f"\n{ev.suggestion}"
        lines.append(f"::{command} {','.join(props)}::{_escape_data(message)}")

    status = "style-clean" if report.is_clean else "not style-clean"
    lines.append(
        f"::notice title=labstyle::{report.total_checks} checks, "
        f"{report.total_failures} failed, {report.total_findings} findings: {status}"
    )
    return "\n".join(lines)


def print_summary(report: LintReport) -> None:
    """Print a brief summary to stdout."""
    print()
    print("=" * 50)
    if report.is_clean:
        print("✅ STYLE-CLEAN")
    else:
        print("❌ NOT STYLE-CLEAN")
    print("=" * 50)
    print()
    print(f"Total: {report.total_checks} checks")
    print(f"Passed: {sum(s.passed for s in report.category_summaries)}")
    print(f"Failed: {report.total_failures}")
    print(f"Warnings: {sum(s.warnings for s in report.category_summaries)}")
    print(f"Findings: {report.total_findings}")
    if report.blockers:
        print(f"Blockers: {', '.join(report.blockers)}")
    print()
    print("Verdict:")
    print(report.verdict_text)
    print()
