"""
Style Lint CLI.

Command-line interface for checking Rust crates against the laboratory
style guide.

Usage:
    labstyle /path/to/crate
    labstyle /path/to/crate --format markdown
    labstyle /path/to/crate --output report.md
    python -m labstyle --list-rules
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional

from labstyle import __version__
from labstyle.config import LintConfig, OUTPUT_FORMATS
from labstyle.rules.model import CATEGORY_NAMES, RuleCategory
from labstyle.rules.registry import RuleNotFoundError, RuleRegistry
from labstyle.rules.serialize import rules_to_json

from .runner import LintRunner
from .report import generate_report, print_summary


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="labstyle",
        description="Laboratory style guide linter for Rust crates",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    %(prog)s /path/to/crate
    %(prog)s . --format markdown --output report.md
    %(prog)s /path/to/crate --quiet
    %(prog)s /path/to/crate --category 3
    %(prog)s . --rule S1.1 --rule P2.1
    %(prog)s . --format github

Exit codes:
    0 - Crate is style-clean
    1 - Crate has style violations
    2 - Error running the linter
        """,
    )

    parser.add_argument(
        "crate",
        type=str,
        nargs="?",
        default=None,
        help="Path to the crate to lint (default: current directory)",
    )

    parser.add_argument(
        "--format", "-f",
        type=str,
        choices=list(OUTPUT_FORMATS),
        default=None,
        help="Output format (default: text, or output_format from the config)",
    )

    parser.add_argument(
        "--output", "-o",
        type=str,
        default=None,
        help="Output file (default: stdout)",
    )

    parser.add_argument(
        "--quiet", "-q",
        action="store_true",
        help="Only output the verdict, no details",
    )

    parser.add_argument(
        "--category", "-c",
        type=int,
        choices=[c.value for c in RuleCategory],
        default=None,
        help="Stop after this category (default: run all categories)",
    )

    parser.add_argument(
        "--rule", "-r",
        action="append",
        default=None,
        metavar="ID",
        help="Run only this rule (repeatable)",
    )

    parser.add_argument(
        "--no-fail-fast",
        action="store_true",
        help="Continue running checks after a layout blocker fails",
    )

    parser.add_argument(
        "--max-failures",
        type=int,
        default=None,
        metavar="N",
        help="Failed rules tolerated in a clean crate (default: 0)",
    )

    parser.add_argument(
        "--config",
        type=str,
        default=None,
        metavar="PATH",
        help="Configuration file (default: labstyle.yaml in the crate, if present)",
    )

    parser.add_argument(
        "--list-rules",
        action="store_true",
        help="List the configured rules and exit",
    )

    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Log debug output to stderr",
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    return parser


def _load_config(parsed: argparse.Namespace) -> LintConfig:
    if parsed.config:
        config = LintConfig.from_yaml(Path(parsed.config))
        if parsed.crate:
            config.crate_root = Path(parsed.crate)
        return config
    crate_root = Path(parsed.crate or ".")
    if crate_root.is_dir():
        discovered = LintConfig.discover(crate_root)
        if discovered is not None:
            discovered.crate_root = crate_root
            return discovered
    return LintConfig(crate_root=crate_root)


def _list_rules(registry: RuleRegistry, format: str) -> str:
    rules = registry.all_rules()
    if format == "json":
        return rules_to_json(rules)

    lines = []
    current = None
    for rule in rules:
        if rule.category != current:
            current = rule.category
            if lines:
                lines.append("")
            lines.append(f"{current.value}. {CATEGORY_NAMES[current]}")
        state = "" if rule.enabled else " (disabled)"
        blocker = " [blocker]" if rule.is_blocker else ""
        lines.append(
            f"  {rule.rule_id:<6} {rule.severity.value:<8} {rule.name}{blocker}{state}"
        )
        if rule.description:
            lines.append(f"         {rule.description}")
    return "\n".join(lines)


def main(args: Optional[list] = None) -> int:
    """
    Main entry point for the CLI.

    Returns:
        Exit code: 0 if style-clean, 1 if not, 2 if error
    """
    parsed = _build_parser().parse_args(args)

    logging.basicConfig(
        level=logging.DEBUG if parsed.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    if parsed.max_failures is not None and parsed.max_failures < 0:
        print("Error: --max-failures must not be negative", file=sys.stderr)
        return 2

    try:
        config = _load_config(parsed)
        registry = config.build_registry()
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    output_format = parsed.format or config.output_format

    if parsed.list_rules:
        print(_list_rules(registry, output_format))
        return 0

    # Validate crate path
    crate_path = config.crate_root.resolve()
    if not crate_path.exists():
        print(f"Error: Crate path does not exist: {crate_path}", file=sys.stderr)
        return 2

    if not crate_path.is_dir():
        print(f"Error: Crate path is not a directory: {crate_path}", file=sys.stderr)
        return 2

    stop_at_category = None
    if parsed.category is not None:
        stop_at_category = RuleCategory(parsed.category)

    runner = LintRunner(
        registry=registry,
        fail_fast=config.fail_fast and not parsed.no_fail_fast,
        max_failures=config.max_failures if parsed.max_failures is None else parsed.max_failures,
        exclude=config.exclude,
    )

    try:
        report = runner.run(
            str(crate_path),
            stop_at_category=stop_at_category,
            only=parsed.rule,
        )
    except RuleNotFoundError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2
    except Exception as e:
        print(f"Error running linter: {e}", file=sys.stderr)
        return 2

    # Output results
    if parsed.quiet:
        if report.is_clean:
            print("STYLE-CLEAN")
        else:
            print("NOT STYLE-CLEAN")
    else:
        output = generate_report(report, format=output_format)

        if parsed.output:
            output_path = Path(parsed.output)
            try:
                output_path.write_text(output, encoding="utf-8")
            except OSError as e:
                print(f"Error: Cannot write report to {output_path}: {e.strerror or e}", file=sys.stderr)
                return 2
            print(f"Report written to: {output_path}")
            print_summary(report)
        else:
            print(output)

    return 0 if report.is_clean else 1


if __name__ == "__main__":
    sys.exit(main())
