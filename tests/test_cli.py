"""
Tests for the command-line interface.

Exit codes: 0 style-clean, 1 violations, 2 the linter could not run.
"""

import json

import pytest

from labstyle import __version__
from labstyle.lint.cli import main


def _json_output(capsys):
    return json.loads(capsys.readouterr().out)


# =============================================================================
# Exit Codes
# =============================================================================


class TestExitCodes:
    """Tests for the CLI exit status."""

    def test_clean_crate(self, clean_crate, capsys):
        assert main([str(clean_crate)]) == 0

        out = capsys.readouterr().out
        assert "STYLE LINT REPORT" in out
        assert "[PASS] STYLE-CLEAN" in out

    def test_violations(self, unordered_crate, capsys):
        assert main([str(unordered_crate)]) == 1
        assert "error[S1.1]" in capsys.readouterr().out

    def test_missing_crate(self, temp_crate, capsys):
        assert main([str(temp_crate / "missing")]) == 2
        assert "does not exist" in capsys.readouterr().err

    def test_crate_is_a_file(self, clean_crate, capsys):
        assert main([str(clean_crate / "Cargo.toml")]) == 2
        assert "not a directory" in capsys.readouterr().err

    def test_unknown_rule(self, clean_crate, capsys):
        assert main([str(clean_crate), "--rule", "Q9.9"]) == 2
        assert "Q9.9" in capsys.readouterr().err

    def test_negative_max_failures(self, clean_crate, capsys):
        assert main([str(clean_crate), "--max-failures", "-1"]) == 2
        assert "--max-failures" in capsys.readouterr().err

    def test_max_failures_tolerates(self, unordered_crate):
        assert main([str(unordered_crate), "--max-failures", "1", "--quiet"]) == 0

    def test_version(self, capsys):
        with pytest.raises(SystemExit) as exc_info:
            main(["--version"])

        assert exc_info.value.code == 0
        assert __version__ in capsys.readouterr().out


# =============================================================================
# Output
# =============================================================================


class TestOutput:
    """Tests for output selection."""

    def test_quiet(self, unordered_crate, capsys):
        assert main([str(unordered_crate), "--quiet"]) == 1
        assert capsys.readouterr().out.strip() == "NOT STYLE-CLEAN"

    def test_quiet_clean(self, clean_crate, capsys):
        main([str(clean_crate), "-q"])
        assert capsys.readouterr().out.strip() == "STYLE-CLEAN"

    def test_json_format(self, unordered_crate, capsys):
        main([str(unordered_crate), "--format", "json"])
        data = _json_output(capsys)

        assert data["is_clean"] is False
        assert data["crate_name"] == "codec"

    def test_markdown_to_file(self, unordered_crate, capsys):
        target = unordered_crate / "report.md"

        assert main([str(unordered_crate), "-f", "markdown", "-o", str(target)]) == 1

        assert target.read_text(encoding="utf-8").startswith("# Style Lint Report")
        out = capsys.readouterr().out
        assert f"Report written to: {target}" in out
        assert "NOT STYLE-CLEAN" in out

    def test_unwritable_output(self, clean_crate, capsys):
        target = clean_crate / "missing-dir" / "report.md"

        assert main([str(clean_crate), "-f", "markdown", "-o", str(target)]) == 2

        assert not target.exists()
        assert "Cannot write report" in capsys.readouterr().err

    def test_github_format(self, unordered_crate, capsys):
        main([str(unordered_crate), "--format", "github"])
        out = capsys.readouterr().out

        assert out.startswith("::error file=src/lib.rs,line=7,")


# =============================================================================
# Selection
# =============================================================================


class TestSelection:
    """Tests for narrowing and extending a run."""

    def test_only_rules(self, unordered_crate, capsys):
        main([str(unordered_crate), "-f", "json", "-r", "N3.1", "-r", "D6.2"])
        data = _json_output(capsys)

        assert data["total_checks"] == 2
        assert list(data["results"]) == ["naming", "documentation"]
        assert data["is_clean"] is True

    def test_stop_at_category(self, clean_crate, capsys):
        main([str(clean_crate), "-f", "json", "--category", "0"])
        data = _json_output(capsys)

        assert list(data["results"]) == ["layout"]

    def test_fail_fast_default(self, no_manifest_crate, capsys):
        assert main([str(no_manifest_crate), "-f", "json"]) == 1
        data = _json_output(capsys)

        assert data["blockers"] == ["B0.1"]
        assert list(data["results"]) == ["layout"]

    def test_no_fail_fast(self, no_manifest_crate, capsys):
        assert main([str(no_manifest_crate), "-f", "json", "--no-fail-fast"]) == 1
        data = _json_output(capsys)

        assert len(data["results"]) > 1


# =============================================================================
# Rule Listing
# =============================================================================


class TestListRules:
    """Tests for --list-rules."""

    def test_text(self, clean_crate, capsys):
        assert main([str(clean_crate), "--list-rules"]) == 0
        out = capsys.readouterr().out

        assert out.startswith("0. ")
        assert "B0.1" in out
        assert "[blocker]" in out
        assert "R7.2" in out

    def test_json(self, clean_crate, capsys):
        assert main([str(clean_crate), "--list-rules", "--format", "json"]) == 0
        rules = _json_output(capsys)

        assert rules[0]["rule_id"] == "B0.1"
        assert {r["kind"] for r in rules} >= {"field_order", "param_order", "naming_pattern"}

    def test_shows_disabled(self, clean_crate, capsys):
        (clean_crate / "labstyle.yaml").write_text("rules:\n  N3.4:\n    enabled: false\n")

        main([str(clean_crate), "--list-rules"])
        out = capsys.readouterr().out

        assert "Getter Naming (disabled)" in out


# =============================================================================
# Configuration
# =============================================================================


class TestConfiguration:
    """Tests for configuration discovery and errors."""

    def test_discovered_config(self, unordered_crate):
        (unordered_crate / "labstyle.yaml").write_text("rules:\n  S1.1:\n    enabled: false\n")

        assert main([str(unordered_crate), "-q"]) == 0

    def test_hidden_config_name(self, unordered_crate):
        (unordered_crate / ".labstyle.yaml").write_text("max_failures: 1\n")

        assert main([str(unordered_crate), "-q"]) == 0

    def test_cli_overrides_max_failures(self, unordered_crate):
        (unordered_crate / "labstyle.yaml").write_text("max_failures: 1\n")

        assert main([str(unordered_crate), "-q", "--max-failures", "0"]) == 1

    def test_config_output_format(self, clean_crate, capsys):
        (clean_crate / "labstyle.yaml").write_text("output_format: json\n")

        main([str(clean_crate)])
        assert _json_output(capsys)["is_clean"] is True

    def test_explicit_config(self, unordered_crate):
        config_path = unordered_crate / "ci" / "style.yaml"
        config_path.parent.mkdir()
        config_path.write_text("rules:\n  S1.1:\n    severity: warning\n")

        assert main([str(unordered_crate), "--config", str(config_path), "-q"]) == 0

    def test_explicit_config_missing(self, clean_crate, capsys):
        assert main([str(clean_crate), "--config", str(clean_crate / "nope.yaml")]) == 2
        assert "cannot read file" in capsys.readouterr().err

    def test_invalid_config(self, clean_crate, capsys):
        (clean_crate / "labstyle.yaml").write_text("max_failure: 1\n")

        assert main([str(clean_crate)]) == 2
        err = capsys.readouterr().err
        assert "Invalid configuration" in err
        assert "unknown key 'max_failure'" in err

    def test_crate_root_wrong_type(self, clean_crate, capsys):
        (clean_crate / "labstyle.yaml").write_text("crate_root: 5\n")

        assert main([str(clean_crate)]) == 2
        assert "'crate_root' must be a path" in capsys.readouterr().err

    def test_override_enabled_wrong_type(self, unordered_crate, capsys):
        (unordered_crate / "labstyle.yaml").write_text("rules:\n  S1.1:\n    enabled: \"false\"\n")

        assert main([str(unordered_crate)]) == 2
        assert "rules.S1.1: 'enabled' must be true or false" in capsys.readouterr().err

    def test_unknown_rule_override(self, clean_crate, capsys):
        (clean_crate / "labstyle.yaml").write_text("rules:\n  Z0.1:\n    enabled: false\n")

        assert main([str(clean_crate)]) == 2
        assert "rules.Z0.1: no such rule" in capsys.readouterr().err

    def test_extra_rule(self, clean_crate, capsys):
        (clean_crate / "src" / "wire.rs").write_text(
            "pub trait Encode {\n    fn encode(&self, out: &mut Vec<u8>);\n}\n\n"
            "pub fn first(data: &[u8]) -> u8 {\n    *data.first().unwrap()\n}\n"
        )
        (clean_crate / "labstyle.yaml").write_text(
            "extra_rules:\n"
            "  - rule_id: X9.1\n"
            "    kind: forbidden_snippet\n"
            "    name: No unwrap in library code\n"
            "    category: release\n"
            "    options:\n"
            "      files: [\"src/*.rs\"]\n"
            "      patterns: [\".unwrap()\"]\n"
        )

        assert main([str(clean_crate), "-f", "json"]) == 1
        data = _json_output(capsys)
        failed = [r["check_id"] for r in data["results"]["release"] if r["status"] == "fail"]
        assert failed == ["X9.1"]
