"""
Tests for changelog and Cargo manifest reading.
"""

import datetime

import pytest

from labstyle.source import (
    ManifestError,
    is_semver,
    load_manifest,
    parse_changelog,
    version_key,
)
from labstyle.source.markdown import parse_release_heading


CHANGELOG = """\
# Changelog

All notable changes to this project are documented here.

## [Unreleased]

### Added
- Streaming decoder

## [1.1.0] - 2024-05-01

### Added
- `Encode` for tuples

### Fixed
- Overflow in varint reader

```markdown
## [9.9.9] - 2099-01-01
```

## [1.0.0] - 2024-01-15

### Added
- Initial release
"""


class TestParseChangelog:
    """Tests for changelog heading structure."""

    def test_title_and_releases(self):
        changelog = parse_changelog(CHANGELOG)

        assert changelog.title == "Changelog"
        assert changelog.title_line == 1
        assert [r.heading for r in changelog.releases] == [
            "[Unreleased]",
            "[1.1.0] - 2024-05-01",
            "[1.0.0] - 2024-01-15",
        ]

    def test_fenced_headings_ignored(self):
        """Headings inside code fences are not releases."""
        changelog = parse_changelog(CHANGELOG)

        assert changelog.find("9.9.9") is None

    def test_sections_attach_to_release(self):
        changelog = parse_changelog(CHANGELOG)
        unreleased, v110, v100 = changelog.releases

        assert [s.name for s in unreleased.sections] == ["Added"]
        assert [s.name for s in v110.sections] == ["Added", "Fixed"]
        assert [s.name for s in v100.sections] == ["Added"]

    def test_versioned_and_latest(self):
        changelog = parse_changelog(CHANGELOG)

        assert [r.version for r in changelog.versioned] == ["1.1.0", "1.0.0"]
        assert changelog.latest.version == "1.1.0"
        assert changelog.find("1.0.0").date == "2024-01-15"

    def test_empty_changelog(self):
        changelog = parse_changelog("")

        assert changelog.title is None
        assert changelog.releases == []
        assert changelog.latest is None


class TestReleaseHeading:
    """Tests for `##` heading interpretation."""

    def test_unreleased(self):
        release = parse_release_heading("[Unreleased]", 3)

        assert release.is_unreleased
        assert release.well_formed
        assert release.version is None

    def test_well_formed_release(self):
        release = parse_release_heading("[2.0.0-rc.1] - 2024-02-29", 10)

        assert release.well_formed
        assert release.version == "2.0.0-rc.1"
        assert release.date == "2024-02-29"
        assert release.released == datetime.date(2024, 2, 29)

    @pytest.mark.parametrize("heading", [
        "1.0.0 - 2024-01-01",      # no brackets
        "[1.0.0]",                 # no date
        "[1.0] - 2024-01-01",      # not semver
        "[1.0.0] - 2024-02-30",    # not a calendar date
        "[1.0.0] - 01/02/2024",    # wrong date format
        "[1.0.0] - 2024-5-1",      # unpadded month and day
        "[1.0.0] - 2024-05-1",     # unpadded day
        "[1.0.0] - ２０２４-05-01",   # non-ASCII digits
    ])
    def test_malformed(self, heading):
        assert not parse_release_heading(heading, 1).well_formed


class TestSemver:
    """Tests for semantic version ordering."""

    def test_is_semver(self):
        assert is_semver("0.1.0")
        assert is_semver("1.0.0-alpha.1+build.5")
        assert not is_semver("1.0")
        assert not is_semver("01.0.0")
        assert not is_semver("v1.0.0")

    def test_precedence(self):
        ordered = [
            "1.0.0-alpha",
            "1.0.0-alpha.1",
            "1.0.0-alpha.beta",
            "1.0.0-beta.2",
            "1.0.0-beta.11",
            "1.0.0",
            "1.0.1",
            "1.10.0",
        ]

        assert sorted(reversed(ordered), key=version_key) == ordered

    def test_build_metadata_ignored(self):
        assert version_key("1.0.0+abc") == version_key("1.0.0")

    def test_invalid_version_raises(self):
        with pytest.raises(ValueError, match="Not a semantic version"):
            version_key("latest")


class TestLoadManifest:
    """Tests for Cargo.toml loading."""

    def test_package_fields(self):
        manifest = load_manifest(
            '[package]\nname = "codec"\nversion = "0.3.1"\nedition = "2021"\n'
            'license-file = "LICENSE"\n'
        )

        assert manifest.name == "codec"
        assert manifest.version == "0.3.1"
        assert not manifest.is_virtual
        assert not manifest.version_inherited

    def test_missing_keys(self):
        manifest = load_manifest(
            '[package]\nname = "codec"\nversion = "0.3.1"\ndescription = ""\n'
            'license-file = "LICENSE"\n'
        )

        assert manifest.missing_keys(["name", "description", "license", "repository"]) == [
            "description",
            "repository",
        ]

    def test_virtual_workspace(self):
        manifest = load_manifest('[workspace]\nmembers = ["a", "b"]\n')

        assert manifest.is_virtual
        assert manifest.name is None

    def test_inherited_version(self):
        manifest = load_manifest('[package]\nname = "a"\nversion.workspace = true\n')

        assert manifest.version_inherited
        assert manifest.version is None

    def test_invalid_toml(self):
        with pytest.raises(ManifestError) as exc_info:
            load_manifest("[package\nname = ", "Cargo.toml")

        assert exc_info.value.path == "Cargo.toml"
        assert exc_info.value.reason
