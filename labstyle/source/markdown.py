"""
Changelog parsing.

Reads a Markdown changelog in the "Keep a Changelog" layout:

    # Changelog

    ## [Unreleased]

    ## [1.2.0] - 2024-05-01
    ### Added
    - ...

Only ATX headings outside fenced code blocks are considered. Validation
of the layout lives in the changelog check; this module just records
what is there.
"""

from __future__ import annotations

import datetime
import re
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

_HEADING_RE = re.compile(r"^(#{1,6})\s+(.*?)\s*#*\s*$")
_FENCE_RE = re.compile(r"^\s*(```|~~~)")
_RELEASE_RE = re.compile(
    r"^\[(?P<version>[^\]]+)\](?:\s+-\s+(?P<date>\S+))?$"
)
_DATE_RE = re.compile(r"^[0-9]{4}-[0-9]{2}-[0-9]{2}$")
_SEMVER_RE = re.compile(
    r"^(?P<major>0|[1-9]\d*)\.(?P<minor>0|[1-9]\d*)\.(?P<patch>0|[1-9]\d*)"
    r"(?:-(?P<pre>[0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*))?"
    r"(?:\+(?P<build>[0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*))?$"
)

UNRELEASED = "unreleased"


@dataclass(frozen=True)
class ChangelogSection:
    """A `###` subsection inside a release, e.g. `Added`."""

    name: str
    line: int


@dataclass
class ChangelogRelease:
    """
    A `##` entry of the changelog.

    `well_formed` is True for `[Unreleased]` and for
    `[X.Y.Z] - YYYY-MM-DD` with a valid version and calendar date;
    `released` holds that date once it parses.
    """

    heading: str
    line: int
    version: Optional[str] = None
    date: Optional[str] = None
    released: Optional[datetime.date] = None
    is_unreleased: bool = False
    well_formed: bool = False
    sections: List[ChangelogSection] = field(default_factory=list)


@dataclass
class Changelog:
    path: str
    title: Optional[str] = None
    title_line: Optional[int] = None
    releases: List[ChangelogRelease] = field(default_factory=list)

    @property
    def versioned(self) -> List[ChangelogRelease]:
        """Releases that carry a valid version, in file order."""
        return [r for r in self.releases if r.version and is_semver(r.version)]

    def find(self, version: str) -> Optional[ChangelogRelease]:
        for release in self.releases:
            if release.version == version:
                return release
        return None

    @property
    def latest(self) -> Optional[ChangelogRelease]:
        """Newest released version by semantic ordering."""
        versioned = self.versioned
        if not versioned:
            return None
        return max(versioned, key=lambda r: version_key(r.version))


def is_semver(version: str) -> bool:
    return bool(_SEMVER_RE.match(version))


def version_key(version: str) -> Tuple:
    """
    Sort key implementing semantic-version precedence.

    A pre-release sorts below the release it precedes; numeric
    identifiers sort below alphanumeric ones. Build metadata is ignored.

    Raises:
        ValueError: If `version` is not a semantic version.
    """
    m = _SEMVER_RE.match(version)
    if m is None:
        raise ValueError(f"Not a semantic version: {version!r}")
    core = (int(m.group("major")), int(m.group("minor")), int(m.group("patch")))
    pre = m.group("pre")
    if pre is None:
        return core + (1, ())
    identifiers = tuple(
        (0, int(part), "") if part.isdigit() else (1, 0, part)
        for part in pre.split(".")
    )
    return core + (0, identifiers)


def _parse_date(text: Optional[str]) -> Optional[datetime.date]:
    """A zero-padded ISO calendar date, or None."""
    if text is None or not _DATE_RE.match(text):
        return None
    try:
        return datetime.date.fromisoformat(text)
    except ValueError:
        return None


def parse_release_heading(heading: str, line: int) -> ChangelogRelease:
    """Interpret the text of a `##` heading."""
    release = ChangelogRelease(heading=heading, line=line)
    m = _RELEASE_RE.match(heading)
    if m is None:
        return release

    version = m.group("version").strip()
    if version.lower() == UNRELEASED:
        release.is_unreleased = True
        release.well_formed = m.group("date") is None
        return release

    release.version = version
    release.date = m.group("date")
    release.released = _parse_date(release.date)
    release.well_formed = is_semver(version) and release.released is not None
    return release


def parse_changelog(text: str, path: str = "CHANGELOG.md") -> Changelog:
    """
    Parse the heading structure of a changelog.

    Args:
        text: Markdown contents
        path: Crate-relative path, used for reporting

    Returns:
        Changelog with the title and every `##` release in file order
    """
    changelog = Changelog(path=path)
    in_fence = False
    current: Optional[ChangelogRelease] = None

    for line_no, raw in enumerate(text.splitlines(), start=1):
        if _FENCE_RE.match(raw):
            in_fence = not in_fence
            continue
        if in_fence:
            continue

        m = _HEADING_RE.match(raw)
        if m is None:
            continue
        level = len(m.group(1))
        heading = m.group(2).strip()

        if level == 1 and changelog.title is None:
            changelog.title = heading
            changelog.title_line = line_no
        elif level == 2:
            current = parse_release_heading(heading, line_no)
            changelog.releases.append(current)
        elif level == 3 and current is not None:
            current.sections.append(ChangelogSection(name=heading, line=line_no))

    return changelog
