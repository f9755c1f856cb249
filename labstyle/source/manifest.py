"""
Cargo manifest loading.

Only the `[package]` and `[workspace]` tables matter to the release
checklist; everything else in `Cargo.toml` is carried but not read.
"""

from __future__ import annotations

import tomllib
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

# `license-file` is an accepted stand-in for `license`
_KEY_ALTERNATIVES = {"license": ("license", "license-file")}


class ManifestError(Exception):
    """Raised when `Cargo.toml` cannot be parsed."""

    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Invalid Cargo manifest {path}: {reason}")


@dataclass
class CargoManifest:
    path: str
    package: Dict[str, Any] = field(default_factory=dict)
    workspace: Dict[str, Any] = field(default_factory=dict)

    @property
    def is_virtual(self) -> bool:
        """A workspace root without a `[package]` of its own."""
        return not self.package and bool(self.workspace)

    @property
    def name(self) -> Optional[str]:
        name = self.package.get("name")
        return name if isinstance(name, str) else None

    @property
    def version_inherited(self) -> bool:
        version = self.package.get("version")
        return isinstance(version, dict) and bool(version.get("workspace"))

    @property
    def version(self) -> Optional[str]:
        version = self.package.get("version")
        return version if isinstance(version, str) else None

    def missing_keys(self, keys: Sequence[str]) -> List[str]:
        """Required `[package]` keys that are absent or empty."""
        missing = []
        for key in keys:
            candidates = _KEY_ALTERNATIVES.get(key, (key,))
            if not any(self.package.get(c) not in (None, "", []) for c in candidates):
                missing.append(key)
        return missing


def load_manifest(text: str, path: str = "Cargo.toml") -> CargoManifest:
    """
    Parse `Cargo.toml` contents.

    Raises:
        ManifestError: If the text is not valid TOML.
    """
    try:
        data = tomllib.loads(text)
    except tomllib.TOMLDecodeError as e:
        raise ManifestError(path, str(e)) from e

    package = data.get("package", {})
    workspace = data.get("workspace", {})
    return CargoManifest(
        path=path,
        package=package if isinstance(package, dict) else {},
        workspace=workspace if isinstance(workspace, dict) else {},
    )
