"""
Source readers for the linter.

Turns the files of a Rust crate into structures the checks can inspect:
Rust items, changelog headings and the Cargo manifest.
"""

from .model import (
    Attribute,
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
    Visibility,
)
from .rust import mask_source, parse_source
from .markdown import (
    Changelog,
    ChangelogRelease,
    ChangelogSection,
    is_semver,
    parse_changelog,
    version_key,
)
from .manifest import CargoManifest, ManifestError, load_manifest

__all__ = [
    # Model
    "Attribute",
    "EnumDef",
    "FieldDef",
    "FnDef",
    "ImplDef",
    "ModDef",
    "Param",
    "SourceFile",
    "StructDef",
    "StructKind",
    "TraitDef",
    "Visibility",
    # Rust
    "mask_source",
    "parse_source",
    # Changelog
    "Changelog",
    "ChangelogRelease",
    "ChangelogSection",
    "is_semver",
    "parse_changelog",
    "version_key",
    # Manifest
    "CargoManifest",
    "ManifestError",
    "load_manifest",
]
