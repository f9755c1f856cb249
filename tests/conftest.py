"""
Crates on disk shared by the runner, report and CLI tests.
"""

import tempfile
from pathlib import Path

import pytest


MANIFEST = """\
[package]
name = "codec"
version = "1.1.0"
edition = "2021"
description = "Binary codecs"
license = "MIT OR Apache-2.0"
repository = "https://example.org/lab/codec"
"""

CHANGELOG = """\
# Changelog

## [Unreleased]

## [1.1.0] - 2024-05-01
### Added
- Tuple encoding

## [1.0.0] - 2024-01-15
### Added
- Initial release
"""

LIB_RS = """\
#![doc = include_str!("../README.md")]

pub mod wire;

pub struct Frame {
    pub kind: u8,
    len: u32,
}

pub fn add(a: u32, b: u32) -> u32 {
    a + b
}

#[cfg(test)]
mod tests {
    use super::*;

    #[test]
    fn adds() {
        assert_eq!(add(1, 2), 3);
    }
}
"""

WIRE_RS = """\
pub trait Encode {
    fn encode(&self, out: &mut Vec<u8>);
}
"""

INTEGRATION_RS = """\
use codec::add;

#[test]
fn roundtrip() {
    assert_eq!(add(2, 2), 4);
}
"""


def write_files(root: Path, files: dict) -> Path:
    for rel, content in files.items():
        path = root / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content)
    return root


@pytest.fixture
def temp_crate():
    """Create a temporary directory for test crates."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def clean_crate(temp_crate):
    """A crate that follows every convention."""
    return write_files(temp_crate, {
        "Cargo.toml": MANIFEST,
        "CHANGELOG.md": CHANGELOG,
        "README.md": "# codec\n",
        "src/lib.rs": LIB_RS,
        "src/wire.rs": WIRE_RS,
        "tests/roundtrip.rs": INTEGRATION_RS,
        # build output and VCS internals are never linted
        "target/debug/build/out.rs": "fn BadName() { dbg!(1); }\n",
        ".git/hooks/pre-commit.rs": "fn BadName() {}\n",
    })


@pytest.fixture
def unordered_crate(clean_crate):
    """A crate whose only problem is struct field order."""
    lib = LIB_RS.replace("    pub kind: u8,\n    len: u32,\n", "    len: u32,\n    pub kind: u8,\n")
    (clean_crate / "src" / "lib.rs").write_text(lib)
    return clean_crate


@pytest.fixture
def no_manifest_crate(temp_crate):
    """A directory that is not a crate at all."""
    return write_files(temp_crate, {
        "src/lib.rs": "pub struct S { a: u8, pub b: u8 }\n",
    })
