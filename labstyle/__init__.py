"""
labstyle: the laboratory style guide, enforced.

A linter that checks Rust crates against the laboratory's conventions:
struct field order, parameter order, naming, required boilerplate,
test layout, changelog format and the release checklist.
"""

__version__ = "0.1.0"
