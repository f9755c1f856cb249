"""
Allow running the linter as a module.

Usage:
    python -m labstyle /path/to/crate
"""

from .lint.cli import main
import sys

if __name__ == "__main__":
    sys.exit(main())
