"""Shared utilities for all CLI command modules.

Provides the Rich console instance and the default Kaya home.
"""

from __future__ import annotations

from pathlib import Path

from rich.console import Console

from .. import KAYA_HOME

console = Console()


def home_path(home: str) -> Path:
    """Expand a ``--home`` option value."""
    return Path(home).expanduser()


__all__ = ["KAYA_HOME", "console", "home_path"]
