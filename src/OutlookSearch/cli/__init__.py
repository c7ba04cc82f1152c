"""CLI package for OutlookSearch command orchestration.

Click definitions live in `ui`, component lifecycle in `runner`, and command
logic in `commands`.
"""

from __future__ import annotations

__all__ = ["CommandRunner", "main"]

from OutlookSearch.cli.runner import CommandRunner
from OutlookSearch.cli.ui import cli


def main() -> None:
    """Run OutlookSearch CLI.

    Entry point referenced by console script in pyproject.toml.
    """
    cli()
