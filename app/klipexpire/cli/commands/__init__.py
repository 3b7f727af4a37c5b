"""CLI commands for klipexpire.

This package contains all subcommand implementations.
"""

from klipexpire.cli.commands import config, run

__all__ = ["config", "run"]
