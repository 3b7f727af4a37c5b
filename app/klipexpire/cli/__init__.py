"""CLI package for klipexpire.

This package contains the Typer application and all subcommands.
"""

from klipexpire.cli.main import app

__all__ = ["app"]
