"""Rich console formatting and logging utilities.

Provides consistent formatting for CLI output using Rich, and routes
library logging through a Rich handler on stderr.
"""

import logging
import sys

from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.theme import Theme

# Semantic styles shared by all CLI output
THEME = Theme(
    {
        "text": "#ffffff",
        "muted": "#b2bec3",
        "header": "#69B9A1",
        "bold_header": "bold #69B9A1",
        "border": "#29526d",
        "success": "#03b971",
        "warning": "#f5b332",
        "error": "bold #f53263",
        "info": "#0ec1c8",
        "verdict.deny": "bold #f53263",
        "verdict.keep": "bold #03b971",
        "verdict.neutral": "#b2bec3",
    }
)


def _detect_color_system() -> str | None:
    """Detect the best color system for the current terminal.

    Returns "truecolor" for interactive terminals to enable full hex color support,
    None otherwise to let Rich auto-detect.
    """
    if sys.stdout.isatty():
        return "truecolor"
    return None


console = Console(theme=THEME, color_system=_detect_color_system())
err_console = Console(theme=THEME, stderr=True, color_system=_detect_color_system())


def verbosity_to_level(verbose: int, quiet: bool = False) -> int:
    """Map CLI verbosity flags to a logging level.

    Args:
        verbose: Number of times -v was given.
        quiet: Whether -q was given. Takes precedence over verbose.

    Returns:
        A logging level constant.
    """
    if quiet:
        return logging.ERROR
    if verbose <= 0:
        return logging.WARNING
    if verbose == 1:
        return logging.INFO
    return logging.DEBUG


def configure_logging(verbose: int = 0, quiet: bool = False) -> None:
    """Install a Rich log handler on the klipexpire logger hierarchy.

    Calling this again replaces the previously installed handler.

    Args:
        verbose: Number of times -v was given.
        quiet: Suppress everything below ERROR.
    """
    root = logging.getLogger("klipexpire")
    for handler in list(root.handlers):
        if isinstance(handler, RichHandler):
            root.removeHandler(handler)

    handler = RichHandler(console=err_console, show_path=verbose >= 2, markup=False)
    handler.setFormatter(logging.Formatter("%(message)s", datefmt="[%X]"))
    root.addHandler(handler)
    root.setLevel(verbosity_to_level(verbose, quiet))


def print_info(message: str) -> None:
    """Print an info message."""
    console.print(f"[info]{escape(message)}[/]")


def print_warning(message: str) -> None:
    """Print a warning message."""
    err_console.print(f"[warning]Warning:[/] {escape(message)}")


def print_error(message: str) -> None:
    """Print an error message."""
    err_console.print(f"[error]Error:[/] {escape(message)}")


def print_success(message: str) -> None:
    """Print a success message."""
    console.print(f"[success]{escape(message)}[/]")
