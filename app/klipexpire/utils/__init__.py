"""Utility modules for klipexpire.

This module exports commonly used utility functions.
"""

from klipexpire.utils.formatting import (
    console,
    configure_logging,
    err_console,
    print_error,
    print_info,
    print_success,
    print_warning,
)
from klipexpire.utils.shell import CommandResult, command_exists, run_command, stream_lines

__all__ = [
    "CommandResult",
    "command_exists",
    "configure_logging",
    "console",
    "err_console",
    "print_error",
    "print_info",
    "print_success",
    "print_warning",
    "run_command",
    "stream_lines",
]
