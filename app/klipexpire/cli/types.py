"""Shared types and utilities for CLI commands.

This module provides the configuration override options used by several
command modules, and the helper that turns them into a ResolvedConfig.
"""

from pathlib import Path
from typing import Annotated

import typer

from klipexpire.core.config import ConfigError, ConfigOverrides, ResolvedConfig, load_config
from klipexpire.utils.formatting import print_error

ConfigPathOption = Annotated[
    Path | None,
    typer.Option(
        "--config",
        "-c",
        help="Config file to read instead of ~/.config/klipexpire/config.toml.",
        dir_okay=False,
    ),
]
ExpiryOption = Annotated[
    int | None,
    typer.Option(
        "--expiry-seconds",
        "-e",
        help="Seconds before a clipboard entry is removed.",
    ),
]
IntervalOption = Annotated[
    int | None,
    typer.Option(
        "--interval-seconds",
        "-i",
        help="Seconds between history reconciliations.",
    ),
]
DenyOption = Annotated[
    list[str] | None,
    typer.Option(
        "--deny",
        help="Regex for entries to remove on sight. Repeatable; replaces the file's list.",
    ),
]
KeepOption = Annotated[
    list[str] | None,
    typer.Option(
        "--keep",
        help="Regex for entries never expired by age. Repeatable; replaces the file's list.",
    ),
]


def build_overrides(
    expiry_seconds: int | None = None,
    interval_seconds: int | None = None,
    deny: list[str] | None = None,
    keep: list[str] | None = None,
    listen: bool | None = None,
) -> ConfigOverrides:
    """Collect command-line values into a ConfigOverrides.

    Empty repeatable options count as "not given".
    """
    return ConfigOverrides(
        item_expiry_seconds=expiry_seconds,
        update_interval_seconds=interval_seconds,
        always_remove_patterns=deny or None,
        never_remove_patterns=keep or None,
        listen_for_updates=listen,
    )


def resolve_or_exit(config_path: Path | None, overrides: ConfigOverrides) -> ResolvedConfig:
    """Resolve configuration, exiting with status 1 on any config error.

    Args:
        config_path: Explicit config file, or None for the default.
        overrides: Command-line overrides.

    Returns:
        The resolved configuration.

    Raises:
        typer.Exit: If the configuration is invalid.
    """
    try:
        return load_config(config_path, overrides)
    except ConfigError as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e
