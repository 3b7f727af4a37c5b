"""XDG-compliant path management for klipexpire.

This module provides standardized paths following the XDG Base Directory
Specification for configuration storage.

XDG defaults:
- Config: ~/.config/klipexpire/
"""

import os
from pathlib import Path

# Application identifier for directory naming
APP_NAME = "klipexpire"

CONFIG_FILENAME = "config.toml"

# Config file read by earlier releases, directly in the XDG config home
LEGACY_CONFIG_FILENAME = "klipper-timeout.toml"


def _get_xdg_dir(env_var: str, default_subdir: str) -> Path:
    """Get XDG directory respecting environment variable override.

    Args:
        env_var: XDG environment variable name (e.g., "XDG_CONFIG_HOME").
        default_subdir: Default subdirectory under home (e.g., ".config").

    Returns:
        Path to the application-specific directory.
    """
    base = os.environ.get(env_var)
    if base:
        return Path(base) / APP_NAME
    return Path.home() / default_subdir / APP_NAME


def get_config_dir() -> Path:
    """Get the configuration directory path.

    Returns:
        Path to ~/.config/klipexpire/ (or XDG_CONFIG_HOME/klipexpire/).
    """
    return _get_xdg_dir("XDG_CONFIG_HOME", ".config")


def get_config_path() -> Path:
    """Get the default configuration file path.

    Returns:
        Path to ~/.config/klipexpire/config.toml.
    """
    return get_config_dir() / CONFIG_FILENAME


def get_legacy_config_path() -> Path:
    """Get the config file path used by earlier releases.

    Returns:
        Path to ~/.config/klipper-timeout.toml.
    """
    return get_config_dir().parent / LEGACY_CONFIG_FILENAME
