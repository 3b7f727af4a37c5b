"""Configuration loading and resolution.

Settings come from two sources: a TOML file in the XDG config directory
and overrides given on the command line. Overrides win key by key. The
merged result is validated once at startup into a ResolvedConfig.

Configuration is stored in ~/.config/klipexpire/config.toml
"""

import logging
import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from tempfile import NamedTemporaryFile
from typing import Annotated

import tomli_w
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from klipexpire.core.paths import get_config_path, get_legacy_config_path
from klipexpire.core.patterns import InvalidPatternError, PatternFilter

logger = logging.getLogger(__name__)

DEFAULT_EXPIRY_SECONDS = 10 * 60
DEFAULT_INTERVAL_SECONDS = 30
DEFAULT_IPC_TIMEOUT_SECONDS = 5

# Key names used by earlier releases, mapped to their current names
LEGACY_KEYS: dict[str, str] = {
    "exclude_regex": "always_remove_patterns",
    "never_expire_regex": "never_remove_patterns",
}


class ConfigError(Exception):
    """Base exception for configuration errors."""


class ConfigNotFoundError(ConfigError):
    """Raised when an explicitly requested config file does not exist."""


class ConfigParseError(ConfigError):
    """Raised when the config file is not valid TOML."""


class FileConfig(BaseModel):
    """Settings as written in the TOML config file.

    Every key is optional; missing keys fall back to overrides or defaults.
    Range checks happen after merging, in resolve_config().
    """

    model_config = ConfigDict(extra="forbid")

    item_expiry_seconds: Annotated[
        int | None,
        Field(description="Seconds before a clipboard entry is removed"),
    ] = None
    update_interval_seconds: Annotated[
        int | None,
        Field(description="Seconds between history reconciliations"),
    ] = None
    ipc_timeout_seconds: Annotated[
        int | None,
        Field(description="Timeout for each call to the clipboard manager"),
    ] = None
    listen_for_updates: Annotated[
        bool | None,
        Field(description="React to history-updated signals between polls"),
    ] = None
    always_remove_patterns: Annotated[
        list[str],
        Field(description="Regexes for entries removed on sight"),
    ] = []
    never_remove_patterns: Annotated[
        list[str],
        Field(description="Regexes for entries exempt from age-based expiry"),
    ] = []


class ConfigOverrides(BaseModel):
    """Settings supplied on the command line. None means "not given"."""

    model_config = ConfigDict(extra="forbid")

    item_expiry_seconds: int | None = None
    update_interval_seconds: int | None = None
    ipc_timeout_seconds: int | None = None
    listen_for_updates: bool | None = None
    always_remove_patterns: list[str] | None = None
    never_remove_patterns: list[str] | None = None


@dataclass(frozen=True, slots=True)
class ResolvedConfig:
    """Validated configuration used for the lifetime of the process.

    Attributes:
        expiry_seconds: Age at which unprotected entries are removed.
        interval_seconds: Delay between periodic reconciliations.
        ipc_timeout_seconds: Timeout for each clipboard manager call.
        listen: Whether to subscribe to history-updated signals.
        deny_patterns: Source text of the always-remove patterns.
        keep_patterns: Source text of the never-remove patterns.
        pattern_filter: Compiled form of both pattern sets.
        source: Config file the settings were read from, if any.
    """

    expiry_seconds: int
    interval_seconds: int
    ipc_timeout_seconds: int = DEFAULT_IPC_TIMEOUT_SECONDS
    listen: bool = True
    deny_patterns: tuple[str, ...] = ()
    keep_patterns: tuple[str, ...] = ()
    pattern_filter: PatternFilter = field(default_factory=PatternFilter, compare=False)
    source: Path | None = None


def find_config_file(path: Path | None = None) -> Path | None:
    """Locate the config file to read.

    Without an explicit path the default location is used, falling back
    to the file name used by earlier releases when only that one exists.

    Args:
        path: Explicit config file path, or None to search.

    Returns:
        Path of the file to read, or None if no config file exists.

    Raises:
        ConfigNotFoundError: If an explicit path does not exist.
    """
    if path is not None:
        if not path.exists():
            raise ConfigNotFoundError(f"Config file not found: {path}")
        return path

    config_path = get_config_path()
    if config_path.exists():
        return config_path

    legacy_path = get_legacy_config_path()
    if legacy_path.exists():
        logger.warning(
            "Reading deprecated config file %s. Move it to %s.",
            legacy_path,
            config_path,
        )
        return legacy_path

    logger.debug("Config file does not exist: %s", config_path)
    return None


def load_file_config(path: Path | None = None) -> FileConfig | None:
    """Load settings from a TOML file.

    Args:
        path: Path to the config file. If None, the default location (or
            the legacy file) is used and a missing file means "no file
            config".

    Returns:
        Validated FileConfig, or None if no config file exists.

    Raises:
        ConfigNotFoundError: If an explicit path does not exist.
        ConfigParseError: If the TOML syntax is invalid.
        ConfigError: If the content doesn't match the schema.
    """
    config_path = find_config_file(path)
    if config_path is None:
        return None

    logger.debug("Reading config file: %s", config_path)
    try:
        with open(config_path, "rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigParseError(f"Invalid TOML syntax in {config_path}: {e}") from e
    except OSError as e:
        raise ConfigError(f"Failed to read config file {config_path}: {e}") from e

    for old_key, new_key in LEGACY_KEYS.items():
        if old_key not in data:
            continue
        logger.warning(
            "Deprecated '%s' in %s. Rename it to '%s'.",
            old_key,
            config_path,
            new_key,
        )
        legacy = data.pop(old_key)
        if new_key not in data:
            data[new_key] = legacy

    try:
        return FileConfig.model_validate(data)
    except (ValueError, ValidationError) as e:
        raise ConfigError(f"Invalid config in {config_path}: {e}") from e


def _require_positive(key: str, value: int) -> int:
    if value <= 0:
        msg = f"{key} must be greater than zero (got {value})"
        raise ConfigError(msg)
    return value


def resolve_config(
    file_config: FileConfig | None,
    overrides: ConfigOverrides | None = None,
    source: Path | None = None,
) -> ResolvedConfig:
    """Merge file settings with overrides and validate the result.

    A key given in overrides replaces the file's value for that key,
    including whole pattern lists. Unset keys take built-in defaults.

    Args:
        file_config: Settings from the config file, or None.
        overrides: Settings from the command line, or None.
        source: Path the file settings came from, recorded for display.

    Returns:
        ResolvedConfig with compiled patterns.

    Raises:
        ConfigError: If a number is not positive or a pattern does not
            compile. The message names the offending key and value.
    """
    file_config = file_config or FileConfig()
    overrides = overrides or ConfigOverrides()

    def pick(key: str, default: object) -> object:
        value = getattr(overrides, key)
        if value is None:
            value = getattr(file_config, key)
        return default if value is None else value

    expiry = _require_positive(
        "item_expiry_seconds", int(pick("item_expiry_seconds", DEFAULT_EXPIRY_SECONDS))
    )
    interval = _require_positive(
        "update_interval_seconds", int(pick("update_interval_seconds", DEFAULT_INTERVAL_SECONDS))
    )
    ipc_timeout = _require_positive(
        "ipc_timeout_seconds", int(pick("ipc_timeout_seconds", DEFAULT_IPC_TIMEOUT_SECONDS))
    )
    deny = tuple(pick("always_remove_patterns", []))
    keep = tuple(pick("never_remove_patterns", []))

    try:
        pattern_filter = PatternFilter.from_patterns(deny=deny, keep=keep)
    except InvalidPatternError as e:
        raise ConfigError(str(e)) from e

    config = ResolvedConfig(
        expiry_seconds=expiry,
        interval_seconds=interval,
        ipc_timeout_seconds=ipc_timeout,
        listen=bool(pick("listen_for_updates", True)),
        deny_patterns=deny,
        keep_patterns=keep,
        pattern_filter=pattern_filter,
        source=source,
    )
    logger.debug("Using merged configuration: %s", config)
    return config


def load_config(
    path: Path | None = None,
    overrides: ConfigOverrides | None = None,
) -> ResolvedConfig:
    """Load the config file and resolve it against overrides.

    Args:
        path: Explicit config file path, or None for the default location.
        overrides: Command-line overrides.

    Returns:
        ResolvedConfig ready for use.

    Raises:
        ConfigError: If loading or validation fails.
    """
    config_path = find_config_file(path)
    file_config = load_file_config(config_path) if config_path is not None else None
    return resolve_config(file_config, overrides, source=config_path)


def save_file_config(config: FileConfig, path: Path | None = None) -> Path:
    """Save settings to a TOML file.

    The file is written atomically by first writing to a temporary file
    and then using os.replace() for atomic rename.

    Args:
        config: The FileConfig to save.
        path: Destination. If None, uses the default config path.

    Returns:
        Path where the config was saved.

    Raises:
        ConfigError: If the file cannot be written.
    """
    config_path = path or get_config_path()

    try:
        config_path.parent.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise ConfigError(f"Cannot create config directory {config_path.parent}: {e}") from e

    data = config.model_dump(exclude_none=True)

    tmp_path: Path | None = None
    try:
        with NamedTemporaryFile(
            mode="wb",
            dir=config_path.parent,
            delete=False,
            suffix=".tmp",
        ) as f:
            tmp_path = Path(f.name)
            tomli_w.dump(data, f)
        os.replace(str(tmp_path), str(config_path))
    except OSError as e:
        if tmp_path is not None and tmp_path.exists():
            tmp_path.unlink()
        raise ConfigError(f"Failed to write config file: {e}") from e

    return config_path


def get_default_file_config() -> FileConfig:
    """Create a FileConfig populated with the built-in defaults."""
    return FileConfig(
        item_expiry_seconds=DEFAULT_EXPIRY_SECONDS,
        update_interval_seconds=DEFAULT_INTERVAL_SECONDS,
        ipc_timeout_seconds=DEFAULT_IPC_TIMEOUT_SECONDS,
        listen_for_updates=True,
    )
