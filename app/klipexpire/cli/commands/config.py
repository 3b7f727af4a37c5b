"""Config inspection commands.

Provides commands to show the resolved configuration, write a default
config file, and test clipboard text against the configured patterns.
"""

from pathlib import Path
from typing import Annotated

import typer
from rich.markup import escape
from rich.table import Table
from rich.text import Text

from klipexpire.cli.types import (
    ConfigPathOption,
    DenyOption,
    ExpiryOption,
    IntervalOption,
    KeepOption,
    build_overrides,
    resolve_or_exit,
)
from klipexpire.core.config import ConfigError, get_default_file_config, save_file_config
from klipexpire.core.paths import get_config_path
from klipexpire.core.patterns import Verdict
from klipexpire.utils.formatting import console, print_error, print_success, print_warning

app = typer.Typer(
    help="Inspect and initialize configuration.",
    no_args_is_help=True,
)

VERDICT_HINTS: dict[Verdict, str] = {
    Verdict.DENY: "removed on the next tick",
    Verdict.KEEP: "never expired by age",
    Verdict.NEUTRAL: "expired after the expiry window",
}


def _patterns_cell(patterns: tuple[str, ...]) -> Text:
    # Text cells are not parsed as markup, so brackets in regexes survive
    if not patterns:
        return Text("(none)", style="muted")
    return Text("\n".join(patterns))


@app.command()
def show(
    config_path: ConfigPathOption = None,
    expiry_seconds: ExpiryOption = None,
    interval_seconds: IntervalOption = None,
    deny: DenyOption = None,
    keep: KeepOption = None,
) -> None:
    """Show the configuration after merging file and command-line values."""
    config = resolve_or_exit(
        config_path,
        build_overrides(expiry_seconds, interval_seconds, deny, keep),
    )

    table = Table(
        title="Resolved Configuration",
        show_header=True,
        header_style="bold_header",
        border_style="border",
    )
    table.add_column("Key", no_wrap=True)
    table.add_column("Value")

    table.add_row("item_expiry_seconds", str(config.expiry_seconds))
    table.add_row("update_interval_seconds", str(config.interval_seconds))
    table.add_row("ipc_timeout_seconds", str(config.ipc_timeout_seconds))
    table.add_row("listen_for_updates", str(config.listen).lower())
    table.add_row("always_remove_patterns", _patterns_cell(config.deny_patterns))
    table.add_row("never_remove_patterns", _patterns_cell(config.keep_patterns))

    console.print(table)
    source = str(config.source) if config.source else "(defaults only, no config file)"
    console.print(f"\n[dim]Source: {escape(source)}[/dim]")


@app.command()
def init(
    path: Annotated[
        Path | None,
        typer.Option(
            "--path",
            "-p",
            help="Where to write the file (default: ~/.config/klipexpire/config.toml).",
            dir_okay=False,
        ),
    ] = None,
    force: Annotated[
        bool,
        typer.Option("--force", "-f", help="Overwrite an existing config file."),
    ] = False,
) -> None:
    """Write a config file populated with the default settings."""
    target = path or get_config_path()
    if target.exists() and not force:
        print_warning(f"Config file already exists: {target}")
        print_warning("Use --force to overwrite.")
        raise typer.Exit(code=1)

    try:
        written = save_file_config(get_default_file_config(), target)
    except ConfigError as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e

    print_success(f"Wrote default config to {written}")


@app.command()
def classify(
    text: Annotated[str, typer.Argument(help="Clipboard text to test.")],
    config_path: ConfigPathOption = None,
    deny: DenyOption = None,
    keep: KeepOption = None,
) -> None:
    """Show how a piece of clipboard text would be treated."""
    config = resolve_or_exit(config_path, build_overrides(deny=deny, keep=keep))
    verdict = config.pattern_filter.classify(text)
    console.print(
        f"[verdict.{verdict.value}]{verdict.value.upper()}[/]: {VERDICT_HINTS[verdict]}"
    )
