"""Main CLI application entry point.

Defines the Typer application and global options.
"""

from typing import Annotated

import typer

from klipexpire import __version__
from klipexpire.cli.commands import config, run
from klipexpire.utils.formatting import configure_logging

# Create main Typer app
app = typer.Typer(
    name="klipexpire",
    help="Expire stale and sensitive entries from Klipper's clipboard history.",
    no_args_is_help=True,
    rich_markup_mode="rich",
    context_settings={"help_option_names": ["-h", "--help"]},
)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"klipexpire version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    ctx: typer.Context,
    version: Annotated[
        bool | None,
        typer.Option(
            "--version",
            "-V",
            callback=version_callback,
            is_eager=True,
            help="Show version and exit.",
        ),
    ] = None,
    verbose: Annotated[
        int,
        typer.Option(
            "--verbose",
            "-v",
            count=True,
            help="Log more verbosely. Repeat for debug output.",
        ),
    ] = 0,
    quiet: Annotated[
        bool,
        typer.Option(
            "--quiet",
            "-q",
            help="Only log errors.",
        ),
    ] = False,
) -> None:
    """klipexpire - Keep Klipper's clipboard history free of stale secrets.

    Entries older than the expiry window are removed, entries matching an
    always-remove pattern are removed immediately, and entries matching a
    never-remove pattern are exempt from expiry.
    """
    configure_logging(verbose, quiet)
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet


# Register commands
app.add_typer(run.app, name="run")
app.add_typer(config.app, name="config")


if __name__ == "__main__":
    app()
