"""Run command implementation.

Starts the expiry loop against Klipper, or performs a single tick with
``--once``.
"""

import signal
import threading
from types import FrameType
from typing import Annotated

import typer

from klipexpire.cli.types import (
    ConfigPathOption,
    DenyOption,
    ExpiryOption,
    IntervalOption,
    KeepOption,
    build_overrides,
    resolve_or_exit,
)
from klipexpire.core.config import ResolvedConfig
from klipexpire.core.scheduler import Scheduler, TickReport
from klipexpire.gateway.base import ClipboardGateway
from klipexpire.gateway.klipper import KlipperGateway
from klipexpire.gateway.listener import HistoryListener
from klipexpire.utils.formatting import console, print_error, print_info, print_warning

app = typer.Typer(
    help="Expire clipboard history entries.",
    invoke_without_command=True,
)


def create_gateway(config: ResolvedConfig) -> ClipboardGateway:
    """Build the clipboard gateway for the resolved configuration."""
    return KlipperGateway(timeout=float(config.ipc_timeout_seconds))


def _print_report(report: TickReport, tracked: int) -> None:
    """Print a one-line summary of a tick."""
    console.print(
        f"Removed [bold]{report.removed}[/bold] entries "
        f"([verdict.deny]{len(report.denied)} denied[/], "
        f"[info]{len(report.expired)} expired[/]); "
        f"tracking [bold]{tracked}[/bold] entries"
    )


@app.callback(invoke_without_command=True)
def run_daemon(
    config_path: ConfigPathOption = None,
    expiry_seconds: ExpiryOption = None,
    interval_seconds: IntervalOption = None,
    deny: DenyOption = None,
    keep: KeepOption = None,
    once: Annotated[
        bool,
        typer.Option(
            "--once",
            help="Run a single reconciliation and exit.",
        ),
    ] = False,
    no_listen: Annotated[
        bool,
        typer.Option(
            "--no-listen",
            help="Do not subscribe to Klipper update signals; poll only.",
        ),
    ] = False,
) -> None:
    """Watch Klipper's history and remove stale or denied entries."""
    overrides = build_overrides(
        expiry_seconds=expiry_seconds,
        interval_seconds=interval_seconds,
        deny=deny,
        keep=keep,
        listen=False if no_listen else None,
    )
    config = resolve_or_exit(config_path, overrides)

    gateway = create_gateway(config)
    if not gateway.is_available():
        print_error("gdbus not found. Install the GLib command-line tools (libglib2.0-bin).")
        raise typer.Exit(code=1)

    scheduler = Scheduler(
        gateway,
        config.pattern_filter,
        expiry_seconds=config.expiry_seconds,
        interval_seconds=config.interval_seconds,
    )

    if once:
        report = scheduler.tick()
        if report.aborted:
            print_warning(f"Tick aborted: {report.error}")
            raise typer.Exit(code=1)
        _print_report(report, len(scheduler.store))
        return

    _run_loop(scheduler, listen=config.listen)


def _run_loop(scheduler: Scheduler, listen: bool) -> None:
    """Run the scheduler on a worker thread until SIGINT or SIGTERM.

    Signals are handled on the main thread, which only asks the scheduler
    to stop; the worker thread remains the sole owner of tick state.
    """
    failures: list[Exception] = []

    def _work() -> None:
        try:
            scheduler.run()
        except Exception as e:  # re-raised on the main thread below
            failures.append(e)

    def _handle_signal(signum: int, frame: FrameType | None) -> None:
        scheduler.request_stop()

    previous = {
        sig: signal.signal(sig, _handle_signal) for sig in (signal.SIGINT, signal.SIGTERM)
    }

    listener = HistoryListener(scheduler.notify) if listen else None
    worker = threading.Thread(target=_work, name="klipexpire-scheduler", daemon=True)
    try:
        if listener is not None and not listener.start():
            print_warning("Could not subscribe to Klipper updates; polling only.")
        worker.start()
        print_info(
            f"Expiring entries after {scheduler.expiry_seconds:g}s, "
            f"checking every {scheduler.interval_seconds:g}s. Press Ctrl+C to stop."
        )
        while worker.is_alive():
            worker.join(timeout=0.5)
    finally:
        if listener is not None:
            listener.stop()
        for sig, handler in previous.items():
            signal.signal(sig, handler)

    if failures:
        print_error(f"Expiry loop crashed: {failures[0]}")
        raise typer.Exit(code=1) from failures[0]

    print_info("Stopped.")
