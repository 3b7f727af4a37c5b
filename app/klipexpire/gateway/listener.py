"""Push notifications for Klipper history changes.

Runs ``gdbus monitor`` in a background thread and invokes a callback for
every ``clipboardHistoryUpdated`` signal. The callback is expected to only
enqueue a wakeup; all history processing stays on the scheduler thread.
"""

import logging
import subprocess
import threading
from collections.abc import Callable

from klipexpire.gateway.klipper import KLIPPER_INTERFACE, KLIPPER_OBJECT_PATH, KLIPPER_SERVICE
from klipexpire.utils.shell import stream_lines

logger = logging.getLogger(__name__)

HISTORY_UPDATED_SIGNAL = f"{KLIPPER_INTERFACE}.clipboardHistoryUpdated"


class HistoryListener:
    """Background watcher for Klipper's history-updated signal.

    Example:
        >>> listener = HistoryListener(scheduler.notify)
        >>> if not listener.start():
        ...     print("polling only")
        >>> listener.stop()
    """

    def __init__(self, notify: Callable[[], None]) -> None:
        """Initialize the listener.

        Args:
            notify: Called from the listener thread on every signal.
        """
        self._notify = notify
        self._process: subprocess.Popen[str] | None = None
        self._thread: threading.Thread | None = None
        self._stopping = threading.Event()

    @property
    def running(self) -> bool:
        """Check if the monitor thread is alive."""
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> bool:
        """Start monitoring.

        Returns:
            True if the monitor was started, False if it could not be
            launched (the caller should rely on polling alone).
        """
        try:
            self._process = stream_lines(
                [
                    "gdbus",
                    "monitor",
                    "--session",
                    "--dest",
                    KLIPPER_SERVICE,
                    "--object-path",
                    KLIPPER_OBJECT_PATH,
                ]
            )
        except OSError as e:
            logger.warning("Cannot subscribe to Klipper signals (%s); polling only", e)
            return False

        self._thread = threading.Thread(
            target=self._read_signals,
            name="klipexpire-listener",
            daemon=True,
        )
        self._thread.start()
        logger.info("Listening for Klipper history updates")
        return True

    def stop(self, timeout: float = 2.0) -> None:
        """Terminate the monitor process and wait for the thread to exit."""
        self._stopping.set()
        process = self._process
        if process is not None and process.poll() is None:
            process.terminate()
            try:
                process.wait(timeout=timeout)
            except subprocess.TimeoutExpired:
                process.kill()
                process.wait()
        if self._thread is not None:
            self._thread.join(timeout=timeout)
        # The reader thread must be gone before its pipe is closed
        if process is not None and process.stdout is not None and not self.running:
            process.stdout.close()

    def _read_signals(self) -> None:
        process = self._process
        if process is None or process.stdout is None:
            return

        for line in process.stdout:
            if HISTORY_UPDATED_SIGNAL in line:
                logger.debug("Klipper reported a history update")
                self._notify()

        if not self._stopping.is_set():
            logger.warning(
                "Klipper signal monitor exited (code %s); continuing with polling only",
                process.poll(),
            )
