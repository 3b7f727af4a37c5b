"""Periodic reconciliation of clipboard history.

The Scheduler owns the expiry store and the pattern filter. Each tick
fetches the live history, removes denied entries, expires entries older
than the expiry window, and forgets entries that vanished on their own.

Ticks only ever run on the thread that calls ``run()`` (or ``tick()``
directly). Other threads request extra ticks through ``notify()``, which
enqueues a wakeup instead of touching any state.
"""

import logging
import queue
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass

from klipexpire.core.patterns import PatternFilter, Verdict
from klipexpire.core.store import ExpiryStore
from klipexpire.gateway.base import ClipboardGateway, GatewayUnavailableError, ItemNotFoundError
from klipexpire.models.item import ClipboardItem

logger = logging.getLogger(__name__)

_WAKE = "wake"
_STOP = "stop"


@dataclass(frozen=True, slots=True)
class TickReport:
    """Outcome of a single tick.

    Attributes:
        started_at: Monotonic time the tick ran at.
        denied: Fingerprints removed for matching a deny pattern.
        expired: Fingerprints removed for exceeding the expiry window.
        forgotten: Fingerprints dropped because they left history externally.
        skipped: True if the tick did not run because another was in progress.
        error: Description of the transient failure that aborted the tick.
    """

    started_at: float
    denied: tuple[str, ...] = ()
    expired: tuple[str, ...] = ()
    forgotten: tuple[str, ...] = ()
    skipped: bool = False
    error: str | None = None

    @property
    def aborted(self) -> bool:
        """Check if the tick stopped early on a gateway failure."""
        return self.error is not None

    @property
    def removed(self) -> int:
        """Number of entries removed this tick, counting ones already gone from history."""
        return len(self.denied) + len(self.expired)


@dataclass(slots=True)
class SchedulerState:
    """Mutable loop bookkeeping owned by a Scheduler.

    Attributes:
        in_progress: A tick is currently executing.
        last_tick_at: Monotonic start time of the most recent tick.
        ticks: Ticks started.
        skipped_ticks: Ticks refused because one was already running.
        failed_ticks: Ticks aborted on a gateway failure.
    """

    in_progress: bool = False
    last_tick_at: float | None = None
    ticks: int = 0
    skipped_ticks: int = 0
    failed_ticks: int = 0


class Scheduler:
    """Drives the fetch, deny, expire, reconcile cycle.

    Example:
        >>> scheduler = Scheduler(gateway, pattern_filter, expiry_seconds=600, interval_seconds=30)
        >>> report = scheduler.tick()
        >>> report.removed
        0
    """

    def __init__(
        self,
        gateway: ClipboardGateway,
        pattern_filter: PatternFilter,
        *,
        expiry_seconds: float,
        interval_seconds: float,
        store: ExpiryStore | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize the scheduler.

        Args:
            gateway: Clipboard manager backend.
            pattern_filter: Compiled deny/keep patterns.
            expiry_seconds: Age at which neutral entries are removed.
            interval_seconds: Delay between periodic ticks.
            store: Expiry store to use. A fresh one is created if None.
            clock: Monotonic time source.

        Raises:
            ValueError: If expiry_seconds or interval_seconds is not positive.
        """
        if expiry_seconds <= 0:
            msg = f"expiry_seconds must be greater than zero (got {expiry_seconds})"
            raise ValueError(msg)
        if interval_seconds <= 0:
            msg = f"interval_seconds must be greater than zero (got {interval_seconds})"
            raise ValueError(msg)

        self._gateway = gateway
        self._filter = pattern_filter
        self._expiry = expiry_seconds
        self._interval = interval_seconds
        self._store = store if store is not None else ExpiryStore()
        self._clock = clock
        self._lock = threading.Lock()
        self._wakeups: queue.Queue[str] = queue.Queue()
        self._stop = threading.Event()
        self.state = SchedulerState()

    @property
    def store(self) -> ExpiryStore:
        """The expiry store owned by this scheduler."""
        return self._store

    @property
    def expiry_seconds(self) -> float:
        """Expiry window in seconds."""
        return self._expiry

    @property
    def interval_seconds(self) -> float:
        """Delay between periodic ticks in seconds."""
        return self._interval

    def tick(self, now: float | None = None) -> TickReport:
        """Run one reconciliation cycle.

        The tick is skipped if another tick is still running. Gateway
        failures abort the tick; the next tick starts again from a fresh
        history read.

        Args:
            now: Monotonic time to evaluate ages against. Defaults to the clock.

        Returns:
            TickReport describing what happened.
        """
        if now is None:
            now = self._clock()

        if not self._lock.acquire(blocking=False):
            self.state.skipped_ticks += 1
            logger.info("Previous tick still running; skipping (%d skipped)", self.state.skipped_ticks)
            return TickReport(started_at=now, skipped=True)

        try:
            self.state.in_progress = True
            self.state.last_tick_at = now
            self.state.ticks += 1
            return self._run_tick(now)
        finally:
            self.state.in_progress = False
            self._lock.release()

    def _run_tick(self, now: float) -> TickReport:
        denied: list[str] = []
        expired: list[str] = []

        try:
            history = self._gateway.list_history()
        except GatewayUnavailableError as e:
            return self._abort(now, e, denied, expired)

        # Duplicate contents collapse onto the first (newest) occurrence
        live: dict[str, ClipboardItem] = {}
        for item in history:
            live.setdefault(item.fingerprint, item)

        for fp, item in live.items():
            if fp in self._store:
                continue
            if self._filter.classify(item.content) is Verdict.DENY:
                try:
                    self._remove(item)
                except GatewayUnavailableError as e:
                    return self._abort(now, e, denied, expired)
                denied.append(fp)
                logger.info("Removed entry %s matching a deny pattern", item.short_id)
            else:
                self._store.observe(fp, now)

        for fp, item in live.items():
            age = self._store.age_of(fp, now)
            if age is None or age < self._expiry:
                continue
            if self._filter.classify(item.content) is not Verdict.NEUTRAL:
                continue
            try:
                self._remove(item)
            except GatewayUnavailableError as e:
                return self._abort(now, e, denied, expired)
            self._store.drop(fp)
            expired.append(fp)
            logger.info("Expired entry %s after %.0fs", item.short_id, age)

        forgotten = self._store.reconcile(live.keys())

        return TickReport(
            started_at=now,
            denied=tuple(denied),
            expired=tuple(expired),
            forgotten=tuple(sorted(forgotten)),
        )

    def _remove(self, item: ClipboardItem) -> None:
        try:
            self._gateway.remove(item)
        except ItemNotFoundError:
            logger.debug("Entry %s already gone from history", item.short_id)

    def _abort(
        self,
        now: float,
        error: GatewayUnavailableError,
        denied: list[str],
        expired: list[str],
    ) -> TickReport:
        self.state.failed_ticks += 1
        logger.warning("Clipboard manager unavailable, retrying next tick: %s", error)
        return TickReport(
            started_at=now,
            denied=tuple(denied),
            expired=tuple(expired),
            error=str(error),
        )

    def notify(self) -> None:
        """Request an extra tick as soon as possible. Safe from any thread."""
        self._wakeups.put(_WAKE)

    def request_stop(self) -> None:
        """Ask ``run()`` to return after the current tick. Safe from any thread."""
        self._stop.set()
        self._wakeups.put(_STOP)

    def run(self) -> None:
        """Tick immediately, then every interval until a stop is requested.

        Wakeups from ``notify()`` trigger an early tick. Several wakeups
        arriving during one wait are coalesced into a single tick.
        """
        logger.info(
            "Starting clipboard expiry loop (expiry=%gs, interval=%gs)",
            self._expiry,
            self._interval,
        )
        while not self._stop.is_set():
            report = self.tick()
            if report.removed:
                logger.info(
                    "Tick removed %d entries (%d denied, %d expired)",
                    report.removed,
                    len(report.denied),
                    len(report.expired),
                )
            self._wait_until(report.started_at + self._interval)

        logger.info(
            "Scheduler stopped after %d ticks (%d failed, %d skipped)",
            self.state.ticks,
            self.state.failed_ticks,
            self.state.skipped_ticks,
        )

    def _wait_until(self, deadline: float) -> None:
        timeout = max(0.0, deadline - self._clock())
        try:
            self._wakeups.get(timeout=timeout)
        except queue.Empty:
            return
        while True:
            try:
                self._wakeups.get_nowait()
            except queue.Empty:
                break
