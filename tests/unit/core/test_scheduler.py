"""Unit tests for Scheduler.

Tests for the tick cycle (deny, expire, reconcile), failure handling,
overlap protection and the wakeup-driven run loop.
"""

import threading
from unittest.mock import patch

import pytest
from fakes import FakeClock, FakeGateway
from klipexpire.core.patterns import PatternFilter
from klipexpire.core.scheduler import Scheduler, TickReport
from klipexpire.gateway.base import ClipboardGateway, ItemNotFoundError
from klipexpire.models.item import ClipboardItem, fingerprint


def make_scheduler(
    gateway: ClipboardGateway,
    clock: FakeClock | None = None,
    deny: tuple[str, ...] = (),
    keep: tuple[str, ...] = (),
    expiry: float = 600,
    interval: float = 10,
) -> Scheduler:
    """Create a Scheduler with compiled patterns."""
    return Scheduler(
        gateway,
        PatternFilter.from_patterns(deny=deny, keep=keep),
        expiry_seconds=expiry,
        interval_seconds=interval,
        clock=clock or FakeClock(),
    )


class TestSchedulerInit:
    """Tests for Scheduler construction."""

    def test_rejects_zero_expiry(self, gateway: FakeGateway) -> None:
        """A non-positive expiry window is rejected."""
        with pytest.raises(ValueError, match="expiry_seconds"):
            make_scheduler(gateway, expiry=0)

    def test_rejects_negative_interval(self, gateway: FakeGateway) -> None:
        """A non-positive interval is rejected."""
        with pytest.raises(ValueError, match="interval_seconds"):
            make_scheduler(gateway, interval=-1)


class TestExpiry:
    """Tests for age-based removal."""

    def test_removed_on_first_tick_past_window(self) -> None:
        """An entry seen at t=0 survives every tick before t=600 and goes at t=600."""
        gateway = FakeGateway(["foo"])
        scheduler = make_scheduler(gateway)

        scheduler.tick(now=0)
        for t in range(10, 600, 10):
            report = scheduler.tick(now=t)
            assert report.removed == 0
            assert gateway.entries == ["foo"]

        report = scheduler.tick(now=600)

        assert report.expired == (fingerprint("foo"),)
        assert gateway.entries == []
        assert fingerprint("foo") not in scheduler.store

    def test_present_at_590_removed_by_610(self) -> None:
        """expiry=600, interval=10: present at t=590, gone at the tick at t=610."""
        gateway = FakeGateway(["foo"])
        scheduler = make_scheduler(gateway)

        scheduler.tick(now=0)
        scheduler.tick(now=590)
        assert gateway.entries == ["foo"]

        scheduler.tick(now=610)
        assert gateway.entries == []

    def test_age_measured_from_first_sighting(self) -> None:
        """The window starts when the entry was first observed, not at startup."""
        gateway = FakeGateway()
        scheduler = make_scheduler(gateway)
        scheduler.tick(now=0)

        gateway.copy("bar")
        scheduler.tick(now=5)
        assert scheduler.tick(now=604.9).removed == 0

        assert scheduler.tick(now=605).expired == (fingerprint("bar"),)

    def test_only_expired_entries_removed(self) -> None:
        """Younger entries stay when an older one expires."""
        gateway = FakeGateway(["old"])
        scheduler = make_scheduler(gateway)
        scheduler.tick(now=0)
        gateway.copy("young")
        scheduler.tick(now=300)

        scheduler.tick(now=600)

        assert gateway.entries == ["young"]
        assert scheduler.store.first_seen(fingerprint("young")) == 300

    def test_recopied_entry_starts_new_record(self) -> None:
        """An expired entry copied again is tracked from its new sighting."""
        gateway = FakeGateway(["foo"])
        scheduler = make_scheduler(gateway)
        scheduler.tick(now=0)
        scheduler.tick(now=600)

        gateway.copy("foo")
        scheduler.tick(now=700)

        assert scheduler.store.first_seen(fingerprint("foo")) == 700
        assert gateway.entries == ["foo"]


class TestDenyPatterns:
    """Tests for immediate removal of denied entries."""

    def test_denied_entry_removed_on_next_tick(self) -> None:
        """A denied entry is removed by the first tick that sees it, regardless of age."""
        gateway = FakeGateway()
        scheduler = make_scheduler(gateway, deny=("^ssh-ed25519",))
        scheduler.tick(now=0)

        gateway.copy("ssh-ed25519 AAAAC3NzaC1lZDI1NTE5")
        report = scheduler.tick(now=1)

        assert report.denied == (fingerprint("ssh-ed25519 AAAAC3NzaC1lZDI1NTE5"),)
        assert gateway.entries == []

    def test_denied_entry_never_tracked(self) -> None:
        """Denied entries do not enter the expiry store."""
        gateway = FakeGateway(["ssh-ed25519 AAAA", "foo"])
        scheduler = make_scheduler(gateway, deny=("^ssh-ed25519",))

        scheduler.tick(now=0)

        assert fingerprint("ssh-ed25519 AAAA") not in scheduler.store
        assert fingerprint("foo") in scheduler.store

    def test_deny_beats_keep(self) -> None:
        """An entry matching both sets is removed immediately."""
        gateway = FakeGateway(["ssh-ed25519 keep this"])
        scheduler = make_scheduler(gateway, deny=("^ssh-ed25519",), keep=("keep this",))

        report = scheduler.tick(now=0)

        assert len(report.denied) == 1
        assert gateway.entries == []

    def test_duplicate_contents_removed_once(self) -> None:
        """Duplicate history entries share a fingerprint and one removal call."""
        gateway = FakeGateway(["secret", "foo", "secret"])
        scheduler = make_scheduler(gateway, deny=("secret",))

        scheduler.tick(now=0)

        assert gateway.remove_calls == ["secret"]
        assert gateway.entries == ["foo"]


class TestKeepPatterns:
    """Tests for keep-pattern exemption."""

    def test_kept_entry_never_aged_out(self) -> None:
        """A kept entry survives ten expiry windows without removal calls."""
        gateway = FakeGateway(["please keep this note"])
        scheduler = make_scheduler(gateway, keep=("keep this",))

        for t in (0, 600, 3000, 6000, 6010):
            assert scheduler.tick(now=t).removed == 0

        assert gateway.remove_calls == []
        assert gateway.entries == ["please keep this note"]

    def test_external_eviction_reconciled_silently(self) -> None:
        """A kept entry evicted by the manager is forgotten without a removal call."""
        gateway = FakeGateway(["please keep this note"])
        scheduler = make_scheduler(gateway, keep=("keep this",))
        scheduler.tick(now=0)
        scheduler.tick(now=6000)

        gateway.evict("please keep this note")
        report = scheduler.tick(now=6010)

        assert report.forgotten == (fingerprint("please keep this note"),)
        assert gateway.remove_calls == []
        assert len(scheduler.store) == 0

    def test_kept_and_neutral_side_by_side(self) -> None:
        """Only the neutral entry expires when both are past the window."""
        gateway = FakeGateway(["please keep this note", "foo"])
        scheduler = make_scheduler(gateway, keep=("keep this",))
        scheduler.tick(now=0)

        report = scheduler.tick(now=600)

        assert report.expired == (fingerprint("foo"),)
        assert gateway.entries == ["please keep this note"]


class TestIdempotence:
    """Tests for repeated ticks over unchanged history."""

    def test_unchanged_history_issues_no_removals(self) -> None:
        """A second tick over the same history makes no removal calls."""
        gateway = FakeGateway(["a", "b"])
        scheduler = make_scheduler(gateway)

        scheduler.tick(now=0)
        report = scheduler.tick(now=5)

        assert report == TickReport(started_at=5)
        assert gateway.remove_calls == []

    def test_no_repeat_after_removal(self) -> None:
        """The tick after a removal does not remove anything again."""
        gateway = FakeGateway(["a"])
        scheduler = make_scheduler(gateway)
        scheduler.tick(now=0)
        scheduler.tick(now=600)

        scheduler.tick(now=610)

        assert gateway.remove_calls == ["a"]


class TestFailureHandling:
    """Tests for transient and expected-absent gateway failures."""

    def test_list_failure_aborts_without_mutation(self) -> None:
        """A failed history read leaves the store untouched."""
        gateway = FakeGateway(["a"])
        scheduler = make_scheduler(gateway)
        scheduler.tick(now=0)

        gateway.fail_list = True
        report = scheduler.tick(now=700)

        assert report.aborted
        assert "unavailable" in (report.error or "")
        assert scheduler.store.first_seen(fingerprint("a")) == 0
        assert scheduler.state.failed_ticks == 1

    def test_retry_after_list_failure(self) -> None:
        """The next tick starts from scratch and completes the removal."""
        gateway = FakeGateway(["a"])
        scheduler = make_scheduler(gateway)
        scheduler.tick(now=0)
        gateway.fail_list = True
        scheduler.tick(now=700)

        gateway.fail_list = False
        report = scheduler.tick(now=710)

        assert report.expired == (fingerprint("a"),)
        assert gateway.entries == []

    def test_remove_failure_keeps_record(self) -> None:
        """A failed expiry removal does not drop the record."""
        gateway = FakeGateway(["a"])
        scheduler = make_scheduler(gateway)
        scheduler.tick(now=0)

        gateway.fail_remove = {"a"}
        report = scheduler.tick(now=600)

        assert report.aborted
        assert report.expired == ()
        assert scheduler.store.first_seen(fingerprint("a")) == 0

        gateway.fail_remove = set()
        assert scheduler.tick(now=610).expired == (fingerprint("a"),)

    def test_abort_skips_reconcile(self) -> None:
        """An aborted tick does not reconcile externally evicted entries."""
        gateway = FakeGateway(["a", "b"])
        scheduler = make_scheduler(gateway)
        scheduler.tick(now=0)

        gateway.evict("b")
        gateway.fail_remove = {"a"}
        scheduler.tick(now=600)

        assert fingerprint("b") in scheduler.store

    def test_denied_removal_failure_retried(self) -> None:
        """A denied entry whose removal failed is retried on the next tick."""
        gateway = FakeGateway(["secret"])
        scheduler = make_scheduler(gateway, deny=("secret",))

        gateway.fail_remove = {"secret"}
        first = scheduler.tick(now=0)
        assert first.aborted
        assert fingerprint("secret") not in scheduler.store

        gateway.fail_remove = set()
        second = scheduler.tick(now=10)
        assert second.denied == (fingerprint("secret"),)
        assert gateway.entries == []

    def test_not_found_counts_as_success(self) -> None:
        """ItemNotFoundError from the gateway still drops the record."""
        gateway = FakeGateway(["a"])
        scheduler = make_scheduler(gateway)
        scheduler.tick(now=0)

        with patch.object(gateway, "remove", side_effect=ItemNotFoundError("gone")):
            report = scheduler.tick(now=600)

        assert not report.aborted
        assert report.expired == (fingerprint("a"),)
        assert report.removed == 1
        assert fingerprint("a") not in scheduler.store


class TestOverlap:
    """Tests for overlapping tick protection."""

    def test_reentrant_tick_is_skipped(self, gateway: FakeGateway) -> None:
        """A tick requested while one is running is skipped and counted."""
        scheduler = make_scheduler(gateway)
        inner: list[TickReport] = []

        def reentrant_list() -> list[ClipboardItem]:
            inner.append(scheduler.tick(now=1))
            return []

        with patch.object(gateway, "list_history", side_effect=reentrant_list):
            outer = scheduler.tick(now=0)

        assert inner[0].skipped
        assert not outer.skipped
        assert scheduler.state.ticks == 1
        assert scheduler.state.skipped_ticks == 1
        assert scheduler.state.in_progress is False

    def test_state_records_last_tick(self, gateway: FakeGateway) -> None:
        """The scheduler remembers when it last ticked."""
        scheduler = make_scheduler(gateway)

        scheduler.tick(now=42)

        assert scheduler.state.last_tick_at == 42
        assert scheduler.state.ticks == 1


class SignallingGateway(FakeGateway):
    """FakeGateway that releases a semaphore on every history read."""

    def __init__(self, entries: list[str] | None = None) -> None:
        super().__init__(entries)
        self.reads = threading.Semaphore(0)

    def list_history(self) -> list[ClipboardItem]:
        items = super().list_history()
        self.reads.release()
        return items


class TestRunLoop:
    """Tests for Scheduler.run with wakeups and stop requests."""

    def _start(self, scheduler: Scheduler) -> threading.Thread:
        thread = threading.Thread(target=scheduler.run, daemon=True)
        thread.start()
        return thread

    def test_stop_before_run_does_not_tick(self) -> None:
        """run returns immediately if a stop was already requested."""
        gateway = SignallingGateway()
        scheduler = Scheduler(
            gateway, PatternFilter(), expiry_seconds=600, interval_seconds=3600
        )
        scheduler.request_stop()

        scheduler.run()

        assert scheduler.state.ticks == 0

    def test_notify_triggers_extra_tick(self) -> None:
        """notify wakes the loop before the interval elapses."""
        gateway = SignallingGateway()
        scheduler = Scheduler(
            gateway, PatternFilter(), expiry_seconds=600, interval_seconds=3600
        )
        thread = self._start(scheduler)

        assert gateway.reads.acquire(timeout=5)
        scheduler.notify()
        assert gateway.reads.acquire(timeout=5)

        scheduler.request_stop()
        thread.join(timeout=5)
        assert not thread.is_alive()
        assert scheduler.state.ticks == 2

    def test_wakeups_coalesce(self) -> None:
        """Several pending wakeups produce a single extra tick."""
        gateway = SignallingGateway()
        scheduler = Scheduler(
            gateway, PatternFilter(), expiry_seconds=600, interval_seconds=3600
        )
        for _ in range(3):
            scheduler.notify()

        thread = self._start(scheduler)
        assert gateway.reads.acquire(timeout=5)
        assert gateway.reads.acquire(timeout=5)
        scheduler.request_stop()
        thread.join(timeout=5)

        assert not thread.is_alive()
        assert scheduler.state.ticks == 2

    def test_periodic_ticks(self) -> None:
        """Without wakeups the loop ticks once per interval."""
        gateway = SignallingGateway()
        scheduler = Scheduler(
            gateway, PatternFilter(), expiry_seconds=600, interval_seconds=0.01
        )
        thread = self._start(scheduler)

        for _ in range(3):
            assert gateway.reads.acquire(timeout=5)

        scheduler.request_stop()
        thread.join(timeout=5)
        assert not thread.is_alive()
        assert scheduler.state.ticks >= 3
