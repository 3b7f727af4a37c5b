"""First-seen bookkeeping for clipboard entries.

The store maps content fingerprints to the monotonic time at which each
entry was first observed in the live history. It holds no clipboard text
and never talks to the clipboard manager.
"""

import logging
from collections.abc import Iterable

logger = logging.getLogger(__name__)


class ExpiryStore:
    """In-memory fingerprint -> first-seen timestamp map.

    All state is process-lifetime only. After a restart the first tick
    re-observes every present entry as new.

    Example:
        >>> store = ExpiryStore()
        >>> store.observe("ab12", now=100.0)
        True
        >>> store.age_of("ab12", now=160.0)
        60.0
    """

    def __init__(self) -> None:
        self._first_seen: dict[str, float] = {}

    def __contains__(self, fingerprint: object) -> bool:
        return fingerprint in self._first_seen

    def __len__(self) -> int:
        return len(self._first_seen)

    def fingerprints(self) -> frozenset[str]:
        """Return a snapshot of all tracked fingerprints."""
        return frozenset(self._first_seen)

    def first_seen(self, fingerprint: str) -> float | None:
        """Return the recorded first-seen time, or None if untracked."""
        return self._first_seen.get(fingerprint)

    def observe(self, fingerprint: str, now: float) -> bool:
        """Record a fingerprint's first-seen time if not already tracked.

        An existing record is never overwritten, so the timestamp does not
        move while the entry stays in history.

        Args:
            fingerprint: Content fingerprint.
            now: Current monotonic time in seconds.

        Returns:
            True if the fingerprint was not tracked before this call.
        """
        if fingerprint in self._first_seen:
            return False
        self._first_seen[fingerprint] = now
        logger.debug("Tracking new entry %s", fingerprint[:12])
        return True

    def age_of(self, fingerprint: str, now: float) -> float | None:
        """Return seconds since first sighting, or None if untracked."""
        seen = self._first_seen.get(fingerprint)
        if seen is None:
            return None
        return now - seen

    def drop(self, fingerprint: str) -> None:
        """Forget a fingerprint. Does nothing if it is not tracked."""
        self._first_seen.pop(fingerprint, None)

    def reconcile(self, live_fingerprints: Iterable[str]) -> set[str]:
        """Forget every tracked fingerprint absent from the live history.

        Used to catch up with entries the clipboard manager evicted on its
        own. No removal is issued for them.

        Args:
            live_fingerprints: Fingerprints currently present in history.

        Returns:
            The fingerprints that were dropped.
        """
        live = set(live_fingerprints)
        gone = {fp for fp in self._first_seen if fp not in live}
        for fp in gone:
            del self._first_seen[fp]
        if gone:
            logger.debug("Forgot %d entries evicted externally", len(gone))
        return gone
