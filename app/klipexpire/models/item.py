"""Clipboard item model.

This module defines the value object for a single clipboard history entry
and the content fingerprint used to track it across polls.
"""

import hashlib
from dataclasses import dataclass, field


def fingerprint(content: str) -> str:
    """Compute the stable identity of a piece of clipboard content.

    The clipboard manager offers no identifier that survives between
    history reads, so entries are keyed by a hash of their text.

    Args:
        content: Raw clipboard text.

    Returns:
        Lowercase hex SHA-256 digest of the UTF-8 encoded content.
    """
    return hashlib.sha256(content.encode("utf-8")).hexdigest()


@dataclass(frozen=True, slots=True)
class ClipboardItem:
    """A single entry in the clipboard manager's history.

    Attributes:
        content: Text of the entry.
        position: Index in the newest-first history snapshot this item was
            read from, if known. Not part of the item's identity.
    """

    content: str
    position: int | None = field(default=None, compare=False)

    @property
    def fingerprint(self) -> str:
        """Content fingerprint used as the tracking key."""
        return fingerprint(self.content)

    @property
    def short_id(self) -> str:
        """Abbreviated fingerprint, safe to show in logs."""
        return self.fingerprint[:12]
