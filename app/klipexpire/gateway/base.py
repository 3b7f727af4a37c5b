"""Abstract base class for clipboard manager gateways.

This module defines the ClipboardGateway interface that every clipboard
manager backend must implement, along with the errors it may raise.
"""

from abc import ABC, abstractmethod

from klipexpire.models.item import ClipboardItem


class GatewayError(Exception):
    """Base exception for clipboard gateway errors."""


class GatewayUnavailableError(GatewayError):
    """Raised when the clipboard manager cannot be reached.

    Covers a missing bus or service, call timeouts, and unparsable
    replies. The condition is transient and the operation may be retried.
    """


class ItemNotFoundError(GatewayError):
    """Raised when removing an entry that is no longer in history."""


class ClipboardGateway(ABC):
    """Abstract base class for clipboard manager backends.

    Every call is bounded by a timeout. Failures to reach the manager
    raise GatewayUnavailableError rather than blocking.

    Example:
        >>> gateway = KlipperGateway(timeout=5.0)
        >>> if gateway.is_available():
        ...     for item in gateway.list_history():
        ...         print(item.short_id)
    """

    @abstractmethod
    def is_available(self) -> bool:
        """Check if the backend tooling is present on this system.

        Returns:
            True if the gateway can attempt calls, False otherwise.
        """

    @abstractmethod
    def list_history(self) -> list[ClipboardItem]:
        """Read the manager's current history.

        Returns:
            Items ordered newest first.

        Raises:
            GatewayUnavailableError: If the manager cannot be reached.
        """

    @abstractmethod
    def remove(self, item: ClipboardItem) -> None:
        """Remove an entry from the manager's history.

        Args:
            item: The entry to remove.

        Raises:
            ItemNotFoundError: If the entry is already gone.
            GatewayUnavailableError: If the manager cannot be reached.
        """

    @abstractmethod
    def get_selection(self) -> str:
        """Read the current clipboard selection.

        Raises:
            GatewayUnavailableError: If the manager cannot be reached.
        """

    @abstractmethod
    def set_selection(self, text: str) -> None:
        """Replace the current clipboard selection.

        Raises:
            GatewayUnavailableError: If the manager cannot be reached.
        """
