"""klipexpire - Expire stale and sensitive entries from Klipper's clipboard history."""

__version__ = "0.1.0"
