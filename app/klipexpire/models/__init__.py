"""Data models for klipexpire.

This module exports the core data structures used throughout the application.
"""

from klipexpire.models.item import ClipboardItem, fingerprint

__all__ = [
    "ClipboardItem",
    "fingerprint",
]
