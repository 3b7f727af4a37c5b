"""Clipboard manager gateways for klipexpire.

This package contains the gateway interface and the Klipper D-Bus backend.
"""

from klipexpire.gateway.base import (
    ClipboardGateway,
    GatewayError,
    GatewayUnavailableError,
    ItemNotFoundError,
)
from klipexpire.gateway.klipper import KlipperGateway
from klipexpire.gateway.listener import HistoryListener

__all__ = [
    "ClipboardGateway",
    "GatewayError",
    "GatewayUnavailableError",
    "HistoryListener",
    "ItemNotFoundError",
    "KlipperGateway",
]
