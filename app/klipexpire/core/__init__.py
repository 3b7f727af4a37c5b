"""Core expiry engine for klipexpire.

This package contains the pattern filter, expiry store, scheduler,
and configuration resolution.
"""
