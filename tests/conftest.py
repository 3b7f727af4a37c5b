"""Pytest configuration and shared fixtures.

This module contains fixtures used across all test modules.
"""

import pytest
from fakes import FakeClock, FakeGateway


@pytest.fixture
def clock() -> FakeClock:
    """Monotonic clock starting at t=0."""
    return FakeClock()


@pytest.fixture
def gateway() -> FakeGateway:
    """Empty in-memory clipboard manager."""
    return FakeGateway()


@pytest.fixture
def sample_config_toml() -> str:
    """A complete config file."""
    return """item_expiry_seconds = 900
update_interval_seconds = 15
ipc_timeout_seconds = 3
listen_for_updates = false
always_remove_patterns = ["^ssh-ed25519", "^-----BEGIN .*PRIVATE KEY-----"]
never_remove_patterns = ["keep this"]
"""


@pytest.fixture
def mock_history_reply() -> str:
    """Sample gdbus reply to getClipboardHistoryMenu."""
    return """(['newest entry', "it's quoted", 'multi\\nline', 'say "hi"'],)\n"""
