"""Pytest configuration and shared fixtures for envelope_rpc tests."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from envelope_rpc.endpoints import InMemoryBroadcastHub, InMemoryPort, create_channel_pair


@pytest.fixture
def mock_endpoint() -> MagicMock:
    """Endpoint double recording sends; inbound values are fed via on_message."""
    endpoint = MagicMock(spec=["send", "close", "start", "on_message"])
    endpoint.on_message = None
    return endpoint


@pytest.fixture
def channel_pair() -> tuple[InMemoryPort, InMemoryPort]:
    """Point-to-point in-memory channel (server side, client side)."""
    return create_channel_pair("test")


@pytest.fixture
def broadcast_hub() -> InMemoryBroadcastHub:
    """Shared in-memory broadcast medium."""
    return InMemoryBroadcastHub("test-hub")
