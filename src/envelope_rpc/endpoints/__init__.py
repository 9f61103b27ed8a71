# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Endpoint implementations.

Exports:
    InMemoryBroadcastHub: Shared in-process broadcast medium
    InMemoryPort: One end of a hub (implements ProtocolRpcEndpoint)
    create_channel_pair: Point-to-point pair of ports
"""

from envelope_rpc.endpoints.inmemory_endpoint import (
    InMemoryBroadcastHub,
    InMemoryPort,
    create_channel_pair,
)

__all__: list[str] = [
    "InMemoryBroadcastHub",
    "InMemoryPort",
    "create_channel_pair",
]
