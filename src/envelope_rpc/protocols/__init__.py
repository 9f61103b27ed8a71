# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Protocol definitions for envelope_rpc.

Protocols:
    - ProtocolRpcEndpoint: Interface for transports carrying envelopes

Classes implementing a protocol are recognized through structural typing;
no inheritance is required.
"""

from envelope_rpc.protocols.protocol_rpc_endpoint import (
    MessageListener,
    ProtocolRpcEndpoint,
    start_endpoint,
)

__all__: list[str] = [
    "MessageListener",
    "ProtocolRpcEndpoint",
    "start_endpoint",
]
