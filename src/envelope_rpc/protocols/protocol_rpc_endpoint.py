# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Endpoint Protocol for the RPC layer.

This module provides the minimal interface an endpoint (message channel,
broadcast medium, socket wrapper, ...) must expose to carry envelopes for
``RpcClient`` and ``RpcServer``.

Contract:
    - ``send(message)`` hands one JSON-compatible dict to the transport. It
      is fire-and-forget: no acknowledgement, and failure is signalled only
      by raising synchronously.
    - ``close()`` releases the underlying resource and is idempotent.
    - ``start()`` (optional) begins delivery of inbound messages.
    - ``on_message`` is a receive slot; the endpoint invokes it once per
      inbound message with the raw decoded value. Clients and servers assign
      it on start and reset it to None on stop. Values are not validated by
      the endpoint.

Ordering:
    No ordering is assumed. Messages may arrive in any order relative to
    send order.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Protocol, runtime_checkable

MessageListener = Callable[[object], None]


@runtime_checkable
class ProtocolRpcEndpoint(Protocol):
    """Protocol for endpoints carrying RPC envelopes."""

    on_message: MessageListener | None

    def send(self, message: dict[str, object]) -> None:
        """Send one envelope. May raise to signal transport failure."""
        ...

    def close(self) -> None:
        """Release the underlying resource. Idempotent."""
        ...


def start_endpoint(endpoint: ProtocolRpcEndpoint) -> None:
    """Call the endpoint's optional ``start()`` when it provides one."""
    start = getattr(endpoint, "start", None)
    if callable(start):
        start()


__all__: list[str] = ["MessageListener", "ProtocolRpcEndpoint", "start_endpoint"]
