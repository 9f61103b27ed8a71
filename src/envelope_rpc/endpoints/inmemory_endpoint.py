# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""In-Memory Endpoints for local development and testing.

Implements ProtocolRpcEndpoint with in-process ports attached to a hub.
A message sent by one port is delivered to every other open port on the
same hub, never back to the sender:

    - ``create_channel_pair()``: a hub with exactly two ports, giving a
      point-to-point bidirectional channel.
    - ``InMemoryBroadcastHub.connect()``: any number of ports sharing one
      broadcast medium with no built-in addressing.

Features:
    - Asynchronous delivery scheduled with ``loop.call_soon`` (a send never
      re-enters the receiver on the sender's stack)
    - Each receiver gets its own deep copy of the message
    - Messages arriving before ``start()`` are buffered and flushed on start
    - Sent-message history for debugging and testing
    - Listener exceptions are logged and never stop delivery

Usage:
    ```python
    from envelope_rpc.endpoints import create_channel_pair

    server_port, client_port = create_channel_pair()
    server = RpcServer(server_port)
    client = RpcClient(client_port)
    ```
"""

from __future__ import annotations

import asyncio
import copy
import logging
from collections import deque

from envelope_rpc.protocols import MessageListener

logger = logging.getLogger(__name__)


class InMemoryPort:
    """One end of an in-memory hub.

    Attributes:
        name: Port name used in log records
        on_message: Receive slot invoked once per delivered message
    """

    def __init__(self, hub: InMemoryBroadcastHub, name: str) -> None:
        self._hub = hub
        self.name = name
        self.on_message: MessageListener | None = None
        self._started = False
        self._closed = False
        self._pending: deque[object] = deque()

    @property
    def closed(self) -> bool:
        return self._closed

    def start(self) -> None:
        """Begin delivering inbound messages, flushing any buffered ones."""
        if self._closed or self._started:
            return
        self._started = True
        while self._pending:
            self._deliver(self._pending.popleft())

    def send(self, message: dict[str, object]) -> None:
        """Publish a message to every other open port on the hub.

        Requires a running event loop. Sends on a closed port are dropped.
        """
        if self._closed:
            logger.debug("Dropping send on closed port", extra={"port": self.name})
            return
        self._hub._publish(self, message)

    def close(self) -> None:
        """Detach from the hub and discard buffered messages. Idempotent."""
        if self._closed:
            return
        self._closed = True
        self._pending.clear()
        self._hub._detach(self)

    def _deliver(self, message: object) -> None:
        if self._closed:
            return
        if not self._started:
            self._pending.append(message)
            return
        listener = self.on_message
        if listener is None:
            logger.debug("No listener attached, dropping message", extra={"port": self.name})
            return
        try:
            listener(message)
        except Exception as e:
            logger.exception(
                "Port listener failed",
                extra={"port": self.name, "error": str(e)},
            )

    def __repr__(self) -> str:
        return f"InMemoryPort(name={self.name!r}, hub={self._hub.name!r}, closed={self._closed})"


class InMemoryBroadcastHub:
    """Shared in-process medium connecting any number of ports.

    Example:
        ```python
        hub = InMemoryBroadcastHub("rpc")
        server_a = RpcServer(hub.connect(), ModelRpcServerConfig(server_id="server-a"))
        client = RpcClient(hub.connect(), ModelRpcClientConfig(target_id="server-a"))
        ```
    """

    def __init__(self, name: str = "default", max_history: int = 1000) -> None:
        """Initialize the hub.

        Args:
            name: Hub name used in port names and log records
            max_history: Maximum number of sent messages to retain in history
        """
        self.name = name
        self._max_history = max_history
        self._ports: list[InMemoryPort] = []
        self._history: deque[dict[str, object]] = deque(maxlen=max_history)
        self._port_counter = 0

    @property
    def history(self) -> list[dict[str, object]]:
        """Snapshot of messages sent through the hub, oldest first."""
        return list(self._history)

    @property
    def port_count(self) -> int:
        return len(self._ports)

    def connect(self, name: str | None = None) -> InMemoryPort:
        """Attach and return a new port."""
        self._port_counter += 1
        port = InMemoryPort(self, name or f"{self.name}.{self._port_counter}")
        self._ports.append(port)
        return port

    def clear_history(self) -> None:
        self._history.clear()

    def _publish(self, sender: InMemoryPort, message: dict[str, object]) -> None:
        loop = asyncio.get_running_loop()
        self._history.append(copy.deepcopy(message))
        receivers = [port for port in self._ports if port is not sender]
        for port in receivers:
            loop.call_soon(port._deliver, copy.deepcopy(message))

    def _detach(self, port: InMemoryPort) -> None:
        if port in self._ports:
            self._ports.remove(port)


def create_channel_pair(name: str = "channel") -> tuple[InMemoryPort, InMemoryPort]:
    """Create two connected ports forming a point-to-point channel."""
    hub = InMemoryBroadcastHub(name, max_history=100)
    return hub.connect(f"{name}.1"), hub.connect(f"{name}.2")


__all__ = ["InMemoryBroadcastHub", "InMemoryPort", "create_channel_pair"]
