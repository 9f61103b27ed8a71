# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Request correlator for RPC-style calls over a message endpoint.

This module provides the RpcClient class, the requesting side of the RPC
layer. It turns fire-and-forget ``send`` into awaited calls:

Architecture:
    The RpcClient is responsible for:
    1. Validating routes and payload sizes before any network activity
    2. Generating a fresh uuid4 identifier per call
    3. Tracking pending calls in a table keyed by identifier
    4. Matching inbound responses to pending calls (addressing-filtered)
    5. Failing calls on timeout, on cancellation, on send failure, and on
       shutdown, with best-effort Cancel envelopes to the server

Settlement:
    Each pending entry is settled by exactly one of: response arrival,
    timeout, cancellation token, send failure, shutdown, or the caller
    cancelling the returned future. Every trigger begins by popping the
    entry from the table; a trigger that finds no entry is a no-op. All
    triggers run as plain callbacks on the event loop, so the pop is the
    only arbiter needed.

Error Handling:
    Pre-flight failures (closed client, oversized payload, already-aborted
    token) return an already-failed future without touching the endpoint.
    A malformed route raises RouteValidationError synchronously. Everything
    after the send is reported once through the returned future as an
    RpcCallError subclass.

Thread Safety:
    This class is designed for single-threaded async use. ``call`` must be
    invoked from the thread running the event loop.
"""

from __future__ import annotations

import asyncio
import functools
import logging
import re
from collections.abc import Callable
from dataclasses import dataclass
from uuid import uuid4

from pydantic import ValidationError

from envelope_rpc.enums import EnumRpcErrorCode
from envelope_rpc.errors import error_from_record
from envelope_rpc.models import (
    ModelRpcCancel,
    ModelRpcClientConfig,
    ModelRpcErrorRecord,
    ModelRpcFailure,
    ModelRpcRequest,
    ModelRpcSuccess,
    parse_envelope,
)
from envelope_rpc.protocols import ProtocolRpcEndpoint, start_endpoint
from envelope_rpc.runtime.addressing_filter import accepts_response
from envelope_rpc.runtime.cancellation_token import CancellationToken
from envelope_rpc.runtime.route_matcher import RouteDescriptor, validate_route
from envelope_rpc.utils import payload_size_bytes

logger = logging.getLogger(__name__)

LOCAL_REQUEST_ID = "local"


@dataclass
class PendingRequest:
    """Internal state for one outstanding call."""

    request_id: str
    route: str
    future: asyncio.Future[object]
    timer: asyncio.TimerHandle | None = None
    remove_listener: Callable[[], None] | None = None


class RpcClient:
    """Sends requests through an endpoint and resolves correlated responses.

    Example:
        ```python
        server_port, client_port = create_channel_pair()
        server = RpcServer(server_port)
        server.register_route("/ping", lambda payload, ctx: {"pong": True})

        client = RpcClient(client_port, ModelRpcClientConfig(timeout_ms=500))
        result = await client.call("/ping", None)

        token = CancellationToken()
        pending = client.call("/slow", None, cancel_token=token)
        token.abort()  # pending fails with RpcCancelledError

        client.stop()
        ```
    """

    def __init__(
        self,
        endpoint: ProtocolRpcEndpoint,
        config: ModelRpcClientConfig | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            endpoint: Transport carrying envelopes.
            config: Client configuration; defaults apply when omitted.
        """
        self._endpoint = endpoint
        self._config = config if config is not None else ModelRpcClientConfig()
        self._pending: dict[str, PendingRequest] = {}
        self._started = False
        self._closed = False

        if self._config.auto_start:
            self.start()

    @property
    def client_id(self) -> str:
        return self._config.client_id

    @property
    def config(self) -> ModelRpcClientConfig:
        return self._config

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def started(self) -> bool:
        return self._started

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    def start(self) -> RpcClient:
        """Attach the receive handler to the endpoint. No-op when started or closed."""
        if self._closed or self._started:
            return self
        self._endpoint.on_message = self._handle_message
        start_endpoint(self._endpoint)
        self._started = True
        logger.info(
            "RpcClient started",
            extra={"client_id": self.client_id, "bus": self._config.bus},
        )
        return self

    def stop(self, reason: str = "RPC client stopped") -> None:
        """Shut the client down. Idempotent.

        Every pending call gets its timer cancelled, a best-effort Cancel
        envelope, and fails with RpcClientClosedError. The endpoint is
        closed afterwards.
        """
        if self._closed:
            return
        self._closed = True
        self._started = False
        self._endpoint.on_message = None

        pending = list(self._pending.values())
        self._pending.clear()
        for entry in pending:
            self._release(entry)
            self._send_cancel(entry.request_id)
            self._fail(
                entry,
                ModelRpcErrorRecord(
                    code=EnumRpcErrorCode.CLIENT_CLOSED,
                    message=reason,
                    route=entry.route,
                    retriable=False,
                ),
            )

        self._endpoint.close()
        logger.info(
            "RpcClient stopped",
            extra={"client_id": self.client_id, "drained": len(pending)},
        )

    def close(self) -> None:
        self.stop("RPC client closed")

    async def __aenter__(self) -> RpcClient:
        return self.start()

    async def __aexit__(self, *exc_info: object) -> None:
        self.stop()

    def call(
        self,
        route: str | re.Pattern[str],
        payload: object = None,
        *,
        timeout_ms: int | None = None,
        cancel_token: CancellationToken | None = None,
    ) -> asyncio.Future[object]:
        """Send a request and return a future for its result.

        Args:
            route: Concrete route path (must start with ``/``). A compiled
                pattern is sent as its source text.
            payload: JSON-compatible request payload.
            timeout_ms: Per-call timeout; defaults to the configured timeout.
            cancel_token: Optional token aborting the call.

        Returns:
            Future resolving to the handler's result, or failing with an
            RpcCallError subclass.

        Raises:
            RouteValidationError: If the route is malformed (raised before
                any network activity).
            RuntimeError: If called without a running event loop.
        """
        loop = asyncio.get_running_loop()

        if self._closed:
            return self._failed_future(
                loop,
                EnumRpcErrorCode.CLIENT_CLOSED,
                "RPC client is closed",
                route=route.pattern if isinstance(route, re.Pattern) else str(route),
            )
        if not self._started:
            self.start()

        validate_route(route)
        if isinstance(route, re.Pattern):
            path = route.pattern
        elif isinstance(route, RouteDescriptor):
            path = route.source
        else:
            path = route

        max_bytes = self._config.max_payload_bytes
        if payload_size_bytes(payload) > max_bytes:
            return self._failed_future(
                loop,
                EnumRpcErrorCode.PAYLOAD_TOO_LARGE,
                f"Payload exceeds {max_bytes} bytes",
                route=path,
            )

        if cancel_token is not None and cancel_token.aborted:
            return self._failed_future(
                loop,
                EnumRpcErrorCode.CANCELLED,
                "RPC request aborted",
                route=path,
            )

        request_id = str(uuid4())
        try:
            request = ModelRpcRequest(
                id=request_id,
                route=path,
                payload=payload,
                source_id=self.client_id,
                target_id=self._config.target_id,
                bus=self._config.bus,
            )
            wire = request.to_wire()
        except (ValidationError, ValueError):
            return self._failed_future(
                loop,
                EnumRpcErrorCode.INVALID_MESSAGE,
                "Payload is not a JSON-compatible value",
                route=path,
            )

        timeout = timeout_ms if timeout_ms is not None else self._config.timeout_ms
        future: asyncio.Future[object] = loop.create_future()
        entry = PendingRequest(request_id=request_id, route=path, future=future)
        self._pending[request_id] = entry
        entry.timer = loop.call_later(timeout / 1000, self._on_timeout, request_id)
        future.add_done_callback(functools.partial(self._on_future_done, request_id))

        try:
            self._endpoint.send(wire)
        except Exception as e:
            logger.warning(
                "Failed to send request",
                extra={"request_id": request_id, "route": path, "error": str(e)},
            )
            if self._pending.pop(request_id, None) is not None:
                self._release(entry)
                self._fail(
                    entry,
                    ModelRpcErrorRecord(
                        code=EnumRpcErrorCode.TRANSPORT_ERROR,
                        message="Failed to send RPC request",
                        route=path,
                        retriable=True,
                    ),
                )
            return future

        if cancel_token is not None and request_id in self._pending:
            entry.remove_listener = cancel_token.add_listener(
                functools.partial(self._on_cancel, request_id)
            )

        logger.debug(
            "Sent request",
            extra={"request_id": request_id, "route": path, "timeout_ms": timeout},
        )
        return future

    def _handle_message(self, raw: object) -> None:
        """Receive slot: settle the pending call a response belongs to."""
        if self._closed:
            return
        envelope = parse_envelope(raw)
        if not isinstance(envelope, (ModelRpcSuccess, ModelRpcFailure)):
            return
        if not accepts_response(
            self.client_id,
            self._config.target_id,
            self._config.bus,
            envelope.source_id,
            envelope.target_id,
            envelope.bus,
        ):
            logger.debug(
                "Response rejected by addressing filter",
                extra={"request_id": envelope.id, "client_id": self.client_id},
            )
            return

        entry = self._pending.pop(envelope.id, None)
        if entry is None:
            logger.debug(
                "Orphan response received (no pending request)",
                extra={"request_id": envelope.id, "client_id": self.client_id},
            )
            return

        self._release(entry)
        if isinstance(envelope, ModelRpcSuccess):
            if not entry.future.done():
                entry.future.set_result(envelope.result)
        else:
            self._fail(entry, envelope.error)

        logger.debug(
            "Resolved pending request",
            extra={"request_id": envelope.id, "ok": envelope.ok},
        )

    def _on_timeout(self, request_id: str) -> None:
        entry = self._pending.pop(request_id, None)
        if entry is None:
            return
        entry.timer = None
        self._release(entry)
        self._send_cancel(request_id)
        self._fail(
            entry,
            ModelRpcErrorRecord(
                code=EnumRpcErrorCode.TIMEOUT,
                message=f"RPC request timed out for route {entry.route}",
                route=entry.route,
                retriable=True,
            ),
        )
        logger.debug("Request timed out", extra={"request_id": request_id, "route": entry.route})

    def _on_cancel(self, request_id: str) -> None:
        entry = self._pending.pop(request_id, None)
        if entry is None:
            return
        self._release(entry)
        self._send_cancel(request_id)
        self._fail(
            entry,
            ModelRpcErrorRecord(
                code=EnumRpcErrorCode.CANCELLED,
                message="RPC request aborted",
                route=entry.route,
                retriable=False,
            ),
        )

    def _on_future_done(self, request_id: str, future: asyncio.Future[object]) -> None:
        # Only a caller-side cancel of the future leaves the entry in the table.
        if not future.cancelled():
            return
        entry = self._pending.pop(request_id, None)
        if entry is None:
            return
        self._release(entry)
        self._send_cancel(request_id)
        logger.debug("Caller cancelled pending request", extra={"request_id": request_id})

    def _release(self, entry: PendingRequest) -> None:
        if entry.timer is not None:
            entry.timer.cancel()
            entry.timer = None
        if entry.remove_listener is not None:
            entry.remove_listener()
            entry.remove_listener = None

    def _fail(self, entry: PendingRequest, record: ModelRpcErrorRecord) -> None:
        if entry.future.done():
            return
        entry.future.set_exception(error_from_record(record, entry.request_id))

    def _failed_future(
        self,
        loop: asyncio.AbstractEventLoop,
        code: EnumRpcErrorCode,
        message: str,
        route: str,
    ) -> asyncio.Future[object]:
        future: asyncio.Future[object] = loop.create_future()
        record = ModelRpcErrorRecord(code=code, message=message, route=route, retriable=False)
        future.set_exception(error_from_record(record, LOCAL_REQUEST_ID))
        return future

    def _send_cancel(self, request_id: str) -> None:
        cancel = ModelRpcCancel(
            id=request_id,
            source_id=self.client_id,
            target_id=self._config.target_id,
            bus=self._config.bus,
        )
        try:
            self._endpoint.send(cancel.to_wire())
        except Exception as e:
            logger.warning(
                "Best-effort cancel send failed",
                extra={"request_id": request_id, "error": str(e)},
            )

    def __repr__(self) -> str:
        return (
            f"RpcClient(client_id={self.client_id!r}, pending={len(self._pending)}, "
            f"closed={self._closed})"
        )


__all__ = ["LOCAL_REQUEST_ID", "PendingRequest", "RpcClient"]
