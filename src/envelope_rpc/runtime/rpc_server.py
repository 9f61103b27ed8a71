# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""
RPC Dispatch Engine.

Serving side of the RPC layer. Receives envelopes from an endpoint, routes
requests to registered handlers, and replies with exactly one response per
accepted request.

Dispatch Pipeline:
    ```
    inbound value
        |
        +-- cancel  --> addressing filter --> abort in-flight token (or no-op)
        |
        +-- request --> addressing filter --(reject)--> drop, no reply
                            |
                            v
                        permission predicate --(deny)--> FORBIDDEN
                            |
                            v
                        payload ceiling --(exceeded)--> PAYLOAD_TOO_LARGE
                            |
                            v
                        route match (registration order) --(none)--> ROUTE_NOT_FOUND
                            |
                            v
                        in-flight token registered, handler task started
                            |
                            v
                        success reply | mapped failure reply
    ```
    Anything else (malformed values, responses, other protocol versions) is
    dropped silently.

Handlers:
    A handler is called as ``handler(payload, context)``. Coroutine
    functions are awaited on the loop; plain callables run in the loop's
    default executor, and an awaitable they return is awaited as well.
    Handler exceptions never escape: they are mapped with ``map_error``.
    A ``CancelledError`` raised by the handler itself is replied as
    CANCELLED; cancellation of the dispatch task propagates.

Cancellation:
    Cooperative only. A Cancel envelope, or ``stop()``, aborts the
    handler's ``context.cancellation`` token; the handler keeps running
    until it returns or raises on its own. Replies produced after
    ``stop()`` are not sent.

Thread Safety:
    Designed for single-threaded async use. Route registration is
    append-only and happens on the loop thread.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import re
from collections.abc import Callable

from pydantic import ValidationError

from envelope_rpc.enums import EnumRpcErrorCode
from envelope_rpc.models import (
    ModelRpcCancel,
    ModelRpcErrorRecord,
    ModelRpcFailure,
    ModelRpcRequest,
    ModelRpcResponse,
    ModelRpcServerConfig,
    ModelRpcSuccess,
    parse_envelope,
)
from envelope_rpc.protocols import ProtocolRpcEndpoint, start_endpoint
from envelope_rpc.runtime.addressing_filter import accepts_inbound
from envelope_rpc.runtime.cancellation_token import CancellationToken
from envelope_rpc.runtime.error_mapper import map_error
from envelope_rpc.runtime.handler_context import HandlerContext, RouteHandler
from envelope_rpc.runtime.route_matcher import RouteDescriptor, match_route
from envelope_rpc.utils import payload_size_bytes

logger = logging.getLogger(__name__)

RoutePredicate = Callable[[str], bool]


class RpcServer:
    """Registers route handlers and dispatches request envelopes.

    Example:
        ```python
        server = RpcServer(port, ModelRpcServerConfig(server_id="server-a", bus="core"))

        @server.route("/users/me")
        def current_user(payload, ctx):
            return {"id": "me"}

        @server.route("/users/:id")
        async def get_user(payload, ctx):
            return {"id": ctx.params["id"]}
        ```
    """

    def __init__(
        self,
        endpoint: ProtocolRpcEndpoint,
        config: ModelRpcServerConfig | None = None,
        *,
        can_handle: RoutePredicate | None = None,
    ) -> None:
        """Initialize the server.

        Args:
            endpoint: Transport carrying envelopes.
            config: Server configuration; defaults apply when omitted.
            can_handle: Optional route permission predicate; routes for which
                it returns False are answered with FORBIDDEN.
        """
        self._endpoint = endpoint
        self._config = config if config is not None else ModelRpcServerConfig()
        self._can_handle = can_handle

        # Registration order is match priority.
        self._routes: list[tuple[RouteDescriptor, RouteHandler]] = []

        # request id -> token of the running handler
        self._in_flight: dict[str, CancellationToken] = {}

        # Strong references to dispatch tasks until they finish
        self._tasks: set[asyncio.Task[None]] = set()

        self._started = False
        self._closed = False

        if self._config.auto_start:
            self.start()

    @property
    def server_id(self) -> str:
        return self._config.server_id

    @property
    def config(self) -> ModelRpcServerConfig:
        return self._config

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def route_count(self) -> int:
        return len(self._routes)

    @property
    def in_flight_count(self) -> int:
        return len(self._in_flight)

    def start(self) -> RpcServer:
        """Attach the receive handler to the endpoint. No-op when started or closed."""
        if self._closed or self._started:
            return self
        self._endpoint.on_message = self._handle_message
        start_endpoint(self._endpoint)
        self._started = True
        logger.info(
            "RpcServer started",
            extra={"server_id": self.server_id, "bus": self._config.bus},
        )
        return self

    def stop(self) -> None:
        """Shut the server down. Idempotent.

        Clears the route table and aborts every in-flight token. Running
        handlers are not terminated.
        """
        if self._closed:
            return
        self._closed = True
        self._started = False
        self._endpoint.on_message = None
        self._routes.clear()

        tokens = list(self._in_flight.values())
        self._in_flight.clear()
        for token in tokens:
            token.abort("server stopped")

        self._endpoint.close()
        logger.info(
            "RpcServer stopped",
            extra={"server_id": self.server_id, "aborted": len(tokens)},
        )

    def close(self) -> None:
        self.stop()

    async def __aenter__(self) -> RpcServer:
        return self.start()

    async def __aexit__(self, *exc_info: object) -> None:
        self.stop()

    def register_route(
        self,
        route: str | re.Pattern[str] | RouteDescriptor,
        handler: RouteHandler,
    ) -> RpcServer:
        """Append a route. Earlier registrations take priority.

        Raises:
            RouteValidationError: If a non-pattern route does not start with ``/``.
        """
        descriptor = RouteDescriptor.parse(route)
        self._routes.append((descriptor, handler))
        logger.debug(
            "Registered route",
            extra={
                "server_id": self.server_id,
                "route": descriptor.source,
                "route_kind": descriptor.kind.value,
            },
        )
        return self

    def route(
        self, route: str | re.Pattern[str] | RouteDescriptor
    ) -> Callable[[RouteHandler], RouteHandler]:
        """Decorator form of ``register_route``."""

        def _decorator(handler: RouteHandler) -> RouteHandler:
            self.register_route(route, handler)
            return handler

        return _decorator

    def _handle_message(self, raw: object) -> None:
        """Receive slot: filter and dispatch one inbound value."""
        if self._closed:
            return
        envelope = parse_envelope(raw)
        if isinstance(envelope, ModelRpcCancel):
            self._handle_cancel(envelope)
        elif isinstance(envelope, ModelRpcRequest):
            self._handle_request(envelope)

    def _accepts(self, envelope: ModelRpcRequest | ModelRpcCancel) -> bool:
        return accepts_inbound(
            self.server_id,
            self._config.bus,
            envelope.source_id,
            envelope.target_id,
            envelope.bus,
            self._config.accept_unaddressed,
        )

    def _handle_cancel(self, cancel: ModelRpcCancel) -> None:
        if not self._accepts(cancel):
            return
        token = self._in_flight.get(cancel.id)
        if token is None:
            logger.debug("Cancel for unknown request ignored", extra={"request_id": cancel.id})
            return
        token.abort("cancelled by client")
        logger.debug("Aborted in-flight request", extra={"request_id": cancel.id})

    def _handle_request(self, request: ModelRpcRequest) -> None:
        if not self._accepts(request):
            logger.debug(
                "Request rejected by addressing filter",
                extra={"request_id": request.id, "server_id": self.server_id},
            )
            return

        if not self._is_permitted(request.route):
            self._reply_failure(
                request,
                EnumRpcErrorCode.FORBIDDEN,
                f"Route is not allowed: {request.route}",
            )
            return

        max_bytes = self._config.max_payload_bytes
        if payload_size_bytes(request.payload) > max_bytes:
            self._reply_failure(
                request,
                EnumRpcErrorCode.PAYLOAD_TOO_LARGE,
                f"Payload exceeds {max_bytes} bytes",
            )
            return

        match = self._find_route(request.route)
        if match is None:
            self._reply_failure(
                request,
                EnumRpcErrorCode.ROUTE_NOT_FOUND,
                f"No route registered for {request.route}",
            )
            return

        descriptor, handler, params = match
        token = CancellationToken()
        self._in_flight[request.id] = token
        context = HandlerContext(
            route=request.route,
            matched_route=descriptor.source,
            params=params,
            cancellation=token,
        )
        task = asyncio.get_running_loop().create_task(
            self._execute(request, handler, context),
            name=f"rpc-dispatch-{request.id}",
        )
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    def _is_permitted(self, route: str) -> bool:
        if self._can_handle is None:
            return True
        try:
            return bool(self._can_handle(route))
        except Exception:
            logger.exception("Route permission predicate failed", extra={"route": route})
            return False

    def _find_route(
        self, path: str
    ) -> tuple[RouteDescriptor, RouteHandler, dict[str, str]] | None:
        for descriptor, handler in self._routes:
            params = match_route(descriptor, path)
            if params is not None:
                return descriptor, handler, params
        return None

    async def _execute(
        self,
        request: ModelRpcRequest,
        handler: RouteHandler,
        context: HandlerContext,
    ) -> None:
        reply: ModelRpcResponse
        try:
            result = await self._invoke(handler, request.payload, context)
        except asyncio.CancelledError:
            task = asyncio.current_task()
            if task is not None and task.cancelling():
                raise
            # Raised by the handler itself, typically after observing its token.
            logger.debug(
                "Handler raised CancelledError",
                extra={"request_id": request.id, "route": request.route},
            )
            reply = self._failure(
                request,
                ModelRpcErrorRecord(
                    code=EnumRpcErrorCode.CANCELLED,
                    message="Handler was cancelled",
                    route=request.route,
                    retriable=False,
                ),
            )
        except Exception as e:
            record = map_error(e, request.route)
            logger.debug(
                "Handler failed",
                extra={"request_id": request.id, "route": request.route, "code": record.code.value},
            )
            reply = self._failure(request, record)
        else:
            reply = self._success(request, result)
        finally:
            if self._in_flight.get(request.id) is context.cancellation:
                del self._in_flight[request.id]
        self._send(reply)

    async def _invoke(
        self,
        handler: RouteHandler,
        payload: object,
        context: HandlerContext,
    ) -> object:
        if inspect.iscoroutinefunction(handler):
            return await handler(payload, context)
        loop = asyncio.get_running_loop()
        result = await loop.run_in_executor(None, handler, payload, context)
        if inspect.isawaitable(result):
            result = await result
        return result

    def _reply_bus(self, request: ModelRpcRequest) -> str | None:
        return request.bus or self._config.bus

    def _success(self, request: ModelRpcRequest, result: object) -> ModelRpcResponse:
        try:
            return ModelRpcSuccess(
                id=request.id,
                result=result,
                source_id=self.server_id,
                target_id=request.source_id,
                bus=self._reply_bus(request),
            )
        except ValidationError:
            return self._failure(
                request,
                ModelRpcErrorRecord(
                    code=EnumRpcErrorCode.INTERNAL_ERROR,
                    message="Handler returned a non-JSON result",
                    route=request.route,
                    retriable=False,
                ),
            )

    def _failure(self, request: ModelRpcRequest, record: ModelRpcErrorRecord) -> ModelRpcFailure:
        return ModelRpcFailure(
            id=request.id,
            error=record,
            source_id=self.server_id,
            target_id=request.source_id,
            bus=self._reply_bus(request),
        )

    def _reply_failure(
        self,
        request: ModelRpcRequest,
        code: EnumRpcErrorCode,
        message: str,
    ) -> None:
        record = ModelRpcErrorRecord(
            code=code,
            message=message,
            route=request.route,
            retriable=False,
        )
        self._send(self._failure(request, record))

    def _send(self, response: ModelRpcResponse) -> None:
        if self._closed:
            logger.debug("Dropping reply after stop", extra={"request_id": response.id})
            return
        try:
            self._endpoint.send(response.to_wire())
        except Exception as e:
            logger.warning(
                "Failed to send response",
                extra={"request_id": response.id, "error": str(e)},
            )

    def __repr__(self) -> str:
        return (
            f"RpcServer(server_id={self.server_id!r}, routes={len(self._routes)}, "
            f"in_flight={len(self._in_flight)}, closed={self._closed})"
        )


__all__ = ["RoutePredicate", "RpcServer"]
