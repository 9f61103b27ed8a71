# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""
Unit tests for RpcServer.

Inbound values are fed through the receive slot the server attached to the
mocked endpoint; replies are read back from ``endpoint.send``.

Test Organization:
    - TestRouteRegistration: Registration, validation and the decorator
    - TestSuccessfulDispatch: Handler invocation and success replies
    - TestHandlerFailures: Error mapping of handler failures
    - TestRejections: FORBIDDEN, PAYLOAD_TOO_LARGE and ROUTE_NOT_FOUND
    - TestAddressing: Silent drops by the addressing filter
    - TestCancelEnvelopes: Cooperative cancellation of in-flight handlers
    - TestServerShutdown: Stop semantics
"""

from __future__ import annotations

import asyncio
import re
from unittest.mock import MagicMock

import pytest

from envelope_rpc.errors import RouteValidationError
from envelope_rpc.models import ModelRpcServerConfig
from envelope_rpc.runtime.handler_context import HandlerContext
from envelope_rpc.runtime.rpc_server import RpcServer
from tests.helpers.rpc_envelopes import (
    make_cancel,
    make_request,
    make_success,
    sent_of_kind,
    settle,
    wait_until,
)

pytestmark = [pytest.mark.unit, pytest.mark.asyncio]


# =============================================================================
# Test Fixtures
# =============================================================================


@pytest.fixture
def server(mock_endpoint: MagicMock) -> RpcServer:
    """Started, unscoped server accepting unaddressed requests."""
    return RpcServer(mock_endpoint, ModelRpcServerConfig(server_id="server-a"))


@pytest.fixture
def scoped_server(mock_endpoint: MagicMock) -> RpcServer:
    """Server "server-a" on bus "core" that only accepts addressed requests."""
    return RpcServer(
        mock_endpoint,
        ModelRpcServerConfig(server_id="server-a", bus="core", accept_unaddressed=False),
    )


async def next_response(endpoint: MagicMock) -> dict[str, object]:
    await wait_until(lambda: len(sent_of_kind(endpoint, "response")) > 0)
    responses = sent_of_kind(endpoint, "response")
    assert len(responses) == 1
    return responses[0]


class CodedError(Exception):
    def __init__(self, message: str, code: str, retriable: bool | None = None) -> None:
        super().__init__(message)
        self.code = code
        if retriable is not None:
            self.retriable = retriable


# =============================================================================
# Route Registration
# =============================================================================


class TestRouteRegistration:
    """Registering handlers."""

    async def test_register_route_is_chainable(self, server: RpcServer) -> None:
        result = server.register_route("/a", lambda p, c: 1).register_route(
            re.compile(r"/b/.+"), lambda p, c: 2
        )

        assert result is server
        assert server.route_count == 2

    async def test_malformed_route_is_rejected(self, server: RpcServer) -> None:
        with pytest.raises(RouteValidationError):
            server.register_route("users", lambda p, c: None)

        assert server.route_count == 0

    async def test_decorator_returns_handler(self, server: RpcServer) -> None:
        async def handler(payload: object, ctx: HandlerContext) -> object:
            return payload

        decorated = server.route("/echo")(handler)

        assert decorated is handler
        assert server.route_count == 1

    async def test_start_attaches_receive_slot(
        self, mock_endpoint: MagicMock, server: RpcServer
    ) -> None:
        assert mock_endpoint.on_message == server._handle_message
        mock_endpoint.start.assert_called_once_with()

    async def test_without_auto_start_nothing_is_attached(
        self, mock_endpoint: MagicMock
    ) -> None:
        server = RpcServer(
            mock_endpoint, ModelRpcServerConfig(server_id="s", auto_start=False)
        )

        assert mock_endpoint.on_message is None
        server.start()
        assert mock_endpoint.on_message == server._handle_message


# =============================================================================
# Successful Dispatch
# =============================================================================


class TestSuccessfulDispatch:
    """Handlers run and their results are replied."""

    async def test_async_handler_result_is_replied(
        self, mock_endpoint: MagicMock, server: RpcServer
    ) -> None:
        async def ping(payload: object, ctx: HandlerContext) -> object:
            return {"pong": True, "echo": payload}

        server.register_route("/ping", ping)
        mock_endpoint.on_message(
            make_request("req-1", "/ping", {"n": 1}, source_id="client-1")
        )

        response = await next_response(mock_endpoint)
        assert response == {
            "version": 1,
            "kind": "response",
            "id": "req-1",
            "ok": True,
            "result": {"pong": True, "echo": {"n": 1}},
            "source_id": "server-a",
            "target_id": "client-1",
        }

    async def test_sync_handler_runs_and_receives_context(
        self, mock_endpoint: MagicMock, server: RpcServer
    ) -> None:
        seen: list[HandlerContext] = []

        def get_user(payload: object, ctx: HandlerContext) -> object:
            seen.append(ctx)
            return {"id": ctx.params["id"]}

        server.register_route("/users/:id", get_user)
        mock_endpoint.on_message(make_request("req-2", "/users/42"))

        response = await next_response(mock_endpoint)
        assert response["result"] == {"id": "42"}
        ctx = seen[0]
        assert ctx.route == "/users/42"
        assert ctx.matched_route == "/users/:id"
        assert ctx.cancellation.aborted is False

    async def test_sync_handler_returning_awaitable_is_awaited(
        self, mock_endpoint: MagicMock, server: RpcServer
    ) -> None:
        async def compute() -> int:
            return 7

        server.register_route("/lazy", lambda payload, ctx: compute())
        mock_endpoint.on_message(make_request("req-3", "/lazy"))

        assert (await next_response(mock_endpoint))["result"] == 7

    async def test_none_result_is_a_success(
        self, mock_endpoint: MagicMock, server: RpcServer
    ) -> None:
        server.register_route("/void", lambda payload, ctx: None)
        mock_endpoint.on_message(make_request("req-4", "/void"))

        response = await next_response(mock_endpoint)
        assert response["ok"] is True
        assert response["result"] is None

    async def test_first_registered_route_wins(
        self, mock_endpoint: MagicMock, server: RpcServer
    ) -> None:
        server.register_route("/users/me", lambda payload, ctx: "me")
        server.register_route("/users/:id", lambda payload, ctx: ctx.params["id"])

        mock_endpoint.on_message(make_request("req-5", "/users/me"))
        assert (await next_response(mock_endpoint))["result"] == "me"

    async def test_pattern_route_has_no_params(
        self, mock_endpoint: MagicMock, server: RpcServer
    ) -> None:
        server.register_route(re.compile(r"/files/(?P<name>.+)"), lambda p, ctx: ctx.params)

        mock_endpoint.on_message(make_request("req-6", "/files/a.txt"))
        assert (await next_response(mock_endpoint))["result"] == {}

    async def test_reply_uses_request_bus(
        self, mock_endpoint: MagicMock, scoped_server: RpcServer
    ) -> None:
        scoped_server.register_route("/ping", lambda payload, ctx: "pong")

        mock_endpoint.on_message(
            make_request("req-7", "/ping", source_id="client-1", target_id="server-a", bus="core")
        )

        response = await next_response(mock_endpoint)
        assert response["bus"] == "core"
        assert response["target_id"] == "client-1"

    async def test_in_flight_entry_removed_after_reply(
        self, mock_endpoint: MagicMock, server: RpcServer
    ) -> None:
        server.register_route("/ping", lambda payload, ctx: "pong")

        mock_endpoint.on_message(make_request("req-8", "/ping"))
        assert server.in_flight_count == 1

        await next_response(mock_endpoint)
        assert server.in_flight_count == 0


# =============================================================================
# Handler Failures
# =============================================================================


class TestHandlerFailures:
    """Handler exceptions become failure replies, never escape."""

    async def test_plain_exception_is_internal_error(
        self, mock_endpoint: MagicMock, server: RpcServer
    ) -> None:
        async def broken(payload: object, ctx: HandlerContext) -> object:
            raise ValueError("database unavailable")

        server.register_route("/broken", broken)
        mock_endpoint.on_message(make_request("req-1", "/broken", source_id="client-1"))

        response = await next_response(mock_endpoint)
        assert response["ok"] is False
        assert response["target_id"] == "client-1"
        assert response["error"] == {
            "code": "INTERNAL_ERROR",
            "message": "database unavailable",
            "route": "/broken",
            "retriable": False,
        }

    async def test_coded_exception_keeps_code_and_default_retriable(
        self, mock_endpoint: MagicMock, server: RpcServer
    ) -> None:
        def busy(payload: object, ctx: HandlerContext) -> object:
            raise CodedError("upstream timed out", code="TIMEOUT")

        server.register_route("/busy", busy)
        mock_endpoint.on_message(make_request("req-2", "/busy"))

        error = (await next_response(mock_endpoint))["error"]
        assert error["code"] == "TIMEOUT"
        assert error["retriable"] is True

    async def test_non_json_result_is_internal_error(
        self, mock_endpoint: MagicMock, server: RpcServer
    ) -> None:
        server.register_route("/weird", lambda payload, ctx: object())
        mock_endpoint.on_message(make_request("req-3", "/weird"))

        error = (await next_response(mock_endpoint))["error"]
        assert error["code"] == "INTERNAL_ERROR"
        assert error["message"] == "Handler returned a non-JSON result"

    async def test_handler_raising_cancelled_error_is_replied(
        self, mock_endpoint: MagicMock, server: RpcServer
    ) -> None:
        async def gives_up(payload: object, ctx: HandlerContext) -> object:
            raise asyncio.CancelledError()

        server.register_route("/gives-up", gives_up)
        mock_endpoint.on_message(make_request("req-5", "/gives-up", source_id="client-1"))

        response = await next_response(mock_endpoint)
        assert response["ok"] is False
        assert response["target_id"] == "client-1"
        assert response["error"]["code"] == "CANCELLED"
        assert response["error"]["retriable"] is False
        assert server.in_flight_count == 0

    async def test_handler_stopping_on_aborted_token_is_replied(
        self, mock_endpoint: MagicMock, server: RpcServer
    ) -> None:
        async def watchful(payload: object, ctx: HandlerContext) -> object:
            await ctx.cancellation.wait()
            raise asyncio.CancelledError()

        server.register_route("/watchful", watchful)
        mock_endpoint.on_message(make_request("req-6", "/watchful"))
        await settle()

        mock_endpoint.on_message(make_cancel("req-6"))

        response = await next_response(mock_endpoint)
        assert response["error"]["code"] == "CANCELLED"

    async def test_cancelling_dispatch_task_sends_no_reply(
        self, mock_endpoint: MagicMock, server: RpcServer
    ) -> None:
        async def sleepy(payload: object, ctx: HandlerContext) -> object:
            await asyncio.sleep(10)
            return "unreachable"

        server.register_route("/sleepy", sleepy)
        mock_endpoint.on_message(make_request("req-7", "/sleepy"))
        await settle()
        task = next(iter(server._tasks))

        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        assert sent_of_kind(mock_endpoint, "response") == []
        assert server.in_flight_count == 0

    async def test_failed_reply_send_is_swallowed(
        self, mock_endpoint: MagicMock, server: RpcServer
    ) -> None:
        mock_endpoint.send.side_effect = ConnectionError("gone")

        mock_endpoint.on_message(make_request("req-4", "/missing"))

        mock_endpoint.send.assert_called_once()


# =============================================================================
# Rejections
# =============================================================================


class TestRejections:
    """Requests answered with a failure before any handler runs."""

    async def test_unmatched_route_is_route_not_found(
        self, mock_endpoint: MagicMock, server: RpcServer
    ) -> None:
        server.register_route("/ping", lambda payload, ctx: "pong")

        mock_endpoint.on_message(make_request("req-1", "/missing"))

        error = sent_of_kind(mock_endpoint, "response")[0]["error"]
        assert error["code"] == "ROUTE_NOT_FOUND"
        assert error["route"] == "/missing"
        assert error["retriable"] is False

    async def test_forbidden_route_skips_handler(
        self, mock_endpoint: MagicMock
    ) -> None:
        handler = MagicMock(return_value="secret")
        server = RpcServer(
            mock_endpoint,
            ModelRpcServerConfig(server_id="server-a"),
            can_handle=lambda route: not route.startswith("/admin"),
        )
        server.register_route("/admin/stats", handler)

        mock_endpoint.on_message(make_request("req-2", "/admin/stats"))
        await settle()

        error = sent_of_kind(mock_endpoint, "response")[0]["error"]
        assert error["code"] == "FORBIDDEN"
        assert error["retriable"] is False
        handler.assert_not_called()

    async def test_failing_predicate_denies(self, mock_endpoint: MagicMock) -> None:
        def predicate(route: str) -> bool:
            raise RuntimeError("policy store offline")

        server = RpcServer(
            mock_endpoint, ModelRpcServerConfig(server_id="server-a"), can_handle=predicate
        )
        server.register_route("/ping", lambda payload, ctx: "pong")

        mock_endpoint.on_message(make_request("req-3", "/ping"))

        assert sent_of_kind(mock_endpoint, "response")[0]["error"]["code"] == "FORBIDDEN"

    async def test_forbidden_checked_before_route_lookup(
        self, mock_endpoint: MagicMock
    ) -> None:
        RpcServer(
            mock_endpoint,
            ModelRpcServerConfig(server_id="server-a"),
            can_handle=lambda route: False,
        )

        mock_endpoint.on_message(make_request("req-4", "/nowhere"))

        assert sent_of_kind(mock_endpoint, "response")[0]["error"]["code"] == "FORBIDDEN"

    async def test_oversized_payload_skips_handler(
        self, mock_endpoint: MagicMock
    ) -> None:
        handler = MagicMock(return_value="ok")
        server = RpcServer(
            mock_endpoint,
            ModelRpcServerConfig(server_id="server-a", max_payload_bytes=8),
        )
        server.register_route("/upload", handler)

        mock_endpoint.on_message(make_request("req-5", "/upload", "x" * 32))
        await settle()

        error = sent_of_kind(mock_endpoint, "response")[0]["error"]
        assert error["code"] == "PAYLOAD_TOO_LARGE"
        assert error["retriable"] is False
        handler.assert_not_called()
        assert server.in_flight_count == 0

    async def test_lone_surrogate_payload_is_size_checked(
        self, mock_endpoint: MagicMock
    ) -> None:
        handler = MagicMock(return_value="ok")
        server = RpcServer(
            mock_endpoint,
            ModelRpcServerConfig(server_id="server-a", max_payload_bytes=4),
        )
        server.register_route("/upload", handler)

        # '"\ud800"' serializes to five bytes
        mock_endpoint.on_message(make_request("req-6", "/upload", "\ud800"))
        await settle()

        error = sent_of_kind(mock_endpoint, "response")[0]["error"]
        assert error["code"] == "PAYLOAD_TOO_LARGE"
        handler.assert_not_called()


# =============================================================================
# Addressing
# =============================================================================


class TestAddressing:
    """Requests the addressing filter rejects get no reply at all."""

    @pytest.mark.parametrize(
        "addressing",
        [
            {"source_id": "client-1", "target_id": "server-b", "bus": "core"},
            {"source_id": "client-1", "bus": "core"},
            {"source_id": "client-1", "target_id": "server-a", "bus": "analytics"},
            {"source_id": "client-1", "target_id": "server-a"},
            {"source_id": "server-a", "target_id": "server-a", "bus": "core"},
        ],
    )
    async def test_rejected_request_is_dropped_silently(
        self,
        mock_endpoint: MagicMock,
        scoped_server: RpcServer,
        addressing: dict[str, str],
    ) -> None:
        handler = MagicMock(return_value="pong")
        scoped_server.register_route("/ping", handler)

        mock_endpoint.on_message(make_request("req-1", "/ping", **addressing))
        mock_endpoint.on_message(make_request("req-2", "/missing", **addressing))
        await settle()

        mock_endpoint.send.assert_not_called()
        handler.assert_not_called()

    @pytest.mark.parametrize(
        "raw",
        [
            "garbage",
            None,
            [1, 2],
            {"version": 1, "kind": "request", "id": "x"},
            {"version": 2, "kind": "request", "id": "x", "route": "/ping"},
            {"version": 1, "kind": "bogus", "id": "x", "route": "/ping"},
        ],
    )
    async def test_malformed_values_are_dropped(
        self, mock_endpoint: MagicMock, server: RpcServer, raw: object
    ) -> None:
        server.register_route("/ping", lambda payload, ctx: "pong")

        mock_endpoint.on_message(raw)
        await settle()

        mock_endpoint.send.assert_not_called()

    async def test_responses_are_ignored_by_server(
        self, mock_endpoint: MagicMock, server: RpcServer
    ) -> None:
        mock_endpoint.on_message(make_success("req-1", "pong"))
        await settle()

        mock_endpoint.send.assert_not_called()


# =============================================================================
# Cancel Envelopes
# =============================================================================


class TestCancelEnvelopes:
    """Cancel envelopes abort the matching in-flight token."""

    async def test_cancel_aborts_running_handler_token(
        self, mock_endpoint: MagicMock, server: RpcServer
    ) -> None:
        async def slow(payload: object, ctx: HandlerContext) -> object:
            await ctx.cancellation.wait()
            return "observed abort"

        server.register_route("/slow", slow)
        mock_endpoint.on_message(make_request("req-1", "/slow"))
        await settle()
        assert server.in_flight_count == 1

        mock_endpoint.on_message(make_cancel("req-1"))

        response = await next_response(mock_endpoint)
        assert response["result"] == "observed abort"
        assert server.in_flight_count == 0

    async def test_cancel_for_unknown_id_is_ignored(
        self, mock_endpoint: MagicMock, server: RpcServer
    ) -> None:
        mock_endpoint.on_message(make_cancel("never-sent"))
        await settle()

        mock_endpoint.send.assert_not_called()

    async def test_cancel_rejected_by_addressing_is_ignored(
        self, mock_endpoint: MagicMock, scoped_server: RpcServer
    ) -> None:
        seen: list[HandlerContext] = []

        async def slow(payload: object, ctx: HandlerContext) -> object:
            seen.append(ctx)
            await asyncio.wait_for(ctx.cancellation.wait(), timeout=1.0)
            return "done"

        scoped_server.register_route("/slow", slow)
        mock_endpoint.on_message(
            make_request("req-1", "/slow", source_id="c", target_id="server-a", bus="core")
        )
        await settle()

        mock_endpoint.on_message(
            make_cancel("req-1", source_id="c", target_id="server-a", bus="analytics")
        )
        assert seen[0].cancellation.aborted is False

        mock_endpoint.on_message(
            make_cancel("req-1", source_id="c", target_id="server-a", bus="core")
        )
        assert seen[0].cancellation.aborted is True
        await next_response(mock_endpoint)


# =============================================================================
# Shutdown
# =============================================================================


class TestServerShutdown:
    """Stopping aborts in-flight work and suppresses late replies."""

    async def test_stop_aborts_in_flight_and_drops_late_reply(
        self, mock_endpoint: MagicMock, server: RpcServer
    ) -> None:
        seen: list[HandlerContext] = []
        finished = asyncio.Event()

        async def slow(payload: object, ctx: HandlerContext) -> object:
            seen.append(ctx)
            await ctx.cancellation.wait()
            finished.set()
            return "late"

        server.register_route("/slow", slow)
        mock_endpoint.on_message(make_request("req-1", "/slow"))
        await settle()

        server.stop()
        await asyncio.wait_for(finished.wait(), timeout=1.0)
        await settle()

        assert seen[0].cancellation.aborted is True
        assert seen[0].cancellation.reason == "server stopped"
        assert server.in_flight_count == 0
        assert server.route_count == 0
        assert sent_of_kind(mock_endpoint, "response") == []
        mock_endpoint.close.assert_called_once_with()

    async def test_stop_is_idempotent_and_detaches(
        self, mock_endpoint: MagicMock, server: RpcServer
    ) -> None:
        handle = mock_endpoint.on_message

        server.stop()
        server.close()

        assert server.closed is True
        assert mock_endpoint.on_message is None
        mock_endpoint.close.assert_called_once_with()

        handle(make_request("req-1", "/ping"))
        mock_endpoint.send.assert_not_called()

    async def test_async_context_manager(self, mock_endpoint: MagicMock) -> None:
        config = ModelRpcServerConfig(server_id="server-a", auto_start=False)
        async with RpcServer(mock_endpoint, config) as server:
            assert mock_endpoint.on_message == server._handle_message

        assert server.closed is True
