# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Request/response RPC over asynchronous message endpoints.

Turns fire-and-forget message delivery (a bidirectional channel or a
broadcast medium) into awaited, cancellable, timed-out calls with
structured errors and optional source/target/bus addressing.

Usage:
    ```python
    from envelope_rpc import RpcClient, RpcServer, create_channel_pair

    server_port, client_port = create_channel_pair()
    server = RpcServer(server_port)
    server.register_route("/people/:id", lambda payload, ctx: {"id": ctx.params["id"]})

    client = RpcClient(client_port)
    person = await client.call("/people/abc123", None)
    ```
"""

from envelope_rpc.endpoints import InMemoryBroadcastHub, InMemoryPort, create_channel_pair
from envelope_rpc.enums import EnumEnvelopeKind, EnumRouteKind, EnumRpcErrorCode
from envelope_rpc.errors import (
    ProtocolConfigurationError,
    RouteValidationError,
    RpcCallError,
    RpcCancelledError,
    RpcClientClosedError,
    RpcError,
    RpcForbiddenError,
    RpcInvalidMessageError,
    RpcPayloadTooLargeError,
    RpcRouteNotFoundError,
    RpcTimeoutError,
    RpcTransportError,
)
from envelope_rpc.models import (
    RPC_PROTOCOL_VERSION,
    ModelRpcCancel,
    ModelRpcClientConfig,
    ModelRpcErrorRecord,
    ModelRpcFailure,
    ModelRpcRequest,
    ModelRpcServerConfig,
    ModelRpcSuccess,
    parse_envelope,
)
from envelope_rpc.protocols import ProtocolRpcEndpoint
from envelope_rpc.runtime import (
    CancellationToken,
    HandlerContext,
    RouteDescriptor,
    RpcClient,
    RpcServer,
    load_client_config,
    load_server_config,
    map_error,
    match_route,
)

__version__ = "0.1.0"

__all__: list[str] = [
    "RPC_PROTOCOL_VERSION",
    "CancellationToken",
    "EnumEnvelopeKind",
    "EnumRouteKind",
    "EnumRpcErrorCode",
    "HandlerContext",
    "InMemoryBroadcastHub",
    "InMemoryPort",
    "ModelRpcCancel",
    "ModelRpcClientConfig",
    "ModelRpcErrorRecord",
    "ModelRpcFailure",
    "ModelRpcRequest",
    "ModelRpcServerConfig",
    "ModelRpcSuccess",
    "ProtocolConfigurationError",
    "ProtocolRpcEndpoint",
    "RouteDescriptor",
    "RouteValidationError",
    "RpcCallError",
    "RpcCancelledError",
    "RpcClient",
    "RpcClientClosedError",
    "RpcError",
    "RpcForbiddenError",
    "RpcInvalidMessageError",
    "RpcPayloadTooLargeError",
    "RpcRouteNotFoundError",
    "RpcServer",
    "RpcTimeoutError",
    "RpcTransportError",
    "__version__",
    "create_channel_pair",
    "load_client_config",
    "load_server_config",
    "map_error",
    "match_route",
    "parse_envelope",
]
