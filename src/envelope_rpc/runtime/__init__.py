# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Runtime components of the envelope RPC layer.

Exports:
    RpcClient: Request correlator (requesting side)
    RpcServer: Dispatch engine (serving side)
    CancellationToken: Cooperative abort signal
    HandlerContext: Context passed to route handlers
    RouteDescriptor / match_route / validate_route: Route matching
    accepts_inbound / accepts_response: Addressing filter
    map_error / normalize_error_code: Error mapping
    load_client_config / load_server_config: YAML configuration loading
"""

from envelope_rpc.runtime.addressing_filter import accepts_inbound, accepts_response
from envelope_rpc.runtime.cancellation_token import CancellationToken
from envelope_rpc.runtime.config_loader import load_client_config, load_server_config
from envelope_rpc.runtime.error_mapper import map_error, normalize_error_code
from envelope_rpc.runtime.handler_context import HandlerContext, RouteHandler
from envelope_rpc.runtime.route_matcher import RouteDescriptor, match_route, validate_route
from envelope_rpc.runtime.rpc_client import RpcClient
from envelope_rpc.runtime.rpc_server import RoutePredicate, RpcServer

__all__: list[str] = [
    "CancellationToken",
    "HandlerContext",
    "RouteDescriptor",
    "RouteHandler",
    "RoutePredicate",
    "RpcClient",
    "RpcServer",
    "accepts_inbound",
    "accepts_response",
    "load_client_config",
    "load_server_config",
    "map_error",
    "match_route",
    "normalize_error_code",
    "validate_route",
]
