# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Envelope RPC Errors Module.

Exports:
    ModelRpcErrorContext: Configuration model for bundled error context
    RpcError: Base error class
    ProtocolConfigurationError: Configuration loading/validation errors
    RouteValidationError: Malformed route descriptors (raised synchronously)
    RpcCallError: Failed call outcome carrying a structured error record,
        with one subclass per error code
    error_from_record: Select the RpcCallError subclass for a record

Correlation IDs:
    RpcCallError instances carry the request identifier both as
    ``request_id`` and as ``correlation_id`` so log records and raised
    errors can be joined. Errors raised before an identifier exists use the
    literal ``"local"``.
"""

from envelope_rpc.errors.model_rpc_error_context import ModelRpcErrorContext
from envelope_rpc.errors.rpc_errors import (
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
    error_from_record,
)

__all__: list[str] = [
    "ModelRpcErrorContext",
    "ProtocolConfigurationError",
    "RouteValidationError",
    "RpcCallError",
    "RpcCancelledError",
    "RpcClientClosedError",
    "RpcError",
    "RpcForbiddenError",
    "RpcInvalidMessageError",
    "RpcPayloadTooLargeError",
    "RpcRouteNotFoundError",
    "RpcTimeoutError",
    "RpcTransportError",
    "error_from_record",
]
