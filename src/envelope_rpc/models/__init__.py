# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Pydantic models for the envelope RPC layer.

Exports:
    ModelRpcRequest / ModelRpcSuccess / ModelRpcFailure / ModelRpcCancel:
        Wire envelope variants
    ModelRpcErrorRecord: Structured error record carried by failures
    ModelRpcClientConfig / ModelRpcServerConfig: Configuration models
    parse_envelope: Tolerant validation of untyped inbound values
"""

from envelope_rpc.models.model_rpc_client_config import (
    DEFAULT_MAX_PAYLOAD_BYTES,
    DEFAULT_TIMEOUT_MS,
    ModelRpcClientConfig,
)
from envelope_rpc.models.model_rpc_envelope import (
    RPC_PROTOCOL_VERSION,
    ModelRpcCancel,
    ModelRpcEnvelope,
    ModelRpcEnvelopeBase,
    ModelRpcFailure,
    ModelRpcRequest,
    ModelRpcResponse,
    ModelRpcSuccess,
    parse_envelope,
)
from envelope_rpc.models.model_rpc_error_record import (
    ModelRpcErrorRecord,
    normalize_error_code,
)
from envelope_rpc.models.model_rpc_server_config import ModelRpcServerConfig

__all__: list[str] = [
    "DEFAULT_MAX_PAYLOAD_BYTES",
    "DEFAULT_TIMEOUT_MS",
    "RPC_PROTOCOL_VERSION",
    "ModelRpcCancel",
    "ModelRpcClientConfig",
    "ModelRpcEnvelope",
    "ModelRpcEnvelopeBase",
    "ModelRpcErrorRecord",
    "ModelRpcFailure",
    "ModelRpcRequest",
    "ModelRpcResponse",
    "ModelRpcServerConfig",
    "ModelRpcSuccess",
    "normalize_error_code",
    "parse_envelope",
]
