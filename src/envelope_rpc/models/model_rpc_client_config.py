# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""RPC Client Configuration Model.

Bundles the options recognized by ``RpcClient``. Identity fields are fixed
for the lifetime of the client.
"""

from __future__ import annotations

from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_TIMEOUT_MS = 10_000
DEFAULT_MAX_PAYLOAD_BYTES = 2 * 1024 * 1024


class ModelRpcClientConfig(BaseModel):
    """Configuration model for the requesting side.

    Attributes:
        timeout_ms: Default call timeout in milliseconds
        auto_start: Attach to the endpoint on construction
        max_payload_bytes: Ceiling on the serialized request payload size
        client_id: Own identity, stamped as source on outgoing envelopes
        target_id: Fixed server identity; absent means unaddressed sends
        bus: Bus scope; absent means unscoped

    Example:
        >>> config = ModelRpcClientConfig(
        ...     client_id="client-1",
        ...     target_id="server-a",
        ...     bus="core",
        ...     timeout_ms=500,
        ... )
    """

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
    )

    timeout_ms: int = Field(
        default=DEFAULT_TIMEOUT_MS,
        gt=0,
        description="Default call timeout in milliseconds",
    )
    auto_start: bool = Field(
        default=True,
        description="Attach the receive handler on construction",
    )
    max_payload_bytes: int = Field(
        default=DEFAULT_MAX_PAYLOAD_BYTES,
        ge=0,
        description="Maximum serialized payload size in bytes",
    )
    client_id: str = Field(
        default_factory=lambda: str(uuid4()),
        min_length=1,
        description="Own identity (generated when not configured)",
    )
    target_id: str | None = Field(
        default=None,
        min_length=1,
        description="Fixed server identity for addressed sends",
    )
    bus: str | None = Field(
        default=None,
        min_length=1,
        description="Bus scope for outgoing and accepted messages",
    )


__all__ = [
    "DEFAULT_MAX_PAYLOAD_BYTES",
    "DEFAULT_TIMEOUT_MS",
    "ModelRpcClientConfig",
]
