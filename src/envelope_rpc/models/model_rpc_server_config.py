# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""RPC Server Configuration Model.

Bundles the options recognized by ``RpcServer``. The route permission
predicate is a callable and is passed to the server separately.
"""

from __future__ import annotations

from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field

from envelope_rpc.models.model_rpc_client_config import DEFAULT_MAX_PAYLOAD_BYTES


class ModelRpcServerConfig(BaseModel):
    """Configuration model for the serving side.

    Attributes:
        auto_start: Attach to the endpoint on construction
        max_payload_bytes: Ceiling on the serialized request payload size
        server_id: Own identity, stamped as source on replies
        bus: Bus scope; absent means unscoped
        accept_unaddressed: Accept requests that carry no target id
    """

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
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
    server_id: str = Field(
        default_factory=lambda: str(uuid4()),
        min_length=1,
        description="Own identity (generated when not configured)",
    )
    bus: str | None = Field(
        default=None,
        min_length=1,
        description="Bus scope for accepted messages",
    )
    accept_unaddressed: bool = Field(
        default=True,
        description="Accept requests without a target id",
    )


__all__ = ["ModelRpcServerConfig"]
