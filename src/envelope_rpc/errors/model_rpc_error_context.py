# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""RPC Error Context Configuration Model.

Bundles the structured fields attached to ``RpcError`` instances so error
constructors keep a short parameter list.
"""

from __future__ import annotations

from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field


class ModelRpcErrorContext(BaseModel):
    """Configuration model for RPC error context.

    Attributes:
        operation: Operation being performed (call, dispatch, load_config, ...)
        target_name: Route, endpoint, or file the operation targeted
        correlation_id: Request identifier or generated tracing id

    Example:
        >>> context = ModelRpcErrorContext(
        ...     operation="call",
        ...     target_name="/users/42",
        ...     correlation_id="5f0c7d3e-...",
        ... )
    """

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
    )

    operation: str | None = Field(
        default=None,
        description="Operation being performed",
    )
    target_name: str | None = Field(
        default=None,
        description="Route, endpoint, or resource name",
    )
    correlation_id: str | None = Field(
        default=None,
        description="Request identifier for tracing",
    )

    @classmethod
    def with_correlation(
        cls,
        correlation_id: str | None = None,
        **kwargs: str | None,
    ) -> ModelRpcErrorContext:
        """Build a context, generating a correlation id when none is given."""
        return cls(correlation_id=correlation_id or str(uuid4()), **kwargs)


__all__ = ["ModelRpcErrorContext"]
