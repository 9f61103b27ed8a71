# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Handler invocation context and handler type aliases."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field

from envelope_rpc.runtime.cancellation_token import CancellationToken


@dataclass(frozen=True)
class HandlerContext:
    """Context passed to a route handler alongside the payload.

    Attributes:
        route: Concrete path from the request
        matched_route: Source text of the route descriptor that matched
        params: Parameters bound from ``:name`` segments (empty otherwise)
        cancellation: Token aborted when the client cancels or the server stops
    """

    route: str
    matched_route: str
    params: dict[str, str] = field(default_factory=dict)
    cancellation: CancellationToken = field(default_factory=CancellationToken)


RouteHandler = Callable[[object, HandlerContext], object | Awaitable[object]]


__all__ = ["HandlerContext", "RouteHandler"]
