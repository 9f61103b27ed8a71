# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""RPC Error Code Enumeration.

Defines the closed set of error codes carried by structured error records
in failure responses and raised through ``RpcCallError`` subclasses.
"""

from enum import Enum


class EnumRpcErrorCode(str, Enum):
    """Closed error taxonomy for request/response exchanges.

    Attributes:
        ROUTE_NOT_FOUND: No registered route matched the request path
        TIMEOUT: No response arrived before the call deadline
        INTERNAL_ERROR: Handler failed, or a failure carried an unknown code
        INVALID_MESSAGE: A message could not be interpreted
        PAYLOAD_TOO_LARGE: Serialized payload exceeded the byte ceiling
        FORBIDDEN: The route permission predicate rejected the route
        CLIENT_CLOSED: The client was shut down before the call settled
        CANCELLED: The caller aborted the call
        TRANSPORT_ERROR: The endpoint failed to send the request
    """

    ROUTE_NOT_FOUND = "ROUTE_NOT_FOUND"
    TIMEOUT = "TIMEOUT"
    INTERNAL_ERROR = "INTERNAL_ERROR"
    INVALID_MESSAGE = "INVALID_MESSAGE"
    PAYLOAD_TOO_LARGE = "PAYLOAD_TOO_LARGE"
    FORBIDDEN = "FORBIDDEN"
    CLIENT_CLOSED = "CLIENT_CLOSED"
    CANCELLED = "CANCELLED"
    TRANSPORT_ERROR = "TRANSPORT_ERROR"


__all__ = ["EnumRpcErrorCode"]
