# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""RPC Error Classes.

Error Hierarchy:
    RpcError (base)
    ├── ProtocolConfigurationError
    ├── RouteValidationError
    └── RpcCallError (carries a ModelRpcErrorRecord)
        ├── RpcRouteNotFoundError
        ├── RpcTimeoutError
        ├── RpcInvalidMessageError
        ├── RpcPayloadTooLargeError
        ├── RpcForbiddenError
        ├── RpcClientClosedError
        ├── RpcCancelledError
        └── RpcTransportError

``RpcCallError`` instances are what a failed ``RpcClient.call`` future
raises. The concrete subclass is picked from the record's code by
``error_from_record``; every instance still exposes ``code`` and
``retriable`` so callers can implement retry policy without matching on
classes.
"""

from __future__ import annotations

from typing import ClassVar

from envelope_rpc.enums import EnumRpcErrorCode
from envelope_rpc.errors.model_rpc_error_context import ModelRpcErrorContext
from envelope_rpc.models.model_rpc_error_record import ModelRpcErrorRecord


class RpcError(Exception):
    """Base error class for the envelope RPC layer.

    Structured Fields (via ModelRpcErrorContext):
        operation: Operation being performed
        target_name: Route, endpoint, or resource name
        correlation_id: Request identifier for tracing

    Example:
        >>> context = ModelRpcErrorContext(operation="load_config", target_name="rpc.yaml")
        >>> raise RpcError("Operation failed", context=context, attempt=2)
    """

    def __init__(
        self,
        message: str,
        error_code: EnumRpcErrorCode | None = None,
        context: ModelRpcErrorContext | None = None,
        **extra_context: object,
    ) -> None:
        """Initialize RpcError with structured fields.

        Args:
            message: Human-readable error message
            error_code: Wire error code, when the error maps onto one
            context: Bundled context (operation, target_name, correlation_id)
            **extra_context: Additional context information
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.context: dict[str, object] = dict(extra_context)
        self.correlation_id: str | None = None
        if context is not None:
            if context.operation is not None:
                self.context["operation"] = context.operation
            if context.target_name is not None:
                self.context["target_name"] = context.target_name
            self.correlation_id = context.correlation_id


class ProtocolConfigurationError(RpcError):
    """Raised when client or server configuration cannot be loaded or validated.

    Example:
        >>> raise ProtocolConfigurationError(
        ...     "Config file not found: rpc.yaml",
        ...     context=ModelRpcErrorContext.with_correlation(operation="load_config"),
        ... )
    """


class RouteValidationError(RpcError, ValueError):
    """Raised synchronously for a malformed route descriptor.

    Non-pattern routes must be strings that start with ``/``.
    """

    def __init__(self, route: object) -> None:
        super().__init__(
            f"Route must start with '/': {route!r}",
            context=ModelRpcErrorContext(operation="validate_route"),
            route=str(route),
        )
        self.route = route


class RpcCallError(RpcError):
    """Failure outcome of a single call, local or remote.

    Attributes:
        record: The structured error record
        request_id: Identifier of the failed request ("local" when the call
            was rejected before an identifier was assigned)
        code: Error code from the record
        route: Route from the record
        retriable: Retriability flag (False when the record carries none)
        details: Structured details from the record
    """

    expected_code: ClassVar[EnumRpcErrorCode | None] = None

    def __init__(self, record: ModelRpcErrorRecord, request_id: str) -> None:
        super().__init__(
            f"{record.code.value}: {record.message}",
            error_code=record.code,
            context=ModelRpcErrorContext(
                operation="call",
                target_name=record.route,
                correlation_id=request_id,
            ),
        )
        self.message = record.message
        self.record = record
        self.request_id = request_id

    @property
    def code(self) -> EnumRpcErrorCode:
        return self.record.code

    @property
    def route(self) -> str | None:
        return self.record.route

    @property
    def retriable(self) -> bool:
        return bool(self.record.retriable)

    @property
    def details(self) -> object:
        return self.record.details


class RpcRouteNotFoundError(RpcCallError):
    """No route on the server matched the request path."""

    expected_code = EnumRpcErrorCode.ROUTE_NOT_FOUND


class RpcTimeoutError(RpcCallError):
    """No response arrived before the call deadline."""

    expected_code = EnumRpcErrorCode.TIMEOUT


class RpcInvalidMessageError(RpcCallError):
    """A message could not be interpreted."""

    expected_code = EnumRpcErrorCode.INVALID_MESSAGE


class RpcPayloadTooLargeError(RpcCallError):
    """The serialized payload exceeded a byte ceiling."""

    expected_code = EnumRpcErrorCode.PAYLOAD_TOO_LARGE


class RpcForbiddenError(RpcCallError):
    """The server's permission predicate rejected the route."""

    expected_code = EnumRpcErrorCode.FORBIDDEN


class RpcClientClosedError(RpcCallError):
    """The client was shut down before, or while, the call was pending."""

    expected_code = EnumRpcErrorCode.CLIENT_CLOSED


class RpcCancelledError(RpcCallError):
    """The caller aborted the call through its cancellation token."""

    expected_code = EnumRpcErrorCode.CANCELLED


class RpcTransportError(RpcCallError):
    """The endpoint failed to send the request."""

    expected_code = EnumRpcErrorCode.TRANSPORT_ERROR


_ERRORS_BY_CODE: dict[EnumRpcErrorCode, type[RpcCallError]] = {
    cls.expected_code: cls
    for cls in (
        RpcRouteNotFoundError,
        RpcTimeoutError,
        RpcInvalidMessageError,
        RpcPayloadTooLargeError,
        RpcForbiddenError,
        RpcClientClosedError,
        RpcCancelledError,
        RpcTransportError,
    )
    if cls.expected_code is not None
}


def error_from_record(record: ModelRpcErrorRecord, request_id: str) -> RpcCallError:
    """Build the ``RpcCallError`` subclass matching the record's code.

    ``INTERNAL_ERROR`` records produce a plain ``RpcCallError``.
    """
    error_cls = _ERRORS_BY_CODE.get(record.code, RpcCallError)
    return error_cls(record, request_id)


__all__ = [
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
