# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Structured Error Record Model.

Defines the structured error record carried by failure responses. Records
are produced by the server's error mapper, by the client for locally
detected failures (timeout, cancellation, transport, shutdown), and are
validated on receipt.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, JsonValue, field_validator

from envelope_rpc.enums import EnumRpcErrorCode

_KNOWN_CODES: frozenset[str] = frozenset(code.value for code in EnumRpcErrorCode)


def normalize_error_code(value: object) -> EnumRpcErrorCode:
    """Coerce an arbitrary code value into the closed error enumeration.

    Enum members and their exact string values are kept; anything else
    becomes ``INTERNAL_ERROR``.

    Example:
        >>> normalize_error_code("TIMEOUT")
        <EnumRpcErrorCode.TIMEOUT: 'TIMEOUT'>
        >>> normalize_error_code("E_SOMETHING")
        <EnumRpcErrorCode.INTERNAL_ERROR: 'INTERNAL_ERROR'>
    """
    if isinstance(value, EnumRpcErrorCode):
        return value
    if isinstance(value, str) and value in _KNOWN_CODES:
        return EnumRpcErrorCode(value)
    return EnumRpcErrorCode.INTERNAL_ERROR


class ModelRpcErrorRecord(BaseModel):
    """Structured error record for failure responses.

    Attributes:
        code: Error code from the closed enumeration
        message: Human-readable description
        route: Route being served when the failure happened
        retriable: Whether the same call may reasonably be retried unmodified
        details: Optional JSON-compatible structured details
    """

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
    )

    code: EnumRpcErrorCode = Field(
        ...,
        description="Error code from the closed RPC error enumeration",
    )
    message: str = Field(
        ...,
        description="Human-readable error message",
    )
    route: str | None = Field(
        default=None,
        description="Route that failed, when applicable",
    )
    retriable: bool | None = Field(
        default=None,
        description="Whether the call may be retried unmodified",
    )
    details: JsonValue | None = Field(
        default=None,
        description="Optional structured details",
    )

    @field_validator("code", mode="before")
    @classmethod
    def _coerce_unknown_code(cls, value: object) -> EnumRpcErrorCode:
        return normalize_error_code(value)

    def to_wire(self) -> dict[str, object]:
        """Serialize to a wire dict, omitting absent optional fields."""
        return self.model_dump(mode="json", exclude_none=True)


__all__ = ["ModelRpcErrorRecord", "normalize_error_code"]
