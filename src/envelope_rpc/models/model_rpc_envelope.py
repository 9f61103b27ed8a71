# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Wire Envelope Models.

Defines the three envelope variants exchanged over an endpoint, tagged by
``kind``:

    - request:  ``ModelRpcRequest`` (route + payload)
    - response: ``ModelRpcSuccess`` (``ok=True`` + result) or
      ``ModelRpcFailure`` (``ok=False`` + structured error record)
    - cancel:   ``ModelRpcCancel``

Wire Format:
    Envelopes travel as plain JSON-compatible dicts. Optional addressing keys
    (``source_id``, ``target_id``, ``bus``) are omitted when absent::

        {"version": 1, "kind": "request", "id": "5f0c...", "route": "/users/42",
         "payload": {"fields": ["name"]}, "source_id": "client-1", "bus": "core"}

Versioning:
    ``parse_envelope`` ignores any value whose ``version`` differs from
    ``RPC_PROTOCOL_VERSION``. Unknown extra keys are tolerated.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Literal, Union

from pydantic import BaseModel, ConfigDict, Field, JsonValue, ValidationError

from envelope_rpc.enums import EnumEnvelopeKind
from envelope_rpc.models.model_rpc_error_record import ModelRpcErrorRecord

logger = logging.getLogger(__name__)

RPC_PROTOCOL_VERSION = 1

_ADDRESSING_KEYS = ("source_id", "target_id", "bus")


class ModelRpcEnvelopeBase(BaseModel):
    """Fields shared by every envelope variant."""

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
    )

    version: int = Field(
        default=RPC_PROTOCOL_VERSION,
        description="Protocol version of the envelope",
    )
    id: str = Field(
        ...,
        description="Identifier correlating a request with its response or cancel",
    )
    source_id: str | None = Field(
        default=None,
        description="Identity of the sender",
    )
    target_id: str | None = Field(
        default=None,
        description="Identity of the intended receiver (absent means unaddressed)",
    )
    bus: str | None = Field(
        default=None,
        description="Bus scope of the message (absent means unscoped)",
    )

    def to_wire(self) -> dict[str, object]:
        """Serialize to a wire dict, omitting absent addressing fields."""
        data = self.model_dump(mode="json")
        for key in _ADDRESSING_KEYS:
            if data.get(key) is None:
                data.pop(key, None)
        return data


class ModelRpcRequest(ModelRpcEnvelopeBase):
    """Request envelope carrying a route and a payload."""

    kind: Literal["request"] = "request"
    route: str = Field(..., description="Concrete route path being requested")
    payload: JsonValue = Field(default=None, description="Request payload")


class ModelRpcSuccess(ModelRpcEnvelopeBase):
    """Successful response envelope."""

    kind: Literal["response"] = "response"
    ok: Literal[True] = True
    result: JsonValue = Field(..., description="Handler result")


class ModelRpcFailure(ModelRpcEnvelopeBase):
    """Failed response envelope carrying a structured error record."""

    kind: Literal["response"] = "response"
    ok: Literal[False] = False
    error: ModelRpcErrorRecord = Field(..., description="Structured error record")

    def to_wire(self) -> dict[str, object]:
        data = super().to_wire()
        data["error"] = self.error.to_wire()
        return data


class ModelRpcCancel(ModelRpcEnvelopeBase):
    """Advisory cancellation of an in-flight request."""

    kind: Literal["cancel"] = "cancel"


ModelRpcResponse = Union[ModelRpcSuccess, ModelRpcFailure]
ModelRpcEnvelope = Union[ModelRpcRequest, ModelRpcSuccess, ModelRpcFailure, ModelRpcCancel]


def parse_envelope(raw: object) -> ModelRpcEnvelope | None:
    """Validate an untyped inbound value into an envelope.

    Never raises: anything that is not a well-formed envelope of the current
    protocol version yields None.

    Args:
        raw: Value handed over by the endpoint's receive slot.

    Returns:
        The parsed envelope, or None when the value must be ignored.
    """
    if not isinstance(raw, Mapping):
        return None

    version = raw.get("version")
    if isinstance(version, bool) or version != RPC_PROTOCOL_VERSION:
        logger.debug("Ignoring envelope with unsupported version", extra={"version": version})
        return None

    kind = raw.get("kind")
    model: type[ModelRpcEnvelopeBase]
    if kind == EnumEnvelopeKind.REQUEST:
        model = ModelRpcRequest
    elif kind == EnumEnvelopeKind.CANCEL:
        model = ModelRpcCancel
    elif kind == EnumEnvelopeKind.RESPONSE and raw.get("ok") is True:
        model = ModelRpcSuccess
    elif kind == EnumEnvelopeKind.RESPONSE and raw.get("ok") is False:
        model = ModelRpcFailure
    else:
        return None

    try:
        return model.model_validate(dict(raw))  # type: ignore[return-value]
    except ValidationError as e:
        logger.debug(
            "Dropping malformed envelope",
            extra={"kind": kind, "error_count": e.error_count()},
        )
        return None


__all__ = [
    "RPC_PROTOCOL_VERSION",
    "ModelRpcCancel",
    "ModelRpcEnvelope",
    "ModelRpcEnvelopeBase",
    "ModelRpcFailure",
    "ModelRpcRequest",
    "ModelRpcResponse",
    "ModelRpcSuccess",
    "parse_envelope",
]
