# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Enumerations for the envelope RPC layer.

Exports:
    EnumEnvelopeKind: Wire kind tag (REQUEST, RESPONSE, CANCEL)
    EnumRouteKind: Route descriptor variant (LITERAL, PARAMETERIZED, PATTERN)
    EnumRpcErrorCode: Closed error taxonomy for structured error records
"""

from envelope_rpc.enums.enum_envelope_kind import EnumEnvelopeKind
from envelope_rpc.enums.enum_route_kind import EnumRouteKind
from envelope_rpc.enums.enum_rpc_error_code import EnumRpcErrorCode

__all__: list[str] = [
    "EnumEnvelopeKind",
    "EnumRouteKind",
    "EnumRpcErrorCode",
]
