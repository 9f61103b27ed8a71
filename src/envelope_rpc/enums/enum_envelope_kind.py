# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Envelope kind tag enumeration for wire messages."""

from enum import Enum


class EnumEnvelopeKind(str, Enum):
    """Kind tag carried by every envelope on the wire."""

    REQUEST = "request"
    RESPONSE = "response"
    CANCEL = "cancel"


__all__ = ["EnumEnvelopeKind"]
