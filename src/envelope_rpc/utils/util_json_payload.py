# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""JSON payload helpers.

Provides the JSON-compatibility check used when passing error details
through, and the serialized byte size used to enforce payload ceilings on
both the client and the server.
"""

from __future__ import annotations

import json
import math

__all__ = ["is_json_value", "payload_size_bytes"]


def is_json_value(value: object) -> bool:
    """Return True when ``value`` fits the restricted JSON value model.

    Accepted shapes are ``None``, ``str``, ``bool``, ``int``, ``float``,
    lists (and tuples) of accepted values, and dicts with ``str`` keys whose
    values are accepted recursively.
    """
    if value is None or isinstance(value, (str, bool, int, float)):
        return True
    if isinstance(value, (list, tuple)):
        return all(is_json_value(item) for item in value)
    if isinstance(value, dict):
        return all(
            isinstance(key, str) and is_json_value(item) for key, item in value.items()
        )
    return False


def payload_size_bytes(payload: object) -> float:
    """Return the UTF-8 byte length of the compact JSON form of ``payload``.

    Values that cannot be serialized report ``math.inf`` so they always
    exceed any configured ceiling.
    """
    try:
        encoded = json.dumps(
            payload,
            separators=(",", ":"),
            ensure_ascii=False,
            allow_nan=False,
        )
    except (TypeError, ValueError):
        return math.inf
    # Lone surrogates count as three bytes, as a replacement character would.
    return len(encoded.encode("utf-8", "surrogatepass"))
