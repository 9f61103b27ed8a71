# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Utility modules for the envelope RPC layer.

This package provides:
    - util_json_payload: JSON value checks and serialized payload sizing
"""

from envelope_rpc.utils.util_json_payload import is_json_value, payload_size_bytes

__all__: list[str] = [
    "is_json_value",
    "payload_size_bytes",
]
