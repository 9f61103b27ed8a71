# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Error Mapper.

Normalizes whatever a handler raised into a ``ModelRpcErrorRecord`` for the
failure response. Fields are read from a mapping's keys or from an object's
attributes, so both ``raise SomeError(...)`` with ``code``/``retriable``
attributes and dict-like failure values are understood.

Rules:
    - code: kept only if it belongs to ``EnumRpcErrorCode``, else
      ``INTERNAL_ERROR``
    - message: an explicit string ``message`` field, else the exception
      text, else ``"Unknown error"``
    - details: passed through only when JSON-compatible
    - retriable: an explicit bool wins; otherwise True only for TIMEOUT and
      TRANSPORT_ERROR
    - route: always the route being served
"""

from __future__ import annotations

from collections.abc import Mapping

from envelope_rpc.enums import EnumRpcErrorCode
from envelope_rpc.models import ModelRpcErrorRecord, normalize_error_code
from envelope_rpc.utils import is_json_value

FALLBACK_ERROR_MESSAGE = "Unknown error"

_RETRIABLE_BY_DEFAULT: frozenset[EnumRpcErrorCode] = frozenset(
    {EnumRpcErrorCode.TIMEOUT, EnumRpcErrorCode.TRANSPORT_ERROR}
)

_MISSING = object()


def _read_field(raw: object, name: str) -> object:
    if isinstance(raw, Mapping):
        return raw.get(name, _MISSING)
    return getattr(raw, name, _MISSING)


def default_retriable(code: EnumRpcErrorCode) -> bool:
    return code in _RETRIABLE_BY_DEFAULT


def map_error(raw: object, route: str) -> ModelRpcErrorRecord:
    """Map an arbitrary failure value to a structured error record.

    Args:
        raw: The caught exception or failure value.
        route: The route being served; overrides any route on ``raw``.

    Returns:
        A structured error record.

    Example:
        >>> map_error(ValueError("bad input"), "/users/42").code
        <EnumRpcErrorCode.INTERNAL_ERROR: 'INTERNAL_ERROR'>
        >>> map_error({"code": "TIMEOUT", "message": "slow"}, "/x").retriable
        True
    """
    if raw is None or isinstance(raw, (str, bytes, int, float, bool)):
        return ModelRpcErrorRecord(
            code=EnumRpcErrorCode.INTERNAL_ERROR,
            message=FALLBACK_ERROR_MESSAGE,
            route=route,
            retriable=False,
        )

    code = normalize_error_code(_read_field(raw, "code"))

    explicit_message = _read_field(raw, "message")
    if isinstance(explicit_message, str):
        message = explicit_message
    elif isinstance(raw, BaseException) and str(raw):
        message = str(raw)
    else:
        message = FALLBACK_ERROR_MESSAGE

    details = _read_field(raw, "details")
    if details is _MISSING or not is_json_value(details):
        details = None

    explicit_retriable = _read_field(raw, "retriable")
    if isinstance(explicit_retriable, bool):
        retriable = explicit_retriable
    else:
        retriable = default_retriable(code)

    return ModelRpcErrorRecord(
        code=code,
        message=message,
        route=route,
        retriable=retriable,
        details=details,
    )


__all__ = [
    "FALLBACK_ERROR_MESSAGE",
    "default_retriable",
    "map_error",
    "normalize_error_code",
]
