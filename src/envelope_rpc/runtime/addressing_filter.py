# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Addressing Filter.

Pure acceptance checks for addressed envelopes travelling over a shared
medium. Servers apply ``accepts_inbound`` to every request and cancel;
clients apply ``accepts_response`` to every response.

Bus Matrix (server side):

    +----------------+------------------+-----------------+
    | server bus     | message bus      | outcome         |
    +================+==================+=================+
    | "core"         | "core"           | accept          |
    | "core"         | "analytics"      | reject          |
    | "core"         | (none)           | reject          |
    | (none)         | "core"           | reject          |
    | (none)         | (none)           | accept          |
    +----------------+------------------+-----------------+

Empty strings are treated as absent.
"""

from __future__ import annotations


def accepts_inbound(
    self_id: str,
    self_bus: str | None,
    source_id: str | None,
    target_id: str | None,
    bus: str | None,
    accept_unaddressed: bool,
) -> bool:
    """Decide whether a server accepts an inbound request or cancel.

    Args:
        self_id: The server's own identity.
        self_bus: The server's bus scope, if any.
        source_id: Sender identity carried by the message.
        target_id: Intended receiver carried by the message.
        bus: Bus scope carried by the message.
        accept_unaddressed: Whether messages without a target are accepted.

    Returns:
        True when the message is meant for this server.
    """
    if source_id and source_id == self_id:
        return False
    if target_id:
        if target_id != self_id:
            return False
    elif not accept_unaddressed:
        return False
    if self_bus:
        return bool(bus) and bus == self_bus
    return not bus


def accepts_response(
    client_id: str,
    expected_source_id: str | None,
    client_bus: str | None,
    source_id: str | None,
    target_id: str | None,
    bus: str | None,
) -> bool:
    """Decide whether a client accepts an inbound response.

    The client's fixed target (when configured) is the expected source of
    a valid reply.

    Args:
        client_id: The client's own identity.
        expected_source_id: The client's fixed target id, if any.
        client_bus: The client's bus scope, if any.
        source_id: Sender identity carried by the response.
        target_id: Receiver identity carried by the response.
        bus: Bus scope carried by the response.

    Returns:
        True when the response may settle one of this client's calls.
    """
    if target_id and target_id != client_id:
        return False
    if expected_source_id and source_id and source_id != expected_source_id:
        return False
    if client_bus and bus and bus != client_bus:
        return False
    return True


__all__ = ["accepts_inbound", "accepts_response"]
