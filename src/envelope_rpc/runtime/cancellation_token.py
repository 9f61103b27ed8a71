# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Cooperative cancellation token.

A ``CancellationToken`` only signals intent: aborting it flips the
``aborted`` flag, wakes ``wait()`` callers and notifies listeners. Nothing
is force-terminated; code holding the token decides how to react.

The same type is used on both sides:
    - callers pass one to ``RpcClient.call`` to abort a call
    - handlers receive one in ``HandlerContext.cancellation`` and observe
      cancellation requested by the client or by server shutdown

Listeners run synchronously inside ``abort()`` on the caller's thread and
must not block.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable

logger = logging.getLogger(__name__)

CancellationListener = Callable[[], None]


class CancellationToken:
    """Cooperative abort signal with listener notification."""

    def __init__(self) -> None:
        self._aborted = False
        self._reason: str | None = None
        self._listeners: list[CancellationListener] = []
        self._event: asyncio.Event | None = None

    @property
    def aborted(self) -> bool:
        return self._aborted

    @property
    def reason(self) -> str | None:
        return self._reason

    def add_listener(self, listener: CancellationListener) -> Callable[[], None]:
        """Subscribe to the abort notification.

        A listener added after the token was aborted is invoked immediately.

        Returns:
            A callable removing the listener; safe to call more than once.
        """
        if self._aborted:
            listener()
            return lambda: None
        self._listeners.append(listener)

        def _remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _remove

    def abort(self, reason: str | None = None) -> None:
        """Abort the token and notify listeners. Idempotent."""
        if self._aborted:
            return
        self._aborted = True
        self._reason = reason
        if self._event is not None:
            self._event.set()
        listeners, self._listeners = self._listeners, []
        for listener in listeners:
            try:
                listener()
            except Exception:
                logger.exception("Cancellation listener failed", extra={"reason": reason})

    async def wait(self) -> None:
        """Suspend until the token is aborted."""
        if self._aborted:
            return
        if self._event is None:
            self._event = asyncio.Event()
        await self._event.wait()

    def __repr__(self) -> str:
        return f"CancellationToken(aborted={self._aborted}, reason={self._reason!r})"


__all__ = ["CancellationListener", "CancellationToken"]
