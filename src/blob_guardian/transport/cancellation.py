"""Cooperative cancellation for in-flight requests."""
from __future__ import annotations

import asyncio
from typing import Sequence

from ..exceptions import Cancelled
from ..models import RequestAttempt


class CancellationToken:
    """One-shot signal checked at attempt and wait boundaries.

    ``cancel`` must be called from the event loop thread; use
    ``loop.call_soon_threadsafe(token.cancel)`` from elsewhere.
    """

    def __init__(self) -> None:
        self._event = asyncio.Event()
        self._reason = "request cancelled"

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    @property
    def reason(self) -> str:
        return self._reason

    def cancel(self, reason: str | None = None) -> None:
        if self._event.is_set():
            return
        if reason:
            self._reason = reason
        self._event.set()

    async def wait(self) -> None:
        await self._event.wait()

    def raise_if_cancelled(
        self, *, attempts: Sequence[RequestAttempt] = (), operation: str | None = None
    ) -> None:
        if self.cancelled:
            raise Cancelled(self._reason, attempts=attempts, operation=operation)


__all__ = ["CancellationToken"]
