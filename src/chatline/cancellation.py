"""Cooperative cancellation shared by the turn controller and transports."""

from __future__ import annotations

import asyncio


class CancelToken:
    """One-shot cancellation signal for a single turn.

    The controller calls :meth:`cancel`; transports check
    :attr:`cancelled` between chunks (or ``await wait()``) and stop
    producing.  Already-delivered chunks are never rolled back.
    """

    def __init__(self) -> None:
        self._event = asyncio.Event()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self) -> None:
        self._event.set()

    async def wait(self) -> None:
        await self._event.wait()
