"""Cooperative cancellation for the in-flight AI call and backoff delays."""

from __future__ import annotations

import asyncio

from tab_organizer.errors import Cancelled


class CancellationToken:
    """One-way latch that async code can check, await, or sleep against."""

    def __init__(self) -> None:
        self._event = asyncio.Event()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self) -> None:
        self._event.set()

    async def wait(self) -> None:
        await self._event.wait()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise Cancelled()

    async def sleep(self, delay_s: float) -> None:
        """Sleep for ``delay_s`` seconds, raising ``Cancelled`` if tripped first."""
        self.raise_if_cancelled()
        try:
            await asyncio.wait_for(self._event.wait(), timeout=delay_s)
        except TimeoutError:
            return
        raise Cancelled()
