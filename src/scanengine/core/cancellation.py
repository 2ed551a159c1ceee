"""Cooperative cancellation for running scans.

Agents are never killed when a scan is cancelled. They observe the shared
token at their own checkpoints and stop there.
"""

import asyncio

from scanengine.core.errors import ScanCancelledError


class CancellationToken:
    """Shared cancellation flag for one scan."""

    def __init__(self):
        self._event = asyncio.Event()
        self.reason: str | None = None

    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self, reason: str = "Scan stopped by user") -> None:
        """Signal cancellation. Only the first reason is kept."""
        if self._event.is_set():
            return
        self.reason = reason
        self._event.set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise ScanCancelledError(self.reason or "Scan cancelled")

    async def wait(self) -> None:
        await self._event.wait()
