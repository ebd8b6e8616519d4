"""Cooperative cancellation shared by batch jobs and ffmpeg processes."""
import asyncio

from clipforge.errors import BatchCancelled


class CancelToken:
    """One-shot cancellation flag that async jobs can poll or wait on."""

    def __init__(self):
        self._event = asyncio.Event()
        self.reason: str = "cancelled"

    def cancel(self, reason: str = "cancelled") -> None:
        if not self._event.is_set():
            self.reason = reason
            self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise BatchCancelled(self.reason)

    async def wait(self) -> None:
        await self._event.wait()
