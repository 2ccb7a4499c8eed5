"""Progress channel for long-running acquisition operations.

Downloads and JSON ingestion publish :class:`~novelshelf.models.fetch.FetchProgress`
snapshots to a :class:`ProgressChannel`.  Consumers either subscribe a
callback (sync or async) or poll :attr:`ProgressChannel.latest`.

Listener failures are caught and logged so a broken consumer (a closed
terminal, a dropped websocket) never aborts the transfer it is watching.
Snapshots are delivered in publish order; each ``publish`` awaits every
listener before returning.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable

import structlog

from novelshelf.models.fetch import FetchProgress
from novelshelf.utils.logging import get_logger

ProgressCallback = Callable[[FetchProgress], object]


class ProgressChannel:
    """Fan-out of progress snapshots to registered listeners."""

    def __init__(self, name: str = "progress") -> None:
        self._name = name
        self._listeners: list[ProgressCallback] = []
        self._latest: FetchProgress | None = None
        self._logger: structlog.BoundLogger = get_logger(__name__)

    @classmethod
    def from_callback(cls, callback: ProgressCallback | None, name: str = "progress") -> ProgressChannel:
        """Build a channel with *callback* (if any) already subscribed."""
        channel = cls(name=name)
        if callback is not None:
            channel.subscribe(callback)
        return channel

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @property
    def latest(self) -> FetchProgress | None:
        """The most recently published snapshot, or ``None``."""
        return self._latest

    def subscribe(self, callback: ProgressCallback) -> None:
        if callback not in self._listeners:
            self._listeners.append(callback)

    def unsubscribe(self, callback: ProgressCallback) -> None:
        if callback in self._listeners:
            self._listeners.remove(callback)

    async def publish(self, progress: FetchProgress) -> None:
        """Record *progress* and notify every listener in subscription order."""
        self._latest = progress
        self._logger.debug(
            "progress_update",
            channel=self._name,
            loaded=progress.loaded,
            total=progress.total,
            percentage=round(progress.percentage, 1),
        )

        for callback in list(self._listeners):
            try:
                result = callback(progress)
                if asyncio.iscoroutine(result):
                    await result
            except Exception as exc:
                self._logger.warning(
                    "progress_listener_error",
                    channel=self._name,
                    error=str(exc),
                    callback=getattr(callback, "__name__", repr(callback)),
                )

    async def publish_checkpoint(self, percentage: int) -> None:
        """Publish a coarse checkpoint out of 100 for single-shot transfers."""
        await self.publish(FetchProgress(loaded=percentage, total=100, percentage=percentage))
