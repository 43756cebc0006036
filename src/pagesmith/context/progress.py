"""Progress delivery for context acquisition.

A run writes ``ProgressEvent`` records into a bounded :class:`ProgressChannel`
that exactly one consumer drains until the channel is closed.  A
:class:`CancellationToken` is the only way to stop a run early; a consumer
that walks away merely detaches from the channel.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator

from pagesmith.context.models import ProgressEvent
from pagesmith.errors import PagesmithError

logger = logging.getLogger(__name__)

_CLOSED = object()


class AcquisitionCancelled(PagesmithError):
    """Raised inside a run once its cancellation token has been tripped."""


class CancellationToken:
    """Cooperative cancellation flag checked before every phase and write."""

    def __init__(self) -> None:
        self._cancelled = False
        self.reason = ""

    def cancel(self, reason: str = "cancelled by caller") -> None:
        self._cancelled = True
        self.reason = reason

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def raise_if_cancelled(self) -> None:
        if self._cancelled:
            raise AcquisitionCancelled(self.reason)


class ProgressChannel:
    """Bounded single-consumer queue of progress events.

    ``send`` blocks while the queue is full.  After :meth:`detach` every
    pending and future event is dropped so the producer never blocks on a
    consumer that is gone.
    """

    def __init__(self, maxsize: int = 32) -> None:
        self._queue: asyncio.Queue[object] = asyncio.Queue(maxsize=maxsize)
        self._closed = False
        self._detached = False

    @property
    def closed(self) -> bool:
        return self._closed

    async def send(self, event: ProgressEvent) -> None:
        if self._closed:
            raise RuntimeError("send() on a closed progress channel")
        if self._detached:
            return
        await self._queue.put(event)

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        if not self._detached:
            await self._queue.put(_CLOSED)

    def detach(self) -> None:
        """Mark the consumer as gone and release a producer blocked on a full queue."""
        if self._detached:
            return
        self._detached = True
        dropped = 0
        while not self._queue.empty():
            self._queue.get_nowait()
            dropped += 1
        if dropped:
            logger.debug("Progress consumer detached, dropped %d queued events", dropped)

    async def __aiter__(self) -> AsyncIterator[ProgressEvent]:
        while True:
            item = await self._queue.get()
            if item is _CLOSED:
                return
            yield item  # type: ignore[misc]


def to_sse(event: ProgressEvent) -> str:
    """Render one event as a server-sent-events ``data:`` record."""
    return f"data: {event.model_dump_json(exclude_none=True)}\n\n"
