from __future__ import annotations

import asyncio
from typing import Generic, TypeVar

from booksync.errors import ChannelClosed


T = TypeVar("T")

DEFAULT_CHANNEL_BOUND = 128

_END = object()


class Channel(Generic[T]):
    """Bounded queue that closes once every sender has released it.

    ``send`` suspends while the queue is full. Iterating the channel yields values until all
    ``senders`` have called :meth:`close`. A receiver that stops early calls
    :meth:`close_receiver`, after which every send raises :class:`ChannelClosed`.
    """

    def __init__(self, maxsize: int = DEFAULT_CHANNEL_BOUND, senders: int = 1) -> None:
        if maxsize < 1:
            raise ValueError("Channel bound must be >= 1")
        if senders < 1:
            raise ValueError("Channel needs at least one sender")
        self._queue: asyncio.Queue[object] = asyncio.Queue(maxsize=maxsize)
        self._open_senders = senders
        self._receiver_closed = False
        self._exhausted = False

    @property
    def closed(self) -> bool:
        return self._open_senders == 0 or self._receiver_closed

    async def send(self, item: T) -> None:
        if self._receiver_closed:
            raise ChannelClosed("Receiving side of the channel has been closed")
        if self._open_senders == 0:
            raise ChannelClosed("Sending side of the channel has been closed")
        await self._queue.put(item)
        if self._receiver_closed:
            self._drain()

    async def close(self) -> None:
        """Release one sender; the last release ends iteration for the receiver."""
        if self._open_senders == 0:
            return
        self._open_senders -= 1
        if self._open_senders == 0 and not self._receiver_closed:
            await self._queue.put(_END)

    def close_receiver(self) -> None:
        self._receiver_closed = True
        self._drain()

    async def recv(self) -> T | None:
        """Next value, or None once the channel is closed."""
        if self._exhausted or self._receiver_closed:
            return None
        item = await self._queue.get()
        if item is _END:
            self._exhausted = True
            return None
        return item  # type: ignore[return-value]

    def __aiter__(self) -> "Channel[T]":
        return self

    async def __anext__(self) -> T:
        item = await self.recv()
        if item is None:
            raise StopAsyncIteration
        return item

    def _drain(self) -> None:
        # Frees any sender suspended on a full queue.
        while True:
            try:
                self._queue.get_nowait()
            except asyncio.QueueEmpty:
                return
