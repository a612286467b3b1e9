"""Bounded, closable channel used between the render thread and background tasks."""

from __future__ import annotations

import queue
import threading
from typing import Generic, TypeVar

from gmail_tui.core.exceptions import ChannelClosed, ChannelEmpty, ChannelFull

T = TypeVar("T")


class Channel(Generic[T]):
    """A bounded FIFO with an explicit close signal.

    The render thread only ever calls ``try_send`` and ``try_recv``. Background
    tasks may use the blocking ``send`` and ``recv``, which wake up periodically
    so that a close from the other side is noticed.
    """

    def __init__(self, capacity: int, *, poll_interval: float = 0.1) -> None:
        if capacity <= 0:
            raise ValueError("capacity must be positive")
        self._queue: queue.Queue[T] = queue.Queue(maxsize=capacity)
        self._closed = threading.Event()
        self._poll_interval = poll_interval

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    def close(self) -> None:
        """Close the channel. Items already queued can still be received."""
        self._closed.set()

    def try_send(self, item: T) -> None:
        """Enqueue without blocking.

        Raises:
            ChannelFull: If the channel is at capacity.
            ChannelClosed: If the channel was closed.
        """
        if self.closed:
            raise ChannelClosed("send on closed channel")
        try:
            self._queue.put_nowait(item)
        except queue.Full:
            raise ChannelFull("channel is full") from None

    def send(self, item: T, timeout: float | None = None) -> None:
        """Enqueue, waiting for room. Raises ChannelClosed if closed meanwhile."""
        waited = 0.0
        while True:
            if self.closed:
                raise ChannelClosed("send on closed channel")
            try:
                self._queue.put(item, timeout=self._poll_interval)
                return
            except queue.Full:
                waited += self._poll_interval
                if timeout is not None and waited >= timeout:
                    raise ChannelFull("timed out waiting for room") from None

    def try_recv(self) -> T:
        """Dequeue without blocking.

        Raises:
            ChannelEmpty: If nothing is queued and the channel is open.
            ChannelClosed: If nothing is queued and the channel is closed.
        """
        try:
            return self._queue.get_nowait()
        except queue.Empty:
            pass
        if not self.closed:
            raise ChannelEmpty("channel is empty")
        # The sender closes after its last send, so one more look is enough.
        try:
            return self._queue.get_nowait()
        except queue.Empty:
            raise ChannelClosed("channel closed") from None

    def recv(self) -> T:
        """Dequeue, waiting for an item. Raises ChannelClosed once closed and drained."""
        while True:
            try:
                return self._queue.get(timeout=self._poll_interval)
            except queue.Empty:
                pass
            if self.closed:
                try:
                    return self._queue.get_nowait()
                except queue.Empty:
                    raise ChannelClosed("channel closed") from None
