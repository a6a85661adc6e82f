"""Unbounded multi-producer / single-consumer channel for snapshots."""

import asyncio
import queue
import threading
from typing import Generic, Iterator, List, Optional, Tuple, TypeVar

T = TypeVar("T")

_CLOSED = object()


class ChannelClosed(Exception):
    """Raised by a receiver once the sending side is closed and drained."""


class _ChannelState:
    def __init__(self):
        self.queue = queue.SimpleQueue()
        self.lock = threading.Lock()
        self.sender_closed = False
        self.receiver_closed = False


class Sender(Generic[T]):
    """Producer end. Safe to share between threads; never blocks."""

    def __init__(self, state: _ChannelState):
        self._state = state

    def send(self, item: T) -> bool:
        """Queue an item for the consumer.

        Returns:
            False if either end has been closed and the item was dropped
        """
        with self._state.lock:
            if self._state.sender_closed or self._state.receiver_closed:
                return False
            self._state.queue.put(item)
        return True

    def close(self) -> None:
        """Close the sending side; the receiver sees ChannelClosed after draining."""
        with self._state.lock:
            if self._state.sender_closed:
                return
            self._state.sender_closed = True
            self._state.queue.put(_CLOSED)

    @property
    def is_closed(self) -> bool:
        return self._state.sender_closed or self._state.receiver_closed


class Receiver(Generic[T]):
    """Consumer end of a channel."""

    def __init__(self, state: _ChannelState):
        self._state = state

    def recv(self, timeout: Optional[float] = None) -> T:
        """Block until an item is available.

        Args:
            timeout: Seconds to wait, or None to wait indefinitely

        Raises:
            queue.Empty: No item arrived within the timeout
            ChannelClosed: The sender is closed and every item was consumed
        """
        item = self._state.queue.get(timeout=timeout)
        if item is _CLOSED:
            # Leave the marker for any later call
            self._state.queue.put(_CLOSED)
            raise ChannelClosed()
        return item

    def try_recv(self) -> Optional[T]:
        """Return the next item without blocking, or None if nothing is queued."""
        try:
            return self._get_nowait()
        except queue.Empty:
            return None

    def _get_nowait(self) -> T:
        item = self._state.queue.get_nowait()
        if item is _CLOSED:
            self._state.queue.put(_CLOSED)
            raise ChannelClosed()
        return item

    def drain(self) -> List[T]:
        """Return every queued item in order without blocking."""
        items = []
        while True:
            try:
                items.append(self._get_nowait())
            except (queue.Empty, ChannelClosed):
                return items

    def latest(self) -> Optional[T]:
        """Drain the channel and return only the newest item, if any."""
        items = self.drain()
        return items[-1] if items else None

    async def recv_async(self, poll_interval: float = 0.05) -> T:
        """Await the next item without blocking the event loop."""
        while True:
            try:
                return self._get_nowait()
            except queue.Empty:
                await asyncio.sleep(poll_interval)

    def close(self) -> None:
        """Stop accepting items; pending and future sends are dropped."""
        with self._state.lock:
            self._state.receiver_closed = True

    def __iter__(self) -> Iterator[T]:
        while True:
            try:
                yield self.recv()
            except ChannelClosed:
                return

    def pending(self) -> int:
        """Approximate number of queued items."""
        size = self._state.queue.qsize()
        return max(0, size - 1) if self._state.sender_closed else size


def channel() -> Tuple[Sender, Receiver]:
    """Create a connected (sender, receiver) pair with unbounded capacity."""
    state = _ChannelState()
    return Sender(state), Receiver(state)
