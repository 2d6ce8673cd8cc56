"""
Closeable FIFO channels connecting the stages of a coverage run.

A Channel is a ``queue.Queue`` plus an end-of-stream sentinel. Producers
``put`` items and ``close`` once done; consumers iterate until the close
signal arrives. Ordering within one channel is strict FIFO.
"""

import threading
from queue import Queue
from typing import Generic, Iterator, TypeVar

T = TypeVar("T")

_CLOSED = object()


class ChannelClosedError(RuntimeError):
    """Raised when putting to a channel that was already closed."""
    pass


class Channel(Generic[T]):
    """
    Usage:
        ch = Channel()
        threading.Thread(target=lambda: (ch.put(1), ch.close())).start()
        for item in ch:
            ...
    """

    def __init__(self, maxsize: int = 0, name: str = ""):
        self.name = name
        self._queue: Queue = Queue(maxsize=maxsize)
        self._lock = threading.Lock()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def put(self, item: T) -> None:
        with self._lock:
            if self._closed:
                raise ChannelClosedError(f"channel '{self.name}' is closed")
        self._queue.put(item)

    def close(self) -> None:
        """Signal end-of-stream. Closing twice is a no-op."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
        self._queue.put(_CLOSED)

    def __iter__(self) -> Iterator[T]:
        while True:
            item = self._queue.get()
            if item is _CLOSED:
                # Leave the sentinel for any other consumer
                self._queue.put(_CLOSED)
                return
            yield item

    def drain(self) -> list:
        """Consume the channel until closed and return every item."""
        return list(self)

    def __repr__(self) -> str:
        state = "closed" if self._closed else "open"
        return f"Channel({self.name!r}, {state})"
