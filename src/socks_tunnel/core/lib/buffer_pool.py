"""Bounded pool of reusable relay buffers.

Every relay loop borrows one buffer per connection direction. Returning it
to the pool keeps allocation churn flat under high connection counts, while
the bound on pooled buffers caps idle memory: when the pool is full a
returned buffer is simply dropped and left to the garbage collector, and when
it is empty a fresh one is allocated.

Example:
    buf = leaky_buf.get()
    try:
        n = sock.recv_into(buf)
    finally:
        leaky_buf.put(buf)
"""

import queue
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Final

# Matches the shadowsocks leaky buffer: 4096 payload + 12 bytes of headroom
BUFFER_SIZE: Final = 4108
MAX_BUFFERS: Final = 2048


class BufferPool:
    """Thread-safe pool of fixed-size ``bytearray`` buffers."""

    def __init__(self, max_buffers: int = MAX_BUFFERS, buffer_size: int = BUFFER_SIZE) -> None:
        self.buffer_size = buffer_size
        self._free: queue.Queue[bytearray] = queue.Queue(maxsize=max_buffers)

    def get(self) -> bytearray:
        """Take a buffer from the pool, allocating one if none is free."""
        try:
            return self._free.get_nowait()
        except queue.Empty:
            return bytearray(self.buffer_size)

    def put(self, buf: bytearray) -> None:
        """Return a buffer to the pool; dropped if the pool is already full."""
        if len(buf) != self.buffer_size:
            raise ValueError("invalid buffer size that's put into leaky buffer")
        try:
            self._free.put_nowait(buf)
        except queue.Full:
            pass

    @contextmanager
    def borrow(self) -> Iterator[bytearray]:
        """Borrow a buffer for the duration of a ``with`` block."""
        buf = self.get()
        try:
            yield buf
        finally:
            self.put(buf)

    def __len__(self) -> int:
        return self._free.qsize()


# Process-wide pool shared by all relay loops
leaky_buf = BufferPool()
