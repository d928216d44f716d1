"""One-directional byte relay between two connections.

A connection is relayed by two concurrent ``relay`` calls, one per direction.
Each call copies bytes from its source to its destination and closes only
the destination when it stops, so every socket is closed exactly once and by
the direction that writes to it. Closing one side wakes the opposite
direction, which then sees EOF on its own source and finishes.

Reads wait at most ``read_timeout`` seconds before the loop re-checks the
shutdown event. An expired wait is not an error, it only bounds how long an
idle connection can delay a graceful stop. Writes have no deadline.
"""

import contextlib
import selectors
import socket
import threading
from enum import Enum
from typing import Final

from loguru import logger

from socks_tunnel.core.lib.buffer_pool import BufferPool, leaky_buf
from socks_tunnel.core.lib.proxy_stats import NullTrafficListener, TrafficListener

READ_TIMEOUT: Final = 5.0  # Seconds


class Direction(Enum):
    """Which traffic counter a relay direction feeds."""

    OUTBOUND = 0  # client -> remote
    INBOUND = 1  # remote -> client


def close_connection(conn) -> None:
    """Shut down and close a connection, ignoring errors from a dead peer."""
    with contextlib.suppress(OSError):
        conn.shutdown(socket.SHUT_RDWR)
    with contextlib.suppress(OSError):
        conn.close()


def relay(
    src,
    dst,
    direction: Direction,
    shutdown: threading.Event,
    listener: TrafficListener | None = None,
    read_timeout: float = READ_TIMEOUT,
    pool: BufferPool = leaky_buf,
) -> None:
    """Copy bytes from ``src`` to ``dst`` until EOF, error or shutdown.

    Args:
        src: Connection to read from; never closed here
        dst: Connection to write to; always closed on return
        direction: Selects ``listener.sent`` or ``listener.received``
        shutdown: Stops the loop before the next read once set
        listener: Traffic callback target, called once per successful write
        read_timeout: Longest wait for readable data between shutdown checks
        pool: Buffer pool to borrow the copy buffer from
    """
    listener = listener or NullTrafficListener()
    count = listener.sent if direction is Direction.OUTBOUND else listener.received

    try:
        with pool.borrow() as buf, memoryview(buf) as view, selectors.DefaultSelector() as selector:
            try:
                selector.register(src, selectors.EVENT_READ)
            except (OSError, ValueError) as e:
                if not _closed(src):
                    logger.warning(f"wait ({direction.name.lower()}): {e}")
                return

            while not shutdown.is_set():
                # src was closed by the opposite direction
                if _closed(src):
                    break
                try:
                    ready = selector.select(read_timeout)
                except OSError as e:
                    logger.warning(f"wait ({direction.name.lower()}): {e}")
                    break
                if not ready:
                    continue

                try:
                    n = src.recv_into(view)
                except TimeoutError:
                    continue
                except OSError as e:
                    logger.debug(f"read ({direction.name.lower()}): {e}")
                    break
                if n == 0:
                    break

                try:
                    dst.sendall(view[:n])
                except OSError as e:
                    logger.debug(f"write ({direction.name.lower()}): {e}")
                    break
                count(n)
    finally:
        close_connection(dst)


def _closed(conn) -> bool:
    try:
        return conn.fileno() == -1
    except OSError:
        return True
