"""Traffic accounting for the SOCKS tunnel client.

This module defines the traffic listener interface the relay engine reports
to, plus two implementations:
- ``NullTrafficListener``, the default when nothing is attached
- ``ProxyStats``, a thread-safe tracker feeding the live statistics panel

``ProxyStats`` keeps:
- Number of active connections
- Total bytes sent to and received from the tunnel
- Per-second traffic history for the last minute, averaged over the last
  5 seconds for the bandwidth reading
- Client uptime

Relay loops call ``sent``/``received`` concurrently from many threads, so all
counters are updated under a lock.

Example:
    from socks_tunnel.core.lib.proxy_stats import proxy_stats

    service.set_traffic_listener(proxy_stats)
    ...
    print(proxy_stats.get_bandwidth())
"""

import threading
import time
from collections import deque
from datetime import UTC, datetime
from typing import Final, Protocol

HISTORY_SECONDS: Final = 60
BANDWIDTH_WINDOW: Final = 5  # Seconds


class TrafficListener(Protocol):
    """Receives per-write byte counts from the relay engine."""

    def sent(self, n: int) -> None: ...

    def received(self, n: int) -> None: ...


class NullTrafficListener:
    """Listener that discards all traffic reports."""

    def sent(self, n: int) -> None:
        pass

    def received(self, n: int) -> None:
        pass


class ProxyStats:
    """Thread-safe statistics tracker for the tunnel client.

    Implements ``TrafficListener`` and the optional connection hooks the
    service calls around each accepted connection.
    """

    def __init__(self) -> None:
        """Initialize zeroed counters and an empty bandwidth history."""
        self.active_connections = 0
        self.total_connections = 0
        self.total_bytes_sent = 0
        self.total_bytes_received = 0
        # [second, bytes] buckets, one per second with traffic
        self.bandwidth_history: deque[list[int]] = deque(maxlen=HISTORY_SECONDS)
        self.start_time = datetime.now(tz=UTC)
        self._lock = threading.Lock()

    def update_bytes(self, sent: int, received: int) -> None:
        """Update byte transfer statistics.

        Args:
            sent: Number of bytes written to the tunnel
            received: Number of bytes written back to the client
        """
        with self._lock:
            self.total_bytes_sent += sent
            self.total_bytes_received += received
            second = int(time.time())
            if self.bandwidth_history and self.bandwidth_history[-1][0] == second:
                self.bandwidth_history[-1][1] += sent + received
            else:
                self.bandwidth_history.append([second, sent + received])

    def sent(self, n: int) -> None:
        self.update_bytes(n, 0)

    def received(self, n: int) -> None:
        self.update_bytes(0, n)

    def get_bandwidth(self) -> float:
        """Calculate current bandwidth usage in bytes per second.

        Returns:
            float: Average bandwidth usage over last 5 seconds in bytes/second
        """
        with self._lock:
            cutoff = int(time.time()) - BANDWIDTH_WINDOW
            recent = [bytes_ for second, bytes_ in self.bandwidth_history if second > cutoff]
            return sum(recent) / BANDWIDTH_WINDOW if recent else 0.0

    def uptime(self) -> float:
        """Seconds since the tracker was created."""
        return (datetime.now(tz=UTC) - self.start_time).total_seconds()

    def connection_started(self) -> None:
        with self._lock:
            self.active_connections += 1
            self.total_connections += 1

    def connection_ended(self) -> None:
        with self._lock:
            self.active_connections -= 1


# Global statistics object
proxy_stats = ProxyStats()
