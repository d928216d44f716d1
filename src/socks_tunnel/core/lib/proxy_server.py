"""SOCKS5 front end service with graceful, drain-based shutdown.

This module ties the protocol handler, the relay engine and the tunnel dialer
together:
- ``Service.serve`` runs an accept loop on a listening socket
- Every accepted connection gets its own handler thread
- ``Service.stop`` signals shutdown and waits for all in-flight work

Shutdown is cooperative. The accept loop uses a short accept timeout and the
relay loops a short read timeout, so every loop re-checks the shutdown event
at a bounded interval. The worst-case stop latency is the larger of the two
timeouts, not the lifetime of the slowest idle connection.

Example:
    service = Service(ServerCipher("203.0.113.7:8388", NullCipher()))
    service.start(Service.listen("127.0.0.1", 1080))
    ...
    service.stop()
"""

import socket
import threading
from dataclasses import dataclass
from typing import Final

from loguru import logger

from socks_tunnel.core.exceptions import ProxyError
from socks_tunnel.core.lib.proxy_stats import NullTrafficListener, TrafficListener
from socks_tunnel.core.lib.relay import READ_TIMEOUT, Direction, close_connection, relay
from socks_tunnel.core.lib.socks_handler import CONNECTION_ESTABLISHED, get_request, handshake
from socks_tunnel.core.lib.tunnel import Cipher, TunnelDialer, dial_with_raw_addr
from socks_tunnel.core.utils.utils import join_host_port

# Constants
ACCEPT_TIMEOUT: Final = 1.0  # Seconds
HANDSHAKE_TIMEOUT: Final = 5.0  # Seconds
ACCEPT_RETRY_DELAY: Final = 0.05  # Seconds
LISTEN_BACKLOG: Final = 100


@dataclass(frozen=True)
class ServerCipher:
    """Remote tunnel endpoint and the cipher template used to reach it."""

    server: str
    cipher: Cipher

    def new_cipher(self) -> Cipher:
        """Fresh cipher state for one connection; the template is never used directly."""
        return self.cipher.copy()


class InflightTracker:
    """Counts in-flight units of work and lets callers wait for zero."""

    def __init__(self) -> None:
        self._count = 0
        self._cond = threading.Condition()

    def add(self, n: int = 1) -> None:
        with self._cond:
            self._count += n

    def done(self) -> None:
        with self._cond:
            if self._count <= 0:
                raise ValueError("negative in-flight counter")
            self._count -= 1
            if self._count == 0:
                self._cond.notify_all()

    def wait(self, timeout: float | None = None) -> bool:
        """Block until the count reaches zero; False if ``timeout`` expired first."""
        with self._cond:
            return self._cond.wait_for(lambda: self._count == 0, timeout)

    def __len__(self) -> int:
        with self._cond:
            return self._count


class Service:
    """Local SOCKS5 endpoint relaying CONNECT requests through the tunnel.

    One service may serve several listeners. Once stopped it cannot be
    restarted: later ``serve`` calls close their listener and return at once.
    """

    def __init__(
        self,
        server_cipher: ServerCipher,
        dialer: TunnelDialer = dial_with_raw_addr,
        traffic_listener: TrafficListener | None = None,
        debug: bool = False,
        accept_timeout: float = ACCEPT_TIMEOUT,
        read_timeout: float = READ_TIMEOUT,
        handshake_timeout: float = HANDSHAKE_TIMEOUT,
    ) -> None:
        self.server_cipher = server_cipher
        self.debug = debug
        self.accept_timeout = accept_timeout
        self.read_timeout = read_timeout
        self.handshake_timeout = handshake_timeout
        self._dialer = dialer
        self._shutdown = threading.Event()
        self._inflight = InflightTracker()
        self._traffic_listener: TrafficListener = NullTrafficListener()
        self.set_traffic_listener(traffic_listener)

    @staticmethod
    def listen(host: str, port: int, backlog: int = LISTEN_BACKLOG) -> socket.socket:
        """Create a listening TCP socket with address reuse enabled."""
        family = socket.AF_INET6 if ":" in host else socket.AF_INET
        return socket.create_server((host, port), family=family, backlog=backlog)

    def set_traffic_listener(self, listener: TrafficListener | None) -> None:
        """Attach a traffic listener; ``None`` restores the no-op listener."""
        self._traffic_listener = listener or NullTrafficListener()

    @property
    def traffic_listener(self) -> TrafficListener:
        return self._traffic_listener

    @property
    def stopped(self) -> bool:
        return self._shutdown.is_set()

    def serve(self, listener: socket.socket) -> None:
        """Accept connections on ``listener`` until the service is stopped."""
        self._inflight.add()
        self._serve(listener)

    def start(self, listener: socket.socket) -> threading.Thread:
        """Run ``serve`` in a background thread.

        The accept loop is registered before the thread starts, so a ``stop``
        racing with startup still waits for it.
        """
        self._inflight.add()
        thread = threading.Thread(
            target=self._serve,
            args=(listener,),
            name=f"socks-accept-{listener.getsockname()[1]}",
            daemon=True,
        )
        thread.start()
        return thread

    def stop(self) -> None:
        """Signal shutdown and wait for the accept loops and all connections.

        Safe to call more than once and from several threads.
        """
        self._shutdown.set()
        self._inflight.wait()

    def _serve(self, listener: socket.socket) -> None:
        try:
            while True:
                if self._shutdown.is_set():
                    logger.debug(f"stopping listening on {_sockname(listener)}")
                    listener.close()
                    return

                listener.settimeout(self.accept_timeout)
                try:
                    conn, addr = listener.accept()
                except TimeoutError:
                    continue
                except OSError as e:
                    logger.warning(f"accept on {_sockname(listener)}: {e}")
                    self._shutdown.wait(ACCEPT_RETRY_DELAY)
                    continue

                logger.debug(f"socks connect from {join_host_port(addr[0], addr[1])}")
                self._inflight.add()
                threading.Thread(
                    target=self._handle_connection,
                    args=(conn,),
                    name=f"socks-{addr[0]}:{addr[1]}",
                    daemon=True,
                ).start()
        finally:
            self._inflight.done()

    def _handle_connection(self, conn: socket.socket) -> None:
        listener = self._traffic_listener
        started = getattr(listener, "connection_started", None)
        ended = getattr(listener, "connection_ended", None)
        if started:
            started()
        relaying = False
        try:
            try:
                conn.settimeout(self.handshake_timeout)
                handshake(conn)
            except (ProxyError, OSError) as e:
                logger.debug(f"socks handshake: {e}")
                return

            try:
                raw_addr, addr = get_request(conn, decode_host=self.debug)
            except (ProxyError, OSError) as e:
                logger.debug(f"error getting request: {e}")
                return

            # Confirm before dialing to save a round trip. If the dial fails
            # the client sees the "established" connection reset.
            try:
                conn.sendall(CONNECTION_ESTABLISHED)
            except OSError as e:
                logger.debug(f"send connection confirmation: {e}")
                return
            conn.settimeout(None)

            server = self.server_cipher.server
            logger.debug(f"connected to {addr} via {server}")
            try:
                remote = self._dialer(raw_addr, server, self.server_cipher.new_cipher())
            except (ProxyError, OSError) as e:
                logger.debug(f"dial {server}: {e}")
                return

            relaying = True
            self._relay(conn, remote, listener)
            logger.debug(f"closed connection to {addr}")
        except Exception:
            logger.exception("Error handling SOCKS connection")
        finally:
            if not relaying:
                close_connection(conn)
            if ended:
                ended()
            self._inflight.done()

    def _relay(self, conn, remote, listener: TrafficListener) -> None:
        # remote -> client in its own thread, client -> remote inline
        inbound = threading.Thread(
            target=relay,
            args=(remote, conn, Direction.INBOUND, self._shutdown, listener, self.read_timeout),
            name=f"{threading.current_thread().name}-in",
            daemon=True,
        )
        inbound.start()
        try:
            relay(conn, remote, Direction.OUTBOUND, self._shutdown, listener, self.read_timeout)
        finally:
            inbound.join()


def _sockname(sock: socket.socket) -> str:
    try:
        host, port = sock.getsockname()[:2]
    except OSError:
        return "<closed>"
    return join_host_port(host, port)
