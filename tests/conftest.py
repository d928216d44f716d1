import os
import socket
import struct
import threading
import time
from collections import deque

import pytest

from socks_tunnel.core.lib.proxy_server import ServerCipher, Service
from socks_tunnel.core.lib.proxy_stats import ProxyStats
from socks_tunnel.core.lib.tunnel import NullCipher

RECV_TIMEOUT = 5.0


class ScriptedConn:
    """In-memory connection that returns pre-arranged chunks, one per recv."""

    def __init__(self, *chunks: bytes) -> None:
        self.chunks = deque(c for c in chunks if c)
        self.sent = bytearray()

    def recv_into(self, buffer, nbytes: int = 0) -> int:
        if not self.chunks:
            return 0
        chunk = self.chunks.popleft()
        size = nbytes or len(buffer)
        if len(chunk) > size:
            self.chunks.appendleft(chunk[size:])
            chunk = chunk[:size]
        buffer[: len(chunk)] = chunk
        return len(chunk)

    def sendall(self, data) -> None:
        self.sent += data


class CountingCipher(NullCipher):
    def __init__(self) -> None:
        self.copies = 0

    def copy(self):
        self.copies += 1
        return NullCipher()


class StubDialer:
    """Tunnel dialer that hands back one end of a socketpair."""

    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.calls: list[tuple[bytes, str, object]] = []
        self.peers: list[socket.socket] = []
        self.links: dict[bytes, socket.socket] = {}
        self.dialed = threading.Event()

    def __call__(self, raw_addr: bytes, server: str, cipher) -> socket.socket:
        self.calls.append((raw_addr, server, cipher))
        if self.fail:
            self.dialed.set()
            raise ConnectionRefusedError("stub dial refused")
        local, peer = socket.socketpair()
        peer.settimeout(RECV_TIMEOUT)
        self.peers.append(peer)
        self.links[raw_addr] = peer
        self.dialed.set()
        return local

    def close(self) -> None:
        for peer in self.peers:
            peer.close()


def build_request(addr_type: int, addr: bytes, port: int, cmd: int = 1, version: int = 5) -> bytes:
    if addr_type == 3:
        addr = bytes([len(addr)]) + addr
    return bytes([version, cmd, 0, addr_type]) + addr + struct.pack("!H", port)


def recv_exact(sock: socket.socket, n: int) -> bytes:
    data = b""
    while len(data) < n:
        chunk = sock.recv(n - len(data))
        if not chunk:
            break
        data += chunk
    return data


def recv_until_eof(sock: socket.socket) -> bytes:
    data = b""
    try:
        while chunk := sock.recv(4096):
            data += chunk
    except ConnectionResetError:
        pass
    return data


@pytest.fixture
def stats() -> ProxyStats:
    return ProxyStats()


@pytest.fixture
def dialer():
    d = StubDialer()
    yield d
    d.close()


@pytest.fixture
def cipher() -> CountingCipher:
    return CountingCipher()


@pytest.fixture
def make_service(stats, cipher):
    services: list[Service] = []

    def _make(dialer, **kwargs) -> Service:
        kwargs.setdefault("accept_timeout", 0.1)
        kwargs.setdefault("read_timeout", 0.2)
        kwargs.setdefault("handshake_timeout", 1.0)
        kwargs.setdefault("traffic_listener", stats)
        kwargs.setdefault("debug", True)
        service = Service(ServerCipher("tunnel.example:8388", cipher), dialer=dialer, **kwargs)
        services.append(service)
        return service

    yield _make
    for service in services:
        service.stop()


@pytest.fixture
def running(make_service, dialer):
    """A started service and the address it listens on."""
    service = make_service(dialer)
    listener = Service.listen("127.0.0.1", 0)
    address = listener.getsockname()
    service.start(listener)
    return service, address


def open_client(address) -> socket.socket:
    client = socket.create_connection(address, timeout=RECV_TIMEOUT)
    client.settimeout(RECV_TIMEOUT)
    return client


FD_SETSIZE = 1024


@pytest.fixture
def high_fds():
    """Occupy every descriptor below FD_SETSIZE so new sockets land above it."""
    resource = pytest.importorskip("resource")
    soft, hard = resource.getrlimit(resource.RLIMIT_NOFILE)
    needed = FD_SETSIZE + 256
    if hard != resource.RLIM_INFINITY and hard < needed:
        pytest.skip(f"RLIMIT_NOFILE hard limit {hard} is below {needed}")
    if soft != resource.RLIM_INFINITY and soft < needed:
        resource.setrlimit(resource.RLIMIT_NOFILE, (needed, hard))

    read_fd, write_fd = os.pipe()
    fillers = [read_fd, write_fd]
    while fillers[-1] < FD_SETSIZE:
        fillers.append(os.dup(read_fd))
    try:
        yield
    finally:
        for fd in fillers:
            os.close(fd)
        resource.setrlimit(resource.RLIMIT_NOFILE, (soft, hard))


def wait_for(predicate, timeout: float = RECV_TIMEOUT) -> bool:
    deadline = time.monotonic() + timeout
    while not predicate():
        if time.monotonic() > deadline:
            return False
        time.sleep(0.01)
    return True
