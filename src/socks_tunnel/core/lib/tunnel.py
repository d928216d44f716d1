"""Interfaces to the encrypted tunnel collaborators.

The SOCKS front end never encrypts anything itself. It depends on two
collaborators described here:
- A ``Cipher`` template, copied once per connection because stream ciphers
  carry per-session state
- A ``TunnelDialer`` that, given the raw SOCKS address, opens a ready-to-relay
  connection to the remote tunnel endpoint

``dial_with_raw_addr`` is the default dialer: it connects to the endpoint,
wraps the socket in a ``CipherConnection`` and sends the raw address as the
first payload. ``NullCipher`` is the identity transform registered as the
``none`` method; real stream ciphers plug in through the ``Cipher`` protocol.

Example:
    cipher = get_cipher("none")
    remote = dial_with_raw_addr(raw_addr, "203.0.113.7:8388", cipher.copy())
"""

import contextlib
import socket
from collections.abc import Callable
from typing import Protocol

from socks_tunnel.core.config import parse_hostport
from socks_tunnel.core.exceptions import ConfigError, TunnelDialError


class Cipher(Protocol):
    """Stream cipher with independent state per copy."""

    def copy(self) -> "Cipher": ...

    def encrypt(self, data: bytes) -> bytes: ...

    def decrypt(self, data: bytes) -> bytes: ...


class TunnelConnection(Protocol):
    """Byte stream the relay engine can read from and write to."""

    def recv_into(self, buffer, nbytes: int = 0) -> int: ...

    def sendall(self, data) -> None: ...

    def fileno(self) -> int: ...

    def settimeout(self, value: float | None) -> None: ...

    def shutdown(self, how: int) -> None: ...

    def close(self) -> None: ...


TunnelDialer = Callable[[bytes, str, Cipher], TunnelConnection]


class NullCipher:
    """Identity cipher for plaintext tunnels and testing."""

    def copy(self) -> "NullCipher":
        return NullCipher()

    def encrypt(self, data: bytes) -> bytes:
        return bytes(data)

    def decrypt(self, data: bytes) -> bytes:
        return bytes(data)


CIPHERS: dict[str, Callable[[], Cipher]] = {
    "none": NullCipher,
}


def get_cipher(method: str) -> Cipher:
    """Create a cipher template for a configured method name."""
    try:
        factory = CIPHERS[method.lower()]
    except KeyError:
        raise ConfigError(f"unsupported cipher method: {method}") from None
    return factory()


class CipherConnection:
    """Socket wrapper that encrypts on send and decrypts on receive.

    Stream ciphers preserve length, so ``recv_into`` can decrypt in place
    without any buffering of its own.
    """

    def __init__(self, sock: socket.socket, cipher: Cipher) -> None:
        self.sock = sock
        self.cipher = cipher

    def recv_into(self, buffer, nbytes: int = 0) -> int:
        view = memoryview(buffer)
        data = self.sock.recv(nbytes or len(view))
        if not data:
            return 0
        plain = self.cipher.decrypt(data)
        view[: len(plain)] = plain
        return len(plain)

    def sendall(self, data) -> None:
        self.sock.sendall(self.cipher.encrypt(bytes(data)))

    def fileno(self) -> int:
        return self.sock.fileno()

    def settimeout(self, value: float | None) -> None:
        self.sock.settimeout(value)

    def shutdown(self, how: int) -> None:
        self.sock.shutdown(how)

    def close(self) -> None:
        self.sock.close()

    def getpeername(self):
        return self.sock.getpeername()


def dial_with_raw_addr(raw_addr: bytes, server: str, cipher: Cipher) -> CipherConnection:
    """Open an encrypted connection to ``server`` for the given raw address.

    Args:
        raw_addr: SOCKS address type, address and port exactly as received
        server: Remote tunnel endpoint as ``host:port``
        cipher: Fresh per-connection cipher instance

    Returns:
        CipherConnection: Connection ready for relaying

    Raises:
        TunnelDialError: If the endpoint is unreachable or the address write fails
    """
    try:
        host, port = parse_hostport(server)
    except ConfigError as e:
        raise TunnelDialError(str(e)) from e

    try:
        sock = socket.create_connection((host, port))
    except OSError as e:
        raise TunnelDialError(f"dial {server}: {e}") from e

    conn = CipherConnection(sock, cipher)
    try:
        conn.sendall(raw_addr)
    except OSError as e:
        with contextlib.suppress(OSError):
            sock.close()
        raise TunnelDialError(f"write raw address to {server}: {e}") from e
    return conn
