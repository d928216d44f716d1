"""SOCKS5 protocol negotiation for the local client side of the tunnel.

This module implements the parts of RFC 1928 a local SOCKS5 front end needs:
- Version identification / method selection (no-auth only)
- CONNECT request parsing
- Address type handling (IPv4, IPv6 and domain names)
- Raw wire-format address extraction for the remote dialer

Both messages are read with the same sizing discipline: read the minimum
number of bytes needed to learn the message length, then either top up the
missing bytes or reject the message if the client already sent more than it
declared. This avoids both short reads and swallowing the first bytes of the
next message.

Example:
    handshake(conn)
    raw_addr, host = get_request(conn, decode_host=True)
    conn.sendall(CONNECTION_ESTABLISHED)
"""

import ipaddress
import struct
from typing import Final, Protocol

from socks_tunnel.core.exceptions import (
    HandshakeExtraDataError,
    IncompleteReadError,
    RequestExtraDataError,
    UnsupportedAddressTypeError,
    UnsupportedCommandError,
    UnsupportedVersionError,
)
from socks_tunnel.core.utils.utils import join_host_port

# SOCKS protocol constants
SOCKS_VERSION: Final = 5
CONNECT_CMD: Final = 1
METHOD_NO_AUTH: Final = 0
ADDR_TYPE_IPV4: Final = 1
ADDR_TYPE_DOMAIN: Final = 3
ADDR_TYPE_IPV6: Final = 4

IPV4_LEN: Final = 4
IPV6_LEN: Final = 16

# Handshake field offsets
ID_VER: Final = 0
ID_NMETHOD: Final = 1

# Request field offsets
ID_CMD: Final = 1
ID_TYPE: Final = 3  # address type
ID_IP0: Final = 4  # first IP address byte
ID_DM_LEN: Final = 4  # domain length byte
ID_DM0: Final = 5  # first domain byte

# Request lengths: 3 (ver+cmd+rsv) + 1 (atyp) + address + 2 (port)
LEN_IPV4: Final = 3 + 1 + IPV4_LEN + 2
LEN_IPV6: Final = 3 + 1 + IPV6_LEN + 2
LEN_DM_BASE: Final = 3 + 1 + 1 + 2  # plus the domain length

# ver + nmethods + up to 255 methods
HANDSHAKE_BUF_SIZE: Final = 258
# ver + cmd + rsv + atyp + dmlen + 255 domain bytes + port, rounded up
REQUEST_BUF_SIZE: Final = 263

NO_AUTH_REPLY: Final = bytes((SOCKS_VERSION, METHOD_NO_AUTH))

# Synthetic success reply sent before the tunnel is dialed. The bound
# address (0.0.0.0) and port (0x0843 = 2115) are placeholders.
CONNECTION_ESTABLISHED: Final = bytes((0x05, 0x00, 0x00, 0x01, 0x00, 0x00, 0x00, 0x00, 0x08, 0x43))


class Readable(Protocol):
    def recv_into(self, buffer: memoryview, nbytes: int = 0) -> int: ...


class Connection(Readable, Protocol):
    def sendall(self, data: bytes) -> None: ...


def read_at_least(conn: Readable, view: memoryview, min_bytes: int) -> int:
    """Read into ``view`` until at least ``min_bytes`` bytes have arrived.

    Args:
        conn: Connection to read from
        view: Destination buffer; its length bounds how much may be read
        min_bytes: Minimum number of bytes required

    Returns:
        int: Number of bytes actually read, possibly more than ``min_bytes``

    Raises:
        IncompleteReadError: If the peer closes before ``min_bytes`` arrive
    """
    n = 0
    while n < min_bytes:
        got = conn.recv_into(view[n:])
        if got == 0:
            raise IncompleteReadError(n, min_bytes)
        n += got
    return n


def read_full(conn: Readable, view: memoryview) -> int:
    """Fill ``view`` completely."""
    return read_at_least(conn, view, len(view))


def handshake(conn: Connection) -> None:
    """Negotiate the SOCKS5 method selection and accept "no authentication".

    The offered methods are not examined: the reply always selects
    no-auth.

    Raises:
        UnsupportedVersionError: If the version byte is not 5
        HandshakeExtraDataError: If more bytes arrived than the message declares
        IncompleteReadError: If the client closes mid-message
    """
    buf = bytearray(HANDSHAKE_BUF_SIZE)
    view = memoryview(buf)

    # make sure we get the nmethods field
    n = read_at_least(conn, view, ID_NMETHOD + 1)
    if buf[ID_VER] != SOCKS_VERSION:
        raise UnsupportedVersionError(buf[ID_VER])

    msg_len = buf[ID_NMETHOD] + 2
    if n < msg_len:
        read_full(conn, view[n:msg_len])
    elif n > msg_len:
        raise HandshakeExtraDataError

    conn.sendall(NO_AUTH_REPLY)


def get_request(conn: Readable, decode_host: bool = False) -> tuple[bytes, str]:
    """Read a SOCKS5 CONNECT request.

    Args:
        conn: Connection positioned right after the handshake
        decode_host: Also render the destination as ``host:port`` for logs

    Returns:
        tuple: The raw address (address type through port, exactly as sent)
        and the ``host:port`` string, which is empty unless ``decode_host``

    Raises:
        UnsupportedVersionError: If the version byte is not 5
        UnsupportedCommandError: If the command is not CONNECT
        UnsupportedAddressTypeError: If the address type is unknown
        RequestExtraDataError: If more bytes arrived than the request declares
        IncompleteReadError: If the client closes mid-request
    """
    buf = bytearray(REQUEST_BUF_SIZE)
    view = memoryview(buf)

    # read until we can see the domain length field
    n = read_at_least(conn, view, ID_DM_LEN + 1)
    if buf[ID_VER] != SOCKS_VERSION:
        raise UnsupportedVersionError(buf[ID_VER])
    if buf[ID_CMD] != CONNECT_CMD:
        raise UnsupportedCommandError(buf[ID_CMD])

    addr_type = buf[ID_TYPE]
    if addr_type == ADDR_TYPE_IPV4:
        req_len = LEN_IPV4
    elif addr_type == ADDR_TYPE_IPV6:
        req_len = LEN_IPV6
    elif addr_type == ADDR_TYPE_DOMAIN:
        req_len = buf[ID_DM_LEN] + LEN_DM_BASE
    else:
        raise UnsupportedAddressTypeError(addr_type)

    if n < req_len:
        read_full(conn, view[n:req_len])
    elif n > req_len:
        raise RequestExtraDataError

    raw_addr = bytes(buf[ID_TYPE:req_len])
    host = format_host(buf, addr_type, req_len) if decode_host else ""
    return raw_addr, host


def format_host(buf: bytearray, addr_type: int, req_len: int) -> str:
    """Render the destination of a complete request as ``host:port``."""
    if addr_type == ADDR_TYPE_IPV4:
        host = str(ipaddress.IPv4Address(bytes(buf[ID_IP0 : ID_IP0 + IPV4_LEN])))
    elif addr_type == ADDR_TYPE_IPV6:
        host = str(ipaddress.IPv6Address(bytes(buf[ID_IP0 : ID_IP0 + IPV6_LEN])))
    else:
        host = bytes(buf[ID_DM0 : ID_DM0 + buf[ID_DM_LEN]]).decode("utf-8", errors="replace")
    (port,) = struct.unpack("!H", buf[req_len - 2 : req_len])
    return join_host_port(host, port)
