"""Custom exceptions for the SOCKS tunnel client.

This module defines the exceptions used throughout the client implementation.
They cover:
- SOCKS5 protocol violations (version, command, address type, extra data)
- Short reads when a peer closes mid-message
- Failures opening the remote tunnel connection
- Invalid configuration

Protocol and dial errors are local to a single connection: the connection
handler catches them, logs them and closes the connection. They never reach
the service accept loop.

Example:
    try:
        raw_addr, host = get_request(conn)
    except Socks5Error as e:
        logger.debug(f"error getting request: {e}")
"""


class ProxyError(Exception):
    """Base exception for proxy errors."""


class Socks5Error(ProxyError):
    """Raised when a client violates the SOCKS5 protocol."""


class UnsupportedVersionError(Socks5Error):
    """Raised when the version field is not 5."""

    def __init__(self, version: int | None = None) -> None:
        self.version = version
        super().__init__("socks version not supported")


class UnsupportedMethodError(Socks5Error):
    """Raised when no acceptable authentication method is offered."""

    def __init__(self) -> None:
        super().__init__("socks only support 1 method now")


class ExtraDataError(Socks5Error):
    """Raised when a client sends more bytes than the message declares."""


class HandshakeExtraDataError(ExtraDataError):
    def __init__(self) -> None:
        super().__init__("socks authentication get extra data")


class RequestExtraDataError(ExtraDataError):
    def __init__(self) -> None:
        super().__init__("socks request get extra data")


class UnsupportedCommandError(Socks5Error):
    """Raised for BIND, UDP ASSOCIATE or any unknown command."""

    def __init__(self, command: int | None = None) -> None:
        self.command = command
        super().__init__("socks command not supported")


class UnsupportedAddressTypeError(Socks5Error):
    """Raised when the address type is not IPv4, domain name or IPv6."""

    def __init__(self, addr_type: int | None = None) -> None:
        self.addr_type = addr_type
        super().__init__("socks addr type not supported")


class IncompleteReadError(ProxyError, EOFError):
    """Raised when the peer closes before the expected bytes arrive."""

    def __init__(self, received: int, expected: int) -> None:
        self.received = received
        self.expected = expected
        super().__init__(f"unexpected EOF: got {received} of {expected} bytes")


class TunnelDialError(ProxyError):
    """Raised when the remote tunnel endpoint cannot be reached."""


class ConfigError(ProxyError):
    """Raised when configuration values are missing or invalid."""
