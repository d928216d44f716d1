"""Core tunnel client library components."""

from .buffer_pool import BufferPool, leaky_buf
from .proxy_server import InflightTracker, ServerCipher, Service
from .proxy_stats import NullTrafficListener, ProxyStats, TrafficListener, proxy_stats
from .relay import Direction, relay
from .socks_handler import CONNECTION_ESTABLISHED, get_request, handshake
from .tunnel import Cipher, CipherConnection, NullCipher, dial_with_raw_addr, get_cipher

__all__ = [
    "BufferPool",
    "Cipher",
    "CipherConnection",
    "CONNECTION_ESTABLISHED",
    "dial_with_raw_addr",
    "Direction",
    "get_cipher",
    "get_request",
    "handshake",
    "InflightTracker",
    "leaky_buf",
    "NullCipher",
    "NullTrafficListener",
    "proxy_stats",
    "ProxyStats",
    "relay",
    "ServerCipher",
    "Service",
    "TrafficListener",
]
