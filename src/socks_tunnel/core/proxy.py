"""Public entry point for embedding the tunnel client.

Example:
    from socks_tunnel.core.proxy import NullCipher, ServerCipher, Service

    service = Service(ServerCipher("203.0.113.7:8388", NullCipher()))
    service.start(Service.listen("127.0.0.1", 1080))
    ...
    service.stop()

Attributes:
    __all__ (list): List of public components exposed by this module
"""

from .lib import NullCipher, ServerCipher, Service, TrafficListener, get_cipher

__all__ = ["get_cipher", "NullCipher", "ServerCipher", "Service", "TrafficListener"]
