"""Terminal UI components."""

from socks_tunnel.core.utils.prompt.proxy_ui import ProxyUI, create_proxy_ui

__all__ = ["create_proxy_ui", "ProxyUI"]
