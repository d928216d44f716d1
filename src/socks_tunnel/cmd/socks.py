"""Run the SOCKS5 tunnel client until interrupted.

This module wires configuration into a running service:
- Builds the cipher template and tunnel endpoint
- Opens one listening socket per listen address
- Optionally starts the live statistics panel
- Stops the service gracefully on Ctrl+C

Example:
    run_socks_proxy(Settings(server="203.0.113.7:8388"))
"""

import contextlib
import socket

from loguru import logger
from rich.console import Console

from socks_tunnel.core.config import Settings, parse_hostport
from socks_tunnel.core.lib.proxy_stats import proxy_stats
from socks_tunnel.core.proxy import ServerCipher, Service, get_cipher
from socks_tunnel.core.utils.prompt import create_proxy_ui

console = Console()


def open_listeners(addresses: list[str]) -> list[socket.socket]:
    """Bind every address, closing the ones already bound if any bind fails."""
    listeners: list[socket.socket] = []
    try:
        for addr in addresses:
            host, port = parse_hostport(addr)
            listeners.append(Service.listen(host, port))
    except OSError:
        for sock in listeners:
            with contextlib.suppress(OSError):
                sock.close()
        raise
    return listeners


def run_socks_proxy(settings: Settings, show_ui: bool = False) -> None:
    """Serve SOCKS5 on every configured address until Ctrl+C."""
    service = Service(
        ServerCipher(settings.server, get_cipher(settings.method)),
        traffic_listener=proxy_stats,
        debug=settings.debug,
        handshake_timeout=settings.timeout,
    )

    listeners = open_listeners(settings.listen)
    threads = [service.start(sock) for sock in listeners]
    for addr in settings.listen:
        logger.info(f"SOCKS5 listening on {addr}, tunnel {settings.server}")
    console.print(f"[green]SOCKS5 proxy started on {', '.join(settings.listen)} via {settings.server}")

    ui = None
    if show_ui:
        ui, ui_thread = create_proxy_ui(settings.listen, settings.server)
        ui_thread.start()

    try:
        for thread in threads:
            while thread.is_alive():
                thread.join(timeout=1.0)
    except KeyboardInterrupt:
        logger.info("Received shutdown signal")
        console.print("\n[yellow]Shutting down, draining connections...")
    finally:
        if ui:
            ui.stop()
        service.stop()
        logger.info("All connections closed")
