"""Command-line interface for the SOCKS tunnel client.

This module handles:
- Command-line argument parsing
- Loading and merging the TOML configuration file
- Logging setup
- Error reporting

The CLI is built using Typer.

Example:
    # Run from command line:
    $ python -m socks_tunnel proxy --server 203.0.113.7:8388 --listen 127.0.0.1:1080
"""

from pathlib import Path

import typer
from loguru import logger
from rich.console import Console

from socks_tunnel import __version__
from socks_tunnel.cmd.socks import run_socks_proxy
from socks_tunnel.core.config import Settings, load_settings
from socks_tunnel.core.exceptions import ConfigError
from socks_tunnel.core.utils.log_config import LOG_DIR, configure_logging

console = Console()
app = typer.Typer(help="SOCKS5 front end for an encrypted tunnel")


@app.callback(invoke_without_command=True)
def version_callback():
    """Show version information."""
    console.print(f"[cyan]SOCKS Tunnel v{__version__}[/cyan]")


@app.command(name="proxy")
def start_proxy(
    listen: list[str] | None = typer.Option(
        None, "--listen", "-l", help="Local SOCKS5 address host:port (repeatable, default 127.0.0.1:1080)"
    ),
    server: str | None = typer.Option(None, "--server", "-s", help="Remote tunnel endpoint host:port"),
    method: str | None = typer.Option(None, "--method", "-m", help="Cipher method"),
    config: Path | None = typer.Option(
        None, "--config", "-c", exists=True, dir_okay=False, help="TOML configuration file"
    ),
    timeout: float | None = typer.Option(None, "--timeout", help="Handshake read timeout in seconds"),
    debug: bool | None = typer.Option(None, "--debug/--no-debug", help="Enable debug logging"),
    ui: bool = typer.Option(False, "--ui/--no-ui", help="Show live traffic statistics"),
    log_file: bool = typer.Option(True, "--log-file/--no-log-file", help=f"Write logs to {LOG_DIR}"),
):
    """Start the local SOCKS5 endpoint."""
    try:
        settings = load_settings(config) if config else Settings()
        settings = settings.merge(
            listen=listen or None,
            server=server,
            method=method,
            timeout=timeout,
            debug=debug,
        ).validate()
    except ConfigError as e:
        console.print(f"[red]Configuration error: {e}")
        raise typer.Exit(code=2) from e

    configure_logging(debug=settings.debug, log_dir=LOG_DIR if log_file else None)
    logger.info("Starting SOCKS tunnel client")

    try:
        run_socks_proxy(settings, show_ui=ui)
    except (ConfigError, OSError) as e:
        logger.exception("Error starting SOCKS tunnel client")
        console.print(f"[red]Error: {e}")
        raise typer.Exit(code=1) from e


if __name__ == "__main__":
    app()
