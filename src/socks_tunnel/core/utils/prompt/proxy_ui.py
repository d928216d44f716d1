"""Live statistics panel for the SOCKS tunnel client."""

import threading
import time

from rich.console import Console
from rich.live import Live
from rich.panel import Panel
from rich.spinner import Spinner
from rich.table import Table
from rich.text import Text

from socks_tunnel.core.lib.proxy_stats import ProxyStats, proxy_stats
from socks_tunnel.core.utils.utils import format_bytes, format_duration

console = Console()

BANDWIDTH_THRESHOLD = 100  # bytes


class ProxyUI:
    """Renders ``ProxyStats`` as a bordered panel until stopped."""

    def __init__(self, listen: list[str], server: str, stats: ProxyStats = proxy_stats) -> None:
        """Initialize the UI handler.

        Args:
            listen: Local SOCKS5 addresses being served
            server: Remote tunnel endpoint
            stats: Statistics source, the global tracker by default
        """
        self.listen = listen
        self.server = server
        self.stats = stats
        self._stop = threading.Event()
        self._last_bandwidth = 0.0
        self._start_time = time.monotonic()
        self._refresh_rate = 0.5
        self._spinner = Spinner("dots", text="")

    def _generate_table(self) -> Table:
        """Generate statistics table."""
        table = Table(show_header=False, box=None, padding=(0, 1))
        table.add_column("Property", style="cyan", no_wrap=True)
        table.add_column("Value", style="green", no_wrap=True)

        # Only update bandwidth if it changed significantly (avoid jitter)
        bandwidth = self.stats.get_bandwidth()
        if abs(bandwidth - self._last_bandwidth) > BANDWIDTH_THRESHOLD:
            self._last_bandwidth = bandwidth

        spinner_text = self._spinner.render(time.monotonic() - self._start_time)

        table.add_row("Tunnel", self.server)
        table.add_row("Bandwidth", f"{spinner_text} {format_bytes(self._last_bandwidth)}/s")
        table.add_row("Active Connections", str(self.stats.active_connections))
        table.add_row("Total Connections", str(self.stats.total_connections))
        table.add_row("Sent", format_bytes(self.stats.total_bytes_sent))
        table.add_row("Received", format_bytes(self.stats.total_bytes_received))
        table.add_row("Uptime", format_duration(self.stats.uptime()))
        return table

    def _generate_display(self) -> Panel:
        """Generate the main display panel."""
        title = Text(f"SOCKS5: {', '.join(self.listen)}", style="bold cyan")
        return Panel(
            self._generate_table(),
            title=title,
            subtitle="Press Ctrl+C to exit",
            border_style="blue",
            padding=(1, 2),
        )

    def run(self) -> None:
        with Live(
            self._generate_display(),
            console=console,
            refresh_per_second=4,
            transient=False,
            auto_refresh=False,
        ) as live:
            while not self._stop.wait(self._refresh_rate):
                live.update(self._generate_display(), refresh=True)

    def stop(self) -> None:
        self._stop.set()


def create_proxy_ui(listen: list[str], server: str) -> tuple[ProxyUI, threading.Thread]:
    """Create the UI and the daemon thread that runs it."""
    ui = ProxyUI(listen, server)
    return ui, threading.Thread(target=ui.run, name="proxy-ui", daemon=True)
