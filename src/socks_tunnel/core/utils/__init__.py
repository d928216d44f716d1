"""Utility functions and helpers."""

from socks_tunnel.core.utils.utils import format_bytes, format_duration, join_host_port

__all__ = ["format_bytes", "format_duration", "join_host_port"]
