"""Command line interface modules.

This package provides the command-line tools for starting the local SOCKS5
endpoint, loading configuration and showing live traffic statistics. The
protocol and relay logic lives in ``socks_tunnel.core``.
"""
