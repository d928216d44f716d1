"""Core tunnel client implementation.

This package contains the core components of the SOCKS tunnel client:
- SOCKS5 negotiation and CONNECT request parsing
- The bidirectional relay engine and its buffer pool
- The accept loop service with graceful shutdown
- Tunnel collaborator interfaces (cipher, dialer)
- Traffic statistics
- Configuration, logging and UI helpers

The command-line interface lives in ``socks_tunnel.cmd`` and only wires
these pieces together.
"""
