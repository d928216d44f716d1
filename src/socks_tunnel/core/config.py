"""Configuration loading for the SOCKS tunnel client.

Settings come from an optional TOML file and are overridden by command-line
options. A minimal file looks like:

    listen = ["127.0.0.1:1080"]
    server = "203.0.113.7:8388"
    method = "none"
    timeout = 5.0
    debug = false
"""

import sys
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any, Final

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib

from socks_tunnel.core.exceptions import ConfigError

DEFAULT_LISTEN: Final = "127.0.0.1:1080"
DEFAULT_METHOD: Final = "none"
DEFAULT_TIMEOUT: Final = 5.0
MAX_PORT: Final = 65535


def parse_hostport(value: str) -> tuple[str, int]:
    """Split ``host:port`` into its parts.

    IPv6 hosts must be bracketed, as in ``[::1]:1080``.

    Raises:
        ConfigError: If the value is malformed or the port is out of range
    """
    host, sep, port_str = value.rpartition(":")
    if not sep or not host:
        raise ConfigError(f"invalid address {value!r}, expected host:port")
    if host.startswith("[") and host.endswith("]"):
        host = host[1:-1]
    elif ":" in host:
        raise ConfigError(f"invalid address {value!r}, IPv6 hosts must be bracketed")
    try:
        port = int(port_str)
    except ValueError:
        raise ConfigError(f"invalid port in {value!r}") from None
    if not 0 <= port <= MAX_PORT:
        raise ConfigError(f"port out of range in {value!r}")
    return host, port


@dataclass(frozen=True)
class Settings:
    """Client settings."""

    server: str = ""
    listen: list[str] = field(default_factory=lambda: [DEFAULT_LISTEN])
    method: str = DEFAULT_METHOD
    timeout: float = DEFAULT_TIMEOUT
    debug: bool = False

    def validate(self) -> "Settings":
        """Check all values, returning ``self`` for chaining."""
        if not self.server:
            raise ConfigError("remote server address is required")
        parse_hostport(self.server)
        if not self.listen:
            raise ConfigError("at least one listen address is required")
        for addr in self.listen:
            parse_hostport(addr)
        if self.timeout <= 0:
            raise ConfigError("timeout must be positive")
        return self

    def merge(self, **overrides: Any) -> "Settings":
        """Return a copy with every non-``None`` override applied."""
        return replace(self, **{k: v for k, v in overrides.items() if v is not None})


def load_settings(path: Path) -> Settings:
    """Load settings from a TOML file.

    Raises:
        ConfigError: If the file cannot be read, parsed or has unknown keys
    """
    try:
        with path.open("rb") as f:
            data = tomllib.load(f)
    except OSError as e:
        raise ConfigError(f"cannot read config {path}: {e}") from e
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"invalid config {path}: {e}") from e

    known = {f.name for f in fields(Settings)}
    unknown = set(data) - known
    if unknown:
        raise ConfigError(f"unknown config keys: {', '.join(sorted(unknown))}")

    if isinstance(data.get("listen"), str):
        data["listen"] = [data["listen"]]
    if "timeout" in data:
        data["timeout"] = float(data["timeout"])
    return Settings(**data)
