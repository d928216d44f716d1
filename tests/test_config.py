import pytest

from socks_tunnel.core.config import Settings, load_settings, parse_hostport
from socks_tunnel.core.exceptions import ConfigError


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        ("127.0.0.1:1080", ("127.0.0.1", 1080)),
        ("localhost:0", ("localhost", 0)),
        ("[::1]:1080", ("::1", 1080)),
        ("tunnel.example:8388", ("tunnel.example", 8388)),
    ],
)
def test_parse_hostport(value, expected):
    assert parse_hostport(value) == expected


@pytest.mark.parametrize("value", ["", "1080", ":1080", "host:", "host:http", "host:70000", "::1:1080"])
def test_parse_hostport_rejects(value):
    with pytest.raises(ConfigError):
        parse_hostport(value)


def test_load_settings(tmp_path):
    path = tmp_path / "client.toml"
    path.write_text(
        'listen = ["127.0.0.1:1080", "[::1]:1080"]\n'
        'server = "203.0.113.7:8388"\n'
        'method = "none"\n'
        "timeout = 3\n"
        "debug = true\n"
    )

    settings = load_settings(path).validate()

    assert settings.listen == ["127.0.0.1:1080", "[::1]:1080"]
    assert settings.server == "203.0.113.7:8388"
    assert settings.timeout == 3.0
    assert settings.debug is True


def test_single_listen_string(tmp_path):
    path = tmp_path / "client.toml"
    path.write_text('listen = "127.0.0.1:1081"\nserver = "203.0.113.7:8388"\n')
    assert load_settings(path).listen == ["127.0.0.1:1081"]


def test_unknown_keys(tmp_path):
    path = tmp_path / "client.toml"
    path.write_text('server = "203.0.113.7:8388"\npassword = "secret"\n')
    with pytest.raises(ConfigError, match="password"):
        load_settings(path)


def test_invalid_toml(tmp_path):
    path = tmp_path / "client.toml"
    path.write_text("server = \n")
    with pytest.raises(ConfigError, match="invalid config"):
        load_settings(path)


def test_missing_file(tmp_path):
    with pytest.raises(ConfigError, match="cannot read"):
        load_settings(tmp_path / "missing.toml")


def test_merge_ignores_unset_overrides():
    settings = Settings(server="203.0.113.7:8388").merge(server=None, listen=["0.0.0.0:1080"], debug=True)
    assert settings.server == "203.0.113.7:8388"
    assert settings.listen == ["0.0.0.0:1080"]
    assert settings.debug is True


@pytest.mark.parametrize(
    "settings",
    [
        Settings(),
        Settings(server="203.0.113.7"),
        Settings(server="203.0.113.7:8388", listen=[]),
        Settings(server="203.0.113.7:8388", timeout=0),
    ],
)
def test_validate_rejects(settings):
    with pytest.raises(ConfigError):
        settings.validate()
