from socks_tunnel.cmd.cli import app

app(prog_name="socks-tunnel")
