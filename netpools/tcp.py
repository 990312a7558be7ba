"""TCP endpoint helpers shared by the servers and clients."""

from __future__ import annotations

import socket

DEFAULT_BACKLOG = 50


def parse_address(argv, count):
    """Check the command-line arguments and split out host and port.

    ``argv`` holds the arguments after the program name and ``count`` is
    the number of them expected. The first argument is the IPv4 address,
    the second the port. Returns ``(host, port, *rest)`` with the port as
    an int and any further arguments left as strings.
    """
    args = list(argv)
    if len(args) != count:
        raise ValueError(f"expected {count} arguments.")
    if count < 2:
        raise ValueError("an address needs a host and a port")
    host, port_text, *rest = args
    try:
        port = int(port_text)
    except ValueError:
        raise ValueError(f"invalid port: {port_text!r}") from None
    if not 0 <= port <= 0xFFFF:
        raise ValueError(f"port out of range: {port}")
    return (host, port, *rest)


def tcp_listen(host, port, backlog=DEFAULT_BACKLOG):
    """Open a listening IPv4 TCP socket with SO_REUSEADDR set."""
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    try:
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        sock.bind((host, port))
        sock.listen(backlog)
    except OSError:
        sock.close()
        raise
    return sock


def tcp_connect(host, port):
    """Connect an IPv4 TCP socket to ``host``:``port``."""
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    try:
        sock.connect((host, port))
    except OSError:
        sock.close()
        raise
    return sock