"""Download client: receives one file announced by the server."""

from __future__ import annotations

import os
import sys

from .framing import FILESIZE, recv_train
from .tcp import parse_address, tcp_connect

CHUNK_SIZE = 64 * 1024


def _file_name(payload):
    name = os.path.basename(payload.decode())
    if name in ("", ".", ".."):
        raise ValueError(f"invalid file name: {payload!r}")
    return name


def _file_size(payload):
    if len(payload) != FILESIZE.size:
        raise ValueError(f"invalid file size train of {len(payload)} bytes")
    (size,) = FILESIZE.unpack(payload)
    if size < 0:
        raise ValueError(f"invalid file size: {size}")
    return size


def recv_file(sock, directory=None):
    """Receive a file sent with ``send_file`` and return the path written.

    The file name and size arrive as trains, followed by exactly ``size``
    bytes of contents. The file is created (or truncated) in ``directory``,
    or in the current directory when it is None.
    """
    name = _file_name(recv_train(sock))
    size = _file_size(recv_train(sock))
    path = name if directory is None else os.path.join(os.fspath(directory), name)

    remaining = size
    with open(path, "wb") as out:
        while remaining:
            chunk = sock.recv(min(CHUNK_SIZE, remaining))
            if not chunk:
                raise ConnectionError(
                    f"connection closed after {size - remaining} of {size} bytes"
                )
            out.write(chunk)
            remaining -= len(chunk)
    print("Download Success!")
    return path


def download(host, port, directory=None):
    """Connect to the server and receive the file it sends."""
    with tcp_connect(host, port) as sock:
        print("connected!")
        return recv_file(sock, directory)


def main(argv=None):
    """Command entry point: ``client HOST PORT``."""
    args = sys.argv[1:] if argv is None else argv
    try:
        host, port = parse_address(args, 2)
    except ValueError as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return 1
    try:
        download(host, port)
    except (OSError, ValueError) as exc:
        print(f"download: {exc}", file=sys.stderr)
        return 1
    return 0