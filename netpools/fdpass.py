"""Passing open file descriptors over a Unix socket, with an exit flag."""

from __future__ import annotations

import array
import os
import socket
import struct

from .framing import recv_exact

_FLAG = struct.Struct("<i")
_FD_SIZE = array.array("i").itemsize


def send_fd(sock, fd, exit_flag=False):
    """Send ``fd`` together with the exit flag.

    ``fd`` may be None to send the flag alone.
    """
    data = _FLAG.pack(1 if exit_flag else 0)
    if fd is None:
        sock.sendall(data)
        return len(data)
    return socket.send_fds(sock, [data], [fd])


def recv_fd(sock):
    """Receive a descriptor and exit flag; return ``(fd, exit_flag)``.

    ``fd`` is None when the message carried no descriptor. Raises
    ConnectionError when the peer has closed the socket.
    """
    data, ancdata, _flags, _addr = sock.recvmsg(
        _FLAG.size, socket.CMSG_SPACE(_FD_SIZE)
    )
    if not data:
        raise ConnectionError("descriptor channel closed")

    received = []
    for level, kind, payload in ancdata:
        if level == socket.SOL_SOCKET and kind == socket.SCM_RIGHTS:
            fds = array.array("i")
            fds.frombytes(payload[: len(payload) - len(payload) % _FD_SIZE])
            received.extend(fds)

    fd = received[0] if received else None
    for extra in received[1:]:
        os.close(extra)

    if len(data) < _FLAG.size:
        try:
            data += recv_exact(sock, _FLAG.size - len(data))
        except ConnectionError:
            if fd is not None:
                os.close(fd)
            raise
    (flag,) = _FLAG.unpack(data)
    return fd, flag != 0