"""Length-prefixed "train" frames and the file transfer built on them."""

from __future__ import annotations

import os
import struct
import time

LENGTH = struct.Struct("<i")
FILESIZE = struct.Struct("<q")
MAX_TRAIN_DATA = 1000
DEFAULT_SEND_DELAY = 10.0


def recv_exact(sock, size):
    """Receive exactly ``size`` bytes, raising ConnectionError on early EOF."""
    buffer = bytearray(size)
    view = memoryview(buffer)
    received = 0
    while received < size:
        count = sock.recv_into(view[received:], size - received)
        if count == 0:
            raise ConnectionError(
                f"connection closed after {received} of {size} bytes"
            )
        received += count
    return bytes(buffer)


def send_train(sock, payload):
    """Send one frame: a 4-byte length followed by up to 1000 bytes."""
    data = bytes(payload)
    if len(data) > MAX_TRAIN_DATA:
        raise ValueError(
            f"train payload of {len(data)} bytes exceeds {MAX_TRAIN_DATA}"
        )
    sock.sendall(LENGTH.pack(len(data)) + data)


def recv_train(sock):
    """Receive one frame and return its payload."""
    (length,) = LENGTH.unpack(recv_exact(sock, LENGTH.size))
    if not 0 <= length <= MAX_TRAIN_DATA:
        raise ValueError(f"invalid train length: {length}")
    return recv_exact(sock, length)


def send_file(sock, path, delay=DEFAULT_SEND_DELAY):
    """Send a file: its name and size as trains, then the raw contents.

    The contents follow after waiting ``delay`` seconds. Returns the
    number of content bytes sent.
    """
    name = os.path.basename(os.fspath(path)).encode()
    with open(path, "rb") as handle:
        size = os.fstat(handle.fileno()).st_size
        send_train(sock, name)
        send_train(sock, FILESIZE.pack(size))
        if delay > 0:
            time.sleep(delay)
        if size == 0:
            return 0
        return sock.sendfile(handle, 0, size)