import socket
import threading

import pytest

from netpools.framing import (
    FILESIZE,
    LENGTH,
    MAX_TRAIN_DATA,
    recv_exact,
    recv_train,
    send_file,
    send_train,
)


@pytest.fixture
def pair():
    a, b = socket.socketpair()
    yield a, b
    a.close()
    b.close()


def test_send_train_wire_bytes(pair):
    a, b = pair
    send_train(a, b"file1")
    assert recv_exact(b, 9) == b"\x05\x00\x00\x00file1"


def test_train_round_trip(pair):
    a, b = pair
    send_train(a, b"file1")
    send_train(a, b"")
    send_train(a, b"x" * MAX_TRAIN_DATA)
    assert recv_train(b) == b"file1"
    assert recv_train(b) == b""
    assert recv_train(b) == b"x" * MAX_TRAIN_DATA


def test_send_train_too_long(pair):
    a, _ = pair
    with pytest.raises(ValueError):
        send_train(a, b"x" * (MAX_TRAIN_DATA + 1))


@pytest.mark.parametrize("length", [-1, MAX_TRAIN_DATA + 1])
def test_recv_train_rejects_bad_length(pair, length):
    a, b = pair
    a.sendall(LENGTH.pack(length))
    with pytest.raises(ValueError):
        recv_train(b)


def test_recv_exact_joins_pieces(pair):
    a, b = pair

    def writer():
        for piece in (b"ab", b"cde", b"f"):
            a.sendall(piece)

    thread = threading.Thread(target=writer)
    thread.start()
    data = recv_exact(b, 6)
    thread.join()
    assert data == b"abcdef"


def test_recv_exact_zero(pair):
    _, b = pair
    assert recv_exact(b, 0) == b""


def test_recv_exact_early_close(pair):
    a, b = pair
    a.sendall(b"abc")
    a.close()
    with pytest.raises(ConnectionError):
        recv_exact(b, 10)


def test_send_file_stream(pair, tmp_path):
    a, b = pair
    content = bytes(range(256)) * 8
    path = tmp_path / "file1"
    path.write_bytes(content)

    result = {}

    def sender():
        result["sent"] = send_file(a, path, delay=0)

    thread = threading.Thread(target=sender)
    thread.start()
    name = recv_train(b)
    (size,) = FILESIZE.unpack(recv_train(b))
    body = recv_exact(b, size)
    thread.join()

    assert name == b"file1"
    assert size == len(content)
    assert body == content
    assert result["sent"] == len(content)


def test_send_file_empty(pair, tmp_path):
    a, b = pair
    path = tmp_path / "empty"
    path.write_bytes(b"")
    assert send_file(a, path, delay=0) == 0
    assert recv_train(b) == b"empty"
    assert FILESIZE.unpack(recv_train(b)) == (0,)


def test_send_file_missing(pair, tmp_path):
    a, _ = pair
    with pytest.raises(FileNotFoundError):
        send_file(a, tmp_path / "absent", delay=0)