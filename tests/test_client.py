import socket
import threading

import pytest

from netpools.client import download, main, recv_file
from netpools.framing import FILESIZE, send_file, send_train
from netpools.tcp import tcp_listen


def test_recv_file_writes_name_and_contents(tmp_path):
    src = tmp_path / "src"
    src.mkdir()
    (src / "file1").write_bytes(b"hello world" * 500)
    dest = tmp_path / "dest"
    dest.mkdir()

    left, right = socket.socketpair()
    with left, right:
        sender = threading.Thread(target=send_file, args=(left, src / "file1", 0))
        sender.start()
        path = recv_file(right, dest)
        sender.join()

    assert path == str(dest / "file1")
    assert (dest / "file1").read_bytes() == b"hello world" * 500


def test_recv_file_empty_file(tmp_path):
    left, right = socket.socketpair()
    with left, right:
        send_train(left, b"empty.bin")
        send_train(left, FILESIZE.pack(0))
        path = recv_file(right, tmp_path)
    assert (tmp_path / "empty.bin").read_bytes() == b""
    assert path == str(tmp_path / "empty.bin")


def test_recv_file_truncated_stream_raises(tmp_path):
    left, right = socket.socketpair()
    with right:
        send_train(left, b"part")
        send_train(left, FILESIZE.pack(100))
        left.sendall(b"abc")
        left.close()
        with pytest.raises(ConnectionError):
            recv_file(right, tmp_path)


def test_recv_file_rejects_bad_size_train(tmp_path):
    left, right = socket.socketpair()
    with left, right:
        send_train(left, b"name")
        send_train(left, b"\x01\x02")
        with pytest.raises(ValueError):
            recv_file(right, tmp_path)


def test_recv_file_strips_directories_from_name(tmp_path):
    left, right = socket.socketpair()
    with left, right:
        send_train(left, b"../../escape.txt")
        send_train(left, FILESIZE.pack(2))
        left.sendall(b"ok")
        path = recv_file(right, tmp_path)
    assert path == str(tmp_path / "escape.txt")
    assert (tmp_path / "escape.txt").read_bytes() == b"ok"


def test_download_from_listening_server(tmp_path):
    src = tmp_path / "file1"
    src.write_bytes(b"\x00\xff" * 3000)
    dest = tmp_path / "out"
    dest.mkdir()

    listener = tcp_listen("127.0.0.1", 0)
    port = listener.getsockname()[1]

    def serve_once():
        conn, _ = listener.accept()
        with conn:
            send_file(conn, src, 0)

    server = threading.Thread(target=serve_once)
    server.start()
    try:
        path = download("127.0.0.1", port, dest)
    finally:
        server.join()
        listener.close()
    assert (dest / "file1").read_bytes() == src.read_bytes()
    assert path == str(dest / "file1")


@pytest.mark.parametrize("argv", [[], ["127.0.0.1"], ["127.0.0.1", "1", "2"]])
def test_main_rejects_wrong_argument_count(argv):
    assert main(argv) == 1


def test_main_rejects_bad_port():
    assert main(["127.0.0.1", "notaport"]) == 1