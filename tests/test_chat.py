import io
import os
import select
import socket
import threading
import time

import pytest

from netpools.chat import ChatServer, client_main, run_client, server_main


def _pump(server, predicate, timeout=5.0):
    deadline = time.monotonic() + timeout
    while not predicate():
        assert time.monotonic() < deadline, "condition not reached"
        server.poll(0.05)


def _readable(sock):
    return bool(select.select([sock], [], [], 0)[0])


@pytest.fixture
def server():
    srv = ChatServer("127.0.0.1", 0)
    yield srv
    srv.close()


def _connect(server):
    return socket.create_connection(server.address, timeout=5)


def test_accepts_clients(server):
    a = _connect(server)
    b = _connect(server)
    _pump(server, lambda: server.client_count == 2)
    assert server.client_count == 2
    a.close()
    b.close()


def test_message_relayed_to_others_not_sender(server):
    a, b, c = (_connect(server) for _ in range(3))
    _pump(server, lambda: server.client_count == 3)
    a.sendall(b"hi\n")
    _pump(server, lambda: _readable(b) and _readable(c))
    assert b.recv(4096) == b"hi\n"
    assert c.recv(4096) == b"hi\n"
    assert not _readable(a)
    for s in (a, b, c):
        s.close()


def test_closed_client_is_removed(server):
    a = _connect(server)
    b = _connect(server)
    _pump(server, lambda: server.client_count == 2)
    b.close()
    _pump(server, lambda: server.client_count == 1)
    a.sendall(b"still here\n")
    server.poll(0.2)
    assert server.client_count == 1
    a.close()


def test_idle_client_is_dropped():
    with ChatServer("127.0.0.1", 0, idle_timeout=0) as srv:
        a = _connect(srv)
        _pump(srv, lambda: srv.client_count == 1)
        time.sleep(0.05)
        srv.poll(0)
        assert srv.client_count == 0
        assert a.recv(10) == b""
        a.close()


def test_run_client_sends_and_prints():
    client, peer = socket.socketpair()
    read_fd, write_fd = os.pipe()
    out = io.StringIO()
    thread = threading.Thread(target=lambda: run_client(client, read_fd, out))
    thread.start()
    try:
        os.write(write_fd, b"hello\n")
        peer.settimeout(5)
        assert peer.recv(4096) == b"hello\n"
        peer.sendall(b"msg\n")
        peer.close()
        thread.join(5)
        assert not thread.is_alive()
        assert out.getvalue() == "recv:msg\ndisconnected!\n"
    finally:
        os.close(write_fd)
        os.close(read_fd)
        client.close()


def test_run_client_keeps_receiving_after_stdin_eof():
    client, peer = socket.socketpair()
    read_fd, write_fd = os.pipe()
    out = io.StringIO()
    thread = threading.Thread(target=lambda: run_client(client, read_fd, out))
    thread.start()
    try:
        os.close(write_fd)
        time.sleep(0.05)
        peer.sendall(b"late\n")
        peer.close()
        thread.join(5)
        assert not thread.is_alive()
        assert out.getvalue().startswith("recv:late\n")
        assert out.getvalue().endswith("disconnected!\n")
    finally:
        os.close(read_fd)
        client.close()


def test_server_main_rejects_bad_arguments():
    assert server_main(["127.0.0.1"]) == 1


def test_client_main_rejects_bad_port():
    assert client_main(["127.0.0.1", "notaport"]) == 1