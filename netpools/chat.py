"""Group chat server that relays messages and drops idle clients, plus its client."""

from __future__ import annotations

import os
import selectors
import socket
import sys
import time
from dataclasses import dataclass

from .tcp import parse_address, tcp_connect, tcp_listen

BUFFER_SIZE = 4096
DEFAULT_IDLE_TIMEOUT = 10.0
DEFAULT_POLL_TIMEOUT = 1.0


def _fileno(stream):
    return stream if isinstance(stream, int) else stream.fileno()


@dataclass
class _Client:
    sock: socket.socket
    last_active: float


class ChatServer:
    """Relays every message a client sends to all other connected clients.

    A client that stays silent for more than ``idle_timeout`` seconds is
    disconnected.
    """

    def __init__(self, host, port, idle_timeout=DEFAULT_IDLE_TIMEOUT):
        self.idle_timeout = idle_timeout
        self._listener = tcp_listen(host, port)
        self.address = self._listener.getsockname()
        self._selector = selectors.DefaultSelector()
        self._selector.register(self._listener, selectors.EVENT_READ)
        self._clients = {}

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.close()

    @property
    def client_count(self):
        """Number of clients currently connected."""
        return len(self._clients)

    def poll(self, timeout=DEFAULT_POLL_TIMEOUT):
        """Wait up to ``timeout`` seconds for activity and handle it.

        Afterwards clients idle for longer than ``idle_timeout`` are
        dropped. Returns the number of ready events handled.
        """
        ready = self._selector.select(timeout)
        now = time.monotonic()
        print(f"now = {time.ctime()}")
        for key, _events in ready:
            if key.fileobj is self._listener:
                self._accept()
            elif key.fileobj in self._clients:
                self._receive(key.fileobj)
        idle = [
            client.sock
            for client in self._clients.values()
            if now - client.last_active > self.idle_timeout
        ]
        for sock in idle:
            self._drop(sock)
        return len(ready)

    def serve_forever(self):
        """Handle clients until interrupted."""
        while True:
            self.poll()

    def close(self):
        """Disconnect every client and stop listening."""
        for sock in list(self._clients):
            self._drop(sock)
        self._selector.close()
        self._listener.close()

    def _accept(self):
        sock, _addr = self._listener.accept()
        print(f"id = {len(self._clients)},netfd = {sock.fileno()}")
        self._clients[sock] = _Client(sock, time.monotonic())
        self._selector.register(sock, selectors.EVENT_READ)

    def _receive(self, sock):
        try:
            data = sock.recv(BUFFER_SIZE)
        except OSError:
            data = b""
        if not data:
            print("one client is closed!")
            self._drop(sock)
            return
        self._clients[sock].last_active = time.monotonic()
        for other in list(self._clients):
            if other is sock:
                continue
            try:
                other.sendall(data)
            except OSError:
                self._drop(other)

    def _drop(self, sock):
        if self._clients.pop(sock, None) is None:
            return
        self._selector.unregister(sock)
        sock.close()


def run_client(sock, stdin, stdout):
    """Send lines from ``stdin`` and print what arrives until the server closes.

    ``stdin`` is a file object or descriptor; end of input only stops
    reading it.
    """
    stdin_fd = _fileno(stdin)
    with selectors.DefaultSelector() as selector:
        selector.register(stdin_fd, selectors.EVENT_READ, "stdin")
        selector.register(sock, selectors.EVENT_READ, "peer")
        while True:
            for key, _events in selector.select():
                if key.data == "stdin":
                    data = os.read(stdin_fd, BUFFER_SIZE)
                    if not data:
                        selector.unregister(stdin_fd)
                        continue
                    sock.sendall(data)
                else:
                    try:
                        data = sock.recv(BUFFER_SIZE)
                    except ConnectionError:
                        data = b""
                    if not data:
                        stdout.write("disconnected!\n")
                        stdout.flush()
                        return
                    stdout.write("recv:" + data.decode(errors="replace"))
                    stdout.flush()


def server_main(argv=None):
    """Command entry point: ``chat-server HOST PORT``."""
    args = sys.argv[1:] if argv is None else argv
    try:
        host, port = parse_address(args, 2)
    except ValueError as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return 1
    try:
        with ChatServer(host, port) as server:
            server.serve_forever()
    except KeyboardInterrupt:
        return 0
    except OSError as exc:
        print(f"server: {exc}", file=sys.stderr)
        return 1
    return 0


def client_main(argv=None):
    """Command entry point: ``chat-client HOST PORT``."""
    args = sys.argv[1:] if argv is None else argv
    try:
        host, port = parse_address(args, 2)
    except ValueError as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return 1
    try:
        with tcp_connect(host, port) as sock:
            print("connected")
            run_client(sock, sys.stdin, sys.stdout)
    except KeyboardInterrupt:
        return 0
    except OSError as exc:
        print(f"connect: {exc}", file=sys.stderr)
        return 1
    return 0