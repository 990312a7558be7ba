"""One-to-one talk server: relays stdin to a connected peer and prints its replies."""

from __future__ import annotations

import os
import selectors
import socket
import sys

from .tcp import parse_address, tcp_listen

BUFFER_SIZE = 4096
TRIGGER_CHUNK = 2
TRIGGER_STDIN_CHUNK = 3


def _fileno(stream):
    return stream if isinstance(stream, int) else stream.fileno()


def _emit(stdout, text):
    stdout.write(text)
    stdout.flush()


def read_available(sock, chunk_size=TRIGGER_CHUNK):
    """Drain what is waiting on ``sock`` without blocking, ``chunk_size`` at a time.

    Returns ``(chunks, closed)`` where ``closed`` tells that the peer has
    shut the connection.
    """
    if chunk_size < 1:
        raise ValueError(f"chunk size must be positive, got {chunk_size}")
    chunks = []
    while True:
        try:
            data = sock.recv(chunk_size, socket.MSG_DONTWAIT)
        except BlockingIOError:
            return chunks, False
        except ConnectionError:
            return chunks, True
        if not data:
            return chunks, True
        chunks.append(data)


class PeerServer:
    """Talks with one client at a time over stdin and stdout.

    Without ``reconnect`` it serves a single client; with it, it waits
    for the next client whenever one leaves.
    """

    def __init__(self, host, port, reconnect=False):
        self.reconnect = reconnect
        self._listener = tcp_listen(host, port)
        self.address = self._listener.getsockname()

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.close()

    def close(self):
        """Stop listening."""
        self._listener.close()

    def serve(self, stdin, stdout):
        """Run sessions until stdin ends or, without reconnect, the peer leaves.

        Returns the number of clients served.
        """
        sessions = 0
        while True:
            conn, _addr = self._listener.accept()
            sessions += 1
            with conn:
                _emit(stdout, "client connected!\n")
                stdin_closed = self._session(conn, stdin, stdout)
            _emit(stdout, "client closed!\n")
            if stdin_closed or not self.reconnect:
                return sessions

    @staticmethod
    def _session(conn, stdin, stdout):
        stdin_fd = _fileno(stdin)
        with selectors.DefaultSelector() as selector:
            selector.register(stdin_fd, selectors.EVENT_READ, "stdin")
            selector.register(conn, selectors.EVENT_READ, "peer")
            while True:
                for key, _events in selector.select():
                    if key.data == "stdin":
                        data = os.read(stdin_fd, BUFFER_SIZE)
                        if not data:
                            return True
                        try:
                            conn.sendall(data)
                        except OSError:
                            return False
                    else:
                        try:
                            data = conn.recv(BUFFER_SIZE)
                        except ConnectionError:
                            data = b""
                        if not data:
                            return False
                        _emit(stdout, "recv:" + data.decode(errors="replace"))


def _trigger_session(conn, stdin, stdout):
    stdin_fd = _fileno(stdin)
    with selectors.DefaultSelector() as selector:
        selector.register(stdin_fd, selectors.EVENT_READ, "stdin")
        selector.register(conn, selectors.EVENT_READ, "peer")
        while True:
            ready = selector.select()
            _emit(stdout, "epoll ready!\n")
            for key, _events in ready:
                if key.data == "stdin":
                    data = os.read(stdin_fd, TRIGGER_STDIN_CHUNK)
                    if not data:
                        return
                    conn.sendall(data)
                else:
                    chunks, closed = read_available(conn, TRIGGER_CHUNK)
                    for chunk in chunks:
                        _emit(stdout, "recv:" + chunk.decode(errors="replace") + "\n")
                    if closed:
                        return


def main(argv=None):
    """Command entry point: ``peer HOST PORT [--reconnect]``."""
    args = list(sys.argv[1:] if argv is None else argv)
    reconnect = "--reconnect" in args
    args = [arg for arg in args if arg != "--reconnect"]
    try:
        host, port = parse_address(args, 2)
    except ValueError as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return 1
    try:
        with PeerServer(host, port, reconnect) as server:
            server.serve(sys.stdin, sys.stdout)
    except KeyboardInterrupt:
        return 0
    except OSError as exc:
        print(f"server: {exc}", file=sys.stderr)
        return 1
    return 0


def trigger_main(argv=None):
    """Command entry point: ``peer-trigger HOST PORT``; drains the peer in small chunks."""
    args = sys.argv[1:] if argv is None else argv
    try:
        host, port = parse_address(args, 2)
    except ValueError as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return 1
    try:
        with tcp_listen(host, port) as listener:
            conn, _addr = listener.accept()
            with conn:
                print("connected!")
                _trigger_session(conn, sys.stdin, sys.stdout)
    except KeyboardInterrupt:
        return 0
    except OSError as exc:
        print(f"server: {exc}", file=sys.stderr)
        return 1
    return 0