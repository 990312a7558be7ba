"""File server that hands accepted connections to a pool of threads."""

from __future__ import annotations

import os
import selectors
import signal
import sys
import threading

from .framing import send_file
from .task_queue import TaskQueue
from .tcp import parse_address, tcp_listen

DEFAULT_FILE = "file1"


def _send_default_file(conn):
    send_file(conn, DEFAULT_FILE)


class ThreadPool:
    """Worker threads taking connections from a shared task queue.

    Each connection is passed to ``handler`` and closed afterwards.
    """

    def __init__(self, worker_count, handler=None):
        if worker_count < 1:
            raise ValueError(f"worker count must be positive, got {worker_count}")
        self.worker_count = worker_count
        self.handler = handler if handler is not None else _send_default_file
        self.threads = []
        self._queue = TaskQueue()
        self._cond = threading.Condition()
        self._exiting = False

    def __enter__(self):
        self.start()
        return self

    def __exit__(self, *exc_info):
        self.shutdown()

    def start(self):
        """Start the worker threads."""
        if self.threads:
            raise RuntimeError("pool already started")
        for index in range(self.worker_count):
            thread = threading.Thread(
                target=self._work, name=f"worker-{index}", daemon=True
            )
            thread.start()
            self.threads.append(thread)

    def submit(self, conn):
        """Queue a connection and wake one worker."""
        with self._cond:
            if self._exiting:
                raise RuntimeError("pool is shut down")
            self._queue.push(conn)
            self._cond.notify()

    def shutdown(self):
        """Tell every worker to exit and wait for them.

        Connections still waiting in the queue are closed unhandled.
        """
        with self._cond:
            self._exiting = True
            pending = []
            while len(self._queue):
                pending.append(self._queue.pop())
            self._cond.notify_all()
        for thread in self.threads:
            thread.join()
        for conn in pending:
            conn.close()

    def _work(self):
        while True:
            with self._cond:
                while not self._exiting and not len(self._queue):
                    self._cond.wait()
                if self._exiting:
                    print("worker going to exit!")
                    return
                conn = self._queue.pop()
            try:
                self.handler(conn)
            except Exception as exc:
                print(f"worker: {exc}", file=sys.stderr)
            finally:
                conn.close()


def serve(host, port, worker_count, stop_fd, handler=None):
    """Accept connections and feed them to a thread pool.

    Returns once ``stop_fd`` becomes readable, after all workers have exited.
    """
    listener = tcp_listen(host, port)
    pool = ThreadPool(worker_count, handler)
    pool.start()
    with listener, selectors.DefaultSelector() as selector:
        selector.register(listener, selectors.EVENT_READ)
        selector.register(stop_fd, selectors.EVENT_READ)
        while True:
            for key, _events in selector.select():
                if key.fileobj is listener:
                    conn, _addr = listener.accept()
                    print("I got one task!")
                    print(f"I am master,I send netfd={conn.fileno()}")
                    pool.submit(conn)
                else:
                    print("threadPool is going to exit!")
                    pool.shutdown()
                    print("main thread is going exit!")
                    return


def main(argv=None):
    """Command entry point: ``server HOST PORT WORKERS``; SIGUSR1 stops it."""
    args = sys.argv[1:] if argv is None else argv
    try:
        host, port, count_text = parse_address(args, 3)
        worker_count = int(count_text)
        if worker_count < 1:
            raise ValueError(f"worker count must be positive, got {worker_count}")
    except ValueError as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return 1

    read_fd, write_fd = os.pipe()

    def on_signal(signum, _frame):
        print(f"signum = {signum}")
        os.write(write_fd, b"1")

    previous = signal.signal(signal.SIGUSR1, on_signal)
    try:
        serve(host, port, worker_count, read_fd)
    except OSError as exc:
        print(f"server: {exc}", file=sys.stderr)
        return 1
    finally:
        signal.signal(signal.SIGUSR1, previous)
        os.close(read_fd)
        os.close(write_fd)
    print("Parent is going to exit!")
    return 0