"""File server that passes accepted connections to worker processes."""

from __future__ import annotations

import enum
import multiprocessing
import os
import selectors
import signal
import socket
import struct
import sys
from dataclasses import dataclass, field
from typing import Optional

from .fdpass import recv_fd, send_fd
from .framing import recv_exact, send_file
from .tcp import parse_address, tcp_listen

DEFAULT_FILE = "file1"
PID = struct.Struct("=i")


def _send_default_file(conn):
    send_file(conn, DEFAULT_FILE)


class WorkerStatus(enum.Enum):
    FREE = 0
    BUSY = 1


@dataclass
class WorkerInfo:
    """What the master keeps about one worker process."""

    pid: int
    channel: socket.socket
    status: WorkerStatus = WorkerStatus.FREE
    process: Optional[multiprocessing.process.BaseProcess] = field(
        default=None, compare=False, repr=False
    )


def work_loop(channel, handler):
    """Serve connections received over ``channel`` until told to exit.

    After each connection the worker reports its pid back to the master.
    Returns the number of connections handled.
    """
    handled = 0
    while True:
        try:
            fd, exit_flag = recv_fd(channel)
        except ConnectionError:
            return handled
        if exit_flag:
            if fd is not None:
                os.close(fd)
            print("going exit!")
            return handled
        if fd is None:
            continue
        print("begin work!")
        conn = socket.socket(fileno=fd)
        try:
            handler(conn)
        except Exception as exc:
            print(f"worker: {exc}", file=sys.stderr)
        finally:
            conn.close()
        handled += 1
        print("work complete!")
        channel.sendall(PID.pack(os.getpid()))


def _worker_main(foreign_channels, channel, handler):
    for other in foreign_channels:
        other.close()
    signal.signal(signal.SIGUSR1, signal.SIG_DFL)
    try:
        work_loop(channel, handler)
    finally:
        sys.stdout.flush()
        sys.stderr.flush()


def make_workers(count, handler):
    """Start ``count`` workers, each running ``work_loop`` on its own channel."""
    context = multiprocessing.get_context("fork")
    workers = []
    for index in range(count):
        parent_end, child_end = socket.socketpair(socket.AF_UNIX, socket.SOCK_STREAM)
        sys.stdout.flush()
        sys.stderr.flush()
        foreign = [parent_end, *(worker.channel for worker in workers)]
        process = context.Process(
            target=_worker_main, args=(foreign, child_end, handler), daemon=False
        )
        process.start()
        child_end.close()
        workers.append(
            WorkerInfo(pid=process.pid, channel=parent_end, process=process)
        )
        print(f"i ={index},pid = {process.pid},pipefd = {parent_end.fileno()}")
    return workers


def _stop_workers(workers):
    for worker in workers:
        try:
            send_fd(worker.channel, None, True)
        except OSError:
            pass
        print("KILL one worker!")
    for worker in workers:
        if worker.process is not None:
            worker.process.join()
        else:
            try:
                os.waitpid(worker.pid, 0)
            except ChildProcessError:
                pass
        worker.channel.close()
    print("All worker are killed")


def serve(host, port, worker_count, stop_fd, handler=None):
    """Accept connections and give each to the first free worker.

    A connection arriving while every worker is busy is dropped. Returns
    once ``stop_fd`` becomes readable and all workers have exited.
    """
    workers = make_workers(worker_count, handler or _send_default_file)
    try:
        listener = tcp_listen(host, port)
    except OSError:
        _stop_workers(workers)
        raise
    by_channel = {worker.channel: worker for worker in workers}
    with listener, selectors.DefaultSelector() as selector:
        selector.register(listener, selectors.EVENT_READ)
        for worker in workers:
            selector.register(worker.channel, selectors.EVENT_READ)
        selector.register(stop_fd, selectors.EVENT_READ)
        while True:
            for key, _events in selector.select():
                if key.fileobj is listener:
                    conn, _addr = listener.accept()
                    print("one client connected!")
                    with conn:
                        worker = next(
                            (w for w in workers if w.status is WorkerStatus.FREE),
                            None,
                        )
                        if worker is not None:
                            send_fd(worker.channel, conn.fileno())
                            worker.status = WorkerStatus.BUSY
                elif key.fileobj in by_channel:
                    worker = by_channel[key.fileobj]
                    index = workers.index(worker)
                    try:
                        (pid,) = PID.unpack(recv_exact(worker.channel, PID.size))
                    except ConnectionError:
                        selector.unregister(worker.channel)
                        worker.status = WorkerStatus.BUSY
                        print(f"{index},worker,pid = {worker.pid} is gone",
                              file=sys.stderr)
                        continue
                    print(f"{index},worker,pid = {pid}")
                    worker.status = WorkerStatus.FREE
                else:
                    _stop_workers(workers)
                    return


def main(argv=None):
    """Command entry point: ``server HOST PORT WORKERS``; SIGUSR1 stops it."""
    args = sys.argv[1:] if argv is None else argv
    try:
        host, port, count_text = parse_address(args, 3)
        worker_count = int(count_text)
        if worker_count < 0:
            raise ValueError(f"worker count must not be negative, got {worker_count}")
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
    return 0