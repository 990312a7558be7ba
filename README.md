# netpools

Small TCP servers and clients for Linux:

* a file server that hands each accepted connection to a pool of
  **worker threads** or a pool of **worker processes**, and a client that
  downloads the served file;
* a **broadcast chat** server that relays each message to every other
  connected client and drops clients that stay idle too long, with a
  console client;
* a one-to-one **console peer chat** between a terminal and a single
  connected client.

Only the standard library is used.

## Installation

```
pip install .
```

For running the tests:

```
pip install ".[test]"
pytest
```

## File server and client

Both pool servers take the address to listen on and the number of workers:

```
netpools-thread-server 127.0.0.1 1234 4
netpools-process-server 127.0.0.1 1234 3
```

Each accepted connection is served the file `file1` from the server's
working directory. On the wire the header messages are "trains": a 4-byte
length followed by at most 1000 bytes (`netpools.framing.send_train` /
`recv_train`). `send_file` sends the file's base name as one train and its
size as a second one (an 8-byte integer), waits ten seconds by default, and
then sends the raw contents.

The thread pool (`netpools.thread_pool.ThreadPool`) queues connections in a
`TaskQueue` that idle worker threads take from. On shutdown every worker is
told to exit, the pool waits for them, and connections still waiting in the
queue are closed without being served.

The process pool (`netpools.process_pool`) forks its workers up front and
passes each accepted connection to the first free worker over a Unix socket
pair (`netpools.fdpass.send_fd` / `recv_fd`). A worker reports its pid back
when it is done and is marked free again. A connection that arrives while
every worker is busy is closed and not served.

Sending `SIGUSR1` to a running server makes it stop its workers, wait for
them and exit.

To fetch the file:

```
netpools-client 127.0.0.1 1234
```

The file is written into the current directory under the name the server
sent, and exactly the announced number of bytes is read. A connection that
closes early raises `ConnectionError`.

From Python:

```python
from netpools.client import download

download("127.0.0.1", 1234, ".")
```

The pools can run a handler of your own in place of the file transfer; the
connection is closed after the handler returns:

```python
from netpools.thread_pool import ThreadPool

def handle(conn):
    conn.sendall(b"hello\n")

with ThreadPool(4, handle) as pool:
    ...  # pool.submit(conn) for each accepted socket
```

`netpools.thread_pool.serve` and `netpools.process_pool.serve` run the whole
accept loop and return once a given descriptor becomes readable.

## Broadcast chat

```
netpools-chat-server 127.0.0.1 1234
netpools-chat-client 127.0.0.1 1234
```

Everything a client sends is forwarded to all other connected clients.
A client that sends nothing for longer than the idle timeout (10 seconds
by default) is disconnected. `ChatServer` can be driven from Python with
`poll` for a single round (waiting up to one second by default) or
`serve_forever`. The client prints each message it receives prefixed with
`recv:` and prints `disconnected!` when the server closes the connection.

## Console peer chat

```
netpools-peer 127.0.0.1 1234
netpools-peer 127.0.0.1 1234 --reconnect
```

Waits for one client, then relays between the terminal and that client:
what you type is sent, what arrives is printed with a `recv:` prefix.
Without `--reconnect` the server stops when the client leaves; with it, it
waits for the next client. It stops when its input ends. The chat client
above can be used as the other end.

```
netpools-peer-trigger 127.0.0.1 1234
```

Serves a single client the same way, but reads the terminal three bytes at a
time and, whenever the socket becomes readable, drains it without blocking
two bytes at a time (`netpools.peer.read_available`), printing each piece
on its own line.

## What it does not do

The file servers always serve the one file named `file1`; clients cannot
choose a file, list files or upload anything, and there is no
authentication. The chat server keeps no history and has no user names.

## Requirements

Python 3.10 or later on Linux. Passing connections between processes relies
on Unix domain sockets and on forking.