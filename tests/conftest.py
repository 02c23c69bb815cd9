"""
pytest configuration and fixtures.
"""

import socket
import threading
from typing import Generator, Optional
import pytest

# Add src to path for imports
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from echoserver import EchoServer, ServerConfig


class FakeSocket:
    """
    Scripted stand-in for an accepted client socket.

    recv_script items are returned by recv() in order; an exception
    instance in the script is raised instead. Once the script runs out,
    recv() reports an orderly close (b"").

    max_send caps how many bytes a single send() accepts, to force
    partial writes. send_error is raised by the send() call that follows
    `send_error_after` successful ones.
    setblocking_error is raised by setblocking().
    """

    def __init__(self, recv_script=(), max_send=None, send_error=None, send_error_after=0,
                 setblocking_error=None):
        self.recv_script = list(recv_script)
        self.max_send = max_send
        self.send_error = send_error
        self.send_error_after = send_error_after
        self.setblocking_error = setblocking_error

        self.sent = bytearray()
        self.events = []        # ("recv", data) / ("send", n) in call order
        self.recv_sizes = []
        self.close_calls = 0
        self.blocking = None

    @property
    def recv_calls(self) -> int:
        return len(self.recv_sizes)

    @property
    def send_calls(self) -> int:
        return sum(1 for kind, _ in self.events if kind == "send")

    def setblocking(self, flag):
        if self.setblocking_error is not None:
            raise self.setblocking_error
        self.blocking = flag

    def recv(self, bufsize):
        self.recv_sizes.append(bufsize)
        if not self.recv_script:
            self.events.append(("recv", b""))
            return b""
        item = self.recv_script.pop(0)
        if isinstance(item, BaseException):
            raise item
        self.events.append(("recv", item))
        return item

    def send(self, data):
        if self.send_error is not None and self.send_calls >= self.send_error_after:
            raise self.send_error
        data = bytes(data)
        n = len(data) if self.max_send is None else min(self.max_send, len(data))
        self.sent += data[:n]
        self.events.append(("send", n))
        return n

    def close(self):
        self.close_calls += 1


class FakeListener:
    """
    Scripted stand-in for the listening socket.

    accept_script items are (client_socket, address) tuples or exception
    instances. When the script runs out accept() raises
    OSError("listener exhausted") so the loop always terminates.
    """

    def __init__(self, accept_script=(), sockname=("0.0.0.0", 5555)):
        self.accept_script = list(accept_script)
        self.sockname = sockname
        self.bound_to = None
        self.backlog = None
        self.timeout = None
        self.options = []
        self.close_calls = 0

    def setsockopt(self, level, option, value):
        self.options.append((level, option, value))

    def settimeout(self, timeout):
        self.timeout = timeout

    def bind(self, address):
        self.bound_to = address

    def listen(self, backlog):
        self.backlog = backlog

    def getsockname(self):
        return self.sockname

    def accept(self):
        if not self.accept_script:
            raise OSError("listener exhausted")
        item = self.accept_script.pop(0)
        if isinstance(item, BaseException):
            raise item
        return item

    def close(self):
        self.close_calls += 1


@pytest.fixture
def fake_socket():
    """Factory for scripted client sockets."""
    return FakeSocket


@pytest.fixture
def fake_listener():
    """Factory for scripted listening sockets."""
    return FakeListener


@pytest.fixture
def config() -> ServerConfig:
    """Default test server configuration."""
    return ServerConfig(
        host="127.0.0.1",
        port=0,  # Let OS pick a free port
        accept_timeout=0.05,
    )


@pytest.fixture
def busy_port() -> Generator[int, None, None]:
    """A port that is already taken by a listening socket."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("127.0.0.1", 0))
        s.listen(1)
        yield s.getsockname()[1]


class BackgroundServer:
    """Test server helper that runs in a background thread."""

    def __init__(self, server: EchoServer):
        self.server = server
        self._thread: Optional[threading.Thread] = None
        self._clients: list[socket.socket] = []

    @property
    def port(self) -> int:
        return self.server.address[1]

    def start(self):
        """Start server in background thread."""
        self._thread = threading.Thread(target=self.server.run, daemon=True)
        self._thread.start()

        if not self.server.wait_until_listening(timeout=5.0):
            raise RuntimeError("Server failed to start")

    def connect(self) -> socket.socket:
        """Open a client connection to the server."""
        client = socket.create_connection(("127.0.0.1", self.port), timeout=5.0)
        self._clients.append(client)
        return client

    def stop(self):
        """Stop the server and close any client sockets left open."""
        for client in self._clients:
            client.close()
        self._clients.clear()

        self.server.shutdown()

        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=5.0)

    @property
    def thread_alive(self) -> bool:
        return self._thread is not None and self._thread.is_alive()


@pytest.fixture
def echo_server(config: ServerConfig) -> Generator[BackgroundServer, None, None]:
    """A running echo server on a free loopback port."""
    test_srv = BackgroundServer(EchoServer(config))
    test_srv.start()

    yield test_srv

    test_srv.stop()
