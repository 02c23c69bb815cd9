"""
=============================================================================
CONNECTION MANAGEMENT
=============================================================================

This module wraps one accepted client socket with the small amount of
bookkeeping the echo handler needs: who the peer is, what state the
connection is in, and how many bytes went each way.

=============================================================================
TCP IS A BYTE STREAM, NOT A MESSAGE PROTOCOL!
=============================================================================

    Client sends:
        send("Hello")
        send("World")

    Server might receive ANY of these:
        recv() → "HelloWorld"      (both combined)
        recv() → "Hel"             (partial)
        recv() → "loWorld"         (rest of first + second)

For an echo server this is good news: we never need to find message
boundaries. Whatever chunk recv() hands us goes straight back out, and
because TCP keeps bytes IN ORDER, the client sees exactly what it sent.

=============================================================================
SEND() MAY WRITE LESS THAN YOU ASKED
=============================================================================

send() returns how many bytes the kernel actually accepted. When the
socket send buffer is nearly full that can be fewer than len(data):

    data = b"0123456789"
    send(data)        → 6     ("012345" queued)
    send(data[6:])    → 4     ("6789" queued)

send_all() below loops until every byte of the chunk is written, keeping
a running offset so nothing is lost or sent twice.

=============================================================================
CONNECTION STATE MACHINE
=============================================================================

    CONNECTED ──────► ECHOING ◄──┐
        │                │  │     │  (recv → send_all, repeat)
        │                │  └─────┘
        │                │
        ├────────────────┼──────────► CLOSED_BY_PEER   (recv() == b"")
        │                │
        └────────────────┴──────────► CLOSED_ON_ERROR  (recv/send error)

Both CLOSED_* states are terminal. A client that connects and hangs up
without sending anything goes straight from CONNECTED to CLOSED_BY_PEER.

=============================================================================
"""

import socket
import time
import logging
import uuid
from enum import Enum
from dataclasses import dataclass, field


logger = logging.getLogger(__name__)


def describe_error(error: OSError) -> str:
    """The system error description, e.g. "Connection reset by peer"."""
    return error.strerror or str(error)


class ConnectionState(Enum):
    """Connection lifecycle states."""
    CONNECTED = "connected"              # Accepted, nothing read yet
    ECHOING = "echoing"                  # At least one chunk echoed
    CLOSED_BY_PEER = "closed_by_peer"    # Orderly close from the client
    CLOSED_ON_ERROR = "closed_on_error"  # recv/send failed

    @property
    def is_terminal(self) -> bool:
        return self in (ConnectionState.CLOSED_BY_PEER, ConnectionState.CLOSED_ON_ERROR)


@dataclass
class Connection:
    """
    Represents one accepted client connection.

    A Connection is owned by exactly one handler. Once closed it is never
    read from, written to, or handed to anyone else.

    Attributes:
        socket: The client socket.
        address: Client's (ip, port) tuple, captured at accept time.
        id: Short identifier for debug logs.
        state: Current connection state.
        created_at: Timestamp when the connection was accepted.
        bytes_received: Total bytes read from the client.
        bytes_sent: Total bytes echoed back.
    """

    # Required parameters
    socket: socket.socket
    address: tuple[str, int]

    # Generated/default parameters
    id: str = field(default_factory=lambda: str(uuid.uuid4())[:8])
    state: ConnectionState = ConnectionState.CONNECTED
    created_at: float = field(default_factory=time.time)
    bytes_received: int = 0
    bytes_sent: int = 0

    # Configuration (passed from ServerConfig)
    buffer_size: int = 4096

    _closed: bool = field(default=False, repr=False)

    def __post_init__(self):
        # Accepted sockets pick up socket.getdefaulttimeout(); the echo
        # loop has no idle timeout.
        self.socket.setblocking(True)

    # =========================================================================
    # PROPERTIES
    # =========================================================================

    @property
    def client_ip(self) -> str:
        """Get the client IP address."""
        return self.address[0]

    @property
    def client_port(self) -> int:
        """Get the client port."""
        return self.address[1]

    @property
    def peer(self) -> str:
        """The "ip:port" form used in log lines."""
        return f"{self.client_ip}:{self.client_port}"

    @property
    def age(self) -> float:
        """Get connection age in seconds."""
        return time.time() - self.created_at

    @property
    def closed(self) -> bool:
        return self._closed

    # =========================================================================
    # I/O
    # =========================================================================

    def recv(self) -> bytes:
        """
        Read the next chunk from the client.

        Retries transparently when the call is interrupted by a signal
        (EINTR). Any other socket error propagates to the caller.

        Returns:
            Up to buffer_size bytes, or b"" when the client closed its side.

        Raises:
            OSError: On any receive failure other than EINTR.
        """
        while True:
            try:
                data = self.socket.recv(self.buffer_size)
            except InterruptedError:
                continue
            self.bytes_received += len(data)
            return data

    def send_all(self, data: bytes) -> None:
        """
        Write the whole of `data` to the client.

        ┌─────────────────────────────────────────────────────────────────┐
        │                     Partial Write Loop                          │
        ├─────────────────────────────────────────────────────────────────┤
        │                                                                  │
        │   sent = 0                                                       │
        │   while sent < len(data):                                        │
        │       n = send(data[sent:])    ← may accept only part            │
        │       sent += n                ← remember where we stopped       │
        │                                                                  │
        └─────────────────────────────────────────────────────────────────┘

        Unlike socket.sendall(), the offset is tracked here so bytes_sent
        stays accurate even if a later send() fails.

        Raises:
            OSError: On the first failed send(). Remaining bytes are dropped.
        """
        view = memoryview(data)
        sent = 0
        while sent < len(view):
            n = self.socket.send(view[sent:])
            sent += n
            self.bytes_sent += n

    # =========================================================================
    # CLOSING
    # =========================================================================

    def close(self):
        """
        Release the socket.

        Safe to call more than once: only the first call touches the
        socket, later calls are no-ops.
        """
        if self._closed:
            return
        self._closed = True

        try:
            self.socket.close()
        except OSError:
            pass  # Nothing left to release

        logger.debug(
            f"[{self.id}] Connection {self.peer} closed ({self.state.value}) "
            f"after {self.age:.3f}s: {self.bytes_received} bytes in, "
            f"{self.bytes_sent} bytes out"
        )

    # =========================================================================
    # CONTEXT MANAGER
    # =========================================================================

    def __enter__(self):
        """
        Allows using Connection with 'with' for automatic cleanup:

            with conn:
                data = conn.recv()
                conn.send_all(data)
            # Connection closed here, whatever happened inside
        """
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit - ensure connection is closed."""
        self.close()
        return False  # Don't suppress exceptions
