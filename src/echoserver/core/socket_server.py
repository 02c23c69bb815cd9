"""
=============================================================================
LOW-LEVEL TCP SOCKET SERVER (THE LISTENER)
=============================================================================

This module owns the listening socket. It binds, listens, and then sits in
the accept loop handing every new client to a callback. It never reads or
writes client data itself.

=============================================================================
SOCKET LIFECYCLE (Server Side)
=============================================================================

    1. socket()    Create a TCP socket
    2. setsockopt  SO_REUSEADDR (restart without "Address already in use")
    3. bind()      Associate the socket with 0.0.0.0:PORT
    4. listen()    backlog = SOMAXCONN, the platform maximum
    5. accept()    BLOCKS until a client connects, returns a NEW socket
    6. close()     Only when the accept loop ends

                    ┌───────────────────────┐
                    │   Listening Socket    │ ◄── Created once at startup
                    │   (Server Socket)     │     Bound to 0.0.0.0:8080
                    └───────────┬───────────┘     Never sends/receives data
                                │
        ┌───────────────────────┼───────────────────────┐
        │                       │                       │
        ▼                       ▼                       ▼
    ┌───────────┐         ┌───────────┐         ┌───────────┐
    │ Client    │         │ Client    │         │ Client    │
    │ Socket 1  │         │ Socket 2  │         │ Socket 3  │
    └───────────┘         └───────────┘         └───────────┘
    Each accept() creates a new socket, owned by its own handler thread

=============================================================================
WHAT CAN GO WRONG
=============================================================================

    socket()/setsockopt()/bind()/listen() fails
        └─ Startup is impossible. Log "<call>() failed: <reason>",
           close the socket, re-raise. The process exits with status 1.

    accept() raises InterruptedError (EINTR)
        └─ A signal arrived mid-call. Just call accept() again.

    accept() raises any other OSError
        └─ The listener is done. Log "accept() failed: <reason>",
           leave the loop, close the listening socket.

    Configuring an accepted client socket fails
        └─ Log a warning, close that client socket, keep accepting.

=============================================================================
"""

import socket
import logging
import threading
from typing import Optional, Callable, Tuple

from ..config import ServerConfig
from .connection import Connection, describe_error


logger = logging.getLogger(__name__)


class SocketServer:
    """
    Low-level TCP socket server.

    Manages the listening socket and the accept loop. Every accepted client
    is wrapped in a Connection and passed to `connection_handler`, which
    must return immediately (EchoServer starts a thread for it).

    Usage:
        def handle_connection(conn: Connection):
            threading.Thread(target=EchoHandler(), args=(conn,), daemon=True).start()

        server = SocketServer(config)
        server.start(handle_connection)  # Blocks until the accept loop ends
    """

    def __init__(self, config: ServerConfig):
        """
        Initialize the socket server.

        Args:
            config: Server configuration containing host, port, backlog, etc.

        Note: This does NOT create the socket. That happens in start().
        """
        self.config = config

        # The listening socket (created in start())
        self._socket: Optional[socket.socket] = None
        self._bound_address: Optional[Tuple[str, int]] = None

        self._running = False

        # Set once bind() and listen() succeeded
        self._listening_event = threading.Event()

    @property
    def is_running(self) -> bool:
        """Check if the accept loop is running."""
        return self._running

    @property
    def address(self) -> Tuple[str, int]:
        """
        The server's bound address (IP, port).

        Once listening this is the real address, so a configured port of 0
        reports the port the OS picked.
        """
        if self._bound_address is not None:
            return self._bound_address
        return (self.config.host, self.config.port)

    def _create_socket(self) -> socket.socket:
        """
        Create and configure the listening socket.

        Raises:
            OSError: If socket() or setsockopt() fails.
        """
        try:
            sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        except OSError as e:
            logger.error(f"socket() failed: {describe_error(e)}")
            raise

        try:
            # SO_REUSEADDR: bind even while old connections sit in TIME_WAIT
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        except OSError as e:
            logger.error(f"setsockopt() failed: {describe_error(e)}")
            sock.close()
            raise

        # accept() wakes up every accept_timeout seconds so shutdown() is
        # noticed. The timeout is a poll tick, never an error.
        sock.settimeout(self.config.accept_timeout)

        return sock

    def _bind_and_listen(self):
        """
        Bind to (host, port) and start the accept queue.

        Raises:
            OSError: If bind() or listen() fails.
        """
        # Common bind() errors:
        # - Address already in use: another process is listening here
        # - Permission denied: ports < 1024 require root
        try:
            self._socket.bind((self.config.host, self.config.port))
        except OSError as e:
            logger.error(f"bind() failed: {describe_error(e)}")
            raise

        try:
            self._socket.listen(self.config.backlog)
        except OSError as e:
            logger.error(f"listen() failed: {describe_error(e)}")
            raise

    def start(self, connection_handler: Callable[[Connection], None]):
        """
        Start accepting connections.

        This method BLOCKS until the accept loop ends, either because
        accept() failed or because shutdown() was called.

        Args:
            connection_handler: Callback that receives each new connection.
                               It must not block.

        Raises:
            OSError: If the socket cannot be set up. The accept loop is
                     never entered in that case.
        """
        self._socket = self._create_socket()

        try:
            self._bind_and_listen()
        except OSError:
            self._close_socket()
            raise

        self._bound_address = self._socket.getsockname()[:2]
        self._running = True

        logger.info(f"Listening on port {self._bound_address[1]}")

        # Ready only once the startup line is out
        self._listening_event.set()

        try:
            self._accept_loop(connection_handler)
        finally:
            self._cleanup()

    def _accept_loop(self, connection_handler: Callable[[Connection], None]):
        """
        Main loop for accepting connections.

        ┌─────────────────────────────────────────────────────────────────┐
        │                     Accept Loop Flow                             │
        ├─────────────────────────────────────────────────────────────────┤
        │                                                                  │
        │   while self._running:                                           │
        │       │                                                          │
        │       ├──► accept()                                              │
        │       │       ├── timeout         → continue (poll tick)         │
        │       │       ├── InterruptedError → continue (retry)            │
        │       │       └── other OSError   → log, break                   │
        │       │                                                          │
        │       ├──► Connection(client_socket, client_address)             │
        │       │                                                          │
        │       └──► connection_handler(conn)                              │
        │               └── spawns a thread, returns at once               │
        │                                                                  │
        └─────────────────────────────────────────────────────────────────┘

        Args:
            connection_handler: Callback for each new connection.
        """
        while self._running:
            try:
                client_socket, client_address = self._socket.accept()
            except socket.timeout:
                continue
            except InterruptedError:
                continue
            except OSError as e:
                if self._running:
                    logger.error(f"accept() failed: {describe_error(e)}")
                break

            logger.debug(f"Accepted connection from {client_address[0]}:{client_address[1]}")

            try:
                conn = Connection(
                    socket=client_socket,
                    address=client_address[:2],
                    buffer_size=self.config.buffer_size,
                )
            except OSError as e:
                # Drop this client only; the listener keeps accepting
                logger.warning(
                    f"Could not set up connection from "
                    f"{client_address[0]}:{client_address[1]}: {describe_error(e)}"
                )
                client_socket.close()
                continue

            # Ownership of conn passes to the handler here
            connection_handler(conn)

    def shutdown(self):
        """
        Ask the accept loop to stop.

        The loop notices within accept_timeout seconds. Connections that
        are already being echoed are not touched.

        It's safe to call multiple times - it's idempotent.
        """
        if self._running:
            logger.info("Shutting down listener...")
        self._running = False

    def _close_socket(self):
        if self._socket:
            try:
                self._socket.close()
            except OSError:
                pass  # Already closed
            self._socket = None

    def _cleanup(self):
        """Close the listening socket once the accept loop is over."""
        self._running = False
        self._close_socket()
        logger.debug("Listener stopped")

    def wait_until_listening(self, timeout: Optional[float] = None) -> bool:
        """
        Wait until the socket is bound and listening.

        Useful for tests that start the server in a background thread.

        Args:
            timeout: Maximum time to wait in seconds. None = wait forever.

        Returns:
            True if the server is listening, False if timeout.
        """
        return self._listening_event.wait(timeout)
