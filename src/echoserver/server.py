"""
=============================================================================
ECHO SERVER
=============================================================================

This is the main server class that ties everything together:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                         REQUEST FLOW                                │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   Client ──TCP──► SocketServer.accept()                              │
    │                         │                                            │
    │                         ▼                                            │
    │                   Connection (ip, port, socket)                      │
    │                         │                                            │
    │                         ▼                                            │
    │           EchoServer._handle_connection(conn)                        │
    │                         │                                            │
    │                         └──► threading.Thread(daemon=True).start()   │
    │                                      │                               │
    │                                      ▼                               │
    │                              EchoHandler(conn)                       │
    │                              recv → send_all → recv → ... → close    │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

The listener hands a connection off and goes straight back to accept().
It keeps no reference to the thread: fire and forget.

=============================================================================
LOG FORMAT
=============================================================================

    [2026-10-19 14:03:12] Listening on port 8080
    [2026-10-19 14:03:15] Connected: 127.0.0.1:53122
    [2026-10-19 14:03:19] Client disconnected: 127.0.0.1:53122

INFO and DEBUG lines go to stdout, WARNING and above to stderr. The
logging module's handlers lock around every write, so lines from
concurrent handler threads never interleave.

=============================================================================
"""

import sys
import logging
import threading
from dataclasses import replace
from typing import Optional, Tuple

from .config import ServerConfig
from .core import SocketServer, Connection, EchoHandler


logger = logging.getLogger(__name__)

LOG_FORMAT = "[%(asctime)s] %(message)s"
LOG_DATEFMT = "%Y-%m-%d %H:%M:%S"


def _below_warning(record: logging.LogRecord) -> bool:
    return record.levelno < logging.WARNING


class EchoServer:
    """
    Thread-per-connection TCP echo server.

    Usage:
        server = EchoServer(ServerConfig(port=9000))
        server.run()   # Blocks until the accept loop ends

    For tests, run it in a background thread:
        threading.Thread(target=server.run, daemon=True).start()
        server.wait_until_listening(timeout=5)
        host, port = server.address
        ...
        server.shutdown()
    """

    def __init__(self, config: Optional[ServerConfig] = None):
        """
        Initialize the echo server.

        Args:
            config: Server configuration. Uses defaults (0.0.0.0:8080) if
                    not provided.

        Raises:
            ValueError: If the configuration is invalid.
        """
        # Private copy: run(host=..., port=...) must not touch the caller's config
        self.config = replace(config) if config else ServerConfig()
        self.config.validate()  # Fail-fast on invalid config

        self._socket_server = SocketServer(self.config)

        # Stateless, so one instance serves every connection thread
        self._handler = EchoHandler()

    @property
    def address(self) -> Tuple[str, int]:
        """The bound (host, port) once listening."""
        return self._socket_server.address

    @property
    def is_running(self) -> bool:
        return self._socket_server.is_running

    # =========================================================================
    # SERVER LIFECYCLE
    # =========================================================================

    def run(self, host: Optional[str] = None, port: Optional[int] = None):
        """
        Start the server (blocking).

        Returns once the accept loop ends: after a fatal accept() error
        or a call to shutdown().

        Args:
            host: Override config host.
            port: Override config port.

        Raises:
            OSError: If the listening socket cannot be set up.
        """
        if host is not None:
            self.config.host = host
        if port is not None:
            self.config.port = port
            self.config.validate()

        self._setup_logging()

        self._socket_server.start(self._handle_connection)

    def shutdown(self):
        """Stop accepting. Connections already being echoed carry on."""
        self._socket_server.shutdown()

    def wait_until_listening(self, timeout: Optional[float] = None) -> bool:
        return self._socket_server.wait_until_listening(timeout)

    def _setup_logging(self):
        """Configure logging based on config."""
        level = getattr(logging, self.config.log_level.upper(), logging.INFO)

        stdout_handler = logging.StreamHandler(sys.stdout)
        stdout_handler.addFilter(_below_warning)

        stderr_handler = logging.StreamHandler(sys.stderr)
        stderr_handler.setLevel(logging.WARNING)

        # No-op if the application already configured the root logger
        logging.basicConfig(
            level=level,
            format=LOG_FORMAT,
            datefmt=LOG_DATEFMT,
            handlers=[stdout_handler, stderr_handler],
        )

        logging.getLogger("echoserver").setLevel(level)

    # =========================================================================
    # CONNECTION DISPATCH
    # =========================================================================

    def _handle_connection(self, conn: Connection):
        """
        Hand a connection to a new handler thread.

        Called by SocketServer for each accepted client. The thread is a
        daemon and is never joined, so a slow client cannot hold up the
        listener or process exit.

        Args:
            conn: The client connection. Owned by the new thread from here.
        """
        thread = threading.Thread(
            target=self._handler,
            args=(conn,),
            name=f"echo-{conn.id}",
            daemon=True,
        )
        try:
            thread.start()
        except RuntimeError as e:
            # "can't start new thread": drop this client, keep listening
            logger.error(f"[{conn.id}] Could not start handler for {conn.peer}: {e}")
            conn.close()
