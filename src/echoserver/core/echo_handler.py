"""
=============================================================================
ECHO HANDLER
=============================================================================

Runs the receive/echo loop for ONE connection. Every connection gets its
own EchoHandler call on its own thread, so nothing here is shared.

    ┌─────────────────────────────────────────────────────────────────┐
    │                       Echo Loop Flow                             │
    ├─────────────────────────────────────────────────────────────────┤
    │                                                                  │
    │   log "Connected: ip:port"                                       │
    │       │                                                          │
    │       ▼                                                          │
    │   ┌── recv(4096) ◄───────────────────────────┐                   │
    │   │      │                                    │                   │
    │   │      ├── n > 0  ──► send_all(chunk) ──────┘                   │
    │   │      │                   │                                    │
    │   │      │                   └── error ──► log, CLOSED_ON_ERROR   │
    │   │      │                                                        │
    │   │      ├── n == 0 ──► log disconnect, CLOSED_BY_PEER            │
    │   │      │                                                        │
    │   │      └── error  ──► log, CLOSED_ON_ERROR                      │
    │   │                     (EINTR is retried inside recv())          │
    │   │                                                               │
    │   └── close() exactly once, on every path                         │
    │                                                                  │
    └─────────────────────────────────────────────────────────────────┘

Errors stay here. Nothing is raised back to the listener: a broken
client only ever takes down its own connection.

=============================================================================
"""

import logging

from .connection import Connection, ConnectionState, describe_error


logger = logging.getLogger(__name__)


class EchoHandler:
    """
    Echoes every byte a client sends back to it until the client goes away.

    Usage:
        handler = EchoHandler()
        handler(conn)   # Blocks until the connection ends, then closes it
    """

    def __call__(self, conn: Connection) -> None:
        """Handle `conn` from accept to close."""
        with conn:
            logger.info(f"Connected: {conn.peer}")
            try:
                self._echo_loop(conn)
            except Exception:
                conn.state = ConnectionState.CLOSED_ON_ERROR
                logger.exception(f"[{conn.id}] Unexpected error on {conn.peer}")

    def _echo_loop(self, conn: Connection) -> None:
        while True:
            # ─────────────────────────────────────────────────────────────
            # READ
            # ─────────────────────────────────────────────────────────────
            try:
                chunk = conn.recv()
            except OSError as e:
                logger.warning(f"Error in recv(): {describe_error(e)}")
                conn.state = ConnectionState.CLOSED_ON_ERROR
                return

            if not chunk:
                # Peer performed an orderly close (FIN received)
                logger.info(f"Client disconnected: {conn.peer}")
                conn.state = ConnectionState.CLOSED_BY_PEER
                return

            # ─────────────────────────────────────────────────────────────
            # ECHO
            # ─────────────────────────────────────────────────────────────
            # The whole chunk is flushed before the next recv(), which is
            # what keeps the echoed stream in receipt order.
            conn.state = ConnectionState.ECHOING
            try:
                conn.send_all(chunk)
            except OSError as e:
                logger.warning(f"Error in send(): {describe_error(e)}")
                conn.state = ConnectionState.CLOSED_ON_ERROR
                return
