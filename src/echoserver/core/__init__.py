"""
=============================================================================
CORE COMPONENTS
=============================================================================

The two pieces that do the actual work:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   SocketServer (listener thread)                                     │
    │       │                                                              │
    │       ├── accept() ──► Connection ──► new thread: EchoHandler        │
    │       ├── accept() ──► Connection ──► new thread: EchoHandler        │
    │       └── accept() ──► Connection ──► new thread: EchoHandler        │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

THREAD-PER-CONNECTION MODEL
    Each connection is echoed by its own thread. The listener never waits
    for, joins, or even remembers those threads. Handlers share nothing,
    so there are no locks anywhere in here.

=============================================================================
"""

from .socket_server import SocketServer
from .connection import Connection, ConnectionState
from .echo_handler import EchoHandler

__all__ = [
    "SocketServer",     # Listening socket + accept loop
    "Connection",       # Wrapper for one client socket
    "ConnectionState",  # Enum for connection lifecycle states
    "EchoHandler",      # Per-connection receive/echo loop
]
