"""
=============================================================================
ECHOSERVER - Multithreaded TCP Echo Server
=============================================================================

A TCP server that sends every byte it receives straight back to the
sender, built on raw Python sockets with one thread per connection.

=============================================================================
PACKAGE STRUCTURE
=============================================================================

    echoserver/
    ├── __init__.py          # This file - package exports
    ├── __main__.py          # CLI entry point (python -m echoserver)
    ├── server.py            # EchoServer: wiring, logging, dispatch
    ├── config.py            # ServerConfig dataclass
    └── core/                # Low-level components
        ├── socket_server.py # Listening socket + accept loop
        ├── connection.py    # Connection wrapper (recv, send_all, close)
        └── echo_handler.py  # Per-connection receive/echo loop

=============================================================================
QUICK START
=============================================================================

    from echoserver import EchoServer, ServerConfig

    server = EchoServer(ServerConfig(port=9000))
    server.run()   # Blocks

=============================================================================
"""

__version__ = "1.0.0"

from .server import EchoServer
from .config import ServerConfig

__all__ = ["EchoServer", "ServerConfig", "__version__"]
