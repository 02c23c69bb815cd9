"""
=============================================================================
SERVER CONFIGURATION
=============================================================================

Centralized configuration for the echo server.

=============================================================================
CONFIGURATION SOURCES
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    CONFIGURATION HIERARCHY                          │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   Priority (highest to lowest):                                     │
    │                                                                      │
    │   1. Command-line arguments                                         │
    │      └── python -m echoserver 9000                                 │
    │                                                                      │
    │   2. Environment variables                                          │
    │      └── ECHO_PORT=9000 python -m echoserver                       │
    │                                                                      │
    │   3. Defaults (this file)                                           │
    │      └── 0.0.0.0:8080, 4 KB buffer                                 │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
"""

import os
import socket
from dataclasses import dataclass


LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass
class ServerConfig:
    """
    Configuration for the echo server.

    Development:
        ServerConfig(
            host="127.0.0.1",    # Localhost only
            port=0,              # Let the OS pick a free port
            log_level="DEBUG",   # Per-connection detail
        )

    Production-ish:
        ServerConfig(port=7)     # The classic echo port (needs root)
    """

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    host: str = "0.0.0.0"
    """
    The IP address to bind to.
    - "0.0.0.0" - All network interfaces (default)
    - "127.0.0.1" - Localhost only
    """

    port: int = 8080
    """
    The port number to listen on.
    0 asks the OS for any free port (handy in tests).
    """

    backlog: int = socket.SOMAXCONN
    """
    Maximum number of queued, not-yet-accepted connections.
    SOMAXCONN is the platform maximum.
    """

    buffer_size: int = 4096
    """
    How many bytes a single recv() may return.
    Chunking is invisible to clients: the echoed stream is identical
    whatever the buffer size.
    """

    accept_timeout: float = 1.0
    """
    Poll tick for the accept loop in seconds.
    accept() wakes up this often so shutdown() can be noticed.
    """

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING
    # ─────────────────────────────────────────────────────────────────────

    log_level: str = "INFO"
    """
    Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
    DEBUG adds accept/close detail for every connection.
    """

    @classmethod
    def from_env(cls) -> "ServerConfig":
        """
        Create configuration from environment variables.

        ECHO_HOST         Bind address (default: 0.0.0.0)
        ECHO_PORT         Listen port (default: 8080)
        ECHO_BUFFER_SIZE  recv() chunk size (default: 4096)
        ECHO_LOG_LEVEL    Logging level (default: INFO)
        """
        return cls(
            host=os.getenv("ECHO_HOST", "0.0.0.0"),
            port=int(os.getenv("ECHO_PORT", "8080")),
            buffer_size=int(os.getenv("ECHO_BUFFER_SIZE", "4096")),
            log_level=os.getenv("ECHO_LOG_LEVEL", "INFO"),
        )

    def validate(self) -> None:
        """
        Validate configuration values.

        Called once at startup so a bad value fails before any socket
        is created.

        Raises:
            ValueError: If any setting is out of range.
        """
        if not 0 <= self.port <= 65535:
            raise ValueError(f"Invalid port: {self.port}. Must be 0-65535.")

        if self.buffer_size < 1:
            raise ValueError("buffer_size must be >= 1")

        if self.backlog < 0:
            raise ValueError("backlog must be >= 0")

        if self.accept_timeout <= 0:
            raise ValueError("accept_timeout must be > 0")

        if self.log_level.upper() not in LOG_LEVELS:
            raise ValueError(f"Unknown log level: {self.log_level}")
