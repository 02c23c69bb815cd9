"""
=============================================================================
ECHO SERVER CLI ENTRY POINT
=============================================================================

    # Run with defaults (0.0.0.0:8080)
    python -m echoserver

    # Custom port
    python -m echoserver 9000

    # Localhost only, verbose
    python -m echoserver 9000 --host 127.0.0.1 --log-level DEBUG

    # From the environment
    ECHO_PORT=9000 python -m echoserver

Try it with netcat:

    $ nc localhost 9000
    hello
    hello

=============================================================================
EXIT CODES
=============================================================================

    0   The accept loop ended (accept() failed, or Ctrl+C)
    1   Startup failed: bad configuration, or socket/setsockopt/bind/listen
    2   Bad command line (argparse), e.g. a non-numeric port

=============================================================================
"""

import argparse
import sys

from . import __version__
from .server import EchoServer
from .config import ServerConfig, LOG_LEVELS


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="echoserver",
        description="Multithreaded TCP echo server",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m echoserver                      # Listen on 0.0.0.0:8080
  python -m echoserver 9000                 # Custom port
  python -m echoserver -H 127.0.0.1 9000    # Localhost only
        """
    )

    parser.add_argument(
        "port",
        nargs="?",
        type=int,
        default=None,
        help="Port to listen on (default: 8080, or $ECHO_PORT)"
    )

    parser.add_argument(
        "--host", "-H",
        default=None,
        help="Address to bind to (default: 0.0.0.0, or $ECHO_HOST)"
    )

    parser.add_argument(
        "--log-level", "-l",
        choices=LOG_LEVELS[:4],
        default=None,
        help="Logging level (default: INFO, or $ECHO_LOG_LEVEL)"
    )

    parser.add_argument(
        "--version", "-v",
        action="version",
        version=f"echoserver {__version__}"
    )

    return parser


def main(argv=None):
    """
    Main CLI entry point.

    Command-line arguments win over environment variables, which win over
    the ServerConfig defaults.
    """
    args = build_parser().parse_args(argv)

    # =========================================================================
    # CREATE CONFIGURATION
    # =========================================================================

    try:
        config = ServerConfig.from_env()

        if args.port is not None:
            config.port = args.port
        if args.host is not None:
            config.host = args.host
        if args.log_level is not None:
            config.log_level = args.log_level

        server = EchoServer(config)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    # =========================================================================
    # RUN SERVER
    # =========================================================================
    # Blocks until accept() fails or Ctrl+C is pressed

    try:
        server.run()
    except OSError:
        # Already logged by the listener as "<call>() failed: <reason>"
        sys.exit(1)
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    main()
