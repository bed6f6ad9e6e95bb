"""
Command-line interface for the OpenRFC server.
"""

import argparse
import logging
import sys

from .. import __version__


def main():
    """Main entry point for the CLI."""
    parser = argparse.ArgumentParser(
        prog="openrfc-server",
        description="OpenRFC Server - collaborative RFC authoring and review",
    )

    parser.add_argument(
        "--host",
        default="0.0.0.0",
        help="Host to bind to (default: 0.0.0.0)",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=8000,
        help="Port to bind to (default: 8000)",
    )
    parser.add_argument(
        "--database-url",
        default=None,
        help="SQLAlchemy database URL, or memory:// (default: in-memory)",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug mode",
    )
    parser.add_argument(
        "--log-level",
        default="info",
        choices=["debug", "info", "warning", "error"],
        help="Log level (default: info)",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    args = parser.parse_args()

    logging.basicConfig(
        level=args.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    from .app import OpenRFCServer

    print(f"""
OpenRFC Server v{__version__}
  Host:     {args.host}
  Port:     {args.port}
  Storage:  {args.database_url or "memory://"}

API Documentation: http://{args.host}:{args.port}/docs

Press Ctrl+C to stop the server.
""")

    try:
        server = OpenRFCServer(
            host=args.host,
            port=args.port,
            database_url=args.database_url,
            debug=args.debug,
            log_level=args.log_level,
        )
        server.run()
    except KeyboardInterrupt:
        print("\nServer stopped.")
        sys.exit(0)


if __name__ == "__main__":
    main()
