"""
OpenRFC Server - HTTP surface over the RFC domain model.

Run with:
    openrfc-server             # CLI entry point
    python -m openrfc.server   # Module entry point

Or programmatically:
    from openrfc.server import OpenRFCServer
    server = OpenRFCServer(port=8000)
    server.run()
"""

from .app import OpenRFCServer, create_app
from .config import ServerConfig

__all__ = [
    "create_app",
    "OpenRFCServer",
    "ServerConfig",
]
