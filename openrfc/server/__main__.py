"""
Entry point for running the server as a module.

Usage:
    python -m openrfc.server
    python -m openrfc.server --port 8000 --database-url sqlite:///./rfcs.db
"""

from .cli import main

if __name__ == "__main__":
    main()
