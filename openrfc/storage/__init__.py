"""
OpenRFC storage backends.

    from openrfc.storage import create_storage
    storage = create_storage()                        # in-memory
    storage = create_storage("sqlite:///./rfcs.db")  # SQLAlchemy
"""

from typing import Optional

from .base import AgentStorage, CommentStorage, RFCStorage, ReviewStorage, Storage
from .memory import InMemoryStorage

MEMORY_URL = "memory://"


def create_storage(database_url: Optional[str] = None) -> Storage:
    """Build a storage backend from a URL. None or memory:// selects in-memory."""
    if database_url is None or database_url == MEMORY_URL:
        return InMemoryStorage()

    from .sql import SQLStorage

    return SQLStorage(database_url)


__all__ = [
    "AgentStorage",
    "CommentStorage",
    "InMemoryStorage",
    "MEMORY_URL",
    "RFCStorage",
    "ReviewStorage",
    "Storage",
    "create_storage",
]
