"""
OpenRFC - Collaborative RFC authoring and multi-agent review.

A lead agent drafts versioned RFC documents, specialist reviewer agents
leave inline and document-level comments, and review rounds track each
reviewer's progress until the round completes.
"""

from .client import OpenRFCClient
from .domain import AsyncRFCDomainModel, RFCDomainModel
from .exceptions import (
    ConflictError,
    InvalidTransitionError,
    NotFoundError,
    OpenRFCError,
    PermissionDeniedError,
    TextNotFoundError,
    ValidationError,
)
from .models import (
    RFC,
    RFC_STATUS_TRANSITIONS,
    Agent,
    AgentCapabilities,
    AgentType,
    Comment,
    CommentStatus,
    CommentType,
    ReviewRequest,
    ReviewStatus,
    RFCFilters,
    RFCStatus,
    TextReference,
    TextSpan,
)
from .storage import InMemoryStorage, Storage, create_storage
from .validation import InputValidationError


def get_server():
    """Lazy import for server components (requires server extras)."""
    try:
        from .server import OpenRFCServer, ServerConfig, create_app

        return OpenRFCServer, ServerConfig, create_app
    except ImportError:
        raise ImportError(
            "Server components require the 'server' extras. "
            "Install with: pip install openrfc[server]"
        )


__version__ = "0.1.0"
__all__ = [
    "RFCDomainModel",
    "AsyncRFCDomainModel",
    "OpenRFCClient",
    "RFC",
    "RFCStatus",
    "RFC_STATUS_TRANSITIONS",
    "RFCFilters",
    "Agent",
    "AgentType",
    "AgentCapabilities",
    "Comment",
    "CommentStatus",
    "CommentType",
    "TextReference",
    "TextSpan",
    "ReviewRequest",
    "ReviewStatus",
    "Storage",
    "InMemoryStorage",
    "create_storage",
    "OpenRFCError",
    "ValidationError",
    "InputValidationError",
    "TextNotFoundError",
    "NotFoundError",
    "ConflictError",
    "InvalidTransitionError",
    "PermissionDeniedError",
    "get_server",
]
