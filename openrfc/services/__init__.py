"""
OpenRFC services. Each service owns the invariants of one entity type and
reads the other collections only to validate references.
"""

from .agents import AgentService
from .comments import CommentService
from .documents import DocumentService
from .locks import KeyedLock
from .reviews import ReviewService

__all__ = [
    "AgentService",
    "CommentService",
    "DocumentService",
    "KeyedLock",
    "ReviewService",
]
