"""
Abstract storage contracts for the four OpenRFC collections.

Services depend only on these interfaces, so the in-memory backend can be
swapped for the SQL backend (or anything else) without touching them.
Implementations must return copies: mutating a returned entity has no
effect until it is passed back through create() or update().
"""

from abc import ABC, abstractmethod
from collections import deque
from typing import Optional

from ..models import (
    RFC,
    Agent,
    Comment,
    CommentStatus,
    ReviewRequest,
    RFCFilters,
)


class RFCStorage(ABC):
    """Versioned RFC collection. getById always returns the highest version."""

    @abstractmethod
    def create(self, rfc: RFC) -> RFC:
        """Store the first version of a new RFC. Raises ConflictError if the id exists."""

    @abstractmethod
    def update(self, rfc: RFC) -> RFC:
        """Store rfc, replacing the snapshot with the same (id, version) if any."""

    @abstractmethod
    def get_by_id(self, rfc_id: str) -> Optional[RFC]: ...

    @abstractmethod
    def get_by_version(self, rfc_id: str, version: int) -> Optional[RFC]: ...

    @abstractmethod
    def list(self, filters: Optional[RFCFilters] = None) -> list[RFC]:
        """Return the current version of every RFC matching filters."""


class CommentStorage(ABC):

    @abstractmethod
    def create(self, comment: Comment) -> Comment:
        """Raises ConflictError if a comment with the same id exists."""

    @abstractmethod
    def update(self, comment: Comment) -> Comment: ...

    @abstractmethod
    def get_by_id(self, comment_id: str) -> Optional[Comment]: ...

    @abstractmethod
    def get_by_rfc(
        self, rfc_id: str, status: Optional[CommentStatus] = None
    ) -> list[Comment]:
        """Comments on an RFC in creation order, optionally filtered by status."""

    @abstractmethod
    def get_by_parent(self, parent_comment_id: str) -> list[Comment]:
        """Direct replies to a comment in creation order."""

    def get_thread(self, comment_id: str) -> list[Comment]:
        """
        Return the whole thread containing comment_id.

        Walks parent pointers up to the root, then collects descendants
        breadth-first through the parent index. A visited set guards against
        malformed parent cycles.
        """
        comment = self.get_by_id(comment_id)
        if comment is None:
            return []

        visited = {comment.id}
        root = comment
        while root.parent_comment_id and root.parent_comment_id not in visited:
            parent = self.get_by_id(root.parent_comment_id)
            if parent is None:
                break
            visited.add(parent.id)
            root = parent

        thread = [root]
        seen = {root.id}
        queue = deque([root.id])
        while queue:
            for child in self.get_by_parent(queue.popleft()):
                if child.id in seen:
                    continue
                seen.add(child.id)
                thread.append(child)
                queue.append(child.id)
        return thread


class ReviewStorage(ABC):

    @abstractmethod
    def create(self, review: ReviewRequest) -> ReviewRequest:
        """Raises ConflictError if a review request with the same id exists."""

    @abstractmethod
    def update(self, review: ReviewRequest) -> ReviewRequest: ...

    @abstractmethod
    def get_by_id(self, review_id: str) -> Optional[ReviewRequest]: ...

    @abstractmethod
    def get_by_rfc(self, rfc_id: str) -> list[ReviewRequest]:
        """All review requests for an RFC, newest first."""

    def get_active_by_rfc(self, rfc_id: str) -> Optional[ReviewRequest]:
        """The newest review request without completed_at, if any."""
        for review in self.get_by_rfc(rfc_id):
            if review.completed_at is None:
                return review
        return None


class AgentStorage(ABC):

    @abstractmethod
    def create(self, agent: Agent) -> Agent: ...

    @abstractmethod
    def get_by_id(self, agent_id: str) -> Optional[Agent]: ...

    @abstractmethod
    def list(self) -> list[Agent]: ...


class Storage(ABC):
    """Bundle of the four collections handed to every service."""

    rfcs: RFCStorage
    comments: CommentStorage
    reviews: ReviewStorage
    agents: AgentStorage

    def close(self) -> None:
        """Release any resources held by the backend. Default is a no-op."""
