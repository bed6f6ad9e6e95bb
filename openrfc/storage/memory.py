"""
In-memory storage backend, the default for RFCDomainModel.

Each collection guards its maps with a lock so concurrent readers never see
a half-written index. Entities are deep-copied on the way in and out.
"""

import copy
import threading
from typing import Optional

from ..exceptions import ConflictError
from ..models import (
    RFC,
    Agent,
    Comment,
    CommentStatus,
    ReviewRequest,
    RFCFilters,
)
from .base import AgentStorage, CommentStorage, RFCStorage, ReviewStorage, Storage


class InMemoryRFCStorage(RFCStorage):
    def __init__(self) -> None:
        self._versions: dict[str, dict[int, RFC]] = {}
        self._latest: dict[str, RFC] = {}
        self._lock = threading.Lock()

    def create(self, rfc: RFC) -> RFC:
        stored = copy.deepcopy(rfc)
        with self._lock:
            if stored.id in self._versions:
                raise ConflictError(f"RFC with id {stored.id} already exists")
            self._versions[stored.id] = {stored.version: stored}
            self._latest[stored.id] = stored
        return copy.deepcopy(stored)

    def update(self, rfc: RFC) -> RFC:
        stored = copy.deepcopy(rfc)
        with self._lock:
            versions = self._versions.setdefault(stored.id, {})
            versions[stored.version] = stored
            self._latest[stored.id] = versions[max(versions)]
        return copy.deepcopy(stored)

    def get_by_id(self, rfc_id: str) -> Optional[RFC]:
        with self._lock:
            rfc = self._latest.get(rfc_id)
            return copy.deepcopy(rfc) if rfc else None

    def get_by_version(self, rfc_id: str, version: int) -> Optional[RFC]:
        with self._lock:
            rfc = self._versions.get(rfc_id, {}).get(version)
            return copy.deepcopy(rfc) if rfc else None

    def list(self, filters: Optional[RFCFilters] = None) -> list[RFC]:
        with self._lock:
            rfcs = list(self._latest.values())
        if filters is not None:
            rfcs = [rfc for rfc in rfcs if filters.matches(rfc)]
        return [copy.deepcopy(rfc) for rfc in rfcs]


class InMemoryCommentStorage(CommentStorage):
    def __init__(self) -> None:
        self._comments: dict[str, Comment] = {}
        self._by_rfc: dict[str, list[str]] = {}
        # parent id -> child ids, built at write time
        self._children: dict[str, list[str]] = {}
        self._lock = threading.Lock()

    def create(self, comment: Comment) -> Comment:
        stored = copy.deepcopy(comment)
        with self._lock:
            if stored.id in self._comments:
                raise ConflictError(f"Comment with id {stored.id} already exists")
            self._comments[stored.id] = stored
            self._by_rfc.setdefault(stored.rfc_id, []).append(stored.id)
            if stored.parent_comment_id:
                self._children.setdefault(stored.parent_comment_id, []).append(stored.id)
        return copy.deepcopy(stored)

    def update(self, comment: Comment) -> Comment:
        stored = copy.deepcopy(comment)
        with self._lock:
            self._comments[stored.id] = stored
        return copy.deepcopy(stored)

    def get_by_id(self, comment_id: str) -> Optional[Comment]:
        with self._lock:
            comment = self._comments.get(comment_id)
            return copy.deepcopy(comment) if comment else None

    def _collect(self, ids: list[str]) -> list[Comment]:
        with self._lock:
            comments = [self._comments[i] for i in ids if i in self._comments]
            result = [copy.deepcopy(c) for c in comments]
        # sorted() is stable, so equal timestamps keep insertion order
        return sorted(result, key=lambda c: c.created_at)

    def get_by_rfc(
        self, rfc_id: str, status: Optional[CommentStatus] = None
    ) -> list[Comment]:
        with self._lock:
            ids = list(self._by_rfc.get(rfc_id, []))
        comments = self._collect(ids)
        if status is not None:
            comments = [c for c in comments if c.status == status]
        return comments

    def get_by_parent(self, parent_comment_id: str) -> list[Comment]:
        with self._lock:
            ids = list(self._children.get(parent_comment_id, []))
        return self._collect(ids)


class InMemoryReviewStorage(ReviewStorage):
    def __init__(self) -> None:
        self._reviews: dict[str, ReviewRequest] = {}
        self._by_rfc: dict[str, list[str]] = {}
        self._lock = threading.Lock()

    def create(self, review: ReviewRequest) -> ReviewRequest:
        stored = copy.deepcopy(review)
        with self._lock:
            if stored.id in self._reviews:
                raise ConflictError(f"Review request with id {stored.id} already exists")
            self._by_rfc.setdefault(stored.rfc_id, []).append(stored.id)
            self._reviews[stored.id] = stored
        return copy.deepcopy(stored)

    def update(self, review: ReviewRequest) -> ReviewRequest:
        stored = copy.deepcopy(review)
        with self._lock:
            self._reviews[stored.id] = stored
        return copy.deepcopy(stored)

    def get_by_id(self, review_id: str) -> Optional[ReviewRequest]:
        with self._lock:
            review = self._reviews.get(review_id)
            return copy.deepcopy(review) if review else None

    def get_by_rfc(self, rfc_id: str) -> list[ReviewRequest]:
        with self._lock:
            newest_first = [
                copy.deepcopy(self._reviews[i])
                for i in reversed(self._by_rfc.get(rfc_id, []))
            ]
        return sorted(newest_first, key=lambda r: r.created_at, reverse=True)


class InMemoryAgentStorage(AgentStorage):
    def __init__(self) -> None:
        self._agents: dict[str, Agent] = {}
        self._lock = threading.Lock()

    def create(self, agent: Agent) -> Agent:
        stored = copy.deepcopy(agent)
        with self._lock:
            if stored.id in self._agents:
                raise ConflictError(f"Agent with id {stored.id} already exists")
            self._agents[stored.id] = stored
        return copy.deepcopy(stored)

    def get_by_id(self, agent_id: str) -> Optional[Agent]:
        with self._lock:
            agent = self._agents.get(agent_id)
            return copy.deepcopy(agent) if agent else None

    def list(self) -> list[Agent]:
        with self._lock:
            return [copy.deepcopy(a) for a in self._agents.values()]


class InMemoryStorage(Storage):
    """Process-local storage. Nothing survives the process."""

    def __init__(self) -> None:
        self.rfcs = InMemoryRFCStorage()
        self.comments = InMemoryCommentStorage()
        self.reviews = InMemoryReviewStorage()
        self.agents = InMemoryAgentStorage()
