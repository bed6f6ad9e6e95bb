"""
OpenRFC - Domain facade.

RFCDomainModel is the single entry point used by every caller (HTTP server,
agent tools, tests). AsyncRFCDomainModel exposes the same operations as
coroutines for callers running inside an event loop.

Example:
    ```python
    from openrfc import AgentType, CommentType, RFCDomainModel

    model = RFCDomainModel()
    lead = model.create_agent(AgentType.LEAD, "Lead")
    rfc = model.create_rfc("Auth RFC", "Use JWT tokens", lead.id, "u1")
    model.add_comment(
        rfc_id=rfc.id,
        agent_id=lead.id,
        agent_type=lead.type,
        comment_type=CommentType.INLINE,
        content="Which algorithm?",
        quoted_text="JWT",
    )
    ```
"""

import asyncio
import functools
from datetime import datetime
from typing import Any, Callable, Optional

from .models import (
    RFC,
    AddCommentParams,
    Agent,
    AgentType,
    Comment,
    CommentStatus,
    CommentType,
    CreateRFCParams,
    ReplaceStringParams,
    ReplyToCommentParams,
    RequestReviewParams,
    ReviewRequest,
    ReviewStatus,
    RFCFilters,
    RFCStatus,
    SubmitReviewParams,
    TextSpan,
)
from .services import (
    AgentService,
    CommentService,
    DocumentService,
    KeyedLock,
    ReviewService,
)
from .storage import Storage, create_storage
from .validation import coerce_enum, normalize_datetime


class RFCDomainModel:
    """
    Synchronous facade composing the agent, document, comment and review
    services over one storage backend.

    Args:
        storage: Storage backend. Defaults to a fresh in-memory store.
    """

    def __init__(self, storage: Optional[Storage] = None):
        self.storage = storage if storage is not None else create_storage()
        locks = KeyedLock()
        self._agents = AgentService(self.storage)
        self._documents = DocumentService(self.storage, locks)
        self._comments = CommentService(self.storage, locks)
        self._reviews = ReviewService(self.storage, locks)

    def close(self) -> None:
        self.storage.close()

    # ==================== Agents ====================

    def create_agent(
        self,
        agent_type: AgentType,
        name: str,
        capabilities: Optional[dict[str, bool]] = None,
        agent_id: Optional[str] = None,
    ) -> Agent:
        return self._agents.create_agent(agent_type, name, capabilities, agent_id)

    def get_agent(self, agent_id: str) -> Optional[Agent]:
        return self._agents.get_agent(agent_id)

    def list_agents(self) -> list[Agent]:
        return self._agents.list_agents()

    # ==================== RFC documents ====================

    def create_rfc(
        self, title: str, content: str, author: str, requesting_user: str
    ) -> RFC:
        return self._documents.create_rfc(
            CreateRFCParams(
                title=title,
                content=content,
                author=author,
                requesting_user=requesting_user,
            )
        )

    def update_rfc_content(
        self, rfc_id: str, content: str, expected_version: Optional[int] = None
    ) -> RFC:
        return self._documents.update_content(rfc_id, content, expected_version)

    def update_rfc_status(self, rfc_id: str, status: RFCStatus) -> RFC:
        return self._documents.update_status(rfc_id, status)

    def replace_string(
        self, rfc_id: str, old_text: str, new_text: str, replace_all: bool = False
    ) -> RFC:
        return self._documents.replace_string(
            ReplaceStringParams(
                rfc_id=rfc_id,
                old_text=old_text,
                new_text=new_text,
                replace_all=replace_all,
            )
        )

    def validate_string_exists(self, rfc_id: str, text: str) -> bool:
        return self._documents.validate_string_exists(rfc_id, text)

    def count_occurrences(self, rfc_id: str, text: str) -> int:
        return self._documents.count_occurrences(rfc_id, text)

    def get_rfc(self, rfc_id: str) -> Optional[RFC]:
        return self._documents.get_rfc(rfc_id)

    def get_rfc_version(self, rfc_id: str, version: int) -> Optional[RFC]:
        return self._documents.get_rfc_version(rfc_id, version)

    def list_rfcs(
        self,
        filters: Optional[RFCFilters] = None,
        *,
        status: Optional[RFCStatus] = None,
        author: Optional[str] = None,
        requesting_user: Optional[str] = None,
        created_after: Optional[datetime] = None,
        created_before: Optional[datetime] = None,
    ) -> list[RFC]:
        """List current RFC versions. Pass an RFCFilters or the same fields as keywords."""
        if filters is None:
            filters = RFCFilters(
                status=coerce_enum(status, RFCStatus, "status") if status else None,
                author=author,
                requesting_user=requesting_user,
                created_after=normalize_datetime(created_after, "created_after"),
                created_before=normalize_datetime(created_before, "created_before"),
            )
        return self._documents.list_rfcs(filters)

    # ==================== Comments ====================

    def add_comment(
        self,
        rfc_id: str,
        agent_id: str,
        agent_type: AgentType,
        comment_type: CommentType,
        content: str,
        quoted_text: Optional[str] = None,
        line_reference: Optional[int] = None,
        text_span: Optional[TextSpan] = None,
    ) -> Comment:
        return self._comments.add_comment(
            AddCommentParams(
                rfc_id=rfc_id,
                agent_id=agent_id,
                agent_type=agent_type,
                comment_type=comment_type,
                content=content,
                quoted_text=quoted_text,
                line_reference=line_reference,
                text_span=text_span,
            )
        )

    def reply_to_comment(
        self,
        parent_comment_id: str,
        agent_id: str,
        agent_type: AgentType,
        content: str,
    ) -> Comment:
        return self._comments.reply_to_comment(
            ReplyToCommentParams(
                parent_comment_id=parent_comment_id,
                agent_id=agent_id,
                agent_type=agent_type,
                content=content,
            )
        )

    def resolve_comment(self, comment_id: str, resolver_id: str) -> Comment:
        return self._comments.resolve_comment(comment_id, resolver_id)

    def dismiss_comment(self, comment_id: str, dismisser_id: str) -> Comment:
        return self._comments.dismiss_comment(comment_id, dismisser_id)

    def get_comments_for_rfc(
        self, rfc_id: str, status: Optional[CommentStatus] = None
    ) -> list[Comment]:
        return self._comments.get_comments_for_rfc(rfc_id, status)

    def get_comment_thread(self, comment_id: str) -> list[Comment]:
        return self._comments.get_comment_thread(comment_id)

    # ==================== Reviews ====================

    def request_review(
        self,
        rfc_id: str,
        requested_by: str,
        reviewer_agent_ids: list[str],
        deadline: Optional[datetime] = None,
    ) -> ReviewRequest:
        return self._reviews.request_review(
            RequestReviewParams(
                rfc_id=rfc_id,
                requested_by=requested_by,
                reviewer_agent_ids=reviewer_agent_ids,
                deadline=deadline,
            )
        )

    def submit_review(
        self,
        review_request_id: str,
        agent_id: str,
        comments: Optional[list[Comment]] = None,
    ) -> ReviewRequest:
        return self._reviews.submit_review(
            SubmitReviewParams(
                review_request_id=review_request_id,
                agent_id=agent_id,
                comments=comments if comments is not None else [],
            )
        )

    def get_review_status(self, review_request_id: str) -> dict[str, ReviewStatus]:
        return self._reviews.get_review_status(review_request_id)

    def is_review_complete(self, review_request_id: str) -> bool:
        return self._reviews.is_review_complete(review_request_id)

    def mark_review_in_progress(self, review_request_id: str, agent_id: str) -> ReviewRequest:
        return self._reviews.mark_review_in_progress(review_request_id, agent_id)

    def get_active_review_for_rfc(self, rfc_id: str) -> Optional[ReviewRequest]:
        return self._reviews.get_active_review_for_rfc(rfc_id)

    def get_all_reviews_for_rfc(self, rfc_id: str) -> list[ReviewRequest]:
        return self._reviews.get_all_reviews_for_rfc(rfc_id)

    def add_reviewers_to_active_review(
        self, rfc_id: str, reviewer_ids: list[str]
    ) -> ReviewRequest:
        return self._reviews.add_reviewers_to_active_review(rfc_id, reviewer_ids)


def _delegate(name: str) -> Callable[..., Any]:
    @functools.wraps(getattr(RFCDomainModel, name))
    async def method(self: "AsyncRFCDomainModel", *args: Any, **kwargs: Any) -> Any:
        return await asyncio.to_thread(getattr(self.sync, name), *args, **kwargs)

    return method


class AsyncRFCDomainModel:
    """
    Awaitable twin of RFCDomainModel.

    Each call runs the synchronous operation in a worker thread, so the
    per-RFC and per-review locks still serialize concurrent mutations.

    Example:
        ```python
        model = AsyncRFCDomainModel()
        rfc = await model.create_rfc("Title", "Body", "author", "user")
        ```
    """

    def __init__(
        self,
        storage: Optional[Storage] = None,
        sync_model: Optional[RFCDomainModel] = None,
    ):
        self.sync = sync_model or RFCDomainModel(storage)

    @property
    def storage(self) -> Storage:
        return self.sync.storage

    def close(self) -> None:
        self.sync.close()


for _name in (
    "create_agent",
    "get_agent",
    "list_agents",
    "create_rfc",
    "update_rfc_content",
    "update_rfc_status",
    "replace_string",
    "validate_string_exists",
    "count_occurrences",
    "get_rfc",
    "get_rfc_version",
    "list_rfcs",
    "add_comment",
    "reply_to_comment",
    "resolve_comment",
    "dismiss_comment",
    "get_comments_for_rfc",
    "get_comment_thread",
    "request_review",
    "submit_review",
    "get_review_status",
    "is_review_complete",
    "mark_review_in_progress",
    "get_active_review_for_rfc",
    "get_all_reviews_for_rfc",
    "add_reviewers_to_active_review",
):
    setattr(AsyncRFCDomainModel, _name, _delegate(_name))
del _name
