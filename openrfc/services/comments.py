"""
Comment service: inline and document-level comments, threaded replies,
resolve/dismiss transitions.
"""

import logging
import uuid
from dataclasses import replace
from typing import Optional

from ..exceptions import (
    ConflictError,
    NotFoundError,
    PermissionDeniedError,
    TextNotFoundError,
)
from ..models import (
    AddCommentParams,
    Agent,
    AgentType,
    Comment,
    CommentStatus,
    CommentType,
    ReplyToCommentParams,
    TextReference,
    utcnow,
)
from ..storage.base import Storage
from ..validation import (
    ValidationError,
    coerce_enum,
    validate_add_comment,
    validate_reply,
    validate_required,
)
from .locks import KeyedLock

logger = logging.getLogger("openrfc.services.comments")


def require_agent(storage: Storage, agent_id: str) -> Agent:
    agent = storage.agents.get_by_id(agent_id)
    if agent is None:
        raise NotFoundError(
            f"Agent with id {agent_id} not found", resource="agent", resource_id=agent_id
        )
    return agent


def require_commenter(storage: Storage, agent_id: str, action: str = "comment") -> Agent:
    """Look up agent_id and check it may comment."""
    agent = require_agent(storage, agent_id)
    if not agent.capabilities.can_comment:
        raise PermissionDeniedError(
            f"Agent {agent_id} does not have permission to {action}",
            agent_id=agent_id,
            capability="can_comment",
        )
    return agent


class CommentService:
    def __init__(self, storage: Storage, locks: Optional[KeyedLock] = None):
        self.storage = storage
        self.locks = locks or KeyedLock()

    def add_comment(self, params: AddCommentParams) -> Comment:
        """
        Create a comment against the current version of an RFC.

        Inline comments must quote text that occurs verbatim in the current
        content; the quote is recorded as the comment's text reference.
        """
        validate_add_comment(params)
        comment_type = coerce_enum(params.comment_type, CommentType, "comment_type")
        agent_type = coerce_enum(params.agent_type, AgentType, "agent_type")

        rfc = self.storage.rfcs.get_by_id(params.rfc_id)
        if rfc is None:
            raise NotFoundError(
                f"RFC with id {params.rfc_id} not found",
                resource="rfc",
                resource_id=params.rfc_id,
            )
        require_commenter(self.storage, params.agent_id)

        text_reference = None
        if comment_type == CommentType.INLINE:
            if not params.quoted_text:
                raise ValidationError(
                    "quoted_text is required for inline comments", field="quoted_text"
                )
            if params.quoted_text not in rfc.content:
                raise TextNotFoundError(
                    f'Quoted text "{params.quoted_text}" not found in RFC {rfc.id} '
                    f"content (version {rfc.version})",
                    rfc_id=rfc.id,
                    text=params.quoted_text,
                )
            text_reference = TextReference(
                quoted_text=params.quoted_text,
                line_number=params.line_reference,
                text_span=params.text_span,
            )

        comment = Comment(
            id=str(uuid.uuid4()),
            rfc_id=rfc.id,
            rfc_version=rfc.version,
            agent_id=params.agent_id,
            agent_type=agent_type,
            type=comment_type,
            content=params.content,
            status=CommentStatus.OPEN,
            text_reference=text_reference,
            created_at=utcnow(),
        )
        created = self.storage.comments.create(comment)
        logger.debug(
            "Agent %s added %s comment %s on RFC %s v%d",
            created.agent_id,
            created.type.value,
            created.id,
            created.rfc_id,
            created.rfc_version,
        )
        return created

    def reply_to_comment(self, params: ReplyToCommentParams) -> Comment:
        """
        Reply to an existing comment.

        Replies are always document-level and inherit the parent's rfc_id and
        rfc_version; they are not checked against the RFC's current content.
        """
        validate_reply(params)
        agent_type = coerce_enum(params.agent_type, AgentType, "agent_type")

        parent = self.storage.comments.get_by_id(params.parent_comment_id)
        if parent is None:
            raise NotFoundError(
                f"Parent comment with id {params.parent_comment_id} not found",
                resource="comment",
                resource_id=params.parent_comment_id,
            )
        require_commenter(self.storage, params.agent_id)

        reply = Comment(
            id=str(uuid.uuid4()),
            rfc_id=parent.rfc_id,
            rfc_version=parent.rfc_version,
            agent_id=params.agent_id,
            agent_type=agent_type,
            type=CommentType.DOCUMENT_LEVEL,
            content=params.content,
            status=CommentStatus.OPEN,
            parent_comment_id=parent.id,
            created_at=utcnow(),
        )
        created = self.storage.comments.create(reply)
        logger.debug("Agent %s replied %s to comment %s", created.agent_id, created.id, parent.id)
        return created

    def _close(self, comment_id: str, actor_id: str, status: CommentStatus) -> Comment:
        validate_required(comment_id, "comment_id")
        validate_required(actor_id, "agent_id")
        with self.locks.hold(("comment", comment_id)):
            comment = self.storage.comments.get_by_id(comment_id)
            if comment is None:
                raise NotFoundError(
                    f"Comment with id {comment_id} not found",
                    resource="comment",
                    resource_id=comment_id,
                )
            if comment.status != CommentStatus.OPEN:
                raise ConflictError(
                    f"Comment {comment_id} is already {comment.status.value}"
                )
            require_agent(self.storage, actor_id)

            now = utcnow()
            if status == CommentStatus.RESOLVED:
                closed = replace(comment, status=status, resolved_at=now, resolved_by=actor_id)
            else:
                closed = replace(comment, status=status, dismissed_at=now, dismissed_by=actor_id)
            updated = self.storage.comments.update(closed)
        logger.debug("Comment %s %s by %s", comment_id, status.value, actor_id)
        return updated

    def resolve_comment(self, comment_id: str, resolver_id: str) -> Comment:
        return self._close(comment_id, resolver_id, CommentStatus.RESOLVED)

    def dismiss_comment(self, comment_id: str, dismisser_id: str) -> Comment:
        return self._close(comment_id, dismisser_id, CommentStatus.DISMISSED)

    def get_comments_for_rfc(
        self, rfc_id: str, status: Optional[CommentStatus] = None
    ) -> list[Comment]:
        if status is not None:
            status = coerce_enum(status, CommentStatus, "status")
        return self.storage.comments.get_by_rfc(rfc_id, status)

    def get_comment_thread(self, comment_id: str) -> list[Comment]:
        if self.storage.comments.get_by_id(comment_id) is None:
            raise NotFoundError(
                f"Comment with id {comment_id} not found",
                resource="comment",
                resource_id=comment_id,
            )
        return self.storage.comments.get_thread(comment_id)
