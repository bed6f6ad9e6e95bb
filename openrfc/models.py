"""
OpenRFC - Data models for RFC documents, comments, reviews and agents.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional


def utcnow() -> datetime:
    """Naive UTC timestamp, the representation used throughout storage."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _parse_datetime(value: Any) -> Optional[datetime]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    return datetime.fromisoformat(value)


def _format_datetime(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


class RFCStatus(str, Enum):
    """Status of an RFC in its lifecycle."""

    DRAFT = "draft"
    IN_REVIEW = "in_review"
    APPROVED = "approved"
    REJECTED = "rejected"
    SUPERSEDED = "superseded"


class CommentStatus(str, Enum):
    """Status of a comment."""

    OPEN = "open"
    RESOLVED = "resolved"
    DISMISSED = "dismissed"


class CommentType(str, Enum):
    """Whether a comment is anchored to quoted text or to the whole document."""

    INLINE = "inline"
    DOCUMENT_LEVEL = "document_level"


class ReviewStatus(str, Enum):
    """Per-reviewer status inside a review request."""

    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class AgentType(str, Enum):
    """Role of an agent."""

    LEAD = "lead"
    FRONTEND = "frontend"
    BACKEND = "backend"
    SECURITY = "security"
    DATABASE = "database"
    DEVOPS = "devops"


# Allowed RFC status transitions. SUPERSEDED is terminal.
RFC_STATUS_TRANSITIONS: dict[RFCStatus, frozenset[RFCStatus]] = {
    RFCStatus.DRAFT: frozenset({RFCStatus.IN_REVIEW, RFCStatus.REJECTED}),
    RFCStatus.IN_REVIEW: frozenset(
        {RFCStatus.APPROVED, RFCStatus.REJECTED, RFCStatus.DRAFT}
    ),
    RFCStatus.APPROVED: frozenset({RFCStatus.SUPERSEDED}),
    RFCStatus.REJECTED: frozenset({RFCStatus.DRAFT}),
    RFCStatus.SUPERSEDED: frozenset(),
}


@dataclass
class AgentCapabilities:
    """Capability flags gating which mutations an agent may perform."""

    can_edit: bool = False
    can_comment: bool = True
    can_approve: bool = False

    @classmethod
    def for_type(cls, agent_type: AgentType) -> "AgentCapabilities":
        """Default capabilities for a role: leads get everything, others comment only."""
        if agent_type == AgentType.LEAD:
            return cls(can_edit=True, can_comment=True, can_approve=True)
        return cls(can_edit=False, can_comment=True, can_approve=False)

    def to_dict(self) -> dict[str, bool]:
        return {
            "can_edit": self.can_edit,
            "can_comment": self.can_comment,
            "can_approve": self.can_approve,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "AgentCapabilities":
        return cls(
            can_edit=bool(data.get("can_edit", False)),
            can_comment=bool(data.get("can_comment", True)),
            can_approve=bool(data.get("can_approve", False)),
        )


@dataclass
class Agent:
    """An actor that authors or reviews RFCs. Immutable once created."""

    id: str
    type: AgentType
    name: str
    capabilities: AgentCapabilities
    created_at: datetime

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type.value,
            "name": self.name,
            "capabilities": self.capabilities.to_dict(),
            "created_at": _format_datetime(self.created_at),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Agent":
        return cls(
            id=data["id"],
            type=AgentType(data["type"]),
            name=data["name"],
            capabilities=AgentCapabilities.from_dict(data.get("capabilities", {})),
            created_at=_parse_datetime(data.get("created_at")) or utcnow(),
        )


@dataclass
class RFC:
    """
    One version of an RFC document.

    The id is stable across versions; each content change is stored as a new
    RFC object with version incremented by one.
    """

    id: str
    version: int
    status: RFCStatus
    title: str
    content: str
    author: str
    requesting_user: str
    created_at: datetime
    updated_at: datetime
    previous_version_id: Optional[str] = None

    @property
    def is_terminal(self) -> bool:
        return not RFC_STATUS_TRANSITIONS[self.status]

    def can_transition_to(self, status: RFCStatus) -> bool:
        return status in RFC_STATUS_TRANSITIONS[self.status]

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "version": self.version,
            "status": self.status.value,
            "title": self.title,
            "content": self.content,
            "author": self.author,
            "requesting_user": self.requesting_user,
            "created_at": _format_datetime(self.created_at),
            "updated_at": _format_datetime(self.updated_at),
            "previous_version_id": self.previous_version_id,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "RFC":
        return cls(
            id=data["id"],
            version=data.get("version", 1),
            status=RFCStatus(data.get("status", "draft")),
            title=data["title"],
            content=data["content"],
            author=data["author"],
            requesting_user=data["requesting_user"],
            created_at=_parse_datetime(data.get("created_at")) or utcnow(),
            updated_at=_parse_datetime(data.get("updated_at")) or utcnow(),
            previous_version_id=data.get("previous_version_id"),
        )


@dataclass
class TextSpan:
    """Character span within an RFC's content, end exclusive."""

    start: int
    end: int

    def to_dict(self) -> dict[str, int]:
        return {"start": self.start, "end": self.end}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "TextSpan":
        return cls(start=int(data["start"]), end=int(data["end"]))


@dataclass
class TextReference:
    """Anchor of an inline comment: the exact quoted text plus optional position."""

    quoted_text: str
    line_number: Optional[int] = None
    text_span: Optional[TextSpan] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "quoted_text": self.quoted_text,
            "line_number": self.line_number,
            "text_span": self.text_span.to_dict() if self.text_span else None,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "TextReference":
        span = data.get("text_span")
        return cls(
            quoted_text=data["quoted_text"],
            line_number=data.get("line_number"),
            text_span=TextSpan.from_dict(span) if span else None,
        )


@dataclass
class Comment:
    """Feedback on an RFC, either inline (anchored) or document-level."""

    id: str
    rfc_id: str
    rfc_version: int
    agent_id: str
    agent_type: AgentType
    type: CommentType
    content: str
    status: CommentStatus = CommentStatus.OPEN
    text_reference: Optional[TextReference] = None
    parent_comment_id: Optional[str] = None
    created_at: datetime = field(default_factory=utcnow)
    resolved_at: Optional[datetime] = None
    resolved_by: Optional[str] = None
    dismissed_at: Optional[datetime] = None
    dismissed_by: Optional[str] = None

    @property
    def is_open(self) -> bool:
        return self.status == CommentStatus.OPEN

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "rfc_id": self.rfc_id,
            "rfc_version": self.rfc_version,
            "agent_id": self.agent_id,
            "agent_type": self.agent_type.value,
            "type": self.type.value,
            "content": self.content,
            "status": self.status.value,
            "text_reference": (
                self.text_reference.to_dict() if self.text_reference else None
            ),
            "parent_comment_id": self.parent_comment_id,
            "created_at": _format_datetime(self.created_at),
            "resolved_at": _format_datetime(self.resolved_at),
            "resolved_by": self.resolved_by,
            "dismissed_at": _format_datetime(self.dismissed_at),
            "dismissed_by": self.dismissed_by,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Comment":
        ref = data.get("text_reference")
        return cls(
            id=data["id"],
            rfc_id=data["rfc_id"],
            rfc_version=data.get("rfc_version", 1),
            agent_id=data["agent_id"],
            agent_type=AgentType(data["agent_type"]),
            type=CommentType(data.get("type", "document_level")),
            content=data["content"],
            status=CommentStatus(data.get("status", "open")),
            text_reference=TextReference.from_dict(ref) if ref else None,
            parent_comment_id=data.get("parent_comment_id"),
            created_at=_parse_datetime(data.get("created_at")) or utcnow(),
            resolved_at=_parse_datetime(data.get("resolved_at")),
            resolved_by=data.get("resolved_by"),
            dismissed_at=_parse_datetime(data.get("dismissed_at")),
            dismissed_by=data.get("dismissed_by"),
        )


@dataclass
class ReviewRequest:
    """
    One round of multi-reviewer feedback on a specific RFC version.

    The round is complete when every listed reviewer has status COMPLETED;
    completed_at is stamped once at that moment.
    """

    id: str
    rfc_id: str
    rfc_version: int
    requested_by: str
    reviewer_agent_ids: list[str]
    review_statuses: dict[str, ReviewStatus]
    created_at: datetime
    deadline: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    @property
    def is_complete(self) -> bool:
        return self.completed_at is not None

    @property
    def all_reviewers_completed(self) -> bool:
        return all(
            status == ReviewStatus.COMPLETED for status in self.review_statuses.values()
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "rfc_id": self.rfc_id,
            "rfc_version": self.rfc_version,
            "requested_by": self.requested_by,
            "reviewer_agent_ids": list(self.reviewer_agent_ids),
            "review_statuses": {k: v.value for k, v in self.review_statuses.items()},
            "created_at": _format_datetime(self.created_at),
            "deadline": _format_datetime(self.deadline),
            "completed_at": _format_datetime(self.completed_at),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ReviewRequest":
        return cls(
            id=data["id"],
            rfc_id=data["rfc_id"],
            rfc_version=data.get("rfc_version", 1),
            requested_by=data["requested_by"],
            reviewer_agent_ids=list(data.get("reviewer_agent_ids", [])),
            review_statuses={
                k: ReviewStatus(v) for k, v in data.get("review_statuses", {}).items()
            },
            created_at=_parse_datetime(data.get("created_at")) or utcnow(),
            deadline=_parse_datetime(data.get("deadline")),
            completed_at=_parse_datetime(data.get("completed_at")),
        )


# ==================== Operation parameters ====================


@dataclass
class RFCFilters:
    """AND-combined filters for listing current RFC versions."""

    status: Optional[RFCStatus] = None
    author: Optional[str] = None
    requesting_user: Optional[str] = None
    created_after: Optional[datetime] = None
    created_before: Optional[datetime] = None

    def matches(self, rfc: RFC) -> bool:
        if self.status is not None and rfc.status != self.status:
            return False
        if self.author and rfc.author != self.author:
            return False
        if self.requesting_user and rfc.requesting_user != self.requesting_user:
            return False
        if self.created_after and rfc.created_at < self.created_after:
            return False
        if self.created_before and rfc.created_at > self.created_before:
            return False
        return True


@dataclass
class CreateRFCParams:
    title: str
    content: str
    author: str
    requesting_user: str


@dataclass
class ReplaceStringParams:
    rfc_id: str
    old_text: str
    new_text: str
    replace_all: bool = False


@dataclass
class AddCommentParams:
    rfc_id: str
    agent_id: str
    agent_type: AgentType
    comment_type: CommentType
    content: str
    quoted_text: Optional[str] = None
    line_reference: Optional[int] = None
    text_span: Optional[TextSpan] = None


@dataclass
class ReplyToCommentParams:
    parent_comment_id: str
    agent_id: str
    agent_type: AgentType
    content: str


@dataclass
class RequestReviewParams:
    rfc_id: str
    requested_by: str
    reviewer_agent_ids: list[str]
    deadline: Optional[datetime] = None


@dataclass
class SubmitReviewParams:
    review_request_id: str
    agent_id: str
    comments: list[Comment] = field(default_factory=list)
