"""
OpenRFC - Input validation helpers.

Boundary checks applied to operation parameters before any storage access.
Every helper raises InputValidationError, which is a ValidationError.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional, TypeVar

from .exceptions import ValidationError as BaseValidationError
from .models import (
    AddCommentParams,
    CreateRFCParams,
    ReplaceStringParams,
    ReplyToCommentParams,
    RequestReviewParams,
    SubmitReviewParams,
    TextSpan,
    utcnow,
)

E = TypeVar("E", bound=Enum)


class InputValidationError(BaseValidationError):
    """Raised when an operation parameter fails validation."""

    def __init__(self, message: str, field: str = None, value: Any = None):
        super().__init__(message)
        self.field = field
        self.value = value


ValidationError = InputValidationError


def validate_required(value: Any, field_name: str) -> None:
    """Validate that a required field is not None or empty."""
    if value is None:
        raise ValidationError(f"{field_name} is required", field=field_name)
    if isinstance(value, str) and not value.strip():
        raise ValidationError(f"{field_name} cannot be empty", field=field_name, value=value)


def validate_string_length(
    value: str,
    field_name: str,
    min_length: int = None,
    max_length: int = None
) -> None:
    """Validate string length constraints."""
    if value is None:
        return

    if min_length is not None and len(value) < min_length:
        raise ValidationError(
            f"{field_name} must be at least {min_length} characters",
            field=field_name,
            value=value
        )

    if max_length is not None and len(value) > max_length:
        raise ValidationError(
            f"{field_name} must be at most {max_length} characters",
            field=field_name,
            value=value
        )


def validate_positive_int(value: int, field_name: str) -> None:
    """Validate that a number is a positive integer."""
    if value is None:
        return

    if not isinstance(value, int) or isinstance(value, bool):
        raise ValidationError(
            f"{field_name} must be an integer",
            field=field_name,
            value=value
        )

    if value <= 0:
        raise ValidationError(
            f"{field_name} must be positive",
            field=field_name,
            value=value
        )


def validate_list(value: Any, field_name: str, item_type: type = None) -> None:
    """Validate that a value is a list with optional item type checking."""
    if value is None:
        return

    if not isinstance(value, (list, tuple)):
        raise ValidationError(
            f"{field_name} must be a list",
            field=field_name,
            value=value
        )

    if item_type is not None:
        for i, item in enumerate(value):
            if not isinstance(item, item_type):
                raise ValidationError(
                    f"{field_name}[{i}] must be of type {item_type.__name__}",
                    field=f"{field_name}[{i}]",
                    value=item
                )


def coerce_enum(value: Any, enum_type: type[E], field_name: str) -> E:
    """Convert a raw value to a member of enum_type."""
    validate_required(value, field_name)
    if isinstance(value, enum_type):
        return value
    try:
        return enum_type(value)
    except ValueError:
        allowed = ", ".join(member.value for member in enum_type)
        raise ValidationError(
            f"{field_name} must be one of: {allowed}",
            field=field_name,
            value=value
        ) from None


def normalize_datetime(value: Optional[datetime], field_name: str) -> Optional[datetime]:
    """Return value as a naive UTC datetime; aware datetimes are converted."""
    if value is None:
        return None
    if not isinstance(value, datetime):
        raise ValidationError(
            f"{field_name} must be a datetime",
            field=field_name,
            value=value
        )
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def validate_text_span(span: Optional[TextSpan], field_name: str = "text_span") -> None:
    if span is None:
        return
    if span.start < 0 or span.end < span.start:
        raise ValidationError(
            f"{field_name} must satisfy 0 <= start <= end (got {span.start}..{span.end})",
            field=field_name,
            value=span
        )


def validate_rfc_create(params: CreateRFCParams) -> None:
    """Validate parameters for RFC creation."""
    validate_required(params.title, "title")
    validate_string_length(params.title, "title", max_length=500)
    validate_required(params.content, "content")
    validate_required(params.author, "author")
    validate_required(params.requesting_user, "requesting_user")


def validate_replace_string(params: ReplaceStringParams) -> None:
    validate_required(params.rfc_id, "rfc_id")
    if not params.old_text:
        raise ValidationError("old_text cannot be empty", field="old_text", value=params.old_text)
    if params.new_text is None:
        raise ValidationError("new_text is required", field="new_text")


def validate_add_comment(params: AddCommentParams) -> None:
    """Validate parameters for adding a comment."""
    validate_required(params.rfc_id, "rfc_id")
    validate_required(params.agent_id, "agent_id")
    validate_required(params.content, "content")
    validate_required(params.comment_type, "comment_type")
    validate_positive_int(params.line_reference, "line_reference")
    validate_text_span(params.text_span)


def validate_reply(params: ReplyToCommentParams) -> None:
    validate_required(params.parent_comment_id, "parent_comment_id")
    validate_required(params.agent_id, "agent_id")
    validate_required(params.content, "content")


def validate_review_request(params: RequestReviewParams) -> None:
    """Validate parameters for requesting a review round."""
    validate_required(params.rfc_id, "rfc_id")
    validate_required(params.requested_by, "requested_by")
    validate_list(params.reviewer_agent_ids, "reviewer_agent_ids", str)
    if not params.reviewer_agent_ids:
        raise ValidationError(
            "At least one reviewer is required",
            field="reviewer_agent_ids",
            value=params.reviewer_agent_ids
        )
    for reviewer_id in params.reviewer_agent_ids:
        validate_required(reviewer_id, "reviewer_agent_ids")
    if params.deadline is not None and params.deadline <= utcnow():
        raise ValidationError(
            f"Review deadline must be in the future (got {params.deadline.isoformat()})",
            field="deadline",
            value=params.deadline
        )


def validate_review_submit(params: SubmitReviewParams) -> None:
    validate_required(params.review_request_id, "review_request_id")
    validate_required(params.agent_id, "agent_id")
    if params.comments is None:
        raise ValidationError("comments is required", field="comments")
    validate_list(params.comments, "comments")
