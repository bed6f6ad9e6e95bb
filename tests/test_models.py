"""
Tests for OpenRFC data models.
"""

from datetime import datetime

from openrfc.models import (
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
    utcnow,
)


def make_rfc(**overrides) -> RFC:
    now = datetime(2024, 1, 1, 12, 0, 0)
    fields = dict(
        id="rfc-1",
        version=1,
        status=RFCStatus.DRAFT,
        title="Title",
        content="Body",
        author="lead-1",
        requesting_user="user-1",
        created_at=now,
        updated_at=now,
    )
    fields.update(overrides)
    return RFC(**fields)


class TestEnums:
    def test_rfc_status_values(self):
        assert RFCStatus.DRAFT.value == "draft"
        assert RFCStatus.IN_REVIEW.value == "in_review"
        assert RFCStatus.SUPERSEDED.value == "superseded"

    def test_string_enums_compare_to_str(self):
        assert CommentType.DOCUMENT_LEVEL == "document_level"
        assert ReviewStatus.IN_PROGRESS == "in_progress"
        assert AgentType.DEVOPS == "devops"


class TestTransitionTable:
    def test_superseded_is_terminal(self):
        assert RFC_STATUS_TRANSITIONS[RFCStatus.SUPERSEDED] == frozenset()
        assert make_rfc(status=RFCStatus.SUPERSEDED).is_terminal

    def test_draft_is_not_terminal(self):
        assert not make_rfc().is_terminal

    def test_can_transition_to(self):
        rfc = make_rfc(status=RFCStatus.IN_REVIEW)
        assert rfc.can_transition_to(RFCStatus.APPROVED)
        assert rfc.can_transition_to(RFCStatus.DRAFT)
        assert not rfc.can_transition_to(RFCStatus.SUPERSEDED)

    def test_every_status_has_an_entry(self):
        assert set(RFC_STATUS_TRANSITIONS) == set(RFCStatus)


class TestAgentCapabilities:
    def test_lead_defaults(self):
        caps = AgentCapabilities.for_type(AgentType.LEAD)
        assert caps.can_edit and caps.can_comment and caps.can_approve

    def test_reviewer_defaults(self):
        caps = AgentCapabilities.for_type(AgentType.SECURITY)
        assert caps.can_comment
        assert not caps.can_edit
        assert not caps.can_approve

    def test_from_dict_defaults(self):
        caps = AgentCapabilities.from_dict({})
        assert caps == AgentCapabilities(can_edit=False, can_comment=True, can_approve=False)


class TestSerialization:
    def test_rfc_to_dict(self):
        data = make_rfc(version=3, previous_version_id="rfc-1-v2").to_dict()
        assert data["status"] == "draft"
        assert data["version"] == 3
        assert data["previous_version_id"] == "rfc-1-v2"
        assert data["created_at"] == "2024-01-01T12:00:00"

    def test_rfc_from_dict(self):
        rfc = RFC.from_dict(make_rfc(status=RFCStatus.APPROVED).to_dict())
        assert rfc.status == RFCStatus.APPROVED
        assert rfc.created_at == datetime(2024, 1, 1, 12, 0, 0)

    def test_agent_from_dict(self):
        agent = Agent.from_dict(
            {
                "id": "a1",
                "type": "backend",
                "name": "Backend Reviewer",
                "capabilities": {"can_comment": False},
            }
        )
        assert agent.type == AgentType.BACKEND
        assert agent.capabilities.can_comment is False

    def test_inline_comment_keeps_text_reference(self):
        comment = Comment(
            id="c1",
            rfc_id="rfc-1",
            rfc_version=2,
            agent_id="a1",
            agent_type=AgentType.SECURITY,
            type=CommentType.INLINE,
            content="Which algorithm?",
            text_reference=TextReference(
                quoted_text="JWT", line_number=3, text_span=TextSpan(10, 13)
            ),
        )
        data = comment.to_dict()
        assert data["text_reference"]["quoted_text"] == "JWT"
        assert data["text_reference"]["text_span"] == {"start": 10, "end": 13}

        restored = Comment.from_dict(data)
        assert restored.text_reference.text_span == TextSpan(10, 13)
        assert restored.status == CommentStatus.OPEN
        assert restored.rfc_version == 2

    def test_review_request_statuses_serialize_as_values(self):
        review = ReviewRequest(
            id="r1",
            rfc_id="rfc-1",
            rfc_version=1,
            requested_by="lead-1",
            reviewer_agent_ids=["a1", "a2"],
            review_statuses={"a1": ReviewStatus.PENDING, "a2": ReviewStatus.COMPLETED},
            created_at=utcnow(),
        )
        data = review.to_dict()
        assert data["review_statuses"] == {"a1": "pending", "a2": "completed"}
        assert data["completed_at"] is None
        assert ReviewRequest.from_dict(data).review_statuses["a2"] == ReviewStatus.COMPLETED


class TestReviewRequestProperties:
    def test_all_reviewers_completed(self):
        review = ReviewRequest(
            id="r1",
            rfc_id="rfc-1",
            rfc_version=1,
            requested_by="lead-1",
            reviewer_agent_ids=["a1", "a2"],
            review_statuses={"a1": ReviewStatus.COMPLETED, "a2": ReviewStatus.IN_PROGRESS},
            created_at=utcnow(),
        )
        assert not review.all_reviewers_completed
        review.review_statuses["a2"] = ReviewStatus.COMPLETED
        assert review.all_reviewers_completed
        assert not review.is_complete


class TestRFCFilters:
    def test_empty_filter_matches(self):
        assert RFCFilters().matches(make_rfc())

    def test_filters_are_anded(self):
        rfc = make_rfc(author="lead-1", status=RFCStatus.DRAFT)
        assert RFCFilters(author="lead-1", status=RFCStatus.DRAFT).matches(rfc)
        assert not RFCFilters(author="lead-1", status=RFCStatus.APPROVED).matches(rfc)

    def test_created_range_is_inclusive(self):
        rfc = make_rfc()
        assert RFCFilters(
            created_after=rfc.created_at, created_before=rfc.created_at
        ).matches(rfc)
        assert not RFCFilters(created_after=datetime(2025, 1, 1)).matches(rfc)


class TestUtcnow:
    def test_is_naive(self):
        assert utcnow().tzinfo is None
