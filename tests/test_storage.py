"""
Tests for the in-memory and SQL storage backends.

Every test runs against both backends; they must behave identically.
"""

import os
import tempfile
from dataclasses import replace
from datetime import datetime, timedelta

import pytest

from openrfc.exceptions import ConflictError
from openrfc.models import (
    RFC,
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
)
from openrfc.storage import MEMORY_URL, InMemoryStorage, create_storage

T0 = datetime(2024, 1, 1, 12, 0, 0)


@pytest.fixture(params=["memory", "sql"])
def storage(request):
    if request.param == "memory":
        yield create_storage(MEMORY_URL)
        return

    with tempfile.NamedTemporaryFile(suffix=".db", delete=False) as f:
        db_path = f.name
    store = create_storage(f"sqlite:///{db_path}")
    yield store
    store.close()
    os.unlink(db_path)


def make_rfc(rfc_id="rfc-1", version=1, **overrides) -> RFC:
    fields = dict(
        id=rfc_id,
        version=version,
        status=RFCStatus.DRAFT,
        title="Title",
        content=f"content v{version}",
        author="lead-1",
        requesting_user="user-1",
        created_at=T0,
        updated_at=T0,
    )
    fields.update(overrides)
    return RFC(**fields)


def make_comment(comment_id, parent=None, offset=0, **overrides) -> Comment:
    fields = dict(
        id=comment_id,
        rfc_id="rfc-1",
        rfc_version=1,
        agent_id="a1",
        agent_type=AgentType.BACKEND,
        type=CommentType.DOCUMENT_LEVEL,
        content=f"comment {comment_id}",
        parent_comment_id=parent,
        created_at=T0 + timedelta(seconds=offset),
    )
    fields.update(overrides)
    return Comment(**fields)


def make_review(review_id, rfc_id="rfc-1", offset=0, completed=False) -> ReviewRequest:
    return ReviewRequest(
        id=review_id,
        rfc_id=rfc_id,
        rfc_version=1,
        requested_by="lead-1",
        reviewer_agent_ids=["a1"],
        review_statuses={"a1": ReviewStatus.PENDING},
        created_at=T0 + timedelta(seconds=offset),
        completed_at=T0 if completed else None,
    )


class TestCreateStorage:
    def test_default_is_memory(self):
        assert isinstance(create_storage(), InMemoryStorage)
        assert isinstance(create_storage("memory://"), InMemoryStorage)


class TestRFCStorage:
    def test_get_by_id_returns_latest(self, storage):
        storage.rfcs.create(make_rfc())
        storage.rfcs.update(make_rfc(version=2, previous_version_id="rfc-1-v1"))

        current = storage.rfcs.get_by_id("rfc-1")
        assert current.version == 2
        assert current.content == "content v2"
        assert current.previous_version_id == "rfc-1-v1"

    def test_old_versions_stay_readable(self, storage):
        storage.rfcs.create(make_rfc())
        storage.rfcs.update(make_rfc(version=2))

        assert storage.rfcs.get_by_version("rfc-1", 1).content == "content v1"
        assert storage.rfcs.get_by_version("rfc-1", 3) is None

    def test_update_same_version_overwrites(self, storage):
        storage.rfcs.create(make_rfc())
        storage.rfcs.update(make_rfc(status=RFCStatus.IN_REVIEW))

        assert storage.rfcs.get_by_id("rfc-1").status == RFCStatus.IN_REVIEW
        assert storage.rfcs.get_by_version("rfc-1", 1).status == RFCStatus.IN_REVIEW

    def test_missing_returns_none(self, storage):
        assert storage.rfcs.get_by_id("nope") is None

    def test_create_rejects_existing_id(self, storage):
        storage.rfcs.create(make_rfc())
        storage.rfcs.update(make_rfc(version=2))

        with pytest.raises(ConflictError):
            storage.rfcs.create(make_rfc(title="Replacement"))
        assert storage.rfcs.get_by_version("rfc-1", 1).title == "Title"
        assert storage.rfcs.get_by_id("rfc-1").version == 2

    def test_list_returns_current_versions_only(self, storage):
        storage.rfcs.create(make_rfc("a"))
        storage.rfcs.update(make_rfc("a", version=2))
        storage.rfcs.create(make_rfc("b", author="lead-2"))

        rfcs = {r.id: r for r in storage.rfcs.list()}
        assert set(rfcs) == {"a", "b"}
        assert rfcs["a"].version == 2

    def test_list_filters(self, storage):
        storage.rfcs.create(make_rfc("a", status=RFCStatus.APPROVED))
        storage.rfcs.create(make_rfc("b", author="lead-2"))
        storage.rfcs.create(make_rfc("c", created_at=T0 + timedelta(days=2)))

        assert [r.id for r in storage.rfcs.list(RFCFilters(status=RFCStatus.APPROVED))] == ["a"]
        assert [r.id for r in storage.rfcs.list(RFCFilters(author="lead-2"))] == ["b"]
        after = storage.rfcs.list(RFCFilters(created_after=T0 + timedelta(days=1)))
        assert [r.id for r in after] == ["c"]


class TestCommentStorage:
    def test_roundtrip_inline(self, storage):
        storage.comments.create(
            make_comment(
                "c1",
                type=CommentType.INLINE,
                text_reference=TextReference(quoted_text="JWT", line_number=2),
            )
        )
        comment = storage.comments.get_by_id("c1")
        assert comment.type == CommentType.INLINE
        assert comment.text_reference.quoted_text == "JWT"
        assert comment.text_reference.line_number == 2

    def test_get_by_rfc_in_creation_order(self, storage):
        storage.comments.create(make_comment("c2", offset=2))
        storage.comments.create(make_comment("c1", offset=1))
        storage.comments.create(make_comment("other", rfc_id="rfc-2"))

        assert [c.id for c in storage.comments.get_by_rfc("rfc-1")] == ["c1", "c2"]

    def test_equal_timestamps_keep_insertion_order(self, storage):
        for comment_id in ("x", "a", "m"):
            storage.comments.create(make_comment(comment_id))

        assert [c.id for c in storage.comments.get_by_rfc("rfc-1")] == ["x", "a", "m"]

    def test_get_by_rfc_status_filter(self, storage):
        storage.comments.create(make_comment("c1"))
        storage.comments.create(make_comment("c2", offset=1))
        storage.comments.update(
            replace(storage.comments.get_by_id("c2"), status=CommentStatus.RESOLVED)
        )

        open_comments = storage.comments.get_by_rfc("rfc-1", CommentStatus.OPEN)
        assert [c.id for c in open_comments] == ["c1"]

    def test_thread_contains_root_and_descendants(self, storage):
        storage.comments.create(make_comment("root"))
        storage.comments.create(make_comment("r1", parent="root", offset=1))
        storage.comments.create(make_comment("r2", parent="root", offset=2))
        storage.comments.create(make_comment("r1a", parent="r1", offset=3))
        storage.comments.create(make_comment("unrelated", offset=4))

        thread = storage.comments.get_thread("r1a")
        assert thread[0].id == "root"
        assert {c.id for c in thread} == {"root", "r1", "r2", "r1a"}

    def test_thread_of_lone_comment(self, storage):
        storage.comments.create(make_comment("solo"))
        assert [c.id for c in storage.comments.get_thread("solo")] == ["solo"]

    def test_thread_of_missing_comment_is_empty(self, storage):
        assert storage.comments.get_thread("nope") == []

    def test_thread_tolerates_parent_cycle(self, storage):
        storage.comments.create(make_comment("a", parent="b"))
        storage.comments.create(make_comment("b", parent="a", offset=1))

        thread = storage.comments.get_thread("a")
        assert sorted(c.id for c in thread) == ["a", "b"]
        assert sorted(c.id for c in storage.comments.get_thread("b")) == ["a", "b"]

    def test_create_rejects_existing_id(self, storage):
        storage.comments.create(make_comment("c1"))
        storage.comments.update(
            replace(storage.comments.get_by_id("c1"), status=CommentStatus.RESOLVED)
        )

        with pytest.raises(ConflictError):
            storage.comments.create(make_comment("c1", parent="other", content="hijacked"))

        stored = storage.comments.get_by_id("c1")
        assert stored.content == "comment c1"
        assert stored.status == CommentStatus.RESOLVED
        assert storage.comments.get_by_parent("other") == []
        assert len(storage.comments.get_by_rfc("rfc-1")) == 1


class TestReviewStorage:
    def test_get_by_rfc_newest_first(self, storage):
        storage.reviews.create(make_review("old", offset=0, completed=True))
        storage.reviews.create(make_review("new", offset=10))

        assert [r.id for r in storage.reviews.get_by_rfc("rfc-1")] == ["new", "old"]

    def test_get_active_by_rfc(self, storage):
        storage.reviews.create(make_review("done", completed=True))
        assert storage.reviews.get_active_by_rfc("rfc-1") is None

        storage.reviews.create(make_review("open", offset=5))
        assert storage.reviews.get_active_by_rfc("rfc-1").id == "open"

    def test_update_statuses(self, storage):
        storage.reviews.create(make_review("r1"))
        review = storage.reviews.get_by_id("r1")
        review.review_statuses["a1"] = ReviewStatus.COMPLETED
        review.completed_at = T0
        storage.reviews.update(review)

        stored = storage.reviews.get_by_id("r1")
        assert stored.review_statuses == {"a1": ReviewStatus.COMPLETED}
        assert stored.completed_at == T0

    def test_create_rejects_existing_id(self, storage):
        storage.reviews.create(make_review("r1", completed=True))
        with pytest.raises(ConflictError):
            storage.reviews.create(make_review("r1"))
        assert storage.reviews.get_by_id("r1").completed_at == T0
        assert len(storage.reviews.get_by_rfc("rfc-1")) == 1


class TestAgentStorage:
    def test_create_and_list(self, storage):
        agent = Agent(
            id="a1",
            type=AgentType.SECURITY,
            name="Sec",
            capabilities=AgentCapabilities(can_comment=False),
            created_at=T0,
        )
        storage.agents.create(agent)

        stored = storage.agents.get_by_id("a1")
        assert stored.type == AgentType.SECURITY
        assert stored.capabilities.can_comment is False
        assert [a.id for a in storage.agents.list()] == ["a1"]

        with pytest.raises(ConflictError):
            storage.agents.create(replace(agent, name="Impostor"))
        assert storage.agents.get_by_id("a1").name == "Sec"


class TestMemoryCopies:
    def test_mutating_returned_object_does_not_leak(self):
        storage = InMemoryStorage()
        storage.rfcs.create(make_rfc())

        fetched = storage.rfcs.get_by_id("rfc-1")
        fetched.content = "tampered"

        assert storage.rfcs.get_by_id("rfc-1").content == "content v1"

    def test_mutating_input_after_create_does_not_leak(self):
        storage = InMemoryStorage()
        review = make_review("r1")
        storage.reviews.create(review)
        review.review_statuses["a1"] = ReviewStatus.COMPLETED

        assert storage.reviews.get_by_id("r1").review_statuses["a1"] == ReviewStatus.PENDING
