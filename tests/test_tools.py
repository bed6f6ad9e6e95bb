"""
Tests for the lead agent tool set and dispatcher.
"""

import logging
from unittest.mock import patch

import pytest

from openrfc import AgentType, CommentStatus, RFCDomainModel
from openrfc.tools import ToolDef, ToolDispatcher, ToolResult, build_lead_agent_tools


@pytest.fixture
def model():
    return RFCDomainModel()


@pytest.fixture
def lead(model):
    return model.create_agent(AgentType.LEAD, "Lead", agent_id="lead1")


@pytest.fixture
def dispatcher(model, lead):
    return ToolDispatcher(build_lead_agent_tools(model, lead.id))


def call(dispatcher, name, **arguments) -> dict:
    result = dispatcher.execute(name, arguments)
    assert result.ok, result.error
    return result.to_dict()


@pytest.fixture
def rfc_id(dispatcher):
    return call(
        dispatcher,
        "create_rfc_document",
        title="Auth RFC",
        description="Token based auth",
        sections=["problem", "solution"],
    )["rfc_id"]


class TestToolDef:
    def test_to_schema(self):
        tool = ToolDef(name="noop", description="Does nothing")
        assert tool.to_schema() == {
            "name": "noop",
            "description": "Does nothing",
            "parameters": {"type": "object", "properties": {}, "required": []},
        }

    def test_lead_tool_names(self, dispatcher):
        assert dispatcher.names == [
            "create_rfc_document",
            "update_rfc_content",
            "add_section",
            "request_review",
            "get_review_comments",
            "resolve_comment",
            "add_lead_comment",
            "get_rfc_status",
        ]
        for schema in dispatcher.schemas():
            assert schema["parameters"]["type"] == "object"


class TestToolResult:
    def test_success_dict(self):
        assert ToolResult(result={"a": 1}).to_dict() == {"success": True, "a": 1}

    def test_error_dict(self):
        assert ToolResult(status="error", error="boom").to_dict() == {
            "success": False,
            "error": "boom",
        }


class TestDocumentTools:
    def test_create_uses_template(self, model, dispatcher, rfc_id):
        rfc = model.get_rfc(rfc_id)
        assert rfc.author == "lead1"
        assert rfc.requesting_user == "lead1"
        assert "## Problem Statement" in rfc.content
        assert "## Proposed Solution" in rfc.content

    def test_update_content_counts(self, model, dispatcher):
        rfc = model.create_rfc("T", "JWT and JWT", "lead1", "u1")
        result = call(
            dispatcher,
            "update_rfc_content",
            rfc_id=rfc.id,
            old_text="JWT",
            new_text="PASETO",
            replace_all=True,
        )
        assert result["replacement_count"] == 2
        assert result["updated_content"] == "PASETO and PASETO"
        assert result["version"] == 2

    def test_add_section_after(self, model, dispatcher, rfc_id):
        result = call(
            dispatcher,
            "add_section",
            rfc_id=rfc_id,
            section_title="Impact",
            content="Every service.",
            after_section="Problem Statement",
        )
        content = result["updated_content"]
        assert content.index("## Impact") < content.index("## Proposed Solution")
        assert model.get_rfc(rfc_id).version == 2

    def test_add_section_does_not_discard_concurrent_edit(self, model, dispatcher):
        rfc = model.create_rfc("T", "Use JWT tokens", "lead1", "u1")
        read_rfc = model.get_rfc

        def read_then_edit(rfc_id):
            snapshot = read_rfc(rfc_id)
            model.replace_string(rfc_id, "JWT", "PASETO")
            return snapshot

        with patch.object(model, "get_rfc", side_effect=read_then_edit):
            result = dispatcher.execute(
                "add_section", {"rfc_id": rfc.id, "section_title": "Extra", "content": "x"}
            )

        assert not result.ok
        assert "expected version 1" in result.error
        current = model.get_rfc(rfc.id)
        assert current.version == 2
        assert current.content == "Use PASETO tokens"


class TestReviewTools:
    def test_request_review_creates_reviewers_once(self, model, dispatcher, rfc_id):
        result = call(
            dispatcher,
            "request_review",
            rfc_id=rfc_id,
            reviewer_types=["security", "backend"],
            specific_concerns="token expiry",
        )
        assigned = result["reviewers_assigned"]
        assert [r["agent_type"] for r in assigned] == ["security", "backend"]

        comments = model.get_comments_for_rfc(rfc_id)
        assert comments[0].content == "Review requested with specific focus: token expiry"
        assert comments[0].agent_id == "lead1"

        review_id = result["review_request_id"]
        for reviewer in assigned:
            model.submit_review(review_id, reviewer["agent_id"])

        second = call(dispatcher, "request_review", rfc_id=rfc_id, reviewer_types=["security"])
        assert second["reviewers_assigned"][0]["agent_id"] == assigned[0]["agent_id"]

    def test_request_review_with_active_round_registers_nobody(self, model, dispatcher, rfc_id):
        call(dispatcher, "request_review", rfc_id=rfc_id, reviewer_types=["security"])
        agents_before = len(model.list_agents())

        result = dispatcher.execute(
            "request_review", {"rfc_id": rfc_id, "reviewer_types": ["frontend"]}
        )
        assert not result.ok
        assert "active review" in result.error
        assert len(model.list_agents()) == agents_before
        assert all(a.type != AgentType.FRONTEND for a in model.list_agents())

    def test_get_review_comments_counts(self, model, dispatcher, rfc_id):
        reviewer = model.create_agent(AgentType.FRONTEND, "FE", agent_id="fe")
        for text in ("one", "two"):
            model.add_comment(
                rfc_id=rfc_id,
                agent_id=reviewer.id,
                agent_type=reviewer.type,
                comment_type="document_level",
                content=text,
            )
        first = model.get_comments_for_rfc(rfc_id)[0]
        model.resolve_comment(first.id, "lead1")

        result = call(dispatcher, "get_review_comments", rfc_id=rfc_id)
        assert result["total_count"] == 2
        assert result["open_count"] == 1
        assert result["resolved_count"] == 1
        assert result["comments"][0]["agent_name"] == "FE"

        only_open = call(dispatcher, "get_review_comments", rfc_id=rfc_id, status="open")
        assert [c["content"] for c in only_open["comments"]] == ["two"]

    def test_resolve_comment_records_resolution(self, model, dispatcher, rfc_id):
        reviewer = model.create_agent(AgentType.BACKEND, "BE")
        comment = model.add_comment(
            rfc_id=rfc_id,
            agent_id=reviewer.id,
            agent_type=reviewer.type,
            comment_type="document_level",
            content="add rate limits",
        )

        result = call(
            dispatcher,
            "resolve_comment",
            comment_id=comment.id,
            resolution="Added a limits section",
            rfc_updated=True,
        )
        assert result["status"] == "resolved"

        thread = model.get_comment_thread(comment.id)
        assert thread[0].status == CommentStatus.RESOLVED
        assert thread[1].content == "Resolution: Added a limits section (RFC updated)"

    def test_add_lead_comment_inline_with_category(self, dispatcher, rfc_id):
        result = call(
            dispatcher,
            "add_lead_comment",
            rfc_id=rfc_id,
            content="Decided on RS256",
            quoted_text="Auth RFC",
            category="decision",
        )
        assert result["type"] == "inline"
        assert result["content"] == "[DECISION] Decided on RS256"

    def test_get_rfc_status(self, model, dispatcher, rfc_id):
        call(dispatcher, "request_review", rfc_id=rfc_id, reviewer_types=["database"])
        status = call(dispatcher, "get_rfc_status", rfc_id=rfc_id)

        assert status["title"] == "Auth RFC"
        assert status["status"] == "draft"
        assert status["current_version"] == 1
        assert list(status["review_status"].values()) == ["pending"]


class TestDispatcherErrors:
    def test_domain_error_becomes_result(self, dispatcher, rfc_id, caplog):
        with caplog.at_level(logging.WARNING, logger="openrfc.tools"):
            result = dispatcher.execute(
                "update_rfc_content",
                {"rfc_id": rfc_id, "old_text": "not there", "new_text": "x"},
            )
        assert not result.ok
        assert "not there" in result.error
        assert result.to_dict()["success"] is False
        assert "update_rfc_content failed" in caplog.text

    def test_unknown_rfc(self, dispatcher):
        result = dispatcher.execute("get_rfc_status", {"rfc_id": "missing"})
        assert not result.ok
        assert "missing" in result.error

    def test_unknown_tool(self, dispatcher):
        result = dispatcher.execute("delete_everything", {})
        assert result.error == "Unknown tool: delete_everything"

    def test_bad_arguments(self, dispatcher):
        result = dispatcher.execute("get_rfc_status", {"rfc": "x"})
        assert not result.ok
        assert "invalid arguments" in result.error

    def test_unexpected_error_logged(self, caplog):
        def boom():
            raise RuntimeError("kaput")

        dispatcher = ToolDispatcher([ToolDef(name="boom", description="", handler=boom)])
        with caplog.at_level(logging.ERROR, logger="openrfc.tools"):
            result = dispatcher.execute("boom")
        assert result.error == "boom failed: kaput"
        assert "Tool execution failed" in caplog.text
