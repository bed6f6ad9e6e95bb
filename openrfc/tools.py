"""
OpenRFC - Agent tools.

Exposes RFC operations as LLM-callable tools. The domain model and the
acting agent's id are bound when the tools are built, so two sessions never
share an implicit "current agent".

Usage:
    ```python
    from openrfc import RFCDomainModel, AgentType
    from openrfc.tools import ToolDispatcher, build_lead_agent_tools

    model = RFCDomainModel()
    lead = model.create_agent(AgentType.LEAD, "Lead")
    dispatcher = ToolDispatcher(build_lead_agent_tools(model, lead.id))

    schemas = dispatcher.schemas()  # hand these to the LLM
    result = dispatcher.execute("create_rfc_document", {"title": "...", "description": "..."})
    ```
"""

import logging
import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Optional

from .domain import RFCDomainModel
from .exceptions import ConflictError, NotFoundError, OpenRFCError
from .models import Agent, AgentType, CommentStatus, CommentType, RFCStatus, utcnow
from .templates import (
    RFC_SECTIONS,
    RFCMetadata,
    append_section,
    generate_rfc_template,
    insert_section_after,
)

logger = logging.getLogger("openrfc.tools")

REVIEWER_TYPES = [t.value for t in AgentType if t != AgentType.LEAD]


@dataclass
class ToolDef:
    """Definition for a tool that an LLM-powered agent can call.

    ``parameters`` is a JSON schema describing the keyword arguments the
    ``handler`` accepts.
    """

    name: str
    description: str
    parameters: dict = field(
        default_factory=lambda: {"type": "object", "properties": {}, "required": []}
    )
    handler: Optional[Callable[..., dict[str, Any]]] = None

    def to_schema(self) -> dict:
        """Return the tool definition as a JSON-schema dict for the LLM."""
        return {
            "name": self.name,
            "description": self.description,
            "parameters": self.parameters,
        }


@dataclass
class ToolResult:
    """Outcome of a tool call.

    Fields:
        status: "success" | "error"
        result: Payload returned by the handler.
        error: Human-readable error for the LLM.
        duration_ms: Wall-clock execution time.
    """

    status: str = "success"
    result: Optional[dict[str, Any]] = None
    error: Optional[str] = None
    duration_ms: int = 0

    @property
    def ok(self) -> bool:
        return self.status == "success"

    def to_dict(self) -> dict[str, Any]:
        if self.ok:
            return {"success": True, **(self.result or {})}
        return {"success": False, "error": self.error}


class ToolDispatcher:
    """Executes named tool calls and normalizes domain errors into results."""

    def __init__(self, tools: list[ToolDef]):
        self._tools = {t.name: t for t in tools}

    @property
    def names(self) -> list[str]:
        return list(self._tools)

    def schemas(self) -> list[dict]:
        return [t.to_schema() for t in self._tools.values()]

    def execute(self, name: str, arguments: Optional[dict[str, Any]] = None) -> ToolResult:
        t0 = time.time()
        tool = self._tools.get(name)
        if tool is None or tool.handler is None:
            return ToolResult(status="error", error=f"Unknown tool: {name}")

        logger.info("Tool start: %s", name)
        try:
            result = tool.handler(**(arguments or {}))
        except OpenRFCError as e:
            logger.warning("Tool %s failed: %s", name, e.message)
            return ToolResult(
                status="error",
                error=f"{name} failed: {e.message}",
                duration_ms=int((time.time() - t0) * 1000),
            )
        except TypeError as e:
            logger.warning("Tool %s called with bad arguments: %s", name, e)
            return ToolResult(
                status="error",
                error=f"{name} called with invalid arguments: {e}",
                duration_ms=int((time.time() - t0) * 1000),
            )
        except Exception as e:
            logger.exception("Tool execution failed")
            return ToolResult(
                status="error",
                error=f"{name} failed: {e}",
                duration_ms=int((time.time() - t0) * 1000),
            )

        duration_ms = int((time.time() - t0) * 1000)
        logger.info("Tool end: %s (%d ms)", name, duration_ms)
        return ToolResult(status="success", result=result, duration_ms=duration_ms)


def _find_or_create_reviewer(model: RFCDomainModel, reviewer_type: str) -> Agent:
    agent_type = AgentType(reviewer_type)
    for agent in model.list_agents():
        if agent.type == agent_type:
            return agent
    return model.create_agent(agent_type, f"{reviewer_type.capitalize()} Reviewer")


def build_lead_agent_tools(model: RFCDomainModel, agent_id: str) -> list[ToolDef]:
    """Build the lead agent's tool set bound to model and agent_id."""

    def create_rfc_document(
        title: str,
        description: str,
        sections: Optional[list[str]] = None,
        requesting_user: Optional[str] = None,
    ) -> dict[str, Any]:
        content = generate_rfc_template(
            RFCMetadata(
                title=title,
                description=description,
                author=agent_id,
                status=RFCStatus.DRAFT.value,
                created=utcnow().isoformat(),
            ),
            sections or [],
        )
        rfc = model.create_rfc(title, content, agent_id, requesting_user or agent_id)
        return {
            "rfc_id": rfc.id,
            "content": rfc.content,
            "version": rfc.version,
            "status": rfc.status.value,
        }

    def update_rfc_content(
        rfc_id: str, old_text: str, new_text: str, replace_all: bool = False
    ) -> dict[str, Any]:
        rfc = model.replace_string(rfc_id, old_text, new_text, replace_all)
        # Count against the exact version the replacement was applied to
        previous = model.get_rfc_version(rfc_id, rfc.version - 1)
        return {
            "replacement_count": previous.content.count(old_text) if replace_all else 1,
            "updated_content": rfc.content,
            "version": rfc.version,
        }

    def add_section(
        rfc_id: str,
        section_title: str,
        content: str,
        after_section: Optional[str] = None,
    ) -> dict[str, Any]:
        rfc = model.get_rfc(rfc_id)
        if rfc is None:
            raise NotFoundError(f"RFC with id {rfc_id} not found", resource="rfc", resource_id=rfc_id)
        if after_section:
            updated = insert_section_after(rfc.content, after_section, section_title, content)
        else:
            updated = append_section(rfc.content, section_title, content)
        rfc = model.update_rfc_content(rfc_id, updated, expected_version=rfc.version)
        return {"updated_content": rfc.content, "version": rfc.version}

    def request_review(
        rfc_id: str,
        reviewer_types: list[str],
        specific_concerns: Optional[str] = None,
        deadline: Optional[str] = None,
    ) -> dict[str, Any]:
        due = datetime.fromisoformat(deadline) if deadline else None
        if model.get_rfc(rfc_id) is None:
            raise NotFoundError(f"RFC with id {rfc_id} not found", resource="rfc", resource_id=rfc_id)
        active = model.get_active_review_for_rfc(rfc_id)
        if active is not None:
            raise ConflictError(f"RFC {rfc_id} already has an active review request ({active.id})")

        reviewers = [_find_or_create_reviewer(model, t) for t in reviewer_types]
        review = model.request_review(
            rfc_id=rfc_id,
            requested_by=agent_id,
            reviewer_agent_ids=[r.id for r in reviewers],
            deadline=due,
        )
        if specific_concerns:
            model.add_comment(
                rfc_id=rfc_id,
                agent_id=agent_id,
                agent_type=AgentType.LEAD,
                comment_type=CommentType.DOCUMENT_LEVEL,
                content=f"Review requested with specific focus: {specific_concerns}",
            )
        return {
            "review_request_id": review.id,
            "rfc_version": review.rfc_version,
            "reviewers_assigned": [
                {"agent_id": r.id, "agent_type": r.type.value, "name": r.name}
                for r in reviewers
            ],
        }

    def get_review_comments(
        rfc_id: str,
        status: Optional[str] = None,
        agent_type: Optional[str] = None,
    ) -> dict[str, Any]:
        comments = model.get_comments_for_rfc(
            rfc_id, CommentStatus(status) if status else None
        )
        if agent_type:
            comments = [c for c in comments if c.agent_type.value == agent_type]
        names = {a.id: a.name for a in model.list_agents()}
        return {
            "comments": [
                {
                    "comment_id": c.id,
                    "agent_id": c.agent_id,
                    "agent_type": c.agent_type.value,
                    "agent_name": names.get(c.agent_id, "Unknown"),
                    "type": c.type.value,
                    "content": c.content,
                    "quoted_text": c.text_reference.quoted_text if c.text_reference else None,
                    "status": c.status.value,
                    "parent_comment_id": c.parent_comment_id,
                }
                for c in comments
            ],
            "total_count": len(comments),
            "open_count": sum(1 for c in comments if c.status == CommentStatus.OPEN),
            "resolved_count": sum(1 for c in comments if c.status == CommentStatus.RESOLVED),
        }

    def resolve_comment(
        comment_id: str, resolution: str, rfc_updated: bool = False
    ) -> dict[str, Any]:
        resolved = model.resolve_comment(comment_id, agent_id)
        note = model.reply_to_comment(
            parent_comment_id=comment_id,
            agent_id=agent_id,
            agent_type=AgentType.LEAD,
            content=(
                f"Resolution: {resolution}"
                + (" (RFC updated)" if rfc_updated else " (no RFC changes needed)")
            ),
        )
        return {
            "comment_id": resolved.id,
            "status": resolved.status.value,
            "resolved_by": resolved.resolved_by,
            "resolution_comment_id": note.id,
        }

    def add_lead_comment(
        rfc_id: str,
        content: str,
        quoted_text: Optional[str] = None,
        category: Optional[str] = None,
    ) -> dict[str, Any]:
        prefix = f"[{category.upper()}] " if category else ""
        comment = model.add_comment(
            rfc_id=rfc_id,
            agent_id=agent_id,
            agent_type=AgentType.LEAD,
            comment_type=CommentType.INLINE if quoted_text else CommentType.DOCUMENT_LEVEL,
            content=prefix + content,
            quoted_text=quoted_text,
        )
        return {
            "comment_id": comment.id,
            "type": comment.type.value,
            "content": comment.content,
            "rfc_version": comment.rfc_version,
        }

    def get_rfc_status(rfc_id: str) -> dict[str, Any]:
        rfc = model.get_rfc(rfc_id)
        if rfc is None:
            raise NotFoundError(f"RFC with id {rfc_id} not found", resource="rfc", resource_id=rfc_id)
        comments = model.get_comments_for_rfc(rfc_id)
        active = model.get_active_review_for_rfc(rfc_id)
        return {
            "rfc_id": rfc.id,
            "title": rfc.title,
            "status": rfc.status.value,
            "current_version": rfc.version,
            "last_updated": rfc.updated_at.isoformat(),
            "open_comments": sum(1 for c in comments if c.is_open),
            "total_comments": len(comments),
            "active_review_id": active.id if active else None,
            "review_status": (
                {k: v.value for k, v in active.review_statuses.items()} if active else {}
            ),
            "author": rfc.author,
            "requesting_user": rfc.requesting_user,
        }

    string = {"type": "string"}
    return [
        ToolDef(
            name="create_rfc_document",
            description="Create a new RFC document from the standard markdown template.",
            parameters={
                "type": "object",
                "properties": {
                    "title": {**string, "description": "RFC title."},
                    "description": {**string, "description": "One-paragraph summary."},
                    "sections": {
                        "type": "array",
                        "items": {"type": "string", "enum": list(RFC_SECTIONS)},
                        "description": "Template sections to include, in order.",
                    },
                    "requesting_user": {**string, "description": "User who asked for the RFC."},
                },
                "required": ["title", "description"],
            },
            handler=create_rfc_document,
        ),
        ToolDef(
            name="update_rfc_content",
            description="Replace exact text in the RFC document. Creates a new version.",
            parameters={
                "type": "object",
                "properties": {
                    "rfc_id": {**string, "description": "RFC identifier."},
                    "old_text": {**string, "description": "Exact text to replace."},
                    "new_text": {**string, "description": "Replacement text."},
                    "replace_all": {
                        "type": "boolean",
                        "description": "Replace all occurrences.",
                        "default": False,
                    },
                },
                "required": ["rfc_id", "old_text", "new_text"],
            },
            handler=update_rfc_content,
        ),
        ToolDef(
            name="add_section",
            description="Add a new section to the RFC document.",
            parameters={
                "type": "object",
                "properties": {
                    "rfc_id": {**string, "description": "RFC identifier."},
                    "section_title": {**string, "description": "Section heading."},
                    "content": {**string, "description": "Section body."},
                    "after_section": {**string, "description": "Insert after this section."},
                },
                "required": ["rfc_id", "section_title", "content"],
            },
            handler=add_section,
        ),
        ToolDef(
            name="request_review",
            description="Open a review round with reviewers of the given specialties.",
            parameters={
                "type": "object",
                "properties": {
                    "rfc_id": {**string, "description": "RFC identifier."},
                    "reviewer_types": {
                        "type": "array",
                        "items": {"type": "string", "enum": REVIEWER_TYPES},
                    },
                    "specific_concerns": {**string, "description": "Areas to focus on."},
                    "deadline": {**string, "description": "ISO-8601 deadline (UTC)."},
                },
                "required": ["rfc_id", "reviewer_types"],
            },
            handler=request_review,
        ),
        ToolDef(
            name="get_review_comments",
            description="Retrieve reviewer comments on an RFC.",
            parameters={
                "type": "object",
                "properties": {
                    "rfc_id": {**string, "description": "RFC identifier."},
                    "status": {"type": "string", "enum": [s.value for s in CommentStatus]},
                    "agent_type": {"type": "string", "enum": [t.value for t in AgentType]},
                },
                "required": ["rfc_id"],
            },
            handler=get_review_comments,
        ),
        ToolDef(
            name="resolve_comment",
            description="Mark a comment as resolved and record how it was addressed.",
            parameters={
                "type": "object",
                "properties": {
                    "comment_id": {**string, "description": "Comment to resolve."},
                    "resolution": {**string, "description": "How it was addressed."},
                    "rfc_updated": {"type": "boolean", "description": "Whether the RFC changed."},
                },
                "required": ["comment_id", "resolution"],
            },
            handler=resolve_comment,
        ),
        ToolDef(
            name="add_lead_comment",
            description="Add the lead's own comment. Quoting text makes it an inline comment.",
            parameters={
                "type": "object",
                "properties": {
                    "rfc_id": {**string, "description": "RFC identifier."},
                    "content": {**string, "description": "Comment text."},
                    "quoted_text": {**string, "description": "Exact text to anchor to."},
                    "category": {
                        "type": "string",
                        "enum": ["clarification", "context", "decision", "todo"],
                    },
                },
                "required": ["rfc_id", "content"],
            },
            handler=add_lead_comment,
        ),
        ToolDef(
            name="get_rfc_status",
            description="Get RFC status, version, comment counts and active review progress.",
            parameters={
                "type": "object",
                "properties": {"rfc_id": {**string, "description": "RFC identifier."}},
                "required": ["rfc_id"],
            },
            handler=get_rfc_status,
        ),
    ]
