"""
FastAPI application for the OpenRFC server.
"""

import logging
import uuid
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Dict, List, Optional

from fastapi import FastAPI, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from ..domain import RFCDomainModel
from ..exceptions import (
    ConflictError,
    NotFoundError,
    OpenRFCError,
    PermissionDeniedError,
    TextNotFoundError,
    ValidationError,
)
from ..models import Comment, CommentType, TextReference, TextSpan
from ..storage import create_storage
from ..validation import InputValidationError, coerce_enum
from .config import ServerConfig

logger = logging.getLogger("openrfc.server")

ERROR_STATUS = [
    (ValidationError, 400),
    (PermissionDeniedError, 403),
    (NotFoundError, 404),
    (ConflictError, 409),
]


class AgentCreate(BaseModel):
    type: str
    name: str
    id: Optional[str] = None
    capabilities: Optional[Dict[str, bool]] = None


class RFCCreate(BaseModel):
    title: str
    content: str
    author: str
    requesting_user: str


class ContentUpdate(BaseModel):
    content: str
    expected_version: Optional[int] = None


class StatusUpdate(BaseModel):
    status: str


class ReplaceRequest(BaseModel):
    old_text: str
    new_text: str
    replace_all: bool = False


class SpanBody(BaseModel):
    start: int
    end: int


class CommentCreate(BaseModel):
    agent_id: str
    agent_type: str
    comment_type: str = Field("document_level", alias="type")
    content: str
    quoted_text: Optional[str] = None
    line_reference: Optional[int] = None
    text_span: Optional[SpanBody] = None

    class Config:
        populate_by_name = True


class ReplyCreate(BaseModel):
    agent_id: str
    agent_type: str
    content: str


class CommentAction(BaseModel):
    agent_id: str


class ReviewCreate(BaseModel):
    requested_by: str
    reviewer_agent_ids: List[str]
    deadline: Optional[datetime] = None


class ReviewersAdd(BaseModel):
    reviewer_ids: List[str]


class ReviewComment(BaseModel):
    comment_type: str = Field("document_level", alias="type")
    content: str
    quoted_text: Optional[str] = None
    line_reference: Optional[int] = None

    class Config:
        populate_by_name = True


class ReviewSubmit(BaseModel):
    agent_id: str
    comments: List[ReviewComment] = Field(default_factory=list)


class ReviewerAction(BaseModel):
    agent_id: str


def _status_for(exc: OpenRFCError) -> int:
    for error_type, status_code in ERROR_STATUS:
        if isinstance(exc, error_type):
            return status_code
    return 500


def create_app(
    config: Optional[ServerConfig] = None,
    model: Optional[RFCDomainModel] = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Pass ``model`` to serve an existing domain model; otherwise one is built
    from ``config.database_url`` at startup and closed at shutdown.
    """
    if config is None:
        config = ServerConfig.from_env()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        owned = model is None
        app.state.model = model or RFCDomainModel(create_storage(config.database_url))
        app.state.config = config
        yield
        if owned:
            app.state.model.close()

    app = FastAPI(
        title="OpenRFC Server",
        description="Collaborative RFC authoring and multi-agent review",
        version="0.1.0",
        lifespan=lifespan,
        debug=config.debug,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(OpenRFCError)
    async def handle_domain_error(request: Request, exc: OpenRFCError):
        status_code = _status_for(exc)
        logger.debug("%s %s -> %d: %s", request.method, request.url.path, status_code, exc.message)
        content = {"error": type(exc).__name__, "message": exc.message}
        if getattr(exc, "current_version", None) is not None:
            content["current_version"] = exc.current_version
        return JSONResponse(status_code=status_code, content=content)

    def get_model() -> RFCDomainModel:
        return app.state.model

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    # ==================== Agents ====================

    @app.post("/api/v1/agents", status_code=201)
    def create_agent(body: AgentCreate):
        agent = get_model().create_agent(
            body.type, body.name, capabilities=body.capabilities, agent_id=body.id
        )
        return agent.to_dict()

    @app.get("/api/v1/agents")
    def list_agents():
        return [a.to_dict() for a in get_model().list_agents()]

    @app.get("/api/v1/agents/{agent_id}")
    def get_agent(agent_id: str):
        agent = get_model().get_agent(agent_id)
        if agent is None:
            raise NotFoundError(
                f"Agent with id {agent_id} not found", resource="agent", resource_id=agent_id
            )
        return agent.to_dict()

    # ==================== RFCs ====================

    def require_rfc(rfc_id: str):
        rfc = get_model().get_rfc(rfc_id)
        if rfc is None:
            raise NotFoundError(
                f"RFC with id {rfc_id} not found", resource="rfc", resource_id=rfc_id
            )
        return rfc

    @app.post("/api/v1/rfcs", status_code=201)
    def create_rfc(body: RFCCreate):
        rfc = get_model().create_rfc(
            body.title, body.content, body.author, body.requesting_user
        )
        return rfc.to_dict()

    @app.get("/api/v1/rfcs")
    def list_rfcs(
        status: Optional[str] = Query(None),
        author: Optional[str] = Query(None),
        requesting_user: Optional[str] = Query(None),
        created_after: Optional[datetime] = Query(None),
        created_before: Optional[datetime] = Query(None),
    ):
        rfcs = get_model().list_rfcs(
            status=status,
            author=author,
            requesting_user=requesting_user,
            created_after=created_after,
            created_before=created_before,
        )
        return [r.to_dict() for r in rfcs]

    @app.get("/api/v1/rfcs/{rfc_id}")
    def get_rfc(rfc_id: str):
        return require_rfc(rfc_id).to_dict()

    @app.get("/api/v1/rfcs/{rfc_id}/versions/{version}")
    def get_rfc_version(rfc_id: str, version: int):
        rfc = get_model().get_rfc_version(rfc_id, version)
        if rfc is None:
            raise NotFoundError(
                f"RFC {rfc_id} has no version {version}", resource="rfc", resource_id=rfc_id
            )
        return rfc.to_dict()

    @app.put("/api/v1/rfcs/{rfc_id}/content")
    def update_content(rfc_id: str, body: ContentUpdate):
        return get_model().update_rfc_content(
            rfc_id, body.content, body.expected_version
        ).to_dict()

    @app.post("/api/v1/rfcs/{rfc_id}/status")
    def update_status(rfc_id: str, body: StatusUpdate):
        return get_model().update_rfc_status(rfc_id, body.status).to_dict()

    @app.post("/api/v1/rfcs/{rfc_id}/replace")
    def replace_string(rfc_id: str, body: ReplaceRequest):
        rfc = get_model().replace_string(
            rfc_id, body.old_text, body.new_text, body.replace_all
        )
        return rfc.to_dict()

    # ==================== Comments ====================

    @app.post("/api/v1/rfcs/{rfc_id}/comments", status_code=201)
    def add_comment(rfc_id: str, body: CommentCreate):
        comment = get_model().add_comment(
            rfc_id=rfc_id,
            agent_id=body.agent_id,
            agent_type=body.agent_type,
            comment_type=body.comment_type,
            content=body.content,
            quoted_text=body.quoted_text,
            line_reference=body.line_reference,
            text_span=(
                TextSpan(start=body.text_span.start, end=body.text_span.end)
                if body.text_span
                else None
            ),
        )
        return comment.to_dict()

    @app.get("/api/v1/rfcs/{rfc_id}/comments")
    def list_comments(rfc_id: str, status: Optional[str] = Query(None)):
        return [c.to_dict() for c in get_model().get_comments_for_rfc(rfc_id, status)]

    @app.post("/api/v1/comments/{comment_id}/replies", status_code=201)
    def reply_to_comment(comment_id: str, body: ReplyCreate):
        reply = get_model().reply_to_comment(
            comment_id, body.agent_id, body.agent_type, body.content
        )
        return reply.to_dict()

    @app.post("/api/v1/comments/{comment_id}/resolve")
    def resolve_comment(comment_id: str, body: CommentAction):
        return get_model().resolve_comment(comment_id, body.agent_id).to_dict()

    @app.post("/api/v1/comments/{comment_id}/dismiss")
    def dismiss_comment(comment_id: str, body: CommentAction):
        return get_model().dismiss_comment(comment_id, body.agent_id).to_dict()

    @app.get("/api/v1/comments/{comment_id}/thread")
    def comment_thread(comment_id: str):
        return [c.to_dict() for c in get_model().get_comment_thread(comment_id)]

    # ==================== Reviews ====================

    @app.post("/api/v1/rfcs/{rfc_id}/reviews", status_code=201)
    def request_review(rfc_id: str, body: ReviewCreate):
        review = get_model().request_review(
            rfc_id, body.requested_by, body.reviewer_agent_ids, body.deadline
        )
        return review.to_dict()

    @app.get("/api/v1/rfcs/{rfc_id}/reviews")
    def list_reviews(rfc_id: str):
        return [r.to_dict() for r in get_model().get_all_reviews_for_rfc(rfc_id)]

    @app.get("/api/v1/rfcs/{rfc_id}/reviews/active")
    def active_review(rfc_id: str):
        review = get_model().get_active_review_for_rfc(rfc_id)
        if review is None:
            raise NotFoundError(
                f"No active review found for RFC {rfc_id}", resource="review_request"
            )
        return review.to_dict()

    @app.post("/api/v1/rfcs/{rfc_id}/reviews/active/reviewers")
    def add_reviewers(rfc_id: str, body: ReviewersAdd):
        return get_model().add_reviewers_to_active_review(rfc_id, body.reviewer_ids).to_dict()

    @app.post("/api/v1/reviews/{review_id}/submit")
    def submit_review(review_id: str, body: ReviewSubmit):
        m = get_model()
        review = m.storage.reviews.get_by_id(review_id)
        if review is None:
            raise NotFoundError(
                f"Review request with id {review_id} not found",
                resource="review_request",
                resource_id=review_id,
            )
        agent = m.get_agent(body.agent_id)
        if agent is None:
            raise NotFoundError(
                f"Agent with id {body.agent_id} not found",
                resource="agent",
                resource_id=body.agent_id,
            )

        # Inline items must quote the version under review
        snapshot = m.get_rfc_version(review.rfc_id, review.rfc_version)
        comments = []
        for item in body.comments:
            comment_type = coerce_enum(item.comment_type, CommentType, "comments.type")
            if comment_type == CommentType.INLINE:
                if not item.quoted_text:
                    raise InputValidationError(
                        "quoted_text is required for inline comments",
                        field="comments.quoted_text",
                    )
                if snapshot is None or item.quoted_text not in snapshot.content:
                    raise TextNotFoundError(
                        f'Quoted text "{item.quoted_text}" not found in RFC '
                        f"{review.rfc_id} content (version {review.rfc_version})",
                        rfc_id=review.rfc_id,
                        text=item.quoted_text,
                    )
            comments.append(
                Comment(
                    id=str(uuid.uuid4()),
                    rfc_id=review.rfc_id,
                    rfc_version=review.rfc_version,
                    agent_id=agent.id,
                    agent_type=agent.type,
                    type=comment_type,
                    content=item.content,
                    text_reference=(
                        TextReference(
                            quoted_text=item.quoted_text,
                            line_number=item.line_reference,
                        )
                        if comment_type == CommentType.INLINE
                        else None
                    ),
                )
            )
        return m.submit_review(review_id, body.agent_id, comments).to_dict()

    @app.post("/api/v1/reviews/{review_id}/in-progress")
    def mark_in_progress(review_id: str, body: ReviewerAction):
        return get_model().mark_review_in_progress(review_id, body.agent_id).to_dict()

    @app.get("/api/v1/reviews/{review_id}/status")
    def review_status(review_id: str):
        m = get_model()
        statuses = m.get_review_status(review_id)
        return {
            "review_request_id": review_id,
            "review_statuses": {k: v.value for k, v in statuses.items()},
            "is_complete": m.is_review_complete(review_id),
        }

    return app


class OpenRFCServer:
    """High-level server class for running OpenRFC."""

    def __init__(
        self,
        host: str = "0.0.0.0",
        port: int = 8000,
        database_url: Optional[str] = None,
        **kwargs,
    ):
        self.config = ServerConfig(
            host=host,
            port=port,
            database_url=database_url,
            **kwargs,
        )
        self.app = create_app(self.config)

    def run(self):
        """Run the server (blocking)."""
        import uvicorn

        uvicorn.run(
            self.app,
            host=self.config.host,
            port=self.config.port,
            log_level=self.config.log_level,
        )

    async def run_async(self):
        """Run the server asynchronously."""
        import uvicorn

        config = uvicorn.Config(
            self.app,
            host=self.config.host,
            port=self.config.port,
            log_level=self.config.log_level,
        )
        server = uvicorn.Server(config)
        await server.serve()
