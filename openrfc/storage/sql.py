"""
SQL storage backend for OpenRFC using SQLAlchemy.
Supports SQLite and PostgreSQL.
"""

from typing import Optional

from sqlalchemy import (
    JSON,
    Column,
    DateTime,
    Index,
    Integer,
    String,
    Text,
    and_,
    create_engine,
    desc,
    func,
)
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from ..exceptions import ConflictError
from ..models import (
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
from .base import AgentStorage, CommentStorage, RFCStorage, ReviewStorage, Storage

Base = declarative_base()


class RFCVersionModel(Base):
    __tablename__ = "rfc_versions"

    id = Column(String(36), primary_key=True)
    version = Column(Integer, primary_key=True)
    status = Column(String(50), nullable=False, default="draft")
    title = Column(String(500), nullable=False)
    content = Column(Text, nullable=False)
    author = Column(String(255), nullable=False)
    requesting_user = Column(String(255), nullable=False)
    created_at = Column(DateTime, nullable=False)
    updated_at = Column(DateTime, nullable=False)
    previous_version_id = Column(String(64), nullable=True)

    __table_args__ = (
        Index("idx_rfc_versions_status", "status"),
        Index("idx_rfc_versions_author", "author"),
    )


class CommentModel(Base):
    __tablename__ = "comments"

    seq = Column(Integer, primary_key=True, autoincrement=True)
    id = Column(String(36), nullable=False, unique=True)
    rfc_id = Column(String(36), nullable=False)
    rfc_version = Column(Integer, nullable=False)
    agent_id = Column(String(255), nullable=False)
    agent_type = Column(String(50), nullable=False)
    comment_type = Column(String(50), nullable=False)
    content = Column(Text, nullable=False)
    status = Column(String(50), nullable=False, default="open")
    text_reference = Column(JSON, nullable=True)
    parent_comment_id = Column(String(36), nullable=True)
    created_at = Column(DateTime, nullable=False)
    resolved_at = Column(DateTime, nullable=True)
    resolved_by = Column(String(255), nullable=True)
    dismissed_at = Column(DateTime, nullable=True)
    dismissed_by = Column(String(255), nullable=True)

    __table_args__ = (
        Index("idx_comments_rfc_id", "rfc_id"),
        Index("idx_comments_parent_id", "parent_comment_id"),
    )


class ReviewRequestModel(Base):
    __tablename__ = "review_requests"

    seq = Column(Integer, primary_key=True, autoincrement=True)
    id = Column(String(36), nullable=False, unique=True)
    rfc_id = Column(String(36), nullable=False)
    rfc_version = Column(Integer, nullable=False)
    requested_by = Column(String(255), nullable=False)
    reviewer_agent_ids = Column(JSON, default=list)
    review_statuses = Column(JSON, default=dict)
    deadline = Column(DateTime, nullable=True)
    created_at = Column(DateTime, nullable=False)
    completed_at = Column(DateTime, nullable=True)

    __table_args__ = (Index("idx_review_requests_rfc_id", "rfc_id"),)


class AgentModel(Base):
    __tablename__ = "agents"

    id = Column(String(255), primary_key=True)
    agent_type = Column(String(50), nullable=False)
    name = Column(String(255), nullable=False)
    capabilities = Column(JSON, default=dict)
    created_at = Column(DateTime, nullable=False)


# ==================== Row <-> entity conversion ====================


def _rfc_from_row(row: RFCVersionModel) -> RFC:
    return RFC(
        id=row.id,
        version=row.version,
        status=RFCStatus(row.status),
        title=row.title,
        content=row.content,
        author=row.author,
        requesting_user=row.requesting_user,
        created_at=row.created_at,
        updated_at=row.updated_at,
        previous_version_id=row.previous_version_id,
    )


def _rfc_columns(rfc: RFC) -> dict:
    return {
        "status": rfc.status.value,
        "title": rfc.title,
        "content": rfc.content,
        "author": rfc.author,
        "requesting_user": rfc.requesting_user,
        "created_at": rfc.created_at,
        "updated_at": rfc.updated_at,
        "previous_version_id": rfc.previous_version_id,
    }


def _comment_from_row(row: CommentModel) -> Comment:
    return Comment(
        id=row.id,
        rfc_id=row.rfc_id,
        rfc_version=row.rfc_version,
        agent_id=row.agent_id,
        agent_type=AgentType(row.agent_type),
        type=CommentType(row.comment_type),
        content=row.content,
        status=CommentStatus(row.status),
        text_reference=(
            TextReference.from_dict(row.text_reference) if row.text_reference else None
        ),
        parent_comment_id=row.parent_comment_id,
        created_at=row.created_at,
        resolved_at=row.resolved_at,
        resolved_by=row.resolved_by,
        dismissed_at=row.dismissed_at,
        dismissed_by=row.dismissed_by,
    )


def _comment_columns(comment: Comment) -> dict:
    return {
        "rfc_id": comment.rfc_id,
        "rfc_version": comment.rfc_version,
        "agent_id": comment.agent_id,
        "agent_type": comment.agent_type.value,
        "comment_type": comment.type.value,
        "content": comment.content,
        "status": comment.status.value,
        "text_reference": (
            comment.text_reference.to_dict() if comment.text_reference else None
        ),
        "parent_comment_id": comment.parent_comment_id,
        "created_at": comment.created_at,
        "resolved_at": comment.resolved_at,
        "resolved_by": comment.resolved_by,
        "dismissed_at": comment.dismissed_at,
        "dismissed_by": comment.dismissed_by,
    }


def _review_from_row(row: ReviewRequestModel) -> ReviewRequest:
    return ReviewRequest(
        id=row.id,
        rfc_id=row.rfc_id,
        rfc_version=row.rfc_version,
        requested_by=row.requested_by,
        reviewer_agent_ids=list(row.reviewer_agent_ids or []),
        review_statuses={
            k: ReviewStatus(v) for k, v in (row.review_statuses or {}).items()
        },
        created_at=row.created_at,
        deadline=row.deadline,
        completed_at=row.completed_at,
    )


def _review_columns(review: ReviewRequest) -> dict:
    return {
        "rfc_id": review.rfc_id,
        "rfc_version": review.rfc_version,
        "requested_by": review.requested_by,
        "reviewer_agent_ids": list(review.reviewer_agent_ids),
        "review_statuses": {k: v.value for k, v in review.review_statuses.items()},
        "deadline": review.deadline,
        "created_at": review.created_at,
        "completed_at": review.completed_at,
    }


def _agent_from_row(row: AgentModel) -> Agent:
    return Agent(
        id=row.id,
        type=AgentType(row.agent_type),
        name=row.name,
        capabilities=AgentCapabilities.from_dict(row.capabilities or {}),
        created_at=row.created_at,
    )


# ==================== Database ====================


class Database:
    """Engine and session factory shared by the SQL collections."""

    def __init__(self, database_url: str):
        self.database_url = database_url

        connect_args = {}
        if database_url.startswith("sqlite"):
            connect_args["check_same_thread"] = False

        self.engine = create_engine(
            database_url,
            connect_args=connect_args,
            poolclass=StaticPool if database_url.startswith("sqlite") else None,
        )
        self.SessionLocal = sessionmaker(bind=self.engine, expire_on_commit=False)

    def create_tables(self):
        """Create all tables."""
        Base.metadata.create_all(self.engine)

    def get_session(self) -> Session:
        """Get a new database session."""
        return self.SessionLocal()

    def dispose(self):
        self.engine.dispose()


class SQLRFCStorage(RFCStorage):
    def __init__(self, db: Database):
        self.db = db

    def create(self, rfc: RFC) -> RFC:
        session = self.db.get_session()
        try:
            existing = (
                session.query(RFCVersionModel.id).filter(RFCVersionModel.id == rfc.id).first()
            )
            if existing is not None:
                raise ConflictError(f"RFC with id {rfc.id} already exists")
            session.add(RFCVersionModel(id=rfc.id, version=rfc.version, **_rfc_columns(rfc)))
            session.commit()
            return rfc
        finally:
            session.close()

    def update(self, rfc: RFC) -> RFC:
        session = self.db.get_session()
        try:
            row = session.get(RFCVersionModel, (rfc.id, rfc.version))
            if row is None:
                session.add(
                    RFCVersionModel(id=rfc.id, version=rfc.version, **_rfc_columns(rfc))
                )
            else:
                for key, value in _rfc_columns(rfc).items():
                    setattr(row, key, value)
            session.commit()
            return rfc
        finally:
            session.close()

    def get_by_id(self, rfc_id: str) -> Optional[RFC]:
        session = self.db.get_session()
        try:
            row = (
                session.query(RFCVersionModel)
                .filter(RFCVersionModel.id == rfc_id)
                .order_by(desc(RFCVersionModel.version))
                .first()
            )
            return _rfc_from_row(row) if row else None
        finally:
            session.close()

    def get_by_version(self, rfc_id: str, version: int) -> Optional[RFC]:
        session = self.db.get_session()
        try:
            row = session.get(RFCVersionModel, (rfc_id, version))
            return _rfc_from_row(row) if row else None
        finally:
            session.close()

    def list(self, filters: Optional[RFCFilters] = None) -> list[RFC]:
        session = self.db.get_session()
        try:
            latest = (
                session.query(
                    RFCVersionModel.id.label("id"),
                    func.max(RFCVersionModel.version).label("version"),
                )
                .group_by(RFCVersionModel.id)
                .subquery()
            )
            query = session.query(RFCVersionModel).join(
                latest,
                and_(
                    RFCVersionModel.id == latest.c.id,
                    RFCVersionModel.version == latest.c.version,
                ),
            )
            if filters is not None:
                if filters.status is not None:
                    query = query.filter(RFCVersionModel.status == filters.status.value)
                if filters.author:
                    query = query.filter(RFCVersionModel.author == filters.author)
                if filters.requesting_user:
                    query = query.filter(
                        RFCVersionModel.requesting_user == filters.requesting_user
                    )
                if filters.created_after:
                    query = query.filter(RFCVersionModel.created_at >= filters.created_after)
                if filters.created_before:
                    query = query.filter(
                        RFCVersionModel.created_at <= filters.created_before
                    )
            rows = query.order_by(RFCVersionModel.created_at).all()
            return [_rfc_from_row(row) for row in rows]
        finally:
            session.close()


class SQLCommentStorage(CommentStorage):
    def __init__(self, db: Database):
        self.db = db

    def create(self, comment: Comment) -> Comment:
        session = self.db.get_session()
        try:
            existing = (
                session.query(CommentModel.id).filter(CommentModel.id == comment.id).first()
            )
            if existing is not None:
                raise ConflictError(f"Comment with id {comment.id} already exists")
            session.add(CommentModel(id=comment.id, **_comment_columns(comment)))
            session.commit()
            return comment
        finally:
            session.close()

    def update(self, comment: Comment) -> Comment:
        session = self.db.get_session()
        try:
            row = session.query(CommentModel).filter(CommentModel.id == comment.id).first()
            if row is None:
                session.add(CommentModel(id=comment.id, **_comment_columns(comment)))
            else:
                for key, value in _comment_columns(comment).items():
                    setattr(row, key, value)
            session.commit()
            return comment
        finally:
            session.close()

    def get_by_id(self, comment_id: str) -> Optional[Comment]:
        session = self.db.get_session()
        try:
            row = session.query(CommentModel).filter(CommentModel.id == comment_id).first()
            return _comment_from_row(row) if row else None
        finally:
            session.close()

    def get_by_rfc(
        self, rfc_id: str, status: Optional[CommentStatus] = None
    ) -> list[Comment]:
        session = self.db.get_session()
        try:
            query = session.query(CommentModel).filter(CommentModel.rfc_id == rfc_id)
            if status is not None:
                query = query.filter(CommentModel.status == status.value)
            rows = query.order_by(CommentModel.created_at, CommentModel.seq).all()
            return [_comment_from_row(row) for row in rows]
        finally:
            session.close()

    def get_by_parent(self, parent_comment_id: str) -> list[Comment]:
        session = self.db.get_session()
        try:
            rows = (
                session.query(CommentModel)
                .filter(CommentModel.parent_comment_id == parent_comment_id)
                .order_by(CommentModel.created_at, CommentModel.seq)
                .all()
            )
            return [_comment_from_row(row) for row in rows]
        finally:
            session.close()


class SQLReviewStorage(ReviewStorage):
    def __init__(self, db: Database):
        self.db = db

    def create(self, review: ReviewRequest) -> ReviewRequest:
        session = self.db.get_session()
        try:
            existing = (
                session.query(ReviewRequestModel.id)
                .filter(ReviewRequestModel.id == review.id)
                .first()
            )
            if existing is not None:
                raise ConflictError(f"Review request with id {review.id} already exists")
            session.add(ReviewRequestModel(id=review.id, **_review_columns(review)))
            session.commit()
            return review
        finally:
            session.close()

    def update(self, review: ReviewRequest) -> ReviewRequest:
        session = self.db.get_session()
        try:
            row = (
                session.query(ReviewRequestModel)
                .filter(ReviewRequestModel.id == review.id)
                .first()
            )
            if row is None:
                session.add(ReviewRequestModel(id=review.id, **_review_columns(review)))
            else:
                for key, value in _review_columns(review).items():
                    setattr(row, key, value)
            session.commit()
            return review
        finally:
            session.close()

    def get_by_id(self, review_id: str) -> Optional[ReviewRequest]:
        session = self.db.get_session()
        try:
            row = (
                session.query(ReviewRequestModel)
                .filter(ReviewRequestModel.id == review_id)
                .first()
            )
            return _review_from_row(row) if row else None
        finally:
            session.close()

    def get_by_rfc(self, rfc_id: str) -> list[ReviewRequest]:
        session = self.db.get_session()
        try:
            rows = (
                session.query(ReviewRequestModel)
                .filter(ReviewRequestModel.rfc_id == rfc_id)
                .order_by(desc(ReviewRequestModel.created_at), desc(ReviewRequestModel.seq))
                .all()
            )
            return [_review_from_row(row) for row in rows]
        finally:
            session.close()


class SQLAgentStorage(AgentStorage):
    def __init__(self, db: Database):
        self.db = db

    def create(self, agent: Agent) -> Agent:
        session = self.db.get_session()
        try:
            if session.get(AgentModel, agent.id) is not None:
                raise ConflictError(f"Agent with id {agent.id} already exists")
            session.add(
                AgentModel(
                    id=agent.id,
                    agent_type=agent.type.value,
                    name=agent.name,
                    capabilities=agent.capabilities.to_dict(),
                    created_at=agent.created_at,
                )
            )
            session.commit()
            return agent
        finally:
            session.close()

    def get_by_id(self, agent_id: str) -> Optional[Agent]:
        session = self.db.get_session()
        try:
            row = session.get(AgentModel, agent_id)
            return _agent_from_row(row) if row else None
        finally:
            session.close()

    def list(self) -> list[Agent]:
        session = self.db.get_session()
        try:
            rows = session.query(AgentModel).order_by(AgentModel.created_at).all()
            return [_agent_from_row(row) for row in rows]
        finally:
            session.close()


class SQLStorage(Storage):
    """Storage backed by a SQLAlchemy database URL."""

    def __init__(self, database_url: str):
        self.db = Database(database_url)
        self.db.create_tables()
        self.rfcs = SQLRFCStorage(self.db)
        self.comments = SQLCommentStorage(self.db)
        self.reviews = SQLReviewStorage(self.db)
        self.agents = SQLAgentStorage(self.db)

    def close(self) -> None:
        self.db.dispose()
