"""
OpenRFC - HTTP client for a remote OpenRFC server.

Mirrors the domain facade over the /api/v1 routes and raises the same
exception types the server maps to HTTP status codes.
"""

from datetime import datetime
from typing import Any, Optional

import httpx

from .exceptions import (
    ConflictError,
    NotFoundError,
    OpenRFCError,
    PermissionDeniedError,
    ValidationError,
)
from .models import RFC, Agent, Comment, ReviewRequest, ReviewStatus


class OpenRFCClient:
    """
    Synchronous client for the OpenRFC server.

    Example:
        ```python
        client = OpenRFCClient("http://localhost:8000")
        lead = client.create_agent("lead", "Lead")
        rfc = client.create_rfc("Auth RFC", "Use JWT tokens", lead.id, "u1")
        client.replace_string(rfc.id, "JWT", "PASETO")
        ```

    Pass ``http_client`` to reuse an existing ``httpx.Client`` (e.g. a
    FastAPI ``TestClient``).
    """

    def __init__(
        self,
        base_url: str = "http://localhost:8000",
        timeout: float = 30.0,
        http_client: Optional[httpx.Client] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self._client = http_client or httpx.Client(
            base_url=self.base_url,
            headers={"Content-Type": "application/json"},
            timeout=timeout,
        )

    def _handle_response(self, response: httpx.Response) -> Any:
        """Handle HTTP response and raise appropriate exceptions."""
        if response.status_code < 400:
            return response.json() if response.content else {}

        data = response.json() if response.content else {}
        message = data.get("message") or f"Request failed with status {response.status_code}"
        if response.status_code == 400:
            raise ValidationError(message, errors=data.get("detail", []))
        if response.status_code == 403:
            raise PermissionDeniedError(message)
        if response.status_code == 404:
            raise NotFoundError(message)
        if response.status_code == 409:
            raise ConflictError(message, current_version=data.get("current_version"))
        raise OpenRFCError(message)

    def _get(self, path: str, **params: Any) -> Any:
        params = {k: v for k, v in params.items() if v is not None}
        return self._handle_response(self._client.get(f"/api/v1{path}", params=params))

    def _post(self, path: str, body: dict) -> Any:
        return self._handle_response(self._client.post(f"/api/v1{path}", json=body))

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "OpenRFCClient":
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()

    # ==================== Agents ====================

    def create_agent(
        self,
        agent_type: str,
        name: str,
        capabilities: Optional[dict[str, bool]] = None,
        agent_id: Optional[str] = None,
    ) -> Agent:
        body = {"type": getattr(agent_type, "value", agent_type), "name": name}
        if capabilities is not None:
            body["capabilities"] = capabilities
        if agent_id is not None:
            body["id"] = agent_id
        return Agent.from_dict(self._post("/agents", body))

    def get_agent(self, agent_id: str) -> Agent:
        return Agent.from_dict(self._get(f"/agents/{agent_id}"))

    def list_agents(self) -> list[Agent]:
        return [Agent.from_dict(a) for a in self._get("/agents")]

    # ==================== RFC documents ====================

    def create_rfc(self, title: str, content: str, author: str, requesting_user: str) -> RFC:
        return RFC.from_dict(
            self._post(
                "/rfcs",
                {
                    "title": title,
                    "content": content,
                    "author": author,
                    "requesting_user": requesting_user,
                },
            )
        )

    def get_rfc(self, rfc_id: str) -> RFC:
        return RFC.from_dict(self._get(f"/rfcs/{rfc_id}"))

    def get_rfc_version(self, rfc_id: str, version: int) -> RFC:
        return RFC.from_dict(self._get(f"/rfcs/{rfc_id}/versions/{version}"))

    def list_rfcs(
        self,
        status: Optional[str] = None,
        author: Optional[str] = None,
        requesting_user: Optional[str] = None,
        created_after: Optional[datetime] = None,
        created_before: Optional[datetime] = None,
    ) -> list[RFC]:
        data = self._get(
            "/rfcs",
            status=getattr(status, "value", status),
            author=author,
            requesting_user=requesting_user,
            created_after=created_after.isoformat() if created_after else None,
            created_before=created_before.isoformat() if created_before else None,
        )
        return [RFC.from_dict(r) for r in data]

    def update_rfc_content(
        self, rfc_id: str, content: str, expected_version: Optional[int] = None
    ) -> RFC:
        response = self._client.put(
            f"/api/v1/rfcs/{rfc_id}/content",
            json={"content": content, "expected_version": expected_version},
        )
        return RFC.from_dict(self._handle_response(response))

    def update_rfc_status(self, rfc_id: str, status: str) -> RFC:
        return RFC.from_dict(
            self._post(f"/rfcs/{rfc_id}/status", {"status": getattr(status, "value", status)})
        )

    def replace_string(
        self, rfc_id: str, old_text: str, new_text: str, replace_all: bool = False
    ) -> RFC:
        return RFC.from_dict(
            self._post(
                f"/rfcs/{rfc_id}/replace",
                {"old_text": old_text, "new_text": new_text, "replace_all": replace_all},
            )
        )

    # ==================== Comments ====================

    def add_comment(
        self,
        rfc_id: str,
        agent_id: str,
        agent_type: str,
        comment_type: str,
        content: str,
        quoted_text: Optional[str] = None,
        line_reference: Optional[int] = None,
    ) -> Comment:
        body = {
            "agent_id": agent_id,
            "agent_type": getattr(agent_type, "value", agent_type),
            "type": getattr(comment_type, "value", comment_type),
            "content": content,
            "quoted_text": quoted_text,
            "line_reference": line_reference,
        }
        return Comment.from_dict(self._post(f"/rfcs/{rfc_id}/comments", body))

    def get_comments_for_rfc(self, rfc_id: str, status: Optional[str] = None) -> list[Comment]:
        data = self._get(f"/rfcs/{rfc_id}/comments", status=getattr(status, "value", status))
        return [Comment.from_dict(c) for c in data]

    def reply_to_comment(
        self, parent_comment_id: str, agent_id: str, agent_type: str, content: str
    ) -> Comment:
        body = {
            "agent_id": agent_id,
            "agent_type": getattr(agent_type, "value", agent_type),
            "content": content,
        }
        return Comment.from_dict(self._post(f"/comments/{parent_comment_id}/replies", body))

    def resolve_comment(self, comment_id: str, resolver_id: str) -> Comment:
        return Comment.from_dict(
            self._post(f"/comments/{comment_id}/resolve", {"agent_id": resolver_id})
        )

    def dismiss_comment(self, comment_id: str, dismisser_id: str) -> Comment:
        return Comment.from_dict(
            self._post(f"/comments/{comment_id}/dismiss", {"agent_id": dismisser_id})
        )

    def get_comment_thread(self, comment_id: str) -> list[Comment]:
        return [Comment.from_dict(c) for c in self._get(f"/comments/{comment_id}/thread")]

    # ==================== Reviews ====================

    def request_review(
        self,
        rfc_id: str,
        requested_by: str,
        reviewer_agent_ids: list[str],
        deadline: Optional[datetime] = None,
    ) -> ReviewRequest:
        body = {
            "requested_by": requested_by,
            "reviewer_agent_ids": reviewer_agent_ids,
            "deadline": deadline.isoformat() if deadline else None,
        }
        return ReviewRequest.from_dict(self._post(f"/rfcs/{rfc_id}/reviews", body))

    def submit_review(
        self,
        review_request_id: str,
        agent_id: str,
        comments: Optional[list[dict[str, Any]]] = None,
    ) -> ReviewRequest:
        """Submit a review. Each comment is a dict with content and optional type/quoted_text."""
        body = {"agent_id": agent_id, "comments": comments or []}
        return ReviewRequest.from_dict(self._post(f"/reviews/{review_request_id}/submit", body))

    def mark_review_in_progress(self, review_request_id: str, agent_id: str) -> ReviewRequest:
        return ReviewRequest.from_dict(
            self._post(f"/reviews/{review_request_id}/in-progress", {"agent_id": agent_id})
        )

    def get_review_status(self, review_request_id: str) -> dict[str, ReviewStatus]:
        data = self._get(f"/reviews/{review_request_id}/status")
        return {k: ReviewStatus(v) for k, v in data["review_statuses"].items()}

    def is_review_complete(self, review_request_id: str) -> bool:
        return bool(self._get(f"/reviews/{review_request_id}/status")["is_complete"])

    def get_active_review_for_rfc(self, rfc_id: str) -> Optional[ReviewRequest]:
        try:
            return ReviewRequest.from_dict(self._get(f"/rfcs/{rfc_id}/reviews/active"))
        except NotFoundError:
            return None

    def get_all_reviews_for_rfc(self, rfc_id: str) -> list[ReviewRequest]:
        return [ReviewRequest.from_dict(r) for r in self._get(f"/rfcs/{rfc_id}/reviews")]

    def add_reviewers_to_active_review(
        self, rfc_id: str, reviewer_ids: list[str]
    ) -> ReviewRequest:
        return ReviewRequest.from_dict(
            self._post(f"/rfcs/{rfc_id}/reviews/active/reviewers", {"reviewer_ids": reviewer_ids})
        )
