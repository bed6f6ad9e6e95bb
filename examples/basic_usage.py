#!/usr/bin/env python3
"""
OpenRFC - Basic Usage Example

Drafts an RFC, collects inline feedback from two reviewers and approves it,
all in process against the in-memory store.

Usage:
    python basic_usage.py
"""

from openrfc import (
    AgentType,
    CommentType,
    ConflictError,
    RFCDomainModel,
    RFCStatus,
)
from openrfc.templates import RFCMetadata, generate_rfc_template


def main():
    model = RFCDomainModel()

    # 1. Register agents
    print("1. Registering agents...")
    lead = model.create_agent(AgentType.LEAD, "Lead Architect")
    backend = model.create_agent(AgentType.BACKEND, "Backend Reviewer")
    security = model.create_agent(AgentType.SECURITY, "Security Reviewer")
    print(f"   Lead: {lead.id}")

    # 2. Draft the RFC
    print("\n2. Drafting RFC...")
    content = generate_rfc_template(
        RFCMetadata(
            title="Token Auth",
            description="Replace session cookies with JWT tokens.",
            author=lead.id,
            status=RFCStatus.DRAFT.value,
            created="2024-01-01",
        ),
        ["problem", "solution", "risks"],
    )
    rfc = model.create_rfc("Token Auth", content, lead.id, "product-team")
    print(f"   Created RFC {rfc.id} (version {rfc.version})")

    # 3. Open a review round
    print("\n3. Requesting review...")
    model.update_rfc_status(rfc.id, RFCStatus.IN_REVIEW)
    review = model.request_review(rfc.id, lead.id, [backend.id, security.id])
    print(f"   Review {review.id} on version {review.rfc_version}")

    # 4. Reviewers comment and submit
    print("\n4. Collecting feedback...")
    comment = model.add_comment(
        rfc_id=rfc.id,
        agent_id=security.id,
        agent_type=security.type,
        comment_type=CommentType.INLINE,
        content="Specify the signing algorithm.",
        quoted_text="JWT tokens",
    )
    model.submit_review(review.id, security.id)
    model.submit_review(review.id, backend.id)
    print(f"   Review complete: {model.is_review_complete(review.id)}")

    # 5. Address feedback
    print("\n5. Addressing feedback...")
    rfc = model.replace_string(rfc.id, "JWT tokens", "RS256-signed JWT tokens")
    model.resolve_comment(comment.id, lead.id)
    print(f"   RFC now at version {rfc.version}")

    # 6. Approve
    print("\n6. Approving...")
    try:
        model.update_rfc_status(rfc.id, RFCStatus.SUPERSEDED)
    except ConflictError as e:
        print(f"   Expected conflict: {e}")
    rfc = model.update_rfc_status(rfc.id, RFCStatus.APPROVED)
    print(f"   Status: {rfc.status.value}")


if __name__ == "__main__":
    main()
