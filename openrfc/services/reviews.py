"""
Review service: multi-reviewer review rounds.

A round completes when every listed reviewer has submitted; completed_at is
stamped exactly once at that moment. Each RFC has at most one incomplete
round at a time.
"""

import logging
import uuid
from dataclasses import replace
from typing import Optional

from ..exceptions import ConflictError, NotFoundError, PermissionDeniedError
from ..models import (
    Comment,
    RequestReviewParams,
    ReviewRequest,
    ReviewStatus,
    SubmitReviewParams,
    utcnow,
)
from ..storage.base import Storage
from ..validation import (
    ValidationError,
    normalize_datetime,
    validate_list,
    validate_required,
    validate_review_request,
    validate_review_submit,
)
from .comments import require_commenter
from .locks import KeyedLock

logger = logging.getLogger("openrfc.services.reviews")


class ReviewService:
    def __init__(self, storage: Storage, locks: Optional[KeyedLock] = None):
        self.storage = storage
        self.locks = locks or KeyedLock()

    def _require_review(self, review_request_id: str) -> ReviewRequest:
        validate_required(review_request_id, "review_request_id")
        review = self.storage.reviews.get_by_id(review_request_id)
        if review is None:
            raise NotFoundError(
                f"Review request with id {review_request_id} not found",
                resource="review_request",
                resource_id=review_request_id,
            )
        return review

    @staticmethod
    def _require_listed(review: ReviewRequest, agent_id: str) -> None:
        if agent_id not in review.review_statuses:
            raise PermissionDeniedError(
                f"Agent {agent_id} is not a reviewer for review request {review.id}",
                agent_id=agent_id,
            )

    def request_review(self, params: RequestReviewParams) -> ReviewRequest:
        """Open a review round on the RFC's current version."""
        params = replace(params, deadline=normalize_datetime(params.deadline, "deadline"))
        validate_review_request(params)

        # Reviewer ids form an ordered set
        reviewer_ids = list(dict.fromkeys(params.reviewer_agent_ids))

        with self.locks.hold(("rfc-review", params.rfc_id)):
            rfc = self.storage.rfcs.get_by_id(params.rfc_id)
            if rfc is None:
                raise NotFoundError(
                    f"RFC with id {params.rfc_id} not found",
                    resource="rfc",
                    resource_id=params.rfc_id,
                )

            active = self.storage.reviews.get_active_by_rfc(params.rfc_id)
            if active is not None:
                raise ConflictError(
                    f"RFC {params.rfc_id} already has an active review request ({active.id})"
                )

            for reviewer_id in reviewer_ids:
                require_commenter(self.storage, reviewer_id, action="review")

            review = ReviewRequest(
                id=str(uuid.uuid4()),
                rfc_id=rfc.id,
                rfc_version=rfc.version,
                requested_by=params.requested_by,
                reviewer_agent_ids=reviewer_ids,
                review_statuses={rid: ReviewStatus.PENDING for rid in reviewer_ids},
                deadline=params.deadline,
                created_at=utcnow(),
            )
            created = self.storage.reviews.create(review)

        logger.debug(
            "Review %s requested on RFC %s v%d by %s for %s",
            created.id,
            created.rfc_id,
            created.rfc_version,
            created.requested_by,
            ", ".join(reviewer_ids),
        )
        return created

    def submit_review(self, params: SubmitReviewParams) -> ReviewRequest:
        """
        Record one reviewer's submission and store its comments.

        Submitted comments are written straight to comment storage as a
        trusted bulk path. Each must target the RFC under review and carry an
        id not already stored; a bad batch writes nothing.
        """
        validate_review_submit(params)
        validate_list(params.comments, "comments", Comment)

        with self.locks.hold(("review", params.review_request_id)):
            review = self._require_review(params.review_request_id)

            if review.completed_at is not None:
                raise ConflictError(
                    f"Review request {review.id} is already completed"
                )
            self._require_listed(review, params.agent_id)
            if review.review_statuses[params.agent_id] == ReviewStatus.COMPLETED:
                raise ConflictError(
                    f"Agent {params.agent_id} has already submitted their review "
                    f"for review request {review.id}"
                )
            now = utcnow()
            if review.deadline is not None and now > review.deadline:
                raise ConflictError(
                    f"Review deadline for review request {review.id} passed at "
                    f"{review.deadline.isoformat()}"
                )

            batch_ids = set()
            for comment in params.comments:
                if comment.rfc_id != review.rfc_id:
                    raise ValidationError(
                        f"Comment {comment.id} is for RFC {comment.rfc_id}, "
                        f"not RFC {review.rfc_id} under review",
                        field="comments",
                        value=comment.id,
                    )
                if comment.id in batch_ids or self.storage.comments.get_by_id(comment.id):
                    raise ConflictError(f"Comment with id {comment.id} already exists")
                batch_ids.add(comment.id)
            for comment in params.comments:
                self.storage.comments.create(comment)

            statuses = dict(review.review_statuses)
            statuses[params.agent_id] = ReviewStatus.COMPLETED
            review = replace(review, review_statuses=statuses)
            if review.all_reviewers_completed:
                review.completed_at = now
            updated = self.storage.reviews.update(review)

        logger.debug(
            "Agent %s submitted review %s with %d comment(s)%s",
            params.agent_id,
            updated.id,
            len(params.comments),
            " - round complete" if updated.completed_at else "",
        )
        return updated

    def get_review_status(self, review_request_id: str) -> dict[str, ReviewStatus]:
        return dict(self._require_review(review_request_id).review_statuses)

    def is_review_complete(self, review_request_id: str) -> bool:
        return self._require_review(review_request_id).completed_at is not None

    def mark_review_in_progress(self, review_request_id: str, agent_id: str) -> ReviewRequest:
        """Advisory signal that a reviewer has started; not required before submitting."""
        validate_required(agent_id, "agent_id")
        with self.locks.hold(("review", review_request_id)):
            review = self._require_review(review_request_id)
            self._require_listed(review, agent_id)
            if review.review_statuses[agent_id] == ReviewStatus.COMPLETED:
                raise ConflictError(
                    f"Agent {agent_id} has already completed their review "
                    f"for review request {review.id}"
                )
            statuses = dict(review.review_statuses)
            statuses[agent_id] = ReviewStatus.IN_PROGRESS
            return self.storage.reviews.update(replace(review, review_statuses=statuses))

    def get_active_review_for_rfc(self, rfc_id: str) -> Optional[ReviewRequest]:
        return self.storage.reviews.get_active_by_rfc(rfc_id)

    def get_all_reviews_for_rfc(self, rfc_id: str) -> list[ReviewRequest]:
        return self.storage.reviews.get_by_rfc(rfc_id)

    def add_reviewers_to_active_review(
        self, rfc_id: str, reviewer_ids: list[str]
    ) -> ReviewRequest:
        """
        Append reviewers to the RFC's active round with status PENDING.

        Ids already on the round are skipped. All new ids are validated
        before anything is written.
        """
        validate_required(rfc_id, "rfc_id")
        if reviewer_ids is None:
            raise ValidationError("reviewer_ids is required", field="reviewer_ids")
        validate_list(reviewer_ids, "reviewer_ids", str)

        with self.locks.hold(("rfc-review", rfc_id)):
            active = self.storage.reviews.get_active_by_rfc(rfc_id)
            if active is None:
                raise NotFoundError(
                    f"No active review found for RFC {rfc_id}",
                    resource="review_request",
                )

            with self.locks.hold(("review", active.id)):
                # Re-read under the review lock; a submission may have landed.
                review = self._require_review(active.id)
                if review.completed_at is not None:
                    raise ConflictError(
                        f"Review request {review.id} completed before reviewers could be added"
                    )

                new_ids = [
                    rid
                    for rid in dict.fromkeys(reviewer_ids)
                    if rid not in review.review_statuses
                ]
                for reviewer_id in new_ids:
                    require_commenter(self.storage, reviewer_id, action="review")

                if not new_ids:
                    return review

                statuses = dict(review.review_statuses)
                statuses.update({rid: ReviewStatus.PENDING for rid in new_ids})
                updated = self.storage.reviews.update(
                    replace(
                        review,
                        reviewer_agent_ids=review.reviewer_agent_ids + new_ids,
                        review_statuses=statuses,
                    )
                )

        logger.debug("Added reviewers %s to review %s", ", ".join(new_ids), updated.id)
        return updated
