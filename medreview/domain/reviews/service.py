"""Review service - Drafting and completing reviews of assigned orders"""

import logging
import math
from typing import Iterable, Optional

from sqlalchemy.orm import Session

from ...models import NotificationType, Order, OrderStatus, Review, UserRole
from ...shared.dates import utcnow
from ...shared.exceptions import (
    AlreadyComplete,
    Conflict,
    InvalidInput,
    InvalidReviewer,
    NotAssigned,
    NotFound,
)
from ...shared.pagination import paginate
from ...shared.validators import normalize_tag, normalize_tags
from ..notifications.emitter import NotificationEmitter
from ..orders.repository import OrderRepository
from ..orders.service import order_url
from ..users.repository import UserRepository
from .repository import ReviewRepository
from .schemas import RatingsInput, ReviewComplete, ReviewCreate, ReviewUpdate

logger = logging.getLogger(__name__)

RATING_FIELDS = ("clarity", "accuracy", "completeness")


def round_one_decimal(value: float) -> float:
    """Round half up to one decimal place"""
    return math.floor(value * 10 + 0.5) / 10


def merge_unique(existing: Optional[Iterable[str]], additions: Iterable[str]) -> list[str]:
    result = list(existing or [])
    for item in additions:
        if item and item not in result:
            result.append(item)
    return result


class ReviewService:
    """Service layer for review business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = ReviewRepository()
        self.orders = OrderRepository()
        self.users = UserRepository()
        self.notifier = NotificationEmitter(db)

    def get_review(self, review_id: int) -> Review:
        review = self.repo.get_by_id(self.db, review_id)
        if not review:
            raise NotFound("Review not found")
        return review

    def list_by_order(self, order_id: int) -> list[Review]:
        return self.repo.get_by_order(self.db, order_id)

    def list_by_reviewer(
        self,
        reviewer_id: int,
        is_complete: Optional[bool] = None,
        severity: Optional[str] = None,
        page: int = 1,
        limit: int = 10,
    ) -> dict:
        return paginate(self.repo.query_by_reviewer(self.db, reviewer_id, is_complete, severity), page, limit)

    def stats(self, reviewer_id: Optional[int] = None) -> dict:
        return self.repo.get_stats(self.db, reviewer_id)

    # ------------------------------------------------------------------
    # Ratings
    # ------------------------------------------------------------------

    @staticmethod
    def _apply_ratings(review: Review, ratings: RatingsInput) -> None:
        for name in RATING_FIELDS + ("overall",):
            value = getattr(ratings, name)
            if value is not None and not 1 <= value <= 5:
                raise InvalidInput(f"Rating {name} must be between 1 and 5")

        for name in RATING_FIELDS:
            value = getattr(ratings, name)
            if value is not None:
                setattr(review, f"rating_{name}", value)

        if ratings.overall is not None:
            review.rating_overall = ratings.overall
        else:
            scores = [getattr(review, f"rating_{name}") for name in RATING_FIELDS]
            scores = [s for s in scores if s is not None]
            if scores:
                review.rating_overall = round_one_decimal(sum(scores) / len(scores))

    def _complete_order(self, order: Order, now) -> None:
        """Parent order completes in the same unit of work as the review"""
        order.status = OrderStatus.COMPLETED.value
        order.completed_at = now

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def create_review(self, reviewer_id: int, data: ReviewCreate) -> Review:
        order = self.orders.get_by_id(self.db, data.orderId)
        if not order:
            raise NotFound("Order not found")

        if order.reviewer_id != reviewer_id:
            logger.warning(f"⚠️ User {reviewer_id} is not assigned to order {order.id}")
            raise NotAssigned("You are not assigned to this order")

        # The assignee may have lost the reviewer role after assignment
        reviewer = self.users.get_by_id(self.db, reviewer_id)
        if not reviewer or reviewer.role != UserRole.REVIEWER.value:
            raise InvalidReviewer("Only reviewers can write reviews")

        review = Review(
            order_id=order.id,
            reviewer_id=reviewer_id,
            title=data.title,
            content=data.content,
            recommendations=data.recommendations,
            severity=data.severity.value,
            review_time=data.reviewTime,
            tags=data.tags,
            attachments=merge_unique([], data.attachments),
            is_complete=data.isComplete,
        )
        if data.ratings:
            self._apply_ratings(review, data.ratings)

        if data.isComplete:
            now = utcnow()
            review.completed_at = now
            self._complete_order(order, now)

        self.repo.add(self.db, review)
        self.db.commit()
        self.db.refresh(review)
        logger.info(f"✅ Review {review.id} created for order {order.order_number}")

        self.notifier.emit(
            [order.customer_id],
            "Review Available",
            f"A review for your order {order.order_number} is available.",
            NotificationType.REVIEW_COMPLETED,
            order_id=order.id,
            action_url=order_url(order),
        )
        return review

    def update_review(self, review_id: int, data: ReviewUpdate) -> Review:
        review = self.get_review(review_id)
        if review.is_complete:
            raise AlreadyComplete("Completed reviews cannot be edited")

        if data.title is not None:
            review.title = data.title
        if data.content is not None:
            review.content = data.content
        if data.recommendations is not None:
            review.recommendations = data.recommendations
        if data.severity is not None:
            review.severity = data.severity.value
        if data.reviewTime is not None:
            review.review_time = data.reviewTime

        self.db.commit()
        self.db.refresh(review)
        return review

    def complete_review(self, review_id: int, data: Optional[ReviewComplete] = None) -> Review:
        """Finalize a review; the parent order completes with it"""
        review = self.get_review(review_id)
        if review.is_complete:
            logger.warning(f"⚠️ Review {review_id} is already complete")
            raise AlreadyComplete()

        data = data or ReviewComplete()
        if data.recommendations is not None:
            review.recommendations = data.recommendations
        if data.attachments:
            review.attachments = merge_unique(review.attachments, data.attachments)
        if data.ratings:
            self._apply_ratings(review, data.ratings)

        now = utcnow()
        review.is_complete = True
        review.completed_at = now

        order = self.orders.get_by_id(self.db, review.order_id)
        self._complete_order(order, now)

        self.db.commit()
        self.db.refresh(review)
        logger.info(f"✅ Review {review.id} completed, order {order.order_number} completed")

        self.notifier.emit(
            [order.customer_id],
            "Review Completed",
            f"The review for your order {order.order_number} has been completed.",
            NotificationType.REVIEW_COMPLETED,
            order_id=order.id,
            action_url=order_url(order),
        )
        return review

    def add_rating(self, review_id: int, ratings: RatingsInput) -> Review:
        review = self.get_review(review_id)
        self._apply_ratings(review, ratings)
        self.db.commit()
        self.db.refresh(review)
        return review

    def add_tags(self, review_id: int, tags: list[str]) -> Review:
        review = self.get_review(review_id)
        # Assign a new list so the JSON column is flagged dirty
        review.tags = merge_unique(review.tags, normalize_tags(tags))
        self.db.commit()
        self.db.refresh(review)
        return review

    def remove_tag(self, review_id: int, tag: str) -> Review:
        review = self.get_review(review_id)
        cleaned = normalize_tag(tag)
        review.tags = [t for t in (review.tags or []) if t != cleaned]
        self.db.commit()
        self.db.refresh(review)
        return review

    def add_attachment(self, review_id: int, locator: str) -> Review:
        review = self.get_review(review_id)
        review.attachments = merge_unique(review.attachments, [locator.strip()])
        self.db.commit()
        self.db.refresh(review)
        return review

    def delete_review(self, review_id: int) -> None:
        review = self.get_review(review_id)
        if review.is_complete:
            raise Conflict("Completed reviews cannot be deleted")
        self.repo.delete(self.db, review)
        logger.info(f"🗑️ Review {review_id} deleted")
