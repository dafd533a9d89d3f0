"""Review router - FastAPI endpoints for review operations"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import get_current_user, require_reviewer
from ...database import get_db
from ...models import Review, Severity, User, UserRole
from ...shared.exceptions import Forbidden
from ..orders.service import OrderService
from .schemas import (
    AttachmentRequest,
    RatingsInput,
    ReviewComplete,
    ReviewCreate,
    ReviewListResponse,
    ReviewResponse,
    ReviewStatsResponse,
    ReviewUpdate,
    TagsRequest,
)
from .service import ReviewService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/reviews", tags=["Reviews"])


def get_review_service(db: Session = Depends(get_db)) -> ReviewService:
    """Dependency injection for ReviewService"""
    return ReviewService(db)


def get_order_service(db: Session = Depends(get_db)) -> OrderService:
    return OrderService(db)


def to_response(review: Review) -> ReviewResponse:
    return ReviewResponse(
        id=review.id,
        orderId=review.order_id,
        reviewerId=review.reviewer_id,
        title=review.title,
        content=review.content,
        recommendations=review.recommendations,
        severity=review.severity,
        isComplete=review.is_complete,
        reviewTime=review.review_time,
        tags=review.tags or [],
        attachments=review.attachments or [],
        ratings=RatingsInput(
            clarity=review.rating_clarity,
            accuracy=review.rating_accuracy,
            completeness=review.rating_completeness,
            overall=review.rating_overall,
        ),
        completedAt=review.completed_at,
        created_at=review.created_at,
        updated_at=review.updated_at,
    )


def owned_review(review_id: int, user: User, service: ReviewService) -> Review:
    """The authoring reviewer (or an admin) may change a review"""
    review = service.get_review(review_id)
    if user.role != UserRole.ADMIN.value and review.reviewer_id != user.id:
        raise Forbidden("Only the authoring reviewer can modify this review")
    return review


# ============================================================================
# CORE CRUD OPERATIONS
# ============================================================================


@router.post("", response_model=ReviewResponse, status_code=201)
async def create_review(
    data: ReviewCreate,
    current_user: User = Depends(get_current_user),
    service: ReviewService = Depends(get_review_service),
):
    """Write a review for an order assigned to the current reviewer"""
    return to_response(service.create_review(current_user.id, data))


@router.get("/mine", response_model=ReviewListResponse)
async def list_my_reviews(
    is_complete: Optional[bool] = Query(None),
    severity: Optional[Severity] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    current_user: User = Depends(require_reviewer),
    service: ReviewService = Depends(get_review_service),
):
    result = service.list_by_reviewer(
        current_user.id, is_complete, severity.value if severity else None, page, limit
    )
    return ReviewListResponse(
        items=[to_response(r) for r in result["items"]],
        total=result["total"],
        page=result["page"],
        pages=result["pages"],
    )


@router.get("/stats", response_model=ReviewStatsResponse)
async def review_stats(
    current_user: User = Depends(require_reviewer),
    service: ReviewService = Depends(get_review_service),
):
    """Statistics for the current reviewer (admins see all reviews)"""
    reviewer_id = None if current_user.role == UserRole.ADMIN.value else current_user.id
    stats = service.stats(reviewer_id)
    return ReviewStatsResponse(
        totalReviews=stats["total_reviews"],
        completedReviews=stats["completed_reviews"],
        averageReviewTime=stats["average_review_time"],
        averageRating=stats["average_rating"],
        severityDistribution=stats["severity_distribution"],
    )


@router.get("/order/{order_id}", response_model=list[ReviewResponse])
async def list_order_reviews(
    order_id: int,
    current_user: User = Depends(get_current_user),
    service: ReviewService = Depends(get_review_service),
    orders: OrderService = Depends(get_order_service),
):
    orders.get_order_for_user(order_id, current_user)
    return [to_response(r) for r in service.list_by_order(order_id)]


@router.get("/{review_id}", response_model=ReviewResponse)
async def get_review(
    review_id: int,
    current_user: User = Depends(get_current_user),
    service: ReviewService = Depends(get_review_service),
    orders: OrderService = Depends(get_order_service),
):
    review = service.get_review(review_id)
    orders.get_order_for_user(review.order_id, current_user)
    return to_response(review)


@router.put("/{review_id}", response_model=ReviewResponse)
async def update_review(
    review_id: int,
    data: ReviewUpdate,
    current_user: User = Depends(get_current_user),
    service: ReviewService = Depends(get_review_service),
):
    owned_review(review_id, current_user, service)
    return to_response(service.update_review(review_id, data))


@router.delete("/{review_id}")
async def delete_review(
    review_id: int,
    current_user: User = Depends(get_current_user),
    service: ReviewService = Depends(get_review_service),
):
    owned_review(review_id, current_user, service)
    service.delete_review(review_id)
    return {"message": "Review deleted"}


# ============================================================================
# WORKFLOW
# ============================================================================


@router.post("/{review_id}/complete", response_model=ReviewResponse)
async def complete_review(
    review_id: int,
    data: ReviewComplete,
    current_user: User = Depends(get_current_user),
    service: ReviewService = Depends(get_review_service),
):
    owned_review(review_id, current_user, service)
    return to_response(service.complete_review(review_id, data))


@router.post("/{review_id}/ratings", response_model=ReviewResponse)
async def rate_review(
    review_id: int,
    data: RatingsInput,
    current_user: User = Depends(get_current_user),
    service: ReviewService = Depends(get_review_service),
):
    owned_review(review_id, current_user, service)
    return to_response(service.add_rating(review_id, data))


@router.post("/{review_id}/tags", response_model=ReviewResponse)
async def add_tags(
    review_id: int,
    data: TagsRequest,
    current_user: User = Depends(get_current_user),
    service: ReviewService = Depends(get_review_service),
):
    owned_review(review_id, current_user, service)
    return to_response(service.add_tags(review_id, data.tags))


@router.delete("/{review_id}/tags/{tag}", response_model=ReviewResponse)
async def remove_tag(
    review_id: int,
    tag: str,
    current_user: User = Depends(get_current_user),
    service: ReviewService = Depends(get_review_service),
):
    owned_review(review_id, current_user, service)
    return to_response(service.remove_tag(review_id, tag))


@router.post("/{review_id}/attachments", response_model=ReviewResponse)
async def add_attachment(
    review_id: int,
    data: AttachmentRequest,
    current_user: User = Depends(get_current_user),
    service: ReviewService = Depends(get_review_service),
):
    owned_review(review_id, current_user, service)
    return to_response(service.add_attachment(review_id, data.locator))


__all__ = ["router"]
