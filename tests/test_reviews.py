"""Review workflow service tests"""

import pytest

from medreview.domain.reviews.schemas import RatingsInput, ReviewComplete, ReviewCreate, ReviewUpdate
from medreview.domain.reviews.service import ReviewService, round_one_decimal
from medreview.models import Notification, NotificationType, Order, OrderStatus, UserRole
from medreview.shared.exceptions import (
    AlreadyComplete,
    Conflict,
    InvalidInput,
    InvalidReviewer,
    NotAssigned,
    NotFound,
)


def draft(order_id, **fields):
    data = {"orderId": order_id, "title": "Findings", "content": "Imaging is consistent with ..."}
    data.update(fields)
    return ReviewCreate(**data)


class TestCreateReview:
    def test_assigned_reviewer_can_create(self, db, assigned_order, reviewer, customer):
        review = ReviewService(db).create_review(reviewer.id, draft(assigned_order.id))

        assert review.is_complete is False
        assert review.severity == "MEDIUM"
        notes = db.query(Notification).filter(Notification.user_id == customer.id).all()
        assert notes[-1].title == "Review Available"
        assert notes[-1].type == NotificationType.REVIEW_COMPLETED.value

    def test_unassigned_reviewer_is_rejected(self, db, assigned_order, make_user):
        stranger = make_user(UserRole.REVIEWER)
        with pytest.raises(NotAssigned):
            ReviewService(db).create_review(stranger.id, draft(assigned_order.id))

    def test_customer_is_not_assigned(self, db, assigned_order, customer):
        with pytest.raises(NotAssigned):
            ReviewService(db).create_review(customer.id, draft(assigned_order.id))

    def test_assignee_without_reviewer_role(self, db, assigned_order, reviewer):
        reviewer.role = UserRole.CUSTOMER.value
        db.commit()

        with pytest.raises(InvalidReviewer):
            ReviewService(db).create_review(reviewer.id, draft(assigned_order.id))

    def test_missing_order(self, db, reviewer):
        with pytest.raises(NotFound):
            ReviewService(db).create_review(reviewer.id, draft(999))

    def test_tags_are_normalized(self, db, assigned_order, reviewer):
        review = ReviewService(db).create_review(
            reviewer.id, draft(assigned_order.id, tags=[" Cardiology ", "cardiology", "", "ECG"])
        )
        assert review.tags == ["cardiology", "ecg"]

    def test_overall_rating_is_derived(self, db, assigned_order, reviewer):
        review = ReviewService(db).create_review(
            reviewer.id,
            draft(assigned_order.id, ratings=RatingsInput(clarity=4, accuracy=5, completeness=4)),
        )
        assert review.rating_overall == 4.3

    def test_created_complete_completes_order(self, db, assigned_order, reviewer):
        ReviewService(db).create_review(reviewer.id, draft(assigned_order.id, isComplete=True))

        order = db.get(Order, assigned_order.id)
        assert order.status == OrderStatus.COMPLETED.value
        assert order.completed_at is not None


class TestCompleteReview:
    def test_complete_sets_order_completed(self, db, assigned_order, reviewer):
        service = ReviewService(db)
        review = service.create_review(reviewer.id, draft(assigned_order.id))

        completed = service.complete_review(
            review.id, ReviewComplete(recommendations="Follow up in 6 months", attachments=["a.pdf", "a.pdf"])
        )

        assert completed.is_complete is True
        assert completed.recommendations == "Follow up in 6 months"
        assert completed.attachments == ["a.pdf"]
        order = db.get(Order, assigned_order.id)
        assert order.status == OrderStatus.COMPLETED.value
        assert order.completed_at is not None

    def test_complete_twice(self, db, assigned_order, reviewer):
        service = ReviewService(db)
        review = service.create_review(reviewer.id, draft(assigned_order.id))
        service.complete_review(review.id)

        with pytest.raises(AlreadyComplete):
            service.complete_review(review.id)

    def test_completed_review_cannot_be_edited_or_deleted(self, db, assigned_order, reviewer):
        service = ReviewService(db)
        review = service.create_review(reviewer.id, draft(assigned_order.id))
        service.complete_review(review.id)

        with pytest.raises(AlreadyComplete):
            service.update_review(review.id, ReviewUpdate(title="Changed"))
        with pytest.raises(Conflict):
            service.delete_review(review.id)

    def test_draft_can_be_deleted(self, db, assigned_order, reviewer):
        service = ReviewService(db)
        review = service.create_review(reviewer.id, draft(assigned_order.id))
        service.delete_review(review.id)

        with pytest.raises(NotFound):
            service.get_review(review.id)


class TestTagsRatingsAttachments:
    def test_add_tags_is_idempotent(self, db, assigned_order, reviewer):
        service = ReviewService(db)
        review = service.create_review(reviewer.id, draft(assigned_order.id, tags=["mri"]))

        service.add_tags(review.id, ["MRI", "Knee"])
        review = service.add_tags(review.id, ["knee"])

        assert review.tags == ["mri", "knee"]

    def test_remove_tag(self, db, assigned_order, reviewer):
        service = ReviewService(db)
        review = service.create_review(reviewer.id, draft(assigned_order.id, tags=["mri", "knee"]))

        review = service.remove_tag(review.id, " MRI ")
        assert review.tags == ["knee"]
        review = service.remove_tag(review.id, "absent")
        assert review.tags == ["knee"]

    def test_rating_out_of_range(self, db, assigned_order, reviewer):
        service = ReviewService(db)
        review = service.create_review(reviewer.id, draft(assigned_order.id))

        with pytest.raises(InvalidInput):
            service.add_rating(review.id, RatingsInput(clarity=6))

    def test_add_attachment_dedupes(self, db, assigned_order, reviewer):
        service = ReviewService(db)
        review = service.create_review(reviewer.id, draft(assigned_order.id))

        service.add_attachment(review.id, "reports/1.pdf")
        review = service.add_attachment(review.id, "reports/1.pdf")
        assert review.attachments == ["reports/1.pdf"]

    def test_round_half_up(self):
        assert round_one_decimal(4.25) == 4.3
        assert round_one_decimal(13 / 3) == 4.3
        assert round_one_decimal(3.0) == 3.0


class TestListingsAndStats:
    def test_list_by_reviewer_filters(self, db, assigned_order, reviewer):
        service = ReviewService(db)
        first = service.create_review(reviewer.id, draft(assigned_order.id, reviewTime=30))
        service.create_review(reviewer.id, draft(assigned_order.id, reviewTime=60, severity="HIGH"))
        service.complete_review(first.id)

        done = service.list_by_reviewer(reviewer.id, is_complete=True)
        assert done["total"] == 1

        stats = service.stats(reviewer.id)
        assert stats["total_reviews"] == 2
        assert stats["completed_reviews"] == 1
        assert stats["average_review_time"] == 45
        assert stats["severity_distribution"]["HIGH"] == 1
