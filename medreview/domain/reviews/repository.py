"""Review repository - Database operations for reviews"""

from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Query, Session

from ...models import Review, Severity


class ReviewRepository:
    """Repository for review database operations"""

    @staticmethod
    def get_by_id(db: Session, review_id: int) -> Optional[Review]:
        return db.query(Review).filter(Review.id == review_id).first()

    @staticmethod
    def get_by_order(db: Session, order_id: int) -> list[Review]:
        return (
            db.query(Review)
            .filter(Review.order_id == order_id)
            .order_by(Review.created_at.asc(), Review.id.asc())
            .all()
        )

    @staticmethod
    def query_by_reviewer(
        db: Session,
        reviewer_id: int,
        is_complete: Optional[bool] = None,
        severity: Optional[str] = None,
    ) -> Query:
        query = db.query(Review).filter(Review.reviewer_id == reviewer_id)
        if is_complete is not None:
            query = query.filter(Review.is_complete.is_(is_complete))
        if severity:
            query = query.filter(Review.severity == severity)
        return query.order_by(Review.created_at.desc(), Review.id.desc())

    @staticmethod
    def add(db: Session, review: Review) -> None:
        db.add(review)

    @staticmethod
    def delete(db: Session, review: Review) -> None:
        db.delete(review)
        db.commit()

    @staticmethod
    def get_stats(db: Session, reviewer_id: Optional[int] = None) -> dict:
        base = db.query(Review)
        if reviewer_id is not None:
            base = base.filter(Review.reviewer_id == reviewer_id)

        total = base.count()
        completed = base.filter(Review.is_complete.is_(True)).count()
        avg_time, avg_rating = base.with_entities(
            func.avg(Review.review_time), func.avg(Review.rating_overall)
        ).one()
        severity_counts = dict(
            base.with_entities(Review.severity, func.count(Review.id)).group_by(Review.severity).all()
        )

        return {
            "total_reviews": total,
            "completed_reviews": completed,
            "average_review_time": float(avg_time) if avg_time is not None else None,
            "average_rating": float(avg_rating) if avg_rating is not None else None,
            "severity_distribution": {s.value: severity_counts.get(s.value, 0) for s in Severity},
        }
