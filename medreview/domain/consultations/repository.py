"""Consultation repository - Database operations for consultations"""

from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from ...models import BOOKED_CONSULTATION_STATUSES, Consultation, ConsultationStatus
from .slots import overlaps

# Longest allowed consultation; bounds the overlap search window
MAX_DURATION_MINUTES = 180


class ConsultationRepository:
    """Repository for consultation database operations"""

    @staticmethod
    def get_by_id(db: Session, consultation_id: int) -> Optional[Consultation]:
        return db.query(Consultation).filter(Consultation.id == consultation_id).first()

    @staticmethod
    def add(db: Session, consultation: Consultation) -> Consultation:
        db.add(consultation)
        db.commit()
        db.refresh(consultation)
        return consultation

    @staticmethod
    def save(db: Session, consultation: Consultation) -> Consultation:
        db.commit()
        db.refresh(consultation)
        return consultation

    @staticmethod
    def get_booked_for_reviewer(
        db: Session,
        reviewer_id: int,
        window_start: Optional[datetime] = None,
        window_end: Optional[datetime] = None,
        exclude_id: Optional[int] = None,
    ) -> list[Consultation]:
        """Scheduled or running consultations that may intersect the window"""
        query = db.query(Consultation).filter(
            Consultation.reviewer_id == reviewer_id,
            Consultation.status.in_(BOOKED_CONSULTATION_STATUSES),
        )
        if window_start is not None:
            query = query.filter(
                Consultation.scheduled_date > window_start - timedelta(minutes=MAX_DURATION_MINUTES)
            )
        if window_end is not None:
            query = query.filter(Consultation.scheduled_date < window_end)
        if exclude_id is not None:
            query = query.filter(Consultation.id != exclude_id)
        return query.order_by(Consultation.scheduled_date.asc()).all()

    @classmethod
    def find_conflicts(
        cls,
        db: Session,
        reviewer_id: int,
        start: datetime,
        duration: int,
        exclude_id: Optional[int] = None,
    ) -> list[Consultation]:
        end = start + timedelta(minutes=duration)
        candidates = cls.get_booked_for_reviewer(db, reviewer_id, start, end, exclude_id)
        return [
            c
            for c in candidates
            if overlaps(start, end, c.scheduled_date, c.scheduled_date + timedelta(minutes=c.duration))
        ]

    @staticmethod
    def find_for_reminders(
        db: Session, flag_field: str, window_start: datetime, window_end: datetime
    ) -> list[Consultation]:
        flag = getattr(Consultation, flag_field)
        return (
            db.query(Consultation)
            .filter(
                Consultation.status == ConsultationStatus.SCHEDULED.value,
                Consultation.scheduled_date >= window_start,
                Consultation.scheduled_date <= window_end,
                flag.is_(False),
            )
            .order_by(Consultation.scheduled_date.asc())
            .all()
        )

    @staticmethod
    def get_upcoming_for_user(db: Session, user_id: int, now: datetime, limit: int = 10) -> list[Consultation]:
        return (
            db.query(Consultation)
            .filter(
                or_(Consultation.customer_id == user_id, Consultation.reviewer_id == user_id),
                Consultation.status == ConsultationStatus.SCHEDULED.value,
                Consultation.scheduled_date >= now,
            )
            .order_by(Consultation.scheduled_date.asc())
            .limit(limit)
            .all()
        )

    @staticmethod
    def get_past_due(db: Session, now: datetime) -> list[Consultation]:
        """Consultations still SCHEDULED after their start time"""
        return (
            db.query(Consultation)
            .filter(
                Consultation.status == ConsultationStatus.SCHEDULED.value,
                Consultation.scheduled_date < now,
            )
            .order_by(Consultation.scheduled_date.asc())
            .all()
        )

    @staticmethod
    def get_for_user(
        db: Session,
        customer_id: Optional[int] = None,
        reviewer_id: Optional[int] = None,
        status: Optional[str] = None,
    ) -> list[Consultation]:
        query = db.query(Consultation)
        if customer_id is not None:
            query = query.filter(Consultation.customer_id == customer_id)
        if reviewer_id is not None:
            query = query.filter(Consultation.reviewer_id == reviewer_id)
        if status:
            query = query.filter(Consultation.status == status)
        return query.order_by(Consultation.scheduled_date.desc()).all()

    @staticmethod
    def get_stats(
        db: Session,
        reviewer_id: Optional[int] = None,
        customer_id: Optional[int] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> dict:
        base = db.query(Consultation)
        if reviewer_id is not None:
            base = base.filter(Consultation.reviewer_id == reviewer_id)
        if customer_id is not None:
            base = base.filter(Consultation.customer_id == customer_id)
        if start is not None:
            base = base.filter(Consultation.scheduled_date >= start)
        if end is not None:
            base = base.filter(Consultation.scheduled_date <= end)

        by_status = dict(
            base.with_entities(Consultation.status, func.count(Consultation.id))
            .group_by(Consultation.status)
            .all()
        )
        total, average_duration = base.with_entities(
            func.count(Consultation.id), func.avg(Consultation.duration)
        ).one()

        # Datetime arithmetic differs between backends, so these are averaged here
        actual = []
        ratings = []
        for c in base.filter(
            or_(
                Consultation.actual_end_time.isnot(None),
                Consultation.customer_rating.isnot(None),
                Consultation.reviewer_rating.isnot(None),
            )
        ).all():
            if c.actual_duration is not None:
                actual.append(c.actual_duration)
            scores = [r for r in (c.customer_rating, c.reviewer_rating) if r is not None]
            if scores:
                ratings.append(sum(scores) / len(scores))

        return {
            "total_consultations": total,
            "by_status": {s.value: by_status.get(s.value, 0) for s in ConsultationStatus},
            "average_duration": float(average_duration) if average_duration is not None else 0.0,
            "average_actual_duration": sum(actual) / len(actual) if actual else 0.0,
            "average_rating": sum(ratings) / len(ratings) if ratings else 0.0,
        }
