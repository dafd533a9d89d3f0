"""Notification repository - Database operations for notifications"""

from datetime import datetime
from typing import Optional

from sqlalchemy import or_
from sqlalchemy.orm import Query, Session

from ...models import Notification, Priority

# Channels the external dispatcher can report on
CHANNEL_FIELDS = {
    "email": ("is_email_sent", "email_sent_at", "email_id"),
    "sms": ("is_sms_sent", "sms_sent_at", "sms_id"),
    "push": ("is_push_sent", "push_sent_at", "push_id"),
}


class NotificationRepository:
    """Repository for notification database operations"""

    @staticmethod
    def add_many(db: Session, notifications: list[Notification]) -> list[Notification]:
        """Persist a batch of notifications in one commit"""
        db.add_all(notifications)
        db.commit()
        for notification in notifications:
            db.refresh(notification)
        return notifications

    @staticmethod
    def get_by_id(db: Session, notification_id: int) -> Optional[Notification]:
        return db.query(Notification).filter(Notification.id == notification_id).first()

    @staticmethod
    def query_for_user(db: Session, user_id: int, unread_only: bool = False) -> Query:
        query = db.query(Notification).filter(Notification.user_id == user_id)
        if unread_only:
            query = query.filter(Notification.is_read.is_(False))
        return query.order_by(Notification.created_at.desc(), Notification.id.desc())

    @staticmethod
    def count_unread(db: Session, user_id: int) -> int:
        return (
            db.query(Notification)
            .filter(Notification.user_id == user_id, Notification.is_read.is_(False))
            .count()
        )

    @staticmethod
    def mark_all_read(db: Session, user_id: int, now: datetime, notification_type: Optional[str] = None) -> int:
        query = db.query(Notification).filter(
            Notification.user_id == user_id, Notification.is_read.is_(False)
        )
        if notification_type:
            query = query.filter(Notification.type == notification_type)
        updated = query.update(
            {Notification.is_read: True, Notification.read_at: now}, synchronize_session=False
        )
        db.commit()
        return updated

    @staticmethod
    def get_pending(db: Session, channel: str, now: datetime, limit: int = 100) -> list[Notification]:
        """Unsent, unexpired notifications for a delivery channel, oldest first"""
        sent_flag = getattr(Notification, CHANNEL_FIELDS[channel][0])
        query = db.query(Notification).filter(
            sent_flag.is_(False),
            or_(Notification.expires_at.is_(None), Notification.expires_at > now),
        )
        if channel == "sms":
            # SMS is reserved for high-priority notifications
            query = query.filter(
                Notification.priority.in_([Priority.HIGH.value, Priority.URGENT.value])
            )
        return query.order_by(Notification.created_at.asc(), Notification.id.asc()).limit(limit).all()

    @staticmethod
    def delete_expired(db: Session, now: datetime) -> int:
        deleted = (
            db.query(Notification)
            .filter(Notification.expires_at.isnot(None), Notification.expires_at < now)
            .delete(synchronize_session=False)
        )
        db.commit()
        return deleted

    @staticmethod
    def delete_read_before(db: Session, cutoff: datetime) -> int:
        deleted = (
            db.query(Notification)
            .filter(Notification.is_read.is_(True), Notification.created_at < cutoff)
            .delete(synchronize_session=False)
        )
        db.commit()
        return deleted

    @staticmethod
    def save(db: Session, notification: Notification) -> Notification:
        db.commit()
        db.refresh(notification)
        return notification

    @staticmethod
    def delete(db: Session, notification: Notification) -> None:
        db.delete(notification)
        db.commit()
