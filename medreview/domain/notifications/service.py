"""Notification service - Inbox and delivery bookkeeping"""

import logging
from datetime import timedelta
from typing import Optional

from sqlalchemy.orm import Session

from ...config import NOTIFICATION_RETENTION_DAYS
from ...models import Notification, User, UserRole
from ...shared.dates import utcnow
from ...shared.exceptions import Forbidden, InvalidInput, NotFound
from ...shared.pagination import paginate
from .repository import CHANNEL_FIELDS, NotificationRepository

logger = logging.getLogger(__name__)


class NotificationService:
    """Service layer for notification business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = NotificationRepository()

    def list_for_user(self, user: User, unread_only: bool = False, page: int = 1, limit: int = 20) -> dict:
        return paginate(self.repo.query_for_user(self.db, user.id, unread_only), page, limit)

    def unread_count(self, user: User) -> int:
        return self.repo.count_unread(self.db, user.id)

    def get_notification(self, notification_id: int, user: Optional[User] = None) -> Notification:
        """Get a notification; when a user is given it must be theirs (or an admin)"""
        notification = self.repo.get_by_id(self.db, notification_id)
        if not notification:
            raise NotFound("Notification not found")
        if user and notification.user_id != user.id and user.role != UserRole.ADMIN.value:
            raise Forbidden("Not allowed to access this notification")
        return notification

    def mark_read(self, notification_id: int, user: User) -> Notification:
        notification = self.get_notification(notification_id, user)
        if not notification.is_read:
            notification.is_read = True
            notification.read_at = utcnow()
        return self.repo.save(self.db, notification)

    def mark_unread(self, notification_id: int, user: User) -> Notification:
        notification = self.get_notification(notification_id, user)
        notification.is_read = False
        notification.read_at = None
        return self.repo.save(self.db, notification)

    def mark_all_read(self, user: User, notification_type: Optional[str] = None) -> int:
        updated = self.repo.mark_all_read(self.db, user.id, utcnow(), notification_type)
        logger.info(f"✅ Marked {updated} notifications read for user {user.id}")
        return updated

    def mark_sent(self, notification_id: int, channel: str, reference: Optional[str] = None) -> Notification:
        """Record delivery on a channel (email, sms or push)"""
        if channel not in CHANNEL_FIELDS:
            raise InvalidInput(f"Unknown delivery channel: {channel}")
        notification = self.get_notification(notification_id)

        flag, sent_at, ref_field = CHANNEL_FIELDS[channel]
        setattr(notification, flag, True)
        setattr(notification, sent_at, utcnow())
        if reference:
            setattr(notification, ref_field, reference)

        logger.info(f"📨 Notification {notification_id} delivered via {channel}")
        return self.repo.save(self.db, notification)

    def get_pending(self, channel: str, limit: int = 100) -> list[Notification]:
        if channel not in CHANNEL_FIELDS:
            raise InvalidInput(f"Unknown delivery channel: {channel}")
        return self.repo.get_pending(self.db, channel, utcnow(), limit)

    def extend_expiry(self, notification_id: int, days: int) -> Notification:
        if days <= 0:
            raise InvalidInput("Days must be positive")
        notification = self.get_notification(notification_id)
        base = notification.expires_at or utcnow()
        notification.expires_at = base + timedelta(days=days)
        return self.repo.save(self.db, notification)

    def delete_notification(self, notification_id: int, user: User) -> None:
        notification = self.get_notification(notification_id, user)
        self.repo.delete(self.db, notification)

    def delete_expired(self) -> int:
        deleted = self.repo.delete_expired(self.db, utcnow())
        logger.info(f"🧹 Removed {deleted} expired notifications")
        return deleted

    def cleanup_read(self, days: int = NOTIFICATION_RETENTION_DAYS) -> int:
        cutoff = utcnow() - timedelta(days=days)
        deleted = self.repo.delete_read_before(self.db, cutoff)
        logger.info(f"🧹 Removed {deleted} read notifications older than {days} days")
        return deleted
