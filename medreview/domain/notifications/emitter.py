"""Notification emitter - the single entry point services use to notify users.

Emission runs after the primary change has been committed. A failure here is
logged and swallowed so the caller's mutation stands.
"""

import logging
from datetime import timedelta
from typing import Iterable, Optional

from sqlalchemy.orm import Session

from ...config import NOTIFICATION_TTL_DAYS
from ...models import Notification, NotificationType, Priority
from ...shared.dates import utcnow
from .repository import NotificationRepository

logger = logging.getLogger(__name__)

MAX_TITLE_LENGTH = 200
MAX_MESSAGE_LENGTH = 2000


class NotificationEmitter:
    """Creates one notification per distinct recipient"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = NotificationRepository()

    def emit(
        self,
        recipients: Iterable[Optional[int]],
        title: str,
        message: str,
        notification_type: NotificationType = NotificationType.GENERAL,
        order_id: Optional[int] = None,
        priority: Priority = Priority.MEDIUM,
        action_url: Optional[str] = None,
    ) -> list[Notification]:
        user_ids = []
        for user_id in recipients:
            if user_id is not None and user_id not in user_ids:
                user_ids.append(user_id)

        if not user_ids:
            return []

        expires_at = utcnow() + timedelta(days=NOTIFICATION_TTL_DAYS)
        notifications = [
            Notification(
                user_id=user_id,
                order_id=order_id,
                title=title[:MAX_TITLE_LENGTH],
                message=message[:MAX_MESSAGE_LENGTH],
                type=notification_type.value,
                priority=priority.value,
                action_url=action_url,
                expires_at=expires_at,
            )
            for user_id in user_ids
        ]

        try:
            created = self.repo.add_many(self.db, notifications)
            logger.info(
                f"🔔 {notification_type.value} notification sent to users {user_ids}"
                + (f" for order {order_id}" if order_id else "")
            )
            return created
        except Exception as e:
            self.db.rollback()
            logger.error(f"❌ Failed to emit {notification_type.value} notification to {user_ids}: {e}")
            return []
