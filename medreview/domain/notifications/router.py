"""Notification router - FastAPI endpoints for the user inbox and dispatcher"""

import logging

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import get_current_user, require_admin
from ...database import get_db
from ...models import Notification, User
from .schemas import (
    ExtendExpiryRequest,
    MarkAllReadRequest,
    MarkSentRequest,
    NotificationListResponse,
    NotificationResponse,
    UnreadCountResponse,
)
from .service import NotificationService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/notifications", tags=["Notifications"])


def get_notification_service(db: Session = Depends(get_db)) -> NotificationService:
    """Dependency injection for NotificationService"""
    return NotificationService(db)


def to_response(n: Notification) -> NotificationResponse:
    return NotificationResponse(
        id=n.id,
        userId=n.user_id,
        orderId=n.order_id,
        title=n.title,
        message=n.message,
        type=n.type,
        priority=n.priority,
        actionUrl=n.action_url,
        isRead=n.is_read,
        readAt=n.read_at,
        isEmailSent=n.is_email_sent,
        isSmsSent=n.is_sms_sent,
        isPushSent=n.is_push_sent,
        expiresAt=n.expires_at,
        created_at=n.created_at,
    )


# ============================================================================
# INBOX
# ============================================================================


@router.get("", response_model=NotificationListResponse)
async def list_notifications(
    unread_only: bool = Query(False),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    current_user: User = Depends(get_current_user),
    service: NotificationService = Depends(get_notification_service),
):
    """List the current user's notifications, newest first"""
    result = service.list_for_user(current_user, unread_only, page, limit)
    return NotificationListResponse(
        items=[to_response(n) for n in result["items"]],
        total=result["total"],
        page=result["page"],
        pages=result["pages"],
    )


@router.get("/unread-count", response_model=UnreadCountResponse)
async def unread_count(
    current_user: User = Depends(get_current_user),
    service: NotificationService = Depends(get_notification_service),
):
    return UnreadCountResponse(count=service.unread_count(current_user))


@router.post("/read-all")
async def mark_all_read(
    data: MarkAllReadRequest,
    current_user: User = Depends(get_current_user),
    service: NotificationService = Depends(get_notification_service),
):
    updated = service.mark_all_read(current_user, data.type)
    return {"updated": updated}


@router.post("/{notification_id}/read", response_model=NotificationResponse)
async def mark_read(
    notification_id: int,
    current_user: User = Depends(get_current_user),
    service: NotificationService = Depends(get_notification_service),
):
    return to_response(service.mark_read(notification_id, current_user))


@router.post("/{notification_id}/unread", response_model=NotificationResponse)
async def mark_unread(
    notification_id: int,
    current_user: User = Depends(get_current_user),
    service: NotificationService = Depends(get_notification_service),
):
    return to_response(service.mark_unread(notification_id, current_user))


@router.delete("/{notification_id}")
async def delete_notification(
    notification_id: int,
    current_user: User = Depends(get_current_user),
    service: NotificationService = Depends(get_notification_service),
):
    service.delete_notification(notification_id, current_user)
    return {"message": "Notification deleted"}


# ============================================================================
# DISPATCHER (admin)
# ============================================================================


@router.get("/pending/{channel}", response_model=list[NotificationResponse])
async def pending_notifications(
    channel: str,
    limit: int = Query(100, ge=1, le=500),
    _admin: User = Depends(require_admin),
    service: NotificationService = Depends(get_notification_service),
):
    """Notifications still waiting for delivery on a channel (email, sms, push)"""
    return [to_response(n) for n in service.get_pending(channel, limit)]


@router.post("/{notification_id}/sent/{channel}", response_model=NotificationResponse)
async def mark_sent(
    notification_id: int,
    channel: str,
    data: MarkSentRequest,
    _admin: User = Depends(require_admin),
    service: NotificationService = Depends(get_notification_service),
):
    return to_response(service.mark_sent(notification_id, channel, data.reference))


@router.post("/{notification_id}/extend", response_model=NotificationResponse)
async def extend_expiry(
    notification_id: int,
    data: ExtendExpiryRequest,
    _admin: User = Depends(require_admin),
    service: NotificationService = Depends(get_notification_service),
):
    return to_response(service.extend_expiry(notification_id, data.days))


__all__ = ["router"]
