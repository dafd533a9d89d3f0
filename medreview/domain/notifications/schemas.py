"""Notification domain schemas - Pydantic models for validation"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class NotificationResponse(BaseModel):
    """Schema for notification response"""

    id: int
    userId: int
    orderId: Optional[int] = None
    title: str
    message: str
    type: str
    priority: str
    actionUrl: Optional[str] = None
    isRead: bool
    readAt: Optional[datetime] = None
    isEmailSent: bool
    isSmsSent: bool
    isPushSent: bool
    expiresAt: Optional[datetime] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class NotificationListResponse(BaseModel):
    items: list[NotificationResponse]
    total: int
    page: int
    pages: int


class UnreadCountResponse(BaseModel):
    count: int


class MarkAllReadRequest(BaseModel):
    type: Optional[str] = None


class MarkSentRequest(BaseModel):
    """Delivery receipt reported by the dispatcher"""

    reference: Optional[str] = Field(None, max_length=255)


class ExtendExpiryRequest(BaseModel):
    days: int = Field(..., gt=0, le=365)
