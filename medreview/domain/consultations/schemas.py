"""Consultation domain schemas - Pydantic models for validation"""

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field, field_validator

from ...shared.dates import to_naive_utc
from ...shared.sanitization import validate_and_sanitize_input


class ConsultationCreate(BaseModel):
    """Schema for booking a consultation"""

    orderId: int
    reviewerId: int
    scheduledDate: datetime
    # Range is checked by the scheduler so it surfaces as InvalidDate
    duration: int = 60
    meetingLink: Optional[str] = Field(None, max_length=500)
    customerNotes: Optional[str] = None
    # Admins may book on behalf of a customer
    customerId: Optional[int] = None

    @field_validator("scheduledDate")
    @classmethod
    def normalize_date(cls, v):
        return to_naive_utc(v)

    @field_validator("customerNotes")
    @classmethod
    def clean_notes(cls, v):
        return validate_and_sanitize_input(v, max_length=2000)


class RescheduleRequest(BaseModel):
    newDate: datetime
    reason: Optional[str] = Field(None, max_length=500)

    @field_validator("newDate")
    @classmethod
    def normalize_date(cls, v):
        return to_naive_utc(v)


class CompleteRequest(BaseModel):
    notes: Optional[str] = None
    recordingUrl: Optional[str] = Field(None, max_length=500)
    transcriptUrl: Optional[str] = Field(None, max_length=500)

    @field_validator("notes")
    @classmethod
    def clean_notes(cls, v):
        return validate_and_sanitize_input(v, max_length=5000)


class CancelRequest(BaseModel):
    reason: Optional[str] = Field(None, max_length=500)


class RatingRequest(BaseModel):
    rating: int
    feedback: Optional[str] = Field(None, max_length=2000)


class ReminderRequest(BaseModel):
    kind: Literal["24h", "1h", "15min"]


class ConsultationResponse(BaseModel):
    """Schema for consultation response"""

    id: int
    orderId: int
    customerId: int
    reviewerId: int
    scheduledDate: datetime
    duration: int
    status: str
    meetingLink: Optional[str] = None
    notes: Optional[str] = None
    customerNotes: Optional[str] = None
    reviewerNotes: Optional[str] = None
    recordingUrl: Optional[str] = None
    transcriptUrl: Optional[str] = None
    actualStartTime: Optional[datetime] = None
    actualEndTime: Optional[datetime] = None
    actualDuration: Optional[int] = None
    customerRating: Optional[int] = None
    reviewerRating: Optional[int] = None
    reminder24hSent: bool
    reminder1hSent: bool
    reminder15minSent: bool
    rescheduleHistory: list[dict] = []
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class SlotResponse(BaseModel):
    start: datetime
    end: datetime
    duration: int
    price: float


class AvailableSlotsResponse(BaseModel):
    reviewerId: int
    reviewerName: str
    specialization: Optional[str] = None
    hourlyRate: Optional[float] = None
    slots: list[SlotResponse]


class ConsultationStatsResponse(BaseModel):
    totalConsultations: int
    byStatus: dict[str, int]
    averageDuration: float
    averageActualDuration: float
    averageRating: float
