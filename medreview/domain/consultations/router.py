"""Consultation router - FastAPI endpoints for consultation scheduling"""

import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import get_current_user, require_admin
from ...database import get_db
from ...models import Consultation, ConsultationStatus, User, UserRole
from ...shared.dates import to_naive_utc
from ...shared.exceptions import Forbidden
from ..orders.service import OrderService
from .schemas import (
    AvailableSlotsResponse,
    CancelRequest,
    CompleteRequest,
    ConsultationCreate,
    ConsultationResponse,
    ConsultationStatsResponse,
    RatingRequest,
    ReminderRequest,
    RescheduleRequest,
    SlotResponse,
)
from .service import ConsultationService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/consultations", tags=["Consultations"])


def get_consultation_service(db: Session = Depends(get_db)) -> ConsultationService:
    """Dependency injection for ConsultationService"""
    return ConsultationService(db)


def get_order_service(db: Session = Depends(get_db)) -> OrderService:
    return OrderService(db)


def to_response(c: Consultation) -> ConsultationResponse:
    return ConsultationResponse(
        id=c.id,
        orderId=c.order_id,
        customerId=c.customer_id,
        reviewerId=c.reviewer_id,
        scheduledDate=c.scheduled_date,
        duration=c.duration,
        status=c.status,
        meetingLink=c.meeting_link,
        notes=c.notes,
        customerNotes=c.customer_notes,
        reviewerNotes=c.reviewer_notes,
        recordingUrl=c.recording_url,
        transcriptUrl=c.transcript_url,
        actualStartTime=c.actual_start_time,
        actualEndTime=c.actual_end_time,
        actualDuration=c.actual_duration,
        customerRating=c.customer_rating,
        reviewerRating=c.reviewer_rating,
        reminder24hSent=c.reminder_24h_sent,
        reminder1hSent=c.reminder_1h_sent,
        reminder15minSent=c.reminder_15min_sent,
        rescheduleHistory=c.reschedule_history or [],
        created_at=c.created_at,
    )


def participant_consultation(
    consultation_id: int, user: User, service: ConsultationService
) -> Consultation:
    consultation = service.get_consultation(consultation_id)
    if user.role != UserRole.ADMIN.value and user.id not in (
        consultation.customer_id,
        consultation.reviewer_id,
    ):
        raise Forbidden("Not allowed to access this consultation")
    return consultation


# ============================================================================
# SCHEDULING
# ============================================================================


@router.post("", response_model=ConsultationResponse, status_code=201)
async def schedule_consultation(
    data: ConsultationCreate,
    current_user: User = Depends(get_current_user),
    service: ConsultationService = Depends(get_consultation_service),
    orders: OrderService = Depends(get_order_service),
):
    """Book a consultation for one of the customer's orders"""
    if current_user.role == UserRole.ADMIN.value and data.customerId:
        customer_id = data.customerId
    else:
        order = orders.get_order(data.orderId)
        if current_user.id != order.customer_id:
            raise Forbidden("Only the order's customer can book a consultation")
        customer_id = current_user.id
    return to_response(service.schedule(customer_id, data))


@router.get("", response_model=list[ConsultationResponse])
async def list_consultations(
    status: Optional[ConsultationStatus] = Query(None),
    current_user: User = Depends(get_current_user),
    service: ConsultationService = Depends(get_consultation_service),
):
    return [to_response(c) for c in service.list_for_user(current_user, status.value if status else None)]


@router.get("/upcoming", response_model=list[ConsultationResponse])
async def list_upcoming(
    limit: int = Query(10, ge=1, le=100),
    current_user: User = Depends(get_current_user),
    service: ConsultationService = Depends(get_consultation_service),
):
    return [to_response(c) for c in service.list_upcoming(current_user.id, limit)]


@router.get("/past-due", response_model=list[ConsultationResponse])
async def list_past_due(
    _admin: User = Depends(require_admin),
    service: ConsultationService = Depends(get_consultation_service),
):
    return [to_response(c) for c in service.list_past_due()]


@router.get("/stats", response_model=ConsultationStatsResponse)
async def consultation_stats(
    start: Optional[datetime] = Query(None),
    end: Optional[datetime] = Query(None),
    current_user: User = Depends(get_current_user),
    service: ConsultationService = Depends(get_consultation_service),
):
    """Admins see every consultation, others only their own"""
    stats = service.stats(current_user, to_naive_utc(start), to_naive_utc(end))
    return ConsultationStatsResponse(
        totalConsultations=stats["total_consultations"],
        byStatus=stats["by_status"],
        averageDuration=stats["average_duration"],
        averageActualDuration=stats["average_actual_duration"],
        averageRating=stats["average_rating"],
    )


@router.get("/available-slots/{reviewer_id}", response_model=AvailableSlotsResponse)
async def available_slots(
    reviewer_id: int,
    start: Optional[datetime] = Query(None),
    days: int = Query(7, ge=1, le=31),
    _user: User = Depends(get_current_user),
    service: ConsultationService = Depends(get_consultation_service),
):
    """Open one-hour slots for a reviewer over the coming days"""
    result = service.available_slots(reviewer_id, to_naive_utc(start), days)
    reviewer = result["reviewer"]
    return AvailableSlotsResponse(
        reviewerId=reviewer.id,
        reviewerName=reviewer.name,
        specialization=reviewer.specialization,
        hourlyRate=reviewer.hourly_rate,
        slots=[SlotResponse(**slot) for slot in result["slots"]],
    )


@router.get("/{consultation_id}", response_model=ConsultationResponse)
async def get_consultation(
    consultation_id: int,
    current_user: User = Depends(get_current_user),
    service: ConsultationService = Depends(get_consultation_service),
):
    return to_response(participant_consultation(consultation_id, current_user, service))


# ============================================================================
# LIFECYCLE
# ============================================================================


@router.post("/{consultation_id}/reschedule", response_model=ConsultationResponse)
async def reschedule_consultation(
    consultation_id: int,
    data: RescheduleRequest,
    current_user: User = Depends(get_current_user),
    service: ConsultationService = Depends(get_consultation_service),
):
    participant_consultation(consultation_id, current_user, service)
    return to_response(service.reschedule(consultation_id, data.newDate, data.reason, current_user.id))


@router.post("/{consultation_id}/start", response_model=ConsultationResponse)
async def start_consultation(
    consultation_id: int,
    current_user: User = Depends(get_current_user),
    service: ConsultationService = Depends(get_consultation_service),
):
    participant_consultation(consultation_id, current_user, service)
    return to_response(service.start(consultation_id))


@router.post("/{consultation_id}/complete", response_model=ConsultationResponse)
async def complete_consultation(
    consultation_id: int,
    data: CompleteRequest,
    current_user: User = Depends(get_current_user),
    service: ConsultationService = Depends(get_consultation_service),
):
    participant_consultation(consultation_id, current_user, service)
    return to_response(
        service.complete(consultation_id, data.notes, data.recordingUrl, data.transcriptUrl)
    )


@router.post("/{consultation_id}/cancel", response_model=ConsultationResponse)
async def cancel_consultation(
    consultation_id: int,
    data: CancelRequest,
    current_user: User = Depends(get_current_user),
    service: ConsultationService = Depends(get_consultation_service),
):
    participant_consultation(consultation_id, current_user, service)
    return to_response(service.cancel(consultation_id, data.reason))


@router.post("/{consultation_id}/rating", response_model=ConsultationResponse)
async def rate_consultation(
    consultation_id: int,
    data: RatingRequest,
    current_user: User = Depends(get_current_user),
    service: ConsultationService = Depends(get_consultation_service),
):
    participant_consultation(consultation_id, current_user, service)
    return to_response(service.add_rating(consultation_id, current_user.id, data.rating, data.feedback))


@router.post("/{consultation_id}/reminders", response_model=ConsultationResponse)
async def send_reminder(
    consultation_id: int,
    data: ReminderRequest,
    _admin: User = Depends(require_admin),
    service: ConsultationService = Depends(get_consultation_service),
):
    return to_response(service.send_reminder(consultation_id, data.kind))


__all__ = ["router"]
