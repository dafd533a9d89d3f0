"""Consultation service - Scheduling and running reviewer consultations"""

import logging
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy.orm import Session

from ... import config
from ...models import (
    Consultation,
    ConsultationStatus,
    NotificationType,
    Priority,
    UserRole,
    generate_meeting_suffix,
)
from ...shared.dates import utcnow
from ...shared.exceptions import (
    InvalidDate,
    InvalidInput,
    InvalidReviewer,
    InvalidState,
    NotFound,
    SlotTaken,
)
from ..notifications.emitter import NotificationEmitter
from ..orders.repository import OrderRepository
from ..users.repository import UserRepository
from .repository import ConsultationRepository
from .schemas import ConsultationCreate
from .slots import DEFAULT_WINDOW_DAYS, compute_available_slots

logger = logging.getLogger(__name__)

MIN_DURATION = 15
MAX_DURATION = 180

# Reminders fire when the start time is within this many minutes of the target window
REMINDER_TOLERANCE_MINUTES = 5

# minutes ahead -> (reminder kind, flag column)
REMINDER_WINDOWS = {
    1440: ("24h", "reminder_24h_sent"),
    60: ("1h", "reminder_1h_sent"),
    15: ("15min", "reminder_15min_sent"),
}
REMINDER_FLAGS = {kind: flag for kind, flag in REMINDER_WINDOWS.values()}
REMINDER_LABELS = {"24h": "in 24 hours", "1h": "in 1 hour", "15min": "in 15 minutes"}


def consultation_url(consultation: Consultation) -> str:
    return f"{config.FRONTEND_URL}/consultations/{consultation.id}"


class ConsultationService:
    """Service layer for consultation business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = ConsultationRepository()
        self.orders = OrderRepository()
        self.users = UserRepository()
        self.notifier = NotificationEmitter(db)

    def get_consultation(self, consultation_id: int) -> Consultation:
        consultation = self.repo.get_by_id(self.db, consultation_id)
        if not consultation:
            raise NotFound("Consultation not found")
        return consultation

    def _notify_parties(
        self,
        consultation: Consultation,
        title: str,
        message: str,
        kind: NotificationType = NotificationType.CONSULTATION_SCHEDULED,
        priority: Priority = Priority.MEDIUM,
    ) -> None:
        self.notifier.emit(
            [consultation.customer_id, consultation.reviewer_id],
            title,
            message,
            kind,
            order_id=consultation.order_id,
            priority=priority,
            action_url=consultation_url(consultation),
        )

    def _ensure_slot_free(
        self, reviewer_id: int, start: datetime, duration: int, exclude_id: Optional[int] = None
    ) -> None:
        conflicts = self.repo.find_conflicts(self.db, reviewer_id, start, duration, exclude_id)
        if conflicts:
            logger.warning(
                f"⚠️ Reviewer {reviewer_id} already booked at {start.isoformat()} "
                f"(conflicts with consultation {conflicts[0].id})"
            )
            raise SlotTaken("Time slot not available")

    @staticmethod
    def _require_status(consultation: Consultation, *allowed: ConsultationStatus) -> None:
        if consultation.status not in {status.value for status in allowed}:
            raise InvalidState(f"Consultation is {consultation.status}")

    # ------------------------------------------------------------------
    # Scheduling
    # ------------------------------------------------------------------

    def schedule(self, customer_id: int, data: ConsultationCreate) -> Consultation:
        """Book a consultation with a reviewer"""
        order = self.orders.get_by_id(self.db, data.orderId)
        if not order:
            raise NotFound("Order not found")
        customer = self.users.get_by_id(self.db, customer_id)
        if not customer:
            raise NotFound("Customer not found")
        reviewer = self.users.get_by_id(self.db, data.reviewerId)
        if not reviewer:
            raise NotFound("Reviewer not found")
        if reviewer.role != UserRole.REVIEWER.value:
            raise InvalidReviewer("Consultations must be booked with a reviewer")

        if data.scheduledDate <= utcnow():
            raise InvalidDate("Consultation must be scheduled in the future")
        if not MIN_DURATION <= data.duration <= MAX_DURATION:
            raise InvalidDate(f"Duration must be between {MIN_DURATION} and {MAX_DURATION} minutes")

        self._ensure_slot_free(reviewer.id, data.scheduledDate, data.duration)

        consultation = self.repo.add(
            self.db,
            Consultation(
                order_id=order.id,
                customer_id=customer.id,
                reviewer_id=reviewer.id,
                scheduled_date=data.scheduledDate,
                duration=data.duration,
                status=ConsultationStatus.SCHEDULED.value,
                meeting_link=data.meetingLink
                or f"{config.MEETING_BASE_URL}/{generate_meeting_suffix()}",
                customer_notes=data.customerNotes,
                reschedule_history=[],
            ),
        )
        logger.info(
            f"📅 Consultation {consultation.id} booked with reviewer {reviewer.id} "
            f"at {consultation.scheduled_date.isoformat()}"
        )

        when = consultation.scheduled_date.strftime("%Y-%m-%d %H:%M UTC")
        self._notify_parties(
            consultation,
            "Consultation Scheduled",
            f"A {consultation.duration}-minute consultation is scheduled for {when}.",
        )
        return consultation

    def reschedule(
        self, consultation_id: int, new_date: datetime, reason: Optional[str], rescheduled_by: int
    ) -> Consultation:
        consultation = self.get_consultation(consultation_id)
        self._require_status(consultation, ConsultationStatus.SCHEDULED)

        if new_date <= utcnow():
            raise InvalidDate("Consultation must be rescheduled to a future time")

        self._ensure_slot_free(
            consultation.reviewer_id, new_date, consultation.duration, exclude_id=consultation.id
        )

        history = list(consultation.reschedule_history or [])
        history.append(
            {
                "previous_date": consultation.scheduled_date.isoformat(),
                "reason": reason,
                "rescheduled_by": rescheduled_by,
                "rescheduled_at": utcnow().isoformat(),
            }
        )
        consultation.reschedule_history = history
        consultation.scheduled_date = new_date
        consultation.reminder_24h_sent = False
        consultation.reminder_1h_sent = False
        consultation.reminder_15min_sent = False
        consultation = self.repo.save(self.db, consultation)
        logger.info(f"🔄 Consultation {consultation.id} rescheduled to {new_date.isoformat()}")

        when = new_date.strftime("%Y-%m-%d %H:%M UTC")
        message = f"Your consultation has been rescheduled to {when}."
        if reason:
            message += f" Reason: {reason}"
        self._notify_parties(consultation, "Consultation Rescheduled", message)
        return consultation

    def available_slots(
        self, reviewer_id: int, start: Optional[datetime] = None, days: int = DEFAULT_WINDOW_DAYS
    ) -> dict:
        reviewer = self.users.get_by_id(self.db, reviewer_id)
        if not reviewer or reviewer.role != UserRole.REVIEWER.value:
            raise NotFound("Reviewer not found")

        now = utcnow()
        window_start = (start or now).replace(hour=0, minute=0, second=0, microsecond=0)
        window_end = window_start + timedelta(days=days)
        booked = self.repo.get_booked_for_reviewer(self.db, reviewer.id, window_start, window_end)

        slots = compute_available_slots(
            now,
            [(c.scheduled_date, c.duration) for c in booked],
            reviewer.hourly_rate or config.DEFAULT_CONSULTATION_RATE,
            start=start,
            days=days,
        )
        return {"reviewer": reviewer, "slots": slots}

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self, consultation_id: int) -> Consultation:
        consultation = self.get_consultation(consultation_id)
        self._require_status(consultation, ConsultationStatus.SCHEDULED)

        consultation.status = ConsultationStatus.IN_PROGRESS.value
        consultation.actual_start_time = utcnow()
        consultation = self.repo.save(self.db, consultation)
        logger.info(f"▶️ Consultation {consultation.id} started")

        self._notify_parties(
            consultation,
            "Consultation Started",
            "Your consultation has started. Join using the meeting link.",
            NotificationType.GENERAL,
            Priority.HIGH,
        )
        return consultation

    def complete(
        self,
        consultation_id: int,
        notes: Optional[str] = None,
        recording_url: Optional[str] = None,
        transcript_url: Optional[str] = None,
    ) -> Consultation:
        consultation = self.get_consultation(consultation_id)
        self._require_status(consultation, ConsultationStatus.IN_PROGRESS)

        consultation.status = ConsultationStatus.COMPLETED.value
        consultation.actual_end_time = utcnow()
        if notes:
            consultation.notes = notes
        if recording_url:
            consultation.recording_url = recording_url
        if transcript_url:
            consultation.transcript_url = transcript_url
        consultation = self.repo.save(self.db, consultation)
        logger.info(f"✅ Consultation {consultation.id} completed")

        self._notify_parties(
            consultation,
            "Consultation Completed",
            "Your consultation has been completed.",
            NotificationType.GENERAL,
        )
        return consultation

    def cancel(self, consultation_id: int, reason: Optional[str] = None) -> Consultation:
        consultation = self.get_consultation(consultation_id)
        self._require_status(consultation, ConsultationStatus.SCHEDULED)

        consultation.status = ConsultationStatus.CANCELLED.value
        if reason:
            note = f"Cancellation reason: {reason}"
            consultation.notes = f"{consultation.notes}\n{note}" if consultation.notes else note
        consultation = self.repo.save(self.db, consultation)
        logger.info(f"🚫 Consultation {consultation.id} cancelled")

        message = "Your consultation has been cancelled."
        if reason:
            message += f" Reason: {reason}"
        self._notify_parties(
            consultation, "Consultation Cancelled", message, NotificationType.GENERAL, Priority.HIGH
        )
        return consultation

    def add_rating(
        self, consultation_id: int, rater_id: int, rating: int, feedback: Optional[str] = None
    ) -> Consultation:
        """Customer and reviewer each rate the other side of the consultation"""
        consultation = self.get_consultation(consultation_id)
        if not 1 <= rating <= 5:
            raise InvalidInput("Rating must be between 1 and 5")

        if rater_id == consultation.customer_id:
            consultation.customer_rating = rating
            consultation.customer_feedback = feedback
        elif rater_id == consultation.reviewer_id:
            consultation.reviewer_rating = rating
            consultation.reviewer_feedback = feedback
        else:
            raise InvalidInput("Only participants can rate a consultation")

        return self.repo.save(self.db, consultation)

    # ------------------------------------------------------------------
    # Reminders
    # ------------------------------------------------------------------

    def find_for_reminders(self, minutes_ahead: int) -> list[Consultation]:
        """Scheduled consultations due a reminder for the given window"""
        window = REMINDER_WINDOWS.get(minutes_ahead)
        if not window:
            return []

        target = utcnow() + timedelta(minutes=minutes_ahead)
        tolerance = timedelta(minutes=REMINDER_TOLERANCE_MINUTES)
        return self.repo.find_for_reminders(self.db, window[1], target - tolerance, target + tolerance)

    def send_reminder(self, consultation_id: int, kind: str) -> Consultation:
        flag = REMINDER_FLAGS.get(kind)
        if not flag:
            raise InvalidInput(f"Unknown reminder kind: {kind}")

        consultation = self.get_consultation(consultation_id)
        setattr(consultation, flag, True)
        consultation = self.repo.save(self.db, consultation)

        when = consultation.scheduled_date.strftime("%Y-%m-%d %H:%M UTC")
        self._notify_parties(
            consultation,
            "Consultation Reminder",
            f"Your consultation starts {REMINDER_LABELS[kind]} ({when}).",
            NotificationType.REMINDER,
            Priority.HIGH if kind != "24h" else Priority.MEDIUM,
        )
        return consultation

    def dispatch_reminders(self) -> dict[str, int]:
        """Send every reminder that is currently due; used by the periodic worker"""
        sent = {}
        for minutes_ahead, (kind, _flag) in REMINDER_WINDOWS.items():
            due = self.find_for_reminders(minutes_ahead)
            for consultation in due:
                self.send_reminder(consultation.id, kind)
            sent[kind] = len(due)
        return sent

    # ------------------------------------------------------------------
    # Listings
    # ------------------------------------------------------------------

    def list_upcoming(self, user_id: int, limit: int = 10) -> list[Consultation]:
        return self.repo.get_upcoming_for_user(self.db, user_id, utcnow(), limit)

    def list_past_due(self) -> list[Consultation]:
        return self.repo.get_past_due(self.db, utcnow())

    def list_for_user(self, user, status: Optional[str] = None) -> list[Consultation]:
        if user.role == UserRole.ADMIN.value:
            return self.repo.get_for_user(self.db, status=status)
        if user.role == UserRole.REVIEWER.value:
            return self.repo.get_for_user(self.db, reviewer_id=user.id, status=status)
        return self.repo.get_for_user(self.db, customer_id=user.id, status=status)

    def stats(self, user, start: Optional[datetime] = None, end: Optional[datetime] = None) -> dict:
        """Counts and averages over the consultations the user takes part in"""
        if start and end and start > end:
            raise InvalidDate("Start date must be before end date")
        if user.role == UserRole.ADMIN.value:
            return self.repo.get_stats(self.db, start=start, end=end)
        if user.role == UserRole.REVIEWER.value:
            return self.repo.get_stats(self.db, reviewer_id=user.id, start=start, end=end)
        return self.repo.get_stats(self.db, customer_id=user.id, start=start, end=end)
