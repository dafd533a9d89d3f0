"""Consultation scheduler service tests"""

from datetime import timedelta

import pytest

from medreview.domain.consultations.schemas import ConsultationCreate
from medreview.domain.consultations.service import ConsultationService
from medreview.models import Consultation, ConsultationStatus, Notification, NotificationType, UserRole
from medreview.shared.dates import utcnow
from medreview.shared.exceptions import (
    InvalidDate,
    InvalidInput,
    InvalidReviewer,
    InvalidState,
    NotFound,
    SlotTaken,
)


@pytest.fixture
def start_time():
    return (utcnow() + timedelta(days=3)).replace(hour=10, minute=0, second=0, microsecond=0)


@pytest.fixture
def book(db, assigned_order, customer, reviewer):
    def _book(when, duration=60, reviewer_id=None, **fields):
        data = ConsultationCreate(
            orderId=assigned_order.id,
            reviewerId=reviewer_id or reviewer.id,
            scheduledDate=when,
            duration=duration,
            **fields,
        )
        return ConsultationService(db).schedule(customer.id, data)

    return _book


class TestSchedule:
    def test_schedule_generates_link_and_notifies(self, db, book, start_time, customer, reviewer):
        consultation = book(start_time)

        assert consultation.status == ConsultationStatus.SCHEDULED.value
        assert consultation.meeting_link.startswith("https://meet.medicalreview.com/consult_")
        assert consultation.reschedule_history == []
        for user_id in (customer.id, reviewer.id):
            note = db.query(Notification).filter(Notification.user_id == user_id).all()[-1]
            assert note.type == NotificationType.CONSULTATION_SCHEDULED.value

    def test_supplied_meeting_link_is_kept(self, book, start_time):
        consultation = book(start_time, meetingLink="https://video.example.com/room/1")
        assert consultation.meeting_link == "https://video.example.com/room/1"

    def test_overlap_rules(self, book, start_time):
        book(start_time, 60)

        with pytest.raises(SlotTaken):
            book(start_time + timedelta(minutes=30), 60)

        # Back-to-back bookings do not overlap
        assert book(start_time + timedelta(minutes=60), 60).id
        assert book(start_time + timedelta(minutes=120), 60).id

    def test_other_reviewers_are_independent(self, book, start_time, make_user):
        book(start_time)
        other = make_user(UserRole.REVIEWER)
        assert book(start_time, reviewer_id=other.id).id

    def test_cancelled_consultation_frees_the_slot(self, db, book, start_time):
        first = book(start_time)
        ConsultationService(db).cancel(first.id, "conflict")
        assert book(start_time).id

    def test_past_date(self, book):
        with pytest.raises(InvalidDate):
            book(utcnow() - timedelta(minutes=1))

    @pytest.mark.parametrize("duration", [10, 181])
    def test_duration_bounds(self, book, start_time, duration):
        with pytest.raises(InvalidDate):
            book(start_time, duration)

    def test_non_reviewer(self, book, start_time, outsider):
        with pytest.raises(InvalidReviewer):
            book(start_time, reviewer_id=outsider.id)

    def test_missing_reviewer(self, book, start_time):
        with pytest.raises(NotFound):
            book(start_time, reviewer_id=9999)


class TestLifecycle:
    def test_start_and_complete(self, db, book, start_time):
        service = ConsultationService(db)
        consultation = book(start_time)

        consultation = service.start(consultation.id)
        assert consultation.status == ConsultationStatus.IN_PROGRESS.value
        assert consultation.actual_start_time is not None

        consultation = service.complete(consultation.id, notes="Discussed options")
        assert consultation.status == ConsultationStatus.COMPLETED.value
        assert consultation.actual_end_time is not None
        assert consultation.notes == "Discussed options"
        assert consultation.actual_duration == 0

    def test_complete_requires_in_progress(self, db, book, start_time):
        consultation = book(start_time)
        with pytest.raises(InvalidState):
            ConsultationService(db).complete(consultation.id)

    def test_cancel_appends_reason(self, db, book, start_time):
        consultation = book(start_time)
        consultation = ConsultationService(db).cancel(consultation.id, "Patient unavailable")

        assert consultation.status == ConsultationStatus.CANCELLED.value
        assert consultation.notes == "Cancellation reason: Patient unavailable"

    def test_cannot_cancel_running_consultation(self, db, book, start_time):
        service = ConsultationService(db)
        consultation = book(start_time)
        service.start(consultation.id)
        with pytest.raises(InvalidState):
            service.cancel(consultation.id)

    def test_rating_by_each_side(self, db, book, start_time, customer, reviewer, outsider):
        service = ConsultationService(db)
        consultation = book(start_time)

        service.add_rating(consultation.id, customer.id, 5, "Very helpful")
        consultation = service.add_rating(consultation.id, reviewer.id, 4)
        assert consultation.customer_rating == 5
        assert consultation.customer_feedback == "Very helpful"
        assert consultation.reviewer_rating == 4

        with pytest.raises(InvalidInput):
            service.add_rating(consultation.id, customer.id, 0)
        with pytest.raises(InvalidInput):
            service.add_rating(consultation.id, outsider.id, 3)


class TestReschedule:
    def test_reschedule_records_history_and_resets_reminders(self, db, book, start_time, customer):
        service = ConsultationService(db)
        consultation = book(start_time)
        consultation.reminder_24h_sent = True
        db.commit()

        new_time = start_time + timedelta(days=1)
        consultation = service.reschedule(consultation.id, new_time, "Travel", customer.id)

        assert consultation.scheduled_date == new_time
        assert consultation.status == ConsultationStatus.SCHEDULED.value
        assert consultation.reminder_24h_sent is False
        assert len(consultation.reschedule_history) == 1
        entry = consultation.reschedule_history[0]
        assert entry["previous_date"] == start_time.isoformat()
        assert entry["reason"] == "Travel"
        assert entry["rescheduled_by"] == customer.id

    def test_reschedule_may_overlap_itself(self, db, book, start_time, customer):
        consultation = book(start_time)
        moved = ConsultationService(db).reschedule(
            consultation.id, start_time + timedelta(minutes=30), None, customer.id
        )
        assert moved.scheduled_date == start_time + timedelta(minutes=30)

    def test_reschedule_into_taken_slot(self, db, book, start_time, customer):
        book(start_time)
        second = book(start_time + timedelta(hours=2))
        with pytest.raises(SlotTaken):
            ConsultationService(db).reschedule(second.id, start_time + timedelta(minutes=15), None, customer.id)

    def test_reschedule_into_past(self, db, book, start_time, customer):
        consultation = book(start_time)
        with pytest.raises(InvalidDate):
            ConsultationService(db).reschedule(consultation.id, utcnow() - timedelta(hours=1), None, customer.id)


class TestReminders:
    def test_find_for_reminders_window(self, db, book, customer):
        service = ConsultationService(db)
        soon = book(utcnow() + timedelta(minutes=62))
        book(utcnow() + timedelta(minutes=90))

        due = service.find_for_reminders(60)
        assert [c.id for c in due] == [soon.id]
        assert service.find_for_reminders(30) == []

    def test_send_reminder_sets_flag_once(self, db, book, customer, reviewer):
        service = ConsultationService(db)
        consultation = book(utcnow() + timedelta(minutes=15))

        service.send_reminder(consultation.id, "15min")
        assert service.find_for_reminders(15) == []

        notes = db.query(Notification).filter(Notification.type == NotificationType.REMINDER.value).all()
        assert {n.user_id for n in notes} == {customer.id, reviewer.id}

    def test_unknown_reminder_kind(self, db, book, start_time):
        consultation = book(start_time)
        with pytest.raises(InvalidInput):
            ConsultationService(db).send_reminder(consultation.id, "2h")

    def test_dispatch_reminders(self, db, book):
        book(utcnow() + timedelta(hours=24))
        book(utcnow() + timedelta(minutes=61))

        sent = ConsultationService(db).dispatch_reminders()
        assert sent == {"24h": 1, "1h": 1, "15min": 0}
        assert ConsultationService(db).dispatch_reminders() == {"24h": 0, "1h": 0, "15min": 0}


class TestListingsAndSlots:
    def test_upcoming_and_past_due(self, db, book, start_time, customer, reviewer):
        consultation = book(start_time)
        assert [c.id for c in ConsultationService(db).list_upcoming(customer.id)] == [consultation.id]
        assert [c.id for c in ConsultationService(db).list_upcoming(reviewer.id)] == [consultation.id]

        db.query(Consultation).filter(Consultation.id == consultation.id).update(
            {Consultation.scheduled_date: utcnow() - timedelta(hours=1)}
        )
        db.commit()
        assert [c.id for c in ConsultationService(db).list_past_due()] == [consultation.id]

    def test_available_slots_exclude_bookings(self, db, book, reviewer):
        service = ConsultationService(db)
        before = service.available_slots(reviewer.id)["slots"]
        assert before
        assert all(slot["price"] == 200.0 for slot in before)

        target = before[-1]["start"]
        book(target)
        after = service.available_slots(reviewer.id)["slots"]
        assert target not in [slot["start"] for slot in after]
        assert len(after) == len(before) - 1

    def test_available_slots_unknown_reviewer(self, db, customer):
        with pytest.raises(NotFound):
            ConsultationService(db).available_slots(customer.id)


class TestStats:
    @pytest.fixture
    def history(self, db, book, start_time):
        done = book(start_time, 60)
        short = book(start_time + timedelta(hours=2), 30)
        dropped = book(start_time + timedelta(hours=4), 90)

        done.status = ConsultationStatus.COMPLETED.value
        done.actual_start_time = start_time
        done.actual_end_time = start_time + timedelta(minutes=45)
        done.customer_rating = 4
        done.reviewer_rating = 5
        short.customer_rating = 2
        dropped.status = ConsultationStatus.CANCELLED.value
        db.commit()
        return done, short, dropped

    def test_admin_sees_everything(self, db, history, admin):
        stats = ConsultationService(db).stats(admin)

        assert stats["total_consultations"] == 3
        assert stats["by_status"][ConsultationStatus.SCHEDULED.value] == 1
        assert stats["by_status"][ConsultationStatus.COMPLETED.value] == 1
        assert stats["by_status"][ConsultationStatus.CANCELLED.value] == 1
        assert stats["average_duration"] == 60
        assert stats["average_actual_duration"] == 45
        # (4.5 + 2) / 2
        assert stats["average_rating"] == pytest.approx(3.25)

    def test_scoped_to_participant(self, db, history, reviewer, customer, outsider):
        service = ConsultationService(db)

        assert service.stats(reviewer)["total_consultations"] == 3
        assert service.stats(customer)["total_consultations"] == 3
        empty = service.stats(outsider)
        assert empty["total_consultations"] == 0
        assert empty["average_rating"] == 0.0

    def test_filters_on_scheduled_date(self, db, history, admin, start_time):
        stats = ConsultationService(db).stats(admin, start=start_time + timedelta(hours=1))
        assert stats["total_consultations"] == 2

    def test_inverted_range(self, db, admin, start_time):
        with pytest.raises(InvalidDate):
            ConsultationService(db).stats(admin, start=start_time, end=start_time - timedelta(days=1))
