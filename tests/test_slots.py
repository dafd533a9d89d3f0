"""Tests for consultation slot calculation"""

from datetime import datetime

from medreview.domain.consultations.slots import WORKING_HOURS, compute_available_slots, overlaps

# 2024-01-01 is a Monday
MONDAY = datetime(2024, 1, 1, 8, 0)


class TestOverlaps:
    def test_touching_intervals_do_not_overlap(self):
        assert not overlaps(
            datetime(2024, 1, 1, 9), datetime(2024, 1, 1, 10),
            datetime(2024, 1, 1, 10), datetime(2024, 1, 1, 11),
        )

    def test_partial_overlap(self):
        assert overlaps(
            datetime(2024, 1, 1, 9), datetime(2024, 1, 1, 10),
            datetime(2024, 1, 1, 9, 30), datetime(2024, 1, 1, 10, 30),
        )


class TestComputeAvailableSlots:
    def test_full_week_skips_weekend(self):
        slots = compute_available_slots(MONDAY, [], 150.0)

        assert len(slots) == 5 * len(WORKING_HOURS)
        assert all(slot["start"].weekday() < 5 for slot in slots)
        assert slots[0]["start"] == datetime(2024, 1, 1, 9)
        assert slots[0]["end"] == datetime(2024, 1, 1, 10)
        assert slots[0]["duration"] == 60
        assert slots[0]["price"] == 150.0

    def test_past_candidates_are_skipped(self):
        now = datetime(2024, 1, 1, 14, 30)
        slots = compute_available_slots(now, [], 100.0, days=1)

        assert [slot["start"].hour for slot in slots] == [15, 16, 17]

    def test_booked_consultation_removes_overlapping_slots(self):
        booked = [(datetime(2024, 1, 1, 9, 30), 90)]
        slots = compute_available_slots(MONDAY, booked, 100.0, days=1)

        assert [slot["start"].hour for slot in slots] == [14, 15, 16, 17]

    def test_back_to_back_booking_keeps_next_slot(self):
        booked = [(datetime(2024, 1, 1, 9, 0), 60)]
        slots = compute_available_slots(MONDAY, booked, 100.0, days=1)

        assert slots[0]["start"] == datetime(2024, 1, 1, 10)

    def test_window_starting_on_weekend(self):
        saturday = datetime(2024, 1, 6)
        slots = compute_available_slots(MONDAY, [], 100.0, start=saturday, days=2)
        assert slots == []

    def test_explicit_start_day(self):
        slots = compute_available_slots(MONDAY, [], 100.0, start=datetime(2024, 1, 3, 12), days=1)
        assert {slot["start"].date() for slot in slots} == {datetime(2024, 1, 3).date()}
        assert len(slots) == len(WORKING_HOURS)
