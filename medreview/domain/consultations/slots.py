"""Bookable consultation slots.

Candidates are fixed one-hour slots on weekdays; a candidate is offered when it
is still in the future and does not overlap a booked consultation.
"""

from datetime import datetime, timedelta
from typing import Iterable, Optional

WORKING_HOURS = (9, 10, 11, 14, 15, 16, 17)
SLOT_MINUTES = 60
DEFAULT_WINDOW_DAYS = 7


def overlaps(start_a: datetime, end_a: datetime, start_b: datetime, end_b: datetime) -> bool:
    """Half-open interval overlap: touching intervals do not overlap"""
    return start_a < end_b and end_a > start_b


def compute_available_slots(
    now: datetime,
    booked: Iterable[tuple[datetime, int]],
    price: float,
    start: Optional[datetime] = None,
    days: int = DEFAULT_WINDOW_DAYS,
) -> list[dict]:
    """
    Args:
        now: Current time; earlier candidates are skipped
        booked: (scheduled_date, duration_minutes) of the reviewer's booked consultations
        price: Price quoted for each slot
        start: First day of the window (defaults to now)
        days: Number of calendar days in the window

    Returns:
        List of {"start", "end", "duration", "price"} dicts in chronological order
    """
    intervals = [(begin, begin + timedelta(minutes=duration)) for begin, duration in booked]
    first_day = (start or now).replace(hour=0, minute=0, second=0, microsecond=0)

    slots = []
    for offset in range(days):
        day = first_day + timedelta(days=offset)
        if day.weekday() >= 5:
            continue

        for hour in WORKING_HOURS:
            slot_start = day.replace(hour=hour)
            if slot_start < now:
                continue
            slot_end = slot_start + timedelta(minutes=SLOT_MINUTES)
            if any(overlaps(slot_start, slot_end, begin, end) for begin, end in intervals):
                continue
            slots.append(
                {"start": slot_start, "end": slot_end, "duration": SLOT_MINUTES, "price": price}
            )

    return slots
