"""Shared validation utilities"""

import re
from typing import Iterable, Optional

WEEKDAYS = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")

_TIME_PATTERN = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")


def validate_email(email: Optional[str]) -> Optional[str]:
    """
    Validate email format.

    Args:
        email: Email address string

    Returns:
        Lowercase email address

    Raises:
        ValueError: If email format is invalid
    """
    if not email:
        return email

    email = email.strip().lower()

    # Basic email validation pattern
    email_pattern = r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$"

    if not re.match(email_pattern, email):
        raise ValueError("Invalid email format")

    return email


def validate_phone(phone: Optional[str]) -> Optional[str]:
    """
    Validate and normalize a phone number to E.164 format.

    Ten-digit numbers are treated as US numbers; anything else must already
    carry a country code.

    Raises:
        ValueError: If phone number is invalid
    """
    if not phone:
        return phone

    digits = re.sub(r"\D", "", phone)

    if len(digits) == 10:
        return f"+1{digits}"

    if 11 <= len(digits) <= 15:
        return f"+{digits}"

    raise ValueError("Phone number must contain 10 to 15 digits")


def normalize_tag(tag: Optional[str]) -> Optional[str]:
    """Trim and lower-case a tag; blank tags normalize to None"""
    if tag is None:
        return None
    cleaned = tag.strip().lower()
    return cleaned or None


def normalize_tags(tags: Optional[Iterable[str]]) -> list[str]:
    """Normalize tags, dropping blanks and duplicates while keeping first-seen order"""
    result: list[str] = []
    for tag in tags or []:
        cleaned = normalize_tag(tag)
        if cleaned and cleaned not in result:
            result.append(cleaned)
    return result


def validate_rating(value: Optional[float], field: str = "rating") -> Optional[float]:
    """Ratings are 1-5 inclusive"""
    if value is None:
        return value
    if value < 1 or value > 5:
        raise ValueError(f"{field} must be between 1 and 5")
    return value


def validate_available_slots(slots: Optional[dict]) -> Optional[dict]:
    """
    Validate a reviewer availability map.

    Expected shape: {"monday": [{"start": "09:00", "end": "12:00"}], ...}

    Returns:
        The map with lower-cased weekday keys

    Raises:
        ValueError: If a weekday or time range is invalid
    """
    if slots is None:
        return slots

    normalized = {}
    for day, ranges in slots.items():
        key = str(day).strip().lower()
        if key not in WEEKDAYS:
            raise ValueError(f"Invalid weekday: {day}")

        cleaned = []
        for time_range in ranges or []:
            start = time_range.get("start")
            end = time_range.get("end")
            if not start or not end or not _TIME_PATTERN.match(start) or not _TIME_PATTERN.match(end):
                raise ValueError(f"Invalid time range for {key}: expected HH:MM")
            if start >= end:
                raise ValueError(f"Time range for {key} must end after it starts")
            cleaned.append({"start": start, "end": end})

        normalized[key] = cleaned

    return normalized
