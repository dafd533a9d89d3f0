import html
import re
from typing import Optional


def validate_and_sanitize_input(value: Optional[str], max_length: int = 500) -> Optional[str]:
    """
    Validate and sanitize free text entered by customers and reviewers.

    Args:
        value: Input string to validate
        max_length: Maximum allowed length of the escaped value, i.e. what gets stored

    Returns:
        Sanitized string, or None for missing input

    Raises:
        ValueError: If the escaped input is too long
    """
    if value is None:
        return None

    value = str(value).strip()

    # Strip control characters except newlines and tabs
    value = re.sub(r"[\x00-\x08\x0B\x0C\x0E-\x1F\x7F]", "", value)

    escaped = html.escape(value, quote=True)
    if len(escaped) > max_length:
        raise ValueError(f"Input exceeds maximum length of {max_length} characters")

    return escaped
