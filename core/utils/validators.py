"""Validation utilities for common data types."""

import re
from typing import Optional
from email_validator import validate_email as _validate_email, EmailNotValidError

INVALID_EMAIL_MESSAGE = "Invalid email address format"

EMAIL_PATTERN = re.compile(r'^[^\s@]+@[^\s@]+\.[^\s@]+$')


def validate_email(email: Optional[str]) -> tuple[bool, Optional[str]]:
    """
    Validate email address format.

    Args:
        email: Email address to validate

    Returns:
        Tuple of (is_valid, stripped_email or error_message)
    """
    if not email or not isinstance(email, str):
        return False, INVALID_EMAIL_MESSAGE

    candidate = email.strip()
    if not EMAIL_PATTERN.match(candidate):
        return False, INVALID_EMAIL_MESSAGE

    try:
        _validate_email(candidate, check_deliverability=False)
    except EmailNotValidError:
        return False, INVALID_EMAIL_MESSAGE

    return True, candidate


def email_local_part(email: str) -> str:
    """Return the part of an address before the ``@``."""
    return email.split("@", 1)[0]


def email_slug(email: str) -> str:
    """Replace every non-alphanumeric character of an email with ``-``."""
    return re.sub(r'[^a-zA-Z0-9]', '-', email)


def emails_match(left: Optional[str], right: Optional[str]) -> bool:
    """Case-insensitive comparison of two email addresses."""
    if not left or not right:
        return False
    return left.strip().lower() == right.strip().lower()


def coerce_positive_int(value, default: int) -> int:
    """
    Coerce a loosely typed value to a positive integer.

    Args:
        value: Incoming value (int, numeric string, None, ...)
        default: Returned when value is missing, non-numeric or not positive

    Returns:
        Positive integer
    """
    if isinstance(value, bool):
        return default
    try:
        number = int(value)
    except (TypeError, ValueError):
        return default
    return number if number > 0 else default
