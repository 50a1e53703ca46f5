"""Datetime utilities for common operations."""

from datetime import datetime, timezone


def now() -> datetime:
    """Get current datetime in UTC."""
    return datetime.now(timezone.utc)


def ensure_utc(dt: datetime) -> datetime:
    """
    Attach UTC to naive datetimes and convert aware ones to UTC.

    Some database drivers (SQLite) hand back naive timestamps that were
    written as UTC.
    """
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def is_past(dt: datetime, reference: datetime | None = None) -> bool:
    """Check whether ``dt`` lies strictly before ``reference`` (default: now)."""
    reference = ensure_utc(reference) if reference else now()
    return reference > ensure_utc(dt)


def format_human(dt: datetime) -> str:
    """
    Format a datetime for emails, e.g. ``March 5, 2026, 14:30``.

    Args:
        dt: Datetime to format (interpreted as UTC when naive)

    Returns:
        Human readable string
    """
    dt = ensure_utc(dt)
    return f"{dt.strftime('%B')} {dt.day}, {dt.year}, {dt.strftime('%H:%M')}"
