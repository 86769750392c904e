"""
Date and time helpers
"""

from datetime import datetime, timezone


def utcnow() -> datetime:
    """Current UTC time as a naive datetime, the form stored in the database."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def isoformat_or_none(value):
    return value.isoformat() if value else None


def to_naive_utc(value):
    """Convert an aware datetime to naive UTC; naive values are assumed UTC"""
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)
