"""Datetime helpers shared by the sync engine and the client cache"""
from datetime import datetime, timedelta, timezone

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def utc_now() -> datetime:
    """Current time as an aware UTC datetime"""
    return datetime.now(timezone.utc)


def ensure_utc(dt: datetime) -> datetime:
    """
    Attach UTC to naive datetimes and convert aware ones to UTC.

    Clients may submit timestamps without an offset; those are treated as UTC.
    """
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def to_epoch_millis(dt: datetime) -> int:
    """Convert a datetime to integer milliseconds since the Unix epoch"""
    return (ensure_utc(dt) - EPOCH) // timedelta(milliseconds=1)
