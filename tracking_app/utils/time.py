from datetime import datetime, timezone
from typing import Optional


def utcnow() -> datetime:
    """Current time as a naive UTC datetime (the storage convention)"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_utc_naive(value: Optional[datetime]) -> Optional[datetime]:
    """Convert aware datetimes to naive UTC; naive values are assumed UTC"""
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)
