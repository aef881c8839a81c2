from datetime import datetime, timezone


def utcnow() -> datetime:
    """Return timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def to_utc(value: datetime | None) -> datetime | None:
    """Normalize a datetime to timezone-aware UTC.

    Naive datetimes are assumed to already be UTC (that is how the
    database layer stores them).
    """
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)
