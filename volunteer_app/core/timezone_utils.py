from datetime import datetime, timezone


def utcnow() -> datetime:
    """Current time as a naive UTC datetime, matching how event dates are stored."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_naive_utc(dt: datetime) -> datetime:
    """Normalize a datetime for storage.

    Aware datetimes are converted to UTC and stripped of tzinfo. Naive
    datetimes are assumed to already be UTC.
    """
    if dt is None:
        return None
    if getattr(dt, 'tzinfo', None) is None:
        return dt
    return dt.astimezone(timezone.utc).replace(tzinfo=None)
