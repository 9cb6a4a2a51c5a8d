from datetime import datetime, timedelta, timezone

IST_OFFSET = timedelta(hours=5, minutes=30)


def to_utc_naive(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        raise ValueError("datetime must be timezone-aware")
    return dt.astimezone(timezone.utc).replace(tzinfo=None)


def utc_now_naive() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def convert_to_ist(dt: datetime) -> datetime:
    """Shift a stored UTC instant to IST wall-clock time (display only)."""
    if dt.tzinfo is not None:
        dt = to_utc_naive(dt)
    return dt + IST_OFFSET


def format_in_ist(dt: datetime) -> str:
    return convert_to_ist(dt).strftime("%b %d, %Y %I:%M %p") + " IST"
