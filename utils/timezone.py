"""Clock helpers. Everything is stored and compared in UTC."""

from datetime import date, datetime, timezone
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError


def now_utc() -> datetime:
    """Aware current time in UTC. Inject this as the default clock."""
    return datetime.now(timezone.utc)


def today_utc() -> date:
    """Current calendar date in UTC. Batch expiry dates compare against this."""
    return now_utc().date()


def to_utc(dt: datetime) -> datetime:
    """
    Normalize an aware datetime to UTC.

    Raises:
        ValueError: If dt is naive
    """
    if dt.tzinfo is None:
        raise ValueError("Cannot normalize a naive datetime; attach a timezone first")
    return dt.astimezone(timezone.utc)


def to_local(dt: datetime, tz_name: str) -> datetime:
    """
    Store-local view of an aware datetime, for printing on receipts.

    Raises:
        ValueError: If dt is naive or tz_name is not a known IANA zone
    """
    if dt.tzinfo is None:
        raise ValueError("Cannot localize a naive datetime")
    try:
        zone = ZoneInfo(tz_name)
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise ValueError(f"Unknown timezone: {tz_name}") from e
    return dt.astimezone(zone)
