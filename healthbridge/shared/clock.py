"""Time helpers. All persisted timestamps are UTC."""

from datetime import date, datetime, time, timedelta, timezone
from zoneinfo import ZoneInfo


def utcnow() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes (SQLite drops tzinfo on read)."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def to_epoch_millis(value: datetime) -> int:
    return int(ensure_utc(value).timestamp() * 1000)


def local_today(tz_name: str, now: datetime | None = None) -> date:
    """Calendar date of `now` in the given timezone."""
    now = now or utcnow()
    return ensure_utc(now).astimezone(ZoneInfo(tz_name)).date()


def local_day_range_millis(day: date, tz_name: str) -> tuple[int, int]:
    """
    Epoch-millisecond bounds [start, end) of one local calendar day.

    Computed from local midnights, so DST days are 23 or 25 hours long.
    """
    tz = ZoneInfo(tz_name)
    start = datetime.combine(day, time.min, tzinfo=tz)
    end = datetime.combine(day + timedelta(days=1), time.min, tzinfo=tz)
    return to_epoch_millis(start), to_epoch_millis(end)


def parse_iso_date(value: str, field_name: str = "date") -> date:
    """
    Parse a strict YYYY-MM-DD calendar date.

    Raises:
        ValueError: Wrong shape or not a real date (2024-02-30)
    """
    if not isinstance(value, str) or len(value) != 10 or value[4] != "-" or value[7] != "-":
        raise ValueError(f"{field_name} must be YYYY-MM-DD")
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise ValueError(f"{field_name} must be a valid calendar date") from None
