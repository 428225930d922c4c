from datetime import date, datetime, time, timedelta, timezone
from zoneinfo import ZoneInfo

from shuttle.core.config import settings


def local_zone() -> ZoneInfo:
    return ZoneInfo(settings.TIMEZONE)


def local_now() -> datetime:
    return datetime.now(local_zone())


def local_today() -> date:
    """Calendar date in the operating timezone; departures are dated in local days."""
    return local_now().date()


def local_day_bounds(start: date, end: date | None = None) -> tuple[datetime, datetime]:
    """UTC instants for [start 00:00, end+1 00:00) in local time."""
    end = end or start
    zone = local_zone()
    lo = datetime.combine(start, time.min, tzinfo=zone)
    hi = datetime.combine(end + timedelta(days=1), time.min, tzinfo=zone)
    return lo.astimezone(timezone.utc), hi.astimezone(timezone.utc)


def to_local_date(value: datetime) -> date:
    # SQLite hands timestamps back naive; they were written in UTC
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(local_zone()).date()
