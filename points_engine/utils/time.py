"""Time utility helpers."""

from __future__ import annotations

from datetime import UTC, date, datetime, timedelta
from zoneinfo import ZoneInfo


def now_utc() -> datetime:
    """Return current timezone-aware UTC datetime."""
    return datetime.now(tz=UTC)


def utc_today() -> date:
    """Return current UTC date."""
    return now_utc().date()


def local_date(moment: datetime, timezone: str) -> date:
    """Return the calendar date of ``moment`` in ``timezone``."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=UTC)
    return moment.astimezone(ZoneInfo(timezone)).date()


def day_key(moment: datetime, timezone: str) -> str:
    """Return the quota partition key (ISO date) for ``moment``."""
    return local_date(moment, timezone).isoformat()


def parse_day_key(value: str) -> date:
    """Parse a quota partition key back into a date."""
    return date.fromisoformat(value)


def start_of_day_utc(moment: datetime, timezone: str) -> datetime:
    """Return local midnight of ``moment``'s day, expressed in UTC."""
    local_day = local_date(moment, timezone)
    midnight = datetime(local_day.year, local_day.month, local_day.day, tzinfo=ZoneInfo(timezone))
    return midnight.astimezone(UTC)


def days_ago(moment: datetime, days: int) -> datetime:
    """Return ``moment`` shifted back by ``days``."""
    return moment - timedelta(days=days)


def parse_timestamp(value: str | datetime) -> datetime:
    """Parse a PostgREST timestamp string into an aware datetime."""
    if isinstance(value, datetime):
        parsed = value
    else:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed
