"""
Wall-clock (civil) time in the venue timezone versus absolute UTC instants.

Every function takes the timezone explicitly. Storage keeps instants in UTC;
naive datetimes read back from it are treated as UTC.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, time, timedelta, timezone
from typing import Iterator, Optional, Tuple, Union
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

logger = logging.getLogger(__name__)

UTC = timezone.utc

TimezoneLike = Union[str, ZoneInfo]


def coerce_timezone(tz: TimezoneLike) -> ZoneInfo:
    if isinstance(tz, ZoneInfo):
        return tz
    try:
        return ZoneInfo(tz)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning("Unknown timezone %r, falling back to UTC", tz)
        return ZoneInfo("UTC")


def ensure_utc(instant: datetime) -> datetime:
    if instant.tzinfo is None:
        return instant.replace(tzinfo=UTC)
    return instant.astimezone(UTC)


def parse_time_of_day(value: Union[str, time]) -> time:
    if isinstance(value, time):
        return value
    return time.fromisoformat(value.strip())


def parse_civil_date(value: object) -> Optional[date]:
    """Accept ``date``/``datetime`` values or ``YYYY-MM-DD`` strings; anything else is ``None``."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        text = value.strip()[:10]
        if not text:
            return None
        try:
            return date.fromisoformat(text)
        except ValueError:
            return None
    return None


def civil_date_to_instant(day: date, time_of_day: Union[str, time], tz: TimezoneLike) -> datetime:
    """
    Return the UTC instant at which the venue wall clock reads ``day`` + ``time_of_day``.

    The field values are first read as if they were UTC. The offset in effect
    at that approximate instant is looked up in the tz database for the target
    date and subtracted, so the result follows DST instead of assuming a
    constant offset. Wall-clock times inside the hour around a transition can
    resolve to the offset of the other side, so midnight conversions are only
    exact for zones whose DST changes happen away from 00:00 (America/New_York
    changes at 02:00; America/Santiago changes at midnight and is off by an
    hour on those dates).
    """
    zone = coerce_timezone(tz)
    approx = datetime.combine(day, parse_time_of_day(time_of_day)).replace(tzinfo=UTC)
    offset = approx.astimezone(zone).utcoffset() or timedelta(0)
    return approx - offset


def instant_to_civil_date(instant: datetime, tz: TimezoneLike) -> date:
    return ensure_utc(instant).astimezone(coerce_timezone(tz)).date()


def add_days_civil(day: date, days: int) -> date:
    """
    Shift a civil date by whole calendar days.

    Civil dates are calendar values, so the shift never passes through an
    instant and cannot be moved by a DST change near midnight.
    """
    return day + timedelta(days=days)


def today_civil(tz: TimezoneLike, now: Optional[datetime] = None) -> date:
    return instant_to_civil_date(now or datetime.now(UTC), tz)


def civil_range_bounds(first_day: date, last_day: date, tz: TimezoneLike) -> Tuple[datetime, datetime]:
    """
    Half-open UTC window ``[start, end)`` covering ``first_day`` to ``last_day`` inclusive.

    Instant-keyed queries must use exactly this window; any offset error drops
    or duplicates records at the boundaries.
    """
    start = civil_date_to_instant(first_day, "00:00:00", tz)
    end = civil_date_to_instant(add_days_civil(last_day, 1), "00:00:00", tz)
    return start, end


def iter_civil_days(start: date, end: date) -> Iterator[date]:
    cursor = start
    while cursor <= end:
        yield cursor
        cursor = add_days_civil(cursor, 1)
