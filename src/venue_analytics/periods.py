from __future__ import annotations

import logging
from datetime import date
from typing import Dict, Iterable, List, Optional, Tuple

from .civil_time import add_days_civil, iter_civil_days
from .errors import InvalidRangeParameter
from .models import Granularity, Metric, Period

logger = logging.getLogger(__name__)

RANGE_DAYS: Tuple[int, ...] = (7, 30, 90)
GRANULARITIES: Tuple[str, ...] = ("day", "week", "month")
METRICS: Tuple[str, ...] = ("total", "vip", "guest")

DEFAULT_RANGE_DAYS = 30
DEFAULT_GRANULARITY: Granularity = "day"
DEFAULT_METRIC: Metric = "total"


def week_start(day: date) -> date:
    """Monday on or before ``day``."""
    return add_days_civil(day, -day.weekday())


def key_for(day: date, granularity: Granularity) -> str:
    if granularity == "week":
        return week_start(day).isoformat()
    if granularity == "month":
        return day.isoformat()[:7]
    return day.isoformat()


def label_for(key: str, granularity: Granularity) -> str:
    """
    Human-readable label for a period key: ``Mar 9``, ``Week of Mar 4`` or
    ``March 2024``. Unparseable keys are returned unchanged.
    """
    try:
        if granularity == "month":
            first = date.fromisoformat(f"{key}-01")
            return f"{first:%B} {first.year}"
        day = date.fromisoformat(key)
    except ValueError:
        return key
    if granularity == "week":
        return f"Week of {format_day(day)}"
    return format_day(day)


def format_day(day: date) -> str:
    return f"{day:%b} {day.day}"


def period_for(day: date, granularity: Granularity) -> Period:
    key = key_for(day, granularity)
    return Period(key=key, granularity=granularity, label=label_for(key, granularity))


def chronological_periods(start: date, end: date, granularity: Granularity) -> List[Period]:
    """
    Periods touched by ``[start, end]`` in chronological order.

    Keys come from walking every civil day, so the order holds no matter in
    which order the aggregates were populated.
    """
    seen: Dict[str, Period] = {}
    for day in iter_civil_days(start, end):
        key = key_for(day, granularity)
        if key not in seen:
            seen[key] = Period(key=key, granularity=granularity, label=label_for(key, granularity))
    return list(seen.values())


def days_by_period(days: Iterable[date], granularity: Granularity) -> Dict[str, List[date]]:
    grouped: Dict[str, List[date]] = {}
    for day in days:
        grouped.setdefault(key_for(day, granularity), []).append(day)
    return grouped


def parse_range_days(raw: object) -> int:
    try:
        value = int(str(raw).strip())
    except (TypeError, ValueError):
        raise InvalidRangeParameter("range", raw) from None
    if value not in RANGE_DAYS:
        raise InvalidRangeParameter("range", raw)
    return value


def parse_granularity(raw: object) -> Granularity:
    value = str(raw).strip().lower()
    if value not in GRANULARITIES:
        raise InvalidRangeParameter("granularity", raw)
    return value  # type: ignore[return-value]


def parse_metric(raw: object) -> Metric:
    value = str(raw).strip().lower()
    if value not in METRICS:
        raise InvalidRangeParameter("metric", raw)
    return value  # type: ignore[return-value]


def resolve_range_days(raw: Optional[object], default: int = DEFAULT_RANGE_DAYS) -> int:
    if raw is None:
        return default
    try:
        return parse_range_days(raw)
    except InvalidRangeParameter as exc:
        logger.debug("%s, using %s", exc, default)
        return default


def resolve_granularity(raw: Optional[object], default: Granularity = DEFAULT_GRANULARITY) -> Granularity:
    if raw is None:
        return default
    try:
        return parse_granularity(raw)
    except InvalidRangeParameter as exc:
        logger.debug("%s, using %s", exc, default)
        return default


def resolve_metric(raw: Optional[object], default: Metric = DEFAULT_METRIC) -> Metric:
    if raw is None:
        return default
    try:
        return parse_metric(raw)
    except InvalidRangeParameter as exc:
        logger.debug("%s, using %s", exc, default)
        return default
