from __future__ import annotations

import logging
import math
from datetime import date
from typing import Dict, Iterable, Optional, Tuple

from .civil_time import TimezoneLike, coerce_timezone, instant_to_civil_date
from .errors import MalformedRecordError
from .models import (
    ActivityEvent,
    Conversion,
    Granularity,
    GuestCheckin,
    PeriodAggregate,
    Redemption,
    VipScan,
)
from .periods import key_for

logger = logging.getLogger(__name__)


def _normalize_id(raw: object) -> Optional[str]:
    if raw is None:
        return None
    value = str(raw).strip()
    return value or None


def _as_finite(value: object) -> Optional[float]:
    """Missing numbers count as 0; unparseable or non-finite ones are ``None``."""
    if value is None:
        return 0.0
    try:
        number = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


class ActivityAggregator:
    """
    Fold heterogeneous activity records into per-period aggregates.

    Accumulation only adds to sets and counters, so the result is independent
    of the order records arrive in. Malformed records (no entity id, or a
    non-finite number) still count in the raw counters but never join a
    unique set; nothing here raises on bad input.
    """

    def __init__(
        self,
        tz: TimezoneLike,
        granularity: Granularity = "day",
        window: Optional[Tuple[date, date]] = None,
    ) -> None:
        self.tz = coerce_timezone(tz)
        self.granularity = granularity
        self.window = window
        self.periods: Dict[str, PeriodAggregate] = {}
        self.malformed = 0
        self.skipped = 0

    def extend(self, events: Iterable[ActivityEvent]) -> "ActivityAggregator":
        for event in events:
            self.add(event)
        return self

    def add(self, event: ActivityEvent) -> None:
        day = self.civil_date_of(event)
        if day is None:
            self.skipped += 1
            logger.debug("Skipping undated %s record", type(event).__name__)
            return
        if self.window is not None and not (self.window[0] <= day <= self.window[1]):
            self.skipped += 1
            logger.debug("Skipping %s record dated %s outside %s..%s", type(event).__name__, day, *self.window)
            return

        period = self.period(key_for(day, self.granularity))
        if isinstance(event, VipScan):
            self._apply_scan(period, event)
        elif isinstance(event, GuestCheckin):
            self._apply_guest(period, event)
        elif isinstance(event, Conversion):
            self._apply_conversion(period, event)
        elif isinstance(event, Redemption):
            self._apply_redemption(period, event)
        else:
            raise TypeError(f"Unsupported activity record: {type(event).__name__}")

    def period(self, key: str) -> PeriodAggregate:
        aggregate = self.periods.get(key)
        if aggregate is None:
            aggregate = PeriodAggregate(key=key)
            self.periods[key] = aggregate
        return aggregate

    def civil_date_of(self, event: ActivityEvent) -> Optional[date]:
        embedded = getattr(event, "civil_date", None)
        if embedded is not None:
            return embedded
        if event.instant is None:
            return None
        return instant_to_civil_date(event.instant, self.tz)

    def _apply_scan(self, period: PeriodAggregate, scan: VipScan) -> None:
        period.scan_count += 1
        points = _as_finite(scan.points)
        period.points_earned += points or 0.0
        member = self._member_id("vip scan", scan.user_id, points)
        if member is not None:
            period.vip_users.add(member)

    def _apply_guest(self, period: PeriodAggregate, checkin: GuestCheckin) -> None:
        period.guest_rows += 1
        device = self._member_id("guest check-in", checkin.device_id)
        if device is not None:
            period.guest_devices.add(device)

    def _apply_conversion(self, period: PeriodAggregate, conversion: Conversion) -> None:
        device = self._member_id("conversion", conversion.device_id)
        if device is not None:
            period.conversions.add(device)

    def _apply_redemption(self, period: PeriodAggregate, redemption: Redemption) -> None:
        period.redemption_count += 1
        spent = _as_finite(redemption.points_spent)
        if spent is None:
            self._note(MalformedRecordError("redemption", "non-finite points_spent"))
            spent = 0.0
        period.points_spent += spent

    def _member_id(self, kind: str, raw_id: object, *numbers: Optional[float]) -> Optional[str]:
        try:
            if any(number is None for number in numbers):
                raise MalformedRecordError(kind, "non-finite numeric field")
            member = _normalize_id(raw_id)
            if member is None:
                raise MalformedRecordError(kind, "missing entity id")
        except MalformedRecordError as exc:
            self._note(exc)
            return None
        return member

    def _note(self, error: MalformedRecordError) -> None:
        self.malformed += 1
        logger.debug("%s", error)


def aggregate_activity(
    events: Iterable[ActivityEvent],
    tz: TimezoneLike,
    granularity: Granularity = "day",
    window: Optional[Tuple[date, date]] = None,
) -> Dict[str, PeriodAggregate]:
    return ActivityAggregator(tz, granularity, window).extend(events).periods
