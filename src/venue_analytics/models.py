from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, time
from typing import Any, Dict, Iterable, List, Literal, Optional, Sequence, Set, Union

Granularity = Literal["day", "week", "month"]
Metric = Literal["total", "vip", "guest"]

EMPTY_LABEL = "—"


@dataclass(frozen=True)
class VipScan:
    """
    Check-in of a registered VIP account.

    ``civil_date`` is the venue-local scan date stored next to the instant; when
    it is missing the date is derived from ``instant``. ``points`` may be
    negative (manual corrections).
    """

    id: str
    user_id: Optional[str]
    points: float = 0.0
    instant: Optional[datetime] = None
    civil_date: Optional[date] = None


@dataclass(frozen=True)
class GuestCheckin:
    """
    Check-in of an anonymous guest device.

    Legacy rows may only carry ``instant``; those are dated from it.
    """

    id: str
    device_id: Optional[str]
    civil_date: Optional[date] = None
    instant: Optional[datetime] = None


@dataclass(frozen=True)
class Conversion:
    """A guest device linked to a registered account at ``instant``."""

    device_id: Optional[str]
    instant: Optional[datetime]
    user_id: Optional[str] = None


@dataclass(frozen=True)
class Redemption:
    user_id: Optional[str]
    reward_name: Optional[str]
    points_spent: float
    instant: Optional[datetime]
    id: Optional[str] = None
    staff_label: Optional[str] = None
    staff_last4: Optional[str] = None


ActivityEvent = Union[VipScan, GuestCheckin, Conversion, Redemption]


@dataclass(frozen=True)
class CalendarEvent:
    """
    Scheduled show. ``artist_id`` is empty for house events, which are
    labelled from ``title`` instead.
    """

    id: str
    civil_date: date
    artist_id: Optional[str] = None
    title: Optional[str] = None
    start_time: Optional[time] = None
    end_time: Optional[time] = None
    cancelled: bool = False


@dataclass(frozen=True)
class Period:
    key: str
    granularity: Granularity
    label: str


@dataclass
class PeriodAggregate:
    """
    Mutable accumulator for one period bucket.

    VIP ids and guest device ids live in separate identity spaces and are never
    deduplicated against each other, so ``total_people`` is a plain sum.
    """

    key: str
    vip_users: Set[str] = field(default_factory=set)
    guest_devices: Set[str] = field(default_factory=set)
    conversions: Set[str] = field(default_factory=set)
    scan_count: int = 0
    guest_rows: int = 0
    points_earned: float = 0.0
    redemption_count: int = 0
    points_spent: float = 0.0
    attributed_label: str = EMPTY_LABEL
    attributed_event_count: int = 0
    attributed_artist_id: Optional[str] = None
    attributed_day: Optional[date] = None

    @property
    def unique_vip_count(self) -> int:
        return len(self.vip_users)

    @property
    def unique_guest_count(self) -> int:
        return len(self.guest_devices)

    @property
    def total_people(self) -> int:
        return self.unique_vip_count + self.unique_guest_count

    @property
    def conversion_count(self) -> int:
        return len(self.conversions)


@dataclass(frozen=True)
class DayAttribution:
    label: str = EMPTY_LABEL
    event_count: int = 0
    artist_id: Optional[str] = None


@dataclass(frozen=True)
class PeriodSummary:
    key: str
    label: str
    attributed_label: str
    unique_vip_count: int
    unique_guest_count: int
    total_people: int
    scan_count: int
    guest_rows: int
    points_earned: float
    conversion_count: int
    conversion_rate: float
    redemption_count: int
    points_spent: float
    event_count: int = 0
    artist_id: Optional[str] = None


@dataclass(frozen=True)
class RangeTotals:
    people: int = 0
    vip: int = 0
    guest: int = 0
    scans: int = 0
    guest_rows: int = 0
    conversions: int = 0
    redemptions: int = 0
    points_earned: float = 0.0
    points_spent: float = 0.0
    average_people: float = 0.0
    conversion_rate: float = 0.0


@dataclass(frozen=True)
class ArtistSummary:
    artist_id: str
    name: str
    nights: int
    average_people: float
    vip_percent: float
    conversion_percent: float
    best_people: int
    best_day: date
    best_day_label: str


@dataclass(frozen=True)
class ActivityDataset:
    """Raw records for one request window, as returned by the repository."""

    scans: Sequence[VipScan] = ()
    guest_checkins: Sequence[GuestCheckin] = ()
    conversions: Sequence[Conversion] = ()
    redemptions: Sequence[Redemption] = ()
    calendar_events: Sequence[CalendarEvent] = ()
    artist_names: Dict[str, str] = field(default_factory=dict)

    def activity(self) -> Iterable[ActivityEvent]:
        yield from self.scans
        yield from self.guest_checkins
        yield from self.conversions
        yield from self.redemptions


@dataclass(frozen=True)
class VenueHealthFilters:
    """
    Request parameters for one venue-health report.

    ``today`` pins the last civil day of the window; when omitted it is the
    current date in ``timezone``. Values outside the enumerated sets are
    resolved to their defaults before the filters are built.
    """

    range_days: int = 30
    granularity: Granularity = "day"
    metric: Metric = "total"
    timezone: str = "America/New_York"
    today: Optional[date] = None
    top_days: int = 10
    top_artists: int = 12


@dataclass(frozen=True)
class VenueHealthResult:
    timezone: str
    start_date: date
    end_date: date
    granularity: Granularity
    metric: Metric
    periods: Sequence[PeriodSummary]
    days: Sequence[PeriodSummary]
    totals: RangeTotals
    best_period: Optional[PeriodSummary] = None
    top_days: Sequence[PeriodSummary] = field(default_factory=list)
    top_artists: Sequence[ArtistSummary] = field(default_factory=list)
    failed_sources: List[str] = field(default_factory=list)

    @property
    def range_days(self) -> int:
        return (self.end_date - self.start_date).days + 1

    @property
    def degraded(self) -> bool:
        return bool(self.failed_sources)

    def as_dict(self) -> Dict[str, Any]:
        """
        Convert the nested dataclasses into a JSON-serialisable structure.

        Keys are camelCase because the presentation layer consumes them
        directly.
        """

        def _serialize(obj: Any) -> Any:
            if isinstance(obj, VenueHealthResult):
                return {
                    "timezone": obj.timezone,
                    "startDate": obj.start_date.isoformat(),
                    "endDate": obj.end_date.isoformat(),
                    "rangeDays": obj.range_days,
                    "granularity": obj.granularity,
                    "metric": obj.metric,
                    "periods": [_serialize(period) for period in obj.periods],
                    "days": [_serialize(day) for day in obj.days],
                    "totals": _serialize(obj.totals),
                    "bestPeriod": _serialize(obj.best_period),
                    "topDays": [_serialize(day) for day in obj.top_days],
                    "topArtists": [_serialize(artist) for artist in obj.top_artists],
                    "failedSources": list(obj.failed_sources),
                    "degraded": obj.degraded,
                }
            if isinstance(obj, PeriodSummary):
                return {
                    "key": obj.key,
                    "label": obj.label,
                    "attributedLabel": obj.attributed_label,
                    "eventCount": obj.event_count,
                    "artistId": obj.artist_id,
                    "uniqueVipCount": obj.unique_vip_count,
                    "uniqueGuestCount": obj.unique_guest_count,
                    "totalPeople": obj.total_people,
                    "scanCount": obj.scan_count,
                    "guestRows": obj.guest_rows,
                    "pointsEarned": obj.points_earned,
                    "conversionCount": obj.conversion_count,
                    "conversionRate": obj.conversion_rate,
                    "redemptionCount": obj.redemption_count,
                    "pointsSpent": obj.points_spent,
                }
            if isinstance(obj, RangeTotals):
                return {
                    "people": obj.people,
                    "vip": obj.vip,
                    "guest": obj.guest,
                    "scans": obj.scans,
                    "guestRows": obj.guest_rows,
                    "conversions": obj.conversions,
                    "redemptions": obj.redemptions,
                    "pointsEarned": obj.points_earned,
                    "pointsSpent": obj.points_spent,
                    "averagePeople": obj.average_people,
                    "conversionRate": obj.conversion_rate,
                }
            if isinstance(obj, ArtistSummary):
                return {
                    "artistId": obj.artist_id,
                    "name": obj.name,
                    "nights": obj.nights,
                    "averagePeople": obj.average_people,
                    "vipPercent": obj.vip_percent,
                    "conversionPercent": obj.conversion_percent,
                    "bestPeople": obj.best_people,
                    "bestDay": obj.best_day.isoformat(),
                    "bestDayLabel": obj.best_day_label,
                }
            return obj

        return _serialize(self)
