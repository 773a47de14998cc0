from __future__ import annotations

from collections import defaultdict
from datetime import date
from typing import Dict, List, Mapping, Optional, Sequence

from .civil_time import iter_civil_days
from .models import (
    EMPTY_LABEL,
    ArtistSummary,
    Granularity,
    Metric,
    Period,
    PeriodAggregate,
    PeriodSummary,
    RangeTotals,
)
from .periods import chronological_periods, format_day

UNKNOWN_ARTIST = "Unknown artist"


def percent(numerator: float, denominator: float) -> float:
    """Percentage rounded to one decimal; 0 when the denominator is 0."""
    if not denominator:
        return 0.0
    return round(numerator / denominator * 100, 1)


def metric_value(summary: PeriodSummary, metric: Metric) -> int:
    if metric == "vip":
        return summary.unique_vip_count
    if metric == "guest":
        return summary.unique_guest_count
    return summary.total_people


def summarize(period: Period, aggregate: Optional[PeriodAggregate]) -> PeriodSummary:
    aggregate = aggregate or PeriodAggregate(key=period.key)
    return PeriodSummary(
        key=period.key,
        label=period.label,
        attributed_label=aggregate.attributed_label or EMPTY_LABEL,
        unique_vip_count=aggregate.unique_vip_count,
        unique_guest_count=aggregate.unique_guest_count,
        total_people=aggregate.total_people,
        scan_count=aggregate.scan_count,
        guest_rows=aggregate.guest_rows,
        points_earned=aggregate.points_earned,
        conversion_count=aggregate.conversion_count,
        conversion_rate=percent(aggregate.conversion_count, aggregate.unique_guest_count),
        redemption_count=aggregate.redemption_count,
        points_spent=aggregate.points_spent,
        event_count=aggregate.attributed_event_count,
        artist_id=aggregate.attributed_artist_id,
    )


class SeriesBuilder:
    """
    Turn period aggregates into the chronological, gap-free series shown on
    the dashboard, plus the range-wide roll-ups.
    """

    def __init__(self, start: date, end: date, granularity: Granularity) -> None:
        self.start = start
        self.end = end
        self.granularity = granularity

    @property
    def days(self) -> List[date]:
        return list(iter_civil_days(self.start, self.end))

    def periods(self) -> List[Period]:
        return chronological_periods(self.start, self.end, self.granularity)

    def build(self, aggregates: Mapping[str, PeriodAggregate]) -> List[PeriodSummary]:
        return [summarize(period, aggregates.get(period.key)) for period in self.periods()]

    @staticmethod
    def totals(series: Sequence[PeriodSummary]) -> RangeTotals:
        if not series:
            return RangeTotals()
        people = sum(item.total_people for item in series)
        guest = sum(item.unique_guest_count for item in series)
        conversions = sum(item.conversion_count for item in series)
        return RangeTotals(
            people=people,
            vip=sum(item.unique_vip_count for item in series),
            guest=guest,
            scans=sum(item.scan_count for item in series),
            guest_rows=sum(item.guest_rows for item in series),
            conversions=conversions,
            redemptions=sum(item.redemption_count for item in series),
            points_earned=sum(item.points_earned for item in series),
            points_spent=sum(item.points_spent for item in series),
            average_people=round(people / len(series), 1),
            conversion_rate=percent(conversions, guest),
        )

    @staticmethod
    def best(series: Sequence[PeriodSummary], metric: Metric = "total") -> Optional[PeriodSummary]:
        """Highest ``metric`` value; the earliest period wins ties."""
        best: Optional[PeriodSummary] = None
        for item in series:
            if best is None or metric_value(item, metric) > metric_value(best, metric):
                best = item
        return best

    @staticmethod
    def top(series: Sequence[PeriodSummary], limit: int = 10, metric: Metric = "total") -> List[PeriodSummary]:
        ranked = sorted(series, key=lambda item: metric_value(item, metric), reverse=True)
        return ranked[: max(0, limit)]

    @staticmethod
    def artist_rollup(
        days: Sequence[PeriodSummary],
        artist_names: Mapping[str, str],
        limit: int = 12,
    ) -> List[ArtistSummary]:
        """
        Group attributed days by headlining artist.

        ``days`` must be day-granularity summaries in chronological order;
        days without an artist are ignored.
        """
        stats: Dict[str, Dict[str, float]] = defaultdict(lambda: defaultdict(float))
        best_days: Dict[str, PeriodSummary] = {}
        for day in days:
            if not day.artist_id:
                continue
            values = stats[day.artist_id]
            values["nights"] += 1
            values["people"] += day.total_people
            values["vip"] += day.unique_vip_count
            values["guest"] += day.unique_guest_count
            values["conversions"] += day.conversion_count
            best = best_days.get(day.artist_id)
            if best is None or day.total_people > best.total_people:
                best_days[day.artist_id] = day

        rows: List[ArtistSummary] = []
        for artist_id, values in stats.items():
            nights = int(values["nights"])
            best = best_days[artist_id]
            best_day = date.fromisoformat(best.key)
            rows.append(
                ArtistSummary(
                    artist_id=artist_id,
                    name=(artist_names.get(artist_id) or "").strip() or UNKNOWN_ARTIST,
                    nights=nights,
                    average_people=round(values["people"] / nights, 1) if nights else 0.0,
                    vip_percent=percent(values["vip"], values["people"]),
                    conversion_percent=percent(values["conversions"], values["guest"]),
                    best_people=best.total_people,
                    best_day=best_day,
                    best_day_label=format_day(best_day),
                )
            )
        return sorted(rows, key=lambda row: row.average_people, reverse=True)[: max(0, limit)]
