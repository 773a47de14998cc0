from __future__ import annotations

from collections import defaultdict
from datetime import date, time
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from .models import EMPTY_LABEL, CalendarEvent, DayAttribution, Granularity, PeriodAggregate
from .periods import days_by_period

DEFAULT_EVENT_LABEL = "Venue Event"


def _start_order(event: CalendarEvent) -> Tuple[bool, time, str]:
    # events without a start time sort last; id keeps equal start times stable
    return event.start_time is None, event.start_time or time.min, event.id


def label_calendar_event(
    event: CalendarEvent,
    artist_names: Mapping[str, str],
    generic_label: str = DEFAULT_EVENT_LABEL,
) -> str:
    if event.artist_id:
        name = (artist_names.get(event.artist_id) or "").strip()
        if name:
            return name
    title = (event.title or "").strip()
    if title:
        return f"{generic_label} ({title})"
    return generic_label


class EventAttributor:
    """
    Label periods with the calendar event of their busiest civil day.

    Each day is labelled from its earliest non-cancelled event; a period takes
    the label of the day with the most people (unique VIPs plus unique guest
    devices), the earliest day winning ties.
    """

    def __init__(
        self,
        calendar_events: Iterable[CalendarEvent],
        artist_names: Mapping[str, str],
        generic_label: str = DEFAULT_EVENT_LABEL,
    ) -> None:
        self.artist_names = artist_names
        self.generic_label = generic_label
        self.events_by_day: Dict[date, List[CalendarEvent]] = defaultdict(list)
        for event in calendar_events:
            if event.cancelled:
                continue
            self.events_by_day[event.civil_date].append(event)
        for events in self.events_by_day.values():
            events.sort(key=_start_order)

    def for_day(self, day: date) -> DayAttribution:
        events = self.events_by_day.get(day)
        if not events:
            return DayAttribution()
        head = events[0]
        label = label_calendar_event(head, self.artist_names, self.generic_label)
        if len(events) > 1:
            label = f"{label} (+{len(events) - 1} more)"
        return DayAttribution(label=label, event_count=len(events), artist_id=head.artist_id or None)

    @staticmethod
    def peak_day(days: Sequence[date], daily: Mapping[str, PeriodAggregate]) -> Optional[date]:
        best_day: Optional[date] = None
        best_people = -1
        for day in sorted(days):
            aggregate = daily.get(day.isoformat())
            people = aggregate.total_people if aggregate is not None else 0
            if people > best_people:
                best_day, best_people = day, people
        return best_day

    def attribute(
        self,
        periods: Mapping[str, PeriodAggregate],
        days: Sequence[date],
        granularity: Granularity,
        daily: Mapping[str, PeriodAggregate],
    ) -> None:
        """Set the attributed label on every aggregate in ``periods`` in place."""
        grouped = days_by_period(days, granularity)
        for key, aggregate in periods.items():
            member_days = grouped.get(key)
            if not member_days:
                aggregate.attributed_label = EMPTY_LABEL
                continue
            best = self.peak_day(member_days, daily)
            attribution = self.for_day(best) if best is not None else DayAttribution()
            aggregate.attributed_day = best
            aggregate.attributed_label = attribution.label
            aggregate.attributed_event_count = attribution.event_count
            aggregate.attributed_artist_id = attribution.artist_id
