from __future__ import annotations

import asyncio
import dataclasses
import logging
from datetime import date, datetime
from typing import Any, Callable, List, Optional, Sequence, Tuple

from .aggregator import aggregate_activity
from .attribution import EventAttributor
from .civil_time import add_days_civil, civil_range_bounds, coerce_timezone, iter_civil_days, today_civil
from .configuration import VenueConfig, load_venue_config
from .errors import UpstreamFetchError
from .models import ActivityDataset, PeriodAggregate, VenueHealthFilters, VenueHealthResult
from .periods import resolve_granularity, resolve_metric, resolve_range_days
from .quality import RedemptionHealth, check_redemptions
from .repository import VenueDataRepository
from .series import SeriesBuilder

logger = logging.getLogger(__name__)

SOURCES = ("scans", "guest_checkins", "conversions", "redemptions", "calendar_events", "artists")


class VenueHealthService:
    """
    Venue-health trends: attendance, VIP/guest mix, conversions and
    redemptions per period, correlated with the calendar.

    Stateless; every report is recomputed from raw records. A failed query
    degrades the report (its records count as empty and the source is listed
    in ``failed_sources``) instead of failing it.
    """

    def __init__(
        self,
        repository: Optional[VenueDataRepository] = None,
        config: Optional[VenueConfig] = None,
    ) -> None:
        self.repository = repository
        self.config = config or load_venue_config()

    def filters(
        self,
        range_days: Optional[object] = None,
        granularity: Optional[object] = None,
        metric: Optional[object] = None,
        today: Optional[date] = None,
    ) -> VenueHealthFilters:
        cfg = self.config
        return VenueHealthFilters(
            range_days=resolve_range_days(range_days, cfg.default_range_days),
            granularity=resolve_granularity(granularity, cfg.default_granularity),
            metric=resolve_metric(metric, cfg.default_metric),
            timezone=cfg.timezone,
            today=today,
            top_days=cfg.top_days,
            top_artists=cfg.top_artists,
        )

    @staticmethod
    def pin_today(filters: VenueHealthFilters, now: Optional[datetime] = None) -> VenueHealthFilters:
        if filters.today is not None:
            return filters
        return dataclasses.replace(filters, today=today_civil(filters.timezone, now))

    @staticmethod
    def window(filters: VenueHealthFilters, now: Optional[datetime] = None) -> Tuple[date, date]:
        last_day = filters.today or today_civil(filters.timezone, now)
        first_day = add_days_civil(last_day, -(max(1, filters.range_days) - 1))
        return first_day, last_day

    def build(
        self,
        dataset: ActivityDataset,
        filters: VenueHealthFilters,
        failed_sources: Sequence[str] = (),
    ) -> VenueHealthResult:
        tz = coerce_timezone(filters.timezone)
        first_day, last_day = self.window(filters)
        days = list(iter_civil_days(first_day, last_day))
        events = list(dataset.activity())

        daily = aggregate_activity(events, tz, "day", window=(first_day, last_day))
        if filters.granularity == "day":
            periods = daily
        else:
            periods = aggregate_activity(events, tz, filters.granularity, window=(first_day, last_day))

        # quiet days and periods still get a calendar label
        for day in days:
            daily.setdefault(day.isoformat(), PeriodAggregate(key=day.isoformat()))
        builder = SeriesBuilder(first_day, last_day, filters.granularity)
        for period in builder.periods():
            periods.setdefault(period.key, PeriodAggregate(key=period.key))

        attributor = EventAttributor(dataset.calendar_events, dataset.artist_names, self.config.event_label)
        attributor.attribute(daily, days, "day", daily)
        if periods is not daily:
            attributor.attribute(periods, days, filters.granularity, daily)

        series = builder.build(periods)
        day_rows = SeriesBuilder(first_day, last_day, "day").build(daily)

        return VenueHealthResult(
            timezone=tz.key,
            start_date=first_day,
            end_date=last_day,
            granularity=filters.granularity,
            metric=filters.metric,
            periods=series,
            days=day_rows,
            totals=builder.totals(series),
            best_period=builder.best(series, filters.metric),
            top_days=builder.top(day_rows, filters.top_days),
            top_artists=builder.artist_rollup(day_rows, dataset.artist_names, filters.top_artists),
            failed_sources=list(failed_sources),
        )

    async def load(self, filters: VenueHealthFilters) -> Tuple[ActivityDataset, List[str]]:
        """
        Fetch every raw record for the request window.

        The five range queries run concurrently; the artist lookup follows
        because it needs the calendar's artist ids. Any exception from a
        repository method degrades that source instead of failing the load.
        """
        if self.repository is None:
            raise RuntimeError("No venue data repository configured")
        repository = self.repository
        first_day, last_day = self.window(filters)
        start, end = civil_range_bounds(first_day, last_day, filters.timezone)
        failed: List[str] = []

        scans, guests, conversions, redemptions, calendar = await asyncio.gather(
            self._fetch("scans", repository.load_scans, first_day, last_day, failed=failed),
            self._fetch("guest_checkins", repository.load_guest_checkins, first_day, last_day, failed=failed),
            self._fetch("conversions", repository.load_conversions, start, end, failed=failed),
            self._fetch("redemptions", repository.load_redemptions, start, end, failed=failed),
            self._fetch("calendar_events", repository.load_calendar_events, first_day, last_day, failed=failed),
        )
        artist_ids = sorted({event.artist_id for event in calendar if event.artist_id})
        artist_names = {}
        if artist_ids:
            artist_names = await self._fetch("artists", repository.load_artist_names, artist_ids, failed=failed)

        dataset = ActivityDataset(
            scans=tuple(scans),
            guest_checkins=tuple(guests),
            conversions=tuple(conversions),
            redemptions=tuple(redemptions),
            calendar_events=tuple(calendar),
            artist_names=dict(artist_names or {}),
        )
        return dataset, sorted(failed, key=SOURCES.index)

    async def report(self, filters: VenueHealthFilters) -> VenueHealthResult:
        # fetch and build must share one "today" even across local midnight
        filters = self.pin_today(filters)
        dataset, failed = await self.load(filters)
        return self.build(dataset, filters, failed_sources=failed)

    @staticmethod
    async def _fetch(source: str, loader: Callable[..., Any], *args: Any, failed: List[str]) -> Any:
        try:
            return await asyncio.to_thread(loader, *args)
        except UpstreamFetchError as exc:
            logger.warning("Venue health %s query failed, continuing without it: %s", source, exc)
            failed.append(source)
            return ()
        except Exception:
            logger.exception("Venue health %s query raised, continuing without it", source)
            failed.append(source)
            return ()

    async def redemption_health(
        self,
        today: Optional[date] = None,
        window_days: int = 7,
    ) -> Tuple[RedemptionHealth, RedemptionHealth, List[str]]:
        """Redemption checks for ``today`` and for the ``window_days`` ending on it."""
        if self.repository is None:
            raise RuntimeError("No venue data repository configured")
        repository = self.repository
        tz = self.config.timezone
        last_day = today or today_civil(tz)
        first_day = add_days_civil(last_day, -(max(1, window_days) - 1))
        start, end = civil_range_bounds(first_day, last_day, tz)
        failed: List[str] = []

        redemptions, scans = await asyncio.gather(
            self._fetch("redemptions", repository.load_redemptions, start, end, failed=failed),
            self._fetch("scans", repository.load_scans, first_day, last_day, failed=failed),
        )
        today_health = check_redemptions(redemptions, scans, last_day, last_day, tz)
        window_health = check_redemptions(redemptions, scans, first_day, last_day, tz)
        return today_health, window_health, sorted(failed, key=SOURCES.index)
