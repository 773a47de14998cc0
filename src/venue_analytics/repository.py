from __future__ import annotations

from datetime import date, datetime, time
from typing import Dict, Iterable, Optional, Sequence

from sqlalchemy import Date, DateTime, bindparam, create_engine, text
from sqlalchemy.engine import Engine, Row
from sqlalchemy.exc import SQLAlchemyError

from .civil_time import ensure_utc, parse_civil_date
from .configuration import VenueConfig, load_venue_config
from .errors import UpstreamFetchError
from .models import CalendarEvent, Conversion, GuestCheckin, Redemption, VipScan


class VenueDataRepository:
    """
    Read queries for the venue-health report.

    Civil-date tables are filtered on inclusive ``[first_day, last_day]``;
    instant tables on the half-open UTC window ``[start, end)``. Implementations
    raise ``UpstreamFetchError`` when a query fails; the service also degrades
    the source on any other exception.
    """

    def load_scans(self, first_day: date, last_day: date) -> Sequence[VipScan]:
        raise NotImplementedError

    def load_guest_checkins(self, first_day: date, last_day: date) -> Sequence[GuestCheckin]:
        raise NotImplementedError

    def load_conversions(self, start: datetime, end: datetime) -> Sequence[Conversion]:
        raise NotImplementedError

    def load_redemptions(self, start: datetime, end: datetime) -> Sequence[Redemption]:
        raise NotImplementedError

    def load_calendar_events(self, first_day: date, last_day: date) -> Sequence[CalendarEvent]:
        raise NotImplementedError

    def load_artist_names(self, artist_ids: Iterable[str]) -> Dict[str, str]:
        raise NotImplementedError


def _as_instant(value: object) -> Optional[datetime]:
    if value is None:
        return None
    if isinstance(value, str):
        try:
            value = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
        except ValueError:
            return None
    if not isinstance(value, datetime):
        return None
    return ensure_utc(value)


def _as_time(value: object) -> Optional[time]:
    if value is None or isinstance(value, time):
        return value
    try:
        return time.fromisoformat(str(value).strip())
    except ValueError:
        return None


class SQLVenueRepository(VenueDataRepository):
    """
    Load venue activity from the hosted Postgres schema.

    Expected tables:
      - rewards_scans(id, user_id, points, scanned_at, scan_date)
      - guest_checkins(id, guest_device_id, device_id, day_et, scanned_at)
      - guest_device_links(guest_device_id, user_id, linked_at)
      - rewards_redemptions(id, user_id, reward_name, points_spent, staff_label, staff_last4, created_at)
      - artist_events(id, artist_id, event_date, start_time, end_time, title, is_cancelled)
      - artists(id, name)
    """

    def __init__(self, engine: Engine):
        self.engine = engine

    def load_scans(self, first_day: date, last_day: date) -> Sequence[VipScan]:
        query = (
            text(
                """
                SELECT id, user_id, points, scanned_at, scan_date
                FROM rewards_scans
                WHERE scan_date >= :first_day AND scan_date <= :last_day
                ORDER BY scanned_at ASC
                """
            )
            .bindparams(bindparam("first_day", type_=Date), bindparam("last_day", type_=Date))
            .columns(scanned_at=DateTime, scan_date=Date)
        )
        rows = self._fetch("rewards_scans", query, {"first_day": first_day, "last_day": last_day})
        return tuple(self._row_to_scan(row) for row in rows)

    def load_guest_checkins(self, first_day: date, last_day: date) -> Sequence[GuestCheckin]:
        query = (
            text(
                """
                SELECT id, guest_device_id, device_id, day_et, scanned_at
                FROM guest_checkins
                WHERE day_et >= :first_day AND day_et <= :last_day
                ORDER BY scanned_at ASC
                """
            )
            .bindparams(bindparam("first_day", type_=Date), bindparam("last_day", type_=Date))
            .columns(day_et=Date, scanned_at=DateTime)
        )
        rows = self._fetch("guest_checkins", query, {"first_day": first_day, "last_day": last_day})
        return tuple(self._row_to_guest(row) for row in rows)

    def load_conversions(self, start: datetime, end: datetime) -> Sequence[Conversion]:
        query = (
            text(
                """
                SELECT guest_device_id, user_id, linked_at
                FROM guest_device_links
                WHERE linked_at >= :start AND linked_at < :end
                ORDER BY linked_at ASC
                """
            )
            .bindparams(
                bindparam("start", type_=DateTime(timezone=True)),
                bindparam("end", type_=DateTime(timezone=True)),
            )
            .columns(linked_at=DateTime)
        )
        rows = self._fetch("guest_device_links", query, {"start": ensure_utc(start), "end": ensure_utc(end)})
        return tuple(
            Conversion(
                device_id=row.guest_device_id,
                user_id=row.user_id,
                instant=_as_instant(row.linked_at),
            )
            for row in rows
        )

    def load_redemptions(self, start: datetime, end: datetime) -> Sequence[Redemption]:
        query = (
            text(
                """
                SELECT id, user_id, reward_name, points_spent, staff_label, staff_last4, created_at
                FROM rewards_redemptions
                WHERE created_at >= :start AND created_at < :end
                ORDER BY created_at ASC
                """
            )
            .bindparams(
                bindparam("start", type_=DateTime(timezone=True)),
                bindparam("end", type_=DateTime(timezone=True)),
            )
            .columns(created_at=DateTime)
        )
        rows = self._fetch("rewards_redemptions", query, {"start": ensure_utc(start), "end": ensure_utc(end)})
        return tuple(self._row_to_redemption(row) for row in rows)

    def load_calendar_events(self, first_day: date, last_day: date) -> Sequence[CalendarEvent]:
        query = (
            text(
                """
                SELECT id, artist_id, event_date, start_time, end_time, title, is_cancelled
                FROM artist_events
                WHERE event_date >= :first_day AND event_date <= :last_day
                ORDER BY event_date ASC, start_time ASC
                """
            )
            .bindparams(bindparam("first_day", type_=Date), bindparam("last_day", type_=Date))
            .columns(event_date=Date)
        )
        rows = self._fetch("artist_events", query, {"first_day": first_day, "last_day": last_day})
        events = (self._row_to_calendar_event(row) for row in rows)
        return tuple(event for event in events if event is not None)

    def load_artist_names(self, artist_ids: Iterable[str]) -> Dict[str, str]:
        ids = sorted({str(artist_id) for artist_id in artist_ids if artist_id})
        if not ids:
            return {}
        query = text("SELECT id, name FROM artists WHERE id IN :ids").bindparams(
            bindparam("ids", expanding=True)
        )
        rows = self._fetch("artists", query, {"ids": ids})
        return {str(row.id): str(row.name) for row in rows if row.id is not None and row.name}

    def _fetch(self, source: str, query, params: Dict[str, object]) -> Sequence[Row]:
        try:
            with self.engine.connect() as connection:
                return connection.execute(query, params).fetchall()
        except SQLAlchemyError as exc:
            raise UpstreamFetchError(source, str(exc)) from exc

    @staticmethod
    def _row_to_scan(row: Row) -> VipScan:
        return VipScan(
            id=str(row.id),
            user_id=None if row.user_id is None else str(row.user_id),
            points=row.points,
            instant=_as_instant(row.scanned_at),
            civil_date=parse_civil_date(row.scan_date),
        )

    @staticmethod
    def _row_to_guest(row: Row) -> GuestCheckin:
        device = row.guest_device_id or row.device_id
        return GuestCheckin(
            id=str(row.id),
            device_id=None if device is None else str(device),
            civil_date=parse_civil_date(row.day_et),
            instant=_as_instant(row.scanned_at),
        )

    @staticmethod
    def _row_to_redemption(row: Row) -> Redemption:
        return Redemption(
            id=None if row.id is None else str(row.id),
            user_id=None if row.user_id is None else str(row.user_id),
            reward_name=row.reward_name,
            points_spent=row.points_spent,
            instant=_as_instant(row.created_at),
            staff_label=row.staff_label,
            staff_last4=row.staff_last4,
        )

    @staticmethod
    def _row_to_calendar_event(row: Row) -> Optional[CalendarEvent]:
        event_date = parse_civil_date(row.event_date)
        if event_date is None:
            return None
        return CalendarEvent(
            id=str(row.id),
            civil_date=event_date,
            artist_id=None if row.artist_id is None else str(row.artist_id),
            title=row.title,
            start_time=_as_time(row.start_time),
            end_time=_as_time(row.end_time),
            cancelled=bool(row.is_cancelled),
        )


def build_repository_from_env(config: Optional[VenueConfig] = None) -> Optional[VenueDataRepository]:
    cfg = config or load_venue_config()
    if cfg.database_url:
        engine = create_engine(cfg.database_url)
        return SQLVenueRepository(engine)
    return None
