from __future__ import annotations

from datetime import date, datetime, time
from typing import Any, Dict, List, Optional, Union

from fastapi import FastAPI, HTTPException, Query
from pydantic import BaseModel, Field

from .configuration import load_venue_config
from .models import ActivityDataset, CalendarEvent, Conversion, GuestCheckin, Redemption, VipScan
from .repository import VenueDataRepository, build_repository_from_env
from .service import VenueHealthService

config = load_venue_config()
app = FastAPI(title="Venue Health API", version="0.1.0")
repository: Optional[VenueDataRepository] = build_repository_from_env(config)


class ScanPayload(BaseModel):
    id: str
    user_id: Optional[str] = None
    points: float = 0.0
    scanned_at: Optional[datetime] = None
    scan_date: Optional[date] = None


class GuestCheckinPayload(BaseModel):
    id: str
    guest_device_id: Optional[str] = None
    device_id: Optional[str] = None
    day_et: Optional[date] = None
    scanned_at: Optional[datetime] = None


class ConversionPayload(BaseModel):
    guest_device_id: Optional[str] = None
    user_id: Optional[str] = None
    linked_at: Optional[datetime] = None


class RedemptionPayload(BaseModel):
    id: Optional[str] = None
    user_id: Optional[str] = None
    reward_name: Optional[str] = None
    points_spent: float = 0.0
    created_at: Optional[datetime] = None
    staff_label: Optional[str] = None
    staff_last4: Optional[str] = None


class CalendarEventPayload(BaseModel):
    id: str
    event_date: date
    artist_id: Optional[str] = None
    title: Optional[str] = None
    start_time: Optional[time] = None
    end_time: Optional[time] = None
    is_cancelled: bool = False


class VenueHealthRequest(BaseModel):
    range: Optional[Union[int, str]] = None
    group: Optional[str] = None
    metric: Optional[str] = None
    today: Optional[date] = None
    scans: List[ScanPayload] = Field(default_factory=list)
    guest_checkins: List[GuestCheckinPayload] = Field(default_factory=list)
    conversions: List[ConversionPayload] = Field(default_factory=list)
    redemptions: List[RedemptionPayload] = Field(default_factory=list)
    calendar_events: List[CalendarEventPayload] = Field(default_factory=list)
    artists: Dict[str, str] = Field(default_factory=dict)


class VenueHealthResponse(BaseModel):
    data: Dict[str, Any]
    source: str


def _service() -> VenueHealthService:
    return VenueHealthService(repository=repository, config=config)


@app.get("/health")
async def health() -> Dict[str, str]:
    return {"status": "ok"}


@app.get("/venue-health", response_model=VenueHealthResponse)
async def venue_health(
    range_days: Optional[str] = Query(None, alias="range"),
    group: Optional[str] = Query(None),
    metric: Optional[str] = Query(None),
) -> VenueHealthResponse:
    if repository is None:
        raise HTTPException(
            status_code=503,
            detail=(
                "VENUE_DATABASE_URL is not configured; "
                "POST records to /venue-health for ad-hoc reports."
            ),
        )
    service = _service()
    result = await service.report(service.filters(range_days, group, metric))
    return VenueHealthResponse(data=result.as_dict(), source="database")


@app.post("/venue-health", response_model=VenueHealthResponse)
async def venue_health_inline(request: VenueHealthRequest) -> VenueHealthResponse:
    service = _service()
    filters = service.filters(request.range, request.group, request.metric, today=request.today)
    result = service.build(_convert_dataset(request), filters)
    return VenueHealthResponse(data=result.as_dict(), source="inline")


@app.get("/redemption-health")
async def redemption_health(days: int = Query(7, ge=1, le=90)) -> Dict[str, Any]:
    if repository is None:
        raise HTTPException(status_code=503, detail="VENUE_DATABASE_URL is not configured.")
    today_health, window_health, failed = await _service().redemption_health(window_days=days)
    return {
        "today": today_health.as_dict(),
        "window": window_health.as_dict(),
        "failedSources": failed,
    }


def _convert_dataset(request: VenueHealthRequest) -> ActivityDataset:
    return ActivityDataset(
        scans=tuple(
            VipScan(
                id=payload.id,
                user_id=payload.user_id,
                points=payload.points,
                instant=payload.scanned_at,
                civil_date=payload.scan_date,
            )
            for payload in request.scans
        ),
        guest_checkins=tuple(
            GuestCheckin(
                id=payload.id,
                device_id=payload.guest_device_id or payload.device_id,
                civil_date=payload.day_et,
                instant=payload.scanned_at,
            )
            for payload in request.guest_checkins
        ),
        conversions=tuple(
            Conversion(device_id=payload.guest_device_id, user_id=payload.user_id, instant=payload.linked_at)
            for payload in request.conversions
        ),
        redemptions=tuple(
            Redemption(
                id=payload.id,
                user_id=payload.user_id,
                reward_name=payload.reward_name,
                points_spent=payload.points_spent,
                instant=payload.created_at,
                staff_label=payload.staff_label,
                staff_last4=payload.staff_last4,
            )
            for payload in request.redemptions
        ),
        calendar_events=tuple(
            CalendarEvent(
                id=payload.id,
                civil_date=payload.event_date,
                artist_id=payload.artist_id,
                title=payload.title,
                start_time=payload.start_time,
                end_time=payload.end_time,
                cancelled=payload.is_cancelled,
            )
            for payload in request.calendar_events
        ),
        artist_names=dict(request.artists),
    )
