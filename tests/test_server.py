from __future__ import annotations

from datetime import date

import pytest
from fastapi.testclient import TestClient

from venue_analytics import server
from venue_analytics.models import ActivityDataset, CalendarEvent, VipScan
from venue_analytics.repository import VenueDataRepository


class StaticRepository(VenueDataRepository):
    def __init__(self, dataset: ActivityDataset) -> None:
        self.dataset = dataset

    def load_scans(self, first_day, last_day):
        return self.dataset.scans

    def load_guest_checkins(self, first_day, last_day):
        return self.dataset.guest_checkins

    def load_conversions(self, start, end):
        return self.dataset.conversions

    def load_redemptions(self, start, end):
        return self.dataset.redemptions

    def load_calendar_events(self, first_day, last_day):
        return self.dataset.calendar_events

    def load_artist_names(self, artist_ids):
        return dict(self.dataset.artist_names)


@pytest.fixture()
def client() -> TestClient:
    return TestClient(server.app)


def test_health(client: TestClient) -> None:
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_stored_report_requires_a_database(client: TestClient, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(server, "repository", None)

    assert client.get("/venue-health").status_code == 503
    assert client.get("/redemption-health").status_code == 503


def test_stored_report_uses_repository(client: TestClient, monkeypatch: pytest.MonkeyPatch) -> None:
    dataset = ActivityDataset(
        scans=(VipScan(id="1", user_id="A", civil_date=date.today()),),
        calendar_events=(CalendarEvent(id="e1", civil_date=date.today(), artist_id="X"),),
        artist_names={"X": "Xavier"},
    )
    monkeypatch.setattr(server, "repository", StaticRepository(dataset))

    response = client.get("/venue-health", params={"range": "7", "group": "day", "metric": "bogus"})

    assert response.status_code == 200
    body = response.json()
    assert body["source"] == "database"
    assert body["data"]["rangeDays"] == 7
    assert body["data"]["metric"] == "total"
    assert len(body["data"]["periods"]) == 7
    assert body["data"]["failedSources"] == []


def test_inline_report(client: TestClient) -> None:
    payload = {
        "range": 7,
        "group": "week",
        "today": "2024-03-10",
        "scans": [
            {"id": "1", "user_id": "A", "points": 10, "scanned_at": "2024-03-10T03:30:00Z"},
            {"id": "2", "user_id": "B", "points": 5, "scan_date": "2024-03-10"},
        ],
        "guest_checkins": [
            {"id": "g1", "device_id": "dev-1", "day_et": "2024-03-08"},
            {"id": "g2", "guest_device_id": "dev-2", "day_et": "2024-03-09"},
        ],
        "conversions": [{"guest_device_id": "dev-1", "user_id": "C", "linked_at": "2024-03-09T00:30:00Z"}],
        "calendar_events": [
            {"id": "e1", "event_date": "2024-03-09", "artist_id": "X", "start_time": "20:00:00"},
        ],
        "artists": {"X": "Xavier"},
    }

    response = client.post("/venue-health", json=payload)

    assert response.status_code == 200
    body = response.json()
    assert body["source"] == "inline"
    periods = body["data"]["periods"]
    assert len(periods) == 1
    week = periods[0]
    assert week["key"] == "2024-03-04"
    assert week["uniqueVipCount"] == 2
    assert week["uniqueGuestCount"] == 2
    assert week["conversionRate"] == 50.0
    # the 9th has the late-night VIP scan plus a guest
    assert week["attributedLabel"] == "Xavier"


def test_redemption_health(client: TestClient, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(server, "repository", StaticRepository(ActivityDataset()))

    response = client.get("/redemption-health", params={"days": 3})

    assert response.status_code == 200
    body = response.json()
    assert body["today"]["redemptions"] == 0
    assert body["today"]["firstDay"] == body["today"]["lastDay"]
    assert body["window"]["hasIssues"] is False
    assert body["failedSources"] == []
    assert client.get("/redemption-health", params={"days": 0}).status_code == 422
