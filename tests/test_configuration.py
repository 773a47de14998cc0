from __future__ import annotations

import pytest

from venue_analytics.configuration import VenueConfig, load_venue_config

ENV_VARS = (
    "VENUE_DEFAULT_RANGE",
    "VENUE_DEFAULT_GROUP",
    "VENUE_DEFAULT_METRIC",
    "VENUE_TIMEZONE",
    "VENUE_TOP_DAYS",
    "VENUE_TOP_ARTISTS",
    "VENUE_EVENT_LABEL",
    "VENUE_DATABASE_URL",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


def test_defaults() -> None:
    cfg = load_venue_config()

    assert cfg == VenueConfig()
    assert cfg.timezone == "America/New_York"
    assert (cfg.default_range_days, cfg.default_granularity, cfg.default_metric) == (30, "day", "total")
    assert (cfg.top_days, cfg.top_artists) == (10, 12)
    assert cfg.database_url is None


def test_environment_overrides(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("VENUE_DEFAULT_RANGE", "90")
    monkeypatch.setenv("VENUE_DEFAULT_GROUP", "Week")
    monkeypatch.setenv("VENUE_DEFAULT_METRIC", "vip")
    monkeypatch.setenv("VENUE_TIMEZONE", "America/Chicago")
    monkeypatch.setenv("VENUE_TOP_DAYS", "5")
    monkeypatch.setenv("VENUE_DATABASE_URL", "sqlite://")

    cfg = load_venue_config({"top_artists": 3})

    assert cfg.default_range_days == 90
    assert cfg.default_granularity == "week"
    assert cfg.default_metric == "vip"
    assert cfg.timezone == "America/Chicago"
    assert cfg.top_days == 5
    assert cfg.top_artists == 3
    assert cfg.database_url == "sqlite://"


def test_unrecognised_values_fall_back(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("VENUE_DEFAULT_RANGE", "45")
    monkeypatch.setenv("VENUE_DEFAULT_GROUP", "fortnight")
    monkeypatch.setenv("VENUE_DEFAULT_METRIC", "revenue")
    monkeypatch.setenv("VENUE_TOP_DAYS", "lots")
    monkeypatch.setenv("VENUE_EVENT_LABEL", "   ")

    cfg = load_venue_config()

    assert cfg.default_range_days == 30
    assert cfg.default_granularity == "day"
    assert cfg.default_metric == "total"
    assert cfg.top_days == 10
    assert cfg.event_label == "Venue Event"
