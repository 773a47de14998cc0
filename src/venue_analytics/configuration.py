"""
Venue configuration.

One venue, one timezone. The timezone is still passed explicitly into every
computation so the core stays testable under any zone.
"""

from __future__ import annotations

import os
from typing import Any, Dict, Literal, Optional

from pydantic import BaseModel, Field

from .periods import (
    DEFAULT_GRANULARITY,
    DEFAULT_METRIC,
    DEFAULT_RANGE_DAYS,
    resolve_granularity,
    resolve_metric,
    resolve_range_days,
)


class VenueConfig(BaseModel):
    timezone: str = "America/New_York"
    default_range_days: int = DEFAULT_RANGE_DAYS
    default_granularity: Literal["day", "week", "month"] = DEFAULT_GRANULARITY
    default_metric: Literal["total", "vip", "guest"] = DEFAULT_METRIC
    top_days: int = Field(default=10, ge=1)
    top_artists: int = Field(default=12, ge=1)
    event_label: str = "Venue Event"
    database_url: Optional[str] = None


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_str(name: str, default: Optional[str]) -> Optional[str]:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip()


def load_venue_config(overrides: Optional[Dict[str, Any]] = None) -> VenueConfig:
    """
    Build the config from defaults, then ``overrides``, then ``VENUE_*``
    environment variables. Unrecognised range/grouping/metric values fall back
    to the defaults instead of failing.
    """
    cfg = VenueConfig()
    values = overrides or {}

    range_days = _env_int("VENUE_DEFAULT_RANGE", values.get("default_range_days", cfg.default_range_days))
    granularity = _env_str("VENUE_DEFAULT_GROUP", values.get("default_granularity", cfg.default_granularity))
    metric = _env_str("VENUE_DEFAULT_METRIC", values.get("default_metric", cfg.default_metric))

    return VenueConfig(
        timezone=_env_str("VENUE_TIMEZONE", values.get("timezone", cfg.timezone)) or cfg.timezone,
        default_range_days=resolve_range_days(range_days),
        default_granularity=resolve_granularity(granularity),
        default_metric=resolve_metric(metric),
        top_days=max(1, _env_int("VENUE_TOP_DAYS", values.get("top_days", cfg.top_days))),
        top_artists=max(1, _env_int("VENUE_TOP_ARTISTS", values.get("top_artists", cfg.top_artists))),
        event_label=_env_str("VENUE_EVENT_LABEL", values.get("event_label", cfg.event_label)) or cfg.event_label,
        database_url=_env_str("VENUE_DATABASE_URL", values.get("database_url", cfg.database_url)),
    )
