"""
Venue activity analytics.

Converts raw check-in, conversion, redemption and calendar records into the
timezone-aware day/week/month trends shown on the venue dashboards.
"""

from .models import (  # noqa: F401
    ActivityDataset,
    ArtistSummary,
    CalendarEvent,
    Conversion,
    GuestCheckin,
    Period,
    PeriodAggregate,
    PeriodSummary,
    RangeTotals,
    Redemption,
    VenueHealthFilters,
    VenueHealthResult,
    VipScan,
)
from .aggregator import ActivityAggregator, aggregate_activity  # noqa: F401
from .attribution import EventAttributor  # noqa: F401
from .civil_time import (  # noqa: F401
    add_days_civil,
    civil_date_to_instant,
    civil_range_bounds,
    instant_to_civil_date,
)
from .periods import key_for, label_for  # noqa: F401
from .repository import (  # noqa: F401
    SQLVenueRepository,
    VenueDataRepository,
    build_repository_from_env,
)
from .series import SeriesBuilder  # noqa: F401
from .service import VenueHealthService  # noqa: F401
