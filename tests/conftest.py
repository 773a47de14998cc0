from __future__ import annotations

from zoneinfo import ZoneInfo

import pytest


@pytest.fixture
def eastern() -> ZoneInfo:
    return ZoneInfo("America/New_York")
