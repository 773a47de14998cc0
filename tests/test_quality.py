from __future__ import annotations

from datetime import date, datetime, timezone
from zoneinfo import ZoneInfo

from venue_analytics.models import Redemption, VipScan
from venue_analytics.quality import UNKNOWN_REWARD, check_redemptions

UTC = timezone.utc


def _redemption(user_id, reward, points, instant, staff=("Sam", "1234")) -> Redemption:
    return Redemption(
        user_id=user_id,
        reward_name=reward,
        points_spent=points,
        instant=instant,
        staff_label=staff[0],
        staff_last4=staff[1],
    )


def test_redemption_checks_over_a_window(eastern: ZoneInfo) -> None:
    redemptions = [
        _redemption("A", "Hat", 40, datetime(2024, 3, 9, 22, 0, tzinfo=eastern)),
        _redemption("A", "Hat", 40, datetime(2024, 3, 10, 3, 0, tzinfo=UTC)),
        _redemption("B", " ", 0, datetime(2024, 3, 8, 20, 0, tzinfo=eastern), staff=("Sam", None)),
        _redemption("C", "Shirt", float("nan"), datetime(2024, 3, 8, 21, 0, tzinfo=eastern)),
        _redemption("D", "Hat", 10, datetime(2024, 3, 1, 21, 0, tzinfo=eastern)),
        _redemption("E", "Hat", 10, None),
    ]
    scans = [
        VipScan(id="1", user_id="A", civil_date=date(2024, 3, 9)),
        VipScan(id="2", user_id="B", instant=datetime(2024, 3, 9, 1, 0, tzinfo=UTC)),
    ]

    health = check_redemptions(redemptions, scans, date(2024, 3, 4), date(2024, 3, 10), eastern)

    assert health.redemptions == 4
    assert health.unique_redeemers == 3
    assert health.points_spent == 80.0
    assert health.average_per_day == 0.6
    assert health.missing_staff == 1
    assert health.missing_reward_name == 1
    assert health.invalid_points == 2
    # B scanned on the evening of the 8th, C never scanned
    assert health.orphan_redemptions == 1
    assert health.top_reward == "Hat"
    assert health.top_reward_count == 2
    assert health.has_issues


def test_empty_window_has_no_issues(eastern: ZoneInfo) -> None:
    health = check_redemptions([], [], date(2024, 3, 10), date(2024, 3, 10), eastern)

    assert health.redemptions == 0
    assert health.top_reward is None
    assert not health.has_issues
    assert health.as_dict()["hasIssues"] is False


def test_blank_reward_names_roll_up_as_unknown(eastern: ZoneInfo) -> None:
    redemptions = [
        _redemption("A", None, 10, datetime(2024, 3, 10, 20, 0, tzinfo=eastern)),
        _redemption("B", "", 10, datetime(2024, 3, 10, 21, 0, tzinfo=eastern)),
    ]
    health = check_redemptions(redemptions, [], date(2024, 3, 10), date(2024, 3, 10), eastern)

    assert health.top_reward == UNKNOWN_REWARD
    assert health.top_reward_count == 2
    assert health.orphan_redemptions == 2
