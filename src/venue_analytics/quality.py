"""
Redemption data-quality checks.

These are policy rules layered on the raw records of one window. They
consume the same records as the aggregation pipeline but stay out of it.
"""

from __future__ import annotations

import math
from collections import Counter, defaultdict
from dataclasses import dataclass
from datetime import date
from typing import Dict, Iterable, Optional, Sequence, Set

from .civil_time import TimezoneLike, instant_to_civil_date
from .models import Redemption, VipScan

UNKNOWN_REWARD = "Unknown reward"


def _blank(value: Optional[str]) -> bool:
    return not (value and value.strip())


def _points(value: object) -> Optional[float]:
    try:
        number = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


@dataclass(frozen=True)
class RedemptionHealth:
    first_day: date
    last_day: date
    redemptions: int = 0
    unique_redeemers: int = 0
    points_spent: float = 0.0
    average_per_day: float = 0.0
    missing_staff: int = 0
    missing_reward_name: int = 0
    invalid_points: int = 0
    orphan_redemptions: int = 0
    top_reward: Optional[str] = None
    top_reward_count: int = 0

    @property
    def has_issues(self) -> bool:
        return self.missing_staff + self.missing_reward_name + self.invalid_points > 0

    def as_dict(self) -> Dict[str, object]:
        return {
            "firstDay": self.first_day.isoformat(),
            "lastDay": self.last_day.isoformat(),
            "redemptions": self.redemptions,
            "uniqueRedeemers": self.unique_redeemers,
            "pointsSpent": self.points_spent,
            "averagePerDay": self.average_per_day,
            "missingStaff": self.missing_staff,
            "missingRewardName": self.missing_reward_name,
            "invalidPoints": self.invalid_points,
            "orphanRedemptions": self.orphan_redemptions,
            "topReward": self.top_reward,
            "topRewardCount": self.top_reward_count,
            "hasIssues": self.has_issues,
        }


def check_redemptions(
    redemptions: Sequence[Redemption],
    scans: Iterable[VipScan],
    first_day: date,
    last_day: date,
    tz: TimezoneLike,
) -> RedemptionHealth:
    """
    Completeness checks over the redemptions dated within ``[first_day, last_day]``.

    A redemption is an orphan when its user has no VIP scan on the same civil
    day. Negative ``points_spent`` values do not reduce the points total.
    """
    dated = [
        (instant_to_civil_date(redemption.instant, tz), redemption)
        for redemption in redemptions
        if redemption.instant is not None
    ]
    in_window = [(day, redemption) for day, redemption in dated if first_day <= day <= last_day]

    scanned: Dict[date, Set[str]] = defaultdict(set)
    for scan in scans:
        day = scan.civil_date
        if day is None and scan.instant is not None:
            day = instant_to_civil_date(scan.instant, tz)
        if day is not None and scan.user_id:
            scanned[day].add(scan.user_id)

    rewards: Counter = Counter()
    redeemers: Set[str] = set()
    points_spent = 0.0
    missing_staff = missing_reward = invalid_points = orphans = 0
    for day, redemption in in_window:
        points = _points(redemption.points_spent)
        if points is None or points <= 0:
            invalid_points += 1
        points_spent += max(0.0, points or 0.0)
        if _blank(redemption.staff_label) or _blank(redemption.staff_last4):
            missing_staff += 1
        if _blank(redemption.reward_name):
            missing_reward += 1
        if redemption.user_id:
            redeemers.add(redemption.user_id)
            if redemption.user_id not in scanned.get(day, set()):
                orphans += 1
        rewards[(redemption.reward_name or "").strip() or UNKNOWN_REWARD] += 1

    top_reward, top_count = (rewards.most_common(1) or [(None, 0)])[0]
    window_days = (last_day - first_day).days + 1
    return RedemptionHealth(
        first_day=first_day,
        last_day=last_day,
        redemptions=len(in_window),
        unique_redeemers=len(redeemers),
        points_spent=points_spent,
        average_per_day=round(len(in_window) / window_days, 1) if window_days > 0 else 0.0,
        missing_staff=missing_staff,
        missing_reward_name=missing_reward,
        invalid_points=invalid_points,
        orphan_redemptions=orphans,
        top_reward=top_reward,
        top_reward_count=top_count,
    )
