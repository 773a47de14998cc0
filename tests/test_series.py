from __future__ import annotations

from datetime import date

from venue_analytics.models import PeriodAggregate, PeriodSummary
from venue_analytics.series import SeriesBuilder, percent


def _row(key: str, vips: int, guests: int, conversions: int = 0, artist_id=None) -> PeriodSummary:
    return PeriodSummary(
        key=key,
        label=key,
        attributed_label="—",
        unique_vip_count=vips,
        unique_guest_count=guests,
        total_people=vips + guests,
        scan_count=vips,
        guest_rows=guests,
        points_earned=0.0,
        conversion_count=conversions,
        conversion_rate=percent(conversions, guests),
        redemption_count=0,
        points_spent=0.0,
        artist_id=artist_id,
    )


def test_percent_never_divides_by_zero() -> None:
    assert percent(3, 0) == 0.0
    assert percent(1, 3) == 33.3
    assert percent(1, 2) == 50.0


def test_series_fills_gaps_in_chronological_order() -> None:
    builder = SeriesBuilder(date(2024, 3, 4), date(2024, 3, 10), "day")
    aggregates = {
        "2024-03-10": PeriodAggregate(key="2024-03-10", vip_users={"A"}),
        "2024-03-05": PeriodAggregate(key="2024-03-05", guest_devices={"d1", "d2"}, conversions={"d1"}),
    }
    series = builder.build(aggregates)

    assert [item.key for item in series] == [f"2024-03-{day:02d}" for day in range(4, 11)]
    assert series[0].total_people == 0
    assert series[0].conversion_rate == 0.0
    assert series[1].conversion_rate == 50.0
    assert series[-1].unique_vip_count == 1
    for item in series:
        assert item.total_people == item.unique_vip_count + item.unique_guest_count


def test_conversion_rate_is_zero_without_guests() -> None:
    builder = SeriesBuilder(date(2024, 3, 9), date(2024, 3, 9), "day")
    series = builder.build({"2024-03-09": PeriodAggregate(key="2024-03-09", conversions={"d1"})})
    assert series[0].conversion_count == 1
    assert series[0].conversion_rate == 0.0


def test_totals_and_best_period() -> None:
    series = [_row("a", 1, 1), _row("b", 3, 0), _row("c", 0, 3, conversions=1)]
    totals = SeriesBuilder.totals(series)

    assert totals.people == 8
    assert totals.vip == 4
    assert totals.guest == 4
    assert totals.average_people == 2.7
    assert totals.conversion_rate == 25.0

    assert SeriesBuilder.best(series, "total").key == "b"
    assert SeriesBuilder.best(series, "vip").key == "b"
    assert SeriesBuilder.best(series, "guest").key == "c"


def test_best_on_all_zero_or_empty_series_does_not_raise() -> None:
    zeros = [_row("a", 0, 0), _row("b", 0, 0)]
    assert SeriesBuilder.best(zeros, "total").key == "a"
    assert SeriesBuilder.best([], "vip") is None
    assert SeriesBuilder.totals([]).average_people == 0.0
    assert SeriesBuilder.top([], 10) == []


def test_top_keeps_chronological_order_for_ties() -> None:
    series = [_row("a", 1, 0), _row("b", 2, 0), _row("c", 1, 0), _row("d", 2, 0)]
    assert [item.key for item in SeriesBuilder.top(series, 3)] == ["b", "d", "a"]


def test_artist_rollup() -> None:
    days = [
        _row("2024-03-01", 4, 6, conversions=3, artist_id="X"),
        _row("2024-03-02", 1, 1, artist_id="Y"),
        _row("2024-03-03", 0, 0),
        _row("2024-03-08", 6, 4, conversions=1, artist_id="X"),
        _row("2024-03-09", 2, 2, artist_id="Z"),
    ]
    rows = SeriesBuilder.artist_rollup(days, {"X": "Xavier", "Y": "Yola"}, limit=2)

    assert [row.artist_id for row in rows] == ["X", "Z"]
    xavier = rows[0]
    assert xavier.name == "Xavier"
    assert xavier.nights == 2
    assert xavier.average_people == 10.0
    assert xavier.vip_percent == 50.0
    assert xavier.conversion_percent == 40.0
    assert xavier.best_people == 10
    assert xavier.best_day == date(2024, 3, 1)
    assert xavier.best_day_label == "Mar 1"
    assert rows[1].name == "Unknown artist"
