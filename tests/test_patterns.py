from __future__ import annotations

from datetime import datetime, timedelta

import pytest

from biomarker_alerts.models import DeviationDirection, TrendDataPoint, ValueStatus
from biomarker_alerts.patterns import (
    _describe_cycle,
    analyze_patterns,
    analyze_seasonal_patterns,
    detect_baseline_deviations,
    detect_consecutive_abnormal,
    detect_cyclical_pattern,
    points_frame,
)


def _point(day: str, value: float, status: ValueStatus = ValueStatus.NORMAL) -> TrendDataPoint:
    return TrendDataPoint(date=datetime.fromisoformat(day), value=value, unit="mg/dL", status=status)


def _statuses(*statuses: ValueStatus) -> list[TrendDataPoint]:
    start = datetime(2024, 1, 1)
    return [
        TrendDataPoint(date=start + timedelta(days=offset), value=100.0, unit="mg/dL", status=status)
        for offset, status in enumerate(statuses)
    ]


def test_points_frame_sorts_by_date():
    frame = points_frame([_point("2024-03-01", 3), _point("2024-01-01", 1), _point("2024-02-01", 2)])

    assert list(frame["value"]) == [1.0, 2.0, 3.0]
    assert frame["timestamp_ms"].is_monotonic_increasing


def test_seasonal_insufficient_for_fewer_than_six_points():
    points = [_point(f"2024-0{month}-01", 100) for month in range(1, 6)]
    result = analyze_seasonal_patterns(points)

    assert result.has_seasonal_pattern is False
    assert result.monthly_patterns == ()
    assert "need at least 6 data points" in result.description


def test_seasonal_detects_significant_variation():
    points = [
        _point("2023-01-10", 80),
        _point("2023-02-10", 80),
        _point("2023-03-10", 100),
        _point("2023-04-10", 100),
        _point("2023-07-10", 130),
        _point("2024-07-10", 130),
    ]
    result = analyze_seasonal_patterns(points)

    assert result.has_seasonal_pattern is True
    assert result.peak_month is not None and result.peak_month.month == 7
    assert result.peak_month.sample_count == 2
    # ties resolve to the later month
    assert result.trough_month is not None and result.trough_month.month == 2
    assert result.description.startswith("Values tend to be higher in July")


def test_seasonal_no_pattern_for_stable_values():
    points = [_point(f"2024-0{month}-01", value) for month, value in enumerate([100, 101, 99, 100, 100, 101], 1)]
    result = analyze_seasonal_patterns(points)

    assert result.has_seasonal_pattern is False
    assert result.description == "No significant seasonal pattern detected."


def test_seasonal_monthly_averages():
    points = [
        _point("2024-01-05", 100),
        _point("2024-01-20", 110),
        _point("2024-02-05", 120),
        _point("2024-02-20", 120),
        _point("2024-03-05", 100),
        _point("2024-03-20", 100),
    ]
    result = analyze_seasonal_patterns(points)
    january = result.monthly_patterns[0]

    assert [pattern.month for pattern in result.monthly_patterns] == [1, 2, 3]
    assert january.month_name == "January"
    assert january.average_value == pytest.approx(105)
    assert january.sample_count == 2
    assert result.overall_average == pytest.approx(650 / 6)
    assert january.deviation_percent == pytest.approx((105 - 650 / 6) / (650 / 6) * 100)


def test_seasonal_needs_more_months():
    points = [_point(f"2024-01-{day:02d}", 100 + day) for day in range(1, 7)]
    result = analyze_seasonal_patterns(points)

    assert result.description == "More months of data needed to detect seasonal patterns."


def test_cyclical_requires_ten_points():
    points = [_point(f"2024-01-{day:02d}", 100 + day % 2 * 20) for day in range(1, 10)]

    assert detect_cyclical_pattern(points) is None


def test_cyclical_requires_two_observable_cycles():
    points = [_point(f"2024-01-{day:02d}", 100 + day % 2 * 20) for day in range(1, 11)]

    assert detect_cyclical_pattern(points) is None


def test_cyclical_none_for_constant_values():
    points = [_point(f"2024-01-{day:02d}", 100) for day in range(1, 31)]

    assert detect_cyclical_pattern(points) is None


def test_cyclical_detects_alternating_fortnight():
    start = datetime(2024, 1, 1)
    points = [
        TrendDataPoint(date=start + timedelta(days=7 * week), value=120.0 if week % 2 == 0 else 80.0, unit="mg/dL")
        for week in range(12)
    ]
    result = detect_cyclical_pattern(points)

    assert result is not None
    assert 11 <= result.cycle_length_days <= 17
    assert result.confidence == pytest.approx(1.0)
    assert result.pair_count > 2


def test_cyclical_tolerance_pairs_linear_drift_at_shortest_lag():
    # daily points over 19 days: lags 7..9 each pair a point with the one 4..6 days later
    points = [_point(f"2024-01-{day:02d}", 100 + day * 5) for day in range(1, 21)]
    result = detect_cyclical_pattern(points)

    assert result is not None
    assert result.cycle_length_days == 7
    assert result.description == "Weekly pattern detected"
    assert result.pair_count == 16
    assert result.confidence == pytest.approx(6900 / 13300)


def test_cyclical_none_for_single_spike():
    points = [_point(f"2024-01-{day:02d}", 200 if day == 1 else 100) for day in range(1, 21)]

    assert detect_cyclical_pattern(points) is None


def test_describe_cycle_labels():
    assert _describe_cycle(7) == "Weekly pattern detected"
    assert _describe_cycle(30) == "Monthly pattern detected"
    assert _describe_cycle(90) == "Quarterly pattern detected"
    assert _describe_cycle(45) == "Cyclical pattern with 45-day period detected"


def test_baseline_deviations_empty_for_insufficient_data():
    points = [_point("2024-01-01", 100), _point("2024-01-02", 105), _point("2024-01-03", 102)]

    assert detect_baseline_deviations(points, 5) == []


def test_baseline_deviation_spike():
    points = [
        _point("2024-01-01", 100),
        _point("2024-01-02", 102),
        _point("2024-01-03", 98),
        _point("2024-01-04", 101),
        _point("2024-01-05", 99),
        _point("2024-01-06", 150),
    ]
    result = detect_baseline_deviations(points, 5, 2)

    assert len(result) == 1
    assert result[0].direction is DeviationDirection.ABOVE
    assert result[0].is_significant is True
    assert result[0].baseline == pytest.approx(100)
    assert result[0].deviation_percent == pytest.approx(50)


def test_baseline_deviation_drop():
    points = [
        _point("2024-01-01", 100),
        _point("2024-01-02", 102),
        _point("2024-01-03", 98),
        _point("2024-01-04", 101),
        _point("2024-01-05", 99),
        _point("2024-01-06", 50),
    ]
    result = detect_baseline_deviations(points, 5, 2)

    assert len(result) == 1
    assert result[0].direction is DeviationDirection.BELOW


def test_baseline_ignores_minor_fluctuations():
    points = [
        _point("2024-01-01", 100),
        _point("2024-01-02", 110),
        _point("2024-01-03", 90),
        _point("2024-01-04", 105),
        _point("2024-01-05", 95),
        _point("2024-01-06", 102),
    ]

    assert detect_baseline_deviations(points, 5, 2) == []


def test_baseline_ignores_flat_window():
    points = [_point(f"2024-01-{day:02d}", 100) for day in range(1, 6)] + [_point("2024-01-06", 140)]

    assert detect_baseline_deviations(points) == []


def test_consecutive_abnormal_empty():
    result = detect_consecutive_abnormal([])

    assert result.count == 0
    assert result.direction is None


def test_consecutive_abnormal_all_normal():
    result = detect_consecutive_abnormal(_statuses(ValueStatus.NORMAL, ValueStatus.NORMAL))

    assert result.count == 0
    assert result.direction is None


def test_consecutive_abnormal_high_run():
    result = detect_consecutive_abnormal(
        _statuses(
            ValueStatus.NORMAL,
            ValueStatus.HIGH,
            ValueStatus.HIGH,
            ValueStatus.HIGH,
            ValueStatus.NORMAL,
        )
    )

    assert result.count == 3
    assert result.direction is ValueStatus.HIGH


def test_consecutive_abnormal_low_run_at_end():
    result = detect_consecutive_abnormal(
        _statuses(ValueStatus.HIGH, ValueStatus.UNKNOWN, ValueStatus.LOW, ValueStatus.LOW)
    )

    assert result.count == 2
    assert result.direction is ValueStatus.LOW


def test_consecutive_abnormal_does_not_combine_directions():
    result = detect_consecutive_abnormal(
        _statuses(ValueStatus.HIGH, ValueStatus.LOW, ValueStatus.HIGH, ValueStatus.LOW)
    )

    assert result.count == 1
    assert result.direction is ValueStatus.HIGH


def test_consecutive_abnormal_sorts_by_date():
    points = [
        _point("2024-01-03", 135, ValueStatus.HIGH),
        _point("2024-01-01", 100, ValueStatus.NORMAL),
        _point("2024-01-04", 140, ValueStatus.HIGH),
        _point("2024-01-02", 130, ValueStatus.HIGH),
    ]
    result = detect_consecutive_abnormal(points)

    assert result.count == 3
    assert result.direction is ValueStatus.HIGH


def test_analyze_patterns_returns_all_parts():
    points = [
        _point("2024-01-01", 100),
        _point("2024-02-01", 105),
        _point("2024-03-01", 102),
        _point("2024-04-01", 108),
        _point("2024-05-01", 104),
        _point("2024-06-01", 106),
    ]
    result = analyze_patterns(points)

    assert result.seasonal.has_seasonal_pattern is False
    assert result.cyclical is None
    assert result.deviations == ()
    assert result.consecutive_abnormal.count == 0
