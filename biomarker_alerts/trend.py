"""Trend analysis over a single biomarker's value series.

Provides direction detection (least-squares slope plus R-squared confidence),
rate of change between the first and last measurement, and descriptive
statistics. All functions accept points in any order and sort by date
themselves.
"""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Final, Iterable, Optional, Sequence

import numpy as np

from .models import (
    AlertSeverity,
    BiomarkerReading,
    RateOfChange,
    TrendAnalysisResult,
    TrendDataPoint,
    TrendDirection,
    TrendDirectionResult,
    TrendStatistics,
    ValueStatus,
)

MS_PER_DAY: Final[float] = 24 * 60 * 60 * 1000.0
MS_PER_WEEK: Final[float] = 7 * MS_PER_DAY
MS_PER_MONTH: Final[float] = 30 * MS_PER_DAY

_STABILITY_RATIO_PER_MONTH: Final[float] = 0.05
_EPOCH_NAIVE: Final[datetime] = datetime(1970, 1, 1)
_EPOCH_UTC: Final[datetime] = datetime(1970, 1, 1, tzinfo=timezone.utc)


class EmptyDataSetError(ValueError):
    """Raised when an analysis needs at least one data point."""


def epoch_ms(moment: datetime) -> float:
    """Milliseconds since the epoch; naive datetimes are read as UTC."""

    epoch = _EPOCH_NAIVE if moment.tzinfo is None else _EPOCH_UTC
    return (moment - epoch).total_seconds() * 1000.0


def sort_by_date(points: Iterable[TrendDataPoint]) -> list[TrendDataPoint]:
    return sorted(points, key=lambda point: epoch_ms(point.date))


def _as_arrays(points: Sequence[TrendDataPoint]) -> tuple[np.ndarray, np.ndarray]:
    timestamps = np.array([epoch_ms(point.date) for point in points], dtype=float)
    values = np.array([point.value for point in points], dtype=float)
    return timestamps, values


def calculate_slope(points: Sequence[TrendDataPoint]) -> float:
    """Least-squares slope of value against time, in value units per millisecond."""

    if len(points) < 2:
        return 0.0

    timestamps, values = _as_arrays(points)
    dx = timestamps - timestamps.mean()
    dy = values - values.mean()
    denominator = float(np.sum(dx**2))
    if denominator == 0:
        return 0.0
    return float(np.sum(dx * dy)) / denominator


def calculate_r_squared(points: Sequence[TrendDataPoint], slope: float) -> float:
    """Coefficient of determination of the regression line through ``points``."""

    if len(points) < 2:
        return 0.0

    timestamps, values = _as_arrays(points)
    mean_x = timestamps.mean()
    mean_y = values.mean()
    intercept = mean_y - slope * mean_x
    predicted = slope * timestamps + intercept

    ss_res = float(np.sum((values - predicted) ** 2))
    ss_tot = float(np.sum((values - mean_y) ** 2))
    if ss_tot == 0:
        return 0.0
    return 1.0 - ss_res / ss_tot


def _percent_change(first: float, last: float) -> float:
    if first == 0:
        return 0.0
    return (last - first) / first * 100.0


def calculate_trend_direction(points: Sequence[TrendDataPoint]) -> TrendDirectionResult:
    """Classify a series as increasing, decreasing or stable."""

    if len(points) < 2:
        return TrendDirectionResult(
            direction=TrendDirection.INSUFFICIENT_DATA,
            confidence=0.0,
            description="More data needed for trend analysis",
        )

    ordered = sort_by_date(points)
    slope = calculate_slope(ordered)
    r_squared = calculate_r_squared(ordered, slope)

    mean = float(np.mean([point.value for point in ordered]))
    # 5% of the mean per 30 days, expressed per millisecond
    stability_threshold = mean * _STABILITY_RATIO_PER_MONTH / MS_PER_MONTH

    change = _percent_change(ordered[0].value, ordered[-1].value)
    if abs(slope) < stability_threshold:
        direction = TrendDirection.STABLE
        description = "Values have remained relatively stable"
    elif slope > 0:
        direction = TrendDirection.INCREASING
        description = f"Values have increased by {abs(change):.1f}% over the period"
    else:
        direction = TrendDirection.DECREASING
        description = f"Values have decreased by {abs(change):.1f}% over the period"

    data_point_bonus = min(0.2, (len(ordered) - 2) * 0.05)
    confidence = min(1.0, r_squared + data_point_bonus)

    return TrendDirectionResult(direction=direction, confidence=confidence, description=description)


def calculate_rate_of_change(points: Sequence[TrendDataPoint]) -> Optional[RateOfChange]:
    """Average change between the first and last point, or ``None`` if undefined."""

    if len(points) < 2:
        return None

    ordered = sort_by_date(points)
    first, last = ordered[0], ordered[-1]

    elapsed_ms = epoch_ms(last.date) - epoch_ms(first.date)
    if elapsed_ms == 0:
        return None

    per_ms = (last.value - first.value) / elapsed_ms
    return RateOfChange(
        per_day=per_ms * MS_PER_DAY,
        per_week=per_ms * MS_PER_WEEK,
        per_month=per_ms * MS_PER_MONTH,
        percentage_change=_percent_change(first.value, last.value),
        unit=first.unit,
    )


def calculate_statistics(points: Sequence[TrendDataPoint]) -> TrendStatistics:
    if not points:
        raise EmptyDataSetError("Cannot calculate statistics for empty data set")

    ordered = sort_by_date(points)
    values = np.array([point.value for point in ordered], dtype=float)

    return TrendStatistics(
        min=float(values.min()),
        max=float(values.max()),
        average=float(values.mean()),
        median=float(np.median(values)),
        standard_deviation=float(np.std(values, ddof=0)),
        latest=ordered[-1].value,
        latest_date=ordered[-1].date,
        oldest=ordered[0].value,
        oldest_date=ordered[0].date,
        count=len(values),
        unit=ordered[0].unit,
    )


def analyze_trend(points: Sequence[TrendDataPoint]) -> TrendAnalysisResult:
    """Run direction, rate-of-change and statistics, and tally statuses."""

    if not points:
        raise EmptyDataSetError("Cannot analyze trend for empty data set")

    normal_count = sum(1 for point in points if point.status is ValueStatus.NORMAL)
    high_count = sum(1 for point in points if point.status is ValueStatus.HIGH)
    low_count = sum(1 for point in points if point.status is ValueStatus.LOW)

    return TrendAnalysisResult(
        direction=calculate_trend_direction(points),
        rate_of_change=calculate_rate_of_change(points),
        statistics=calculate_statistics(points),
        normal_count=normal_count,
        high_count=high_count,
        low_count=low_count,
    )


def readings_to_points(readings: Iterable[BiomarkerReading]) -> list[TrendDataPoint]:
    """Project numeric readings onto trend points, oldest first."""

    points = [
        TrendDataPoint(
            date=reading.date,
            value=reading.value,
            unit=reading.unit,
            reference_range=reading.reference_range,
            lab_name=reading.lab_name,
            status=reading.status,
        )
        for reading in readings
    ]
    return sort_by_date(points)


def determine_trend_alert_severity(
    analysis: TrendAnalysisResult,
    consecutive_abnormal: int = 0,
) -> Optional[AlertSeverity]:
    """Map a trend analysis to an alert severity, or ``None`` when no alert is due."""

    if consecutive_abnormal >= 3:
        return AlertSeverity.CRITICAL

    abnormal_count = analysis.high_count + analysis.low_count
    abnormal_ratio = abnormal_count / analysis.statistics.count
    if abnormal_ratio > 0.5:
        return AlertSeverity.WARNING

    direction = analysis.direction
    if (
        direction.direction is not TrendDirection.STABLE
        and direction.confidence > 0.7
        and abnormal_count > 0
    ):
        return AlertSeverity.WARNING

    if abnormal_count > 0:
        return AlertSeverity.INFO

    if (
        direction.direction is TrendDirection.STABLE
        and abnormal_ratio == 0
        and analysis.statistics.count > 1
    ):
        return AlertSeverity.POSITIVE

    return None
