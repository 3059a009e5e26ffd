"""Seasonal, cyclical and baseline pattern detection for biomarker series."""
from __future__ import annotations

import calendar
import math
from typing import Final, Optional, Sequence

import numpy as np
import pandas as pd

from .models import (
    BaselineDeviation,
    ConsecutiveAbnormalRun,
    CyclicalPattern,
    DeviationDirection,
    PatternAnalysisResult,
    SeasonalAnalysisResult,
    SeasonalPattern,
    TrendDataPoint,
    ValueStatus,
)
from .trend import MS_PER_DAY, epoch_ms, sort_by_date

SEASONAL_MINIMUM_POINTS: Final[int] = 6
SEASONAL_THRESHOLD: Final[float] = 0.15
SEASONAL_MIN_SAMPLES: Final[int] = 2
CYCLICAL_MINIMUM_POINTS: Final[int] = 10
CYCLICAL_MIN_CORRELATION: Final[float] = 0.5
CYCLICAL_TOLERANCE_DAYS: Final[float] = 3.0


def points_frame(points: Sequence[TrendDataPoint]) -> pd.DataFrame:
    """Return a date-sorted frame with ``date``, ``timestamp_ms``, ``value`` and ``status`` columns."""

    ordered = sort_by_date(points)
    return pd.DataFrame(
        {
            "date": [point.date for point in ordered],
            "timestamp_ms": [epoch_ms(point.date) for point in ordered],
            "value": [float(point.value) for point in ordered],
            "status": [point.status for point in ordered],
        },
        columns=["date", "timestamp_ms", "value", "status"],
    )


def analyze_seasonal_patterns(points: Sequence[TrendDataPoint]) -> SeasonalAnalysisResult:
    """Compare per-calendar-month averages (pooled across years) with the overall average."""

    if len(points) < SEASONAL_MINIMUM_POINTS:
        return SeasonalAnalysisResult(
            has_seasonal_pattern=False,
            overall_average=0.0,
            min_samples_needed=SEASONAL_MIN_SAMPLES,
            description=(
                f"Insufficient data for seasonal analysis "
                f"(need at least {SEASONAL_MINIMUM_POINTS} data points)"
            ),
        )

    frame = points_frame(points)
    months = pd.Series([point_date.month for point_date in frame["date"]], index=frame.index)
    overall_average = float(frame["value"].mean())

    grouped = frame.groupby(months)["value"].agg(["mean", "count"]).sort_index()
    monthly_patterns: list[SeasonalPattern] = []
    for month, row in grouped.iterrows():
        average_value = float(row["mean"])
        deviation_percent = (
            (average_value - overall_average) / overall_average * 100.0 if overall_average != 0 else 0.0
        )
        monthly_patterns.append(
            SeasonalPattern(
                month=int(month),
                month_name=calendar.month_name[int(month)],
                average_value=average_value,
                sample_count=int(row["count"]),
                deviation_percent=deviation_percent,
            )
        )

    peak_month: Optional[SeasonalPattern] = None
    trough_month: Optional[SeasonalPattern] = None
    for pattern in monthly_patterns:
        # ties resolve to the later month
        if peak_month is None or pattern.average_value >= peak_month.average_value:
            peak_month = pattern
        if trough_month is None or pattern.average_value <= trough_month.average_value:
            trough_month = pattern

    has_pattern = False
    if peak_month is not None and trough_month is not None and overall_average != 0:
        spread = abs(peak_month.average_value - trough_month.average_value) / overall_average
        has_pattern = spread > SEASONAL_THRESHOLD

    if has_pattern and peak_month is not None and trough_month is not None:
        description = (
            f"Values tend to be higher in {peak_month.month_name} "
            f"({peak_month.deviation_percent:.1f}% above average) and lower in "
            f"{trough_month.month_name} ({abs(trough_month.deviation_percent):.1f}% below average)."
        )
    elif len(monthly_patterns) >= 3:
        description = "No significant seasonal pattern detected."
    else:
        description = "More months of data needed to detect seasonal patterns."

    return SeasonalAnalysisResult(
        has_seasonal_pattern=has_pattern,
        monthly_patterns=tuple(monthly_patterns),
        peak_month=peak_month,
        trough_month=trough_month,
        overall_average=overall_average,
        min_samples_needed=SEASONAL_MIN_SAMPLES,
        description=description,
    )


def _describe_cycle(lag_days: int) -> str:
    if lag_days == 7:
        return "Weekly pattern detected"
    if 28 <= lag_days <= 31:
        return "Monthly pattern detected"
    if 84 <= lag_days <= 93:
        return "Quarterly pattern detected"
    return f"Cyclical pattern with {lag_days}-day period detected"


def detect_cyclical_pattern(
    points: Sequence[TrendDataPoint],
    min_cycle_days: int = 7,
    max_cycle_days: int = 90,
) -> Optional[CyclicalPattern]:
    """Search integer lags for the strongest lagged self-correlation.

    Each point is paired with the first later point that falls within
    ``lag ± 3`` days. At least two full cycles must fit in the observed span.
    """

    if len(points) < CYCLICAL_MINIMUM_POINTS:
        return None

    frame = points_frame(points)
    timestamps = frame["timestamp_ms"].to_numpy(dtype=float)
    values = frame["value"].to_numpy(dtype=float)

    mean = float(values.mean())
    variance = float(np.mean((values - mean) ** 2))
    if variance == 0:
        return None

    span_days = (timestamps[-1] - timestamps[0]) / MS_PER_DAY
    effective_max_cycle = min(float(max_cycle_days), span_days / 2.0)
    if effective_max_cycle < min_cycle_days:
        return None

    centered = values - mean
    tolerance_ms = CYCLICAL_TOLERANCE_DAYS * MS_PER_DAY
    positions = np.arange(len(timestamps))

    best_lag = 0
    best_correlation = 0.0
    best_pairs = 0
    for lag_days in range(int(min_cycle_days), int(math.floor(effective_max_cycle)) + 1):
        targets = timestamps + lag_days * MS_PER_DAY
        # first later point at or beyond the lower edge of the tolerance window
        candidates = np.searchsorted(timestamps, targets - tolerance_ms, side="left")
        candidates = np.maximum(candidates, positions + 1)
        in_bounds = candidates < len(timestamps)
        matched = np.zeros(len(timestamps), dtype=bool)
        matched[in_bounds] = np.abs(timestamps[candidates[in_bounds]] - targets[in_bounds]) <= tolerance_ms

        pairs = int(matched.sum())
        if pairs <= 2:
            continue
        cross = float(np.sum(centered[matched] * centered[candidates[matched]]))
        correlation = cross / (pairs * variance)
        if correlation > best_correlation:
            best_correlation = correlation
            best_lag = lag_days
            best_pairs = pairs

    if best_correlation < CYCLICAL_MIN_CORRELATION or best_lag == 0:
        return None

    return CyclicalPattern(
        cycle_length_days=best_lag,
        confidence=min(1.0, best_correlation),
        description=_describe_cycle(best_lag),
        pair_count=best_pairs,
    )


def detect_baseline_deviations(
    points: Sequence[TrendDataPoint],
    window_size: int = 5,
    threshold: float = 2.0,
) -> list[BaselineDeviation]:
    """Flag points deviating more than ``threshold`` standard deviations from the trailing window."""

    if len(points) <= window_size:
        return []

    ordered = sort_by_date(points)
    values = np.array([point.value for point in ordered], dtype=float)

    deviations: list[BaselineDeviation] = []
    for index in range(window_size, len(ordered)):
        window = values[index - window_size : index]
        baseline = float(window.mean())
        std_dev = float(np.std(window, ddof=0))

        current = ordered[index]
        deviation = current.value - baseline
        deviation_percent = deviation / baseline * 100.0 if baseline != 0 else 0.0

        if std_dev > 0 and abs(deviation) > threshold * std_dev:
            deviations.append(
                BaselineDeviation(
                    data_point=current,
                    baseline=baseline,
                    deviation=deviation,
                    deviation_percent=deviation_percent,
                    is_significant=True,
                    direction=DeviationDirection.ABOVE if deviation > 0 else DeviationDirection.BELOW,
                )
            )
    return deviations


def detect_consecutive_abnormal(points: Sequence[TrendDataPoint]) -> ConsecutiveAbnormalRun:
    """Return the longest run of same-direction abnormal statuses.

    A normal or unknown status ends the current run, and so does a switch
    between high and low; runs never combine across directions.
    """

    if not points:
        return ConsecutiveAbnormalRun(count=0, direction=None)

    max_count = 0
    max_direction: Optional[ValueStatus] = None
    current_count = 0
    current_direction: Optional[ValueStatus] = None

    for point in sort_by_date(points):
        status = point.status
        if status is ValueStatus.HIGH or status is ValueStatus.LOW:
            if current_direction is None or current_direction is status:
                current_count += 1
                current_direction = status
                continue
            if current_count > max_count:
                max_count, max_direction = current_count, current_direction
            current_count, current_direction = 1, status
        elif status is None or status is ValueStatus.NORMAL or status is ValueStatus.UNKNOWN:
            if current_count > max_count:
                max_count, max_direction = current_count, current_direction
            current_count, current_direction = 0, None
        else:
            raise ValueError(f"Unhandled status {status!r}")

    if current_count > max_count:
        max_count, max_direction = current_count, current_direction

    return ConsecutiveAbnormalRun(count=max_count, direction=max_direction)


def analyze_patterns(points: Sequence[TrendDataPoint]) -> PatternAnalysisResult:
    return PatternAnalysisResult(
        seasonal=analyze_seasonal_patterns(points),
        cyclical=detect_cyclical_pattern(points),
        deviations=tuple(detect_baseline_deviations(points)),
        consecutive_abnormal=detect_consecutive_abnormal(points),
    )
