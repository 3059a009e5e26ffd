"""Shared helpers for alert rule implementations."""
from __future__ import annotations

import math
from typing import Optional

from ..models import AlertSeverity, AlertStatus, AlertType, ReferenceRange


def format_number(value: float) -> str:
    """Render whole numbers without a trailing ``.0``."""

    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def percent_beyond(value: float, bound: float, *, above: bool) -> float:
    """Percentage by which ``value`` lies past ``bound``; infinite for a zero bound."""

    distance = value - bound if above else bound - value
    if bound == 0:
        if distance == 0:
            return 0.0
        return math.copysign(math.inf, distance)
    return distance / bound * 100.0


def severity_for_percent(percent: float, critical_percent: float, warning_percent: float) -> AlertSeverity:
    if percent > critical_percent:
        return AlertSeverity.CRITICAL
    if percent > warning_percent:
        return AlertSeverity.WARNING
    return AlertSeverity.INFO


def format_alert_message(
    biomarker_name: str,
    status: AlertStatus,
    alert_type: AlertType,
    value: float,
    unit: str,
    reference_range: Optional[ReferenceRange] = None,
) -> str:
    """Human-readable text for an alert."""

    if alert_type is AlertType.IMPROVEMENT:
        return f"{biomarker_name} has returned to normal range ({format_number(value)} {unit})"

    if alert_type is AlertType.TREND:
        if status is AlertStatus.HIGH:
            return f"{biomarker_name} has been consistently elevated"
        if status is AlertStatus.LOW:
            return f"{biomarker_name} has been consistently low"
        return f"{biomarker_name} has been consistently out of range"

    if alert_type is not AlertType.OUT_OF_RANGE:
        raise ValueError(f"Unhandled alert type {alert_type!r}")

    reading = f"{format_number(value)} {unit}"
    if status is AlertStatus.HIGH:
        high = reference_range.high if reference_range is not None else None
        if high is not None:
            return f"{biomarker_name} is elevated at {reading} (reference: ≤{format_number(high)})"
        return f"{biomarker_name} is elevated at {reading}"

    low = reference_range.low if reference_range is not None else None
    if low is not None:
        return f"{biomarker_name} is low at {reading} (reference: ≥{format_number(low)})"
    return f"{biomarker_name} is low at {reading}"
