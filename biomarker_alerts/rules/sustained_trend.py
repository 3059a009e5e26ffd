"""Detect a sustained run of same-direction abnormal measurements."""
from __future__ import annotations

from ..models import (
    AlertContext,
    AlertSeverity,
    AlertStatus,
    AlertType,
    BiomarkerAlert,
    BiomarkerSeries,
    ValueStatus,
)
from ..patterns import detect_consecutive_abnormal
from ..registry import register_rule
from ..rule_base import AlertRule
from ..trend import analyze_trend, determine_trend_alert_severity, readings_to_points
from .utils import format_alert_message


@register_rule
class SustainedTrendRule(AlertRule):
    id = "sustained_trend"
    alert_type = AlertType.TREND
    description = ">=3 consecutive measurements abnormal in the same direction"
    version = "1.0.0"

    def evaluate(self, series: BiomarkerSeries, context: AlertContext) -> list[BiomarkerAlert]:
        minimum_readings = int(self.resolved_threshold(context, "minimum_readings", 3))
        minimum_run = int(self.resolved_threshold(context, "minimum_consecutive_abnormal", 3))

        if len(series.readings) < minimum_readings:
            return []

        points = readings_to_points(series.readings)
        if len(points) < minimum_readings:
            return []

        run = detect_consecutive_abnormal(points)
        if run.count < minimum_run or run.direction is None:
            return []

        analysis = analyze_trend(points)
        severity = determine_trend_alert_severity(analysis, run.count)
        if severity is None or severity is AlertSeverity.POSITIVE:
            return []

        if run.direction is ValueStatus.HIGH:
            status = AlertStatus.HIGH
        elif run.direction is ValueStatus.LOW:
            status = AlertStatus.LOW
        else:
            raise ValueError(f"Unhandled run direction {run.direction!r}")

        latest = series.readings[0]
        return [
            self.build_alert(
                series,
                latest,
                severity=severity,
                status=status,
                message=format_alert_message(
                    series.biomarker_name,
                    status,
                    self.alert_type,
                    latest.value,
                    latest.unit,
                ),
            )
        ]
