"""Raise an alert for every measurement outside its reference range."""
from __future__ import annotations

from ..models import (
    AlertContext,
    AlertSeverity,
    AlertStatus,
    AlertType,
    BiomarkerAlert,
    BiomarkerSeries,
    ReferenceRange,
    ValueStatus,
)
from ..registry import register_rule
from ..rule_base import AlertRule
from .utils import format_alert_message, percent_beyond, severity_for_percent


def calculate_out_of_range_severity(
    value: float,
    status: ValueStatus,
    reference_range: ReferenceRange | None,
    *,
    critical_percent: float = 50.0,
    warning_percent: float = 20.0,
) -> AlertSeverity:
    """Grade how far a high or low value sits past its bound."""

    if reference_range is None or reference_range.is_empty:
        return AlertSeverity.INFO

    if status is ValueStatus.HIGH:
        if reference_range.high is None:
            return AlertSeverity.INFO
        percent = percent_beyond(value, reference_range.high, above=True)
        return severity_for_percent(percent, critical_percent, warning_percent)

    if status is ValueStatus.LOW:
        if reference_range.low is None:
            return AlertSeverity.INFO
        percent = percent_beyond(value, reference_range.low, above=False)
        return severity_for_percent(percent, critical_percent, warning_percent)

    raise ValueError(f"Out-of-range severity needs a high or low status, got {status!r}")


@register_rule
class OutOfRangeRule(AlertRule):
    id = "out_of_range"
    alert_type = AlertType.OUT_OF_RANGE
    description = "Any single measurement above or below its reference range"
    version = "1.0.0"

    def evaluate(self, series: BiomarkerSeries, context: AlertContext) -> list[BiomarkerAlert]:
        critical_percent = float(self.resolved_threshold(context, "critical_percent", 50.0))
        warning_percent = float(self.resolved_threshold(context, "warning_percent", 20.0))

        alerts: list[BiomarkerAlert] = []
        for reading in series.readings:
            if reading.status is ValueStatus.HIGH:
                status = AlertStatus.HIGH
            elif reading.status is ValueStatus.LOW:
                status = AlertStatus.LOW
            else:
                continue

            reference_range = reading.reference_range
            severity = calculate_out_of_range_severity(
                reading.value,
                reading.status,
                reference_range,
                critical_percent=critical_percent,
                warning_percent=warning_percent,
            )
            alerts.append(
                self.build_alert(
                    series,
                    reading,
                    severity=severity,
                    status=status,
                    message=format_alert_message(
                        series.biomarker_name,
                        status,
                        self.alert_type,
                        reading.value,
                        reading.unit,
                        reference_range,
                    ),
                )
            )
        return alerts
