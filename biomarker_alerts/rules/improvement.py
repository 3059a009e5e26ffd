"""Mark a return to the normal range after an abnormal measurement."""
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
from ..registry import register_rule
from ..rule_base import AlertRule
from .utils import format_alert_message


@register_rule
class ImprovementRule(AlertRule):
    id = "improvement"
    alert_type = AlertType.IMPROVEMENT
    description = "Latest measurement normal while the one before it was high or low"
    version = "1.0.0"

    def evaluate(self, series: BiomarkerSeries, context: AlertContext) -> list[BiomarkerAlert]:
        minimum_readings = max(2, int(self.resolved_threshold(context, "minimum_readings", 2)))
        if len(series.readings) < minimum_readings:
            return []

        # only the two most recent readings are compared
        latest, previous = series.readings[0], series.readings[1]
        if latest.status is not ValueStatus.NORMAL or not previous.status.is_abnormal:
            return []

        return [
            self.build_alert(
                series,
                latest,
                severity=AlertSeverity.POSITIVE,
                status=AlertStatus.NORMAL,
                message=format_alert_message(
                    series.biomarker_name,
                    AlertStatus.NORMAL,
                    self.alert_type,
                    latest.value,
                    latest.unit,
                ),
            )
        ]
