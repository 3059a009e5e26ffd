"""Base class and utilities for alert rules."""
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Optional

from .models import (
    AlertContext,
    AlertSeverity,
    AlertStatus,
    AlertType,
    BiomarkerAlert,
    BiomarkerReading,
    BiomarkerSeries,
    ReferenceRange,
)


def generate_alert_id(alert_type: AlertType, biomarker_id: int, lab_result_id: int) -> str:
    """Deterministic alert id; identical inputs always regenerate the same id."""

    return f"{alert_type.value}_{biomarker_id}_{lab_result_id}"


class AlertRule(ABC):
    """Abstract alert rule evaluated once per biomarker series."""

    id: str = ""
    alert_type: AlertType
    description: str = ""
    version: str = "1.0.0"

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        if not cls.id:
            raise ValueError(f"Rule {cls.__name__} must define a non-empty id")

    @abstractmethod
    def evaluate(self, series: BiomarkerSeries, context: AlertContext) -> list[BiomarkerAlert]:
        """Return the alerts this rule raises for ``series``."""

    def resolved_threshold(self, context: AlertContext, key: str, default: Any) -> Any:
        """Helper to fetch rule-specific threshold overrides."""

        return context.rule_threshold(self.id, key, default)

    def build_alert(
        self,
        series: BiomarkerSeries,
        reading: BiomarkerReading,
        *,
        severity: AlertSeverity,
        status: AlertStatus,
        message: str,
        reference_range: Optional[ReferenceRange] = None,
    ) -> BiomarkerAlert:
        if reference_range is None and not reading.reference_range.is_empty:
            reference_range = reading.reference_range
        return BiomarkerAlert(
            id=generate_alert_id(self.alert_type, series.biomarker_id, reading.lab_result_id),
            type=self.alert_type,
            severity=severity,
            biomarker_id=series.biomarker_id,
            biomarker_name=series.biomarker_name,
            category=series.category,
            value=reading.value,
            unit=reading.unit,
            reference_range=reference_range,
            status=status,
            date=reading.date,
            lab_name=reading.lab_name,
            lab_result_id=reading.lab_result_id,
            message=message,
        )

    def __repr__(self) -> str:  # pragma: no cover - convenience only
        return f"<{self.__class__.__name__} id={self.id!r} version={self.version!r}>"
