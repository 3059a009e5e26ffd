"""Alert queries with session-scoped dismiss/acknowledge state."""
from __future__ import annotations

import logging
from typing import Iterable, Optional

from . import rules  # noqa: F401 - ensure rule registration side-effects
from .dictionary import BiomarkerLookup
from .engine import AlertEngine, analyze_series, count_unacknowledged, group_alerts
from .models import (
    AlertContext,
    BiomarkerAlert,
    BiomarkerAnalysis,
    BiomarkerSeries,
    GroupedAlert,
    LabResult,
)
from .registry import RuleRegistry
from .session import AlertSession


class AlertStore:
    """Exposes alerts for one lab-result snapshot and one session.

    Every query re-derives the full alert list from the snapshot and the
    current session sets; mutations only ever add ids to (or clear) those sets,
    so recomputation regenerates the same ids.
    """

    def __init__(
        self,
        lab_results: Iterable[LabResult] = (),
        lookup: BiomarkerLookup | None = None,
        *,
        context: AlertContext | None = None,
        session: AlertSession | None = None,
        registry: RuleRegistry | None = None,
        error: str | None = None,
    ) -> None:
        self._lab_results: tuple[LabResult, ...] = tuple(lab_results)
        self._session = session or AlertSession()
        self._engine = AlertEngine(registry, lookup=lookup, context=context)
        self._error = error

    @classmethod
    def unavailable(cls, error: str, **kwargs) -> "AlertStore":
        """Store for a snapshot the storage layer failed to load."""

        logging.warning(f"Alerts unavailable: {error}")
        return cls((), error=error, **kwargs)

    @property
    def session(self) -> AlertSession:
        return self._session

    @property
    def error(self) -> Optional[str]:
        return self._error

    @property
    def is_available(self) -> bool:
        """False when the snapshot failed to load, as opposed to having no alerts."""

        return self._error is None

    def replace_snapshot(self, lab_results: Iterable[LabResult], error: str | None = None) -> None:
        """Swap in a new snapshot; session state is kept."""

        self._lab_results = tuple(lab_results)
        self._error = error

    @property
    def alerts(self) -> list[BiomarkerAlert]:
        if not self._lab_results:
            return []
        return self._engine.run(self._lab_results, self._session)

    @property
    def grouped_alerts(self) -> list[GroupedAlert]:
        return group_alerts(self.alerts)

    @property
    def unacknowledged_count(self) -> int:
        return count_unacknowledged(self.alerts)

    def dismiss_alert(self, alert_id: str) -> None:
        self._session.dismiss(alert_id)

    def acknowledge_alert(self, alert_id: str) -> None:
        self._session.acknowledge(alert_id)

    def clear_dismissed(self) -> None:
        self._session.clear_dismissed()

    def filter_by_category(self, category: str | None) -> list[BiomarkerAlert]:
        alerts = self.alerts
        if not category:
            return alerts
        return [alert for alert in alerts if alert.category == category]

    def get_alerts_for_biomarker(self, biomarker_id: int) -> list[BiomarkerAlert]:
        return [alert for alert in self.alerts if alert.biomarker_id == biomarker_id]

    def series(self) -> list[BiomarkerSeries]:
        return self._engine.build_series(self._lab_results)

    def series_for_biomarker(self, biomarker_id: int) -> Optional[BiomarkerSeries]:
        for series in self.series():
            if series.biomarker_id == biomarker_id:
                return series
        return None

    def analyze_biomarker(self, biomarker_id: int) -> Optional[BiomarkerAnalysis]:
        """Trend and pattern analysis for one biomarker, or ``None`` without numeric readings."""

        series = self.series_for_biomarker(biomarker_id)
        if series is None or not series.readings:
            return None
        return analyze_series(series)
