"""Alert generation over a lab-result snapshot.

The engine is a pure function of ``(lab_results, session)``: it regroups the
numeric measurements per biomarker on every call, runs each registered rule
over every series, and applies the session's dismissed/acknowledged sets to
the result. Nothing is cached between calls.
"""
from __future__ import annotations

import dataclasses
import logging
from typing import Callable, Iterable, Optional, Sequence

from .dictionary import BiomarkerLookup
from .models import (
    AlertContext,
    AlertSeverity,
    AlertType,
    BiomarkerAlert,
    BiomarkerAnalysis,
    BiomarkerReading,
    BiomarkerSeries,
    GroupedAlert,
    LabResult,
    NumericTestValue,
)
from .patterns import analyze_patterns
from .registry import RuleRegistry, registry as default_registry
from .rule_base import AlertRule
from .session import AlertSession
from .trend import analyze_trend, epoch_ms, readings_to_points


def resolve_biomarker(
    biomarker_id: int,
    raw_text: Optional[str],
    lookup: Optional[BiomarkerLookup],
) -> tuple[str, Optional[str]]:
    """Return ``(display_name, category)``, falling back to raw text then a synthesized label."""

    definition = lookup(raw_text or "") if lookup is not None else None
    if definition is not None and definition.name:
        return definition.name, definition.category
    category = definition.category if definition is not None else None
    if raw_text:
        return raw_text, category
    return f"Biomarker {biomarker_id}", category


def build_series(
    lab_results: Iterable[LabResult],
    lookup: Optional[BiomarkerLookup] = None,
) -> list[BiomarkerSeries]:
    """Group numeric measurements by biomarker across all lab results.

    Series appear in first-seen order; readings within a series are sorted most
    recent first, keeping input order for equal dates.
    """

    grouped: dict[int, list[BiomarkerReading]] = {}
    skipped = 0
    for result in lab_results:
        for test_value in result.test_values:
            if not isinstance(test_value, NumericTestValue):
                skipped += 1
                continue
            grouped.setdefault(test_value.biomarker_id, []).append(
                BiomarkerReading(
                    test_value=test_value,
                    lab_result_id=result.id,
                    date=result.date,
                    lab_name=result.lab_name,
                )
            )
    if skipped:
        logging.debug(f"Skipped {skipped} non-numeric test value(s) during series extraction")

    series_list: list[BiomarkerSeries] = []
    for biomarker_id, readings in grouped.items():
        name, category = resolve_biomarker(biomarker_id, readings[0].test_value.raw_text, lookup)
        ordered = sorted(readings, key=lambda reading: epoch_ms(reading.date), reverse=True)
        series_list.append(
            BiomarkerSeries(
                biomarker_id=biomarker_id,
                biomarker_name=name,
                category=category,
                readings=tuple(ordered),
            )
        )
    return series_list


def apply_session(alerts: Iterable[BiomarkerAlert], session: AlertSession) -> list[BiomarkerAlert]:
    """Drop dismissed and repeated alerts and mark acknowledged ones.

    A biomarker reported twice in one lab result yields the same alert id
    twice; only the first alert generated for an id is kept.
    """

    visible: list[BiomarkerAlert] = []
    seen: set[str] = set()
    for alert in alerts:
        if alert.id in seen:
            continue
        seen.add(alert.id)
        if session.is_dismissed(alert.id):
            continue
        if session.is_acknowledged(alert.id):
            alert = dataclasses.replace(alert, acknowledged=True)
        visible.append(alert)
    return visible


def sort_alerts(alerts: Iterable[BiomarkerAlert]) -> list[BiomarkerAlert]:
    """Most severe first, then most recent first."""

    return sorted(alerts, key=lambda alert: (alert.severity.rank, -epoch_ms(alert.date)))


def highest_severity(alerts: Iterable[BiomarkerAlert]) -> AlertSeverity:
    severity = AlertSeverity.POSITIVE
    for alert in alerts:
        if alert.severity.rank < severity.rank:
            severity = alert.severity
    return severity


def group_alerts(alerts: Sequence[BiomarkerAlert]) -> list[GroupedAlert]:
    """Bucket sorted alerts by biomarker; groups sort by severity, then unacknowledged count."""

    buckets: dict[int, list[BiomarkerAlert]] = {}
    for alert in alerts:
        buckets.setdefault(alert.biomarker_id, []).append(alert)

    groups: list[GroupedAlert] = []
    for biomarker_id, biomarker_alerts in buckets.items():
        latest = biomarker_alerts[0]
        groups.append(
            GroupedAlert(
                biomarker_id=biomarker_id,
                biomarker_name=latest.biomarker_name,
                category=latest.category,
                alerts=tuple(biomarker_alerts),
                latest_alert=latest,
                unacknowledged_count=sum(1 for alert in biomarker_alerts if not alert.acknowledged),
                severity=highest_severity(biomarker_alerts),
            )
        )
    return sorted(groups, key=lambda group: (group.severity.rank, -group.unacknowledged_count))


def count_unacknowledged(alerts: Iterable[BiomarkerAlert]) -> int:
    """Unacknowledged alerts, not counting improvements."""

    return sum(1 for alert in alerts if not alert.acknowledged and alert.type is not AlertType.IMPROVEMENT)


def analyze_series(series: BiomarkerSeries) -> BiomarkerAnalysis:
    """Trend and pattern analysis for one non-empty series."""

    points = readings_to_points(series.readings)
    return BiomarkerAnalysis(
        biomarker_id=series.biomarker_id,
        biomarker_name=series.biomarker_name,
        trend=analyze_trend(points),
        patterns=analyze_patterns(points),
    )


class AlertEngine:
    """Runs registered alert rules over every biomarker series in a snapshot."""

    def __init__(
        self,
        registry: RuleRegistry | None = None,
        *,
        lookup: BiomarkerLookup | None = None,
        context: AlertContext | None = None,
        rule_filter: Callable[[AlertRule], bool] | None = None,
    ) -> None:
        self._registry = registry or default_registry
        self._lookup = lookup
        self._context = context or AlertContext()
        self._rule_filter = rule_filter

    @property
    def context(self) -> AlertContext:
        return self._context

    def build_series(self, lab_results: Iterable[LabResult]) -> list[BiomarkerSeries]:
        return build_series(lab_results, self._lookup)

    def generate(self, lab_results: Iterable[LabResult]) -> list[BiomarkerAlert]:
        """Raw alerts in generation order, before session state and sorting."""

        alerts: list[BiomarkerAlert] = []
        for series in self.build_series(lab_results):
            alerts.extend(self._registry.evaluate_all(series, self._context, predicate=self._rule_filter))
        return alerts

    def run(self, lab_results: Iterable[LabResult], session: AlertSession | None = None) -> list[BiomarkerAlert]:
        """Visible alerts for the snapshot, sorted by severity then date."""

        alerts = self.generate(lab_results)
        visible = apply_session(alerts, session or AlertSession())
        logging.debug(f"Generated {len(alerts)} alert(s), {len(visible)} visible after session filtering")
        return sort_alerts(visible)
