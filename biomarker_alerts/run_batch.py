"""Command-line utility for generating biomarker alerts from a lab-result snapshot.

The snapshot is a JSON file holding either a list of lab results or an object
``{"labResults": [...], "error": null}``::

    [
        {
            "id": 1,
            "date": "2024-01-15",
            "labName": "Quest",
            "testValues": [
                {"biomarkerId": 7, "value": 182, "unit": "mg/dL",
                 "referenceRangeLow": 70, "referenceRangeHigh": 99,
                 "rawText": "Glucose"},
                ...
            ]
        },
        ...
    ]

An optional ``--dictionary`` JSON list of ``{"name", "category", "aliases"}``
entries labels the biomarkers, and ``--config`` supplies ``thresholds`` and
``rule_settings`` overrides. Use ``--dismiss``/``--acknowledge`` repeatedly to
replay session state. Results are written as JSON to stdout or to ``--output``.
"""
from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path
from typing import Any, Mapping, Optional

import biomarker_alerts.rules  # noqa: F401 - ensure rule registration side-effects
from biomarker_alerts.dictionary import StaticBiomarkerDictionary
from biomarker_alerts.engine import analyze_series
from biomarker_alerts.ingest import load_snapshot
from biomarker_alerts.models import (
    AlertContext,
    BiomarkerAlert,
    BiomarkerAnalysis,
    GroupedAlert,
    ReferenceRange,
    TrendDataPoint,
)
from biomarker_alerts.session import AlertSession
from biomarker_alerts.store import AlertStore


def _reference_range_to_dict(reference_range: Optional[ReferenceRange]) -> Optional[dict]:
    if reference_range is None:
        return None
    return {"low": reference_range.low, "high": reference_range.high}


def _alert_to_dict(alert: BiomarkerAlert) -> dict:
    return {
        "id": alert.id,
        "type": alert.type.value,
        "severity": alert.severity.value,
        "biomarker_id": alert.biomarker_id,
        "biomarker_name": alert.biomarker_name,
        "category": alert.category,
        "value": alert.value,
        "unit": alert.unit,
        "reference_range": _reference_range_to_dict(alert.reference_range),
        "status": alert.status.value,
        "date": alert.date.isoformat(),
        "lab_name": alert.lab_name,
        "lab_result_id": alert.lab_result_id,
        "message": alert.message,
        "acknowledged": alert.acknowledged,
        "dismissed": alert.dismissed,
    }


def _group_to_dict(group: GroupedAlert) -> dict:
    return {
        "biomarker_id": group.biomarker_id,
        "biomarker_name": group.biomarker_name,
        "category": group.category,
        "severity": group.severity.value,
        "unacknowledged_count": group.unacknowledged_count,
        "latest_alert_id": group.latest_alert.id,
        "alert_ids": [alert.id for alert in group.alerts],
    }


def _point_to_dict(point: TrendDataPoint) -> dict:
    return {
        "date": point.date.isoformat(),
        "value": point.value,
        "status": point.status.value if point.status is not None else None,
    }


def _analysis_to_dict(analysis: BiomarkerAnalysis) -> dict:
    trend = analysis.trend
    patterns = analysis.patterns
    rate = trend.rate_of_change
    seasonal = patterns.seasonal
    cyclical = patterns.cyclical
    return {
        "biomarker_id": analysis.biomarker_id,
        "biomarker_name": analysis.biomarker_name,
        "direction": {
            "direction": trend.direction.direction.value,
            "confidence": trend.direction.confidence,
            "description": trend.direction.description,
        },
        "rate_of_change": None
        if rate is None
        else {
            "per_day": rate.per_day,
            "per_week": rate.per_week,
            "per_month": rate.per_month,
            "percentage_change": rate.percentage_change,
            "unit": rate.unit,
        },
        "statistics": {
            "min": trend.statistics.min,
            "max": trend.statistics.max,
            "average": trend.statistics.average,
            "median": trend.statistics.median,
            "standard_deviation": trend.statistics.standard_deviation,
            "latest": trend.statistics.latest,
            "latest_date": trend.statistics.latest_date.isoformat(),
            "oldest": trend.statistics.oldest,
            "oldest_date": trend.statistics.oldest_date.isoformat(),
            "count": trend.statistics.count,
            "unit": trend.statistics.unit,
        },
        "normal_count": trend.normal_count,
        "high_count": trend.high_count,
        "low_count": trend.low_count,
        "seasonal": {
            "has_seasonal_pattern": seasonal.has_seasonal_pattern,
            "overall_average": seasonal.overall_average,
            "peak_month": seasonal.peak_month.month if seasonal.peak_month else None,
            "trough_month": seasonal.trough_month.month if seasonal.trough_month else None,
            "description": seasonal.description,
        },
        "cyclical": None
        if cyclical is None
        else {
            "cycle_length_days": cyclical.cycle_length_days,
            "confidence": cyclical.confidence,
            "description": cyclical.description,
        },
        "deviations": [
            {
                "point": _point_to_dict(deviation.data_point),
                "baseline": deviation.baseline,
                "deviation_percent": deviation.deviation_percent,
                "direction": deviation.direction.value,
            }
            for deviation in patterns.deviations
        ],
        "consecutive_abnormal": {
            "count": patterns.consecutive_abnormal.count,
            "direction": patterns.consecutive_abnormal.direction.value
            if patterns.consecutive_abnormal.direction is not None
            else None,
        },
    }


def load_context(path: Optional[Path]) -> AlertContext:
    """Read ``thresholds`` and ``rule_settings`` from a JSON config file."""

    if path is None:
        return AlertContext()
    with path.open() as handle:
        config: Mapping[str, Any] = json.load(handle)
    if not isinstance(config, Mapping):
        raise ValueError(f"Config must be a JSON object: {path}")
    return AlertContext(
        thresholds=dict(config.get("thresholds") or {}),
        rule_settings={key: dict(value) for key, value in (config.get("rule_settings") or {}).items()},
    )


def run(
    store: AlertStore,
    *,
    include_analysis: bool = False,
) -> dict[str, Any]:
    alerts = store.alerts
    output: dict[str, Any] = {
        "available": store.is_available,
        "error": store.error,
        "alerts": [_alert_to_dict(alert) for alert in alerts],
        "grouped_alerts": [_group_to_dict(group) for group in store.grouped_alerts],
        "unacknowledged_count": store.unacknowledged_count,
    }
    if include_analysis:
        analyses = []
        for series in store.series():
            if series.readings:
                analyses.append(_analysis_to_dict(analyze_series(series)))
        output["analysis"] = analyses
    logging.info(f"Produced {len(alerts)} alert(s), {output['unacknowledged_count']} unacknowledged")
    return output


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Generate biomarker alerts from a lab-result snapshot")
    parser.add_argument("--snapshot", type=Path, required=True, help="Lab-result snapshot JSON file")
    parser.add_argument("--dictionary", type=Path, help="Biomarker dictionary JSON file")
    parser.add_argument("--config", type=Path, help="JSON file with thresholds and rule_settings")
    parser.add_argument("--dismiss", action="append", default=[], help="Alert ID to dismiss (may be repeated)")
    parser.add_argument(
        "--acknowledge",
        action="append",
        default=[],
        help="Alert ID to acknowledge (may be repeated)",
    )
    parser.add_argument("--analysis", action="store_true", help="Include per-biomarker trend and pattern analysis")
    parser.add_argument("--output", type=Path, help="Optional output JSON file")
    parser.add_argument("--indent", type=int, default=None, help="Pretty-print JSON with the given indent")
    parser.add_argument("--log-level", default="WARNING", help="Logging level (default: WARNING)")
    return parser.parse_args(argv)


def build_store(args: argparse.Namespace) -> AlertStore:
    if not args.snapshot.exists():
        raise SystemExit(f"Snapshot file not found: {args.snapshot}")
    with args.snapshot.open() as handle:
        data = json.load(handle)
    lab_results, error = load_snapshot(data)

    lookup = StaticBiomarkerDictionary.from_json(args.dictionary) if args.dictionary else None
    session = AlertSession.from_ids(dismissed=args.dismiss, acknowledged=args.acknowledge)
    context = load_context(args.config)
    logging.info(f"Loaded {len(lab_results)} lab result(s) from {args.snapshot}")
    return AlertStore(lab_results, lookup, context=context, session=session, error=error)


def main(argv: list[str] | None = None) -> int:  # pragma: no cover - CLI entry point
    args = parse_args(argv)
    logging.basicConfig(level=args.log_level.upper(), format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    store = build_store(args)
    results = run(store, include_analysis=args.analysis)

    output_text = json.dumps(results, indent=args.indent, ensure_ascii=False)
    if args.output:
        args.output.write_text(output_text)
    else:
        print(output_text)
    return 0


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
