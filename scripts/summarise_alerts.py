#!/usr/bin/env python3
"""Summarise batch-runner alert output by severity, type and biomarker."""
from __future__ import annotations

import argparse
import json
from collections import Counter, defaultdict
from pathlib import Path
from typing import Any, Dict, Iterable, Mapping

SEVERITY_ORDER = ("critical", "warning", "info", "positive")


def load_alerts(path: Path) -> list[Mapping[str, Any]]:
    with path.open() as handle:
        payload = json.load(handle)
    if not isinstance(payload, Mapping) or "alerts" not in payload:
        raise ValueError(f"{path} does not look like batch-runner output")
    return list(payload["alerts"])


def summarise(alerts: Iterable[Mapping[str, Any]]) -> dict[str, Any]:
    by_severity: Counter[str] = Counter()
    by_type: Counter[str] = Counter()
    by_biomarker: Dict[str, Counter[str]] = defaultdict(Counter)

    for alert in alerts:
        severity = str(alert.get("severity"))
        by_severity[severity] += 1
        by_type[str(alert.get("type"))] += 1
        by_biomarker[str(alert.get("biomarker_name"))][severity] += 1

    return {
        "total": sum(by_severity.values()),
        "by_severity": {severity: by_severity.get(severity, 0) for severity in SEVERITY_ORDER},
        "by_type": dict(by_type),
        "by_biomarker": {name: dict(counts) for name, counts in by_biomarker.items()},
    }


def main() -> None:
    parser = argparse.ArgumentParser(description="Summarise biomarker alert output")
    parser.add_argument("alerts", type=Path, help="Path to a batch-runner output JSON file")
    args = parser.parse_args()

    summary = summarise(load_alerts(args.alerts))

    print(f"Total alerts: {summary['total']}")
    for severity, count in summary["by_severity"].items():
        print(f"  {severity}: {count}")
    print()
    print("By type")
    for alert_type, count in sorted(summary["by_type"].items(), key=lambda item: item[1], reverse=True):
        print(f"  {alert_type}: {count}")
    print()
    print("By biomarker")
    ordered = sorted(
        summary["by_biomarker"].items(),
        key=lambda item: tuple(-item[1].get(severity, 0) for severity in SEVERITY_ORDER),
    )
    for name, counts in ordered:
        detail = ", ".join(f"{severity}={counts[severity]}" for severity in SEVERITY_ORDER if severity in counts)
        print(f"  {name}: {detail}")


if __name__ == "__main__":
    main()
