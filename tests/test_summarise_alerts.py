from __future__ import annotations

import json
import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parents[1] / "scripts"))

from summarise_alerts import load_alerts, summarise  # noqa: E402


def test_summarise_counts():
    alerts = [
        {"severity": "critical", "type": "out_of_range", "biomarker_name": "Glucose"},
        {"severity": "critical", "type": "trend", "biomarker_name": "Glucose"},
        {"severity": "positive", "type": "improvement", "biomarker_name": "LDL"},
    ]
    summary = summarise(alerts)

    assert summary["total"] == 3
    assert summary["by_severity"] == {"critical": 2, "warning": 0, "info": 0, "positive": 1}
    assert summary["by_type"] == {"out_of_range": 1, "trend": 1, "improvement": 1}
    assert summary["by_biomarker"] == {"Glucose": {"critical": 2}, "LDL": {"positive": 1}}


def test_load_alerts(tmp_path: Path):
    path = tmp_path / "alerts.json"
    path.write_text(json.dumps({"alerts": [{"id": "trend_1_3"}]}))

    assert load_alerts(path) == [{"id": "trend_1_3"}]


def test_load_alerts_rejects_other_documents(tmp_path: Path):
    path = tmp_path / "alerts.json"
    path.write_text(json.dumps([]))

    with pytest.raises(ValueError):
        load_alerts(path)
