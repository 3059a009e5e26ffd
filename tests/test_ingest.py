from __future__ import annotations

import json
from datetime import datetime
from pathlib import Path

import pytest
from pydantic import ValidationError

from biomarker_alerts.dictionary import StaticBiomarkerDictionary
from biomarker_alerts.ingest import (
    convert_measurement,
    derive_status,
    load_lab_results,
    load_snapshot,
    parse_result_date,
)
from biomarker_alerts.models import (
    BiomarkerDefinition,
    LabResult,
    NumericTestValue,
    ReferenceRange,
    TextTestValue,
    ValueStatus,
)
from biomarker_alerts.payloads import LabResultPayload, MeasurementPayload


def _record(**overrides) -> dict:
    record = {
        "id": 1,
        "date": "2024-01-15",
        "labName": "Quest",
        "testValues": [
            {
                "biomarkerId": 7,
                "value": 182,
                "unit": "mg/dL",
                "referenceRangeLow": 70,
                "referenceRangeHigh": 99,
                "rawText": "Glucose",
            },
            {"biomarkerId": 8, "value": "Negative", "rawText": "Urine Protein"},
        ],
    }
    record.update(overrides)
    return record


def test_parse_result_date_variants():
    assert parse_result_date("2024-01-15") == datetime(2024, 1, 15)
    assert parse_result_date("2024-01-15T08:30:00+02:00") == datetime(2024, 1, 15, 6, 30)


def test_parse_result_date_missing():
    with pytest.raises(ValueError):
        parse_result_date("")


@pytest.mark.parametrize(
    ("value", "reference_range", "expected"),
    [
        (50.0, ReferenceRange(low=70.0, high=99.0), ValueStatus.LOW),
        (120.0, ReferenceRange(low=70.0, high=99.0), ValueStatus.HIGH),
        (99.0, ReferenceRange(low=70.0, high=99.0), ValueStatus.NORMAL),
        (120.0, ReferenceRange(low=70.0), ValueStatus.NORMAL),
        (120.0, ReferenceRange(), ValueStatus.UNKNOWN),
        (None, ReferenceRange(low=70.0, high=99.0), ValueStatus.UNKNOWN),
    ],
)
def test_derive_status(value, reference_range, expected):
    assert derive_status(value, reference_range) is expected


def test_convert_numeric_measurement_derives_status():
    payload = MeasurementPayload(
        biomarkerId=7,
        value=182,
        unit="mg/dL",
        referenceRangeLow=70,
        referenceRangeHigh=99,
    )
    converted = convert_measurement(payload)

    assert isinstance(converted, NumericTestValue)
    assert converted.value == 182.0
    assert converted.status is ValueStatus.HIGH
    assert converted.reference_range == ReferenceRange(low=70.0, high=99.0)


def test_convert_measurement_keeps_reported_status():
    payload = MeasurementPayload(biomarkerId=7, value=182, referenceRangeHigh=99, status="normal")

    assert convert_measurement(payload).status is ValueStatus.NORMAL


def test_convert_text_and_missing_values():
    text = convert_measurement(MeasurementPayload(biomarkerId=8, value="Negative"))
    missing = convert_measurement(MeasurementPayload(biomarkerId=9))

    assert isinstance(text, TextTestValue)
    assert text.value == "Negative"
    assert text.status is ValueStatus.UNKNOWN
    assert isinstance(missing, TextTestValue)
    assert missing.value is None


def test_convert_nan_is_not_numeric():
    converted = convert_measurement(MeasurementPayload(biomarkerId=7, value=float("nan")))

    assert isinstance(converted, TextTestValue)


def test_load_lab_results_from_mixed_records():
    existing = LabResult(id=2, date=datetime(2024, 2, 1), lab_name="LabCorp")
    payload = LabResultPayload.model_validate(_record(id=3))
    results = load_lab_results([_record(), existing, payload])

    assert [result.id for result in results] == [1, 2, 3]
    assert results[1] is existing
    first = results[0]
    assert first.date == datetime(2024, 1, 15)
    assert first.lab_name == "Quest"
    assert [type(value) for value in first.test_values] == [NumericTestValue, TextTestValue]


def test_load_lab_results_rejects_unknown_records():
    with pytest.raises(TypeError):
        load_lab_results(["not a lab result"])


def test_load_lab_results_validates_payload():
    with pytest.raises(ValidationError):
        load_lab_results([{"id": 1, "testValues": []}])


def test_load_snapshot_from_list_and_object():
    results, error = load_snapshot([_record()])
    assert len(results) == 1
    assert error is None

    results, error = load_snapshot({"labResults": [], "error": "storage offline"})
    assert results == []
    assert error == "storage offline"


def test_dictionary_lookup_is_case_insensitive():
    lookup = StaticBiomarkerDictionary(
        [
            BiomarkerDefinition(name="Glucose", category="Metabolic", aliases=("Fasting Glucose",)),
            BiomarkerDefinition(name="GLUCOSE", category="Other"),
        ]
    )

    assert lookup("  fasting glucose ") is not None
    assert lookup("glucose").category == "Metabolic"
    assert lookup("Ferritin") is None
    assert len(lookup) == 2
    assert lookup.categories == ["Metabolic", "Other"]


def test_dictionary_from_json(tmp_path: Path):
    path = tmp_path / "dictionary.json"
    path.write_text(
        json.dumps(
            [
                {"name": "LDL Cholesterol", "category": "Lipids", "aliases": ["LDL", "LDL-C"]},
                {"category": "Lipids"},
            ]
        )
    )
    lookup = StaticBiomarkerDictionary.from_json(path)

    assert len(lookup) == 1
    assert lookup("ldl-c").name == "LDL Cholesterol"


def test_dictionary_from_json_rejects_objects(tmp_path: Path):
    path = tmp_path / "dictionary.json"
    path.write_text(json.dumps({"name": "LDL"}))

    with pytest.raises(ValueError):
        StaticBiomarkerDictionary.from_json(path)
