"""Convert lab-result snapshot payloads into domain records.

This is the only place where a measurement's value type is inspected: numeric
values become ``NumericTestValue`` and everything else ``TextTestValue``, so the
trend and pattern code never sees a non-numeric value.
"""
from __future__ import annotations

import logging
import math
from datetime import datetime
from typing import Any, Iterable, Mapping, Optional

import pandas as pd

from .models import (
    LabResult,
    NumericTestValue,
    ReferenceRange,
    TestValue,
    TextTestValue,
    ValueStatus,
)
from .payloads import LabResultPayload, LabResultSnapshot, MeasurementPayload


def parse_result_date(value: Any) -> datetime:
    """Parse a lab-result date; timezone-aware inputs are normalized to naive UTC."""

    if value is None or value == "":
        raise ValueError("Lab result missing date")
    timestamp = pd.to_datetime(value)
    if timestamp.tzinfo is not None:
        timestamp = timestamp.tz_convert("UTC").tz_localize(None)
    return timestamp.to_pydatetime()


def derive_status(value: Optional[float], reference_range: ReferenceRange) -> ValueStatus:
    """Status of a value against its reference range; unknown without a number or bounds."""

    if value is None or reference_range.is_empty:
        return ValueStatus.UNKNOWN
    if reference_range.low is not None and value < reference_range.low:
        return ValueStatus.LOW
    if reference_range.high is not None and value > reference_range.high:
        return ValueStatus.HIGH
    return ValueStatus.NORMAL


def convert_measurement(payload: MeasurementPayload) -> TestValue:
    reference_range = ReferenceRange(low=payload.referenceRangeLow, high=payload.referenceRangeHigh)
    value = payload.value
    if isinstance(value, float) and math.isfinite(value):
        status = payload.status or derive_status(value, reference_range)
        return NumericTestValue(
            biomarker_id=payload.biomarkerId,
            value=value,
            unit=payload.unit,
            reference_range=reference_range,
            status=status,
            raw_text=payload.rawText,
        )
    return TextTestValue(
        biomarker_id=payload.biomarkerId,
        value=None if value is None else str(value),
        unit=payload.unit,
        reference_range=reference_range,
        status=payload.status or ValueStatus.UNKNOWN,
        raw_text=payload.rawText,
    )


def convert_lab_result(payload: LabResultPayload) -> LabResult:
    return LabResult(
        id=payload.id,
        date=parse_result_date(payload.date),
        lab_name=payload.labName,
        test_values=tuple(convert_measurement(measurement) for measurement in payload.testValues),
    )


def _record_to_lab_result(record: Any) -> LabResult:
    """Convert a record returned by a snapshot source into a ``LabResult``."""

    if isinstance(record, LabResult):
        return record
    if isinstance(record, LabResultPayload):
        return convert_lab_result(record)
    if isinstance(record, Mapping):
        return convert_lab_result(LabResultPayload.model_validate(record))
    raise TypeError(f"Unsupported lab result record type: {type(record).__name__}")


def load_lab_results(records: Iterable[Any]) -> list[LabResult]:
    """Convert payloads, mappings or ``LabResult``s, keeping input order."""

    results = [_record_to_lab_result(record) for record in records]
    logging.debug(f"Loaded {len(results)} lab result(s)")
    return results


def load_snapshot(data: Any) -> tuple[list[LabResult], Optional[str]]:
    """Parse a snapshot document: either a bare list of lab results or ``{labResults, error}``."""

    if isinstance(data, list):
        return load_lab_results(data), None
    snapshot = LabResultSnapshot.model_validate(data)
    if snapshot.error:
        logging.warning(f"Lab result snapshot reported an error: {snapshot.error}")
    return load_lab_results(snapshot.labResults), snapshot.error
