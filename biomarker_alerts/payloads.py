"""
Lab-result snapshot models, as delivered by the storage layer.
"""
from typing import List, Optional, Union

from pydantic import BaseModel, Field

from .models import ValueStatus


class MeasurementPayload(BaseModel):
    """
    Model for a single measurement within a lab result.
    """

    biomarkerId: int = Field(description="Biomarker ID")
    value: Union[float, str, None] = Field(default=None, description="Numeric or textual value")
    unit: str = Field(default="", description="Unit of measurement")
    referenceRangeLow: Optional[float] = Field(default=None, description="Reference range lower bound")
    referenceRangeHigh: Optional[float] = Field(default=None, description="Reference range upper bound")
    status: Optional[ValueStatus] = Field(default=None, description="Precomputed status, derived when absent")
    rawText: Optional[str] = Field(default=None, description="Raw display text from the report")


class LabResultPayload(BaseModel):
    """
    Model for one lab result with its measurements.
    """
    id: int = Field(description="Lab result ID")
    date: str = Field(description="Date of the lab result (ISO 8601)")
    labName: str = Field(default="", description="Lab name")
    testValues: List[MeasurementPayload] = Field(default_factory=list, description="Measurements")


class LabResultSnapshot(BaseModel):
    """
    Model for a full snapshot export.
    """
    labResults: List[LabResultPayload] = Field(default_factory=list, description="Lab results")
    error: Optional[str] = Field(default=None, description="Load error reported by storage")
