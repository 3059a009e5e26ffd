"""Core data models for biomarker trend analysis and alerting."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Mapping, Optional, Sequence, Union


class ValueStatus(str, Enum):
    """Status of a measurement relative to its reference range."""

    NORMAL = "normal"
    LOW = "low"
    HIGH = "high"
    UNKNOWN = "unknown"

    @property
    def is_abnormal(self) -> bool:
        return self in (ValueStatus.HIGH, ValueStatus.LOW)


class TrendDirection(str, Enum):
    INCREASING = "increasing"
    DECREASING = "decreasing"
    STABLE = "stable"
    INSUFFICIENT_DATA = "insufficient_data"


class AlertSeverity(str, Enum):
    """Alert severity; lower rank sorts first."""

    CRITICAL = "critical"
    WARNING = "warning"
    INFO = "info"
    POSITIVE = "positive"

    @property
    def rank(self) -> int:
        if self is AlertSeverity.CRITICAL:
            return 0
        if self is AlertSeverity.WARNING:
            return 1
        if self is AlertSeverity.INFO:
            return 2
        if self is AlertSeverity.POSITIVE:
            return 3
        raise ValueError(f"Unhandled severity {self!r}")


class AlertType(str, Enum):
    OUT_OF_RANGE = "out_of_range"
    TREND = "trend"
    IMPROVEMENT = "improvement"


class AlertStatus(str, Enum):
    """Status carried on an alert; ``mixed`` is reserved for trend alerts."""

    HIGH = "high"
    LOW = "low"
    NORMAL = "normal"
    MIXED = "mixed"


class DeviationDirection(str, Enum):
    ABOVE = "above"
    BELOW = "below"


@dataclass(frozen=True)
class ReferenceRange:
    """Clinically normal bounds for a biomarker; either side may be missing."""

    low: Optional[float] = None
    high: Optional[float] = None

    @property
    def is_empty(self) -> bool:
        return self.low is None and self.high is None


@dataclass(frozen=True)
class TrendDataPoint:
    """A single numeric measurement projected onto its lab result's date."""

    date: datetime
    value: float
    unit: str
    reference_range: Optional[ReferenceRange] = None
    lab_name: Optional[str] = None
    status: Optional[ValueStatus] = None

    def __post_init__(self) -> None:
        if self.status is not None and not isinstance(self.status, ValueStatus):
            object.__setattr__(self, "status", ValueStatus(self.status))


@dataclass(frozen=True)
class TrendDirectionResult:
    direction: TrendDirection
    confidence: float
    description: str


@dataclass(frozen=True)
class RateOfChange:
    """Linear change between the first and last measurement."""

    per_day: float
    per_week: float
    per_month: float
    percentage_change: float
    unit: str


@dataclass(frozen=True)
class TrendStatistics:
    min: float
    max: float
    average: float
    median: float
    standard_deviation: float
    latest: float
    latest_date: datetime
    oldest: float
    oldest_date: datetime
    count: int
    unit: str


@dataclass(frozen=True)
class TrendAnalysisResult:
    direction: TrendDirectionResult
    rate_of_change: Optional[RateOfChange]
    statistics: TrendStatistics
    normal_count: int
    high_count: int
    low_count: int


@dataclass(frozen=True)
class SeasonalPattern:
    """Average value of one calendar month, pooled across years."""

    month: int
    month_name: str
    average_value: float
    sample_count: int
    deviation_percent: float


@dataclass(frozen=True)
class SeasonalAnalysisResult:
    has_seasonal_pattern: bool
    monthly_patterns: Sequence[SeasonalPattern] = field(default_factory=tuple)
    peak_month: Optional[SeasonalPattern] = None
    trough_month: Optional[SeasonalPattern] = None
    overall_average: float = 0.0
    min_samples_needed: int = 2
    description: str = ""


@dataclass(frozen=True)
class CyclicalPattern:
    cycle_length_days: int
    confidence: float
    description: str
    pair_count: int = 0


@dataclass(frozen=True)
class BaselineDeviation:
    """A point that departs from the rolling average of the points before it."""

    data_point: TrendDataPoint
    baseline: float
    deviation: float
    deviation_percent: float
    is_significant: bool
    direction: DeviationDirection


@dataclass(frozen=True)
class ConsecutiveAbnormalRun:
    """Longest run of same-direction abnormal statuses."""

    count: int
    direction: Optional[ValueStatus] = None


@dataclass(frozen=True)
class PatternAnalysisResult:
    seasonal: SeasonalAnalysisResult
    cyclical: Optional[CyclicalPattern]
    deviations: Sequence[BaselineDeviation]
    consecutive_abnormal: ConsecutiveAbnormalRun


@dataclass(frozen=True)
class NumericTestValue:
    """Measurement whose value is a number; the only kind the analytics see."""

    biomarker_id: int
    value: float
    unit: str
    reference_range: ReferenceRange = field(default_factory=ReferenceRange)
    status: ValueStatus = ValueStatus.UNKNOWN
    raw_text: Optional[str] = None

    def __post_init__(self) -> None:
        if not isinstance(self.status, ValueStatus):
            object.__setattr__(self, "status", ValueStatus(self.status))


@dataclass(frozen=True)
class TextTestValue:
    """Measurement reported as text (e.g. ``"Negative"``)."""

    biomarker_id: int
    value: Optional[str]
    unit: str
    reference_range: ReferenceRange = field(default_factory=ReferenceRange)
    status: ValueStatus = ValueStatus.UNKNOWN
    raw_text: Optional[str] = None

    def __post_init__(self) -> None:
        if not isinstance(self.status, ValueStatus):
            object.__setattr__(self, "status", ValueStatus(self.status))


TestValue = Union[NumericTestValue, TextTestValue]


@dataclass(frozen=True)
class LabResult:
    """One dated lab report with its measurements."""

    id: int
    date: datetime
    lab_name: str
    test_values: Sequence[TestValue] = field(default_factory=tuple)


@dataclass(frozen=True)
class BiomarkerDefinition:
    name: str
    category: Optional[str] = None
    aliases: Sequence[str] = field(default_factory=tuple)


@dataclass(frozen=True)
class BiomarkerReading:
    """Numeric measurement linked back to the lab result it came from."""

    test_value: NumericTestValue
    lab_result_id: int
    date: datetime
    lab_name: str

    @property
    def value(self) -> float:
        return self.test_value.value

    @property
    def unit(self) -> str:
        return self.test_value.unit

    @property
    def status(self) -> ValueStatus:
        return self.test_value.status

    @property
    def reference_range(self) -> ReferenceRange:
        return self.test_value.reference_range


@dataclass(frozen=True)
class BiomarkerSeries:
    """All numeric readings of one biomarker, most recent first."""

    biomarker_id: int
    biomarker_name: str
    category: Optional[str]
    readings: Sequence[BiomarkerReading] = field(default_factory=tuple)


@dataclass(frozen=True)
class BiomarkerAlert:
    id: str
    type: AlertType
    severity: AlertSeverity
    biomarker_id: int
    biomarker_name: str
    category: Optional[str]
    value: float
    unit: str
    reference_range: Optional[ReferenceRange]
    status: AlertStatus
    date: datetime
    lab_name: str
    lab_result_id: int
    message: str
    acknowledged: bool = False
    dismissed: bool = False


@dataclass(frozen=True)
class GroupedAlert:
    biomarker_id: int
    biomarker_name: str
    category: Optional[str]
    alerts: Sequence[BiomarkerAlert]
    latest_alert: BiomarkerAlert
    unacknowledged_count: int
    severity: AlertSeverity


@dataclass(frozen=True)
class BiomarkerAnalysis:
    """Trend and pattern analysis for a single biomarker series."""

    biomarker_id: int
    biomarker_name: str
    trend: TrendAnalysisResult
    patterns: PatternAnalysisResult


@dataclass(frozen=True)
class AlertContext:
    """Threshold configuration passed to each alert rule."""

    thresholds: Mapping[str, Any] = field(default_factory=dict)
    rule_settings: Mapping[str, Mapping[str, Any]] = field(default_factory=dict)

    def rule_threshold(self, rule_id: str, key: str, default: Any) -> Any:
        """Return rule-specific override, falling back to global thresholds"""

        rule_specific = self.rule_settings.get(rule_id, {})
        if key in rule_specific:
            return rule_specific[key]
        return self.thresholds.get(key, default)
