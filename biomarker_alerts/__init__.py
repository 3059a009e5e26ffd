"""Biomarker trend analysis and alerting library."""

from .engine import AlertEngine
from .models import (
    AlertContext,
    AlertSeverity,
    AlertStatus,
    AlertType,
    BiomarkerAlert,
    BiomarkerDefinition,
    GroupedAlert,
    LabResult,
    NumericTestValue,
    ReferenceRange,
    TextTestValue,
    TrendDataPoint,
    TrendDirection,
    ValueStatus,
)
from .registry import register_rule, registry
from .rule_base import AlertRule
from .session import AlertSession
from .store import AlertStore
from .trend import EmptyDataSetError

__all__ = [
    "AlertContext",
    "AlertEngine",
    "AlertRule",
    "AlertSession",
    "AlertSeverity",
    "AlertStatus",
    "AlertStore",
    "AlertType",
    "BiomarkerAlert",
    "BiomarkerDefinition",
    "EmptyDataSetError",
    "GroupedAlert",
    "LabResult",
    "NumericTestValue",
    "ReferenceRange",
    "TextTestValue",
    "TrendDataPoint",
    "TrendDirection",
    "ValueStatus",
    "register_rule",
    "registry",
]
