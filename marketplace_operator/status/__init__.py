"""Tracking of source errors and aggregation into the operator status."""

from .error_tracker import EnabledSources, ErrorTracker
from .report import ClusterOperatorCondition, ConditionStatus, degraded_condition
from .status_error import StatusError, StatusErrorReason, reason_of

__all__ = [
    "EnabledSources",
    "ErrorTracker",
    "ClusterOperatorCondition",
    "ConditionStatus",
    "degraded_condition",
    "StatusError",
    "StatusErrorReason",
    "reason_of",
]
