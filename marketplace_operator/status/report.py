"""Aggregate tracked source errors into the operator status."""

from dataclasses import dataclass
from enum import StrEnum

from .error_tracker import ErrorTracker
from .status_error import reason_of

__all__ = ["ConditionStatus", "ClusterOperatorCondition", "degraded_condition"]

DEGRADED = "Degraded"
AS_EXPECTED = "AsExpected"


class ConditionStatus(StrEnum):
    """Status of a cluster operator condition."""

    TRUE = "True"
    FALSE = "False"


@dataclass(frozen=True)
class ClusterOperatorCondition:
    """A condition reported on the cluster operator status."""

    type: str
    status: ConditionStatus
    reason: str
    message: str = ""

    def __str__(self) -> str:
        """Return a string representation of the condition."""
        if self.message:
            return f"{self.type}={self.status} ({self.reason}): {self.message}"
        return f"{self.type}={self.status} ({self.reason})"


def degraded_condition(tracker: ErrorTracker) -> ClusterOperatorCondition:
    """Build the Degraded condition from the errors in the tracker.

    The reason is taken from the first failing source in name order, the
    message lists every failing source.
    """
    keys, errors = tracker.get_keys_and_map()
    if not keys:
        return ClusterOperatorCondition(
            type=DEGRADED, status=ConditionStatus.FALSE, reason=AS_EXPECTED
        )
    keys = sorted(keys)
    return ClusterOperatorCondition(
        type=DEGRADED,
        status=ConditionStatus.TRUE,
        reason=str(reason_of(errors[keys[0]])),
        message="; ".join(f"{key}: {errors[key]}" for key in keys),
    )
