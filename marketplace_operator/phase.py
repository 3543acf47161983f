"""Phases of the reconciliation lifecycle for a managed resource.

A managed resource always carries exactly one current phase in its status. A
reconciler returns an optional `PhaseTransition` that either keeps the phase
(a self loop carrying an updated message), advances it, or moves the resource
into the terminal `Failed` phase with a diagnostic message.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import StrEnum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .manifest import ObjectPhase

__all__ = [
    "Phase",
    "PhaseTransition",
    "get_next",
    "get_next_with_message",
    "transition_into",
]


class Phase(StrEnum):
    """Named states in the convergence lifecycle of a resource."""

    INITIAL = "Initial"
    CONFIGURING = "Configuring"
    SUCCEEDED = "Succeeded"
    FAILED = "Failed"


@dataclass(frozen=True)
class PhaseTransition:
    """The next desired phase for a resource."""

    name: str
    """The name of the next phase."""

    message: str = ""
    """Human readable message explaining the transition."""

    def __str__(self) -> str:
        if self.message:
            return f"{self.name}: {self.message}"
        return self.name


def get_next(name: str) -> PhaseTransition:
    """Return a transition into the given phase with no message."""
    return PhaseTransition(name=name)


def get_next_with_message(name: str, message: str) -> PhaseTransition:
    """Return a transition into the given phase carrying a message."""
    return PhaseTransition(name=name, message=message)


def transition_into(
    current: "ObjectPhase",
    next_phase: PhaseTransition,
    now: datetime | None = None,
) -> bool:
    """Apply the transition to the phase stored in a resource status.

    The transition time only moves when the phase name changes, the update
    time moves whenever the name or message changes. Returns True if the
    stored phase was modified.
    """
    if current.name == next_phase.name and current.message == next_phase.message:
        return False
    now = now or datetime.now(timezone.utc)
    if current.name != next_phase.name:
        current.last_transition_time = now
    current.name = next_phase.name
    current.message = next_phase.message
    current.last_update_time = now
    return True
