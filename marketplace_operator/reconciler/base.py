"""The contract implemented by every phase reconciler."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import ClassVar, Generic, TypeVar

from marketplace_operator.manifest import ManagedResource
from marketplace_operator.phase import Phase, PhaseTransition

__all__ = ["ReconcileResult", "PhaseReconciler"]

R = TypeVar("R", bound=ManagedResource)


@dataclass
class ReconcileResult(Generic[R]):
    """Outcome of reconciling a resource in a single phase."""

    resource: R
    """The resource after reconciliation, never aliasing the input."""

    next_phase: PhaseTransition | None = None
    """The next desired phase, None when no transition is expected."""

    error: Exception | None = None
    """Dependency failure to surface to the work queue for a retry."""

    @property
    def success(self) -> bool:
        """Return True if the reconcile completed without error."""
        return self.error is None


class PhaseReconciler(ABC, Generic[R]):
    """Reconciles a resource that is in one specific phase.

    Implementations receive a private clone of the stored resource and may
    mutate it freely. Dependency failures are returned in the result rather
    than raised so that the phase message can carry them.
    """

    phase: ClassVar[Phase]
    """The phase this reconciler is registered for."""

    @abstractmethod
    async def reconcile(self, resource: R) -> ReconcileResult[R]:
        """Reconcile the resource and return the next desired phase."""
