"""Dispatch a resource to the reconciler registered for its current phase."""

import asyncio
from collections.abc import Iterable
import logging
from typing import Generic, TypeVar

from marketplace_operator.context import trace_context
from marketplace_operator.exceptions import (
    ReconcileTimeoutError,
    StoreError,
    UnknownPhaseError,
    WrongReconcilerInvokedError,
)
from marketplace_operator.manifest import ManagedResource
from marketplace_operator.phase import Phase, get_next_with_message, transition_into

from .base import PhaseReconciler, ReconcileResult

__all__ = ["PhaseDispatcher", "check_phase", "apply_transition"]

_LOGGER = logging.getLogger(__name__)

R = TypeVar("R", bound=ManagedResource)


def check_phase(reconciler: PhaseReconciler[R], resource: R) -> None:
    """Raise WrongReconcilerInvokedError if the phases do not match."""
    if reconciler.phase != resource.current_phase_name:
        raise WrongReconcilerInvokedError(
            str(resource.resource_id), reconciler.phase, resource.current_phase_name
        )


def apply_transition(result: ReconcileResult[R]) -> R:
    """Write the next phase of the result into the resource status."""
    if result.next_phase is not None:
        transition_into(result.resource.current_phase, result.next_phase)
    return result.resource


class PhaseDispatcher(Generic[R]):
    """Table of reconcilers keyed by the phase they handle."""

    def __init__(
        self,
        reconcilers: Iterable[PhaseReconciler[R]],
        timeout: float | None = None,
    ) -> None:
        """Initialize the dispatcher.

        Args:
            reconcilers: One reconciler per phase.
            timeout: Optional deadline in seconds for a single reconcile.
        """
        self._reconcilers: dict[str, PhaseReconciler[R]] = {}
        self._timeout = timeout
        for reconciler in reconcilers:
            if reconciler.phase in self._reconcilers:
                raise ValueError(f"Duplicate reconciler for phase {reconciler.phase}")
            self._reconcilers[reconciler.phase] = reconciler

    @property
    def phases(self) -> list[str]:
        """The phases that have a registered reconciler."""
        return list(self._reconcilers)

    def reconciler_for(self, resource: R) -> PhaseReconciler[R]:
        """Return the reconciler registered for the resource's current phase."""
        phase = resource.current_phase_name
        if (reconciler := self._reconcilers.get(phase)) is None:
            raise UnknownPhaseError(str(resource.resource_id), phase)
        return reconciler

    async def dispatch(self, resource: R) -> ReconcileResult[R]:
        """Reconcile the resource with the reconciler for its current phase."""
        return await self.invoke(self.reconciler_for(resource), resource)

    async def invoke(
        self, reconciler: PhaseReconciler[R], resource: R
    ) -> ReconcileResult[R]:
        """Invoke a reconciler on a clone of the resource.

        Store failures are turned into a same phase transition carrying the
        error message. A Succeeded resource keeps its empty message and is
        only requeued. A deadline raises ReconcileTimeoutError.
        """
        check_phase(reconciler, resource)
        out = resource.deep_copy()
        name = f"{type(reconciler).__name__} {resource.resource_id}"
        with trace_context(name):
            try:
                async with asyncio.timeout(self._timeout):
                    return await reconciler.reconcile(out)
            except TimeoutError as err:
                raise ReconcileTimeoutError(
                    str(resource.resource_id), self._timeout or 0
                ) from err
            except StoreError as err:
                _LOGGER.warning("Store call failed for %s: %s", resource.resource_id, err)
                if resource.current_phase_name == Phase.SUCCEEDED:
                    return ReconcileResult(resource=resource.deep_copy(), error=err)
                return ReconcileResult(
                    resource=out,
                    next_phase=get_next_with_message(
                        resource.current_phase_name, str(err)
                    ),
                    error=err,
                )
