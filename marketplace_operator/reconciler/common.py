"""Reconcilers for the phases that behave the same for every kind."""

from collections.abc import Callable
import logging
from typing import Generic, TypeVar

from marketplace_operator.manifest import ManagedResource
from marketplace_operator.phase import Phase, get_next, get_next_with_message

from .base import PhaseReconciler, ReconcileResult

__all__ = [
    "InitialReconciler",
    "FailedReconciler",
    "SCHEDULED_MESSAGE",
    "succeeded",
    "retry_configuring",
    "reset_to_configuring",
]

_LOGGER = logging.getLogger(__name__)

R = TypeVar("R", bound=ManagedResource)

SCHEDULED_MESSAGE = "Scheduled for configuring"


class InitialReconciler(PhaseReconciler[R], Generic[R]):
    """Validates a newly created resource.

    A valid resource moves to Configuring, an invalid one to Failed with the
    validation message.
    """

    phase = Phase.INITIAL

    def __init__(self, validate: Callable[[R], str | None]) -> None:
        """Initialize with a function returning an error message or None."""
        self._validate = validate

    async def reconcile(self, resource: R) -> ReconcileResult[R]:
        if (message := self._validate(resource)) is not None:
            _LOGGER.info("%s failed validation: %s", resource.resource_id, message)
            return ReconcileResult(
                resource=resource,
                next_phase=get_next_with_message(Phase.FAILED, message),
            )
        _LOGGER.debug("%s scheduled for configuring", resource.resource_id)
        return ReconcileResult(
            resource=resource,
            next_phase=get_next_with_message(Phase.CONFIGURING, SCHEDULED_MESSAGE),
        )


class FailedReconciler(PhaseReconciler[R], Generic[R]):
    """Failed is terminal, no action is taken."""

    phase = Phase.FAILED

    async def reconcile(self, resource: R) -> ReconcileResult[R]:
        _LOGGER.debug(
            "No action taken, %s is in phase Failed: %s",
            resource.resource_id,
            resource.current_phase.message,
        )
        return ReconcileResult(resource=resource)


def succeeded(resource: R) -> ReconcileResult[R]:
    """Return the result of a successful configuring step."""
    _LOGGER.info("%s has been successfully reconciled", resource.resource_id)
    return ReconcileResult(resource=resource, next_phase=get_next(Phase.SUCCEEDED))


def retry_configuring(resource: R, err: Exception) -> ReconcileResult[R]:
    """Return the result of a failed configuring step, carrying the error."""
    _LOGGER.warning("Failed to configure %s: %s", resource.resource_id, err)
    return ReconcileResult(
        resource=resource,
        next_phase=get_next_with_message(Phase.CONFIGURING, str(err)),
        error=err,
    )


def reset_to_configuring(resource: R, reason: str) -> ReconcileResult[R]:
    """Drop the status of a reconciled resource so configuring starts anew."""
    _LOGGER.info("%s, scheduling %s for configuring", reason, resource.resource_id)
    resource.reset_status()
    return ReconcileResult(resource=resource, next_phase=get_next(Phase.CONFIGURING))
