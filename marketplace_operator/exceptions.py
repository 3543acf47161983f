"""Exceptions related to marketplace-operator."""

__all__ = [
    "MarketplaceException",
    "InputException",
    "WrongReconcilerInvokedError",
    "UnknownPhaseError",
    "StoreError",
    "ObjectNotFoundError",
    "RetryableError",
    "ReconcileTimeoutError",
    "WorkQueueShutdown",
]


class MarketplaceException(Exception):
    """Generic base exception used for this library."""


class InputException(MarketplaceException):
    """Raised when the input documents are not formatted as expected."""


class WrongReconcilerInvokedError(MarketplaceException):
    """Raised when a reconciler is handed a resource in a phase it does not own.

    This indicates a dispatch bug and is never retried.
    """

    def __init__(self, resource_name: str, expected: str, actual: str) -> None:
        super().__init__(
            f"Wrong reconciler invoked for {resource_name}: "
            f"reconciler handles phase {expected} but resource is in phase {actual}"
        )
        self.resource_name = resource_name
        self.expected = expected
        self.actual = actual


class UnknownPhaseError(MarketplaceException):
    """Raised when no reconciler is registered for the current phase."""

    def __init__(self, resource_name: str, phase: str) -> None:
        super().__init__(f"No reconciler registered for {resource_name} in phase {phase}")
        self.resource_name = resource_name
        self.phase = phase


class StoreError(MarketplaceException):
    """Raised when a call to the object store fails."""


class ObjectNotFoundError(StoreError):
    """Raised when an object is not found in the store."""


class RetryableError(MarketplaceException):
    """Raised for failures that should be retried by the work queue."""


class ReconcileTimeoutError(RetryableError):
    """Raised when a reconcile exceeds its deadline."""

    def __init__(self, resource_name: str, timeout: float) -> None:
        super().__init__(f"Reconcile of {resource_name} timed out after {timeout}s")
        self.resource_name = resource_name
        self.timeout = timeout


class WorkQueueShutdown(MarketplaceException):
    """Raised to workers waiting on a work queue that has been shut down."""
