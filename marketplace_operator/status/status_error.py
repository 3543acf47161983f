"""Errors that explain why the operator reports a degraded status."""

from enum import StrEnum

__all__ = ["StatusErrorReason", "StatusError", "reason_of"]


class StatusErrorReason(StrEnum):
    """Known causes of a degraded status, in PascalCase."""

    ENSURE_RESOURCES = "EnsureResourcesError"
    """Ensuring the registry resources of a source failed."""

    UNKNOWN = "UnknownError"
    """The cause is not known."""


class StatusError(Exception):
    """An error carrying a high level reason for a degraded status."""

    def __init__(
        self, reason: StatusErrorReason, error: BaseException | None = None
    ) -> None:
        super().__init__(str(error) if error is not None else "")
        self.reason = reason
        self.error = error

    def __str__(self) -> str:
        if self.error is None:
            return ""
        return str(self.error)


def reason_of(err: BaseException) -> StatusErrorReason:
    """Return the reason of a StatusError, UNKNOWN for any other error."""
    if isinstance(err, StatusError):
        return err.reason
    return StatusErrorReason.UNKNOWN
